"""q lexer: converts source text into a flat, position-complete token stream."""

from __future__ import annotations

import re
from dataclasses import replace

from qlang.tokens import (
    LITERALS,
    RESERVED_WORDS,
    VERB_CHARS,
    ErrorTag,
    Position,
    Span,
    Token,
    TokenType,
    is_digit,
    is_name_char,
    is_name_start,
    is_octal_digit,
)

_CLOCK = r"(?:\d{2}(?::\d{2}(?::\d{2}(?:\.\d*)?)?)?)?"
_DATE = r"\d{4}\.\d{2}\.\d{2}"

# Tried in order; the first match wins.
_NUMERIC_PATTERNS: tuple[tuple[TokenType, re.Pattern[str]], ...] = (
    (TokenType.DATETIME, re.compile(rf"{_DATE}T{_CLOCK}z?|{_DATE}z|0[NnWw]z")),
    (TokenType.DATE, re.compile(rf"{_DATE}D{_CLOCK}p?")),
    (TokenType.DATE, re.compile(r"\d{4}\.\d{2}m")),
    (TokenType.DATE, re.compile(rf"{_DATE}d?")),
    (TokenType.TIME, re.compile(rf"\d+D{_CLOCK}n?")),
    (TokenType.TIME, re.compile(r"\d{2}:\d{2}(?::\d{2}(?:\.\d*)?)?[uvtn]?")),
    (TokenType.NUMBER, re.compile(r"0x[0-9a-fA-F]*")),
    (TokenType.NUMBER, re.compile(r"[01]+b")),
    (TokenType.NUMBER, re.compile(r"0[NnWw][ghijefcpmdnuvt]?")),
    (TokenType.NUMBER, re.compile(r"(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?[hijefcpmdnuvt]?")),
)

_NAME = re.compile(r"\.?[A-Za-z][A-Za-z0-9_]*(?:\.[A-Za-z0-9_]+)*")

_SEED = re.compile(r"\d+[hij]?")

_NAMESPACE_COMMAND = re.compile(r"d\s+(\.\S*)\s*")

# Tokens after which ":" binds a value rather than acting as an operator
_TARGETS = LITERALS | {TokenType.IDENTIFIER, TokenType.KEYWORD, TokenType.RBRACKET}

_OPEN = {"(": TokenType.LPAREN, "[": TokenType.LBRACKET, "{": TokenType.LBRACE}
_CLOSE = {")": TokenType.RPAREN, "]": TokenType.RBRACKET, "}": TokenType.RBRACE}


class Lexer:
    """Tokenize q source text into a stream of Token objects.

    Malformed input never raises: problems are recorded in ``Token.error``
    and lexing carries on so that every character of the source ends up in
    exactly one token.
    """

    def __init__(self, source: str) -> None:
        self._source = source
        self._pos = 0
        self._line = 1
        self._col = 1
        self._last = Position(1, 1, 0)
        self._tokens: list[Token] = []
        self._depth = 0
        self._namespace: str | None = None

    def tokenize(self) -> list[Token]:
        """Tokenize the full source and return the token list."""
        while self._pos < len(self._source):
            if self._col == 1 and self._lex_line_start():
                continue
            self._lex_normal()

        self._mark_fixed_seeds()
        return self._tokens

    # ------------------------------------------------------------------
    # Position helpers
    # ------------------------------------------------------------------

    def _current_pos(self) -> Position:
        return Position(self._line, self._col, self._pos)

    def _peek(self, offset: int = 0) -> str:
        idx = self._pos + offset
        if idx < len(self._source):
            return self._source[idx]
        return ""

    def _prev_char(self) -> str:
        return self._source[self._pos - 1] if self._pos > 0 else ""

    def _advance(self) -> str:
        ch = self._source[self._pos]
        self._last = self._current_pos()
        self._pos += 1
        if ch == "\n":
            self._line += 1
            self._col = 1
        else:
            self._col += 1
        return ch

    def _advance_to(self, offset: int) -> None:
        while self._pos < offset:
            self._advance()

    def _advance_line(self) -> None:
        """Consume up to, not including, the line terminator."""
        while self._pos < len(self._source):
            ch = self._peek()
            if ch == "\n" or (ch == "\r" and self._peek(1) == "\n"):
                break
            self._advance()

    def _rest_of_line(self) -> str:
        end = self._source.find("\n", self._pos)
        if end == -1:
            end = len(self._source)
        return self._source[self._pos : end]

    def _emit(self, tt: TokenType, start: Position, error: ErrorTag | None = None) -> Token:
        raw = self._source[start.offset : self._pos]
        tok = Token(tt, raw, Span(start, self._last), namespace=self._namespace, error=error)
        self._tokens.append(tok)
        return tok

    def _prev_index(self, before: int | None = None) -> int | None:
        """Index of the last emitted token, skipping horizontal whitespace."""
        end = len(self._tokens) if before is None else before
        for idx in range(end - 1, -1, -1):
            if self._tokens[idx].type != TokenType.WS:
                return idx
        return None

    def _prev_type(self) -> TokenType | None:
        idx = self._prev_index()
        return None if idx is None else self._tokens[idx].type

    # ------------------------------------------------------------------
    # Line starts: comments and system commands
    # ------------------------------------------------------------------

    def _lex_line_start(self) -> bool:
        line = self._rest_of_line().rstrip()

        if line == "/":
            self._lex_block_comment()
            return True

        if line == "\\" and self._depth == 0:
            # A lone backslash ends the script; everything after is commentary
            start = self._current_pos()
            self._advance_to(len(self._source))
            self._emit(TokenType.COMMENT, start)
            return True

        ch = self._peek()
        if ch == "/":
            self._lex_line_comment()
            return True

        if ch == "\\" and self._depth == 0:
            self._lex_command(line)
            return True

        return False

    def _lex_block_comment(self) -> None:
        start = self._current_pos()
        self._advance_line()
        while self._pos < len(self._source):
            self._advance_newline()
            line = self._rest_of_line()
            self._advance_line()
            if line.rstrip() == "\\":
                break
        self._emit(TokenType.COMMENT, start)

    def _advance_newline(self) -> None:
        if self._peek() == "\r":
            self._advance()
        if self._peek() == "\n":
            self._advance()

    def _lex_line_comment(self) -> None:
        start = self._current_pos()
        self._advance_line()
        self._emit(TokenType.COMMENT, start)

    def _lex_command(self, line: str) -> None:
        start = self._current_pos()
        self._advance_line()
        self._emit(TokenType.COMMAND, start)
        self._switch_namespace(line[1:])

    def _switch_namespace(self, command: str) -> None:
        """Apply a ``d`` system command to the active namespace."""
        m = _NAMESPACE_COMMAND.fullmatch(command)
        if m is None:
            return
        name = m.group(1).rstrip(".")
        self._namespace = name or None

    # ------------------------------------------------------------------
    # Normal mode
    # ------------------------------------------------------------------

    def _lex_normal(self) -> None:
        ch = self._peek()

        if ch == "\n":
            start = self._current_pos()
            self._advance()
            self._emit(TokenType.NEWLINE, start)
            return

        if ch == "\r" and self._peek(1) == "\n":
            start = self._current_pos()
            self._advance()
            self._advance()
            self._emit(TokenType.NEWLINE, start)
            return

        if ch in " \t":
            self._lex_ws()
            return

        if ch == '"':
            self._lex_string()
            return

        if ch == "`":
            self._lex_symbol()
            return

        if self._at_number():
            self._lex_number()
            return

        if is_name_start(ch) or (ch == "." and is_name_start(self._peek(1))):
            self._lex_name()
            return

        if ch in _OPEN:
            start = self._current_pos()
            self._advance()
            self._depth += 1
            self._emit(_OPEN[ch], start)
            return

        if ch in _CLOSE:
            start = self._current_pos()
            self._advance()
            self._depth = max(0, self._depth - 1)
            self._emit(_CLOSE[ch], start)
            return

        if ch == ";":
            start = self._current_pos()
            self._advance()
            self._emit(TokenType.SEMICOLON, start)
            return

        if ch == ":":
            self._lex_colon()
            return

        if ch in "'/\\":
            start = self._current_pos()
            self._advance()
            if self._peek() == ":":
                self._advance()
            self._emit(TokenType.ADVERB, start)
            return

        if ch in VERB_CHARS:
            self._lex_verb()
            return

        # Anything else is a single UNKNOWN character
        start = self._current_pos()
        self._advance()
        self._emit(TokenType.UNKNOWN, start)

    def _lex_ws(self) -> None:
        start = self._current_pos()
        while self._pos < len(self._source) and self._peek() in " \t":
            self._advance()
        self._emit(TokenType.WS, start)
        if self._peek() == "/":
            self._lex_line_comment()

    def _lex_name(self) -> None:
        start = self._current_pos()
        m = _NAME.match(self._source, self._pos)
        assert m is not None
        self._advance_to(m.end())
        tt = TokenType.KEYWORD if m.group() in RESERVED_WORDS else TokenType.IDENTIFIER
        self._emit(tt, start)

    def _lex_symbol(self) -> None:
        start = self._current_pos()
        self._advance()  # consume backtick
        if self._peek() == ":":
            extra = ".:/"
        elif is_name_char(self._peek()) or self._peek() == ".":
            extra = ".:"
        else:
            extra = ""
        if extra:
            while self._pos < len(self._source):
                ch = self._peek()
                if not (is_name_char(ch) or ch in extra):
                    break
                self._advance()
        self._emit(TokenType.SYMBOL, start)

    # ------------------------------------------------------------------
    # Numbers and temporal literals
    # ------------------------------------------------------------------

    def _at_number(self) -> bool:
        ch = self._peek()
        if is_digit(ch):
            return True
        if ch == "." and is_digit(self._peek(1)):
            return True
        if ch == "-" and self._negative_allowed():
            nxt = self._peek(1)
            return is_digit(nxt) or (nxt == "." and is_digit(self._peek(2)))
        return False

    def _negative_allowed(self) -> bool:
        """A minus sign is part of a literal unless it follows a noun."""
        prev = self._prev_char()
        if prev == "":
            return True
        return not (is_name_char(prev) or prev in ".)]}\"`")

    def _lex_number(self) -> None:
        start = self._current_pos()

        if self._peek() in "012" and self._peek(1) == ":" and self._peek(2) != ":":
            self._advance()
            self._advance()
            self._emit(TokenType.OPERATOR, start)
            return

        scan = self._pos + 1 if self._peek() == "-" else self._pos
        for tt, pattern in _NUMERIC_PATTERNS:
            m = pattern.match(self._source, scan)
            if m is not None:
                self._advance_to(m.end())
                self._emit(tt, start)
                return

        self._advance()
        self._emit(TokenType.UNKNOWN, start)

    def _mark_fixed_seeds(self) -> None:
        """Re-type non-negative integers used as ``n?0Ng`` left operands."""
        sig = [i for i, t in enumerate(self._tokens) if t.type != TokenType.WS]
        for a, b, c in zip(sig, sig[1:], sig[2:]):
            left, op, right = self._tokens[a], self._tokens[b], self._tokens[c]
            if (
                left.type == TokenType.NUMBER
                and _SEED.fullmatch(left.raw)
                and op.type == TokenType.OPERATOR
                and op.raw == "?"
                and right.type == TokenType.NUMBER
                and right.raw == "0Ng"
            ):
                self._tokens[a] = replace(left, type=TokenType.SEED)

    # ------------------------------------------------------------------
    # Strings
    # ------------------------------------------------------------------

    def _lex_string(self) -> None:
        start = self._current_pos()
        self._advance()  # consume opening quote
        error: ErrorTag | None = None

        while self._pos < len(self._source):
            ch = self._peek()
            if ch == '"':
                self._advance()
                self._emit(TokenType.STRING, start, error)
                self._after_string()
                return
            if ch == "\\":
                self._advance()
                if not self._lex_escape():
                    error = error or ErrorTag.INVALID_ESCAPE
                continue
            self._advance()

        self._emit(TokenType.STRING, start, ErrorTag.UNTERMINATED_STRING)

    def _lex_escape(self) -> bool:
        """Consume the body of an escape after its backslash; False if invalid."""
        ch = self._peek()
        if ch != "" and ch in '"\\nrt':
            self._advance()
            return True
        if is_octal_digit(ch) and is_octal_digit(self._peek(1)) and is_octal_digit(self._peek(2)):
            self._advance_to(self._pos + 3)
            return True
        return False

    def _after_string(self) -> None:
        """Follow ``system "d .ns"`` namespace switches at top level."""
        if self._depth != 0:
            return
        string = self._tokens[-1]
        idx = self._prev_index(before=len(self._tokens) - 1)
        if idx is None:
            return
        prev = self._tokens[idx]
        if prev.type == TokenType.KEYWORD and prev.raw == "system":
            self._switch_namespace(string.raw[1:-1])

    # ------------------------------------------------------------------
    # Assignment and verbs
    # ------------------------------------------------------------------

    def _lex_colon(self) -> None:
        start = self._current_pos()
        self._advance()
        if self._peek() == ":":
            self._advance()
        if self._prev_type() in _TARGETS:
            self._emit_assign(start)
        else:
            self._emit(TokenType.OPERATOR, start)

    def _lex_verb(self) -> None:
        start = self._current_pos()
        ch = self._advance()

        if ch + self._peek() in ("<=", ">=", "<>"):
            self._advance()
            self._emit(TokenType.OPERATOR, start)
            return

        if self._peek() == ":" and self._peek(1) != ":":
            if self._prev_type() in (TokenType.IDENTIFIER, TokenType.RBRACKET):
                self._advance()
                self._emit_assign(start)
                return

        self._emit(TokenType.OPERATOR, start)

    def _emit_assign(self, start: Position) -> None:
        """Emit an ASSIGN token and tag a structurally invalid target."""
        idx = self._prev_index()
        self._emit(TokenType.ASSIGN, start)
        if idx is None:
            return
        target = self._tokens[idx]
        if target.error is not None:
            return
        if target.type in LITERALS:
            self._tokens[idx] = replace(target, error=ErrorTag.INVALID_ASSIGN)
        elif target.type == TokenType.KEYWORD:
            self._tokens[idx] = replace(target, error=ErrorTag.RESERVED_ASSIGN)


def tokenize(source: str) -> list[Token]:
    """Convenience function: tokenize source text and return token list."""
    return Lexer(source).tokenize()
