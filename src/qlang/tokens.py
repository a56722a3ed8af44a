"""Token types, data structures, and character classification helpers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class TokenType(Enum):
    # Names
    IDENTIFIER = auto()  # a, .ns.name
    KEYWORD = auto()  # reserved word: if, select, count ...

    # Literals
    NUMBER = auto()  # 42, 1.5e3, 0x0a, 101b, 0N, 0Ng, -0W
    SEED = auto()  # integer left operand of ?0Ng (fixed seed)
    DATE = auto()  # 2000.01.01, 2000.01m, 2000.01.01D12:00
    TIME = auto()  # 12:00, 12:00:00.000, 0D12:00:00
    DATETIME = auto()  # 2000.01.01T12:00:00.000 (deprecated)
    STRING = auto()  # "..." including quotes
    SYMBOL = auto()  # `name, `:file/path, `

    # Operators
    OPERATOR = auto()  # + - * % ! & | < > = ~ , ^ # _ $ ? @ . <= >= <> 0: 1: 2:
    ADVERB = auto()  # ' / \ ': /: \:
    ASSIGN = auto()  # : :: +: ,: ...

    # Delimiters
    LPAREN = auto()  # (
    RPAREN = auto()  # )
    LBRACKET = auto()  # [
    RBRACKET = auto()  # ]
    LBRACE = auto()  # { lambda open
    RBRACE = auto()  # } lambda close
    SEMICOLON = auto()  # ;

    COMMAND = auto()  # \d .ns, \l file.q at column 1

    # Trivia
    COMMENT = auto()
    WS = auto()  # horizontal whitespace (spaces/tabs)
    NEWLINE = auto()  # \n or \r\n

    UNKNOWN = auto()


class Role(Enum):
    ASSIGNMENT = auto()
    REFERENCE = auto()


class IdentifierKind(Enum):
    ARGUMENT = auto()
    LOCAL = auto()
    GLOBAL = auto()
    UNASSIGNABLE = auto()


class ErrorTag(Enum):
    INVALID_ESCAPE = auto()
    UNTERMINATED_STRING = auto()
    INVALID_ASSIGN = auto()
    RESERVED_ASSIGN = auto()


@dataclass(frozen=True, slots=True)
class Position:
    """Source position, 1-based line and column, 0-based character offset."""

    line: int
    column: int
    offset: int


@dataclass(frozen=True, slots=True)
class Span:
    """Source range from the first to the last character of a token.

    Both ends are inclusive, so ``end`` is the position of the token's final
    character rather than the one after it.
    """

    start: Position
    end: Position

    def text(self, source: str) -> str:
        """Slice the covered text out of *source*."""
        return source[self.start.offset : self.end.offset + 1]


@dataclass(frozen=True, slots=True)
class Lambda:
    """Marker carried by a ``{`` token."""

    nullary: bool
    params: tuple[int, ...] = ()


@dataclass(frozen=True, slots=True)
class Token:
    """A single lexer token, annotated in place of an AST by the resolver.

    ``scope`` and ``defines`` are indices into the token list the token
    belongs to. ``scope`` points at the innermost enclosing ``{``;
    ``defines`` is set on an assignment target whose value is a lambda and
    points at that lambda's ``{``.
    """

    type: TokenType
    raw: str
    span: Span
    namespace: str | None = None
    error: ErrorTag | None = None
    role: Role | None = None
    identifier: str | None = None
    kind: IdentifierKind | None = None
    scope: int | None = None
    lambda_: Lambda | None = None
    defines: int | None = None


TRIVIA = frozenset({TokenType.COMMENT, TokenType.WS, TokenType.NEWLINE})

LITERALS = frozenset(
    {
        TokenType.NUMBER,
        TokenType.SEED,
        TokenType.DATE,
        TokenType.TIME,
        TokenType.DATETIME,
        TokenType.STRING,
        TokenType.SYMBOL,
    }
)

# Names bound by a lambda that declares no parameter list
IMPLICIT_PARAMS = ("x", "y", "z")

# q refuses to rebind these ('assign): the .Q.res words plus the .q namespace
RESERVED_WORDS = frozenset(
    """
    abs acos aj aj0 ajf ajf0 all and any asc asin asof atan attr avg avgs bin
    binr by ceiling cols cor cos count cov cross csv cut delete deltas desc
    dev differ distinct div do dsave each ej ema enlist eval except exec exit
    exp fby fills first fkeys flip floor from get getenv group gtime hclose
    hcount hdel hopen hsym iasc idesc if ij ijf in insert inter inv key keys
    last like lj ljf load log lower lsq ltime ltrim mavg max maxs mcount md5
    mdev med meta min mins mmax mmin mmu mod msum neg next not null or over
    parse peach pj prd prds prev prior rand rank ratios raze read0 read1
    reciprocal reval reverse rload rotate rsave rtrim save scan scov sdev
    select set setenv show signum sin sqrt ss ssr string sublist sum sums sv
    svar system tables tan til trim type uj ujf ungroup union update upper
    upsert value var view views vs wavg where while within wj wj1 wsum xasc
    xbar xcol xcols xdesc xexp xgroup xkey xlog xprev xrank
    """.split()
)

# Brackets whose items are evaluated left to right when they follow one of these
CONTROL_WORDS = frozenset({"if", "do", "while"})

# Single-character verbs; "." is handled separately because it also starts names
VERB_CHARS = frozenset("+-*%!&|<>=~,^#_$?@.")


def is_name_start(ch: str) -> bool:
    """Return True if ch can start a name (after an optional leading dot)."""
    return ch.isascii() and ch.isalpha()


def is_name_char(ch: str) -> bool:
    """Return True if ch can continue a name segment."""
    return ch.isascii() and (ch.isalnum() or ch == "_")


def is_digit(ch: str) -> bool:
    """Return True if ch is an ASCII decimal digit."""
    return ch != "" and ch in "0123456789"


def is_octal_digit(ch: str) -> bool:
    """Return True if ch is an octal digit."""
    return ch != "" and ch in "01234567"


def is_significant(token: Token) -> bool:
    """Return True for tokens that carry meaning (not whitespace or comments)."""
    return token.type not in TRIVIA


def is_literal(token: Token) -> bool:
    """Return True for number, temporal, string and symbol literals."""
    return token.type in LITERALS
