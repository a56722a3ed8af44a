"""Lint rules over resolved token sequences."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum

from qlang.tokens import (
    CONTROL_WORDS,
    ErrorTag,
    IdentifierKind,
    Role,
    Span,
    Token,
    TokenType,
    is_literal,
    is_significant,
)

# q refuses lambdas with more parameters than this ('params)
MAX_PARAMS = 8

_BOUND = (IdentifierKind.LOCAL, IdentifierKind.GLOBAL)


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"
    INFORMATION = "information"
    HINT = "hint"


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """One rule violation, anchored at the offending token's span."""

    code: str
    message: str
    severity: Severity
    span: Span


@dataclass(frozen=True, slots=True)
class Rule:
    code: str
    message: str
    severity: Severity
    check: Callable[[list[Token]], list[Token]]


@dataclass(frozen=True)
class LintConfig:
    """Which rules run, and at what severity."""

    disabled: frozenset[str] = frozenset()
    severities: Mapping[str, Severity] = field(default_factory=dict)

    def enabled(self, rule: Rule) -> bool:
        return rule.code not in self.disabled

    def severity_for(self, rule: Rule) -> Severity:
        return self.severities.get(rule.code, rule.severity)


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------


def _is_read(token: Token) -> bool:
    return token.type == TokenType.IDENTIFIER and token.role is Role.REFERENCE


def _reads(tokens: list[Token]) -> set[tuple[int | None, str | None]]:
    """(scope, identifier) of every non-assignment identifier occurrence."""
    return {(t.scope, t.identifier) for t in tokens if _is_read(t)}


def _parameters(tokens: list[Token]) -> list[int]:
    return sorted(p for t in tokens if t.lambda_ is not None for p in t.lambda_.params)


@dataclass
class _Group:
    opener: int | None
    direction: int
    item: int = 0


def evaluation_order(tokens: list[Token]) -> dict[int, tuple[tuple[int, int], ...]]:
    """Return a sort key per significant token giving the order q evaluates it.

    Statements run left to right, but the ``;``-separated items of a general
    list ``(a;b)`` or an argument list ``f[a;b]`` run right to left. Brackets
    after ``if``, ``do``, ``while`` and ``$`` and lambda parameter lists keep
    left-to-right order.
    """
    keys: dict[int, tuple[tuple[int, int], ...]] = {}
    groups = [_Group(None, 1)]
    prev: Token | None = None

    for idx, tok in enumerate(tokens):
        if not is_significant(tok):
            continue

        anchors = [g.opener for g in groups[1:]] + [idx]
        keys[idx] = tuple(
            (g.direction * g.item, tokens[a].span.start.offset)
            for g, a in zip(groups, anchors)
        )

        if tok.type == TokenType.SEMICOLON:
            groups[-1].item += 1
        elif tok.type == TokenType.LPAREN:
            groups.append(_Group(idx, -1))
        elif tok.type == TokenType.LBRACE:
            groups.append(_Group(idx, 1))
        elif tok.type == TokenType.LBRACKET:
            groups.append(_Group(idx, 1 if _ordered_bracket(prev) else -1))
        elif tok.type in (TokenType.RPAREN, TokenType.RBRACKET, TokenType.RBRACE):
            if len(groups) > 1 and _closes(tokens[groups[-1].opener], tok):
                groups.pop()
        prev = tok

    return keys


def _ordered_bracket(prev: Token | None) -> bool:
    if prev is None:
        return False
    if prev.type == TokenType.KEYWORD and prev.raw in CONTROL_WORDS:
        return True
    if prev.type == TokenType.OPERATOR and prev.raw == "$":
        return True
    return prev.type == TokenType.LBRACE


def _closes(opener: Token, closer: Token) -> bool:
    return (opener.type, closer.type) in (
        (TokenType.LPAREN, TokenType.RPAREN),
        (TokenType.LBRACKET, TokenType.RBRACKET),
        (TokenType.LBRACE, TokenType.RBRACE),
    )


# ----------------------------------------------------------------------
# Rules
# ----------------------------------------------------------------------


def deprecated_datetime(tokens: list[Token]) -> list[Token]:
    return [t for t in tokens if t.type == TokenType.DATETIME]


def invalid_escape(tokens: list[Token]) -> list[Token]:
    return [t for t in tokens if t.error is ErrorTag.INVALID_ESCAPE]


def unterminated_string(tokens: list[Token]) -> list[Token]:
    return [t for t in tokens if t.error is ErrorTag.UNTERMINATED_STRING]


def assign_reserved_word(tokens: list[Token]) -> list[Token]:
    return [t for t in tokens if t.role is Role.ASSIGNMENT and t.type == TokenType.KEYWORD]


def invalid_assign(tokens: list[Token]) -> list[Token]:
    return [t for t in tokens if t.role is Role.ASSIGNMENT and is_literal(t)]


def fixed_seed(tokens: list[Token]) -> list[Token]:
    return [t for t in tokens if t.type == TokenType.SEED]


def too_many_params(tokens: list[Token]) -> list[Token]:
    return [t for t in tokens if t.lambda_ is not None and len(t.lambda_.params) > MAX_PARAMS]


def unused_param(tokens: list[Token]) -> list[Token]:
    """Declared parameters never read inside their own lambda."""
    reads = _reads(tokens)
    return [
        tokens[i]
        for i in _parameters(tokens)
        if tokens[i].kind is IdentifierKind.ARGUMENT
        and (tokens[i].scope, tokens[i].identifier) not in reads
    ]


def unused_var(tokens: list[Token]) -> list[Token]:
    """Local and global bindings that are never read.

    A local counts as read only inside its own lambda. Document scope acts
    as the enclosing scope of globals, and a global is read by any
    occurrence that does not resolve to a local.
    """
    reads = _reads(tokens)
    global_reads = {t.identifier for t in tokens if _is_read(t) and t.kind is IdentifierKind.GLOBAL}
    result = []
    for tok in tokens:
        if tok.role is not Role.ASSIGNMENT or tok.kind not in _BOUND:
            continue
        if tok.scope is None:
            used = tok.identifier in global_reads
        else:
            used = (tok.scope, tok.identifier) in reads
        if not used:
            result.append(tok)
    return result


def declared_after_use(tokens: list[Token]) -> list[Token]:
    """Bindings read, in the same scope, before they are assigned."""
    order = evaluation_order(tokens)
    first_read: dict[tuple[int | None, str | None], tuple[tuple[int, int], ...]] = {}
    for idx, tok in enumerate(tokens):
        if _is_read(tok):
            key = (tok.scope, tok.identifier)
            if key not in first_read or order[idx] < first_read[key]:
                first_read[key] = order[idx]

    declared = set(_parameters(tokens))
    result = []
    for idx, tok in enumerate(tokens):
        if tok.role is not Role.ASSIGNMENT or idx in declared:
            continue
        read = first_read.get((tok.scope, tok.identifier))
        if read is not None and read < order[idx]:
            result.append(tok)
    return result


RULES: tuple[Rule, ...] = (
    Rule(
        "DEPRECATED_DATETIME",
        "Datetime is deprecated; use a timestamp instead",
        Severity.ERROR,
        deprecated_datetime,
    ),
    Rule(
        "INVALID_ESCAPE",
        'Invalid escape sequence: valid escapes are \\n, \\r, \\t, \\\\, \\" and \\ddd (octal)',
        Severity.ERROR,
        invalid_escape,
    ),
    Rule(
        "UNTERMINATED_STRING",
        "String literal is missing its closing quote",
        Severity.ERROR,
        unterminated_string,
    ),
    Rule(
        "ASSIGN_RESERVED_WORD",
        "Assignment to a reserved word",
        Severity.ERROR,
        assign_reserved_word,
    ),
    Rule(
        "INVALID_ASSIGN",
        "Assignment to a literal; only names can be assigned",
        Severity.ERROR,
        invalid_assign,
    ),
    Rule(
        "FIXED_SEED",
        "A non-negative count with ?0Ng uses a fixed seed and repeats across sessions; "
        "use a negative count",
        Severity.WARNING,
        fixed_seed,
    ),
    Rule(
        "TOO_MANY_PARAMS",
        f"Lambda declares more than {MAX_PARAMS} parameters",
        Severity.ERROR,
        too_many_params,
    ),
    Rule(
        "UNUSED_PARAM",
        "Parameter is declared but never used",
        Severity.WARNING,
        unused_param,
    ),
    Rule(
        "UNUSED_VAR",
        "Variable is assigned but never used",
        Severity.WARNING,
        unused_var,
    ),
    Rule(
        "DECLARED_AFTER_USE",
        "Variable is used before it is assigned",
        Severity.ERROR,
        declared_after_use,
    ),
)

RULE_CODES = frozenset(rule.code for rule in RULES)


def lint(tokens: list[Token], config: LintConfig | None = None) -> list[Diagnostic]:
    """Run every enabled rule and concatenate the results in table order."""
    if config is None:
        config = LintConfig()
    diagnostics: list[Diagnostic] = []
    for rule in RULES:
        if not config.enabled(rule):
            continue
        severity = config.severity_for(rule)
        for tok in rule.check(tokens):
            diagnostics.append(Diagnostic(rule.code, rule.message, severity, tok.span))
    return diagnostics
