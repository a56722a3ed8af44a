"""Scope resolution: annotates lexer tokens with scope, role and identifier kind."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from qlang.lexer import tokenize
from qlang.tokens import (
    IMPLICIT_PARAMS,
    IdentifierKind,
    Lambda,
    Role,
    Token,
    TokenType,
    is_literal,
    is_significant,
)

_CLOSERS = {
    TokenType.RPAREN: TokenType.LPAREN,
    TokenType.RBRACKET: TokenType.LBRACKET,
    TokenType.RBRACE: TokenType.LBRACE,
}
_OPENERS = frozenset(_CLOSERS.values())

_NAMES = (TokenType.IDENTIFIER, TokenType.KEYWORD)


@dataclass
class _Frame:
    """Names bound inside one lambda."""

    marker: Lambda
    params: set[str] = field(default_factory=set)
    locals: set[str] = field(default_factory=set)

    def argument(self, name: str) -> bool:
        if name in self.params:
            return True
        return self.marker.nullary and name in IMPLICIT_PARAMS

    def binds(self, name: str) -> bool:
        return self.argument(name) or name in self.locals


def match_brackets(tokens: list[Token]) -> dict[int, int]:
    """Map each opening bracket index to its closing index and back.

    A closer pairs with the nearest opener of its own kind; openers skipped
    over that way are never closed. Unclosed openers and stray closers are
    left out of the mapping.
    """
    pairs: dict[int, int] = {}
    stack: list[int] = []
    for idx, tok in enumerate(tokens):
        if tok.type in _OPENERS:
            stack.append(idx)
        elif tok.type in _CLOSERS:
            want = _CLOSERS[tok.type]
            for depth in range(len(stack) - 1, -1, -1):
                if tokens[stack[depth]].type == want:
                    opener = stack[depth]
                    del stack[depth:]
                    pairs[opener] = idx
                    pairs[idx] = opener
                    break
    return pairs


def qualify(name: str, namespace: str | None) -> str:
    """Resolve a global name against the active namespace."""
    if name.startswith(".") or namespace is None:
        return name
    return f"{namespace}.{name}"


class Resolver:
    """Fill in scope, role, identifier and kind for a lexer token list.

    The input list is never modified; ``resolve`` returns a new list whose
    ``scope``, ``defines`` and ``Lambda.params`` values index into it.
    """

    def __init__(self, tokens: list[Token]) -> None:
        self._out = list(tokens)
        self._sig = [i for i, t in enumerate(tokens) if is_significant(t)]
        self._where = {idx: pos for pos, idx in enumerate(self._sig)}
        self._pairs = match_brackets(tokens)
        self._params: set[int] = set()
        self._targets: dict[int, int] = {}  # target index -> ASSIGN index
        self._frames: dict[int, _Frame] = {}

    def resolve(self) -> list[Token]:
        self._assign_scopes()
        self._assign_roles()
        self._collect_frames()
        self._assign_kinds()
        return self._out

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def _next_sig(self, idx: int) -> int | None:
        pos = self._where[idx] + 1
        return self._sig[pos] if pos < len(self._sig) else None

    def _prev_sig(self, idx: int) -> int | None:
        pos = self._where[idx] - 1
        return self._sig[pos] if pos >= 0 else None

    # ------------------------------------------------------------------
    # Scopes
    # ------------------------------------------------------------------

    def _assign_scopes(self) -> None:
        """Set ``scope`` on every token and ``lambda_`` on every ``{``."""
        out = self._out
        lambdas: list[int] = []
        for idx, tok in enumerate(out):
            scope = lambdas[-1] if lambdas else None

            if tok.type == TokenType.RBRACE:
                # The closer belongs to the lambda it ends
                opener = self._pairs.get(idx)
                if opener in lambdas:
                    del lambdas[lambdas.index(opener) :]
                out[idx] = replace(tok, scope=scope)
            elif tok.type == TokenType.LBRACE:
                marker = self._lambda_marker(idx)
                self._params.update(marker.params)
                out[idx] = replace(tok, scope=scope, lambda_=marker)
                lambdas.append(idx)
            elif scope is not None:
                out[idx] = replace(tok, scope=scope)

    def _lambda_marker(self, idx: int) -> Lambda:
        """Build the marker for the ``{`` at *idx*, reading an optional ``[params]``."""
        opener = self._next_sig(idx)
        if opener is None or self._out[opener].type != TokenType.LBRACKET:
            return Lambda(nullary=True)
        closer = self._pairs.get(opener, len(self._out))
        params = tuple(i for i in range(opener + 1, closer) if self._out[i].type in _NAMES)
        return Lambda(nullary=False, params=params)

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    def _assignment_target(self, assign: int) -> int | None:
        """Return the token bound by the ASSIGN token at *assign*.

        ``a:v`` binds ``a``; an indexed amend ``a[i]:v`` binds the name before
        the bracket. Identifiers, keywords and literals can be targets.
        """
        idx = self._prev_sig(assign)
        if idx is None:
            return None
        tok = self._out[idx]
        if tok.type == TokenType.RBRACKET and idx in self._pairs:
            name = self._prev_sig(self._pairs[idx])
            if name is None or self._out[name].type != TokenType.IDENTIFIER:
                return None
            return name
        if tok.type in _NAMES or is_literal(tok):
            return idx
        return None

    def _assign_roles(self) -> None:
        out = self._out
        for idx in self._sig:
            if out[idx].type != TokenType.ASSIGN:
                continue
            target = self._assignment_target(idx)
            if target is None:
                continue
            self._targets[target] = idx
            value = self._next_sig(idx)
            if value is not None and out[value].type == TokenType.LBRACE:
                out[target] = replace(out[target], defines=value)

        for idx, tok in enumerate(out):
            if idx in self._targets or idx in self._params:
                out[idx] = replace(tok, role=Role.ASSIGNMENT)
            elif tok.type in _NAMES or is_literal(tok):
                out[idx] = replace(tok, role=Role.REFERENCE)

    # ------------------------------------------------------------------
    # Kinds
    # ------------------------------------------------------------------

    def _collect_frames(self) -> None:
        """Gather parameter and local names per lambda; detach ``::`` globals."""
        out = self._out
        for idx, tok in enumerate(out):
            if tok.lambda_ is not None:
                params = {out[p].raw for p in tok.lambda_.params}
                self._frames[idx] = _Frame(tok.lambda_, params)

        amends = []
        for target, assign in self._targets.items():
            tok = out[target]
            if tok.type != TokenType.IDENTIFIER or tok.scope is None:
                continue
            if out[assign].raw == "::":
                amends.append(target)
            else:
                self._frames[tok.scope].locals.add(tok.raw)

        # a::v inside a lambda writes the global a unless a is bound there
        for target in amends:
            tok = out[target]
            if not self._frames[tok.scope].binds(tok.raw):
                out[target] = replace(tok, scope=None)

    def _assign_kinds(self) -> None:
        out = self._out
        for idx, tok in enumerate(out):
            if tok.type == TokenType.KEYWORD:
                out[idx] = replace(tok, identifier=tok.raw, kind=IdentifierKind.UNASSIGNABLE)
                continue
            if is_literal(tok):
                out[idx] = replace(tok, kind=IdentifierKind.UNASSIGNABLE)
                continue
            if tok.type != TokenType.IDENTIFIER:
                continue

            name = tok.raw
            frame = self._frames.get(tok.scope) if tok.scope is not None else None
            if frame is not None and frame.argument(name):
                kind = IdentifierKind.ARGUMENT
            elif frame is not None and name in frame.locals:
                kind = IdentifierKind.LOCAL
            else:
                kind = IdentifierKind.GLOBAL
                name = qualify(name, tok.namespace)
            out[idx] = replace(tok, identifier=name, kind=kind)


def resolve(tokens: list[Token]) -> list[Token]:
    """Convenience function: resolve a lexer token list."""
    return Resolver(tokens).resolve()


def parse(source: str) -> list[Token]:
    """Tokenize and resolve *source* in one go."""
    return resolve(tokenize(source))


def is_local(tokens: list[Token], target: Token) -> bool:
    """Return True if *target* names a binding of its own enclosing lambda.

    Recomputed over the full sequence on every call: the identifier is local
    when its scope is nullary and it is one of the implicit parameters, or
    when some assignment in exactly the same scope binds the same name.
    """
    if target.scope is None:
        return False
    marker = tokens[target.scope].lambda_
    if marker is not None and marker.nullary and target.identifier in IMPLICIT_PARAMS:
        return True
    return any(
        tok.role is Role.ASSIGNMENT
        and tok.scope == target.scope
        and tok.identifier == target.identifier
        for tok in tokens
    )
