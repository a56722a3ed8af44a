"""Shared test fixtures and helpers."""

from __future__ import annotations

import pytest

from qlang.lexer import tokenize
from qlang.resolver import parse
from qlang.tokens import Token, TokenType, is_significant


@pytest.fixture
def lex():
    """Return a helper that tokenizes source and returns every token, trivia included."""

    def _lex(source: str) -> list[Token]:
        return tokenize(source)

    return _lex


@pytest.fixture
def analyze():
    """Return a helper that tokenizes and resolves source."""

    def _analyze(source: str) -> list[Token]:
        return parse(source)

    return _analyze


def assert_types(tokens: list[Token], expected: list[TokenType]) -> None:
    """Assert that the token types match the expected list."""
    actual = [t.type for t in tokens]
    assert actual == expected, f"Expected {expected}, got {actual}"


def assert_raws(tokens: list[Token], expected: list[str]) -> None:
    """Assert that the token images match the expected list."""
    actual = [t.raw for t in tokens]
    assert actual == expected, f"Expected {expected}, got {actual}"


def significant(tokens: list[Token]) -> list[Token]:
    """Drop whitespace, newline and comment tokens."""
    return [t for t in tokens if is_significant(t)]


def index_of(tokens: list[Token], raw: str, nth: int = 0) -> int:
    """Return the arena index of the nth token whose image is raw."""
    hits = [i for i, t in enumerate(tokens) if t.raw == raw]
    assert len(hits) > nth, f"Expected at least {nth + 1} {raw!r} token(s), got {len(hits)}"
    return hits[nth]
