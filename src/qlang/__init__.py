"""Static analysis for the q language: tokenizer, scope resolver, linter, editor queries."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from qlang.lint import Diagnostic, LintConfig

__version__ = "0.1.0"


def lint_source(source: str, config: LintConfig | None = None) -> list[Diagnostic]:
    """Tokenize, resolve, and lint q source text."""
    from qlang.lint import lint
    from qlang.resolver import parse

    return lint(parse(source), config)
