"""Error types and source-context formatting for diagnostics."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from qlang.lint import Diagnostic


class ConfigError(Exception):
    """Raised when a lint configuration names an unknown rule or level."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.message = message
        self.path = path
        super().__init__(self.format())

    def format(self) -> str:
        if self.path is None:
            return f"error: {self.message}"
        return f"error: {self.path}: {self.message}"


def format_snippet(diagnostic: Diagnostic, source: str, filename: str = "input.q") -> str:
    """Render *diagnostic* with the offending source line and a caret underline."""
    span = diagnostic.span
    lines = source.splitlines(keepends=True)
    line_idx = span.start.line - 1
    col = span.start.column

    if 0 <= line_idx < len(lines):
        source_line = lines[line_idx].rstrip("\n").rstrip("\r")
    else:
        source_line = ""

    # Spans are inclusive; multi-line tokens are underlined to end of line
    if span.end.line == span.start.line:
        underline_len = max(1, span.end.column - col + 1)
    else:
        underline_len = max(1, len(source_line) - col + 1)

    pad = " " * (col - 1)
    carets = "^" * underline_len

    line_num = str(span.start.line)
    gutter_width = len(line_num) + 1

    blank_gutter = " " * gutter_width + "|"
    line_gutter = f"{line_num:>{gutter_width - 1}} |"

    return (
        f"{diagnostic.severity.value}[{diagnostic.code}]: {diagnostic.message}\n"
        f"{' ' * gutter_width}--> {filename}:{span.start.line}:{col}\n"
        f"{blank_gutter}\n"
        f"{line_gutter} {source_line}\n"
        f"{blank_gutter} {pad}{carets}"
    )
