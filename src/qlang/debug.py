"""--debug token dump to stderr."""

from __future__ import annotations

import sys
from typing import TextIO

from qlang.tokens import Token, is_significant


def dump_tokens(tokens: list[Token], *, file: TextIO = sys.stderr) -> None:
    """Print one line per significant token with its resolved annotations."""
    for idx, tok in enumerate(tokens):
        if is_significant(tok):
            file.write(f"{_position(tok)} {idx:>4} {tok.type.name:<11} {tok.raw!r}{_details(tok)}\n")


def _position(tok: Token) -> str:
    return f"{tok.span.start.line}:{tok.span.start.column}"


def _details(tok: Token) -> str:
    parts = []
    if tok.role is not None:
        parts.append(tok.role.name.lower())
    if tok.kind is not None:
        parts.append(tok.kind.name.lower())
    if tok.identifier is not None and tok.identifier != tok.raw:
        parts.append(f"id={tok.identifier}")
    if tok.scope is not None:
        parts.append(f"scope={tok.scope}")
    if tok.defines is not None:
        parts.append(f"defines={tok.defines}")
    if tok.lambda_ is not None:
        params = ",".join(str(p) for p in tok.lambda_.params)
        parts.append("nullary" if tok.lambda_.nullary else f"params=[{params}]")
    if tok.namespace is not None:
        parts.append(f"ns={tok.namespace}")
    if tok.error is not None:
        parts.append(f"error={tok.error.name}")
    if not parts:
        return ""
    return "  " + " ".join(parts)
