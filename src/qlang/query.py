"""Editor queries over a resolved token list: outline, references, rename, completion."""

from __future__ import annotations

from lsprotocol.types import (
    CompletionItem,
    CompletionItemKind,
    DocumentSymbol,
    Location,
    Position,
    Range,
    SymbolKind,
    TextEdit,
    WorkspaceEdit,
)

from qlang.resolver import is_local
from qlang.tokens import IdentifierKind, Role, Span, Token, TokenType, is_significant


def to_range(span: Span) -> Range:
    """Convert a token span to a 0-based LSP range with an exclusive end."""
    return Range(
        start=Position(line=span.start.line - 1, character=span.start.column - 1),
        end=Position(line=span.end.line - 1, character=span.end.column),
    )


def token_at(tokens: list[Token], position: Position) -> Token | None:
    """Return the first significant token whose range contains *position*."""
    for tok in tokens:
        if not is_significant(tok):
            continue
        rng = to_range(tok.span)
        if (
            rng.start.line <= position.line <= rng.end.line
            and rng.start.character <= position.character <= rng.end.character
        ):
            return tok
    return None


def _assignable(token: Token) -> bool:
    return token.kind is not None and token.kind is not IdentifierKind.UNASSIGNABLE


def _label(token: Token, namespace: str | None) -> str:
    label = token.identifier or token.raw
    if namespace and label.startswith(namespace + "."):
        return label[len(namespace) + 1 :]
    return label


# ----------------------------------------------------------------------
# Outline
# ----------------------------------------------------------------------


def document_symbols(tokens: list[Token]) -> list[DocumentSymbol]:
    """One entry per global binding; lambdas list their parameters and locals."""
    symbols = []
    for tok in tokens:
        if tok.role is not Role.ASSIGNMENT or tok.scope is not None or not _assignable(tok):
            continue
        rng = to_range(tok.span)
        children = [
            DocumentSymbol(
                name=child.raw,
                kind=(
                    SymbolKind.Array
                    if child.kind is IdentifierKind.ARGUMENT
                    else SymbolKind.Variable
                ),
                range=to_range(child.span),
                selection_range=to_range(child.span),
            )
            for child in tokens
            if tok.defines is not None
            and child.scope == tok.defines
            and child.role is Role.ASSIGNMENT
            and _assignable(child)
        ]
        symbols.append(
            DocumentSymbol(
                name=_label(tok, tok.namespace),
                kind=SymbolKind.Function if tok.defines is not None else SymbolKind.Variable,
                range=rng,
                selection_range=rng,
                children=children,
            )
        )
    return symbols


# ----------------------------------------------------------------------
# References, definition, rename
# ----------------------------------------------------------------------


def matching(tokens: list[Token], source: Token | None) -> list[Token]:
    """Return every occurrence that names the same binding as *source*.

    A local source matches identifiers in exactly its scope. Any other
    source matches same-named identifiers that are not themselves local,
    which keeps shadowing locals in unrelated lambdas out.
    """
    if source is None or source.type != TokenType.IDENTIFIER or not _assignable(source):
        return []
    candidates = [
        tok
        for tok in tokens
        if tok.type == TokenType.IDENTIFIER
        and _assignable(tok)
        and tok.identifier == source.identifier
    ]
    if is_local(tokens, source):
        return [tok for tok in candidates if tok.scope == source.scope]
    return [tok for tok in candidates if not is_local(tokens, tok)]


def references(tokens: list[Token], uri: str, position: Position) -> list[Location]:
    source = token_at(tokens, position)
    return [Location(uri=uri, range=to_range(tok.span)) for tok in matching(tokens, source)]


def definition(tokens: list[Token], uri: str, position: Position) -> list[Location]:
    source = token_at(tokens, position)
    return [
        Location(uri=uri, range=to_range(tok.span))
        for tok in matching(tokens, source)
        if tok.role is Role.ASSIGNMENT
    ]


def rename(tokens: list[Token], uri: str, position: Position, new_name: str) -> WorkspaceEdit | None:
    """Replace every occurrence of the binding under the cursor with *new_name*."""
    source = token_at(tokens, position)
    edits = [TextEdit(range=to_range(tok.span), new_text=new_name) for tok in matching(tokens, source)]
    if not edits:
        return None
    return WorkspaceEdit(changes={uri: edits})


# ----------------------------------------------------------------------
# Completion
# ----------------------------------------------------------------------


def completion(tokens: list[Token], position: Position) -> list[CompletionItem]:
    """Offer the bindings visible from the cursor's scope and namespace."""
    source = token_at(tokens, position)
    if source is None or source.kind is IdentifierKind.UNASSIGNABLE:
        return []

    items = []
    seen: set[str | None] = set()
    for tok in tokens:
        if tok.role is not Role.ASSIGNMENT or not _assignable(tok):
            continue
        if tok.scope is not None and tok.scope != source.scope:
            continue
        qualified = tok.identifier is not None and tok.identifier.startswith(".")
        if not qualified and tok.namespace != source.namespace:
            continue
        if tok.identifier in seen:
            continue
        seen.add(tok.identifier)
        items.append(
            CompletionItem(
                label=_label(tok, source.namespace),
                kind=(
                    CompletionItemKind.Function
                    if tok.defines is not None
                    else CompletionItemKind.Variable
                ),
            )
        )
    return items
