"""LSP server for q: lint diagnostics, outline, references, rename, completion."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any

from lsprotocol.types import (
    INITIALIZED,
    TEXT_DOCUMENT_COMPLETION,
    TEXT_DOCUMENT_DEFINITION,
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_CLOSE,
    TEXT_DOCUMENT_DID_OPEN,
    TEXT_DOCUMENT_DID_SAVE,
    TEXT_DOCUMENT_DOCUMENT_SYMBOL,
    TEXT_DOCUMENT_REFERENCES,
    TEXT_DOCUMENT_RENAME,
    CompletionItem,
    CompletionOptions,
    CompletionParams,
    DefinitionParams,
    Diagnostic,
    DiagnosticSeverity,
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    DidSaveTextDocumentParams,
    DocumentSymbol,
    DocumentSymbolParams,
    InitializedParams,
    Location,
    PublishDiagnosticsParams,
    ReferenceParams,
    RenameParams,
    TextDocumentSyncKind,
    WorkspaceEdit,
)
from pygls.lsp.server import LanguageServer

from qlang import __version__, query
from qlang.config import lint_config_from, load_config
from qlang.errors import ConfigError
from qlang.lint import LintConfig, Severity, lint
from qlang.resolver import parse
from qlang.tokens import Token

logger = logging.getLogger(__name__)

_SEVERITIES = {
    Severity.ERROR: DiagnosticSeverity.Error,
    Severity.WARNING: DiagnosticSeverity.Warning,
    Severity.INFORMATION: DiagnosticSeverity.Information,
    Severity.HINT: DiagnosticSeverity.Hint,
}


class QLanguageServer(LanguageServer):
    """Language server carrying the workspace lint configuration."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.lint_config = LintConfig()


server = QLanguageServer("qlang-lsp", __version__, text_document_sync_kind=TextDocumentSyncKind.Full)


def _tokens(ls: QLanguageServer, uri: str) -> list[Token]:
    """Re-parse the current text of *uri*."""
    doc = ls.workspace.get_text_document(uri)
    return parse(doc.source)


def _validate(ls: QLanguageServer, uri: str) -> None:
    """Lint the document and publish diagnostics."""
    diagnostics = [
        Diagnostic(
            range=query.to_range(d.span),
            message=d.message,
            severity=_SEVERITIES[d.severity],
            code=d.code,
            source="qlang",
        )
        for d in lint(_tokens(ls, uri), ls.lint_config)
    ]
    logger.debug("%s: %d diagnostic(s)", uri, len(diagnostics))
    ls.text_document_publish_diagnostics(
        PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
    )


@server.feature(INITIALIZED)
def initialized(ls: QLanguageServer, params: InitializedParams) -> None:
    root = ls.workspace.root_path
    if root is None:
        return
    try:
        ls.lint_config = lint_config_from(load_config(None, Path(root)))
    except ConfigError as exc:
        logger.warning("using default lint settings: %s", exc)


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: QLanguageServer, params: DidOpenTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls: QLanguageServer, params: DidChangeTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_SAVE)
def did_save(ls: QLanguageServer, params: DidSaveTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_CLOSE)
def did_close(ls: QLanguageServer, params: DidCloseTextDocumentParams) -> None:
    ls.text_document_publish_diagnostics(
        PublishDiagnosticsParams(uri=params.text_document.uri, diagnostics=[])
    )


@server.feature(TEXT_DOCUMENT_DOCUMENT_SYMBOL)
def document_symbol(ls: QLanguageServer, params: DocumentSymbolParams) -> list[DocumentSymbol]:
    return query.document_symbols(_tokens(ls, params.text_document.uri))


@server.feature(TEXT_DOCUMENT_REFERENCES)
def references(ls: QLanguageServer, params: ReferenceParams) -> list[Location]:
    uri = params.text_document.uri
    return query.references(_tokens(ls, uri), uri, params.position)


@server.feature(TEXT_DOCUMENT_DEFINITION)
def definition(ls: QLanguageServer, params: DefinitionParams) -> list[Location]:
    uri = params.text_document.uri
    return query.definition(_tokens(ls, uri), uri, params.position)


@server.feature(TEXT_DOCUMENT_RENAME)
def rename(ls: QLanguageServer, params: RenameParams) -> WorkspaceEdit | None:
    uri = params.text_document.uri
    return query.rename(_tokens(ls, uri), uri, params.position, params.new_name)


@server.feature(TEXT_DOCUMENT_COMPLETION, CompletionOptions(resolve_provider=False))
def completion(ls: QLanguageServer, params: CompletionParams) -> list[CompletionItem]:
    return query.completion(_tokens(ls, params.text_document.uri), params.position)


def main(argv: list[str] | None = None) -> None:
    p = argparse.ArgumentParser(prog="qlang-lsp", description="q language server (stdio)")
    p.add_argument("--log-file", metavar="FILE", help="Log to FILE instead of stderr")
    p.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    args = p.parse_args(argv)

    logging.basicConfig(
        filename=args.log_file,
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("starting qlang-lsp %s", __version__)
    server.start_io()
