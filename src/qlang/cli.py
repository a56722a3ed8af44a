"""Command-line interface: lint q source files."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from qlang.config import lint_config_from, load_config, parse_severity_arg
from qlang.errors import ConfigError, format_snippet
from qlang.lint import Diagnostic, LintConfig, Severity, lint

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CliOptions:
    """Parsed CLI options."""

    files: list[Path]
    config: LintConfig
    debug: bool


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser (separate function for testability)."""
    p = argparse.ArgumentParser(
        prog="qlang-lint",
        description="Lint q source files",
    )
    p.add_argument("files", nargs="+", metavar="FILE", help="q source file(s)")
    p.add_argument(
        "--config",
        metavar="FILE",
        help="Config file (default: auto-discover qlang.toml)",
    )
    p.add_argument(
        "--disable",
        action="append",
        default=[],
        metavar="CODE",
        help="Disable a lint rule (repeatable)",
    )
    p.add_argument(
        "--severity",
        action="append",
        default=[],
        metavar="CODE=LEVEL",
        help="Override a rule's severity (repeatable)",
    )
    p.add_argument("--debug", action="store_true", help="Dump resolved tokens to stderr")
    return p


def resolve_options(args: argparse.Namespace) -> CliOptions:
    """Merge config file and CLI args into CliOptions.

    Precedence: defaults < config file < CLI flags.
    """
    files = [Path(f) for f in args.files]
    config_dir = files[0].parent
    if not config_dir.parts:
        config_dir = Path(".")

    config_path = Path(args.config) if args.config else None
    data = load_config(config_path, config_dir)
    severities = [parse_severity_arg(raw) for raw in args.severity]
    config = lint_config_from(data, disable=args.disable, severities=severities)

    return CliOptions(files=files, config=config, debug=args.debug)


def lint_file(path: Path, options: CliOptions) -> list[Diagnostic]:
    """Read and lint one file, printing each diagnostic with source context."""
    from qlang.debug import dump_tokens
    from qlang.resolver import parse

    source = path.read_text(encoding="utf-8")
    tokens = parse(source)

    if options.debug:
        dump_tokens(tokens, file=sys.stderr)

    diagnostics = lint(tokens, options.config)
    for diagnostic in diagnostics:
        print(format_snippet(diagnostic, source, str(path)))
        print()
    return diagnostics


def _summary(diagnostics: list[Diagnostic]) -> str:
    errors = sum(1 for d in diagnostics if d.severity is Severity.ERROR)
    warnings = sum(1 for d in diagnostics if d.severity is Severity.WARNING)
    return f"{errors} error(s), {warnings} warning(s)"


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns exit code (0/1/2). Does not call sys.exit()."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        options = resolve_options(args)
    except ConfigError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    status = 0
    found: list[Diagnostic] = []
    for path in options.files:
        try:
            found.extend(lint_file(path, options))
        except (OSError, UnicodeDecodeError) as exc:
            print(f"error: {path}: {exc}", file=sys.stderr)
            status = 2
        else:
            logger.debug("linted %s", path)

    if found:
        print(_summary(found))
    if status == 0 and any(d.severity is Severity.ERROR for d in found):
        status = 1
    return status


def run() -> None:
    """Console-script wrapper around main()."""
    sys.exit(main())
