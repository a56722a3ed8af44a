"""qlang.toml loading: which lint rules run and at what severity."""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from qlang.errors import ConfigError
from qlang.lint import RULE_CODES, LintConfig, Severity

logger = logging.getLogger(__name__)

CONFIG_NAME = "qlang.toml"


def load_config(config_path: Path | None, directory: Path) -> dict[str, Any]:
    """Load a TOML config file, returning an empty dict on missing/absent file."""
    path = config_path if config_path is not None else directory / CONFIG_NAME

    if not path.is_file():
        logger.debug("no config at %s", path)
        return {}

    logger.debug("loading config from %s", path)
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"invalid TOML: {exc}", str(path)) from exc


def parse_severity(value: str) -> Severity:
    """Parse a severity level name such as ``warning``."""
    try:
        return Severity(value.lower())
    except ValueError:
        levels = ", ".join(s.value for s in Severity)
        raise ConfigError(f"unknown severity {value!r} (expected one of: {levels})") from None


def parse_severity_arg(s: str) -> tuple[str, Severity]:
    """Parse a CODE=LEVEL string into (code, severity)."""
    if "=" not in s:
        raise ConfigError(f"invalid severity format (expected CODE=LEVEL): {s}")
    code, _, level = s.partition("=")
    return _check_code(code), parse_severity(level)


def _check_code(code: str) -> str:
    if code not in RULE_CODES:
        raise ConfigError(f"unknown lint rule {code!r}")
    return code


def lint_config_from(
    data: dict[str, Any],
    disable: Iterable[str] = (),
    severities: Iterable[tuple[str, Severity]] = (),
) -> LintConfig:
    """Build a LintConfig from parsed TOML plus command-line overrides.

    Precedence: config file < overrides.
    """
    section = data.get("lint", {})
    if not isinstance(section, dict):
        raise ConfigError("[lint] must be a table")

    disabled: set[str] = set()
    cfg_disable = section.get("disable", [])
    if not isinstance(cfg_disable, list):
        raise ConfigError("lint.disable must be a list of rule codes")
    disabled.update(_check_code(str(code)) for code in cfg_disable)
    disabled.update(_check_code(code) for code in disable)

    levels: dict[str, Severity] = {}
    cfg_severity = section.get("severity", {})
    if not isinstance(cfg_severity, dict):
        raise ConfigError("[lint.severity] must be a table")
    for code, level in cfg_severity.items():
        levels[_check_code(str(code))] = parse_severity(str(level))
    for code, level in severities:
        levels[_check_code(code)] = level

    return LintConfig(disabled=frozenset(disabled), severities=levels)
