"""Tests for the CLI module: arg parsing, exit codes, output, end-to-end."""

from __future__ import annotations

from pathlib import Path

import pytest

from qlang.cli import build_parser, main, resolve_options
from qlang.lint import Severity

# ---------------------------------------------------------------------------
# Arg parsing via build_parser
# ---------------------------------------------------------------------------


class TestArgParsing:
    def test_single_file(self) -> None:
        ns = build_parser().parse_args(["a.q"])
        assert ns.files == ["a.q"]
        assert ns.config is None
        assert ns.disable == []
        assert ns.severity == []
        assert ns.debug is False

    def test_multiple_files(self) -> None:
        ns = build_parser().parse_args(["a.q", "b.q"])
        assert ns.files == ["a.q", "b.q"]

    def test_repeatable_flags(self) -> None:
        ns = build_parser().parse_args(
            ["a.q", "--disable", "UNUSED_VAR", "--disable", "FIXED_SEED"]
        )
        assert ns.disable == ["UNUSED_VAR", "FIXED_SEED"]

    def test_no_files_is_usage_error(self) -> None:
        with pytest.raises(SystemExit) as exc:
            build_parser().parse_args([])
        assert exc.value.code == 2


class TestResolveOptions:
    def test_cli_severity(self, tmp_path: Path) -> None:
        src = tmp_path / "a.q"
        src.write_text("")
        ns = build_parser().parse_args([str(src), "--severity", "UNUSED_VAR=error"])
        opts = resolve_options(ns)
        assert opts.config.severities == {"UNUSED_VAR": Severity.ERROR}

    def test_config_discovered_next_to_first_file(self, tmp_path: Path) -> None:
        (tmp_path / "qlang.toml").write_text('[lint]\ndisable = ["UNUSED_VAR"]\n')
        src = tmp_path / "a.q"
        src.write_text("")
        opts = resolve_options(build_parser().parse_args([str(src)]))
        assert opts.config.disabled == frozenset({"UNUSED_VAR"})

    def test_cli_adds_to_config(self, tmp_path: Path) -> None:
        (tmp_path / "qlang.toml").write_text('[lint]\ndisable = ["UNUSED_VAR"]\n')
        src = tmp_path / "a.q"
        src.write_text("")
        ns = build_parser().parse_args([str(src), "--disable", "FIXED_SEED"])
        opts = resolve_options(ns)
        assert opts.config.disabled == frozenset({"UNUSED_VAR", "FIXED_SEED"})


# ---------------------------------------------------------------------------
# End-to-end via main()
# ---------------------------------------------------------------------------


class TestMain:
    def test_clean_file(self, tmp_path: Path, capsys) -> None:
        src = tmp_path / "ok.q"
        src.write_text("f:{[a]a+1};f 2\n")
        assert main([str(src)]) == 0
        assert capsys.readouterr().out == ""

    def test_warnings_only_exit_zero(self, tmp_path: Path, capsys) -> None:
        src = tmp_path / "warn.q"
        src.write_text("a:1\n")
        assert main([str(src)]) == 0
        out = capsys.readouterr().out
        assert "warning[UNUSED_VAR]" in out
        assert "0 error(s), 1 warning(s)" in out

    def test_error_exit_one(self, tmp_path: Path, capsys) -> None:
        src = tmp_path / "bad.q"
        src.write_text("x:2000.01.01T12:00:00.000;x\n")
        assert main([str(src)]) == 1
        out = capsys.readouterr().out
        assert "error[DEPRECATED_DATETIME]" in out
        assert f"--> {src}:1:3" in out

    def test_severity_override_raises_exit_code(self, tmp_path: Path) -> None:
        src = tmp_path / "warn.q"
        src.write_text("a:1\n")
        assert main([str(src), "--severity", "UNUSED_VAR=error"]) == 1

    def test_disable(self, tmp_path: Path, capsys) -> None:
        src = tmp_path / "bad.q"
        src.write_text("if:1\n")
        assert main([str(src), "--disable", "ASSIGN_RESERVED_WORD"]) == 0
        assert capsys.readouterr().out == ""

    def test_missing_file_exit_two(self, tmp_path: Path, capsys) -> None:
        assert main([str(tmp_path / "nope.q")]) == 2
        assert "error:" in capsys.readouterr().err

    def test_unknown_rule_exit_two(self, tmp_path: Path, capsys) -> None:
        src = tmp_path / "a.q"
        src.write_text("")
        assert main([str(src), "--disable", "NOT_A_RULE"]) == 2
        assert "NOT_A_RULE" in capsys.readouterr().err

    def test_bad_severity_exit_two(self, tmp_path: Path) -> None:
        src = tmp_path / "a.q"
        src.write_text("")
        assert main([str(src), "--severity", "UNUSED_VAR=loud"]) == 2

    def test_debug_dumps_tokens(self, tmp_path: Path, capsys) -> None:
        src = tmp_path / "a.q"
        src.write_text("a:1;a\n")
        assert main([str(src), "--debug"]) == 0
        err = capsys.readouterr().err
        assert "IDENTIFIER" in err
        assert "assignment" in err

    def test_all_files_linted(self, tmp_path: Path, capsys) -> None:
        first = tmp_path / "one.q"
        second = tmp_path / "two.q"
        first.write_text("a:1\n")
        second.write_text("b:1\n")
        main([str(first), str(second)])
        out = capsys.readouterr().out
        assert "one.q" in out
        assert "two.q" in out
