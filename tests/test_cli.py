"""CLI tests for the tendril console script."""

from __future__ import annotations

from pathlib import Path

import pytest

from tendril_cli import build_parser, main


FIXTURE_ROOT = Path(__file__).parent / "fixtures"


def test_no_command_prints_help(capsys) -> None:
    assert main([]) == 0
    assert "usage: tendril" in capsys.readouterr().out


def test_version_flag(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        build_parser().parse_args(["--version"])

    assert excinfo.value.code == 0
    assert "tendril v0.1.0" in capsys.readouterr().out


def test_tree_prints_dependencies(capsys) -> None:
    exit_code = main(["tree", str(FIXTURE_ROOT / "services"), "--postfix", "Service"])

    assert exit_code == 0
    assert capsys.readouterr().out.splitlines() == [
        "abcService: -",
        "constantsService: -",
        "hjkService: abcService",
        "xyzService: hjkService",
    ]


def test_check_passes_for_consistent_services(capsys) -> None:
    assert main(["check", str(FIXTURE_ROOT / "services"), "--postfix", "Service"]) == 0
    assert capsys.readouterr().out.strip() == "OK"


def test_check_reports_missing_and_circular_dependencies(capsys) -> None:
    exit_code = main(["check", str(FIXTURE_ROOT / "broken")])

    assert exit_code == 1
    assert capsys.readouterr().out.splitlines() == [
        "Missing Dependency: missing",
        "Depended on by: gamma",
        "Circular Dependency: alpha --> beta --> alpha",
    ]


def test_config_crawl_entries_are_used_without_path(tmp_path: Path, capsys) -> None:
    config_file = tmp_path / "tendril.toml"
    config_file.write_text(
        f"""
[[tendril.crawl]]
path = "{(FIXTURE_ROOT / 'services').as_posix()}"
postfix = "Svc"
""".strip()
    )

    assert main(["--config", str(config_file), "tree"]) == 0
    assert "hjkSvc: abcSvc" in capsys.readouterr().out


def test_missing_crawl_entries_is_an_error(tmp_path: Path, capsys) -> None:
    config_file = tmp_path / "empty.toml"
    config_file.write_text("")

    assert main(["--config", str(config_file), "check"]) == 2
    assert "no service directory given" in capsys.readouterr().err


def test_unknown_directory_is_an_error(tmp_path: Path, capsys) -> None:
    assert main(["tree", str(tmp_path / "absent")]) == 2
    assert "does not exist" in capsys.readouterr().err
