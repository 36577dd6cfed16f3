"""
Tests for the command-line interface.
"""
import json

import pytest

from empire_core.cli import build_parser, main


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "kernel.yaml"
    path.write_text(
        "features:\n"
        "  echo: conftest:EchoModule\n"
        "  ghost: no_such_package.ghost:GhostModule\n"
        "context_rules:\n"
        "  echo: [background, content]\n",
        encoding="utf-8",
    )
    return path


def test_rules_prints_permission_table(config_file, capsys):
    assert main(["--config", str(config_file), "rules"]) == 0
    assert json.loads(capsys.readouterr().out) == {"echo": ["background", "content"]}


def test_inspect_loads_modules_for_context(config_file, capsys):
    assert main(["--config", str(config_file), "inspect", "--context", "content"]) == 0

    info = json.loads(capsys.readouterr().out)
    assert info["context"] == "content"
    assert info["registered_modules"] == ["echo", "ghost"]
    assert info["loaded_modules"] == ["echo"]
    assert info["events"]["echo"] == ["echo"]


def test_inspect_respects_context_rules(config_file, capsys):
    assert main(["--config", str(config_file), "inspect", "--context", "popup"]) == 0
    assert json.loads(capsys.readouterr().out)["loaded_modules"] == []


def test_invalid_config_reports_error(tmp_path, capsys):
    path = tmp_path / "kernel.yaml"
    path.write_text("context_rules:\n  echo: [sidebar]\n", encoding="utf-8")

    assert main(["--config", str(path), "rules"]) == 1
    assert "sidebar" in capsys.readouterr().err


def test_unknown_context_is_rejected_by_parser():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["inspect", "--context", "sidebar"])


def test_options_accepted_after_command(config_file, capsys):
    argv = ["inspect", "--context", "content", "--config", str(config_file), "--log-level", "warning"]
    assert main(argv) == 0
    assert json.loads(capsys.readouterr().out)["loaded_modules"] == ["echo"]


def test_options_before_command_survive_subparser():
    args = build_parser().parse_args(["--config", "a.yaml", "rules"])
    assert args.config == "a.yaml"
    assert args.log_level is None
