import json
import sys
import types

import pytest

from ecoquiz import cli
from ecoquiz.core import config_templates
from ecoquiz.quiz.scores import ScoreRecord


@pytest.fixture(autouse=True)
def reset_metadata(monkeypatch):
    """Ensure metadata.version is controllable during tests."""

    def fake_version(name: str) -> str:
        assert name == "ecoquiz"
        return "0.0-test"

    monkeypatch.setattr(cli.metadata, "version", fake_version)
    yield


def test_version_command_handles_missing_package(monkeypatch, capsys):
    monkeypatch.setattr(
        cli.metadata,
        "version",
        lambda name: (_ for _ in ()).throw(
            cli.metadata.PackageNotFoundError()
        ),
    )
    code = cli.main(["version"])
    captured = capsys.readouterr()
    assert code == 0
    assert captured.out.strip() == "unknown"


def test_no_args_prints_usage_and_returns_error(capsys):
    code = cli.main([])
    captured = capsys.readouterr()
    assert code == 2
    assert "Usage: ecoquiz" in captured.out
    assert "Available commands:" in captured.out


def test_help_flag_shows_usage(capsys):
    code = cli.main(["--help"])
    captured = capsys.readouterr()
    assert code == 0
    assert "Usage: ecoquiz" in captured.out


def test_help_command_without_target(capsys):
    code = cli.main(["help"])
    captured = capsys.readouterr()
    assert code == 0
    assert "Usage: ecoquiz" in captured.out


def test_list_outputs_command_table(capsys):
    code = cli.main(["list"])
    captured = capsys.readouterr()
    assert code == 0
    assert "Available commands:" in captured.out
    for name in ("init", "play", "best", "scores", "clear-scores"):
        assert name in captured.out
    assert "(interactive)" in captured.out


def test_help_known_command(capsys):
    code = cli.main(["help", "play"])
    captured = capsys.readouterr()
    assert code == 0
    assert "play:" in captured.out
    assert "Run `ecoquiz play --help`" in captured.out


def test_help_unknown_command(capsys):
    code = cli.main(["help", "does-not-exist"])
    captured = capsys.readouterr()
    assert code == 2
    assert "Unknown command" in captured.err
    assert "Available commands:" in captured.err


@pytest.mark.parametrize("flag", ["version", "--version", "-V"])
def test_version_spellings(flag, capsys):
    code = cli.main([flag])
    captured = capsys.readouterr()
    assert code == 0
    assert captured.out.strip() == "0.0-test"


def test_unknown_command_errors(capsys):
    code = cli.main(["bogus"])
    captured = capsys.readouterr()
    assert code == 2
    assert "Unknown command" in captured.err
    assert "Available commands:" in captured.err


def test_dispatch_invokes_module_main_with_passthrough(monkeypatch):
    before = list(sys.argv)
    captured: dict[str, list[str]] = {}

    def fake_import(module_name: str):
        assert module_name == "ecoquiz.quiz._main"

        def play_main(argv, *, console=None):
            captured["argv"] = list(argv)
            captured["sys_argv"] = list(sys.argv)
            return 7

        return types.SimpleNamespace(play_main=play_main)

    monkeypatch.setattr(cli, "import_module", fake_import)
    code = cli.main(["play", "--name", "Ana"])
    assert code == 7
    assert captured["argv"] == ["--name", "Ana"]
    assert captured["sys_argv"][0] == "ecoquiz play"
    assert captured["sys_argv"][1:] == ["--name", "Ana"]
    assert list(sys.argv) == before


def test_dispatch_supports_main_without_parameters(monkeypatch):
    called = {"count": 0}

    def fake_import(module_name: str):
        def stub_main():
            called["count"] += 1
            assert sys.argv[0] == "ecoquiz init"

        return types.SimpleNamespace(main=stub_main)

    monkeypatch.setattr(cli, "import_module", fake_import)
    code = cli.main(["init"])
    assert code == 0
    assert called["count"] == 1


def test_dispatch_propagates_system_exit_code(monkeypatch):
    def fake_import(module_name: str):
        def best_main(argv):
            raise SystemExit(5)

        return types.SimpleNamespace(best_main=best_main)

    monkeypatch.setattr(cli, "import_module", fake_import)
    assert cli.main(["best"]) == 5


def test_dispatch_handles_system_exit_message(monkeypatch, capsys):
    def fake_import(module_name: str):
        def best_main(argv):
            raise SystemExit("boom")

        return types.SimpleNamespace(best_main=best_main)

    monkeypatch.setattr(cli, "import_module", fake_import)
    code = cli.main(["best"])
    captured = capsys.readouterr()
    assert code == 1
    assert captured.err.strip() == "boom"


def test_dispatch_treats_system_exit_none_as_success(monkeypatch):
    def fake_import(module_name: str):
        def best_main(argv):
            raise SystemExit()

        return types.SimpleNamespace(best_main=best_main)

    monkeypatch.setattr(cli, "import_module", fake_import)
    assert cli.main(["best"]) == 0


def test_dispatch_normalizes_non_int_return(monkeypatch):
    def fake_import(module_name: str):
        def best_main(argv):
            return "done"

        return types.SimpleNamespace(best_main=best_main)

    monkeypatch.setattr(cli, "import_module", fake_import)
    assert cli.main(["best"]) == 0


def test_cli_runs_init_end_to_end(tmp_path, capsys):
    target = tmp_path / "workspace"

    code = cli.main(["init", "--path", str(target)])

    captured = capsys.readouterr()
    assert code == 0
    assert "Workspace ready" in captured.out
    for entry in ("config", "logs", "scores"):
        assert (target / entry).is_dir()
    config_path = target / "config" / "quiz.toml"
    template = config_templates.get_template("quiz")
    assert config_path.read_text(encoding="utf-8") == template.read_text()


def test_cli_scores_and_clear_end_to_end(quiz_workspace, capsys):
    workspace = quiz_workspace.root
    quiz_workspace.seed(
        ScoreRecord("Ana", 3, 42.0, "2024-05-01T12:00:00+00:00")
    )

    assert cli.main(["scores", "--workspace", str(workspace)]) == 0
    assert "Ana" in capsys.readouterr().out

    assert cli.main(["clear-scores", "--workspace", str(workspace)]) == 2
    assert "--yes" in capsys.readouterr().err

    code = cli.main(["clear-scores", "--workspace", str(workspace), "--yes"])
    assert code == 0
    assert "Scores cleared." in capsys.readouterr().out
    stored = json.loads(quiz_workspace.scores_path.read_text("utf-8"))
    assert stored == {}
