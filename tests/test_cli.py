"""CLI tests, run in-process against real git repositories."""

import json
import sys

import pytest

from arf import cli
from arf._internal.canonical_json import canonical_dumps

from conftest import git


def _run_cli(args, monkeypatch):
    monkeypatch.setattr(sys, "argv", ["arf"] + args)
    return cli.main()


def _exit_code(args, monkeypatch):
    with pytest.raises(SystemExit) as excinfo:
        _run_cli(args, monkeypatch)
    return excinfo.value.code


def test_version(monkeypatch, capsys):
    assert _exit_code(["--version"], monkeypatch) == 0
    assert capsys.readouterr().out.startswith("arf ")


def test_no_command_prints_help(monkeypatch, capsys):
    assert _exit_code([], monkeypatch) == 1
    assert "usage: arf" in capsys.readouterr().out


def test_outside_repository(git_env, monkeypatch, capsys):
    outside = git_env / "outside"
    outside.mkdir()
    monkeypatch.chdir(outside)
    assert _exit_code(["log"], monkeypatch) == 2
    assert "Error: Not a git repository" in capsys.readouterr().err


def test_uninitialized_storage(git_repo, monkeypatch, capsys):
    assert _exit_code(["log"], monkeypatch) == 3
    assert "arf init" in capsys.readouterr().err


def test_graph_and_diff_before_init(git_repo, monkeypatch, capsys):
    _run_cli(["graph"], monkeypatch)
    out = capsys.readouterr().out
    assert "└─● " in out and "Initial commit" in out
    assert "run 'arf init' for reasoning context" in out

    _run_cli(["diff"], monkeypatch)
    out = capsys.readouterr().out
    assert "run 'arf init' for reasoning context" in out
    assert "README.md" in out


def test_browse_hands_state_to_browser(git_repo, monkeypatch, capsys):
    from arf._internal.io import browse_app

    sessions = []
    monkeypatch.setattr(browse_app, "run_browser", sessions.append)
    _run_cli(["browse", "-n", "5"], monkeypatch)
    [state] = sessions
    assert state.selected_commit().subject == "Initial commit"
    assert any("README.md" in line for line in state.diff_lines)


def test_browse_empty_repository(git_env, monkeypatch, capsys):
    repo = git_env / "empty"
    repo.mkdir()
    git(repo, "init", "-q")
    monkeypatch.chdir(repo)
    _run_cli(["browse"], monkeypatch)
    assert "No commits found." in capsys.readouterr().out


def test_init_record_log_graph_diff(git_repo, monkeypatch, capsys):
    _run_cli(["init"], monkeypatch)
    out = capsys.readouterr().out
    assert "[OK] Created ARF branch 'arf'" in out

    _run_cli(["init"], monkeypatch)
    assert "already initialized" in capsys.readouterr().out

    _run_cli(
        [
            "record",
            "--what", "Implement ARF CLI v0.1",
            "--why", "Need a way to capture reasoning",
            "--outcome", "success",
            "--context", "ticket=ARF-1",
            "--agent", "claude",
        ],
        monkeypatch,
    )
    out = capsys.readouterr().out
    assert "[OK] Recorded: Implement ARF CLI v0.1" in out
    assert "Committed to 'arf'" in out
    assert "Record: Implement ARF CLI v0.1" in git(git_repo / ".arf", "log", "-1", "--format=%s")

    head = git(git_repo, "rev-parse", "--short=7", "HEAD")

    _run_cli(["log"], monkeypatch)
    out = capsys.readouterr().out
    assert "ARF Records (1):" in out
    assert "outcome: success" in out
    assert "context: ticket=ARF-1" in out

    _run_cli(["log", "--json"], monkeypatch)
    [entry] = json.loads(capsys.readouterr().out)
    assert entry["agent_id"] == "claude"
    assert entry["context"] == {"ticket": "ARF-1"}

    _run_cli(["graph"], monkeypatch)
    out = capsys.readouterr().out
    assert "└─● " in out
    assert "what: Implement ARF CLI v0.1" in out

    _run_cli(["diff"], monkeypatch)
    out = capsys.readouterr().out
    assert "REASONING:" in out
    assert "README.md" in out

    _run_cli(["diff", head], monkeypatch)
    assert "Implement ARF CLI v0.1" in capsys.readouterr().out


def test_agent_from_environment(git_repo, monkeypatch, capsys):
    _run_cli(["init", "--quiet"], monkeypatch)
    monkeypatch.setenv("ARF_AGENT", "cursor")
    _run_cli(["record", "--what", "x", "--why", "y", "--no-commit", "--quiet"], monkeypatch)
    _run_cli(["log", "--json"], monkeypatch)
    [entry] = json.loads(capsys.readouterr().out)
    assert entry["agent_id"] == "cursor"


def test_invalid_agent_from_environment(git_repo, monkeypatch, capsys):
    monkeypatch.setenv("ARF_AGENT", "a/b")
    assert _exit_code(["init"], monkeypatch) == 4
    assert "Invalid configuration" in capsys.readouterr().err


def test_record_validation_errors(git_repo, monkeypatch, capsys):
    _run_cli(["init", "--quiet"], monkeypatch)

    assert _exit_code(["record", "--what", "x"], monkeypatch) == 4
    assert "Missing required field(s): why" in capsys.readouterr().err

    assert _exit_code(["record", "--what", "x", "--why", "y", "--context", "novalue"], monkeypatch) == 4
    assert "--context" in capsys.readouterr().err

    assert _exit_code(["record", "--what", "x", "--why", "y", "--outcome-detail", "d"], monkeypatch) == 4

    _run_cli(["log", "--json"], monkeypatch)
    assert json.loads(capsys.readouterr().out) == []


def test_unknown_ref(git_repo, monkeypatch, capsys):
    _run_cli(["init", "--quiet"], monkeypatch)
    assert _exit_code(["diff", "no-such-branch"], monkeypatch) == 6
    assert "Commit not found: no-such-branch" in capsys.readouterr().err

    assert _exit_code(["record", "--what", "x", "--why", "y", "--commit", "no-such-branch"], monkeypatch) == 6


def test_orphans_and_specs(git_repo, monkeypatch, capsys):
    _run_cli(["init", "--quiet"], monkeypatch)

    _run_cli(["orphans", "--json"], monkeypatch)
    out = capsys.readouterr().out
    payload = json.loads(out)
    assert out.rstrip("\n") == canonical_dumps(payload)
    assert payload == {"orphan_count": 0, "orphan_record_count": 0, "orphans": {}}

    _run_cli(["spec", "list"], monkeypatch)
    assert "No specs found" in capsys.readouterr().out

    (git_repo / ".arf" / "specs" / "auth.arf").write_text("goal = 'login'\n", encoding="utf-8")
    _run_cli(["spec", "list"], monkeypatch)
    assert "  auth" in capsys.readouterr().out

    _run_cli(["spec", "show", "auth"], monkeypatch)
    assert "goal = 'login'" in capsys.readouterr().out

    assert _exit_code(["spec", "show", "missing"], monkeypatch) == 5
