"""Pytest configuration and shared fixtures.

No sys.path hacks - tests import from the installed arf package.
"""

import shutil
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import pytest

from arf.config import ArfConfig
from arf.errors import AmbiguousRef, RefNotFound
from arf.kernel.history import CommitHistory, CommitNode
from arf._internal.io.record_store import RecordStore


def make_sha(prefix: str) -> str:
    """Pad a hex prefix out to a full 40-character sha."""
    return (prefix + "0" * 40)[:40]


def make_commit(prefix: str, subject: str = "", parents: Optional[List[str]] = None) -> CommitNode:
    return CommitNode(
        sha=make_sha(prefix),
        short_sha=prefix[:7],
        parents=parents or [],
        subject=subject,
    )


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class FakeHistory(CommitHistory):
    """In-memory history: commits are held newest-first, first parent only."""

    def __init__(self, commits: List[CommitNode], changes: Optional[dict] = None):
        self.commits = list(commits)
        self.changes = changes or {}

    def list_commits(self, rev_range=None, limit=None):
        commits = self.commits
        if rev_range is not None:
            if ".." in rev_range:
                raise RefNotFound(rev_range)
            sha = self.resolve_ref(rev_range)
            start = next(i for i, c in enumerate(commits) if c.sha == sha)
            commits = commits[start:]
        if limit is not None:
            commits = commits[:limit]
        return list(commits)

    def resolve_ref(self, ref):
        if ref == "HEAD":
            if not self.commits:
                raise RefNotFound(ref)
            return self.commits[0].sha
        matches = [c.sha for c in self.commits if c.sha.startswith(ref.lower())]
        if len(matches) > 1:
            raise AmbiguousRef(ref)
        if not matches:
            raise RefNotFound(ref)
        return matches[0]

    def show_commit(self, sha, full=False):
        text = self.changes.get(sha, " file.txt | 1 +\n 1 file changed, 1 insertion(+)\n")
        if full:
            return "diff --git a/file.txt b/file.txt\n+line\n"
        return text


@pytest.fixture
def config(tmp_path):
    """Config rooted in a temp directory with an initialized storage root."""
    cfg = ArfConfig(repo_root=tmp_path)
    cfg.storage_root.mkdir(parents=True)
    cfg.specs_root.mkdir(parents=True)
    return cfg


@pytest.fixture
def store(config):
    return RecordStore.from_config(config)


def write_raw(root: Path, prefix: str, name: str, text: str) -> Path:
    """Drop a hand-written record file into storage."""
    directory = root / prefix
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text(text, encoding="utf-8")
    return path


def git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args], cwd=cwd, capture_output=True, text=True, check=True
    )
    return result.stdout.strip()


@pytest.fixture
def git_env(tmp_path, monkeypatch):
    """Isolate git from the user's configuration and from enclosing repositories."""
    if shutil.which("git") is None:
        pytest.skip("git executable not available")
    empty_config = tmp_path / "gitconfig"
    empty_config.write_text("", encoding="utf-8")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(empty_config))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path))
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test Author")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "author@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test Author")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "author@example.com")
    monkeypatch.delenv("ARF_AGENT", raising=False)
    return tmp_path


@pytest.fixture
def git_repo(git_env, monkeypatch):
    """A git repository with one commit; the test runs from inside it."""
    repo = git_env / "repo"
    repo.mkdir()
    git(repo, "init", "-q")
    (repo / "README.md").write_text("hello\n", encoding="utf-8")
    git(repo, "add", "README.md")
    git(repo, "commit", "-q", "-m", "Initial commit")
    monkeypatch.chdir(repo)
    return repo
