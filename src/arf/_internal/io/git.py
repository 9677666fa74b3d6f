"""git-backed collaborators: commit history queries and the storage worktree."""

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from arf.config import ArfConfig
from arf.errors import (
    AmbiguousRef,
    RefError,
    RefNotFound,
    RepositoryNotFound,
    StorageError,
    StorageUninitialized,
)
from arf.kernel.history import CommitHistory, CommitNode

logger = logging.getLogger(__name__)

# %x1f separates fields, %x1e terminates each commit
_LOG_FORMAT = "%H%x1f%h%x1f%P%x1f%at%x1f%s%x1e"

STORAGE_README = """# ARF Records

This branch contains Agent Reasoning Format records.

Records are organized by commit SHA prefix:
```
records/
  <commit-sha-prefix>/
    <agent>-<timestamp>.toml
specs/
  <name>.arf
```
"""


def _run_git(args: Sequence[str], cwd: Path, input: Optional[str] = None) -> subprocess.CompletedProcess:
    """Run git and capture text output. Never raises on a non-zero exit."""
    logger.debug("git %s (cwd=%s)", " ".join(args), cwd)
    return subprocess.run(
        ["git", *args],
        cwd=cwd,
        input=input,
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
    )


def _ref_error(ref: str, stderr: str) -> RefError:
    # "ambiguous argument" is git's wording for an unknown revision
    if "is ambiguous" in stderr.lower():
        return AmbiguousRef(ref)
    return RefNotFound(ref)


def parse_log_output(output: str) -> List[CommitNode]:
    """Parse `git log` output produced with _LOG_FORMAT."""
    commits: List[CommitNode] = []
    for chunk in output.split("\x1e"):
        chunk = chunk.strip("\n")
        if not chunk:
            continue
        parts = chunk.split("\x1f")
        if len(parts) != 5:
            continue
        sha, short_sha, parents, author_time, subject = parts
        commits.append(CommitNode(
            sha=sha,
            short_sha=short_sha,
            parents=parents.split() if parents else [],
            subject=subject,
            author_time=int(author_time) if author_time.isdigit() else 0,
        ))
    return commits


class GitHistory(CommitHistory):
    """CommitHistory implementation that shells out to git."""

    def __init__(self, repo_root: Path):
        self.repo_root = Path(repo_root)

    @classmethod
    def discover(cls, path: Path) -> "GitHistory":
        """Locate the repository containing path.

        Raises:
            RepositoryNotFound: path is not inside a work tree, or git is missing
        """
        try:
            result = _run_git(["rev-parse", "--show-toplevel"], cwd=path)
        except FileNotFoundError:
            raise RepositoryNotFound(path, "git executable not found")
        if result.returncode != 0 or not result.stdout.strip():
            raise RepositoryNotFound(path)
        return cls(Path(result.stdout.strip()))

    def has_commits(self) -> bool:
        result = _run_git(["rev-parse", "--verify", "--quiet", "HEAD^{commit}"], cwd=self.repo_root)
        return result.returncode == 0

    def list_commits(self, rev_range: Optional[str] = None, limit: Optional[int] = None) -> List[CommitNode]:
        if rev_range is None and not self.has_commits():
            return []
        if rev_range is not None and rev_range.startswith("-"):
            raise RefNotFound(rev_range)

        args = ["log", f"--format={_LOG_FORMAT}", "--no-decorate", "--no-color"]
        if limit is not None:
            args.append(f"--max-count={max(limit, 0)}")
        if rev_range is not None:
            args.append(rev_range)
        args.append("--")

        result = _run_git(args, cwd=self.repo_root)
        if result.returncode != 0:
            if rev_range is not None:
                raise _ref_error(rev_range, result.stderr)
            raise StorageError(f"git log failed: {result.stderr.strip()}")
        return parse_log_output(result.stdout)

    def resolve_ref(self, ref: str) -> str:
        if not ref or ref.startswith("-"):
            raise RefNotFound(ref)
        result = _run_git(["rev-parse", "--verify", f"{ref}^{{commit}}"], cwd=self.repo_root)
        if result.returncode != 0:
            raise _ref_error(ref, result.stderr)
        return result.stdout.strip()

    def show_commit(self, sha: str, full: bool = False) -> str:
        args = ["show", "--format=", "--no-color"]
        if not full:
            args.append("--stat")
        args.append(sha)
        result = _run_git(args, cwd=self.repo_root)
        if result.returncode != 0:
            raise _ref_error(sha, result.stderr)
        return result.stdout


@dataclass
class SyncResult:
    """Per-direction outcome of a storage sync."""
    pulled: Optional[bool] = None
    pushed: Optional[bool] = None
    messages: List[str] = field(default_factory=list)


class GitStorage:
    """The separately mounted history line that holds the records."""

    def __init__(self, config: ArfConfig):
        self.config = config
        self.repo_root = config.repo_root
        self.worktree = config.worktree_path

    def is_initialized(self) -> bool:
        return self.config.storage_root.is_dir()

    def is_mounted(self) -> bool:
        """True when the worktree is its own git checkout (has a .git file)."""
        return (self.worktree / ".git").exists()

    def _ref_exists(self, ref: str) -> bool:
        result = _run_git(["rev-parse", "--verify", "--quiet", ref], cwd=self.repo_root)
        return result.returncode == 0

    def _create_orphan_branch(self) -> None:
        tree = _run_git(["mktree"], cwd=self.repo_root, input="")
        if tree.returncode != 0:
            raise StorageError(f"Failed to create empty tree: {tree.stderr.strip()}")
        commit = _run_git(
            ["commit-tree", tree.stdout.strip(), "-m", "Initialize ARF"],
            cwd=self.repo_root,
        )
        if commit.returncode != 0:
            raise StorageError(f"Failed to create ARF branch: {commit.stderr.strip()}")
        branch = _run_git(["branch", self.config.branch, commit.stdout.strip()], cwd=self.repo_root)
        if branch.returncode != 0:
            raise StorageError(f"Failed to create ARF branch: {branch.stderr.strip()}")

    def _exclude_worktree(self) -> None:
        result = _run_git(["rev-parse", "--git-path", "info/exclude"], cwd=self.repo_root)
        if result.returncode != 0:
            return
        exclude_path = Path(result.stdout.strip())
        if not exclude_path.is_absolute():
            exclude_path = self.repo_root / exclude_path
        pattern = f"/{self.config.worktree_dir}/"
        existing = exclude_path.read_text(encoding="utf-8") if exclude_path.exists() else ""
        if pattern in existing.splitlines():
            return
        exclude_path.parent.mkdir(parents=True, exist_ok=True)
        if existing and not existing.endswith("\n"):
            existing += "\n"
        exclude_path.write_text(existing + pattern + "\n", encoding="utf-8")

    def init(self) -> bool:
        """Provision and mount the storage branch.

        Returns:
            False if storage was already initialized, True if it was created
        """
        if self.is_initialized():
            return False

        branch = self.config.branch
        if not self.is_mounted():
            if self.worktree.exists():
                raise StorageError(f"{self.worktree} exists but is not a git worktree; move it aside and re-run 'arf init'")
            has_local = self._ref_exists(f"refs/heads/{branch}")
            has_remote = self._ref_exists(f"refs/remotes/origin/{branch}")
            if not has_local and not has_remote:
                self._create_orphan_branch()
            # With only a remote branch, worktree add creates the tracking branch
            result = _run_git(["worktree", "add", str(self.worktree), branch], cwd=self.repo_root)
            if result.returncode != 0:
                raise StorageError(f"Failed to mount ARF branch at {self.worktree}: {result.stderr.strip()}")

        for directory in (self.config.storage_root, self.config.specs_root):
            directory.mkdir(parents=True, exist_ok=True)
            (directory / ".gitkeep").touch()
        readme = self.worktree / "README.md"
        if not readme.exists():
            readme.write_text(STORAGE_README, encoding="utf-8")

        self._exclude_worktree()
        self.commit("Initialize ARF")
        return True

    def commit(self, message: str) -> bool:
        """Commit everything in the storage worktree.

        Returns:
            False when there was nothing to commit
        """
        if not self.is_mounted():
            raise StorageUninitialized(self.worktree)
        add = _run_git(["add", "-A"], cwd=self.worktree)
        if add.returncode != 0:
            raise StorageError(f"Failed to stage records: {add.stderr.strip()}")
        result = _run_git(["commit", "-m", message], cwd=self.worktree)
        if result.returncode != 0:
            output = result.stdout + result.stderr
            if "nothing to commit" in output or "nothing added to commit" in output:
                return False
            raise StorageError(f"Failed to commit records: {result.stderr.strip() or result.stdout.strip()}")
        return True

    def sync(self, push: bool = False, pull: bool = False) -> SyncResult:
        """Pull and/or push the storage branch (both when neither is requested)."""
        if not self.is_mounted():
            raise StorageUninitialized(self.worktree)

        do_pull, do_push = (True, True) if not push and not pull else (pull, push)
        outcome = SyncResult()
        branch = self.config.branch

        if do_pull:
            result = _run_git(["pull", "origin", branch], cwd=self.worktree)
            outcome.pulled = result.returncode == 0
            if outcome.pulled:
                outcome.messages.append("Pulled")
            elif "couldn't find remote ref" in result.stderr:
                outcome.messages.append("No remote ARF branch yet")
            else:
                outcome.messages.append(f"Pull failed: {result.stderr.strip()}")

        if do_push:
            result = _run_git(["push", "-u", "origin", branch], cwd=self.worktree)
            outcome.pushed = result.returncode == 0
            if outcome.pushed:
                outcome.messages.append("Pushed")
            else:
                outcome.messages.append(f"Push failed: {result.stderr.strip()}")

        return outcome
