"""Commit metadata model and the narrow interface to version control.

The associator and renderer only ever see CommitNode values and the
CommitHistory interface, so they can be exercised against any substitute
implementation (tests use an in-memory one).
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from arf.errors import RefNotFound


class CommitNode(BaseModel):
    """One commit as reported by version control. Never persisted."""
    sha: str  # full hex
    short_sha: str  # display prefix
    parents: List[str] = []
    subject: str = ""
    author_time: int = 0  # unix seconds

    model_config = ConfigDict(frozen=True)


class CommitHistory(ABC):
    """Query interface over a version-controlled history."""

    @abstractmethod
    def list_commits(self, rev_range: Optional[str] = None, limit: Optional[int] = None) -> List[CommitNode]:
        """Return commits newest-first.

        An empty repository yields an empty list, not an error.
        """

    @abstractmethod
    def resolve_ref(self, ref: str) -> str:
        """Resolve a ref or abbreviated sha to a full commit sha.

        Raises:
            RefNotFound: ref names no commit
            AmbiguousRef: abbreviated sha matches several objects
        """

    @abstractmethod
    def show_commit(self, sha: str, full: bool = False) -> str:
        """Render one commit's content change (stat summary unless full)."""

    def get_commit(self, sha: str) -> CommitNode:
        """Return the CommitNode for a single resolved sha."""
        commits = self.list_commits(rev_range=sha, limit=1)
        if not commits:
            raise RefNotFound(sha)
        return commits[0]
