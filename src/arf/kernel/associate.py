"""Associate reasoning records with commits.

Matching rule (deterministic predicate):
A record directory matches a commit if the commit's full sha starts with
the directory's prefix. Prefix length is not fixed: historical directories
of different lengths that all prefix the same sha are merged.

Ordering:
Records for a commit are sorted by timestamp ascending, ties broken by
agent id, then filename.

Orphans:
Directories that match no commit in the requested range are excluded from
the per-commit lists and kept in a separate table for diagnostics.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from .history import CommitNode
from .record import ReasoningRecord


@dataclass
class AssociationIndex:
    """Per-invocation mapping from commit to its ordered records."""
    commits: List[CommitNode]  # in the order the history reader returned them
    records_by_sha: Dict[str, List[ReasoningRecord]]  # every commit has an entry
    orphans: Dict[str, List[ReasoningRecord]] = field(default_factory=dict)  # prefix -> records
    matched_prefixes: Dict[str, List[str]] = field(default_factory=dict)  # sha -> matching prefixes

    def records_for(self, sha: str) -> List[ReasoningRecord]:
        """Records for sha (empty list for unknown or unrecorded commits)."""
        return self.records_by_sha.get(sha, [])

    def pairs(self) -> Iterable[Tuple[CommitNode, ReasoningRecord]]:
        """Every (commit, record) pair, commits in reader order."""
        for commit in self.commits:
            for record in self.records_by_sha[commit.sha]:
                yield commit, record

    @property
    def orphan_count(self) -> int:
        """Number of orphaned prefix directories."""
        return len(self.orphans)

    @property
    def orphan_record_count(self) -> int:
        return sum(len(records) for records in self.orphans.values())

    @property
    def record_count(self) -> int:
        return sum(len(records) for records in self.records_by_sha.values())


def group_by_prefix(directories: Iterable[Tuple[str, List[ReasoningRecord]]]) -> Dict[str, List[ReasoningRecord]]:
    """Merge (prefix, records) pairs into one list per distinct prefix."""
    grouped: Dict[str, List[ReasoningRecord]] = {}
    for prefix, records in directories:
        grouped.setdefault(prefix.lower(), []).extend(records)
    return grouped


def associate(
    commits: List[CommitNode],
    directories: Iterable[Tuple[str, List[ReasoningRecord]]],
) -> AssociationIndex:
    """
    Build the association index for a commit range.

    Args:
        commits: Commits in reader order (newest first)
        directories: (prefix, records) pairs from the record store

    Returns:
        AssociationIndex with an entry (possibly empty) for every commit
    """
    by_prefix = group_by_prefix(directories)
    # Longest prefixes first so matched_prefixes reads most-specific first
    prefixes = sorted(by_prefix.keys(), key=lambda p: (-len(p), p))

    records_by_sha: Dict[str, List[ReasoningRecord]] = {}
    matched_prefixes: Dict[str, List[str]] = {}
    used: set[str] = set()

    for commit in commits:
        if commit.sha in records_by_sha:
            continue
        sha = commit.sha.lower()
        matches = [p for p in prefixes if sha.startswith(p)]
        merged: List[ReasoningRecord] = []
        for prefix in matches:
            merged.extend(by_prefix[prefix])
            used.add(prefix)
        records_by_sha[commit.sha] = sorted(merged, key=lambda r: r.sort_key())
        matched_prefixes[commit.sha] = matches

    orphans = {
        prefix: sorted(by_prefix[prefix], key=lambda r: r.sort_key())
        for prefix in sorted(by_prefix.keys())
        if prefix not in used
    }

    return AssociationIndex(
        commits=list(commits),
        records_by_sha=records_by_sha,
        orphans=orphans,
        matched_prefixes=matched_prefixes,
    )
