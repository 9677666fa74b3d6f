"""Public API for arf.

One high-level function per command. Each builds what it needs from the
explicit config and history it is given, and returns a structured result;
nothing persists between calls.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from arf.config import ArfConfig
from arf.errors import SpecNotFound, StorageUninitialized
from arf.kernel.associate import AssociationIndex, associate
from arf.kernel.browse import BrowseState
from arf.kernel.history import CommitHistory, CommitNode
from arf.kernel.record import ReasoningRecord
from arf.kernel.render import (
    LogEntry,
    log_entries,
    log_entry_dict,
    render_diff,
    render_graph,
    render_log,
    render_orphans,
)
from arf.kernel.writer import RecordWriter
from arf._internal.io.git import GitHistory, GitStorage, SyncResult
from arf._internal.io.record_store import RecordStore, StoreSnapshot

SPEC_EXTENSION = ".arf"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class LogResult:
    """Flat record listing."""
    entries: List[LogEntry]
    warnings: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return render_log(self.entries)

    def to_json(self) -> List[Dict[str, Any]]:
        return [log_entry_dict(commit, record) for commit, record in self.entries]


@dataclass
class GraphResult:
    """Commit tree with nested reasoning blocks."""
    index: AssociationIndex
    warnings: List[str] = field(default_factory=list)
    initialized: bool = True

    @property
    def text(self) -> str:
        return render_graph(self.index, initialized=self.initialized)


@dataclass
class DiffView:
    """Reasoning header plus content change for one commit."""
    commit: CommitNode
    records: List[ReasoningRecord]
    changes: str
    initialized: bool = True

    @property
    def text(self) -> str:
        return render_diff(self.commit, self.records, self.changes, initialized=self.initialized)


@dataclass
class BrowseResult:
    """Initial state of an interactive browsing session."""
    state: BrowseState
    warnings: List[str] = field(default_factory=list)


@dataclass
class OrphanReport:
    """Prefix directories that match no commit in the scanned range."""
    index: AssociationIndex
    warnings: List[str] = field(default_factory=list)

    @property
    def orphan_count(self) -> int:
        return self.index.orphan_count

    @property
    def text(self) -> str:
        return render_orphans(self.index)

    def to_json(self) -> Dict[str, Any]:
        return {
            "orphan_count": self.index.orphan_count,
            "orphan_record_count": self.index.orphan_record_count,
            "orphans": {
                prefix: [record.model_dump(mode="json", exclude_none=True) for record in records]
                for prefix, records in self.index.orphans.items()
            },
        }


@dataclass
class RecordResult:
    """A freshly persisted record."""
    record: ReasoningRecord
    path: Path
    committed: bool


def open_repository(cwd: Path, **overrides: Any) -> Tuple[ArfConfig, GitHistory]:
    """Discover the repository containing cwd and build its config.

    Raises:
        RepositoryNotFound: cwd is not inside a git work tree
    """
    history = GitHistory.discover(cwd)
    config = ArfConfig(repo_root=history.repo_root, **overrides)
    return config, history


def _scan(store: RecordStore, strict: bool = True) -> StoreSnapshot:
    if not strict and not store.exists():
        return StoreSnapshot(initialized=False)
    return store.scan()


def build_index(
    config: ArfConfig,
    history: CommitHistory,
    rev_range: Optional[str] = None,
    limit: Optional[int] = None,
    strict: bool = True,
) -> Tuple[AssociationIndex, StoreSnapshot]:
    """Scan storage and associate it with a commit range.

    With strict=False a missing storage root yields an empty, uninitialized
    snapshot instead of raising StorageUninitialized.
    """
    snapshot = _scan(RecordStore.from_config(config), strict=strict)
    commits = history.list_commits(rev_range=rev_range, limit=limit)
    index = associate(commits, ((d.prefix, d.records) for d in snapshot.directories))
    return index, snapshot


def log(
    config: ArfConfig,
    history: CommitHistory,
    limit: Optional[int] = None,
    commit: Optional[str] = None,
    rev_range: Optional[str] = None,
) -> LogResult:
    """List records newest commit first, optionally for a single commit."""
    if commit is not None:
        sha = history.resolve_ref(commit)
        index, snapshot = build_index(config, history, rev_range=sha, limit=1)
    else:
        index, snapshot = build_index(config, history, rev_range=rev_range)
    return LogResult(entries=log_entries(index, limit=limit), warnings=snapshot.warnings)


def graph(config: ArfConfig, history: CommitHistory, limit: Optional[int] = 10) -> GraphResult:
    """Render the most recent commits with their reasoning."""
    index, snapshot = build_index(config, history, limit=limit, strict=False)
    return GraphResult(index=index, warnings=snapshot.warnings, initialized=snapshot.initialized)


def diff(config: ArfConfig, history: CommitHistory, ref: str = "HEAD", full: bool = False) -> DiffView:
    """Reasoning and content change for one commit.

    Strict: an unresolvable ref, or a malformed record in a directory that
    matches the commit, raises instead of being skipped. Missing storage
    is not an error; the view notes that ARF is not initialized.
    """
    sha = history.resolve_ref(ref)
    commit = history.get_commit(sha)
    store = RecordStore.from_config(config)
    snapshot = _scan(store, strict=False)

    for entry in sorted(snapshot.malformed, key=lambda m: str(m.path)):
        if sha.lower().startswith(entry.prefix):
            store.load(entry.path)

    index = associate([commit], ((d.prefix, d.records) for d in snapshot.directories))
    changes = history.show_commit(sha, full=full)
    return DiffView(
        commit=commit,
        records=index.records_for(sha),
        changes=changes,
        initialized=snapshot.initialized,
    )


def browse(config: ArfConfig, history: CommitHistory, limit: Optional[int] = 50) -> BrowseResult:
    """Set up an interactive session over the most recent commits."""
    index, snapshot = build_index(config, history, limit=limit, strict=False)
    state = BrowseState(index, load_changes=history.show_commit, initialized=snapshot.initialized)
    return BrowseResult(state=state, warnings=snapshot.warnings)


def orphans(config: ArfConfig, history: CommitHistory, rev_range: Optional[str] = None) -> OrphanReport:
    """Diagnostic: record directories unreachable from the given range (all history by default)."""
    index, snapshot = build_index(config, history, rev_range=rev_range)
    return OrphanReport(index=index, warnings=snapshot.warnings)


def record(
    config: ArfConfig,
    history: CommitHistory,
    what: Optional[str],
    why: Optional[str],
    how: Optional[str] = None,
    backup: Optional[str] = None,
    outcome: Optional[Dict[str, Any]] = None,
    context: Optional[Dict[str, Any]] = None,
    commit: Optional[str] = None,
    agent_id: Optional[str] = None,
    commit_storage: bool = True,
    clock: Optional[Callable[[], datetime]] = None,
) -> RecordResult:
    """Validate and append one record, then commit the storage branch if mounted."""
    store = RecordStore.from_config(config)
    writer = RecordWriter(store, history, config, clock=clock or _utcnow)
    stored = writer.write(
        what,
        why,
        how=how,
        backup=backup,
        outcome=outcome,
        context=context,
        commit=commit,
        agent_id=agent_id,
    )

    committed = False
    storage = GitStorage(config)
    if commit_storage and storage.is_mounted():
        committed = storage.commit(f"Record: {stored.what}")

    path = config.storage_root / stored.commit_ref / (stored.filename or "")
    return RecordResult(record=stored, path=path, committed=committed)


def init(config: ArfConfig) -> bool:
    """Provision the storage branch; False if it already existed."""
    return GitStorage(config).init()


def sync(config: ArfConfig, push: bool = False, pull: bool = False) -> SyncResult:
    """Pull and/or push the storage branch."""
    return GitStorage(config).sync(push=push, pull=pull)


def list_specs(config: ArfConfig) -> List[str]:
    """Names of task specs (without extension), sorted."""
    specs_root = config.specs_root
    if not specs_root.is_dir():
        raise StorageUninitialized(specs_root)
    return sorted(
        p.stem for p in specs_root.iterdir()
        if p.is_file() and p.suffix == SPEC_EXTENSION
    )


def show_spec(config: ArfConfig, name: str) -> str:
    """Contents of one task spec."""
    specs_root = config.specs_root
    if not specs_root.is_dir():
        raise StorageUninitialized(specs_root)
    path = specs_root / f"{name}{SPEC_EXTENSION}"
    if "/" in name or "\\" in name or not path.is_file():
        raise SpecNotFound(name, path)
    return path.read_text(encoding="utf-8")
