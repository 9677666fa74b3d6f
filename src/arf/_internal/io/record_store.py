"""Filesystem storage for reasoning records.

Layout under the storage root:

    <hex-prefix-of-commit-sha>/
        <agent-id>-<YYYYmmdd-HHMMSS>[-<n>].toml

Files are immutable once published and the store is append-only, so
readers take no locks. Writers publish with a hard link from a private
temp file, which either creates the final name atomically or fails
because it already exists; a collision moves on to the next suffix.
"""

import logging
import os
import tomllib
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Tuple

import tomli_w

from arf.config import ArfConfig
from arf.errors import MalformedRecord, StorageError, StorageUninitialized, WriteConflict
from arf.kernel.record import ReasoningRecord, RecordFields
from arf._internal.schemas.naming import (
    base_filename,
    directory_name_for,
    is_record_file,
    match_directory,
    record_filename,
)
from arf._internal.schemas.record_schema import dump_record, parse_record

logger = logging.getLogger(__name__)


@dataclass
class RecordDirectory:
    """A prefix directory and the records that parsed from it."""
    prefix: str  # normalized lowercase hex
    path: Path
    shape: str  # naming shape that accepted the directory name
    records: List[ReasoningRecord] = field(default_factory=list)


@dataclass
class MalformedRecordEntry:
    """A record file that was skipped during a scan."""
    prefix: str
    path: Path
    reason: str


@dataclass
class StoreSnapshot:
    """Everything one scan of the storage root found."""
    directories: List[RecordDirectory] = field(default_factory=list)
    malformed: List[MalformedRecordEntry] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    initialized: bool = True  # False when the storage root does not exist

    def record_count(self) -> int:
        return sum(len(d.records) for d in self.directories)


class RecordStore:
    """Reads and appends reasoning records under a storage root."""

    def __init__(self, root: Path, prefix_length: int = 8, max_write_attempts: int = 100):
        self.root = Path(root)
        self.prefix_length = prefix_length
        self.max_write_attempts = max_write_attempts

    @classmethod
    def from_config(cls, config: ArfConfig) -> "RecordStore":
        return cls(
            config.storage_root,
            prefix_length=config.prefix_length,
            max_write_attempts=config.max_write_attempts,
        )

    def exists(self) -> bool:
        return self.root.is_dir()

    def _require_root(self) -> None:
        if not self.exists():
            raise StorageUninitialized(self.root)

    def scan(self) -> StoreSnapshot:
        """Parse every record under the root.

        Malformed files and unrecognized directories are skipped with a
        warning; the scan itself only fails if the root is missing.
        """
        self._require_root()
        snapshot = StoreSnapshot()

        for entry in sorted(self.root.iterdir(), key=lambda p: p.name):
            if not entry.is_dir() or entry.name.startswith("."):
                continue
            match = match_directory(entry.name)
            if match is None:
                msg = f"Skipping {entry}: directory name is not a commit sha prefix"
                logger.warning(msg)
                snapshot.warnings.append(msg)
                continue

            try:
                paths = sorted(entry.iterdir(), key=lambda p: p.name)
            except OSError as e:
                msg = f"Skipping {entry}: cannot list directory ({e.strerror or e})"
                logger.warning(msg)
                snapshot.warnings.append(msg)
                continue

            directory = RecordDirectory(prefix=match.prefix, path=entry, shape=match.shape)
            for path in paths:
                if not is_record_file(path.name) or not path.is_file():
                    continue
                try:
                    record, doc_warnings = self._read(path, match.prefix)
                except MalformedRecord as e:
                    logger.warning("Skipping malformed record %s: %s", path, e.reason)
                    snapshot.malformed.append(MalformedRecordEntry(prefix=match.prefix, path=path, reason=e.reason))
                    snapshot.warnings.append(f"Skipping malformed record {path}: {e.reason}")
                    continue
                directory.records.append(record)
                snapshot.warnings.extend(doc_warnings)
            snapshot.directories.append(directory)

        return snapshot

    def load(self, path: Path) -> ReasoningRecord:
        """Parse a single record file strictly.

        Raises:
            MalformedRecord: the file cannot be read or parsed
        """
        path = Path(path)
        match = match_directory(path.parent.name)
        prefix = match.prefix if match else path.parent.name.lower()
        record, _ = self._read(path, prefix)
        return record

    def _read(self, path: Path, prefix: str) -> Tuple[ReasoningRecord, List[str]]:
        try:
            data = tomllib.loads(path.read_text(encoding="utf-8"))
            parsed = parse_record(data, prefix, path.name)
            record = ReasoningRecord(**parsed.data)
        except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError, ValueError) as e:
            raise MalformedRecord(path, str(e).splitlines()[0] if str(e) else type(e).__name__)
        return record, parsed.warnings

    def write(self, sha: str, fields: RecordFields, agent_id: str, timestamp: datetime) -> ReasoningRecord:
        """Persist a new record for commit sha and return it as stored.

        Raises:
            StorageUninitialized: the storage root is missing
            WriteConflict: every disambiguation suffix is already taken
            StorageError: any other filesystem failure
        """
        self._require_root()
        prefix = directory_name_for(sha, self.prefix_length)
        directory = self.root / prefix

        record = ReasoningRecord(
            **fields.model_dump(),
            agent_id=agent_id,
            timestamp=timestamp,
            commit_ref=prefix,
            commit_sha=sha,
        )
        content = tomli_w.dumps(dump_record(record))
        base = base_filename(agent_id, record.timestamp)

        tmp = directory / f".{base}.tmp-{os.getpid()}-{uuid.uuid4().hex}"
        try:
            try:
                directory.mkdir(exist_ok=True)
                with open(tmp, "w", encoding="utf-8") as f:
                    f.write(content)
                    f.flush()
                    os.fsync(f.fileno())
            except OSError as e:
                raise StorageError(f"Could not write record in {directory}: {e}")

            for suffix in range(self.max_write_attempts):
                name = record_filename(base, suffix)
                try:
                    os.link(tmp, directory / name)
                except FileExistsError:
                    logger.debug("Record name %s taken, trying next suffix", name)
                    continue
                except OSError as e:
                    raise StorageError(f"Could not publish record {directory / name}: {e}")
                return record.model_copy(update={"filename": name})
            raise WriteConflict(directory, base, self.max_write_attempts)
        finally:
            tmp.unlink(missing_ok=True)
