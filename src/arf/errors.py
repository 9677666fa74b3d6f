"""Error taxonomy for arf.

Every user-facing failure derives from ArfError and carries the exit code
the CLI should terminate with, plus the offending identifier (ref, path,
field names) in its message.
"""

from pathlib import Path
from typing import List, Optional, Sequence

from arf.codes import ExitCode


class ArfError(Exception):
    """Base exception for arf failures."""
    exit_code: ExitCode = ExitCode.UNEXPECTED_ERROR


class RepositoryNotFound(ArfError):
    """Raised when the working directory is not inside a git repository."""
    exit_code = ExitCode.REPOSITORY_NOT_FOUND

    def __init__(self, path: Path, detail: Optional[str] = None):
        self.path = path
        msg = f"Not a git repository: {path}. Run 'git init' first."
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class StorageUninitialized(ArfError):
    """Raised when the storage root has not been provisioned."""
    exit_code = ExitCode.STORAGE_UNINITIALIZED

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"ARF not initialized (missing {path}). Run 'arf init' first.")


class ValidationError(ArfError, ValueError):
    """Raised when a record is missing required fields or has invalid values."""
    exit_code = ExitCode.VALIDATION_ERROR

    def __init__(self, fields: Sequence[str], message: str):
        self.fields: List[str] = sorted(set(fields))
        super().__init__(message)


class StorageError(ArfError):
    """Base class for storage read/write failures."""
    exit_code = ExitCode.STORAGE_ERROR


class MalformedRecord(StorageError):
    """Raised when a record file cannot be parsed."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Malformed record {path}: {reason}")


class WriteConflict(StorageError):
    """Raised when every disambiguation suffix for a record filename is taken."""

    def __init__(self, directory: Path, base_name: str, attempts: int):
        self.directory = directory
        self.base_name = base_name
        self.attempts = attempts
        super().__init__(
            f"Could not write record '{base_name}' in {directory}: "
            f"{attempts} filenames already taken. Retry in a moment."
        )


class SpecNotFound(StorageError):
    """Raised when a named task spec does not exist."""

    def __init__(self, name: str, path: Path):
        self.name = name
        self.path = path
        super().__init__(f"Spec not found: {name} (looked for {path})")


class RefError(ArfError):
    """Base class for commit reference resolution failures."""
    exit_code = ExitCode.REF_ERROR

    def __init__(self, ref: str, message: str):
        self.ref = ref
        super().__init__(message)


class RefNotFound(RefError):
    """Raised when a ref does not name any commit."""

    def __init__(self, ref: str):
        super().__init__(ref, f"Commit not found: {ref}")


class AmbiguousRef(RefError):
    """Raised when an abbreviated ref matches more than one object."""

    def __init__(self, ref: str):
        super().__init__(ref, f"Ambiguous ref: {ref}. Use more characters of the commit sha.")
