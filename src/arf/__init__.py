"""arf: agent reasoning records tracked alongside git history."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("arf")
except PackageNotFoundError:
    __version__ = "dev"

# Public API exports
# Note: log/graph/diff/record live in arf.api, not at the root
from arf.config import ArfConfig
from arf.codes import ExitCode
from arf.errors import (
    ArfError,
    AmbiguousRef,
    MalformedRecord,
    RefNotFound,
    RepositoryNotFound,
    StorageError,
    StorageUninitialized,
    ValidationError,
    WriteConflict,
)
from arf.kernel.record import Outcome, OutcomeStatus, ReasoningRecord

__all__ = [
    "__version__",
    "ArfConfig",
    "ExitCode",
    "ArfError",
    "AmbiguousRef",
    "MalformedRecord",
    "RefNotFound",
    "RepositoryNotFound",
    "StorageError",
    "StorageUninitialized",
    "ValidationError",
    "WriteConflict",
    "Outcome",
    "OutcomeStatus",
    "ReasoningRecord",
]
