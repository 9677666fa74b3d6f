"""Exit code constants for the arf CLI.

Each user-facing error family maps to its own code so scripts can
branch on the failure without parsing stderr.
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit codes."""

    OK = 0
    UNEXPECTED_ERROR = 1

    # Environment
    REPOSITORY_NOT_FOUND = 2
    STORAGE_UNINITIALIZED = 3

    # Input / storage
    VALIDATION_ERROR = 4
    STORAGE_ERROR = 5

    # Ref resolution (ambiguous or unknown)
    REF_ERROR = 6
