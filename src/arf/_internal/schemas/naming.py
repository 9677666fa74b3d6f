"""Recognized naming shapes for record directories and record files.

Different tool versions filed records under different directory prefix
lengths and with or without a disambiguation suffix. Each table below is
tried in order; the first matching shape wins.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Pattern, Tuple

RECORD_EXTENSION = ".toml"
FILENAME_TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"


@dataclass(frozen=True)
class NamingShape:
    """A named regular expression for one historical naming convention."""
    name: str
    pattern: Pattern[str]


# Directory shapes: full sha-256, full sha-1, then any abbreviated prefix.
DIRECTORY_SHAPES: Tuple[NamingShape, ...] = (
    NamingShape("sha256", re.compile(r"^[0-9a-f]{64}$", re.IGNORECASE)),
    NamingShape("sha1", re.compile(r"^[0-9a-f]{40}$", re.IGNORECASE)),
    NamingShape("abbrev", re.compile(r"^[0-9a-f]{4,39}$", re.IGNORECASE)),
)

# Filename shapes: <agent>-<YYYYmmdd-HHMMSS>-<n>.toml, then without suffix.
FILENAME_SHAPES: Tuple[NamingShape, ...] = (
    NamingShape(
        "suffixed",
        re.compile(r"^(?P<agent>.+)-(?P<stamp>\d{8}-\d{6})-(?P<suffix>\d+)\.toml$"),
    ),
    NamingShape(
        "plain",
        re.compile(r"^(?P<agent>.+)-(?P<stamp>\d{8}-\d{6})\.toml$"),
    ),
)


@dataclass(frozen=True)
class DirectoryMatch:
    shape: str
    prefix: str  # normalized lowercase hex


@dataclass(frozen=True)
class FilenameMatch:
    shape: str
    agent_id: str
    timestamp: datetime  # UTC, second resolution
    suffix: int  # 0 when absent


def match_directory(name: str) -> Optional[DirectoryMatch]:
    """Return the first directory shape that accepts name, or None."""
    for shape in DIRECTORY_SHAPES:
        if shape.pattern.match(name):
            return DirectoryMatch(shape=shape.name, prefix=name.lower())
    return None


def match_filename(name: str) -> Optional[FilenameMatch]:
    """Return agent/timestamp/suffix from the first filename shape that accepts name."""
    for shape in FILENAME_SHAPES:
        m = shape.pattern.match(name)
        if m is None:
            continue
        try:
            stamp = datetime.strptime(m.group("stamp"), FILENAME_TIMESTAMP_FORMAT)
        except ValueError:
            # Digits in the right places but not a real date
            continue
        suffix = int(m.groupdict().get("suffix") or 0)
        return FilenameMatch(
            shape=shape.name,
            agent_id=m.group("agent"),
            timestamp=stamp.replace(tzinfo=timezone.utc),
            suffix=suffix,
        )
    return None


def directory_name_for(sha: str, prefix_length: int) -> str:
    """Directory a new record for sha is filed under."""
    return sha[:prefix_length].lower()


def base_filename(agent_id: str, timestamp: datetime) -> str:
    """Filename stem (no suffix, no extension) for a new record."""
    stamp = timestamp.astimezone(timezone.utc).strftime(FILENAME_TIMESTAMP_FORMAT)
    return f"{agent_id}-{stamp}"


def record_filename(base: str, suffix: int) -> str:
    """Full filename for attempt number suffix (0 means no suffix)."""
    if suffix == 0:
        return f"{base}{RECORD_EXTENSION}"
    return f"{base}-{suffix}{RECORD_EXTENSION}"


def is_record_file(name: str) -> bool:
    """True for visible record documents (temp files and dotfiles excluded)."""
    return name.endswith(RECORD_EXTENSION) and not name.startswith(".")
