"""Centralized canonical JSON serialization.

Used for every machine-readable output (log --json, orphans --json), so
the same data always produces the same bytes.
"""

import json
from datetime import date, datetime
from typing import Any


def _default(obj: Any) -> Any:
    # TOML documents can carry datetimes inside context tables
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonical_dumps(obj: Any) -> str:
    """
    Canonical JSON serialization.

    Rules:
    - UTF-8 (no ASCII escaping)
    - Sorted keys
    - Stable separators (",", ":")
    - Lists keep caller order (callers sort before serializing)
    - Datetimes rendered as ISO 8601

    Args:
        obj: Python object to serialize

    Returns:
        Canonical JSON string
    """
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=_default,
    )
