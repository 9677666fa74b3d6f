"""Parser for reasoning record documents (legacy v0, v1).

Legacy documents (no schema_version) were written by the first release of
the tool: outcome is a bare string and agent/commit may be missing. v1
documents carry a structured outcome table and an open context table.
Both normalize to the same field dict for ReasoningRecord.
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from arf.config import DEFAULT_AGENT_ID
from .common import ParsedRecordDocument
from .naming import match_filename

CURRENT_SCHEMA_VERSION = 1

_FRACTION_RE = re.compile(r"(\.\d{6})\d+")
_LEGACY_OUTCOME_RE = re.compile(r"^\s*(success|failure|partial)\b[\s:\-]*(.*)$", re.IGNORECASE | re.DOTALL)


class RecordDocumentV1(BaseModel):
    """v1 record document schema."""
    schema_version: int = CURRENT_SCHEMA_VERSION
    what: str
    why: str
    how: Optional[str] = None
    backup: Optional[str] = None
    outcome: Optional[Dict[str, Any]] = None
    context: Optional[Dict[str, Any]] = None
    timestamp: Optional[Union[datetime, str]] = None
    commit: Optional[str] = None
    agent: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class RecordDocumentV0(BaseModel):
    """Legacy record document schema (missing schema_version)."""
    what: str
    why: str
    how: Optional[str] = None
    backup: Optional[str] = None
    outcome: Optional[str] = None
    timestamp: Optional[Union[datetime, str]] = None
    commit: Optional[str] = None
    agent: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


def parse_timestamp(value: Union[datetime, str]) -> datetime:
    """Parse an RFC 3339 timestamp, tolerating nanosecond fractions and 'Z'."""
    if isinstance(value, datetime):
        parsed = value
    else:
        text = _FRACTION_RE.sub(r"\1", value.strip())
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValueError(f"Invalid timestamp: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_legacy_outcome(value: str) -> Dict[str, Any]:
    """Split a legacy outcome string like 'failure: tests red' into status/detail."""
    m = _LEGACY_OUTCOME_RE.match(value)
    if m is None:
        raise ValueError(f"Unrecognized outcome: {value!r} (expected success, failure or partial)")
    outcome: Dict[str, Any] = {"status": m.group(1).lower()}
    detail = m.group(2).strip()
    if detail:
        outcome["detail"] = detail
    return outcome


def _split_unknown(obj: Dict[str, Any], known: Set[str]) -> List[str]:
    return sorted(k for k in obj.keys() if k not in known)


def parse_record(obj: Dict[str, Any], prefix: str, filename: str) -> ParsedRecordDocument:
    """
    Parse a record document with the compatibility layer.

    Args:
        obj: Raw document (from TOML)
        prefix: Name of the directory the file was found in
        filename: Name of the file, used to recover agent/timestamp when the
            document body does not carry them

    Returns:
        ParsedRecordDocument whose data feeds ReasoningRecord

    Raises:
        ValueError: unsupported schema_version, invalid structure, or no
            timestamp available from body or filename
    """
    warnings: List[str] = []

    found_version = obj.get("schema_version")
    if found_version is None:
        version = 0
    elif found_version == CURRENT_SCHEMA_VERSION:
        version = CURRENT_SCHEMA_VERSION
    else:
        raise ValueError(f"Unsupported schema_version: {found_version!r}")

    model_cls = RecordDocumentV1 if version == CURRENT_SCHEMA_VERSION else RecordDocumentV0
    known_fields: Set[str] = set(model_cls.model_fields.keys())

    # Unknown top-level fields are dropped from the view, never from the file
    unknown = _split_unknown(obj, known_fields)
    if unknown:
        warnings.append(f"{prefix}/{filename}: unknown fields ignored: {unknown}")
    known_obj = {k: v for k, v in obj.items() if k in known_fields}

    try:
        doc = model_cls(**known_obj)
    except ValidationError as e:
        raise ValueError(f"Invalid v{version} record structure: {e}")

    name_match = match_filename(filename)

    if doc.timestamp is not None:
        timestamp = parse_timestamp(doc.timestamp)
    elif name_match is not None:
        timestamp = name_match.timestamp
    else:
        raise ValueError("No timestamp in document or filename")

    if doc.agent:
        agent_id = doc.agent
    elif name_match is not None:
        agent_id = name_match.agent_id
    else:
        agent_id = DEFAULT_AGENT_ID

    if isinstance(doc, RecordDocumentV0):
        outcome = parse_legacy_outcome(doc.outcome) if doc.outcome else None
        context = None
    else:
        outcome = doc.outcome
        context = doc.context

    data: Dict[str, Any] = {
        "what": doc.what,
        "why": doc.why,
        "how": doc.how,
        "backup": doc.backup,
        "outcome": outcome,
        "context": context,
        "agent_id": agent_id,
        "timestamp": timestamp,
        "commit_ref": prefix,
        "commit_sha": doc.commit,
        "filename": filename,
    }
    return ParsedRecordDocument(schema_version=version, data=data, warnings=warnings)


def dump_record(record: Any) -> Dict[str, Any]:
    """Build the v1 document for a ReasoningRecord (absent optionals omitted)."""
    doc: Dict[str, Any] = {
        "schema_version": CURRENT_SCHEMA_VERSION,
        "what": record.what,
        "why": record.why,
    }
    if record.how is not None:
        doc["how"] = record.how
    if record.backup is not None:
        doc["backup"] = record.backup
    doc["timestamp"] = record.timestamp.isoformat()
    if record.commit_sha is not None:
        doc["commit"] = record.commit_sha
    doc["agent"] = record.agent_id
    if record.outcome is not None:
        outcome: Dict[str, Any] = {"status": record.outcome.status.value}
        if record.outcome.detail is not None:
            outcome["detail"] = record.outcome.detail
        doc["outcome"] = outcome
    if record.context:
        doc["context"] = dict(record.context)
    return doc
