"""Pydantic models for reasoning records."""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OutcomeStatus(str, Enum):
    """Post-action result classification."""
    SUCCESS = "success"
    FAILURE = "failure"
    PARTIAL = "partial"


class Outcome(BaseModel):
    """Outcome of the recorded action, with optional detail text."""
    status: OutcomeStatus
    detail: Optional[str] = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    def display(self) -> str:
        if self.detail:
            return f"{self.status.value} ({self.detail})"
        return self.status.value


def _check_context_value(value: Any, path: str) -> None:
    """Reject values the record document format cannot carry."""
    if value is None:
        raise ValueError(f"context value at '{path}' is null; omit the key instead")
    if isinstance(value, dict):
        for k, v in value.items():
            if not isinstance(k, str):
                raise ValueError(f"context key at '{path}' must be a string, got {type(k).__name__}")
            _check_context_value(v, f"{path}.{k}")
    elif isinstance(value, (list, tuple)):
        for i, v in enumerate(value):
            _check_context_value(v, f"{path}[{i}]")
    elif not isinstance(value, (str, int, float, bool, datetime)):
        raise ValueError(f"context value at '{path}' has unsupported type {type(value).__name__}")


class RecordFields(BaseModel):
    """The content of a reasoning record, as supplied by its author.

    Required text fields are stripped and must be non-empty; optional text
    fields that are blank collapse to None.
    """
    what: str
    why: str
    how: Optional[str] = None
    backup: Optional[str] = None
    outcome: Optional[Outcome] = None
    context: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("what", "why")
    @classmethod
    def validate_required_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("how", "backup")
    @classmethod
    def validate_optional_text(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("context")
    @classmethod
    def validate_context(cls, v: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if v is None:
            return None
        for key, value in v.items():
            _check_context_value(value, key)
        return v or None


class ReasoningRecord(RecordFields):
    """A persisted reasoning record. Immutable; corrections are new records."""
    agent_id: str
    timestamp: datetime
    commit_ref: str  # prefix directory the record is filed under
    commit_sha: Optional[str] = None  # full sha at write time (absent in legacy files)
    filename: Optional[str] = None  # set when read back from storage

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v: datetime) -> datetime:
        """Naive timestamps are taken as UTC so records always sort together."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def sort_key(self) -> tuple:
        """Deterministic order: timestamp, then agent id, then filename.

        Filenames compare shortest first so a same-second name with a
        numeric suffix lands after the unsuffixed one (and -2 before -10).
        """
        filename = self.filename or ""
        return (self.timestamp, self.agent_id, len(filename), filename)

    def present_fields(self) -> Dict[str, str]:
        """Display values for every present field, in canonical order."""
        fields: Dict[str, str] = {"what": self.what, "why": self.why}
        if self.how is not None:
            fields["how"] = self.how
        if self.backup is not None:
            fields["backup"] = self.backup
        if self.outcome is not None:
            fields["outcome"] = self.outcome.display()
        if self.context:
            fields["context"] = ", ".join(
                f"{key}={_display_value(self.context[key])}" for key in sorted(self.context)
            )
        fields["agent"] = self.agent_id
        fields["time"] = self.timestamp.isoformat()
        return fields


def _display_value(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
