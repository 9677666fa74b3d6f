"""Tests for record document parsing (legacy v0 and v1)."""

from datetime import datetime, timezone

import pytest

from arf.config import ArfConfig, DEFAULT_AGENT_ID
from arf.kernel.record import OutcomeStatus, ReasoningRecord
from arf._internal.schemas.record_schema import (
    dump_record,
    parse_legacy_outcome,
    parse_record,
    parse_timestamp,
)


def test_parse_v1_document():
    doc = {
        "schema_version": 1,
        "what": "Add parser",
        "why": "Needed for import",
        "how": "Regex table",
        "timestamp": "2025-01-02T03:04:05+00:00",
        "commit": "8ec6c98" + "0" * 33,
        "agent": "claude",
        "outcome": {"status": "partial", "detail": "one case left"},
        "context": {"ticket": "ARF-12", "files": ["a.py", "b.py"]},
    }
    parsed = parse_record(doc, "8ec6c980", "claude-20250102-030405.toml")
    assert parsed.schema_version == 1
    assert parsed.warnings == []

    record = ReasoningRecord(**parsed.data)
    assert record.what == "Add parser"
    assert record.agent_id == "claude"
    assert record.commit_ref == "8ec6c980"
    assert record.outcome.status == OutcomeStatus.PARTIAL
    assert record.outcome.detail == "one case left"
    assert record.context["files"] == ["a.py", "b.py"]
    assert record.filename == "claude-20250102-030405.toml"


def test_parse_legacy_document():
    doc = {
        "what": "Fix flaky test",
        "why": "CI was red",
        "outcome": "failure: still flaky",
        "timestamp": "2025-01-02T03:04:05.123456789Z",
        "commit": "HEAD",
        "agent": "cursor",
    }
    parsed = parse_record(doc, "5604413a", "cursor-20250102-030405.toml")
    assert parsed.schema_version == 0

    record = ReasoningRecord(**parsed.data)
    assert record.outcome.status == OutcomeStatus.FAILURE
    assert record.outcome.detail == "still flaky"
    assert record.timestamp == datetime(2025, 1, 2, 3, 4, 5, 123456, tzinfo=timezone.utc)
    assert record.context is None


def test_legacy_agent_and_timestamp_recovered_from_filename():
    doc = {"what": "Refactor", "why": "Readability"}
    parsed = parse_record(doc, "5604413a", "my-agent-20240615-120000-1.toml")
    record = ReasoningRecord(**parsed.data)
    assert record.agent_id == "my-agent"
    assert record.timestamp == datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


def test_unknown_agent_when_nowhere_to_recover_it():
    doc = {"what": "Refactor", "why": "Readability", "timestamp": "2024-06-15T12:00:00Z"}
    parsed = parse_record(doc, "5604413a", "notes.toml")
    assert parsed.data["agent_id"] == "unknown"
    assert parsed.data["agent_id"] == DEFAULT_AGENT_ID == ArfConfig.model_fields["agent_id"].default


def test_missing_timestamp_everywhere_is_rejected():
    with pytest.raises(ValueError, match="No timestamp"):
        parse_record({"what": "x", "why": "y"}, "5604413a", "notes.toml")


def test_unsupported_schema_version():
    with pytest.raises(ValueError, match="Unsupported schema_version"):
        parse_record({"schema_version": 2, "what": "x", "why": "y"}, "5604413a", "a-20240101-000000.toml")


def test_missing_required_field():
    with pytest.raises(ValueError, match="Invalid v1 record structure"):
        parse_record({"schema_version": 1, "what": "x"}, "5604413a", "a-20240101-000000.toml")


def test_unknown_fields_warn_but_parse():
    doc = {"schema_version": 1, "what": "x", "why": "y", "mood": "optimistic"}
    parsed = parse_record(doc, "5604413a", "a-20240101-000000.toml")
    assert len(parsed.warnings) == 1
    assert "mood" in parsed.warnings[0]
    assert "mood" not in parsed.data


def test_legacy_outcome_strings():
    assert parse_legacy_outcome("success") == {"status": "success"}
    assert parse_legacy_outcome("Partial - docs pending") == {"status": "partial", "detail": "docs pending"}
    with pytest.raises(ValueError, match="Unrecognized outcome"):
        parse_legacy_outcome("shipped it")


def test_naive_timestamp_is_utc():
    assert parse_timestamp("2025-01-02T03:04:05").tzinfo == timezone.utc


def test_dump_omits_absent_optionals():
    record = ReasoningRecord(
        what="x",
        why="y",
        agent_id="claude",
        timestamp=datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        commit_ref="8ec6c980",
    )
    doc = dump_record(record)
    assert doc == {
        "schema_version": 1,
        "what": "x",
        "why": "y",
        "timestamp": "2025-01-02T03:04:05+00:00",
        "agent": "claude",
    }
