"""Tests for record validation and the write path."""

import pytest

from arf.errors import RefNotFound, ValidationError
from arf.kernel.writer import RecordWriter, validate_fields

from conftest import FakeHistory, make_commit, utc


TS = utc(2025, 1, 2, 3, 4, 5)


@pytest.fixture
def history():
    return FakeHistory([make_commit("8ec6c98", "Implement ARF CLI"), make_commit("3384a83", "Initial commit")])


@pytest.fixture
def writer(store, history, config):
    return RecordWriter(store, history, config, clock=lambda: TS)


def _stored_files(store):
    return sorted(p.name for p in store.root.rglob("*.toml"))


def test_validate_fields_strips_text():
    fields = validate_fields("  Add cache ", "Slow lookups\n", how="   ", backup="git revert")
    assert fields.what == "Add cache"
    assert fields.why == "Slow lookups"
    assert fields.how is None
    assert fields.backup == "git revert"


def test_missing_fields_are_all_reported():
    with pytest.raises(ValidationError) as excinfo:
        validate_fields(None, "  ")
    assert excinfo.value.fields == ["what", "why"]
    assert "what" in str(excinfo.value)


def test_invalid_outcome_status():
    with pytest.raises(ValidationError) as excinfo:
        validate_fields("x", "y", outcome={"status": "shipped"})
    assert excinfo.value.fields == ["outcome"]


def test_null_context_value_rejected():
    with pytest.raises(ValidationError) as excinfo:
        validate_fields("x", "y", context={"ticket": None})
    assert excinfo.value.fields == ["context"]


def test_write_defaults_to_head(writer, store, history):
    record = writer.write("Implement ARF CLI v0.1", "Need it", agent_id="claude")
    assert record.commit_sha == history.commits[0].sha
    assert record.commit_ref == "8ec6c980"
    assert record.timestamp == TS
    assert _stored_files(store) == ["claude-20250102-030405.toml"]


def test_write_to_explicit_commit(writer, history):
    record = writer.write("Backfill", "Forgot earlier", commit="3384a83")
    assert record.commit_sha == history.commits[1].sha
    assert record.agent_id == "unknown"


def test_invalid_record_writes_nothing(writer, store):
    with pytest.raises(ValidationError):
        writer.write("", "reason")
    with pytest.raises(ValidationError) as excinfo:
        writer.write("x", "y", agent_id="../escape")
    assert excinfo.value.fields == ["agent_id"]
    assert _stored_files(store) == []


def test_unknown_commit_writes_nothing(writer, store):
    with pytest.raises(RefNotFound):
        writer.write("x", "y", commit="ffffff")
    assert _stored_files(store) == []
