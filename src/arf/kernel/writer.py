"""Validate and persist new reasoning records."""

from datetime import datetime
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from arf.config import ArfConfig
from arf.errors import ValidationError
from .history import CommitHistory
from .record import ReasoningRecord, RecordFields


def validate_fields(
    what: Optional[str],
    why: Optional[str],
    how: Optional[str] = None,
    backup: Optional[str] = None,
    outcome: Optional[Dict[str, Any]] = None,
    context: Optional[Dict[str, Any]] = None,
) -> RecordFields:
    """
    Check record content without touching storage.

    Raises:
        ValidationError: lists every offending field, not just the first
    """
    missing = [name for name, value in (("what", what), ("why", why)) if value is None or not str(value).strip()]
    if missing:
        raise ValidationError(missing, f"Missing required field(s): {', '.join(missing)}")

    try:
        return RecordFields(what=what, why=why, how=how, backup=backup, outcome=outcome, context=context)
    except PydanticValidationError as e:
        fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError(fields, f"Invalid record: {details}")


class RecordWriter:
    """The record write path: validate, resolve the commit, append.

    The clock is injected (it must return timezone-aware datetimes) so the
    kernel never reads wall time itself.
    """

    def __init__(
        self,
        store,
        history: CommitHistory,
        config: ArfConfig,
        clock: Callable[[], datetime],
    ):
        self.store = store
        self.history = history
        self.config = config
        self.clock = clock

    def write(
        self,
        what: Optional[str],
        why: Optional[str],
        how: Optional[str] = None,
        backup: Optional[str] = None,
        outcome: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None,
        commit: Optional[str] = None,
        agent_id: Optional[str] = None,
    ) -> ReasoningRecord:
        """Append one record for commit (HEAD when omitted) and return it as stored."""
        fields = validate_fields(what, why, how=how, backup=backup, outcome=outcome, context=context)

        agent = (agent_id or self.config.agent_id).strip()
        if not agent or "/" in agent or "\\" in agent or agent.startswith("."):
            raise ValidationError(["agent_id"], f"Invalid agent id: {agent_id!r}")

        sha = self.history.resolve_ref(commit or "HEAD")
        return self.store.write(sha, fields, agent_id=agent, timestamp=self.clock())
