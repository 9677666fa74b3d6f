"""Render log, graph and diff projections of an association index.

All functions are pure: they take already-associated data and return
text. Absent optional record fields are omitted, never printed empty.
"""

from typing import Any, Dict, List, Optional, Tuple

from .associate import AssociationIndex
from .history import CommitNode
from .record import ReasoningRecord

HEAVY_RULE = "═" * 63
LIGHT_RULE = "─" * 63
NO_REASONING_NOTE = "(no reasoning recorded for this commit)"
NOT_INITIALIZED_NOTE = "(ARF not initialized - run 'arf init' for reasoning context)"

LogEntry = Tuple[CommitNode, ReasoningRecord]


def _indent_value(value: str, rest_prefix: str) -> str:
    """Keep multi-line values inside the block they belong to."""
    lines = value.splitlines() or [""]
    return ("\n" + rest_prefix).join(lines)


def record_block(record: ReasoningRecord, indent: str = "") -> List[str]:
    """Every present field of one record, labels padded to a common width."""
    fields = record.present_fields()
    width = max(len(label) for label in fields) + 1
    lines = []
    for label, value in fields.items():
        prefix = f"{indent}{label + ':':<{width}} "
        lines.append(prefix + _indent_value(value, " " * len(prefix)))
    return lines


def log_entries(index: AssociationIndex, limit: Optional[int] = None) -> List[LogEntry]:
    """Every (commit, record) pair, newest commit first, capped at limit."""
    entries = list(index.pairs())
    if limit is not None:
        entries = entries[:max(limit, 0)]
    return entries


def render_log(entries: List[LogEntry]) -> str:
    """Flat listing of records with all present fields."""
    if not entries:
        return "No ARF records found."

    lines = [f"ARF Records ({len(entries)}):", ""]
    for commit, record in entries:
        lines.append(f"commit {commit.short_sha}")
        for label, value in record.present_fields().items():
            prefix = f"{label}: "
            lines.append(prefix + _indent_value(value, " " * len(prefix)))
        lines.append("")
    return "\n".join(lines).rstrip("\n")


def log_entry_dict(commit: CommitNode, record: ReasoningRecord) -> Dict[str, Any]:
    """Machine-readable form of one log entry (None fields dropped)."""
    entry = record.model_dump(mode="json", exclude_none=True)
    entry["commit"] = commit.sha
    entry["short_sha"] = commit.short_sha
    return entry


def render_graph(index: AssociationIndex, initialized: bool = True) -> str:
    """Commit tree with a nested what/why/how block per record.

    Without storage the history is still drawn, followed by a note.
    """
    commits = index.commits
    if not commits:
        return "No commits found."

    lines = ["Git + ARF History:", ""]
    for i, commit in enumerate(commits):
        is_last = i == len(commits) - 1
        connector = "└" if is_last else "├"
        continuation = " " if is_last else "│"
        lines.append(f"{connector}─● {commit.short_sha} {commit.subject}".rstrip())

        records = index.records_for(commit.sha)
        for j, record in enumerate(records):
            is_last_record = j == len(records) - 1
            rec_connector = "└" if is_last_record else "├"
            rec_continuation = " " if is_last_record else "│"
            gutter = f"{continuation}  {rec_continuation}   "

            lines.append(f"{continuation}  {rec_connector}─ what: " + _indent_value(record.what, gutter + "     "))
            lines.append(f"{gutter}why: " + _indent_value(record.why, gutter + "     "))
            if record.how is not None:
                lines.append(f"{gutter}how: " + _indent_value(record.how, gutter + "     "))

    if not initialized:
        lines.extend(["", NOT_INITIALIZED_NOTE])
    return "\n".join(lines)


def render_diff(
    commit: CommitNode,
    records: List[ReasoningRecord],
    changes: str,
    initialized: bool = True,
) -> str:
    """Reasoning header for one commit followed by its content change."""
    lines = [
        HEAVY_RULE,
        f"Commit: {commit.short_sha} {commit.subject}".rstrip(),
        HEAVY_RULE,
        "",
    ]
    if records:
        lines.append("REASONING:")
        for record in records:
            lines.extend(record_block(record, indent="  "))
            lines.append("")
    else:
        lines.append(NO_REASONING_NOTE if initialized else NOT_INITIALIZED_NOTE)
        lines.append("")

    lines.append(LIGHT_RULE)
    lines.append("CHANGES:")
    lines.append("")
    body = "\n".join(lines)
    return body + "\n" + changes.rstrip("\n")


def render_orphans(index: AssociationIndex) -> str:
    """Diagnostic listing of prefix directories that match no commit in range."""
    if not index.orphans:
        return "No orphaned record directories."
    lines = [
        f"Orphaned record directories ({index.orphan_count}, "
        f"{index.orphan_record_count} records):",
        "",
    ]
    for prefix, records in index.orphans.items():
        lines.append(f"  {prefix}  {len(records)} record(s)")
        for record in records:
            lines.append(f"    - {record.what}")
    return "\n".join(lines)
