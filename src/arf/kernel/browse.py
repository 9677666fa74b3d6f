"""State behind the interactive browser.

The terminal front end only draws a BrowseState and maps keys onto its
transitions. Commit changes come from an injected loader, so every
transition can be driven without a terminal or a repository.

Navigation:
In commit focus, next/previous move the selection and wrap at both ends.
In diff focus they scroll the change by one line; page_down/page_up
scroll by PAGE_SIZE. Every selection or mode change reloads the change
and resets the scroll position.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple

from arf.errors import ArfError

from .associate import AssociationIndex
from .history import CommitNode
from .record import ReasoningRecord
from .render import NO_REASONING_NOTE, NOT_INITIALIZED_NOTE, record_block

PAGE_SIZE = 10
DIFF_FAILED = "Failed to get diff"
RECORD_SEPARATOR = "\n\n---\n\n"
RECORDED_MARK = "●"

ChangeLoader = Callable[[str, bool], str]  # (sha, full) -> change text


class DiffMode(str, Enum):
    HIDDEN = "hidden"
    STAT = "stat"
    FULL = "full"


class Focus(str, Enum):
    COMMITS = "commits"
    DIFF = "diff"


_NEXT_MODE = {
    DiffMode.HIDDEN: DiffMode.STAT,
    DiffMode.STAT: DiffMode.FULL,
    DiffMode.FULL: DiffMode.HIDDEN,
}


def classify_diff_line(line: str) -> Optional[str]:
    """Kind of one line of change output, for coloring.

    Returns "file", "added", "removed", "hunk", "header" or None for
    context lines.
    """
    if line.startswith(("+++", "---")):
        return "file"
    if line.startswith("+"):
        return "added"
    if line.startswith("-"):
        return "removed"
    if line.startswith("@@"):
        return "hunk"
    if line.startswith(("diff ", "index ")):
        return "header"
    return None


@dataclass
class BrowseState:
    """Selection, focus and change view of one browsing session."""
    index: AssociationIndex
    load_changes: ChangeLoader
    initialized: bool = True
    selected: Optional[int] = None  # None only when there are no commits
    diff_mode: DiffMode = DiffMode.STAT
    focus: Focus = Focus.COMMITS
    diff_lines: List[str] = field(default_factory=list)
    diff_scroll: int = 0

    def __post_init__(self):
        if self.selected is None and self.index.commits:
            self.selected = 0
        self.update_diff()

    @property
    def commits(self) -> List[CommitNode]:
        return self.index.commits

    def selected_commit(self) -> Optional[CommitNode]:
        if self.selected is None:
            return None
        return self.commits[self.selected]

    def selected_records(self) -> List[ReasoningRecord]:
        commit = self.selected_commit()
        if commit is None:
            return []
        return self.index.records_for(commit.sha)

    # Transitions

    def next(self) -> None:
        if self.focus == Focus.DIFF:
            self.diff_scroll = min(self.diff_scroll + 1, self._last_line())
            return
        if not self.commits:
            return
        self.selected = (self.selected + 1) % len(self.commits)
        self.update_diff()

    def previous(self) -> None:
        if self.focus == Focus.DIFF:
            self.diff_scroll = max(self.diff_scroll - 1, 0)
            return
        if not self.commits:
            return
        self.selected = (self.selected - 1) % len(self.commits)
        self.update_diff()

    def page_down(self) -> None:
        if self.focus == Focus.DIFF:
            self.diff_scroll = min(self.diff_scroll + PAGE_SIZE, self._last_line())

    def page_up(self) -> None:
        if self.focus == Focus.DIFF:
            self.diff_scroll = max(self.diff_scroll - PAGE_SIZE, 0)

    def toggle_focus(self) -> None:
        """Swap focus between the commit list and the change view (if shown)."""
        if self.diff_mode == DiffMode.HIDDEN:
            return
        self.focus = Focus.DIFF if self.focus == Focus.COMMITS else Focus.COMMITS

    def toggle_diff(self) -> None:
        """Cycle hidden -> stat -> full -> hidden."""
        self.diff_mode = _NEXT_MODE[self.diff_mode]
        if self.diff_mode == DiffMode.HIDDEN:
            self.focus = Focus.COMMITS
        self.update_diff()

    def update_diff(self) -> None:
        """Reload the change for the selected commit in the current mode."""
        self.diff_scroll = 0
        commit = self.selected_commit()
        if commit is None or self.diff_mode == DiffMode.HIDDEN:
            self.diff_lines = []
            return
        try:
            text = self.load_changes(commit.sha, self.diff_mode == DiffMode.FULL)
        except ArfError:
            text = DIFF_FAILED
        self.diff_lines = text.splitlines()

    def _last_line(self) -> int:
        return max(len(self.diff_lines) - 1, 0)

    # Display helpers

    def commit_labels(self) -> List[str]:
        """One line per commit; recorded commits carry a mark."""
        labels = []
        for commit in self.commits:
            mark = RECORDED_MARK if self.index.records_for(commit.sha) else " "
            labels.append(f"{mark} {commit.short_sha} {commit.subject}".rstrip())
        return labels

    def commit_window(self, height: int) -> Tuple[int, int]:
        """Slice [start, end) of commits that fits height rows and shows the selection."""
        total = len(self.commits)
        if height <= 0 or total == 0:
            return 0, 0
        if total <= height:
            return 0, total
        start = min(max((self.selected or 0) - height // 2, 0), total - height)
        return start, start + height

    def reasoning_text(self) -> str:
        if self.selected_commit() is None:
            return ""
        records = self.selected_records()
        if not records:
            return NO_REASONING_NOTE if self.initialized else NOT_INITIALIZED_NOTE
        return RECORD_SEPARATOR.join("\n".join(record_block(r)) for r in records)

    def visible_diff_lines(self) -> List[str]:
        return self.diff_lines[self.diff_scroll:]

    def diff_title(self) -> str:
        if self.diff_mode == DiffMode.HIDDEN:
            return ""
        title = f" Diff ({self.diff_mode.value}) "
        if self.diff_lines:
            title += f" [{self.diff_scroll + 1}/{len(self.diff_lines)}] "
        return title
