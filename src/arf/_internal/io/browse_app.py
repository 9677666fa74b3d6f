"""Full-screen terminal browser over commits and their reasoning.

Layout: commit list and reasoning side by side on top, the commit's
change below (hidden, stat or full), and a key help bar at the bottom.
All state lives in arf.kernel.browse.BrowseState; this module only draws
it and forwards keys.
"""

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Static

from arf.kernel.browse import BrowseState, DiffMode, Focus, classify_diff_line

HELP_TEXT = " q: quit | j/k: scroll | Tab: focus | d: toggle diff | f/b: page "
SELECTED_SYMBOL = "→ "

DIFF_STYLES = {
    "added": "green",
    "removed": "red",
    "hunk": "cyan",
    "header": "bold yellow",
    "file": "yellow",
}


def diff_text(lines) -> Text:
    """Colored rendering of change lines."""
    text = Text()
    for i, line in enumerate(lines):
        if i:
            text.append("\n")
        text.append(line, style=DIFF_STYLES.get(classify_diff_line(line), ""))
    return text


class BrowseApp(App):
    """Interactive view of a BrowseState."""

    CSS = """
    #top {
        height: 1fr;
    }
    #commits {
        width: 2fr;
        border: round white;
    }
    #reasoning {
        width: 3fr;
        border: round white;
    }
    #diff {
        height: 1fr;
        border: round white;
    }
    #commits.focused, #diff.focused {
        border: round cyan;
    }
    #help {
        height: 1;
        background: $panel;
    }
    """

    BINDINGS = [
        Binding("q,escape", "quit", "Quit", priority=True),
        Binding("j,down", "move(1)", "Down", priority=True),
        Binding("k,up", "move(-1)", "Up", priority=True),
        Binding("d", "toggle_diff", "Diff", priority=True),
        Binding("tab,enter", "toggle_focus", "Focus", priority=True),
        Binding("f,pagedown", "page(1)", "Page down", priority=True),
        Binding("b,pageup", "page(-1)", "Page up", priority=True),
    ]

    def __init__(self, browse: BrowseState):
        super().__init__()
        self.browse = browse

    def compose(self) -> ComposeResult:
        with Horizontal(id="top"):
            yield Static(id="commits")
            yield Static(id="reasoning")
        yield Static(id="diff")
        yield Static(HELP_TEXT, id="help")

    def on_mount(self) -> None:
        self.query_one("#commits", Static).border_title = " Commits "
        self.query_one("#reasoning", Static).border_title = " Reasoning "
        self.refresh_view()
        # Widget sizes are only known after the first layout
        self.call_after_refresh(self.refresh_view)

    def on_resize(self, event) -> None:
        self.refresh_view()

    def action_move(self, step: int) -> None:
        if step > 0:
            self.browse.next()
        else:
            self.browse.previous()
        self.refresh_view()

    def action_page(self, step: int) -> None:
        if step > 0:
            self.browse.page_down()
        else:
            self.browse.page_up()
        self.refresh_view()

    def action_toggle_diff(self) -> None:
        self.browse.toggle_diff()
        self.refresh_view()

    def action_toggle_focus(self) -> None:
        self.browse.toggle_focus()
        self.refresh_view()

    def refresh_view(self) -> None:
        state = self.browse

        commits = self.query_one("#commits", Static)
        start, end = state.commit_window(max(commits.size.height, 1))
        listing = Text()
        for i, label in enumerate(state.commit_labels()[start:end], start):
            if i > start:
                listing.append("\n")
            if i == state.selected:
                listing.append(SELECTED_SYMBOL + label, style="bold reverse")
            else:
                listing.append(" " * len(SELECTED_SYMBOL) + label)
        commits.update(listing)
        commits.set_class(state.focus == Focus.COMMITS, "focused")

        self.query_one("#reasoning", Static).update(Text(state.reasoning_text()))

        diff = self.query_one("#diff", Static)
        diff.display = state.diff_mode != DiffMode.HIDDEN
        diff.border_title = state.diff_title()
        diff.set_class(state.focus == Focus.DIFF, "focused")
        diff.update(diff_text(state.visible_diff_lines()))


def run_browser(state: BrowseState) -> None:
    """Take over the terminal until the user quits."""
    BrowseApp(state).run()
