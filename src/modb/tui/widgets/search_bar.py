"""Type-ahead search box and its drop-down result panel.

SearchBar turns keystrokes into messages (QueryChanged on every change,
SelectionMoved on Up/Down, SelectionCommitted on Enter). Debouncing lives
in SearchController, not here. SearchResults renders SearchState.
"""

from __future__ import annotations

from rich.text import Text
from textual.binding import Binding
from textual.widgets import Input, Static

from modb.models import SearchState
from modb.tui.messages import QueryChanged, SelectionCommitted, SelectionMoved
from modb.tui.telemetry import get_telemetry


class SearchBar(Input):
    """Search input forwarding edits and navigation keys to the App."""

    DEFAULT_CSS = """
    SearchBar {
        dock: top;
        height: 3;
        padding: 0 1;
        border-bottom: solid $primary;
    }
    """

    BINDINGS = [
        Binding("down", "move_selection(1)", "Next result", show=False),
        Binding("up", "move_selection(-1)", "Previous result", show=False),
    ]

    def __init__(self) -> None:
        super().__init__(
            placeholder="Search movies, TV shows and people... (Ctrl+F)",
            id="search-bar",
        )

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input is not self:
            return
        self.post_message(QueryChanged(event.value))

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input is not self:
            return
        event.stop()
        get_telemetry().log.info(f"search enter query={self.value!r}")
        self.post_message(SelectionCommitted())

    def action_move_selection(self, direction: int) -> None:
        self.post_message(SelectionMoved(direction))


class SearchResults(Static):
    """Drop-down listing at most ``RESULT_CAP`` results with a cursor."""

    DEFAULT_CSS = """
    SearchResults {
        dock: top;
        height: auto;
        max-height: 14;
        padding: 0 2;
        background: $surface;
        border-bottom: solid $accent;
        display: none;
    }
    SearchResults.-open {
        display: block;
    }
    """

    def __init__(self) -> None:
        super().__init__("", id="search-results")
        self.state = SearchState()

    def render_state(self, state: SearchState, pending: bool = False) -> None:
        """Redraw from ``state``; ``pending`` means a debounce is scheduled."""
        self.state = state
        query = state.query.strip()
        if not query and not state.results:
            self.remove_class("-open")
            self.update("")
            return

        self.add_class("-open")
        text = Text()
        if state.status.is_error:
            text.append("Search failed: ", style="bold red")
            text.append(state.status.message or "unknown error")
        elif state.status.is_loading or (pending and not state.results):
            text.append(f'Searching for "{query}"...', style="dim")
        elif not state.results:
            text.append(f'No results found for "{query}"', style="dim")
        else:
            text.append(f'Found {len(state.results)} results for "{query}"\n', style="bold")
            for index, item in enumerate(state.results):
                selected = index == state.selected_index
                text.append("> " if selected else "  ", style="bold cyan")
                text.append(item.title, style="bold cyan" if selected else "bold")
                details = [item.media_type or "?"]
                if item.release_year:
                    details.append(item.release_year)
                text.append(f"  ({', '.join(details)})\n", style="dim")
            text.append("Up/Down to choose, Enter to open, Esc to close", style="italic dim")
        self.update(text)
