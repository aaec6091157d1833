"""Infinite-scrolling list of catalog cards for one browse resource.

CatalogList renders ListState snapshots incrementally: within one epoch
items only grow, so new cards are mounted after the existing ones. A new
epoch (filter change) rebuilds the list. Scrolling near the bottom posts
LoadMoreRequested; the controller decides whether a fetch happens.
"""

from __future__ import annotations

from rich.text import Text
from textual.containers import VerticalScroll
from textual.widgets import Static

from modb.catalog import format_option, get_resource
from modb.models import ListState, ResultItem
from modb.tui.messages import ItemOpened, LoadMoreRequested


class CatalogCard(Static):
    """One movie, show or person."""

    DEFAULT_CSS = """
    CatalogCard {
        padding: 0 2;
        margin: 0 0 1 0;
        background: $surface;
        border: solid $primary-background;
        height: auto;
    }
    """

    def __init__(self, item: ResultItem, position: int) -> None:
        self.item = item
        self.position = position

        display = Text()
        display.append(f"{position}. ", style="bold cyan")
        display.append(item.title, style="bold")
        meta: list[str] = []
        if item.media_type:
            meta.append(item.media_type)
        if item.release_year:
            meta.append(item.release_year)
        if item.rating is not None:
            meta.append(f"{item.rating:.1f}/10")
        department = item.payload.get("known_for_department")
        if department:
            meta.append(str(department))
        if meta:
            display.append("\n" + " | ".join(meta), style="italic cyan")
        overview = item.overview[:140].strip()
        if overview:
            if len(item.overview) > 140:
                overview += "..."
            display.append("\n" + overview, style="dim")
        super().__init__(display)

    def on_click(self) -> None:
        self.post_message(ItemOpened(self.item))


class CatalogList(VerticalScroll):
    """Scrollable, append-only card list with a status footer."""

    DEFAULT_CSS = """
    CatalogList {
        width: 100%;
        height: 1fr;
    }
    CatalogList .list-footer {
        text-align: center;
        color: $text-muted;
        padding: 0 1 1 1;
    }
    """

    # rows from the bottom edge that count as "near the end"
    LOAD_MORE_THRESHOLD = 3

    def __init__(self, resource: str) -> None:
        super().__init__(id=f"list-{resource}", classes="catalog-list")
        self.resource = resource
        self.state = ListState()
        self._rendered_epoch = -1
        self._rendered_count = 0

    def compose(self):
        yield Static("", classes="list-footer")

    @property
    def card_count(self) -> int:
        return self._rendered_count

    def render_state(self, state: ListState) -> None:
        self.state = state
        if state.epoch != self._rendered_epoch or len(state.items) < self._rendered_count:
            self.remove_children(CatalogCard)
            self._rendered_epoch = state.epoch
            self._rendered_count = 0
            self.scroll_home(animate=False)

        fresh = state.items[self._rendered_count:]
        if fresh:
            footer = self.query_one(".list-footer", Static)
            start = self._rendered_count
            self.mount_all(
                [CatalogCard(item, start + offset + 1) for offset, item in enumerate(fresh)],
                before=footer,
            )
            self._rendered_count = len(state.items)

        self.query_one(".list-footer", Static).update(self._footer_text(state))

    def _footer_text(self, state: ListState) -> str:
        status = state.status
        if status.is_loading:
            return "Loading..."
        if status.is_error:
            return f"{status.message} (Ctrl+R to retry)"
        if status.is_exhausted:
            label = get_resource(self.resource).label.lower()
            if state.filters:
                choice = " / ".join(format_option(v) for v in state.filters.values())
                return f"You've seen all available {label} for {choice}"
            return f"You've seen all available {label}"
        if state.filters is None:
            return ""
        return "Scroll down for more (Ctrl+N)"

    def near_bottom(self) -> bool:
        return self.max_scroll_y - self.scroll_y <= self.LOAD_MORE_THRESHOLD

    def watch_scroll_y(self, old_value: float, new_value: float) -> None:
        super().watch_scroll_y(old_value, new_value)
        if new_value <= old_value:
            return
        state = self.state
        if state.status.is_idle and state.has_more and self.near_bottom():
            self.post_message(LoadMoreRequested(self.resource))
