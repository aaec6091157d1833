"""MODB terminal browser application.

Tabs for Movies, TV Shows, Trending and People, each backed by its own
PagedListController, plus a type-ahead search box backed by a
SearchController. The App is the only place where widgets meet the
controllers: widget messages become controller calls, and controller
state snapshots are pushed back into the widgets.

Clicking a card or committing a search result opens the detail page,
which replaces the active list until Escape.
"""

from __future__ import annotations

import asyncio
from functools import partial
from typing import Protocol

from textual.app import App, ComposeResult
from textual.containers import Vertical
from textual.reactive import reactive
from textual.widgets import ContentSwitcher, Footer, Header, Static, Tab, Tabs

from modb.browse import EpochFence, PagedListController, SearchController
from modb.catalog import RESOURCES, CatalogError, format_option, get_resource
from modb.config import ClientConfig
from modb.models import Details, FilterSet, ListState, Page, ResultItem, SearchState
from modb.tui.messages import (
    FilterChanged,
    ItemOpened,
    LoadMoreRequested,
    QueryChanged,
    SelectionCommitted,
    SelectionMoved,
)
from modb.tui.telemetry import Telemetry, set_telemetry
from modb.tui.widgets import CatalogList, DetailsPane, FilterPanel, SearchBar, SearchResults


class Catalog(Protocol):
    async def fetch_page(self, resource: str, filters: FilterSet, page: int) -> Page: ...

    async def fetch_search(self, query: str) -> Page: ...

    async def fetch_details(self, media_type: str, item_id: int | str) -> Details: ...


class OfflineCatalog:
    """Stand-in used when no API key is configured; every call fails."""

    MESSAGE = "Catalog unavailable: no TMDB API key configured"

    async def fetch_page(self, resource: str, filters: FilterSet, page: int) -> Page:
        raise CatalogError(self.MESSAGE)

    async def fetch_search(self, query: str) -> Page:
        raise CatalogError(self.MESSAGE)

    async def fetch_details(self, media_type: str, item_id: int | str) -> Details:
        raise CatalogError(self.MESSAGE)


class ModbApp(App):
    """Browse movies, TV shows and people from the terminal."""

    TITLE = "MODB"
    SUB_TITLE = "Movies, TV Shows & People"

    CSS = """
    #browse {
        height: 1fr;
    }

    #lists {
        height: 1fr;
    }

    #status-bar {
        dock: bottom;
        height: 1;
        background: $primary-background;
        color: $text;
        padding: 0 1;
    }
    """

    BINDINGS = [
        ("ctrl+f", "focus_search", "Search"),
        ("ctrl+r", "retry", "Retry"),
        ("ctrl+n", "load_more", "Load more"),
        ("escape", "dismiss_search", "Back"),
    ]

    active_resource: reactive[str] = reactive("movie")
    opened_item: reactive[ResultItem | None] = reactive(None)

    def __init__(
        self,
        catalog: Catalog | None = None,
        *,
        config: ClientConfig | None = None,
        telemetry: Telemetry | None = None,
        close_catalog: bool = False,
    ) -> None:
        """Create the app and its controllers.

        Args:
            catalog: Object providing ``fetch_page``/``fetch_search``/
                ``fetch_details`` (a TMDBClient in production, a mock in tests).
            config: Debounce interval and result cap come from here.
            telemetry: OTel facade; defaults to no-op.
            close_catalog: Call ``catalog.aclose()`` on unmount.
        """
        super().__init__()
        self.config = config or ClientConfig()
        self.catalog: Catalog = catalog if catalog is not None else OfflineCatalog()
        self.telemetry = telemetry if telemetry is not None else Telemetry.noop()
        set_telemetry(self.telemetry)
        self._close_catalog = close_catalog
        self.lists: dict[str, PagedListController] = {
            name: PagedListController(name, self.catalog.fetch_page) for name in RESOURCES
        }
        self.filters: dict[str, FilterSet] = {
            name: resource.default_filters() for name, resource in RESOURCES.items()
        }
        self.search = SearchController(
            self.catalog.fetch_search,
            debounce_seconds=self.config.search_debounce_seconds,
            result_cap=self.config.search_result_cap,
        )
        self._details_fence = EpochFence()
        self._details_tasks: set[asyncio.Task] = set()
        self._unsubscribers: list = []

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield SearchBar()
        yield SearchResults()
        with Vertical(id="browse"):
            yield Tabs(
                *(Tab(resource.label, id=name) for name, resource in RESOURCES.items()),
                id="resource-tabs",
            )
            yield FilterPanel()
            with ContentSwitcher(initial="list-movie", id="lists"):
                for name in RESOURCES:
                    yield CatalogList(name)
                yield DetailsPane()
        yield Static("Ready | Ctrl+F: Search", id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        for name, controller in self.lists.items():
            self._unsubscribers.append(controller.subscribe(partial(self._on_list_state, name)))
            # The first tab may have activated before this handler ran.
            self._on_list_state(name, controller.state)
        self._unsubscribers.append(self.search.subscribe(self._on_search_state))
        self.telemetry.log.info("app mounted")

    async def on_unmount(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        for controller in self.lists.values():
            controller.close()
        self.search.close()
        self._details_fence.advance()
        for task in list(self._details_tasks):
            task.cancel()
        if self._close_catalog and hasattr(self.catalog, "aclose"):
            await self.catalog.aclose()  # type: ignore[attr-defined]

    # ------------------------------------------------------------------
    # Browse lists
    # ------------------------------------------------------------------

    async def on_tabs_tab_activated(self, event: Tabs.TabActivated) -> None:
        if event.tab.id is None or event.tab.id not in self.lists:
            return
        await self.activate_resource(event.tab.id)

    async def activate_resource(self, name: str) -> None:
        """Show ``name``'s list and filters, loading its first page if needed."""
        resource = get_resource(name)
        self.active_resource = name
        self.close_details()
        await self.query_one(FilterPanel).show_resource(resource, self.filters[name])
        with self.telemetry.span("tui.resource_activated") as span:
            controller = self.lists[name]
            controller.reset(self.filters[name])
            span.record_list_state(name, controller.state)
        self._update_status_bar()

    def on_filter_changed(self, event: FilterChanged) -> None:
        resource = get_resource(event.resource)
        try:
            filters = resource.validate(event.filters)
        except ValueError as exc:
            self.telemetry.log.error(
                f"rejected filters error={exc}", extra={"resource": event.resource}
            )
            self.notify(str(exc), severity="error")
            return
        self.filters[event.resource] = filters
        with self.telemetry.span("tui.list_reset") as span:
            controller = self.lists[event.resource]
            task = controller.reset(filters)
            span.set_attribute("reset.fetched", task is not None)
            span.record_list_state(event.resource, controller.state)

    def on_load_more_requested(self, event: LoadMoreRequested) -> None:
        controller = self.lists.get(event.resource)
        if controller is None:
            return
        with self.telemetry.span("tui.load_more") as span:
            task = controller.load_next_page()
            span.set_attribute("load_more.fetched", task is not None)
            span.record_list_state(event.resource, controller.state)

    def _on_list_state(self, name: str, state: ListState) -> None:
        self.query_one(f"#list-{name}", CatalogList).render_state(state)
        if state.status.is_error:
            self.telemetry.log.error(
                f"list error page={state.next_page} message={state.status.message!r}",
                extra={"resource": name, "epoch": state.epoch},
            )
        if name == self.active_resource:
            self._update_status_bar()

    def _update_status_bar(self) -> None:
        if self.opened_item is not None:
            return
        state = self.lists[self.active_resource].state
        label = get_resource(self.active_resource).label
        filters = self.filters[self.active_resource]
        if filters:
            label = f"{label} ({' / '.join(format_option(v) for v in filters.values())})"
        self.query_one("#status-bar", Static).update(
            f"{label} | {len(state.items)} loaded | {state.status.kind.value}"
            " | Ctrl+F: Search"
        )

    def action_retry(self) -> None:
        self.lists[self.active_resource].retry()

    def action_load_more(self) -> None:
        self.lists[self.active_resource].load_next_page()

    # ------------------------------------------------------------------
    # Detail page
    # ------------------------------------------------------------------

    def on_item_opened(self, event: ItemOpened) -> None:
        self.open_item(event.item)

    def open_item(self, item: ResultItem) -> asyncio.Task | None:
        """Show ``item``'s detail page and start loading it.

        Returns the load task, or ``None`` for search hits without a media
        type (nothing to route to).
        """
        with self.telemetry.span(
            "tui.item_opened",
            **{"item.id": str(item.id), "item.media_type": item.media_type or ""},
        ):
            self.opened_item = item
            self.query_one("#status-bar", Static).update(
                f"Opened {item.title} -> {item.route} | Esc: Back"
            )
            self.telemetry.log.info(f"item opened route={item.route}")
            if not item.media_type:
                return None
            pane = self.query_one(DetailsPane)
            pane.show_loading(item)
            self.query_one("#lists", ContentSwitcher).current = "details"
            epoch = self._details_fence.advance()
            task = asyncio.get_running_loop().create_task(
                self._load_details(epoch, item), name=f"details-{epoch}"
            )
            self._details_tasks.add(task)
            task.add_done_callback(self._details_tasks.discard)
            return task

    async def _load_details(self, epoch: int, item: ResultItem) -> None:
        pane = self.query_one(DetailsPane)
        with self.telemetry.span("tui.details_loaded", **{"details.route": item.route}) as span:
            try:
                details = await self.catalog.fetch_details(item.media_type or "", item.id)
            except Exception as exc:
                if not self._details_fence.is_current(epoch):
                    return
                span.set_attribute("details.ok", False)
                self.telemetry.log.error(f"details failed route={item.route} error={exc!r}")
                pane.show_error(item, str(exc) or exc.__class__.__name__)
                return
            if not self._details_fence.is_current(epoch):
                return
            span.set_attribute("details.ok", True)
            pane.show_details(details)

    def close_details(self) -> None:
        """Return from the detail page to the active list."""
        self._details_fence.advance()
        self.opened_item = None
        self.query_one("#lists", ContentSwitcher).current = f"list-{self.active_resource}"
        self._update_status_bar()

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def on_query_changed(self, event: QueryChanged) -> None:
        self.search.set_query(event.text)

    def on_selection_moved(self, event: SelectionMoved) -> None:
        self.search.move_selection(event.direction)

    def on_selection_committed(self, event: SelectionCommitted) -> None:
        with self.telemetry.span("tui.search_commit") as span:
            span.record_search_state(self.search.state)
            item = self.search.commit_selection()
            span.set_attribute("search.committed", item is not None)
        if item is None:
            # Nothing highlighted: run the typed query without waiting.
            self.search.submit()
            return
        self.query_one(SearchBar).value = ""
        self.open_item(item)

    def _on_search_state(self, state: SearchState) -> None:
        self.query_one(SearchResults).render_state(state, pending=self.search.debounce_pending)
        if state.status.is_error:
            self.telemetry.log.error(
                f"search error query={state.query!r} message={state.status.message!r}",
                extra={"resource": "search", "epoch": state.epoch},
            )

    def action_focus_search(self) -> None:
        self.query_one(SearchBar).focus()

    def action_dismiss_search(self) -> None:
        """Escape: clear an active search first, otherwise leave the detail page."""
        state = self.search.state
        if state.query or state.results or self.opened_item is None:
            with self.telemetry.span("tui.search_dismiss") as span:
                span.record_search_state(state)
                self.search.dismiss()
                self.query_one(SearchBar).value = ""
            return
        self.close_details()
