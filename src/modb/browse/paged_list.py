"""Accumulating, filterable, paginated result list.

One controller backs each browse screen (movie, tv, trending, people).
The screen calls ``reset()`` whenever its filters change and
``load_next_page()`` whenever the user scrolls near the bottom.

State machine per epoch::

    Idle -> Loading -> Idle | Exhausted | Error
    Error -> Loading            (retry)
    any   -> Idle               (reset with new filters, epoch + 1)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace

from modb.browse.sequencing import EpochFence, StateObservers, merge_unique
from modb.models import EXHAUSTED, IDLE, LOADING, FilterSet, ListState, Page, Status

logger = logging.getLogger(__name__)

FetchPage = Callable[[str, FilterSet, int], Awaitable[Page]]


class PagedListController:
    """Owns the accumulated item list for one ``(resource, filters)`` series.

    At most one fetch is in flight per epoch. A fetch resolving after a
    reset belongs to an older epoch and is discarded, whatever order the
    responses arrive in. Failures never propagate out of this class: they
    become ``Status.error(message)``.

    Usage::

        movies = PagedListController("movie", client.fetch_page)
        movies.subscribe(render)
        movies.reset(FilterSet(category="popular"))
        ...
        movies.load_next_page()   # from the scroll sentinel
    """

    def __init__(self, resource: str, fetch_page: FetchPage) -> None:
        self.resource = resource
        self._fetch_page = fetch_page
        self._fence = EpochFence()
        self._observers: StateObservers[ListState] = StateObservers()
        self._seen_ids: set = set()
        self._tasks: set[asyncio.Task] = set()
        self._state = ListState()

    @property
    def state(self) -> ListState:
        return self._state

    @property
    def filters(self) -> FilterSet | None:
        return self._state.filters

    def subscribe(self, listener: Callable[[ListState], object]) -> Callable[[], None]:
        return self._observers.subscribe(listener)

    def reset(self, filters: FilterSet) -> asyncio.Task | None:
        """Start a new series for ``filters`` and request its first page.

        No-op when ``filters`` equals the current filters, so re-render
        cycles cannot trigger refetch loops.
        """
        if not isinstance(filters, FilterSet):
            filters = FilterSet(filters)
        if self._state.filters is not None and self._state.filters == filters:
            return None

        epoch = self._fence.advance()
        self._seen_ids = set()
        logger.debug(
            "reset resource=%s epoch=%d filters=%s",
            self.resource,
            epoch,
            filters.to_filter_strings(),
            extra=self._log_fields(epoch),
        )
        self._set_state(
            ListState(
                items=(),
                next_page=1,
                has_more=True,
                status=IDLE,
                epoch=epoch,
                filters=filters,
            )
        )
        return self.load_next_page()

    def load_next_page(self) -> asyncio.Task | None:
        """Request the next page unless a fetch is running or the list ended.

        Returns the scheduled task, or ``None`` when guarded out.

        Raises:
            RuntimeError: When called outside a running event loop; state
                is left as it was.
        """
        state = self._state
        if state.filters is None:
            logger.debug("load_next_page before reset resource=%s", self.resource)
            return None
        if state.status.is_loading or not state.has_more:
            return None

        loop = asyncio.get_running_loop()
        request_epoch = self._fence.current
        page_number = state.next_page
        self._set_state(replace(state, status=LOADING))

        task = loop.create_task(
            self._run_fetch(request_epoch, state.filters, page_number),
            name=f"fetch-{self.resource}-{request_epoch}-{page_number}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def retry(self) -> asyncio.Task | None:
        """Re-request the page that failed. Same guards as ``load_next_page``."""
        return self.load_next_page()

    def close(self) -> None:
        """Detach listeners and fence off every in-flight request."""
        self._fence.advance()
        self._observers.clear()

    def _log_fields(self, epoch: int) -> dict:
        return {"resource": self.resource, "epoch": epoch}

    async def _run_fetch(self, request_epoch: int, filters: FilterSet, page_number: int) -> None:
        try:
            page = await self._fetch_page(self.resource, filters, page_number)
            if not self._fence.is_current(request_epoch):
                logger.debug(
                    "discarding stale page resource=%s epoch=%d page=%d",
                    self.resource,
                    request_epoch,
                    page_number,
                    extra=self._log_fields(request_epoch),
                )
                return
            self._apply_page(page)
        except asyncio.CancelledError:
            if self._fence.is_current(request_epoch):
                self._fail(
                    request_epoch, page_number, f"Request for page {page_number} was cancelled"
                )
            raise
        except Exception as exc:
            if not self._fence.is_current(request_epoch):
                logger.debug(
                    "discarding stale failure resource=%s epoch=%d page=%d",
                    self.resource,
                    request_epoch,
                    page_number,
                    extra=self._log_fields(request_epoch),
                )
                return
            self._fail(request_epoch, page_number, str(exc) or exc.__class__.__name__)

    def _fail(self, epoch: int, page_number: int, message: str) -> None:
        logger.warning(
            "page fetch failed resource=%s page=%d error=%s",
            self.resource,
            page_number,
            message,
            extra=self._log_fields(epoch),
        )
        self._set_state(replace(self._state, status=Status.error(message)))

    def _apply_page(self, page: Page) -> None:
        state = self._state
        # Merge into a copy so a malformed page leaves the seen ids untouched.
        seen_ids = set(self._seen_ids)
        fresh = merge_unique(seen_ids, page.items)
        # An empty page is the upstream end-of-list signal; short pages are not.
        has_more = len(page.items) > 0
        self._seen_ids = seen_ids
        logger.debug(
            "page applied resource=%s page=%d received=%d appended=%d has_more=%s",
            self.resource,
            state.next_page,
            len(page.items),
            len(fresh),
            has_more,
            extra=self._log_fields(state.epoch),
        )
        self._set_state(
            replace(
                state,
                items=state.items + tuple(fresh),
                next_page=state.next_page + 1,
                has_more=has_more,
                status=IDLE if has_more else EXHAUSTED,
            )
        )

    def _set_state(self, state: ListState) -> None:
        self._state = state
        self._observers.publish(state)
