"""Debounced type-ahead search with keyboard selection.

Keystrokes call ``set_query``; only the last keystroke inside the quiet
window reaches the catalog. Up/Down map to ``move_selection``, Enter to
``commit_selection`` (or ``submit`` with nothing selected) and Escape to
``dismiss``.

The query stream is an RxPY pipeline: typed text goes through
``ops.debounce`` on the running asyncio loop, merged with an Enter stream
that bypasses the debounce. Disposing the subscription drops whatever the
debounce still holds, which is how blank text, ``dismiss()`` and
``close()`` cancel a pending evaluation.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace

import reactivex as rx
from reactivex import operators as ops
from reactivex.abc import DisposableBase
from reactivex.scheduler.eventloop import AsyncIOScheduler
from reactivex.subject import Subject

from modb.browse.sequencing import EpochFence, StateObservers
from modb.models import IDLE, LOADING, Page, ResultItem, SearchState, Status

logger = logging.getLogger(__name__)

FetchSearch = Callable[[str], Awaitable[Page]]


class SearchController:
    """Owns the query, the transient result list and the selection cursor.

    Failed searches are not retried: the next keystroke (or ``submit()``)
    is the only way to recover.
    """

    DEBOUNCE_SECONDS: float = 0.5
    RESULT_CAP: int = 10

    def __init__(
        self,
        fetch_search: FetchSearch,
        *,
        debounce_seconds: float | None = None,
        result_cap: int | None = None,
    ) -> None:
        self._fetch_search = fetch_search
        self.result_cap = self.RESULT_CAP if result_cap is None else result_cap
        self.debounce_seconds = (
            self.DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        )
        if self.debounce_seconds < 0:
            raise ValueError(f"debounce_seconds must be >= 0, got {self.debounce_seconds}")
        self._input_subject: Subject[str] = Subject()
        self._enter_subject: Subject[str] = Subject()
        self._subscription: DisposableBase | None = None
        self._pending_query: str | None = None
        self._fence = EpochFence()
        self._observers: StateObservers[SearchState] = StateObservers()
        self._tasks: set[asyncio.Task] = set()
        self._last_task: asyncio.Task | None = None
        self._state = SearchState()

    @property
    def state(self) -> SearchState:
        return self._state

    @property
    def debounce_pending(self) -> bool:
        """True while typed text waits for the quiet window to elapse."""
        return self._pending_query is not None

    @property
    def last_task(self) -> asyncio.Task | None:
        """Task of the most recent search evaluation, if any."""
        return self._last_task

    def subscribe(self, listener: Callable[[SearchState], object]) -> Callable[[], None]:
        return self._observers.subscribe(listener)

    def set_query(self, text: str) -> None:
        """Store ``text`` and restart the debounce window.

        Blank text clears the results at once and cancels the pending
        evaluation without calling the catalog.
        """
        if not text.strip():
            self._cancel_pending()
            # Fence off a search that is still in flight for the old text.
            epoch = self._fence.advance()
            self._set_state(SearchState(query=text, epoch=epoch))
            return

        self._ensure_pipeline()
        self._pending_query = text
        self._set_state(replace(self._state, query=text))
        self._input_subject.on_next(text)

    def submit(self) -> asyncio.Task | None:
        """Evaluate the pending query now instead of waiting for the timer."""
        query = self._pending_query
        if query is None:
            return None
        self._ensure_pipeline()
        self._enter_subject.on_next(query)
        # The debounce still holds the same text; drop it.
        self._cancel_pending()
        return self._last_task

    def move_selection(self, direction: int) -> None:
        """Move the cursor by one result; clamps at both ends, never wraps."""
        state = self._state
        if not state.results:
            return
        if direction > 0:
            index = min(state.selected_index + 1, len(state.results) - 1)
        elif direction < 0:
            if state.selected_index < 0:
                return
            index = max(state.selected_index - 1, 0)
        else:
            return
        if index != state.selected_index:
            self._set_state(replace(state, selected_index=index))

    def select(self, index: int) -> None:
        """Point the cursor at ``index`` (mouse hover/click)."""
        state = self._state
        if not 0 <= index < len(state.results):
            return
        if index != state.selected_index:
            self._set_state(replace(state, selected_index=index))

    def commit_selection(self) -> ResultItem | None:
        """Return the selected result and clear the search.

        Returns ``None`` and leaves state untouched when nothing is selected.
        """
        item = self._state.selected
        if item is None:
            return None
        logger.debug(
            "search commit id=%s media_type=%s",
            item.id,
            item.media_type,
            extra=self._log_fields(self._state.epoch),
        )
        self._clear()
        return item

    def dismiss(self) -> None:
        """Clear query and results and cancel any pending evaluation."""
        self._clear()

    def close(self) -> None:
        """Release the query pipeline, listeners and in-flight responses."""
        self._cancel_pending()
        self._fence.advance()
        self._observers.clear()

    @staticmethod
    def _log_fields(epoch: int) -> dict:
        return {"resource": "search", "epoch": epoch}

    def _ensure_pipeline(self) -> None:
        if self._subscription is not None:
            return
        scheduler = AsyncIOScheduler(asyncio.get_running_loop())
        query_stream = rx.merge(
            self._input_subject.pipe(
                ops.debounce(self.debounce_seconds, scheduler=scheduler),
            ),
            self._enter_subject,
        )
        self._subscription = query_stream.subscribe(
            on_next=self._evaluate,
            on_error=lambda exc: logger.error("search pipeline failed: %s", exc),
        )

    def _cancel_pending(self) -> None:
        self._pending_query = None
        if self._subscription is not None:
            self._subscription.dispose()
            self._subscription = None

    def _clear(self) -> None:
        self._cancel_pending()
        epoch = self._fence.advance()
        self._set_state(SearchState(epoch=epoch))

    def _evaluate(self, text: str) -> None:
        self._pending_query = None
        query = text.strip()
        if not query:
            return
        loop = asyncio.get_running_loop()
        epoch = self._fence.advance()
        self._set_state(replace(self._state, status=LOADING, epoch=epoch))
        task = loop.create_task(self._run_search(epoch, query), name=f"search-{epoch}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._last_task = task

    async def _run_search(self, request_epoch: int, query: str) -> None:
        fields = self._log_fields(request_epoch)
        logger.debug("search fired query=%r epoch=%d", query, request_epoch, extra=fields)
        try:
            page = await self._fetch_search(query)
            if not self._fence.is_current(request_epoch):
                logger.debug(
                    "discarding stale search query=%r epoch=%d", query, request_epoch, extra=fields
                )
                return
            results = tuple(page.items[: self.result_cap])
            if not all(isinstance(item, ResultItem) for item in results):
                raise TypeError(f"search for {query!r} returned non-catalog records")
        except asyncio.CancelledError:
            if self._fence.is_current(request_epoch):
                self._fail(request_epoch, query, "Search cancelled")
            raise
        except Exception as exc:
            if self._fence.is_current(request_epoch):
                self._fail(request_epoch, query, str(exc) or exc.__class__.__name__)
            return

        logger.debug(
            "search completed query=%r result_count=%d", query, len(results), extra=fields
        )
        self._set_state(
            replace(self._state, results=results, selected_index=-1, status=IDLE)
        )

    def _fail(self, epoch: int, query: str, message: str) -> None:
        logger.warning(
            "search failed query=%r error=%s", query, message, extra=self._log_fields(epoch)
        )
        # Results for a different query must not linger next to the error.
        self._set_state(
            replace(
                self._state,
                results=(),
                selected_index=-1,
                status=Status.error(message),
            )
        )

    def _set_state(self, state: SearchState) -> None:
        self._state = state
        self._observers.publish(state)
