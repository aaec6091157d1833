"""Sequencing primitives shared by the list and search controllers.

Everything here runs on a single asyncio event loop. There are no locks:
the epoch counter is the only synchronization primitive, and responses
that resolve under an older epoch are dropped by their caller.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Generic, TypeVar

from modb.models import ResultItem

logger = logging.getLogger(__name__)

S = TypeVar("S")


class EpochFence:
    """Monotonic counter identifying the current request cycle."""

    def __init__(self) -> None:
        self._epoch = 0

    @property
    def current(self) -> int:
        return self._epoch

    def advance(self) -> int:
        """Start a new cycle and return its epoch."""
        self._epoch += 1
        return self._epoch

    def is_current(self, epoch: int) -> bool:
        return epoch == self._epoch


def merge_unique(seen_ids: set, items: Iterable[ResultItem]) -> list[ResultItem]:
    """Return the items whose ids are not in ``seen_ids`` and record them.

    Duplicates inside ``items`` itself are dropped as well, keeping the
    first occurrence.
    """
    fresh: list[ResultItem] = []
    for item in items:
        if item.id in seen_ids:
            continue
        seen_ids.add(item.id)
        fresh.append(item)
    return fresh


class StateObservers(Generic[S]):
    """Ordered registry of state listeners.

    A listener that raises is logged; delivery to the remaining listeners
    continues.
    """

    def __init__(self) -> None:
        self._listeners: list[Callable[[S], object]] = []

    def __len__(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: Callable[[S], object]) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass  # already removed or cleared

        return unsubscribe

    def publish(self, state: S) -> None:
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("state listener %r failed", listener)

    def clear(self) -> None:
        self._listeners.clear()
