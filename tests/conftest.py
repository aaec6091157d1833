"""Shared fixtures for MODB tests.

``ScriptedFetch`` stands in for the catalog collaborator when a test needs
to control *when* each request resolves (stale-response and in-flight
scenarios). Simple happy-path tests use ``AsyncMock`` directly.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

import pytest

from modb.config import ClientConfig
from modb.models import Page, ResultItem


def make_item(item_id: int, media_type: str | None = "movie", **payload) -> ResultItem:
    payload.setdefault("title", f"Title {item_id}")
    return ResultItem(id=item_id, media_type=media_type, payload={"id": item_id, **payload})


def make_page(ids: Iterable[int], page_number: int = 1, resource: str = "movie") -> Page:
    return Page(items=tuple(make_item(i) for i in ids), page_number=page_number, resource=resource)


async def settle(rounds: int = 5) -> None:
    """Let scheduled tasks run up to their next suspension point."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class ScriptedFetch:
    """Async callable whose calls block until the test resolves them."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self._futures: list[asyncio.Future] = []

    async def __call__(self, *args):
        future = asyncio.get_running_loop().create_future()
        self.calls.append(args)
        self._futures.append(future)
        return await future

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def resolve(self, index: int, value) -> None:
        self._futures[index].set_result(value)

    def fail(self, index: int, exc: BaseException) -> None:
        self._futures[index].set_exception(exc)


@pytest.fixture
def scripted_fetch() -> ScriptedFetch:
    return ScriptedFetch()


@pytest.fixture
def client_config() -> ClientConfig:
    return ClientConfig(api_key="0123456789abcdef0123456789abcdef")
