"""Tests for browse spans and the JSON-lines log the ``logs`` command reads."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from conftest import make_page
from modb.browse import PagedListController, SearchController
from modb.models import FilterSet, ListState, SearchState, Status
from modb.tui import telemetry as telemetry_module
from modb.tui.telemetry import (
    Telemetry,
    configure_file_logging,
    get_telemetry,
    list_state_attributes,
    log_file_path,
    search_state_attributes,
    set_telemetry,
)


@pytest.fixture
def clean_modb_logger():
    logger = logging.getLogger("modb")
    saved_handlers, saved_level = list(logger.handlers), logger.level
    yield logger
    for handler in logger.handlers:
        if handler not in saved_handlers:
            handler.close()
    logger.handlers[:] = saved_handlers
    logger.setLevel(saved_level)


def read_entries(path: str) -> list[dict]:
    for handler in logging.getLogger("modb").handlers:
        handler.flush()
    with open(path, encoding="utf-8") as fh:
        return [json.loads(line) for line in fh]


# ---------------------------------------------------------------------------
# Span attributes
# ---------------------------------------------------------------------------


def test_list_state_attributes():
    state = ListState(
        items=tuple(make_page([1, 2]).items),
        next_page=2,
        status=Status.error("timed out"),
        epoch=3,
        filters=FilterSet(category="top_rated"),
    )

    assert list_state_attributes("movie", state) == {
        "list.resource": "movie",
        "list.epoch": 3,
        "list.next_page": 2,
        "list.items": 2,
        "list.has_more": True,
        "list.status": "error",
        "list.filters": "category:top_rated",
    }


def test_list_state_attributes_before_reset():
    assert list_state_attributes("people", ListState())["list.filters"] == ""


def test_search_state_attributes():
    state = SearchState(
        query="dune", results=tuple(make_page([1, 2, 3]).items), selected_index=1, epoch=5
    )

    attributes = search_state_attributes(state)

    assert attributes["search.query"] == "dune"
    assert attributes["search.results"] == 3
    assert attributes["search.selected_index"] == 1
    assert attributes["search.status"] == "idle"
    assert attributes["search.epoch"] == 5


def test_span_records_list_and_search_state():
    telemetry, exporter = Telemetry.for_testing()

    with telemetry.span("tui.list_reset", **{"reset.fetched": True}) as span:
        span.record_list_state("tv", ListState(epoch=2, filters=FilterSet(category="popular")))
    with telemetry.span("tui.search_commit") as span:
        span.record_search_state(SearchState(query="heat"))

    reset, commit = exporter.get_finished_spans()
    assert reset.attributes["reset.fetched"] is True
    assert reset.attributes["list.resource"] == "tv"
    assert reset.attributes["list.epoch"] == 2
    assert commit.attributes["search.query"] == "heat"


def test_span_attribute_errors_are_contained():
    telemetry, exporter = Telemetry.for_testing()

    with telemetry.span("tui.load_more") as span:
        span.set_attribute("list.items", object())

    assert exporter.get_finished_spans()[0].name == "tui.load_more"


def test_set_and_get_telemetry(monkeypatch):
    monkeypatch.setattr(telemetry_module, "_active", None)
    default = get_telemetry()
    assert get_telemetry() is default

    replacement = Telemetry.noop()
    set_telemetry(replacement)
    assert get_telemetry() is replacement


# ---------------------------------------------------------------------------
# Log file
# ---------------------------------------------------------------------------


def test_log_file_path():
    path = log_file_path("logs", datetime(2026, 10, 19, 8, 30))
    assert path.endswith("tui-20261019.log")


def test_file_logging_writes_json_with_trace_ids(tmp_path, clean_modb_logger):
    path = configure_file_logging(str(tmp_path))
    again = configure_file_logging(str(tmp_path))
    assert path == again
    file_handlers = [h for h in clean_modb_logger.handlers if isinstance(h, logging.FileHandler)]
    assert len(file_handlers) == 1

    telemetry, _ = Telemetry.for_testing()
    telemetry.log.info("outside span")
    with telemetry.span("tui.search_commit"):
        telemetry.log.warning("inside span", extra={"resource": "search", "epoch": 4})

    by_msg = {entry["msg"]: entry for entry in read_entries(path)}
    assert by_msg["outside span"]["trace"] == "0" * 32
    assert by_msg["outside span"]["resource"] is None
    assert by_msg["inside span"]["level"] == "WARNING"
    assert by_msg["inside span"]["trace"] != "0" * 32
    assert by_msg["inside span"]["resource"] == "search"
    assert by_msg["inside span"]["epoch"] == 4


async def test_controllers_log_resource_and_epoch(tmp_path, clean_modb_logger):
    path = configure_file_logging(str(tmp_path))

    lists = PagedListController("movie", AsyncMock(return_value=make_page([1])))
    await lists.reset(FilterSet(category="popular"))
    await lists.reset(FilterSet(category="top_rated"))

    search = SearchController(AsyncMock(side_effect=TimeoutError()), debounce_seconds=10)
    search.set_query("heat")
    await search.submit()

    entries = read_entries(path)
    movie = [e for e in entries if e["resource"] == "movie"]
    assert {e["epoch"] for e in movie} == {1, 2}
    assert any(e["msg"].startswith("reset resource=movie epoch=2") for e in movie)
    failed = [e for e in entries if e["resource"] == "search" and e["level"] == "WARNING"]
    assert len(failed) == 1
    assert failed[0]["epoch"] == search.state.epoch
