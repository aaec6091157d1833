"""Tracing and structured logging for browse sessions.

Spans describe what the user did to a list or the search box and carry the
controller snapshot that resulted (``list.*`` / ``search.*`` attributes).
Log records are written as JSON lines that keep the ``resource`` and
``epoch`` a controller logged them under, so ``modb logs`` can replay one
list's history (every reset, page and failure of, say, ``movie`` epoch 3).
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from modb.models import ListState, SearchState

LOGGER_NAME = "modb.tui"
TRACER_NAME = "modb.tui"
LOG_FILE_PREFIX = "tui-"

# Fields copied from a record's ``extra`` into its JSON line.
BROWSE_FIELDS = ("resource", "epoch")

_NO_TRACE = "0" * 32
_NO_SPAN = "0" * 16


def list_state_attributes(resource: str, state: ListState) -> dict[str, Any]:
    """Span attributes describing one list snapshot."""
    return {
        "list.resource": resource,
        "list.epoch": state.epoch,
        "list.next_page": state.next_page,
        "list.items": len(state.items),
        "list.has_more": state.has_more,
        "list.status": state.status.kind.value,
        "list.filters": ",".join(state.filters.to_filter_strings()) if state.filters else "",
    }


def search_state_attributes(state: SearchState) -> dict[str, Any]:
    """Span attributes describing one search snapshot."""
    return {
        "search.query": state.query,
        "search.results": len(state.results),
        "search.selected_index": state.selected_index,
        "search.status": state.status.kind.value,
        "search.epoch": state.epoch,
    }


class BrowseSpan:
    """Handle yielded by ``Telemetry.span``; attribute writes never raise."""

    def __init__(self, span: Any) -> None:
        self._span = span

    def set_attribute(self, key: str, value: Any) -> None:
        try:
            self._span.set_attribute(key, value)
        except Exception:  # instrumentation must not break the UI
            pass

    def record_list_state(self, resource: str, state: ListState) -> None:
        for key, value in list_state_attributes(resource, state).items():
            self.set_attribute(key, value)

    def record_search_state(self, state: SearchState) -> None:
        for key, value in search_state_attributes(state).items():
            self.set_attribute(key, value)


class _BrowseLogAdapter(logging.LoggerAdapter):
    """Stamp the active trace and span ids onto each record."""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:  # type: ignore[override]
        extra = dict(self.extra or {})
        extra.update(kwargs.get("extra") or {})
        ctx = trace.get_current_span().get_span_context()
        if ctx.is_valid:
            extra["trace_id"] = format(ctx.trace_id, "032x")
            extra["span_id"] = format(ctx.span_id, "016x")
        kwargs["extra"] = extra
        return msg, kwargs


class Telemetry:
    """Tracer plus trace-aware logger shared by the app and its widgets."""

    def __init__(self, tracer: Any) -> None:
        self._tracer = tracer
        self.log = _BrowseLogAdapter(logging.getLogger(LOGGER_NAME), {})

    @contextmanager
    def span(self, name: str, **attributes: Any) -> Iterator[BrowseSpan]:
        """Open a span such as ``tui.list_reset`` with initial ``attributes``."""
        with self._tracer.start_as_current_span(name) as otel_span:
            handle = BrowseSpan(otel_span)
            for key, value in attributes.items():
                handle.set_attribute(key, value)
            yield handle

    @classmethod
    def for_testing(cls) -> tuple[Telemetry, InMemorySpanExporter]:
        """Telemetry recording into an in-memory exporter."""
        exporter = InMemorySpanExporter()
        provider = TracerProvider()
        provider.add_span_processor(SimpleSpanProcessor(exporter))
        return cls(provider.get_tracer(TRACER_NAME)), exporter

    @classmethod
    def noop(cls) -> Telemetry:
        return cls(TracerProvider().get_tracer(TRACER_NAME))


# Installed by ModbApp.__init__; widgets read it instead of walking to the App.
_active: Telemetry | None = None


def get_telemetry() -> Telemetry:
    global _active
    if _active is None:
        _active = Telemetry.noop()
    return _active


def set_telemetry(telemetry: Telemetry) -> None:
    global _active
    _active = telemetry


class BrowseJsonFormatter(logging.Formatter):
    """One JSON object per line.

    Keys: ``ts``, ``level``, ``logger``, ``resource``, ``epoch``, ``trace``,
    ``span`` and ``msg``. ``resource``/``epoch`` are null for records not
    tied to a list.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
        }
        for name in BROWSE_FIELDS:
            entry[name] = getattr(record, name, None)
        entry["trace"] = getattr(record, "trace_id", _NO_TRACE)
        entry["span"] = getattr(record, "span_id", _NO_SPAN)
        entry["msg"] = record.getMessage()
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def log_file_path(log_dir: str, when: datetime | None = None) -> str:
    stamp = (when or datetime.now()).strftime("%Y%m%d")
    return os.path.join(log_dir, f"{LOG_FILE_PREFIX}{stamp}.log")


def configure_file_logging(log_dir: str = "logs") -> str:
    """Route every ``modb.*`` logger (controllers, client, TUI) to today's file.

    Idempotent: a second call finds the existing handler and returns its
    path.
    """
    os.makedirs(log_dir, exist_ok=True)
    path = log_file_path(log_dir)

    root = logging.getLogger("modb")
    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler):
            return handler.baseFilename
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(BrowseJsonFormatter())
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)
    return path
