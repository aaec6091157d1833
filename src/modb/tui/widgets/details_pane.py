"""Detail page for one movie, show or person.

DetailsPane extends RichLog and writes the same renderables the
``modb show`` command prints: header, facts, cast and related titles.
"""

from __future__ import annotations

from rich.text import Text
from textual.widgets import RichLog

from modb.formatter import details_renderables
from modb.models import Details, ResultItem
from modb.tui.telemetry import get_telemetry


class DetailsPane(RichLog):
    """Scrollable detail view; Escape returns to the browse lists."""

    DEFAULT_CSS = """
    DetailsPane {
        width: 100%;
        height: 1fr;
        background: $surface;
        scrollbar-gutter: stable;
    }
    """

    def __init__(self) -> None:
        super().__init__(id="details", wrap=True, markup=False)
        self.details: Details | None = None

    def show_loading(self, item: ResultItem) -> None:
        self.clear()
        self.details = None
        self.write(Text(f"Loading {item.title} ({item.route})...", style="dim"))

    def show_details(self, details: Details) -> None:
        with get_telemetry().span("widget.details_render") as span:
            span.set_attribute("details.route", details.route)
            span.set_attribute("details.credits", len(details.credits))
            self.clear()
            self.details = details
            for renderable in details_renderables(details):
                self.write(renderable)
            self.scroll_home(animate=False)

    def show_error(self, item: ResultItem, message: str) -> None:
        self.clear()
        self.details = None
        self.write(Text(f"Could not load {item.title}: {message}", style="bold red"))
        self.write(Text("Press Escape to go back.", style="dim"))
