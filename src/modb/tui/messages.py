"""Textual messages exchanged between MODB widgets and the App.

Widgets never talk to each other or to the controllers directly: they post
these messages, the App forwards them to the controllers, and controller
state changes flow back down as re-renders.
"""

from __future__ import annotations

from textual.message import Message

from modb.models import FilterSet, ResultItem


class QueryChanged(Message):
    """Search input text changed (every keystroke)."""

    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__()


class SelectionMoved(Message):
    """Up (-1) or Down (+1) pressed in the search box."""

    def __init__(self, direction: int) -> None:
        self.direction = direction
        super().__init__()


class SelectionCommitted(Message):
    """Enter pressed in the search box."""


class FilterChanged(Message):
    """A filter dropdown changed for the given resource."""

    def __init__(self, resource: str, filters: FilterSet) -> None:
        self.resource = resource
        self.filters = filters
        super().__init__()


class LoadMoreRequested(Message):
    """The catalog list scrolled close to its bottom edge."""

    def __init__(self, resource: str) -> None:
        self.resource = resource
        super().__init__()


class ItemOpened(Message):
    """A catalog card was clicked; show its detail page."""

    def __init__(self, item: ResultItem) -> None:
        self.item = item
        super().__init__()
