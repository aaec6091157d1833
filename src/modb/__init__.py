"""MODB: browse movies, TV shows and people from the TMDB catalog."""

__version__ = "0.1.0"

from modb.models import FilterSet, ListState, Page, ResultItem, SearchState, Status, StatusKind

__all__ = [
    "FilterSet",
    "ListState",
    "Page",
    "ResultItem",
    "SearchState",
    "Status",
    "StatusKind",
    "__version__",
]
