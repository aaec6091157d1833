"""List aggregation and type-ahead search controllers.

Front-ends (TUI, CLI) import from this package only.
"""

from modb.browse.paged_list import FetchPage, PagedListController
from modb.browse.search import FetchSearch, SearchController
from modb.browse.sequencing import EpochFence, StateObservers, merge_unique

__all__ = [
    "EpochFence",
    "FetchPage",
    "FetchSearch",
    "PagedListController",
    "SearchController",
    "StateObservers",
    "merge_unique",
]
