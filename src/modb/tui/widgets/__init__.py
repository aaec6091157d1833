"""Widgets for the MODB terminal browser."""

from .catalog_list import CatalogCard, CatalogList
from .details_pane import DetailsPane
from .filter_panel import FilterPanel, FilterSelect
from .search_bar import SearchBar, SearchResults

__all__ = [
    "CatalogCard",
    "CatalogList",
    "DetailsPane",
    "FilterPanel",
    "FilterSelect",
    "SearchBar",
    "SearchResults",
]
