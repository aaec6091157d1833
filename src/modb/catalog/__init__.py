"""TMDB catalog access: resource vocabulary and the async REST client."""

from modb.catalog.client import CatalogError, TMDBClient
from modb.catalog.resources import (
    DETAIL_SECTIONS,
    MOVIE,
    PEOPLE,
    RESOURCES,
    TRENDING,
    TV,
    FilterSpec,
    Resource,
    detail_sections,
    format_option,
    get_resource,
)

__all__ = [
    "CatalogError",
    "DETAIL_SECTIONS",
    "FilterSpec",
    "MOVIE",
    "PEOPLE",
    "RESOURCES",
    "Resource",
    "TMDBClient",
    "TRENDING",
    "TV",
    "detail_sections",
    "format_option",
    "get_resource",
]
