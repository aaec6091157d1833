"""Browsable catalog resources and their filter vocabularies.

Each resource maps a FilterSet onto a TMDB list endpoint. The first option
of every filter is its default.
"""

from __future__ import annotations

from dataclasses import dataclass

from modb.models import FilterSet

SEARCH_PATH = "/search/multi"


@dataclass(frozen=True)
class FilterSpec:
    """One selectable filter (e.g. ``category``) and its allowed values."""

    name: str
    label: str
    options: tuple[str, ...]

    @property
    def default(self) -> str:
        return self.options[0]


@dataclass(frozen=True)
class Resource:
    """A paginated list endpoint such as ``/movie/{category}``."""

    name: str
    label: str
    path_template: str
    filters: tuple[FilterSpec, ...] = ()
    media_type: str | None = None

    def default_filters(self) -> FilterSet:
        return FilterSet((spec.name, spec.default) for spec in self.filters)

    def filter_spec(self, name: str) -> FilterSpec:
        for spec in self.filters:
            if spec.name == name:
                return spec
        raise KeyError(name)

    def validate(self, filters: FilterSet) -> FilterSet:
        """Check names and values against this resource's vocabulary.

        Missing filters are filled in with their defaults.

        Raises:
            ValueError: On an unknown filter name or value.
        """
        known = {spec.name for spec in self.filters}
        unknown = [name for name in filters if name not in known]
        if unknown:
            raise ValueError(
                f"{self.name} does not accept filter(s) {', '.join(sorted(unknown))}"
            )
        resolved: dict[str, str] = {}
        for spec in self.filters:
            value = filters.get(spec.name, spec.default)
            if value not in spec.options:
                raise ValueError(
                    f"invalid {spec.name} {value!r} for {self.name}; "
                    f"choose from: {', '.join(spec.options)}"
                )
            resolved[spec.name] = value
        return FilterSet(resolved)

    def build_path(self, filters: FilterSet) -> str:
        return self.path_template.format(**dict(self.validate(filters)))

    def media_type_for(self, filters: FilterSet) -> str | None:
        """Media type implied by the endpoint, used when upstream omits it."""
        if self.media_type is not None:
            return self.media_type
        # trending/movie and trending/tv pin the type; trending/all does not.
        category = filters.get("category")
        if category in ("movie", "tv"):
            return category
        return None


MOVIE = Resource(
    name="movie",
    label="Movies",
    path_template="/movie/{category}",
    filters=(
        FilterSpec(
            "category",
            "Category",
            ("now_playing", "popular", "top_rated", "upcoming"),
        ),
    ),
    media_type="movie",
)

TV = Resource(
    name="tv",
    label="TV Shows",
    path_template="/tv/{category}",
    filters=(
        FilterSpec(
            "category",
            "Category",
            ("airing_today", "on_the_air", "popular", "top_rated"),
        ),
    ),
    media_type="tv",
)

TRENDING = Resource(
    name="trending",
    label="Trending",
    path_template="/trending/{category}/{duration}",
    filters=(
        FilterSpec("category", "Category", ("all", "movie", "tv")),
        FilterSpec("duration", "Duration", ("day", "week")),
    ),
)

PEOPLE = Resource(
    name="people",
    label="People",
    path_template="/person/popular",
    media_type="person",
)

RESOURCES: dict[str, Resource] = {
    r.name: r for r in (MOVIE, TV, TRENDING, PEOPLE)
}


def get_resource(name: str) -> Resource:
    """Look up a resource by name.

    Raises:
        KeyError: With the list of known names.
    """
    try:
        return RESOURCES[name]
    except KeyError:
        raise KeyError(
            f"unknown resource {name!r}; choose from: {', '.join(RESOURCES)}"
        ) from None


def format_option(value: str) -> str:
    """``now_playing`` -> ``Now Playing``."""
    return " ".join(word.capitalize() for word in value.split("_"))


# Sub-resources fetched for a detail view, keyed by media type.
DETAIL_SECTIONS: dict[str, tuple[str, ...]] = {
    "movie": (
        "external_ids",
        "recommendations",
        "similar",
        "translations",
        "videos",
        "watch/providers",
    ),
    "tv": (
        "external_ids",
        "recommendations",
        "similar",
        "translations",
        "videos",
        "aggregate_credits",
        "watch/providers",
    ),
    "person": (
        "external_ids",
        "combined_credits",
        "images",
    ),
}


def detail_sections(media_type: str) -> tuple[str, ...]:
    """Sub-resource paths for ``media_type``.

    Raises:
        KeyError: When the media type has no detail page.
    """
    try:
        return DETAIL_SECTIONS[media_type]
    except KeyError:
        raise KeyError(
            f"no detail page for media type {media_type!r}; "
            f"choose from: {', '.join(DETAIL_SECTIONS)}"
        ) from None
