"""Data models for the MODB catalog browser.

Snapshots handed to front-ends (ListState, SearchState) are frozen
dataclasses; controllers replace them wholesale on every transition.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class StatusKind(str, Enum):
    """Lifecycle status of a list or search controller."""

    IDLE = "idle"
    LOADING = "loading"
    ERROR = "error"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True, slots=True)
class Status:
    """Controller status; ``message`` is only set for errors."""

    kind: StatusKind = StatusKind.IDLE
    message: str | None = None

    @classmethod
    def error(cls, message: str) -> Status:
        return cls(StatusKind.ERROR, message)

    @property
    def is_idle(self) -> bool:
        return self.kind is StatusKind.IDLE

    @property
    def is_loading(self) -> bool:
        return self.kind is StatusKind.LOADING

    @property
    def is_error(self) -> bool:
        return self.kind is StatusKind.ERROR

    @property
    def is_exhausted(self) -> bool:
        return self.kind is StatusKind.EXHAUSTED

    def __str__(self) -> str:
        if self.message:
            return f"{self.kind.value}: {self.message}"
        return self.kind.value


IDLE = Status(StatusKind.IDLE)
LOADING = Status(StatusKind.LOADING)
EXHAUSTED = Status(StatusKind.EXHAUSTED)


class FilterSet(Mapping[str, str]):
    """Immutable filter name -> value mapping for one paginated series.

    Iteration follows insertion order (it drives display), while equality
    and hashing ignore order so that ``{category, duration}`` and
    ``{duration, category}`` select the same series.
    """

    __slots__ = ("_pairs",)

    def __init__(
        self,
        filters: Mapping[str, str] | Iterable[tuple[str, str]] | None = None,
        **kwargs: str,
    ) -> None:
        pairs: dict[str, str] = {}
        if filters is not None:
            items = filters.items() if isinstance(filters, Mapping) else filters
            for name, value in items:
                pairs[str(name)] = str(value)
        for name, value in kwargs.items():
            pairs[name] = str(value)
        self._pairs = pairs

    def __getitem__(self, name: str) -> str:
        return self._pairs[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._pairs)

    def __len__(self) -> int:
        return len(self._pairs)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FilterSet):
            return self._pairs == other._pairs
        if isinstance(other, Mapping):
            return self._pairs == dict(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(frozenset(self._pairs.items()))

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v!r}" for k, v in self._pairs.items())
        return f"FilterSet({inner})"

    def replace(self, **changes: str) -> FilterSet:
        """Return a copy with the given filters overridden."""
        merged = dict(self._pairs)
        merged.update({k: str(v) for k, v in changes.items()})
        return FilterSet(merged)

    def to_filter_strings(self) -> list[str]:
        """Render as ``name:value`` strings (used in logs and the CLI)."""
        return [f"{name}:{value}" for name, value in self._pairs.items()]

    def is_empty(self) -> bool:
        return not self._pairs


@dataclass(frozen=True, slots=True)
class ResultItem:
    """A catalog record (movie, TV show or person).

    Only ``id`` matters to the controllers. The raw upstream payload is
    carried along for front-ends.
    """

    id: int | str
    media_type: str | None = None
    payload: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_payload(
        cls, payload: Mapping[str, Any], media_type: str | None = None
    ) -> ResultItem:
        """Build from an upstream JSON object.

        ``media_type`` is only a fallback: the payload's own value wins.
        """
        if "id" not in payload:
            raise ValueError(f"catalog record has no id: {dict(payload)!r}")
        return cls(
            id=payload["id"],
            media_type=payload.get("media_type") or media_type,
            payload=dict(payload),
        )

    @property
    def title(self) -> str:
        for key in ("title", "name", "original_title", "original_name"):
            value = self.payload.get(key)
            if value:
                return str(value)
        return f"#{self.id}"

    @property
    def release_year(self) -> str | None:
        date = self.payload.get("release_date") or self.payload.get("first_air_date")
        if date and len(str(date)) >= 4:
            return str(date)[:4]
        return None

    @property
    def rating(self) -> float | None:
        value = self.payload.get("vote_average")
        if value is None:
            return None
        try:
            return round(float(value), 1)
        except (TypeError, ValueError):
            return None

    @property
    def overview(self) -> str:
        return str(self.payload.get("overview") or "")

    @property
    def route(self) -> str:
        """Detail-page route in the ``/{media_type}/details/{id}`` form."""
        return f"/{self.media_type or 'unknown'}/details/{self.id}"


@dataclass(frozen=True, slots=True)
class Page:
    """One page of catalog results, applied atomically."""

    items: tuple[ResultItem, ...]
    page_number: int
    resource: str

    def __post_init__(self) -> None:
        if self.page_number < 1:
            raise ValueError(f"page_number must be >= 1, got {self.page_number}")
        if not isinstance(self.items, tuple):
            object.__setattr__(self, "items", tuple(self.items))


@dataclass(frozen=True, slots=True)
class ListState:
    """Read-only snapshot of a PagedListController."""

    items: tuple[ResultItem, ...] = ()
    next_page: int = 1
    has_more: bool = True
    status: Status = IDLE
    epoch: int = 0
    filters: FilterSet | None = None


@dataclass(frozen=True, slots=True)
class SearchState:
    """Read-only snapshot of a SearchController."""

    query: str = ""
    results: tuple[ResultItem, ...] = ()
    selected_index: int = -1
    status: Status = IDLE
    epoch: int = 0

    @property
    def selected(self) -> ResultItem | None:
        if 0 <= self.selected_index < len(self.results):
            return self.results[self.selected_index]
        return None


@dataclass(frozen=True, slots=True)
class Details:
    """Everything the detail view shows for one movie, show or person.

    ``info`` is the raw ``/{media_type}/{id}`` payload; the other fields
    come from its sub-resources. Sections the endpoint family does not
    offer (credits for movies, recommendations for people) stay empty.
    """

    media_type: str
    id: int | str
    info: Mapping[str, Any] = field(default_factory=dict)
    external_ids: Mapping[str, Any] = field(default_factory=dict)
    recommendations: tuple[ResultItem, ...] = ()
    similar: tuple[ResultItem, ...] = ()
    translations: tuple[str, ...] = ()
    videos: tuple[Mapping[str, Any], ...] = ()
    watch_providers: Mapping[str, Any] = field(default_factory=dict)
    credits: tuple[ResultItem, ...] = ()
    profile_images: int = 0

    @property
    def title(self) -> str:
        for key in ("title", "name", "original_title", "original_name"):
            value = self.info.get(key)
            if value:
                return str(value)
        return f"#{self.id}"

    @property
    def route(self) -> str:
        return f"/{self.media_type}/details/{self.id}"

    @property
    def trailer(self) -> Mapping[str, Any] | None:
        """First video of type ``Trailer``, if any."""
        for video in self.videos:
            if video.get("type") == "Trailer":
                return video
        return None

    @property
    def trailer_url(self) -> str | None:
        trailer = self.trailer
        if trailer is None or not trailer.get("key"):
            return None
        if trailer.get("site") == "YouTube":
            return f"https://www.youtube.com/watch?v={trailer['key']}"
        if trailer.get("site") == "Vimeo":
            return f"https://vimeo.com/{trailer['key']}"
        return None

    @property
    def imdb_url(self) -> str | None:
        imdb_id = self.external_ids.get("imdb_id") or self.info.get("imdb_id")
        if not imdb_id:
            return None
        kind = "name" if self.media_type == "person" else "title"
        return f"https://www.imdb.com/{kind}/{imdb_id}/"

    @property
    def genres(self) -> list[str]:
        return [str(g.get("name")) for g in self.info.get("genres") or () if g.get("name")]

    def provider_names(self, kind: str = "flatrate") -> list[str]:
        """Provider names for ``kind`` (``flatrate``, ``rent`` or ``buy``)."""
        return [
            str(p.get("provider_name"))
            for p in self.watch_providers.get(kind) or ()
            if p.get("provider_name")
        ]
