"""Async TMDB REST client.

Implements the two collaborator calls the browse controllers depend on:

  - ``fetch_page(resource, filters, page)`` -> ``GET /movie/popular?page=N`` etc.
  - ``fetch_search(query)`` -> ``GET /search/multi?query=...``

plus ``fetch_details(media_type, id)``, which gathers a title or person
and its sub-resources (credits, videos, providers, ...) for the detail view.

Every failure mode (transport, HTTP status, malformed body) surfaces as
``CatalogError`` with a readable message. No retries happen here.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from modb.catalog.resources import SEARCH_PATH, detail_sections, get_resource
from modb.config import V4_ACCESS_TOKEN, ClientConfig, credential_kind
from modb.models import Details, FilterSet, Page, ResultItem

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Raised when the catalog API cannot be reached or answers badly."""


class TMDBClient:
    """Thin async wrapper over the TMDB v3 list and search endpoints.

    Usage::

        async with TMDBClient(load_client_config()) as client:
            page = await client.fetch_page("movie", FilterSet(category="popular"), 1)
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not config.api_key:
            raise ValueError("TMDBClient requires an API key")
        self._config = config
        headers = {"Accept": "application/json"}
        params: dict[str, str] = {"language": config.language}
        if credential_kind(config.api_key) == V4_ACCESS_TOKEN:
            headers["Authorization"] = f"Bearer {config.api_key}"
        else:
            params["api_key"] = config.api_key
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            headers=headers,
            params=params,
            timeout=config.timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> TMDBClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_page(self, resource: str, filters: FilterSet, page: int) -> Page:
        """Fetch one page of a browse resource.

        Raises:
            CatalogError: On any transport, HTTP or payload failure.
        """
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        try:
            spec = get_resource(resource)
            path = spec.build_path(filters)
        except (KeyError, ValueError) as exc:
            raise CatalogError(str(exc).strip("'\"")) from exc

        data = await self._get_json(path, {"page": page})
        items = self._parse_results(data, path, spec.media_type_for(filters))
        logger.debug("fetched %s page=%d items=%d", path, page, len(items))
        return Page(items=items, page_number=page, resource=resource)

    async def fetch_search(self, query: str) -> Page:
        """Run a multi search (movies, shows and people in one list).

        Raises:
            CatalogError: On any transport, HTTP or payload failure.
        """
        data = await self._get_json(SEARCH_PATH, {"query": query})
        items = self._parse_results(data, SEARCH_PATH, None)
        logger.debug("search query=%r items=%d", query, len(items))
        return Page(items=items, page_number=1, resource="search")

    async def fetch_details(self, media_type: str, item_id: int | str) -> Details:
        """Fetch a movie, show or person together with its sub-resources.

        All requests run concurrently; any one failing fails the whole call,
        so the detail view never shows half a record.

        Raises:
            CatalogError: On an unknown media type or any request failure.
        """
        try:
            sections = detail_sections(media_type)
        except KeyError as exc:
            raise CatalogError(str(exc).strip("'\"")) from exc

        base = f"/{media_type}/{item_id}"
        payloads = await asyncio.gather(
            self._get_json(base, {}),
            *(self._get_json(f"{base}/{section}", {}) for section in sections),
        )
        info, extra = payloads[0], dict(zip(sections, payloads[1:]))
        logger.debug("fetched details %s sections=%d", base, len(sections))

        related: dict[str, tuple[ResultItem, ...]] = {}
        for section in ("recommendations", "similar"):
            if section in extra:
                related[section] = self._parse_results(
                    extra[section], f"{base}/{section}", media_type
                )

        credits: tuple[ResultItem, ...] = ()
        if "aggregate_credits" in extra:
            credits = self._parse_records(extra["aggregate_credits"].get("cast"), "person")
        elif "combined_credits" in extra:
            credits = self._parse_records(extra["combined_credits"].get("cast"), None)

        providers = extra.get("watch/providers", {}).get("results") or {}
        return Details(
            media_type=media_type,
            id=info.get("id", item_id),
            info=info,
            external_ids=extra.get("external_ids", {}),
            recommendations=related.get("recommendations", ()),
            similar=related.get("similar", ()),
            translations=tuple(
                str(t["english_name"])
                for t in extra.get("translations", {}).get("translations") or ()
                if isinstance(t, dict) and t.get("english_name")
            ),
            videos=tuple(
                v for v in extra.get("videos", {}).get("results") or () if isinstance(v, dict)
            ),
            watch_providers=providers.get(self._config.watch_region) or {},
            credits=credits,
            profile_images=len(extra.get("images", {}).get("profiles") or ()),
        )

    async def _get_json(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self._client.get(path, params=params)
        except httpx.TimeoutException as exc:
            raise CatalogError(f"Request to {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise CatalogError(f"Request to {path} failed: {exc}") from exc

        if response.is_error:
            detail = ""
            try:
                detail = response.json().get("status_message", "")
            except (ValueError, AttributeError):
                pass
            message = f"{response.status_code} {response.reason_phrase} for {path}"
            if detail:
                message = f"{message}: {detail}"
            raise CatalogError(message)

        try:
            data = response.json()
        except ValueError as exc:
            raise CatalogError(f"Malformed JSON from {path}") from exc
        if not isinstance(data, dict):
            raise CatalogError(f"Unexpected payload from {path}")
        return data

    @staticmethod
    def _parse_results(
        data: dict[str, Any], path: str, media_type: str | None
    ) -> tuple[ResultItem, ...]:
        results = data.get("results")
        if not isinstance(results, list):
            raise CatalogError(f"Missing results in response from {path}")
        return TMDBClient._parse_records(results, media_type, path)

    @staticmethod
    def _parse_records(
        records: object, media_type: str | None, path: str = "credits"
    ) -> tuple[ResultItem, ...]:
        items: list[ResultItem] = []
        for raw in records if isinstance(records, list) else ():
            if not isinstance(raw, dict) or "id" not in raw:
                logger.warning("skipping malformed record from %s: %r", path, raw)
                continue
            items.append(ResultItem.from_payload(raw, media_type=media_type))
        return tuple(items)
