"""Tests for the catalog resource table and filter validation."""

from __future__ import annotations

import pytest

from modb.catalog import (
    MOVIE,
    PEOPLE,
    RESOURCES,
    TRENDING,
    TV,
    detail_sections,
    format_option,
    get_resource,
)
from modb.models import FilterSet


def test_resource_order():
    assert list(RESOURCES) == ["movie", "tv", "trending", "people"]


def test_default_filters():
    assert MOVIE.default_filters() == FilterSet(category="now_playing")
    assert TV.default_filters() == FilterSet(category="airing_today")
    assert TRENDING.default_filters() == FilterSet(category="all", duration="day")
    assert PEOPLE.default_filters() == FilterSet()


@pytest.mark.parametrize(
    "resource,filters,path",
    [
        (MOVIE, FilterSet(category="top_rated"), "/movie/top_rated"),
        (TV, FilterSet(category="on_the_air"), "/tv/on_the_air"),
        (TRENDING, FilterSet(category="tv", duration="week"), "/trending/tv/week"),
        (TRENDING, FilterSet(duration="week"), "/trending/all/week"),
        (PEOPLE, FilterSet(), "/person/popular"),
    ],
)
def test_build_path(resource, filters, path):
    assert resource.build_path(filters) == path


def test_validate_rejects_unknown_value():
    with pytest.raises(ValueError, match="choose from: now_playing, popular"):
        MOVIE.validate(FilterSet(category="latest"))


def test_validate_rejects_unknown_name():
    with pytest.raises(ValueError, match="does not accept"):
        PEOPLE.validate(FilterSet(category="popular"))


def test_media_type_for():
    assert MOVIE.media_type_for(FilterSet(category="popular")) == "movie"
    assert PEOPLE.media_type_for(FilterSet()) == "person"
    assert TRENDING.media_type_for(FilterSet(category="tv", duration="day")) == "tv"
    assert TRENDING.media_type_for(FilterSet(category="all", duration="day")) is None


def test_filter_spec_lookup():
    assert TRENDING.filter_spec("duration").options == ("day", "week")
    with pytest.raises(KeyError):
        MOVIE.filter_spec("duration")


def test_get_resource_unknown():
    with pytest.raises(KeyError, match="choose from: movie, tv, trending, people"):
        get_resource("books")


def test_format_option():
    assert format_option("now_playing") == "Now Playing"
    assert format_option("day") == "Day"


def test_detail_sections_per_media_type():
    assert "aggregate_credits" in detail_sections("tv")
    assert "aggregate_credits" not in detail_sections("movie")
    assert detail_sections("person") == ("external_ids", "combined_credits", "images")
    assert "watch/providers" in detail_sections("movie")


def test_detail_sections_unknown_media_type():
    with pytest.raises(KeyError, match="choose from: movie, tv, person"):
        detail_sections("collection")
