"""
Property-based tests for filter compilation.

These tests verify universal properties that should hold across all valid
executions of the filter compiler and the predicates it builds.
"""

import pytest
from hypothesis import given, settings, strategies as st, assume
from datetime import date

from discovery.catalog import load_sample_catalog
from discovery.error_handling import InvalidFilter
from discovery.filtering import (
    AllOf,
    Contains,
    Equals,
    FilterCompiler,
    MatchAll,
    Range,
    all_of,
    any_of,
)
from discovery.models import (
    DifficultyLevel,
    FilterSet,
    HolidayStatus,
    HolidayTheme,
)


ITEMS = load_sample_catalog()
compiler = FilterCompiler()

# Strategy for generating price bounds as request strings
price_bounds = st.one_of(
    st.none(),
    st.decimals(min_value=0, max_value=3000, places=2).map(str)
)

# Strategy for generating duration bounds
duration_bounds = st.one_of(st.none(), st.integers(min_value=0, max_value=10).map(str))

# Strategy for theme/difficulty values, including junk and odd casing
themes = st.one_of(
    st.none(),
    st.sampled_from([t.value for t in HolidayTheme]),
    st.sampled_from([t.value.lower() for t in HolidayTheme]),
    st.text(max_size=12)
)
difficulties = st.one_of(
    st.none(),
    st.sampled_from([d.value for d in DifficultyLevel]),
    st.text(max_size=12)
)

# Strategy for location fragments drawn from the sample data
countries = st.one_of(
    st.none(),
    st.sampled_from(["usa", "United", "kingdom", "ROMANIA", "fr", "Ukraine", "Narnia"])
)
cities = st.one_of(st.none(), st.sampled_from(["salem", "Edin", "paris", "bras", "Gotham"]))

# Strategy for ISO dates in the sample data's range
iso_dates = st.one_of(
    st.none(),
    st.dates(min_value=date(2024, 1, 1), max_value=date(2027, 12, 31)).map(date.isoformat)
)


@given(
    country=countries,
    city=cities,
    theme=themes,
    difficulty=difficulties,
    min_price=price_bounds,
    max_price=price_bounds,
    min_duration=duration_bounds,
    max_duration=duration_bounds,
    start_date=iso_dates,
    end_date=iso_dates,
)
@settings(max_examples=200)
def test_no_false_positives(
    country, city, theme, difficulty, min_price, max_price,
    min_duration, max_duration, start_date, end_date
):
    """
    **Feature: catalog-discovery, Property 1: No false positives**

    For any valid filter combination, every item the compiled predicate
    accepts satisfies every requested filter.
    """
    filters = FilterSet(
        country=country, city=city, theme=theme, difficulty=difficulty,
        min_price=min_price, max_price=max_price,
        min_duration=min_duration, max_duration=max_duration,
        start_date=start_date, end_date=end_date,
    )
    compiled = compiler.compile(filters)

    for item in ITEMS:
        if not compiled.predicate.matches(item):
            continue

        assert item.status == HolidayStatus.PUBLISHED
        if "city" in compiled.applied:
            assert city.lower() in item.city.lower()
        if "theme" in compiled.applied:
            assert item.theme.value == compiled.applied["theme"]
        if "difficulty" in compiled.applied:
            assert item.difficulty.value == compiled.applied["difficulty"]
        if min_price is not None:
            assert item.base_price >= float(min_price)
        if max_price is not None:
            assert item.base_price <= float(max_price)
        if min_duration is not None:
            assert item.duration_days >= int(min_duration)
        if max_duration is not None:
            assert item.duration_days <= int(max_duration)
        if start_date is not None and not item.is_year_round:
            assert item.start_date >= date.fromisoformat(start_date)
        if end_date is not None and not item.is_year_round:
            assert item.end_date <= date.fromisoformat(end_date)


@given(raw=st.text(max_size=20))
@settings(max_examples=100)
def test_unknown_theme_is_ignored(raw):
    """
    For any theme value outside the enumeration, the filter is dropped
    rather than rejected.
    """
    normalized = raw.strip().upper().replace("-", "_").replace(" ", "_")
    assume(normalized not in {t.value for t in HolidayTheme})

    compiled = compiler.compile(FilterSet(theme=raw))

    assert "theme" not in compiled.applied
    assert compiled.predicate == Equals("status", HolidayStatus.PUBLISHED)


@given(raw=st.one_of(st.none(), st.text(max_size=12)))
@settings(max_examples=100)
def test_status_defaults_to_published(raw):
    """
    For any absent or unrecognised status, the effective status is PUBLISHED.
    """
    normalized = (raw or "").strip().upper().replace("-", "_").replace(" ", "_")
    assume(normalized not in {s.value for s in HolidayStatus})

    compiled = compiler.compile(FilterSet(status=raw))

    assert compiled.applied["status"] == "PUBLISHED"


@pytest.mark.parametrize("raw, expected", [
    ("draft", HolidayStatus.DRAFT),
    ("ARCHIVED", HolidayStatus.ARCHIVED),
    ("sold-out", HolidayStatus.SOLD_OUT),
    ("Published", HolidayStatus.PUBLISHED),
])
def test_status_is_case_insensitive(raw, expected):
    compiled = compiler.compile(FilterSet(status=raw))
    assert compiled.applied["status"] == expected.value


@pytest.mark.parametrize("field, value, wire_name", [
    ("min_price", "cheap", "minPrice"),
    ("max_price", "-5", "maxPrice"),
    ("max_price", "NaN", "maxPrice"),
    ("min_duration", "2.5", "minDuration"),
    ("max_duration", "-1", "maxDuration"),
    ("min_duration", "99999999999", "minDuration"),
    ("max_duration", "3651", "maxDuration"),
    ("min_rating", "6", "minRating"),
    ("start_date", "31/12/2026", "startDate"),
    ("end_date", "tomorrow", "endDate"),
])
def test_malformed_values_raise_invalid_filter(field, value, wire_name):
    """Malformed numeric and date values name the offending parameter."""
    with pytest.raises(InvalidFilter) as exc_info:
        compiler.compile(FilterSet(**{field: value}))

    assert exc_info.value.field == wire_name
    assert exc_info.value.status_code == 400


def test_country_alias_matches_full_name():
    """Scenario: country=usa finds items in the United States."""
    compiled = compiler.compile(FilterSet(country="usa", min_price="500", max_price="1000"))

    matched = {item.id for item in ITEMS if compiled.predicate.matches(item)}

    assert "hol-salem-witch-trials" in matched
    assert compiled.applied == {
        "country": "usa", "minPrice": 500.0, "maxPrice": 1000.0, "status": "PUBLISHED",
    }


def test_draft_status_excludes_published_item():
    """Scenario: the Salem item disappears when status=draft is requested."""
    compiled = compiler.compile(
        FilterSet(country="usa", min_price="500", max_price="1000", status="draft")
    )

    matched = {item.id for item in ITEMS if compiled.predicate.matches(item)}

    assert "hol-salem-witch-trials" not in matched
    assert matched == {"hol-new-orleans-voodoo"}


def test_year_round_items_match_any_date_window():
    """Year-round items satisfy date filters that exclude their nominal dates."""
    compiled = compiler.compile(FilterSet(start_date="2030-01-01", end_date="2030-01-31"))

    matched = {item.id for item in ITEMS if compiled.predicate.matches(item)}

    assert matched == {
        item.id for item in ITEMS
        if item.is_year_round and item.status == HolidayStatus.PUBLISHED
    }


def test_predicate_helpers_flatten_and_short_circuit():
    """all_of drops MatchAll and flattens; any_of collapses on MatchAll."""
    a = Contains("city", "salem")
    b = Range("base_price", lower=100)

    assert all_of() == MatchAll()
    assert all_of(MatchAll(), a) == a
    assert all_of(all_of(a, b), a) == AllOf((a, b, a))
    assert any_of(a, MatchAll()) == MatchAll()


@pytest.mark.parametrize("build", [
    lambda: Contains("base_price", "1"),
    lambda: Range("title", lower=1),
    lambda: Range("base_price"),
    lambda: Equals("keywords", "x"),
])
def test_unsupported_predicates_fail_at_construction(build):
    with pytest.raises(ValueError):
        build()


def test_duration_ceiling_is_inclusive():
    compiled = compiler.compile(FilterSet(max_duration="3650"))

    assert compiled.applied["maxDuration"] == 3650
