"""
Property-based tests for pagination.

These tests verify that page inputs are clamped rather than rejected and
that page metadata stays consistent with the totals.
"""

import math

from hypothesis import given, settings, strategies as st

from discovery.pagination import MAX_PAGE, Pagination


raw_values = st.one_of(
    st.none(),
    st.integers(min_value=-10**9, max_value=10**12),
    st.integers(min_value=-1000, max_value=1000).map(str),
    st.text(max_size=8),
    st.floats(allow_nan=True, allow_infinity=True).map(str),
)
totals = st.integers(min_value=0, max_value=5000)


@given(page=raw_values, limit=raw_values)
@settings(max_examples=200)
def test_inputs_are_clamped(page, limit):
    """
    **Feature: catalog-discovery, Property 4: Clamp, never error**

    For any page and limit input, pagination produces a valid page within
    bounds instead of raising.
    """
    pagination = Pagination.clamp(page, limit)

    assert 1 <= pagination.page <= MAX_PAGE
    assert 1 <= pagination.limit <= 100
    assert pagination.offset == (pagination.page - 1) * pagination.limit


@given(
    page=st.integers(min_value=1, max_value=600),
    limit=st.integers(min_value=1, max_value=100),
    total=totals
)
@settings(max_examples=200)
def test_page_metadata_consistency(page, limit, total):
    """
    **Feature: catalog-discovery, Property 2: Page shape**

    Every page but the last holds exactly ``limit`` rows; flags agree with
    page and totalPages.
    """
    pagination = Pagination.clamp(page, limit)
    meta = pagination.meta(total)
    count = pagination.expected_count(total)

    assert meta.total_pages == math.ceil(total / limit)
    assert meta.has_prev_page == (page > 1)
    assert meta.has_next_page == (page < meta.total_pages)
    assert 0 <= count <= limit
    assert count <= max(0, total - pagination.offset)
    if page < meta.total_pages:
        assert count == limit


def test_defaults():
    pagination = Pagination.clamp()
    assert (pagination.page, pagination.limit) == (1, 10)


def test_examples_of_clamping():
    assert Pagination.clamp("0", "0") == Pagination(page=1, limit=1)
    assert Pagination.clamp("-3", "500") == Pagination(page=1, limit=100)
    assert Pagination.clamp("abc", "xyz") == Pagination(page=1, limit=10)
    assert Pagination.clamp("2.7", "15.2") == Pagination(page=2, limit=15)
    assert Pagination.clamp(10**15, 20) == Pagination(page=MAX_PAGE, limit=20)


def test_wire_names_are_camel_case():
    body = Pagination(page=2, limit=5).meta(12).model_dump(by_alias=True)
    assert body == {
        "page": 2,
        "limit": 5,
        "total": 12,
        "totalPages": 3,
        "hasNextPage": True,
        "hasPrevPage": True,
    }
