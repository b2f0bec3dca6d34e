"""
Pagination for discovery results.

Page and page-size inputs are clamped, never rejected: a bad value degrades
to the nearest valid bound (or the default when it is not a number).
"""

import math
from dataclasses import dataclass
from typing import Any

from discovery.models import PaginationMeta

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
# Keeps OFFSET within the range the catalog store accepts
MAX_PAGE = 1_000_000


def coerce_int(value: Any, default: int) -> int:
    """Convert a raw page/limit value, falling back to the default."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        try:
            return int(float(str(value).strip()))
        except (ValueError, OverflowError):
            return default


@dataclass(frozen=True)
class Pagination:
    """A clamped page request.

    Attributes:
        page: 1-indexed page number (1..MAX_PAGE)
        limit: Page size (1..max_page_size)
    """
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    @classmethod
    def clamp(
        cls,
        page: Any = None,
        limit: Any = None,
        default_limit: int = DEFAULT_PAGE_SIZE,
        max_limit: int = MAX_PAGE_SIZE
    ) -> "Pagination":
        """Build a Pagination from raw inputs, clamping out-of-range values."""
        page_num = min(max(1, coerce_int(page, 1)), MAX_PAGE)
        page_size = min(max(1, coerce_int(limit, default_limit)), max_limit)
        return cls(page=page_num, limit=page_size)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def meta(self, total: int) -> PaginationMeta:
        """Page metadata for a result set of ``total`` rows."""
        total = max(0, total)
        total_pages = math.ceil(total / self.limit)
        return PaginationMeta(
            page=self.page,
            limit=self.limit,
            total=total,
            total_pages=total_pages,
            has_next_page=self.page < total_pages,
            has_prev_page=self.page > 1,
        )

    def expected_count(self, total: int) -> int:
        """Number of rows this page holds for a result set of ``total`` rows."""
        return max(0, min(self.limit, total - self.offset))
