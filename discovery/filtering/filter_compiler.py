"""
Filter compiler for catalog discovery.

Turns the raw structured filters of a request into a Predicate the catalog
accessors can execute, plus an echo of the filters actually applied.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional, Type

from discovery.error_handling.errors import InvalidFilter
from discovery.models import DifficultyLevel, FilterSet, HolidayStatus, HolidayTheme
from .predicates import Contains, Equals, Predicate, Range, all_of, any_of

logger = logging.getLogger(__name__)


# Common abbreviations callers type for country names
COUNTRY_ALIASES = {
    "usa": "united states",
    "us": "united states",
    "u.s.": "united states",
    "u.s.a.": "united states",
    "america": "united states",
    "uk": "united kingdom",
    "u.k.": "united kingdom",
    "britain": "united kingdom",
    "great britain": "united kingdom",
    "uae": "united arab emirates",
    "czechia": "czech republic",
}

MAX_RATING = 5.0

# Ten years; also keeps bounds inside the INTEGER duration columns
MAX_DURATION_DAYS = 3650


@dataclass
class CompiledFilters:
    """Predicate for the accessor plus the applied-filter echo."""
    predicate: Predicate
    applied: Dict[str, Any] = field(default_factory=dict)


def _clean(raw: Optional[str]) -> Optional[str]:
    """Trim a raw value; blank strings count as absent."""
    if raw is None:
        return None
    value = str(raw).strip()
    return value or None


def _parse_enum(enum_cls: Type[Enum], raw: str) -> Optional[Enum]:
    """Case-insensitive enum lookup that tolerates spaces and dashes."""
    key = raw.strip().upper().replace("-", "_").replace(" ", "_")
    try:
        return enum_cls(key)
    except ValueError:
        return None


def _parse_price(wire_name: str, raw: str) -> float:
    try:
        value = Decimal(raw)
    except InvalidOperation:
        raise InvalidFilter(wire_name, f"{wire_name} must be a number")
    if not value.is_finite() or value < 0:
        raise InvalidFilter(wire_name, f"{wire_name} must be a non-negative number")
    return float(value)


def _parse_duration(wire_name: str, raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise InvalidFilter(wire_name, f"{wire_name} must be a whole number of days")
    if value < 0:
        raise InvalidFilter(wire_name, f"{wire_name} must not be negative")
    if value > MAX_DURATION_DAYS:
        raise InvalidFilter(wire_name, f"{wire_name} must be at most {MAX_DURATION_DAYS} days")
    return value


def _parse_rating(wire_name: str, raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise InvalidFilter(wire_name, f"{wire_name} must be a number")
    if not 0 <= value <= MAX_RATING:
        raise InvalidFilter(wire_name, f"{wire_name} must be between 0 and {MAX_RATING:g}")
    return value


def _parse_date(wire_name: str, raw: str) -> date:
    try:
        return date.fromisoformat(raw)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(raw).date()
    except ValueError:
        raise InvalidFilter(wire_name, f"{wire_name} must be an ISO-8601 date (YYYY-MM-DD)")


class FilterCompiler:
    """Compiles a FilterSet into a store-agnostic Predicate.

    Location fields match as case-insensitive substrings. Unknown theme or
    difficulty values are ignored rather than rejected; status falls back to
    PUBLISHED when absent or unknown. Numeric and date values that do not
    parse raise InvalidFilter naming the offending parameter.
    """

    def compile(self, filters: Optional[FilterSet]) -> CompiledFilters:
        """Build the predicate and applied-filter echo for a filter set.

        Args:
            filters: Raw filters from the request (None means no filters)

        Returns:
            CompiledFilters with the conjunction of every recognised filter

        Raises:
            InvalidFilter: If a numeric or date value is malformed
        """
        filters = filters or FilterSet()
        parts: List[Predicate] = []
        applied: Dict[str, Any] = {}

        self._compile_locations(filters, parts, applied)
        self._compile_enums(filters, parts, applied)
        self._compile_ranges(filters, parts, applied)
        self._compile_dates(filters, parts, applied)

        status = self._resolve_status(filters.status)
        parts.append(Equals("status", status))
        applied["status"] = status.value

        return CompiledFilters(predicate=all_of(*parts), applied=applied)

    def _compile_locations(self, filters: FilterSet, parts: List[Predicate], applied: Dict[str, Any]) -> None:
        country = _clean(filters.country)
        if country:
            alias = COUNTRY_ALIASES.get(country.lower())
            parts.append(Contains("country", alias or country))
            applied["country"] = country

        for name in ("city", "region"):
            value = _clean(getattr(filters, name))
            if value:
                parts.append(Contains(name, value))
                applied[name] = value

    def _compile_enums(self, filters: FilterSet, parts: List[Predicate], applied: Dict[str, Any]) -> None:
        for name, enum_cls in (("theme", HolidayTheme), ("difficulty", DifficultyLevel)):
            raw = _clean(getattr(filters, name))
            if not raw:
                continue
            member = _parse_enum(enum_cls, raw)
            if member is None:
                logger.debug(f"Ignoring unknown {name} filter value: {raw!r}")
                continue
            parts.append(Equals(name, member))
            applied[name] = member.value

    def _compile_ranges(self, filters: FilterSet, parts: List[Predicate], applied: Dict[str, Any]) -> None:
        min_price = _clean(filters.min_price)
        max_price = _clean(filters.max_price)
        lower = _parse_price("minPrice", min_price) if min_price else None
        upper = _parse_price("maxPrice", max_price) if max_price else None
        if lower is not None or upper is not None:
            parts.append(Range("base_price", lower, upper))
            if lower is not None:
                applied["minPrice"] = lower
            if upper is not None:
                applied["maxPrice"] = upper

        min_duration = _clean(filters.min_duration)
        max_duration = _clean(filters.max_duration)
        lower = _parse_duration("minDuration", min_duration) if min_duration else None
        upper = _parse_duration("maxDuration", max_duration) if max_duration else None
        if lower is not None or upper is not None:
            parts.append(Range("duration_days", lower, upper))
            if lower is not None:
                applied["minDuration"] = lower
            if upper is not None:
                applied["maxDuration"] = upper

        min_rating = _clean(filters.min_rating)
        if min_rating:
            rating = _parse_rating("minRating", min_rating)
            parts.append(Range("average_rating", lower=rating))
            applied["minRating"] = rating

    def _compile_dates(self, filters: FilterSet, parts: List[Predicate], applied: Dict[str, Any]) -> None:
        # Year-round items satisfy any date window
        start_raw = _clean(filters.start_date)
        if start_raw:
            start = _parse_date("startDate", start_raw)
            parts.append(any_of(Range("start_date", lower=start), Equals("is_year_round", True)))
            applied["startDate"] = start.isoformat()

        end_raw = _clean(filters.end_date)
        if end_raw:
            end = _parse_date("endDate", end_raw)
            parts.append(any_of(Range("end_date", upper=end), Equals("is_year_round", True)))
            applied["endDate"] = end.isoformat()

    def _resolve_status(self, raw: Optional[str]) -> HolidayStatus:
        value = _clean(raw)
        if value:
            member = _parse_enum(HolidayStatus, value)
            if member is not None:
                return member
            logger.debug(f"Unknown status filter {value!r}, defaulting to PUBLISHED")
        return HolidayStatus.PUBLISHED
