"""
Store-agnostic predicates over catalog items.

A predicate is a small immutable tree built from a handful of constructors
(substring, tag membership, equality, inclusive range, AND, OR). Every
field a predicate names must be one the catalog accessors can express, so
construction fails fast on anything else. The in-memory accessor evaluates
predicates with ``matches``; the Postgres accessor compiles them to SQL.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional, Tuple


# Fields the catalog accessors can filter on, by capability
TEXT_FIELDS = frozenset({
    "title", "description", "short_description", "city", "country", "region", "slug",
})
TAG_FIELDS = frozenset({"keywords"})
EQUALITY_FIELDS = frozenset({"theme", "difficulty", "status", "is_year_round", "id"})
RANGE_FIELDS = frozenset({
    "base_price", "duration_days", "average_rating", "start_date", "end_date",
    "published_at",
})


def _plain(value: Any) -> Any:
    """Unwrap enum members to their values for comparison."""
    if isinstance(value, Enum):
        return value.value
    return value


def _comparable(value: Any, bound: Any) -> Any:
    """Align a datetime item value with a date bound."""
    if isinstance(value, datetime) and not isinstance(bound, datetime) and isinstance(bound, date):
        return value.date()
    if isinstance(bound, datetime) and not isinstance(value, datetime) and isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    return value


def _require_field(field: str, allowed: frozenset, kind: str) -> None:
    if field not in allowed:
        raise ValueError(f"Field '{field}' does not support {kind} predicates")


class Predicate:
    """Base class for predicate nodes."""

    def matches(self, item: Any) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class MatchAll(Predicate):
    """Always true."""

    def matches(self, item: Any) -> bool:
        return True


@dataclass(frozen=True)
class Contains(Predicate):
    """Case-insensitive substring match on a text field."""
    field: str
    value: str

    def __post_init__(self):
        _require_field(self.field, TEXT_FIELDS, "substring")
        object.__setattr__(self, "value", self.value.lower())

    def matches(self, item: Any) -> bool:
        text = getattr(item, self.field, None)
        if not text:
            return False
        return self.value in text.lower()


@dataclass(frozen=True)
class HasTag(Predicate):
    """Case-insensitive membership in a keyword tag list."""
    field: str
    value: str

    def __post_init__(self):
        _require_field(self.field, TAG_FIELDS, "tag")
        object.__setattr__(self, "value", self.value.lower())

    def matches(self, item: Any) -> bool:
        tags = getattr(item, self.field, None) or []
        return any(tag.lower() == self.value for tag in tags)


@dataclass(frozen=True)
class Equals(Predicate):
    """Equality on an enumeration, boolean or identifier field."""
    field: str
    value: Any

    def __post_init__(self):
        _require_field(self.field, EQUALITY_FIELDS, "equality")

    def matches(self, item: Any) -> bool:
        return _plain(getattr(item, self.field, None)) == _plain(self.value)


@dataclass(frozen=True)
class Range(Predicate):
    """Inclusive range; either bound may be omitted but not both."""
    field: str
    lower: Optional[Any] = None
    upper: Optional[Any] = None

    def __post_init__(self):
        _require_field(self.field, RANGE_FIELDS, "range")
        if self.lower is None and self.upper is None:
            raise ValueError(f"Range on '{self.field}' needs at least one bound")

    def matches(self, item: Any) -> bool:
        value = getattr(item, self.field, None)
        if value is None:
            return False
        if self.lower is not None and _comparable(value, self.lower) < self.lower:
            return False
        if self.upper is not None and _comparable(value, self.upper) > self.upper:
            return False
        return True


@dataclass(frozen=True)
class AnyOf(Predicate):
    """Logical OR."""
    parts: Tuple[Predicate, ...]

    def matches(self, item: Any) -> bool:
        return any(part.matches(item) for part in self.parts)


@dataclass(frozen=True)
class AllOf(Predicate):
    """Logical AND."""
    parts: Tuple[Predicate, ...]

    def matches(self, item: Any) -> bool:
        return all(part.matches(item) for part in self.parts)


def all_of(*predicates: Predicate) -> Predicate:
    """AND the given predicates, flattening nested ANDs and dropping MatchAll."""
    parts = []
    for predicate in predicates:
        if isinstance(predicate, MatchAll):
            continue
        if isinstance(predicate, AllOf):
            parts.extend(predicate.parts)
        else:
            parts.append(predicate)
    if not parts:
        return MatchAll()
    if len(parts) == 1:
        return parts[0]
    return AllOf(tuple(parts))


def any_of(*predicates: Predicate) -> Predicate:
    """OR the given predicates. A MatchAll operand makes the whole OR true."""
    parts = []
    for predicate in predicates:
        if isinstance(predicate, MatchAll):
            return MatchAll()
        if isinstance(predicate, AnyOf):
            parts.extend(predicate.parts)
        else:
            parts.append(predicate)
    if not parts:
        return MatchAll()
    if len(parts) == 1:
        return parts[0]
    return AnyOf(tuple(parts))
