"""
Filtering module for catalog discovery.

This module provides the predicate constructors and the compiler that turns
request filters into predicates.
"""

from .predicates import (
    Predicate,
    MatchAll,
    Contains,
    HasTag,
    Equals,
    Range,
    AnyOf,
    AllOf,
    all_of,
    any_of,
)
from .filter_compiler import FilterCompiler, CompiledFilters, COUNTRY_ALIASES

__all__ = [
    'Predicate',
    'MatchAll',
    'Contains',
    'HasTag',
    'Equals',
    'Range',
    'AnyOf',
    'AllOf',
    'all_of',
    'any_of',
    'FilterCompiler',
    'CompiledFilters',
    'COUNTRY_ALIASES',
]
