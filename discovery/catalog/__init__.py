"""Catalog accessors"""

from .accessor import CatalogAccessor
from .memory import InMemoryCatalogAccessor, load_sample_catalog
from .postgres import PostgresCatalogAccessor, SqlCompiler

__all__ = [
    "CatalogAccessor",
    "InMemoryCatalogAccessor",
    "load_sample_catalog",
    "PostgresCatalogAccessor",
    "SqlCompiler",
]
