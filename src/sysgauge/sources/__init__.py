"""Data sources - named values exposed to configuration scripts."""

from .base import DataSource, DisabledSource, SimpleNumericSource, Variable, NO_VALUE_TEXT
from .bridge import SourceHandle, construct, decode_arguments, export_data_sources, make_factory
from .registry import (
    ConstructorEntry,
    SourceRegistry,
    data_source,
    default_registry,
    get_registry,
    register_data_source,
    register_disabled_data_source,
)

__all__ = [
    "DataSource",
    "DisabledSource",
    "SimpleNumericSource",
    "Variable",
    "NO_VALUE_TEXT",
    "SourceHandle",
    "construct",
    "decode_arguments",
    "export_data_sources",
    "make_factory",
    "ConstructorEntry",
    "SourceRegistry",
    "data_source",
    "default_registry",
    "get_registry",
    "register_data_source",
    "register_disabled_data_source",
]
