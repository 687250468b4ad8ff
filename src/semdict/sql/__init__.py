"""SQL generation for resolved schemas."""

from .types import DEFAULT_TYPE_MAP, build_type_map, quote_ident, sql_type
from .assertions import (
    DEFAULT_RANGE_RULES,
    Assertion,
    AssertionGenerator,
    RangeRule,
    ValidationScript,
)
from .ddl import SqlGenerator

__all__ = [
    "DEFAULT_TYPE_MAP",
    "build_type_map",
    "quote_ident",
    "sql_type",
    "DEFAULT_RANGE_RULES",
    "Assertion",
    "AssertionGenerator",
    "RangeRule",
    "ValidationScript",
    "SqlGenerator",
]
