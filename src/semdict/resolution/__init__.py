"""Schema resolution."""

from .resolver import SchemaResolver, resolver_for
from .batch import BatchResult, TermFailure, resolve_all, run_per_term

__all__ = [
    "SchemaResolver",
    "resolver_for",
    "BatchResult",
    "TermFailure",
    "resolve_all",
    "run_per_term",
]
