"""Intermediate representations: terms, relationships and resolved schemas."""

from .naming import normalize_name, snake_case
from .terms import PRIMITIVES, RelationKind, Relationship, Term
from .schema import (
    Column,
    ColumnRole,
    Join,
    JoinType,
    Layer,
    LogicalSchema,
    PhysicalSchema,
    SchemaIssue,
    ViewColumn,
)

__all__ = [
    "normalize_name",
    "snake_case",
    "PRIMITIVES",
    "RelationKind",
    "Relationship",
    "Term",
    "Column",
    "ColumnRole",
    "Join",
    "JoinType",
    "Layer",
    "LogicalSchema",
    "PhysicalSchema",
    "SchemaIssue",
    "ViewColumn",
]
