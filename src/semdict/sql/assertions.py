"""Validation script generation.

Every assertion returns exactly one row with a ``failures`` column; the check
passes when ``failures`` is 0.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from semdict.config.logging import get_logger
from semdict.ir.naming import physical_table_name
from semdict.ir.schema import (
    Column,
    ColumnRole,
    Join,
    Layer,
    LogicalSchema,
    PhysicalSchema,
)
from semdict.ir.terms import RelationKind
from semdict.sql.types import quote_ident

logger = get_logger(__name__)


@dataclass(frozen=True)
class RangeRule:
    """Domain check attached to every column of a primitive type."""

    name: str
    description: str
    violation: str  # predicate selecting bad rows; "{column}" is substituted


DEFAULT_RANGE_RULES: Dict[str, Tuple[RangeRule, ...]] = {
    "Date": (RangeRule("not_in_future", "is not in the future", "{column} > CURRENT_DATE"),),
    "Timestamp": (
        RangeRule("not_in_future", "is not in the future", "{column} > CURRENT_TIMESTAMP"),
    ),
}


class Assertion(BaseModel):
    """One validation statement."""

    model_config = ConfigDict(frozen=True)

    rule: str
    description: str
    sql: str
    column: Optional[str] = None
    target: Optional[str] = None


class ValidationScript(BaseModel):
    """Ordered validation statements for one table or view."""

    model_config = ConfigDict(frozen=True)

    object_name: str
    layer: Layer
    term: str
    assertions: Tuple[Assertion, ...]

    def rules(self) -> List[str]:
        return [a.rule for a in self.assertions]

    def count(self, rule: str) -> int:
        return sum(1 for a in self.assertions if a.rule == rule)

    def render(self) -> str:
        header = (
            f"-- Validation tests for {self.object_name} ({self.layer.value} {self.term})\n"
            f"-- Each statement returns one row; failures = 0 means the check passed.\n"
        )
        blocks = [
            f"-- [{i}] {a.rule}: {a.description}\n{a.sql}"
            for i, a in enumerate(self.assertions, start=1)
        ]
        return header + "\n" + "\n\n".join(blocks) + "\n"


def _existence(obj: str) -> Assertion:
    return Assertion(
        rule="existence",
        description=f"{obj} contains at least one row",
        sql=f"SELECT CASE WHEN COUNT(*) = 0 THEN 1 ELSE 0 END AS failures FROM {quote_ident(obj)};",
    )


def _not_null(obj: str, column: str, rule: str, description: str) -> Assertion:
    return Assertion(
        rule=rule,
        description=description,
        sql=f"SELECT COUNT(*) AS failures FROM {quote_ident(obj)} WHERE {quote_ident(column)} IS NULL;",
        column=column,
    )


def _unique(obj: str, column: str) -> Assertion:
    col = quote_ident(column)
    return Assertion(
        rule="identifier_unique",
        description=f"{column} is unique",
        sql=(
            f"SELECT COUNT(*) AS failures FROM (\n"
            f"    SELECT {col} FROM {quote_ident(obj)} GROUP BY {col} HAVING COUNT(*) > 1\n"
            f") AS duplicates;"
        ),
        column=column,
    )


def _exists_in(
    rule: str,
    description: str,
    obj: str,
    column: str,
    target_table: str,
    key_column: str,
) -> Assertion:
    col = quote_ident(column)
    return Assertion(
        rule=rule,
        description=description,
        sql=(
            f"SELECT COUNT(*) AS failures\n"
            f"FROM {quote_ident(obj)} AS s\n"
            f"WHERE s.{col} IS NOT NULL\n"
            f"  AND NOT EXISTS (\n"
            f"    SELECT 1 FROM {quote_ident(target_table)} AS r "
            f"WHERE r.{quote_ident(key_column)} = s.{col}\n"
            f"  );"
        ),
        column=column,
        target=target_table,
    )


class AssertionGenerator:
    """
    Builds validation scripts for resolved schemas.

    Range rules are an extensible table keyed by primitive type.
    """

    def __init__(self, range_rules: Optional[Mapping[str, Sequence[RangeRule]]] = None):
        source = DEFAULT_RANGE_RULES if range_rules is None else range_rules
        self.range_rules: Dict[str, List[RangeRule]] = {k: list(v) for k, v in source.items()}

    def register_range_rule(self, primitive: str, rule: RangeRule) -> None:
        self.range_rules.setdefault(primitive, []).append(rule)

    def _ranges(self, obj: str, columns: Iterable[Column]) -> List[Assertion]:
        assertions = []
        for col in columns:
            for rule in self.range_rules.get(col.primitive, ()):
                predicate = rule.violation.format(column=quote_ident(col.name))
                assertions.append(
                    Assertion(
                        rule=f"range_{rule.name}",
                        description=f"{col.name} {rule.description}",
                        sql=f"SELECT COUNT(*) AS failures FROM {quote_ident(obj)} WHERE {predicate};",
                        column=col.name,
                    )
                )
        return assertions

    def physical(self, schema: PhysicalSchema) -> ValidationScript:
        table = schema.table_name
        identifier = schema.identifier
        assertions = [
            _existence(table),
            _not_null(table, identifier.name, "identifier_not_null", f"{identifier.name} is never null"),
            _unique(table, identifier.name),
        ]

        for col in schema.columns[1:]:
            if col.required:
                assertions.append(
                    _not_null(table, col.name, "not_null", f"{col.name} is never null ({_origin(schema.label, col)})")
                )

        for col in schema.columns[1:]:
            if col.role is ColumnRole.REFERENCE:
                target = physical_table_name(col.term_label)
                assertions.append(
                    _exists_in(
                        "referential_integrity",
                        f"every {col.name} exists in {target} ({_origin(schema.label, col)})",
                        table,
                        col.name,
                        target,
                        col.name,
                    )
                )

        for col in schema.columns[1:]:
            if col.role is ColumnRole.INHERITED_IDENTIFIER:
                target = physical_table_name(col.term_label)
                assertions.append(
                    _exists_in(
                        "inheritance_integrity",
                        f"every {col.name} exists in {target} ({_origin(schema.label, col)})",
                        table,
                        col.name,
                        target,
                        col.name,
                    )
                )

        assertions.extend(self._ranges(table, schema.columns))
        logger.debug(f"Generated {len(assertions)} assertions for {table}")
        return ValidationScript(
            object_name=table, layer=Layer.PHYSICAL, term=schema.label, assertions=tuple(assertions)
        )

    def logical(self, schema: LogicalSchema) -> ValidationScript:
        view = schema.view_name
        identifier = schema.identifier
        assertions = [
            _existence(view),
            _not_null(view, identifier.name, "identifier_not_null", f"{identifier.name} is never null"),
            _unique(view, identifier.name),
        ]

        for col in schema.columns[1:]:
            if col.relation is RelationKind.REQUIRES and col.required:
                assertions.append(
                    _not_null(view, col.name, "not_null", f"{col.name} is never null ({col.owner} must have a {col.term_label})")
                )

        for join in schema.reference_joins:
            assertions.append(self._join_integrity("referential_integrity", schema, join))
        for join in schema.inheritance_joins:
            assertions.append(self._join_integrity("inheritance_integrity", schema, join))

        assertions.extend(self._ranges(view, schema.columns))
        logger.debug(f"Generated {len(assertions)} assertions for {view}")
        return ValidationScript(
            object_name=view, layer=Layer.LOGICAL, term=schema.label, assertions=tuple(assertions)
        )

    def _join_integrity(self, rule: str, schema: LogicalSchema, join: Join) -> Assertion:
        """Check a join's foreign values against the target's physical identifiers."""
        target = physical_table_name(join.target_label)
        statement = f"{join.parent_label} {join.relation.phrase} {join.target_label}"

        exposed = schema.column(join.fk_column)
        if exposed is not None and exposed.alias == join.parent_alias:
            source = schema.view_name
        else:
            # The view shows another term's column under this name
            source = physical_table_name(join.parent_label)

        return _exists_in(
            rule,
            f"every {join.fk_column} exists in {target} ({statement})",
            source,
            join.fk_column,
            target,
            join.key_column,
        )


def _origin(label: str, col: Column) -> str:
    if col.relation is None:
        return f"identifier of {label}"
    return f"{label} {col.relation.phrase} {col.term_label}"

