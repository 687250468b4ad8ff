"""SQL generator: resolved schemas -> DDL and validation scripts.

Physical layer:  CREATE TABLE physical_<term> (...)
Logical layer:   CREATE VIEW logical_<term> AS [WITH <ancestor views>] SELECT ... FROM ... JOIN ...
"""

from typing import List, Mapping, Optional, Sequence, Union

from semdict.config.logging import get_logger
from semdict.errors import GenerationError
from semdict.ir.schema import Column, LogicalSchema, PhysicalSchema, SchemaIssue
from semdict.ir.validators import validate_logical, validate_physical
from semdict.sql.assertions import AssertionGenerator, RangeRule, ValidationScript
from semdict.sql.types import build_type_map, quote_ident, sql_type

logger = get_logger(__name__)

INDENT = "    "


def _indent(text: str, prefix: str = INDENT) -> str:
    return "\n".join(prefix + line if line else line for line in text.splitlines())


def _raise_on_issues(issues: Sequence[SchemaIssue], name: str) -> None:
    if issues:
        summary = "; ".join(f"{i.code} at {i.location}" for i in issues)
        raise GenerationError(f"cannot generate SQL for {name}: {summary}", term=name)


class SqlGenerator:
    """
    Renders physical tables, logical views and their validation scripts.

    Args:
        type_map: Primitive name -> SQL type (defaults to the built-in map)
        inline_ancestor_views: Embed ancestor views as common-table-expressions
            so that each view script is self-contained. When False the view
            joins ``logical_<ancestor>`` directly and that view must exist.
        range_rules: Range rule table keyed by primitive (defaults to the
            built-in date and timestamp rules)
    """

    def __init__(
        self,
        type_map: Optional[Mapping[str, str]] = None,
        inline_ancestor_views: bool = True,
        range_rules: Optional[Mapping[str, Sequence[RangeRule]]] = None,
    ):
        self.type_map = dict(type_map) if type_map is not None else build_type_map()
        self.inline_ancestor_views = inline_ancestor_views
        self.assertions = AssertionGenerator(range_rules)

    def _check_types(self, name: str, columns: Sequence[Column]) -> None:
        for col in columns:
            sql_type(col.primitive, self.type_map, f"{name}.{col.name}")

    # -- DDL --------------------------------------------------------------

    def physical_ddl(self, schema: PhysicalSchema) -> str:
        """
        CREATE TABLE statement for a physical schema.

        Raises:
            GenerationError: unmapped primitive or structurally invalid schema
        """
        table = schema.table_name
        _raise_on_issues(validate_physical(schema), table)

        lines = []
        for i, col in enumerate(schema.columns):
            parts = [quote_ident(col.name), sql_type(col.primitive, self.type_map, f"{table}.{col.name}")]
            if col.required:
                parts.append("NOT NULL")
            if i == 0:
                parts.append("PRIMARY KEY")
            lines.append(INDENT + " ".join(parts))

        logger.debug(f"Rendered {table} with {len(lines)} columns")
        return f"CREATE TABLE {quote_ident(table)} (\n" + ",\n".join(lines) + "\n);\n"

    def logical_ddl(self, schema: LogicalSchema) -> str:
        """
        CREATE VIEW statement for a logical schema.

        Raises:
            GenerationError: unmapped primitive or structurally invalid schema
        """
        view = schema.view_name
        _raise_on_issues(validate_logical(schema), view)
        self._check_types(view, schema.columns)

        parts = [f"CREATE VIEW {quote_ident(view)} AS"]
        if self.inline_ancestor_views:
            ctes = self._ancestor_views(schema)
            if ctes:
                definitions = [
                    f"{quote_ident(cte.view_name)} AS (\n{_indent(self._select(cte))}\n)"
                    for cte in ctes
                ]
                parts.append("WITH " + ",\n".join(definitions))
        parts.append(self._select(schema))

        logger.debug(f"Rendered {view} with {len(schema.joins)} joins")
        return "\n".join(parts) + ";\n"

    def ddl(self, schema: Union[PhysicalSchema, LogicalSchema]) -> str:
        if isinstance(schema, LogicalSchema):
            return self.logical_ddl(schema)
        return self.physical_ddl(schema)

    def _ancestor_views(self, schema: LogicalSchema) -> List[LogicalSchema]:
        """Ancestor views needed by a view, dependencies first, each once."""
        ordered: List[LogicalSchema] = []
        seen = set()

        def visit(current: LogicalSchema) -> None:
            for ancestor in current.ancestors:
                if ancestor.view_name in seen:
                    continue
                visit(ancestor)
                seen.add(ancestor.view_name)
                ordered.append(ancestor)

        visit(schema)
        return ordered

    def _select(self, schema: LogicalSchema) -> str:
        columns = ",\n".join(
            f"{INDENT}{col.alias}.{quote_ident(col.name)} AS {quote_ident(col.name)}"
            for col in schema.columns
        )
        lines = [
            "SELECT",
            columns,
            f"FROM {quote_ident(schema.base_table)} AS {schema.base_alias}",
        ]
        for join in schema.joins:
            lines.append(
                f"{join.join_type.value} {quote_ident(join.table)} AS {join.alias} "
                f"ON {join.alias}.{quote_ident(join.key_column)} = "
                f"{join.parent_alias}.{quote_ident(join.fk_column)}"
            )
        return "\n".join(lines)

    # -- validation scripts -----------------------------------------------

    def physical_tests(self, schema: PhysicalSchema) -> ValidationScript:
        _raise_on_issues(validate_physical(schema), schema.table_name)
        self._check_types(schema.table_name, schema.columns)
        return self.assertions.physical(schema)

    def logical_tests(self, schema: LogicalSchema) -> ValidationScript:
        _raise_on_issues(validate_logical(schema), schema.view_name)
        self._check_types(schema.view_name, schema.columns)
        return self.assertions.logical(schema)

    def tests(self, schema: Union[PhysicalSchema, LogicalSchema]) -> ValidationScript:
        if isinstance(schema, LogicalSchema):
            return self.logical_tests(schema)
        return self.physical_tests(schema)
