"""Structural validators for resolved schemas."""

from typing import List
from .schema import (
    ColumnRole,
    LogicalSchema,
    PhysicalSchema,
    SchemaIssue,
)
from semdict.config.logging import get_logger

logger = get_logger(__name__)


def validate_physical(schema: PhysicalSchema) -> List[SchemaIssue]:
    """
    Validate a physical schema before DDL is generated for it.

    Args:
        schema: PhysicalSchema to validate

    Returns:
        List of SchemaIssue objects (empty if validation passes)
    """
    issues: List[SchemaIssue] = []
    table = schema.table_name

    if not table:
        issues.append(
            SchemaIssue(
                stage="Physical",
                code="MISSING_TABLE_NAME",
                location=schema.term,
                message=f"{schema.label}: physical schema has no table name",
            )
        )

    if not schema.columns:
        issues.append(
            SchemaIssue(
                stage="Physical",
                code="NO_COLUMNS",
                location=table,
                message=f"{table}: physical schema has no columns",
            )
        )
        return issues

    identifier = schema.identifier
    if identifier.role is not ColumnRole.IDENTIFIER:
        issues.append(
            SchemaIssue(
                stage="Physical",
                code="MISSING_PK",
                location=table,
                message=f"{table}: first column '{identifier.name}' is not the term's identifier",
                details={"column": identifier.name, "role": identifier.role.value},
            )
        )
    elif not identifier.required:
        issues.append(
            SchemaIssue(
                stage="Physical",
                code="NULLABLE_PK",
                location=f"{table}.{identifier.name}",
                message=f"{table}: identifier '{identifier.name}' must be NOT NULL",
            )
        )

    seen = set()
    for col in schema.columns:
        if not col.name:
            issues.append(
                SchemaIssue(
                    stage="Physical",
                    code="EMPTY_COLUMN_NAME",
                    location=table,
                    message=f"{table}: column for term '{col.term_label}' has no name",
                )
            )
        elif col.name in seen:
            issues.append(
                SchemaIssue(
                    stage="Physical",
                    code="DUPLICATE_COLUMN",
                    location=f"{table}.{col.name}",
                    message=f"{table}: column '{col.name}' appears more than once",
                )
            )
        seen.add(col.name)

    if issues:
        logger.warning(f"Physical validation of {table} found {len(issues)} issues")
    return issues


def validate_logical(schema: LogicalSchema) -> List[SchemaIssue]:
    """
    Validate a logical schema before view DDL is generated for it.

    Checks that every column and join refers to an alias that is already in
    scope, that join aliases are unique and that output names are unique.

    Args:
        schema: LogicalSchema to validate

    Returns:
        List of SchemaIssue objects (empty if validation passes)
    """
    issues: List[SchemaIssue] = []
    view = schema.view_name

    if not schema.columns:
        issues.append(
            SchemaIssue(
                stage="Logical",
                code="NO_COLUMNS",
                location=view,
                message=f"{view}: logical schema has no columns",
            )
        )
        return issues

    identifier = schema.identifier
    if identifier.role is not ColumnRole.IDENTIFIER or identifier.alias != schema.base_alias:
        issues.append(
            SchemaIssue(
                stage="Logical",
                code="MISSING_PK",
                location=view,
                message=f"{view}: first column must be the identifier of {schema.base_table}",
                details={"column": identifier.name, "alias": identifier.alias},
            )
        )

    in_scope = {schema.base_alias}
    for join in schema.joins:
        if join.parent_alias not in in_scope:
            issues.append(
                SchemaIssue(
                    stage="Logical",
                    code="JOIN_PARENT_UNKNOWN",
                    location=f"{view}.{join.alias}",
                    message=f"{view}: join '{join.alias}' on {join.table} refers to "
                    f"alias '{join.parent_alias}' before it is joined",
                    details={"alias": join.alias, "parent_alias": join.parent_alias},
                )
            )
        if join.alias in in_scope:
            issues.append(
                SchemaIssue(
                    stage="Logical",
                    code="DUPLICATE_ALIAS",
                    location=f"{view}.{join.alias}",
                    message=f"{view}: alias '{join.alias}' is used twice",
                )
            )
        in_scope.add(join.alias)

    seen = set()
    for col in schema.columns:
        if col.alias not in in_scope:
            issues.append(
                SchemaIssue(
                    stage="Logical",
                    code="COLUMN_ALIAS_UNKNOWN",
                    location=f"{view}.{col.name}",
                    message=f"{view}: column '{col.name}' reads from unknown alias '{col.alias}'",
                    details={"column": col.name, "alias": col.alias},
                )
            )
        if col.name in seen:
            issues.append(
                SchemaIssue(
                    stage="Logical",
                    code="DUPLICATE_COLUMN",
                    location=f"{view}.{col.name}",
                    message=f"{view}: column '{col.name}' appears more than once",
                )
            )
        seen.add(col.name)

    if issues:
        logger.warning(f"Logical validation of {view} found {len(issues)} issues")
    return issues
