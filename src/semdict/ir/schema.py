"""Resolved physical and logical schemas."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Literal, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field

from .terms import RelationKind

BASE_ALIAS = "t0"


class Layer(str, Enum):
    """Which artifact of a term is requested."""

    PHYSICAL = "physical"
    LOGICAL = "logical"


@dataclass(frozen=True)
class SchemaIssue:
    """Non-fatal anomaly found while resolving or validating a schema."""

    stage: Literal["Physical", "Logical"]
    code: str  # e.g. "AMBIGUOUS_IDENTIFIER", "DUPLICATE_COLUMN"
    location: str  # e.g. "customer" or "customer.person_id"
    message: str
    details: dict = field(default_factory=dict)


class ColumnRole(str, Enum):
    IDENTIFIER = "identifier"
    INHERITED_IDENTIFIER = "inherited_identifier"
    ATTRIBUTE = "attribute"  # value of a scalar term or primitive
    REFERENCE = "reference"  # identifier of another entity


class Column(BaseModel):
    """One attribute of a resolved schema."""

    model_config = ConfigDict(frozen=True)

    name: str
    primitive: str
    role: ColumnRole
    required: bool = False
    term: str  # key of the term this column carries
    term_label: str
    relation: Optional[RelationKind] = None  # edge that introduced it; None for the own identifier


class PhysicalSchema(BaseModel):
    """Column set of a term stored as a standalone table."""

    model_config = ConfigDict(frozen=True)

    term: str
    label: str
    table_name: str
    scalar: bool = False
    columns: Tuple[Column, ...]
    issues: Tuple[SchemaIssue, ...] = ()

    @property
    def identifier(self) -> Column:
        return self.columns[0]

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def column(self, name: str) -> Optional[Column]:
        for col in self.columns:
            if col.name == name:
                return col
        return None


class ViewColumn(Column):
    """A column of a logical view and the join alias that supplies it."""

    alias: str
    owner: str  # label of the term whose table or view supplies the column


class JoinType(str, Enum):
    INNER = "INNER JOIN"
    LEFT = "LEFT JOIN"


class Join(BaseModel):
    """One step of the join path of a logical view."""

    model_config = ConfigDict(frozen=True)

    alias: str
    relation: RelationKind
    source: Literal["physical", "logical"]
    table: str  # physical table or logical view joined
    target: str
    target_label: str
    parent_alias: str
    parent_term: str
    parent_label: str
    fk_column: str  # column on the parent side
    key_column: str  # identifier column on the joined side
    join_type: JoinType

    @property
    def edge(self) -> Tuple[str, str, RelationKind]:
        return (self.parent_term, self.target, self.relation)


class LogicalSchema(BaseModel):
    """Column set of a term enriched through composition and inheritance."""

    model_config = ConfigDict(frozen=True)

    term: str
    label: str
    view_name: str
    base_table: str
    base_alias: str = BASE_ALIAS
    columns: Tuple[ViewColumn, ...]
    joins: Tuple[Join, ...] = ()
    # Ancestor views embedded as common-table-expressions
    ancestors: Tuple["LogicalSchema", ...] = Field(default_factory=tuple)
    issues: Tuple[SchemaIssue, ...] = ()

    @property
    def identifier(self) -> ViewColumn:
        return self.columns[0]

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def column(self, name: str) -> Optional[ViewColumn]:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def _distinct_joins(self, *relations: RelationKind) -> List[Join]:
        seen = set()
        result = []
        for join in self.joins:
            if join.relation in relations and join.edge not in seen:
                seen.add(join.edge)
                result.append(join)
        return result

    @property
    def reference_joins(self) -> List[Join]:
        """First join of every distinct COMPOSES/REQUIRES edge."""
        return self._distinct_joins(RelationKind.COMPOSES, RelationKind.REQUIRES)

    @property
    def inheritance_joins(self) -> List[Join]:
        """First join of every distinct INHERITS edge."""
        return self._distinct_joins(RelationKind.INHERITS)


LogicalSchema.model_rebuild()
