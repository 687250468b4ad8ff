"""Term and Relationship records produced by the parser."""

from enum import Enum
from typing import Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field

from .naming import normalize_name

# Closed leaf set that terminates resolution. Callers may extend it.
PRIMITIVES: Tuple[str, ...] = (
    "String",
    "Text",
    "Integer",
    "Decimal",
    "Float",
    "Boolean",
    "Date",
    "Timestamp",
)


class RelationKind(str, Enum):
    """Typed edge kinds of the relationship graph."""

    INHERITS = "INHERITS"  # X is a Y
    COMPOSES = "COMPOSES"  # X has a Y
    REQUIRES = "REQUIRES"  # X must have a Y
    PRIMITIVE_TYPE = "PRIMITIVE_TYPE"  # X is a <primitive>

    @property
    def phrase(self) -> str:
        return _PHRASES[self]


_PHRASES = {
    RelationKind.INHERITS: "is a",
    RelationKind.COMPOSES: "has a",
    RelationKind.REQUIRES: "must have a",
    RelationKind.PRIMITIVE_TYPE: "is a",
}


class Relationship(BaseModel):
    """A typed statement from one term block."""

    model_config = ConfigDict(frozen=True)

    kind: RelationKind
    source: str  # display name of the declaring term
    target: str  # display name as written in the statement
    line: Optional[int] = None

    @property
    def source_key(self) -> str:
        return normalize_name(self.source)

    @property
    def target_key(self) -> str:
        return normalize_name(self.target)

    def describe(self) -> str:
        return f"{self.source} {self.kind.phrase} {self.target}"


class Term(BaseModel):
    """A named business concept with its definition and typed relationships."""

    model_config = ConfigDict(frozen=True)

    name: str
    definition: str
    declared_type: Optional[str] = None  # primitive name when the term is scalar
    declared_identifier: Optional[str] = None  # attribute used instead of <term>_id
    relationships: Tuple[Relationship, ...] = Field(default_factory=tuple)
    line: Optional[int] = None

    @property
    def key(self) -> str:
        return normalize_name(self.name)

    def relationships_of(self, *kinds: RelationKind) -> Tuple[Relationship, ...]:
        return tuple(r for r in self.relationships if r.kind in kinds)
