"""Relationship graph builder: Term records -> typed multigraph."""

from typing import Dict, Iterable, List, Literal, Optional, Tuple

import networkx as nx
from pydantic import BaseModel, ConfigDict

from semdict.config.logging import get_logger
from semdict.errors import DuplicateTerm, GraphError, UndefinedReference
from semdict.ir.naming import normalize_name
from semdict.ir.terms import PRIMITIVES, RelationKind, Relationship, Term

logger = get_logger(__name__)


class GraphNode(BaseModel):
    """Read-only view of a graph node."""

    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    kind: Literal["term", "primitive"]
    definition: Optional[str] = None
    primitive: Optional[str] = None  # primitive type of a scalar term


class GraphEdge(BaseModel):
    """Read-only view of a graph edge."""

    model_config = ConfigDict(frozen=True)

    source: str
    target: str
    source_key: str
    target_key: str
    kind: RelationKind
    line: Optional[int] = None


class TermGraph:
    """
    Immutable relationship graph of one compile.

    Nodes are terms plus the primitives they reference; edges are the typed
    relationships. Adjacency indices by edge kind give constant-time lookup of
    a term's parents, compositions and requirements.
    """

    def __init__(self, terms: Dict[str, Term], primitives: Dict[str, str]):
        self._terms = terms
        self._primitives = primitives
        self._parents: Dict[str, Tuple[str, ...]] = {}
        self._references: Dict[str, Tuple[Relationship, ...]] = {}
        self._primitive_of: Dict[str, str] = {}
        self._identifier_of: Dict[str, str] = {}
        self._nx = nx.MultiDiGraph()

        for key, term in terms.items():
            self._nx.add_node(key, name=term.name, kind="term", definition=term.definition)

        for key, term in terms.items():
            self._parents[key] = tuple(
                r.target_key for r in term.relationships_of(RelationKind.INHERITS)
            )
            self._references[key] = term.relationships_of(
                RelationKind.COMPOSES, RelationKind.REQUIRES
            )
            typed = term.relationships_of(RelationKind.PRIMITIVE_TYPE)
            if typed or term.declared_type:
                name = term.declared_type or typed[0].target
                self._primitive_of[key] = primitives[normalize_name(name)]
                self._nx.nodes[key]["primitive"] = self._primitive_of[key]
            if term.declared_identifier:
                self._identifier_of[key] = normalize_name(term.declared_identifier)

            for rel in term.relationships:
                target = rel.target_key
                if target not in self._nx:
                    self._nx.add_node(target, name=primitives[target], kind="primitive")
                self._nx.add_edge(key, target, key=rel.kind.value, kind=rel.kind, line=rel.line)

    # -- lookup ---------------------------------------------------------

    def __contains__(self, name: str) -> bool:
        return normalize_name(name) in self._terms

    def __len__(self) -> int:
        return len(self._terms)

    @property
    def edge_count(self) -> int:
        return self._nx.number_of_edges()

    @property
    def terms(self) -> List[Term]:
        """Declared terms in declaration order."""
        return list(self._terms.values())

    def key_for(self, name: str) -> str:
        """Return the identity key of a declared term."""
        key = normalize_name(name)
        if key in self._terms:
            return key
        if key in self._primitives:
            raise UndefinedReference(
                f"{self._primitives[key]} (a primitive type, not a term)"
            )
        raise UndefinedReference(name)

    def term(self, name: str) -> Term:
        return self._terms[self.key_for(name)]

    def label(self, key: str) -> str:
        """Display name of a term or primitive key."""
        if key in self._terms:
            return self._terms[key].name
        return self._primitives[key]

    def is_primitive(self, key: str) -> bool:
        return key not in self._terms and key in self._primitives

    def is_scalar(self, key: str) -> bool:
        """True for primitives and primitive-typed terms."""
        return self.is_primitive(key) or key in self._primitive_of

    def is_entity(self, key: str) -> bool:
        return key in self._terms and key not in self._primitive_of

    def primitive_type(self, key: str) -> Optional[str]:
        if self.is_primitive(key):
            return self._primitives[key]
        return self._primitive_of.get(key)

    def parents(self, key: str) -> Tuple[str, ...]:
        """Direct INHERITS targets in declaration order."""
        return self._parents.get(key, ())

    def references(self, key: str) -> Tuple[Relationship, ...]:
        """COMPOSES and REQUIRES statements in declaration order."""
        return self._references.get(key, ())

    def compositions(self, key: str) -> Tuple[Relationship, ...]:
        return tuple(r for r in self.references(key) if r.kind is RelationKind.COMPOSES)

    def requirements(self, key: str) -> Tuple[Relationship, ...]:
        return tuple(r for r in self.references(key) if r.kind is RelationKind.REQUIRES)

    def declared_identifier(self, key: str) -> Optional[str]:
        return self._identifier_of.get(key)

    # -- enumeration for external collaborators ---------------------------

    def nodes(self) -> List[GraphNode]:
        return [
            GraphNode(
                key=key,
                name=data["name"],
                kind=data["kind"],
                definition=data.get("definition"),
                primitive=data.get("primitive"),
            )
            for key, data in self._nx.nodes(data=True)
        ]

    def edges(self) -> List[GraphEdge]:
        return [
            GraphEdge(
                source=self.label(u),
                target=self.label(v),
                source_key=u,
                target_key=v,
                kind=data["kind"],
                line=data.get("line"),
            )
            for u, v, data in self._nx.edges(data=True)
        ]

    def to_networkx(self) -> nx.MultiDiGraph:
        """Frozen copy of the underlying multigraph."""
        return nx.freeze(self._nx.copy())


def build_graph(terms: Iterable[Term], primitives: Iterable[str] = PRIMITIVES) -> TermGraph:
    """
    Build and validate the relationship graph.

    Args:
        terms: Parsed terms in declaration order
        primitives: Closed set of primitive type names

    Returns:
        TermGraph

    Raises:
        DuplicateTerm: Two terms share a normalized name
        UndefinedReference: An edge target or declared identifier is unknown
        GraphError: An edge shape the resolver cannot honour
    """
    primitive_names = {normalize_name(p): p for p in primitives}
    by_key: Dict[str, Term] = {}

    for term in terms:
        if term.key in by_key:
            raise DuplicateTerm(
                f"duplicate term (first declared as '{by_key[term.key].name}')",
                block=term.name,
                line=term.line,
            )
        if term.key in primitive_names:
            raise GraphError(f"term '{term.name}' shadows a primitive type", term=term.name)
        by_key[term.key] = term

    def is_scalar_term(key: str) -> bool:
        term = by_key[key]
        return bool(term.declared_type or term.relationships_of(RelationKind.PRIMITIVE_TYPE))

    for term in by_key.values():
        if term.declared_type and normalize_name(term.declared_type) not in primitive_names:
            raise UndefinedReference(term.declared_type, source=term.name, relation="is a")

        for rel in term.relationships:
            target = rel.target_key
            if rel.kind is RelationKind.PRIMITIVE_TYPE:
                if target not in primitive_names:
                    raise UndefinedReference(rel.target, source=term.name, relation="is a")
                continue
            if target in by_key:
                if rel.kind is RelationKind.INHERITS and is_scalar_term(target):
                    raise GraphError(
                        f"term '{term.name}' cannot inherit from '{rel.target}', which is "
                        f"typed as {by_key[target].declared_type or 'a primitive'}; declare "
                        f"the primitive type directly",
                        term=term.name,
                    )
                continue
            if target in primitive_names:
                if rel.kind is RelationKind.INHERITS:
                    raise GraphError(
                        f"'{rel.describe()}' must be a primitive type statement",
                        term=term.name,
                    )
                continue
            raise UndefinedReference(rel.target, source=term.name, relation=rel.kind.phrase)

        if term.declared_identifier:
            target = normalize_name(term.declared_identifier)
            if target in by_key:
                if not is_scalar_term(target):
                    raise GraphError(
                        f"term '{term.name}' is identified by '{term.declared_identifier}', "
                        f"which is not a primitive-typed term",
                        term=term.name,
                    )
            elif target not in primitive_names:
                raise UndefinedReference(
                    term.declared_identifier, source=term.name, relation="is identified by"
                )

    graph = TermGraph(by_key, primitive_names)
    logger.info(
        f"Built graph with {len(graph)} terms and {graph.edge_count} edges"
    )
    return graph
