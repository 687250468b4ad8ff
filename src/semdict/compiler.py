"""Compile facade: dictionary text -> graph -> schemas -> SQL artifacts.

Each compile owns its graph, resolver cache and generator; nothing is shared
between compiles.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from semdict.config.logging import get_logger
from semdict.config.settings import Settings, get_settings
from semdict.graph.builder import TermGraph, build_graph
from semdict.ir.schema import Layer, LogicalSchema, PhysicalSchema, ViewColumn
from semdict.ir.terms import PRIMITIVES
from semdict.parsing.parser import parse_dictionary
from semdict.resolution.batch import TermFailure, run_per_term
from semdict.resolution.resolver import SchemaResolver, resolver_for
from semdict.sql.assertions import ValidationScript
from semdict.sql.ddl import SqlGenerator
from semdict.sql.types import build_type_map

logger = get_logger(__name__)

Schema = Union[PhysicalSchema, LogicalSchema]


@dataclass
class TermArtifacts:
    """Every generated artifact of one term."""

    term: str
    physical_ddl: str
    logical_ddl: str
    physical_tests: str
    logical_tests: str


@dataclass
class CompileReport:
    """Artifacts of the terms that compiled and the failures of those that did not."""

    artifacts: Dict[str, TermArtifacts] = field(default_factory=dict)
    failures: List[TermFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def describe_schema(schema: Schema) -> str:
    """
    Human-readable column listing, one column per line in resolved order.

    Example:
        customer_id       String  identifier
        person_id         String  Customer is a Person
        customer_zipcode  String  Customer has a Customer Zipcode
    """
    rows: List[Tuple[str, str, str]] = []
    for col in schema.columns:
        owner = col.owner if isinstance(col, ViewColumn) else schema.label
        if col.relation is None:
            detail = "identifier" if owner == schema.label else f"identifier of {owner}"
        else:
            detail = f"{owner} {col.relation.phrase} {col.term_label}"
        if col.required and col.relation is not None:
            detail += ", not null"
        rows.append((col.name, col.primitive, detail))

    name_width = max(len(r[0]) for r in rows)
    type_width = max(len(r[1]) for r in rows)
    lines = [
        f"{name.ljust(name_width)}  {primitive.ljust(type_width)}  {detail}"
        for name, primitive, detail in rows
    ]
    return "\n".join(lines) + "\n"


class Compilation:
    """
    A compiled dictionary.

    Args:
        graph: Validated relationship graph
        settings: Settings controlling resolution and generation
    """

    def __init__(self, graph: TermGraph, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.graph = graph
        self.resolver: SchemaResolver = resolver_for(graph, self.settings)
        self.generator = SqlGenerator(
            type_map=build_type_map(self.settings.extra_primitives),
            inline_ancestor_views=self.settings.inline_ancestor_views,
        )

    @property
    def term_names(self) -> List[str]:
        return [t.name for t in self.graph.terms]

    def schema(self, layer: Layer, term: str) -> Schema:
        return self.resolver.resolve(Layer(layer), term)

    def describe(self, layer: Layer, term: str) -> str:
        return describe_schema(self.schema(layer, term))

    def create(self, layer: Layer, term: str) -> str:
        return self.generator.ddl(self.schema(layer, term))

    def script(self, layer: Layer, term: str) -> ValidationScript:
        return self.generator.tests(self.schema(layer, term))

    def test(self, layer: Layer, term: str) -> str:
        return self.script(layer, term).render()

    def artifacts(self, term: str) -> TermArtifacts:
        """All four artifacts of a term; raises on the first failure."""
        physical = self.resolver.resolve_physical(term)
        logical = self.resolver.resolve_logical(term)
        return TermArtifacts(
            term=physical.label,
            physical_ddl=self.generator.physical_ddl(physical),
            logical_ddl=self.generator.logical_ddl(logical),
            physical_tests=self.generator.physical_tests(physical).render(),
            logical_tests=self.generator.logical_tests(logical).render(),
        )

    def compile_all(self, max_workers: Optional[int] = None) -> CompileReport:
        """
        Generate artifacts for every declared term.

        A term that fails in any layer contributes no artifacts and is listed
        in ``failures``; other terms are unaffected.

        Args:
            max_workers: Thread pool size (defaults to the configured value)

        Returns:
            CompileReport in declaration order
        """
        workers = max_workers if max_workers is not None else self.settings.max_workers
        batch = run_per_term(self.term_names, self.artifacts, workers)
        report = CompileReport(artifacts=dict(batch.results), failures=list(batch.failures))
        logger.info(
            f"Compiled {len(report.artifacts)} terms, {len(report.failures)} failures"
        )
        return report


def compile_dictionary(text: str, settings: Optional[Settings] = None) -> Compilation:
    """
    Parse and link a dictionary.

    Args:
        text: Dictionary document
        settings: Optional settings (defaults to the global settings)

    Returns:
        Compilation ready to describe, create and test terms

    Raises:
        ParseError: Malformed or duplicate term block
        UndefinedReference: A statement names an unknown term
        GraphError: A statement the resolver cannot honour
    """
    settings = settings or get_settings()
    primitives = list(PRIMITIVES)
    primitives.extend(p for p in settings.extra_primitives if p not in primitives)

    terms = parse_dictionary(text, primitives)
    graph = build_graph(terms, primitives)
    logger.info(f"Ready to compile {len(graph)} terms")
    return Compilation(graph, settings)
