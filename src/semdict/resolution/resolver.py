"""Schema resolver: relationship graph -> physical and logical schemas.

Physical column order:
    own identifier -> inherited identifiers (nearest first) -> has a / must have a columns

Logical column order:
    physical columns -> columns exposed by joined targets -> ancestor logical columns

A joined target exposes its own table, its ancestors and its must-have chain.
Its optional relationships are not expanded beyond the identifier already
stored in its table.
"""

import threading
from typing import Dict, List, Optional, Sequence, Union

from semdict.config.logging import get_logger
from semdict.config.settings import Settings, get_settings
from semdict.errors import AmbiguousIdentifier, CyclicComposition, CyclicInheritance
from semdict.graph.builder import TermGraph
from semdict.ir.naming import (
    identifier_name,
    logical_view_name,
    physical_table_name,
    snake_case,
)
from semdict.ir.schema import (
    BASE_ALIAS,
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
from semdict.ir.terms import RelationKind, Relationship

logger = get_logger(__name__)


class _ColumnCollector:
    """Ordered column list with first-writer-wins de-duplication by name."""

    def __init__(self, stage: str, label: str, strict: bool):
        self.stage = stage
        self.label = label
        self.strict = strict
        self.columns: List[Column] = []
        self.issues: List[SchemaIssue] = []
        self._by_name: Dict[str, Column] = {}

    def add(self, column: Column) -> bool:
        existing = self._by_name.get(column.name)
        if existing is None:
            self._by_name[column.name] = column
            self.columns.append(column)
            return True

        if existing.term != column.term:
            self._conflict(existing, column)
        else:
            logger.debug(f"{self.label}: '{column.name}' already present, keeping first")
        return False

    def _conflict(self, kept: Column, dropped: Column) -> None:
        if kept.role is not ColumnRole.ATTRIBUTE and dropped.role is not ColumnRole.ATTRIBUTE:
            if self.strict:
                raise AmbiguousIdentifier(
                    self.label, kept.name, [kept.term_label, dropped.term_label]
                )
            code = "AMBIGUOUS_IDENTIFIER"
        else:
            code = "DUPLICATE_COLUMN"

        message = (
            f"{self.label}: column '{kept.name}' is contributed by both "
            f"'{kept.term_label}' and '{dropped.term_label}'; keeping '{kept.term_label}'"
        )
        logger.warning(message)
        self.issues.append(
            SchemaIssue(
                stage=self.stage,
                code=code,
                location=f"{self.label}.{kept.name}",
                message=message,
                details={"kept": kept.term_label, "dropped": dropped.term_label},
            )
        )


class _ViewBuilder(_ColumnCollector):
    """Column collector that also tracks the join path of a view."""

    def __init__(self, label: str, strict: bool):
        super().__init__("Logical", label, strict)
        self.joins: List[Join] = []
        self.ancestors: List[LogicalSchema] = []
        self._next_alias = 1

    def next_alias(self) -> str:
        alias = f"t{self._next_alias}"
        self._next_alias += 1
        return alias

    def add_from(self, column: Column, alias: str, owner: str, nullable: bool) -> bool:
        data = column.model_dump(exclude={"alias", "owner"})
        data["required"] = column.required and not nullable
        view_column = ViewColumn(
            **data,
            alias=alias,
            owner=getattr(column, "owner", None) or owner,
        )
        return self.add(view_column)


class SchemaResolver:
    """
    Resolves terms of one graph into physical and logical schemas.

    Results are memoized for the resolver's lifetime. The cache is guarded by
    a lock, so different terms may be resolved from different threads; the
    visiting path of each resolution is local to that call.
    """

    def __init__(
        self,
        graph: TermGraph,
        default_identifier_type: str = "String",
        strict_identifiers: bool = False,
    ):
        self.graph = graph
        self.default_identifier_type = default_identifier_type
        self.strict_identifiers = strict_identifiers
        self._lock = threading.Lock()
        self._physical: Dict[str, PhysicalSchema] = {}
        self._logical: Dict[str, LogicalSchema] = {}

    # -- public API -------------------------------------------------------

    def resolve_physical(self, term: str) -> PhysicalSchema:
        """
        Resolve the physical schema of a term.

        Raises:
            UndefinedReference: term is not declared
            CyclicInheritance: an INHERITS cycle is reachable from the term
            AmbiguousIdentifier: strict mode only
        """
        return self._physical_for(self.graph.key_for(term))

    def resolve_logical(self, term: str) -> LogicalSchema:
        """
        Resolve the logical schema of a term.

        Raises:
            UndefinedReference: term is not declared
            CyclicInheritance: an INHERITS cycle is reachable from the term
            CyclicComposition: a join path re-enters a term already on it
            AmbiguousIdentifier: strict mode only
        """
        return self._logical_for(self.graph.key_for(term))

    def resolve(self, layer: Layer, term: str) -> Union[PhysicalSchema, LogicalSchema]:
        if Layer(layer) is Layer.PHYSICAL:
            return self.resolve_physical(term)
        return self.resolve_logical(term)

    # -- memoization ------------------------------------------------------

    def _physical_for(self, key: str) -> PhysicalSchema:
        with self._lock:
            cached = self._physical.get(key)
        if cached is not None:
            return cached
        schema = self._build_physical(key)
        with self._lock:
            return self._physical.setdefault(key, schema)

    def _logical_for(self, key: str) -> LogicalSchema:
        with self._lock:
            cached = self._logical.get(key)
        if cached is not None:
            return cached
        schema = self._build_logical(key)
        with self._lock:
            return self._logical.setdefault(key, schema)

    # -- columns ----------------------------------------------------------

    def _identifier(self, key: str) -> Column:
        """Identifier column of a term (or of a primitive used as a value)."""
        graph = self.graph
        label = graph.label(key)

        if graph.is_scalar(key):
            name, primitive = snake_case(label), graph.primitive_type(key)
        else:
            declared = graph.declared_identifier(key)
            if declared:
                name = snake_case(graph.label(declared))
                primitive = graph.primitive_type(declared)
            else:
                name, primitive = identifier_name(label), self.default_identifier_type

        return Column(
            name=name,
            primitive=primitive,
            role=ColumnRole.IDENTIFIER,
            required=True,
            term=key,
            term_label=label,
        )

    def _reference_column(self, rel: Relationship) -> Column:
        """Column stored for a has a / must have a statement."""
        target = rel.target_key
        role = ColumnRole.ATTRIBUTE if self.graph.is_scalar(target) else ColumnRole.REFERENCE
        return self._identifier(target).model_copy(
            update={
                "role": role,
                "required": rel.kind is RelationKind.REQUIRES,
                "relation": rel.kind,
            }
        )

    # -- inheritance ------------------------------------------------------

    def _check_inheritance(self, root: str) -> None:
        """Depth-first walk of INHERITS edges; raises on the first cycle."""
        graph = self.graph
        done = set()
        path: List[str] = []

        def visit(key: str) -> None:
            if key in path:
                cycle = path[path.index(key):] + [key]
                raise CyclicInheritance(graph.label(root), [graph.label(k) for k in cycle])
            if key in done:
                return
            path.append(key)
            for parent in graph.parents(key):
                visit(parent)
            path.pop()
            done.add(key)

        visit(root)

    def _ancestors(self, key: str) -> List[str]:
        """All INHERITS ancestors, nearest first, each once."""
        order: List[str] = []
        seen = {key}
        frontier = list(self.graph.parents(key))
        while frontier:
            next_frontier: List[str] = []
            for parent in frontier:
                if parent in seen:
                    continue
                seen.add(parent)
                order.append(parent)
                next_frontier.extend(self.graph.parents(parent))
            frontier = next_frontier
        return order

    # -- physical ---------------------------------------------------------

    def _build_physical(self, key: str) -> PhysicalSchema:
        graph = self.graph
        label = graph.label(key)
        logger.debug(f"Resolving physical schema of '{label}'")

        self._check_inheritance(key)

        collector = _ColumnCollector("Physical", label, self.strict_identifiers)
        collector.add(self._identifier(key))

        for ancestor in self._ancestors(key):
            collector.add(
                self._identifier(ancestor).model_copy(
                    update={
                        "role": ColumnRole.INHERITED_IDENTIFIER,
                        "required": False,
                        "relation": RelationKind.INHERITS,
                    }
                )
            )

        for rel in graph.references(key):
            collector.add(self._reference_column(rel))

        return PhysicalSchema(
            term=key,
            label=label,
            table_name=physical_table_name(label),
            scalar=graph.is_scalar(key),
            columns=tuple(collector.columns),
            issues=tuple(collector.issues),
        )

    # -- logical ----------------------------------------------------------

    def _build_logical(self, key: str) -> LogicalSchema:
        graph = self.graph
        physical = self._physical_for(key)
        label = physical.label
        logger.debug(f"Resolving logical schema of '{label}'")

        view = _ViewBuilder(label, self.strict_identifiers)
        view.issues.extend(physical.issues)
        for col in physical.columns:
            view.add_from(col, BASE_ALIAS, label, nullable=False)

        for rel in graph.references(key):
            if not graph.is_entity(rel.target_key):
                continue
            self._expose(
                view,
                root=key,
                parent_alias=BASE_ALIAS,
                parent=key,
                fk_column=self._reference_column(rel).name,
                target=rel.target_key,
                relation=rel.kind,
                left=rel.kind is RelationKind.COMPOSES,
                path=[key],
            )

        for parent in graph.parents(key):
            ancestor = self._logical_for(parent)
            alias = view.next_alias()
            if ancestor.joins:
                source, table = "logical", ancestor.view_name
                view.ancestors.append(ancestor)
            else:
                source, table = "physical", ancestor.base_table
            view.joins.append(
                Join(
                    alias=alias,
                    relation=RelationKind.INHERITS,
                    source=source,
                    table=table,
                    target=parent,
                    target_label=ancestor.label,
                    parent_alias=BASE_ALIAS,
                    parent_term=key,
                    parent_label=label,
                    fk_column=self._identifier(parent).name,
                    key_column=ancestor.identifier.name,
                    join_type=JoinType.INNER,
                )
            )
            for col in ancestor.columns:
                view.add_from(col, alias, ancestor.label, nullable=False)

        schema = LogicalSchema(
            term=key,
            label=label,
            view_name=logical_view_name(label),
            base_table=physical.table_name,
            columns=tuple(view.columns),
            joins=tuple(view.joins),
            ancestors=tuple(view.ancestors),
            issues=tuple(view.issues),
        )
        logger.debug(
            f"Logical schema of '{label}': {len(schema.columns)} columns, "
            f"{len(schema.joins)} joins"
        )
        return schema

    def _join_physical(
        self,
        view: _ViewBuilder,
        parent_alias: str,
        parent: str,
        fk_column: str,
        target: str,
        relation: RelationKind,
        left: bool,
    ) -> str:
        """Join one physical table into the view and expose its columns."""
        target_physical = self._physical_for(target)
        alias = view.next_alias()
        view.joins.append(
            Join(
                alias=alias,
                relation=relation,
                source="physical",
                table=target_physical.table_name,
                target=target,
                target_label=target_physical.label,
                parent_alias=parent_alias,
                parent_term=parent,
                parent_label=self.graph.label(parent),
                fk_column=fk_column,
                key_column=target_physical.identifier.name,
                join_type=JoinType.LEFT if left else JoinType.INNER,
            )
        )
        for col in target_physical.columns:
            view.add_from(col, alias, target_physical.label, nullable=left)
        return alias

    def _expose(
        self,
        view: _ViewBuilder,
        root: str,
        parent_alias: str,
        parent: str,
        fk_column: str,
        target: str,
        relation: RelationKind,
        left: bool,
        path: Sequence[str],
    ) -> None:
        """
        Join a target's table, its ancestors and its must-have chain.

        Every ancestor is joined once, straight from the target's alias: the
        target's table already stores each inherited identifier. ``path`` holds
        only terms reached through has a / must have a hops.
        """
        graph = self.graph
        if target in path:
            cycle = list(path[path.index(target):]) + [target]
            raise CyclicComposition(graph.label(root), [graph.label(k) for k in cycle])

        alias = self._join_physical(
            view, parent_alias, parent, fk_column, target, relation, left
        )
        owners = [(target, alias)]
        for ancestor in self._ancestors(target):
            ancestor_alias = self._join_physical(
                view,
                parent_alias=alias,
                parent=target,
                fk_column=self._identifier(ancestor).name,
                target=ancestor,
                relation=RelationKind.INHERITS,
                left=left,
            )
            owners.append((ancestor, ancestor_alias))

        sub_path = list(path) + [target]
        for owner, owner_alias in owners:
            for rel in graph.requirements(owner):
                if not graph.is_entity(rel.target_key):
                    continue
                self._expose(
                    view,
                    root=root,
                    parent_alias=owner_alias,
                    parent=owner,
                    fk_column=self._reference_column(rel).name,
                    target=rel.target_key,
                    relation=RelationKind.REQUIRES,
                    left=left,
                    path=sub_path,
                )


def resolver_for(graph: TermGraph, settings: Optional[Settings] = None) -> SchemaResolver:
    """Create a resolver configured from application settings."""
    settings = settings or get_settings()
    return SchemaResolver(
        graph,
        default_identifier_type=settings.default_identifier_type,
        strict_identifiers=settings.strict_identifiers,
    )
