"""Resolve many terms with per-term failure isolation."""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, TypeVar

from semdict.config.logging import get_logger
from semdict.errors import SemdictError
from semdict.ir.schema import Layer
from semdict.resolution.resolver import SchemaResolver

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class TermFailure:
    """A term whose resolution or generation failed."""

    term: str
    error: SemdictError

    @property
    def message(self) -> str:
        return str(self.error)


@dataclass
class BatchResult:
    """Successful results keyed by term name, plus the failures."""

    results: Dict[str, object] = field(default_factory=dict)
    failures: List[TermFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def run_per_term(
    terms: Iterable[str],
    work: Callable[[str], T],
    max_workers: Optional[int] = None,
) -> BatchResult:
    """
    Run one unit of work per term on a thread pool.

    Compiler errors are collected as failures; anything else propagates.
    Results and failures come back in the order the terms were given.

    Args:
        terms: Term names
        work: Callable taking a term name
        max_workers: Thread pool size (None lets the executor decide)

    Returns:
        BatchResult
    """
    names = list(terms)
    outcomes: Dict[int, object] = {}

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_index = {executor.submit(work, name): i for i, name in enumerate(names)}
        for future in as_completed(future_to_index):
            index = future_to_index[future]
            try:
                outcomes[index] = future.result()
            except SemdictError as e:
                logger.warning(f"Term '{names[index]}' failed: {e}")
                outcomes[index] = TermFailure(term=names[index], error=e)

    result = BatchResult()
    for index, name in enumerate(names):
        outcome = outcomes[index]
        if isinstance(outcome, TermFailure):
            result.failures.append(outcome)
        else:
            result.results[name] = outcome
    return result


def resolve_all(
    resolver: SchemaResolver,
    layer: Layer,
    terms: Optional[Iterable[str]] = None,
    max_workers: Optional[int] = None,
) -> BatchResult:
    """
    Resolve every requested term (all declared terms by default).

    A cyclic or ambiguous term is reported in ``failures`` and does not stop
    the other terms from resolving.
    """
    if terms is None:
        terms = [t.name for t in resolver.graph.terms]
    layer = Layer(layer)
    result = run_per_term(terms, lambda name: resolver.resolve(layer, name), max_workers)
    logger.info(
        f"Resolved {len(result.results)} {layer.value} schemas, "
        f"{len(result.failures)} failures"
    )
    return result
