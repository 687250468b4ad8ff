"""Error taxonomy for the dictionary compiler.

Whole-compile errors (the graph cannot be trusted):
    ParseError, DuplicateTerm, UndefinedReference, GraphError

Per-term errors (other terms keep resolving):
    CyclicInheritance, CyclicComposition, AmbiguousIdentifier, GenerationError
"""

from typing import Optional, Sequence, Tuple


class SemdictError(Exception):
    """Base class for every error raised by the compiler."""

    def __init__(self, message: str, term: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.term = term


class ParseError(SemdictError):
    """Malformed term block in the dictionary text."""

    def __init__(self, reason: str, block: Optional[str] = None, line: Optional[int] = None):
        where = []
        if block:
            where.append(f"term '{block}'")
        if line is not None:
            where.append(f"line {line}")
        prefix = f"{', '.join(where)}: " if where else ""
        super().__init__(f"{prefix}{reason}", term=block)
        self.reason = reason
        self.block = block
        self.line = line


class DuplicateTerm(ParseError):
    """Two blocks declare the same normalized term name."""


class GraphError(SemdictError):
    """The term records cannot form a valid relationship graph."""


class UndefinedReference(GraphError):
    """An edge (or lookup) names a term that is neither declared nor primitive."""

    def __init__(self, name: str, source: Optional[str] = None, relation: Optional[str] = None):
        if source:
            message = f"term '{source}' {relation or 'references'} undefined term '{name}'"
        else:
            message = f"undefined term '{name}'"
        super().__init__(message, term=source or name)
        self.name = name
        self.source = source
        self.relation = relation


class ResolutionError(SemdictError):
    """A single term could not be resolved."""

    def __init__(self, message: str, term: str, path: Sequence[str] = ()):
        self.path: Tuple[str, ...] = tuple(path)
        if self.path:
            message = f"{message}: {' -> '.join(self.path)}"
        super().__init__(message, term=term)


class CyclicInheritance(ResolutionError):
    """An INHERITS cycle is reachable from the term."""

    def __init__(self, term: str, path: Sequence[str]):
        super().__init__(f"cyclic inheritance while resolving '{term}'", term, path)


class CyclicComposition(ResolutionError):
    """A COMPOSES/REQUIRES cycle is reachable during logical resolution."""

    def __init__(self, term: str, path: Sequence[str]):
        super().__init__(f"cyclic composition while resolving '{term}'", term, path)


class AmbiguousIdentifier(ResolutionError):
    """Two different terms contribute an identifier column with the same name."""

    def __init__(self, term: str, column: str, owners: Sequence[str]):
        super().__init__(
            f"ambiguous identifier '{column}' in '{term}' (declared by {', '.join(owners)})",
            term,
        )
        self.column = column
        self.owners = tuple(owners)


class GenerationError(SemdictError):
    """A schema could not be turned into SQL."""
