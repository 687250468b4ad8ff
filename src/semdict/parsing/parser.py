"""Term parser: dictionary text -> ordered Term records.

Dictionary format::

    # Customer
    A person who has bought something from us.
    - Customer is a Person
    - Customer has a Customer Zipcode

A heading opens a term block, bullet lines are relationship statements and
every other non-blank line is definition text. Text before the first heading
is ignored, except a relationship statement, which has no term to belong to.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from semdict.config.logging import get_logger
from semdict.errors import DuplicateTerm, ParseError
from semdict.ir.naming import normalize_name
from semdict.ir.terms import PRIMITIVES, RelationKind, Relationship, Term

logger = get_logger(__name__)

HEADING_RE = re.compile(r"^\s{0,3}#{1,6}\s+(?P<name>.+?)\s*#*\s*$")
BULLET_RE = re.compile(r"^\s*[-*+]\s+(?P<body>.*?)\s*$")
STATEMENT_RE = re.compile(
    r"^(?P<subject>.+?)\s+"
    r"(?P<verb>must\s+have\s+an?|has\s+an?|is\s+identified\s+by|is\s+an?)\s+"
    r"(?P<object>.+?)\s*\.?$",
    re.IGNORECASE,
)

# Statement verbs after whitespace normalization
_VERB_KINDS = {
    "must have a": RelationKind.REQUIRES,
    "must have an": RelationKind.REQUIRES,
    "has a": RelationKind.COMPOSES,
    "has an": RelationKind.COMPOSES,
    "is a": RelationKind.INHERITS,
    "is an": RelationKind.INHERITS,
}
_IDENTIFIED_BY = "is identified by"


@dataclass
class _Block:
    """A term block being accumulated."""

    name: str
    line: int
    definition: List[str] = field(default_factory=list)
    statements: List[Tuple[int, str]] = field(default_factory=list)


def _display_name(raw: str) -> str:
    """Collapse whitespace but keep the declared casing."""
    return " ".join(raw.split())


def _split_blocks(text: str) -> List[_Block]:
    blocks: List[_Block] = []
    current: Optional[_Block] = None

    for lineno, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue

        heading = HEADING_RE.match(line)
        if heading:
            current = _Block(name=_display_name(heading.group("name")), line=lineno)
            blocks.append(current)
            continue

        bullet = BULLET_RE.match(line)
        if current is None:
            if bullet and STATEMENT_RE.match(bullet.group("body")):
                body = bullet.group("body")
                raise ParseError(
                    f"relationship statement '{body}' before the first term heading",
                    line=lineno,
                )
            logger.debug(f"Ignoring preamble line {lineno}")
            continue

        if bullet:
            current.statements.append((lineno, bullet.group("body")))
        else:
            current.definition.append(line.strip())

    return blocks


class TermParser:
    """
    Parses dictionary text into Term records.

    The parser checks each block in isolation; references to other terms are
    validated later by the graph builder.
    """

    def __init__(self, primitives: Iterable[str] = PRIMITIVES):
        # normalized name -> canonical primitive spelling
        self.primitives: Dict[str, str] = {normalize_name(p): p for p in primitives}

    def parse(self, text: str) -> List[Term]:
        """
        Parse the dictionary text.

        Args:
            text: Full dictionary document

        Returns:
            Terms in declaration order

        Raises:
            ParseError: Malformed block or statement
            DuplicateTerm: Two blocks declare the same normalized name
        """
        terms: List[Term] = []
        seen: Dict[str, Term] = {}

        for block in _split_blocks(text):
            term = self._parse_block(block)
            if term.key in seen:
                first = seen[term.key]
                raise DuplicateTerm(
                    f"duplicate term (first declared as '{first.name}' on line {first.line})",
                    block=block.name,
                    line=block.line,
                )
            seen[term.key] = term
            terms.append(term)

        logger.info(f"Parsed {len(terms)} terms")
        return terms

    def _parse_block(self, block: _Block) -> Term:
        key = normalize_name(block.name)
        if key in self.primitives:
            raise ParseError(
                f"'{block.name}' is a primitive type and cannot be redefined",
                block=block.name,
                line=block.line,
            )

        definition = " ".join(block.definition).strip()
        if not definition:
            raise ParseError("missing definition", block=block.name, line=block.line)

        relationships: List[Relationship] = []
        declared_type: Optional[str] = None
        declared_identifier: Optional[str] = None
        seen_targets: Dict[str, Relationship] = {}

        for lineno, body in block.statements:
            match = STATEMENT_RE.match(body)
            if not match:
                raise ParseError(
                    f"malformed relationship statement '{body}'",
                    block=block.name,
                    line=lineno,
                )

            subject = match.group("subject")
            if normalize_name(subject) != key:
                raise ParseError(
                    f"statement subject '{subject}' does not match the term",
                    block=block.name,
                    line=lineno,
                )

            verb = " ".join(match.group("verb").lower().split())
            target = _display_name(match.group("object"))

            if verb == _IDENTIFIED_BY:
                if declared_identifier is not None:
                    raise ParseError(
                        "more than one 'is identified by' statement",
                        block=block.name,
                        line=lineno,
                    )
                if normalize_name(target) == key:
                    raise ParseError(
                        "a term cannot be identified by itself",
                        block=block.name,
                        line=lineno,
                    )
                declared_identifier = target
                continue

            kind = _VERB_KINDS[verb]
            target_key = normalize_name(target)
            if kind is RelationKind.INHERITS and target_key in self.primitives:
                kind = RelationKind.PRIMITIVE_TYPE
                target = self.primitives[target_key]
                if declared_type is not None:
                    raise ParseError(
                        f"more than one primitive type ({declared_type}, {target})",
                        block=block.name,
                        line=lineno,
                    )
                declared_type = target

            previous = seen_targets.get(target_key)
            if previous is not None:
                if previous.kind is kind:
                    reason = f"repeated statement '{previous.describe()}'"
                else:
                    reason = (
                        f"conflicting statements '{previous.describe()}' "
                        f"and '{block.name} {kind.phrase} {target}'"
                    )
                raise ParseError(reason, block=block.name, line=lineno)

            relationship = Relationship(
                kind=kind, source=block.name, target=target, line=lineno
            )
            seen_targets[target_key] = relationship
            relationships.append(relationship)

        if declared_type is not None and (len(relationships) > 1 or declared_identifier):
            raise ParseError(
                f"a term typed as {declared_type} cannot declare other relationships",
                block=block.name,
                line=block.line,
            )

        logger.debug(f"Parsed term '{block.name}' with {len(relationships)} relationships")
        return Term(
            name=block.name,
            definition=definition,
            declared_type=declared_type,
            declared_identifier=declared_identifier,
            relationships=tuple(relationships),
            line=block.line,
        )


def parse_dictionary(text: str, primitives: Iterable[str] = PRIMITIVES) -> List[Term]:
    """Parse dictionary text with a fresh TermParser."""
    return TermParser(primitives).parse(text)
