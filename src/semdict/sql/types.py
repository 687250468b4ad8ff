"""Primitive type mapping and identifier quoting."""

import re
from typing import Dict, Mapping, Optional

from semdict.errors import GenerationError

DEFAULT_TYPE_MAP: Dict[str, str] = {
    "String": "VARCHAR(255)",
    "Text": "TEXT",
    "Integer": "INTEGER",
    "Decimal": "DECIMAL(18, 4)",
    "Float": "DOUBLE",
    "Boolean": "BOOLEAN",
    "Date": "DATE",
    "Timestamp": "TIMESTAMP",
}

# Words that cannot be used as bare column or table names in common dialects
RESERVED_WORDS = frozenset(
    """
    all and any as asc between by case cast check column constraint create cross
    current_date current_time current_timestamp date default delete desc distinct
    else end except exists false fetch for foreign from full grant group having
    in index inner insert intersect interval into is join key left like limit
    natural not null offset on or order outer primary references right select
    table then time timestamp to true union unique update user using values view
    when where window with
    """.split()
)

_SIMPLE_NAME = re.compile(r"^[a-z_][a-z0-9_]*$")


def build_type_map(extra: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Default type map extended (or overridden) by ``extra``."""
    type_map = dict(DEFAULT_TYPE_MAP)
    if extra:
        type_map.update(extra)
    return type_map


def sql_type(primitive: str, type_map: Mapping[str, str], location: str = "") -> str:
    """
    Map a primitive type to its SQL type.

    Raises:
        GenerationError: the primitive has no mapping
    """
    try:
        return type_map[primitive]
    except KeyError:
        where = f" for {location}" if location else ""
        raise GenerationError(
            f"no SQL type mapped for primitive '{primitive}'{where}"
        ) from None


def quote_ident(name: str) -> str:
    """Double-quote a name when it is reserved or not a simple identifier."""
    if _SIMPLE_NAME.match(name) and name not in RESERVED_WORDS:
        return name
    return '"' + name.replace('"', '""') + '"'
