"""Name normalization shared by every compiler stage."""

import re

_NON_ALNUM = re.compile(r"[^0-9a-z]+")

PHYSICAL_PREFIX = "physical_"
LOGICAL_PREFIX = "logical_"
IDENTIFIER_SUFFIX = "_id"


def normalize_name(name: str) -> str:
    """Identity key of a term: case-insensitive and whitespace-collapsed."""
    return " ".join(name.split()).lower()


def snake_case(label: str) -> str:
    """
    Convert a display name into a SQL-friendly name.

    Examples:
        "Customer Zipcode" -> "customer_zipcode"
        "Date of Birth (UTC)" -> "date_of_birth_utc"
    """
    return _NON_ALNUM.sub("_", label.lower()).strip("_")


def identifier_name(label: str) -> str:
    """Name of the synthesized identifier column of a term."""
    return f"{snake_case(label)}{IDENTIFIER_SUFFIX}"


def physical_table_name(label: str) -> str:
    return f"{PHYSICAL_PREFIX}{snake_case(label)}"


def logical_view_name(label: str) -> str:
    return f"{LOGICAL_PREFIX}{snake_case(label)}"
