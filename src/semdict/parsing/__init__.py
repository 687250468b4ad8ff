"""Dictionary text parsing."""

from .parser import TermParser, parse_dictionary

__all__ = ["TermParser", "parse_dictionary"]
