"""Boundary helpers."""

from .ir_io import (
    graph_to_dict,
    load_dictionary,
    save_graph_to_json,
    save_schema_to_json,
    write_artifacts,
)

__all__ = [
    "graph_to_dict",
    "load_dictionary",
    "save_graph_to_json",
    "save_schema_to_json",
    "write_artifacts",
]
