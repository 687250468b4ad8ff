"""Utilities for reading dictionaries and writing compiled artifacts."""

import json
from pathlib import Path
from typing import Dict, List, Union

from semdict.config.logging import get_logger
from semdict.graph.builder import TermGraph
from semdict.ir.naming import snake_case
from semdict.ir.schema import LogicalSchema, PhysicalSchema

logger = get_logger(__name__)


def load_dictionary(path: Path) -> str:
    """
    Read a dictionary document.

    Args:
        path: Path to the dictionary file

    Returns:
        Dictionary text

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is empty
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Dictionary file not found: {path}")

    text = path.read_text(encoding="utf-8")
    if not text.strip():
        raise ValueError(
            f"Dictionary file is empty: {path}. "
            f"Declare at least one term with a heading line such as '# Customer'."
        )
    return text


def write_artifacts(report, out_dir: Path) -> List[Path]:
    """
    Write every artifact of a CompileReport.

    Layout:
        physical/<term>.sql
        logical/<term>.sql
        tests/physical_<term>.sql
        tests/logical_<term>.sql

    Args:
        report: CompileReport from Compilation.compile_all
        out_dir: Output directory

    Returns:
        Paths written, in term order

    Note:
        Creates directories if they don't exist.
    """
    out_dir = Path(out_dir)
    written: List[Path] = []
    for artifacts in report.artifacts.values():
        name = snake_case(artifacts.term)
        files: Dict[Path, str] = {
            out_dir / "physical" / f"{name}.sql": artifacts.physical_ddl,
            out_dir / "logical" / f"{name}.sql": artifacts.logical_ddl,
            out_dir / "tests" / f"physical_{name}.sql": artifacts.physical_tests,
            out_dir / "tests" / f"logical_{name}.sql": artifacts.logical_tests,
        }
        for path, content in files.items():
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
            written.append(path)

    logger.info(f"Wrote {len(written)} files to {out_dir}")
    return written


def graph_to_dict(graph: TermGraph) -> dict:
    """Node/edge enumeration of a graph as plain JSON-ready data."""
    return {
        "nodes": [node.model_dump(mode="json") for node in graph.nodes()],
        "edges": [edge.model_dump(mode="json") for edge in graph.edges()],
    }


def save_graph_to_json(graph: TermGraph, path: Path) -> None:
    """
    Save the node/edge enumeration of a graph to a JSON file.

    Note:
        Creates parent directories if they don't exist.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(graph_to_dict(graph), indent=2), encoding="utf-8")


def save_schema_to_json(schema: Union[PhysicalSchema, LogicalSchema], path: Path) -> None:
    """
    Save a resolved schema to a JSON file.

    Note:
        Creates parent directories if they don't exist.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(schema.model_dump_json(indent=2), encoding="utf-8")
