"""Typer CLI application."""

import json
from pathlib import Path
from typing import Callable, List, Optional

import typer

from semdict.compiler import Compilation, compile_dictionary
from semdict.config.settings import get_settings
from semdict.config.logging import setup_logging
from semdict.errors import SemdictError
from semdict.ir.schema import Layer
from semdict.utils.ir_io import (
    graph_to_dict,
    load_dictionary,
    save_graph_to_json,
    write_artifacts,
)

app = typer.Typer(help="semdict: compile a business term dictionary into SQL schemas and tests")

DICTIONARY_OPTION = typer.Option(
    None, "--dictionary", "-d", help="Dictionary file (defaults to the configured dictionary_path)"
)


def _fail(message: str) -> None:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)


def _compile(dictionary: Optional[Path]) -> Compilation:
    settings = get_settings()
    path = Path(dictionary) if dictionary else settings.dictionary_path
    try:
        return compile_dictionary(load_dictionary(path), settings)
    except (FileNotFoundError, ValueError, SemdictError) as e:
        _fail(str(e))


def _emit(
    dictionary: Optional[Path],
    terms: List[str],
    render: Callable[[Compilation, str], str],
) -> None:
    """Render every term first so that a failure prints no partial output."""
    compilation = _compile(dictionary)
    outputs = []
    for term in terms:
        try:
            outputs.append(render(compilation, term))
        except SemdictError as e:
            _fail(str(e))
    typer.echo("\n".join(outputs), nl=False)


@app.command()
def describe(
    layer: Layer,
    terms: List[str] = typer.Argument(..., help="Term names"),
    dictionary: Optional[Path] = DICTIONARY_OPTION,
):
    """
    List the resolved columns of one or more terms.

    Args:
        layer: physical or logical
        terms: Term names
        dictionary: Path to the dictionary file
    """
    setup_logging()
    _emit(dictionary, terms, lambda c, term: c.describe(layer, term))


@app.command()
def create(
    layer: Layer,
    terms: List[str] = typer.Argument(..., help="Term names"),
    dictionary: Optional[Path] = DICTIONARY_OPTION,
):
    """
    Print the CREATE TABLE / CREATE VIEW statement of one or more terms.

    Args:
        layer: physical or logical
        terms: Term names
        dictionary: Path to the dictionary file
    """
    setup_logging()
    _emit(dictionary, terms, lambda c, term: c.create(layer, term))


@app.command()
def test(
    layer: Layer,
    terms: List[str] = typer.Argument(..., help="Term names"),
    dictionary: Optional[Path] = DICTIONARY_OPTION,
):
    """
    Print the validation script of one or more terms.

    Args:
        layer: physical or logical
        terms: Term names
        dictionary: Path to the dictionary file
    """
    setup_logging()
    _emit(dictionary, terms, lambda c, term: c.test(layer, term))


@app.command(name="compile")
def compile_command(
    dictionary: Optional[Path] = DICTIONARY_OPTION,
    out_dir: Optional[Path] = typer.Option(None, "--out-dir", "-o", help="Output directory"),
):
    """
    Compile every term and write all artifacts plus graph.json.

    Exits with status 1 when any term failed; the other terms are still written.
    """
    setup_logging()
    settings = get_settings()
    out_dir = Path(out_dir) if out_dir else settings.output_dir

    compilation = _compile(dictionary)
    report = compilation.compile_all(settings.max_workers)

    written = write_artifacts(report, out_dir)
    graph_path = out_dir / "graph.json"
    save_graph_to_json(compilation.graph, graph_path)

    typer.echo(f"Compiled {len(report.artifacts)} terms into {out_dir} ({len(written)} files)")
    typer.echo(f"Graph written to {graph_path}")

    if not report.ok:
        for failure in report.failures:
            typer.echo(f"Error: {failure.message}", err=True)
        typer.echo(f"{len(report.failures)} terms failed", err=True)
        raise typer.Exit(1)


@app.command()
def graph(
    dictionary: Optional[Path] = DICTIONARY_OPTION,
    out: Optional[Path] = typer.Option(None, "--out", help="Write the graph JSON to this file"),
):
    """
    Export the relationship graph as a node/edge list.
    """
    setup_logging()
    compilation = _compile(dictionary)

    if out:
        save_graph_to_json(compilation.graph, out)
        typer.echo(f"Graph written to {out}")
    else:
        typer.echo(json.dumps(graph_to_dict(compilation.graph), indent=2))


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
