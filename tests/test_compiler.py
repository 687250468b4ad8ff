"""Tests for the compile facade and boundary I/O."""

import json
import logging

import pytest

from semdict.compiler import compile_dictionary
from semdict.config.logging import setup_logging
from semdict.config.settings import Settings
from semdict.errors import CyclicInheritance, ParseError, UndefinedReference
from semdict.ir.schema import Layer
from semdict.utils.ir_io import (
    load_dictionary,
    save_graph_to_json,
    save_schema_to_json,
    write_artifacts,
)


def _names(listing: str):
    return [line.split()[0] for line in listing.splitlines()]


def test_describe_physical_customer(scenario):
    """Test the physical column listing of the worked example."""
    listing = scenario.describe(Layer.PHYSICAL, "Customer")

    assert sorted(_names(listing)) == ["customer_id", "customer_zipcode", "person_id"]
    assert _names(listing) == ["customer_id", "person_id", "customer_zipcode"]
    assert listing.splitlines()[1].split() == [
        "person_id", "String", "Customer", "is", "a", "Person"
    ]


def test_describe_logical_order(scenario):
    """Test the logical listing reaches Person through Customer."""
    listing = scenario.describe("logical", "order")

    assert _names(listing) == [
        "order_id",
        "customer_id",
        "order_date",
        "person_id",
        "customer_zipcode",
    ]
    assert "Customer has a Customer Zipcode" in listing.splitlines()[-1]


def test_create_and_test(scenario):
    """Test DDL and script text are plain strings."""
    assert scenario.create(Layer.PHYSICAL, "Person").startswith("CREATE TABLE physical_person (")
    assert scenario.create(Layer.LOGICAL, "Person").startswith("CREATE VIEW logical_person AS")
    assert "-- [1] existence" in scenario.test(Layer.PHYSICAL, "Person")


def test_whole_compile_errors():
    """Test parse and link errors abort the compile."""
    with pytest.raises(ParseError):
        compile_dictionary("# Person\n- Person is a Party\n", Settings())
    with pytest.raises(UndefinedReference):
        compile_dictionary("# Order\nA sale.\n- Order has a Customer\n", Settings())


def test_compile_all_isolates_failures(scenario_text):
    """Test a cyclic term contributes no artifacts and others still compile."""
    text = scenario_text + "\n# Alpha\nFirst.\n- Alpha is a Beta\n\n# Beta\nSecond.\n- Beta is a Alpha\n"
    compilation = compile_dictionary(text, Settings(max_workers=2))
    report = compilation.compile_all()

    assert list(report.artifacts) == [
        "Person",
        "Customer",
        "Customer Zipcode",
        "Order",
        "Order Date",
    ]
    assert [f.term for f in report.failures] == ["Alpha", "Beta"]
    assert isinstance(report.failures[0].error, CyclicInheritance)
    assert not report.ok

    with pytest.raises(CyclicInheritance):
        compilation.create(Layer.PHYSICAL, "Alpha")


def test_extra_primitives():
    """Test configured primitives extend the parser and the type map."""
    settings = Settings(extra_primitives={"Money": "DECIMAL(12, 2)"})
    text = "# Price\nWhat it costs.\n- Price is a Money\n\n# Product\nA thing.\n- Product must have a Price\n"
    ddl = compile_dictionary(text, settings).create(Layer.PHYSICAL, "Product")
    assert "    price DECIMAL(12, 2) NOT NULL\n" in ddl


def test_each_compile_is_independent(scenario_text):
    """Test two compiles share no resolver state."""
    first = compile_dictionary(scenario_text, Settings())
    second = compile_dictionary(scenario_text, Settings(default_identifier_type="Integer"))

    assert "person_id VARCHAR(255)" in first.create(Layer.PHYSICAL, "Person")
    assert "person_id INTEGER" in second.create(Layer.PHYSICAL, "Person")


def test_load_dictionary(tmp_path, scenario_text):
    """Test reading a dictionary file."""
    path = tmp_path / "dictionary.md"
    path.write_text(scenario_text, encoding="utf-8")
    assert load_dictionary(path) == scenario_text

    with pytest.raises(FileNotFoundError):
        load_dictionary(tmp_path / "missing.md")

    empty = tmp_path / "empty.md"
    empty.write_text("  \n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_dictionary(empty)


def test_write_artifacts(tmp_path, scenario):
    """Test the artifact directory layout."""
    report = scenario.compile_all()
    written = write_artifacts(report, tmp_path / "out")

    assert len(written) == 4 * len(report.artifacts)
    customer = (tmp_path / "out" / "physical" / "customer.sql").read_text(encoding="utf-8")
    assert customer == report.artifacts["Customer"].physical_ddl
    assert (tmp_path / "out" / "logical" / "order_date.sql").exists()
    assert (tmp_path / "out" / "tests" / "logical_customer_zipcode.sql").exists()


def test_save_graph_and_schema(tmp_path, scenario):
    """Test JSON exports of the graph and a schema."""
    save_graph_to_json(scenario.graph, tmp_path / "graph.json")
    data = json.loads((tmp_path / "graph.json").read_text(encoding="utf-8"))
    assert {"source": "Customer", "target": "Person"}.items() <= data["edges"][0].items()
    assert len(data["nodes"]) == 7

    save_schema_to_json(scenario.schema(Layer.LOGICAL, "Order"), tmp_path / "schemas" / "order.json")
    schema = json.loads((tmp_path / "schemas" / "order.json").read_text(encoding="utf-8"))
    assert schema["view_name"] == "logical_order"
    assert [c["name"] for c in schema["columns"]][:3] == ["order_id", "customer_id", "order_date"]


class _Records(logging.Handler):
    def __init__(self):
        super().__init__()
        self.messages = []

    def emit(self, record):
        self.messages.append(record.getMessage())


def test_compile_logs_each_stage_once(scenario_text):
    """Test parsing and linking are each reported once."""
    setup_logging(level="INFO")
    records = _Records()
    logging.getLogger("semdict").addHandler(records)
    try:
        compile_dictionary(scenario_text, Settings())
    finally:
        setup_logging()

    assert records.messages.count("Parsed 5 terms") == 1
    assert sum(m.startswith("Built graph with 5 terms") for m in records.messages) == 1
    assert "Ready to compile 5 terms" in records.messages
