"""Shared fixtures."""

import pytest

from semdict.compiler import compile_dictionary
from semdict.config.settings import Settings
from semdict.graph.builder import build_graph
from semdict.parsing.parser import parse_dictionary
from semdict.resolution.resolver import SchemaResolver


SCENARIO = """\
Retail dictionary. Text before the first heading is ignored.

# Person
Anyone we hold personal data about.

# Customer
A person who has bought something from us.
- Customer is a Person
- Customer has a Customer Zipcode

# Customer Zipcode
Postal code of the customer's billing address.
- Customer Zipcode is a String

# Order
A request by a customer to buy products.
- Order has a Customer
- Order must have an Order Date

# Order Date
Calendar date on which the order was placed.
- Order Date is a Date
"""


@pytest.fixture
def make_resolver():
    """Factory: parse, link and wrap a dictionary in a resolver."""

    def make(text: str, **kwargs) -> SchemaResolver:
        return SchemaResolver(build_graph(parse_dictionary(text)), **kwargs)

    return make


@pytest.fixture
def scenario_text() -> str:
    return SCENARIO


@pytest.fixture
def scenario_graph():
    return build_graph(parse_dictionary(SCENARIO))


@pytest.fixture
def scenario_resolver(scenario_graph) -> SchemaResolver:
    return SchemaResolver(scenario_graph)


@pytest.fixture
def settings() -> Settings:
    return Settings(log_level="WARNING")


@pytest.fixture
def scenario(settings):
    return compile_dictionary(SCENARIO, settings)
