"""Tests for DDL generation."""

import pytest
import sqlglot
from sqlglot import exp

from semdict.errors import GenerationError
from semdict.resolution.resolver import SchemaResolver
from semdict.sql.ddl import SqlGenerator
from semdict.sql.types import build_type_map, quote_ident, sql_type


CUSTOMER_TABLE = """\
CREATE TABLE physical_customer (
    customer_id VARCHAR(255) NOT NULL PRIMARY KEY,
    person_id VARCHAR(255),
    customer_zipcode VARCHAR(255)
);
"""

ORDER_VIEW = """\
CREATE VIEW logical_order AS
SELECT
    t0.order_id AS order_id,
    t0.customer_id AS customer_id,
    t0.order_date AS order_date,
    t1.person_id AS person_id,
    t1.customer_zipcode AS customer_zipcode
FROM physical_order AS t0
LEFT JOIN physical_customer AS t1 ON t1.customer_id = t0.customer_id
LEFT JOIN physical_person AS t2 ON t2.person_id = t1.person_id;
"""

VIP = """
# VIP Customer
A customer with a loyalty card.
- VIP Customer is a Customer
"""

EMPLOYEE_VIEW = """\
CREATE VIEW logical_employee AS
SELECT
    t0.employee_id AS employee_id,
    t0.manager_id AS manager_id
FROM physical_employee AS t0
LEFT JOIN physical_manager AS t1 ON t1.manager_id = t0.manager_id
LEFT JOIN physical_employee AS t2 ON t2.employee_id = t1.employee_id;
"""

SOLE_TRADER_ORDER = """
# Party
Anyone we trade with.

# Person
A human party.
- Person is a Party

# Organisation
A legal entity.
- Organisation is a Party

# Sole Trader
A person trading as an organisation.
- Sole Trader is a Person
- Sole Trader is an Organisation

# Order
A sale.
- Order must have a Sole Trader
"""


def test_physical_ddl(scenario_resolver):
    """Test CREATE TABLE with key and NOT NULL markers."""
    ddl = SqlGenerator().physical_ddl(scenario_resolver.resolve_physical("Customer"))
    assert ddl == CUSTOMER_TABLE


def test_physical_ddl_required_column(scenario_resolver):
    """Test a must-have column is NOT NULL and typed through the map."""
    ddl = SqlGenerator().physical_ddl(scenario_resolver.resolve_physical("Order"))
    assert "    order_date DATE NOT NULL\n" in ddl
    assert "    customer_id VARCHAR(255),\n" in ddl


def test_logical_ddl(scenario_resolver):
    """Test CREATE VIEW with transitive LEFT joins."""
    ddl = SqlGenerator().logical_ddl(scenario_resolver.resolve_logical("Order"))
    assert ddl == ORDER_VIEW


def test_logical_ddl_inner_join_for_ancestor(scenario_resolver):
    """Test an inherited ancestor is an INNER JOIN."""
    ddl = SqlGenerator().logical_ddl(scenario_resolver.resolve_logical("Customer"))
    assert "INNER JOIN physical_person AS t1 ON t1.person_id = t0.person_id" in ddl
    assert "WITH" not in ddl


def test_ancestor_view_as_cte(make_resolver, scenario_text):
    """Test an ancestor view with joins is embedded once as a CTE."""
    resolver = make_resolver(scenario_text + VIP)
    ddl = SqlGenerator().logical_ddl(resolver.resolve_logical("VIP Customer"))

    assert ddl.startswith("CREATE VIEW logical_vip_customer AS\nWITH logical_customer AS (\n    SELECT\n")
    assert "    INNER JOIN physical_person AS t1 ON t1.person_id = t0.person_id\n)\n" in ddl
    assert "INNER JOIN logical_customer AS t1 ON t1.customer_id = t0.customer_id;" in ddl
    assert ddl.count("logical_customer AS (") == 1


def test_diamond_ancestors_joined_once(make_resolver):
    """Test a shared grandparent of a joined target appears in one JOIN."""
    ddl = SqlGenerator().logical_ddl(make_resolver(SOLE_TRADER_ORDER).resolve_logical("Order"))

    assert ddl.count("JOIN physical_party ") == 1
    assert "INNER JOIN physical_party AS t4 ON t4.party_id = t1.party_id;" in ddl
    tree = sqlglot.parse_one(ddl)
    assert len(list(tree.find_all(exp.Join))) == 4


def test_self_referential_view(make_resolver):
    """Test a subtype reached through an optional link joins its parent table."""
    text = (
        "# Employee\nSomeone on the payroll.\n- Employee has a Manager\n\n"
        "# Manager\nAn employee who leads others.\n- Manager is an Employee\n"
    )
    resolver = make_resolver(text)
    generator = SqlGenerator()

    assert generator.logical_ddl(resolver.resolve_logical("Employee")) == EMPLOYEE_VIEW
    manager = generator.logical_ddl(resolver.resolve_logical("Manager"))
    assert manager.startswith("CREATE VIEW logical_manager AS\nWITH logical_employee AS (\n")
    assert "INNER JOIN logical_employee AS t1 ON t1.employee_id = t0.employee_id;" in manager


def test_ancestor_view_without_inlining(make_resolver, scenario_text):
    """Test the view joins the standalone ancestor view when not inlined."""
    resolver = make_resolver(scenario_text + VIP)
    ddl = SqlGenerator(inline_ancestor_views=False).logical_ddl(
        resolver.resolve_logical("VIP Customer")
    )
    assert "WITH" not in ddl
    assert "INNER JOIN logical_customer AS t1" in ddl


def test_deterministic_output(scenario_resolver, scenario_graph):
    """Test byte-identical output from independent resolvers."""
    other = SchemaResolver(scenario_graph)
    generator = SqlGenerator()
    for name in ["Person", "Customer", "Order"]:
        assert generator.logical_ddl(scenario_resolver.resolve_logical(name)) == generator.logical_ddl(
            other.resolve_logical(name)
        )


def test_unmapped_primitive(scenario_resolver):
    """Test a primitive without a SQL type is a generation error."""
    type_map = build_type_map()
    del type_map["Date"]
    generator = SqlGenerator(type_map=type_map)

    with pytest.raises(GenerationError, match="no SQL type mapped for primitive 'Date'"):
        generator.physical_ddl(scenario_resolver.resolve_physical("Order"))
    with pytest.raises(GenerationError):
        generator.logical_ddl(scenario_resolver.resolve_logical("Order"))
    # terms without a Date column are unaffected
    assert generator.physical_ddl(scenario_resolver.resolve_physical("Customer")) == CUSTOMER_TABLE


def test_extra_type_mapping():
    """Test extending the type map."""
    type_map = build_type_map({"Money": "DECIMAL(12, 2)"})
    assert sql_type("Money", type_map) == "DECIMAL(12, 2)"
    assert sql_type("String", type_map) == "VARCHAR(255)"


def test_quote_ident():
    """Test quoting of reserved and unusual names."""
    assert quote_ident("customer_id") == "customer_id"
    assert quote_ident("order") == '"order"'
    assert quote_ident("2nd_line") == '"2nd_line"'


def test_reserved_column_name_is_quoted(make_resolver):
    """Test a column named after a reserved word."""
    text = "# Key\nA key code.\n- Key is a String\n\n# Lock\nA lock.\n- Lock must have a Key\n"
    ddl = SqlGenerator().physical_ddl(make_resolver(text).resolve_physical("Lock"))
    assert '    "key" VARCHAR(255) NOT NULL\n' in ddl


def test_ddl_round_trip(scenario_resolver):
    """Test parsed DDL matches the schema's column names and nullability."""
    for name in ["Person", "Customer", "Order", "Order Date"]:
        schema = scenario_resolver.resolve_physical(name)
        tree = sqlglot.parse_one(SqlGenerator().physical_ddl(schema))
        assert isinstance(tree, exp.Create)

        parsed = []
        for column_def in tree.this.expressions:
            kinds = [c.kind for c in column_def.args.get("constraints") or []]
            not_null = any(
                isinstance(k, exp.NotNullColumnConstraint) and not k.args.get("allow_null")
                for k in kinds
            )
            primary = any(isinstance(k, exp.PrimaryKeyColumnConstraint) for k in kinds)
            parsed.append((column_def.name, not_null, primary))

        expected = [
            (col.name, col.required, i == 0) for i, col in enumerate(schema.columns)
        ]
        assert parsed == expected
