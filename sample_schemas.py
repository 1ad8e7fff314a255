# sample_schemas.py
"""Static sample databases used by the playground, the CLI default and the tests."""

import datetime
from decimal import Decimal
from typing import Dict

from models import ColumnSpec, SchemaSpec, TableSpec

EMPLOYEES = SchemaSpec(
    name="employees",
    tables=(
        TableSpec(
            name="employees",
            columns=(
                ColumnSpec("id", "INTEGER", nullable=False, primary_key=True),
                ColumnSpec("name", "VARCHAR", nullable=False),
                ColumnSpec("department", "VARCHAR"),
                ColumnSpec("salary", "INTEGER"),
            ),
            rows=(
                (1, "Alice", "Engineering", 85000),
                (2, "Bob", "Marketing", 45000),
                (3, "Carol", "Engineering", 62000),
                (4, "Dave", "Sales", 38000),
            ),
        ),
    ),
)

SHOP = SchemaSpec(
    name="shop",
    tables=(
        TableSpec(
            name="customers",
            columns=(
                ColumnSpec("customer_id", "INTEGER", nullable=False, primary_key=True),
                ColumnSpec("name", "VARCHAR", nullable=False),
                ColumnSpec("city", "VARCHAR"),
            ),
            rows=(
                (1, "Ana", "Lisbon"),
                (2, "Ben", "Berlin"),
                (3, "Chloe", None),
            ),
        ),
        TableSpec(
            name="orders",
            columns=(
                ColumnSpec("order_id", "INTEGER", nullable=False, primary_key=True),
                ColumnSpec("customer_id", "INTEGER", references="customers.customer_id"),
                ColumnSpec("amount", "DECIMAL(10,2)"),
                ColumnSpec("ordered_on", "DATE"),
            ),
            rows=(
                (10, 1, Decimal("120.00"), datetime.date(2024, 1, 5)),
                (11, 1, Decimal("150.50"), datetime.date(2024, 2, 11)),
                (12, 2, Decimal("80.00"), datetime.date(2024, 2, 12)),
                (13, 2, Decimal("40.25"), datetime.date(2024, 3, 1)),
            ),
        ),
    ),
)

CATALOG: Dict[str, SchemaSpec] = {s.name: s for s in (EMPLOYEES, SHOP)}


def get_schema(name: str) -> SchemaSpec:
    try:
        return CATALOG[name]
    except KeyError:
        raise KeyError(f"Unknown sample schema {name!r}; available: {', '.join(sorted(CATALOG))}")
