import time
import uuid
from concurrent.futures import ThreadPoolExecutor

import pytest

from errors import (
    ConfigurationError,
    QueryRuntimeError,
    QuerySyntaxError,
    QueryTimeoutError,
    ReadOnlyViolation,
)
from executor import create_table_sql, execute, normalize_value
from models import ColumnSpec, SchemaSpec, TableSpec


def test_select_returns_result_set(employees):
    result = execute("SELECT name FROM employees WHERE salary > 50000 ORDER BY name", employees)
    assert result.columns == ("name",)
    assert result.rows == (("Alice",), ("Carol",))


def test_trailing_semicolon_and_whitespace(employees):
    result = execute("  SELECT count(*) AS n FROM employees;  \n", employees)
    assert result.rows == ((4,),)


def test_unknown_table_is_runtime_error(employees):
    with pytest.raises(QueryRuntimeError) as exc:
        execute("SELECT name FROM employes", employees)
    assert exc.value.kind == "runtime_error"
    assert "employes" in exc.value.message


def test_malformed_sql_is_syntax_error(employees):
    with pytest.raises(QuerySyntaxError):
        execute("SELEC name FROM employees", employees)


def test_empty_query_is_syntax_error(employees):
    with pytest.raises(QuerySyntaxError):
        execute("   ;  ", employees)


@pytest.mark.parametrize("sql", [
    "DELETE FROM employees",
    "DROP TABLE employees",
    "UPDATE employees SET salary = 0",
    "INSERT INTO employees VALUES (5, 'Eve', 'Sales', 1)",
    "SELECT 1; DROP TABLE employees",
])
def test_read_only_rejects_writes(employees, sql):
    with pytest.raises(ReadOnlyViolation):
        execute(sql, employees, allow_writes=False)


def test_read_only_allows_ctes_and_set_operations(employees):
    result = execute(
        "WITH rich AS (SELECT name FROM employees WHERE salary > 60000) "
        "SELECT name FROM rich UNION ALL SELECT 'nobody'",
        employees,
        allow_writes=False,
    )
    assert sorted(r[0] for r in result.rows) == ["Alice", "Carol", "nobody"]


def test_playground_allows_ddl(employees):
    result = execute(
        "CREATE TABLE scratch AS SELECT 1 AS x; SELECT x FROM scratch",
        employees,
        allow_writes=True,
    )
    assert result.columns == ("x",)
    assert result.rows == ((1,),)


def test_writes_do_not_leak_between_calls(employees):
    execute("DELETE FROM employees", employees, allow_writes=True)
    assert execute("SELECT count(*) AS n FROM employees", employees).rows == ((4,),)


def test_concurrent_executions_are_isolated(employees):
    def run(i):
        return execute(
            f"DELETE FROM employees WHERE id <= {i}; SELECT count(*) AS n FROM employees",
            employees,
            allow_writes=True,
        ).rows[0][0]

    with ThreadPoolExecutor(max_workers=4) as pool:
        counts = list(pool.map(run, [1, 2, 3, 4]))
    assert counts == [3, 2, 1, 0]


def test_timeout_interrupts_pathological_query(employees):
    start = time.monotonic()
    with pytest.raises(QueryTimeoutError) as exc:
        execute(
            "SELECT sum(a.range * b.range) AS s FROM range(1000000) a, range(1000000) b",
            employees,
            timeout_ms=200,
        )
    elapsed = time.monotonic() - start
    assert exc.value.kind == "timeout"
    assert exc.value.timeout_ms == 200
    assert elapsed < 0.2 + 5.0


def test_bad_seed_data_is_configuration_error():
    schema = SchemaSpec(
        name="broken",
        tables=(TableSpec("t", (ColumnSpec("id", "INTEGER"),), rows=(("not a number",),)),),
    )
    with pytest.raises(ConfigurationError):
        execute("SELECT * FROM t", schema)


def test_setup_sql_runs_before_tables():
    schema = SchemaSpec(
        name="scripted",
        setup_sql="CREATE TABLE cities (name VARCHAR); INSERT INTO cities VALUES ('Riga'), ('Oslo');",
    )
    result = execute("SELECT name FROM cities ORDER BY name", schema)
    assert result.rows == (("Oslo",), ("Riga",))


def test_seed_rows_as_mappings():
    schema = SchemaSpec.from_dict({
        "name": "pets",
        "tables": [{
            "name": "pets",
            "columns": [{"name": "id", "type": "INTEGER", "primaryKey": True}, {"name": "kind"}],
            "rows": [{"id": 1, "kind": "cat"}, {"id": 2}],
        }],
    })
    result = execute("SELECT id, kind FROM pets ORDER BY id", schema)
    assert result.rows == ((1, "cat"), (2, None))


def test_foreign_keys_and_decimals(shop):
    result = execute(
        "SELECT c.name, SUM(o.amount) AS total FROM customers c "
        "JOIN orders o ON o.customer_id = c.customer_id GROUP BY c.name ORDER BY c.name",
        shop,
    )
    assert result.columns == ("name", "total")
    assert [r[0] for r in result.rows] == ["Ana", "Ben"]


def test_create_table_sql_quotes_identifiers():
    table = TableSpec(
        "order",
        (
            ColumnSpec("id", "INTEGER", primary_key=True),
            ColumnSpec("select", "VARCHAR", nullable=False),
            ColumnSpec("customer_id", "INTEGER", references="customers.customer_id"),
        ),
    )
    sql = create_table_sql(table)
    assert 'CREATE TABLE "order"' in sql
    assert '"id" INTEGER PRIMARY KEY' in sql
    assert '"select" VARCHAR NOT NULL' in sql
    assert 'REFERENCES "customers" ("customer_id")' in sql


def test_normalize_value_falls_back_to_string():
    u = uuid.uuid4()
    assert normalize_value(u) == str(u)
    assert normalize_value(None) is None
    assert normalize_value(3) == 3
