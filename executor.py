# executor.py
"""
Query executor: runs one SQL string against one schema snapshot.

Every call gets its own in-memory DuckDB database, seeded from the SchemaSpec,
so concurrent verifications never see each other's tables or transactions.
The database is closed on every exit path, including timeouts.
"""

import datetime
import logging
import threading
from decimal import Decimal
from typing import Any, List, Optional

import duckdb

from canonicalizer import enforce_read_only, normalize_query
from config import SETTINGS, Settings
from errors import (
    ConfigurationError,
    QueryRuntimeError,
    QuerySyntaxError,
    QueryTimeoutError,
    ReadOnlyViolation,
    VerificationError,
)
from models import ColumnSpec, ResultSet, SchemaSpec, TableSpec

logger = logging.getLogger(__name__)

_PRIMITIVES = (bool, int, float, Decimal, str, datetime.date, datetime.time)


def quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _column_sql(col: ColumnSpec) -> str:
    parts = [quote_ident(col.name), col.type]
    if col.primary_key:
        parts.append("PRIMARY KEY")
    elif not col.nullable:
        parts.append("NOT NULL")
    if col.references:
        table, _, column = col.references.partition(".")
        ref = quote_ident(table)
        if column:
            ref += f" ({quote_ident(column)})"
        parts.append(f"REFERENCES {ref}")
    return " ".join(parts)


def create_table_sql(table: TableSpec) -> str:
    cols = ",\n    ".join(_column_sql(c) for c in table.columns)
    return f"CREATE TABLE {quote_ident(table.name)} (\n    {cols}\n)"


def insert_sql(table: TableSpec) -> str:
    placeholders = ", ".join("?" for _ in table.columns)
    names = ", ".join(quote_ident(c.name) for c in table.columns)
    return f"INSERT INTO {quote_ident(table.name)} ({names}) VALUES ({placeholders})"


def connect(settings: Settings = SETTINGS) -> duckdb.DuckDBPyConnection:
    return duckdb.connect(
        database=":memory:",
        config={
            "threads": settings.threads,
            "memory_limit": settings.memory_limit,
            "enable_external_access": False,
        },
    )


def seed_schema(con: duckdb.DuckDBPyConnection, schema: SchemaSpec) -> None:
    """Create and populate every table. Failures here are bad question data."""
    try:
        if schema.setup_sql and schema.setup_sql.strip():
            con.execute(schema.setup_sql)
        for table in schema.tables:
            con.execute(create_table_sql(table))
            if table.rows:
                con.executemany(insert_sql(table), [list(r) for r in table.rows])
    except duckdb.Error as e:
        raise ConfigurationError(f"Failed to seed schema {schema.name!r}: {e}") from e


def normalize_value(value: Any) -> Any:
    """Map a DuckDB value onto the null | bool | number | string | temporal | bytes union."""
    if value is None or isinstance(value, _PRIMITIVES):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    return str(value)


def check_statements(con: duckdb.DuckDBPyConnection, sql: str, allow_writes: bool) -> None:
    """
    Parse sql with DuckDB so syntax errors are reported as such, then apply
    the read-only rule when writes are not allowed.
    """
    try:
        statements = con.extract_statements(sql)
    except duckdb.ParserException as e:
        raise QuerySyntaxError(str(e), query=sql) from e
    if allow_writes:
        return
    try:
        enforce_read_only(sql)
    except QuerySyntaxError:
        # sqlglot cannot read every DuckDB construct; fall back to DuckDB's statement types
        for statement in statements:
            if statement.type != duckdb.StatementType.SELECT:
                raise ReadOnlyViolation(
                    f"Only SELECT queries are allowed here, got {statement.type.name}",
                    query=sql,
                )


def _classify(e: duckdb.Error, sql: str, timed_out: bool, timeout_ms: int) -> VerificationError:
    if timed_out or isinstance(e, duckdb.InterruptException):
        return QueryTimeoutError(
            f"Query exceeded the {timeout_ms} ms time limit and was stopped",
            query=sql,
            timeout_ms=timeout_ms,
        )
    if isinstance(e, duckdb.ParserException):
        return QuerySyntaxError(str(e), query=sql)
    return QueryRuntimeError(str(e), query=sql)


def execute(
    sql: str,
    schema: SchemaSpec,
    timeout_ms: Optional[int] = None,
    allow_writes: bool = True,
    settings: Settings = SETTINGS,
) -> ResultSet:
    """
    Execute sql against a fresh copy of schema and return its ResultSet.

    Raises QuerySyntaxError, QueryRuntimeError (ReadOnlyViolation when
    allow_writes is False and sql writes), QueryTimeoutError, or
    ConfigurationError when the schema itself cannot be seeded.
    """
    sql = normalize_query(sql)
    budget_ms = timeout_ms or settings.timeout_ms
    con = connect(settings)
    timed_out = threading.Event()

    def _interrupt():
        timed_out.set()
        con.interrupt()

    timer = threading.Timer(budget_ms / 1000.0, _interrupt)
    timer.daemon = True
    try:
        check_statements(con, sql, allow_writes)
        seed_schema(con, schema)
        timer.start()
        try:
            res = con.execute(sql)
            rows = res.fetchall() if res.description else []
            cols: List[str] = [d[0] for d in res.description] if res.description else []
        except duckdb.Error as e:
            err = _classify(e, sql, timed_out.is_set(), budget_ms)
            if isinstance(err, QueryTimeoutError):
                logger.warning("Query timed out after %d ms", budget_ms)
            else:
                logger.debug("Query failed (%s): %s", err.kind, err.message)
            raise err from e
    finally:
        timer.cancel()
        if timer.is_alive():
            timer.join()
        con.close()

    logger.debug("Query returned %d row(s) over %d column(s)", len(rows), len(cols))
    return ResultSet(
        columns=tuple(cols),
        rows=tuple(tuple(normalize_value(v) for v in row) for row in rows),
    )
