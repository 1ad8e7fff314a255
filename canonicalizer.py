# canonicalizer.py
import re
from typing import List, Optional

from sqlglot import exp, parse, parse_one
from sqlglot.errors import SqlglotError

from errors import QuerySyntaxError, ReadOnlyViolation

DIALECT = "duckdb"

_TRAILING = re.compile(r"[\s;]+$")

# Statements a read-only question is allowed to run
READ_STATEMENTS = (exp.Query, exp.Describe)

WRITE_NODES = (
    exp.Insert,
    exp.Update,
    exp.Delete,
    exp.Merge,
    exp.Create,
    exp.Drop,
    exp.Alter,
    exp.TruncateTable,
    exp.Command,
)


def normalize_query(sql: str) -> str:
    """
    Strip surrounding whitespace and trailing semicolons.
    Raises QuerySyntaxError for empty input.
    """
    if sql is None or not sql.strip():
        raise QuerySyntaxError("Query is empty", query=sql)
    cleaned = _TRAILING.sub("", sql.strip())
    if not cleaned:
        raise QuerySyntaxError("Query is empty", query=sql)
    return cleaned


def parse_statements(sql: str, dialect: str = DIALECT) -> List[exp.Expression]:
    """Parse every statement in sql; parse failures become QuerySyntaxError."""
    try:
        statements = parse(sql, read=dialect, error_level="raise")
    except SqlglotError as e:
        raise QuerySyntaxError(str(e), query=sql) from e
    statements = [s for s in statements if s is not None]
    if not statements:
        raise QuerySyntaxError("Query contains no statements", query=sql)
    return statements


def parse_select(sql: str, dialect: str = DIALECT) -> Optional[exp.Expression]:
    """Best-effort parse of the last statement; None when sqlglot can't read it."""
    try:
        statements = parse_statements(normalize_query(sql), dialect=dialect)
    except QuerySyntaxError:
        return None
    return statements[-1]


def canonicalize(sql: str, dialect: str = DIALECT) -> Optional[str]:
    """
    Parse and re-render a query with sqlglot so formatting differences
    (whitespace, keyword case, trailing semicolons) disappear.
    Returns None on parse error.
    """
    try:
        ast = parse_one(normalize_query(sql), read=dialect, error_level="raise")
    except (SqlglotError, QuerySyntaxError):
        return None
    return ast.sql(dialect=dialect, pretty=False)


def enforce_read_only(sql: str, dialect: str = DIALECT) -> None:
    """Raise ReadOnlyViolation unless every statement in sql is a pure read."""
    for statement in parse_statements(sql, dialect=dialect):
        if not isinstance(statement, READ_STATEMENTS):
            raise ReadOnlyViolation(
                f"Only SELECT queries are allowed here, got {statement.key.upper()}",
                query=sql,
            )
        write = statement.find(*WRITE_NODES)
        if write is not None:
            raise ReadOnlyViolation(
                f"Only SELECT queries are allowed here, found {write.key.upper()}",
                query=sql,
            )
