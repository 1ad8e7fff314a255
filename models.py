# models.py
"""
Data model shared by the executor, comparator and verifier.

Everything here is immutable once built: schemas are handed to the executor by
reference, result sets are snapshots, and a Verdict is created once per
verification call.
"""

import datetime
import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

COMPARISON_MODES = ("exact", "unordered-rows", "unordered-columns-and-rows")
SCORING_MODES = ("boolean", "partial-credit")

DEFAULT_COMPARISON_MODE = "unordered-rows"


# ============================
# Schema
# ============================

@dataclass(frozen=True)
class ColumnSpec:
    name: str
    type: str = "VARCHAR"
    nullable: bool = True
    primary_key: bool = False
    references: Optional[str] = None  # "table.column"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ColumnSpec":
        return cls(
            name=data["name"],
            type=data.get("type", "VARCHAR"),
            nullable=data.get("nullable", True),
            primary_key=data.get("primary_key", data.get("primaryKey", False)),
            references=data.get("references"),
        )


@dataclass(frozen=True)
class TableSpec:
    name: str
    columns: Tuple[ColumnSpec, ...]
    rows: Tuple[Tuple[Any, ...], ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(self, "rows", tuple(self._row_tuple(r) for r in self.rows))

    def _row_tuple(self, row: Union[Sequence[Any], Mapping[str, Any]]) -> Tuple[Any, ...]:
        if isinstance(row, Mapping):
            return tuple(row.get(c.name) for c in self.columns)
        values = tuple(row)
        if len(values) != len(self.columns):
            raise ValueError(
                f"Seed row for table {self.name!r} has {len(values)} values, "
                f"expected {len(self.columns)}"
            )
        return values

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TableSpec":
        columns = tuple(ColumnSpec.from_dict(c) for c in data.get("columns", []))
        return cls(name=data["name"], columns=columns, rows=tuple(data.get("rows", ())))


@dataclass(frozen=True)
class SchemaSpec:
    """A named set of tables plus optional raw setup SQL (DDL + INSERTs)."""

    name: str = "default"
    tables: Tuple[TableSpec, ...] = ()
    setup_sql: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "tables", tuple(self.tables))

    def table(self, name: str) -> Optional[TableSpec]:
        for t in self.tables:
            if t.name.lower() == name.lower():
                return t
        return None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SchemaSpec":
        return cls(
            name=data.get("name", "default"),
            tables=tuple(TableSpec.from_dict(t) for t in data.get("tables", [])),
            setup_sql=data.get("setup_sql", data.get("setupSql")),
        )


# ============================
# Results
# ============================

@dataclass(frozen=True)
class ResultSet:
    columns: Tuple[str, ...]
    rows: Tuple[Tuple[Any, ...], ...] = ()

    def __post_init__(self):
        columns = tuple(str(c) for c in self.columns)
        rows = tuple(tuple(r) for r in self.rows)
        width = len(columns)
        for i, row in enumerate(rows):
            if len(row) != width:
                raise ValueError(f"Row {i} has {len(row)} values, expected {width}")
        object.__setattr__(self, "columns", columns)
        object.__setattr__(self, "rows", rows)

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "columns": list(self.columns),
            "rows": [[jsonable(v) for v in row] for row in self.rows],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ResultSet":
        columns = tuple(data.get("columns", ()))
        rows = []
        for row in data.get("rows", ()):
            if isinstance(row, Mapping):
                rows.append(tuple(row.get(c) for c in columns))
            else:
                rows.append(tuple(row))
        return cls(columns=columns, rows=tuple(rows))


@dataclass(frozen=True)
class ExpectedAnswer:
    """Either a materialized result set or a reference query to run."""

    result_set: Optional[ResultSet] = None
    reference_query: Optional[str] = None

    def __post_init__(self):
        if (self.result_set is None) == (self.reference_query is None):
            raise ValueError("ExpectedAnswer needs exactly one of result_set or reference_query")

    @classmethod
    def coerce(cls, value: Union["ExpectedAnswer", ResultSet, str, Mapping[str, Any]]) -> "ExpectedAnswer":
        if isinstance(value, ExpectedAnswer):
            return value
        if isinstance(value, ResultSet):
            return cls(result_set=value)
        if isinstance(value, str):
            return cls(reference_query=value)
        if isinstance(value, Mapping):
            if "resultSet" in value or "result_set" in value:
                raw = value.get("resultSet", value.get("result_set"))
                rs = raw if isinstance(raw, ResultSet) else ResultSet.from_dict(raw)
                return cls(result_set=rs)
            ref = value.get("referenceQuery", value.get("reference_query"))
            return cls(reference_query=ref)
        raise TypeError(f"Cannot build an expected answer from {type(value).__name__}")


# ============================
# Options
# ============================

@dataclass(frozen=True)
class VerificationOptions:
    comparison_mode: str = DEFAULT_COMPARISON_MODE
    case_sensitive: bool = True
    timeout_ms: Optional[int] = None  # None -> settings default
    allow_writes: bool = False
    scoring: str = "boolean"
    required_clauses: Tuple[str, ...] = ()
    ignore_column_names: bool = False
    max_mismatches: Optional[int] = None  # None -> settings default

    def __post_init__(self):
        if self.comparison_mode not in COMPARISON_MODES:
            raise ValueError(
                f"Unknown comparison mode {self.comparison_mode!r}; "
                f"expected one of {', '.join(COMPARISON_MODES)}"
            )
        if self.scoring not in SCORING_MODES:
            raise ValueError(
                f"Unknown scoring mode {self.scoring!r}; expected one of {', '.join(SCORING_MODES)}"
            )
        if self.timeout_ms is not None and self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")
        object.__setattr__(self, "required_clauses", tuple(self.required_clauses))

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "VerificationOptions":
        """Accepts both snake_case and the camelCase keys the web client sends."""
        if not data:
            return cls()

        def pick(snake: str, camel: str, default: Any) -> Any:
            if snake in data:
                return data[snake]
            return data.get(camel, default)

        return cls(
            comparison_mode=pick("comparison_mode", "comparisonMode", DEFAULT_COMPARISON_MODE),
            case_sensitive=pick("case_sensitive", "caseSensitive", True),
            timeout_ms=pick("timeout_ms", "timeoutMs", None),
            allow_writes=pick("allow_writes", "allowWrites", False),
            scoring=data.get("scoring", "boolean"),
            required_clauses=tuple(pick("required_clauses", "requiredClauses", ()) or ()),
            ignore_column_names=pick("ignore_column_names", "ignoreColumnNames", False),
            max_mismatches=pick("max_mismatches", "maxMismatches", None),
        )


# ============================
# Verdict
# ============================

@dataclass(frozen=True)
class Mismatch:
    kind: str  # column_count | column_name | missing_row | extra_row | value | row_order
    message: str
    row: Optional[int] = None
    column: Optional[str] = None
    expected: Any = None
    actual: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "row": self.row,
            "column": self.column,
            "expected": jsonable(self.expected),
            "actual": jsonable(self.actual),
        }


@dataclass(frozen=True)
class ErrorDetail:
    kind: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


@dataclass
class Verdict:
    is_correct: bool
    score: int = 0
    execution_time_ms: float = 0.0
    rows_returned: int = 0
    mismatches: List[Mismatch] = field(default_factory=list)
    error: Optional[ErrorDetail] = None
    summary: str = ""
    hints: List[str] = field(default_factory=list)
    clauses_used: List[str] = field(default_factory=list)
    result: Optional[ResultSet] = None
    expected: Optional[ResultSet] = None

    @property
    def failed_to_run(self) -> bool:
        return self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isCorrect": self.is_correct,
            "score": self.score,
            "executionTimeMs": round(self.execution_time_ms, 3),
            "rowsReturned": self.rows_returned,
            "mismatches": [m.to_dict() for m in self.mismatches],
            "error": self.error.to_dict() if self.error else None,
            "summary": self.summary,
            "hints": list(self.hints),
            "clausesUsed": list(self.clauses_used),
            "result": self.result.to_dict() if self.result is not None else None,
            "expected": self.expected.to_dict() if self.expected is not None else None,
        }


def jsonable(value: Any) -> Any:
    """Render a result value as something json.dumps accepts."""
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else str(value)
    if isinstance(value, Decimal):
        if not value.is_finite():
            return str(value)
        if value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return [jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): jsonable(v) for k, v in value.items()}
    return str(value)
