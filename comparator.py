# comparator.py
"""
Result comparator: decides whether two ResultSets are "the same answer".

Modes:
  exact                       column order, row order and values must match
  unordered-rows              rows compared as a multiset (default)
  unordered-columns-and-rows  candidate columns re-keyed to expected by name, rows unordered

Values are reduced to comparison keys first (see value_key), so 5 and 5.0
compare equal, NULL only equals NULL, and strings can optionally ignore case.
Neither input is modified.
"""

import datetime
from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence, Tuple

from errors import ComparisonError
from models import COMPARISON_MODES, DEFAULT_COMPARISON_MODE, Mismatch, ResultSet

Key = Tuple[Any, ...]


@dataclass
class Comparison:
    equal: bool
    mode: str
    mismatches: List[Mismatch] = field(default_factory=list)
    candidate_rows: int = 0
    expected_rows: int = 0
    truncated: bool = False


# ============================
# Values
# ============================

def _number_key(value: Any) -> Key:
    if isinstance(value, float):
        if value != value:
            return ("nan",)
        try:
            return ("num", Decimal(repr(value)))
        except InvalidOperation:
            return ("num", Decimal(value))
    if isinstance(value, Decimal):
        if value.is_nan():
            return ("nan",)
        return ("num", value)
    return ("num", Decimal(value))


def value_key(value: Any, case_sensitive: bool = True) -> Key:
    """Hashable comparison key for one result value."""
    if value is None:
        return ("null",)
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, (int, float, Decimal)):
        return _number_key(value)
    if isinstance(value, str):
        return ("str", value if case_sensitive else value.casefold())
    if isinstance(value, datetime.datetime):
        return ("datetime", value)
    if isinstance(value, datetime.date):
        return ("date", value)
    if isinstance(value, datetime.time):
        return ("time", value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return ("bytes", bytes(value))
    return ("other", str(value))


def values_equal(a: Any, b: Any, case_sensitive: bool = True) -> bool:
    return value_key(a, case_sensitive) == value_key(b, case_sensitive)


def _row_keys(rows: Sequence[Sequence[Any]], case_sensitive: bool) -> List[Key]:
    return [tuple(value_key(v, case_sensitive) for v in row) for row in rows]


def _fmt(value: Any) -> str:
    return "NULL" if value is None else repr(value)


def _fmt_row(row: Sequence[Any]) -> str:
    return "(" + ", ".join(_fmt(v) for v in row) + ")"


# ============================
# Columns
# ============================

def _align_columns(
    candidate: ResultSet,
    expected: ResultSet,
    mode: str,
    ignore_column_names: bool,
) -> Tuple[Optional[List[int]], List[Mismatch]]:
    """
    Map each expected column position to a candidate column position.
    Returns (None, mismatches) when the columns cannot be aligned.
    """
    c_cols, e_cols = candidate.columns, expected.columns
    if len(c_cols) != len(e_cols):
        return None, [Mismatch(
            kind="column_count",
            message=f"Expected {len(e_cols)} column(s) but your query returned {len(c_cols)}",
            expected=len(e_cols),
            actual=len(c_cols),
        )]

    if mode == "unordered-columns-and-rows":
        unused: Dict[str, List[int]] = {}
        for i, name in enumerate(c_cols):
            unused.setdefault(name.lower(), []).append(i)
        perm: List[int] = []
        missing: List[str] = []
        for name in e_cols:
            slots = unused.get(name.lower())
            if slots:
                perm.append(slots.pop(0))
            else:
                missing.append(name)
        if not missing:
            return perm, []
        extra = [c_cols[i] for slots in unused.values() for i in slots]
        mismatches = [
            Mismatch(kind="column_name", message=f"Missing column {name!r}", column=name, expected=name)
            for name in missing
        ]
        mismatches += [
            Mismatch(kind="column_name", message=f"Unexpected column {name!r}", column=name, actual=name)
            for name in sorted(extra)
        ]
        return None, mismatches

    identity = list(range(len(e_cols)))
    if ignore_column_names:
        return identity, []
    mismatches = [
        Mismatch(
            kind="column_name",
            message=f"Column {pos + 1} should be {e!r} but is {c!r}",
            column=e,
            expected=e,
            actual=c,
        )
        for pos, (c, e) in enumerate(zip(c_cols, e_cols))
        if c.lower() != e.lower()
    ]
    return (None, mismatches) if mismatches else (identity, [])


# ============================
# Rows
# ============================

def _value_mismatches(
    columns: Sequence[str],
    row_index: int,
    e_row: Sequence[Any],
    c_row: Sequence[Any],
    e_key: Key,
    c_key: Key,
) -> List[Mismatch]:
    out = []
    for col, (ev, cv, ek, ck) in enumerate(zip(e_row, c_row, e_key, c_key)):
        if ek != ck:
            out.append(Mismatch(
                kind="value",
                message=f"Row {row_index + 1}, column {columns[col]!r}: expected {_fmt(ev)}, got {_fmt(cv)}",
                row=row_index,
                column=columns[col],
                expected=ev,
                actual=cv,
            ))
    return out


def _exact_diff(columns, c_rows, e_rows, c_keys, e_keys) -> List[Mismatch]:
    if Counter(c_keys) == Counter(e_keys):
        return [Mismatch(
            kind="row_order",
            message="Your rows are correct but in a different order",
        )]
    out: List[Mismatch] = []
    for i in range(max(len(c_rows), len(e_rows))):
        if i >= len(c_rows):
            out.append(Mismatch(
                kind="missing_row",
                message=f"Row {i + 1} is missing: expected {_fmt_row(e_rows[i])}",
                row=i,
                expected=e_rows[i],
            ))
        elif i >= len(e_rows):
            out.append(Mismatch(
                kind="extra_row",
                message=f"Row {i + 1} is unexpected: {_fmt_row(c_rows[i])}",
                row=i,
                actual=c_rows[i],
            ))
        elif c_keys[i] != e_keys[i]:
            out.extend(_value_mismatches(columns, i, e_rows[i], c_rows[i], e_keys[i], c_keys[i]))
    return out


def _unmatched(left: List[Key], right: List[Key]) -> List[int]:
    """Indexes in left that have no counterpart in right, counting duplicates."""
    available = Counter(right)
    out = []
    for i, k in enumerate(left):
        if available[k] > 0:
            available[k] -= 1
        else:
            out.append(i)
    return out


def _guess_key_column(e_keys: List[Key]) -> Optional[int]:
    if not e_keys:
        return None
    for col in range(len(e_keys[0])):
        values = [k[col] for k in e_keys]
        if len(set(values)) == len(values):
            return col
    return None


def _unordered_diff(columns, c_rows, e_rows, c_keys, e_keys) -> List[Mismatch]:
    missing = _unmatched(e_keys, c_keys)
    extra = _unmatched(c_keys, e_keys)
    out: List[Mismatch] = []

    # Best effort: pair a missing and an extra row that agree on a likely key column
    key_col = _guess_key_column(e_keys)
    if key_col is not None and missing and extra:
        extra_by_key: Dict[Any, int] = {}
        for j in extra:
            extra_by_key.setdefault(c_keys[j][key_col], j)
        still_missing = []
        paired = set()
        for i in missing:
            j = extra_by_key.pop(e_keys[i][key_col], None)
            if j is None:
                still_missing.append(i)
                continue
            paired.add(j)
            out.extend(_value_mismatches(columns, i, e_rows[i], c_rows[j], e_keys[i], c_keys[j]))
        missing = still_missing
        extra = [j for j in extra if j not in paired]

    for i in missing:
        out.append(Mismatch(
            kind="missing_row",
            message=f"Expected row {_fmt_row(e_rows[i])} is missing from your result",
            row=i,
            expected=e_rows[i],
        ))
    for j in extra:
        out.append(Mismatch(
            kind="extra_row",
            message=f"Your result has an unexpected row {_fmt_row(c_rows[j])}",
            row=j,
            actual=c_rows[j],
        ))
    return out


# ============================
# Entry point
# ============================

def compare(
    candidate: ResultSet,
    expected: ResultSet,
    mode: str = DEFAULT_COMPARISON_MODE,
    case_sensitive: bool = True,
    ignore_column_names: bool = False,
    max_mismatches: Optional[int] = None,
) -> Comparison:
    if mode not in COMPARISON_MODES:
        raise ValueError(f"Unknown comparison mode {mode!r}")
    if not expected.columns:
        raise ComparisonError("Expected result has no columns; there is nothing to compare against")

    result = Comparison(
        equal=False,
        mode=mode,
        candidate_rows=len(candidate.rows),
        expected_rows=len(expected.rows),
    )

    perm, column_mismatches = _align_columns(candidate, expected, mode, ignore_column_names)
    if perm is None:
        result.mismatches = column_mismatches
        return result

    c_rows = [tuple(row[i] for i in perm) for row in candidate.rows]
    e_rows = [tuple(row) for row in expected.rows]
    c_keys = _row_keys(c_rows, case_sensitive)
    e_keys = _row_keys(e_rows, case_sensitive)

    if mode == "exact":
        if c_keys == e_keys:
            result.equal = True
            return result
        mismatches = _exact_diff(expected.columns, c_rows, e_rows, c_keys, e_keys)
    else:
        if Counter(c_keys) == Counter(e_keys):
            result.equal = True
            return result
        mismatches = _unordered_diff(expected.columns, c_rows, e_rows, c_keys, e_keys)

    if max_mismatches is not None and len(mismatches) > max_mismatches:
        mismatches = mismatches[:max_mismatches]
        result.truncated = True
    result.mismatches = mismatches
    return result
