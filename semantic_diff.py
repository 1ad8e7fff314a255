# semantic_diff.py
from typing import Any, Dict, List, Sequence

from comparator import Comparison
from models import ResultSet


def semantic_diff(comparison: Comparison, candidate: ResultSet, expected: ResultSet) -> Dict[str, Any]:
    """
    Lightweight signals about how two results differ, for the one-line summary.
    """
    result = {"equal": comparison.equal, "signals": [], "summary": None}

    if comparison.equal:
        result["summary"] = "Your query produces the expected output."
        return result

    kinds = {m.kind for m in comparison.mismatches}

    if "column_count" in kinds:
        result["signals"].append("column_count_mismatch")
    if "column_name" in kinds:
        result["signals"].append("column_name_mismatch")
    if "row_order" in kinds:
        result["signals"].append("ordering_difference")
    if comparison.candidate_rows != comparison.expected_rows:
        result["signals"].append("row_count_mismatch")
    if "value" in kinds:
        result["signals"].append("value_mismatch")

    if has_null(candidate.rows) != has_null(expected.rows):
        result["signals"].append("null_handling_difference")

    if 0 < comparison.candidate_rows < comparison.expected_rows and "column_count" not in kinds:
        result["signals"].append("aggregation_or_grouping_issue")

    result["summary"] = summarize_signals(result["signals"], comparison)
    return result


def has_null(rows: Sequence[Sequence[Any]]) -> bool:
    return any(any(v is None for v in row) for row in rows)


def summarize_signals(signals: List[str], comparison: Comparison) -> str:
    if not signals:
        return "Outputs differ in a non-obvious way."

    if "column_count_mismatch" in signals:
        return "Your query returns a different number of columns than expected."

    if "column_name_mismatch" in signals:
        return "Your columns are named or ordered differently from the expected output."

    if "ordering_difference" in signals:
        return "The results contain the same rows but in a different order."

    if "row_count_mismatch" in signals:
        c, e = comparison.candidate_rows, comparison.expected_rows
        if c == 0:
            return f"Your query returned no rows; expected {e}. You may be over-filtering."
        if c > e:
            return f"Your query returned {c} row(s); expected {e}. You may be under-filtering."
        if "aggregation_or_grouping_issue" in signals:
            return f"Your query returned {c} row(s); expected {e}. Check grouping or aggregation."
        return f"Your query returned {c} row(s); expected {e}."

    if "null_handling_difference" in signals:
        return "The handling of missing or NULL values differs."

    return "Some result values differ from the expected output."
