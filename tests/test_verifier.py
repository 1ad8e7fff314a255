import asyncio
import time

import pytest

from models import COMPARISON_MODES, ExpectedAnswer, ResultSet, VerificationOptions
from verifier import verify, verify_async

REFERENCE = "SELECT name FROM employees WHERE salary > 50000"


def _without_timing(verdict):
    out = verdict.to_dict()
    out.pop("executionTimeMs")
    return out


@pytest.mark.parametrize("mode", COMPARISON_MODES)
@pytest.mark.parametrize("query", [
    REFERENCE,
    "SELECT department, count(*) AS n FROM employees GROUP BY department",
    "SELECT * FROM employees ORDER BY salary DESC",
    "SELECT name FROM employees WHERE salary > 1000000",
])
def test_query_is_correct_against_itself(employees, query, mode):
    verdict = verify(query, employees, ExpectedAnswer(reference_query=query), VerificationOptions(comparison_mode=mode))
    assert verdict.is_correct
    assert verdict.score == 100
    assert verdict.error is None
    assert verdict.mismatches == []


def test_trailing_semicolon_is_correct(employees):
    verdict = verify(REFERENCE + ";  \n", employees, ExpectedAnswer(reference_query=REFERENCE))
    assert verdict.is_correct
    assert verdict.rows_returned == 2
    assert verdict.summary == "Your query produces the expected output."


def test_select_star_fails_exact_but_earns_partial_credit(employees):
    candidate = "SELECT * FROM employees WHERE salary > 50000"
    strict = verify(candidate, employees, REFERENCE, VerificationOptions(comparison_mode="exact"))
    assert not strict.is_correct
    assert strict.score == 0
    assert [m.kind for m in strict.mismatches] == ["column_count"]

    lenient = verify(
        candidate,
        employees,
        REFERENCE,
        VerificationOptions(comparison_mode="exact", scoring="partial-credit", required_clauses=("WHERE",)),
    )
    assert not lenient.is_correct
    assert lenient.score == 90
    assert "WHERE" in lenient.clauses_used


def test_typo_reports_error_and_skips_reference(employees):
    verdict = verify("SELECT name FROM employes", employees, "SELECT broken FROM nowhere")
    assert not verdict.is_correct
    assert verdict.error is not None
    assert verdict.error.kind in ("syntax_error", "runtime_error")
    assert "employes" in verdict.error.message
    assert verdict.mismatches == []
    assert verdict.score == 0
    assert verdict.expected is None


def test_syntax_error_verdict(employees):
    verdict = verify("SELEC name FROM employees", employees, REFERENCE)
    assert verdict.error.kind == "syntax_error"
    assert verdict.summary == "Your query could not be parsed."


def test_reference_failure_is_configuration_error(employees):
    verdict = verify(REFERENCE, employees, "SELECT nope FROM employees")
    assert not verdict.is_correct
    assert verdict.error.kind == "configuration_error"
    assert "Reference query failed" in verdict.error.message
    assert verdict.result is not None
    assert verdict.rows_returned == 2


def test_precomputed_expected_result(employees, names_result):
    verdict = verify(REFERENCE, employees, ExpectedAnswer(result_set=names_result))
    assert verdict.is_correct
    assert verdict.hints == []


def test_expected_without_columns_is_comparison_error(employees):
    verdict = verify(REFERENCE, employees, ResultSet(columns=()))
    assert verdict.error.kind == "comparison_error"
    assert not verdict.is_correct


def test_writes_rejected_on_answer_path(employees):
    verdict = verify("DELETE FROM employees", employees, REFERENCE)
    assert verdict.error.kind == "runtime_error"
    assert "Only SELECT" in verdict.error.message


def test_timeout_verdict(employees):
    start = time.monotonic()
    verdict = verify(
        "SELECT sum(a.range * b.range) AS s FROM range(1000000) a, range(1000000) b",
        employees,
        REFERENCE,
        VerificationOptions(timeout_ms=200),
    )
    assert time.monotonic() - start < 0.2 + 5.0
    assert not verdict.is_correct
    assert verdict.error.kind == "timeout"
    assert verdict.summary == "Your query took too long and was stopped."


def test_wrong_answer_gets_mismatches_summary_and_hints(employees):
    verdict = verify("SELECT name FROM employees", employees, REFERENCE)
    assert not verdict.is_correct
    kinds = {m.kind for m in verdict.mismatches}
    assert kinds == {"extra_row"}
    assert "returned 4 row(s); expected 2" in verdict.summary
    assert any("filter" in h for h in verdict.hints)


def test_unordered_columns_mode(employees):
    verdict = verify(
        "SELECT salary, name FROM employees",
        employees,
        "SELECT name, salary FROM employees",
        VerificationOptions(comparison_mode="unordered-columns-and-rows"),
    )
    assert verdict.is_correct


def test_case_insensitive_option(employees):
    candidate = "SELECT upper(name) AS name FROM employees WHERE salary > 50000"
    assert not verify(candidate, employees, REFERENCE).is_correct
    assert verify(candidate, employees, REFERENCE, VerificationOptions(case_sensitive=False)).is_correct


def test_exact_mode_detects_order(employees):
    reference = "SELECT name FROM employees ORDER BY salary DESC"
    verdict = verify(
        "SELECT name FROM employees ORDER BY salary ASC",
        employees,
        reference,
        VerificationOptions(comparison_mode="exact"),
    )
    assert not verdict.is_correct
    assert [m.kind for m in verdict.mismatches] == ["row_order"]
    assert verify("SELECT name FROM employees ORDER BY salary ASC", employees, reference).is_correct


def test_verify_is_idempotent(employees):
    args = ("SELECT name, salary FROM employees WHERE salary > 40000", employees, REFERENCE)
    first = verify(*args, VerificationOptions(scoring="partial-credit"))
    second = verify(*args, VerificationOptions(scoring="partial-credit"))
    assert _without_timing(first) == _without_timing(second)


def test_verify_async(employees):
    verdict = asyncio.run(verify_async(REFERENCE, employees, REFERENCE))
    assert verdict.is_correct


def test_options_from_camel_case():
    opts = VerificationOptions.from_dict({
        "comparisonMode": "exact",
        "caseSensitive": False,
        "timeoutMs": 500,
        "allowWrites": True,
        "scoring": "partial-credit",
    })
    assert opts.comparison_mode == "exact"
    assert opts.case_sensitive is False
    assert opts.timeout_ms == 500
    assert opts.allow_writes is True
    assert opts.scoring == "partial-credit"


def test_invalid_options_rejected():
    with pytest.raises(ValueError):
        VerificationOptions(comparison_mode="fuzzy")
    with pytest.raises(ValueError):
        VerificationOptions(scoring="stars")
