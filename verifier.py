# verifier.py
"""
Verification orchestrator: candidate query in, Verdict out.

    verdict = verify(
        "SELECT name FROM employees WHERE salary > 50000;",
        schema,
        ExpectedAnswer(reference_query="SELECT name FROM employees WHERE salary > 50000"),
        VerificationOptions(comparison_mode="unordered-rows"),
    )
    verdict.is_correct  # True

The candidate runs first; if it fails, the failure is the verdict and the
reference is never run. Reference failures are reported as
configuration_error because they mean the question itself is broken.
"""

import asyncio
import logging
import time
from typing import Optional, Union

from ast_diff import ast_diff, generate_tiered_hints
from canonicalizer import parse_select
from comparator import compare
from config import SETTINGS, Settings
from constraints import ScoreInput, detect_clauses, partial_credit
from errors import ComparisonError, ConfigurationError, VerificationError
from executor import execute
from models import ErrorDetail, ExpectedAnswer, ResultSet, SchemaSpec, Verdict, VerificationOptions
from semantic_diff import semantic_diff

logger = logging.getLogger(__name__)

ExpectedLike = Union[ExpectedAnswer, ResultSet, str]

ERROR_SUMMARIES = {
    "syntax_error": "Your query could not be parsed.",
    "runtime_error": "Your query failed while running.",
    "timeout": "Your query took too long and was stopped.",
    "configuration_error": "This question is misconfigured; your answer could not be checked.",
    "comparison_error": "The expected answer for this question is malformed; your answer could not be checked.",
}


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0


def _failure(err: VerificationError, elapsed_ms: float = 0.0, **extra) -> Verdict:
    return Verdict(
        is_correct=False,
        score=0,
        execution_time_ms=elapsed_ms,
        error=ErrorDetail(kind=err.kind, message=err.message),
        summary=ERROR_SUMMARIES.get(err.kind, "Your answer could not be checked."),
        **extra,
    )


def _run_reference(reference_sql: str, schema: SchemaSpec, options: VerificationOptions,
                   timeout_ms: int, settings: Settings) -> ResultSet:
    try:
        return execute(
            reference_sql,
            schema,
            timeout_ms=timeout_ms,
            allow_writes=options.allow_writes,
            settings=settings,
        )
    except ConfigurationError:
        raise
    except VerificationError as e:
        raise ConfigurationError(f"Reference query failed ({e.kind}): {e.message}", query=reference_sql) from e


def verify(
    candidate_query: str,
    schema: SchemaSpec,
    expected: ExpectedLike,
    options: Optional[VerificationOptions] = None,
    settings: Settings = SETTINGS,
) -> Verdict:
    options = options or VerificationOptions()
    answer = ExpectedAnswer.coerce(expected)
    timeout_ms = options.timeout_ms or settings.timeout_ms
    max_mismatches = options.max_mismatches if options.max_mismatches is not None else settings.max_mismatches
    clauses_used = detect_clauses(parse_select(candidate_query)) if candidate_query else []

    # 1) Candidate
    start = time.perf_counter()
    try:
        candidate = execute(
            candidate_query,
            schema,
            timeout_ms=timeout_ms,
            allow_writes=options.allow_writes,
            settings=settings,
        )
    except ConfigurationError as e:
        logger.error("Schema %r could not be seeded: %s", schema.name, e.message)
        return _failure(e, _elapsed_ms(start), clauses_used=clauses_used)
    except VerificationError as e:
        logger.info("Candidate query rejected (%s): %s", e.kind, e.message)
        return _failure(e, _elapsed_ms(start), clauses_used=clauses_used)
    elapsed_ms = _elapsed_ms(start)

    # 2) Expected result
    if answer.result_set is not None:
        reference = answer.result_set
    else:
        try:
            reference = _run_reference(answer.reference_query, schema, options, timeout_ms, settings)
        except ConfigurationError as e:
            logger.error("Reference query failed for schema %r: %s", schema.name, e.message)
            return _failure(
                e,
                elapsed_ms,
                rows_returned=candidate.row_count,
                result=candidate,
                clauses_used=clauses_used,
            )

    # 3) Compare
    try:
        comparison = compare(
            candidate,
            reference,
            mode=options.comparison_mode,
            case_sensitive=options.case_sensitive,
            ignore_column_names=options.ignore_column_names,
            max_mismatches=max_mismatches,
        )
    except ComparisonError as e:
        logger.error("Cannot compare against expected result: %s", e.message)
        return _failure(
            e,
            elapsed_ms,
            rows_returned=candidate.row_count,
            result=candidate,
            clauses_used=clauses_used,
        )

    # 4) Feedback and score
    summary = semantic_diff(comparison, candidate, reference)["summary"]
    hints = []
    if not comparison.equal and answer.reference_query:
        hints = generate_tiered_hints(ast_diff(candidate_query, answer.reference_query))

    if comparison.equal:
        score = 100
    elif options.scoring == "partial-credit":
        score = partial_credit(ScoreInput(
            candidate_sql=candidate_query,
            required_clauses=options.required_clauses,
            reference_sql=answer.reference_query,
            columns_match=len(candidate.columns) == len(reference.columns),
            rows_match=candidate.row_count == reference.row_count,
        ))
    else:
        score = 0

    logger.info(
        "Verified candidate: correct=%s score=%d mode=%s rows=%d (%.1f ms)",
        comparison.equal, score, options.comparison_mode, candidate.row_count, elapsed_ms,
    )
    return Verdict(
        is_correct=comparison.equal,
        score=score,
        execution_time_ms=elapsed_ms,
        rows_returned=candidate.row_count,
        mismatches=list(comparison.mismatches),
        summary=summary,
        hints=hints,
        clauses_used=clauses_used,
        result=candidate,
        expected=reference,
    )


async def verify_async(
    candidate_query: str,
    schema: SchemaSpec,
    expected: ExpectedLike,
    options: Optional[VerificationOptions] = None,
    settings: Settings = SETTINGS,
) -> Verdict:
    """verify() for async hosts; execution runs in a worker thread."""
    return await asyncio.to_thread(verify, candidate_query, schema, expected, options, settings)
