#!/usr/bin/env python3
"""
Command-line front end for the verification engine.

Usage:
    python main.py --student "SELECT ..." --reference "SELECT ..."
    python main.py --student-file answer.sql --reference-file ref.sql --schema schema.json --json
    python main.py --student "SELECT ..." --reference "SELECT ..." --setup setup.sql --mode exact

Without --schema or --setup the sample "employees" database is used.
Exit status: 0 correct, 1 incorrect, 2 bad input.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from config import configure_logging
from models import COMPARISON_MODES, SCORING_MODES, ExpectedAnswer, SchemaSpec, VerificationOptions
from sample_schemas import CATALOG, get_schema
from verifier import verify


def read_file_or_string(path_or_sql: Optional[str]) -> Optional[str]:
    if not path_or_sql:
        return None
    path = Path(path_or_sql)
    try:
        if path.is_file():
            txt = path.read_text(encoding="utf-8")
            return txt if txt.strip() else None
    except OSError:
        pass
    # not a file; treat as inline SQL
    return path_or_sql


def load_schema(schema_path: Optional[str], setup_path: Optional[str], sample: str) -> SchemaSpec:
    if schema_path:
        data = json.loads(Path(schema_path).read_text(encoding="utf-8"))
        schema = SchemaSpec.from_dict(data)
    elif setup_path:
        schema = SchemaSpec(name=Path(setup_path).stem)
    else:
        return get_schema(sample)
    if setup_path:
        schema = SchemaSpec(
            name=schema.name,
            tables=schema.tables,
            setup_sql=Path(setup_path).read_text(encoding="utf-8"),
        )
    return schema


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Check a SQL answer against a reference query.")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--student", help="Student SQL (as string)")
    group.add_argument("--student-file", help="Path to file containing student SQL")
    group2 = parser.add_mutually_exclusive_group(required=True)
    group2.add_argument("--reference", help="Reference SQL (as string)")
    group2.add_argument("--reference-file", help="Path to file containing reference SQL")
    parser.add_argument("--schema", help="JSON schema definition (tables, columns, rows)")
    parser.add_argument("--setup", help="Setup SQL script (DDL + INSERTs)")
    parser.add_argument("--sample", default="employees", choices=sorted(CATALOG),
                        help="Sample database used when no --schema/--setup is given")
    parser.add_argument("--mode", default="unordered-rows", choices=COMPARISON_MODES)
    parser.add_argument("--case-insensitive", action="store_true", help="Compare strings ignoring case")
    parser.add_argument("--timeout-ms", type=int, help="Execution time budget per query")
    parser.add_argument("--allow-writes", action="store_true", help="Permit DDL/DML statements")
    parser.add_argument("--scoring", default="boolean", choices=SCORING_MODES)
    parser.add_argument("--tags", default="", help="Comma-separated required clauses, e.g. 'WHERE,GROUP BY'")
    parser.add_argument("--json", action="store_true", help="Output JSON (machine readable)")
    parser.add_argument("--log-level", default=None, help="Logging level (default from SQLHUB_LOG_LEVEL)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    student_input = read_file_or_string(args.student_file or args.student)
    reference_input = read_file_or_string(args.reference_file or args.reference)
    if student_input is None or reference_input is None:
        print("Could not read SQL input(s). Provide valid SQL or file paths.", file=sys.stderr)
        return 2

    try:
        schema = load_schema(args.schema, args.setup, args.sample)
    except (OSError, ValueError, KeyError, TypeError) as e:
        print(f"Failed to load schema: {e}", file=sys.stderr)
        return 2

    options = VerificationOptions(
        comparison_mode=args.mode,
        case_sensitive=not args.case_insensitive,
        timeout_ms=args.timeout_ms,
        allow_writes=args.allow_writes,
        scoring=args.scoring,
        required_clauses=tuple(t for t in args.tags.split(",") if t.strip()),
    )
    verdict = verify(student_input, schema, ExpectedAnswer(reference_query=reference_input), options)

    if args.json:
        print(json.dumps(verdict.to_dict(), indent=2, default=str))
    else:
        print(f"Correct: {verdict.is_correct}   Score: {verdict.score}   "
              f"Rows: {verdict.rows_returned}   Time: {verdict.execution_time_ms:.1f} ms")
        if verdict.error:
            print(f"\nError ({verdict.error.kind}): {verdict.error.message}")
        if verdict.summary:
            print("\n" + verdict.summary)
        if verdict.mismatches:
            print("\nDifferences:")
            for m in verdict.mismatches:
                print(" -", m.message)
        if verdict.hints:
            print("\nHints (tiered):")
            for h in verdict.hints:
                print(" -", h)

    return 0 if verdict.is_correct else 1


if __name__ == "__main__":
    sys.exit(main())
