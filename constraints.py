# constraints.py
"""
Clause detection over the sqlglot AST, and the partial-credit policy built on it.

Questions declare the clauses they exercise as tags ("JOIN", "WHERE",
"GROUP BY", ...). Feedback surfaces award part of the score for using those
clauses even when the final result is wrong.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from sqlglot import exp

from canonicalizer import parse_select

logger = logging.getLogger(__name__)


# ============================
# Clause Definition
# ============================

@dataclass(frozen=True)
class Clause:
    tag: str
    detector: Callable[[exp.Expression], bool]
    label: str


def has(ast, *node_types) -> bool:
    return ast is not None and ast.find(*node_types) is not None


def has_from(ast) -> bool:
    return has(ast, exp.Select) and has(ast, exp.From)


CLAUSES: List[Clause] = [
    Clause("JOIN", lambda a: has(a, exp.Join), "Table Joins"),
    Clause("WHERE", lambda a: has(a, exp.Where), "Data Filtering"),
    Clause("GROUP BY", lambda a: has(a, exp.Group), "Data Aggregation"),
    Clause("HAVING", lambda a: has(a, exp.Having), "Group Filtering"),
    Clause("ORDER BY", lambda a: has(a, exp.Order), "Result Sorting"),
    Clause("LIMIT", lambda a: has(a, exp.Limit), "Result Limiting"),
    Clause("DISTINCT", lambda a: has(a, exp.Distinct), "Duplicate Removal"),
    Clause("AGGREGATE", lambda a: has(a, exp.AggFunc), "Aggregate Functions"),
    Clause("SUBQUERY", lambda a: has(a, exp.Subquery), "Subqueries"),
    Clause("CTE", lambda a: has(a, exp.CTE), "Common Table Expressions"),
    Clause("WINDOW", lambda a: has(a, exp.Window), "Window Functions"),
    Clause("UNION", lambda a: has(a, exp.Union), "Set Operations"),
    Clause("CASE", lambda a: has(a, exp.Case), "Conditional Logic"),
    Clause("LIKE", lambda a: has(a, exp.Like, exp.ILike), "Pattern Matching"),
]

_BY_TAG: Dict[str, Clause] = {c.tag: c for c in CLAUSES}

# Tag spellings used by the question catalog
TAG_ALIASES = {
    "FILTER": "WHERE",
    "FILTERING": "WHERE",
    "JOINS": "JOIN",
    "INNER JOIN": "JOIN",
    "LEFT JOIN": "JOIN",
    "GROUPING": "GROUP BY",
    "AGGREGATION": "AGGREGATE",
    "AGGREGATES": "AGGREGATE",
    "AGGREGATE FUNCTIONS": "AGGREGATE",
    "SORTING": "ORDER BY",
    "ORDERING": "ORDER BY",
    "SUBQUERIES": "SUBQUERY",
    "WITH": "CTE",
    "WINDOW FUNCTIONS": "WINDOW",
}


def normalize_tag(tag: str) -> Optional[str]:
    key = re.sub(r"[\s_\-]+", " ", tag.strip().upper())
    key = TAG_ALIASES.get(key, key)
    return key if key in _BY_TAG else None


def normalize_tags(tags: Iterable[str]) -> List[str]:
    out: List[str] = []
    for tag in tags:
        norm = normalize_tag(tag)
        if norm is None:
            logger.debug("Ignoring unknown clause tag %r", tag)
        elif norm not in out:
            out.append(norm)
    return out


def detect_clauses(ast) -> List[str]:
    """Tags of every clause present in a parsed query."""
    if ast is None:
        return []
    return [c.tag for c in CLAUSES if c.detector(ast)]


def clause_labels(tags: Sequence[str]) -> List[str]:
    return [_BY_TAG[t].label for t in tags if t in _BY_TAG]


# ============================
# Partial credit
# ============================

STRUCTURE_POINTS = 40
CLAUSE_POINTS = 40
SHAPE_POINTS = 10  # per matching dimension: column count, row count
MAX_PARTIAL = 99


@dataclass
class ScoreInput:
    candidate_sql: str
    required_clauses: Sequence[str] = ()
    reference_sql: Optional[str] = None
    columns_match: bool = False
    rows_match: bool = False


def required_clauses_for(required: Sequence[str], reference_sql: Optional[str]) -> List[str]:
    """Declared tags win; otherwise derive them from the reference query."""
    tags = normalize_tags(required)
    if tags or not reference_sql:
        return tags
    return detect_clauses(parse_select(reference_sql))


def partial_credit(inp: ScoreInput) -> int:
    """
    Score an incorrect but runnable answer, 0..99.

      40  well-formed SELECT with a FROM clause
      40  share of the required clauses the query uses
      10  column count matches the expected result
      10  row count matches the expected result
    """
    ast = parse_select(inp.candidate_sql)
    score = 0
    if ast is not None and isinstance(ast, exp.Query) and has_from(ast):
        score += STRUCTURE_POINTS

    required = required_clauses_for(inp.required_clauses, inp.reference_sql)
    if required:
        used = set(detect_clauses(ast))
        hit = sum(1 for tag in required if tag in used)
        score += round(CLAUSE_POINTS * hit / len(required))
    elif ast is not None:
        score += CLAUSE_POINTS

    if inp.columns_match:
        score += SHAPE_POINTS
    if inp.rows_match:
        score += SHAPE_POINTS
    return min(score, MAX_PARTIAL)
