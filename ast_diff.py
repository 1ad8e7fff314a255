# ast_diff.py
from typing import List, Optional

from sqlglot import exp

from canonicalizer import parse_select


class ASTDiffResult:
    def __init__(self):
        self.parse_error: Optional[str] = None
        self.structural_diffs: List[str] = []


def _collect_tables(ast) -> List[str]:
    return sorted({t.name.lower() for t in ast.find_all(exp.Table) if t.name})


def _collect_select_columns(ast) -> List[str]:
    sel = ast.find(exp.Select)
    if sel is None:
        return []
    cols = set()
    for e in sel.expressions:
        if isinstance(e, exp.Star):
            return ["*"]
        for col in e.find_all(exp.Column):
            cols.add(col.name.lower())
    return sorted(cols)


def _collect_group_by(ast) -> List[str]:
    group = ast.find(exp.Group)
    if group is None:
        return []
    return sorted({g.sql().lower() for g in group.expressions})


def _join_kinds(ast) -> List[str]:
    return sorted((j.side or j.kind or "INNER").upper() for j in ast.find_all(exp.Join))


def _count_subqueries(ast) -> int:
    return len(list(ast.find_all(exp.Subquery)))


def has_where(ast) -> bool:
    return ast.find(exp.Where) is not None


def ast_diff(candidate_sql: str, reference_sql: str) -> ASTDiffResult:
    """Structural comparison of two queries: tables, projection, grouping, joins."""
    res = ASTDiffResult()
    ast_c = parse_select(candidate_sql)
    ast_r = parse_select(reference_sql)
    if ast_c is None:
        res.parse_error = "candidate query could not be parsed"
        return res
    if ast_r is None:
        res.parse_error = "reference query could not be parsed"
        return res

    c_tables, r_tables = _collect_tables(ast_c), _collect_tables(ast_r)
    missing_t = [t for t in r_tables if t not in c_tables]
    extra_t = [t for t in c_tables if t not in r_tables]
    if missing_t:
        res.structural_diffs.append(f"Missing tables in FROM/JOIN: {missing_t}")
    if extra_t:
        res.structural_diffs.append(f"Extra tables in FROM/JOIN: {extra_t}")

    c_cols, r_cols = _collect_select_columns(ast_c), _collect_select_columns(ast_r)
    if c_cols != r_cols:
        if c_cols == ["*"]:
            res.structural_diffs.append("SELECT * used where specific columns are expected")
        else:
            missing = [c for c in r_cols if c not in c_cols]
            extra = [c for c in c_cols if c not in r_cols]
            if missing:
                res.structural_diffs.append(f"Missing columns in SELECT: {missing}")
            if extra:
                res.structural_diffs.append(f"Extra columns in SELECT: {extra}")

    c_group, r_group = _collect_group_by(ast_c), _collect_group_by(ast_r)
    if c_group != r_group:
        res.structural_diffs.append(f"GROUP BY mismatch: yours={c_group}, expected={r_group}")

    if _join_kinds(ast_c) != _join_kinds(ast_r):
        res.structural_diffs.append("JOIN structure differs (check join keys and types)")

    c_sub, r_sub = _count_subqueries(ast_c), _count_subqueries(ast_r)
    if c_sub != r_sub:
        res.structural_diffs.append(f"Different nested-subquery count (yours={c_sub}, expected={r_sub})")

    if has_where(ast_r) != has_where(ast_c):
        res.structural_diffs.append(
            "WHERE clause missing" if has_where(ast_r) else "Unexpected WHERE clause"
        )

    return res


def generate_tiered_hints(diff: ASTDiffResult) -> List[str]:
    """Turn structural diffs into learner-facing hints, general first."""
    hints: List[str] = []
    if diff.parse_error or not diff.structural_diffs:
        return hints

    hints.append("Level 1: Review the general area(s) indicated below.")
    for d in diff.structural_diffs:
        if "Missing columns" in d:
            hints.append("Level 2: Some required output columns are missing from your SELECT.")
        elif "Extra columns" in d or "SELECT *" in d:
            hints.append("Level 2: You have included columns in SELECT that the task doesn't require.")
        elif "Missing tables" in d:
            hints.append("Level 2: One or more tables needed for the solution are not in your FROM/JOIN.")
        elif "Extra tables" in d:
            hints.append("Level 2: You are using tables that are not needed for the task.")
        elif "GROUP BY" in d:
            hints.append("Level 2: Your grouping columns differ from expected. "
                         "Non-aggregated SELECT columns must be in GROUP BY.")
        elif "JOIN structure" in d:
            hints.append("Level 2: The joins seem different; verify join columns and inner/outer type.")
        elif "subquery" in d:
            hints.append("Level 2: A subquery may be missing or placed incorrectly.")
        elif "WHERE clause missing" in d:
            hints.append("Level 2: Your query is missing a filter; check which rows should be included.")
        elif "Unexpected WHERE" in d:
            hints.append("Level 2: Your query applies a filter the task does not need.")
        else:
            hints.append("Level 2: " + d)
    return hints
