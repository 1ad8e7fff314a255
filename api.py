# api.py
import logging
import time
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from config import SETTINGS, configure_logging
from errors import VerificationError
from executor import execute
from models import ExpectedAnswer, ResultSet, SchemaSpec, VerificationOptions
from sample_schemas import CATALOG, get_schema
from verifier import verify

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="SQL Practice Hub verification service")

app.add_middleware(
    CORSMiddleware,
    allow_origins=SETTINGS.origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class VerifyRequest(BaseModel):
    candidate_query: str
    schema_name: Optional[str] = None
    schema_spec: Optional[Dict[str, Any]] = None
    reference_query: Optional[str] = None
    expected_result: Optional[Dict[str, Any]] = None
    options: Dict[str, Any] = Field(default_factory=dict)


class ExecuteRequest(BaseModel):
    query: str
    schema_name: Optional[str] = None
    schema_spec: Optional[Dict[str, Any]] = None
    allow_writes: bool = True
    timeout_ms: Optional[int] = None


# ----------------------------
# Helpers
# ----------------------------
def resolve_schema(schema_name: Optional[str], schema_spec: Optional[Dict[str, Any]]) -> SchemaSpec:
    if schema_spec is not None:
        try:
            return SchemaSpec.from_dict(schema_spec)
        except (KeyError, TypeError, ValueError) as e:
            raise HTTPException(status_code=422, detail=f"Invalid schema: {e}")
    if schema_name:
        try:
            return get_schema(schema_name)
        except KeyError as e:
            raise HTTPException(status_code=404, detail=str(e.args[0]))
    raise HTTPException(status_code=422, detail="Provide schema_name or schema_spec")


def resolve_expected(req: VerifyRequest) -> ExpectedAnswer:
    if (req.reference_query is None) == (req.expected_result is None):
        raise HTTPException(status_code=422, detail="Provide exactly one of reference_query or expected_result")
    if req.reference_query is not None:
        return ExpectedAnswer(reference_query=req.reference_query)
    try:
        return ExpectedAnswer(result_set=ResultSet.from_dict(req.expected_result))
    except (TypeError, ValueError) as e:
        raise HTTPException(status_code=422, detail=f"Invalid expected_result: {e}")


@app.get("/")
def read_root():
    return {"message": "SQL verification service is running."}


@app.get("/schemas")
def list_schemas():
    return {
        name: [{"name": t.name, "columns": t.column_names} for t in schema.tables]
        for name, schema in CATALOG.items()
    }


# ----------------------------
# API 1: verify an answer
# ----------------------------
@app.post("/verify")
def verify_answer(req: VerifyRequest):
    schema = resolve_schema(req.schema_name, req.schema_spec)
    expected = resolve_expected(req)
    try:
        options = VerificationOptions.from_dict(req.options)
    except (TypeError, ValueError) as e:
        raise HTTPException(status_code=422, detail=f"Invalid options: {e}")

    verdict = verify(req.candidate_query, schema, expected, options)

    if verdict.error is not None and verdict.error.kind == "configuration_error":
        logger.warning("Flagging misconfigured question on schema %r", schema.name)
        raise HTTPException(status_code=500, detail=verdict.error.to_dict())
    if verdict.error is not None and verdict.error.kind == "comparison_error":
        raise HTTPException(status_code=422, detail=verdict.error.to_dict())
    return verdict.to_dict()


# ----------------------------
# API 2: playground execution
# ----------------------------
@app.post("/execute")
def execute_query(req: ExecuteRequest):
    schema = resolve_schema(req.schema_name, req.schema_spec)
    start = time.perf_counter()
    try:
        result = execute(req.query, schema, timeout_ms=req.timeout_ms, allow_writes=req.allow_writes)
    except VerificationError as e:
        return {
            "success": False,
            "error": {"kind": e.kind, "message": e.message},
            "executionTimeMs": round((time.perf_counter() - start) * 1000.0, 3),
        }
    out: Dict[str, Any] = result.to_dict()
    out.update({
        "success": True,
        "error": None,
        "rowCount": result.row_count,
        "executionTimeMs": round((time.perf_counter() - start) * 1000.0, 3),
    })
    return out
