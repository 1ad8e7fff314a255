# errors.py
from typing import Optional


class VerificationError(Exception):
    """Base class for everything the verification engine raises."""

    kind = "error"

    def __init__(self, message: str, query: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.query = query


class QuerySyntaxError(VerificationError):
    """The SQL text does not parse."""

    kind = "syntax_error"


class QueryRuntimeError(VerificationError):
    """The SQL parses but fails while binding or executing."""

    kind = "runtime_error"


class ReadOnlyViolation(QueryRuntimeError):
    """A write or DDL statement was submitted where only reads are allowed."""


class QueryTimeoutError(VerificationError):
    """Execution exceeded its time budget and was interrupted."""

    kind = "timeout"

    def __init__(self, message: str, query: Optional[str] = None, timeout_ms: Optional[int] = None):
        super().__init__(message, query)
        self.timeout_ms = timeout_ms


class ConfigurationError(VerificationError):
    """The question itself is broken: bad seed data or a failing reference query."""

    kind = "configuration_error"


class ComparisonError(VerificationError):
    """The result sets cannot be compared at all (e.g. expected has no columns)."""

    kind = "comparison_error"
