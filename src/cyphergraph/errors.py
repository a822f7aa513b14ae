"""Error taxonomy.

The AST pipeline has a single failure mode, :class:`InternalConsistencyError`,
raised when a node outside the closed AST unions reaches the normalizer,
compiler or serializer. Everything else here belongs to the execution shell
and carries structured context for logging.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional


class InternalConsistencyError(AssertionError):
    """A code path for an AST tag outside the closed unions was reached."""


class DomainError(Exception):
    tag: str = "DomainError"

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.context: Dict[str, Any] = dict(context or {})
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tag": self.tag,
            "message": self.message,
            "cause": repr(self.cause) if self.cause is not None else None,
            "context": self.context,
        }


class QueryError(DomainError):
    """Query execution failed or returned an unexpected number of rows."""

    tag = "QueryError"

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        query: Optional[str] = None,
        parameters: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message, cause, {"query": query, "parameters": dict(parameters or {})})
        self.query = query
        self.parameters = dict(parameters or {})


class GraphConnectionError(DomainError):
    tag = "ConnectionError"

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        url: Optional[str] = None,
        database: Optional[str] = None,
    ) -> None:
        super().__init__(message, cause, {"url": url, "database": database})
        self.url = url
        self.database = database


class ValidationError(DomainError):
    """Configuration or record data did not match the expected schema."""

    tag = "ValidationError"

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        schema: Optional[str] = None,
        raw_data: Any = None,
    ) -> None:
        super().__init__(message, cause, {"schema": schema, "raw_data": raw_data})
        self.schema = schema
        self.raw_data = raw_data


class ConstraintError(DomainError):
    tag = "ConstraintError"

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        constraint: Optional[str] = None,
        values: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message, cause, {"constraint": constraint, "values": dict(values or {})})
        self.constraint = constraint
        self.values = dict(values or {})


class DriverError(DomainError):
    tag = "DriverError"


class SessionError(DomainError):
    tag = "SessionError"


class TransactionError(DomainError):
    tag = "TransactionError"


class CircuitOpenError(DomainError):
    tag = "CircuitOpenError"

    def __init__(self, name: str) -> None:
        super().__init__(f"Circuit breaker {name} is open", context={"breaker": name})
        self.name = name


class QueryTimeoutError(DomainError):
    tag = "QueryTimeoutError"

    def __init__(self, timeout_ms: float, query: Optional[str] = None) -> None:
        super().__init__(
            f"Query timed out after {timeout_ms:g} ms",
            context={"timeout_ms": timeout_ms, "query": query},
        )
        self.timeout_ms = timeout_ms
        self.query = query


def is_domain_error(exc: object) -> bool:
    return isinstance(exc, DomainError)


def is_domain_error_of(exc: object, tag: str) -> bool:
    return isinstance(exc, DomainError) and exc.tag == tag


__all__ = [
    "InternalConsistencyError",
    "DomainError",
    "QueryError",
    "GraphConnectionError",
    "ValidationError",
    "ConstraintError",
    "DriverError",
    "SessionError",
    "TransactionError",
    "CircuitOpenError",
    "QueryTimeoutError",
    "is_domain_error",
    "is_domain_error_of",
]
