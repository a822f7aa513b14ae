from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar, Union

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..dsl.ast import Query
from ..errors import DomainError, QueryError, ValidationError
from ..observability.ast_hash import ast_hash
from ..observability.metrics import LatencyTracker, QueryLogger, create_query_metrics
from .query_builder import build

logger = logging.getLogger(__name__)

A = TypeVar("A")
Decoder = Union[TypeAdapter, type, Callable[[Any], Any]]


def _decode_fn(decoder: Decoder) -> Callable[[Any], Any]:
    if isinstance(decoder, TypeAdapter):
        return decoder.validate_python
    if isinstance(decoder, type) and issubclass(decoder, BaseModel):
        return decoder.model_validate
    if callable(decoder):
        return decoder
    raise TypeError(f"Unsupported decoder: {decoder!r}")


def _plain(raw: Any) -> Any:
    # neo4j Node/Relationship values expose items() without being Mappings
    if not isinstance(raw, Mapping) and callable(getattr(raw, "items", None)):
        return dict(raw.items())
    return raw


def run_query_raw(session: Any, text: str, parameters: Dict[str, Any]) -> List[Any]:
    """Execute ``text`` and return the raw records."""
    try:
        return list(session.run(text, parameters))
    except DomainError:
        raise
    except Exception as exc:
        logger.debug("Query failed: %s", exc)
        raise QueryError("Cypher query execution failed", cause=exc, query=text, parameters=parameters) from exc


def run_write_query(session: Any, text: str, parameters: Dict[str, Any]) -> List[Any]:
    return run_query_raw(session, text, parameters)


def run_query(session: Any, text: str, parameters: Dict[str, Any], decoder: Decoder) -> List[Any]:
    """Execute ``text`` and decode the first column of every record.

    Driver failures surface as :class:`QueryError`; null values and values the
    decoder rejects surface as :class:`ValidationError`.
    """
    decode = _decode_fn(decoder)
    records = run_query_raw(session, text, parameters)
    decoded: List[Any] = []
    for record in records:
        raw = record[0]
        if raw is None:
            raise ValidationError("Query returned null or undefined value", schema="decoder", raw_data=raw)
        try:
            decoded.append(decode(_plain(raw)))
        except (PydanticValidationError, ValueError, TypeError, KeyError) as exc:
            raise ValidationError("Failed to decode query result", cause=exc, schema="decoder", raw_data=raw) from exc
    return decoded


def run_query_single(session: Any, text: str, parameters: Dict[str, Any], decoder: Decoder) -> Any:
    results = run_query(session, text, parameters, decoder)
    if not results:
        raise QueryError("Query returned no results", query=text, parameters=parameters)
    if len(results) > 1:
        raise QueryError("Query returned multiple results, expected one", query=text, parameters=parameters)
    return results[0]


def run_batch_queries(session: Any, queries: Iterable[Mapping[str, Any]]) -> List[List[Any]]:
    """Run ``{"text": ..., "parameters": ...}`` entries one after another."""
    return [run_query_raw(session, item["text"], dict(item.get("parameters") or {})) for item in queries]


def run_ast_query(
    session: Any,
    query: Query,
    decoder: Decoder,
    *,
    tracker: Optional[LatencyTracker] = None,
    query_logger: Optional[QueryLogger] = None,
    clock: Callable[[], float] = time.perf_counter,
) -> List[Any]:
    """Normalize, compile and run ``query``, recording latency and metrics."""
    compiled = build(query)
    started = clock()
    try:
        rows = run_query(session, compiled.text, compiled.parameters, decoder)
    except DomainError as exc:
        if query_logger is not None:
            query_logger.log_error({"ast_hash": ast_hash(query), "text": compiled.text}, exc)
        raise
    duration_ms = (clock() - started) * 1000
    if tracker is not None:
        tracker.record(duration_ms)
    if query_logger is not None:
        query_logger.log(create_query_metrics(query, compiled.text, duration_ms))
    return rows


__all__ = [
    "Decoder",
    "run_query",
    "run_query_single",
    "run_query_raw",
    "run_write_query",
    "run_batch_queries",
    "run_ast_query",
]
