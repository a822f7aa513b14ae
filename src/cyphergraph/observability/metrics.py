from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Deque, Dict, Optional, Protocol

from ..dsl.ast import Query
from .ast_hash import ast_hash

logger = logging.getLogger(__name__)

DEFAULT_LATENCY_CAPACITY = 1000


@dataclass(frozen=True)
class QueryMetrics:
    ast_hash: str
    text: str
    duration_ms: float
    retries: int
    timestamp: datetime
    plan_digest: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


def create_query_metrics(
    query: Query,
    text: str,
    duration_ms: float,
    retries: int = 0,
    plan_digest: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> QueryMetrics:
    return QueryMetrics(
        ast_hash=ast_hash(query),
        text=text,
        duration_ms=duration_ms,
        retries=retries,
        timestamp=now or datetime.now(timezone.utc),
        plan_digest=plan_digest,
    )


class LatencyTracker:
    """Ring buffer of recent latencies with nearest-rank percentiles."""

    def __init__(self, capacity: int = DEFAULT_LATENCY_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._samples: Deque[float] = deque(maxlen=capacity)

    def record(self, latency_ms: float) -> None:
        self._samples.append(latency_ms)

    def __len__(self) -> int:
        return len(self._samples)

    def percentile(self, p: float) -> float:
        if not self._samples:
            return 0
        ordered = sorted(self._samples)
        index = math.ceil((p / 100) * len(ordered)) - 1
        return ordered[min(max(0, index), len(ordered) - 1)]

    def p50(self) -> float:
        return self.percentile(50)

    def p95(self) -> float:
        return self.percentile(95)

    def p99(self) -> float:
        return self.percentile(99)

    def stats(self) -> Dict[str, float]:
        return {
            "p50": self.p50(),
            "p95": self.p95(),
            "p99": self.p99(),
            "count": len(self._samples),
        }

    def reset(self) -> None:
        self._samples.clear()


class QueryLogger(Protocol):
    def log(self, metrics: QueryMetrics) -> None: ...

    def log_error(self, metrics: Dict[str, Any], error: BaseException) -> None: ...


class LoggingQueryLogger:
    """QueryLogger writing one line per query to a :mod:`logging` logger."""

    def __init__(self, target: Optional[logging.Logger] = None) -> None:
        self.target = target or logger

    def log(self, metrics: QueryMetrics) -> None:
        self.target.info(
            "Query ast_hash=%s duration_ms=%.3f retries=%d plan_digest=%s timestamp=%s",
            metrics.ast_hash,
            metrics.duration_ms,
            metrics.retries,
            metrics.plan_digest,
            metrics.timestamp.isoformat(),
        )

    def log_error(self, metrics: Dict[str, Any], error: BaseException) -> None:
        timestamp = metrics.get("timestamp") or datetime.now(timezone.utc)
        if isinstance(timestamp, datetime):
            timestamp = timestamp.isoformat()
        self.target.error(
            "Query failed ast_hash=%s error=%s timestamp=%s",
            metrics.get("ast_hash"),
            error,
            timestamp,
        )


__all__ = [
    "QueryMetrics",
    "create_query_metrics",
    "LatencyTracker",
    "QueryLogger",
    "LoggingQueryLogger",
]
