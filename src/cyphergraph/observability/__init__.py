from .ast_hash import ast_hash, djb2_digest
from .metrics import (
    LatencyTracker,
    LoggingQueryLogger,
    QueryLogger,
    QueryMetrics,
    create_query_metrics,
)

__all__ = [
    "ast_hash",
    "djb2_digest",
    "QueryMetrics",
    "create_query_metrics",
    "LatencyTracker",
    "QueryLogger",
    "LoggingQueryLogger",
]
