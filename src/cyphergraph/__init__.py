from pydantic import __version__ as _pydantic_version

# Configuration and record models use the Pydantic v2 API.
if not _pydantic_version.startswith("2"):
    raise ImportError(
        "cyphergraph requires pydantic>=2.0; detected version %s" % _pydantic_version
    )

from .config import Neo4jConfig, create_config, load_config, validate_config
from .dsl import (
    CompileResult,
    Query,
    canonical_json,
    compile_query,
    from_data,
    normalize,
    to_data,
)
from .errors import (
    CircuitOpenError,
    ConstraintError,
    DomainError,
    GraphConnectionError,
    InternalConsistencyError,
    QueryError,
    QueryTimeoutError,
    ValidationError,
)
from .observability import LatencyTracker, LoggingQueryLogger, QueryMetrics, ast_hash, create_query_metrics

__version__ = "0.1.0"

__all__ = [
    "Query",
    "CompileResult",
    "normalize",
    "compile_query",
    "ast_hash",
    "canonical_json",
    "to_data",
    "from_data",
    "Neo4jConfig",
    "validate_config",
    "create_config",
    "load_config",
    "DomainError",
    "InternalConsistencyError",
    "QueryError",
    "GraphConnectionError",
    "ValidationError",
    "ConstraintError",
    "CircuitOpenError",
    "QueryTimeoutError",
    "QueryMetrics",
    "create_query_metrics",
    "LatencyTracker",
    "LoggingQueryLogger",
]
