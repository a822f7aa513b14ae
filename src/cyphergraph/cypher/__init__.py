from .query_builder import (
    build,
    create_node,
    delete_node_by_id,
    find_node_by_id,
    find_nodes_by_label,
    match_adults,
    update_node_properties,
)
from .service import (
    run_ast_query,
    run_batch_queries,
    run_query,
    run_query_raw,
    run_query_single,
    run_write_query,
)

__all__ = [
    "build",
    "match_adults",
    "find_nodes_by_label",
    "find_node_by_id",
    "create_node",
    "delete_node_by_id",
    "update_node_properties",
    "run_query",
    "run_query_single",
    "run_query_raw",
    "run_write_query",
    "run_batch_queries",
    "run_ast_query",
]
