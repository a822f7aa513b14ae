"""Domain helpers that assemble query ASTs.

Each helper returns a :class:`~cyphergraph.dsl.ast.Query` whose values travel
as parameters; labels are interpolated into patterns and must come from code,
not from user input.
"""

from __future__ import annotations

from typing import Any, Mapping

from ..dsl import ast as q
from ..dsl.compile import CompileResult, compile_query
from ..dsl.normalize import normalize


def build(query: q.Query) -> CompileResult:
    """Normalize and compile ``query``."""
    return compile_query(normalize(query))


def match_adults(min_age: int) -> q.Query:
    return q.query(
        [
            q.match(q.node("person", ["Person"])),
            q.where(q.gte(q.prop("person", "age"), q.param("minAge"))),
            q.return_(
                [
                    q.expr(q.prop("person", "id"), "id"),
                    q.expr(q.prop("person", "name"), "name"),
                    q.expr(q.prop("person", "age"), "age"),
                ]
            ),
        ],
        {"minAge": min_age},
    )


def find_nodes_by_label(label: str) -> q.Query:
    return q.query([q.match(q.node("n", [label])), q.return_(["n"])])


def find_node_by_id(label: str, node_id: str) -> q.Query:
    return q.query(
        [
            q.match(q.node("n", [label], {"id": q.param("id")})),
            q.return_(["n"]),
        ],
        {"id": node_id},
    )


def create_node(label: str, properties: Mapping[str, Any]) -> q.Query:
    """CREATE a node with one parameter per property, returning it."""
    return q.query(
        [
            q.create(q.node("n", [label], {key: q.param(key) for key in properties})),
            q.return_(["n"]),
        ],
        dict(properties),
    )


def delete_node_by_id(label: str, node_id: str, *, detach: bool = True) -> q.Query:
    return q.query(
        [
            q.match(q.node("n", [label], {"id": q.param("id")})),
            q.delete(["n"], detach=detach),
        ],
        {"id": node_id},
    )


def update_node_properties(label: str, node_id: str, properties: Mapping[str, Any]) -> q.Query:
    # property parameters are prefixed so they never collide with $id
    assignments = [q.assign("n", key, q.param(f"set_{key}")) for key in properties]
    parameters = {f"set_{key}": value for key, value in properties.items()}
    parameters["id"] = node_id
    return q.query(
        [
            q.match(q.node("n", [label], {"id": q.param("id")})),
            q.set_(assignments),
            q.return_(["n"]),
        ],
        parameters,
    )


__all__ = [
    "build",
    "match_adults",
    "find_nodes_by_label",
    "find_node_by_id",
    "create_node",
    "delete_node_by_id",
    "update_node_properties",
]
