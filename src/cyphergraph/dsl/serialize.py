"""Canonical JSON form of AST nodes.

``canonical_json`` is the total order behind commutative sorting in the
normalizer and the input of :func:`cyphergraph.observability.ast_hash`. Keys
are sorted and separators are compact, so the string depends only on the tree
structure and literal values. Values JSON cannot represent are written as
``{"$type": <class name>, "value": str(value)}`` so that, for example, a date
and the string of the same date never compare equal.
"""

from __future__ import annotations

import json
from dataclasses import fields
from typing import Any, Callable, Dict, Iterable, Mapping, Tuple, get_args

from ..errors import InternalConsistencyError
from .ast import (
    BINARY_OPERATORS,
    UNARY_OPERATORS,
    Assignment,
    BinaryOp,
    Clause,
    Create,
    Delete,
    Expr,
    Expression,
    Function,
    Limit,
    Literal,
    Match,
    Node,
    OrderBy,
    OrderItem,
    Parameter,
    Path,
    Pattern,
    Property,
    Query,
    Relationship,
    Return,
    ReturnItem,
    Set,
    Skip,
    UnaryOp,
    Variable,
    Where,
    With,
)

_NODE_TYPES = (
    Literal,
    Property,
    Parameter,
    BinaryOp,
    UnaryOp,
    Function,
    Node,
    Relationship,
    Path,
    Variable,
    Expression,
    Assignment,
    OrderItem,
    Match,
    Where,
    Create,
    Delete,
    Set,
    With,
    Return,
    OrderBy,
    Skip,
    Limit,
    Query,
)
_KINDS: Dict[str, type] = {cls.__name__: cls for cls in _NODE_TYPES}

# Fields holding caller data rather than AST nodes.
_RAW_FIELDS = {(Literal, "value"), (Query, "parameters")}


def plain_value(value: Any) -> Any:
    """Convert a literal or parameter value into JSON-compatible data."""
    if isinstance(value, Mapping):
        return {str(k): plain_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [plain_value(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted((plain_value(v) for v in value), key=repr)
    return value


def tagged_value(value: Any) -> Any:
    """Like :func:`plain_value`, but keeps distinct values distinct.

    Anything other than JSON scalars, lists and string-keyed mappings is wrapped
    as ``{"$type": ..., "value": ...}``.
    """
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, list):
        return [tagged_value(v) for v in value]
    if isinstance(value, Mapping) and all(isinstance(k, str) for k in value):
        return {k: tagged_value(v) for k, v in value.items()}
    type_name = type(value).__qualname__
    if isinstance(value, tuple):
        return {"$type": type_name, "value": [tagged_value(v) for v in value]}
    if isinstance(value, (set, frozenset)):
        return {"$type": type_name, "value": sorted((tagged_value(v) for v in value), key=_dumps)}
    if isinstance(value, Mapping):
        pairs = [[tagged_value(k), tagged_value(v)] for k, v in value.items()]
        return {"$type": type_name, "value": sorted(pairs, key=_dumps)}
    return {"$type": type_name, "value": str(value)}


def to_data(node: Any) -> Dict[str, Any]:
    return _node_data(node, plain_value)


def _node_data(node: Any, raw: Callable[[Any], Any]) -> Dict[str, Any]:
    cls = type(node)
    if cls not in _NODE_TYPES:
        raise InternalConsistencyError(f"Not an AST node: {node!r}")
    data: Dict[str, Any] = {"kind": cls.__name__}
    for f in fields(node):
        value = getattr(node, f.name)
        if (cls, f.name) in _RAW_FIELDS:
            data[f.name] = raw(value)
        else:
            data[f.name] = _field_data(value, raw)
    return data


def _field_data(value: Any, raw: Callable[[Any], Any]) -> Any:
    if isinstance(value, _NODE_TYPES):
        return _node_data(value, raw)
    if isinstance(value, tuple):
        return [_field_data(v, raw) for v in value]
    if isinstance(value, Mapping):
        return {k: _field_data(v, raw) for k, v in value.items()}
    return value


# --- reading external data ---

FieldCheck = Callable[[Any], bool]


def _instance_of(*types: type) -> FieldCheck:
    return lambda value: isinstance(value, types)


def _optional(check: FieldCheck) -> FieldCheck:
    return lambda value: value is None or check(value)


def _tuple_of(check: FieldCheck) -> FieldCheck:
    return lambda value: isinstance(value, tuple) and all(check(item) for item in value)


def _mapping_of(check: FieldCheck) -> FieldCheck:
    return lambda value: isinstance(value, Mapping) and all(
        isinstance(key, str) and check(item) for key, item in value.items()
    )


def _one_of(choices: Iterable[str]) -> FieldCheck:
    allowed = frozenset(choices)
    return lambda value: isinstance(value, str) and value in allowed


def _count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _anything(value: Any) -> bool:
    return True


_name = _instance_of(str)
_flag = _instance_of(bool)
_expr = _instance_of(*get_args(Expr))
_pattern = _instance_of(*get_args(Pattern))
_clause = _instance_of(*get_args(Clause))
_return_item = _instance_of(*get_args(ReturnItem))
_properties = _optional(_mapping_of(_expr))

# Allowed value per field of every node kind; ``from_data`` rejects the rest.
_FIELD_CHECKS: Dict[Tuple[type, str], FieldCheck] = {
    (Literal, "value"): _anything,
    (Property, "variable"): _name,
    (Property, "key"): _name,
    (Parameter, "name"): _name,
    (BinaryOp, "op"): _one_of(BINARY_OPERATORS),
    (BinaryOp, "left"): _expr,
    (BinaryOp, "right"): _expr,
    (UnaryOp, "op"): _one_of(UNARY_OPERATORS),
    (UnaryOp, "operand"): _expr,
    (Function, "name"): _name,
    (Function, "args"): _tuple_of(_expr),
    (Node, "variable"): _name,
    (Node, "labels"): _tuple_of(_name),
    (Node, "properties"): _properties,
    (Relationship, "direction"): _one_of(("out", "in", "both")),
    (Relationship, "type"): _optional(_name),
    (Relationship, "variable"): _optional(_name),
    (Relationship, "properties"): _properties,
    (Path, "elements"): _tuple_of(_instance_of(Node, Relationship)),
    (Variable, "name"): _name,
    (Variable, "alias"): _optional(_name),
    (Expression, "expr"): _expr,
    (Expression, "alias"): _optional(_name),
    (Assignment, "variable"): _name,
    (Assignment, "key"): _name,
    (Assignment, "value"): _expr,
    (OrderItem, "expr"): _expr,
    (OrderItem, "direction"): _one_of(("ASC", "DESC")),
    (Match, "pattern"): _pattern,
    (Match, "optional"): _flag,
    (Where, "condition"): _expr,
    (Create, "pattern"): _pattern,
    (Delete, "variables"): _tuple_of(_name),
    (Delete, "detach"): _flag,
    (Set, "assignments"): _tuple_of(_instance_of(Assignment)),
    (With, "expressions"): _tuple_of(_return_item),
    (Return, "expressions"): _tuple_of(_return_item),
    (OrderBy, "items"): _tuple_of(_instance_of(OrderItem)),
    (Skip, "count"): _count,
    (Limit, "count"): _count,
    (Query, "clauses"): _tuple_of(_clause),
    (Query, "parameters"): _mapping_of(_anything),
}


def from_data(data: Mapping[str, Any]) -> Any:
    """Rebuild an AST node from :func:`to_data` output.

    Raises ``ValueError`` for unknown kinds, missing fields and values that do
    not belong in their position (a clause where an expression is expected, a
    list of parameters, an unknown operator): the data usually comes from a
    file or the command line, not from code.
    """
    if not isinstance(data, Mapping):
        raise ValueError(f"Expected an object with a 'kind' key, got {type(data).__name__}")
    kind = data.get("kind")
    cls = _KINDS.get(kind) if isinstance(kind, str) else None
    if cls is None:
        raise ValueError(f"Unknown AST kind: {kind!r}")
    kwargs: Dict[str, Any] = {}
    for f in fields(cls):
        if f.name not in data:
            continue
        value = data[f.name]
        if (cls, f.name) not in _RAW_FIELDS:
            value = _field_value(value)
        if not _FIELD_CHECKS[(cls, f.name)](value):
            raise ValueError(f"Invalid {kind}.{f.name}: {value!r}")
        kwargs[f.name] = value
    try:
        return cls(**kwargs)
    except TypeError as exc:
        raise ValueError(f"Invalid {kind} node: {exc}") from exc


def _field_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        if isinstance(value.get("kind"), str):
            return from_data(value)
        return {k: _field_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return tuple(_field_value(v) for v in value)
    return value


def _dumps(data: Any) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def canonical_json(node: Any) -> str:
    return _dumps(_node_data(node, tagged_value))


__all__ = ["plain_value", "tagged_value", "to_data", "from_data", "canonical_json"]
