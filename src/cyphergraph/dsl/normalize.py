"""Canonicalization of query ASTs.

``normalize`` maps every member of an equivalence class of queries to one
representative:

* ``NOT NOT x`` collapses to ``x``;
* operands of ``AND``/``OR`` are ordered by their canonical JSON, and chains of
  more than two operands of the same operator are flattened, sorted and
  rebuilt right-folded (``a AND (b AND c)``);
* node labels and property keys are sorted, and so are keys of map literals;
* clauses are stably sorted by clause class and ``SET`` assignments by
  ``variable.key``;
* parameter keys are sorted.

Operand order of every other operator, path element order and the item order of
``RETURN``/``WITH``/``ORDER BY``/``DELETE`` are preserved. The result shares no
mutable state with the input.
"""

from __future__ import annotations

import copy
from functools import reduce
from typing import Any, Dict, List, Mapping, Optional

from ..errors import InternalConsistencyError
from .ast import (
    COMMUTATIVE_OPERATORS,
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
from .serialize import canonical_json

CLAUSE_ORDER: Dict[type, int] = {
    Match: 1,
    Where: 2,
    Create: 3,
    Delete: 4,
    Set: 5,
    With: 6,
    Return: 7,
    OrderBy: 8,
    Skip: 9,
    Limit: 10,
}


def normalize(query: Query) -> Query:
    clauses = [normalize_clause(clause) for clause in query.clauses]
    clauses.sort(key=clause_rank)
    return Query(clauses=tuple(clauses), parameters=_sorted_parameters(query.parameters))


def clause_rank(clause: Clause) -> int:
    rank = CLAUSE_ORDER.get(type(clause))
    if rank is None:
        raise InternalConsistencyError(f"Unknown clause: {clause!r}")
    return rank


def expr_sort_key(expr: Expr) -> str:
    return canonical_json(expr)


def normalize_expr(expr: Expr) -> Expr:
    if isinstance(expr, Literal):
        return Literal(_canonical_value(expr.value))
    if isinstance(expr, Property):
        return Property(expr.variable, expr.key)
    if isinstance(expr, Parameter):
        return Parameter(expr.name)
    if isinstance(expr, UnaryOp):
        operand = normalize_expr(expr.operand)
        # operand is already canonical, so one level of NOT remains at most
        if expr.op == "NOT" and isinstance(operand, UnaryOp) and operand.op == "NOT":
            return operand.operand
        return UnaryOp(expr.op, operand)
    if isinstance(expr, BinaryOp):
        left = normalize_expr(expr.left)
        right = normalize_expr(expr.right)
        if expr.op in COMMUTATIVE_OPERATORS:
            return _normalize_commutative(expr.op, left, right)
        return BinaryOp(expr.op, left, right)
    if isinstance(expr, Function):
        return Function(expr.name, tuple(normalize_expr(arg) for arg in expr.args))
    raise InternalConsistencyError(f"Unknown expression: {expr!r}")


def _normalize_commutative(op: str, left: Expr, right: Expr) -> Expr:
    operands: List[Expr] = []
    _collect_operands(op, left, operands)
    _collect_operands(op, right, operands)

    if len(operands) > 2:
        operands.sort(key=expr_sort_key)
        return reduce(lambda acc, item: BinaryOp(op, item, acc), reversed(operands[:-1]), operands[-1])

    if expr_sort_key(left) > expr_sort_key(right):
        left, right = right, left
    return BinaryOp(op, left, right)


def _collect_operands(op: str, expr: Expr, out: List[Expr]) -> None:
    if isinstance(expr, BinaryOp) and expr.op == op:
        _collect_operands(op, expr.left, out)
        _collect_operands(op, expr.right, out)
    else:
        out.append(expr)


def normalize_pattern(pattern: Pattern) -> Pattern:
    if isinstance(pattern, Node):
        return Node(
            variable=pattern.variable,
            labels=tuple(sorted(pattern.labels)),
            properties=_normalize_properties(pattern.properties),
        )
    if isinstance(pattern, Relationship):
        return Relationship(
            direction=pattern.direction,
            type=pattern.type,
            variable=pattern.variable,
            properties=_normalize_properties(pattern.properties),
        )
    if isinstance(pattern, Path):
        elements = []
        for element in pattern.elements:
            if not isinstance(element, (Node, Relationship)):
                raise InternalConsistencyError(f"Invalid path element: {element!r}")
            elements.append(normalize_pattern(element))
        return Path(tuple(elements))
    raise InternalConsistencyError(f"Unknown pattern: {pattern!r}")


def _normalize_properties(properties: Optional[Mapping[str, Expr]]) -> Optional[Dict[str, Expr]]:
    if properties is None:
        return None
    return {key: normalize_expr(properties[key]) for key in sorted(properties)}


def normalize_return_item(item: ReturnItem) -> ReturnItem:
    if isinstance(item, Variable):
        return Variable(item.name, item.alias)
    if isinstance(item, Expression):
        return Expression(normalize_expr(item.expr), item.alias)
    raise InternalConsistencyError(f"Unknown return item: {item!r}")


def normalize_clause(clause: Clause) -> Clause:
    if isinstance(clause, Match):
        return Match(normalize_pattern(clause.pattern), clause.optional)
    if isinstance(clause, Where):
        return Where(normalize_expr(clause.condition))
    if isinstance(clause, Create):
        return Create(normalize_pattern(clause.pattern))
    if isinstance(clause, Delete):
        return Delete(tuple(clause.variables), clause.detach)
    if isinstance(clause, Set):
        assignments = [Assignment(a.variable, a.key, normalize_expr(a.value)) for a in clause.assignments]
        assignments.sort(key=lambda a: f"{a.variable}.{a.key}")
        return Set(tuple(assignments))
    if isinstance(clause, With):
        return With(tuple(normalize_return_item(item) for item in clause.expressions))
    if isinstance(clause, Return):
        return Return(tuple(normalize_return_item(item) for item in clause.expressions))
    if isinstance(clause, OrderBy):
        return OrderBy(tuple(OrderItem(normalize_expr(item.expr), item.direction) for item in clause.items))
    if isinstance(clause, Skip):
        return Skip(clause.count)
    if isinstance(clause, Limit):
        return Limit(clause.count)
    raise InternalConsistencyError(f"Unknown clause: {clause!r}")


def _canonical_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _canonical_value(value[key]) for key in sorted(value, key=str)}
    if isinstance(value, list):
        return [_canonical_value(v) for v in value]
    if isinstance(value, tuple):
        return tuple(_canonical_value(v) for v in value)
    return copy.deepcopy(value)


def _sorted_parameters(parameters: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: copy.deepcopy(parameters[key]) for key in sorted(parameters)}


__all__ = [
    "CLAUSE_ORDER",
    "normalize",
    "normalize_expr",
    "normalize_pattern",
    "normalize_clause",
    "normalize_return_item",
    "clause_rank",
    "expr_sort_key",
]
