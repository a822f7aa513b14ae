from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from ..errors import InternalConsistencyError
from .ast import (
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


@dataclass(frozen=True)
class CompileResult:
    text: str
    parameters: Dict[str, Any] = field(default_factory=dict)


# Cypher binding strength, weakest first. Atoms bind tightest.
_BINARY_PRECEDENCE: Dict[str, int] = {
    "OR": 1,
    "XOR": 2,
    "AND": 3,
    "=": 5,
    "<>": 5,
    "<": 5,
    "<=": 5,
    ">": 5,
    ">=": 5,
    "IN": 5,
    "CONTAINS": 5,
    "STARTS WITH": 5,
    "ENDS WITH": 5,
    "+": 6,
    "-": 6,
    "*": 7,
    "/": 7,
    "%": 7,
}
_UNARY_PRECEDENCE: Dict[str, int] = {
    "NOT": 4,
    "IS NULL": 5,
    "IS NOT NULL": 5,
    "-": 8,
}
_ATOM_PRECEDENCE = 10
_ASSOCIATIVE = frozenset({"AND", "OR", "XOR", "+", "*"})
_LEFT_ASSOCIATIVE_LEVELS = frozenset({6, 7})

_ARROWS = {
    "out": ("-", "->"),
    "in": ("<-", "-"),
    "both": ("-", "-"),
}


def compile_query(query: Query) -> CompileResult:
    """Render a query AST as Cypher text.

    Clauses are rendered in list order, one space apart; nothing is reordered.
    Pass the output of :func:`cyphergraph.dsl.normalize.normalize` to get the
    canonical text of a query.
    """
    text = " ".join(compile_clause(clause) for clause in query.clauses)
    return CompileResult(text=text, parameters=dict(query.parameters))


def compile_clause(clause: Clause) -> str:
    if isinstance(clause, Match):
        prefix = "OPTIONAL MATCH" if clause.optional else "MATCH"
        return f"{prefix} {compile_pattern(clause.pattern)}"
    if isinstance(clause, Where):
        return f"WHERE {compile_expr(clause.condition)}"
    if isinstance(clause, Create):
        return f"CREATE {compile_pattern(clause.pattern)}"
    if isinstance(clause, Delete):
        prefix = "DETACH DELETE" if clause.detach else "DELETE"
        return f"{prefix} {', '.join(clause.variables)}"
    if isinstance(clause, Set):
        rendered = ", ".join(f"{a.variable}.{a.key} = {compile_expr(a.value)}" for a in clause.assignments)
        return f"SET {rendered}"
    if isinstance(clause, With):
        return f"WITH {', '.join(compile_return_item(item) for item in clause.expressions)}"
    if isinstance(clause, Return):
        return f"RETURN {', '.join(compile_return_item(item) for item in clause.expressions)}"
    if isinstance(clause, OrderBy):
        rendered = ", ".join(f"{compile_expr(item.expr)} {item.direction}" for item in clause.items)
        return f"ORDER BY {rendered}"
    if isinstance(clause, Skip):
        return f"SKIP {clause.count}"
    if isinstance(clause, Limit):
        return f"LIMIT {clause.count}"
    raise InternalConsistencyError(f"Unknown clause: {clause!r}")


def compile_pattern(pattern: Pattern) -> str:
    if isinstance(pattern, Node):
        labels = "".join(f":{label}" for label in pattern.labels)
        return f"({pattern.variable}{labels}{_compile_properties(pattern.properties)})"
    if isinstance(pattern, Relationship):
        variable = pattern.variable or ""
        rel_type = f":{pattern.type}" if pattern.type else ""
        body = f"[{variable}{rel_type}{_compile_properties(pattern.properties)}]"
        try:
            left, right = _ARROWS[pattern.direction]
        except KeyError:
            raise InternalConsistencyError(f"Unknown relationship direction: {pattern.direction!r}") from None
        return f"{left}{body}{right}"
    if isinstance(pattern, Path):
        return "".join(compile_pattern(element) for element in pattern.elements)
    raise InternalConsistencyError(f"Unknown pattern: {pattern!r}")


def _compile_properties(properties: Optional[Mapping[str, Expr]]) -> str:
    if properties is None:
        return ""
    rendered = ", ".join(f"{key}: {compile_expr(value)}" for key, value in properties.items())
    return f" {{{rendered}}}"


def compile_return_item(item: ReturnItem) -> str:
    if isinstance(item, Variable):
        rendered = item.name
    elif isinstance(item, Expression):
        rendered = compile_expr(item.expr)
    else:
        raise InternalConsistencyError(f"Unknown return item: {item!r}")
    return f"{rendered} AS {item.alias}" if item.alias else rendered


def compile_expr(expr: Expr) -> str:
    if isinstance(expr, Literal):
        return compile_literal(expr.value)
    if isinstance(expr, Property):
        return f"{expr.variable}.{expr.key}"
    if isinstance(expr, Parameter):
        return f"${expr.name}"
    if isinstance(expr, BinaryOp):
        if expr.op not in _BINARY_PRECEDENCE:
            raise InternalConsistencyError(f"Unknown binary operator: {expr.op!r}")
        left = _operand(expr.left, expr.op, is_right=False)
        right = _operand(expr.right, expr.op, is_right=True)
        return f"{left} {expr.op} {right}"
    if isinstance(expr, UnaryOp):
        precedence = _UNARY_PRECEDENCE.get(expr.op)
        if precedence is None:
            raise InternalConsistencyError(f"Unknown unary operator: {expr.op!r}")
        operand = compile_expr(expr.operand)
        if _precedence(expr.operand) <= precedence:
            operand = f"({operand})"
        elif expr.op == "-" and operand.startswith("-"):
            # "--1" would read as a second operator, not a negated literal
            operand = f"({operand})"
        if expr.op == "NOT":
            return f"NOT {operand}"
        if expr.op == "-":
            return f"-{operand}"
        return f"{operand} {expr.op}"
    if isinstance(expr, Function):
        return f"{expr.name}({', '.join(compile_expr(arg) for arg in expr.args)})"
    raise InternalConsistencyError(f"Unknown expression: {expr!r}")


def _precedence(expr: Expr) -> int:
    if isinstance(expr, BinaryOp):
        return _BINARY_PRECEDENCE.get(expr.op, _ATOM_PRECEDENCE)
    if isinstance(expr, UnaryOp):
        return _UNARY_PRECEDENCE.get(expr.op, _ATOM_PRECEDENCE)
    return _ATOM_PRECEDENCE


def _operand(child: Expr, parent_op: str, *, is_right: bool) -> str:
    rendered = compile_expr(child)
    child_level = _precedence(child)
    parent_level = _BINARY_PRECEDENCE[parent_op]
    if child_level > parent_level:
        return rendered
    if child_level == parent_level:
        if isinstance(child, BinaryOp) and child.op == parent_op and parent_op in _ASSOCIATIVE:
            return rendered
        if not is_right and parent_level in _LEFT_ASSOCIATIVE_LEVELS:
            return rendered
    return f"({rendered})"


def compile_literal(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        return repr(value)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, (list, tuple)):
        return f"[{', '.join(compile_literal(v) for v in value)}]"
    if isinstance(value, Mapping):
        return "{" + ", ".join(f"{key}: {compile_literal(v)}" for key, v in value.items()) + "}"
    return json.dumps(str(value), ensure_ascii=False)


__all__ = [
    "CompileResult",
    "compile_query",
    "compile_clause",
    "compile_pattern",
    "compile_expr",
    "compile_return_item",
    "compile_literal",
]
