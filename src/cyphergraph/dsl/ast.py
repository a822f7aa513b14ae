"""Query AST: closed unions of expressions, patterns and clauses.

Values are frozen dataclasses holding tuples, and the parameter and property
mappings are wrapped in read-only views, so a query cannot change once built.
Mutable values stored inside a literal or parameter are not copied here;
the normalizer deep-copies them. Construction never validates references
between clauses; the builder helpers at the bottom of the module only coerce
iterables to tuples.
"""

from __future__ import annotations

import typing
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Tuple, Union

BinaryOperator = str
UnaryOperator = str
Direction = typing.Literal["out", "in", "both"]
SortDirection = typing.Literal["ASC", "DESC"]

COMPARISON_OPERATORS = frozenset({"=", "<>", "<", "<=", ">", ">="})
BOOLEAN_OPERATORS = frozenset({"AND", "OR", "XOR"})
ARITHMETIC_OPERATORS = frozenset({"+", "-", "*", "/", "%"})
PREDICATE_OPERATORS = frozenset({"IN", "CONTAINS", "STARTS WITH", "ENDS WITH"})
BINARY_OPERATORS = COMPARISON_OPERATORS | BOOLEAN_OPERATORS | ARITHMETIC_OPERATORS | PREDICATE_OPERATORS
UNARY_OPERATORS = frozenset({"NOT", "-", "IS NULL", "IS NOT NULL"})
COMMUTATIVE_OPERATORS = frozenset({"AND", "OR"})


def _read_only(mapping: Optional[Mapping[str, Any]]) -> Optional[Mapping[str, Any]]:
    if mapping is None or isinstance(mapping, MappingProxyType):
        return mapping
    return MappingProxyType(dict(mapping))


# --- expressions ---


@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Property:
    variable: str
    key: str


@dataclass(frozen=True)
class Parameter:
    name: str


@dataclass(frozen=True)
class BinaryOp:
    op: BinaryOperator
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class UnaryOp:
    op: UnaryOperator
    operand: "Expr"


@dataclass(frozen=True)
class Function:
    name: str
    args: Tuple["Expr", ...] = ()


Expr = Union[Literal, Property, Parameter, BinaryOp, UnaryOp, Function]


# --- patterns ---


@dataclass(frozen=True)
class Node:
    variable: str
    labels: Tuple[str, ...] = ()
    properties: Optional[Mapping[str, Expr]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "properties", _read_only(self.properties))


@dataclass(frozen=True)
class Relationship:
    direction: Direction
    type: Optional[str] = None
    variable: Optional[str] = None
    properties: Optional[Mapping[str, Expr]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "properties", _read_only(self.properties))


@dataclass(frozen=True)
class Path:
    # Node/Relationship adjacency is the caller's responsibility.
    elements: Tuple[Union[Node, Relationship], ...] = ()


Pattern = Union[Node, Relationship, Path]


# --- return items ---


@dataclass(frozen=True)
class Variable:
    name: str
    alias: Optional[str] = None


@dataclass(frozen=True)
class Expression:
    expr: Expr
    alias: Optional[str] = None


ReturnItem = Union[Variable, Expression]


# --- clauses ---


@dataclass(frozen=True)
class Assignment:
    variable: str
    key: str
    value: Expr


@dataclass(frozen=True)
class OrderItem:
    expr: Expr
    direction: SortDirection = "ASC"


@dataclass(frozen=True)
class Match:
    pattern: Pattern
    optional: bool = False


@dataclass(frozen=True)
class Where:
    condition: Expr


@dataclass(frozen=True)
class Create:
    pattern: Pattern


@dataclass(frozen=True)
class Delete:
    variables: Tuple[str, ...]
    detach: bool = False


@dataclass(frozen=True)
class Set:
    assignments: Tuple[Assignment, ...]


@dataclass(frozen=True)
class With:
    expressions: Tuple[ReturnItem, ...]


@dataclass(frozen=True)
class Return:
    expressions: Tuple[ReturnItem, ...]


@dataclass(frozen=True)
class OrderBy:
    items: Tuple[OrderItem, ...]


@dataclass(frozen=True)
class Skip:
    count: int


@dataclass(frozen=True)
class Limit:
    count: int


Clause = Union[Match, Where, Create, Delete, Set, With, Return, OrderBy, Skip, Limit]


@dataclass(frozen=True)
class Query:
    clauses: Tuple[Clause, ...] = ()
    parameters: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", _read_only(self.parameters))


# --- builders ---


def literal(value: Any) -> Literal:
    return Literal(value)


def prop(variable: str, key: str) -> Property:
    return Property(variable, key)


def param(name: str) -> Parameter:
    return Parameter(name)


def binary_op(op: BinaryOperator, left: Expr, right: Expr) -> BinaryOp:
    return BinaryOp(op, left, right)


def unary_op(op: UnaryOperator, operand: Expr) -> UnaryOp:
    return UnaryOp(op, operand)


def and_(left: Expr, right: Expr) -> BinaryOp:
    return BinaryOp("AND", left, right)


def or_(left: Expr, right: Expr) -> BinaryOp:
    return BinaryOp("OR", left, right)


def not_(operand: Expr) -> UnaryOp:
    return UnaryOp("NOT", operand)


def eq(left: Expr, right: Expr) -> BinaryOp:
    return BinaryOp("=", left, right)


def neq(left: Expr, right: Expr) -> BinaryOp:
    return BinaryOp("<>", left, right)


def lt(left: Expr, right: Expr) -> BinaryOp:
    return BinaryOp("<", left, right)


def lte(left: Expr, right: Expr) -> BinaryOp:
    return BinaryOp("<=", left, right)


def gt(left: Expr, right: Expr) -> BinaryOp:
    return BinaryOp(">", left, right)


def gte(left: Expr, right: Expr) -> BinaryOp:
    return BinaryOp(">=", left, right)


def is_null(operand: Expr) -> UnaryOp:
    return UnaryOp("IS NULL", operand)


def is_not_null(operand: Expr) -> UnaryOp:
    return UnaryOp("IS NOT NULL", operand)


def func(name: str, *args: Expr) -> Function:
    return Function(name, tuple(args))


def node(
    variable: str,
    labels: Iterable[str] = (),
    properties: Optional[Mapping[str, Expr]] = None,
) -> Node:
    return Node(variable, tuple(labels), dict(properties) if properties is not None else None)


def relationship(
    direction: Direction,
    type: Optional[str] = None,
    variable: Optional[str] = None,
    properties: Optional[Mapping[str, Expr]] = None,
) -> Relationship:
    return Relationship(direction, type, variable, dict(properties) if properties is not None else None)


def path(*elements: Union[Node, Relationship]) -> Path:
    return Path(tuple(elements))


def var(name: str, alias: Optional[str] = None) -> Variable:
    return Variable(name, alias)


def expr(expression: Expr, alias: Optional[str] = None) -> Expression:
    return Expression(expression, alias)


def _items(items: Iterable[Union[ReturnItem, str]]) -> Tuple[ReturnItem, ...]:
    return tuple(Variable(item) if isinstance(item, str) else item for item in items)


def match(pattern: Pattern, optional: bool = False) -> Match:
    return Match(pattern, optional)


def optional_match(pattern: Pattern) -> Match:
    return Match(pattern, True)


def where(condition: Expr) -> Where:
    return Where(condition)


def create(pattern: Pattern) -> Create:
    return Create(pattern)


def delete(variables: Iterable[str], detach: bool = False) -> Delete:
    return Delete(tuple(variables), detach)


def assign(variable: str, key: str, value: Expr) -> Assignment:
    return Assignment(variable, key, value)


def set_(assignments: Iterable[Assignment]) -> Set:
    return Set(tuple(assignments))


def with_(expressions: Iterable[Union[ReturnItem, str]]) -> With:
    return With(_items(expressions))


def return_(expressions: Iterable[Union[ReturnItem, str]]) -> Return:
    return Return(_items(expressions))


def asc(expression: Expr) -> OrderItem:
    return OrderItem(expression, "ASC")


def desc(expression: Expr) -> OrderItem:
    return OrderItem(expression, "DESC")


def order_by(items: Iterable[OrderItem]) -> OrderBy:
    return OrderBy(tuple(items))


def skip(count: int) -> Skip:
    return Skip(count)


def limit(count: int) -> Limit:
    return Limit(count)


def query(clauses: Iterable[Clause], parameters: Optional[Mapping[str, Any]] = None) -> Query:
    return Query(tuple(clauses), dict(parameters or {}))
