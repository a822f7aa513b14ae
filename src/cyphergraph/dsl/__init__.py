from .ast import (
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
from .compile import CompileResult, compile_query
from .normalize import normalize
from .serialize import canonical_json, from_data, to_data

__all__ = [
    "Expr",
    "Literal",
    "Property",
    "Parameter",
    "BinaryOp",
    "UnaryOp",
    "Function",
    "Pattern",
    "Node",
    "Relationship",
    "Path",
    "ReturnItem",
    "Variable",
    "Expression",
    "Clause",
    "Assignment",
    "OrderItem",
    "Match",
    "Where",
    "Create",
    "Delete",
    "Set",
    "With",
    "Return",
    "OrderBy",
    "Skip",
    "Limit",
    "Query",
    "CompileResult",
    "normalize",
    "compile_query",
    "canonical_json",
    "to_data",
    "from_data",
]
