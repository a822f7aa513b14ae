"""Randomized checks of normalizer laws over seeded expression trees."""

import random

import pytest

from cyphergraph.dsl import ast as q
from cyphergraph.dsl.compile import compile_query
from cyphergraph.dsl.normalize import normalize, normalize_expr
from cyphergraph.observability.ast_hash import ast_hash

SEEDS = range(25)
KEYS = ("age", "name", "city", "score")


def _leaf(rng):
    key = rng.choice(KEYS)
    op = rng.choice(["=", "<>", "<", ">="])
    return q.binary_op(op, q.prop(rng.choice("pq"), key), q.literal(rng.randint(0, 5)))


def _expr(rng, depth):
    if depth <= 0 or rng.random() < 0.25:
        return _leaf(rng)
    choice = rng.random()
    if choice < 0.2:
        return q.not_(_expr(rng, depth - 1))
    op = "AND" if choice < 0.6 else "OR"
    return q.binary_op(op, _expr(rng, depth - 1), _expr(rng, depth - 1))


def _query(rng, condition):
    clauses = [
        q.match(q.node("p", rng.sample(["Person", "Admin", "User"], 2))),
        q.where(condition),
        q.return_(["p"]),
        q.limit(rng.randint(1, 10)),
    ]
    rng.shuffle(clauses)
    return q.query(clauses, {"b": 1, "a": 2})


def _mirror(expr):
    """Swap operands of every AND/OR node."""
    if isinstance(expr, q.BinaryOp):
        left, right = _mirror(expr.left), _mirror(expr.right)
        if expr.op in q.COMMUTATIVE_OPERATORS:
            left, right = right, left
        return q.BinaryOp(expr.op, left, right)
    if isinstance(expr, q.UnaryOp):
        return q.UnaryOp(expr.op, _mirror(expr.operand))
    return expr


@pytest.mark.parametrize("seed", SEEDS)
def test_normalize_is_idempotent(seed):
    rng = random.Random(seed)
    built = _query(rng, _expr(rng, 4))

    once = normalize(built)

    assert normalize(once) == once


@pytest.mark.parametrize("seed", SEEDS)
def test_commutative_mirror_normalizes_identically(seed):
    rng = random.Random(seed)
    condition = _expr(rng, 4)

    assert normalize_expr(_mirror(condition)) == normalize_expr(condition)


@pytest.mark.parametrize("seed", SEEDS)
def test_double_negation_is_transparent(seed):
    rng = random.Random(seed)
    condition = _expr(rng, 3)

    assert normalize_expr(q.not_(q.not_(condition))) == normalize_expr(condition)


@pytest.mark.parametrize("seed", SEEDS)
def test_equivalent_queries_share_hash_and_text(seed):
    rng = random.Random(seed)
    condition = _expr(rng, 4)
    first = _query(random.Random(seed), condition)
    second = _query(random.Random(seed + 1000), _mirror(condition))
    # the pattern labels come from the rng, so pin them to the first query's
    second = q.query(
        [c if not isinstance(c, (q.Match, q.Limit)) else _same_kind(first, c) for c in second.clauses],
        second.parameters,
    )

    assert ast_hash(first) == ast_hash(second)
    assert compile_query(normalize(first)).text == compile_query(normalize(second)).text
    assert ast_hash(first) == ast_hash(normalize(first))


def _same_kind(query, clause):
    return next(c for c in query.clauses if type(c) is type(clause))
