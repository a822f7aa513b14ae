from __future__ import annotations

from ..dsl.ast import Query
from ..dsl.normalize import normalize
from ..dsl.serialize import canonical_json

DJB2_SEED = 5381
_MASK = 0xFFFFFFFF


def djb2_digest(text: str) -> str:
    """DJB2 (xor variant) over ``text``, as 8 lowercase hex characters.

    Not a cryptographic hash: it groups equivalent queries in caches and logs.
    """
    value = DJB2_SEED
    for ch in text:
        value = ((value * 33) ^ ord(ch)) & _MASK
    return f"{value:08x}"


def ast_hash(query: Query) -> str:
    """Digest of the canonical form of ``query``.

    Queries that normalize to the same AST hash identically.
    """
    return djb2_digest(canonical_json(normalize(query)))


__all__ = ["DJB2_SEED", "djb2_digest", "ast_hash"]
