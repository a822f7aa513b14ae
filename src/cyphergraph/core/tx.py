from __future__ import annotations

from typing import Any, Callable, List, Sequence, TypeVar

from ..errors import DomainError, TransactionError

A = TypeVar("A")
TxWork = Callable[[Any], A]


def _run(session: Any, method: str, work: TxWork[A]) -> A:
    try:
        return getattr(session, method)(work)
    except DomainError:
        raise
    except Exception as exc:
        raise TransactionError(f"Transaction failed in {method}", cause=exc) from exc


def with_read_tx(session: Any, work: TxWork[A]) -> A:
    """Run ``work(tx)`` in a managed read transaction (commit/rollback by the driver)."""
    return _run(session, "execute_read", work)


def with_write_tx(session: Any, work: TxWork[A]) -> A:
    return _run(session, "execute_write", work)


def _batch(operations: Sequence[TxWork[A]]) -> TxWork[List[A]]:
    def work(tx: Any) -> List[A]:
        return [op(tx) for op in operations]

    return work


def with_read_tx_batch(session: Any, operations: Sequence[TxWork[A]]) -> List[A]:
    """Run several operations in one read transaction, in order."""
    return with_read_tx(session, _batch(operations))


def with_write_tx_batch(session: Any, operations: Sequence[TxWork[A]]) -> List[A]:
    """Run several operations atomically in one write transaction."""
    return with_write_tx(session, _batch(operations))


__all__ = [
    "with_read_tx",
    "with_write_tx",
    "with_read_tx_batch",
    "with_write_tx_batch",
]
