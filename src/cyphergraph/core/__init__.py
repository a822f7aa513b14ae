from .driver import make_driver, verify_connectivity
from .session import make_session, make_write_session
from .tx import with_read_tx, with_read_tx_batch, with_write_tx, with_write_tx_batch

__all__ = [
    "make_driver",
    "verify_connectivity",
    "make_session",
    "make_write_session",
    "with_read_tx",
    "with_write_tx",
    "with_read_tx_batch",
    "with_write_tx_batch",
]
