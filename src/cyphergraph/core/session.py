from __future__ import annotations

from typing import Any, Optional

from neo4j import READ_ACCESS, WRITE_ACCESS

from ..errors import SessionError


def _open(driver: Any, database: Optional[str], access_mode: str) -> Any:
    kwargs = {"default_access_mode": access_mode}
    if database:
        kwargs["database"] = database
    try:
        return driver.session(**kwargs)
    except Exception as exc:
        raise SessionError(f"Unable to open {access_mode} session", cause=exc) from exc


def make_session(driver: Any, database: Optional[str] = None) -> Any:
    """Open a read-only session. The caller is responsible for closing it."""
    return _open(driver, database, READ_ACCESS)


def make_write_session(driver: Any, database: Optional[str] = None) -> Any:
    return _open(driver, database, WRITE_ACCESS)


__all__ = ["make_session", "make_write_session"]
