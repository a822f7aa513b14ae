from __future__ import annotations

import logging
from typing import Any

from neo4j import Driver, GraphDatabase
from neo4j.exceptions import AuthError, ServiceUnavailable

from ..config import Neo4jConfig
from ..errors import DriverError, GraphConnectionError

logger = logging.getLogger(__name__)


def make_driver(config: Neo4jConfig) -> Driver:
    """Create a driver for ``config``. The caller owns it and must close it."""
    try:
        driver = GraphDatabase.driver(
            config.url,
            auth=(config.user, config.password),
            max_connection_pool_size=config.connection_pool_size or 10,
            max_connection_lifetime=(config.max_connection_lifetime_ms or 3_600_000) / 1000,
        )
    except (ValueError, TypeError) as exc:
        raise DriverError(f"Unable to create driver for {config.url}", cause=exc) from exc
    logger.debug("Created Neo4j driver url=%s database=%s", config.url, config.database)
    return driver


def verify_connectivity(driver: Any, *, url: str | None = None, database: str | None = None) -> Any:
    """Check that the server is reachable; returns the server info."""
    try:
        return driver.get_server_info()
    except (ServiceUnavailable, AuthError, OSError) as exc:
        logger.warning("Neo4j connectivity check failed url=%s: %s", url, exc)
        raise GraphConnectionError("Unable to reach Neo4j", cause=exc, url=url, database=database) from exc


__all__ = ["make_driver", "verify_connectivity"]
