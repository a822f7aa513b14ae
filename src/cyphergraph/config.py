from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Mapping
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError

ENV_PREFIX = "CYPHERGRAPH_"
ALLOWED_SCHEMES = frozenset({"neo4j", "neo4j+s", "neo4j+ssc", "bolt", "bolt+s", "bolt+ssc"})


class Neo4jConfig(BaseModel):
    """Connection settings for a Neo4j database."""

    url: str
    user: str = Field(min_length=1)
    password: str = Field(min_length=1)
    database: str | None = "neo4j"
    default_timeout_ms: int | None = Field(default=30_000, gt=0)
    connection_pool_size: int | None = Field(default=10, gt=0)
    max_connection_lifetime_ms: int | None = Field(default=3_600_000, gt=0)

    model_config = ConfigDict(extra="ignore", frozen=True)

    @field_validator("url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in ALLOWED_SCHEMES or not parsed.netloc:
            raise ValueError("url must look like neo4j://host:7687 or bolt://host:7687")
        return value


def validate_config(data: Any) -> Neo4jConfig:
    if isinstance(data, Neo4jConfig):
        return data
    if not isinstance(data, Mapping):
        raise ValidationError("config must be a mapping", schema="Neo4jConfig", raw_data=data)
    try:
        return Neo4jConfig.model_validate(dict(data))
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Invalid Neo4j configuration: {exc.error_count()} error(s)",
            cause=exc,
            schema="Neo4jConfig",
            raw_data={k: v for k, v in data.items() if k != "password"},
        ) from exc


def create_config(url: str, user: str, password: str, **options: Any) -> Neo4jConfig:
    return validate_config({"url": url, "user": user, "password": password, **options})


def _deep_update(target: Dict[str, Any], updates: Mapping[str, Any]) -> Dict[str, Any]:
    for key, value in updates.items():
        if isinstance(value, Mapping) and isinstance(target.get(key), dict):
            _deep_update(target[key], value)
        else:
            target[key] = value
    return target


def _load_toml(path: Path | None) -> Dict[str, Any]:
    if path is None:
        return {}
    if not path.exists():
        raise FileNotFoundError(f"Config file not found at {path}")
    with path.open("rb") as f:
        return tomllib.load(f)


def _extract_prefixed(source: Mapping[str, str], *, prefix: str = ENV_PREFIX, delimiter: str = "__") -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    for key, value in source.items():
        if not key.startswith(prefix):
            continue
        parts = key.removeprefix(prefix).split(delimiter)
        target = data
        for part in parts[:-1]:
            target = target.setdefault(part.lower(), {})
        target[parts[-1].lower()] = value
    return data


def load_config(
    *,
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Neo4jConfig:
    """Build a :class:`Neo4jConfig` from layered sources.

    Precedence, lowest first: the ``[neo4j]`` table of ``config_path``,
    ``CYPHERGRAPH_NEO4J__<FIELD>`` environment variables, then ``overrides``.
    """
    merged: Dict[str, Any] = {}
    _deep_update(merged, _load_toml(config_path))
    _deep_update(merged, _extract_prefixed(os.environ if env is None else env))
    if overrides:
        _deep_update(merged, {"neo4j": dict(overrides)})
    return validate_config(merged.get("neo4j", {}))


__all__ = [
    "ALLOWED_SCHEMES",
    "ENV_PREFIX",
    "Neo4jConfig",
    "validate_config",
    "create_config",
    "load_config",
]
