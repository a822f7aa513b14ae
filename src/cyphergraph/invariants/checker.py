"""Data invariants checked against a live graph.

Each factory returns a check: a callable taking a session and returning an
:class:`InvariantResult`. Labels, relationship types and property names are
interpolated into the query text, so they are restricted to plain identifiers.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..cypher.service import run_query_raw

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
SAMPLE_SIZE = 5


@dataclass(frozen=True)
class InvariantResult:
    name: str
    passed: bool
    message: str
    details: Optional[Dict[str, Any]] = None


InvariantCheck = Callable[[Any], InvariantResult]


def _identifier(value: str) -> str:
    if not _IDENTIFIER.match(value):
        raise ValueError(f"Not a valid identifier: {value!r}")
    return value


def _first_record(session: Any, text: str) -> Any:
    records = run_query_raw(session, text, {})
    return records[0] if records else None


def _get(record: Any, key: str, default: Any) -> Any:
    if record is None:
        return default
    value = record[key]
    return default if value is None else value


def for_all_exists_unique(name: str, node_label: str, relationship_type: str, target_label: str) -> InvariantCheck:
    """Every ``node_label`` node has exactly one incoming ``relationship_type``
    from a ``target_label`` node."""
    label = _identifier(node_label)
    rel_type = _identifier(relationship_type)
    target = _identifier(target_label)
    text = (
        f"MATCH (n:{label}) "
        f"OPTIONAL MATCH (n)<-[r:{rel_type}]-(t:{target}) "
        "WITH n, count(r) AS relCount "
        "WHERE relCount <> 1 "
        f"RETURN count(n) AS violationCount, collect(n.id)[..{SAMPLE_SIZE}] AS sampleIds"
    )

    def check(session: Any) -> InvariantResult:
        record = _first_record(session, text)
        violations = int(_get(record, "violationCount", 0))
        if violations == 0:
            return InvariantResult(name, True, f"All {label} nodes have exactly one {rel_type} relationship")
        return InvariantResult(
            name,
            False,
            f"Found {violations} {label} nodes without exactly one {rel_type} relationship",
            {"sampleIds": list(_get(record, "sampleIds", []))},
        )

    return check


def all_nodes_have_property(name: str, node_label: str, property_name: str) -> InvariantCheck:
    label = _identifier(node_label)
    key = _identifier(property_name)
    text = (
        f"MATCH (n:{label}) WHERE n.{key} IS NULL "
        f"RETURN count(n) AS missingCount, collect(n.id)[..{SAMPLE_SIZE}] AS sampleIds"
    )

    def check(session: Any) -> InvariantResult:
        record = _first_record(session, text)
        missing = int(_get(record, "missingCount", 0))
        if missing == 0:
            return InvariantResult(name, True, f"All {label} nodes have required property {key}")
        return InvariantResult(
            name,
            False,
            f"Found {missing} {label} nodes missing property {key}",
            {"sampleIds": list(_get(record, "sampleIds", []))},
        )

    return check


def property_is_unique(name: str, node_label: str, property_name: str) -> InvariantCheck:
    label = _identifier(node_label)
    key = _identifier(property_name)
    text = (
        f"MATCH (n:{label}) WHERE n.{key} IS NOT NULL "
        f"WITH n.{key} AS value, count(*) AS cnt WHERE cnt > 1 "
        f"RETURN count(*) AS duplicateCount, collect(value)[..{SAMPLE_SIZE}] AS sampleValues"
    )

    def check(session: Any) -> InvariantResult:
        record = _first_record(session, text)
        duplicates = int(_get(record, "duplicateCount", 0))
        if duplicates == 0:
            return InvariantResult(name, True, f"Property {key} is unique across all {label} nodes")
        return InvariantResult(
            name,
            False,
            f"Found {duplicates} duplicate values for property {key}",
            {"sampleValues": list(_get(record, "sampleValues", []))},
        )

    return check


def check_invariants(session: Any, checks: Sequence[InvariantCheck]) -> List[InvariantResult]:
    return [check(session) for check in checks]


def run_invariants_or_fail(session: Any, checks: Sequence[InvariantCheck]) -> List[InvariantResult]:
    """Run ``checks`` and log the outcome; returns the failed results."""
    results = check_invariants(session, checks)
    failures = [result for result in results if not result.passed]
    if failures:
        for failure in failures:
            logger.error("Invariant failed: %s: %s details=%s", failure.name, failure.message, failure.details)
    else:
        logger.info("All %d invariant checks passed", len(results))
    return failures


def example_invariants() -> List[InvariantCheck]:
    return [
        for_all_exists_unique("Post has unique author", "Post", "AUTHORED", "Person"),
        all_nodes_have_property("Person has name", "Person", "name"),
        property_is_unique("Person ID is unique", "Person", "id"),
    ]


__all__ = [
    "InvariantResult",
    "InvariantCheck",
    "for_all_exists_unique",
    "all_nodes_have_property",
    "property_is_unique",
    "check_invariants",
    "run_invariants_or_fail",
    "example_invariants",
]
