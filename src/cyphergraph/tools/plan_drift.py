"""Query plan drift detection.

Plan digests are recorded per software version in a JSON file and compared
between two versions; drift is flagged when the share of queries whose plan
digest changed exceeds a threshold.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from ..cypher.query_builder import build
from ..dsl.ast import Query
from ..observability.ast_hash import ast_hash, djb2_digest

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path("query-plans.json")
DEFAULT_THRESHOLD_PERCENT = 10.0
QUERY_PREVIEW_CHARS = 60


class PlanRecord(BaseModel):
    query_hash: str = Field(alias="queryHash")
    text: str = Field(alias="cypher")
    plan_digest: str = Field(alias="planDigest")
    timestamp: str
    version: str

    model_config = ConfigDict(populate_by_name=True)


class PlanDatabase(BaseModel):
    records: List[PlanRecord] = Field(default_factory=list)


@dataclass(frozen=True)
class PlanChange:
    query: str
    previous_digest: str
    current_digest: str

    @property
    def change(self) -> str:
        return f"{self.previous_digest} → {self.current_digest}"


@dataclass
class DriftReport:
    current_version: str
    previous_version: str
    threshold_percent: float
    total: int = 0
    drifts: List[PlanChange] = field(default_factory=list)
    note: Optional[str] = None

    @property
    def drift_percent(self) -> float:
        if not self.total:
            return 0.0
        return len(self.drifts) / self.total * 100

    @property
    def drift_detected(self) -> bool:
        return self.total > 0 and self.drift_percent > self.threshold_percent


def plan_digest(plan: Any) -> str:
    return djb2_digest(json.dumps(plan, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str))


def query_key(query: Union[Query, str]) -> Tuple[str, str]:
    """Return ``(query_hash, text)`` for an AST or raw query text."""
    if isinstance(query, Query):
        return ast_hash(query), build(query).text
    return f"text-{djb2_digest(query)}", query


def load_database(db_path: Path) -> PlanDatabase:
    if not db_path.exists():
        return PlanDatabase()
    return PlanDatabase.model_validate_json(db_path.read_text(encoding="utf-8"))


def save_database(db: PlanDatabase, db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    payload = db.model_dump(by_alias=True)
    db_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def record_plans(
    entries: Iterable[Tuple[Union[Query, str], Any]],
    version: str,
    db_path: Path = DEFAULT_DB_PATH,
    *,
    now: Optional[datetime] = None,
) -> List[PlanRecord]:
    """Append one record per ``(query, plan)`` pair for ``version``."""
    db = load_database(db_path)
    timestamp = (now or datetime.now(timezone.utc)).isoformat()
    added: List[PlanRecord] = []
    for query, plan in entries:
        query_hash, text = query_key(query)
        added.append(
            PlanRecord(
                query_hash=query_hash,
                text=text,
                plan_digest=plan_digest(plan),
                timestamp=timestamp,
                version=version,
            )
        )
    db.records.extend(added)
    save_database(db, db_path)
    logger.info("Recorded %d query plans for version %s", len(added), version)
    return added


def _latest_by_hash(records: Iterable[PlanRecord], version: str) -> Dict[str, PlanRecord]:
    latest: Dict[str, PlanRecord] = {}
    for record in records:
        if record.version == version:
            latest[record.query_hash] = record
    return latest


def detect_drift(
    current_version: str,
    previous_version: str,
    db_path: Path = DEFAULT_DB_PATH,
    threshold_percent: float = DEFAULT_THRESHOLD_PERCENT,
) -> DriftReport:
    report = DriftReport(current_version, previous_version, threshold_percent)
    if not db_path.exists():
        report.note = f"No plan database found at {db_path}"
        return report

    db = load_database(db_path)
    current = _latest_by_hash(db.records, current_version)
    previous = _latest_by_hash(db.records, previous_version)
    if not current:
        report.note = f"No plans found for current version {current_version}"
        return report
    if not previous:
        report.note = f"No plans found for previous version {previous_version}"
        return report

    report.total = len(current)
    for query_hash, record in current.items():
        before = previous.get(query_hash)
        if before is None:
            continue
        if record.plan_digest != before.plan_digest:
            report.drifts.append(
                PlanChange(
                    query=record.text[:QUERY_PREVIEW_CHARS],
                    previous_digest=before.plan_digest,
                    current_digest=record.plan_digest,
                )
            )
    return report


def format_drift_report(report: DriftReport, *, max_items: int = 5) -> str:
    if report.note:
        return report.note
    lines = [
        "Plan Drift Analysis",
        "===================",
        f"Current version: {report.current_version}",
        f"Previous version: {report.previous_version}",
        f"Total queries: {report.total}",
        f"Plans changed: {len(report.drifts)} ({report.drift_percent:.1f}%)",
        f"Threshold: {report.threshold_percent:g}%",
    ]
    if report.drifts:
        lines.append("Changed query plans:")
        for drift in report.drifts[:max_items]:
            lines.append(f"  - {drift.query}...")
            lines.append(f"    {drift.change}")
        if len(report.drifts) > max_items:
            lines.append(f"  ... and {len(report.drifts) - max_items} more")
    if report.drift_detected:
        lines.append(
            f"DRIFT DETECTED: {report.drift_percent:.1f}% exceeds threshold of {report.threshold_percent:g}%"
        )
    else:
        lines.append(f"Drift within acceptable range ({report.drift_percent:.1f}% <= {report.threshold_percent:g}%)")
    return "\n".join(lines)


__all__ = [
    "DEFAULT_DB_PATH",
    "DEFAULT_THRESHOLD_PERCENT",
    "PlanRecord",
    "PlanDatabase",
    "PlanChange",
    "DriftReport",
    "plan_digest",
    "query_key",
    "load_database",
    "save_database",
    "record_plans",
    "detect_drift",
    "format_drift_report",
]
