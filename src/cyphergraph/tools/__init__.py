from __future__ import annotations

from cyphergraph.tools.plan_drift import (
    DriftReport,
    PlanDatabase,
    PlanRecord,
    detect_drift,
    format_drift_report,
    plan_digest,
    record_plans,
)

__all__ = [
    "DriftReport",
    "PlanDatabase",
    "PlanRecord",
    "detect_drift",
    "format_drift_report",
    "plan_digest",
    "record_plans",
]
