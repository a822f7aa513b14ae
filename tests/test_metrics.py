import logging
from datetime import datetime, timezone

import pytest

from cyphergraph.cypher.query_builder import match_adults
from cyphergraph.observability.ast_hash import ast_hash
from cyphergraph.observability.metrics import LatencyTracker, LoggingQueryLogger, create_query_metrics


def test_percentiles_use_nearest_rank():
    tracker = LatencyTracker()
    for value in range(1, 101):
        tracker.record(float(value))

    assert tracker.p50() == 50
    assert tracker.p95() == 95
    assert tracker.p99() == 99
    assert tracker.stats() == {"p50": 50, "p95": 95, "p99": 99, "count": 100}


def test_empty_tracker_reports_zero():
    tracker = LatencyTracker()

    assert tracker.p50() == 0
    assert tracker.stats()["count"] == 0


def test_tracker_keeps_most_recent_samples():
    tracker = LatencyTracker(capacity=3)
    for value in (1, 2, 3, 4, 5):
        tracker.record(value)

    assert len(tracker) == 3
    assert tracker.p50() == 4

    tracker.reset()
    assert len(tracker) == 0


def test_tracker_rejects_non_positive_capacity():
    with pytest.raises(ValueError):
        LatencyTracker(capacity=0)


def test_create_query_metrics():
    query = match_adults(18)
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    metrics = create_query_metrics(query, "MATCH ...", 12.5, retries=1, plan_digest="abcd1234", now=now)

    assert metrics.ast_hash == ast_hash(query)
    assert metrics.to_dict() == {
        "ast_hash": ast_hash(query),
        "text": "MATCH ...",
        "duration_ms": 12.5,
        "retries": 1,
        "timestamp": "2024-01-01T00:00:00+00:00",
        "plan_digest": "abcd1234",
    }


def test_logging_query_logger(caplog):
    metrics = create_query_metrics(match_adults(18), "MATCH ...", 3.0)
    query_logger = LoggingQueryLogger()

    with caplog.at_level(logging.INFO, logger="cyphergraph.observability.metrics"):
        query_logger.log(metrics)
        query_logger.log_error({"ast_hash": metrics.ast_hash}, RuntimeError("boom"))

    messages = [record.getMessage() for record in caplog.records]
    assert f"ast_hash={metrics.ast_hash}" in messages[0]
    assert "duration_ms=3.000" in messages[0]
    assert caplog.records[1].levelno == logging.ERROR
    assert "error=boom" in messages[1]
