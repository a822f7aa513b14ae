import json
from datetime import datetime, timezone

from cyphergraph.cypher.query_builder import match_adults
from cyphergraph.dsl import ast as q
from cyphergraph.observability.ast_hash import ast_hash
from cyphergraph.tools.plan_drift import (
    DriftReport,
    PlanChange,
    detect_drift,
    format_drift_report,
    load_database,
    plan_digest,
    query_key,
    record_plans,
)

NOW = datetime(2024, 5, 1, tzinfo=timezone.utc)
ALL_NODES = "MATCH (n) RETURN n"


def _record_two_versions(db_path, *, changed_plan):
    record_plans(
        [(match_adults(18), {"op": "NodeByLabelScan"}), (ALL_NODES, {"op": "AllNodesScan"})],
        "v1",
        db_path,
        now=NOW,
    )
    record_plans(
        [(match_adults(18), {"op": "NodeByLabelScan"}), (ALL_NODES, changed_plan)],
        "v2",
        db_path,
        now=NOW,
    )


def test_plan_digest_ignores_key_order():
    assert plan_digest({"a": 1, "b": [1, 2]}) == plan_digest({"b": [1, 2], "a": 1})
    assert plan_digest({"a": 1}) != plan_digest({"a": 2})


def test_query_key_for_ast_and_text():
    query = match_adults(18)

    query_hash, text = query_key(query)
    assert query_hash == ast_hash(query)
    assert text.startswith("MATCH (person:Person)")

    text_hash, raw = query_key(ALL_NODES)
    assert text_hash.startswith("text-")
    assert raw == ALL_NODES


def test_record_plans_writes_aliased_json(tmp_path):
    db_path = tmp_path / "plans" / "query-plans.json"

    added = record_plans([(ALL_NODES, {"op": "AllNodesScan"})], "v1", db_path, now=NOW)

    payload = json.loads(db_path.read_text(encoding="utf-8"))
    assert len(added) == 1
    assert payload["records"][0]["cypher"] == ALL_NODES
    assert payload["records"][0]["queryHash"] == added[0].query_hash
    assert payload["records"][0]["planDigest"] == plan_digest({"op": "AllNodesScan"})
    assert payload["records"][0]["timestamp"] == "2024-05-01T00:00:00+00:00"
    assert load_database(db_path).records == added


def test_detect_drift_over_threshold(tmp_path):
    db_path = tmp_path / "query-plans.json"
    _record_two_versions(db_path, changed_plan={"op": "NodeIndexSeek"})

    report = detect_drift("v2", "v1", db_path, threshold_percent=10)

    assert report.total == 2
    assert len(report.drifts) == 1
    assert report.drifts[0].query == ALL_NODES
    assert report.drift_percent == 50
    assert report.drift_detected
    assert "DRIFT DETECTED: 50.0% exceeds threshold of 10%" in format_drift_report(report)


def test_detect_drift_within_threshold(tmp_path):
    db_path = tmp_path / "query-plans.json"
    _record_two_versions(db_path, changed_plan={"op": "NodeIndexSeek"})

    report = detect_drift("v2", "v1", db_path, threshold_percent=50)

    assert not report.drift_detected
    assert "Drift within acceptable range (50.0% <= 50%)" in format_drift_report(report)


def test_equivalent_queries_share_records(tmp_path):
    db_path = tmp_path / "query-plans.json"
    a = q.eq(q.prop("p", "name"), q.literal("Ann"))
    b = q.gte(q.prop("p", "age"), q.literal(18))
    v1 = q.query([q.match(q.node("p")), q.where(q.and_(a, b)), q.return_(["p"])])
    v2 = q.query([q.return_(["p"]), q.where(q.and_(b, a)), q.match(q.node("p"))])

    record_plans([(v1, {"op": "Filter"})], "v1", db_path, now=NOW)
    record_plans([(v2, {"op": "Filter"})], "v2", db_path, now=NOW)
    report = detect_drift("v2", "v1", db_path)

    assert report.total == 1
    assert report.drifts == []


def test_latest_record_per_version_wins(tmp_path):
    db_path = tmp_path / "query-plans.json"
    record_plans([(ALL_NODES, {"op": "AllNodesScan"})], "v1", db_path, now=NOW)
    record_plans([(ALL_NODES, {"op": "Old"})], "v2", db_path, now=NOW)
    record_plans([(ALL_NODES, {"op": "AllNodesScan"})], "v2", db_path, now=NOW)

    report = detect_drift("v2", "v1", db_path)

    assert report.total == 1
    assert report.drifts == []


def test_missing_database_and_versions(tmp_path):
    db_path = tmp_path / "query-plans.json"

    missing_db = detect_drift("v2", "v1", db_path)
    assert missing_db.note.startswith("No plan database found")
    assert format_drift_report(missing_db) == missing_db.note
    assert not missing_db.drift_detected

    record_plans([(ALL_NODES, {"op": "AllNodesScan"})], "v1", db_path, now=NOW)
    assert detect_drift("v2", "v1", db_path).note == "No plans found for current version v2"
    assert detect_drift("v1", "v0", db_path).note == "No plans found for previous version v0"


def test_report_truncates_long_lists():
    drifts = [PlanChange(f"MATCH (n{i}) RETURN n{i}", "aaaaaaaa", "bbbbbbbb") for i in range(7)]
    report = DriftReport("v2", "v1", 10.0, total=7, drifts=drifts)

    text = format_drift_report(report, max_items=5)

    assert "  ... and 2 more" in text
    assert "aaaaaaaa → bbbbbbbb" in text
