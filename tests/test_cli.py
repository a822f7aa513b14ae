import json

from cyphergraph.dsl import ast as q
from cyphergraph.dsl.serialize import to_data
from cyphergraph.observability.ast_hash import ast_hash
from cyphergraph.tools.cli import main


def _write_query(tmp_path):
    query = q.query(
        [
            q.return_(["p"]),
            q.where(q.gte(q.prop("p", "age"), q.param("minAge"))),
            q.match(q.node("p", ["Person"])),
        ],
        {"minAge": 18},
    )
    path = tmp_path / "query.json"
    path.write_text(json.dumps(to_data(query)), encoding="utf-8")
    return query, path


def test_compile_prints_canonical_text_and_hash(tmp_path, capsys):
    query, path = _write_query(tmp_path)

    exit_code = main(["compile", str(path)])

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert payload == {
        "text": "MATCH (p:Person) WHERE p.age >= $minAge RETURN p",
        "parameters": {"minAge": 18},
        "hash": ast_hash(query),
    }


def test_compile_without_normalization_keeps_order(tmp_path, capsys):
    _, path = _write_query(tmp_path)

    assert main(["compile", "--no-normalize", str(path)]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["text"] == "RETURN p WHERE p.age >= $minAge MATCH (p:Person)"


def test_compile_rejects_unknown_kind(tmp_path, capsys):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"kind": "Merge"}), encoding="utf-8")

    assert main(["compile", str(path)]) == 2
    assert "Unknown AST kind" in capsys.readouterr().err


def test_compile_rejects_non_query_document(tmp_path, capsys):
    path = tmp_path / "expr.json"
    path.write_text(json.dumps(to_data(q.literal(1))), encoding="utf-8")

    assert main(["compile", str(path)]) == 2
    assert "Expected a Query document" in capsys.readouterr().err


def test_plan_drift_record_and_diff(tmp_path, capsys):
    db_path = tmp_path / "plans.json"
    v1 = tmp_path / "v1.json"
    v2 = tmp_path / "v2.json"
    query_ast = to_data(q.query([q.match(q.node("n", ["Person"])), q.return_(["n"])]))
    v1.write_text(
        json.dumps([{"query": "MATCH (n) RETURN n", "plan": {"op": "AllNodesScan"}}, {"query": query_ast, "plan": {"op": "Scan"}}]),
        encoding="utf-8",
    )
    v2.write_text(
        json.dumps([{"query": "MATCH (n) RETURN n", "plan": {"op": "AllNodesScan"}}, {"query": query_ast, "plan": {"op": "Seek"}}]),
        encoding="utf-8",
    )

    assert main(["plan-drift", "record", "v1", "--plans", str(v1), "--db", str(db_path)]) == 0
    assert main(["plan-drift", "record", "v2", "--plans", str(v2), "--db", str(db_path)]) == 0
    assert "Recorded 2 query plans for version v2" in capsys.readouterr().out

    assert main(["plan-drift", "diff", "v2", "v1", "--db", str(db_path)]) == 1
    assert "DRIFT DETECTED" in capsys.readouterr().out

    assert main(["plan-drift", "diff", "v2", "v1", "--threshold", "75", "--db", str(db_path)]) == 0
    assert "Drift within acceptable range" in capsys.readouterr().out


def test_plan_drift_record_validates_entries(tmp_path, capsys):
    plans = tmp_path / "plans.json"
    plans.write_text(json.dumps([{"query": "MATCH (n) RETURN n"}]), encoding="utf-8")

    assert main(["plan-drift", "record", "v1", "--plans", str(plans), "--db", str(tmp_path / "db.json")]) == 2
    assert "must be an object with 'query' and 'plan'" in capsys.readouterr().err


def test_missing_plans_file(tmp_path, capsys):
    missing = tmp_path / "missing.json"

    assert main(["plan-drift", "record", "v1", "--plans", str(missing), "--db", str(tmp_path / "db.json")]) == 2
    assert capsys.readouterr().err


def test_compile_rejects_misplaced_nodes(tmp_path, capsys):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"kind": "Query", "clauses": [{"kind": "Literal", "value": 1}]}), encoding="utf-8")

    assert main(["compile", str(path)]) == 2
    assert "Invalid Query.clauses" in capsys.readouterr().err


def test_compile_rejects_non_mapping_parameters(tmp_path, capsys):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"kind": "Query", "clauses": [], "parameters": [1, 2]}), encoding="utf-8")

    assert main(["compile", str(path)]) == 2
    assert "Invalid Query.parameters" in capsys.readouterr().err
