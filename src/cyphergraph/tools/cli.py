from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Tuple, Union

from cyphergraph.config import load_config
from cyphergraph.dsl.ast import Query
from cyphergraph.dsl.compile import compile_query
from cyphergraph.dsl.normalize import normalize
from cyphergraph.dsl.serialize import from_data
from cyphergraph.errors import DomainError
from cyphergraph.observability.ast_hash import ast_hash
from cyphergraph.tools.plan_drift import (
    DEFAULT_DB_PATH,
    DEFAULT_THRESHOLD_PERCENT,
    detect_drift,
    format_drift_report,
    record_plans,
)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Cyphergraph utilities")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    compile_cmd = sub.add_parser("compile", help="Compile a JSON query AST to Cypher")
    compile_cmd.add_argument("source", help="Path to a JSON AST document, or '-' for stdin")
    compile_cmd.add_argument(
        "--no-normalize",
        action="store_true",
        help="Render the AST as given instead of its canonical form",
    )

    drift = sub.add_parser("plan-drift", help="Record and compare query plan digests")
    drift_sub = drift.add_subparsers(dest="drift_command", required=True)

    record = drift_sub.add_parser("record", help="Record plans for a version")
    record.add_argument("version", help="Version label, e.g. v1.2.0")
    record.add_argument(
        "--plans",
        type=Path,
        required=True,
        help="JSON list of {query, plan}; query is Cypher text or a JSON AST",
    )
    record.add_argument("--db", type=Path, default=DEFAULT_DB_PATH, help="Plan database file")

    diff = drift_sub.add_parser("diff", help="Compare plans of two versions")
    diff.add_argument("current", help="Current version label")
    diff.add_argument("previous", help="Previous version label")
    diff.add_argument(
        "--threshold",
        type=float,
        default=DEFAULT_THRESHOLD_PERCENT,
        help="Allowed share of changed plans in percent (default: 10)",
    )
    diff.add_argument("--db", type=Path, default=DEFAULT_DB_PATH, help="Plan database file")

    inv = sub.add_parser("invariants", help="Run the example data invariants against a database")
    inv.add_argument("--config", type=Path, default=None, help="TOML file with a [neo4j] table")
    inv.add_argument("--url", default=None)
    inv.add_argument("--user", default=None)
    inv.add_argument("--password", default=None)
    inv.add_argument("--database", default=None)

    return parser.parse_args(argv)


def _read_json(source: str) -> Any:
    if source == "-":
        return json.load(sys.stdin)
    return json.loads(Path(source).read_text(encoding="utf-8"))


def _load_query(data: Any) -> Query:
    query = from_data(data)
    if not isinstance(query, Query):
        raise ValueError(f"Expected a Query document, got {type(query).__name__}")
    return query


def _load_plan_entries(path: Path) -> List[Tuple[Union[Query, str], Any]]:
    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        raise ValueError("Plans file must contain a JSON list")
    entries: List[Tuple[Union[Query, str], Any]] = []
    for idx, item in enumerate(raw):
        if not isinstance(item, dict) or "query" not in item or "plan" not in item:
            raise ValueError(f"Plans entry #{idx} must be an object with 'query' and 'plan'")
        query = item["query"]
        entries.append((query if isinstance(query, str) else _load_query(query), item["plan"]))
    return entries


def _run_compile(args: argparse.Namespace) -> int:
    query = _load_query(_read_json(args.source))
    rendered = query if args.no_normalize else normalize(query)
    result = compile_query(rendered)
    payload = {"text": result.text, "parameters": result.parameters, "hash": ast_hash(query)}
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))
    return 0


def _run_invariants(args: argparse.Namespace) -> int:
    from cyphergraph.core.driver import make_driver
    from cyphergraph.core.session import make_session
    from cyphergraph.invariants import example_invariants, run_invariants_or_fail

    overrides = {
        key: value
        for key, value in {
            "url": args.url,
            "user": args.user,
            "password": args.password,
            "database": args.database,
        }.items()
        if value is not None
    }
    config = load_config(config_path=args.config, overrides=overrides)
    driver = make_driver(config)
    try:
        with make_session(driver, config.database) as session:
            failures = run_invariants_or_fail(session, example_invariants())
    finally:
        driver.close()
    if failures:
        for failure in failures:
            print(f"FAILED {failure.name}: {failure.message}", file=sys.stderr)
        return 1
    print("All invariant checks passed")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    try:
        if args.command == "compile":
            return _run_compile(args)
        if args.command == "plan-drift":
            if args.drift_command == "record":
                added = record_plans(_load_plan_entries(args.plans), args.version, args.db)
                print(f"Recorded {len(added)} query plans for version {args.version}")
                return 0
            if args.drift_command == "diff":
                report = detect_drift(args.current, args.previous, args.db, args.threshold)
                print(format_drift_report(report))
                return 1 if report.drift_detected else 0
        if args.command == "invariants":
            return _run_invariants(args)
    except (ValueError, FileNotFoundError, DomainError) as exc:
        print(str(exc), file=sys.stderr)
        return 2
    raise SystemExit(f"Unknown command: {args.command}")


if __name__ == "__main__":
    sys.exit(main())
