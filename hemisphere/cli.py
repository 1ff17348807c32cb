"""
Hemisphere CLI
==============

Command line access to the reference store and the graph builder.
Bypasses the API; reads the SQLite store directly.

COMMANDS:
- build:  Build and print the hemisphere graph for a workshop run
- seed:   Import a JSON fixture into the store
- stats:  Show store row counts

USAGE:
    python -m hemisphere.cli [--db PATH] COMMAND [ARGS]
"""

from __future__ import annotations
import argparse
import json
import sys
from dataclasses import replace
from typing import List, Optional

from .config import HemisphereConfig
from .contracts.base import HemisphereError, RunType
from .engine import HemisphereEngine, HemisphereReport
from .observability import configure_logging
from .storage import SqliteWorkshopStore


def _open_store(config: HemisphereConfig) -> SqliteWorkshopStore:
    return SqliteWorkshopStore(config.storage.db_path)


def _print_summary(report: HemisphereReport) -> None:
    graph = report.graph
    print(f"[*] Workshop {report.workshop_id} ({report.run_type.value})")
    print(f"    Sessions: {report.session_count}  Participants: {report.participant_count}")
    print(f"    Nodes: {len(graph.nodes)}  Edges: {len(graph.edges)}")
    print(f"    Core truth ({report.core_truth_source}): {graph.core_truth}")
    drivers = report.diagnostics.get('drivers', [])
    if drivers:
        print("    Drivers:")
        for d in drivers:
            node = graph.node(d['id'])
            label = node.label if node else d['id']
            print(f"      {d['rank'] + 1}. {label}  (score {d['score']:.2f}, degree {d['degree']:.2f})")
    skipped = report.diagnostics.get('skipped', [])
    if skipped:
        print(f"[!] Skipped {len(skipped)} malformed records")


def cmd_build(args, config: HemisphereConfig) -> int:
    if args.offline:
        config.narrative = replace(config.narrative, enabled=False)
    engine = HemisphereEngine(_open_store(config), config)
    report = engine.build(args.workshop_id, RunType.parse(args.run_type))
    if args.json:
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    else:
        _print_summary(report)
    return 0


def cmd_seed(args, config: HemisphereConfig) -> int:
    store = _open_store(config)
    counts = store.seed_from_file(args.fixture)
    print(f"[*] Seeded {store.db_path}: " + ", ".join(f"{k}={v}" for k, v in counts.items()))
    return 0


def cmd_stats(args, config: HemisphereConfig) -> int:
    stats = _open_store(config).get_stats()
    for key, value in stats.items():
        print(f"{key:<20} {value}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hemisphere", description="Hemisphere insight graph tools")
    parser.add_argument("--db", default=None, help="SQLite store path (default: HEMISPHERE_DB_PATH)")
    parser.add_argument("--log-level", default=None, help="Log level (default: HEMISPHERE_LOG_LEVEL)")

    subparsers = parser.add_subparsers(dest="command")

    build_parser_ = subparsers.add_parser("build", help="Build a hemisphere graph")
    build_parser_.add_argument("workshop_id", help="Workshop id")
    build_parser_.add_argument("--run-type", default="BASELINE", help="BASELINE or FOLLOWUP")
    build_parser_.add_argument("--json", action="store_true", help="Print the full response JSON")
    build_parser_.add_argument("--offline", action="store_true", help="Skip the narrative service")

    seed_parser = subparsers.add_parser("seed", help="Import a JSON fixture")
    seed_parser.add_argument("fixture", help="Path to fixture JSON")

    subparsers.add_parser("stats", help="Show store statistics")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = HemisphereConfig.from_env()
    if args.db:
        config.storage = replace(config.storage, db_path=args.db)
    configure_logging(args.log_level or config.log_level)

    commands = {'build': cmd_build, 'seed': cmd_seed, 'stats': cmd_stats}
    if args.command not in commands:
        parser.print_help()
        return 2

    try:
        return commands[args.command](args, config)
    except HemisphereError as e:
        print(f"[FAIL] {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
