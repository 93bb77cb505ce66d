#!/usr/bin/env python3
"""
Scotch — Match Reconciliation CLI

Checks that every reciprocal pair of likes has exactly one match and that no
match outlives its likes.  A pair can drift out of that state when a match
write fails after its like was committed.

  check   — Report missing and orphaned matches (exit 1 if any).
  repair  — Create the missing matches and delete the orphans.

Usage examples
--------------
  python scripts/reconcile_matches.py check
  python scripts/reconcile_matches.py check --json
  python scripts/reconcile_matches.py repair
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

# Ensure the project root is importable
sys.path.insert(0, ".")

from app.database import async_session_factory, engine
from app.services.relationship_service import ConsistencyReport, RelationshipService
from app.services.relationship_store import RelationshipStore


def _print_report(report: ConsistencyReport, as_json: bool, title: str) -> None:
    if as_json:
        print(json.dumps({
            "missing_matches": report.missing_matches,
            "orphan_matches": report.orphan_matches,
        }, indent=2))
        return

    print(f"\n{'=' * 60}")
    print(f"  {title}")
    print(f"{'=' * 60}")
    print(f"  Missing matches:  {len(report.missing_matches)}")
    for user_1, user_2 in report.missing_matches:
        print(f"    {user_1} <-> {user_2}")
    print(f"  Orphan matches:   {len(report.orphan_matches)}")
    for user_1, user_2 in report.orphan_matches:
        print(f"    {user_1} <-> {user_2}")
    print()


# ──────────────────────────────────────────────────────────────────────────────
# Subcommands
# ──────────────────────────────────────────────────────────────────────────────

async def cmd_check(args: argparse.Namespace) -> int:
    async with async_session_factory() as session:
        service = RelationshipService(RelationshipStore(session))
        report = await service.audit()

    _print_report(report, args.json, "Match Consistency Check")
    return 0 if report.is_consistent else 1


async def cmd_repair(args: argparse.Namespace) -> int:
    async with async_session_factory() as session:
        service = RelationshipService(RelationshipStore(session))
        result = await service.repair()

    _print_report(result.report, args.json, "Match Consistency Repair")
    if not args.json:
        print(f"  Matches created:  {result.matches_created}")
        print(f"  Matches deleted:  {result.matches_deleted}\n")
    return 0


# ──────────────────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scotch match reconciliation")
    sub = parser.add_subparsers(dest="command", required=True)

    for name, handler, help_text in (
        ("check", cmd_check, "Report pairs whose match disagrees with their likes"),
        ("repair", cmd_repair, "Fix pairs whose match disagrees with their likes"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--json", action="store_true", help="Emit a JSON report")
        p.set_defaults(handler=handler)

    return parser


async def _run(args: argparse.Namespace) -> int:
    try:
        return await args.handler(args)
    finally:
        await engine.dispose()


def main() -> None:
    args = build_parser().parse_args()
    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
