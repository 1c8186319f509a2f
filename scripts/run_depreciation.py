#!/usr/bin/env python3
"""
Run monthly depreciation for a tenant (the hook a periodic job calls).

Usage:
    python3 scripts/run_depreciation.py --tenant <uuid> [options]

Examples:
    # Post the current month for every eligible asset of a tenant
    python3 scripts/run_depreciation.py --tenant 6f1c...

    # Re-run a specific month (already-posted assets skip)
    python3 scripts/run_depreciation.py --tenant 6f1c... --as-of 2024-03-31

    # One asset, recorded as a manual run
    python3 scripts/run_depreciation.py --tenant 6f1c... --asset 91ab... --manual

    # Seed the default tax categories for a tenant
    python3 scripts/run_depreciation.py --tenant 6f1c... --seed-categories

    # Tenant-specific settings from a YAML file
    python3 scripts/run_depreciation.py --tenant 6f1c... --config depreciation.yaml

Exit status is 1 when any asset failed, 0 otherwise (skips are not failures).
"""

from __future__ import annotations

import argparse
import sys
from datetime import date
from pathlib import Path
from uuid import UUID


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    from asset_depreciation.config import get_database_url

    parser = argparse.ArgumentParser(
        description="Run straight-line depreciation for a tenant or a single asset.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--tenant",
        required=True,
        type=UUID,
        help="Tenant UUID.",
    )
    parser.add_argument(
        "--asset",
        type=UUID,
        default=None,
        help="Run a single asset instead of the whole tenant.",
    )
    parser.add_argument(
        "--as-of",
        type=lambda s: date.fromisoformat(s),
        default=None,
        help="Any date in the target month (YYYY-MM-DD). Default: today.",
    )
    parser.add_argument(
        "--manual",
        action="store_true",
        help="Record ledger rows as MANUAL instead of SCHEDULED.",
    )
    parser.add_argument(
        "--actor-id",
        type=UUID,
        default=None,
        help="Actor UUID recorded on ledger rows (default: none, scheduled run).",
    )
    parser.add_argument(
        "--seed-categories",
        action="store_true",
        help="Create any missing default tax categories, then exit.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML file with depreciation settings (default: built-in constants).",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables before running.",
    )
    parser.add_argument(
        "--db-url",
        default=get_database_url(),
        help="Database URL (default: DATABASE_URL env or local SQLite file).",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    # Lazy imports so we fail fast on args first
    from asset_kernel.db.engine import create_tables, init_engine_from_url, session_scope
    from asset_depreciation.categories import CategoryService
    from asset_depreciation.config import DepreciationConfig
    from asset_depreciation.models import CalculationType
    from asset_depreciation.service import DepreciationService

    init_engine_from_url(args.db_url)
    if args.create_tables:
        create_tables()

    if args.seed_categories:
        with session_scope() as session:
            results = CategoryService(session).seed_default_categories(
                args.tenant, actor_id=args.actor_id,
            )
        for seeded in results:
            print(f"  {seeded.code:<12} {seeded.status}")
        return 0

    config = (
        DepreciationConfig.from_yaml(args.config) if args.config is not None
        else DepreciationConfig.with_defaults()
    )
    calculation_type = CalculationType.MANUAL if args.manual else CalculationType.SCHEDULED

    with session_scope() as session:
        service = DepreciationService(session, config=config)
        if args.asset is not None:
            results = [
                service.run_for_asset(
                    args.asset,
                    args.tenant,
                    calculation_type=calculation_type,
                    actor_id=args.actor_id,
                    as_of=args.as_of,
                )
            ]
        else:
            summary = service.run_for_tenant(
                args.tenant,
                as_of=args.as_of,
                calculation_type=calculation_type,
                actor_id=args.actor_id,
            )
            results = list(summary.results)
            print(
                f"Batch {summary.as_of.isoformat()}: total={summary.total} "
                f"processed={summary.processed} skipped={summary.skipped} "
                f"failed={summary.failed}"
            )

    failed = 0
    for result in results:
        if result.is_success:
            print(f"  POSTED   {result.asset_id}  {result.period_end}  {result.amount}")
        elif result.is_skipped:
            print(f"  SKIPPED  {result.asset_id}  {result.reason}")
        else:
            failed += 1
            print(
                f"  FAILED   {result.asset_id}  [{result.error_code}] {result.reason}",
                file=sys.stderr,
            )

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
