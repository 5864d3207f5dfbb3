"""Command-line entry point for the ChurnGuard scheduled jobs."""

import argparse
import asyncio
import json
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from churnguard.core.database import close_db, get_db_pool
from churnguard.models import DatasetType
from churnguard.services.ingestion import ingest_dataset
from churnguard.services.months import parse_month
from churnguard.sql.schema import SCHEMA_STATEMENTS
from churnguard.jobs.daily_rollup import run_daily_trending
from churnguard.jobs.month_close import run_month_close


logger = logging.getLogger("churnguard.jobs")


def _month_arg(value: str) -> str:
    try:
        parse_month(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))
    return value


def _date_arg(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date {value!r}, expected YYYY-MM-DD")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m churnguard.jobs",
        description="Run ChurnGuard risk jobs"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    daily = subparsers.add_parser("daily", help="Refresh current-month totals and trending risk")
    daily.add_argument("--date", type=_date_arg, default=None, help="As-of date (default: today)")
    daily.add_argument("--no-notify", action="store_true", help="Skip the Slack notification")
    daily.add_argument("--force-notify", action="store_true", help="Re-send the Slack notification")

    close = subparsers.add_parser("month-close", help="Refresh and finalize a closed month")
    close.add_argument("--month", type=_month_arg, default=None, help="Month to close (default: previous month)")
    close.add_argument("--date", type=_date_arg, default=None, help="As-of date (default: today)")
    close.add_argument("--no-notify", action="store_true", help="Skip the Slack notification")
    close.add_argument("--force-notify", action="store_true", help="Re-send the Slack notification")

    ingest = subparsers.add_parser("ingest", help="Load a daily facts or account roster CSV")
    ingest.add_argument("dataset", choices=[d.value for d in DatasetType], help="Target dataset")
    ingest.add_argument("path", help="Path to the CSV file")

    subparsers.add_parser("migrate", help="Create tables and indexes if missing")

    return parser


async def _migrate() -> Dict[str, Any]:
    pool = await get_db_pool()
    async with pool.acquire() as conn:
        async with conn.transaction():
            for statement in SCHEMA_STATEMENTS:
                await conn.execute(statement)
    return {'success': True, 'statements': len(SCHEMA_STATEMENTS)}


async def _ingest(dataset: str, path: str) -> Dict[str, Any]:
    with open(path, "rb") as file:
        result = await ingest_dataset(DatasetType(dataset), file=file)
    return result.model_dump()


async def _run(args: argparse.Namespace) -> Dict[str, Any]:
    try:
        if args.command == "daily":
            return await run_daily_trending(
                as_of=args.date,
                notify=not args.no_notify,
                force_notify=args.force_notify,
            )
        if args.command == "month-close":
            return await run_month_close(
                month=args.month,
                as_of=args.date,
                notify=not args.no_notify,
                force_notify=args.force_notify,
            )
        if args.command == "ingest":
            return await _ingest(args.dataset, args.path)
        return await _migrate()
    finally:
        await close_db()


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    args = build_parser().parse_args(argv)

    result = asyncio.run(_run(args))
    print(json.dumps(result, indent=2, default=str))

    if not result.get('success'):
        logger.error(f"{args.command} failed: {result.get('error') or result.get('errors')}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
