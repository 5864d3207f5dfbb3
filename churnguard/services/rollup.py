"""
Monthly aggregation service for the ChurnGuard risk engine.

This module rolls per-day usage facts up into per-account-per-month totals
in monthly_metrics, the input of the flag evaluator.

Key Functions:
- aggregate_month: Aggregate one account's daily facts for a month
- aggregate_daily_metrics: Aggregate a batch of daily facts for a month
- fetch_accounts / fetch_daily_metrics / fetch_monthly_metrics: Source reads
- persist_monthly_totals: Upsert totals (risk fields untouched) and remove
  rows of accounts that are no longer eligible
- refresh_monthly_metrics: Main entry point; full recomputation of one month

Aggregation Rules:
- total_spend, total_texts_delivered, total_coupons_redeemed: sums
- avg_active_subs_cnt: mean over days that report a subscriber count,
  rounded half-up to a whole subscriber (0 when no day reports one)
- days_with_activity: count of distinct dates with a daily row
- An eligible account with no daily rows gets an all-zero row

Idempotency:
- Every invocation recomputes the month from scratch
- Same inputs produce the same rows
- A row carrying a finalized historical assessment keeps its risk fields
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from churnguard.core.database import get_db_pool
from churnguard.models.schemas import (
    Account,
    DailyMetricRecord,
    MonthlyMetricRecord,
    MonthRefreshResult,
)
from churnguard.services.eligibility import filter_eligible_accounts
from churnguard.services.months import first_day, last_day, month_label
from churnguard.sql.monthly_queries import (
    get_accounts_query,
    get_daily_metrics_range_query,
    get_monthly_metrics_query,
    get_monthly_totals_upsert_query,
    get_remove_ineligible_rows_query,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class MonthSources:
    """
    Everything read from the database for one month refresh.

    All reads complete before any write so a failed run can be re-run from
    scratch.

    Attributes:
        month: Month key (YYYY-MM).
        accounts: Full account roster.
        daily: Daily facts inside the month window.
    """
    month: str
    accounts: List[Account] = field(default_factory=list)
    daily: List[DailyMetricRecord] = field(default_factory=list)


# =============================================================================
# Pure Aggregation
# =============================================================================


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves away from zero.

    Python's round() uses banker's rounding; monthly averages must match
    PostgreSQL ROUND() instead.
    """
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def aggregate_month(
    account_id: str,
    month: str,
    records: Iterable[DailyMetricRecord]
) -> MonthlyMetricRecord:
    """
    Aggregate one account's daily facts into a monthly totals record.

    Records for other accounts or dates outside the month are ignored.

    Args:
        account_id: Account to aggregate.
        month: Month key (YYYY-MM).
        records: Daily fact records.

    Returns:
        MonthlyMetricRecord: Totals with risk fields unset.

    Example:
        >>> rows = [
        ...     DailyMetricRecord(account_id="A1", date=date(2025, 9, 1),
        ...                       coupons_redeemed=3, active_subs_cnt=400),
        ...     DailyMetricRecord(account_id="A1", date=date(2025, 9, 2),
        ...                       coupons_redeemed=2, active_subs_cnt=401),
        ... ]
        >>> rec = aggregate_month("A1", "2025-09", rows)
        >>> rec.total_coupons_redeemed, rec.avg_active_subs_cnt
        (5, 401)
    """
    start, end = first_day(month), last_day(month)

    total_spend = 0.0
    total_texts = 0
    total_redemptions = 0
    subs_values: List[int] = []
    dates = set()

    for record in records:
        if record.account_id != account_id or not start <= record.date <= end:
            continue
        total_spend += record.total_spend
        total_texts += record.total_texts_delivered
        total_redemptions += record.coupons_redeemed
        if record.active_subs_cnt is not None:
            subs_values.append(record.active_subs_cnt)
        dates.add(record.date)

    avg_subs = round_half_up(sum(subs_values) / len(subs_values)) if subs_values else 0

    return MonthlyMetricRecord(
        account_id=account_id,
        month=month,
        month_label=month_label(month),
        total_spend=round(total_spend, 2),
        total_texts_delivered=total_texts,
        total_coupons_redeemed=total_redemptions,
        avg_active_subs_cnt=avg_subs,
        days_with_activity=len(dates),
    )


def aggregate_daily_metrics(
    records: Iterable[DailyMetricRecord],
    month: str,
    account_ids: Optional[Sequence[str]] = None
) -> Dict[str, MonthlyMetricRecord]:
    """
    Aggregate a batch of daily facts into monthly records keyed by account.

    Args:
        records: Daily fact records, any accounts.
        month: Month key (YYYY-MM).
        account_ids: Accounts to produce rows for. When given, every listed
            account gets a row (all zeros if it has no facts) and other
            accounts are dropped. When None, one row per account seen.

    Returns:
        Dict[str, MonthlyMetricRecord]: Monthly records by account_id.
    """
    by_account: Dict[str, List[DailyMetricRecord]] = defaultdict(list)
    for record in records:
        by_account[record.account_id].append(record)

    targets = list(account_ids) if account_ids is not None else sorted(by_account)

    return {
        account_id: aggregate_month(account_id, month, by_account.get(account_id, []))
        for account_id in targets
    }


# =============================================================================
# Source Reads
# =============================================================================


async def fetch_accounts() -> List[Account]:
    """
    Read the full account roster.

    Raises:
        asyncpg.PostgresError: If the query fails.
    """
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        rows = await conn.fetch(get_accounts_query())

    return [Account(**dict(row)) for row in rows]


async def fetch_daily_metrics(start: date, end: date) -> List[DailyMetricRecord]:
    """
    Read daily facts in an inclusive date range.

    Raises:
        asyncpg.PostgresError: If the query fails.
    """
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        rows = await conn.fetch(get_daily_metrics_range_query(), start, end)

    return [DailyMetricRecord(**dict(row)) for row in rows]


async def fetch_monthly_metrics(month: str) -> Dict[str, MonthlyMetricRecord]:
    """
    Read every monthly_metrics row for a month, keyed by account_id.

    Raises:
        asyncpg.PostgresError: If the query fails.
    """
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        rows = await conn.fetch(get_monthly_metrics_query(), month)

    return {row['account_id']: MonthlyMetricRecord(**dict(row)) for row in rows}


async def load_month_sources(month: str, through: Optional[date] = None) -> MonthSources:
    """
    Read the roster and the month's daily facts.

    Args:
        month: Month key (YYYY-MM).
        through: Last date to read (default: last day of the month).
    """
    start, end = first_day(month), through or last_day(month)
    accounts = await fetch_accounts()
    daily = await fetch_daily_metrics(start, end)
    return MonthSources(month=month, accounts=accounts, daily=daily)


# =============================================================================
# Persistence
# =============================================================================


async def persist_monthly_totals(
    month: str,
    records: List[MonthlyMetricRecord],
    eligible_ids: List[str]
) -> Tuple[int, int]:
    """
    Upsert monthly totals and remove stale rows for the month.

    Each account row is written in its own transaction. Risk fields are never
    written here, so finalized assessments survive a refresh. Rows of
    accounts outside ``eligible_ids`` are deleted unless they carry a
    historical assessment.

    Args:
        month: Month key (YYYY-MM).
        records: Monthly totals to write.
        eligible_ids: Account ids eligible for the month.

    Returns:
        Tuple[int, int]: (rows written, rows removed).

    Raises:
        asyncpg.PostgresError: If a write fails.
    """
    pool = await get_db_pool()
    upsert_query = get_monthly_totals_upsert_query()
    rows_written = 0

    async with pool.acquire() as conn:
        for record in records:
            async with conn.transaction():
                await conn.execute(
                    upsert_query,
                    record.account_id,
                    record.month,
                    record.month_label,
                    record.total_spend,
                    record.total_texts_delivered,
                    record.total_coupons_redeemed,
                    record.avg_active_subs_cnt,
                    record.days_with_activity,
                )
            rows_written += 1

        async with conn.transaction():
            status = await conn.execute(
                get_remove_ineligible_rows_query(), month, eligible_ids
            )

    return rows_written, _affected_rows(status)


def _affected_rows(status: Optional[str]) -> int:
    # asyncpg returns command tags such as "DELETE 3"
    if not status:
        return 0
    try:
        return int(str(status).rsplit(" ", 1)[-1])
    except ValueError:
        return 0


# =============================================================================
# Main Entry Point
# =============================================================================


async def refresh_monthly_metrics(month: str) -> MonthRefreshResult:
    """
    Recompute and persist monthly totals for every eligible account.

    Args:
        month: Month key (YYYY-MM).

    Returns:
        MonthRefreshResult: Counts of accounts considered, eligible, written
        and removed.

    Raises:
        ValueError: If the month key is malformed.
        asyncpg.PostgresError: If reading sources or writing rows fails.
    """
    sources = await load_month_sources(month)

    eligible = filter_eligible_accounts(sources.accounts, month)
    eligible_ids = [account.account_id for account in eligible]
    totals = aggregate_daily_metrics(sources.daily, month, eligible_ids)

    rows_written, rows_removed = await persist_monthly_totals(
        month, list(totals.values()), eligible_ids
    )

    logger.info(
        f"Refreshed {month}: {rows_written} rows written, {rows_removed} stale rows removed"
    )

    return MonthRefreshResult(
        month=month,
        accounts_considered=len(sources.accounts),
        eligible_accounts=len(eligible),
        rows_written=rows_written,
        rows_removed=rows_removed,
    )


__all__ = [
    'MonthSources',
    'round_half_up',
    'aggregate_month',
    'aggregate_daily_metrics',
    'fetch_accounts',
    'fetch_daily_metrics',
    'fetch_monthly_metrics',
    'load_month_sources',
    'persist_monthly_totals',
    'refresh_monthly_metrics',
]
