"""
Trending risk calculator for the month in progress.

The trending assessment answers "if the month keeps going like this, where
does the account land?" It compares partial-month totals against thresholds
projected to the fraction of the month that has elapsed, and against the
prior month summed over the same span of days.

Month Progress:
    progress = (day_of_month - 1) / days_in_month

    Day 1 has progress 0: nothing has elapsed, so weighted-path accounts are
    reported low / ["No flags"]. Archived and frozen accounts still get their
    short-circuit result.

Projected Thresholds:
    Both redemption thresholds are scaled by progress. Subscriber thresholds
    and drop percentages stay at their full-month values.

Same-Day Comparison:
    The previous snapshot is the prior month's daily facts from day 1 through
    the same day of month (clamped to the prior month's last day). Accounts
    without any prior-month facts in that span have no previous snapshot and
    skip the drop flags.

Writes:
    Refreshed totals and trending_risk_level / trending_risk_reasons are
    written together in one upsert per account. Historical fields are never
    touched.
"""

import logging
from datetime import date
from typing import Dict, List, Optional

from churnguard.core.config import Settings, get_settings
from churnguard.core.database import get_db_pool
from churnguard.models.enums import EvaluationPath
from churnguard.models.schemas import (
    Account,
    DailyMetricRecord,
    MonthlyMetricRecord,
    MonthlySnapshot,
    RiskResult,
    RiskRunResult,
)
from churnguard.services.classification import (
    classify_risk,
    no_flags_result,
    summarize_distribution,
)
from churnguard.services.eligibility import filter_eligible_accounts
from churnguard.services.flags import (
    evaluate_flags,
    months_since_launch,
    projected_thresholds,
)
from churnguard.services.months import (
    days_in_month,
    first_day,
    month_key,
    previous_month,
    same_day_in_previous_month,
)
from churnguard.services.rollup import (
    aggregate_daily_metrics,
    fetch_daily_metrics,
    load_month_sources,
)
from churnguard.sql.monthly_queries import get_remove_ineligible_rows_query
from churnguard.sql.risk_queries import get_trending_upsert_query


logger = logging.getLogger(__name__)

PROGRESS_LOG_INTERVAL = 100


# =============================================================================
# Pure Calculations
# =============================================================================


def month_progress(as_of: date) -> float:
    """
    Fraction of the month elapsed before ``as_of``.

    Example:
        >>> month_progress(date(2025, 9, 10))
        0.3
    """
    return (as_of.day - 1) / days_in_month(month_key(as_of))


def calculate_trending_risk(
    current: MonthlySnapshot,
    account: Account,
    previous: Optional[MonthlySnapshot],
    as_of: date,
    settings: Optional[Settings] = None
) -> RiskResult:
    """
    Classify one account against projected thresholds.

    Args:
        current: Partial-month snapshot for the month containing ``as_of``.
        account: Account roster entry.
        previous: Same-day prior-month snapshot, or None.
        as_of: Date the assessment is made for.
        settings: Threshold source (default: get_settings()).

    Returns:
        RiskResult: Trending level and reasons in evaluation order.
    """
    settings = settings or get_settings()
    progress = month_progress(as_of)

    evaluation = evaluate_flags(
        current,
        account,
        previous,
        months_since_launch(account.launched_at, current.month),
        projected_thresholds(progress, settings),
    )

    if evaluation.path == EvaluationPath.WEIGHTED and progress <= 0:
        return no_flags_result()

    return classify_risk(evaluation, settings.high_risk_flag_weight)


def build_same_day_snapshots(
    prior_daily: List[DailyMetricRecord],
    month: str
) -> Dict[str, MonthlySnapshot]:
    """
    Sum prior-month daily facts per account into comparison snapshots.

    Only accounts with at least one prior-month row get a snapshot.

    Args:
        prior_daily: Prior-month daily facts already limited to the same-day
            window.
        month: Prior month key (YYYY-MM).
    """
    totals = aggregate_daily_metrics(prior_daily, month)
    return {
        account_id: MonthlySnapshot.from_record(record)
        for account_id, record in totals.items()
        if record.days_with_activity > 0
    }


# =============================================================================
# Persistence
# =============================================================================


async def persist_trending_results(
    month: str,
    rows: List[MonthlyMetricRecord],
    eligible_ids: List[str]
) -> int:
    """
    Write totals plus trending risk, one transaction per account.

    Also removes unassessed rows for accounts no longer eligible.

    Returns:
        int: Number of account rows written.
    """
    pool = await get_db_pool()
    upsert_query = get_trending_upsert_query()
    rows_written = 0

    async with pool.acquire() as conn:
        for row in rows:
            async with conn.transaction():
                await conn.execute(
                    upsert_query,
                    row.account_id,
                    row.month,
                    row.month_label,
                    row.total_spend,
                    row.total_texts_delivered,
                    row.total_coupons_redeemed,
                    row.avg_active_subs_cnt,
                    row.days_with_activity,
                    row.trending_risk_level.value,
                    row.trending_risk_reasons,
                )
            rows_written += 1
            if rows_written % PROGRESS_LOG_INTERVAL == 0:
                logger.info(f"Trending {month}: {rows_written}/{len(rows)} accounts written")

        async with conn.transaction():
            await conn.execute(get_remove_ineligible_rows_query(), month, eligible_ids)

    return rows_written


# =============================================================================
# Main Entry Point
# =============================================================================


async def run_trending_for_month(
    as_of: Optional[date] = None,
    settings: Optional[Settings] = None
) -> RiskRunResult:
    """
    Refresh the current month's totals and trending risk for every eligible
    account.

    Args:
        as_of: Assessment date (default: today). The month containing it is
            the month refreshed.
        settings: Threshold source (default: get_settings()).

    Returns:
        RiskRunResult: Counts and the risk distribution of the run.

    Raises:
        asyncpg.PostgresError: If reading sources or writing rows fails.
    """
    as_of = as_of or date.today()
    settings = settings or get_settings()
    month = month_key(as_of)
    prior = previous_month(month)

    # Reads
    sources = await load_month_sources(month, through=as_of)
    prior_daily = await fetch_daily_metrics(
        first_day(prior), same_day_in_previous_month(as_of)
    )

    eligible = filter_eligible_accounts(sources.accounts, month)
    eligible_ids = [account.account_id for account in eligible]
    current_totals = aggregate_daily_metrics(sources.daily, month, eligible_ids)
    previous_snapshots = build_same_day_snapshots(prior_daily, prior)

    logger.info(
        f"Trending {month} as of {as_of}: progress {month_progress(as_of):.3f}, "
        f"{len(eligible)} eligible accounts"
    )

    # Compute
    results: List[RiskResult] = []
    rows: List[MonthlyMetricRecord] = []
    for account in eligible:
        record = current_totals[account.account_id]
        result = calculate_trending_risk(
            MonthlySnapshot.from_record(record),
            account,
            previous_snapshots.get(account.account_id),
            as_of,
            settings,
        )
        results.append(result)
        rows.append(record.model_copy(update={
            'trending_risk_level': result.level,
            'trending_risk_reasons': result.reasons,
        }))

    # Writes
    rows_written = await persist_trending_results(month, rows, eligible_ids)

    distribution = summarize_distribution(results)
    logger.info(f"Trending {month} complete: {rows_written} rows, distribution {distribution}")

    return RiskRunResult(
        month=month,
        mode="trending",
        accounts_evaluated=len(results),
        rows_written=rows_written,
        distribution=distribution,
    )


__all__ = [
    'month_progress',
    'calculate_trending_risk',
    'build_same_day_snapshots',
    'persist_trending_results',
    'run_trending_for_month',
]
