"""
Historical risk finalizer for closed months.

Once a month has closed, each of its monthly_metrics rows that has no
historical assessment yet is evaluated with the full-month thresholds and the
prior month's full totals, and the result is written as
historical_risk_level / risk_reasons. The trending fields are cleared in the
same statement.

Finalization is write-once: the UPDATE is guarded by
``historical_risk_level IS NULL`` and the candidate rows are read with the
same condition, so re-running a finalized month writes nothing.
"""

import logging
from datetime import date
from typing import Dict, List, Optional, Tuple

from churnguard.core.config import Settings, get_settings
from churnguard.core.database import get_db_pool
from churnguard.models.schemas import (
    Account,
    MonthlyMetricRecord,
    MonthlySnapshot,
    RiskResult,
    RiskRunResult,
)
from churnguard.services.classification import classify_risk, summarize_distribution
from churnguard.services.flags import (
    actual_thresholds,
    evaluate_flags,
    months_since_launch,
)
from churnguard.services.months import is_closed_month, previous_month
from churnguard.services.rollup import fetch_accounts, fetch_monthly_metrics
from churnguard.sql.risk_queries import (
    get_historical_update_query,
    get_unfinalized_rows_query,
)


logger = logging.getLogger(__name__)

PROGRESS_LOG_INTERVAL = 100


def calculate_historical_risk(
    current: MonthlyMetricRecord,
    account: Account,
    previous: Optional[MonthlyMetricRecord],
    settings: Optional[Settings] = None
) -> RiskResult:
    """
    Classify one closed account-month against full-month thresholds.

    Args:
        current: The month's totals.
        account: Account roster entry.
        previous: Prior month's totals, or None when there is no row.
        settings: Threshold source (default: get_settings()).

    Returns:
        RiskResult: Historical level and reasons in evaluation order.
    """
    settings = settings or get_settings()

    evaluation = evaluate_flags(
        MonthlySnapshot.from_record(current),
        account,
        MonthlySnapshot.from_record(previous) if previous is not None else None,
        months_since_launch(account.launched_at, current.month),
        actual_thresholds(settings),
    )
    return classify_risk(evaluation, settings.high_risk_flag_weight)


async def fetch_unfinalized_rows(month: str) -> List[MonthlyMetricRecord]:
    """
    Read rows of a month that have no historical assessment.

    Raises:
        asyncpg.PostgresError: If the query fails.
    """
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        rows = await conn.fetch(get_unfinalized_rows_query(), month)

    return [MonthlyMetricRecord(**dict(row)) for row in rows]


async def persist_historical_results(
    month: str,
    results: List[Tuple[str, RiskResult]]
) -> int:
    """
    Write historical results, one guarded UPDATE per account.

    Args:
        month: Month key (YYYY-MM).
        results: (account_id, RiskResult) pairs.

    Returns:
        int: Rows actually updated. Rows finalized by a concurrent run are
        left alone and not counted.
    """
    pool = await get_db_pool()
    update_query = get_historical_update_query()
    rows_written = 0

    async with pool.acquire() as conn:
        for index, (account_id, result) in enumerate(results, start=1):
            async with conn.transaction():
                status = await conn.execute(
                    update_query,
                    account_id,
                    month,
                    result.level.value,
                    result.reasons,
                )
            if status != "UPDATE 0":
                rows_written += 1
            if index % PROGRESS_LOG_INTERVAL == 0:
                logger.info(f"Finalizing {month}: {index}/{len(results)} accounts processed")

    return rows_written


async def finalize_month(
    month: str,
    as_of: Optional[date] = None,
    settings: Optional[Settings] = None
) -> RiskRunResult:
    """
    Write the historical assessment for every unfinalized row of a closed month.

    Args:
        month: Month key (YYYY-MM) to finalize.
        as_of: Reference date for deciding the month is closed (default: today).
        settings: Threshold source (default: get_settings()).

    Returns:
        RiskRunResult: Counts and the risk distribution of the run.

    Raises:
        ValueError: If ``month`` is the current month or later.
        asyncpg.PostgresError: If reading sources or writing rows fails.
    """
    as_of = as_of or date.today()
    if not is_closed_month(month, as_of):
        raise ValueError(
            f"Cannot finalize {month}: month has not closed as of {as_of.isoformat()}"
        )
    settings = settings or get_settings()

    # Reads
    candidates = await fetch_unfinalized_rows(month)
    if not candidates:
        logger.info(f"Finalizing {month}: nothing to finalize")
        return RiskRunResult(month=month, mode="historical")

    accounts: Dict[str, Account] = {a.account_id: a for a in await fetch_accounts()}
    previous_rows = await fetch_monthly_metrics(previous_month(month))

    # Compute
    results: List[Tuple[str, RiskResult]] = []
    skipped = 0
    for row in candidates:
        account = accounts.get(row.account_id)
        if account is None:
            logger.warning(f"Finalizing {month}: account {row.account_id} missing from roster")
            skipped += 1
            continue
        results.append((
            row.account_id,
            calculate_historical_risk(row, account, previous_rows.get(row.account_id), settings),
        ))

    # Writes
    rows_written = await persist_historical_results(month, results)
    skipped += len(results) - rows_written

    distribution = summarize_distribution(result for _, result in results)
    logger.info(
        f"Finalized {month}: {rows_written} rows, {skipped} skipped, distribution {distribution}"
    )

    return RiskRunResult(
        month=month,
        mode="historical",
        accounts_evaluated=len(results),
        rows_written=rows_written,
        skipped=skipped,
        distribution=distribution,
    )


__all__ = [
    'calculate_historical_risk',
    'fetch_unfinalized_rows',
    'persist_historical_results',
    'finalize_month',
]
