"""
Month-close job.

After a month ends, recomputes its totals one last time and writes the
historical risk assessment for every row that does not have one yet.
Re-running the job for an already finalized month refreshes totals but
writes no risk fields.

Usage:
    # Close the month before today's month
    result = await run_month_close()

    # Close a specific month
    result = await run_month_close(month="2025-09")
"""

import logging
from datetime import date
from typing import Any, Dict, Optional

from churnguard.models import JobType
from churnguard.services.historical import finalize_month
from churnguard.services.months import is_closed_month, month_key, previous_month
from churnguard.services.rollup import refresh_monthly_metrics
from churnguard.jobs.slack_notify import send_run_notification


logger = logging.getLogger(__name__)


async def run_month_close(
    month: Optional[str] = None,
    as_of: Optional[date] = None,
    notify: bool = True,
    force_notify: bool = False
) -> Dict[str, Any]:
    """
    Refresh and finalize a closed month.

    Args:
        month: Month key (YYYY-MM) to close (default: the month before
            ``as_of``).
        as_of: Reference date (default: today).
        notify: Post a Slack summary after a successful run.
        force_notify: Re-send the Slack summary even if already sent.

    Returns:
        Dict with:
        - success: True if the month was refreshed and finalized
        - month: Month closed
        - refresh: MonthRefreshResult as a dict
        - result: RiskRunResult as a dict
        - notification: Slack notification result (if notify)
        - error: Error message (if failed)
    """
    as_of = as_of or date.today()
    month = month or previous_month(month_key(as_of))

    try:
        if not is_closed_month(month, as_of):
            return {
                'success': False,
                'error': f'{month} has not closed as of {as_of}',
                'month': month
            }
    except ValueError as e:
        return {
            'success': False,
            'error': str(e),
            'month': month
        }

    logger.info(f"Starting month close for {month}")

    try:
        refresh = await refresh_monthly_metrics(month)
        result = await finalize_month(month, as_of=as_of)
    except Exception as e:
        logger.exception(f"Month close failed for {month}")
        return {
            'success': False,
            'error': str(e),
            'month': month
        }

    response: Dict[str, Any] = {
        'success': True,
        'month': month,
        'refresh': refresh.model_dump(),
        'result': result.model_dump(),
    }

    if notify:
        response['notification'] = await send_run_notification(
            JobType.MONTH_CLOSE, as_of, result, force=force_notify
        )

    return response


__all__ = ['run_month_close']
