"""
Daily trending job.

Refreshes the current month's totals and trending risk for every eligible
account, then optionally posts a Slack summary. Meant to run once a day after
the daily facts have been loaded.

Usage:
    result = await run_daily_trending()
    result = await run_daily_trending(as_of=date(2025, 10, 14), notify=False)
"""

import logging
from datetime import date
from typing import Any, Dict, Optional

from churnguard.models import JobType
from churnguard.services.trending import run_trending_for_month
from churnguard.jobs.slack_notify import send_run_notification


logger = logging.getLogger(__name__)


async def run_daily_trending(
    as_of: Optional[date] = None,
    notify: bool = True,
    force_notify: bool = False
) -> Dict[str, Any]:
    """
    Run the trending assessment for the month containing ``as_of``.

    Args:
        as_of: Assessment date (default: today).
        notify: Post a Slack summary after a successful run.
        force_notify: Re-send the Slack summary even if already sent today.

    Returns:
        Dict with:
        - success: True if the run completed
        - month: Month assessed
        - result: RiskRunResult as a dict (if successful)
        - notification: Slack notification result (if notify)
        - error: Error message (if failed)
    """
    as_of = as_of or date.today()
    logger.info(f"Starting daily trending run as of {as_of}")

    try:
        result = await run_trending_for_month(as_of)
    except Exception as e:
        logger.exception(f"Daily trending run failed as of {as_of}")
        return {
            'success': False,
            'error': str(e),
            'date': str(as_of)
        }

    response: Dict[str, Any] = {
        'success': True,
        'date': str(as_of),
        'month': result.month,
        'result': result.model_dump(),
    }

    if notify:
        response['notification'] = await send_run_notification(
            JobType.DAILY_TRENDING, as_of, result, force=force_notify
        )

    return response


__all__ = ['run_daily_trending']
