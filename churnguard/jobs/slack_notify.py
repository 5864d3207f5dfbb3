"""
Slack run notification job for ChurnGuard.

Posts a summary of a trending or month-close run to Slack: which month was
assessed, how many accounts were evaluated, and the low / medium / high
distribution. It integrates with Slack using the WebhookClient from slack-sdk.

Idempotency:
- At most one notification per (job_type, run_date)
- Sends are recorded in the job_notification_state table
- force=True bypasses the check (the send is still recorded)

Environment Requirements:
- SLACK_WEBHOOK_URL: Slack incoming webhook URL
  Format: https://hooks.slack.com/services/xxx/yyy/zzz

Usage:
    result = await send_run_notification(
        JobType.DAILY_TRENDING, date.today(), run_result
    )

    # Re-send even if already sent today
    result = await send_run_notification(
        JobType.DAILY_TRENDING, date.today(), run_result, force=True
    )
"""

import logging
from datetime import datetime, date
from typing import Any, Dict, List

from slack_sdk.webhook import WebhookClient

from churnguard.core.config import get_settings
from churnguard.core.database import get_db_pool
from churnguard.models import JobType, RiskLevel, RiskRunResult


logger = logging.getLogger(__name__)

JOB_TITLES: Dict[JobType, str] = {
    JobType.DAILY_TRENDING: "Daily Trending Risk",
    JobType.MONTH_CLOSE: "Month-Close Historical Risk",
}

LEVEL_EMOJI: Dict[str, str] = {
    RiskLevel.LOW.value: ":large_green_circle:",
    RiskLevel.MEDIUM.value: ":large_yellow_circle:",
    RiskLevel.HIGH.value: ":red_circle:",
}


# =============================================================================
# Idempotency Functions
# =============================================================================

async def check_already_sent(job_type: JobType, run_date: date) -> bool:
    """
    Check whether a notification was already sent for (job_type, run_date).

    Args:
        job_type: Job that produced the run.
        run_date: Date the run was for.

    Returns:
        True if a notification has already been recorded.
    """
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            """
            SELECT run_date, sent_at
            FROM job_notification_state
            WHERE job_type = $1
              AND run_date = $2
            """,
            job_type.value,
            run_date
        )

        return row is not None


async def mark_notification_sent(job_type: JobType, run_date: date) -> None:
    """
    Record a successful notification for (job_type, run_date).

    Forced re-sends bump send_count instead of inserting a second row.
    """
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        await conn.execute(
            """
            INSERT INTO job_notification_state (job_type, run_date, sent_at, send_count)
            VALUES ($1, $2, $3, 1)
            ON CONFLICT (job_type, run_date)
            DO UPDATE SET
                sent_at = EXCLUDED.sent_at,
                send_count = job_notification_state.send_count + 1
            """,
            job_type.value,
            run_date,
            datetime.utcnow()
        )


# =============================================================================
# Message Formatting
# =============================================================================

def format_slack_message(
    job_type: JobType,
    run_date: date,
    result: RiskRunResult
) -> List[Dict[str, Any]]:
    """
    Format a run result into Slack Block Kit blocks.

    Args:
        job_type: Job that produced the run.
        run_date: Date the run was for.
        result: The run's result.

    Returns:
        List of Block Kit block dicts ready to send via WebhookClient.
    """
    title = JOB_TITLES.get(job_type, job_type.value)
    blocks: List[Dict[str, Any]] = [
        {
            "type": "header",
            "text": {
                "type": "plain_text",
                "text": f"ChurnGuard {title} - {run_date.strftime('%B %d, %Y')}",
                "emoji": True
            }
        },
        {"type": "divider"},
    ]

    total = result.accounts_evaluated
    distribution_parts = []
    for level in RiskLevel:
        count = result.distribution.get(level.value, 0)
        share = f" ({count / total:.0%})" if total else ""
        distribution_parts.append(
            f"{LEVEL_EMOJI[level.value]} {level.value.title()}: *{count:,}*{share}"
        )

    blocks.append({
        "type": "section",
        "text": {
            "type": "mrkdwn",
            "text": (
                f"*Month:* {result.month}  |  *Mode:* {result.mode}\n"
                f"Accounts evaluated: *{total:,}*  |  Rows written: *{result.rows_written:,}*"
            )
        }
    })
    blocks.append({
        "type": "section",
        "text": {
            "type": "mrkdwn",
            "text": "  |  ".join(distribution_parts)
        }
    })

    if result.skipped:
        blocks.append({
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": f":warning: {result.skipped:,} rows skipped"
            }
        })

    timestamp = datetime.utcnow().strftime('%Y-%m-%d %H:%M:%S UTC')
    blocks.append({
        "type": "context",
        "elements": [
            {
                "type": "mrkdwn",
                "text": f"Generated at {timestamp}"
            }
        ]
    })

    return blocks


# =============================================================================
# Main Entry Point
# =============================================================================

async def send_run_notification(
    job_type: JobType,
    run_date: date,
    result: RiskRunResult,
    force: bool = False
) -> Dict[str, Any]:
    """
    Send a Slack notification summarizing a risk run.

    Args:
        job_type: Job that produced the run.
        run_date: Date the run was for (idempotency key with job_type).
        result: The run's result.
        force: If True, send even if already sent for this key.

    Returns:
        Dict with:
        - success: True if sent or skipped appropriately
        - skipped: True if skipped due to idempotency
        - reason: Reason for skip (if skipped)
        - error: Error message (if failed)

    Raises:
        No exceptions are raised - all errors are captured in the return dict.
    """
    settings = get_settings()

    if not settings.slack_webhook_url:
        return {
            'success': False,
            'error': 'SLACK_WEBHOOK_URL not configured. Set this environment variable to enable run notifications.'
        }

    if not force:
        try:
            if await check_already_sent(job_type, run_date):
                return {
                    'success': True,
                    'skipped': True,
                    'reason': f'Notification already sent for {job_type.value} on {run_date}',
                    'date': str(run_date)
                }
        except Exception as e:
            # First deployment may not have the state table yet
            logger.warning(f"Could not check notification state: {e}")

    blocks = format_slack_message(job_type, run_date, result)

    try:
        client = WebhookClient(settings.slack_webhook_url)
        response = client.send(text=f"ChurnGuard {job_type.value} {result.month}", blocks=blocks)
    except Exception as e:
        logger.exception("Failed to send Slack notification")
        return {
            'success': False,
            'error': f'Failed to send Slack message: {str(e)}',
            'date': str(run_date)
        }

    if response.status_code != 200:
        return {
            'success': False,
            'error': f'Slack API returned status {response.status_code}: {response.body}',
            'date': str(run_date)
        }

    try:
        await mark_notification_sent(job_type, run_date)
    except Exception as e:
        # Message is already out; a retry may duplicate it
        logger.warning(f"Notification sent but state not recorded: {e}")

    return {
        'success': True,
        'date': str(run_date),
        'month': result.month,
        'accounts_evaluated': result.accounts_evaluated,
    }


__all__ = [
    'check_already_sent',
    'mark_notification_sent',
    'format_slack_message',
    'send_run_notification',
]
