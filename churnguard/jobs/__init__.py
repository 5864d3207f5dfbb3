"""
Scheduled jobs for ChurnGuard.

This module provides the entry points the scheduler (cron) calls:
- Daily trending assessment (daily_rollup.py)
- Month-close historical finalization (month_close.py)
- Slack run notifications (slack_notify.py)

Idempotency Guarantees:
-----------------------
- Trending: every run recomputes the current month from scratch.
- Month close: historical fields are written once; later runs only refresh
  totals.
- Slack notifications: never duplicated for the same (job_type, run_date)
  unless force=True.

Command line:
-------------
    python -m churnguard.jobs daily [--date YYYY-MM-DD] [--no-notify]
    python -m churnguard.jobs month-close [--month YYYY-MM] [--date YYYY-MM-DD] [--no-notify]
    python -m churnguard.jobs migrate
"""

from churnguard.jobs.slack_notify import (
    check_already_sent,
    mark_notification_sent,
    format_slack_message,
    send_run_notification,
)

from churnguard.jobs.daily_rollup import run_daily_trending

from churnguard.jobs.month_close import run_month_close


__all__ = [
    # Slack notifications
    'check_already_sent',
    'mark_notification_sent',
    'format_slack_message',
    'send_run_notification',
    # Jobs
    'run_daily_trending',
    'run_month_close',
]
