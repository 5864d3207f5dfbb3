"""
Table definitions for the ChurnGuard PostgreSQL schema.

Statements are idempotent (IF NOT EXISTS) and are applied in order by
``python -m churnguard.jobs migrate``.
"""

from typing import List


SCHEMA_STATEMENTS: List[str] = [
    """
    CREATE TABLE IF NOT EXISTS accounts (
        account_id TEXT PRIMARY KEY,
        account_name TEXT,
        status TEXT NOT NULL DEFAULT 'ACTIVE',
        launched_at DATE,
        archived_at DATE,
        earliest_unit_archived_at DATE,
        hubspot_id TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS daily_metrics (
        account_id TEXT NOT NULL REFERENCES accounts (account_id),
        date DATE NOT NULL,
        total_spend NUMERIC(14, 2) NOT NULL DEFAULT 0,
        total_texts_delivered INTEGER NOT NULL DEFAULT 0,
        coupons_redeemed INTEGER NOT NULL DEFAULT 0,
        active_subs_cnt INTEGER,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (account_id, date)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS monthly_metrics (
        account_id TEXT NOT NULL REFERENCES accounts (account_id),
        month TEXT NOT NULL,
        month_label TEXT NOT NULL,
        total_spend NUMERIC(14, 2) NOT NULL DEFAULT 0,
        total_texts_delivered INTEGER NOT NULL DEFAULT 0,
        total_coupons_redeemed INTEGER NOT NULL DEFAULT 0,
        avg_active_subs_cnt INTEGER NOT NULL DEFAULT 0,
        days_with_activity INTEGER NOT NULL DEFAULT 0,
        historical_risk_level TEXT,
        risk_reasons TEXT[],
        trending_risk_level TEXT,
        trending_risk_reasons TEXT[],
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (account_id, month)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS job_notification_state (
        job_type TEXT NOT NULL,
        run_date DATE NOT NULL,
        sent_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        send_count INTEGER NOT NULL DEFAULT 1,
        PRIMARY KEY (job_type, run_date)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_daily_metrics_date ON daily_metrics (date)",
    "CREATE INDEX IF NOT EXISTS idx_accounts_status ON accounts (status)",
    "CREATE INDEX IF NOT EXISTS idx_monthly_metrics_month ON monthly_metrics (month)",
]


__all__ = ['SCHEMA_STATEMENTS']
