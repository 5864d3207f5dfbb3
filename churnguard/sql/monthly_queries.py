"""
Parameterized SQL query module for monthly aggregation.

This module provides functions that return PostgreSQL query strings for reading
the account roster and daily facts, and for writing per-account-per-month
totals into monthly_metrics. Placeholders use asyncpg's positional ``$n``
syntax; the service layer owns the parameter values.

Tables:
    accounts        (account_id PK) roster, read-only to the engine
    daily_metrics   (account_id, date) daily usage facts
    monthly_metrics (account_id, month) totals plus risk assessment fields

Totals upserts never touch the risk assessment columns, so a refreshed month
keeps any finalized historical assessment verbatim.
"""


ACCOUNT_COLUMNS = """
    account_id,
    account_name,
    status,
    launched_at,
    archived_at,
    earliest_unit_archived_at,
    hubspot_id
"""

MONTHLY_METRIC_COLUMNS = """
    account_id,
    month,
    month_label,
    total_spend,
    total_texts_delivered,
    total_coupons_redeemed,
    avg_active_subs_cnt,
    days_with_activity,
    updated_at,
    historical_risk_level,
    risk_reasons,
    trending_risk_level,
    trending_risk_reasons
"""


def get_accounts_query() -> str:
    """
    Generate SQL to read the full account roster.

    Returns:
        str: Query returning one row per account, ordered by account_id.
    """
    return f"""
    SELECT {ACCOUNT_COLUMNS}
    FROM accounts
    ORDER BY account_id
    """


def get_daily_metrics_range_query() -> str:
    """
    Generate SQL to read daily facts in an inclusive date range.

    Parameters:
        $1: start date (inclusive)
        $2: end date (inclusive)

    Returns:
        str: Query returning daily_metrics rows ordered by account and date.
    """
    return """
    SELECT
        account_id,
        date,
        COALESCE(total_spend, 0) AS total_spend,
        COALESCE(total_texts_delivered, 0) AS total_texts_delivered,
        COALESCE(coupons_redeemed, 0) AS coupons_redeemed,
        active_subs_cnt
    FROM daily_metrics
    WHERE date >= $1 AND date <= $2
    ORDER BY account_id, date
    """


def get_monthly_metrics_query() -> str:
    """
    Generate SQL to read every monthly_metrics row for one month.

    Parameters:
        $1: month key (YYYY-MM)
    """
    return f"""
    SELECT {MONTHLY_METRIC_COLUMNS}
    FROM monthly_metrics
    WHERE month = $1
    ORDER BY account_id
    """


def get_monthly_totals_upsert_query() -> str:
    """
    Generate SQL to upsert monthly totals without touching risk fields.

    Parameters:
        $1: account_id
        $2: month
        $3: month_label
        $4: total_spend
        $5: total_texts_delivered
        $6: total_coupons_redeemed
        $7: avg_active_subs_cnt
        $8: days_with_activity

    Returns:
        str: INSERT ... ON CONFLICT (account_id, month) DO UPDATE statement.
    """
    return """
    INSERT INTO monthly_metrics (
        account_id,
        month,
        month_label,
        total_spend,
        total_texts_delivered,
        total_coupons_redeemed,
        avg_active_subs_cnt,
        days_with_activity,
        created_at,
        updated_at
    ) VALUES (
        $1, $2, $3, $4, $5, $6, $7, $8, NOW(), NOW()
    )
    ON CONFLICT (account_id, month) DO UPDATE SET
        month_label = EXCLUDED.month_label,
        total_spend = EXCLUDED.total_spend,
        total_texts_delivered = EXCLUDED.total_texts_delivered,
        total_coupons_redeemed = EXCLUDED.total_coupons_redeemed,
        avg_active_subs_cnt = EXCLUDED.avg_active_subs_cnt,
        days_with_activity = EXCLUDED.days_with_activity,
        updated_at = NOW()
    """


def get_remove_ineligible_rows_query() -> str:
    """
    Generate SQL to delete unassessed rows for accounts no longer eligible.

    Rows carrying a historical assessment are kept.

    Parameters:
        $1: month key (YYYY-MM)
        $2: text[] of eligible account_ids
    """
    return """
    DELETE FROM monthly_metrics
    WHERE month = $1
      AND historical_risk_level IS NULL
      AND NOT (account_id = ANY($2::text[]))
    """


__all__ = [
    'ACCOUNT_COLUMNS',
    'MONTHLY_METRIC_COLUMNS',
    'get_accounts_query',
    'get_daily_metrics_range_query',
    'get_monthly_metrics_query',
    'get_monthly_totals_upsert_query',
    'get_remove_ineligible_rows_query',
]
