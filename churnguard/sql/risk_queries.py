"""
Parameterized SQL query module for risk assessment writes and reads.

Write paths:
- Trending: totals and trending_risk_* written in one upsert; the historical
  columns are never touched.
- Historical: historical_risk_level / risk_reasons written and trending
  columns cleared, guarded by ``historical_risk_level IS NULL`` so a finalized
  month is never recomputed.

Read paths join monthly_metrics to accounts for the dashboard and CRM views.
The effective assessment is ``COALESCE(trending, historical)``; the service
layer performs that selection so the rule lives in one place.
"""


def get_trending_upsert_query() -> str:
    """
    Generate SQL to upsert refreshed totals together with the trending risk.

    Parameters:
        $1: account_id
        $2: month
        $3: month_label
        $4: total_spend
        $5: total_texts_delivered
        $6: total_coupons_redeemed
        $7: avg_active_subs_cnt
        $8: days_with_activity
        $9: trending_risk_level
        $10: trending_risk_reasons (text[])
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
        trending_risk_level,
        trending_risk_reasons,
        created_at,
        updated_at
    ) VALUES (
        $1, $2, $3, $4, $5, $6, $7, $8, $9, $10::text[], NOW(), NOW()
    )
    ON CONFLICT (account_id, month) DO UPDATE SET
        month_label = EXCLUDED.month_label,
        total_spend = EXCLUDED.total_spend,
        total_texts_delivered = EXCLUDED.total_texts_delivered,
        total_coupons_redeemed = EXCLUDED.total_coupons_redeemed,
        avg_active_subs_cnt = EXCLUDED.avg_active_subs_cnt,
        days_with_activity = EXCLUDED.days_with_activity,
        trending_risk_level = EXCLUDED.trending_risk_level,
        trending_risk_reasons = EXCLUDED.trending_risk_reasons,
        updated_at = NOW()
    """


def get_historical_update_query() -> str:
    """
    Generate SQL to finalize one account-month.

    Parameters:
        $1: account_id
        $2: month
        $3: historical_risk_level
        $4: risk_reasons (text[])

    Returns:
        str: UPDATE statement; affects zero rows when already finalized.
    """
    return """
    UPDATE monthly_metrics
    SET
        historical_risk_level = $3,
        risk_reasons = $4::text[],
        trending_risk_level = NULL,
        trending_risk_reasons = NULL,
        updated_at = NOW()
    WHERE account_id = $1
      AND month = $2
      AND historical_risk_level IS NULL
    """


def get_unfinalized_rows_query() -> str:
    """
    Generate SQL to read rows of a month that lack a historical assessment.

    Parameters:
        $1: month key (YYYY-MM)
    """
    return """
    SELECT
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
    FROM monthly_metrics
    WHERE month = $1
      AND historical_risk_level IS NULL
    ORDER BY account_id
    """


_RISK_VIEW_SELECT = """
    SELECT
        m.account_id,
        a.account_name,
        a.status,
        a.hubspot_id,
        m.month,
        m.month_label,
        m.total_spend,
        m.total_texts_delivered,
        m.total_coupons_redeemed,
        m.avg_active_subs_cnt,
        m.days_with_activity,
        m.updated_at,
        m.historical_risk_level,
        m.risk_reasons,
        m.trending_risk_level,
        m.trending_risk_reasons
    FROM monthly_metrics m
    LEFT JOIN accounts a ON a.account_id = m.account_id
"""


def get_month_risk_view_query(risk_level_filter: bool = False) -> str:
    """
    Generate SQL for the dashboard view of one month.

    Args:
        risk_level_filter: When True, adds a ``$2`` parameter that restricts
            rows to an effective risk level.

    Parameters:
        $1: month key (YYYY-MM)
        $2: effective risk level (only when risk_level_filter is True)
    """
    where = "WHERE m.month = $1"
    if risk_level_filter:
        where += " AND COALESCE(m.trending_risk_level, m.historical_risk_level) = $2"
    return f"""
    {_RISK_VIEW_SELECT}
    {where}
    ORDER BY m.account_id
    """


def get_account_month_risk_query() -> str:
    """
    Generate SQL for one account-month.

    Parameters:
        $1: account_id
        $2: month key (YYYY-MM)
    """
    return f"""
    {_RISK_VIEW_SELECT}
    WHERE m.account_id = $1 AND m.month = $2
    """


def get_crm_risk_summaries_query() -> str:
    """
    Generate SQL for CRM risk summaries of one month.

    Only accounts with a CRM identifier are returned.

    Parameters:
        $1: month key (YYYY-MM)
    """
    return f"""
    {_RISK_VIEW_SELECT}
    WHERE m.month = $1
      AND a.hubspot_id IS NOT NULL
    ORDER BY m.account_id
    """


__all__ = [
    'get_trending_upsert_query',
    'get_historical_update_query',
    'get_unfinalized_rows_query',
    'get_month_risk_view_query',
    'get_account_month_risk_query',
    'get_crm_risk_summaries_query',
]
