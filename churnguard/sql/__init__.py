"""
SQL query module for the ChurnGuard risk engine.

Provides parameterized PostgreSQL queries for:
- Roster, daily fact and monthly totals access (monthly_queries)
- Trending / historical risk writes and dashboard / CRM reads (risk_queries)
- Table definitions (schema)

Example usage:
    from churnguard.sql import get_monthly_totals_upsert_query

    await conn.execute(get_monthly_totals_upsert_query(), *values)
"""

from churnguard.sql.monthly_queries import (
    ACCOUNT_COLUMNS,
    MONTHLY_METRIC_COLUMNS,
    get_accounts_query,
    get_daily_metrics_range_query,
    get_monthly_metrics_query,
    get_monthly_totals_upsert_query,
    get_remove_ineligible_rows_query,
)

from churnguard.sql.risk_queries import (
    get_trending_upsert_query,
    get_historical_update_query,
    get_unfinalized_rows_query,
    get_month_risk_view_query,
    get_account_month_risk_query,
    get_crm_risk_summaries_query,
)

from churnguard.sql.schema import SCHEMA_STATEMENTS


__all__ = [
    # monthly_queries
    'ACCOUNT_COLUMNS',
    'MONTHLY_METRIC_COLUMNS',
    'get_accounts_query',
    'get_daily_metrics_range_query',
    'get_monthly_metrics_query',
    'get_monthly_totals_upsert_query',
    'get_remove_ineligible_rows_query',
    # risk_queries
    'get_trending_upsert_query',
    'get_historical_update_query',
    'get_unfinalized_rows_query',
    'get_month_risk_view_query',
    'get_account_month_risk_query',
    'get_crm_risk_summaries_query',
    # schema
    'SCHEMA_STATEMENTS',
]
