"""
Risk read model for the dashboard and the CRM sync.

Consumers see one effective assessment per account-month: the trending
assessment when present, otherwise the historical one. When neither exists
the account-month has not been assessed yet and level / reasons are None;
they are never defaulted to "low".

Reason codes returned from here are in display order.
"""

import logging
from typing import Any, List, Mapping, Optional, Tuple

from churnguard.core.database import execute_query, execute_query_one
from churnguard.models.enums import RiskLevel
from churnguard.models.schemas import AccountRiskView, CrmRiskSummary
from churnguard.services.classification import sort_reasons_for_display
from churnguard.sql.risk_queries import (
    get_account_month_risk_query,
    get_crm_risk_summaries_query,
    get_month_risk_view_query,
)


logger = logging.getLogger(__name__)


def select_effective_risk(
    row: Mapping[str, Any]
) -> Tuple[Optional[str], Optional[List[str]], Optional[str]]:
    """
    Pick the effective assessment of a monthly_metrics row.

    Args:
        row: Mapping with trending_risk_level, trending_risk_reasons,
            historical_risk_level and risk_reasons.

    Returns:
        Tuple of (level, reasons, source) where source is 'trending',
        'historical' or None.

    Example:
        >>> select_effective_risk({
        ...     "trending_risk_level": None, "trending_risk_reasons": None,
        ...     "historical_risk_level": "medium", "risk_reasons": ["Low Activity"],
        ... })
        ('medium', ['Low Activity'], 'historical')
    """
    if row.get("trending_risk_level") is not None:
        return row["trending_risk_level"], row.get("trending_risk_reasons"), "trending"
    if row.get("historical_risk_level") is not None:
        return row["historical_risk_level"], row.get("risk_reasons"), "historical"
    return None, None, None


def _level_value(level: Any) -> Optional[str]:
    if level is None:
        return None
    return level.value if isinstance(level, RiskLevel) else str(level)


def build_risk_view(row: Mapping[str, Any]) -> AccountRiskView:
    """Convert a joined monthly_metrics/accounts row into a dashboard view."""
    level, reasons, source = select_effective_risk(row)
    return AccountRiskView(
        account_id=row["account_id"],
        account_name=row.get("account_name"),
        status=row.get("status"),
        month=row["month"],
        month_label=row["month_label"],
        total_spend=row.get("total_spend") or 0,
        total_texts_delivered=row.get("total_texts_delivered") or 0,
        total_coupons_redeemed=row.get("total_coupons_redeemed") or 0,
        avg_active_subs_cnt=row.get("avg_active_subs_cnt") or 0,
        days_with_activity=row.get("days_with_activity") or 0,
        risk_level=_level_value(level),
        risk_reasons=sort_reasons_for_display(reasons),
        risk_source=source,
        updated_at=row.get("updated_at"),
    )


def build_crm_summary(row: Mapping[str, Any]) -> CrmRiskSummary:
    """Convert a joined monthly_metrics/accounts row into a CRM payload."""
    level, reasons, _ = select_effective_risk(row)
    updated_at = row.get("updated_at")
    return CrmRiskSummary(
        account_id=row["account_id"],
        hubspot_id=row.get("hubspot_id"),
        month=row["month"],
        risk_level=_level_value(level),
        risk_reasons=sort_reasons_for_display(reasons),
        trending_risk_level=_level_value(row.get("trending_risk_level")),
        trending_risk_reasons=sort_reasons_for_display(row.get("trending_risk_reasons")),
        historical_risk_level=_level_value(row.get("historical_risk_level")),
        last_updated=updated_at.date() if updated_at is not None else None,
    )


async def fetch_month_risk(
    month: str,
    risk_level: Optional[RiskLevel] = None
) -> List[AccountRiskView]:
    """
    Read the dashboard view of one month.

    Args:
        month: Month key (YYYY-MM).
        risk_level: Optional filter on the effective risk level.
    """
    if risk_level is None:
        rows = await execute_query(get_month_risk_view_query(), month)
    else:
        rows = await execute_query(
            get_month_risk_view_query(risk_level_filter=True),
            month,
            _level_value(risk_level),
        )

    return [build_risk_view(dict(row)) for row in rows]


async def fetch_account_month_risk(account_id: str, month: str) -> Optional[AccountRiskView]:
    """
    Read one account-month, or None when no row exists.
    """
    row = await execute_query_one(get_account_month_risk_query(), account_id, month)

    return build_risk_view(dict(row)) if row is not None else None


async def fetch_crm_risk_summaries(month: str) -> List[CrmRiskSummary]:
    """
    Read CRM payloads for every account of a month that has a CRM id.
    """
    rows = await execute_query(get_crm_risk_summaries_query(), month)

    summaries = [build_crm_summary(dict(row)) for row in rows]
    logger.info(f"Built {len(summaries)} CRM risk summaries for {month}")
    return summaries


__all__ = [
    'select_effective_risk',
    'build_risk_view',
    'build_crm_summary',
    'fetch_month_risk',
    'fetch_account_month_risk',
    'fetch_crm_risk_summaries',
]
