"""
FastAPI router module for the dashboard risk views.

Implements:
- GET /risk/reasons: reason codes in display order
- GET /risk/thresholds: full-month and projected flag thresholds
- GET /risk/months/{month}: every assessed account of a month
- GET /risk/accounts/{account_id}/months/{month}: one account-month

Risk level and reasons are the effective assessment (trending when present,
otherwise historical). Unassessed rows carry null level and reasons.
"""

import logging
from dataclasses import asdict
from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from churnguard.core.dependencies import SettingsDep
from churnguard.models.enums import RiskLevel
from churnguard.models.schemas import AccountRiskView
from churnguard.services.classification import REASON_DISPLAY_ORDER
from churnguard.services.flags import actual_thresholds, projected_thresholds
from churnguard.services.months import parse_month
from churnguard.services.risk_summary import fetch_account_month_risk, fetch_month_risk
from churnguard.services.trending import month_progress


# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Local Pydantic Models for API Responses
# =============================================================================

class ReasonListResponse(BaseModel):
    """Response model for the reason code list."""
    reasons: List[str] = Field(
        default_factory=list,
        description="Reason codes, most severe first"
    )


class MonthRiskResponse(BaseModel):
    """Response model for a month's risk view."""
    month: str = Field(..., description="Month key (YYYY-MM)")
    total: int = Field(..., ge=0, description="Number of accounts returned")
    accounts: List[AccountRiskView] = Field(
        default_factory=list,
        description="Per-account risk rows"
    )


class ThresholdsResponse(BaseModel):
    """Response model for the active flag thresholds."""
    as_of: date = Field(..., description="Date the projection was computed for")
    month_progress: float = Field(..., ge=0, le=1, description="Elapsed share of the month")
    actual: Dict[str, float] = Field(..., description="Full-month thresholds")
    projected: Dict[str, float] = Field(..., description="Thresholds scaled by month progress")
    high_risk_flag_weight: int = Field(..., description="Weighted flag count that means high risk")


def validate_month(month: str) -> str:
    """Raise 422 for a malformed month key."""
    try:
        parse_month(month)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return month


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/reasons", response_model=ReasonListResponse)
async def list_reasons() -> ReasonListResponse:
    """
    List every reason code in dashboard display order.
    """
    return ReasonListResponse(reasons=list(REASON_DISPLAY_ORDER))


@router.get("/thresholds", response_model=ThresholdsResponse)
async def get_thresholds(
    settings: SettingsDep,
    as_of: Optional[date] = Query(
        default=None,
        description="Project thresholds for this date (default: today)"
    ),
) -> ThresholdsResponse:
    """
    Show the full-month thresholds and their projection for a date.

    The projection is what the trending run compares month-to-date
    redemptions against.
    """
    as_of = as_of or date.today()
    progress = month_progress(as_of)
    return ThresholdsResponse(
        as_of=as_of,
        month_progress=progress,
        actual=asdict(actual_thresholds(settings)),
        projected=asdict(projected_thresholds(progress, settings)),
        high_risk_flag_weight=settings.high_risk_flag_weight,
    )


@router.get("/months/{month}", response_model=MonthRiskResponse)
async def get_month_risk(
    month: str,
    risk_level: Optional[RiskLevel] = Query(
        default=None,
        description="Only return accounts at this effective risk level"
    ),
) -> MonthRiskResponse:
    """
    Get the effective risk of every account in a month.

    Args:
        month: Month key (YYYY-MM)
        risk_level: Optional effective risk level filter

    Raises:
        HTTPException(422) for a malformed month
    """
    validate_month(month)
    try:
        accounts = await fetch_month_risk(month, risk_level)
    except Exception as e:
        logger.exception(f"Error retrieving risk for {month}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to retrieve risk for {month}: {str(e)}"
        )

    return MonthRiskResponse(month=month, total=len(accounts), accounts=accounts)


@router.get("/accounts/{account_id}/months/{month}", response_model=AccountRiskView)
async def get_account_month_risk(account_id: str, month: str) -> AccountRiskView:
    """
    Get the effective risk of one account-month.

    Raises:
        HTTPException(404) if the account has no row for the month
        HTTPException(422) for a malformed month
    """
    validate_month(month)
    try:
        view = await fetch_account_month_risk(account_id, month)
    except Exception as e:
        logger.exception(f"Error retrieving risk for {account_id} in {month}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to retrieve account risk: {str(e)}"
        )

    if view is None:
        raise HTTPException(
            status_code=404,
            detail=f"No monthly metrics for account {account_id} in {month}"
        )
    return view


__all__ = ['router', 'validate_month']
