"""
FastAPI router module for the CRM sync.

Implements GET /crm/risk-summaries?month=YYYY-MM, the payload the CRM sync
job pushes to the CRM vendor. Only accounts with a CRM identifier are
included. The push itself is not part of this service.
"""

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from churnguard.api.risk import validate_month
from churnguard.models.schemas import CrmRiskSummary
from churnguard.services.months import month_key
from churnguard.services.risk_summary import fetch_crm_risk_summaries


logger = logging.getLogger(__name__)

router = APIRouter()


class CrmRiskSummaryResponse(BaseModel):
    """Response model for CRM risk summaries."""
    month: str = Field(..., description="Month key (YYYY-MM)")
    summaries: List[CrmRiskSummary] = Field(default_factory=list)


@router.get("/risk-summaries", response_model=CrmRiskSummaryResponse)
async def get_risk_summaries(
    month: Optional[str] = Query(
        default=None,
        description="Month key (YYYY-MM); defaults to the current month"
    ),
) -> CrmRiskSummaryResponse:
    """
    Get CRM risk payloads for a month.
    """
    month = validate_month(month) if month is not None else month_key(date.today())
    try:
        summaries = await fetch_crm_risk_summaries(month)
    except Exception as e:
        logger.exception(f"Error building CRM risk summaries for {month}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to build CRM risk summaries: {str(e)}"
        )

    return CrmRiskSummaryResponse(month=month, summaries=summaries)


__all__ = ['router']
