"""
FastAPI router module for triggering risk runs.

Implements:
- POST /runs/trending: refresh the current month's trending risk
- POST /runs/month-close: refresh and finalize a closed month

Both endpoints run synchronously and return the job result dict.
"""

import logging
from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, HTTPException
from pydantic import BaseModel, Field

from churnguard.api.risk import validate_month
from churnguard.jobs.daily_rollup import run_daily_trending
from churnguard.jobs.month_close import run_month_close
from churnguard.services.months import is_closed_month, month_key, previous_month


# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Request Models
# =============================================================================

class TrendingRunRequest(BaseModel):
    """Request model for a trending run."""
    as_of: Optional[date] = Field(
        default=None,
        description="Assessment date (default: today)"
    )
    notify: bool = Field(
        default=False,
        description="Post a Slack summary after the run"
    )


class MonthCloseRequest(BaseModel):
    """Request model for a month-close run."""
    month: Optional[str] = Field(
        default=None,
        description="Month to close (default: the month before as_of)"
    )
    as_of: Optional[date] = Field(
        default=None,
        description="Reference date (default: today)"
    )
    notify: bool = Field(
        default=False,
        description="Post a Slack summary after the run"
    )


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/trending")
async def trigger_trending(
    request: Optional[TrendingRunRequest] = Body(default=None),
) -> Dict[str, Any]:
    """
    Run the trending assessment now.

    Raises:
        HTTPException(500) if the run fails
    """
    request = request or TrendingRunRequest()
    result = await run_daily_trending(as_of=request.as_of, notify=request.notify)
    if not result['success']:
        raise HTTPException(
            status_code=500,
            detail=f"Trending run failed: {result.get('error')}"
        )
    return result


@router.post("/month-close")
async def trigger_month_close(
    request: Optional[MonthCloseRequest] = Body(default=None),
) -> Dict[str, Any]:
    """
    Refresh and finalize a closed month now.

    Raises:
        HTTPException(400) if the month has not closed yet
        HTTPException(422) for a malformed month
        HTTPException(500) if the run fails
    """
    request = request or MonthCloseRequest()
    as_of = request.as_of or date.today()
    month = validate_month(request.month) if request.month else previous_month(month_key(as_of))

    if not is_closed_month(month, as_of):
        raise HTTPException(
            status_code=400,
            detail=f"{month} has not closed as of {as_of}"
        )

    result = await run_month_close(month=month, as_of=as_of, notify=request.notify)
    if not result['success']:
        raise HTTPException(
            status_code=500,
            detail=f"Month close failed: {result.get('error')}"
        )
    return result


__all__ = ['router']
