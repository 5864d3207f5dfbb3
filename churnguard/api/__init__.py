"""
ChurnGuard API package initialization.

This package contains the FastAPI router modules:
- risk: dashboard risk views and reason codes
- crm: CRM sync risk payloads
- runs: trending and month-close triggers
"""

from fastapi import APIRouter

from churnguard.api.risk import router as risk_router
from churnguard.api.crm import router as crm_router
from churnguard.api.runs import router as runs_router

# Create main API router
api_router = APIRouter()

api_router.include_router(risk_router, prefix="/risk", tags=["risk"])
api_router.include_router(crm_router, prefix="/crm", tags=["crm"])
api_router.include_router(runs_router, prefix="/runs", tags=["runs"])

__all__ = [
    "api_router",
    "risk_router",
    "crm_router",
    "runs_router",
]
