"""
Pydantic data models for the ChurnGuard risk engine.

This module provides type-safe data validation and serialization for the
records the engine reads (account roster, daily facts, monthly metrics), the
results it produces (risk levels and reason codes), and the API contracts
exposed to the dashboard and the CRM sync.

Model groups:
- Source records: Account, DailyMetricRecord
- Monthly aggregation: MonthlyMetricRecord, MonthlySnapshot
- Risk results: RiskResult, AccountRiskView, CrmRiskSummary
- Run results: MonthRefreshResult, RiskRunResult
- Ingestion: ValidationError, IngestionResult

Field names mirror the PostgreSQL column names so records can be built
directly from asyncpg rows with ``Model(**dict(row))``.

All models use Pydantic v2 syntax.
"""

from datetime import datetime, date as DateType
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ConfigDict

from churnguard.models.enums import AccountStatus, RiskLevel


# =============================================================================
# Source Records
# =============================================================================


class Account(BaseModel):
    """
    Account roster entry.

    The engine treats accounts as read-only. ``status`` is kept as a plain
    string because the roster may carry statuses outside AccountStatus; those
    are evaluated like LAUNCHED/ACTIVE.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "account_id": "ACC-1042",
                "account_name": "Harbor Street Coffee",
                "status": "ACTIVE",
                "launched_at": "2024-11-04",
                "archived_at": None,
                "earliest_unit_archived_at": None,
                "hubspot_id": "18233004551"
            }
        }
    )

    account_id: str = Field(
        ...,
        min_length=1,
        description="Unique account identifier"
    )
    account_name: Optional[str] = Field(
        default=None,
        description="Display name of the account"
    )
    status: str = Field(
        default=AccountStatus.ACTIVE.value,
        description="Lifecycle status (LAUNCHED, ACTIVE, FROZEN, ARCHIVED)"
    )
    launched_at: Optional[DateType] = Field(
        default=None,
        description="Launch date; accounts without one are never eligible"
    )
    archived_at: Optional[DateType] = Field(
        default=None,
        description="Account-level archive date"
    )
    earliest_unit_archived_at: Optional[DateType] = Field(
        default=None,
        description="Earliest archive date across the account's units"
    )
    hubspot_id: Optional[str] = Field(
        default=None,
        description="CRM company identifier"
    )

    @property
    def effective_archived_at(self) -> Optional[DateType]:
        """Account archive date, falling back to the earliest unit archive date."""
        return self.archived_at or self.earliest_unit_archived_at

    @property
    def is_frozen(self) -> bool:
        return (self.status or "").upper() == AccountStatus.FROZEN.value

    @property
    def is_archived(self) -> bool:
        return (self.status or "").upper() == AccountStatus.ARCHIVED.value


class DailyMetricRecord(BaseModel):
    """
    One day of usage facts for one account.

    Grain: (account_id, date).
    """
    account_id: str = Field(
        ...,
        min_length=1,
        description="Account identifier"
    )
    date: DateType = Field(
        ...,
        description="Calendar date of the facts"
    )
    total_spend: float = Field(
        default=0.0,
        description="Spend for the day"
    )
    total_texts_delivered: int = Field(
        default=0,
        ge=0,
        description="Text messages delivered"
    )
    coupons_redeemed: int = Field(
        default=0,
        ge=0,
        description="Coupons redeemed"
    )
    active_subs_cnt: Optional[int] = Field(
        default=None,
        ge=0,
        description="Active subscriber count, when reported for the day"
    )


# =============================================================================
# Monthly Aggregation
# =============================================================================


class MonthlyMetricRecord(BaseModel):
    """
    Per-account, per-month totals plus the risk assessment fields.

    Grain: (account_id, month). For any month at most one of the historical
    and trending assessments is meaningful: trending while the month is in
    progress, historical once it is closed and finalized. Absent risk fields
    mean "not yet assessed".
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "account_id": "ACC-1042",
                "month": "2025-09",
                "month_label": "September 2025",
                "total_spend": 1180.5,
                "total_texts_delivered": 4200,
                "total_coupons_redeemed": 18,
                "avg_active_subs_cnt": 412,
                "days_with_activity": 30,
                "historical_risk_level": "medium",
                "risk_reasons": ["Low Monthly Redemptions"],
                "trending_risk_level": None,
                "trending_risk_reasons": None
            }
        }
    )

    account_id: str = Field(
        ...,
        description="Account identifier"
    )
    month: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}$",
        description="Month key (YYYY-MM)"
    )
    month_label: str = Field(
        ...,
        description="Display label, e.g. 'September 2025'"
    )
    total_spend: float = Field(
        default=0.0,
        description="Sum of daily spend"
    )
    total_texts_delivered: int = Field(
        default=0,
        ge=0,
        description="Sum of daily texts delivered"
    )
    total_coupons_redeemed: int = Field(
        default=0,
        ge=0,
        description="Sum of daily coupons redeemed"
    )
    avg_active_subs_cnt: int = Field(
        default=0,
        ge=0,
        description="Average active subscribers, rounded half-up"
    )
    days_with_activity: int = Field(
        default=0,
        ge=0,
        description="Distinct dates with a daily fact row"
    )
    updated_at: Optional[datetime] = Field(
        default=None,
        description="Last write timestamp"
    )
    historical_risk_level: Optional[RiskLevel] = Field(
        default=None,
        description="Finalized risk level for a closed month"
    )
    risk_reasons: Optional[List[str]] = Field(
        default=None,
        description="Reason codes behind historical_risk_level"
    )
    trending_risk_level: Optional[RiskLevel] = Field(
        default=None,
        description="Projected risk level for the month in progress"
    )
    trending_risk_reasons: Optional[List[str]] = Field(
        default=None,
        description="Reason codes behind trending_risk_level"
    )


class MonthlySnapshot(BaseModel):
    """
    The metric slice the flag evaluator reads.

    Built from a MonthlyMetricRecord, or from a same-day prior-month sum of
    daily facts when the trending calculator compares partial months.
    """
    month: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}$",
        description="Month key (YYYY-MM)"
    )
    total_spend: float = 0.0
    total_texts_delivered: int = 0
    total_coupons_redeemed: int = 0
    avg_active_subs_cnt: int = 0

    @classmethod
    def from_record(cls, record: MonthlyMetricRecord) -> "MonthlySnapshot":
        return cls(
            month=record.month,
            total_spend=record.total_spend,
            total_texts_delivered=record.total_texts_delivered,
            total_coupons_redeemed=record.total_coupons_redeemed,
            avg_active_subs_cnt=record.avg_active_subs_cnt,
        )


# =============================================================================
# Risk Results
# =============================================================================


class RiskResult(BaseModel):
    """
    Output of the risk classifier for one account and month.

    Reasons are in evaluation order; use sort_reasons_for_display() for the
    dashboard ordering.
    """
    level: RiskLevel = Field(
        ...,
        description="Risk tier"
    )
    reasons: List[str] = Field(
        ...,
        min_length=1,
        description="Reason codes, or ['No flags']"
    )


class AccountRiskView(BaseModel):
    """
    Dashboard row: monthly totals plus the effective risk assessment.

    ``risk_level`` / ``risk_reasons`` are the trending assessment when present,
    otherwise the historical one, otherwise null. ``risk_source`` names which
    one was used.
    """
    account_id: str
    account_name: Optional[str] = None
    status: Optional[str] = None
    month: str
    month_label: str
    total_spend: float = 0.0
    total_texts_delivered: int = 0
    total_coupons_redeemed: int = 0
    avg_active_subs_cnt: int = 0
    days_with_activity: int = 0
    risk_level: Optional[RiskLevel] = None
    risk_reasons: Optional[List[str]] = None
    risk_source: Optional[str] = Field(
        default=None,
        description="'trending', 'historical', or null when not yet assessed"
    )
    updated_at: Optional[datetime] = None


class CrmRiskSummary(BaseModel):
    """
    Risk payload handed to the CRM sync for one account.

    The CRM push itself lives outside this service.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "account_id": "ACC-1042",
                "hubspot_id": "18233004551",
                "month": "2025-10",
                "risk_level": "high",
                "risk_reasons": ["Low Activity", "Low Engagement Combo"],
                "trending_risk_level": "high",
                "trending_risk_reasons": ["Low Engagement Combo", "Low Activity"],
                "historical_risk_level": None,
                "last_updated": "2025-10-14"
            }
        }
    )

    account_id: str
    hubspot_id: Optional[str] = None
    month: str
    risk_level: Optional[RiskLevel] = None
    risk_reasons: Optional[List[str]] = None
    trending_risk_level: Optional[RiskLevel] = None
    trending_risk_reasons: Optional[List[str]] = None
    historical_risk_level: Optional[RiskLevel] = None
    last_updated: Optional[DateType] = None


# =============================================================================
# Run Results
# =============================================================================


class MonthRefreshResult(BaseModel):
    """
    Result of refreshing monthly totals for one month.
    """
    month: str
    accounts_considered: int = Field(default=0, ge=0)
    eligible_accounts: int = Field(default=0, ge=0)
    rows_written: int = Field(default=0, ge=0)
    rows_removed: int = Field(default=0, ge=0)


class RiskRunResult(BaseModel):
    """
    Result of a trending or historical risk run for one month.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "month": "2025-10",
                "mode": "trending",
                "accounts_evaluated": 240,
                "rows_written": 240,
                "skipped": 0,
                "distribution": {"low": 150, "medium": 70, "high": 20}
            }
        }
    )

    month: str
    mode: str = Field(
        ...,
        description="'trending' or 'historical'"
    )
    accounts_evaluated: int = Field(default=0, ge=0)
    rows_written: int = Field(default=0, ge=0)
    skipped: int = Field(
        default=0,
        ge=0,
        description="Rows not written (already finalized or account missing)"
    )
    distribution: Dict[str, int] = Field(
        default_factory=lambda: {level.value: 0 for level in RiskLevel},
        description="Count of accounts per risk level"
    )


# =============================================================================
# Ingestion Models
# =============================================================================


class ValidationError(BaseModel):
    """
    Validation error detail.

    Used for reporting data validation issues during ingestion.
    """
    field: str = Field(
        ...,
        description="Field with validation error"
    )
    message: str = Field(
        ...,
        description="Error message"
    )
    row_number: Optional[int] = Field(
        default=None,
        ge=1,
        description="Row number where error occurred"
    )


class IngestionResult(BaseModel):
    """
    Result of a daily-facts or roster ingestion.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "rows_processed": 1000,
                "rows_affected": 1000,
                "errors": []
            }
        }
    )

    success: bool = Field(
        ...,
        description="Whether ingestion was successful"
    )
    rows_processed: int = Field(
        ...,
        ge=0,
        description="Number of rows processed"
    )
    rows_affected: int = Field(
        ...,
        ge=0,
        description="Number of rows inserted/updated"
    )
    errors: List[ValidationError] = Field(
        default_factory=list,
        description="Validation errors encountered"
    )


__all__ = [
    'Account',
    'DailyMetricRecord',
    'MonthlyMetricRecord',
    'MonthlySnapshot',
    'RiskResult',
    'AccountRiskView',
    'CrmRiskSummary',
    'MonthRefreshResult',
    'RiskRunResult',
    'ValidationError',
    'IngestionResult',
]
