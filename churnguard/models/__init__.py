"""
Package initialization file for ChurnGuard models.

Exports all Pydantic schemas and enumerations so other modules can import
them from churnguard.models directly.

Usage:
    from churnguard.models import (
        Account,
        MonthlyMetricRecord,
        RiskLevel,
        RiskReason,
    )
"""

# =============================================================================
# Enums
# =============================================================================

from churnguard.models.enums import (
    AccountStatus,
    RiskLevel,
    RiskReason,
    EvaluationPath,
    DatasetType,
    JobType,
)

# =============================================================================
# Schemas
# =============================================================================

from churnguard.models.schemas import (
    # Source records
    Account,
    DailyMetricRecord,
    # Monthly aggregation
    MonthlyMetricRecord,
    MonthlySnapshot,
    # Risk results
    RiskResult,
    AccountRiskView,
    CrmRiskSummary,
    # Run results
    MonthRefreshResult,
    RiskRunResult,
    # Ingestion
    ValidationError,
    IngestionResult,
)


__all__ = [
    # Enums
    'AccountStatus',
    'RiskLevel',
    'RiskReason',
    'EvaluationPath',
    'DatasetType',
    'JobType',
    # Schemas
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
