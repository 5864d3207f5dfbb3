"""
Enumeration definitions for the ChurnGuard risk engine.

All enums inherit from both `str` and `Enum` so Pydantic models serialize them
as their plain string values in API responses and the values can be written to
PostgreSQL text columns without conversion.

Enums:
- AccountStatus: lifecycle status carried on the account roster
- RiskLevel: churn-risk tier written to monthly_metrics
- RiskReason: stable reason codes consumed by the dashboard and CRM sync
- EvaluationPath: which branch of the flag evaluator produced a result
- DatasetType: ingestible source datasets
- JobType: scheduled job identifiers used for run notifications
"""

from enum import Enum


class AccountStatus(str, Enum):
    """
    Account lifecycle status.

    Values: ['LAUNCHED', 'ACTIVE', 'FROZEN', 'ARCHIVED']

    Only FROZEN changes flag evaluation. ARCHIVED only changes eligibility:
    such accounts drop out once their archive date is behind the month. Any
    status string outside this list is evaluated like LAUNCHED/ACTIVE.
    """
    LAUNCHED = "LAUNCHED"
    ACTIVE = "ACTIVE"
    FROZEN = "FROZEN"
    ARCHIVED = "ARCHIVED"


class RiskLevel(str, Enum):
    """
    Churn-risk tier.

    - low: no weighted flags fired
    - medium: weighted flags total 1-2, or frozen with recent texting
    - high: weighted flags total 3+, frozen and inactive, or archived in month
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RiskReason(str, Enum):
    """
    Human-readable reason codes.

    These strings are a stable contract with the dashboard and the CRM sync;
    changing one is a breaking change for both consumers.
    """
    RECENTLY_ARCHIVED = "Recently Archived"
    FROZEN_ACCOUNT_STATUS = "Frozen Account Status"
    FROZEN_AND_INACTIVE = "Frozen & Inactive"
    LOW_MONTHLY_REDEMPTIONS = "Low Monthly Redemptions"
    LOW_ENGAGEMENT_COMBO = "Low Engagement Combo"
    LOW_ACTIVITY = "Low Activity"
    SPEND_DROP = "Spend Drop"
    REDEMPTIONS_DROP = "Redemptions Drop"
    NO_FLAGS = "No flags"


class EvaluationPath(str, Enum):
    """
    Flag evaluator branch.

    - archived: archive date falls inside the evaluated month
    - frozen: account status is FROZEN
    - weighted: the five weighted flags were evaluated
    """
    ARCHIVED = "archived"
    FROZEN = "frozen"
    WEIGHTED = "weighted"


class DatasetType(str, Enum):
    """
    Ingestible datasets, named after their target tables.
    """
    DAILY_METRICS = "daily_metrics"
    ACCOUNTS = "accounts"


class JobType(str, Enum):
    """
    Scheduled job identifiers.

    Used as part of the idempotency key in job_notification_state.
    """
    DAILY_TRENDING = "daily_trending"
    MONTH_CLOSE = "month_close"


__all__ = [
    'AccountStatus',
    'RiskLevel',
    'RiskReason',
    'EvaluationPath',
    'DatasetType',
    'JobType',
]
