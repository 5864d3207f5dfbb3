"""
Flag evaluator for the ChurnGuard risk engine.

Evaluates the risk flags for one account and one month snapshot. The evaluator
is a pure function of its inputs: the current snapshot, the account, an
optional previous snapshot, the account's age in months and a ThresholdSet.

Evaluation Paths:
1. ARCHIVED: effective archive date falls within the snapshot month.
   Only "Recently Archived" fires and the account is forced high.
2. FROZEN: account status is FROZEN. "Frozen Account Status" fires, plus
   "Frozen & Inactive" when no texts were delivered in the month.
3. WEIGHTED: the five weighted flags, in this order:

   | Flag                    | Weight | Condition                                   |
   |-------------------------|--------|---------------------------------------------|
   | Low Monthly Redemptions | 1      | redemptions < monthly_redemptions            |
   | Low Engagement Combo    | 2      | age > 2 months, subs and redemptions low     |
   | Low Activity            | 1      | avg subs < activity_subs                     |
   | Spend Drop              | 1      | age >= 3 months, prev spend > 0, drop >= pct |
   | Redemptions Drop        | 1      | age >= 3 months, prev redemptions > 0, drop  |

Threshold Presets:
- actual_thresholds(): full-month values, used for closed months.
- projected_thresholds(progress): redemption thresholds scaled by month
  progress, used for the month in progress. Subscriber thresholds and drop
  percentages are never scaled.

Drop percentages are clamped at zero, so growth never fires a drop flag.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Dict, List, Optional

from churnguard.core.config import Settings, get_settings
from churnguard.models.enums import EvaluationPath, RiskReason
from churnguard.models.schemas import Account, MonthlySnapshot
from churnguard.services.months import first_day, last_day, parse_month


# =============================================================================
# Flag Weights
# =============================================================================

FLAG_WEIGHTS: Dict[RiskReason, int] = {
    RiskReason.LOW_MONTHLY_REDEMPTIONS: 1,
    RiskReason.LOW_ENGAGEMENT_COMBO: 2,
    RiskReason.LOW_ACTIVITY: 1,
    RiskReason.SPEND_DROP: 1,
    RiskReason.REDEMPTIONS_DROP: 1,
}

# Low Engagement Combo needs age > 2 months; drop flags need age >= 3.
ENGAGEMENT_MIN_MONTHS_EXCLUSIVE = 2
DROP_FLAGS_MIN_MONTHS = 3


# =============================================================================
# Threshold Configuration
# =============================================================================


@dataclass(frozen=True)
class ThresholdSet:
    """
    Immutable set of flag thresholds.

    Defaults are the full-month values. Use actual_thresholds() or
    projected_thresholds() rather than building one by hand.

    Attributes:
        monthly_redemptions: Redemptions below this fire Low Monthly Redemptions.
        engagement_subs: Average subscribers below this satisfy the subscriber
            half of Low Engagement Combo.
        engagement_redemptions: Redemptions below this satisfy the redemption
            half of Low Engagement Combo.
        activity_subs: Average subscribers below this fire Low Activity.
        spend_drop: Fractional month-over-month spend decrease that fires
            Spend Drop.
        redemptions_drop: Fractional month-over-month redemptions decrease that
            fires Redemptions Drop.
    """
    monthly_redemptions: float = 10
    engagement_subs: float = 300
    engagement_redemptions: float = 35
    activity_subs: float = 300
    spend_drop: float = 0.40
    redemptions_drop: float = 0.50

    @classmethod
    def from_settings(cls, settings: Settings) -> "ThresholdSet":
        return cls(
            monthly_redemptions=settings.monthly_redemptions_threshold,
            engagement_subs=settings.low_engagement_subs_threshold,
            engagement_redemptions=settings.low_engagement_redemptions_threshold,
            activity_subs=settings.low_activity_subs_threshold,
            spend_drop=settings.spend_drop_threshold,
            redemptions_drop=settings.redemptions_drop_threshold,
        )


def actual_thresholds(settings: Optional[Settings] = None) -> ThresholdSet:
    """
    Full-month thresholds for closed-month evaluation.

    Args:
        settings: Settings to read thresholds from (default: get_settings()).
    """
    return ThresholdSet.from_settings(settings or get_settings())


def projected_thresholds(
    progress: float,
    settings: Optional[Settings] = None
) -> ThresholdSet:
    """
    Thresholds projected to a fraction of the month.

    Both redemption thresholds are multiplied by ``progress``; everything else
    is the full-month value.

    Args:
        progress: Fraction of the month elapsed, in [0, 1).
        settings: Settings to read thresholds from (default: get_settings()).

    Example:
        >>> t = projected_thresholds(9 / 30)
        >>> t.monthly_redemptions
        3.0
    """
    base = actual_thresholds(settings)
    return replace(
        base,
        monthly_redemptions=base.monthly_redemptions * progress,
        engagement_redemptions=base.engagement_redemptions * progress,
    )


# =============================================================================
# Evaluation Result
# =============================================================================


@dataclass
class FlagEvaluation:
    """
    Flags fired for one account-month, in evaluation order.

    ``weighted_count`` is only meaningful on the WEIGHTED path.
    """
    flags: List[RiskReason] = field(default_factory=list)
    weighted_count: int = 0
    path: EvaluationPath = EvaluationPath.WEIGHTED


# =============================================================================
# Helpers
# =============================================================================


def months_since_launch(launched_at: Optional[date], month: str) -> int:
    """
    Whole calendar months from the launch month to the target month.

    Day of month is ignored. Launches after the target month give 0.

    Example:
        >>> months_since_launch(date(2025, 1, 20), "2025-05")
        4
    """
    if launched_at is None:
        return 0
    year, month_num = parse_month(month)
    elapsed = (year - launched_at.year) * 12 + (month_num - launched_at.month)
    return max(0, elapsed)


def _drop_fraction(previous: float, current: float) -> float:
    return max(0.0, (previous - current) / previous)


# =============================================================================
# Evaluator
# =============================================================================


def evaluate_flags(
    current: MonthlySnapshot,
    account: Account,
    previous: Optional[MonthlySnapshot],
    months_since_launch: int,
    thresholds: ThresholdSet
) -> FlagEvaluation:
    """
    Evaluate risk flags for one account-month.

    Args:
        current: Metrics for the month being evaluated.
        account: Account roster entry (status and archive dates).
        previous: Comparison metrics for the prior month, or None when there
            is no prior data. Drop flags are skipped without it.
        months_since_launch: Account age in whole months at the target month.
        thresholds: Threshold preset to compare against.

    Returns:
        FlagEvaluation: Fired flags, weighted total and evaluation path.
    """
    archived = account.effective_archived_at
    if archived is not None and first_day(current.month) <= archived <= last_day(current.month):
        return FlagEvaluation(
            flags=[RiskReason.RECENTLY_ARCHIVED],
            path=EvaluationPath.ARCHIVED,
        )

    if account.is_frozen:
        flags = [RiskReason.FROZEN_ACCOUNT_STATUS]
        if current.total_texts_delivered == 0:
            flags.append(RiskReason.FROZEN_AND_INACTIVE)
        return FlagEvaluation(flags=flags, path=EvaluationPath.FROZEN)

    redemptions = current.total_coupons_redeemed
    avg_subs = current.avg_active_subs_cnt
    flags: List[RiskReason] = []

    if redemptions < thresholds.monthly_redemptions:
        flags.append(RiskReason.LOW_MONTHLY_REDEMPTIONS)

    if (
        months_since_launch > ENGAGEMENT_MIN_MONTHS_EXCLUSIVE
        and avg_subs < thresholds.engagement_subs
        and redemptions < thresholds.engagement_redemptions
    ):
        flags.append(RiskReason.LOW_ENGAGEMENT_COMBO)

    if avg_subs < thresholds.activity_subs:
        flags.append(RiskReason.LOW_ACTIVITY)

    if previous is not None and months_since_launch >= DROP_FLAGS_MIN_MONTHS:
        if previous.total_spend > 0:
            if _drop_fraction(previous.total_spend, current.total_spend) >= thresholds.spend_drop:
                flags.append(RiskReason.SPEND_DROP)
        if previous.total_coupons_redeemed > 0:
            drop = _drop_fraction(previous.total_coupons_redeemed, redemptions)
            if drop >= thresholds.redemptions_drop:
                flags.append(RiskReason.REDEMPTIONS_DROP)

    return FlagEvaluation(
        flags=flags,
        weighted_count=sum(FLAG_WEIGHTS[flag] for flag in flags),
        path=EvaluationPath.WEIGHTED,
    )


__all__ = [
    'FLAG_WEIGHTS',
    'ThresholdSet',
    'actual_thresholds',
    'projected_thresholds',
    'FlagEvaluation',
    'months_since_launch',
    'evaluate_flags',
]
