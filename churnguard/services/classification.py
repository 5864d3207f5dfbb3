"""
Risk Classifier

Maps a FlagEvaluation to a risk level and the reason codes shown to the
dashboard and the CRM sync.

Classification Rules:
- ARCHIVED path: always high, reasons ["Recently Archived"]
- FROZEN path: high when "Frozen & Inactive" fired, otherwise medium
- WEIGHTED path: weighted total >= 3 is high, >= 1 is medium, else low

Reasons are the fired flags in evaluation order, or ["No flags"] when none
fired. Display ordering is a separate concern handled by
sort_reasons_for_display(), which the read APIs apply.
"""

from collections import Counter
from typing import Dict, Iterable, List, Optional

from churnguard.models.enums import EvaluationPath, RiskLevel, RiskReason
from churnguard.models.schemas import RiskResult
from churnguard.services.flags import FlagEvaluation


# =============================================================================
# Classification Constants
# =============================================================================

HIGH_RISK_WEIGHT = 3
MEDIUM_RISK_WEIGHT = 1

# Dashboard ordering, most severe first. Unknown codes sort just before
# "No flags".
REASON_DISPLAY_ORDER: List[str] = [
    RiskReason.RECENTLY_ARCHIVED.value,
    RiskReason.FROZEN_ACCOUNT_STATUS.value,
    RiskReason.FROZEN_AND_INACTIVE.value,
    RiskReason.LOW_ACTIVITY.value,
    RiskReason.LOW_ENGAGEMENT_COMBO.value,
    RiskReason.LOW_MONTHLY_REDEMPTIONS.value,
    RiskReason.REDEMPTIONS_DROP.value,
    RiskReason.SPEND_DROP.value,
    RiskReason.NO_FLAGS.value,
]

_DISPLAY_RANK: Dict[str, int] = {
    reason: rank for rank, reason in enumerate(REASON_DISPLAY_ORDER)
}
_UNKNOWN_RANK = _DISPLAY_RANK[RiskReason.NO_FLAGS.value] - 0.5


# =============================================================================
# Classification
# =============================================================================


def classify_risk(
    evaluation: FlagEvaluation,
    high_risk_weight: int = HIGH_RISK_WEIGHT
) -> RiskResult:
    """
    Classify one account-month from its flag evaluation.

    Args:
        evaluation: Output of evaluate_flags().
        high_risk_weight: Weighted total at or above which the weighted path
            classifies high (default 3).

    Returns:
        RiskResult: Risk level plus reason codes in evaluation order.

    Example:
        >>> ev = FlagEvaluation(
        ...     flags=[RiskReason.LOW_ENGAGEMENT_COMBO, RiskReason.LOW_ACTIVITY],
        ...     weighted_count=3,
        ... )
        >>> classify_risk(ev).level
        <RiskLevel.HIGH: 'high'>
    """
    if evaluation.path == EvaluationPath.ARCHIVED:
        return RiskResult(
            level=RiskLevel.HIGH,
            reasons=[RiskReason.RECENTLY_ARCHIVED.value],
        )

    reasons = [flag.value for flag in evaluation.flags]

    if evaluation.path == EvaluationPath.FROZEN:
        level = (
            RiskLevel.HIGH
            if RiskReason.FROZEN_AND_INACTIVE in evaluation.flags
            else RiskLevel.MEDIUM
        )
        return RiskResult(level=level, reasons=reasons)

    if evaluation.weighted_count >= high_risk_weight:
        level = RiskLevel.HIGH
    elif evaluation.weighted_count >= MEDIUM_RISK_WEIGHT:
        level = RiskLevel.MEDIUM
    else:
        level = RiskLevel.LOW

    return RiskResult(level=level, reasons=reasons or [RiskReason.NO_FLAGS.value])


def no_flags_result() -> RiskResult:
    """Result for an account with nothing to report."""
    return RiskResult(level=RiskLevel.LOW, reasons=[RiskReason.NO_FLAGS.value])


# =============================================================================
# Display Helpers
# =============================================================================


def sort_reasons_for_display(reasons: Optional[Iterable[str]]) -> Optional[List[str]]:
    """
    Order reason codes for display.

    The sort is stable, so unknown codes keep their relative order. None is
    passed through so "not yet assessed" stays distinguishable from no flags.

    Example:
        >>> sort_reasons_for_display(["Spend Drop", "Low Activity"])
        ['Low Activity', 'Spend Drop']
    """
    if reasons is None:
        return None
    return sorted(reasons, key=lambda r: _DISPLAY_RANK.get(r, _UNKNOWN_RANK))


def summarize_distribution(results: Iterable[RiskResult]) -> Dict[str, int]:
    """Count results per risk level, with every level present."""
    counts = Counter(result.level.value for result in results)
    return {level.value: counts.get(level.value, 0) for level in RiskLevel}


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    'HIGH_RISK_WEIGHT',
    'REASON_DISPLAY_ORDER',
    'classify_risk',
    'no_flags_result',
    'sort_reasons_for_display',
    'summarize_distribution',
]
