"""
Tests for the risk classifier and the reason display helpers.

Representative cases:
- Archived mid-month: high, ["Recently Archived"]
- Frozen with no texts: high; frozen with texts: medium
- Age 4 months, 250 subs, 20 redemptions: high via combo + activity
- 5 redemptions, 500 subs: medium via Low Monthly Redemptions
"""

from datetime import date

import pytest

from churnguard.models.enums import EvaluationPath, RiskLevel, RiskReason
from churnguard.models.schemas import RiskResult
from churnguard.services.classification import (
    REASON_DISPLAY_ORDER,
    classify_risk,
    no_flags_result,
    sort_reasons_for_display,
    summarize_distribution,
)
from churnguard.services.flags import FlagEvaluation, ThresholdSet, evaluate_flags


FULL = ThresholdSet()


def _classify(snapshot, account, months=12, previous=None):
    return classify_risk(evaluate_flags(snapshot, account, previous, months, FULL))


# =============================================================================
# Representative Cases
# =============================================================================

class TestRepresentativeCases:

    def test_archived_mid_month_is_high(self, make_account, make_snapshot):
        account = make_account(status="ARCHIVED", archived_at=date(2025, 9, 14))

        result = _classify(make_snapshot(), account)

        assert result.level == RiskLevel.HIGH
        assert result.reasons == ["Recently Archived"]

    def test_frozen_and_inactive_is_high(self, make_account, make_snapshot):
        result = _classify(make_snapshot(total_texts_delivered=0), make_account(status="FROZEN"))

        assert result.level == RiskLevel.HIGH
        assert result.reasons == ["Frozen Account Status", "Frozen & Inactive"]

    def test_frozen_with_texts_is_medium(self, make_account, make_snapshot):
        result = _classify(make_snapshot(total_texts_delivered=40), make_account(status="FROZEN"))

        assert result.level == RiskLevel.MEDIUM
        assert result.reasons == ["Frozen Account Status"]

    def test_combo_plus_activity_is_high(self, make_account, make_snapshot):
        result = _classify(
            make_snapshot(avg_active_subs_cnt=250, total_coupons_redeemed=20),
            make_account(),
            months=4,
        )

        assert result.level == RiskLevel.HIGH
        assert result.reasons == ["Low Engagement Combo", "Low Activity"]

    def test_low_redemptions_alone_is_medium(self, make_account, make_snapshot):
        result = _classify(
            make_snapshot(total_coupons_redeemed=5, avg_active_subs_cnt=500),
            make_account(),
        )

        assert result.level == RiskLevel.MEDIUM
        assert result.reasons == ["Low Monthly Redemptions"]

    def test_no_flags_is_low(self, make_account, make_snapshot):
        result = _classify(make_snapshot(), make_account())

        assert result.level == RiskLevel.LOW
        assert result.reasons == ["No flags"]


# =============================================================================
# Weighted Boundaries
# =============================================================================

class TestWeightedBoundaries:

    @pytest.mark.parametrize("weighted_count,expected", [
        (0, RiskLevel.LOW),
        (1, RiskLevel.MEDIUM),
        (2, RiskLevel.MEDIUM),
        (3, RiskLevel.HIGH),
        (6, RiskLevel.HIGH),
    ])
    def test_level_by_weighted_total(self, weighted_count, expected):
        flags = [RiskReason.LOW_ACTIVITY] if weighted_count else []
        evaluation = FlagEvaluation(flags=flags, weighted_count=weighted_count)

        assert classify_risk(evaluation).level == expected

    def test_two_single_weight_flags_are_medium(self):
        evaluation = FlagEvaluation(
            flags=[RiskReason.LOW_MONTHLY_REDEMPTIONS, RiskReason.SPEND_DROP],
            weighted_count=2,
        )

        result = classify_risk(evaluation)

        assert result.level == RiskLevel.MEDIUM
        assert result.reasons == ["Low Monthly Redemptions", "Spend Drop"]

    def test_high_weight_override(self):
        evaluation = FlagEvaluation(
            flags=[RiskReason.LOW_ENGAGEMENT_COMBO, RiskReason.LOW_ACTIVITY],
            weighted_count=3,
        )

        assert classify_risk(evaluation, high_risk_weight=4).level == RiskLevel.MEDIUM

    def test_frozen_path_ignores_weighted_count(self):
        evaluation = FlagEvaluation(
            flags=[RiskReason.FROZEN_ACCOUNT_STATUS],
            weighted_count=9,
            path=EvaluationPath.FROZEN,
        )

        assert classify_risk(evaluation).level == RiskLevel.MEDIUM

    def test_no_flags_result(self):
        result = no_flags_result()

        assert result.level == RiskLevel.LOW
        assert result.reasons == ["No flags"]


# =============================================================================
# Display Helpers
# =============================================================================

class TestReasonDisplayOrder:

    def test_display_order_constant(self):
        assert REASON_DISPLAY_ORDER == [
            "Recently Archived",
            "Frozen Account Status",
            "Frozen & Inactive",
            "Low Activity",
            "Low Engagement Combo",
            "Low Monthly Redemptions",
            "Redemptions Drop",
            "Spend Drop",
            "No flags",
        ]

    def test_sorts_evaluation_order_into_display_order(self):
        reasons = [
            "Low Monthly Redemptions",
            "Low Engagement Combo",
            "Low Activity",
            "Spend Drop",
            "Redemptions Drop",
        ]

        assert sort_reasons_for_display(reasons) == [
            "Low Activity",
            "Low Engagement Combo",
            "Low Monthly Redemptions",
            "Redemptions Drop",
            "Spend Drop",
        ]

    def test_unknown_codes_sort_before_no_flags(self):
        assert sort_reasons_for_display(["No flags", "Legacy Code", "Spend Drop"]) == [
            "Spend Drop",
            "Legacy Code",
            "No flags",
        ]

    def test_none_passes_through(self):
        assert sort_reasons_for_display(None) is None

    def test_does_not_mutate_input(self):
        reasons = ["Spend Drop", "Low Activity"]
        sort_reasons_for_display(reasons)
        assert reasons == ["Spend Drop", "Low Activity"]


class TestSummarizeDistribution:

    def test_counts_every_level(self):
        results = [
            RiskResult(level=RiskLevel.HIGH, reasons=["Recently Archived"]),
            RiskResult(level=RiskLevel.LOW, reasons=["No flags"]),
            RiskResult(level=RiskLevel.LOW, reasons=["No flags"]),
        ]

        assert summarize_distribution(results) == {"low": 2, "medium": 0, "high": 1}

    def test_empty(self):
        assert summarize_distribution([]) == {"low": 0, "medium": 0, "high": 0}
