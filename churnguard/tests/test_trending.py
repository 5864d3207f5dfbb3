"""
Tests for the trending risk calculator.

Test Classes:
- TestMonthProgress: elapsed fraction of the month
- TestCalculateTrendingRisk: projected thresholds and day-1 behavior
- TestSameDaySnapshots: prior-month comparison snapshots
- TestRunTrendingForMonth: end-to-end run against a mock pool, failed reads
"""

from datetime import date
from unittest.mock import AsyncMock, patch

import asyncpg
import pytest

from churnguard.models.enums import RiskLevel
from churnguard.services.historical import calculate_historical_risk
from churnguard.services.trending import (
    build_same_day_snapshots,
    calculate_trending_risk,
    month_progress,
    run_trending_for_month,
)
from churnguard.tests.conftest import account_row, build_daily_records, daily_row


# =============================================================================
# Month Progress
# =============================================================================

class TestMonthProgress:

    @pytest.mark.parametrize("as_of,expected", [
        (date(2025, 9, 1), 0.0),
        (date(2025, 9, 10), 0.3),
        (date(2025, 9, 30), 29 / 30),
        (date(2025, 2, 15), 14 / 28),
    ])
    def test_progress(self, as_of, expected):
        assert month_progress(as_of) == pytest.approx(expected)

    def test_progress_never_reaches_one(self):
        assert month_progress(date(2024, 12, 31)) < 1


# =============================================================================
# Trending Calculation
# =============================================================================

class TestCalculateTrendingRisk:

    def test_partial_month_redemptions_judged_against_projection(
        self, make_account, make_snapshot, make_monthly_record, settings
    ):
        # 30-day month, day 10: projected Low Monthly Redemptions threshold is 3
        account = make_account()
        current = make_snapshot(total_coupons_redeemed=5)
        record = make_monthly_record(total_coupons_redeemed=5)

        trending = calculate_trending_risk(current, account, None, date(2025, 9, 10), settings)
        historical = calculate_historical_risk(record, account, None, settings)

        assert trending.level == RiskLevel.LOW
        assert trending.reasons == ["No flags"]
        assert historical.level == RiskLevel.MEDIUM
        assert historical.reasons == ["Low Monthly Redemptions"]

    def test_low_redemptions_under_projection_fire(self, make_account, make_snapshot, settings):
        result = calculate_trending_risk(
            make_snapshot(total_coupons_redeemed=2),
            make_account(),
            None,
            date(2025, 9, 10),
            settings,
        )

        assert result.level == RiskLevel.MEDIUM
        assert result.reasons == ["Low Monthly Redemptions"]

    def test_subscriber_thresholds_are_not_scaled(self, make_account, make_snapshot, settings):
        result = calculate_trending_risk(
            make_snapshot(avg_active_subs_cnt=280),
            make_account(),
            None,
            date(2025, 9, 3),
            settings,
        )

        assert result.reasons == ["Low Activity"]

    def test_day_one_is_low_for_weighted_path(self, make_account, make_snapshot, settings):
        result = calculate_trending_risk(
            make_snapshot(total_coupons_redeemed=0, avg_active_subs_cnt=0),
            make_account(),
            None,
            date(2025, 9, 1),
            settings,
        )

        assert result.level == RiskLevel.LOW
        assert result.reasons == ["No flags"]

    def test_day_one_still_reports_frozen(self, make_account, make_snapshot, settings):
        result = calculate_trending_risk(
            make_snapshot(total_texts_delivered=0),
            make_account(status="FROZEN"),
            None,
            date(2025, 9, 1),
            settings,
        )

        assert result.level == RiskLevel.HIGH
        assert result.reasons == ["Frozen Account Status", "Frozen & Inactive"]

    def test_day_one_still_reports_archive(self, make_account, make_snapshot, settings):
        result = calculate_trending_risk(
            make_snapshot(),
            make_account(archived_at=date(2025, 9, 1)),
            None,
            date(2025, 9, 1),
            settings,
        )

        assert result.level == RiskLevel.HIGH
        assert result.reasons == ["Recently Archived"]

    def test_spend_growth_against_same_day_prior_is_not_a_drop(
        self, make_account, make_snapshot, settings
    ):
        result = calculate_trending_risk(
            make_snapshot(total_spend=1200.0),
            make_account(),
            make_snapshot(month="2025-08", total_spend=1000.0),
            date(2025, 9, 20),
            settings,
        )

        assert "Spend Drop" not in result.reasons


# =============================================================================
# Same-Day Snapshots
# =============================================================================

class TestSameDaySnapshots:

    def test_only_accounts_with_prior_facts(self):
        prior = build_daily_records("A1", date(2025, 8, 1), 10, spend=20.0, redemptions=3)

        snapshots = build_same_day_snapshots(prior, "2025-08")

        assert list(snapshots) == ["A1"]
        assert snapshots["A1"].month == "2025-08"
        assert snapshots["A1"].total_spend == pytest.approx(200.0)
        assert snapshots["A1"].total_coupons_redeemed == 30

    def test_empty(self):
        assert build_same_day_snapshots([], "2025-08") == {}


# =============================================================================
# End-to-End Run
# =============================================================================

class TestRunTrendingForMonth:

    @staticmethod
    def _patch_pools(pool):
        return (
            patch('churnguard.services.rollup.get_db_pool', new=AsyncMock(return_value=pool)),
            patch('churnguard.services.trending.get_db_pool', new=AsyncMock(return_value=pool)),
        )

    async def test_run_writes_totals_and_trending_risk(
        self, mock_db_pool, mock_conn, make_account, settings
    ):
        as_of = date(2025, 9, 10)
        accounts = [
            make_account("A1"),
            make_account("A2", status="FROZEN"),
            make_account("A3", launched_at=date(2025, 10, 1)),
        ]
        current = (
            build_daily_records("A1", date(2025, 9, 1), 10, spend=50.0, redemptions=1, subs=500)
            + build_daily_records("A2", date(2025, 9, 1), 10, texts=0, subs=500)
        )
        prior = build_daily_records("A1", date(2025, 8, 1), 10, spend=50.0, redemptions=1, subs=500)
        mock_conn.fetch.side_effect = [
            [account_row(a) for a in accounts],
            [daily_row(r) for r in current],
            [daily_row(r) for r in prior],
        ]

        rollup_patch, trending_patch = self._patch_pools(mock_db_pool)
        with rollup_patch, trending_patch:
            result = await run_trending_for_month(as_of, settings)

        assert result.month == "2025-09"
        assert result.mode == "trending"
        assert result.accounts_evaluated == 2
        assert result.rows_written == 2
        assert result.distribution == {"low": 1, "medium": 0, "high": 1}

        # Current window through as_of, prior window through the same day
        assert mock_conn.fetch.call_args_list[1].args[1:] == (date(2025, 9, 1), as_of)
        assert mock_conn.fetch.call_args_list[2].args[1:] == (date(2025, 8, 1), date(2025, 8, 10))

        upserts = {
            call.args[1]: call.args
            for call in mock_conn.execute.call_args_list
            if "INSERT INTO monthly_metrics" in call.args[0]
        }
        assert set(upserts) == {"A1", "A2"}
        assert upserts["A1"][4:11] == (500.0, 1000, 10, 500, 10, "low", ["No flags"])
        assert upserts["A2"][9:11] == ("high", ["Frozen Account Status", "Frozen & Inactive"])
        assert "historical_risk_level" not in mock_conn.execute.call_args_list[0].args[0]

        delete_call = mock_conn.execute.call_args_list[-1]
        assert delete_call.args[0].strip().startswith("DELETE")
        assert delete_call.args[2] == ["A1", "A2"]

    async def test_prior_window_clamps_to_short_month(
        self, mock_db_pool, mock_conn, make_account, settings
    ):
        mock_conn.fetch.side_effect = [[account_row(make_account("A1"))], [], []]

        rollup_patch, trending_patch = self._patch_pools(mock_db_pool)
        with rollup_patch, trending_patch:
            result = await run_trending_for_month(date(2025, 3, 31), settings)

        assert result.month == "2025-03"
        assert mock_conn.fetch.call_args_list[2].args[1:] == (date(2025, 2, 1), date(2025, 2, 28))

    async def test_account_without_facts_gets_zero_row(
        self, mock_db_pool, mock_conn, make_account, settings
    ):
        mock_conn.fetch.side_effect = [[account_row(make_account("A1"))], [], []]

        rollup_patch, trending_patch = self._patch_pools(mock_db_pool)
        with rollup_patch, trending_patch:
            result = await run_trending_for_month(date(2025, 9, 15), settings)

        assert result.rows_written == 1
        upsert = mock_conn.execute.call_args_list[0].args
        assert upsert[4:9] == (0.0, 0, 0, 0, 0)
        assert upsert[9] == "high"
        assert upsert[10] == ["Low Monthly Redemptions", "Low Engagement Combo", "Low Activity"]

    @pytest.mark.parametrize("failing_read", [1, 2])
    async def test_failed_read_aborts_without_writes(
        self, mock_db_pool, mock_conn, make_account, settings, failing_read
    ):
        reads = [[account_row(make_account("A1"))], [], []]
        reads[failing_read] = asyncpg.PostgresError("connection was closed in the middle of operation")
        mock_conn.fetch.side_effect = reads

        rollup_patch, trending_patch = self._patch_pools(mock_db_pool)
        with rollup_patch, trending_patch:
            with pytest.raises(asyncpg.PostgresError):
                await run_trending_for_month(date(2025, 9, 15), settings)

        mock_conn.execute.assert_not_awaited()
        mock_conn.transaction.assert_not_called()
