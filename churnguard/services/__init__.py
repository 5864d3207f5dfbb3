"""
ChurnGuard Services Module

This module contains the business logic of the risk engine. The pure
computations (eligibility, aggregation, flag evaluation, classification) take
plain models and return plain models; the run functions add the database
reads and writes around them.

Services:
- months: month key / calendar helpers
- eligibility: which accounts participate in a month
- rollup: daily facts -> monthly totals
- flags: the eight risk flags and the threshold presets
- classification: flags -> risk level and reason codes
- trending: current-month projected assessment
- historical: closed-month finalization
- risk_summary: effective risk for the dashboard and CRM sync
- ingestion: daily fact and account roster loading

All services are consumed by the jobs (churnguard/jobs/) and the API layer
(churnguard/api/).
"""

# =============================================================================
# Eligibility and Aggregation
# =============================================================================

from churnguard.services.eligibility import (
    is_account_eligible,
    filter_eligible_accounts,
)

from churnguard.services.rollup import (
    aggregate_month,
    aggregate_daily_metrics,
    refresh_monthly_metrics,
)

# =============================================================================
# Flag Evaluation and Classification
# =============================================================================

from churnguard.services.flags import (
    ThresholdSet,
    FlagEvaluation,
    actual_thresholds,
    projected_thresholds,
    months_since_launch,
    evaluate_flags,
)

from churnguard.services.classification import (
    classify_risk,
    sort_reasons_for_display,
    REASON_DISPLAY_ORDER,
)

# =============================================================================
# Trending and Historical Runs
# =============================================================================

from churnguard.services.trending import (
    month_progress,
    calculate_trending_risk,
    run_trending_for_month,
)

from churnguard.services.historical import (
    calculate_historical_risk,
    finalize_month,
)

# =============================================================================
# Read Model and Ingestion
# =============================================================================

from churnguard.services.risk_summary import (
    select_effective_risk,
    fetch_month_risk,
    fetch_account_month_risk,
    fetch_crm_risk_summaries,
)

from churnguard.services.ingestion import (
    ingest_dataset,
    ingest_csv,
    ingest_dataframe,
)


__all__ = [
    # eligibility
    'is_account_eligible',
    'filter_eligible_accounts',
    # rollup
    'aggregate_month',
    'aggregate_daily_metrics',
    'refresh_monthly_metrics',
    # flags
    'ThresholdSet',
    'FlagEvaluation',
    'actual_thresholds',
    'projected_thresholds',
    'months_since_launch',
    'evaluate_flags',
    # classification
    'classify_risk',
    'sort_reasons_for_display',
    'REASON_DISPLAY_ORDER',
    # trending
    'month_progress',
    'calculate_trending_risk',
    'run_trending_for_month',
    # historical
    'calculate_historical_risk',
    'finalize_month',
    # risk_summary
    'select_effective_risk',
    'fetch_month_risk',
    'fetch_account_month_risk',
    'fetch_crm_risk_summaries',
    # ingestion
    'ingest_dataset',
    'ingest_csv',
    'ingest_dataframe',
]
