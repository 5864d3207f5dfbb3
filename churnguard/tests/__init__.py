'''
ChurnGuard Test Suite

Test Modules:
-------------
- test_eligibility.py: launch / archive boundaries, month helpers
- test_rollup.py: monthly aggregation and persistence of totals
- test_flags.py: flag evaluator paths, thresholds and drop clamping
- test_classification.py: risk levels and reason display order
- test_trending.py: month progress, projected thresholds, trending writes
- test_historical.py: closed-month finalization and write-once guard
- test_risk_summary.py: effective risk selection for dashboard and CRM
- test_ingestion.py: CSV / DataFrame validation and upserts
- test_jobs.py: Slack notification idempotency, daily and month-close jobs, CLI
- test_api.py: FastAPI endpoint contracts

Running Tests:
--------------
    pip install -e ".[test]"
    pytest

See conftest.py for shared fixtures.
'''

__all__ = []
