"""
ChurnGuard Risk Engine Package.

Batch service that rolls daily account usage facts up into monthly metrics and
classifies every eligible account into a low/medium/high churn-risk tier.

Subpackages:
    - api: FastAPI route handlers (risk read model, CRM summaries, run triggers)
    - core: Configuration, database pool, and dependencies
    - models: Pydantic schemas and enums
    - services: Eligibility, aggregation, flag evaluation, classification,
      trending and historical risk computation
    - jobs: Daily trending run, month-close finalization, Slack notifications
    - sql: Parameterized SQL queries
"""

__version__ = "1.0.0"
