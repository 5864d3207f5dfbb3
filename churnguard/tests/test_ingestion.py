"""
Tests for daily fact and account roster ingestion.

Test Classes:
- TestRequiredColumns: per-dataset required column validation
- TestDataTypes: numeric, date and non-negativity checks
- TestGrainUniqueness: duplicate (account_id, date) / account_id rows
- TestNormalization: header case, nullable subscriber counts, status case
- TestIngestCsv: CSV parsing entry point
- TestIngestDataset: end-to-end ingestion with upserts against a mock pool
"""

import io
from datetime import date
from unittest.mock import AsyncMock, patch

import numpy as np
import pandas as pd
import pytest

from churnguard.models import DatasetType
from churnguard.services.ingestion import (
    ingest_csv,
    ingest_dataframe,
    ingest_dataset,
    validate_columns,
    validate_data_types,
    validate_grain_uniqueness,
)
from churnguard.tests.conftest import create_csv_bytes


# =============================================================================
# Required Columns
# =============================================================================

class TestRequiredColumns:

    def test_valid_daily_frame(self, sample_daily_df):
        assert validate_columns(sample_daily_df, DatasetType.DAILY_METRICS) == []

    def test_missing_daily_column(self, sample_daily_df):
        errors = validate_columns(
            sample_daily_df.drop(columns=['coupons_redeemed']), DatasetType.DAILY_METRICS
        )

        assert [e.field for e in errors] == ['coupons_redeemed']

    def test_subscriber_count_is_optional(self, sample_daily_df):
        frame = sample_daily_df.drop(columns=['active_subs_cnt'])

        assert validate_columns(frame, DatasetType.DAILY_METRICS) == []

    def test_missing_roster_columns(self):
        frame = pd.DataFrame({'account_id': ['ACC-1']})

        errors = validate_columns(frame, DatasetType.ACCOUNTS)

        assert {e.field for e in errors} == {'status', 'launched_at'}

    def test_headers_are_case_insensitive(self, sample_daily_df):
        frame = sample_daily_df.rename(columns=str.upper)

        assert validate_columns(frame, DatasetType.DAILY_METRICS) == []


# =============================================================================
# Data Types
# =============================================================================

class TestDataTypes:

    def test_non_numeric_spend(self, sample_daily_df):
        frame = sample_daily_df.copy()
        frame['total_spend'] = frame['total_spend'].astype(object)
        frame.loc[1, 'total_spend'] = 'twelve'

        errors = validate_data_types(frame, DatasetType.DAILY_METRICS)

        assert len(errors) == 1
        assert errors[0].field == 'total_spend'
        assert errors[0].row_number == 2

    def test_negative_counts(self, sample_daily_df):
        frame = sample_daily_df.copy()
        frame.loc[0, 'coupons_redeemed'] = -1

        errors = validate_data_types(frame, DatasetType.DAILY_METRICS)

        assert [e.field for e in errors] == ['coupons_redeemed']
        assert 'negative' in errors[0].message

    def test_negative_spend_is_allowed(self, sample_daily_df):
        frame = sample_daily_df.copy()
        frame.loc[0, 'total_spend'] = -5.0

        assert validate_data_types(frame, DatasetType.DAILY_METRICS) == []

    def test_unparseable_daily_date(self, sample_daily_df):
        frame = sample_daily_df.copy()
        frame.loc[2, 'date'] = 'not-a-date'

        errors = validate_data_types(frame, DatasetType.DAILY_METRICS)

        assert [e.field for e in errors] == ['date']

    def test_missing_account_id(self, sample_daily_df):
        frame = sample_daily_df.copy()
        frame.loc[0, 'account_id'] = None

        errors = validate_data_types(frame, DatasetType.DAILY_METRICS)

        assert [e.field for e in errors] == ['account_id']

    def test_blank_roster_dates_are_allowed(self, sample_accounts_df):
        assert validate_data_types(sample_accounts_df, DatasetType.ACCOUNTS) == []

    def test_bad_roster_date(self, sample_accounts_df):
        frame = sample_accounts_df.copy()
        frame.loc[0, 'archived_at'] = 'someday'

        errors = validate_data_types(frame, DatasetType.ACCOUNTS)

        assert [e.field for e in errors] == ['archived_at']


# =============================================================================
# Grain Uniqueness
# =============================================================================

class TestGrainUniqueness:

    def test_duplicate_account_day(self, sample_daily_df):
        frame = pd.concat([sample_daily_df, sample_daily_df.iloc[[0]]], ignore_index=True)

        errors = validate_grain_uniqueness(frame, DatasetType.DAILY_METRICS)

        assert len(errors) == 1
        assert errors[0].field == 'grain'
        assert 'Found 2 duplicate rows' in errors[0].message

    def test_same_day_different_accounts_is_fine(self, sample_daily_df):
        assert validate_grain_uniqueness(sample_daily_df, DatasetType.DAILY_METRICS) == []

    def test_duplicate_roster_entry(self, sample_accounts_df):
        frame = pd.concat([sample_accounts_df, sample_accounts_df.iloc[[1]]], ignore_index=True)

        errors = validate_grain_uniqueness(frame, DatasetType.ACCOUNTS)

        assert len(errors) == 1


# =============================================================================
# Normalization
# =============================================================================

class TestNormalization:

    def test_daily_normalization(self, sample_daily_df):
        normalized, errors = ingest_dataframe(
            sample_daily_df.rename(columns=str.upper), DatasetType.DAILY_METRICS
        )

        assert errors == []
        assert list(normalized['date']) == [date(2025, 9, 1), date(2025, 9, 2), date(2025, 9, 1)]
        assert normalized['active_subs_cnt'].dtype == 'Int64'
        assert pd.isna(normalized.loc[1, 'active_subs_cnt'])
        assert normalized.loc[0, 'active_subs_cnt'] == 410

    def test_missing_subscriber_column_becomes_null(self, sample_daily_df):
        normalized, errors = ingest_dataframe(
            sample_daily_df.drop(columns=['active_subs_cnt']), DatasetType.DAILY_METRICS
        )

        assert errors == []
        assert normalized['active_subs_cnt'].isna().all()

    def test_roster_normalization(self, sample_accounts_df):
        normalized, errors = ingest_dataframe(sample_accounts_df, DatasetType.ACCOUNTS)

        assert errors == []
        assert list(normalized['status']) == ['ACTIVE', 'FROZEN']
        assert normalized.loc[0, 'launched_at'] == date(2024, 11, 4)
        assert normalized.loc[1, 'earliest_unit_archived_at'] == date(2025, 8, 20)
        assert pd.isna(normalized.loc[1, 'hubspot_id'])

    def test_empty_frame(self):
        normalized, errors = ingest_dataframe(pd.DataFrame(), DatasetType.DAILY_METRICS)

        assert normalized is None
        assert errors[0].field == 'file'

    @pytest.mark.slow
    def test_large_synthetic_frame(self):
        rng = np.random.default_rng(42)
        days = pd.date_range('2025-01-01', '2025-12-31', freq='D')
        accounts = [f'ACC-{i:04d}' for i in range(50)]
        index = pd.MultiIndex.from_product([accounts, days], names=['account_id', 'date'])
        frame = pd.DataFrame({
            'total_spend': rng.gamma(2.0, 20.0, len(index)).round(2),
            'total_texts_delivered': rng.poisson(120, len(index)),
            'coupons_redeemed': rng.poisson(2, len(index)),
            'active_subs_cnt': rng.integers(100, 900, len(index)),
        }, index=index).reset_index()

        normalized, errors = ingest_dataframe(frame, DatasetType.DAILY_METRICS)

        assert errors == []
        assert len(normalized) == 50 * 365


# =============================================================================
# CSV Entry Point
# =============================================================================

class TestIngestCsv:

    def test_valid_csv(self, sample_daily_df):
        normalized, errors = ingest_csv(
            io.BytesIO(create_csv_bytes(sample_daily_df)), DatasetType.DAILY_METRICS
        )

        assert errors == []
        assert len(normalized) == 3

    def test_account_ids_stay_strings(self):
        frame = pd.DataFrame({
            'account_id': ['00042'],
            'status': ['ACTIVE'],
            'launched_at': ['2025-01-01'],
            'hubspot_id': ['0099'],
        })

        normalized, errors = ingest_csv(io.BytesIO(create_csv_bytes(frame)), DatasetType.ACCOUNTS)

        assert errors == []
        assert normalized.loc[0, 'account_id'] == '00042'
        assert normalized.loc[0, 'hubspot_id'] == '0099'

    def test_empty_file(self):
        normalized, errors = ingest_csv(io.BytesIO(b''), DatasetType.DAILY_METRICS)

        assert normalized is None
        assert errors[0].field == 'file'


# =============================================================================
# End-to-End Ingestion
# =============================================================================

class TestIngestDataset:

    async def test_daily_upsert(self, mock_db_pool, mock_conn, sample_daily_df):
        with patch('churnguard.services.ingestion.get_db_pool', new=AsyncMock(return_value=mock_db_pool)):
            result = await ingest_dataset(DatasetType.DAILY_METRICS, df=sample_daily_df)

        assert result.success is True
        assert result.rows_processed == 3
        assert result.rows_affected == 3

        query, records = mock_conn.executemany.call_args.args
        assert 'ON CONFLICT (account_id, date)' in query
        assert records[0] == ('ACC-1', date(2025, 9, 1), 12.5, 120, 2, 410)
        assert records[1][5] is None
        mock_conn.transaction.assert_called_once()

    async def test_roster_upsert(self, mock_db_pool, mock_conn, sample_accounts_df):
        with patch('churnguard.services.ingestion.get_db_pool', new=AsyncMock(return_value=mock_db_pool)):
            result = await ingest_dataset(
                DatasetType.ACCOUNTS,
                file=io.BytesIO(create_csv_bytes(sample_accounts_df)),
            )

        assert result.success is True
        query, records = mock_conn.executemany.call_args.args
        assert 'ON CONFLICT (account_id)' in query
        assert records[0] == (
            'ACC-1', 'Harbor Street Coffee', 'ACTIVE',
            date(2024, 11, 4), None, None, '18233004551',
        )

    async def test_validation_failure_writes_nothing(self, mock_db_pool, mock_conn, sample_daily_df):
        frame = sample_daily_df.drop(columns=['date'])

        with patch('churnguard.services.ingestion.get_db_pool', new=AsyncMock(return_value=mock_db_pool)):
            result = await ingest_dataset(DatasetType.DAILY_METRICS, df=frame)

        assert result.success is False
        assert result.errors[0].field == 'date'
        mock_conn.executemany.assert_not_called()

    async def test_requires_exactly_one_source(self, sample_daily_df):
        neither = await ingest_dataset(DatasetType.DAILY_METRICS)
        both = await ingest_dataset(
            DatasetType.DAILY_METRICS,
            file=io.BytesIO(create_csv_bytes(sample_daily_df)),
            df=sample_daily_df,
        )

        assert neither.success is False
        assert both.success is False
        assert neither.errors[0].field == 'source'

    async def test_database_error_is_reported(self, mock_db_pool, mock_conn, sample_daily_df):
        mock_conn.executemany.side_effect = RuntimeError("connection reset")

        with patch('churnguard.services.ingestion.get_db_pool', new=AsyncMock(return_value=mock_db_pool)):
            result = await ingest_dataset(DatasetType.DAILY_METRICS, df=sample_daily_df)

        assert result.success is False
        assert result.rows_processed == 3
        assert result.errors[0].field == 'upsert'
        assert 'connection reset' in result.errors[0].message
