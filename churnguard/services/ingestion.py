"""
Daily Fact and Account Roster Ingestion Service

This module loads the two source datasets of the risk engine from CSV files or
pandas DataFrames into PostgreSQL, with schema validation in front of the
upsert.

Datasets:
- daily_metrics: one row per account per day
  (grain: account_id + date)
- accounts: the account roster
  (grain: account_id)

Key Features:
- Required column validation per dataset
- Grain uniqueness enforcement
- Numeric, date and non-negativity validation
- Normalization (lower-case headers, coerced dates, upper-cased status)
- Upsert logic to the daily_metrics / accounts tables

Nothing is written when validation fails.
"""

from typing import Any, BinaryIO, List, Optional, Tuple
import io
import logging

import pandas as pd

from churnguard.core.database import get_db_pool
from churnguard.models import (
    DatasetType,
    IngestionResult,
    ValidationError,
)

# Configure module logger
logger = logging.getLogger(__name__)

# =============================================================================
# CONSTANTS - Required Columns
# =============================================================================

DAILY_REQUIRED_COLUMNS: List[str] = [
    'account_id',
    'date',
    'total_spend',
    'total_texts_delivered',
    'coupons_redeemed',
]

DAILY_OPTIONAL_COLUMNS: List[str] = [
    'active_subs_cnt',
]

ACCOUNT_REQUIRED_COLUMNS: List[str] = [
    'account_id',
    'status',
    'launched_at',
]

ACCOUNT_OPTIONAL_COLUMNS: List[str] = [
    'account_name',
    'archived_at',
    'earliest_unit_archived_at',
    'hubspot_id',
]

DAILY_NUMERIC_COLUMNS: List[str] = [
    'total_spend',
    'total_texts_delivered',
    'coupons_redeemed',
    'active_subs_cnt',
]

# Counts that may never be negative
NON_NEGATIVE_COLUMNS: List[str] = [
    'total_texts_delivered',
    'coupons_redeemed',
    'active_subs_cnt',
]

ACCOUNT_DATE_COLUMNS: List[str] = [
    'launched_at',
    'archived_at',
    'earliest_unit_archived_at',
]

MAX_REPORTED_ROWS = 5


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def _get_required_columns(dataset: DatasetType) -> List[str]:
    if dataset == DatasetType.DAILY_METRICS:
        return DAILY_REQUIRED_COLUMNS
    return ACCOUNT_REQUIRED_COLUMNS


def _get_grain_columns(dataset: DatasetType) -> List[str]:
    if dataset == DatasetType.DAILY_METRICS:
        return ['account_id', 'date']
    return ['account_id']


def _row_error(field: str, message: str, indices: List[Any]) -> ValidationError:
    # DataFrame index is 0-based; row numbers are 1-based
    return ValidationError(
        field=field,
        message=f"{message}. First invalid rows at indices: {indices[:MAX_REPORTED_ROWS]}",
        row_number=(int(indices[0]) + 1) if indices else None
    )


def _none_if_missing(value: Any) -> Any:
    return None if pd.isna(value) else value


# =============================================================================
# VALIDATION FUNCTIONS
# =============================================================================

def validate_columns(
    df: pd.DataFrame,
    dataset: DatasetType
) -> List[ValidationError]:
    """
    Validate that all required columns are present in the DataFrame.

    Args:
        df: The pandas DataFrame to validate
        dataset: Which dataset the frame claims to be

    Returns:
        List of ValidationError objects for any missing columns
    """
    df_columns = set(df.columns.str.lower().str.strip())
    return [
        ValidationError(
            field=col,
            message=f"Required column '{col}' is missing for {dataset.value}",
            row_number=None
        )
        for col in _get_required_columns(dataset)
        if col not in df_columns
    ]


def validate_grain_uniqueness(
    df: pd.DataFrame,
    dataset: DatasetType
) -> List[ValidationError]:
    """
    Validate that there are no duplicate rows per the dataset's grain.

    - daily_metrics grain: account_id + date
    - accounts grain: account_id

    Args:
        df: Normalized DataFrame
        dataset: Which dataset the frame claims to be

    Returns:
        List of ValidationError objects for any duplicate rows
    """
    grain_columns = _get_grain_columns(dataset)
    if any(col not in df.columns for col in grain_columns):
        # Missing grain columns are reported by validate_columns
        return []

    duplicated_mask = df.duplicated(subset=grain_columns, keep=False)
    duplicate_count = int(duplicated_mask.sum())
    if duplicate_count == 0:
        return []

    return [_row_error(
        'grain',
        f"Found {duplicate_count} duplicate rows for {dataset.value} grain "
        f"({', '.join(grain_columns)})",
        df[duplicated_mask].index.tolist()
    )]


def validate_data_types(
    df: pd.DataFrame,
    dataset: DatasetType
) -> List[ValidationError]:
    """
    Validate that columns have the correct data types.

    Checks:
    - account_id is present on every row
    - daily_metrics: date parses, numeric columns are numeric, counts are
      non-negative
    - accounts: date columns parse when present

    Args:
        df: The pandas DataFrame to validate (raw values, lower-case headers)
        dataset: Which dataset the frame claims to be

    Returns:
        List of ValidationError objects for any type issues
    """
    errors: List[ValidationError] = []

    if 'account_id' in df.columns:
        ids = df['account_id'].astype(str).str.strip()
        missing_mask = df['account_id'].isna() | (ids == '')
        if missing_mask.any():
            errors.append(_row_error(
                'account_id',
                f"Found {int(missing_mask.sum())} rows without account_id",
                df[missing_mask].index.tolist()
            ))

    if dataset == DatasetType.DAILY_METRICS:
        date_columns = ['date']
    else:
        date_columns = [c for c in ACCOUNT_DATE_COLUMNS if c in df.columns]

    for col in date_columns:
        if col not in df.columns:
            continue
        parsed = pd.to_datetime(df[col], errors='coerce')
        # Daily facts need a date on every row; roster dates are optional
        if dataset == DatasetType.DAILY_METRICS:
            invalid_mask = parsed.isna()
        else:
            invalid_mask = parsed.isna() & df[col].notna() & (df[col].astype(str).str.strip() != '')
        if invalid_mask.any():
            errors.append(_row_error(
                col,
                f"Found {int(invalid_mask.sum())} invalid date values in column '{col}'",
                df[invalid_mask].index.tolist()
            ))

    if dataset == DatasetType.DAILY_METRICS:
        for col in DAILY_NUMERIC_COLUMNS:
            if col not in df.columns:
                continue
            numeric_series = pd.to_numeric(df[col], errors='coerce')
            invalid_mask = numeric_series.isna() & df[col].notna()
            if invalid_mask.any():
                errors.append(_row_error(
                    col,
                    f"Found {int(invalid_mask.sum())} non-numeric values in column '{col}'",
                    df[invalid_mask].index.tolist()
                ))
            if col in NON_NEGATIVE_COLUMNS:
                negative_mask = numeric_series < 0
                if negative_mask.any():
                    errors.append(_row_error(
                        col,
                        f"Found {int(negative_mask.sum())} negative values in column '{col}'",
                        df[negative_mask].index.tolist()
                    ))

    return errors


# =============================================================================
# NORMALIZATION
# =============================================================================

def _normalize_dataframe(df: pd.DataFrame, dataset: DatasetType) -> pd.DataFrame:
    """
    Normalize a validated DataFrame for upsert.

    Args:
        df: Validated DataFrame with lower-case headers
        dataset: Which dataset the frame is

    Returns:
        Normalized DataFrame with coerced types and every expected column
    """
    df_normalized = df.copy()
    df_normalized['account_id'] = df_normalized['account_id'].astype(str).str.strip()

    if dataset == DatasetType.DAILY_METRICS:
        df_normalized['date'] = pd.to_datetime(df_normalized['date']).dt.date
        df_normalized['total_spend'] = pd.to_numeric(
            df_normalized['total_spend'], errors='coerce'
        ).fillna(0.0)
        for col in ['total_texts_delivered', 'coupons_redeemed']:
            df_normalized[col] = pd.to_numeric(
                df_normalized[col], errors='coerce'
            ).fillna(0).astype(int)
        if 'active_subs_cnt' in df_normalized.columns:
            # Nullable: a missing count is "not reported", not zero
            df_normalized['active_subs_cnt'] = pd.to_numeric(
                df_normalized['active_subs_cnt'], errors='coerce'
            ).round().astype('Int64')
        else:
            df_normalized['active_subs_cnt'] = pd.Series(
                [pd.NA] * len(df_normalized), index=df_normalized.index, dtype='Int64'
            )
        return df_normalized

    df_normalized['status'] = df_normalized['status'].fillna('ACTIVE').astype(str).str.upper().str.strip()
    for col in ACCOUNT_DATE_COLUMNS:
        if col in df_normalized.columns:
            df_normalized[col] = pd.to_datetime(df_normalized[col], errors='coerce').dt.date
        else:
            df_normalized[col] = None
    for col in ['account_name', 'hubspot_id']:
        if col in df_normalized.columns:
            df_normalized[col] = df_normalized[col].map(
                lambda v: None if pd.isna(v) else str(v).strip()
            )
        else:
            df_normalized[col] = None
    return df_normalized


# =============================================================================
# PARSING FUNCTIONS
# =============================================================================

def ingest_dataframe(
    df: pd.DataFrame,
    dataset: DatasetType
) -> Tuple[Optional[pd.DataFrame], List[ValidationError]]:
    """
    Validate and normalize a DataFrame for ingestion.

    Performs the following steps:
    1. Lower-case and strip headers
    2. Validate required columns
    3. Validate data types
    4. Normalize
    5. Validate grain uniqueness

    Args:
        df: Raw DataFrame
        dataset: Which dataset the frame claims to be

    Returns:
        Tuple of (normalized DataFrame or None, list of validation errors)
    """
    if df.empty:
        return None, [ValidationError(
            field='file',
            message='Input contains no data rows',
            row_number=None
        )]

    df = df.copy()
    df.columns = df.columns.str.lower().str.strip()

    column_errors = validate_columns(df, dataset)
    if column_errors:
        return None, column_errors

    type_errors = validate_data_types(df, dataset)
    if type_errors:
        return None, type_errors

    df = _normalize_dataframe(df, dataset)

    grain_errors = validate_grain_uniqueness(df, dataset)
    if grain_errors:
        return None, grain_errors

    return df, []


def ingest_csv(
    file: BinaryIO,
    dataset: DatasetType
) -> Tuple[Optional[pd.DataFrame], List[ValidationError]]:
    """
    Parse and validate a CSV file for ingestion.

    Args:
        file: Binary or text file object containing CSV data
        dataset: Which dataset the file claims to be

    Returns:
        Tuple of (validated DataFrame or None, list of validation errors)
    """
    try:
        content = file.read()
        if isinstance(content, bytes):
            file_like = io.BytesIO(content)
        else:
            file_like = io.StringIO(content)

        df = pd.read_csv(file_like, dtype={'account_id': str, 'hubspot_id': str})
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        return None, [ValidationError(
            field='file',
            message=f'Failed to parse CSV file: {str(e)}',
            row_number=None
        )]

    logger.info(f"Parsed CSV with {len(df)} rows and {len(df.columns)} columns")
    return ingest_dataframe(df, dataset)


# =============================================================================
# UPSERT FUNCTIONS
# =============================================================================

async def upsert_daily_metrics(df: pd.DataFrame) -> int:
    """
    Upsert daily facts to the daily_metrics table.

    Args:
        df: Normalized daily_metrics DataFrame

    Returns:
        Number of rows affected
    """
    if df.empty:
        return 0

    pool = await get_db_pool()

    upsert_query = """
        INSERT INTO daily_metrics (
            account_id, date,
            total_spend, total_texts_delivered, coupons_redeemed, active_subs_cnt,
            created_at, updated_at
        ) VALUES (
            $1, $2, $3, $4, $5, $6, NOW(), NOW()
        )
        ON CONFLICT (account_id, date)
        DO UPDATE SET
            total_spend = EXCLUDED.total_spend,
            total_texts_delivered = EXCLUDED.total_texts_delivered,
            coupons_redeemed = EXCLUDED.coupons_redeemed,
            active_subs_cnt = EXCLUDED.active_subs_cnt,
            updated_at = NOW()
    """

    records = []
    for _, row in df.iterrows():
        subs = _none_if_missing(row['active_subs_cnt'])
        records.append((
            row['account_id'],
            row['date'],
            float(row['total_spend']),
            int(row['total_texts_delivered']),
            int(row['coupons_redeemed']),
            int(subs) if subs is not None else None,
        ))

    async with pool.acquire() as conn:
        async with conn.transaction():
            await conn.executemany(upsert_query, records)

    rows_affected = len(records)
    logger.info(f"Upserted {rows_affected} rows to daily_metrics")

    return rows_affected


async def upsert_accounts(df: pd.DataFrame) -> int:
    """
    Upsert roster entries to the accounts table.

    Args:
        df: Normalized accounts DataFrame

    Returns:
        Number of rows affected
    """
    if df.empty:
        return 0

    pool = await get_db_pool()

    upsert_query = """
        INSERT INTO accounts (
            account_id, account_name, status,
            launched_at, archived_at, earliest_unit_archived_at, hubspot_id,
            created_at, updated_at
        ) VALUES (
            $1, $2, $3, $4, $5, $6, $7, NOW(), NOW()
        )
        ON CONFLICT (account_id)
        DO UPDATE SET
            account_name = EXCLUDED.account_name,
            status = EXCLUDED.status,
            launched_at = EXCLUDED.launched_at,
            archived_at = EXCLUDED.archived_at,
            earliest_unit_archived_at = EXCLUDED.earliest_unit_archived_at,
            hubspot_id = EXCLUDED.hubspot_id,
            updated_at = NOW()
    """

    records = []
    for _, row in df.iterrows():
        records.append((
            row['account_id'],
            _none_if_missing(row['account_name']),
            row['status'],
            _none_if_missing(row['launched_at']),
            _none_if_missing(row['archived_at']),
            _none_if_missing(row['earliest_unit_archived_at']),
            _none_if_missing(row['hubspot_id']),
        ))

    async with pool.acquire() as conn:
        async with conn.transaction():
            await conn.executemany(upsert_query, records)

    rows_affected = len(records)
    logger.info(f"Upserted {rows_affected} rows to accounts")

    return rows_affected


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

async def ingest_dataset(
    dataset: DatasetType,
    file: Optional[BinaryIO] = None,
    df: Optional[pd.DataFrame] = None
) -> IngestionResult:
    """
    Main ingestion entry point for daily facts and the account roster.

    Orchestrates the complete ingestion pipeline:
    1. Parse source (CSV file or DataFrame)
    2. Validate and normalize
    3. Upsert to the dataset's table

    Args:
        dataset: Which dataset is being loaded
        file: CSV file object (exactly one of file / df is required)
        df: Pre-loaded DataFrame

    Returns:
        IngestionResult with success status, row counts, and any errors
    """
    logger.info(f"Starting ingestion for {dataset.value}")

    if (file is None) == (df is None):
        return IngestionResult(
            success=False,
            rows_processed=0,
            rows_affected=0,
            errors=[ValidationError(
                field='source',
                message="Exactly one of a CSV file or a DataFrame is required",
                row_number=None
            )]
        )

    if file is not None:
        normalized, errors = ingest_csv(file, dataset)
    else:
        normalized, errors = ingest_dataframe(df, dataset)

    if errors or normalized is None:
        return IngestionResult(
            success=False,
            rows_processed=0,
            rows_affected=0,
            errors=errors
        )

    rows_processed = len(normalized)

    try:
        if dataset == DatasetType.DAILY_METRICS:
            rows_affected = await upsert_daily_metrics(normalized)
        else:
            rows_affected = await upsert_accounts(normalized)
    except Exception as e:
        logger.exception(f"Error during upsert for {dataset.value}")
        return IngestionResult(
            success=False,
            rows_processed=rows_processed,
            rows_affected=0,
            errors=[ValidationError(
                field='upsert',
                message=f"Database upsert failed: {str(e)}",
                row_number=None
            )]
        )

    logger.info(f"Ingestion complete: {rows_processed} rows processed, {rows_affected} rows affected")

    return IngestionResult(
        success=True,
        rows_processed=rows_processed,
        rows_affected=rows_affected,
        errors=[]
    )


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = [
    'DAILY_REQUIRED_COLUMNS',
    'ACCOUNT_REQUIRED_COLUMNS',
    'validate_columns',
    'validate_grain_uniqueness',
    'validate_data_types',
    'ingest_dataframe',
    'ingest_csv',
    'upsert_daily_metrics',
    'upsert_accounts',
    'ingest_dataset',
]
