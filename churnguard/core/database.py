"""
Async PostgreSQL connection pool module for the ChurnGuard risk engine.

This module provides an async PostgreSQL connection pool using asyncpg. Every
read of accounts, daily facts and monthly metrics, and every risk write, flows
through this pool.

Key Components:
- Global connection pool singleton (_pool)
- init_db(): Initialize the connection pool at application or job startup
- get_db_pool(): Get the pool instance (initializes if needed)
- close_db(): Gracefully close the pool at shutdown
- execute_query() / execute_query_one(): Convenience helpers for raw SQL reads

Connection Pool Configuration:
- min_size: 2 (minimum idle connections kept in pool)
- max_size: 10 (maximum connections in pool)
- command_timeout: 600 seconds (monthly aggregation queries are heavy)

Usage:
    # At startup (FastAPI lifespan or job entry point)
    await init_db()

    # In services
    pool = await get_db_pool()
    async with pool.acquire() as conn:
        rows = await conn.fetch("SELECT * FROM accounts")

    # At shutdown
    await close_db()

Environment Variables:
    DATABASE_URL: PostgreSQL connection string (Required)
"""

from typing import Any, List, Optional

import asyncpg
from asyncpg import Pool

from churnguard.core.config import get_settings


# =============================================================================
# Global Pool Singleton
# =============================================================================

# None until init_db() is called
_pool: Optional[Pool] = None


# =============================================================================
# Pool Lifecycle Functions
# =============================================================================

async def init_db() -> Pool:
    """
    Initialize the database connection pool.

    If the pool is already initialized, this function returns the existing pool
    without creating a new one.

    Returns:
        Pool: The asyncpg connection pool instance.

    Raises:
        asyncpg.PostgresError: If connection to the database fails.
        OSError: If the database host is unreachable.
    """
    global _pool

    if _pool is None:
        settings = get_settings()

        _pool = await asyncpg.create_pool(
            dsn=settings.database_url,
            min_size=2,
            max_size=10,
            command_timeout=600,
        )

    return _pool


async def get_db_pool() -> Pool:
    """
    Get the database connection pool, initializing if needed.

    Returns:
        Pool: The asyncpg connection pool instance.

    Raises:
        asyncpg.PostgresError: If connection to the database fails during lazy init.
    """
    global _pool

    if _pool is None:
        await init_db()

    assert _pool is not None, "Pool should be initialized after init_db()"

    return _pool


async def close_db() -> None:
    """
    Close the database connection pool gracefully.

    After calling close_db(), the pool is reset to None so a later
    get_db_pool() call creates a fresh pool. Calling it when no pool exists
    has no effect.
    """
    global _pool

    if _pool is not None:
        await _pool.close()
        _pool = None


# =============================================================================
# Query Helpers
# =============================================================================

async def execute_query(query: str, *args: Any) -> List[asyncpg.Record]:
    """
    Execute a query and return all rows.

    Args:
        query: SQL query string with optional $1, $2, etc. parameter placeholders.
        *args: Query parameters corresponding to placeholders in the query.

    Returns:
        List[asyncpg.Record]: Records returned by the query.

    Raises:
        asyncpg.PostgresError: If the query execution fails.
    """
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        return await conn.fetch(query, *args)


async def execute_query_one(query: str, *args: Any) -> Optional[asyncpg.Record]:
    """
    Execute a query and return a single row or None.

    Args:
        query: SQL query string with optional $1, $2, etc. parameter placeholders.
        *args: Query parameters corresponding to placeholders in the query.

    Returns:
        Optional[asyncpg.Record]: The first matching row, or None.

    Raises:
        asyncpg.PostgresError: If the query execution fails.
    """
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        return await conn.fetchrow(query, *args)
