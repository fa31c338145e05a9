"""
Async PostgreSQL connection pool module.

This module provides an async PostgreSQL connection pool using asyncpg with a
module-level singleton. It backs the PostgresGateway, the concrete Data Access
Gateway used when the engine runs against the CRM record store.

Key Components:
- Global connection pool singleton (_pool)
- init_db(): Initialize the connection pool at application startup
- get_db_pool(): Get the pool instance (initializes if needed)
- close_db(): Gracefully close the pool at application shutdown
- execute_query(): Convenience helper for executing raw SQL queries

Usage:
    # At application startup (in FastAPI lifespan)
    await init_db()

    # In the gateway
    rows = await execute_query("SELECT * FROM organizations LIMIT $1", 10)

    # At application shutdown
    await close_db()
"""

from typing import Any, List, Optional

import asyncpg
from asyncpg import Pool

from crm_reporting.core.config import get_settings


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

    Idempotent: if the pool already exists it is returned unchanged.

    Returns:
        Pool: The asyncpg connection pool instance.

    Raises:
        RuntimeError: If DATABASE_URL is not configured.
        asyncpg.PostgresError: If connection to the database fails.
        OSError: If the database host is unreachable.
    """
    global _pool

    if _pool is None:
        settings = get_settings()
        if not settings.database_url:
            raise RuntimeError("DATABASE_URL is not configured")

        _pool = await asyncpg.create_pool(
            dsn=settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.db_command_timeout,
        )

    return _pool


async def get_db_pool() -> Pool:
    """
    Get the database connection pool, initializing if needed.

    Returns:
        Pool: The asyncpg connection pool instance.
    """
    global _pool

    if _pool is None:
        await init_db()

    assert _pool is not None, "Pool should be initialized after init_db()"

    return _pool


async def close_db() -> None:
    """
    Close the database connection pool gracefully.

    Safe to call when the pool was never initialized.
    """
    global _pool

    if _pool is not None:
        await _pool.close()
        _pool = None


# =============================================================================
# Query Execution Helper
# =============================================================================

async def execute_query(query: str, *args: Any) -> List[asyncpg.Record]:
    """
    Execute a single query and return all rows.

    Args:
        query: SQL query string with $1, $2, ... placeholders.
        *args: Query parameters in placeholder order.

    Returns:
        List[asyncpg.Record]: Rows returned by the query.

    Raises:
        asyncpg.PostgresError: If the query execution fails.
    """
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        return await conn.fetch(query, *args)
