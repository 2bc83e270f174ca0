"""Database utilities for the Jira sync.

This module provides:
    - Transaction scope with automatic commit/rollback
    - Connection scope that joins the active transaction, if any
    - Connection pool management and health checks
    - asyncpg exception conversion to DatabaseError subtypes

Repositories never begin or commit transactions. They ask for
``connection_scope(pool)``, which hands back the connection of the
transaction opened by ``database_transaction`` in the current task, or a
fresh pooled connection when no transaction is active.

Example:
    async with database_transaction(pool):
        await issue_repo.bulk_upsert(issues)   # runs on the same connection
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, AsyncIterator, Optional

import asyncpg

from ..exceptions import (
    ConnectionPoolError,
    DatabaseError,
    IntegrityError,
    TransactionError,
)

logger = logging.getLogger(__name__)

ACQUIRE_TIMEOUT_SECONDS = 30.0

# Connection of the transaction running in the current task
_active_connection: ContextVar[Optional[Any]] = ContextVar(
    "jirasync_active_connection", default=None
)


def active_connection() -> Optional[Any]:
    """Connection of the transaction active in this task, or None."""
    return _active_connection.get()


async def _acquire(pool) -> Any:
    if pool is None:
        raise ConnectionPoolError("Database connection pool is not initialized")
    try:
        return await asyncio.wait_for(pool.acquire(), timeout=ACQUIRE_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        raise ConnectionPoolError(
            "Timeout acquiring database connection",
            details={"timeout_seconds": ACQUIRE_TIMEOUT_SECONDS},
        )
    except Exception as e:
        raise ConnectionPoolError(
            f"Failed to acquire database connection: {e}",
            cause=e,
        )


# ============================================
# Transaction and Connection Scopes
# ============================================

@asynccontextmanager
async def database_transaction(
    pool,
    isolation: str = "read_committed",
) -> AsyncIterator[Any]:
    """Run the enclosed block in one transaction with commit/rollback.

    While the block runs, the connection is published as the active
    connection so repositories called inside it share the transaction.

    Args:
        pool: asyncpg connection pool
        isolation: Transaction isolation level

    Yields:
        Database connection within the transaction

    Raises:
        ConnectionPoolError: If a connection cannot be acquired
        TransactionError: If the transaction cannot start or commit
        DatabaseError: Converted form of a database failure in the block;
            non-database exceptions from the block propagate unchanged
    """
    if _active_connection.get() is not None:
        raise TransactionError(
            "Nested transactions are not supported",
            operation="begin",
        )

    conn = await _acquire(pool)
    token = None
    try:
        transaction = conn.transaction(isolation=isolation)
        try:
            await transaction.start()
        except Exception as e:
            raise TransactionError(
                f"Failed to start transaction: {e}",
                operation="begin",
                cause=e,
            )

        token = _active_connection.set(conn)
        try:
            yield conn
        except BaseException as e:
            try:
                await transaction.rollback()
                logger.debug("Transaction rolled back due to exception")
            except Exception as rollback_error:
                logger.error(f"Rollback failed: {rollback_error}")
            if isinstance(e, asyncpg.PostgresError):
                raise _convert_db_exception(e) from e
            raise

        try:
            await transaction.commit()
            logger.debug("Transaction committed successfully")
        except Exception as e:
            raise TransactionError(
                f"Failed to commit transaction: {e}",
                operation="commit",
                cause=e,
            )

    finally:
        if token is not None:
            _active_connection.reset(token)
        await pool.release(conn)


@asynccontextmanager
async def database_connection(pool) -> AsyncIterator[Any]:
    """Pooled connection without a transaction, for read-only work.

    Example:
        async with database_connection(pool) as conn:
            rows = await conn.fetch("SELECT * FROM issues LIMIT 10")
    """
    conn = await _acquire(pool)
    try:
        yield conn
    finally:
        await pool.release(conn)


@asynccontextmanager
async def connection_scope(pool) -> AsyncIterator[Any]:
    """Connection of the active transaction, or a fresh pooled connection."""
    conn = _active_connection.get()
    if conn is not None:
        yield conn
        return
    async with database_connection(pool) as conn:
        yield conn


# ============================================
# Error Conversion
# ============================================

def _convert_db_exception(e: Exception) -> DatabaseError:
    """Convert an asyncpg exception to the matching DatabaseError subtype."""
    if isinstance(e, DatabaseError):
        return e

    if isinstance(e, asyncpg.UniqueViolationError):
        return IntegrityError(f"Duplicate entry: {e}", constraint="unique", cause=e)

    if isinstance(e, asyncpg.ForeignKeyViolationError):
        return IntegrityError(
            f"Foreign key violation: {e}", constraint="foreign_key", cause=e
        )

    if isinstance(e, asyncpg.NotNullViolationError):
        return IntegrityError(f"Not null violation: {e}", constraint="not_null", cause=e)

    if isinstance(e, asyncpg.DeadlockDetectedError):
        return TransactionError(
            f"Deadlock detected: {e}", operation="transaction", cause=e
        )

    if isinstance(e, asyncpg.QueryCanceledError):
        return TransactionError(
            f"Database operation timed out: {e}", operation="query", cause=e
        )

    return DatabaseError(f"Database operation failed: {e}", cause=e)


# ============================================
# Connection Pool Helpers
# ============================================

async def create_pool(
    database_url: str,
    min_size: int = 2,
    max_size: int = 10,
    command_timeout: float = 60.0,
    **kwargs,
):
    """Create a database connection pool.

    Raises:
        ConnectionPoolError: If pool creation fails
    """
    try:
        pool = await asyncpg.create_pool(
            database_url,
            min_size=min_size,
            max_size=max_size,
            command_timeout=command_timeout,
            **kwargs,
        )
    except Exception as e:
        raise ConnectionPoolError(
            f"Failed to create database pool: {e}",
            cause=e,
        )
    logger.info(f"Database pool created (min={min_size}, max={max_size})")
    return pool


async def create_pool_from_config(config):
    """Create a pool from a DatabaseConfig."""
    return await create_pool(
        config.dsn,
        min_size=config.min_connections,
        max_size=config.max_connections,
        timeout=config.connect_timeout_seconds,
    )


async def close_pool(pool, timeout: float = 10.0):
    """Close database pool gracefully, terminating it if close hangs."""
    if pool is None:
        return

    try:
        await asyncio.wait_for(pool.close(), timeout=timeout)
        logger.info("Database pool closed")
    except asyncio.TimeoutError:
        logger.warning(f"Pool close timed out after {timeout}s, terminating")
        pool.terminate()


# ============================================
# Health Check
# ============================================

async def check_database_health(pool) -> dict[str, Any]:
    """Check database connection health.

    Returns:
        Dict with health status information
    """
    if pool is None:
        return {"healthy": False, "error": "Pool not initialized"}

    try:
        async with database_connection(pool) as conn:
            result = await conn.fetchval("SELECT 1")
    except (DatabaseError, asyncpg.PostgresError, OSError) as e:
        return {"healthy": False, "error": str(e)}

    pool_size = pool.get_size()
    pool_free = pool.get_idle_size()
    return {
        "healthy": result == 1,
        "pool_size": pool_size,
        "pool_free": pool_free,
        "pool_used": pool_size - pool_free,
    }


__all__ = [
    "active_connection",
    "database_transaction",
    "database_connection",
    "connection_scope",
    "create_pool",
    "create_pool_from_config",
    "close_pool",
    "check_database_health",
]
