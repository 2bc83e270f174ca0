"""PostgreSQL implementation of the transaction executor port."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import asyncpg

from ...api.database import database_transaction
from ...exceptions import TransactionError
from ..domain.ports import ITransactionExecutor

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PostgresTransactionExecutor(ITransactionExecutor):
    """Runs a unit of work in one asyncpg transaction.

    Repositories called by the work join the transaction through
    ``connection_scope``. Any failure rolls back and surfaces as a
    TransactionError chaining the original exception; the connection is
    returned to the pool on every exit path.
    """

    def __init__(self, pool: asyncpg.Pool, timeout: float | None = 60.0):
        """Initialize the executor.

        Args:
            pool: asyncpg connection pool
            timeout: Seconds allowed for the work, or None for no limit
        """
        self.pool = pool
        self.timeout = timeout

    async def run_in_transaction(self, work: Callable[[], Awaitable[T]]) -> T:
        try:
            async with database_transaction(self.pool):
                return await asyncio.wait_for(work(), timeout=self.timeout)
        except TransactionError:
            raise
        except asyncio.TimeoutError as e:
            logger.error(f"Transaction timed out after {self.timeout}s, rolled back")
            raise TransactionError(
                f"Transaction timed out after {self.timeout}s",
                operation="execute",
                details={"timeout_seconds": self.timeout},
                cause=e,
            )
        except Exception as e:
            logger.error(f"Transaction rolled back: {e}")
            raise TransactionError(
                f"Transaction execution failed: {e}",
                operation="execute",
                cause=e,
            )
