"""
PostgreSQL access through a bounded connection pool.

ConnectionManager is the process-wide entry point to the database: callers
run statements with ``query``, scope a connection with ``with_connection``,
or run a callback inside BEGIN/COMMIT with ``transaction``. Connections never
escape those scopes.
"""

import logging
from collections.abc import Callable
from typing import TypeVar

from dashboard.core.config import settings

from .connect import PooledConnection, connect
from .errors import TransactionError
from .pool import ConnectionPool
from .types import PoolMetrics, QueryResult

_log = logging.getLogger(__name__)

T = TypeVar("T")


class ConnectionManager:
    """Runs queries and transactions on pooled connections."""

    def __init__(self, pool: ConnectionPool | None = None) -> None:
        if pool is None:
            pool = ConnectionPool(
                connect,
                max_size=settings.DB_POOL_MAX,
                idle_timeout=settings.DB_IDLE_TIMEOUT,
                acquire_timeout=settings.DB_CONNECTION_TIMEOUT,
            )
            _log.info(
                "Database pool created host=%s port=%s db=%s max=%d",
                settings.DB_HOST,
                settings.DB_PORT,
                settings.DB_NAME,
                pool.max_size,
            )
        self._pool = pool

    def query(
        self,
        text: str,
        params: dict | list | tuple | None = None,
        *,
        timeout: float | None = None,
    ) -> QueryResult:
        """
        Execute one statement on a pooled connection.

        - timeout: per-statement timeout in seconds (``statement_timeout``).

        Raises QueryError on execution failure, AcquireTimeoutError when the
        pool stays saturated, ClosedError after ``close()``. Never retries.
        """
        return self.with_connection(
            lambda conn: conn.query(text, params, timeout=timeout)
        )

    def with_connection(self, callback: Callable[[PooledConnection], T]) -> T:
        """Check out a connection for the duration of *callback*; always released."""
        raw = self._pool.acquire()
        handle = PooledConnection(raw)
        try:
            return callback(handle)
        finally:
            handle.invalidate()
            self._pool.release(raw, discard=handle.broken)

    def transaction(self, callback: Callable[[PooledConnection], T]) -> T:
        """
        Run *callback* between BEGIN and COMMIT on one connection.

        If the callback (or COMMIT) fails, ROLLBACK is issued once and the
        original exception is re-raised unchanged. If ROLLBACK fails as well,
        TransactionError carries both errors and the connection is discarded.
        """

        def run(conn: PooledConnection) -> T:
            conn.query("BEGIN")
            try:
                result = callback(conn)
                conn.query("COMMIT")
            except BaseException as exc:
                try:
                    conn.query("ROLLBACK")
                except Exception as rollback_exc:
                    conn.mark_broken()
                    _log.error(
                        "Rollback failed after transaction error: %s (rollback: %s)",
                        exc,
                        rollback_exc,
                    )
                    raise TransactionError(exc, rollback_exc) from exc
                raise
            return result

        return self.with_connection(run)

    def health_check(self) -> bool:
        """Run SELECT 1 and return True if no exception."""
        try:
            self.query("SELECT 1")
            return True
        except Exception as exc:
            _log.warning("Database health check failed: %s", exc)
            return False

    def pool_metrics(self) -> PoolMetrics:
        return self._pool.metrics()

    def close(self) -> None:
        """Close the pool and all idle connections. Safe to call more than once."""
        if self._pool.closed:
            return
        self._pool.close()
        _log.info("Database pool closed")

