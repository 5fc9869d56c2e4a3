"""
Driver connections and the checked-out connection handle.

Connections are opened with psycopg in autocommit mode: every statement run
through ``query`` commits on its own, and transactions are driven explicitly
with BEGIN / COMMIT / ROLLBACK by the manager.
"""

import logging
import math
import time
from typing import Any

import psycopg

from dashboard.core.config import Settings, settings

from .errors import ClosedError, QueryError
from .types import QueryResult
from .utils import command_of, truncate

_log = logging.getLogger(__name__)

SET_TIMEOUT_SQL = "SELECT set_config('statement_timeout', %s, false)"
RESET_TIMEOUT_SQL = "RESET statement_timeout"


def connect(config: Settings | None = None) -> psycopg.Connection:
    """Open one PostgreSQL connection from DB_* settings."""
    cfg = config or settings
    return psycopg.connect(
        **cfg.db_connect_kwargs,
        connect_timeout=max(1, math.ceil(cfg.DB_CONNECTION_TIMEOUT)),
        autocommit=True,
    )


def timeout_ms(timeout: float) -> int:
    """Seconds to whole milliseconds, never rounding a positive timeout down to 0 (no limit)."""
    return max(1, math.ceil(timeout * 1000))


def execute(
    conn: Any,
    sql: str,
    params: dict | list | tuple | None = None,
    *,
    timeout: float | None = None,
) -> Any:
    """
    Execute SQL and return the cursor. Caller uses cursor_to_dicts(cursor) or cursor.rowcount.

    - timeout: seconds; applies ``statement_timeout`` before the statement and
      restores the session default afterwards.
    """
    if timeout is not None and timeout > 0:
        # SET cannot take bind parameters; set_config can
        cur_set = conn.cursor()
        try:
            cur_set.execute(SET_TIMEOUT_SQL, (str(timeout_ms(timeout)),))
        finally:
            cur_set.close()

    cur = conn.cursor()
    try:
        if params is not None:
            cur.execute(sql, params)
        else:
            cur.execute(sql)
    except Exception:
        cur.close()
        raise
    finally:
        if timeout is not None and timeout > 0:
            try:
                cur_reset = conn.cursor()
                cur_reset.execute(RESET_TIMEOUT_SQL)
                cur_reset.close()
            except Exception:
                _log.debug("Could not reset statement_timeout", exc_info=True)

    return cur


def cursor_to_dicts(cursor: Any) -> list[dict[str, Any]]:
    """Convert cursor result to list of dicts."""
    desc = cursor.description
    if not desc:
        return []
    names = [d[0] for d in desc]
    return [dict(zip(names, row, strict=True)) for row in cursor.fetchall()]


def run_query(
    conn: Any,
    text: str,
    params: dict | list | tuple | None = None,
    *,
    timeout: float | None = None,
) -> QueryResult:
    """
    Run one statement on *conn* and build a QueryResult.

    Logs a timing record per execution and an error record per failure;
    driver errors are re-raised as QueryError.
    """
    start = time.perf_counter()
    try:
        cur = execute(conn, text, params, timeout=timeout)
        try:
            rows = cursor_to_dicts(cur)
            affected = 0
            if cur.description is None and cur.rowcount is not None and cur.rowcount > 0:
                affected = cur.rowcount
        finally:
            cur.close()
    except Exception as exc:
        _log.error(
            "Query error text=%s params=%s error=%s",
            truncate(text),
            truncate(params),
            exc,
            extra={
                "db_statement": truncate(text),
                "db_params": truncate(params),
                "db_error": str(exc),
            },
        )
        raise QueryError(text, params, exc) from exc

    duration_ms = (time.perf_counter() - start) * 1000
    result = QueryResult.from_rows(
        rows, command=command_of(text), affected_rows=affected
    )
    _log.info(
        "Executed query text=%s duration_ms=%.1f rows=%d",
        truncate(text),
        duration_ms,
        result.row_count,
        extra={
            "db_statement": truncate(text),
            "db_duration_ms": round(duration_ms, 3),
            "db_rows": result.row_count,
        },
    )
    return result


class PooledConnection:
    """
    Handle for a connection checked out of the pool.

    Only valid inside the ``with_connection`` / ``transaction`` callback it
    was passed to; afterwards every use raises ClosedError.
    """

    def __init__(self, raw: Any) -> None:
        self._raw = raw
        self._released = False
        self.broken = False

    @property
    def raw(self) -> Any:
        """The underlying driver connection."""
        self._check()
        return self._raw

    def query(
        self,
        text: str,
        params: dict | list | tuple | None = None,
        *,
        timeout: float | None = None,
    ) -> QueryResult:
        self._check()
        return run_query(self._raw, text, params, timeout=timeout)

    def mark_broken(self) -> None:
        """Discard the connection on release instead of returning it to the pool."""
        self.broken = True

    def invalidate(self) -> None:
        self._released = True

    def _check(self) -> None:
        if self._released:
            raise ClosedError("Connection handle used after release")
