"""
Bounded, thread-safe connection pool.

At most ``max_size`` connections are checked out at once. Callers that find
the pool saturated wait on a condition variable until a connection is
released or ``acquire_timeout`` elapses. Idle connections older than
``idle_timeout`` are closed lazily on checkout/checkin, and connections that
sat idle for a while are pinged before being handed out.

No driver I/O happens while the pool lock is held.
"""

import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from typing import Any, NamedTuple

from .errors import AcquireTimeoutError, ClosedError, ConnectError
from .types import PoolMetrics

_log = logging.getLogger(__name__)

_PING_IDLE_THRESHOLD = 5.0  # only ping connections idle longer than this (seconds)


class _PoolEntry(NamedTuple):
    conn: Any
    last_used: float  # time.monotonic() when last returned to pool


class ConnectionPool:
    """Fixed-capacity pool over a ``connect_fn`` that opens driver connections."""

    def __init__(
        self,
        connect_fn: Callable[[], Any],
        *,
        max_size: int,
        idle_timeout: float,
        acquire_timeout: float,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be positive")
        self._connect_fn = connect_fn
        self._max_size = max_size
        self._idle_timeout = idle_timeout
        self._acquire_timeout = acquire_timeout
        self._idle: deque[_PoolEntry] = deque()
        self._active = 0
        self._waiting = 0
        self._closed = False
        self._cond = threading.Condition()

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def closed(self) -> bool:
        return self._closed

    def acquire(self, timeout: float | None = None) -> Any:
        """
        Check out a connection, opening a new one while below ``max_size``.

        Raises AcquireTimeoutError when nothing frees up within *timeout*
        (defaults to ``acquire_timeout``), ClosedError once the pool is closed
        and ConnectError when the driver cannot open a connection. On any of
        these the caller holds no connection.
        """
        wait = self._acquire_timeout if timeout is None else timeout
        deadline = time.monotonic() + wait
        stale: list[Any] = []
        entry: _PoolEntry | None = None
        try:
            with self._cond:
                while True:
                    if self._closed:
                        raise ClosedError("Connection pool is closed")
                    stale.extend(self._evict_idle_locked())
                    if self._idle or self._active < self._max_size:
                        entry = self._idle.pop() if self._idle else None
                        self._active += 1
                        break
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        _log.warning(
                            "Connection acquire timed out after %.3fs (max=%d)",
                            wait,
                            self._max_size,
                        )
                        raise AcquireTimeoutError(wait, self._max_size)
                    # only callers actually blocked count as waiting
                    self._waiting += 1
                    try:
                        self._cond.wait(remaining)
                    finally:
                        self._waiting -= 1
        finally:
            for conn in stale:
                _close_quiet(conn)

        # A slot is reserved from here on; give it back if we cannot fill it.
        try:
            if entry is not None:
                if self._usable(entry):
                    return entry.conn
                _close_quiet(entry.conn)
            return self._open()
        except BaseException:
            with self._cond:
                self._active -= 1
                self._cond.notify()
            raise

    def release(self, conn: Any, *, discard: bool = False) -> None:
        """Return a connection to the pool (or close it if it is unusable or the pool is closed)."""
        keep = not discard and not _is_closed(conn)
        if keep:
            try:
                conn.rollback()
            except Exception:
                _log.warning("Rollback on release failed; discarding connection", exc_info=True)
                keep = False

        stale: list[Any] = []
        with self._cond:
            self._active -= 1
            if keep and not self._closed:
                self._idle.append(_PoolEntry(conn=conn, last_used=time.monotonic()))
                stale = self._evict_idle_locked()
            else:
                keep = False
            self._cond.notify()

        if not keep:
            _close_quiet(conn)
        for c in stale:
            _close_quiet(c)

    def close(self) -> None:
        """Close idle connections and refuse further checkouts. Idempotent."""
        with self._cond:
            if self._closed:
                return
            self._closed = True
            entries = list(self._idle)
            self._idle.clear()
            self._cond.notify_all()
        for e in entries:
            _close_quiet(e.conn)

    def metrics(self) -> PoolMetrics:
        with self._cond:
            idle = len(self._idle)
            active = self._active
            waiting = self._waiting
        return PoolMetrics(
            total=idle + active,
            idle=idle,
            active=active,
            waiting=waiting,
            max_connections=self._max_size,
            usage=active / self._max_size,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _evict_idle_locked(self) -> list[Any]:
        """Pop idle entries past ``idle_timeout``; caller closes them outside the lock."""
        now = time.monotonic()
        evicted = []
        while self._idle and now - self._idle[0].last_used > self._idle_timeout:
            evicted.append(self._idle.popleft().conn)
        if evicted:
            _log.debug("Evicted %d idle connection(s)", len(evicted))
        return evicted

    def _usable(self, entry: _PoolEntry) -> bool:
        if _is_closed(entry.conn):
            return False
        if time.monotonic() - entry.last_used > _PING_IDLE_THRESHOLD:
            return self._is_alive(entry.conn)
        return True

    def _open(self) -> Any:
        try:
            return self._connect_fn()
        except Exception as exc:
            _log.error("Could not open database connection: %s", exc)
            raise ConnectError(f"Could not open database connection: {exc}") from exc

    @staticmethod
    def _is_alive(conn: Any) -> bool:
        """Lightweight ping: attempt a no-op query to detect broken connections."""
        try:
            cur = conn.cursor()
            cur.execute("SELECT 1")
            cur.close()
            return True
        except Exception:
            return False


def _is_closed(conn: Any) -> bool:
    return bool(getattr(conn, "closed", False) or getattr(conn, "broken", False))


def _close_quiet(conn: Any) -> None:
    try:
        conn.close()
    except Exception:
        _log.debug("Error closing connection", exc_info=True)
