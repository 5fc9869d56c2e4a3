"""
Typed errors for the data-access layer.

Everything raised by the managers derives from DatabaseError, so callers can
catch the whole family or a single failure mode.
"""

from typing import Any

from .utils import truncate


class DatabaseError(Exception):
    """Base class for data-access errors."""


class ClosedError(DatabaseError):
    """The manager was closed, or a connection handle was used after release."""


class ConnectError(DatabaseError):
    """The driver could not open a new connection."""


class AcquireTimeoutError(DatabaseError):
    """No pooled connection became available within the acquisition timeout."""

    def __init__(self, timeout: float, max_size: int) -> None:
        self.timeout = timeout
        self.max_size = max_size
        super().__init__(
            f"Timed out after {timeout:.3f}s waiting for a connection "
            f"(pool max {max_size})"
        )


class QueryError(DatabaseError):
    """
    A statement failed to execute.

    ``text`` and ``params`` hold the full statement for diagnosis; the message
    only carries the truncated statement.
    """

    def __init__(self, text: str, params: Any, cause: BaseException) -> None:
        self.text = text
        self.params = params
        self.cause = cause
        super().__init__(f"Query failed: {truncate(text)}: {cause}")


class TransactionError(DatabaseError):
    """
    Rollback failed after the transaction callback failed.

    Raised only when both went wrong; ``error`` is the callback failure and
    ``rollback_error`` the failure of the ROLLBACK statement.
    """

    def __init__(self, error: BaseException, rollback_error: BaseException) -> None:
        self.error = error
        self.rollback_error = rollback_error
        super().__init__(
            f"Rollback failed ({rollback_error}) after transaction error: {error}"
        )
