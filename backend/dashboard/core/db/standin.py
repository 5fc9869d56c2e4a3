"""
Stand-in manager for deployments that run without a database (DISABLE_DB=true).

Same surface as ConnectionManager; every query succeeds immediately with an
empty result. This is a production mode (demos, CI without Postgres), not a
test double.
"""

import logging
from collections.abc import Callable
from typing import Any, TypeVar

from .types import PoolMetrics, QueryResult
from .utils import truncate

_log = logging.getLogger(__name__)

T = TypeVar("T")

_EMPTY = QueryResult()


class StandInConnection:
    """Connection handle passed to callbacks; queries return empty results."""

    raw: Any = None

    def query(
        self,
        text: str,
        params: dict | list | tuple | None = None,
        *,
        timeout: float | None = None,
    ) -> QueryResult:
        return _EMPTY


class StandInManager:
    def __init__(self) -> None:
        _log.info("Using stand-in database (database connections disabled)")

    def query(
        self,
        text: str,
        params: dict | list | tuple | None = None,
        *,
        timeout: float | None = None,
    ) -> QueryResult:
        """Return an empty result. ``timeout`` is accepted for signature parity and ignored."""
        _log.debug(
            "Stand-in query executed text=%s params=%s",
            truncate(text),
            truncate(params),
            extra={"db_statement": truncate(text), "db_params": truncate(params)},
        )
        return _EMPTY

    def with_connection(self, callback: Callable[[StandInConnection], T]) -> T:
        try:
            return callback(StandInConnection())
        except Exception as exc:
            _log.error("Error in stand-in connection operation: %s", exc)
            raise

    def transaction(self, callback: Callable[[StandInConnection], T]) -> T:
        return self.with_connection(callback)

    def health_check(self) -> bool:
        return True

    def pool_metrics(self) -> PoolMetrics:
        return PoolMetrics()

    def close(self) -> None:
        _log.info("Stand-in database closed")
