from collections.abc import Callable
from typing import Any, Protocol, TypeVar

from .types import PoolMetrics, QueryResult

T = TypeVar("T")


class Database(Protocol):
    """
    What callers depend on. ConnectionManager and StandInManager both satisfy
    it; callers must not care which one they were given.
    """

    def query(
        self,
        text: str,
        params: dict | list | tuple | None = None,
        *,
        timeout: float | None = None,
    ) -> QueryResult: ...

    def with_connection(self, callback: Callable[[Any], T]) -> T: ...

    def transaction(self, callback: Callable[[Any], T]) -> T: ...

    def health_check(self) -> bool: ...

    def pool_metrics(self) -> PoolMetrics: ...

    def close(self) -> None: ...
