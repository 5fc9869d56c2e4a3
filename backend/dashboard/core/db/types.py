from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QueryResult(NamedTuple):
    """Result of one statement. ``row_count`` is always ``len(rows)``; rows are read-only mappings."""

    rows: tuple[Mapping[str, Any], ...] = ()
    row_count: int = 0
    command: str = ""
    affected_rows: int = 0  # driver rowcount for DML, 0 when unknown

    @classmethod
    def from_rows(
        cls,
        rows: Iterable[Mapping[str, Any]],
        *,
        command: str = "",
        affected_rows: int = 0,
    ) -> "QueryResult":
        rows = tuple(MappingProxyType(dict(r)) for r in rows)
        return cls(
            rows=rows,
            row_count=len(rows),
            command=command,
            affected_rows=affected_rows,
        )


class PoolMetrics(BaseModel):
    """Point-in-time snapshot of the connection pool."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    idle: int = 0
    active: int = 0
    waiting: int = 0
    max_connections: int = 0
    usage: float = 0.0  # active / max_connections
    last_checked: datetime = Field(default_factory=_utcnow)
