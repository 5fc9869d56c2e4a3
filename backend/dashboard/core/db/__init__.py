"""
Data-access layer: pooled PostgreSQL manager, stand-in manager and the gate
that picks one of them per process (DISABLE_DB).
"""

from .connect import PooledConnection, connect, cursor_to_dicts, execute
from .errors import (
    AcquireTimeoutError,
    ClosedError,
    ConnectError,
    DatabaseError,
    QueryError,
    TransactionError,
)
from .manager import ConnectionManager
from .pool import ConnectionPool
from .protocol import Database
from .selector import get_connection_manager, get_db, get_standin_manager
from .standin import StandInConnection, StandInManager
from .types import PoolMetrics, QueryResult

__all__ = [
    "AcquireTimeoutError",
    "ClosedError",
    "ConnectError",
    "ConnectionManager",
    "ConnectionPool",
    "Database",
    "DatabaseError",
    "PoolMetrics",
    "PooledConnection",
    "QueryError",
    "QueryResult",
    "StandInConnection",
    "StandInManager",
    "TransactionError",
    "connect",
    "cursor_to_dicts",
    "execute",
    "get_connection_manager",
    "get_db",
    "get_standin_manager",
]
