"""
Process-wide database singletons.

``get_db()`` reads ``settings.DISABLE_DB`` once, on first call, and binds the
process to either the pooled ConnectionManager or the StandInManager. The
choice never changes afterwards and there is no re-initialisation path.
Resolve it at the composition boundary and pass the result to dependents.
"""

import logging
import threading

from dashboard.core.config import settings

from .manager import ConnectionManager
from .protocol import Database
from .standin import StandInManager

_log = logging.getLogger(__name__)

_connection_manager: ConnectionManager | None = None
_connection_manager_lock = threading.Lock()

_standin_manager: StandInManager | None = None
_standin_manager_lock = threading.Lock()

_db: Database | None = None
_db_lock = threading.Lock()


def get_connection_manager() -> ConnectionManager:
    """Return the singleton ConnectionManager (thread-safe double-checked locking)."""
    global _connection_manager
    if _connection_manager is None:
        with _connection_manager_lock:
            if _connection_manager is None:
                _connection_manager = ConnectionManager()
    return _connection_manager


def get_standin_manager() -> StandInManager:
    """Return the singleton StandInManager (thread-safe double-checked locking)."""
    global _standin_manager
    if _standin_manager is None:
        with _standin_manager_lock:
            if _standin_manager is None:
                _standin_manager = StandInManager()
    return _standin_manager


def get_db() -> Database:
    """Return the manager selected for this process."""
    global _db
    if _db is None:
        with _db_lock:
            if _db is None:
                if settings.DISABLE_DB:
                    _db = get_standin_manager()
                else:
                    _db = get_connection_manager()
                _log.info("Database manager selected: %s", type(_db).__name__)
    return _db
