"""
Health-check helpers for liveness and readiness checks.

Liveness:  is the process alive and not deadlocked?  (cheap, no I/O)
Readiness: can it serve traffic?  (database round-trip)
"""

import logging
from typing import Any

from dashboard.core.db import Database, get_db

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Individual dependency checks
# ---------------------------------------------------------------------------

def check_database(db: Database | None = None) -> bool:
    """Round-trip to the database. Always True in stand-in mode."""
    return (db or get_db()).health_check()


def database_status(db: Database | None = None) -> dict[str, Any]:
    """
    Database check in the shape the monitoring endpoints report:
    status pass/fail, a message, and pool metrics when healthy.
    """
    db = db or get_db()
    healthy = db.health_check()
    if not healthy:
        logger.warning("Database check failed")
        return {
            "status": "fail",
            "message": "Database connection failed",
            "details": None,
        }
    return {
        "status": "pass",
        "message": "Database connection is healthy",
        "details": db.pool_metrics().model_dump(mode="json"),
    }


# ---------------------------------------------------------------------------
# Composite checks
# ---------------------------------------------------------------------------

def liveness_check() -> tuple[bool, list[str]]:
    """
    Lightweight liveness check: just confirms the Python process is responsive.
    No I/O, no DB calls.  Return format matches readiness_check for consistency.
    """
    return (True, [])


def readiness_check(db: Database | None = None) -> tuple[bool, list[str]]:
    """
    Run the database check.
    Returns (ok, list of failure messages).
    """
    failures: list[str] = []

    if not check_database(db):
        failures.append("database")

    return (len(failures) == 0, failures)
