import json
import re
from typing import Any

MAX_LOG_LENGTH = 100


def truncate(value: Any, limit: int = MAX_LOG_LENGTH) -> str | None:
    """Render *value* for a log record, cut to at most *limit* characters (plus ``...``)."""
    if value is None:
        return None
    s = value if isinstance(value, str) else json.dumps(value, default=str)
    if len(s) <= limit:
        return s
    return s[:limit] + "..."


def command_of(sql: str) -> str:
    """Leading keyword of a statement, upper-cased (``SELECT``, ``INSERT``, ``BEGIN``...)."""
    s = re.sub(r"^[\s;(]+", "", sql)
    parts = s.split(None, 1)
    return parts[0].upper() if parts else ""
