"""
Shared router helpers: the response envelope and timestamps.
"""

import math
from datetime import datetime, timezone
from typing import Any, Optional


def get_timestamp() -> str:
    """Current UTC time, ISO format."""
    return datetime.now(timezone.utc).isoformat()


def _json_safe(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: _json_safe(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_json_safe(v) for v in obj]
    if isinstance(obj, float) and (math.isnan(obj) or math.isinf(obj)):
        return None
    if isinstance(obj, datetime):
        return obj.isoformat()
    return obj


def create_response(data: Any = None, error: Optional[str] = None, success: bool = True) -> dict:
    """Standard ``{"success", "data", "error", "timestamp"}`` envelope."""
    return {
        "success": success and error is None,
        "data": _json_safe(data),
        "error": error,
        "timestamp": get_timestamp(),
    }
