"""
Financial Math

Pure helpers for profit/loss, holding period and checklist scoring. Every
P/L figure in the journal is derived through these functions so Long and
Short sign conventions stay consistent everywhere.
"""

import math
import re
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union

from .enums import TradeDirection

_SECONDS_PER_DAY = 24 * 60 * 60

# Leading numeric prefix, the way browsers' parseFloat reads form input
_NUMBER_PREFIX = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def _is_short(direction: Union[TradeDirection, str]) -> bool:
    return TradeDirection.parse(direction) == TradeDirection.SHORT


def profit_loss(
    entry_price: float,
    mark_price: float,
    share_count: float,
    direction: Union[TradeDirection, str],
) -> float:
    """
    Absolute profit/loss of a position marked at ``mark_price``.

    Long: (mark - entry) * shares. Short: (entry - mark) * shares.
    """
    if _is_short(direction):
        return (entry_price - mark_price) * share_count
    return (mark_price - entry_price) * share_count


def profit_loss_percent(
    entry_price: float,
    mark_price: float,
    direction: Union[TradeDirection, str],
) -> float:
    """
    Percentage change oriented by direction.

    Returns 0 when ``entry_price`` is 0 instead of dividing by zero.
    """
    if entry_price == 0:
        return 0.0
    if _is_short(direction):
        return ((entry_price - mark_price) / entry_price) * 100
    return ((mark_price - entry_price) / entry_price) * 100


def days_held(entry_timestamp: Union[datetime, str], now: Optional[datetime] = None) -> int:
    """Whole days elapsed since entry (floored)."""
    entry_timestamp = parse_timestamp(entry_timestamp)
    now = datetime.now(timezone.utc) if now is None else parse_timestamp(now)

    elapsed = (now - entry_timestamp).total_seconds()
    return math.floor(elapsed / _SECONDS_PER_DAY)


def checklist_score(checklist: Union[Mapping[str, Any], Any]) -> int:
    """Count of true-valued checklist entries."""
    if hasattr(checklist, "to_dict"):
        checklist = checklist.to_dict()
    return sum(1 for value in checklist.values() if value)


def coerce_number(value: Any, default: float = 0.0) -> float:
    """
    Permissive numeric parse for intake and form values.

    Numbers pass through; strings yield their leading numeric prefix
    ("150.5 USD" -> 150.5); anything unreadable, NaN or infinite yields
    ``default``.
    """
    if value is None or isinstance(value, bool):
        return default

    if isinstance(value, (int, float)):
        number = float(value)
    else:
        match = _NUMBER_PREFIX.match(str(value).strip().replace(",", ""))
        if not match:
            return default
        number = float(match.group(0))

    if math.isnan(number) or math.isinf(number):
        return default
    return number


def is_number(value: Any) -> bool:
    """True when ``value`` carries a usable finite number."""
    return not math.isnan(coerce_number(value, default=math.nan))


def parse_timestamp(value: Union[datetime, str]) -> datetime:
    """
    Parse an ISO-8601 timestamp, accepting a trailing ``Z``.

    Always timezone-aware: values without an offset (including date-only
    strings such as ``2025-04-01``) are taken as UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_currency(value: float) -> str:
    """
    Format an amount as euros in German notation, e.g. ``1.234,56 €``.
    """
    sign = "-" if value < 0 else ""
    whole = f"{abs(value):,.2f}"
    # swap separators: 1,234.56 -> 1.234,56
    localized = whole.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}{localized} €"


def format_percent(value: float) -> str:
    return f"{value:.2f}%"
