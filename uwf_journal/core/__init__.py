"""
UWF Journal Core Module

Enumerations, financial math and the error taxonomy shared by every
other module.
"""

from .enums import (
    EmotionalState,
    ExitReason,
    TradeAccount,
    TradeAction,
    TradeDirection,
    TradeSource,
    TradeStatus,
    WatchlistStatus,
)
from .errors import (
    ErrorCodes,
    IntakeError,
    JournalError,
    StorageError,
    TradeStateError,
    ValidationError,
)
from .finance import (
    checklist_score,
    coerce_number,
    days_held,
    format_currency,
    format_percent,
    profit_loss,
    profit_loss_percent,
)

__all__ = [
    "EmotionalState",
    "ExitReason",
    "TradeAccount",
    "TradeAction",
    "TradeDirection",
    "TradeSource",
    "TradeStatus",
    "WatchlistStatus",
    "ErrorCodes",
    "IntakeError",
    "JournalError",
    "StorageError",
    "TradeStateError",
    "ValidationError",
    "checklist_score",
    "coerce_number",
    "days_held",
    "format_currency",
    "format_percent",
    "profit_loss",
    "profit_loss_percent",
]
