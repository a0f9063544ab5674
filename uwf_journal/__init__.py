"""
UWF Journal

Trading-journal backend: trade records across three sub-accounts, a cash
ledger, performance analytics and AI-assisted trade intake.
"""

__version__ = "1.0.0"

from .core import (
    EmotionalState,
    ExitReason,
    JournalError,
    TradeAccount,
    TradeDirection,
    TradeSource,
    TradeStatus,
    profit_loss,
    profit_loss_percent,
)
from .journal import TradeBook, TradeJournal
from .persistence import JsonStore

__all__ = [
    "__version__",
    "EmotionalState",
    "ExitReason",
    "JournalError",
    "JsonStore",
    "TradeAccount",
    "TradeBook",
    "TradeDirection",
    "TradeJournal",
    "TradeSource",
    "TradeStatus",
    "profit_loss",
    "profit_loss_percent",
]
