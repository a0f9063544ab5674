"""
UWF Journal Portfolio Module

Cash ledger for the sub-accounts and performance analytics.
"""

from .analytics import (
    PerformanceStats,
    by_account,
    by_source,
    history_frame,
    history_rows,
    performance,
    summarize,
)
from .ledger import (
    AccountValuation,
    LedgerResult,
    account_valuation,
    apply_cash,
    close_position,
    ensure_account,
    group_by_account,
    open_pl,
    open_position,
    portfolio_value,
    realized_pl,
)

__all__ = [
    "AccountValuation",
    "LedgerResult",
    "PerformanceStats",
    "account_valuation",
    "apply_cash",
    "by_account",
    "by_source",
    "close_position",
    "ensure_account",
    "group_by_account",
    "history_frame",
    "history_rows",
    "open_pl",
    "open_position",
    "performance",
    "portfolio_value",
    "realized_pl",
    "summarize",
]
