"""
UWF Journal Persistence Module

Persisted document shapes and the JSON key/value store that holds them:
- Trades
- Portfolio settings and accounts
- Watchlist
- Circuit breaker state
- Id counter
"""

from .models import (
    AccountState,
    ActiveTrade,
    CircuitBreakerInfo,
    ClosedTrade,
    CriteriaChecklist,
    ExitData,
    PortfolioSettings,
    PriceScenario,
    RepeatDecision,
    TakeProfitLevels,
    Trade,
    WatchlistItem,
)
from .store import (
    CIRCUIT_BREAKER_KEY,
    META_KEY,
    SETTINGS_KEY,
    STORE_KEYS,
    TRADES_KEY,
    WATCHLIST_KEY,
    JsonStore,
)

__all__ = [
    "AccountState",
    "ActiveTrade",
    "CircuitBreakerInfo",
    "ClosedTrade",
    "CriteriaChecklist",
    "ExitData",
    "PortfolioSettings",
    "PriceScenario",
    "RepeatDecision",
    "TakeProfitLevels",
    "Trade",
    "WatchlistItem",
    "JsonStore",
    "CIRCUIT_BREAKER_KEY",
    "META_KEY",
    "SETTINGS_KEY",
    "STORE_KEYS",
    "TRADES_KEY",
    "WATCHLIST_KEY",
]
