"""
Journal Enumerations

Persisted string values are kept identical to the stored journal layout so
documents written by earlier versions load unchanged.
"""

from enum import Enum
from typing import Optional


class _ValueEnum(str, Enum):
    """String enum that can be parsed leniently from user or AI input."""

    @classmethod
    def parse(cls, value, default=None):
        """
        Resolve a raw value to a member.

        Matches member values exactly first, then case-insensitively on
        value or name. Returns ``default`` when nothing matches.
        """
        if isinstance(value, cls):
            return value
        if value is None:
            return default
        text = str(value).strip()
        if not text:
            return default
        for member in cls:
            if member.value == text:
                return member
        lowered = text.lower()
        for member in cls:
            if member.value.lower() == lowered or member.name.lower() == lowered:
                return member
        return default

    def __str__(self) -> str:
        return self.value


class TradeDirection(_ValueEnum):
    """Trade direction."""

    LONG = "Long"
    SHORT = "Short"


class TradeStatus(_ValueEnum):
    """Lifecycle tag of a trade."""

    ACTIVE = "active"
    CLOSED = "closed"


class TradeSource(_ValueEnum):
    """Where the trade idea came from."""

    SELF_DISCOVERED = "Self-Discovered (technical + fundamental)"
    YOUTUBE = "YouTube"
    TWITTER_X = "Twitter/X"
    UNUSUAL_OPTIONS = "Unusual Options Activity"
    ANALYST_REPORT = "Analyst Upgrade/Report"
    EARNINGS_CATALYST = "Earnings Catalyst"
    AI_SUGGESTION = "AI Suggestion"
    OTHER = "Other"


class EmotionalState(_ValueEnum):
    """Self-reported state of mind at entry."""

    CALM = "Calm and analytical"
    EXCITED = "Excited but controlled"
    FOMO = "FOMO/Anxious"
    REVENGE = "Revenge trading"


class ExitReason(_ValueEnum):
    """Why a position was closed."""

    PROFIT_TARGET = "Hit profit target"
    STOP_LOSS = "Stop loss triggered"
    THESIS_CHANGED = "Thesis changed"
    BETTER_OPPORTUNITY = "Better opportunity"
    REBALANCING = "Portfolio rebalancing"
    OTHER = "Other"


class TradeAccount(_ValueEnum):
    """Capital pools a trade can be attributed to."""

    INCOME_GENERATOR = "Income Generator"
    SPECULATION = "Speculation"
    TRADING_LAB = "Trading Lab"
    UNCATEGORIZED = "Uncategorized"

    @classmethod
    def managed(cls):
        """The three accounts with their own capital and rules."""
        return [cls.INCOME_GENERATOR, cls.SPECULATION, cls.TRADING_LAB]


class TradeAction(_ValueEnum):
    """Intake action classification."""

    OPEN = "OPEN"
    CLOSE = "CLOSE"
    ROLL = "ROLL"


class WatchlistStatus(_ValueEnum):
    WATCHING = "Watching"
    ENTERED = "Entered"
    PASSED = "Passed"


def account_name(value: Optional[str]) -> str:
    """Normalize an account label, falling back to Uncategorized when blank."""
    if value is None:
        return TradeAccount.UNCATEGORIZED.value
    text = str(value).strip()
    if not text:
        return TradeAccount.UNCATEGORIZED.value
    member = TradeAccount.parse(text)
    return member.value if member else text
