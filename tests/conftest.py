"""
Shared test fixtures for the UWF Journal test suite.
"""

import json
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from uwf_journal.journal import TradeJournal
from uwf_journal.persistence import JsonStore
from uwf_journal.persistence.models import (
    AccountState,
    ActiveTrade,
    ClosedTrade,
    ExitData,
    PortfolioSettings,
)
from uwf_journal.core.enums import TradeDirection, TradeSource


@pytest.fixture
def entry_time():
    """A Wednesday, 14:30 UTC (10:30 ET)."""
    return datetime(2025, 3, 12, 14, 30, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path):
    """Empty document store in a temporary directory."""
    return JsonStore(tmp_path / "data")


@pytest.fixture
def journal(store):
    """Journal over an empty store with the default three accounts."""
    return TradeJournal(store)


@pytest.fixture
def accounts():
    return (
        AccountState("Income Generator", 17000.0, 17000.0),
        AccountState("Speculation", 3000.0, 3000.0),
        AccountState("Trading Lab", 2000.0, 2000.0),
    )


@pytest.fixture
def portfolio_settings(accounts):
    return PortfolioSettings(accounts=accounts)


@pytest.fixture
def income_proposal():
    """Proposal fields for a large Income Generator position."""
    return {
        "account": "Income Generator",
        "ticker": "tsm",
        "direction": "Long",
        "action": "OPEN",
        "quantity": 100,
        "entryPrice": 150,
        "positionSize": 15000,
        "stopLoss": 135,
        "thesis": "Foundry leader, selling weekly covered calls",
        "emotionalState": "Calm and analytical",
    }


@pytest.fixture
def lab_proposal():
    """Proposal fields for a small Trading Lab swing trade."""
    return {
        "account": "Trading Lab",
        "ticker": "AMD",
        "direction": "Long",
        "action": "OPEN",
        "quantity": 1,
        "entryPrice": 100,
        "positionSize": 100,
        "stopLoss": 96,
        "thesis": "Breakout over resistance",
    }


def make_active(
    trade_id="TRADE-001",
    ticker="TSM",
    entry_price=150.0,
    position_size=15000.0,
    direction=TradeDirection.LONG,
    account="Income Generator",
    current_price=None,
    entry_date=None,
    **kwargs,
):
    """Build an ActiveTrade with sensible defaults."""
    return ActiveTrade(
        id=trade_id,
        ticker=ticker,
        entry_price=entry_price,
        position_size=position_size,
        share_count=position_size / entry_price if entry_price else 0.0,
        direction=direction,
        account=account,
        current_price=current_price,
        entry_date=entry_date or datetime(2025, 3, 10, 15, 0, tzinfo=timezone.utc),
        **kwargs,
    )


def make_closed(
    trade_id="TRADE-001",
    exit_price=160.0,
    exit_date=None,
    source=TradeSource.AI_SUGGESTION,
    **kwargs,
):
    """Build a ClosedTrade; entry fields as in ``make_active``."""
    active = make_active(trade_id=trade_id, source=source, **kwargs)
    entry = {
        name: getattr(active, name)
        for name in active.__dataclass_fields__
        if name != "current_price"
    }
    return ClosedTrade(
        exit_data=ExitData(
            exit_price=exit_price,
            exit_date=exit_date or datetime(2025, 3, 20, 15, 0, tzinfo=timezone.utc),
        ),
        **entry,
    )


def gemini_response(payload, status_code=200):
    """Mock ``requests.Response`` shaped like a generateContent reply."""
    response = Mock()
    response.status_code = status_code
    response.reason = "OK" if status_code < 400 else "Error"
    text = payload if isinstance(payload, str) else json.dumps(payload)
    response.json.return_value = {
        "candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]
    }
    return response


@pytest.fixture
def ai_payload():
    """A well-formed intake reply."""
    return {
        "account": "Speculation",
        "tradeType": "BUY_CALLS",
        "ticker": "nvda",
        "action": "OPEN",
        "direction": "Long",
        "quantity": 1,
        "entryPrice": 2.5,
        "positionSize": 250,
        "thesis": "Earnings catalyst in three weeks",
        "stopLoss": 1.25,
        "emotionalState": "Excited but controlled",
        "validationFlags": ["Check delta before entry"],
    }


@pytest.fixture
def mock_session(ai_payload):
    """Mock requests session answering with ``ai_payload``."""
    session = Mock()
    session.post.return_value = gemini_response(ai_payload)
    return session
