"""Tests for closed-trade analytics."""

from datetime import datetime, timezone

import pandas as pd
import pytest

from conftest import make_closed
from uwf_journal.core.enums import TradeSource
from uwf_journal.portfolio.analytics import (
    by_account,
    by_source,
    history_frame,
    history_rows,
    performance,
    summarize,
)


@pytest.fixture
def closed_trades():
    return [
        make_closed("TRADE-001", exit_price=160.0, source=TradeSource.YOUTUBE,
                    exit_date=datetime(2025, 3, 20, tzinfo=timezone.utc)),
        make_closed("TRADE-002", exit_price=140.0, source=TradeSource.AI_SUGGESTION,
                    exit_date=datetime(2025, 3, 25, tzinfo=timezone.utc)),
        make_closed("TRADE-003", entry_price=10.0, position_size=100.0, exit_price=12.0,
                    account="Trading Lab", source=TradeSource.YOUTUBE,
                    exit_date=datetime(2025, 3, 22, tzinfo=timezone.utc)),
    ]


class TestPerformance:
    """Tests for performance aggregation."""

    def test_empty_partition(self):
        stats = performance("Speculation", [])
        assert stats.trades == 0
        assert stats.win_rate == 0
        assert stats.avg_pl == 0

    def test_aggregates(self, closed_trades):
        stats = performance("All", closed_trades)
        assert stats.trades == 3
        assert stats.wins == 2
        assert stats.win_rate == pytest.approx(200 / 3)
        assert stats.total_pl == pytest.approx(1000 - 1000 + 20)
        assert stats.to_dict()["totalPL"] == pytest.approx(20)

    def test_by_account_lists_every_account(self, closed_trades):
        stats = {s.name: s for s in by_account(closed_trades)}
        assert list(stats) == ["Income Generator", "Speculation", "Trading Lab", "Uncategorized"]
        assert stats["Income Generator"].trades == 2
        assert stats["Trading Lab"].total_pl == pytest.approx(20)
        assert stats["Speculation"].trades == 0

    def test_unknown_account_counts_as_uncategorized(self):
        stats = {s.name: s for s in by_account([make_closed(account="Retirement")])}
        assert stats["Uncategorized"].trades == 1

    def test_mixed_results_scenario(self):
        trades = [
            make_closed(f"TRADE-00{n}", entry_price=100.0, position_size=1000.0, exit_price=price)
            for n, price in enumerate((110.0, 95.0, 103.0), start=1)
        ]
        stats = performance("Income Generator", trades)
        assert stats.trades == 3
        assert stats.win_rate == pytest.approx(66.7, abs=0.05)
        assert stats.total_pl == pytest.approx(80)
        assert stats.avg_pl == pytest.approx(26.7, abs=0.05)

    def test_by_source_first_appearance(self, closed_trades):
        stats = by_source(closed_trades)
        assert [s.name for s in stats] == ["YouTube", "AI Suggestion"]
        assert stats[0].trades == 2


class TestSummary:
    """Tests for summarize."""

    def test_empty(self):
        summary = summarize([])
        assert summary["trades"] == 0
        assert summary["bestTrade"] is None
        assert summary["profitFactor"] is None

    def test_summary(self, closed_trades):
        summary = summarize(closed_trades)
        assert summary["losses"] == 1
        assert summary["bestTrade"]["id"] == "TRADE-001"
        assert summary["worstTrade"]["id"] == "TRADE-002"
        assert summary["avgWin"] == pytest.approx(510)
        assert summary["avgLoss"] == pytest.approx(1000)
        assert summary["profitFactor"] == pytest.approx(1.02)

    def test_no_losses_profit_factor_none(self):
        summary = summarize([make_closed(exit_price=170.0)])
        assert summary["profitFactor"] is None
        assert summary["winRate"] == 100


class TestHistory:
    """Tests for the trade-history table."""

    def test_newest_exit_first(self, closed_trades):
        rows = history_rows(closed_trades)
        assert [r["id"] for r in rows] == ["TRADE-002", "TRADE-003", "TRADE-001"]
        assert rows[0]["pl"] == pytest.approx(-1000)

    def test_formatted(self, closed_trades):
        rows = history_rows(closed_trades, formatted=True)
        assert rows[2]["pl"] == "1.000,00 €"
        assert rows[2]["plPercent"] == "6.67%"

    def test_frame(self, closed_trades):
        df = history_frame(closed_trades)
        assert len(df) == 3
        assert pd.api.types.is_datetime64_any_dtype(df["exitDate"])
        assert df["pl"].sum() == pytest.approx(20)

    def test_empty_frame_has_columns(self):
        df = history_frame([])
        assert df.empty
        assert "ticker" in df.columns
