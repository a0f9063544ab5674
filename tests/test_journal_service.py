"""Tests for the TradeJournal service."""

import logging
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from uwf_journal.core.errors import ErrorCodes, StorageError, TradeStateError, ValidationError
from uwf_journal.journal import TradeJournal
from uwf_journal.persistence.models import AccountState, ClosedTrade, PortfolioSettings
from uwf_journal.persistence.store import META_KEY, SETTINGS_KEY, TRADES_KEY


class TestJournalLoading:
    """Tests for loading and persisting the snapshot."""

    def test_fresh_store_gets_defaults(self, journal, store):
        assert [a.name for a in journal.accounts] == ["Income Generator", "Speculation", "Trading Lab"]
        assert journal.portfolio_value() == 22000
        assert store.read(SETTINGS_KEY)["portfolioStartingValue"] == 22000

    def test_custom_defaults(self, store):
        defaults = PortfolioSettings(
            portfolio_starting_value=1000,
            accounts=(AccountState("Speculation", 1000, 1000),),
        )
        journal = TradeJournal(store, portfolio_defaults=defaults)
        assert journal.portfolio_value() == 1000

    def test_state_survives_reload(self, journal, store, income_proposal):
        trade = journal.open_trade(income_proposal)
        reloaded = TradeJournal(store)
        assert reloaded.get_trade(trade.id).ticker == "TSM"
        assert reloaded.settings.account("Income Generator").current_cash == 2000
        assert reloaded.book.next_number == 2

    def test_counter_persisted(self, journal, store, income_proposal):
        journal.open_trade(income_proposal)
        assert store.read(META_KEY) == {"nextTradeNumber": 2}

    def test_corrupt_trades_document_starts_empty(self, store):
        store.path_for(TRADES_KEY).write_text("[{", encoding="utf-8")
        journal = TradeJournal(store)
        assert len(journal.book) == 0

    def test_malformed_trades_document(self, store):
        store.write(TRADES_KEY, ["not a record"])
        with pytest.raises(StorageError):
            TradeJournal(store)


class TestOpenTrade:
    """Tests for opening trades."""

    def test_debits_account(self, journal, income_proposal):
        trade = journal.open_trade(income_proposal)
        assert trade.id == "TRADE-001"
        assert journal.settings.account("Income Generator").current_cash == 2000
        assert journal.portfolio_value() == 22000

    def test_records_portfolio_context(self, journal, income_proposal):
        trade = journal.open_trade(income_proposal, raw_user_input="Bought TSM")
        assert trade.portfolio_value_on_entry == 22000
        assert trade.max_risk_percent == 2
        assert trade.raw_user_input == "Bought TSM"

    def test_sequential_ids(self, journal, income_proposal, lab_proposal):
        first = journal.open_trade(income_proposal)
        second = journal.open_trade(lab_proposal)
        assert (first.id, second.id) == ("TRADE-001", "TRADE-002")

    def test_unknown_account_routed_to_uncategorized(self, journal, lab_proposal, caplog):
        lab_proposal["account"] = "Retirement"
        with caplog.at_level(logging.WARNING):
            trade = journal.open_trade(lab_proposal)
        assert trade.account == "Retirement"
        uncategorized = journal.settings.account("Uncategorized")
        assert uncategorized.starting_value == 0
        assert uncategorized.current_cash == -100
        assert journal.settings.account("Trading Lab").current_cash == 2000
        assert any(getattr(r, "ctx_trade_id", None) == trade.id for r in caplog.records)

    def test_validation_failure_leaves_state(self, journal, store, income_proposal):
        income_proposal["ticker"] = ""
        with pytest.raises(ValidationError):
            journal.open_trade(income_proposal)
        assert len(journal.book) == 0
        assert store.read(TRADES_KEY) is None
        assert journal.book.next_number == 1

    def test_failed_write_leaves_memory(self, journal, income_proposal):
        with patch.object(journal.store, "write", side_effect=StorageError(ErrorCodes.STORAGE_WRITE_ERROR)):
            with pytest.raises(StorageError):
                journal.open_trade(income_proposal)
        assert len(journal.book) == 0
        assert journal.settings.account("Income Generator").current_cash == 17000


    def test_settings_write_failure_rolls_back_trades(self, journal, store, income_proposal, lab_proposal):
        journal.open_trade(lab_proposal)
        trades_before = store.path_for(TRADES_KEY).read_text(encoding="utf-8")
        write = store.write

        def fail_on_settings(key, document):
            if key == SETTINGS_KEY:
                raise StorageError(ErrorCodes.STORAGE_WRITE_ERROR)
            write(key, document)

        with patch.object(store, "write", side_effect=fail_on_settings):
            with pytest.raises(StorageError):
                journal.open_trade(income_proposal)

        assert store.path_for(TRADES_KEY).read_text(encoding="utf-8") == trades_before
        assert store.read(META_KEY) == {"nextTradeNumber": 2}
        reloaded = TradeJournal(store)
        assert len(reloaded.book) == 1
        assert reloaded.settings.account("Income Generator").current_cash == 17000

class TestCloseAndMark:
    """Tests for closing trades and refreshing marks."""

    def test_close_credits_size_plus_pl(self, journal, income_proposal):
        trade = journal.open_trade(income_proposal)
        closed = journal.close_trade(trade.id, {"exitPrice": 160})
        assert isinstance(closed, ClosedTrade)
        assert journal.settings.account("Income Generator").current_cash == pytest.approx(18000)
        assert journal.active_trades() == ()

    def test_close_twice(self, journal, income_proposal):
        trade = journal.open_trade(income_proposal)
        journal.close_trade(trade.id, {"exitPrice": 160})
        with pytest.raises(TradeStateError) as exc_info:
            journal.close_trade(trade.id, {"exitPrice": 170})
        assert exc_info.value.error_code == ErrorCodes.TRADE_ALREADY_CLOSED
        assert journal.settings.account("Income Generator").current_cash == pytest.approx(18000)

    def test_close_unknown(self, journal):
        with pytest.raises(TradeStateError):
            journal.close_trade("TRADE-999", {"exitPrice": 1})

    def test_update_price(self, journal, income_proposal, caplog):
        trade = journal.open_trade(income_proposal)
        with caplog.at_level(logging.INFO, logger="uwf_journal.journal.service"):
            updated = journal.update_price(trade.id, 165)
        marked = [r for r in caplog.records if r.getMessage().startswith("Marked")]
        assert marked[-1].ctx_trade_id == trade.id
        assert updated.current_price == 165
        assert journal.get_trade(trade.id).current_price == 165
        assert journal.settings.account("Income Generator").current_cash == 2000


class TestQueries:
    """Tests for read-side views."""

    def test_trades_by_status(self, journal, income_proposal, lab_proposal):
        first = journal.open_trade(income_proposal)
        journal.open_trade(lab_proposal)
        journal.close_trade(first.id, {"exitPrice": 150})
        assert [t.id for t in journal.trades("active")] == ["TRADE-002"]
        assert [t.id for t in journal.trades("closed")] == ["TRADE-001"]
        assert len(journal.trades()) == 2

    def test_unknown_status(self, journal):
        with pytest.raises(ValidationError) as exc_info:
            journal.trades("pending")
        assert exc_info.value.field == "status"

    def test_position_view(self, journal, income_proposal, entry_time):
        trade = journal.open_trade(income_proposal, entry_date=entry_time)
        trade = journal.update_price(trade.id, 165)
        view = journal.position_view(trade, now=datetime(2025, 3, 15, 15, 0, tzinfo=timezone.utc))
        assert view["pl"] == pytest.approx(1500)
        assert view["plPercent"] == pytest.approx(10)
        assert view["daysHeld"] == 3
        assert view["checklistScore"] == 0
        assert view["markPrice"] == 165

    def test_dashboard(self, journal, income_proposal, lab_proposal):
        journal.open_trade(income_proposal)
        lab_proposal["account"] = "Retirement"
        journal.open_trade(lab_proposal)
        cards = {c["account"]["name"]: c for c in journal.dashboard()}
        assert list(cards) == ["Income Generator", "Speculation", "Trading Lab", "Uncategorized"]
        assert cards["Income Generator"]["valuation"]["totalValue"] == pytest.approx(17000)
        assert len(cards["Uncategorized"]["positions"]) == 1

    def test_review_uses_open_book(self, journal, income_proposal):
        journal.open_trade(income_proposal)
        flags = journal.review_proposal(income_proposal)
        assert any("deployed" in f for f in flags)

    def test_summary_and_history(self, journal, income_proposal):
        trade = journal.open_trade(income_proposal)
        journal.close_trade(trade.id, {"exitPrice": 160})
        summary = journal.summary()
        assert summary["totalPL"] == pytest.approx(1000)
        assert summary["openPositions"] == 0
        assert summary["portfolioValue"] == pytest.approx(23000)
        assert journal.history()[0]["id"] == trade.id
        assert journal.history(formatted=True)[0]["pl"] == "1.000,00 €"
        assert len(journal.history_frame()) == 1

    def test_history_mixes_date_only_and_default_exit_dates(self, journal, store, income_proposal, lab_proposal):
        first = journal.open_trade(income_proposal)
        second = journal.open_trade(lab_proposal)
        journal.close_trade(first.id, {"exitPrice": 151, "exitDate": "2025-04-01"})
        journal.close_trade(second.id, {"exitPrice": 102})

        history = journal.history()
        assert [row["id"] for row in history] == [second.id, first.id]
        assert len(journal.history_frame()) == 2
        assert [row["id"] for row in TradeJournal(store).history()] == [second.id, first.id]
        assert journal.get_trade(first.id).exit_data.exit_date == datetime(2025, 4, 1, tzinfo=timezone.utc)

    def test_performance_views(self, journal, income_proposal):
        trade = journal.open_trade(income_proposal)
        journal.close_trade(trade.id, {"exitPrice": 160})
        by_account = {row["name"]: row for row in journal.performance_by_account()}
        assert by_account["Income Generator"]["wins"] == 1
        assert journal.performance_by_source()[0]["name"] == "AI Suggestion"

    def test_health_check(self, journal):
        assert journal.health_check()
