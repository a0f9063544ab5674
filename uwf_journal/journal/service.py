"""
Journal Service

``TradeJournal`` owns the current snapshot (trade book, portfolio settings,
watchlist, circuit breaker) and is the only way to change it. Each mutation
validates first, computes the new snapshot, persists it and only then swaps
it in, so a failed action leaves both memory and disk as they were.
"""

import logging
import threading
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

import pandas as pd

from ..config.logging import event_logger, log_with_context
from ..core.enums import TradeAccount, TradeStatus
from ..core.errors import ErrorCodes, StorageError, ValidationError
from ..core.finance import checklist_score, days_held, profit_loss_percent
from ..intake.policy import review_proposal
from ..persistence.models import (
    AccountState,
    ActiveTrade,
    CircuitBreakerInfo,
    ClosedTrade,
    PortfolioSettings,
    Trade,
    WatchlistItem,
    utcnow,
)
from ..persistence.store import (
    CIRCUIT_BREAKER_KEY,
    META_KEY,
    SETTINGS_KEY,
    TRADES_KEY,
    WATCHLIST_KEY,
    JsonStore,
)
from ..portfolio import analytics
from ..portfolio.ledger import (
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
from .lifecycle import TradeBook, close_trade, create_trade, mark_price

logger = logging.getLogger(__name__)

UNCATEGORIZED = TradeAccount.UNCATEGORIZED.value


class TradeJournal:
    """
    High-level interface for the trading journal.

    Example:
        journal = TradeJournal(JsonStore("~/.uwf_journal"))
        trade = journal.open_trade({"ticker": "TSM", "direction": "Long",
                                    "entryPrice": 150, "positionSize": 15000,
                                    "account": "Income Generator"})
        journal.close_trade(trade.id, {"exitPrice": 160})
    """

    def __init__(
        self,
        store: JsonStore,
        portfolio_defaults: Optional[PortfolioSettings] = None,
    ):
        self.store = store
        self._defaults = portfolio_defaults or PortfolioSettings()
        self._lock = threading.RLock()
        self._book = TradeBook()
        self._settings = self._defaults
        self._watchlist: Tuple[WatchlistItem, ...] = ()
        self._circuit_breaker = CircuitBreakerInfo(
            peak_portfolio_value=self._defaults.portfolio_starting_value
        )
        self.reload()

    # =========================================================================
    # Loading & Persistence
    # =========================================================================

    def reload(self) -> None:
        """Read every stored document and replace the in-memory snapshot."""
        with self._lock:
            meta = self.store.read(META_KEY, {}) or {}
            try:
                book = TradeBook.from_list(
                    self.store.read(TRADES_KEY, []),
                    meta.get("nextTradeNumber"),
                )
            except (TypeError, ValueError, AttributeError) as e:
                raise StorageError(
                    ErrorCodes.STORAGE_READ_ERROR, detail="trades document", original_error=e
                ) from e

            settings_doc = self.store.read(SETTINGS_KEY)
            if settings_doc is None:
                settings = self._defaults
                self.store.write(SETTINGS_KEY, settings.to_dict())
                logger.info(f"Created default portfolio settings in {self.store.data_dir}")
            else:
                settings = PortfolioSettings.from_dict(settings_doc)

            watchlist = tuple(
                WatchlistItem.from_dict(item) for item in self.store.read(WATCHLIST_KEY, []) or []
            )
            breaker_doc = self.store.read(CIRCUIT_BREAKER_KEY)
            breaker = (
                CircuitBreakerInfo.from_dict(breaker_doc)
                if breaker_doc is not None
                else CircuitBreakerInfo(peak_portfolio_value=settings.portfolio_starting_value)
            )

            self._book = book
            self._settings = settings
            self._watchlist = watchlist
            self._circuit_breaker = breaker
            logger.info(
                f"Journal loaded: {len(book)} trades, {len(settings.accounts)} accounts"
            )

    def _commit(self, book: TradeBook, settings: PortfolioSettings) -> None:
        self.store.write_many(
            {
                TRADES_KEY: book.to_list(),
                META_KEY: {"nextTradeNumber": book.next_number},
                SETTINGS_KEY: settings.to_dict(),
            },
            order=(TRADES_KEY, META_KEY, SETTINGS_KEY),
        )
        self._book = book
        self._settings = settings

    def _settle(self, result: LedgerResult, trade: Trade) -> Tuple[AccountState, ...]:
        """
        Return the account tuple after ``result``.

        An unmatched effect is booked to the Uncategorized account, which is
        created with a zero starting value on first use.
        """
        if result.matched:
            for warning in result.warnings:
                log_with_context(logger, logging.WARNING, warning, trade_id=trade.id)
            return result.accounts

        accounts = ensure_account(result.accounts, UNCATEGORIZED)
        routed = apply_cash(accounts, UNCATEGORIZED, result.cash_delta)
        event_logger.log_ledger_routed(trade.id, result.account_name, UNCATEGORIZED, result.cash_delta)
        for warning in routed.warnings:
            log_with_context(logger, logging.WARNING, warning, trade_id=trade.id)
        return routed.accounts

    # =========================================================================
    # Mutations
    # =========================================================================

    def open_trade(
        self,
        proposed: Mapping[str, Any],
        raw_user_input: Optional[str] = None,
        framework_data: Optional[Dict[str, Any]] = None,
        entry_date: Optional[datetime] = None,
    ) -> ActiveTrade:
        """
        Create a trade from confirmed proposal fields and debit its account.

        Records the current portfolio value and the configured risk per trade
        on the new record.
        """
        if hasattr(proposed, "to_fields"):
            proposed = proposed.to_fields()

        with self._lock:
            trade_id, book = self._book.allocate_id()
            trade = create_trade(
                proposed,
                trade_id,
                entry_date=entry_date,
                portfolio_value_on_entry=self.portfolio_value(),
                max_risk_percent=self._settings.risk_per_trade,
                raw_user_input=raw_user_input,
                framework_data=framework_data,
            )
            book = book.add(trade)
            accounts = self._settle(open_position(self._settings.accounts, trade), trade)
            self._commit(book, self._settings.with_accounts(accounts))

        event_logger.log_trade_opened(trade.id, trade.ticker, trade.account, trade.position_size)
        return trade

    def close_trade(
        self,
        trade_id: str,
        exit_fields: Mapping[str, Any],
        now: Optional[datetime] = None,
    ) -> ClosedTrade:
        """Close an active trade and credit its account with size plus P/L."""
        with self._lock:
            closed = close_trade(self._book.require(trade_id), exit_fields, now=now)
            book = self._book.replace(closed)
            accounts = self._settle(close_position(self._settings.accounts, closed), closed)
            self._commit(book, self._settings.with_accounts(accounts))

        event_logger.log_trade_closed(closed.id, closed.ticker, closed.account, realized_pl(closed))
        return closed

    def update_price(self, trade_id: str, price: Any) -> ActiveTrade:
        """Refresh the mark of an active trade."""
        with self._lock:
            updated = mark_price(self._book.require(trade_id), price)
            self._commit(self._book.replace(updated), self._settings)
        log_with_context(logger, logging.INFO, f"Marked {trade_id} at {updated.current_price}", trade_id=trade_id)
        return updated

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def settings(self) -> PortfolioSettings:
        return self._settings

    @property
    def accounts(self) -> Tuple[AccountState, ...]:
        return self._settings.accounts

    @property
    def watchlist(self) -> Tuple[WatchlistItem, ...]:
        return self._watchlist

    @property
    def circuit_breaker(self) -> CircuitBreakerInfo:
        return self._circuit_breaker

    @property
    def book(self) -> TradeBook:
        return self._book

    def get_trade(self, trade_id: str) -> Trade:
        return self._book.require(trade_id)

    def trades(self, status: Optional[str] = None) -> List[Trade]:
        if status is None:
            return list(self._book)
        wanted = TradeStatus.parse(status)
        if wanted == TradeStatus.ACTIVE:
            return list(self._book.active())
        if wanted == TradeStatus.CLOSED:
            return list(self._book.closed())
        raise ValidationError(field="status", detail=f"unknown trade status {status!r}")

    def active_trades(self) -> Tuple[ActiveTrade, ...]:
        return self._book.active()

    def closed_trades(self) -> Tuple[ClosedTrade, ...]:
        return self._book.closed()

    def portfolio_value(self) -> float:
        return portfolio_value(self._settings.accounts, self._book.active())

    def position_view(self, trade: ActiveTrade, now: Optional[datetime] = None) -> Dict[str, Any]:
        """An open position with its live figures."""
        now = now or utcnow()
        return {
            **trade.to_dict(),
            "markPrice": trade.mark_price,
            "pl": open_pl(trade),
            "plPercent": profit_loss_percent(trade.entry_price, trade.mark_price, trade.direction),
            "daysHeld": days_held(trade.entry_date, now),
            "checklistScore": checklist_score(trade.checklist),
        }

    def dashboard(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """
        Per-account valuation and open positions.

        Open trades whose account is not configured are shown under
        Uncategorized.
        """
        accounts = list(self._settings.accounts)
        groups = group_by_account(accounts, self._book.active())
        if groups.get(UNCATEGORIZED) and not any(a.name == UNCATEGORIZED for a in accounts):
            accounts.append(AccountState(name=UNCATEGORIZED))

        views = []
        for account in accounts:
            trades = groups.get(account.name, [])
            views.append(
                {
                    "account": account.to_dict(),
                    "valuation": account_valuation(account, trades).to_dict(),
                    "positions": [self.position_view(t, now) for t in trades],
                }
            )
        return views

    def review_proposal(self, proposal: Mapping[str, Any], now: Optional[datetime] = None) -> List[str]:
        """Run the account rules against a proposal and the current book."""
        return review_proposal(proposal, self._book, now=now, accounts=self._settings.accounts)

    def history(self, formatted: bool = False) -> List[Dict[str, Any]]:
        return analytics.history_rows(self._book.closed(), formatted=formatted)

    def history_frame(self) -> pd.DataFrame:
        return analytics.history_frame(self._book.closed())

    def performance_by_account(self) -> List[Dict[str, Any]]:
        return [s.to_dict() for s in analytics.by_account(self._book.closed())]

    def performance_by_source(self) -> List[Dict[str, Any]]:
        return [s.to_dict() for s in analytics.by_source(self._book.closed())]

    def summary(self) -> Dict[str, Any]:
        return {
            **analytics.summarize(self._book.closed()),
            "portfolioValue": self.portfolio_value(),
            "openPositions": len(self._book.active()),
        }

    def health_check(self) -> bool:
        return self.store.data_dir.exists()
