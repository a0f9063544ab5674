"""
Portfolio Ledger

Cash effects of opening and closing positions, plus per-account valuation.

Each account holds a cash pool. Opening a trade debits the owning account by
the position size; closing it credits ``position size + realized P/L``. The
functions here never mutate their inputs; they return a ``LedgerResult``
with the new account tuple and say explicitly whether an account matched.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..core.enums import TradeAccount
from ..core.finance import profit_loss
from ..persistence.models import AccountState, ActiveTrade, ClosedTrade, Trade

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerResult:
    """Outcome of applying one cash effect to the account list."""

    accounts: Tuple[AccountState, ...]
    matched: bool
    account_name: str
    cash_delta: float
    warnings: Tuple[str, ...] = ()

    @property
    def account(self) -> Optional[AccountState]:
        for acc in self.accounts:
            if acc.name == self.account_name:
                return acc
        return None


@dataclass(frozen=True)
class AccountValuation:
    """Point-in-time valuation of one account."""

    total_value: float
    open_pl: float
    cash: float
    open_positions: int

    def to_dict(self) -> Dict[str, float]:
        return {
            "totalValue": self.total_value,
            "openPL": self.open_pl,
            "cash": self.cash,
            "openPositions": self.open_positions,
        }


def apply_cash(
    accounts: Sequence[AccountState],
    account_name: str,
    delta: float,
) -> LedgerResult:
    """
    Add ``delta`` to the cash of the named account.

    When no account has that name the accounts come back unchanged with
    ``matched=False``; the caller decides where the effect goes.
    """
    updated: List[AccountState] = []
    matched = False
    warnings: List[str] = []

    for acc in accounts:
        if not matched and acc.name == account_name:
            matched = True
            new_cash = acc.current_cash + delta
            if new_cash < 0:
                warnings.append(
                    f"{acc.name} cash is negative after this trade ({new_cash:.2f})"
                )
            updated.append(acc.with_cash(new_cash))
        else:
            updated.append(acc)

    if not matched:
        warnings.append(f"No account named {account_name!r}; cash effect not applied")

    return LedgerResult(
        accounts=tuple(updated),
        matched=matched,
        account_name=account_name,
        cash_delta=delta,
        warnings=tuple(warnings),
    )


def realized_pl(trade: ClosedTrade) -> float:
    return profit_loss(
        trade.entry_price,
        trade.exit_data.exit_price,
        trade.share_count,
        trade.direction,
    )


def open_pl(trade: ActiveTrade) -> float:
    return profit_loss(
        trade.entry_price,
        trade.mark_price,
        trade.share_count,
        trade.direction,
    )


def open_position(
    accounts: Sequence[AccountState],
    trade: Trade,
    account_name: Optional[str] = None,
) -> LedgerResult:
    """Debit the owning account by the trade's position size."""
    return apply_cash(accounts, account_name or trade.account, -trade.position_size)


def close_position(
    accounts: Sequence[AccountState],
    trade: ClosedTrade,
    account_name: Optional[str] = None,
) -> LedgerResult:
    """Credit the owning account with position size plus realized P/L."""
    return apply_cash(
        accounts,
        account_name or trade.account,
        trade.position_size + realized_pl(trade),
    )


def ensure_account(
    accounts: Sequence[AccountState],
    name: str = TradeAccount.UNCATEGORIZED.value,
) -> Tuple[AccountState, ...]:
    """Return ``accounts`` with an empty account called ``name`` appended if missing."""
    if any(acc.name == name for acc in accounts):
        return tuple(accounts)
    logger.info(f"Creating account {name!r} with zero starting value")
    return (*accounts, AccountState(name=name, starting_value=0.0, current_cash=0.0))


def account_valuation(account: AccountState, open_trades: Iterable[ActiveTrade]) -> AccountValuation:
    """
    Value an account from its cash and the open positions attributed to it.

    Positions are marked at their current price, or at entry when no mark
    has been recorded.
    """
    trades = list(open_trades)
    total_open_pl = 0.0
    positions_value = 0.0
    for trade in trades:
        pl = open_pl(trade)
        total_open_pl += pl
        positions_value += trade.position_size + pl

    return AccountValuation(
        total_value=account.current_cash + positions_value,
        open_pl=total_open_pl,
        cash=account.current_cash,
        open_positions=len(trades),
    )


def group_by_account(
    accounts: Sequence[AccountState],
    trades: Iterable[Trade],
) -> Dict[str, List[Trade]]:
    """
    Bucket trades under the account names in ``accounts``.

    Trades whose account is not in the list land in Uncategorized.
    """
    names = [acc.name for acc in accounts]
    groups: Dict[str, List[Trade]] = {name: [] for name in names}
    fallback = TradeAccount.UNCATEGORIZED.value
    for trade in trades:
        key = trade.account if trade.account in groups else fallback
        groups.setdefault(key, []).append(trade)
    return groups


def portfolio_value(accounts: Sequence[AccountState], active_trades: Iterable[ActiveTrade]) -> float:
    """Total cash plus the cost basis of every open position."""
    return sum(acc.current_cash for acc in accounts) + sum(
        t.position_size for t in active_trades
    )
