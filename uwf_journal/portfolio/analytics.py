"""
Performance analytics over closed trades.

Aggregates by account and by idea source, overall summary statistics and
the trade-history table (as plain rows or a pandas DataFrame).
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence

import pandas as pd

from ..core.enums import TradeAccount
from ..core.finance import format_currency, format_percent, profit_loss_percent
from ..persistence.models import ClosedTrade
from .ledger import realized_pl


@dataclass(frozen=True)
class PerformanceStats:
    """Win/loss aggregate for one partition of closed trades."""

    name: str
    trades: int = 0
    wins: int = 0
    win_rate: float = 0.0  # percent
    total_pl: float = 0.0
    avg_pl: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "trades": self.trades,
            "wins": self.wins,
            "winRate": self.win_rate,
            "totalPL": self.total_pl,
            "avgPL": self.avg_pl,
        }


def performance(name: str, trades: Sequence[ClosedTrade]) -> PerformanceStats:
    """Aggregate a partition; an empty partition yields all zeros."""
    count = len(trades)
    if count == 0:
        return PerformanceStats(name=name)

    pls = [realized_pl(t) for t in trades]
    wins = sum(1 for pl in pls if pl > 0)
    total = sum(pls)
    return PerformanceStats(
        name=name,
        trades=count,
        wins=wins,
        win_rate=(wins / count) * 100,
        total_pl=total,
        avg_pl=total / count,
    )


def by_account(closed_trades: Iterable[ClosedTrade]) -> List[PerformanceStats]:
    """
    Stats per account, always listing the three managed accounts and
    Uncategorized. Unknown or blank account names count as Uncategorized.
    """
    names = [acc.value for acc in TradeAccount.managed()]
    names.append(TradeAccount.UNCATEGORIZED.value)
    groups: Dict[str, List[ClosedTrade]] = {name: [] for name in names}
    for trade in closed_trades:
        key = trade.account if trade.account in groups else TradeAccount.UNCATEGORIZED.value
        groups[key].append(trade)
    return [performance(name, groups[name]) for name in names]


def by_source(closed_trades: Iterable[ClosedTrade]) -> List[PerformanceStats]:
    """Stats per idea source, in order of first appearance."""
    groups: Dict[str, List[ClosedTrade]] = {}
    for trade in closed_trades:
        groups.setdefault(trade.source.value, []).append(trade)
    return [performance(name, trades) for name, trades in groups.items()]


def summarize(closed_trades: Iterable[ClosedTrade]) -> Dict[str, Any]:
    """
    Overall statistics across every closed trade.

    Returns:
        Dict with totals, win rate, average win/loss, best/worst trade and
        profit factor (None when there are no losing trades).
    """
    trades = list(closed_trades)
    overall = performance("All", trades)
    if not trades:
        return {
            **overall.to_dict(),
            "losses": 0,
            "avgWin": 0,
            "avgLoss": 0,
            "bestTrade": None,
            "worstTrade": None,
            "profitFactor": None,
        }

    scored = [(realized_pl(t), t) for t in trades]
    winners = [pl for pl, _ in scored if pl > 0]
    losers = [pl for pl, _ in scored if pl <= 0]
    gross_loss = abs(sum(losers))
    best_pl, best = max(scored, key=lambda item: item[0])
    worst_pl, worst = min(scored, key=lambda item: item[0])

    return {
        **overall.to_dict(),
        "losses": len(losers),
        "avgWin": sum(winners) / len(winners) if winners else 0,
        "avgLoss": gross_loss / len(losers) if losers else 0,
        "bestTrade": {"id": best.id, "ticker": best.ticker, "pl": best_pl},
        "worstTrade": {"id": worst.id, "ticker": worst.ticker, "pl": worst_pl},
        "profitFactor": sum(winners) / gross_loss if gross_loss else None,
    }


_HISTORY_COLUMNS = [
    "id",
    "ticker",
    "account",
    "entryDate",
    "exitDate",
    "direction",
    "pl",
    "plPercent",
    "source",
]


def history_rows(closed_trades: Iterable[ClosedTrade], formatted: bool = False) -> List[Dict[str, Any]]:
    """
    Trade-history table, newest exit first.

    With ``formatted=True`` P/L values come back as display strings
    (``1.234,56 €`` and ``6.67%``).
    """
    trades = sorted(closed_trades, key=lambda t: t.exit_data.exit_date, reverse=True)
    rows = []
    for trade in trades:
        pl = realized_pl(trade)
        pl_percent = profit_loss_percent(
            trade.entry_price, trade.exit_data.exit_price, trade.direction
        )
        rows.append(
            {
                "id": trade.id,
                "ticker": trade.ticker,
                "account": trade.account,
                "entryDate": trade.entry_date.isoformat(),
                "exitDate": trade.exit_data.exit_date.isoformat(),
                "direction": trade.direction.value,
                "pl": format_currency(pl) if formatted else pl,
                "plPercent": format_percent(pl_percent) if formatted else pl_percent,
                "source": trade.source.value,
            }
        )
    return rows


def history_frame(closed_trades: Iterable[ClosedTrade]) -> pd.DataFrame:
    """History rows as a DataFrame with parsed date columns."""
    df = pd.DataFrame(history_rows(closed_trades), columns=_HISTORY_COLUMNS)
    if not df.empty:
        df["entryDate"] = pd.to_datetime(df["entryDate"], utc=True)
        df["exitDate"] = pd.to_datetime(df["exitDate"], utc=True)
    return df
