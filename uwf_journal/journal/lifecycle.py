"""
Trade lifecycle: creation from proposal fields, the one-way close, mark
updates and the immutable ``TradeBook`` that holds the trade set.
"""

import re
from dataclasses import fields
from datetime import datetime
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

from ..core.enums import EmotionalState, ExitReason, TradeDirection, TradeSource, account_name
from ..core.errors import ErrorCodes, TradeStateError, ValidationError
from ..core.finance import coerce_number, is_number, parse_timestamp
from ..persistence.models import (
    ActiveTrade,
    ClosedTrade,
    CriteriaChecklist,
    ExitData,
    PriceScenario,
    RepeatDecision,
    TakeProfitLevels,
    Trade,
    utcnow,
)

TRADE_ID_PREFIX = "TRADE-"
_TRADE_ID_PATTERN = re.compile(r"^TRADE-(\d+)$")

DEFAULT_SOURCE_DETAIL = "AI Journal Entry"


def format_trade_id(number: int) -> str:
    """``7`` -> ``TRADE-007``; wider numbers are kept whole."""
    return f"{TRADE_ID_PREFIX}{number:03d}"


def trade_number(trade_id: str) -> Optional[int]:
    """Numeric suffix of a ``TRADE-###`` id, or None for foreign ids."""
    match = _TRADE_ID_PATTERN.match(trade_id or "")
    return int(match.group(1)) if match else None


def is_active(trade: Trade) -> bool:
    return isinstance(trade, ActiveTrade)


def is_closed(trade: Trade) -> bool:
    return isinstance(trade, ClosedTrade)


def _non_negative(values: Mapping[str, Any], key: str) -> float:
    value = coerce_number(values.get(key))
    if value < 0:
        raise ValidationError(field=key, detail=f"{key} cannot be negative")
    return value


def create_trade(
    proposed: Mapping[str, Any],
    trade_id: str,
    entry_date: Optional[datetime] = None,
    portfolio_value_on_entry: float = 0.0,
    max_risk_percent: float = 0.0,
    raw_user_input: Optional[str] = None,
    framework_data: Optional[Dict[str, Any]] = None,
) -> ActiveTrade:
    """
    Build a new active trade from confirmed proposal fields.

    ``proposed`` uses the intake field names (``ticker``, ``direction``,
    ``entryPrice``, ``positionSize``, ``quantity``, ``stopLoss``, ``thesis``,
    ``emotionalState``, ``account``). Optional entry-form fields such as
    ``conviction``, ``bullCase`` or ``checklist`` are honoured when present.

    Raises:
        ValidationError: ticker missing or direction not Long/Short, or a
            negative price or size.
    """
    ticker = str(proposed.get("ticker") or "").strip().upper()
    if not ticker:
        raise ValidationError(ErrorCodes.VALIDATION_INVALID_TICKER, field="ticker")

    direction = TradeDirection.parse(proposed.get("direction"))
    if direction is None:
        raise ValidationError(
            field="direction",
            detail=f"direction must be Long or Short, got {proposed.get('direction')!r}",
        )

    entry_price = _non_negative(proposed, "entryPrice")
    position_size = _non_negative(proposed, "positionSize")
    stop_loss = _non_negative(proposed, "stopLoss")

    if entry_price > 0:
        share_count = position_size / entry_price
    else:
        share_count = coerce_number(proposed.get("quantity"))

    thesis = proposed.get("thesis") or ""
    if isinstance(thesis, (list, tuple)):
        thesis = tuple(str(part) for part in thesis)

    return ActiveTrade(
        id=trade_id,
        entry_date=entry_date or utcnow(),
        ticker=ticker,
        entry_price=entry_price,
        position_size=position_size,
        share_count=share_count,
        direction=direction,
        source=TradeSource.parse(proposed.get("source"), TradeSource.AI_SUGGESTION),
        source_detail=proposed.get("sourceDetail") or DEFAULT_SOURCE_DETAIL,
        conviction=coerce_number(proposed.get("conviction"), 5),
        thesis=thesis,
        catalyst_description=proposed.get("catalystDescription") or "",
        catalyst_date=proposed.get("catalystDate") or "",
        bull_case=PriceScenario.from_dict(proposed.get("bullCase")),
        bear_case=PriceScenario.from_dict(proposed.get("bearCase")),
        stop_loss=stop_loss,
        take_profit=TakeProfitLevels.from_dict(proposed.get("takeProfit")),
        portfolio_value_on_entry=portfolio_value_on_entry,
        max_risk_percent=max_risk_percent,
        emotional_state=EmotionalState.parse(proposed.get("emotionalState"), EmotionalState.CALM),
        checklist=CriteriaChecklist.from_dict(proposed.get("checklist")),
        account=account_name(proposed.get("account")),
        raw_user_input=raw_user_input,
        framework_data=dict(framework_data) if framework_data is not None else None,
    )


def close_trade(
    trade: Trade,
    exit_fields: Mapping[str, Any],
    now: Optional[datetime] = None,
) -> ClosedTrade:
    """
    Close an active trade with its exit post-mortem.

    ``exit_fields`` carries the exit form: ``exitPrice`` (required),
    ``exitReason``, ``exitReasonDetail``, ``reviewRight``, ``reviewWrong``,
    ``lessonLearned``, ``wouldTakeAgain`` (Yes/No), ``wouldTakeAgainReason``,
    ``selfRating`` and optionally ``exitDate``.

    Returns a new ClosedTrade; ``trade`` itself is left untouched.
    """
    if is_closed(trade):
        raise TradeStateError(ErrorCodes.TRADE_ALREADY_CLOSED, detail=trade.id)

    raw_price = exit_fields.get("exitPrice")
    if raw_price is None or raw_price == "":
        raise ValidationError(ErrorCodes.VALIDATION_REQUIRED_FIELD, field="exitPrice")
    if not is_number(raw_price):
        raise ValidationError(field="exitPrice", detail=f"exit price {raw_price!r} is not a number")
    exit_price = coerce_number(raw_price)
    if exit_price < 0:
        raise ValidationError(field="exitPrice", detail="exit price cannot be negative")

    exit_reason = ExitReason.parse(exit_fields.get("exitReason"), ExitReason.PROFIT_TARGET)

    decision = str(exit_fields.get("wouldTakeAgain") or "Yes").strip().capitalize()
    if decision not in ("Yes", "No"):
        raise ValidationError(field="wouldTakeAgain", detail="answer must be Yes or No")

    self_rating = coerce_number(exit_fields.get("selfRating"), 3)
    if self_rating != int(self_rating) or not 1 <= self_rating <= 5:
        raise ValidationError(field="selfRating", detail="rating must be a whole number from 1 to 5")

    exit_date = exit_fields.get("exitDate")
    if exit_date:
        try:
            exit_date = parse_timestamp(exit_date)
        except ValueError as e:
            raise ValidationError(field="exitDate", detail=str(e)) from e
    else:
        exit_date = now or utcnow()

    exit_data = ExitData(
        exit_price=exit_price,
        exit_date=exit_date,
        exit_reason=exit_reason,
        exit_reason_detail=exit_fields.get("exitReasonDetail") or "",
        review_right=exit_fields.get("reviewRight") or "",
        review_wrong=exit_fields.get("reviewWrong") or "",
        lesson_learned=exit_fields.get("lessonLearned") or "",
        would_take_again=RepeatDecision(
            decision=decision,
            reason=exit_fields.get("wouldTakeAgainReason") or "",
        ),
        self_rating=int(self_rating),
    )

    entry = {f.name: getattr(trade, f.name) for f in fields(Trade)}
    return ClosedTrade(exit_data=exit_data, **entry)


def mark_price(trade: Trade, price: Any) -> ActiveTrade:
    """Refresh the mark of an active trade."""
    if not is_active(trade):
        raise TradeStateError(ErrorCodes.TRADE_ALREADY_CLOSED, detail=trade.id)
    if not is_number(price):
        raise ValidationError(field="currentPrice", detail=f"price {price!r} is not a number")
    value = coerce_number(price)
    if value < 0:
        raise ValidationError(field="currentPrice", detail="price cannot be negative")
    return trade.with_price(value)


def trade_to_dict(trade: Trade) -> Dict[str, Any]:
    return trade.to_dict()


def trade_from_dict(data: Dict[str, Any]) -> Trade:
    """Stored record to trade; records carrying ``exitData`` load as closed."""
    return Trade.from_dict(data)

class TradeBook:
    """
    Immutable, insertion-ordered map of trade id -> trade.

    Carries the id counter so ids are never reused, even after trades are
    reloaded from storage. Every mutating call returns a new book.
    """

    __slots__ = ("_trades", "_next_number")

    def __init__(self, trades=(), next_number: Optional[int] = None):
        ordered: Dict[str, Trade] = {}
        for trade in trades:
            if trade.id in ordered:
                raise TradeStateError(ErrorCodes.TRADE_DUPLICATE_ID, detail=trade.id)
            ordered[trade.id] = trade
        self._trades = ordered

        recovered = max(
            (n for n in (trade_number(tid) for tid in ordered) if n is not None),
            default=0,
        ) + 1
        if next_number is None or next_number < recovered:
            next_number = recovered
        self._next_number = next_number

    @property
    def next_number(self) -> int:
        return self._next_number

    def __len__(self) -> int:
        return len(self._trades)

    def __iter__(self) -> Iterator[Trade]:
        return iter(self._trades.values())

    def __contains__(self, trade_id: str) -> bool:
        return trade_id in self._trades

    def get(self, trade_id: str) -> Optional[Trade]:
        return self._trades.get(trade_id)

    def require(self, trade_id: str) -> Trade:
        trade = self._trades.get(trade_id)
        if trade is None:
            raise TradeStateError(ErrorCodes.TRADE_NOT_FOUND, detail=trade_id)
        return trade

    def allocate_id(self) -> Tuple[str, "TradeBook"]:
        """Return the next free id and the book with the counter advanced."""
        trade_id = format_trade_id(self._next_number)
        return trade_id, TradeBook(self._trades.values(), self._next_number + 1)

    def add(self, trade: Trade) -> "TradeBook":
        if trade.id in self._trades:
            raise TradeStateError(ErrorCodes.TRADE_DUPLICATE_ID, detail=trade.id)
        return TradeBook([*self._trades.values(), trade], self._next_number)

    def replace(self, trade: Trade) -> "TradeBook":
        """Swap in a new version of an existing trade, keeping its position."""
        self.require(trade.id)
        trades = [trade if t.id == trade.id else t for t in self._trades.values()]
        return TradeBook(trades, self._next_number)

    def active(self) -> Tuple[ActiveTrade, ...]:
        return tuple(t for t in self._trades.values() if is_active(t))

    def closed(self) -> Tuple[ClosedTrade, ...]:
        return tuple(t for t in self._trades.values() if is_closed(t))

    def to_list(self):
        return [trade_to_dict(trade) for trade in self._trades.values()]

    @classmethod
    def from_list(cls, records, next_number: Optional[int] = None) -> "TradeBook":
        return cls((trade_from_dict(r) for r in records or []), next_number)


__all__ = [
    "TradeBook",
    "close_trade",
    "create_trade",
    "format_trade_id",
    "is_active",
    "is_closed",
    "mark_price",
    "trade_from_dict",
    "trade_number",
    "trade_to_dict",
]
