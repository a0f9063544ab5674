"""
Persistence Data Models

Dataclasses for every persisted journal document. ``to_dict`` emits the
camelCase layout used by the stored documents; ``from_dict`` accepts it back
and fills defaults for anything missing.

Records are frozen: a change to a trade or account always produces a new
record that replaces the old one.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple, Union
from uuid import uuid4

from ..core.enums import (
    EmotionalState,
    ExitReason,
    TradeAccount,
    TradeDirection,
    TradeSource,
    TradeStatus,
    WatchlistStatus,
    account_name,
)
from ..core.finance import coerce_number, parse_timestamp


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _timestamp(value: Any, default: Optional[datetime] = None) -> Optional[datetime]:
    if isinstance(value, datetime):
        return parse_timestamp(value)
    if isinstance(value, str) and value.strip():
        try:
            return parse_timestamp(value)
        except ValueError:
            return default
    return default


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# =============================================================================
# Trade Payload Parts
# =============================================================================


@dataclass(frozen=True)
class CriteriaChecklist:
    """Five-point pre-trade checklist."""

    catalyst_45_days: bool = False
    analysts_covering: bool = False
    institutional_ownership: bool = False
    technical_setup: bool = False
    explainable: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return {
            "catalyst45Days": self.catalyst_45_days,
            "analystsCovering": self.analysts_covering,
            "institutionalOwnership": self.institutional_ownership,
            "technicalSetup": self.technical_setup,
            "explainable": self.explainable,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CriteriaChecklist":
        data = data or {}
        return cls(
            catalyst_45_days=bool(data.get("catalyst45Days", False)),
            analysts_covering=bool(data.get("analystsCovering", False)),
            institutional_ownership=bool(data.get("institutionalOwnership", False)),
            technical_setup=bool(data.get("technicalSetup", False)),
            explainable=bool(data.get("explainable", False)),
        )


@dataclass(frozen=True)
class PriceScenario:
    """Bull or bear case: target price and its estimated probability."""

    price: float = 0.0
    probability: float = 50.0

    def to_dict(self) -> Dict[str, float]:
        return {"price": self.price, "probability": self.probability}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "PriceScenario":
        data = data or {}
        return cls(
            price=coerce_number(data.get("price")),
            probability=coerce_number(data.get("probability"), 50.0),
        )


@dataclass(frozen=True)
class TakeProfitLevels:
    """Staged take-profit prices at 25%, 50% and 100% of the position."""

    p25: float = 0.0
    p50: float = 0.0
    p100: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"p25": self.p25, "p50": self.p50, "p100": self.p100}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "TakeProfitLevels":
        data = data or {}
        return cls(
            p25=coerce_number(data.get("p25")),
            p50=coerce_number(data.get("p50")),
            p100=coerce_number(data.get("p100")),
        )


@dataclass(frozen=True)
class RepeatDecision:
    """Would the trader take this trade again, and why."""

    decision: str = "Yes"  # "Yes" or "No"
    reason: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"decision": self.decision, "reason": self.reason}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RepeatDecision":
        data = data or {}
        return cls(decision=data.get("decision", "Yes"), reason=data.get("reason", ""))


@dataclass(frozen=True)
class ExitData:
    """Post-mortem recorded when a position is closed."""

    exit_price: float
    exit_date: datetime = field(default_factory=utcnow)
    exit_reason: ExitReason = ExitReason.PROFIT_TARGET
    exit_reason_detail: str = ""
    review_right: str = ""
    review_wrong: str = ""
    lesson_learned: str = ""
    would_take_again: RepeatDecision = field(default_factory=RepeatDecision)
    self_rating: int = 3  # 1-5 stars

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exitDate": _isoformat(self.exit_date),
            "exitPrice": self.exit_price,
            "exitReason": self.exit_reason.value,
            "exitReasonDetail": self.exit_reason_detail,
            "reviewRight": self.review_right,
            "reviewWrong": self.review_wrong,
            "lessonLearned": self.lesson_learned,
            "wouldTakeAgain": self.would_take_again.to_dict(),
            "selfRating": self.self_rating,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExitData":
        return cls(
            exit_price=coerce_number(data.get("exitPrice")),
            exit_date=_timestamp(data.get("exitDate"), utcnow()),
            exit_reason=ExitReason.parse(data.get("exitReason"), ExitReason.OTHER),
            exit_reason_detail=data.get("exitReasonDetail", ""),
            review_right=data.get("reviewRight", ""),
            review_wrong=data.get("reviewWrong", ""),
            lesson_learned=data.get("lessonLearned", ""),
            would_take_again=RepeatDecision.from_dict(data.get("wouldTakeAgain")),
            self_rating=int(coerce_number(data.get("selfRating"), 3)),
        )


# =============================================================================
# Trades
# =============================================================================


@dataclass(frozen=True)
class Trade(ABC):
    """
    Common entry payload shared by active and closed trades.

    Abstract: only ``ActiveTrade`` and ``ClosedTrade`` are instantiated;
    ``Trade.from_dict`` picks the variant.

    ``id``, ``entry_price`` and ``position_size`` never change after the
    trade is created.
    """

    id: str = ""
    entry_date: datetime = field(default_factory=utcnow)
    ticker: str = ""
    entry_price: float = 0.0
    position_size: float = 0.0
    share_count: float = 0.0
    direction: TradeDirection = TradeDirection.LONG
    source: TradeSource = TradeSource.AI_SUGGESTION
    source_detail: str = ""
    conviction: float = 5
    thesis: Union[str, Tuple[str, ...]] = ""
    catalyst_description: str = ""
    catalyst_date: str = ""
    bull_case: PriceScenario = field(default_factory=PriceScenario)
    bear_case: PriceScenario = field(default_factory=PriceScenario)
    stop_loss: float = 0.0
    take_profit: TakeProfitLevels = field(default_factory=TakeProfitLevels)
    portfolio_value_on_entry: float = 0.0
    max_risk_percent: float = 0.0
    emotional_state: EmotionalState = EmotionalState.CALM
    checklist: CriteriaChecklist = field(default_factory=CriteriaChecklist)
    account: str = TradeAccount.UNCATEGORIZED.value
    raw_user_input: Optional[str] = None
    framework_data: Optional[Dict[str, Any]] = None

    @property
    @abstractmethod
    def status(self) -> TradeStatus:
        """Lifecycle tag of the variant."""

    def _entry_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "entryDate": _isoformat(self.entry_date),
            "ticker": self.ticker,
            "entryPrice": self.entry_price,
            "positionSize": self.position_size,
            "shareCount": self.share_count,
            "direction": self.direction.value,
            "source": self.source.value,
            "sourceDetail": self.source_detail,
            "conviction": self.conviction,
            "thesis": list(self.thesis) if isinstance(self.thesis, tuple) else self.thesis,
            "catalystDescription": self.catalyst_description,
            "catalystDate": self.catalyst_date,
            "bullCase": self.bull_case.to_dict(),
            "bearCase": self.bear_case.to_dict(),
            "stopLoss": self.stop_loss,
            "takeProfit": self.take_profit.to_dict(),
            "portfolioValueOnEntry": self.portfolio_value_on_entry,
            "maxRiskPercent": self.max_risk_percent,
            "emotionalState": self.emotional_state.value,
            "checklist": self.checklist.to_dict(),
            "account": self.account,
        }
        if self.raw_user_input is not None:
            data["rawUserInput"] = self.raw_user_input
        if self.framework_data is not None:
            data["frameworkData"] = dict(self.framework_data)
        return data

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """Stored camelCase document."""

    @staticmethod
    def _entry_kwargs(data: Dict[str, Any]) -> Dict[str, Any]:
        thesis = data.get("thesis", "")
        if isinstance(thesis, list):
            thesis = tuple(str(part) for part in thesis)
        return {
            "id": data.get("id", ""),
            "entry_date": _timestamp(data.get("entryDate"), utcnow()),
            "ticker": data.get("ticker", ""),
            "entry_price": coerce_number(data.get("entryPrice")),
            "position_size": coerce_number(data.get("positionSize")),
            "share_count": coerce_number(data.get("shareCount")),
            "direction": TradeDirection.parse(data.get("direction"), TradeDirection.LONG),
            "source": TradeSource.parse(data.get("source"), TradeSource.OTHER),
            "source_detail": data.get("sourceDetail", ""),
            "conviction": coerce_number(data.get("conviction"), 5),
            "thesis": thesis,
            "catalyst_description": data.get("catalystDescription", ""),
            "catalyst_date": data.get("catalystDate", ""),
            "bull_case": PriceScenario.from_dict(data.get("bullCase")),
            "bear_case": PriceScenario.from_dict(data.get("bearCase")),
            "stop_loss": coerce_number(data.get("stopLoss")),
            "take_profit": TakeProfitLevels.from_dict(data.get("takeProfit")),
            "portfolio_value_on_entry": coerce_number(data.get("portfolioValueOnEntry")),
            "max_risk_percent": coerce_number(data.get("maxRiskPercent")),
            "emotional_state": EmotionalState.parse(data.get("emotionalState"), EmotionalState.CALM),
            "checklist": CriteriaChecklist.from_dict(data.get("checklist")),
            "account": account_name(data.get("account")),
            "raw_user_input": data.get("rawUserInput"),
            "framework_data": data.get("frameworkData"),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Trade":
        """
        Load a stored trade.

        The variant is decided by the presence of ``exitData``, so a record
        can never be both active and closed.
        """
        kwargs = Trade._entry_kwargs(data)
        if data.get("exitData"):
            return ClosedTrade(exit_data=ExitData.from_dict(data["exitData"]), **kwargs)
        current_price = data.get("currentPrice")
        return ActiveTrade(
            current_price=coerce_number(current_price) if current_price is not None else None,
            **kwargs,
        )


@dataclass(frozen=True)
class ActiveTrade(Trade):
    """An open position; ``current_price`` is the last known mark."""

    current_price: Optional[float] = None

    @property
    def status(self) -> TradeStatus:
        return TradeStatus.ACTIVE

    @property
    def mark_price(self) -> float:
        """Last known mark, falling back to the entry price."""
        return self.current_price or self.entry_price

    def with_price(self, price: float) -> "ActiveTrade":
        return replace(self, current_price=price)

    def to_dict(self) -> Dict[str, Any]:
        data = self._entry_dict()
        data["status"] = self.status.value
        if self.current_price is not None:
            data["currentPrice"] = self.current_price
        return data


@dataclass(frozen=True)
class ClosedTrade(Trade):
    """A position with exit data recorded; never modified again."""

    exit_data: Optional[ExitData] = None

    def __post_init__(self):
        if self.exit_data is None:
            raise ValueError("ClosedTrade requires exit_data")

    @property
    def status(self) -> TradeStatus:
        return TradeStatus.CLOSED

    def to_dict(self) -> Dict[str, Any]:
        data = self._entry_dict()
        data["status"] = self.status.value
        data["exitData"] = self.exit_data.to_dict()
        return data


# =============================================================================
# Accounts & Settings
# =============================================================================


@dataclass(frozen=True)
class AccountState:
    """Cash pool of one sub-account."""

    name: str
    starting_value: float = 0.0
    current_cash: float = 0.0

    def with_cash(self, current_cash: float) -> "AccountState":
        return replace(self, current_cash=current_cash)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "startingValue": self.starting_value,
            "currentCash": self.current_cash,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AccountState":
        starting = coerce_number(data.get("startingValue"))
        return cls(
            name=account_name(data.get("name")),
            starting_value=starting,
            current_cash=coerce_number(data.get("currentCash"), starting),
        )


DEFAULT_ACCOUNTS: Tuple[AccountState, ...] = (
    AccountState(TradeAccount.INCOME_GENERATOR.value, 17000.0, 17000.0),
    AccountState(TradeAccount.SPECULATION.value, 3000.0, 3000.0),
    AccountState(TradeAccount.TRADING_LAB.value, 2000.0, 2000.0),
)


@dataclass(frozen=True)
class PortfolioSettings:
    """Portfolio configuration plus the account list."""

    portfolio_starting_value: float = 22000.0
    risk_per_trade: float = 2.0  # percent
    max_position_size: float = 30.0  # percent
    min_cash_percent: float = 5.0  # percent
    trading_timezone: str = "UTC"
    accounts: Tuple[AccountState, ...] = DEFAULT_ACCOUNTS

    def account(self, name: str) -> Optional[AccountState]:
        for acc in self.accounts:
            if acc.name == name:
                return acc
        return None

    def with_accounts(self, accounts) -> "PortfolioSettings":
        return replace(self, accounts=tuple(accounts))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "portfolioStartingValue": self.portfolio_starting_value,
            "riskPerTrade": self.risk_per_trade,
            "maxPositionSize": self.max_position_size,
            "minCashPercent": self.min_cash_percent,
            "tradingTimezone": self.trading_timezone,
            "accounts": [acc.to_dict() for acc in self.accounts],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PortfolioSettings":
        accounts = data.get("accounts")
        return cls(
            portfolio_starting_value=coerce_number(data.get("portfolioStartingValue"), 22000.0),
            risk_per_trade=coerce_number(data.get("riskPerTrade"), 2.0),
            max_position_size=coerce_number(data.get("maxPositionSize"), 30.0),
            min_cash_percent=coerce_number(data.get("minCashPercent"), 5.0),
            trading_timezone=data.get("tradingTimezone", "UTC"),
            accounts=(
                tuple(AccountState.from_dict(acc) for acc in accounts)
                if accounts is not None
                else DEFAULT_ACCOUNTS
            ),
        )


# =============================================================================
# Auxiliary Documents
# =============================================================================


@dataclass(frozen=True)
class WatchlistItem:
    """A pre-trade candidate."""

    id: str = field(default_factory=lambda: str(uuid4()))
    ticker: str = ""
    current_price: float = 0.0
    reason: str = ""
    catalyst_date: str = ""
    alert_price: float = 0.0
    notes: str = ""
    date_added: datetime = field(default_factory=utcnow)
    status: WatchlistStatus = WatchlistStatus.WATCHING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "ticker": self.ticker,
            "currentPrice": self.current_price,
            "reason": self.reason,
            "catalystDate": self.catalyst_date,
            "alertPrice": self.alert_price,
            "notes": self.notes,
            "dateAdded": _isoformat(self.date_added),
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WatchlistItem":
        return cls(
            id=data.get("id") or str(uuid4()),
            ticker=data.get("ticker", ""),
            current_price=coerce_number(data.get("currentPrice")),
            reason=data.get("reason", ""),
            catalyst_date=data.get("catalystDate", ""),
            alert_price=coerce_number(data.get("alertPrice")),
            notes=data.get("notes", ""),
            date_added=_timestamp(data.get("dateAdded"), utcnow()),
            status=WatchlistStatus.parse(data.get("status"), WatchlistStatus.WATCHING),
        )


@dataclass(frozen=True)
class CircuitBreakerInfo:
    """Drawdown-based trading halt flag."""

    peak_portfolio_value: float = 22000.0
    is_active: bool = False
    resumes_at: Optional[str] = None
    review_completed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "peakPortfolioValue": self.peak_portfolio_value,
            "isActive": self.is_active,
            "resumesAt": self.resumes_at,
            "reviewCompleted": self.review_completed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CircuitBreakerInfo":
        return cls(
            peak_portfolio_value=coerce_number(data.get("peakPortfolioValue"), 22000.0),
            is_active=bool(data.get("isActive", False)),
            resumes_at=data.get("resumesAt"),
            review_completed=bool(data.get("reviewCompleted", False)),
        )
