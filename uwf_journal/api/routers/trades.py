"""
UWF Journal Trades Router

Trade lifecycle endpoints plus the account dashboard and trade history.

Endpoints:
    GET  /api/accounts                 - Per-account valuation and open positions
    GET  /api/trades                   - All trades, optionally filtered by status
    GET  /api/trades/{trade_id}        - One trade
    POST /api/trades                   - Open a trade from confirmed proposal fields
    PUT  /api/trades/{trade_id}/price  - Refresh the mark of an open trade
    POST /api/trades/{trade_id}/close  - Close a trade with its post-mortem
    GET  /api/history                  - Closed trades, newest first
"""

import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from ...journal.service import TradeJournal
from ..dependencies import get_journal
from .base import create_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Trades"])


# =============================================================================
# Request Models
# =============================================================================


class CreateTradeRequest(BaseModel):
    """Confirmed proposal fields for a new trade."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    ticker: Optional[str] = Field(default=None, description="Ticker symbol")
    direction: Optional[str] = Field(default=None, description="Long or Short")
    account: Optional[str] = Field(default=None, description="Owning account")
    entry_price: Optional[float] = Field(default=None, alias="entryPrice")
    position_size: Optional[float] = Field(default=None, alias="positionSize")
    quantity: Optional[float] = Field(default=None, description="Share or contract count")
    stop_loss: Optional[float] = Field(default=None, alias="stopLoss")
    thesis: Optional[Union[str, List[str]]] = None
    emotional_state: Optional[str] = Field(default=None, alias="emotionalState")
    raw_user_input: Optional[str] = Field(default=None, alias="rawUserInput")
    framework_data: Optional[Dict[str, Any]] = Field(default=None, alias="frameworkData")

    def proposal_fields(self) -> Dict[str, Any]:
        return self.model_dump(
            by_alias=True,
            exclude_none=True,
            exclude={"raw_user_input", "framework_data"},
        )


class UpdatePriceRequest(BaseModel):
    price: float = Field(..., ge=0, description="Latest market price")


class CloseTradeRequest(BaseModel):
    """Exit form fields."""

    model_config = ConfigDict(populate_by_name=True)

    exit_price: Optional[Union[float, str]] = Field(default=None, alias="exitPrice")
    exit_reason: Optional[str] = Field(default=None, alias="exitReason")
    exit_reason_detail: str = Field(default="", alias="exitReasonDetail")
    review_right: str = Field(default="", alias="reviewRight")
    review_wrong: str = Field(default="", alias="reviewWrong")
    lesson_learned: str = Field(default="", alias="lessonLearned")
    would_take_again: str = Field(default="Yes", alias="wouldTakeAgain")
    would_take_again_reason: str = Field(default="", alias="wouldTakeAgainReason")
    self_rating: int = Field(default=3, alias="selfRating")
    exit_date: Optional[str] = Field(default=None, alias="exitDate")

    def exit_fields(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/accounts")
async def get_accounts(journal: TradeJournal = Depends(get_journal)):
    """Account cards: valuation, cash and open positions with live P/L."""
    return create_response(data=journal.dashboard())


@router.get("/trades")
async def list_trades(
    status: Optional[str] = Query(default=None, description="active or closed"),
    journal: TradeJournal = Depends(get_journal),
):
    trades = journal.trades(status)
    return create_response(data=[t.to_dict() for t in trades])


@router.get("/trades/{trade_id}")
async def get_trade(trade_id: str, journal: TradeJournal = Depends(get_journal)):
    return create_response(data=journal.get_trade(trade_id).to_dict())


@router.post("/trades")
async def create_trade(
    request: CreateTradeRequest,
    journal: TradeJournal = Depends(get_journal),
):
    """Open a trade and debit its account by the position size."""
    fields = request.proposal_fields()
    flags = journal.review_proposal(fields)
    trade = journal.open_trade(
        fields,
        raw_user_input=request.raw_user_input,
        framework_data=request.framework_data,
    )
    return create_response(data={"trade": trade.to_dict(), "validationFlags": flags})


@router.put("/trades/{trade_id}/price")
async def update_price(
    trade_id: str,
    request: UpdatePriceRequest,
    journal: TradeJournal = Depends(get_journal),
):
    trade = journal.update_price(trade_id, request.price)
    return create_response(data=journal.position_view(trade))


@router.post("/trades/{trade_id}/close")
async def close_trade(
    trade_id: str,
    request: CloseTradeRequest,
    journal: TradeJournal = Depends(get_journal),
):
    """Close a trade; the account is credited with size plus realized P/L."""
    trade = journal.close_trade(trade_id, request.exit_fields())
    return create_response(data=trade.to_dict())


@router.get("/history")
async def get_history(
    formatted: bool = Query(default=False, description="Return display strings for P/L"),
    journal: TradeJournal = Depends(get_journal),
):
    return create_response(data=journal.history(formatted=formatted))
