"""
Proposed trade returned by the AI service.

Field names follow the service's JSON (camelCase aliases); Python code uses
the snake_case attribute names.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

from ..core.enums import EmotionalState, TradeAccount, TradeAction, TradeDirection
from .policy import merge_flags, unassigned_account_flag


class ProposedTrade(BaseModel):
    """Structured trade proposal, validated against the response schema."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    account: str = Field(
        default=TradeAccount.UNCATEGORIZED.value,
        description="Income Generator, Speculation or Trading Lab",
    )
    trade_type: Optional[str] = Field(default=None, alias="tradeType")
    ticker: str = Field(..., min_length=1)
    action: TradeAction
    direction: TradeDirection
    quantity: float
    entry_price: float = Field(..., alias="entryPrice")
    position_size: float = Field(..., alias="positionSize")
    thesis: str
    stop_loss: Optional[float] = Field(default=None, alias="stopLoss")
    emotional_state: Optional[EmotionalState] = Field(default=None, alias="emotionalState")
    validation_flags: List[str] = Field(default_factory=list, alias="validationFlags")

    @model_validator(mode="before")
    @classmethod
    def classify_account(cls, data: Any) -> Any:
        """Book a missing or unknown account as Uncategorized and say so in the flags."""
        if not isinstance(data, dict):
            return data
        raw = str(data.get("account") or "").strip()
        account = TradeAccount.parse(raw) if raw else None
        if account in TradeAccount.managed():
            return {**data, "account": account.value}

        flags_key = "validation_flags" if "validation_flags" in data else "validationFlags"
        data = {**data, "account": TradeAccount.UNCATEGORIZED.value}
        if isinstance(data.get(flags_key), (list, type(None))):
            data[flags_key] = merge_flags(data.get(flags_key), [unassigned_account_flag(raw)])
        return data

    @field_validator("ticker")
    @classmethod
    def validate_ticker(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("ticker cannot be blank")
        return v

    @field_validator("action", "direction", mode="before")
    @classmethod
    def parse_choice(cls, v: Any, info: ValidationInfo) -> Any:
        enum_cls = TradeAction if info.field_name == "action" else TradeDirection
        return enum_cls.parse(v, v)

    @field_validator("emotional_state", mode="before")
    @classmethod
    def parse_emotional_state(cls, v: Any) -> Optional[EmotionalState]:
        # unknown phrasing is dropped; the trade falls back to the default state
        return EmotionalState.parse(v)

    def to_fields(self) -> Dict[str, Any]:
        """Proposal as a camelCase dict, the shape trade creation accepts."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
