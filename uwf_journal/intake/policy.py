"""
Categorization Policy

The fixed instruction text and response schema sent to the AI service, and
``review_proposal``: the same per-account rules re-checked locally so a
proposal never relies on the service's own flags alone.

Rule breaches are advisory. Structural problems (no ticker, bad direction,
negative or non-finite numbers) raise ``ValidationError`` and block the
trade.
"""

import logging
import math
from datetime import datetime, time, timezone
from typing import Any, Iterable, List, Mapping, Optional, Sequence
from zoneinfo import ZoneInfo

from ..core.enums import TradeAccount, TradeDirection
from ..core.errors import ErrorCodes, ValidationError
from ..core.finance import coerce_number
from ..persistence.models import DEFAULT_ACCOUNTS, AccountState, ActiveTrade, Trade

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """
You are a trading journal assistant that categorizes every trade into one of three accounts and maps it to a structured framework. For every trade entry, you will:

1. Identify which account (Income Generator, Speculation, or Trading Lab)
2. Map it to the framework focus areas
3. Validate against account-specific rules
4. Document with required fields
5. Track performance metrics by category

═══════════════════════════════════════════════
ACCOUNT DEFINITIONS:
═══════════════════════════════════════════════

ACCOUNT 1: INCOME GENERATOR (€17,000)
Purpose: Generate €1,500-2,000/month income by March 2026
Strategy: Covered calls + Cash-secured puts + Growth stock appreciation
Holdings: 3-4 positions, 100+ shares each
Horizon: 12 months
Trade Types:
  - BUY_SHARES: Purchasing 100+ shares for covered calls
  - SELL_CC: Selling covered calls (weekly/monthly)
  - SELL_CSP: Selling cash-secured puts
  - ROLL: Rolling calls/puts up/out
  - ASSIGNMENT: Getting assigned on puts or having shares called away

ACCOUNT 2: SPECULATION (€3,000)
Purpose: High-leverage catalyst plays
Strategy: Buying call options on near-term catalysts
Holdings: 1-3 positions max, €200-300 each
Horizon: 30-60 days per trade
Trade Types:
  - BUY_CALLS: Purchasing call options
  - SELL_CALLS: Closing call positions
  - ROLL_CALLS: Rolling calls to different strike/date

ACCOUNT 3: TRADING LAB (€2,000)
Purpose: Learn swing/day trading, skill development
Strategy: Small position technical trades
Holdings: 1-2 positions, €75-150 each
Horizon: 1-10 days per trade
Trade Types:
  - BUY_SHARES: Opening swing position
  - SELL_SHARES: Closing swing position
  - STOP_LOSS: Stopped out of position

═══════════════════════════════════════════════
TRADE ENTRY TEMPLATE (Respond with this JSON structure):
═══════════════════════════════════════════════
Based on the user input, populate the following fields. The final output MUST be a single JSON object.

{
  "account": "[Income Generator / Speculation / Trading Lab]",
  "tradeType": "[BUY_SHARES / SELL_CC / SELL_CSP / BUY_CALLS / etc.]",
  "ticker": "_____",
  "action": "[OPEN / CLOSE / ROLL]",
  "direction": "[Long / Short]",
  "quantity": ___,
  "entryPrice": _____,
  "positionSize": _____ (in Euro),
  "thesis": "_____________________________",
  "stopLoss": _____ (price),
  "emotionalState": "[Calm and analytical / Excited but controlled / FOMO/Anxious / Revenge trading]",
  "validationFlags": ["Flag 1", "Flag 2"]
}

═══════════════════════════════════════════════
ACCOUNT-SPECIFIC VALIDATION:
═══════════════════════════════════════════════

ACCOUNT 1 RULES (Income Generator):
✓ Position size >€5,000 (or 100+ shares if stock <€50)
✓ Stock has weekly options available
✓ IV Rank >40%
✓ If SELL_CC: Strike 5-15% OTM, 7-14 DTE, premium >1% of stock price
✓ If SELL_CSP: Strike at price you'd buy, 30-45 DTE, premium >2%
✓ Total deployed: <85% of account (keep 15% cash buffer)
⚠️ FLAG if any rule broken in validationFlags array

ACCOUNT 2 RULES (Speculation):
✓ Position size €200-€300 max
✓ Total positions: <3 simultaneous
✓ Total exposure: <30% of account (€900 max)
✓ If BUY_CALLS: 30-60 DTE, delta 0.40-0.70, catalyst within 45 days
✓ Stop loss at -50% of premium paid
⚠️ FLAG if any rule broken in validationFlags array

ACCOUNT 3 RULES (Trading Lab):
✓ Position size <€150
✓ Stop loss set immediately (-5% max)
✓ Trading 10am-3pm ET only
✓ Max 3 trades per week
✓ Trade logged BEFORE entry (not after)
⚠️ FLAG if any rule broken in validationFlags array

═══════════════════════════════════════════════
END OF CATEGORIZATION PROMPT
═══════════════════════════════════════════════
"""

# generateContent responseSchema (OpenAPI subset, upper-case type names)
RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "account": {
            "type": "STRING",
            "enum": [acc.value for acc in TradeAccount.managed()],
        },
        "tradeType": {"type": "STRING"},
        "ticker": {"type": "STRING"},
        "action": {"type": "STRING", "enum": ["OPEN", "CLOSE", "ROLL"]},
        "direction": {"type": "STRING", "enum": ["Long", "Short"]},
        "quantity": {"type": "NUMBER"},
        "entryPrice": {"type": "NUMBER"},
        "positionSize": {"type": "NUMBER"},
        "thesis": {"type": "STRING"},
        "stopLoss": {"type": "NUMBER"},
        "emotionalState": {
            "type": "STRING",
            "enum": [
                "Calm and analytical",
                "Excited but controlled",
                "FOMO/Anxious",
                "Revenge trading",
            ],
        },
        "validationFlags": {"type": "ARRAY", "items": {"type": "STRING"}},
    },
    "required": [
        "account",
        "ticker",
        "action",
        "direction",
        "quantity",
        "entryPrice",
        "positionSize",
        "thesis",
    ],
}

# Income Generator
INCOME_MIN_POSITION = 5000.0
INCOME_MIN_SHARES = 100
INCOME_CHEAP_STOCK_PRICE = 50.0
INCOME_MAX_DEPLOYED = 0.85

# Speculation
SPECULATION_MIN_POSITION = 200.0
SPECULATION_MAX_POSITION = 300.0
SPECULATION_MAX_OPEN = 3
SPECULATION_MAX_EXPOSURE = 0.30

# Trading Lab
LAB_MAX_POSITION = 150.0
LAB_MAX_STOP_DISTANCE = 0.05
LAB_WINDOW_START = time(10, 0)
LAB_WINDOW_END = time(15, 0)
LAB_MAX_TRADES_PER_WEEK = 3
MARKET_TIMEZONE = ZoneInfo("America/New_York")


def _checked_number(fields: Mapping[str, Any], key: str) -> float:
    raw = fields.get(key)
    if isinstance(raw, float) and (math.isnan(raw) or math.isinf(raw)):
        raise ValidationError(field=key, detail=f"{key} must be a finite number")
    value = coerce_number(raw)
    if value < 0:
        raise ValidationError(field=key, detail=f"{key} cannot be negative")
    return value


def _starting_value(accounts: Sequence[AccountState], name: str) -> float:
    for acc in accounts:
        if acc.name == name:
            return acc.starting_value
    return 0.0


def _open_in(trades: Iterable[Trade], account: str) -> List[Trade]:
    return [t for t in trades if isinstance(t, ActiveTrade) and t.account == account]


def _income_flags(size, shares, entry_price, open_trades, starting) -> List[str]:
    flags = []
    cheap_lot = shares >= INCOME_MIN_SHARES and 0 < entry_price < INCOME_CHEAP_STOCK_PRICE
    if size <= INCOME_MIN_POSITION and not cheap_lot:
        flags.append(
            f"Income Generator: position size {size:,.2f} is not above {INCOME_MIN_POSITION:,.0f} "
            f"(or {INCOME_MIN_SHARES}+ shares of a stock under {INCOME_CHEAP_STOCK_PRICE:.0f})"
        )
    deployed = sum(t.position_size for t in open_trades) + size
    if starting > 0 and deployed >= starting * INCOME_MAX_DEPLOYED:
        flags.append(
            f"Income Generator: {deployed / starting:.0%} of the account would be deployed "
            f"(keep under {INCOME_MAX_DEPLOYED:.0%})"
        )
    return flags


def _speculation_flags(size, stop_loss, open_trades, starting) -> List[str]:
    flags = []
    if not SPECULATION_MIN_POSITION <= size <= SPECULATION_MAX_POSITION:
        flags.append(
            f"Speculation: position size {size:,.2f} is outside "
            f"{SPECULATION_MIN_POSITION:.0f}-{SPECULATION_MAX_POSITION:.0f}"
        )
    if len(open_trades) >= SPECULATION_MAX_OPEN:
        flags.append(
            f"Speculation: already {len(open_trades)} open positions "
            f"(max {SPECULATION_MAX_OPEN - 1} before a new one)"
        )
    exposure = sum(t.position_size for t in open_trades) + size
    if starting > 0 and exposure > starting * SPECULATION_MAX_EXPOSURE:
        flags.append(
            f"Speculation: total exposure {exposure:,.2f} exceeds "
            f"{SPECULATION_MAX_EXPOSURE:.0%} of the account ({starting * SPECULATION_MAX_EXPOSURE:,.2f})"
        )
    if stop_loss <= 0:
        flags.append("Speculation: no stop loss set")
    return flags


def _lab_flags(size, entry_price, stop_loss, direction, trades, now) -> List[str]:
    flags = []
    if size >= LAB_MAX_POSITION:
        flags.append(f"Trading Lab: position size {size:,.2f} is not under {LAB_MAX_POSITION:.0f}")

    if stop_loss <= 0:
        flags.append("Trading Lab: no stop loss set")
    elif entry_price > 0:
        if direction == TradeDirection.SHORT:
            distance = (stop_loss - entry_price) / entry_price
        else:
            distance = (entry_price - stop_loss) / entry_price
        if distance > LAB_MAX_STOP_DISTANCE:
            flags.append(
                f"Trading Lab: stop loss is {distance:.1%} from entry "
                f"(max {LAB_MAX_STOP_DISTANCE:.0%})"
            )

    local = now.astimezone(MARKET_TIMEZONE)
    if not LAB_WINDOW_START <= local.time() <= LAB_WINDOW_END:
        flags.append(
            f"Trading Lab: entry at {local:%H:%M} ET is outside the 10:00-15:00 window"
        )

    week = local.isocalendar()[:2]
    this_week = [
        t
        for t in trades
        if t.account == TradeAccount.TRADING_LAB.value
        and t.entry_date.astimezone(MARKET_TIMEZONE).isocalendar()[:2] == week
    ]
    if len(this_week) >= LAB_MAX_TRADES_PER_WEEK:
        flags.append(
            f"Trading Lab: {len(this_week)} trades already opened this week "
            f"(max {LAB_MAX_TRADES_PER_WEEK})"
        )
    return flags


def review_proposal(
    proposal: Mapping[str, Any],
    trades: Iterable[Trade] = (),
    now: Optional[datetime] = None,
    accounts: Sequence[AccountState] = DEFAULT_ACCOUNTS,
) -> List[str]:
    """
    Check a proposed trade against the per-account rules.

    Args:
        proposal: Proposal fields (``account``, ``ticker``, ``direction``,
            ``entryPrice``, ``positionSize``, ``quantity``, ``stopLoss``)
        trades: Every trade in the journal; open positions and this week's
            entries are derived from it
        now: Entry time to evaluate (defaults to the current time)
        accounts: Account list supplying starting values

    Returns:
        Advisory flags, empty when every rule passes

    Raises:
        ValidationError: The proposal cannot describe a trade at all
    """
    if hasattr(proposal, "to_fields"):
        proposal = proposal.to_fields()

    if not str(proposal.get("ticker") or "").strip():
        raise ValidationError(ErrorCodes.VALIDATION_INVALID_TICKER, field="ticker")
    direction = TradeDirection.parse(proposal.get("direction"))
    if direction is None:
        raise ValidationError(
            field="direction",
            detail=f"direction must be Long or Short, got {proposal.get('direction')!r}",
        )

    entry_price = _checked_number(proposal, "entryPrice")
    size = _checked_number(proposal, "positionSize")
    stop_loss = _checked_number(proposal, "stopLoss")
    shares = size / entry_price if entry_price > 0 else coerce_number(proposal.get("quantity"))

    trades = list(trades)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    raw_account = str(proposal.get("account") or "").strip()
    account = TradeAccount.parse(raw_account)

    if account == TradeAccount.INCOME_GENERATOR:
        flags = _income_flags(
            size,
            shares,
            entry_price,
            _open_in(trades, account.value),
            _starting_value(accounts, account.value),
        )
    elif account == TradeAccount.SPECULATION:
        flags = _speculation_flags(
            size,
            stop_loss,
            _open_in(trades, account.value),
            _starting_value(accounts, account.value),
        )
    elif account == TradeAccount.TRADING_LAB:
        flags = _lab_flags(size, entry_price, stop_loss, direction, trades, now)
    else:
        flags = [unassigned_account_flag(raw_account)]

    if flags:
        logger.debug(f"Proposal for {proposal.get('ticker')} raised {len(flags)} flag(s)")
    return flags


def unassigned_account_flag(raw_account: Optional[str]) -> str:
    """Advisory flag for a proposal that names no managed account."""
    raw_account = str(raw_account or "").strip()
    if not raw_account or TradeAccount.parse(raw_account) == TradeAccount.UNCATEGORIZED:
        return "No account assigned; the trade will be booked as Uncategorized"
    return f"Unrecognized account {raw_account!r}; the trade will be booked as Uncategorized"


def merge_flags(*flag_lists: Optional[Iterable[str]]) -> List[str]:
    """Concatenate flag lists, dropping blanks and exact duplicates."""
    merged: List[str] = []
    for flags in flag_lists:
        for flag in flags or []:
            text = str(flag).strip()
            if text and text not in merged:
                merged.append(text)
    return merged
