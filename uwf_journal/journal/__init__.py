"""
UWF Journal Trade Module

Trade lifecycle and the journal service.

Example usage:
    from uwf_journal.journal import TradeJournal
    from uwf_journal.persistence import JsonStore

    journal = TradeJournal(JsonStore("~/.uwf_journal"))

    trade = journal.open_trade({
        "ticker": "TSM",
        "direction": "Long",
        "entryPrice": 150,
        "positionSize": 15000,
        "account": "Income Generator",
    })
    journal.update_price(trade.id, 155)
    journal.close_trade(trade.id, {"exitPrice": 160, "lessonLearned": "Patience"})
"""

from .lifecycle import (
    TradeBook,
    close_trade,
    create_trade,
    format_trade_id,
    is_active,
    is_closed,
    mark_price,
    trade_from_dict,
    trade_to_dict,
)
from .service import TradeJournal

__all__ = [
    "TradeBook",
    "TradeJournal",
    "close_trade",
    "create_trade",
    "format_trade_id",
    "is_active",
    "is_closed",
    "mark_price",
    "trade_from_dict",
    "trade_to_dict",
]
