# UWF Journal - Example Usage

import tempfile

from uwf_journal import JsonStore, TradeJournal
from uwf_journal.core.finance import format_currency, format_percent

with tempfile.TemporaryDirectory() as data_dir:
    journal = TradeJournal(JsonStore(data_dir))

    print("UWF Journal - Three-Account Trading Journal")
    print("=" * 50)

    proposal = {
        "account": "Income Generator",
        "ticker": "TSM",
        "direction": "Long",
        "entryPrice": 150,
        "positionSize": 12000,
        "stopLoss": 135,
        "thesis": "Foundry leader; sell weekly covered calls against the lot",
    }
    print(f"Rule check: {journal.review_proposal(proposal) or 'no flags'}")

    trade = journal.open_trade(proposal)
    print(f"\nOpened {trade.id}: {trade.share_count:.0f} {trade.ticker} @ {trade.entry_price}")

    journal.update_price(trade.id, 158)
    for card in journal.dashboard():
        valuation = card["valuation"]
        print(f"{card['account']['name']:<18} {format_currency(valuation['totalValue']):>14}")

    closed = journal.close_trade(trade.id, {"exitPrice": 160, "lessonLearned": "Let winners run"})
    row = journal.history(formatted=True)[0]
    print(f"\nClosed {closed.id}: P/L {row['pl']} ({row['plPercent']})")

    summary = journal.summary()
    print(f"Win rate: {format_percent(summary['winRate'])}")
    print(f"Portfolio value: {format_currency(summary['portfolioValue'])}")
