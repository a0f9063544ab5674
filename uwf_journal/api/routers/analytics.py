"""
UWF Journal Analytics Router

Endpoints:
    GET /api/analytics/accounts - Closed-trade performance per account
    GET /api/analytics/sources  - Closed-trade performance per idea source
    GET /api/analytics/summary  - Overall totals, best/worst trade, profit factor
"""

import logging

from fastapi import APIRouter, Depends

from ...journal.service import TradeJournal
from ..dependencies import get_journal
from .base import create_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])


@router.get("/accounts")
async def performance_by_account(journal: TradeJournal = Depends(get_journal)):
    return create_response(data=journal.performance_by_account())


@router.get("/sources")
async def performance_by_source(journal: TradeJournal = Depends(get_journal)):
    return create_response(data=journal.performance_by_source())


@router.get("/summary")
async def performance_summary(journal: TradeJournal = Depends(get_journal)):
    return create_response(data=journal.summary())
