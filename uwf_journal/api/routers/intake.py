"""
UWF Journal Intake Router

The AI intake dialog over HTTP. Only one AI request may be in flight; a
second submit while one is pending gets 409.

Endpoints:
    GET  /api/intake          - Current dialog state
    POST /api/intake          - Send free text to the AI service
    POST /api/intake/review   - Run the account rules on proposal fields
    POST /api/intake/confirm  - Book the current proposal as a trade
    POST /api/intake/back     - Drop the proposal, keep the text
    POST /api/intake/dismiss  - Abandon the dialog
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel, Field

from ...intake.session import IntakeSession
from ...journal.service import TradeJournal
from ..dependencies import get_intake_session, get_journal
from .base import create_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/intake", tags=["Intake"])


class IntakeRequest(BaseModel):
    text: str = Field(..., description="Free-form trade description")


@router.get("")
async def get_intake_state(session: IntakeSession = Depends(get_intake_session)):
    return create_response(data=session.to_dict())


@router.post("")
async def submit_intake(
    request: IntakeRequest,
    session: IntakeSession = Depends(get_intake_session),
):
    """
    Ask the AI service to structure the text into a trade proposal.

    The response carries the proposal, the raw service reply and the merged
    validation flags. ``data`` is null when the dialog was dismissed while
    the request was in flight.
    """
    response = await session.submit(request.text)
    return create_response(data=response.to_dict() if response else None)


@router.post("/review")
async def review_proposal(
    proposal: Dict[str, Any] = Body(..., description="Proposal fields"),
    journal: TradeJournal = Depends(get_journal),
):
    flags = journal.review_proposal(proposal)
    return create_response(data={"validationFlags": flags})


@router.post("/confirm")
async def confirm_intake(
    session: IntakeSession = Depends(get_intake_session),
    journal: TradeJournal = Depends(get_journal),
):
    trade = session.confirm(journal)
    return create_response(data=trade.to_dict())


@router.post("/back")
async def back_intake(session: IntakeSession = Depends(get_intake_session)):
    session.back()
    return create_response(data=session.to_dict())


@router.post("/dismiss")
async def dismiss_intake(session: IntakeSession = Depends(get_intake_session)):
    session.dismiss()
    return create_response(data=session.to_dict())
