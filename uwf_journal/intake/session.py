"""
Intake dialog session.

Holds at most one AI request in flight. The flow is submit, then either
``confirm`` (book the trade), ``back`` (edit the text and resubmit) or
``dismiss`` (abandon; a result still in flight is thrown away on arrival).
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..core.errors import ErrorCodes, IntakeError, JournalError
from ..persistence.models import ActiveTrade
from .client import GeminiIntakeClient, IntakeResponse
from .policy import merge_flags
from .schema import ProposedTrade

logger = logging.getLogger(__name__)


class IntakeState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    PROPOSED = "proposed"
    FAILED = "failed"


class IntakeSession:
    """
    One intake dialog.

    Args:
        client: AI intake client
        reviewer: Optional callable returning the journal's own rule flags
            for a proposal; they are merged with the service's flags
    """

    def __init__(
        self,
        client: GeminiIntakeClient,
        reviewer: Optional[Callable[[ProposedTrade], List[str]]] = None,
    ):
        self.client = client
        self.reviewer = reviewer
        self.state = IntakeState.IDLE
        self.user_input: str = ""
        self.response: Optional[IntakeResponse] = None
        self.error: Optional[JournalError] = None
        self._generation = 0

    @property
    def is_pending(self) -> bool:
        return self.state == IntakeState.PENDING

    async def submit(self, text: str) -> Optional[IntakeResponse]:
        """
        Send ``text`` to the AI service.

        Returns the response with merged flags, or None when the dialog was
        dismissed while the call was in flight.

        Raises:
            IntakeError: INTAKE_BUSY if a request is already pending, or
                whatever the client raised
        """
        if self.is_pending:
            raise IntakeError(ErrorCodes.INTAKE_BUSY)

        self._generation += 1
        generation = self._generation
        self.state = IntakeState.PENDING
        self.user_input = text
        self.response = None
        self.error = None

        try:
            response = await asyncio.to_thread(self.client.propose, text)
            if self.reviewer is not None:
                response.flags = merge_flags(response.flags, self.reviewer(response.proposal))
        except JournalError as e:
            if generation != self._generation:
                logger.debug(f"Discarding failed intake result after dismiss: {e.code}")
                return None
            self.state = IntakeState.FAILED
            self.error = e
            raise
        except Exception:
            if generation == self._generation:
                self.state = IntakeState.FAILED
            raise

        if generation != self._generation:
            logger.debug("Discarding intake result after dismiss")
            return None

        self.state = IntakeState.PROPOSED
        self.response = response
        return response

    def back(self) -> None:
        """Drop the proposal but keep the text for editing."""
        if self.is_pending:
            raise IntakeError(ErrorCodes.INTAKE_BUSY)
        self.response = None
        self.error = None
        self.state = IntakeState.IDLE

    def dismiss(self) -> None:
        """Abandon the dialog; any result still in flight is discarded."""
        self._generation += 1
        self.state = IntakeState.IDLE
        self.user_input = ""
        self.response = None
        self.error = None

    def confirm(self, journal) -> ActiveTrade:
        """
        Book the current proposal as a new trade in ``journal``.

        Raises:
            IntakeError: INTAKE_NO_PROPOSAL when nothing has been proposed
        """
        if self.state != IntakeState.PROPOSED or self.response is None:
            raise IntakeError(ErrorCodes.INTAKE_NO_PROPOSAL)

        trade = journal.open_trade(
            self.response.proposal.to_fields(),
            raw_user_input=self.user_input,
            framework_data=self.response.payload,
        )
        self.dismiss()
        return trade

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "userInput": self.user_input,
            "response": self.response.to_dict() if self.response else None,
            "error": self.error.to_dict() if self.error else None,
        }
