"""
UWF Journal API Dependencies
============================

Service container for the API: one ``TradeJournal``, one intake client and
the single intake dialog session shared by all requests.

Usage:
    from uwf_journal.api.dependencies import get_journal

    @router.get("/api/trades")
    async def list_trades(journal: TradeJournal = Depends(get_journal)):
        ...
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from fastapi import HTTPException, Request

from ..config.settings import JournalSettings, get_settings, load_portfolio_defaults
from ..intake.client import GeminiIntakeClient
from ..intake.session import IntakeSession
from ..journal.service import TradeJournal
from ..persistence.store import JsonStore

logger = logging.getLogger(__name__)


@dataclass
class Container:
    """
    Holds the services behind the API.

    Attributes:
        settings: Runtime settings
        journal: Journal service
        intake_client: AI intake client
        intake_session: The intake dialog (one request in flight)
    """

    settings: Optional[JournalSettings] = None
    journal: Optional[TradeJournal] = None
    intake_client: Optional[GeminiIntakeClient] = None
    intake_session: Optional[IntakeSession] = None

    _initialized: bool = field(default=False, repr=False)

    def initialize(self) -> None:
        """Create whichever services were not injected."""
        if self._initialized:
            logger.debug("Container already initialized")
            return

        self.settings = self.settings or get_settings()

        if self.journal is None:
            self.journal = TradeJournal(
                JsonStore(self.settings.data_dir),
                portfolio_defaults=load_portfolio_defaults(self.settings.portfolio_file),
            )

        if self.intake_client is None:
            self.intake_client = GeminiIntakeClient(
                api_key=self.settings.gemini_api_key,
                model=self.settings.gemini_model,
                base_url=self.settings.gemini_base_url,
                timeout=self.settings.request_timeout,
            )
            if not self.settings.gemini_api_key:
                logger.warning("No AI API key configured; intake requests will fail until one is set")

        if self.intake_session is None:
            self.intake_session = IntakeSession(
                self.intake_client, reviewer=self.journal.review_proposal
            )

        self._initialized = True
        logger.info(f"Journal services ready (data in {self.journal.store.data_dir})")

    def close(self) -> None:
        if self.intake_client is not None:
            self.intake_client.close()
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized


def get_container(request: Request) -> Container:
    container = getattr(request.app.state, "container", None)
    if container is None or not container.is_initialized:
        raise HTTPException(status_code=503, detail="Journal services not initialized")
    return container


def get_journal(request: Request) -> TradeJournal:
    """FastAPI dependency returning the journal service."""
    return get_container(request).journal


def get_intake_session(request: Request) -> IntakeSession:
    """FastAPI dependency returning the shared intake dialog."""
    return get_container(request).intake_session
