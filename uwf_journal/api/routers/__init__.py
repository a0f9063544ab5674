"""
UWF Journal API Routers

Usage:
    from uwf_journal.api.routers import register_routers

    app = FastAPI()
    register_routers(app)
"""

import logging

from fastapi import FastAPI

from .analytics import router as analytics_router
from .intake import router as intake_router
from .system import router as system_router
from .trades import router as trades_router

logger = logging.getLogger(__name__)

ALL_ROUTERS = (system_router, trades_router, analytics_router, intake_router)


def register_routers(app: FastAPI) -> None:
    """Include every journal router in ``app``."""
    for router in ALL_ROUTERS:
        app.include_router(router)
    logger.debug(f"Registered {len(ALL_ROUTERS)} routers")


__all__ = [
    "ALL_ROUTERS",
    "analytics_router",
    "intake_router",
    "register_routers",
    "system_router",
    "trades_router",
]
