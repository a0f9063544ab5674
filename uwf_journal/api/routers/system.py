"""
UWF Journal System Router

Endpoints:
    GET /api/health - Health check with component status
"""

import logging
from typing import Dict

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from ... import __version__
from .base import create_response, get_timestamp

logger = logging.getLogger(__name__)

router = APIRouter(tags=["System"])


class HealthResponse(BaseModel):
    """Health check payload."""

    status: str = Field(..., description="healthy, degraded or unhealthy")
    version: str = Field(..., description="Package version")
    components: Dict[str, bool] = Field(..., description="Component health status")
    timestamp: str = Field(..., description="ISO timestamp of the check")


@router.get("/api/health")
async def health_check(request: Request):
    """
    Report whether the store is reachable and the AI service is configured.

    A missing AI key degrades the service; manual trade entry still works.
    """
    container = getattr(request.app.state, "container", None)
    components = {"journal": False, "intake": False}
    if container is not None and container.is_initialized:
        components["journal"] = container.journal.health_check()
        components["intake"] = bool(container.settings and container.settings.gemini_api_key)

    if all(components.values()):
        status = "healthy"
    elif components["journal"]:
        status = "degraded"
    else:
        status = "unhealthy"

    health = HealthResponse(
        status=status,
        version=__version__,
        components=components,
        timestamp=get_timestamp(),
    )
    return create_response(data=health.model_dump())
