"""
AI Intake Client

Sends free-form trade descriptions to the Gemini ``generateContent`` REST
endpoint with the categorization policy and response schema, and turns the
reply into a validated ``ProposedTrade``.

Every failure surfaces as an ``IntakeError``; nothing here touches the
journal, so a failed call never creates a trade.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError as SchemaError

from ..config.logging import event_logger, log_performance
from ..core.errors import ErrorCodes, IntakeError, ValidationError
from .policy import RESPONSE_SCHEMA, SYSTEM_PROMPT
from .schema import ProposedTrade

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-pro"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


@dataclass
class IntakeResponse:
    """A parsed proposal plus the JSON object exactly as the service sent it."""

    proposal: ProposedTrade
    payload: Dict[str, Any]
    flags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proposal": self.proposal.to_fields(),
            "frameworkData": self.payload,
            "validationFlags": self.flags,
        }


class GeminiIntakeClient:
    """
    Blocking client for the trade-intake model.

    Args:
        api_key: Service API key; a missing key only fails when a call is made
        model: Model name
        base_url: REST base URL
        timeout: Request timeout in seconds
        session: Optional ``requests.Session`` (injected in tests)
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def build_request(self, text: str) -> Dict[str, Any]:
        return {
            "systemInstruction": {"parts": [{"text": SYSTEM_PROMPT}]},
            "contents": [{"role": "user", "parts": [{"text": text}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }

    @log_performance(threshold_ms=15000)
    def propose(self, text: str) -> IntakeResponse:
        """
        Ask the service to structure ``text`` into a trade proposal.

        Raises:
            ValidationError: ``text`` is blank
            IntakeError: Missing key, network failure, error status, or a
                reply that is not JSON matching the trade schema
        """
        if not text or not text.strip():
            raise ValidationError(ErrorCodes.VALIDATION_REQUIRED_FIELD, field="text")
        if not self.api_key:
            raise IntakeError(ErrorCodes.INTAKE_CREDENTIALS_MISSING)

        start = time.perf_counter()
        try:
            response = self.session.post(
                self.endpoint,
                json=self.build_request(text),
                headers={"x-goog-api-key": self.api_key},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            event_logger.log_intake_call(
                self.model, None, (time.perf_counter() - start) * 1000, error=type(e).__name__
            )
            raise IntakeError(
                ErrorCodes.INTAKE_NETWORK_ERROR, detail=str(e), original_error=e
            ) from e

        duration_ms = (time.perf_counter() - start) * 1000
        if response.status_code >= 400:
            message = self._error_message(response)
            event_logger.log_intake_call(self.model, response.status_code, duration_ms, error=message)
            raise IntakeError(
                ErrorCodes.INTAKE_SERVICE_ERROR,
                detail=f"HTTP {response.status_code}: {message}",
                context={"status_code": response.status_code},
            )

        event_logger.log_intake_call(self.model, response.status_code, duration_ms)
        payload = self._extract_payload(response)

        try:
            proposal = ProposedTrade.model_validate(payload)
        except SchemaError as e:
            logger.warning(f"AI response failed schema validation: {e.error_count()} error(s)")
            raise IntakeError(
                ErrorCodes.INTAKE_INVALID_RESPONSE,
                detail="response does not match the trade schema",
                original_error=e,
                debug_info={"payload": payload},
            ) from e

        return IntakeResponse(proposal=proposal, payload=payload, flags=list(proposal.validation_flags))

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.reason or "error"
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            return body["error"].get("message") or response.reason or "error"
        return response.reason or "error"

    @staticmethod
    def _extract_payload(response: requests.Response) -> Dict[str, Any]:
        """Pull the model's JSON object out of the generateContent envelope."""
        try:
            envelope = response.json()
            text = envelope["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise IntakeError(
                ErrorCodes.INTAKE_INVALID_RESPONSE,
                detail="no text candidate in the response",
                original_error=e,
            ) from e

        try:
            payload = json.loads(text)
        except (TypeError, json.JSONDecodeError) as e:
            logger.error(f"Failed to parse AI response: {e}; raw response: {str(text)[:500]}")
            raise IntakeError(
                ErrorCodes.INTAKE_INVALID_RESPONSE,
                detail="AI response was not valid JSON",
                original_error=e,
            ) from e

        if not isinstance(payload, dict):
            raise IntakeError(
                ErrorCodes.INTAKE_INVALID_RESPONSE,
                detail=f"expected a JSON object, got {type(payload).__name__}",
            )
        return payload

    def close(self) -> None:
        self.session.close()
