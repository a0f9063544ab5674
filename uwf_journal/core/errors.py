"""
UWF Journal Errors

Every failure a journal action can hit is registered once in ``ErrorCodes``
with its HTTP status, user-facing text and a recovery hint. Errors are
scoped to the action that raised them: the snapshot is only replaced after
all checks and writes succeed, so a raised error means nothing changed.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any, Dict, Optional, Tuple, Type, Union

logger = logging.getLogger(__name__)

# =============================================================================
# Error Code Registry
# =============================================================================


class ErrorCategory(Enum):
    """Prefix of the public error code, e.g. ``TRADE_2002``."""

    VALIDATION = "VALIDATION"
    TRADE = "TRADE"
    INTAKE = "INTAKE"
    STORAGE = "STORAGE"
    SYSTEM = "SYSTEM"


class ErrorSeverity(IntEnum):
    """Log level used when an error is reported."""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


@dataclass(frozen=True)
class ErrorCode:
    """One registered failure."""

    code: str
    category: ErrorCategory
    severity: ErrorSeverity
    message: str  # for logs
    user_message: str  # for the UI
    http_status: int
    retryable: bool = False
    recovery_hint: str = ""

    def __str__(self) -> str:
        return f"{self.category.value}_{self.code}"


class ErrorCodes:
    """Central registry of all journal error codes."""

    # Validation Errors (1xxx)
    VALIDATION_REQUIRED_FIELD = ErrorCode(
        code="1001",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.INFO,
        message="Required field is missing",
        user_message="A required field is missing.",
        http_status=422,
        recovery_hint="Fill in the highlighted field and submit again.",
    )

    VALIDATION_INVALID_VALUE = ErrorCode(
        code="1002",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.INFO,
        message="Invalid value provided",
        user_message="One of the values is not valid.",
        http_status=422,
        recovery_hint="Correct the value and submit again.",
    )

    VALIDATION_INVALID_TICKER = ErrorCode(
        code="1003",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.INFO,
        message="Invalid ticker symbol",
        user_message="The ticker symbol is missing or invalid.",
        http_status=422,
        recovery_hint="Enter the ticker of the instrument you traded.",
    )

    # Trade State Errors (2xxx)
    TRADE_NOT_FOUND = ErrorCode(
        code="2001",
        category=ErrorCategory.TRADE,
        severity=ErrorSeverity.INFO,
        message="Trade not found",
        user_message="That trade does not exist.",
        http_status=404,
        recovery_hint="Refresh the dashboard and pick the trade again.",
    )

    TRADE_ALREADY_CLOSED = ErrorCode(
        code="2002",
        category=ErrorCategory.TRADE,
        severity=ErrorSeverity.WARNING,
        message="Trade is already closed",
        user_message="This trade has already been closed.",
        http_status=409,
        recovery_hint="Closed trades cannot be reopened or closed twice.",
    )

    TRADE_DUPLICATE_ID = ErrorCode(
        code="2003",
        category=ErrorCategory.TRADE,
        severity=ErrorSeverity.ERROR,
        message="Trade id already exists",
        user_message="A trade with this id already exists.",
        http_status=409,
        recovery_hint="Retry the action; a fresh id will be assigned.",
    )

    # Intake Errors (3xxx)
    INTAKE_CREDENTIALS_MISSING = ErrorCode(
        code="3001",
        category=ErrorCategory.INTAKE,
        severity=ErrorSeverity.ERROR,
        message="AI service API key not configured",
        user_message="The AI service is not configured.",
        http_status=503,
        recovery_hint="Set UWF_GEMINI_API_KEY (or API_KEY) and try again.",
    )

    INTAKE_NETWORK_ERROR = ErrorCode(
        code="3002",
        category=ErrorCategory.INTAKE,
        severity=ErrorSeverity.WARNING,
        message="AI service could not be reached",
        user_message="Unable to reach the AI service.",
        http_status=503,
        retryable=True,
        recovery_hint="Check your connection and try again.",
    )

    INTAKE_SERVICE_ERROR = ErrorCode(
        code="3003",
        category=ErrorCategory.INTAKE,
        severity=ErrorSeverity.WARNING,
        message="AI service returned an error status",
        user_message="The AI service could not process the request.",
        http_status=502,
        retryable=True,
        recovery_hint="Try again in a moment.",
    )

    INTAKE_INVALID_RESPONSE = ErrorCode(
        code="3004",
        category=ErrorCategory.INTAKE,
        severity=ErrorSeverity.WARNING,
        message="AI response was not valid JSON for the trade schema",
        user_message="The AI response could not be understood.",
        http_status=502,
        retryable=True,
        recovery_hint="Rephrase the trade description and try again.",
    )

    INTAKE_BUSY = ErrorCode(
        code="3005",
        category=ErrorCategory.INTAKE,
        severity=ErrorSeverity.INFO,
        message="An intake request is already in flight",
        user_message="Still processing the previous request.",
        http_status=409,
        retryable=True,
        recovery_hint="Wait for the current request to finish.",
    )

    INTAKE_NO_PROPOSAL = ErrorCode(
        code="3006",
        category=ErrorCategory.INTAKE,
        severity=ErrorSeverity.INFO,
        message="No proposed trade to confirm",
        user_message="There is no processed trade to confirm.",
        http_status=409,
        recovery_hint="Process a trade description first.",
    )

    # Storage Errors (4xxx)
    STORAGE_READ_ERROR = ErrorCode(
        code="4001",
        category=ErrorCategory.STORAGE,
        severity=ErrorSeverity.ERROR,
        message="Failed to read journal data",
        user_message="Saved journal data could not be read.",
        http_status=500,
        recovery_hint="Check the data directory for a damaged file.",
    )

    STORAGE_WRITE_ERROR = ErrorCode(
        code="4002",
        category=ErrorCategory.STORAGE,
        severity=ErrorSeverity.CRITICAL,
        message="Failed to write journal data",
        user_message="Your change could not be saved.",
        http_status=500,
        retryable=True,
        recovery_hint="Check free disk space and permissions on the data directory.",
    )

    # System Errors (9xxx)
    SYSTEM_INTERNAL_ERROR = ErrorCode(
        code="9001",
        category=ErrorCategory.SYSTEM,
        severity=ErrorSeverity.CRITICAL,
        message="Internal error",
        user_message="Something went wrong.",
        http_status=500,
        recovery_hint="Try again; if it keeps happening, check the logs.",
    )


# =============================================================================
# Exceptions
# =============================================================================


class JournalError(Exception):
    """
    A journal action failed.

    ``detail`` narrows the registered message (a trade id, what was wrong
    with a value); ``context`` holds machine-readable extras such as the
    offending ``field`` or the AI service's ``status_code``.
    """

    default_code: ErrorCode = ErrorCodes.SYSTEM_INTERNAL_ERROR

    def __init__(
        self,
        error_code: Optional[ErrorCode] = None,
        detail: Optional[str] = None,
        original_error: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
        debug_info: Optional[Dict[str, Any]] = None,
    ):
        self.error_code = error_code or self.default_code
        self.detail = detail
        self.original_error = original_error
        self.context = dict(context or {})
        self.debug_info = dict(debug_info or {})
        self.timestamp = datetime.now(timezone.utc)
        if original_error is not None:
            self.debug_info.setdefault("cause", f"{type(original_error).__name__}: {original_error}")
        super().__init__(self.technical_message)

    @property
    def code(self) -> str:
        return str(self.error_code)

    @property
    def http_status(self) -> int:
        return self.error_code.http_status

    @property
    def field(self) -> Optional[str]:
        return self.context.get("field")

    @property
    def user_message(self) -> str:
        if self.detail:
            return f"{self.error_code.user_message} ({self.detail})"
        return self.error_code.user_message

    @property
    def technical_message(self) -> str:
        text = f"[{self.code}] {self.error_code.message}"
        return f"{text}: {self.detail}" if self.detail else text

    def to_dict(self, include_debug: bool = False) -> Dict[str, Any]:
        """
        Error payload for API responses and the intake dialog state.

        ``include_debug`` adds the technical message, context and cause; it
        is only set outside production.
        """
        payload: Dict[str, Any] = {
            "code": self.code,
            "category": self.error_code.category.value,
            "message": self.user_message,
            "recoveryHint": self.error_code.recovery_hint,
            "retryable": self.error_code.retryable,
        }
        if self.field:
            payload["field"] = self.field
        if include_debug:
            payload["debug"] = {
                "technicalMessage": self.technical_message,
                "context": self.context,
                **self.debug_info,
            }
        return payload

    def log(self, log: logging.Logger = logger) -> None:
        log.log(
            self.error_code.severity,
            self.technical_message,
            extra={"ctx_error_code": self.code, "ctx_retryable": self.error_code.retryable},
        )


class ValidationError(JournalError):
    """Input the journal cannot accept; the user corrects it and resubmits."""

    default_code = ErrorCodes.VALIDATION_INVALID_VALUE

    def __init__(self, error_code: Optional[ErrorCode] = None, field: Optional[str] = None, **kwargs):
        if field:
            kwargs["context"] = {**(kwargs.get("context") or {}), "field": field}
        super().__init__(error_code, **kwargs)


class TradeStateError(JournalError):
    """Unknown trade, or an action the trade's lifecycle state forbids."""

    default_code = ErrorCodes.TRADE_NOT_FOUND


class IntakeError(JournalError):
    """The AI intake failed; no trade was created."""

    default_code = ErrorCodes.INTAKE_SERVICE_ERROR


class StorageError(JournalError):
    """A stored document could not be read or written."""

    default_code = ErrorCodes.STORAGE_READ_ERROR


# =============================================================================
# API Helpers
# =============================================================================


def create_error_response(error: JournalError, debug_mode: bool = False) -> Dict[str, Any]:
    """Failure envelope: ``{"success": False, "data": None, "error", "timestamp"}``."""
    return {
        "success": False,
        "data": None,
        "error": error.to_dict(include_debug=debug_mode),
        "timestamp": error.timestamp.isoformat(),
    }


# First match wins; JSONDecodeError must precede ValueError
_EXCEPTION_CODES: Tuple[Tuple[Union[Type[BaseException], Tuple[Type[BaseException], ...]], ErrorCode], ...] = (
    (json.JSONDecodeError, ErrorCodes.STORAGE_READ_ERROR),
    (FileNotFoundError, ErrorCodes.STORAGE_READ_ERROR),
    ((PermissionError, IsADirectoryError), ErrorCodes.STORAGE_WRITE_ERROR),
    ((TimeoutError, ConnectionError), ErrorCodes.INTAKE_NETWORK_ERROR),
    (ValueError, ErrorCodes.VALIDATION_INVALID_VALUE),
)


def wrap_exception(
    exception: BaseException,
    default_code: ErrorCode = ErrorCodes.SYSTEM_INTERNAL_ERROR,
) -> JournalError:
    """Turn an unexpected exception into a ``JournalError`` for the response."""
    if isinstance(exception, JournalError):
        return exception
    error_code = next(
        (code for exc_types, code in _EXCEPTION_CODES if isinstance(exception, exc_types)),
        default_code,
    )
    return JournalError(error_code, detail=str(exception), original_error=exception)


__all__ = [
    "ErrorCategory",
    "ErrorCode",
    "ErrorCodes",
    "ErrorSeverity",
    "IntakeError",
    "JournalError",
    "StorageError",
    "TradeStateError",
    "ValidationError",
    "create_error_response",
    "wrap_exception",
]
