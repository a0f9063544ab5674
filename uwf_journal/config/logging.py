"""
UWF Journal Logging Configuration

Console or JSON log output, request correlation, a timing decorator and
structured journal events.

Extra fields travel as ``ctx_``-prefixed record attributes (pass them via
``extra=`` or bind them for a block with ``LogContext``); both formatters
print them without the prefix. The request id and ``LogContext`` fields
live in context variables, so concurrent requests never see each other's
values.
"""

import inspect
import json
import logging
import sys
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Dict, Iterator, List, Optional

SERVICE_NAME = "uwf-journal"

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
_bound_fields: ContextVar[Dict[str, Any]] = ContextVar("log_fields", default={})


# =============================================================================
# Log Levels
# =============================================================================
#
# DEBUG   - Rule checks, store reads/writes, intake timings
# INFO    - Trades opened/closed, marks refreshed, startup
# WARNING - Cash routed to Uncategorized, negative cash, slow AI calls
# ERROR   - Failed AI calls, unreadable or unwritable store documents
# =============================================================================


_base_record_factory = logging.getLogRecordFactory()


def _journal_record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
    record = _base_record_factory(*args, **kwargs)
    record.request_id = request_id_var.get()
    for key, value in _bound_fields.get().items():
        setattr(record, f"ctx_{key}", value)
    return record


def _install_record_factory() -> None:
    if logging.getLogRecordFactory() is not _journal_record_factory:
        logging.setLogRecordFactory(_journal_record_factory)


def _extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {name[4:]: value for name, value in vars(record).items() if name.startswith("ctx_")}


class StructuredFormatter(logging.Formatter):
    """One JSON object per line."""

    def __init__(self, service_name: str = SERVICE_NAME, environment: str = "development"):
        super().__init__()
        self.service_name = service_name
        self.environment = environment

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "environment": self.environment,
            "source": f"{record.module}:{record.lineno}",
            "request_id": getattr(record, "request_id", None) or request_id_var.get(),
        }
        entry.update(_extras(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps({k: v for k, v in entry.items() if v is not None}, default=str)


class ConsoleFormatter(logging.Formatter):
    """Single-line output, colored by level when writing to a terminal."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: Optional[bool] = None):
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")
        self.use_color = sys.stdout.isatty() if use_color is None else use_color

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:<8}"
        if self.use_color:
            level = f"{self.LEVEL_COLORS.get(record.levelno, '')}{level}{self.RESET}"

        parts = [self.formatTime(record, self.datefmt), level]
        request_id = getattr(record, "request_id", None)
        if request_id:
            parts.append(f"[{request_id[:8]}]")
        parts.append(f"{record.name}: {record.getMessage()}")
        line = " ".join(parts)

        extras = _extras(record)
        if extras:
            line += "  " + " ".join(f"{k}={v}" for k, v in extras.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    service_name: str = SERVICE_NAME,
    environment: str = "development",
    log_file: Optional[str] = None,
) -> None:
    """
    Replace the root logger's handlers.

    Args:
        level: Log level name
        json_format: JSON lines on stdout instead of console text
        service_name: Service name written into JSON records
        environment: Environment name written into JSON records
        log_file: Optional path that additionally receives JSON records
    """
    _install_record_factory()

    stdout = logging.StreamHandler(sys.stdout)
    stdout.setFormatter(
        StructuredFormatter(service_name, environment) if json_format else ConsoleFormatter()
    )
    handlers: List[logging.Handler] = [stdout]
    if log_file:
        to_file = logging.FileHandler(log_file, encoding="utf-8")
        to_file.setFormatter(StructuredFormatter(service_name, environment))
        handlers.append(to_file)

    logging.basicConfig(level=level.upper(), handlers=handlers, force=True)

    for name in ("uvicorn.access", "urllib3", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)


# =============================================================================
# Request Correlation
# =============================================================================


def set_request_context(request_id: Optional[str] = None) -> str:
    """Bind a request id (a new uuid4 when not given) to the current context."""
    _install_record_factory()
    request_id = request_id or uuid.uuid4().hex
    request_id_var.set(request_id)
    return request_id


def clear_request_context() -> None:
    request_id_var.set(None)


def get_request_id() -> Optional[str]:
    return request_id_var.get()


# =============================================================================
# Timing
# =============================================================================


@contextmanager
def _timed(log: logging.Logger, name: str, threshold_ms: float) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    except Exception as e:
        elapsed = (time.perf_counter() - start) * 1000
        log.error(
            f"{name} failed after {elapsed:.0f}ms: {e}",
            extra={"ctx_function": name, "ctx_duration_ms": round(elapsed, 2), "ctx_error_type": type(e).__name__},
        )
        raise
    elapsed = (time.perf_counter() - start) * 1000
    extra = {"ctx_function": name, "ctx_duration_ms": round(elapsed, 2)}
    if elapsed > threshold_ms:
        log.warning(f"{name} slow: {elapsed:.0f}ms (threshold {threshold_ms:.0f}ms)", extra=extra)
    else:
        log.debug(f"{name} took {elapsed:.1f}ms", extra=extra)


def log_performance(threshold_ms: float = 1000.0) -> Callable:
    """
    Time every call of a function or coroutine function.

    Example:
        @log_performance(threshold_ms=15000)
        def propose(self, text: str):
            ...
    """

    def decorator(func: Callable) -> Callable:
        log = logging.getLogger(func.__module__)
        name = func.__qualname__

        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def timed_coroutine(*args, **kwargs):
                with _timed(log, name, threshold_ms):
                    return await func(*args, **kwargs)

            return timed_coroutine

        @wraps(func)
        def timed(*args, **kwargs):
            with _timed(log, name, threshold_ms):
                return func(*args, **kwargs)

        return timed

    return decorator


# =============================================================================
# Bound Fields
# =============================================================================


class LogContext:
    """
    Bind fields to every record logged inside a ``with`` block.

    Example:
        with LogContext(trade_id="TRADE-004"):
            journal.close_trade("TRADE-004", exit_fields)
    """

    def __init__(self, **fields: Any):
        self.fields = fields
        self._token = None

    def __enter__(self) -> "LogContext":
        _install_record_factory()
        self._token = _bound_fields.set({**_bound_fields.get(), **self.fields})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        _bound_fields.reset(self._token)


def log_with_context(logger: logging.Logger, level: int, message: str, **context: Any) -> None:
    logger.log(level, message, extra={f"ctx_{k}": v for k, v in context.items()})


# =============================================================================
# Journal Events
# =============================================================================


class JournalEventLogger:
    """Business events with a stable ``event`` field for filtering."""

    def __init__(self, logger_name: str = "uwf_journal.events"):
        self.logger = logging.getLogger(logger_name)

    def _emit(self, level: int, event: str, message: str, **fields: Any) -> None:
        extra = {f"ctx_{k}": v for k, v in fields.items() if v is not None}
        extra["ctx_event"] = event
        self.logger.log(level, message, extra=extra)

    def log_trade_opened(self, trade_id: str, ticker: str, account: str, position_size: float) -> None:
        self._emit(
            logging.INFO,
            "trade_opened",
            f"Opened {trade_id}: {ticker} in {account}",
            trade_id=trade_id,
            ticker=ticker,
            account=account,
            position_size=position_size,
        )

    def log_trade_closed(self, trade_id: str, ticker: str, account: str, realized_pl: float) -> None:
        self._emit(
            logging.INFO,
            "trade_closed",
            f"Closed {trade_id}: {ticker} realized {realized_pl:+.2f}",
            trade_id=trade_id,
            ticker=ticker,
            account=account,
            realized_pl=round(realized_pl, 2),
        )

    def log_ledger_routed(self, trade_id: str, requested: str, routed_to: str, cash_delta: float) -> None:
        """A cash effect found no matching account and was booked elsewhere."""
        self._emit(
            logging.WARNING,
            "ledger_routed",
            f"No account {requested!r} for {trade_id}; {cash_delta:+.2f} booked to {routed_to}",
            trade_id=trade_id,
            requested_account=requested,
            routed_to=routed_to,
            cash_delta=round(cash_delta, 2),
        )

    def log_intake_call(
        self,
        model: str,
        status_code: Optional[int],
        duration_ms: float,
        error: Optional[str] = None,
    ) -> None:
        self._emit(
            logging.INFO if error is None else logging.WARNING,
            "intake_call",
            f"AI intake {model}: {status_code if status_code is not None else 'no response'}",
            model=model,
            status_code=status_code,
            duration_ms=round(duration_ms, 2),
            error=error,
        )


event_logger = JournalEventLogger()
