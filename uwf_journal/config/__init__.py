"""
UWF Journal Configuration Module

Runtime settings and logging setup.
"""

from .logging import (
    JournalEventLogger,
    LogContext,
    configure_logging,
    event_logger,
    get_request_id,
    log_performance,
    log_with_context,
    set_request_context,
)
from .settings import JournalSettings, clear_settings_cache, get_settings, load_portfolio_defaults

__all__ = [
    "JournalEventLogger",
    "JournalSettings",
    "LogContext",
    "clear_settings_cache",
    "configure_logging",
    "event_logger",
    "get_request_id",
    "get_settings",
    "load_portfolio_defaults",
    "log_performance",
    "log_with_context",
    "set_request_context",
]
