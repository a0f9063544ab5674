"""
UWF Journal Configuration

Runtime settings loaded from environment variables (prefix ``UWF_``) and an
optional ``.env`` file via pydantic-settings, plus the YAML file holding the
portfolio defaults used when no settings document has been saved yet.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.errors import ErrorCodes, StorageError
from ..persistence.models import PortfolioSettings

logger = logging.getLogger(__name__)

DEFAULT_PORTFOLIO_FILE = Path(__file__).parent.parent.parent / "config" / "journal.yaml"


class JournalSettings(BaseSettings):
    """
    Journal runtime configuration.

    The AI key is also read from ``API_KEY`` or ``GEMINI_API_KEY`` so an
    existing environment works unchanged.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="UWF_",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Storage
    data_dir: Path = Field(
        default=Path.home() / ".uwf_journal",
        description="Directory holding one JSON document per store key.",
    )
    portfolio_file: Optional[Path] = Field(
        default=None,
        description="YAML file with portfolio defaults; the bundled file is used when unset.",
    )

    # AI intake
    gemini_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("UWF_GEMINI_API_KEY", "GEMINI_API_KEY", "API_KEY"),
        description="API key for the generative-AI service.",
    )
    gemini_model: str = Field(default="gemini-2.5-pro", description="Model used for trade intake.")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the generateContent REST API.",
    )
    request_timeout: float = Field(
        default=60.0,
        gt=0,
        le=600,
        description="AI request timeout in seconds.",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Root log level.")
    log_json: bool = Field(default=False, description="Emit JSON log lines.")
    log_file: Optional[str] = Field(default=None, description="Optional JSON log file path.")
    environment: Literal["development", "staging", "production", "test"] = Field(
        default="development",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("data_dir", "portfolio_file", mode="after")
    @classmethod
    def expand_path(cls, v: Optional[Path]) -> Optional[Path]:
        return v.expanduser() if v is not None else v

    @property
    def debug(self) -> bool:
        return self.environment == "development"


def load_portfolio_defaults(path: Optional[Path] = None) -> PortfolioSettings:
    """
    Read portfolio defaults from YAML.

    Keys mirror the stored settings document (``portfolioStartingValue``,
    ``riskPerTrade``, ``accounts`` ...). A missing file yields the built-in
    defaults; a malformed one raises ``StorageError``.
    """
    path = path or DEFAULT_PORTFOLIO_FILE
    if not path.exists():
        logger.debug(f"No portfolio file at {path}; using built-in defaults")
        return PortfolioSettings()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data: Dict[str, Any] = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise StorageError(
            ErrorCodes.STORAGE_READ_ERROR,
            detail=f"portfolio file {path}",
            original_error=e,
        ) from e

    if not isinstance(data, dict):
        raise StorageError(ErrorCodes.STORAGE_READ_ERROR, detail=f"portfolio file {path} is not a mapping")

    portfolio = data.get("portfolio", data)
    return PortfolioSettings.from_dict(portfolio)


@lru_cache()
def get_settings() -> JournalSettings:
    """
    Cached settings instance.

    Loaded once and reused for the life of the process; call
    ``clear_settings_cache`` after changing the environment.
    """
    return JournalSettings()


def clear_settings_cache() -> None:
    get_settings.cache_clear()
