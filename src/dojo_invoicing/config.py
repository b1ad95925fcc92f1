"""Centralized configuration management using pydantic-settings.

Configuration is loaded from environment variables with sensible defaults.
All settings can be overridden via environment variables or a .env file.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dojo_invoicing.domain.value_objects import Currency, ItemType, PaymentTerms


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Log level options."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Override via environment variables (prefixed with DOJO_) or .env file.

    Examples:
        DOJO_DATABASE_PATH=/var/lib/dojo/invoices.db
        DOJO_DEFAULT_CURRENCY=USD
        DOJO_LOG_FORMAT=json
    """

    model_config = SettingsConfigDict(
        env_prefix="DOJO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Dojo Invoicing"
    environment: Environment = Environment.DEVELOPMENT

    # Database
    database_path: Path = Field(
        default=Path("dojo_invoicing.db"),
        description="SQLite database file path",
    )

    # Logging
    log_level: LogLevel = LogLevel.INFO
    log_format: Literal["json", "console"] = Field(
        default=None,
        validate_default=True,
        description="Log output format; JSON by default in production, console otherwise",
    )
    log_file: Path | None = Field(default=None, description="Optional log file path")

    # Invoicing
    default_currency: Currency = Field(
        default=Currency.CAD,
        description="Currency used when an invoice does not specify one",
    )
    default_payment_terms: PaymentTerms = PaymentTerms.NET_30
    invoice_number_prefix: str = Field(default="INV", min_length=1, max_length=10)

    # Provincial tax exemptions (BC does not charge PST on memberships)
    membership_exempt_tax_names: list[str] = Field(default_factory=lambda: ["PST_BC"])
    membership_item_types: list[ItemType] = Field(
        default_factory=lambda: [ItemType.CLASS_ENROLLMENT, ItemType.INDIVIDUAL_SESSION]
    )

    @field_validator("invoice_number_prefix", mode="after")
    @classmethod
    def normalize_prefix(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("log_format", mode="before")
    @classmethod
    def set_log_format_from_environment(cls, v: str, info) -> str:
        """Default to JSON logging in production."""
        if v is None:
            env = info.data.get("environment")
            if env == Environment.PRODUCTION:
                return "json"
        return v or "console"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
