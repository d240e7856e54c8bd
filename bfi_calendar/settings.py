"""
Configuration settings for the BFI calendar crawler.

Centralized configuration using Pydantic Settings for type-safe environment
variable handling. All settings can be overridden via environment variables
with the BFI_CALENDAR_ prefix.

Example:
    export BFI_CALENDAR_LOG_LEVEL=DEBUG
    export BFI_CALENDAR_MAX_CONCURRENT_REQUESTS=4
    python -m bfi_calendar.main out.ics
"""

from pathlib import Path
from typing import Any
from typing import Dict

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    All settings can be overridden via environment variables with the
    BFI_CALENDAR_ prefix (e.g., BFI_CALENDAR_LOG_LEVEL=DEBUG).
    """

    model_config = SettingsConfigDict(
        env_prefix="BFI_CALENDAR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Core application settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode with JSON console logs"
    )

    # Site layout
    base_url: str = Field(
        default="https://whatson.bfi.org.uk/Online/default.asp",
        description="Entry point of the BFI box office CMS"
    )

    index_permalink: str = Field(
        default="filmsindex",
        description="Permalink of the article listing every film"
    )

    # Fetching behaviour
    user_agent: str = Field(
        default="Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:138.0) Gecko/20100101 Firefox/138.0",
        description="User-Agent string for HTTP requests"
    )

    request_timeout: float = Field(
        default=30.0,
        ge=1.0,
        le=120.0,
        description="HTTP request timeout in seconds"
    )

    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retry attempts for transport errors and 5xx/429 responses"
    )

    retry_backoff: float = Field(
        default=1.0,
        ge=0.0,
        le=60.0,
        description="Initial backoff in seconds, doubled on each retry"
    )

    max_concurrent_requests: int = Field(
        default=8,
        ge=1,
        le=64,
        description="Number of films crawled at the same time"
    )

    max_pages_per_seed: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Upper bound on result pages followed for one film"
    )

    # Calendar output
    calendar_name: str = Field(
        default="BFI",
        description="Display name for the generated ICS calendar"
    )

    calendar_description: str = Field(
        default="Screenings at BFI Southbank and other BFI venues.",
        description="Description text for the ICS calendar"
    )

    output_path: Path = Field(
        default=Path("out.ics"),
        description="Where the calendar is written when no destination is given"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log_level is a valid logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}, got {v}")
        return upper_v

    @property
    def index_url(self) -> str:
        """Get the URL of the films index page."""
        from bfi_calendar.scraper.locators import index_url

        return index_url(self.base_url, self.index_permalink)

    @property
    def logging_config(self) -> Dict[str, Any]:
        """Get logging configuration dict."""
        return {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {
                    "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
                "structured": {
                    "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                    "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": self.log_level,
                    "formatter": "structured" if self.debug_mode else "standard",
                    "stream": "ext://sys.stderr",
                },
                "file": {
                    "class": "logging.handlers.RotatingFileHandler",
                    "level": "INFO",
                    "formatter": "structured",
                    "filename": "logs/bfi_calendar.log",
                    "maxBytes": 10485760,  # 10MB
                    "backupCount": 5,
                },
            },
            "loggers": {
                "bfi_calendar": {
                    "level": self.log_level,
                    "handlers": ["console", "file"],
                    "propagate": False,
                },
                "aiohttp.client": {
                    "level": "WARNING",
                    "handlers": ["console"],
                    "propagate": False,
                },
            },
            "root": {
                "level": "WARNING",
                "handlers": ["console"],
            },
        }

    def setup_logging(self) -> None:
        """Configure application logging based on current settings."""
        import logging.config

        import structlog

        Path("logs").mkdir(exist_ok=True)
        logging.config.dictConfig(self.logging_config)

        renderer = (
            structlog.processors.JSONRenderer()
            if self.debug_mode
            else structlog.dev.ConsoleRenderer(colors=False)
        )
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.UnicodeDecoder(),
                renderer,
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance."""
    return settings
