from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, model_validator
from typing import Optional, Literal
from loguru import logger
import sys

from vroom.core.logging import setup_json_logging


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Application environment"
    )

    # Provider credentials. A missing key disables that provider at call time.
    google_places_api_key: Optional[str] = Field(default=None, description="Google Places API key")
    resy_api_key: Optional[str] = Field(default=None, description="Resy API key")
    exa_api_key: Optional[str] = Field(default=None, description="Exa search API key")
    hunter_api_key: Optional[str] = Field(default=None, description="Hunter.io API key")
    clawdbot_api_url: str = Field(
        default="http://localhost:3001", description="Clawdbot task API base URL"
    )
    clawdbot_api_key: Optional[str] = Field(default=None, description="Clawdbot API key")

    # Timeouts
    source_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=600,
        description="Upper bound for a single source search call",
    )
    http_timeout_seconds: float = Field(
        default=30.0, gt=0, le=300, description="Timeout for individual HTTP requests"
    )
    clawdbot_max_wait_seconds: float = Field(
        default=120.0,
        gt=0,
        le=1800,
        description="How long to poll a Clawdbot task before giving up",
    )
    clawdbot_poll_interval_seconds: float = Field(
        default=5.0, gt=0, le=300, description="Delay between Clawdbot status polls"
    )

    # Enrichment batching and rate limiting
    enrichment_concurrency: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Number of enrichment lookups issued per group",
    )
    enrichment_group_pause_seconds: float = Field(
        default=0.2,
        ge=0,
        le=60,
        description="Delay between enrichment groups (prevents rate limiting)",
    )
    min_email_confidence: int = Field(
        default=50, ge=0, le=100, description="Minimum Hunter confidence to keep an email"
    )

    # Request defaults
    default_city: str = Field(default="New York", min_length=1, description="Default search city")
    default_party_size: int = Field(default=20, ge=1, le=1000, description="Default party size")
    default_limit: int = Field(default=30, ge=0, le=500, description="Default result limit")
    default_sources: list[str] = Field(
        default=["google_places", "resy"], description="Providers enabled when none are given"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_format: str = Field(
        default="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function}:{line} - {message}",
        description="Log format string",
    )
    log_rotation: str = Field(default="100 MB", description="Log file rotation size")
    log_retention: str = Field(default="10 days", description="Log retention period")
    log_file: Optional[str] = Field(default=None, description="Log file path")
    log_json: bool = Field(default=False, description="Emit JSON lines on stdout instead of text")

    debug: bool = Field(default=False, description="Debug mode; forces DEBUG logging")

    @model_validator(mode="after")
    def validate_clawdbot_polling(self) -> "Settings":
        """Polling interval must fit inside the overall wait budget"""
        if self.clawdbot_poll_interval_seconds > self.clawdbot_max_wait_seconds:
            raise ValueError(
                "clawdbot_poll_interval_seconds must be less than or equal to clawdbot_max_wait_seconds"
            )
        return self

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level

    def configure_logging(self) -> None:
        """Configure loguru based on settings"""
        if self.log_json:
            setup_json_logging(self.effective_log_level)
            return

        logger.remove()

        logger.add(
            sys.stderr, format=self.log_format, level=self.effective_log_level, colorize=True
        )

        if self.log_file:
            logger.add(
                self.log_file,
                format=self.log_format,
                level=self.effective_log_level,
                rotation=self.log_rotation,
                retention=self.log_retention,
                compression="zip",
            )

        logger.info(f"Logging configured for {self.environment} environment")


def get_settings() -> Settings:
    """Get cached settings instance"""
    settings = Settings()
    settings.configure_logging()
    return settings


settings = get_settings()
