from pathlib import Path
from typing import Annotated
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

from croniter import croniter
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


logger = logging.getLogger(__name__)

MAX_OFFSET_DAYS = 7
MAX_GRAB_DAYS = 7


class CustomSettings(BaseSettings):
    """Grabber settings loaded from environment variables.

    Validates configuration at startup to catch misconfiguration early.
    Offset and day count above the provider maxima are clamped, not rejected.
    """

    channels: Annotated[list[str], NoDecode] = []
    offset: int = 0  # Days from today to start grabbing
    days: int = MAX_GRAB_DAYS
    cache_path: str | None = None
    output_path: str | None = None
    cache_max_age_hours: int = 50

    provider_base_url: str = "https://sledovanitv.cz/api/"
    provider_timezone: str = "Europe/Prague"
    device_id: str | None = None
    device_password: str | None = None
    epg_detail_level: str = "description"
    epg_duration_minutes: int = 1439  # Whole day minus the next midnight
    http_timeout_sec: float = 30.0

    xmltv_lang: str = "cs"
    xmltv_generator_name: str = "epg-grabber"

    grab_cron: str = "30 4 * * *"  # Daily at 4:30
    grab_misfire_grace_sec: int = 3600
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("channels", mode="before")
    @classmethod
    def parse_channels(cls, value):
        """Parse comma-separated channel ids or list."""
        if value is None:
            return []
        if isinstance(value, str):
            if not value.strip():
                return []
            return [channel.strip() for channel in value.split(",") if channel.strip()]
        if isinstance(value, (list, tuple, set)):
            return [str(channel).strip() for channel in value if str(channel).strip()]
        return []

    @field_validator("offset")
    @classmethod
    def clamp_offset(cls, value: int) -> int:
        """Clamp the start offset to the provider maximum."""
        if value < 0:
            raise ValueError("offset must be >= 0")
        if value > MAX_OFFSET_DAYS:
            logger.warning(
                "Offset %s exceeds provider maximum, using %s", value, MAX_OFFSET_DAYS
            )
            return MAX_OFFSET_DAYS
        return value

    @field_validator("days")
    @classmethod
    def clamp_days(cls, value: int) -> int:
        """Clamp the grab window length to the provider maximum."""
        if value < 1:
            raise ValueError("days must be >= 1")
        if value > MAX_GRAB_DAYS:
            logger.warning(
                "Days %s exceeds provider maximum, using %s", value, MAX_GRAB_DAYS
            )
            return MAX_GRAB_DAYS
        return value

    @field_validator("cache_path", "output_path")
    @classmethod
    def validate_file_path(cls, value: str | None, info) -> str | None:
        """Validate that the parent directory of a file path is accessible."""
        if not value:
            return None
        path = Path(value)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            return value
        except (OSError, PermissionError) as exc:
            raise ValueError(f"Cannot access {info.field_name} '{value}': {exc}") from exc

    @field_validator("provider_base_url")
    @classmethod
    def validate_base_url(cls, value: str) -> str:
        """Validate provider URL is HTTP/HTTPS and ends with a slash."""
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError(f"Provider URL must be HTTP/HTTPS: {value}")
        return value if value.endswith("/") else value + "/"

    @field_validator("provider_timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Validate provider timezone is a known IANA zone."""
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Invalid provider timezone: {value}") from exc
        return value

    @field_validator("cache_max_age_hours", "epg_duration_minutes", "grab_misfire_grace_sec")
    @classmethod
    def validate_positive_ints(cls, value: int, info) -> int:
        """Ensure integer settings are positive."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("http_timeout_sec")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        """Validate the per-request HTTP timeout (seconds)."""
        if value <= 0:
            raise ValueError("http_timeout_sec must be > 0")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate logging level name."""
        normalized = value.upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return normalized

    @field_validator("grab_cron")
    @classmethod
    def validate_cron_expression(cls, value: str) -> str:
        """Validate cron expression is valid."""
        try:
            croniter(value)
            return value
        except (ValueError, KeyError) as exc:
            raise ValueError(f"Invalid cron expression '{value}': {exc}") from exc

    @model_validator(mode="after")
    def validate_grab_configuration(self):
        """Validate cross-field configuration."""
        if not self.channels:
            logger.warning("No channels configured - grab will not retrieve any data")
        if not self.cache_path:
            logger.info("No cache path configured - every grab fetches the full window")
        return self

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.provider_timezone)

    def log_summary(self) -> None:
        """Log the effective configuration without credentials."""
        logger.info("Configuration loaded:")
        logger.info("  Channels: %s configured", len(self.channels or []))
        logger.info("  Window: offset=%s days=%s", self.offset, self.days)
        logger.info("  Cache: %s", self.cache_path or "disabled")
        logger.info("  Output: %s", self.output_path or "stdout")
        logger.info("  Provider: %s (%s)", self.provider_base_url, self.provider_timezone)
        logger.info("  Device: %s", "configured" if self.device_id else "missing")
        logger.info("  HTTP Timeout: %ss", self.http_timeout_sec)
        logger.info("  Cache Max Age: %s hours", self.cache_max_age_hours)
        logger.info("  Grab Schedule: %s", self.grab_cron)


settings = CustomSettings()


def setup_logging(level: str | None = None) -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
