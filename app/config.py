from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

from croniter import croniter
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)


class CustomSettings(BaseSettings):
    """Application settings loaded from environment variables.

    Validates configuration at startup to catch misconfiguration early.
    """

    epg_url: str = "http://epg.51zmt.top:8000/e.xml.gz"
    download_dir: str = "./epg_download"
    snapshot_path: str = "./data/epg_cache.db"
    epg_fetch_cron: str = "0 0 * * *"  # Daily at midnight
    epg_fetch_misfire_grace_sec: int = 3600  # Allow 1 hour to run missed jobs
    timezone: str = "Asia/Shanghai"
    log_level: str = "INFO"

    listen_host: str = "0.0.0.0"
    listen_port: int = 8090

    fetch_timeout_sec: float = 120.0
    fetch_max_retries: int = 3
    fetch_backoff_factor: float = 2.0
    parse_timeout_sec: int = 600  # XML parsing timeout, 0 disables timeout

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("epg_url")
    @classmethod
    def validate_epg_url(cls, value: str) -> str:
        """Validate the EPG feed URL is HTTP/HTTPS."""
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError(f"EPG URL must be HTTP/HTTPS: {value}")
        return value

    @field_validator("download_dir")
    @classmethod
    def validate_download_dir(cls, value: str) -> str:
        """Create the download directory if it does not exist."""
        try:
            Path(value).mkdir(parents=True, exist_ok=True)
            return value
        except (OSError, PermissionError) as exc:
            raise ValueError(f"Cannot access download directory '{value}': {exc}") from exc

    @field_validator("snapshot_path")
    @classmethod
    def validate_snapshot_path(cls, value: str) -> str:
        """Validate snapshot path is accessible."""
        path = Path(value)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            return value
        except (OSError, PermissionError) as exc:
            raise ValueError(f"Cannot access snapshot path '{value}': {exc}") from exc

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Validate timezone is a known IANA zone."""
        try:
            ZoneInfo(value)
            return value
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Invalid timezone '{value}'") from exc

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate log level name."""
        normalized = value.upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        if normalized not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return normalized

    @field_validator("epg_fetch_misfire_grace_sec", "parse_timeout_sec")
    @classmethod
    def validate_non_negative(cls, value: int, info) -> int:
        """Ensure second-based settings are non-negative."""
        if value < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return value

    @field_validator("fetch_timeout_sec", "fetch_max_retries", "listen_port")
    @classmethod
    def validate_positive(cls, value, info):
        """Ensure settings are positive."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("fetch_backoff_factor")
    @classmethod
    def validate_backoff_factor(cls, value: float) -> float:
        """Ensure the backoff multiplier is at least 1."""
        if value < 1:
            raise ValueError("fetch_backoff_factor must be >= 1")
        return value

    @field_validator("epg_fetch_cron")
    @classmethod
    def validate_cron_expression(cls, value: str) -> str:
        """Validate cron expression is valid."""
        try:
            croniter(value)
            return value
        except (ValueError, KeyError) as exc:
            raise ValueError(f"Invalid cron expression '{value}': {exc}") from exc

    @property
    def tzinfo(self) -> ZoneInfo:
        """Local timezone used to interpret feed timestamps."""
        return ZoneInfo(self.timezone)

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        logger.info("Configuration loaded:")
        logger.info("  EPG URL: %s", self.epg_url)
        logger.info("  Download Dir: %s", self.download_dir)
        logger.info("  Snapshot: %s", self.snapshot_path)
        logger.info("  Fetch Schedule: %s (%s)", self.epg_fetch_cron, self.timezone)
        logger.info("  Fetch Misfire Grace: %ss", self.epg_fetch_misfire_grace_sec)
        logger.info(
            "  Fetch Timeout: %ss, retries=%s, backoff=%.1f",
            self.fetch_timeout_sec,
            self.fetch_max_retries,
            self.fetch_backoff_factor,
        )
        logger.info(
            "  Parse Timeout: %s seconds",
            self.parse_timeout_sec or "disabled",
        )


settings = CustomSettings()


def setup_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
