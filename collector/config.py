"""Collector configuration pulled from environment variables via pydantic."""
import datetime as dt

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

from utils.logging_utils import get_tagged_logger, mask_db_url
logger = get_tagged_logger(__name__, tag="config")

SUPPORTED_BROWSERS = ("chromium", "firefox", "webkit")


class Settings(BaseSettings):
    """Environment-driven configuration for a collection run."""
    model_config = SettingsConfigDict(env_prefix="COLLECTOR_", extra="ignore")

    latitude: float = 60.1695
    longitude: float = 24.9354
    start_date: dt.date = dt.date(2023, 5, 28)
    end_date: dt.date = dt.date(2024, 5, 30)

    max_concurrency: int = 1
    fetch_attempts: int = 3
    retry_delay_seconds: float = 5.0
    render_timeout_seconds: float = 30.0
    settle_seconds: float = 2.0
    max_consecutive_failures: int = 3  # 0 disables the abort

    database_url: str | None = None
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "postgres"
    db_password: str = ""
    db_name: str = "postgres"
    db_sslmode: str = "disable"
    db_ready_timeout_seconds: float = 30.0
    db_ready_interval_seconds: float = 1.0

    browser: str = "chromium"
    headless: bool = True
    virtual_display: bool = False
    display: str = ":99"
    display_screen: str = "1280x1024x16"

    log_level: str = "INFO"

    @field_validator("max_concurrency", "fetch_attempts", mode="after")
    @classmethod
    def at_least_one(cls, v: int) -> int:
        """Concurrency and attempt counts must be positive."""
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("max_consecutive_failures", mode="after")
    @classmethod
    def non_negative(cls, v: int) -> int:
        """Reject negative thresholds; 0 means never abort."""
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("latitude", mode="after")
    @classmethod
    def valid_latitude(cls, v: float) -> float:
        """Latitude in decimal degrees, north positive."""
        if not -90.0 <= v <= 90.0:
            raise ValueError("latitude must be within [-90, 90]")
        return v

    @field_validator("longitude", mode="after")
    @classmethod
    def valid_longitude(cls, v: float) -> float:
        """Longitude in decimal degrees, east positive."""
        if not -180.0 <= v <= 180.0:
            raise ValueError("longitude must be within [-180, 180]")
        return v

    @field_validator("browser", mode="after")
    @classmethod
    def known_browser(cls, v: str) -> str:
        """Normalize and check the Playwright browser name."""
        name = v.strip().lower()
        if name not in SUPPORTED_BROWSERS:
            raise ValueError(f"browser must be one of {', '.join(SUPPORTED_BROWSERS)}")
        return name

    def resolved_database_url(self) -> str:
        """Return `database_url` if set, otherwise assemble one from the db_* parts."""
        if self.database_url:
            return self.database_url
        url = URL.create(
            "postgresql+psycopg2",
            username=self.db_user or None,
            password=self.db_password or None,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
            query={"sslmode": self.db_sslmode} if self.db_sslmode else {},
        )
        return url.render_as_string(hide_password=False)


if __name__ == "__main__":
    settings = Settings()
    logger.logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4, exclude={'db_password', 'database_url'})}")
    logger.debug(f"Database: {mask_db_url(settings.resolved_database_url())}")
