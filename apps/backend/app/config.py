import os
from dataclasses import dataclass
from typing import Optional

import psycopg2

from app.db_config import db_config
from scraping.errors import ConfigurationError

DEFAULT_APIFY_BASE_URL = "https://api.apify.com/v2"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, default))


@dataclass(frozen=True)
class ScrapingSettings:
    """Settings for the actor client and the ingestion pipeline."""

    apify_token: Optional[str]
    apify_base_url: str = DEFAULT_APIFY_BASE_URL
    poll_interval_seconds: float = 5.0
    actor_timeout_seconds: float = 6 * 60
    dataset_limit: int = 500
    http_timeout_seconds: float = 30.0
    matching_url: Optional[str] = None
    cron_secret: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ScrapingSettings":
        return cls(
            apify_token=os.getenv("APIFY_API_TOKEN") or None,
            apify_base_url=os.getenv("APIFY_BASE_URL", DEFAULT_APIFY_BASE_URL).rstrip("/"),
            poll_interval_seconds=_env_float("SCRAPE_POLL_INTERVAL_SECONDS", 5.0),
            actor_timeout_seconds=_env_float("SCRAPE_ACTOR_TIMEOUT_SECONDS", 6 * 60),
            dataset_limit=_env_int("SCRAPE_DATASET_LIMIT", 500),
            http_timeout_seconds=_env_float("SCRAPE_HTTP_TIMEOUT_SECONDS", 30.0),
            matching_url=os.getenv("MATCHING_URL") or None,
            cron_secret=os.getenv("CRON_SECRET") or None,
        )

    def require_token(self) -> str:
        """Return the actor host token or raise ConfigurationError."""
        if not self.apify_token:
            raise ConfigurationError("APIFY_API_TOKEN not configured. Add it to your .env file.")
        return self.apify_token


def get_settings() -> ScrapingSettings:
    """FastAPI dependency; re-reads the environment on every request."""
    return ScrapingSettings.from_env()


class Capabilities:
    @staticmethod
    def is_db_enabled() -> bool:
        """Check if a PostgreSQL connection string is configured"""
        return db_config.is_db_enabled

    @staticmethod
    def check_db_connection() -> bool:
        """Verify database connection with a trivial query"""
        if not Capabilities.is_db_enabled():
            return False

        conn_params = db_config.get_connection_params()
        if not conn_params:
            return False

        try:
            # Health checks must stay fast
            conn = psycopg2.connect(**conn_params, connect_timeout=1)
            cursor = conn.cursor()
            cursor.execute("SELECT 1")
            cursor.fetchone()
            cursor.close()
            conn.close()
            return True
        except psycopg2.Error:
            return False

    @staticmethod
    def is_apify_enabled() -> bool:
        return bool(os.getenv("APIFY_API_TOKEN"))

    @staticmethod
    def is_matching_enabled() -> bool:
        return bool(os.getenv("MATCHING_URL"))

    @classmethod
    def get_status(cls) -> dict:
        return {
            "db": cls.check_db_connection(),
            "apify": cls.is_apify_enabled(),
            "matching": cls.is_matching_enabled(),
        }


def get_env_presence() -> dict:
    """Report which environment variables are set, never their values."""
    required_vars = [
        "RECRUIT_ENV",
        "SUPABASE_DB_URL",
        "DATABASE_URL",
        "APIFY_API_TOKEN",
        "APIFY_BASE_URL",
        "MATCHING_URL",
        "CRON_SECRET",
        "ADMIN_PASSWORD",
        "COOKIE_SECRET",
    ]
    return {var: bool(os.getenv(var)) for var in required_vars}
