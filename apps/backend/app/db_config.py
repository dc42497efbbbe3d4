"""
Database configuration module.
Uses SUPABASE_DB_URL (direct PostgreSQL connection string), falling back to DATABASE_URL.
"""

import os
import logging
from urllib.parse import urlparse, unquote

logger = logging.getLogger(__name__)


class DBConfig:
    """PostgreSQL connection settings read from the environment"""

    def __init__(self):
        self.supabase_db_url = os.getenv("SUPABASE_DB_URL")
        self.database_url = os.getenv("DATABASE_URL")

        if self.supabase_db_url and self.database_url:
            logger.info("[db_config] Both SUPABASE_DB_URL and DATABASE_URL set; using SUPABASE_DB_URL.")

        if not self.db_url:
            logger.warning("[db_config] SUPABASE_DB_URL not set - database connections will fail")

    @property
    def db_url(self) -> str | None:
        return self.supabase_db_url or self.database_url

    @property
    def is_db_enabled(self) -> bool:
        return bool(self.db_url)

    def get_connection_params(self) -> dict | None:
        """
        Get psycopg2 connection parameters (host, port, database, user, password).
        Returns None when no usable connection string is configured.
        """
        if not self.db_url:
            return None

        # postgresql://user:pass@[hostname]:port/db
        cleaned_url = self.db_url.replace('[', '').replace(']', '')

        try:
            parsed = urlparse(cleaned_url)
        except ValueError as e:
            logger.error(f"[db_config] Failed to parse database URL: {e}")
            return None

        if not parsed.hostname:
            return None

        params = {
            "host": parsed.hostname,
            "port": parsed.port or 5432,
            "database": parsed.path.lstrip('/') or 'postgres',
            "user": parsed.username or 'postgres',
        }

        # Passwords may contain URL-encoded special characters
        if parsed.password:
            params["password"] = unquote(parsed.password)

        logger.debug(
            f"[db_config] Database connection params: host={params['host']}, port={params['port']}, "
            f"database={params['database']}, user={params['user']}"
        )
        return params


# Global instance
db_config = DBConfig()
