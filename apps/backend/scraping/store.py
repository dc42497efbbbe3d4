"""
Row storage for scrape runs and ingested jobs.

`JobStore` is the interface the pipeline depends on; `PostgresJobStore`
implements it on psycopg2. psycopg2 is blocking, so every operation runs
in a worker thread with its own short-lived connection.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import psycopg2
from psycopg2.extras import RealDictCursor

from .errors import PersistenceError

logger = logging.getLogger(__name__)

RUNS_TABLE = "scrape_runs"
JOBS_TABLE = "jobs"

RUN_COLUMNS = (
    "id", "actor_id", "search_query", "status",
    "jobs_found", "jobs_new", "jobs_duplicate",
    "error_message", "started_at", "completed_at",
)
UPDATABLE_RUN_COLUMNS = frozenset({
    "status", "jobs_found", "jobs_new", "jobs_duplicate", "error_message", "completed_at",
})
JOB_COLUMNS = (
    "source", "source_job_id", "title", "company", "location", "url",
    "jd_raw", "jd_clean", "salary_min", "salary_max", "job_type", "remote_type",
    "dedupe_hash", "is_active", "scraped_at",
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStore(ABC):
    """Persistence operations used by the ingestion pipeline"""

    @abstractmethod
    async def create_run(self, actor_id: str, search_query: str) -> Dict[str, Any]:
        """Insert a scrape run in 'running' state and return the stored row."""

    @abstractmethod
    async def update_run(self, run_id: str, fields: Dict[str, Any]) -> None:
        """Update columns of one scrape run."""

    @abstractmethod
    async def list_runs(self, limit: int = 100) -> List[Dict[str, Any]]:
        """Most recent scrape runs, newest first."""

    @abstractmethod
    async def list_runs_by_status(self, status: str) -> List[Dict[str, Any]]:
        """All scrape runs in `status`."""

    @abstractmethod
    async def find_existing_job(
        self, dedupe_hash: str, source: str, source_job_id: Optional[str]
    ) -> Optional[Dict[str, Any]]:
        """
        Any stored job with the same fingerprint, or with the same
        (source, source_job_id) when a native id is given.
        """

    @abstractmethod
    async def insert_job(self, row: Dict[str, Any]) -> bool:
        """Insert a job row; False when an equivalent row already exists."""


class PostgresJobStore(JobStore):
    """JobStore on PostgreSQL via psycopg2"""

    def __init__(self, conn_params: Dict[str, Any], connect_timeout: int = 10):
        self.conn_params = conn_params
        self.connect_timeout = connect_timeout

    def _get_db_conn(self):
        """Get database connection"""
        return psycopg2.connect(**self.conn_params, connect_timeout=self.connect_timeout)

    def _execute(self, sql: str, params: tuple = (), fetch: str = "none"):
        """Run one statement in its own transaction."""
        conn = None
        try:
            conn = self._get_db_conn()
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(sql, params)
                if fetch == "one":
                    row = cur.fetchone()
                    result = dict(row) if row else None
                elif fetch == "all":
                    result = [dict(row) for row in cur.fetchall()]
                else:
                    result = cur.rowcount
            conn.commit()
            return result
        except psycopg2.Error as e:
            if conn:
                conn.rollback()
            logger.error(f"[store] Database error: {e}")
            raise PersistenceError(str(e)) from e
        finally:
            if conn:
                conn.close()

    async def _run(self, sql: str, params: tuple = (), fetch: str = "none"):
        return await asyncio.to_thread(self._execute, sql, params, fetch)

    async def create_run(self, actor_id: str, search_query: str) -> Dict[str, Any]:
        row = await self._run(
            f"""
            INSERT INTO {RUNS_TABLE} (actor_id, search_query, status, started_at)
            VALUES (%s, %s, 'running', %s)
            RETURNING {', '.join(RUN_COLUMNS)}
            """,
            (actor_id, search_query, utcnow()),
            fetch="one",
        )
        if not row:
            raise PersistenceError("Insert into scrape_runs returned no row")
        return row

    async def update_run(self, run_id: str, fields: Dict[str, Any]) -> None:
        unknown = set(fields) - UPDATABLE_RUN_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update scrape_runs columns: {sorted(unknown)}")
        if not fields:
            return

        assignments = ", ".join(f"{column} = %s" for column in fields)
        await self._run(
            f"UPDATE {RUNS_TABLE} SET {assignments} WHERE id::text = %s",
            (*fields.values(), str(run_id)),
        )

    async def list_runs(self, limit: int = 100) -> List[Dict[str, Any]]:
        return await self._run(
            f"""
            SELECT {', '.join(RUN_COLUMNS)}
            FROM {RUNS_TABLE}
            ORDER BY started_at DESC
            LIMIT %s
            """,
            (int(limit),),
            fetch="all",
        )

    async def list_runs_by_status(self, status: str) -> List[Dict[str, Any]]:
        return await self._run(
            f"SELECT {', '.join(RUN_COLUMNS)} FROM {RUNS_TABLE} WHERE status = %s",
            (status,),
            fetch="all",
        )

    async def find_existing_job(
        self, dedupe_hash: str, source: str, source_job_id: Optional[str]
    ) -> Optional[Dict[str, Any]]:
        if source_job_id:
            sql = f"""
                SELECT id FROM {JOBS_TABLE}
                WHERE dedupe_hash = %s OR (source = %s AND source_job_id = %s)
                LIMIT 1
            """
            params = (dedupe_hash, source, source_job_id)
        else:
            sql = f"SELECT id FROM {JOBS_TABLE} WHERE dedupe_hash = %s LIMIT 1"
            params = (dedupe_hash,)
        return await self._run(sql, params, fetch="one")

    async def insert_job(self, row: Dict[str, Any]) -> bool:
        columns = [c for c in JOB_COLUMNS if c in row]
        placeholders = ", ".join(["%s"] * len(columns))
        # Unique indexes on dedupe_hash and (source, source_job_id) make a
        # concurrent re-insert a no-op instead of a second row.
        inserted = await self._run(
            f"""
            INSERT INTO {JOBS_TABLE} ({', '.join(columns)})
            VALUES ({placeholders})
            ON CONFLICT DO NOTHING
            """,
            tuple(row[c] for c in columns),
        )
        return inserted == 1
