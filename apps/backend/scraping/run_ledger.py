"""
Scrape run ledger: one persisted record per (query, source) ingestion attempt.

State machine: running -> completed | failed. A run leaves 'running' exactly
once; the abort operation force-fails runs orphaned in 'running'.
"""

import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .background import spawn
from .errors import InvalidRunTransition
from .store import JobStore, utcnow

logger = logging.getLogger(__name__)

RUNNING = "running"
COMPLETED = "completed"
FAILED = "failed"
ABORT_MESSAGE = "Aborted by user"


@dataclass
class ScrapeRun:
    id: str
    actor_id: str
    search_query: str
    status: str = RUNNING
    jobs_found: int = 0
    jobs_new: int = 0
    jobs_duplicate: int = 0
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ScrapeRun":
        return cls(
            id=str(row["id"]),
            actor_id=row.get("actor_id") or "",
            search_query=row.get("search_query") or "",
            status=row.get("status") or RUNNING,
            jobs_found=row.get("jobs_found") or 0,
            jobs_new=row.get("jobs_new") or 0,
            jobs_duplicate=row.get("jobs_duplicate") or 0,
            error_message=row.get("error_message"),
            started_at=row.get("started_at"),
            completed_at=row.get("completed_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ("started_at", "completed_at"):
            if isinstance(data[key], datetime):
                data[key] = data[key].isoformat()
        return data


class RunLedger:
    """Creates, finalizes and aborts scrape runs"""

    def __init__(self, store: JobStore):
        self.store = store

    async def open(self, actor_id: str, search_query: str) -> ScrapeRun:
        row = await self.store.create_run(actor_id, search_query)
        run = ScrapeRun.from_row(row)
        logger.info(f"[ledger] Opened run {run.id} ({actor_id}, {search_query!r})")
        return run

    def _ensure_running(self, run: ScrapeRun, target: str) -> None:
        if run.status != RUNNING:
            raise InvalidRunTransition(f"Run {run.id} is {run.status}; cannot move to {target}")

    async def complete(self, run: ScrapeRun, found: int, new: int, duplicate: int) -> ScrapeRun:
        self._ensure_running(run, COMPLETED)
        completed_at = utcnow()
        await self.store.update_run(run.id, {
            "status": COMPLETED,
            "jobs_found": found,
            "jobs_new": new,
            "jobs_duplicate": duplicate,
            "completed_at": completed_at,
        })
        run.status = COMPLETED
        run.jobs_found, run.jobs_new, run.jobs_duplicate = found, new, duplicate
        run.completed_at = completed_at
        logger.info(f"[ledger] Run {run.id} completed: found={found} new={new} duplicate={duplicate}")
        return run

    async def fail(self, run: ScrapeRun, error_message: str) -> ScrapeRun:
        self._ensure_running(run, FAILED)
        completed_at = utcnow()
        await self.store.update_run(run.id, {
            "status": FAILED,
            "error_message": error_message,
            "completed_at": completed_at,
        })
        run.status = FAILED
        run.error_message = error_message
        run.completed_at = completed_at
        logger.info(f"[ledger] Run {run.id} failed: {error_message}")
        return run

    async def recent(self, limit: int = 100) -> List[ScrapeRun]:
        rows = await self.store.list_runs(limit)
        return [ScrapeRun.from_row(row) for row in rows]

    async def abort_running(
        self,
        remote_abort: Optional[Callable[[], Awaitable[Any]]] = None,
    ) -> int:
        """
        Force every 'running' run to 'failed' with the abort message.

        `remote_abort`, when given, is started as a detached task after the
        ledger update; its outcome never affects the return value.

        Returns:
            Number of runs aborted
        """
        rows = await self.store.list_runs_by_status(RUNNING)
        aborted = 0
        for row in rows:
            await self.store.update_run(row["id"], {
                "status": FAILED,
                "error_message": ABORT_MESSAGE,
                "completed_at": utcnow(),
            })
            aborted += 1

        logger.info(f"[ledger] Aborted {aborted} running scrape run(s)")

        if remote_abort is not None:
            spawn(remote_abort(), name="apify-abort")

        return aborted
