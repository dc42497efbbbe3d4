"""
Shared fixtures: an in-memory JobStore and a scripted actor client.
"""
import asyncio
import uuid
from typing import Any, Dict, List, Optional

import pytest

from app.config import ScrapingSettings
from scraping.background import pending_tasks
from scraping.errors import PersistenceError
from scraping.store import JobStore, utcnow


class FakeJobStore(JobStore):
    """JobStore kept in memory with the same uniqueness rules as the SQL schema."""

    def __init__(self):
        self.runs: Dict[str, Dict[str, Any]] = {}
        self.jobs: List[Dict[str, Any]] = []
        self.fail_create_run = False
        self.fail_update_run = False
        self.fail_insert_titles = set()

    async def create_run(self, actor_id, search_query):
        if self.fail_create_run:
            raise PersistenceError("connection refused")
        run_id = str(uuid.uuid4())
        row = {
            "id": run_id,
            "actor_id": actor_id,
            "search_query": search_query,
            "status": "running",
            "jobs_found": 0,
            "jobs_new": 0,
            "jobs_duplicate": 0,
            "error_message": None,
            "started_at": utcnow(),
            "completed_at": None,
        }
        self.runs[run_id] = row
        return dict(row)

    async def update_run(self, run_id, fields):
        if self.fail_update_run:
            raise PersistenceError("connection lost")
        self.runs[run_id].update(fields)

    async def list_runs(self, limit=100):
        rows = list(self.runs.values())[::-1]
        return [dict(r) for r in rows[:limit]]

    async def list_runs_by_status(self, status):
        return [dict(r) for r in self.runs.values() if r["status"] == status]

    def _matches(self, job, dedupe_hash, source, source_job_id):
        if job["dedupe_hash"] == dedupe_hash:
            return True
        return bool(source_job_id) and job["source"] == source and job["source_job_id"] == source_job_id

    async def find_existing_job(self, dedupe_hash, source, source_job_id):
        for job in self.jobs:
            if self._matches(job, dedupe_hash, source, source_job_id):
                return job
        return None

    async def insert_job(self, row):
        if row["title"] in self.fail_insert_titles:
            raise PersistenceError("value too long")
        for job in self.jobs:
            if self._matches(job, row["dedupe_hash"], row["source"], row["source_job_id"]):
                return False
        self.jobs.append(dict(row, id=str(uuid.uuid4())))
        return True


class FakeActorClient:
    """
    Stands in for ActorClient. Each `run` call consumes the next scripted
    outcome: a list of items, or an exception to raise.
    """

    def __init__(self, outcomes: Optional[List[Any]] = None):
        self.outcomes = list(outcomes or [])
        self.calls: List[Dict[str, Any]] = []

    async def run(self, actor_id, input_payload):
        self.calls.append({"actor_id": actor_id, "input": input_payload})
        if not self.outcomes:
            return []
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def aclose(self):
        pass


@pytest.fixture
def store():
    return FakeJobStore()


@pytest.fixture
def settings():
    return ScrapingSettings(
        apify_token="test-token",
        apify_base_url="https://apify.test/v2",
        poll_interval_seconds=0,
        actor_timeout_seconds=0.2,
        dataset_limit=500,
    )


def indeed_item(**overrides):
    item = {
        "id": "ind-1",
        "positionName": "Data Engineer",
        "company": "Acme",
        "location": "Austin, TX",
        "url": "https://indeed.com/viewjob?jk=ind-1",
        "description": "<p>Build pipelines</p>",
        "salaryMin": 100000,
        "salaryMax": 140000,
        "jobType": "Full-time",
        "remote": False,
    }
    item.update(overrides)
    return item


def linkedin_card(job_id="111", **overrides):
    card = {
        "jobId": job_id,
        "title": "Backend Engineer",
        "company": "Globex",
        "location": "Remote",
        "linkedinUrl": f"https://www.linkedin.com/jobs/view/{job_id}/",
    }
    card.update(overrides)
    return card


async def drain_background():
    """Wait for detached tasks spawned on the running loop."""
    loop = asyncio.get_running_loop()
    tasks = [t for t in pending_tasks() if t.get_loop() is loop]
    await asyncio.gather(*tasks, return_exceptions=True)
