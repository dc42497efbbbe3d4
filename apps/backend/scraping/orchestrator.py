"""
Ingestion orchestrator - drives every (query, source) pair through
scrape -> normalize -> dedupe -> store, one pair at a time.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

import metrics
from .actor_client import ActorClient
from .background import spawn
from .dedupe import Deduplicator, fingerprint
from .errors import PersistenceError
from .normalizer import normalize
from .run_ledger import RunLedger
from .sources import ADAPTERS, SourceAdapter, get_adapter
from .store import JobStore, utcnow

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 50
MATCHING_STARTED_MESSAGE = (
    "Matching is running in the background. "
    "Check logs or candidate matches in a few minutes."
)


@dataclass
class IngestionRequest:
    search_queries: List[str]
    sources: List[str]
    location: str = ""
    max_results_per_query: int = DEFAULT_MAX_RESULTS
    skip_matching: bool = False

    def validate(self) -> None:
        if not self.search_queries or not self.sources:
            raise ValueError("search_queries and sources are required")
        if self.max_results_per_query < 1:
            raise ValueError("max_results_per_query must be at least 1")


@dataclass
class PairResult:
    query: str
    source: str
    run_id: Optional[str] = None
    jobs_found: int = 0
    jobs_new: int = 0
    jobs_duplicate: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"query": self.query, "source": self.source}
        if self.run_id:
            data["run_id"] = self.run_id
        if self.error is not None:
            data["error"] = self.error
        else:
            data.update(
                jobs_found=self.jobs_found,
                jobs_new=self.jobs_new,
                jobs_duplicate=self.jobs_duplicate,
            )
        return data


@dataclass
class IngestionResult:
    results: List[PairResult] = field(default_factory=list)
    total_new_jobs: int = 0
    matching: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "total_new_jobs": self.total_new_jobs,
            "matching": self.matching,
        }


class IngestionOrchestrator:
    """
    Runs ingestion requests.

    Pairs are processed sequentially in query-major order. A failing pair is
    recorded as a failed run and never stops its siblings.
    """

    def __init__(
        self,
        store: JobStore,
        client: ActorClient,
        matcher: Optional[Callable[[], Awaitable[Any]]] = None,
        adapter_factory: Callable[[str, ActorClient], SourceAdapter] = get_adapter,
    ):
        self.store = store
        self.client = client
        self.matcher = matcher
        self.adapter_factory = adapter_factory
        self.ledger = RunLedger(store)
        self.deduplicator = Deduplicator(store)

    async def ingest(self, request: IngestionRequest) -> IngestionResult:
        request.validate()
        result = IngestionResult()

        for query in request.search_queries:
            for source in request.sources:
                pair = await self.ingest_pair(query, source, request)
                result.results.append(pair)
                result.total_new_jobs += pair.jobs_new

        result.matching = self._maybe_start_matching(result.total_new_jobs, request.skip_matching)
        return result

    async def ingest_pair(self, query: str, source: str, request: IngestionRequest) -> PairResult:
        pair = PairResult(query=query, source=source)
        adapter_cls = ADAPTERS.get(source)
        actor_label = adapter_cls.actor_id if adapter_cls else source

        try:
            run = await self.ledger.open(actor_label, query)
        except PersistenceError as e:
            pair.error = f"DB insert failed: {e}"
            logger.error(f"[scraping] {source}/{query}: {pair.error}")
            metrics.record_run(source, "failed")
            return pair
        pair.run_id = run.id

        try:
            adapter = self.adapter_factory(source, self.client)
            items = await adapter.fetch(query, request.location, request.max_results_per_query)
            counts = await self.store_items(items, source)
            pair.jobs_found = len(items)
            pair.jobs_new = counts["new"]
            pair.jobs_duplicate = counts["duplicate"]
            await self.ledger.complete(run, pair.jobs_found, pair.jobs_new, pair.jobs_duplicate)
            metrics.record_run(source, "completed")
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error(f"[scraping] {source}/{query}: {message}", exc_info=True)
            pair.error = message
            metrics.record_run(source, "failed")
            await self._fail_run(run, message)

        return pair

    async def _fail_run(self, run, message: str) -> None:
        try:
            await self.ledger.fail(run, message)
        except PersistenceError as e:
            logger.error(f"[scraping] Could not mark run {run.id} failed: {e}")

    async def store_items(self, items: List[Any], source: str) -> Dict[str, int]:
        """
        Normalize, dedupe and insert raw items.

        Unusable items are dropped without being counted. A storage error on
        one item skips that item only.
        """
        counts = {"new": 0, "duplicate": 0, "dropped": 0, "failed": 0}

        for item in items:
            job = normalize(item, source)
            if job is None:
                counts["dropped"] += 1
                continue

            dedupe_hash = fingerprint(job)
            try:
                if await self.deduplicator.is_duplicate(job, dedupe_hash):
                    counts["duplicate"] += 1
                    continue

                row = job.to_row()
                row.update(dedupe_hash=dedupe_hash, is_active=True, scraped_at=utcnow())
                if await self.store.insert_job(row):
                    counts["new"] += 1
                else:
                    # Another writer stored it between the check and the insert
                    counts["duplicate"] += 1
            except PersistenceError as e:
                counts["failed"] += 1
                logger.error(f"[scraping] insert error for {job.title!r}: {e}")

        metrics.record_items(source, counts)
        return counts

    def _maybe_start_matching(self, total_new_jobs: int, skip_matching: bool) -> Dict[str, str]:
        if total_new_jobs == 0:
            return {"status": "skipped", "reason": "no new jobs"}
        if skip_matching:
            return {"status": "skipped", "reason": "skip_matching=true"}
        if self.matcher is None:
            return {"status": "skipped", "reason": "matching not configured"}

        logger.info(f"[scraping] {total_new_jobs} new jobs added - starting matching in background.")
        spawn(self.matcher(), name="matching")
        return {"status": "started", "message": MATCHING_STARTED_MESSAGE}
