"""
Admin endpoints for job scraping: trigger ingestion, list runs, abort runs.
"""

import logging
from functools import partial
from typing import AsyncIterator, Callable, List

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field

from app.config import ScrapingSettings, get_settings
from app.db_config import db_config
from app.matching import trigger_matching
from app.rate_limit import limiter, RATE_LIMIT_SCRAPE
from scraping.actor_client import ActorClient
from scraping.errors import ConfigurationError, PersistenceError
from scraping.orchestrator import IngestionOrchestrator, IngestionRequest, DEFAULT_MAX_RESULTS
from scraping.run_ledger import RunLedger
from scraping.sources import SUPPORTED_SOURCES
from scraping.store import JobStore, PostgresJobStore
from security.admin_auth import admin_required

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/scraping", tags=["scraping"])


class ScrapeRequest(BaseModel):
    search_queries: List[str] = []
    sources: List[str] = []
    location: str = ""
    max_results_per_query: int = Field(DEFAULT_MAX_RESULTS, ge=1, le=500)
    skip_matching: bool = False


def get_store() -> JobStore:
    conn_params = db_config.get_connection_params()
    if not conn_params:
        raise HTTPException(status_code=503, detail="Database not configured")
    return PostgresJobStore(conn_params)


async def get_actor_client(
    settings: ScrapingSettings = Depends(get_settings),
) -> AsyncIterator[ActorClient]:
    try:
        client = ActorClient(settings)
    except ConfigurationError as e:
        logger.error(f"[scraping] {e}")
        raise HTTPException(status_code=500, detail=str(e))
    try:
        yield client
    finally:
        await client.aclose()


def get_matcher(settings: ScrapingSettings = Depends(get_settings)) -> Callable:
    return partial(trigger_matching, settings)


@router.post("")
@limiter.limit(RATE_LIMIT_SCRAPE)
async def run_scrape(
    request: Request,
    body: ScrapeRequest,
    admin=Depends(admin_required),
    client: ActorClient = Depends(get_actor_client),
    store: JobStore = Depends(get_store),
    matcher: Callable = Depends(get_matcher),
):
    """
    Scrape every (query, source) pair, store new jobs, then start matching.

    Always 200 once runs start; per-pair failures are reported in `results`.
    """
    queries = [q.strip() for q in body.search_queries if q and q.strip()]
    sources = [s.strip().lower() for s in body.sources if s and s.strip()]
    if not queries or not sources:
        raise HTTPException(status_code=400, detail="search_queries and sources are required")

    unknown = sorted(set(sources) - set(SUPPORTED_SOURCES))
    if unknown:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported sources: {unknown}. Available sources: {list(SUPPORTED_SOURCES)}",
        )

    logger.info(f"[scraping] {admin} requested {len(queries)} queries x {len(sources)} sources")
    orchestrator = IngestionOrchestrator(store, client, matcher=matcher)
    result = await orchestrator.ingest(IngestionRequest(
        search_queries=queries,
        sources=sources,
        location=body.location.strip(),
        max_results_per_query=body.max_results_per_query,
        skip_matching=body.skip_matching,
    ))
    return result.to_dict()


@router.get("/runs")
async def list_runs(
    limit: int = Query(100, ge=1, le=500),
    admin=Depends(admin_required),
    store: JobStore = Depends(get_store),
):
    """Return the most recent scrape runs."""
    try:
        runs = await RunLedger(store).recent(limit)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"runs": [run.to_dict() for run in runs]}


@router.delete("/runs")
async def abort_runs(
    admin=Depends(admin_required),
    store: JobStore = Depends(get_store),
    settings: ScrapingSettings = Depends(get_settings),
):
    """Mark every running scrape run failed and ask Apify to abort active runs."""
    remote_abort = None
    if settings.apify_token:
        async def remote_abort():
            async with ActorClient(settings) as client:
                return await client.abort_all_running()

    try:
        aborted = await RunLedger(store).abort_running(remote_abort=remote_abort)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"aborted": aborted}
