#!/usr/bin/env python3
"""
Run job ingestion from the command line.

Examples:
  python scripts/run_scrape.py ingest --query "data engineer" --source indeed --source linkedin
  python scripts/run_scrape.py runs --limit 20
  python scripts/run_scrape.py abort
"""
import argparse
import asyncio
import json
import logging
import sys
from functools import partial
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

sys.path.insert(0, str(Path(__file__).parent.parent))
# Before the app imports: db_config reads the environment at import time
load_dotenv(find_dotenv(usecwd=True))

from app.config import ScrapingSettings  # noqa: E402
from app.db_config import db_config  # noqa: E402
from app.matching import trigger_matching  # noqa: E402
from scraping.actor_client import ActorClient  # noqa: E402
from scraping.background import pending_tasks  # noqa: E402
from scraping.errors import ScrapingError  # noqa: E402
from scraping.orchestrator import IngestionOrchestrator, IngestionRequest, DEFAULT_MAX_RESULTS  # noqa: E402
from scraping.run_ledger import RunLedger  # noqa: E402
from scraping.sources import SUPPORTED_SOURCES  # noqa: E402
from scraping.store import PostgresJobStore  # noqa: E402

logger = logging.getLogger("run_scrape")


def build_store() -> PostgresJobStore:
    conn_params = db_config.get_connection_params()
    if not conn_params:
        raise SystemExit("Error: SUPABASE_DB_URL or DATABASE_URL environment variable is not set")
    return PostgresJobStore(conn_params)


async def wait_for_background() -> None:
    """Let detached tasks (matching, remote abort) finish before the loop closes."""
    tasks = pending_tasks()
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)


async def cmd_ingest(args, settings: ScrapingSettings) -> dict:
    store = build_store()
    request = IngestionRequest(
        search_queries=args.query,
        sources=args.source,
        location=args.location,
        max_results_per_query=args.max_results,
        skip_matching=args.skip_matching,
    )
    async with ActorClient(settings) as client:
        orchestrator = IngestionOrchestrator(store, client, matcher=partial(trigger_matching, settings))
        result = await orchestrator.ingest(request)
    await wait_for_background()
    return result.to_dict()


async def cmd_runs(args, settings: ScrapingSettings) -> dict:
    runs = await RunLedger(build_store()).recent(args.limit)
    return {"runs": [run.to_dict() for run in runs]}


async def cmd_abort(args, settings: ScrapingSettings) -> dict:
    remote_abort = None
    if settings.apify_token:
        async def remote_abort():
            async with ActorClient(settings) as client:
                return await client.abort_all_running()

    aborted = await RunLedger(build_store()).abort_running(remote_abort=remote_abort)
    await wait_for_background()
    return {"aborted": aborted}


COMMANDS = {
    "ingest": cmd_ingest,
    "runs": cmd_runs,
    "abort": cmd_abort,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Scrape job boards through Apify and store new jobs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Scrape every (query, source) pair")
    ingest.add_argument("--query", action="append", required=True, help="Search query (repeatable)")
    ingest.add_argument(
        "--source",
        action="append",
        required=True,
        choices=SUPPORTED_SOURCES,
        help="Job source (repeatable)",
    )
    ingest.add_argument("--location", default="", help="Location filter")
    ingest.add_argument("--max-results", type=int, default=DEFAULT_MAX_RESULTS, help="Max results per query")
    ingest.add_argument("--skip-matching", action="store_true", help="Do not trigger matching afterwards")

    runs = sub.add_parser("runs", help="List recent scrape runs")
    runs.add_argument("--limit", type=int, default=100)

    sub.add_parser("abort", help="Abort all running scrape runs")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    settings = ScrapingSettings.from_env()
    try:
        output = asyncio.run(COMMANDS[args.command](args, settings))
    except (ScrapingError, ValueError) as e:
        logger.error(f"[run_scrape] {e}")
        return 1

    print(json.dumps(output, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
