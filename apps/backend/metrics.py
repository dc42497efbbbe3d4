"""
Prometheus metrics for scrape runs and job ingestion.
"""
import logging
from typing import Dict

from prometheus_client import Counter, make_asgi_app

logger = logging.getLogger(__name__)

scrape_runs = Counter(
    'recruit_scrape_runs_total',
    'Scrape runs finished, by source and terminal status',
    ['source', 'status'],
)
jobs_ingested = Counter(
    'recruit_jobs_ingested_total',
    'Scraped items processed, by source and outcome',
    ['source', 'outcome'],
)

ITEM_OUTCOMES = ('new', 'duplicate', 'dropped', 'failed')


def record_run(source: str, status: str):
    """Count one finished (query, source) pair."""
    scrape_runs.labels(source=source, status=status).inc()


def record_items(source: str, counts: Dict[str, int]):
    """Count per-item outcomes of one pair; unknown outcome keys are ignored."""
    for outcome in ITEM_OUTCOMES:
        n = counts.get(outcome, 0)
        if n > 0:
            jobs_ingested.labels(source=source, outcome=outcome).inc(n)


def get_metrics() -> dict:
    """Current counter values keyed by '<metric>:<label>:<label>'."""
    values = {}
    for counter in (scrape_runs, jobs_ingested):
        for metric in counter.collect():
            for sample in metric.samples:
                if not sample.name.endswith('_total'):
                    continue
                key = ':'.join([sample.name, *sample.labels.values()])
                values[key] = sample.value
    return values


def metrics_app():
    """ASGI app serving the Prometheus exposition format."""
    return make_asgi_app()
