"""
Job ingestion pipeline.

Drives Apify scrape actors per (query, source) pair, normalizes the results,
drops duplicates of stored jobs and records every attempt in scrape_runs.

Import from the submodules (scraping.orchestrator, scraping.actor_client, ...);
app.config depends on scraping.errors, so this package stays import-free.
"""

__version__ = "0.1.0"
