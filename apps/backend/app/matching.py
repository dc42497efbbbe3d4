"""
Client for the candidate-matching collaborator.

Matching runs in the main recruiting app behind its cron endpoint; the
ingestion pipeline only kicks it off after new jobs were stored.
"""
import logging
from typing import Optional

import httpx

from app.config import ScrapingSettings

logger = logging.getLogger(__name__)

# The match endpoint may run for up to five minutes
MATCHING_TIMEOUT_SECONDS = 310.0


async def trigger_matching(
    settings: Optional[ScrapingSettings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Optional[dict]:
    """
    Ask the matching service to re-score candidates against the job table.

    Raises httpx.HTTPError on transport or non-2xx responses; callers run this
    as a detached task whose errors are only logged.
    """
    settings = settings or ScrapingSettings.from_env()
    if not settings.matching_url:
        logger.warning("[matching] MATCHING_URL not configured; skipping matching run")
        return None

    headers = {}
    if settings.cron_secret:
        headers["Authorization"] = f"Bearer {settings.cron_secret}"

    if http_client is None:
        async with httpx.AsyncClient(timeout=httpx.Timeout(MATCHING_TIMEOUT_SECONDS)) as client:
            response = await client.get(settings.matching_url, headers=headers)
    else:
        response = await http_client.get(settings.matching_url, headers=headers)

    response.raise_for_status()
    logger.info(f"[matching] Matching run finished with HTTP {response.status_code}")
    try:
        return response.json()
    except ValueError:
        return None
