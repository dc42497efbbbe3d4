"""
Indeed adapter: a single actor call with a structured query.
"""
from typing import Any, Dict, List

from .base import SourceAdapter


class IndeedAdapter(SourceAdapter):
    source = "indeed"
    actor_id = "misceres/indeed-scraper"

    def build_input(self, query: str, location: str, max_results: int) -> Dict[str, Any]:
        return {
            "queries": [{"query": query, "location": location or ""}],
            "maxResults": max_results,
            "proxy": {"useApifyProxy": True},
        }

    async def fetch(self, query: str, location: str, max_results: int) -> List[Dict[str, Any]]:
        items = await self.client.run(self.actor_id, self.build_input(query, location, max_results))
        self.logger.info(f"[indeed] {len(items)} items for {query!r}")
        return items
