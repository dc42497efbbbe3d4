"""
LinkedIn adapter: two actor calls against public LinkedIn pages.

1. Search: one listing page, one record per job card.
2. Detail: one request per job card with a native id, resolving the
   employer's apply URL and the plain-text description.

The detail results are merged back onto the search records by job id.
A failed detail phase degrades to the search records alone; a failed
search phase fails the whole fetch.
"""
import math
from typing import Any, Dict, Iterable, List
from urllib.parse import urlencode

from .base import SourceAdapter
from .page_functions import LINKEDIN_SEARCH_PAGE_FUNCTION, LINKEDIN_DETAIL_PAGE_FUNCTION

SEARCH_URL = "https://www.linkedin.com/jobs/search/"
DETAIL_URL = "https://www.linkedin.com/jobs/view/{job_id}/"
DEFAULT_LOCATION = "United States"
CARDS_PER_PAGE = 25
# Only postings from the last 24 hours
POSTED_WITHIN = "r86400"


def flatten_items(items: Iterable[Any], required_key: str) -> List[Dict[str, Any]]:
    """Expand nested arrays; keep plain records only when they carry `required_key`."""
    flat: List[Dict[str, Any]] = []
    for item in items:
        if isinstance(item, list):
            flat.extend(i for i in item if isinstance(i, dict))
        elif isinstance(item, dict) and item.get(required_key):
            flat.append(item)
    return flat


class LinkedInAdapter(SourceAdapter):
    source = "linkedin"
    actor_id = "apify/cheerio-scraper"

    def search_url(self, query: str, location: str) -> str:
        params = {
            "keywords": query,
            "location": location or DEFAULT_LOCATION,
            "f_TPR": POSTED_WITHIN,
        }
        return f"{SEARCH_URL}?{urlencode(params)}"

    def build_search_input(self, query: str, location: str, max_results: int) -> Dict[str, Any]:
        return {
            "startUrls": [{"url": self.search_url(query, location)}],
            "maxRequestsPerCrawl": math.ceil(max_results / CARDS_PER_PAGE) + 2,
            "pageFunction": LINKEDIN_SEARCH_PAGE_FUNCTION,
            "proxyConfiguration": {"useApifyProxy": True},
        }

    def build_detail_input(self, job_ids: List[str]) -> Dict[str, Any]:
        return {
            "startUrls": [{"url": DETAIL_URL.format(job_id=job_id)} for job_id in job_ids],
            "maxRequestsPerCrawl": len(job_ids) + 2,
            "pageFunction": LINKEDIN_DETAIL_PAGE_FUNCTION,
            "proxyConfiguration": {"useApifyProxy": True},
        }

    async def search(self, query: str, location: str, max_results: int) -> List[Dict[str, Any]]:
        raw = await self.client.run(self.actor_id, self.build_search_input(query, location, max_results))
        return flatten_items(raw, "title")[:max_results]

    async def fetch_details(self, job_ids: List[str]) -> Dict[str, Dict[str, Any]]:
        raw = await self.client.run(self.actor_id, self.build_detail_input(job_ids))
        return {str(d["jobId"]): d for d in flatten_items(raw, "jobId") if d.get("jobId")}

    @staticmethod
    def merge(jobs: List[Dict[str, Any]], details: Dict[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
        merged = []
        for job in jobs:
            detail = details.get(str(job.get("jobId") or "")) or {}
            listing_url = job.get("linkedinUrl") or ""
            merged.append({
                **job,
                "url": detail.get("applyUrl") or listing_url,
                "linkedin_job_url": listing_url,
                "description": detail.get("description") or "",
            })
        return merged

    async def fetch(self, query: str, location: str, max_results: int) -> List[Dict[str, Any]]:
        jobs = await self.search(query, location, max_results)
        self.logger.info(f"[linkedin] Search found {len(jobs)} cards for {query!r}")
        if not jobs:
            return jobs

        job_ids = [str(j["jobId"]) for j in jobs if j.get("jobId")]
        if not job_ids:
            return jobs

        try:
            details = await self.fetch_details(job_ids)
        except Exception as e:
            self.logger.warning(f"[linkedin] Detail fetch failed, using LinkedIn URLs as fallback: {e}")
            details = {}

        return self.merge(jobs, details)
