"""
Base interface for job source adapters.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from ..actor_client import ActorClient


class SourceAdapter(ABC):
    """
    Base class for source adapters.

    An adapter knows how to build actor input for one job source and how to
    interpret the actor's output. It returns raw, source-shaped items; the
    normalizer maps them onto the canonical job record.
    """

    #: Source tag stored on every job (e.g. 'indeed')
    source: str = ""
    #: Apify actor the adapter drives; also recorded as the run's actor label
    actor_id: str = ""

    def __init__(self, client: ActorClient):
        self.client = client
        self.logger = logging.getLogger(f"{__name__}.{self.source}")

    @abstractmethod
    async def fetch(self, query: str, location: str, max_results: int) -> List[Dict[str, Any]]:
        """
        Run the source's scrape for one query.

        Args:
            query: Search keywords
            location: Free-text location ('' for none)
            max_results: Result cap requested by the caller

        Returns:
            Raw scraped items
        """

    def __repr__(self):
        return f"{type(self).__name__}(source={self.source!r}, actor_id={self.actor_id!r})"
