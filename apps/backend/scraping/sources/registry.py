"""
Source adapter registry.
"""
from typing import Dict, Type

from ..actor_client import ActorClient
from .base import SourceAdapter
from .indeed import IndeedAdapter
from .linkedin import LinkedInAdapter

ADAPTERS: Dict[str, Type[SourceAdapter]] = {
    IndeedAdapter.source: IndeedAdapter,
    LinkedInAdapter.source: LinkedInAdapter,
}

SUPPORTED_SOURCES = tuple(ADAPTERS)


def get_adapter_class(source: str) -> Type[SourceAdapter]:
    adapter_cls = ADAPTERS.get(source)
    if not adapter_cls:
        raise ValueError(f"Source '{source}' not supported. Available sources: {list(ADAPTERS)}")
    return adapter_cls


def get_adapter(source: str, client: ActorClient) -> SourceAdapter:
    """Instantiate the adapter for `source`; raises ValueError for unknown sources."""
    return get_adapter_class(source)(client)
