"""
Job source adapters.

Each adapter drives one Apify actor configuration and returns raw,
source-shaped items.
"""

from .base import SourceAdapter
from .indeed import IndeedAdapter
from .linkedin import LinkedInAdapter
from .registry import ADAPTERS, SUPPORTED_SOURCES, get_adapter, get_adapter_class

__all__ = [
    'SourceAdapter',
    'IndeedAdapter',
    'LinkedInAdapter',
    'ADAPTERS',
    'SUPPORTED_SOURCES',
    'get_adapter',
    'get_adapter_class',
]
