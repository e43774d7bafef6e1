"""Capability providers (search and content reading) with protocol-based adapters."""

from .models import Reference, ReadContent
from .protocols import SearchProvider, ContentReader
from .labels import is_divergent, DIVERGENCE_MARKERS
from .http import HttpClient
from .searxng import SearxngSearchProvider
from .reader import HttpContentReader, extract_text
from .mock import MockSearchProvider, MockContentReader

__all__ = [
    # Models
    "Reference",
    "ReadContent",
    # Protocols (for implementing custom providers)
    "SearchProvider",
    "ContentReader",
    # Labelling
    "is_divergent",
    "DIVERGENCE_MARKERS",
    # Adapters
    "HttpClient",
    "SearxngSearchProvider",
    "HttpContentReader",
    "extract_text",
    # Offline providers
    "MockSearchProvider",
    "MockContentReader",
]
