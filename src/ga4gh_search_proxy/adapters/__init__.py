"""
Adapters for the remote data source.

Each adapter exposes a small, deterministic surface over one backend API; the
gRPC service composes them.
"""

from .base import AdapterError, AmbiguousMatch, CollectionNotFound, SearchProxyError

__all__ = [
    "AdapterError",
    "AmbiguousMatch",
    "CollectionNotFound",
    "SearchProxyError",
]
