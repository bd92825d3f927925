"""
Error types shared by the backend adapters and the gRPC service.

Adapters raise these; the service layer decides which ones become RPC
failures and which ones are logged and absorbed into a partial result.
"""

from __future__ import annotations


class SearchProxyError(RuntimeError):
    """Base class for every error raised by the proxy."""


class AdapterError(SearchProxyError):
    """Raised when a backend adapter encounters a non-recoverable error."""


class CollectionNotFound(AdapterError, LookupError):
    """An unknown collection was requested, or a lookup matched no record."""


class AmbiguousMatch(AdapterError):
    """A primary-key lookup matched more than one record in a single page."""
