"""
HTTP API clients for GA4GH Search backends.

* :mod:`.base` wraps HTTPX with retries and maps failures onto typed errors.
* :mod:`.pagination` follows ``next_page_url`` chains.
* :mod:`.search` implements the table catalogue, schema, scan and lookup calls.
"""

from .base import APIError, BaseAPIClient, DecodeError, FetchError
from .pagination import PageCursor, PageEnvelope, read_next_page_url
from .search import (
    ROW_QUEUE_CAPACITY,
    CollectionDescriptor,
    FieldSpec,
    RowStream,
    SchemaDocument,
    SearchClient,
    build_lookup_query,
)

__all__ = [
    "APIError",
    "BaseAPIClient",
    "CollectionDescriptor",
    "DecodeError",
    "FetchError",
    "FieldSpec",
    "PageCursor",
    "PageEnvelope",
    "ROW_QUEUE_CAPACITY",
    "RowStream",
    "SchemaDocument",
    "SearchClient",
    "build_lookup_query",
    "read_next_page_url",
]
