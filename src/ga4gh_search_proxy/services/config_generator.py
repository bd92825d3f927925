"""
Best-effort configuration generation from a live GA4GH Search backend.

Every advertised table is described by its JSON schema; each property becomes a
field and a property literally named ``id`` becomes the primary key. Tables
without one are kept with an empty key so an operator can fill it in by hand.
"""

from __future__ import annotations

from logging import LoggerAdapter
from typing import Dict, Optional

from ..adapters.api import APIError, SchemaDocument, SearchClient
from ..config import DEFAULT_PORT, CollectionConfig, ProxyConfig
from ..core.logging import get_logger

PRIMARY_KEY_CANDIDATE = "id"


def guess_primary_key(schema: SchemaDocument) -> str:
    return PRIMARY_KEY_CANDIDATE if PRIMARY_KEY_CANDIDATE in schema.properties else ""


def collection_from_schema(schema: SchemaDocument) -> CollectionConfig:
    return CollectionConfig(
        primary_key=guess_primary_key(schema),
        fields={name: spec.type for name, spec in schema.properties.items()},
    )


def generate_config(
    client: SearchClient,
    *,
    base_url: Optional[str] = None,
    port: int = DEFAULT_PORT,
    logger: Optional[LoggerAdapter] = None,
) -> ProxyConfig:
    """
    Introspect the backend behind ``client`` and return a :class:`ProxyConfig`.

    Tables whose schema cannot be fetched or decoded are left out and logged.
    Nothing is written to disk.
    """

    log = logger or get_logger(__name__)
    collections: Dict[str, CollectionConfig] = {}
    for descriptor in client.list_collections():
        try:
            schema = client.get_schema(descriptor)
        except APIError as exc:
            log.error("Skipping table: schema unavailable", extra={"collection": descriptor.name, "error": str(exc)})
            continue

        collection = collection_from_schema(schema)
        if not collection.queryable:
            log.warning("Unable to guess primary key", extra={"collection": descriptor.name})
        collections[descriptor.name] = collection

    return ProxyConfig(base_url=base_url or client.base_url, port=port, collections=collections)
