"""
Proxy configuration: which backend to talk to and how each table maps onto
GRIPSource collections.

The on-disk format is YAML (JSON is accepted as well, being a YAML subset)::

    port: 50051
    baseURL: https://search.example.org/
    tables:
      patients:
        primaryKey: id
        fields:
          id: string
          age: integer

Tables without a ``primaryKey`` stay in the configuration (their field list is
still useful for ``GetCollectionInfo``) but are not offered as collections,
since rows cannot be given an identifier.

Call :func:`load_config` once at startup and hand the resulting
:class:`ProxyConfig` to the service; it is never mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterator, Mapping, Optional

import yaml

from .adapters.base import CollectionNotFound, SearchProxyError

DEFAULT_PORT = 50051


class ConfigError(SearchProxyError):
    """Raised when a configuration file cannot be read or has the wrong shape."""


@dataclass(frozen=True, slots=True)
class CollectionConfig:
    """Primary key and exposed fields of one backend table."""

    primary_key: str = ""
    fields: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    @property
    def queryable(self) -> bool:
        return bool(self.primary_key)

    def to_dict(self) -> Dict[str, Any]:
        return {"primaryKey": self.primary_key, "fields": dict(self.fields)}


@dataclass(frozen=True, slots=True)
class ProxyConfig:
    """
    Process-wide configuration.

    Attributes
    ----------
    base_url:
        Root of the GA4GH Search API. Always ends with ``/`` so endpoint paths
        can be appended directly.
    port:
        TCP port the gRPC server listens on.
    collections:
        Table name to :class:`CollectionConfig`, in declaration order.
    """

    base_url: str
    port: int = DEFAULT_PORT
    collections: Mapping[str, CollectionConfig] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.base_url and not self.base_url.endswith("/"):
            object.__setattr__(self, "base_url", f"{self.base_url}/")
        object.__setattr__(self, "port", self.port or DEFAULT_PORT)
        object.__setattr__(self, "collections", MappingProxyType(dict(self.collections)))

    def get(self, name: str) -> Optional[CollectionConfig]:
        return self.collections.get(name)

    def require(self, name: str) -> CollectionConfig:
        """Return the configuration for ``name`` or raise :class:`CollectionNotFound`."""

        collection = self.collections.get(name)
        if collection is None:
            raise CollectionNotFound(f"Table {name} not found")
        return collection

    def list_queryable_collections(self) -> Iterator[str]:
        """Yield names of collections that declare a primary key."""

        for name, collection in self.collections.items():
            if collection.queryable:
                yield name

    def fields_of(self, name: str) -> FrozenSet[str]:
        """Return the declared field names of ``name``."""

        return frozenset(self.require(name).fields)

    def to_dict(self) -> Dict[str, Any]:
        """Render the persisted form (keys as used in the YAML file)."""

        return {
            "port": self.port,
            "baseURL": self.base_url,
            "tables": {name: collection.to_dict() for name, collection in self.collections.items()},
        }

    @classmethod
    def from_dict(cls, payload: Any, *, origin: str = "<config>") -> "ProxyConfig":
        if not isinstance(payload, Mapping):
            raise ConfigError(f"Configuration '{origin}' must be a mapping, got {type(payload).__name__}.")

        base_url = payload.get("baseURL")
        if not isinstance(base_url, str) or not base_url.strip():
            raise ConfigError(f"Configuration '{origin}' is missing 'baseURL'.")

        raw_port = payload.get("port") or DEFAULT_PORT
        try:
            port = int(raw_port)
        except (TypeError, ValueError):
            raise ConfigError(f"Invalid port {raw_port!r} in '{origin}'.") from None

        tables = payload.get("tables") or {}
        if not isinstance(tables, Mapping):
            raise ConfigError(f"'tables' in '{origin}' must be a mapping.")

        collections = {str(name): _collection_from_payload(str(name), entry, origin=origin) for name, entry in tables.items()}
        return cls(base_url=base_url.strip(), port=port, collections=collections)


def _collection_from_payload(name: str, entry: Any, *, origin: str) -> CollectionConfig:
    if entry is None:
        return CollectionConfig()
    if not isinstance(entry, Mapping):
        raise ConfigError(f"Table '{name}' in '{origin}' must be a mapping.")
    fields = entry.get("fields") or {}
    if not isinstance(fields, Mapping):
        raise ConfigError(f"'fields' of table '{name}' in '{origin}' must be a mapping.")
    primary_key = entry.get("primaryKey")
    return CollectionConfig(
        primary_key=str(primary_key).strip() if primary_key else "",
        fields={str(key): "" if value is None else str(value) for key, value in fields.items()},
    )


def load_config(path: Path | str) -> ProxyConfig:
    """Read a YAML or JSON configuration file."""

    location = Path(path)
    if not location.is_file():
        raise ConfigError(f"Configuration file '{location}' does not exist.")

    try:
        with location.open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse '{location}': {exc}") from exc

    return ProxyConfig.from_dict(payload, origin=str(location))


def dump_config(config: ProxyConfig) -> str:
    """Render ``config`` as YAML in the format :func:`load_config` reads."""

    return yaml.safe_dump(config.to_dict(), sort_keys=False, default_flow_style=False, allow_unicode=True)
