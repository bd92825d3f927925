"""Offline tooling built on the adapters (not used by the running server)."""

from .config_generator import collection_from_schema, generate_config, guess_primary_key

__all__ = ["collection_from_schema", "generate_config", "guess_primary_key"]
