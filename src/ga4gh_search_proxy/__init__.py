"""
GA4GH Search to GRIP gripper proxy.

The :mod:`ga4gh_search_proxy.adapters.api` package talks to the GA4GH Search
REST API (table catalogue, schemas, paginated rows, searches). The
:mod:`ga4gh_search_proxy.gripper` package serves those tables through the
``gripper.GRIPSource`` gRPC contract consumed by GRIP. Import ``ProxyConfig``
and ``load_config`` for the configuration model.
"""

from .config import CollectionConfig, ConfigError, ProxyConfig, dump_config, load_config

__all__ = [
    "CollectionConfig",
    "ConfigError",
    "ProxyConfig",
    "dump_config",
    "load_config",
]
