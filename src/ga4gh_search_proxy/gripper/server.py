"""
gRPC server lifecycle for the proxy.
"""

from __future__ import annotations

from concurrent import futures
from typing import Optional, Tuple

import grpc

from ..adapters.api import SearchClient
from ..config import ProxyConfig
from ..core.logging import get_logger
from .protocol import add_GRIPSourceServicer_to_server
from .servicer import GA4GHSearchProxyServicer, RowSource

MAX_MESSAGE_SIZE = 16 * 1024 * 1024
DEFAULT_MAX_WORKERS = 10

logger = get_logger(__name__)


def build_server(
    config: ProxyConfig,
    client: Optional[RowSource] = None,
    *,
    host: str = "[::]",
    port: Optional[int] = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> Tuple[grpc.Server, int]:
    """
    Create an unstarted server with the proxy servicer registered.

    ``port`` overrides ``config.port``; ``0`` binds an ephemeral port. Returns
    the server and the port actually bound.
    """

    servicer = GA4GHSearchProxyServicer(config, client or SearchClient(config.base_url))
    server = grpc.server(
        futures.ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="gripper"),
        options=[
            ("grpc.max_send_message_length", MAX_MESSAGE_SIZE),
            ("grpc.max_receive_message_length", MAX_MESSAGE_SIZE),
        ],
    )
    add_GRIPSourceServicer_to_server(servicer, server)
    bound = server.add_insecure_port(f"{host}:{config.port if port is None else port}")
    if not bound:
        raise RuntimeError(f"Cannot open port {config.port if port is None else port}")
    return server, bound


def serve(config: ProxyConfig, *, port: Optional[int] = None, max_workers: int = DEFAULT_MAX_WORKERS) -> None:
    """Run the proxy until the process is interrupted."""

    server, bound = build_server(config, port=port, max_workers=max_workers)
    server.start()
    logger.info(
        "Starting server",
        extra={"port": bound, "base_url": config.base_url, "collections": list(config.list_queryable_collections())},
    )
    try:
        server.wait_for_termination()
    except KeyboardInterrupt:
        logger.info("Shutting down")
        server.stop(grace=5).wait()
