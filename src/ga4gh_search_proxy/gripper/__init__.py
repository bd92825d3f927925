"""
GRIPSource gRPC contract and the servicer that backs it with GA4GH Search.
"""

from .protocol import GRIPSourceServicer, GRIPSourceStub, add_GRIPSourceServicer_to_server
from .server import build_server, serve
from .servicer import GA4GHSearchProxyServicer, extract_row_id

__all__ = [
    "GA4GHSearchProxyServicer",
    "GRIPSourceServicer",
    "GRIPSourceStub",
    "add_GRIPSourceServicer_to_server",
    "build_server",
    "extract_row_id",
    "serve",
]
