"""Structured logging helpers shared by the proxy's adapters, server and CLI."""

from .logging import StructuredLogFormatter, bind, configure_logging, get_logger

__all__ = [
    "StructuredLogFormatter",
    "bind",
    "configure_logging",
    "get_logger",
]
