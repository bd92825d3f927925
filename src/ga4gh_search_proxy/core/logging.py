"""
Logging helpers for the GA4GH Search proxy.

Every module obtains its logger through :func:`get_logger` so records share one
formatter. Structured context (collection names, page URLs, request ids) is
passed through ``extra`` and rendered as trailing ``key=value`` pairs, which
keeps log lines greppable when several streaming RPCs interleave.

Output goes to ``stderr``; ``stdout`` is reserved for CLI payloads such as the
generated YAML configuration.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from copy import copy
from functools import lru_cache
from logging import Logger, LoggerAdapter
from typing import Any, Iterable, Mapping, MutableMapping, Optional, Sequence

DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LEVEL = "INFO"
_ENV_LEVEL = "GA4GH_PROXY_LOG_LEVEL"
_ENV_COLOR = "GA4GH_PROXY_LOG_COLOR"
_EXTRA_FOCUS_ORDER: Sequence[str] = (
    "rpc",
    "collection",
    "request_id",
    "method",
    "url",
    "page",
    "items",
    "status_code",
    "attempt",
    "skipped",
    "truncated",
    "error",
)

_LEVEL_STYLES = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[95m",
}
_RESET = "\033[0m"

_RESERVED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "message",
    "asctime",
    "taskName",
}


def _resolve_level(level: Optional[int | str]) -> int:
    if isinstance(level, int):
        return level
    candidate = (level or os.getenv(_ENV_LEVEL) or DEFAULT_LEVEL).upper()
    resolved = logging.getLevelName(candidate)
    return resolved if isinstance(resolved, int) else logging.INFO


def _supports_color(stream: Any) -> bool:
    preference = (os.getenv(_ENV_COLOR) or "auto").strip().lower()
    if preference in {"1", "true", "yes", "on"}:
        return True
    if preference in {"0", "false", "no", "off"}:
        return False
    return hasattr(stream, "isatty") and bool(stream.isatty())


def _iter_extras(record: logging.LogRecord) -> Iterable[tuple[str, Any]]:
    payload = {key: value for key, value in record.__dict__.items() if key not in _RESERVED_ATTRS and not key.startswith("_") and value is not None}

    for key in _EXTRA_FOCUS_ORDER:
        if key in payload:
            yield key, payload.pop(key)

    for key in sorted(payload):
        yield key, payload[key]


def _format_extra_value(value: Any) -> str:
    if isinstance(value, (list, tuple, set, frozenset)):
        return "[" + ", ".join(_format_extra_value(item) for item in value) + "]"
    if isinstance(value, Mapping):
        try:
            return json.dumps(value, ensure_ascii=False, default=str)
        except TypeError:
            return repr(dict(value))
    if isinstance(value, float):
        return f"{value:.4g}"
    return str(value)


class StructuredLogFormatter(logging.Formatter):
    """Formatter that appends ``extra`` fields as ``key=value`` pairs."""

    def __init__(self, *, use_color: bool = False) -> None:
        super().__init__(DEFAULT_FORMAT, datefmt=DEFAULT_DATE_FORMAT)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        working = copy(record)
        if self.use_color:
            style = _LEVEL_STYLES.get(working.levelname.upper())
            if style:
                working.levelname = f"{style}{working.levelname}{_RESET}"
        base = super().format(working)
        extras = " ".join(f"{key}={_format_extra_value(value)}" for key, value in _iter_extras(record))
        if extras:
            return f"{base} | {extras}"
        return base


@lru_cache(maxsize=1)
def _base_logger_configured() -> bool:
    return False


def _build_handler(level: Optional[int | str]) -> logging.Handler:
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setLevel(_resolve_level(level))
    handler.setFormatter(StructuredLogFormatter(use_color=_supports_color(handler.stream)))
    return handler


def configure_logging(level: Optional[int | str] = None, *, force: bool = False) -> None:
    """
    Install the structured handler on the root logger unless already done.

    Parameters
    ----------
    level:
        Optional level override. Falls back to ``GA4GH_PROXY_LOG_LEVEL`` or ``INFO``.
    force:
        Reapply the configuration even if it was initialised before. The CLI
        uses this when ``--log-level`` is passed explicitly.
    """

    if not force and _base_logger_configured.cache_info().currsize:
        return
    logging.basicConfig(level=_resolve_level(level), handlers=[_build_handler(level)], force=force)
    _base_logger_configured.cache_clear()
    _base_logger_configured()


def get_logger(
    name: str,
    *,
    level: Optional[int | str] = None,
    extra: Optional[Mapping[str, object]] = None,
) -> LoggerAdapter:
    """
    Return a :class:`logging.LoggerAdapter` bound to ``extra``.

    Parameters
    ----------
    name:
        Logger namespace, typically ``__name__`` or ``module.ClassName``.
    level:
        Optional per-logger level override.
    extra:
        Structured metadata recorded with every entry of this logger.
    """

    configure_logging()
    base: Logger = logging.getLogger(name)
    if level is not None:
        base.setLevel(_resolve_level(level))
    payload: MutableMapping[str, object] = {}
    if extra:
        payload.update({key: value for key, value in extra.items() if value is not None})
    return _MergingAdapter(base, payload)


class _MergingAdapter(LoggerAdapter):
    """Adapter whose bound ``extra`` is merged with per-call ``extra``."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        merged: MutableMapping[str, Any] = dict(self.extra or {})
        call_extra = kwargs.get("extra")
        if call_extra:
            merged.update(call_extra)
        kwargs["extra"] = merged
        return msg, kwargs


def bind(logger: LoggerAdapter, **fields: object) -> LoggerAdapter:
    """
    Create a child adapter with additional bound fields.

    The original adapter is left untouched so per-request context never leaks
    into the logger shared by a long-lived client.
    """

    current = dict(logger.extra) if isinstance(logger.extra, Mapping) else {}
    current.update({key: value for key, value in fields.items() if value is not None})
    return _MergingAdapter(logger.logger, current)
