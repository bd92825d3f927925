"""
GA4GH Search API client.

Reference: https://github.com/ga4gh-discovery/ga4gh-search

The client covers the read-only subset the proxy needs:

* ``GET  {base}tables``            - catalogue of tables, paginated
* ``GET  {data_model.$ref}``       - JSON-Schema description of one table
* ``GET  {base}table/{name}/data`` - every row of a table, paginated
* ``POST {base}search``            - SQL query, answered with paginated rows
"""

from __future__ import annotations

import json
import queue
import threading
from dataclasses import dataclass, field
from logging import LoggerAdapter
from typing import Any, Dict, Iterator, List, Mapping, MutableMapping, Optional

import httpx

from ...core.logging import bind, get_logger
from ..base import AmbiguousMatch, CollectionNotFound
from .base import DEFAULT_MAX_ATTEMPTS, DEFAULT_TIMEOUT, BaseAPIClient, DecodeError, FetchError
from .pagination import PageCursor, PageEnvelope, read_next_page_url

ROW_QUEUE_CAPACITY = 100

Record = Dict[str, Any]


@dataclass(frozen=True, slots=True)
class CollectionDescriptor:
    """A backend table and the link to its schema document."""

    name: str
    schema_ref: str = ""

    @classmethod
    def from_payload(cls, entry: Any) -> "CollectionDescriptor":
        if not isinstance(entry, Mapping):
            raise DecodeError(f"Table entry must be an object, got {type(entry).__name__}.")
        name = entry.get("name")
        if not isinstance(name, str) or not name:
            raise DecodeError("Table entry is missing a 'name'.")
        data_model = entry.get("data_model")
        ref = data_model.get("$ref") if isinstance(data_model, Mapping) else None
        return cls(name=name, schema_ref=ref if isinstance(ref, str) else "")

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "data_model": {"$ref": self.schema_ref}}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """Type information declared for one schema property."""

    type: str = ""
    format: str = ""
    hint: str = ""

    @classmethod
    def from_payload(cls, entry: Any) -> "FieldSpec":
        if not isinstance(entry, Mapping):
            return cls()
        return cls(
            type=_schema_type(entry.get("type")),
            format=_string(entry.get("format")),
            hint=_string(entry.get("$comment")),
        )


@dataclass(frozen=True, slots=True)
class SchemaDocument:
    """JSON-Schema style description of a table."""

    id: str = ""
    description: str = ""
    properties: Mapping[str, FieldSpec] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> "SchemaDocument":
        """
        Parse either a bare schema or a table-info envelope.

        Some deployments serve ``{"name", "description", "data_model": {...}}``
        at the ``$ref`` location instead of the schema itself; the nested
        ``data_model`` is used in that case.
        """

        if not isinstance(payload, Mapping):
            raise DecodeError("Schema document must be a JSON object.")
        model = payload.get("data_model")
        document = model if isinstance(model, Mapping) and "properties" in model else payload
        raw_properties = document.get("properties") or {}
        if not isinstance(raw_properties, Mapping):
            raise DecodeError("Schema 'properties' must be an object.")
        return cls(
            id=_string(document.get("$id")),
            description=_string(document.get("description") or payload.get("description")),
            properties={str(name): FieldSpec.from_payload(spec) for name, spec in raw_properties.items()},
        )


def _string(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _schema_type(value: Any) -> str:
    # JSON Schema allows ["string", "null"]; keep the first non-null member.
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        for item in value:
            if isinstance(item, str) and item != "null":
                return item
    return ""


def build_lookup_query(table: str, field_name: str, value: str, *, parameterized: bool = True) -> Dict[str, Any]:
    """
    Build the ``/search`` body selecting rows whose ``field_name`` equals ``value``.

    Table and field names come from the proxy configuration and are inserted
    verbatim. The value is either bound through ``parameters`` or, for
    backends that do not support binding, inlined as an escaped SQL literal.
    """

    if parameterized:
        return {"query": f"SELECT * FROM {table} WHERE {field_name} = ?", "parameters": [value]}
    literal = value.replace("'", "''")
    return {"query": f"SELECT * FROM {table} WHERE {field_name} = '{literal}'", "parameters": []}


_END = object()


class RowStream:
    """
    Rows of one table, paged by a background producer into a bounded queue.

    The producer thread blocks once ``capacity`` rows are waiting, so a slow
    consumer throttles the paging instead of buffering the whole table. Use as
    a context manager (or iterate to the end) so the producer is always
    released::

        with client.stream_rows("patients") as rows:
            for record in rows:
                ...

    After iteration :attr:`truncated` tells whether a page fetch failed.
    """

    def __init__(
        self,
        cursor: PageCursor[Record],
        *,
        name: str,
        capacity: int = ROW_QUEUE_CAPACITY,
        poll_interval: float = 0.1,
        logger: Optional[LoggerAdapter] = None,
    ) -> None:
        self.name = name
        self.capacity = capacity
        self._cursor = cursor
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=capacity)
        self._stop = threading.Event()
        self._poll_interval = poll_interval
        self._thread = threading.Thread(target=self._produce, name=f"rows-{name}", daemon=True)
        self._failure: Optional[BaseException] = None
        self._started = False
        self.logger = logger or get_logger(f"{__name__}.{self.__class__.__name__}", extra={"collection": name})
        self.rows_produced = 0

    @property
    def truncated(self) -> bool:
        return self._cursor.truncated

    @property
    def error(self) -> Optional[Exception]:
        return self._cursor.error

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    def start(self) -> "RowStream":
        if not self._started:
            self._started = True
            self._thread.start()
        return self

    def close(self) -> None:
        """Stop the producer and wait for it to exit."""

        self._stop.set()
        if self._started:
            self._thread.join(timeout=max(1.0, self._poll_interval * 10))

    def __enter__(self) -> "RowStream":
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __iter__(self) -> Iterator[Record]:
        self.start()
        try:
            while True:
                item = self._queue.get()
                if item is _END:
                    break
                yield item
        finally:
            self.close()
        if self._failure is not None:
            raise self._failure

    def _offer(self, item: Any) -> bool:
        while not self._stop.is_set():
            try:
                self._queue.put(item, timeout=self._poll_interval)
                return True
            except queue.Full:
                continue
        return False

    def _produce(self) -> None:
        try:
            for record in self._cursor:
                if not self._offer(record):
                    self.logger.info("Consumer went away; stopping row producer", extra={"items": self.rows_produced})
                    return
                self.rows_produced += 1
        except Exception as exc:
            self._failure = exc
            self.logger.exception("Row producer failed", extra={"items": self.rows_produced})
        finally:
            self._offer(_END)
            self.logger.debug(
                "Row producer finished",
                extra={"items": self.rows_produced, "page": self._cursor.pages_fetched, "truncated": self._cursor.truncated},
            )


class SearchClient(BaseAPIClient):
    """Client for a GA4GH Search deployment rooted at ``base_url``."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        default_headers: Optional[MutableMapping[str, str]] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        transport: Optional[httpx.BaseTransport] = None,
        parameterized_queries: bool = True,
        queue_capacity: int = ROW_QUEUE_CAPACITY,
    ) -> None:
        headers: MutableMapping[str, str] = {"Accept": "application/json"}
        if default_headers:
            headers.update(default_headers)
        root = base_url if base_url.endswith("/") else f"{base_url}/"
        super().__init__(base_url=root, timeout=timeout, default_headers=headers, max_attempts=max_attempts, transport=transport)
        self.parameterized_queries = parameterized_queries
        self.queue_capacity = queue_capacity

    @property
    def tables_url(self) -> str:
        return f"{self.base_url}tables"

    @property
    def search_url(self) -> str:
        return f"{self.base_url}search"

    def table_data_url(self, name: str) -> str:
        return f"{self.base_url}table/{name}/data"

    def list_collections(self) -> List[CollectionDescriptor]:
        """Return every table advertised by the backend, across all pages."""

        cursor: PageCursor[CollectionDescriptor] = PageCursor(self.tables_url, self._fetch_tables_page, logger=self.logger)
        descriptors = list(cursor)
        self.logger.info(
            "Listed collections",
            extra={"items": len(descriptors), "page": cursor.pages_fetched, "truncated": cursor.truncated or None},
        )
        return descriptors

    def get_schema(self, descriptor: CollectionDescriptor) -> SchemaDocument:
        """Fetch and parse the schema linked from ``descriptor``."""

        if not descriptor.schema_ref:
            raise FetchError(f"Table '{descriptor.name}' does not reference a data model.")
        return SchemaDocument.from_payload(self._get_json(descriptor.schema_ref))

    def stream_rows(self, name: str, *, max_pages: Optional[int] = None) -> RowStream:
        """Return an unstarted :class:`RowStream` over ``table/{name}/data``."""

        logger = bind(self.logger, collection=name)
        cursor: PageCursor[Record] = PageCursor(self.table_data_url(name), self._fetch_data_page, max_pages=max_pages, logger=logger)
        return RowStream(cursor, name=name, capacity=self.queue_capacity, logger=logger)

    def lookup_row(self, name: str, id_field: str, id_value: str) -> Record:
        """
        Return the single row of ``name`` whose ``id_field`` equals ``id_value``.

        The search endpoint may answer with empty pages while the query is
        still running, so pages are followed until one carries data.

        Raises
        ------
        CollectionNotFound
            No page produced a match.
        AmbiguousMatch
            A page produced more than one match.
        FetchError, DecodeError
            The initial search request failed.
        """

        logger = bind(self.logger, collection=name)
        body = build_lookup_query(name, id_field, id_value, parameterized=self.parameterized_queries)
        logger.debug("Submitting search", extra={"url": self.search_url, "query": body["query"]})
        first_page = self._data_envelope(self._post_json(self.search_url, json_body=body), self.search_url)

        cursor: PageCursor[Record] = PageCursor(self.search_url, self._fetch_data_page, first_page=first_page, logger=logger)
        for page in cursor.pages():
            if not page.payload:
                continue
            if len(page.payload) > 1:
                raise AmbiguousMatch(f"Multiple records in '{name}' for {id_field}={id_value!r}.")
            return page.payload[0]

        detail = f" (search truncated: {cursor.error})" if cursor.truncated else ""
        raise CollectionNotFound(f"ID {id_value!r} not found in '{name}'{detail}.")

    def _fetch_tables_page(self, url: str) -> PageEnvelope[CollectionDescriptor]:
        payload = self._get_json(url)
        if not isinstance(payload, Mapping):
            raise DecodeError(f"Unexpected payload from {url}: expected an object.")
        entries = payload.get("tables") or []
        if not isinstance(entries, list):
            raise DecodeError(f"'tables' in {url} is not a list.")
        return PageEnvelope(
            payload=[CollectionDescriptor.from_payload(entry) for entry in entries],
            next_page_url=read_next_page_url(payload),
        )

    def _fetch_data_page(self, url: str) -> PageEnvelope[Record]:
        return self._data_envelope(self._get_json(url), url)

    @staticmethod
    def _data_envelope(payload: Any, url: str) -> PageEnvelope[Record]:
        if not isinstance(payload, Mapping):
            raise DecodeError(f"Unexpected payload from {url}: expected an object.")
        rows = payload.get("data") or []
        if not isinstance(rows, list) or not all(isinstance(row, Mapping) for row in rows):
            raise DecodeError(f"'data' in {url} is not a list of objects.")
        return PageEnvelope(payload=[dict(row) for row in rows], next_page_url=read_next_page_url(payload))
