"""
GRIPSource servicer backed by a GA4GH Search client.

Only tables with a primary key are served; a configured table without one is
answered like an unknown table by ``GetRows`` and ``GetRowsByID``. Rows go out
as ``Row{id, data}`` where ``id`` is the primary-key value and ``data`` the full
backend record. Some outcomes are absorbed instead of failing the RPC:

* during ``GetRows``, records whose key is missing or not a string are skipped;
* a page fetch failure ends ``GetRows`` early with the rows sent so far;
* in ``GetRowsByID`` an unknown collection gets no reply, and a failed lookup
  is answered with an empty row carrying the request's ``requestID``.

Each of these is logged with the collection and request context.
"""

from __future__ import annotations

from logging import LoggerAdapter
from typing import Any, Iterable, Iterator, Mapping, Optional, Protocol

import grpc

from ..adapters.api import RowStream
from ..adapters.base import AdapterError
from ..config import CollectionConfig, ProxyConfig
from ..core.logging import bind, get_logger
from . import protocol


class RowSource(Protocol):
    """Subset of :class:`~..adapters.api.SearchClient` the servicer depends on."""

    def stream_rows(self, name: str) -> RowStream: ...

    def lookup_row(self, name: str, id_field: str, id_value: str) -> Mapping[str, Any]: ...


def extract_row_id(record: Mapping[str, Any], primary_key: str) -> Optional[str]:
    """Return the string primary-key value of ``record`` or ``None``."""

    value = record.get(primary_key)
    return value if isinstance(value, str) else None


class GA4GHSearchProxyServicer(protocol.GRIPSourceServicer):
    """
    Serve a GA4GH Search backend as a ``gripper.GRIPSource``.

    Parameters
    ----------
    config:
        Immutable proxy configuration.
    client:
        Backend client, usually a ``SearchClient`` built from ``config.base_url``.
    logger:
        Optional logger; defaults to one named after this class.
    """

    def __init__(self, config: ProxyConfig, client: RowSource, *, logger: Optional[LoggerAdapter] = None) -> None:
        self.config = config
        self.client = client
        self.logger = logger or get_logger(f"{__name__}.{self.__class__.__name__}")

    def _queryable(self, name: str) -> Optional[CollectionConfig]:
        collection = self.config.get(name)
        if collection is None or not collection.queryable:
            return None
        return collection

    def GetCollections(self, request, context) -> Iterator[Any]:
        for name in self.config.list_queryable_collections():
            yield protocol.Collection(name=name)

    def GetCollectionInfo(self, request, context):
        collection = self.config.get(request.name)
        if collection is None:
            context.abort(grpc.StatusCode.NOT_FOUND, f"Table {request.name} not found")
        return protocol.CollectionInfo(search_fields=list(collection.fields))

    def GetIDs(self, request, context):
        context.abort(grpc.StatusCode.UNIMPLEMENTED, "GetIDs is not supported by the GA4GH Search proxy")

    def GetRowsByField(self, request, context):
        context.abort(grpc.StatusCode.UNIMPLEMENTED, "GetRowsByField is not supported by the GA4GH Search proxy")

    def GetRows(self, request, context) -> Iterator[Any]:
        """
        Stream every row of a collection in backend order.

        The backend is paged on a producer thread; closing the
        :class:`RowStream` on exit releases it when the client cancels.
        """

        collection = self._queryable(request.name)
        if collection is None:
            context.abort(grpc.StatusCode.NOT_FOUND, f"Table {request.name} not found")

        log = bind(self.logger, rpc="GetRows", collection=request.name)
        sent = skipped = 0
        with self.client.stream_rows(request.name) as rows:
            for record in rows:
                row_id = extract_row_id(record, collection.primary_key)
                if row_id is None:
                    skipped += 1
                    log.debug("Skipping record without a string primary key", extra={"primary_key": collection.primary_key})
                    continue
                sent += 1
                yield protocol.Row(id=row_id, data=protocol.to_struct(record))

        if rows.truncated:
            log.warning("Row stream ended early", extra={"items": sent, "skipped": skipped, "error": str(rows.error)})
        else:
            log.info("Row stream complete", extra={"items": sent, "skipped": skipped or None})

    def GetRowsByID(self, request_iterator: Iterable[Any], context) -> Iterator[Any]:
        """
        Answer each ``RowRequest`` with exactly one ``Row`` echoing its ``requestID``.

        Requests are handled one at a time in arrival order.
        """

        log = bind(self.logger, rpc="GetRowsByID")
        for request in request_iterator:
            collection = self._queryable(request.collection)
            if collection is None:
                log.error("Dropping lookup for unknown collection", extra={"collection": request.collection, "request_id": request.requestID})
                continue

            try:
                record = self.client.lookup_row(request.collection, collection.primary_key, request.id)
            except AdapterError as exc:
                log.error(
                    "Lookup failed",
                    extra={"collection": request.collection, "request_id": request.requestID, "error": str(exc)},
                )
                yield protocol.Row(id="", data=protocol.to_struct({}), requestID=request.requestID)
                continue

            yield protocol.Row(
                id=extract_row_id(record, collection.primary_key) or "",
                data=protocol.to_struct(record),
                requestID=request.requestID,
            )
