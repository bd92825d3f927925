from __future__ import annotations

import grpc
import pytest

from ga4gh_search_proxy.adapters.api import SearchClient
from ga4gh_search_proxy.config import CollectionConfig, ProxyConfig
from ga4gh_search_proxy.gripper import GRIPSourceStub, build_server
from ga4gh_search_proxy.gripper import protocol

BASE = "http://search.test/"


def _page(rows, next_url=""):
    return {"data_model": {}, "data": rows, "pagination": {"next_page_url": next_url}}


@pytest.fixture()
def stub(backend):
    config = ProxyConfig(
        base_url=BASE,
        collections={
            "patients": CollectionConfig("id", {"id": "string", "age": "integer"}),
            "notes": CollectionConfig("", {"text": "string"}),
        },
    )
    client = SearchClient(BASE, transport=backend.transport, max_attempts=1)
    server, port = build_server(config, client, host="127.0.0.1", port=0, max_workers=4)
    server.start()
    channel = grpc.insecure_channel(f"127.0.0.1:{port}")
    try:
        yield GRIPSourceStub(channel)
    finally:
        channel.close()
        server.stop(grace=None)


def test_catalogue_rpcs(stub):
    assert [item.name for item in stub.GetCollections(protocol.Empty())] == ["patients"]

    info = stub.GetCollectionInfo(protocol.Collection(name="notes"))
    assert list(info.search_fields) == ["text"]

    with pytest.raises(grpc.RpcError) as excinfo:
        stub.GetCollectionInfo(protocol.Collection(name="missing"))
    assert excinfo.value.code() == grpc.StatusCode.NOT_FOUND


def test_get_rows_streams_backend_pages(stub, backend):
    backend.get(f"{BASE}table/patients/data", _page([{"id": "p1", "age": 30}, {"age": 1}], f"{BASE}table/patients/data?page=2"))
    backend.get(f"{BASE}table/patients/data?page=2", _page([{"id": "p2", "age": 41}]))

    rows = list(stub.GetRows(protocol.Collection(name="patients")))

    assert [(row.id, row.data["age"]) for row in rows] == [("p1", 30), ("p2", 41)]


def test_get_rows_unknown_collection(stub):
    with pytest.raises(grpc.RpcError) as excinfo:
        list(stub.GetRows(protocol.Collection(name="notes_missing")))
    assert excinfo.value.code() == grpc.StatusCode.NOT_FOUND


def test_get_rows_by_id_round_trip(stub, backend):
    backend.post(f"{BASE}search", _page([{"id": "p1", "age": 30}]))

    replies = list(stub.GetRowsByID(iter([protocol.RowRequest(collection="patients", id="p1", requestID=42)])))

    assert len(replies) == 1
    assert replies[0].id == "p1"
    assert replies[0].requestID == 42


def test_get_ids_is_unimplemented(stub):
    with pytest.raises(grpc.RpcError) as excinfo:
        list(stub.GetIDs(protocol.Collection(name="patients")))
    assert excinfo.value.code() == grpc.StatusCode.UNIMPLEMENTED
