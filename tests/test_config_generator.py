from __future__ import annotations

from unittest.mock import MagicMock

from ga4gh_search_proxy.adapters.api import CollectionDescriptor, FetchError, FieldSpec, SchemaDocument
from ga4gh_search_proxy.services import generate_config, guess_primary_key

BASE = "http://search.test/"


def test_generate_config_guesses_id_primary_key():
    client = MagicMock()
    client.base_url = BASE
    client.list_collections.return_value = [
        CollectionDescriptor("patients", "http://x/schema/patients"),
        CollectionDescriptor("notes", "http://x/schema/notes"),
    ]
    client.get_schema.side_effect = [
        SchemaDocument(properties={"id": FieldSpec("string"), "age": FieldSpec("integer")}),
        SchemaDocument(properties={"text": FieldSpec("string")}),
    ]

    config = generate_config(client)

    assert config.base_url == BASE
    assert config.require("patients").primary_key == "id"
    assert config.require("notes").primary_key == ""
    assert list(config.list_queryable_collections()) == ["patients"]


def test_generate_config_skips_unreadable_schemas():
    client = MagicMock()
    client.base_url = BASE
    client.list_collections.return_value = [CollectionDescriptor("broken", "http://x/schema/broken")]
    client.get_schema.side_effect = FetchError("HTTP 500")

    config = generate_config(client, port=7000)

    assert dict(config.collections) == {}
    assert config.port == 7000


def test_guess_primary_key_requires_exact_name():
    assert guess_primary_key(SchemaDocument(properties={"patient_id": FieldSpec("string")})) == ""
    assert guess_primary_key(SchemaDocument(properties={"ID": FieldSpec("string")})) == ""


def test_generate_config_end_to_end(backend, search_client):
    backend.get(
        f"{BASE}tables",
        {"tables": [{"name": "patients", "data_model": {"$ref": "http://x/schema/patients"}}], "pagination": {"next_page_url": ""}},
    )
    backend.get("http://x/schema/patients", {"properties": {"id": {"type": "string"}, "age": {"type": "integer"}}})

    config = generate_config(search_client)

    assert config.to_dict()["tables"] == {"patients": {"primaryKey": "id", "fields": {"id": "string", "age": "integer"}}}
