from __future__ import annotations

import json
from unittest.mock import patch

import yaml
from typer.testing import CliRunner

from ga4gh_search_proxy.adapters.api import SearchClient
from ga4gh_search_proxy.cli.main import app

BASE = "http://search.test/"


def invoke(cli_runner: CliRunner, args: list[str]):
    return cli_runner.invoke(app, ["--log-level", "CRITICAL", *args])


def _client_factory(backend):
    def build(base_url, **kwargs):
        return SearchClient(base_url, transport=backend.transport, max_attempts=1)

    return build


def _tables(backend):
    backend.get(
        f"{BASE}tables",
        {
            "tables": [
                {"name": "patients", "data_model": {"$ref": "http://x/schema/patients"}},
                {"name": "notes", "data_model": {"$ref": "http://x/schema/notes"}},
            ],
            "pagination": {"next_page_url": ""},
        },
    )


def test_list_prints_json_lines(cli_runner, backend):
    _tables(backend)

    with patch("ga4gh_search_proxy.cli.main.SearchClient", _client_factory(backend)):
        result = invoke(cli_runner, ["list", BASE])

    assert result.exit_code == 0
    lines = [json.loads(line) for line in result.stdout.splitlines() if line.strip()]
    assert lines == [
        {"name": "patients", "data_model": {"$ref": "http://x/schema/patients"}},
        {"name": "notes", "data_model": {"$ref": "http://x/schema/notes"}},
    ]


def test_gen_config_prints_yaml(cli_runner, backend):
    _tables(backend)
    backend.get("http://x/schema/patients", {"properties": {"id": {"type": "string"}, "age": {"type": "integer"}}})
    backend.get("http://x/schema/notes", {"properties": {"text": {"type": "string"}}})

    with patch("ga4gh_search_proxy.cli.main.SearchClient", _client_factory(backend)):
        result = invoke(cli_runner, ["gen-config", BASE])

    assert result.exit_code == 0
    generated = yaml.safe_load(result.stdout)
    assert generated["port"] == 50051
    assert generated["baseURL"] == BASE
    assert generated["tables"]["patients"] == {"primaryKey": "id", "fields": {"id": "string", "age": "integer"}}
    assert generated["tables"]["notes"]["primaryKey"] == ""


def test_server_loads_config_and_serves(cli_runner, tmp_path):
    path = tmp_path / "proxy.yaml"
    path.write_text("baseURL: http://search.test/\ntables:\n  patients:\n    primaryKey: id\n", encoding="utf-8")

    with patch("ga4gh_search_proxy.cli.main.serve") as serve:
        result = invoke(cli_runner, ["server", str(path), "--port", "6001"])

    assert result.exit_code == 0
    config = serve.call_args.args[0]
    assert list(config.list_queryable_collections()) == ["patients"]
    assert serve.call_args.kwargs["port"] == 6001


def test_server_rejects_bad_config(cli_runner, tmp_path):
    path = tmp_path / "proxy.yaml"
    path.write_text("port: 1\n", encoding="utf-8")

    with patch("ga4gh_search_proxy.cli.main.serve") as serve:
        result = invoke(cli_runner, ["server", str(path)])

    assert result.exit_code == 1
    serve.assert_not_called()


def test_list_prints_tables_received_before_a_failed_page(cli_runner, backend):
    backend.get(
        f"{BASE}tables",
        {
            "tables": [{"name": "patients", "data_model": {"$ref": "http://x/schema/patients"}}],
            "pagination": {"next_page_url": f"{BASE}tables?page=2"},
        },
    )
    backend.get(f"{BASE}tables?page=2", {"error": "unavailable"}, status=503)

    with patch("ga4gh_search_proxy.cli.main.SearchClient", _client_factory(backend)):
        result = invoke(cli_runner, ["list", BASE])

    assert result.exit_code == 0
    assert [json.loads(line)["name"] for line in result.stdout.splitlines() if line.strip()] == ["patients"]
