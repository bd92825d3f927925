from __future__ import annotations

import logging
from typing import Any, Dict, List, Tuple

import httpx
import pytest
from typer.testing import CliRunner

from ga4gh_search_proxy.cli.main import app

BASE_URL = "http://search.test/"


class FakeBackend:
    """Route table served through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Tuple[int, Any]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, url: str, payload: Any = None, *, status: int = 200) -> None:
        self.routes[(method, url)] = (status, payload)

    def get(self, url: str, payload: Any = None, *, status: int = 200) -> None:
        self.add("GET", url, payload, status=status)

    def post(self, url: str, payload: Any = None, *, status: int = 200) -> None:
        self.add("POST", url, payload, status=status)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, str(request.url)))
        if route is None:
            return httpx.Response(404, json={"error": f"no route for {request.method} {request.url}"})
        status, payload = route
        if isinstance(payload, Exception):
            raise payload
        if isinstance(payload, bytes):
            return httpx.Response(status, content=payload)
        return httpx.Response(status, json=payload)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def urls(self, method: str = "GET") -> List[str]:
        return [str(request.url) for request in self.requests if request.method == method]


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def search_client(backend):
    from ga4gh_search_proxy.adapters.api import SearchClient

    return SearchClient(BASE_URL, transport=backend.transport, max_attempts=1)


@pytest.fixture(autouse=True)
def restore_root_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture()
def cli_runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def cli_app():
    return app
