"""Shared test fixtures: FakeGateway and a fake TigerGraph server. No network calls."""

from __future__ import annotations

import asyncio
import base64
import time
from collections import defaultdict
from typing import Any, Callable

import httpx
import orjson
import pytest

from tgmigrate.client.tigergraph import GSQL_SUCCESS_MARKER, REQUEST_TOKEN_URL, TigerGraphClient
from tgmigrate.migrations.gateway import StateGateway
from tgmigrate.migrations.versions import current_version_from_record
from tgmigrate.types import Direction, MigrationRecord

USERNAME = "tigergraph"
PASSWORD = "secret"

GSQL_SUCCESS_OUTPUT = f"Installing query...\n\n{GSQL_SUCCESS_MARKER}\n"


class FakeGateway(StateGateway):
    """StateGateway that keeps records in memory. Records every call for assertions.

    `commit_errors` / `script_errors` map a 0-based call index to the
    exception that call should raise.
    """

    def __init__(
        self,
        initialised: bool = True,
        records: list[MigrationRecord] | None = None,
        init_error: Exception | None = None,
        bootstrap_error: Exception | None = None,
        latest_error: Exception | None = None,
        commit_errors: dict[int, BaseException] | None = None,
        script_errors: dict[int, BaseException] | None = None,
        script_delay: float = 0.0,
    ):
        self.initialised = initialised
        self.records = list(records or [])
        self._init_error = init_error
        self._bootstrap_error = bootstrap_error
        self._latest_error = latest_error
        self._commit_errors = commit_errors or {}
        self._script_errors = script_errors or {}
        self._script_delay = script_delay
        self.calls: list[tuple] = []
        self.scripts: list[str] = []
        self.commits: list[tuple[str, str, str]] = []

    def calls_to(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]

    async def is_initialised(self) -> bool:
        self.calls.append(("is_initialised",))
        if self._init_error:
            raise self._init_error
        return self.initialised

    async def latest_version(self, graph):
        self.calls.append(("latest_version", graph))
        if self._latest_error:
            raise self._latest_error
        mine = [r for r in self.records if r.graph_name == graph]
        return current_version_from_record(mine[-1] if mine else None)

    async def commit(self, graph, version, direction: Direction) -> None:
        index = len(self.calls_to("commit"))
        self.calls.append(("commit", graph, version, direction.value))
        if index in self._commit_errors:
            raise self._commit_errors[index]
        self.commits.append((graph, version, direction.value))
        self.records.append(MigrationRecord(graph_name=graph, version=version, direction=direction.value))

    async def bootstrap(self) -> None:
        self.calls.append(("bootstrap",))
        if self._bootstrap_error:
            raise self._bootstrap_error
        self.initialised = True

    async def run_script(self, script: str) -> None:
        index = len(self.calls_to("run_script"))
        self.calls.append(("run_script", script))
        if self._script_delay:
            await asyncio.sleep(self._script_delay)
        if index in self._script_errors:
            raise self._script_errors[index]
        self.scripts.append(script)


class FakeTigerGraph:
    """Behaves like a TigerGraph server behind httpx.MockTransport.

    Requests are recorded in `calls`, keyed by path plus query string.
    Unmocked paths answer 404.
    """

    def __init__(self, username: str = USERNAME, password: str = PASSWORD):
        self.username = username
        self.password = password
        self.calls: dict[str, list[httpx.Request]] = defaultdict(list)
        self._handlers: dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.token_expiration = int(time.time()) + 300
        self._token_counter = 0
        self._handlers[REQUEST_TOKEN_URL] = self._request_token

    def _request_token(self, request: httpx.Request) -> httpx.Response:
        credentials = base64.b64encode(f"{self.username}:{self.password}".encode()).decode()
        expected = f"Basic {credentials}"
        if request.headers.get("Authorization") != expected:
            return httpx.Response(401)
        self._token_counter += 1
        return httpx.Response(200, json={
            "code": "REST-0000",
            "expiration": self.token_expiration,
            "error": False,
            "message": "Generate new token successfully.",
            "results": {"token": f"token-{self._token_counter}"},
        })

    def _handle(self, request: httpx.Request) -> httpx.Response:
        key = request.url.raw_path.decode()
        request.read()
        self.calls[key].append(request)
        handler = self._handlers.get(key)
        if handler is None:
            return httpx.Response(404)
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def mock(self, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self._handlers[path] = handler

    def mock_json(self, path: str, body: Any, status_code: int = 200) -> None:
        self.mock(path, lambda request: httpx.Response(status_code, content=orjson.dumps(body)))

    def mock_text(self, path: str, text: str, status_code: int = 200) -> None:
        self.mock(path, lambda request: httpx.Response(status_code, text=text))

    def bodies(self, path: str) -> list[bytes]:
        return [r.content for r in self.calls[path]]

    def client(self) -> TigerGraphClient:
        return TigerGraphClient(
            "http://tigergraph:9000",
            "http://tigergraph:14240",
            self.username,
            self.password,
            transport=self.transport,
        )


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def fake_gateway_factory():
    def _factory(**kwargs) -> FakeGateway:
        return FakeGateway(**kwargs)
    return _factory


@pytest.fixture
def tg_server():
    return FakeTigerGraph()


@pytest.fixture
def migration_dir(tmp_path):
    """Migrations 000-003, each with an up and down file whose body names it."""
    names = ["create_person", "add_email", "create_knows_edge", "add_age"]
    for number, name in enumerate(names):
        version = f"{number:03d}"
        for direction in ("up", "down"):
            (tmp_path / f"{version}_{name}.{direction}.gsql").write_text(
                f"example {version} {direction}"
            )
    (tmp_path / "README.md").write_text("not a migration")
    return tmp_path
