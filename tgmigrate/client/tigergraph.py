"""TigerGraph client: token-authenticated REST++ calls and GSQL execution.

Follows the httpx-based async pattern used throughout tgmigrate: a short
lived AsyncClient per request, with an optional transport so tests can
stand up a fake server.

Usage:
    client = TigerGraphClient("http://tg:9000", "http://tg:14240", "tigergraph", "pw")
    await client.run_gsql("CREATE VERTEX Person (PRIMARY_ID id STRING)")
    data = await client.get("/query/MyGraph/people", "MyGraph")
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote_plus

import httpx
import orjson
from pydantic import ValidationError

from tgmigrate.client.auth import Token, TokenCache
from tgmigrate.client.models import (
    GraphMetadata,
    GraphMetadataResponse,
    LoadingJobResult,
    RequestTokenResponse,
    TigerGraphResponse,
    UpsertResult,
)
from tgmigrate.exceptions import (
    GSQLError,
    LoadingJobError,
    LoadingJobPartialError,
    NonOKStatusError,
    RemoteResponseError,
    RequestFailedError,
)

_logger = logging.getLogger(__name__)

# REST++ endpoints
PING_URL = "/api/ping"
REQUEST_TOKEN_URL = "/requesttoken"
UPSERT_URL = "/graph"
LOADING_JOB_URL = "/ddl"

# GSQL server endpoints
GSQL_FILE_URL = "/gsqlserver/gsql/file"
GRAPH_METADATA_URL = "/gsqlserver/gsql/schema"

# The GSQL server streams its output; the penultimate line carries the return code.
GSQL_SUCCESS_MARKER = "__GSQL__RETURN__CODE__,0"
GSQL_SEMANTIC_FAILURE_MARKER = "Semantic Check Fails:"


def check_gsql_output(output: str) -> None:
    """Raise GSQLError unless `output` reports a successful GSQL run."""
    lines = output.split("\n")
    if len(lines) < 2:
        raise GSQLError(
            f"not enough returned lines in GSQL response. full response: {output}",
            output,
        )
    if GSQL_SEMANTIC_FAILURE_MARKER in output:
        raise GSQLError(
            f"a semantic failure was found in the response. full response: {output}",
            output,
        )
    code_line = lines[-2]
    if code_line != GSQL_SUCCESS_MARKER:
        raise GSQLError(
            "GSQL response did not contain expected success code. "
            f"response code was: {code_line}\nfull data was: {output}",
            output,
        )


def parse_model(model: Any, data: Any) -> Any:
    """Validate decoded JSON against a response model."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise RemoteResponseError(f"unexpected response shape: {e}") from e


def encode_jsonl(lines: list[Any]) -> bytes:
    """Encode objects as newline separated JSON, no trailing newline."""
    return b"\n".join(orjson.dumps(line) for line in lines)


class TigerGraphClient:
    """HTTP client for one TigerGraph deployment.

    `base_url` points at REST++ (port 9000 by default), `gsql_url` at the
    GSQL server (port 14240). REST++ calls use per-graph bearer tokens held
    in `tokens`; GSQL calls use basic auth.
    """

    def __init__(
        self,
        base_url: str,
        gsql_url: str | None = None,
        username: str = "",
        password: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        tokens: TokenCache | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.gsql_url = (gsql_url or base_url).rstrip("/")
        self._auth = (username, password)
        self._timeout = timeout
        self._transport = transport
        self.tokens = tokens if tokens is not None else TokenCache()

    @classmethod
    def from_settings(cls, settings: Any, **kwargs: Any) -> TigerGraphClient:
        return cls(
            settings.url,
            settings.effective_gsql_url,
            settings.username,
            settings.password,
            timeout=settings.request_timeout,
            **kwargs,
        )

    # ── transport ────────────────────────────────────────────

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        _logger.debug("%s %s", method, url)
        try:
            async with self._http() as client:
                resp = await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise RequestFailedError(f"failed {method} request to {url}: {e}") from e
        if resp.status_code != 200:
            raise NonOKStatusError(resp.status_code, url)
        return resp

    @staticmethod
    def _decode(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise RemoteResponseError(
                f"failed to unmarshal response. response: {resp.text}"
            ) from e

    # ── auth ─────────────────────────────────────────────────

    async def auth(self, graph: str) -> Token:
        """Return a valid REST++ token for `graph`, requesting one if needed."""
        token = self.tokens.get_valid(graph, datetime.now(timezone.utc))
        if token is not None:
            return token

        resp = await self._send(
            "POST",
            self.base_url + REQUEST_TOKEN_URL,
            json={"graph": graph},
            auth=self._auth,
        )
        body = parse_model(RequestTokenResponse, self._decode(resp))
        if body.error:
            raise RemoteResponseError(f"failed to request token for graph {graph}: {body.message}")

        token = Token(
            value=body.results.token,
            expires=datetime.fromtimestamp(body.expiration, tz=timezone.utc),
        )
        self.tokens.store(graph, token)
        _logger.debug("Requested new token for graph %s, expires %s", graph, token.expires)
        return token

    async def _token_headers(self, graph: str) -> dict[str, str]:
        token = await self.auth(graph)
        return {"Authorization": f"Bearer {token.value}"}

    # ── REST++ ───────────────────────────────────────────────

    async def get(self, path: str, graph: str) -> Any:
        """GET a REST++ path with token auth and return the decoded JSON."""
        headers = await self._token_headers(graph)
        resp = await self._send("GET", self.base_url + path, headers=headers)
        return self._decode(resp)

    async def post(self, path: str, graph: str, body: Any) -> Any:
        """POST a JSON body to a REST++ path with token auth."""
        return await self.post_raw(path, graph, orjson.dumps(body))

    async def post_raw(self, path: str, graph: str, content: bytes) -> Any:
        headers = await self._token_headers(graph)
        resp = await self._send("POST", self.base_url + path, content=content, headers=headers)
        return self._decode(resp)

    async def ping(self) -> bool:
        try:
            await self._send("GET", self.base_url + PING_URL)
        except (RequestFailedError, NonOKStatusError):
            return False
        return True

    async def upsert(self, graph: str, payload: Any) -> UpsertResult:
        """Upsert vertices/edges into `graph` and return the server's counts."""
        data = await self.post(f"{UPSERT_URL}/{graph}", graph, payload)
        response = parse_model(TigerGraphResponse[UpsertResult], data)
        if response.error:
            raise RemoteResponseError(
                f"TigerGraph returned an error when trying to upsert data. Message: {response.message}"
            )
        if not response.results:
            raise RemoteResponseError("upsert response contained no results")
        return response.results[0]

    async def run_loading_job_jsonl(
        self, graph: str, job: str, lines: list[Any], filename: str = "f",
    ) -> LoadingJobResult:
        """Run a loading job, feeding it `lines` as JSONL."""
        try:
            content = encode_jsonl(lines)
        except TypeError as e:
            raise LoadingJobError(f"failed to marshal into JSONL: {e}") from e

        path = f"{LOADING_JOB_URL}/{graph}?tag={job}&filename={filename}"
        data = await self.post_raw(path, graph, content)
        response = parse_model(TigerGraphResponse[LoadingJobResult], data)
        if response.error:
            raise LoadingJobError(f"loading job {job} failed: {response.message}")
        if len(response.results) != 1:
            raise LoadingJobError(
                f"response does not contain exactly one result. got {len(response.results)} results"
            )

        result = response.results[0]
        if result.statistics.valid_line != len(lines):
            raise LoadingJobPartialError(
                "tigergraph reported fewer valid JSON lines than were provided. "
                f"got: {result.statistics.valid_line}, expected {len(lines)}"
            )
        return result

    # ── GSQL server ──────────────────────────────────────────

    async def run_gsql(self, body: str) -> str:
        """Run a GSQL script. Returns the server output, raises GSQLError on failure."""
        resp = await self._send(
            "POST",
            self.gsql_url + GSQL_FILE_URL,
            content=quote_plus(body),
            headers={"Content-Type": "application/octet-stream"},
            auth=self._auth,
        )
        output = resp.text
        check_gsql_output(output)
        return output

    async def get_graph_metadata(self, graph: str) -> GraphMetadataResponse:
        """Fetch a graph's schema.

        The server sends an empty string for `results` when the graph is
        missing, so anything that is not a schema object comes back as None.
        """
        resp = await self._send(
            "GET",
            self.gsql_url + GRAPH_METADATA_URL,
            params={"graph": graph},
            auth=self._auth,
        )
        data = self._decode(resp)
        if not isinstance(data, dict):
            raise RemoteResponseError(f"unexpected schema response: {resp.text}")

        results: GraphMetadata | None = None
        raw = data.get("results")
        if isinstance(raw, dict):
            try:
                results = GraphMetadata.model_validate(raw)
            except ValidationError:
                results = None
        return GraphMetadataResponse(
            error=bool(data.get("error", False)),
            message=str(data.get("message", "")),
            results=results,
        )
