"""Remote migration state: where applied versions are recorded.

TigerGraph itself is the system of record: every applied step is a
`Migration` vertex in the `ClientMetadata` graph. `StateGateway` is the
narrow interface the runner depends on; `TigerGraphGateway` is the real
one and tests substitute their own.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from importlib.resources import files

from tgmigrate.client.models import (
    LatestMigrationResult,
    TigerGraphResponse,
    migration_upsert_payload,
)
from tgmigrate.client.tigergraph import TigerGraphClient, parse_model
from tgmigrate.exceptions import (
    CommitFailedError,
    RemoteResponseError,
    UnknownInitialisationError,
)
from tgmigrate.migrations.versions import current_version_from_record
from tgmigrate.types import Direction, GraphName, MigrationRecord, Version

_logger = logging.getLogger(__name__)

METADATA_GRAPH_NAME = "ClientMetadata"

# Start of the schema endpoint's message when ClientMetadata does not exist yet.
NOT_INITIALISED_PREFIX = f"Graph name {METADATA_GRAPH_NAME} cannot be found."

LATEST_MIGRATION_URL = f"/query/{METADATA_GRAPH_NAME}/get_latest_migration"


def load_init_script() -> str:
    """The GSQL that creates the ClientMetadata graph and its query."""
    return files("tgmigrate.migrations").joinpath("metadata_init.gsql").read_text()


class StateGateway(ABC):
    """What the migration runner needs from the remote store."""

    @abstractmethod
    async def is_initialised(self) -> bool:
        """Whether the tracking graph exists."""
        ...

    @abstractmethod
    async def latest_version(self, graph: GraphName) -> Version | None:
        """The graph's current version, or None if nothing was ever recorded."""
        ...

    @abstractmethod
    async def commit(self, graph: GraphName, version: Version, direction: Direction) -> None:
        """Record one migration step. Raises CommitFailedError unless exactly one record was written."""
        ...

    @abstractmethod
    async def bootstrap(self) -> None:
        """Create the tracking graph."""
        ...

    @abstractmethod
    async def run_script(self, script: str) -> None:
        """Execute a migration script."""
        ...


class TigerGraphGateway(StateGateway):
    """StateGateway backed by the ClientMetadata graph."""

    def __init__(self, client: TigerGraphClient, init_script: str | None = None) -> None:
        self._client = client
        self._init_script = init_script

    @property
    def init_script(self) -> str:
        if self._init_script is None:
            self._init_script = load_init_script()
        return self._init_script

    async def is_initialised(self) -> bool:
        meta = await self._client.get_graph_metadata(METADATA_GRAPH_NAME)
        if not meta.error and meta.results is not None and meta.results.graph_name == METADATA_GRAPH_NAME:
            return True
        if meta.message.startswith(NOT_INITIALISED_PREFIX):
            return False
        raise UnknownInitialisationError(
            f"initialisation check failed for an unknown reason. error: {meta.error}, "
            f"message: {meta.message!r}"
        )

    async def latest_record(self, graph: GraphName) -> MigrationRecord | None:
        """The most recent Migration vertex for `graph`, as a record."""
        data = await self._client.post(LATEST_MIGRATION_URL, METADATA_GRAPH_NAME, {"graph_name": graph})
        response = parse_model(TigerGraphResponse[LatestMigrationResult], data)
        if response.error:
            raise RemoteResponseError(
                f"failed to query latest migration for graph {graph}: {response.message}"
            )
        if not response.results or not response.results[0].latest_migration:
            return None

        attrs = response.results[0].latest_migration[0].attributes
        return MigrationRecord(
            graph_name=attrs.graph_name or graph,
            version=attrs.migration_number,
            direction=attrs.mode,
            created_at=_parse_created_at(attrs.created_at),
        )

    async def latest_version(self, graph: GraphName) -> Version | None:
        return current_version_from_record(await self.latest_record(graph))

    async def commit(self, graph: GraphName, version: Version, direction: Direction) -> None:
        record = MigrationRecord(graph_name=graph, version=version, direction=direction.value)
        payload = migration_upsert_payload(
            record.record_id, graph, version, direction.value, record.created_at,
        )
        result = await self._client.upsert(METADATA_GRAPH_NAME, payload)
        if result.accepted_vertices != 1:
            raise CommitFailedError(
                "upsert of migration vertex returned an unexpected number of accepted vertices. "
                f"accepted: {result.accepted_vertices} but expected only 1"
            )
        _logger.info("Recorded migration %s (%s) for graph %s", version, direction.value, graph)

    async def bootstrap(self) -> None:
        _logger.info("Creating %s graph", METADATA_GRAPH_NAME)
        await self._client.run_gsql(self.init_script)

    async def run_script(self, script: str) -> None:
        await self._client.run_gsql(script)


def _parse_created_at(value: str) -> datetime | None:
    # TigerGraph prints DATETIME as "2006-01-02 15:04:05"
    for fmt in ("%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M:%S%z"):
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None
