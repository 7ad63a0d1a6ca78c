"""TigerGraph wire models: request and response bodies.

Field names follow what the servers send; REST++ uses snake_case, the
GSQL schema endpoint uses PascalCase.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ServerVersion(BaseModel):
    edition: str = ""
    api: str = ""
    schema_: int = Field(default=0, alias="schema")

    model_config = {"populate_by_name": True}


class TigerGraphResponse(BaseModel, Generic[T]):
    """Envelope shared by every REST++ response."""

    version: ServerVersion | None = None
    error: bool = False
    message: str = ""
    results: list[T] = Field(default_factory=list)


# ── Auth ──────────────────────────────────────────────────────


class RequestTokenResults(BaseModel):
    token: str = ""


class RequestTokenResponse(BaseModel):
    code: str = ""
    expiration: int = 0  # seconds since epoch
    error: bool = False
    message: str = ""
    results: RequestTokenResults = Field(default_factory=RequestTokenResults)


# ── Graph metadata ────────────────────────────────────────────


class AttributeType(BaseModel):
    name: str = Field(default="", alias="Name")

    model_config = {"populate_by_name": True}


class GraphAttribute(BaseModel):
    attribute_name: str = Field(default="", alias="AttributeName")
    attribute_type: AttributeType = Field(default_factory=AttributeType, alias="AttributeType")

    model_config = {"populate_by_name": True}


class VertexType(BaseModel):
    name: str = Field(default="", alias="Name")
    attributes: list[GraphAttribute] = Field(default_factory=list, alias="Attributes")
    config: dict[str, Any] = Field(default_factory=dict, alias="Config")
    is_local: bool = Field(default=False, alias="IsLocal")

    model_config = {"populate_by_name": True}


class EdgeType(BaseModel):
    name: str = Field(default="", alias="Name")
    from_vertex_type_name: str = Field(default="", alias="FromVertexTypeName")
    to_vertex_type_name: str = Field(default="", alias="ToVertexTypeName")
    is_directed: bool = Field(default=False, alias="IsDirected")
    attributes: list[GraphAttribute] = Field(default_factory=list, alias="Attributes")

    model_config = {"populate_by_name": True}


class GraphMetadata(BaseModel):
    graph_name: str = Field(default="", alias="GraphName")
    vertex_types: list[VertexType] = Field(default_factory=list, alias="VertexTypes")
    edge_types: list[EdgeType] = Field(default_factory=list, alias="EdgeTypes")

    model_config = {"populate_by_name": True}


class GraphMetadataResponse(BaseModel):
    """Schema endpoint response. `results` is None when the server sent none."""

    error: bool = False
    message: str = ""
    results: GraphMetadata | None = None


# ── Migration vertices ────────────────────────────────────────


class MigrationVertexAttributes(BaseModel):
    created_at: str = ""
    migration_number: str = ""
    mode: str = ""
    graph_name: str = ""


class MigrationVertex(BaseModel):
    v_id: str = ""
    v_type: str = ""
    attributes: MigrationVertexAttributes = Field(default_factory=MigrationVertexAttributes)


class LatestMigrationResult(BaseModel):
    latest_migration: list[MigrationVertex] = Field(default_factory=list)


class AttributeValue(BaseModel, Generic[T]):
    value: T


class MigrationVertexPayload(BaseModel):
    graph_name: AttributeValue[str]
    migration_number: AttributeValue[str]
    mode: AttributeValue[str]
    created_at: AttributeValue[datetime]


def migration_upsert_payload(
    vertex_id: str, graph_name: str, version: str, mode: str, created_at: datetime,
) -> dict[str, Any]:
    """Build the /graph upsert body for a single Migration vertex."""
    vertex = MigrationVertexPayload(
        graph_name=AttributeValue[str](value=graph_name),
        migration_number=AttributeValue[str](value=version),
        mode=AttributeValue[str](value=mode),
        created_at=AttributeValue[datetime](value=created_at),
    )
    return {"vertices": {"Migration": {vertex_id: vertex.model_dump(mode="json")}}}


# ── Upsert ────────────────────────────────────────────────────


class UpsertResult(BaseModel):
    accepted_vertices: int = 0
    accepted_edges: int = 0
    skipped_vertices: int = 0
    skipped_edges: int = 0
    vertices_already_exist: Any = None
    miss_vertices: Any = None


# ── Loading jobs ──────────────────────────────────────────────


class LoadingJobObjectResult(BaseModel):
    type_name: str = Field(default="", alias="typeName")
    valid_object: int = Field(default=0, alias="validObject")
    no_id_found: int = Field(default=0, alias="noIdFound")
    invalid_attribute: int = Field(default=0, alias="invalidAttribute")

    model_config = {"populate_by_name": True}


class LoadingJobStatistics(BaseModel):
    valid_line: int = Field(default=0, alias="validLine")
    reject_line: int = Field(default=0, alias="rejectLine")
    failed_condition_line: int = Field(default=0, alias="failedConditionLine")
    not_enough_token: int = Field(default=0, alias="notEnoughToken")
    invalid_json: int = Field(default=0, alias="invalidJson")
    oversize_token: int = Field(default=0, alias="oversizeToken")
    vertex: list[LoadingJobObjectResult] = Field(default_factory=list)
    edge: list[LoadingJobObjectResult] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class LoadingJobResult(BaseModel):
    source_file_name: str = Field(default="", alias="sourceFileName")
    statistics: LoadingJobStatistics = Field(default_factory=LoadingJobStatistics)

    model_config = {"populate_by_name": True}
