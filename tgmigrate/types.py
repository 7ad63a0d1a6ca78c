"""Core types shared across all tgmigrate subsystems."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import TypeAlias

from pydantic import BaseModel, Field

# ── ID Types ──────────────────────────────────────────────────────────────────

Version: TypeAlias = str
GraphName: TypeAlias = str


# ── Direction ─────────────────────────────────────────────────────────────────


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"


# ── Migration Record ─────────────────────────────────────────────────────────


class MigrationRecord(BaseModel):
    """One applied (or fast-forwarded) migration step for a graph.

    `direction` is kept as a plain string: records come back from the
    server and may hold anything, so they are validated where they are
    interpreted, not here.
    """

    graph_name: GraphName
    version: Version
    direction: str
    created_at: datetime | None = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def record_id(self) -> str:
        stamp = self.created_at.isoformat(timespec="seconds") if self.created_at else ""
        return f"{self.version}_{self.direction}_{stamp}"
