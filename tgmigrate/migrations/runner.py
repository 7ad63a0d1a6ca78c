"""Migration runner: moves a graph from its recorded version to a target one.

A run goes CHECK_INIT -> (BOOTSTRAPPING) -> RESOLVE_CURRENT_VERSION ->
RESOLVE_STEPS -> EXECUTING_STEPS -> DONE, or FAILED from anywhere.
Steps run strictly one after another: each script is executed and then
recorded before the next one starts, and the first failure ends the run.
Nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable

from tgmigrate.exceptions import (
    CommitFailedError,
    DeadlineExceededError,
    GSQLError,
    InvalidVersionError,
    PartialFailureError,
    SchemaSetupError,
    TransportError,
)
from tgmigrate.migrations.gateway import METADATA_GRAPH_NAME, StateGateway
from tgmigrate.migrations.source import DEFAULT_EXTENSION, MigrationSource
from tgmigrate.migrations.state_machine import MigrationState, RunStateMachine, TransitionCallback
from tgmigrate.migrations.versions import steps_between
from tgmigrate.types import Direction, GraphName, Version

_logger = logging.getLogger(__name__)


@dataclass
class MigrationResult:
    """What a run did. `applied` is empty for dry runs."""

    graph: GraphName
    from_version: Version | None
    to_version: Version
    direction: Direction
    steps: list[Version] = field(default_factory=list)
    applied: list[Version] = field(default_factory=list)
    fast_forwarded: list[Version] = field(default_factory=list)
    bootstrapped: bool = False
    dry_run: bool = False


def _initial_steps(init_version: Version | None) -> list[Version]:
    """Versions a fresh metadata graph records as applied without running them."""
    if not init_version:
        return []
    try:
        steps, _ = steps_between(None, init_version)
    except InvalidVersionError as e:
        raise InvalidVersionError(
            f"failed to determine the initial migrations to record: "
            f"initial version: {init_version}: {e}"
        ) from e
    return steps


class Deadline:
    """Optional wall-clock budget for a run, shared by every network call."""

    def __init__(self, timeout: float | None = None) -> None:
        self._expires = time.monotonic() + timeout if timeout is not None else None

    def remaining(self) -> float | None:
        if self._expires is None:
            return None
        return self._expires - time.monotonic()


class Migrator:
    """Applies migrations to one TigerGraph deployment through a StateGateway."""

    def __init__(self, gateway: StateGateway, extension: str = DEFAULT_EXTENSION) -> None:
        self._gateway = gateway
        self._extension = extension
        self._listeners: list[TransitionCallback] = []

    def on_transition(self, callback: TransitionCallback) -> None:
        """Register a callback for every state change of every run."""
        self._listeners.append(callback)

    async def migrate(
        self,
        graph: GraphName,
        version: Version,
        init_version: Version | None = None,
        migration_dir: Path | str = "migrations",
        dry_run: bool = False,
        timeout: float | None = None,
    ) -> MigrationResult:
        """Bring `graph` to `version`.

        `init_version` only matters the first time the metadata graph is
        created: every version up to it is recorded as applied without
        running anything. A dry run resolves and validates the plan but
        never runs a script or writes a record.
        """
        run = RunStateMachine(graph)
        run.on_transition(self._log_transition)
        for listener in self._listeners:
            run.on_transition(listener)

        try:
            result = await self._run(
                run, graph, version, init_version or None,
                MigrationSource(migration_dir, self._extension), dry_run, Deadline(timeout),
            )
        except (Exception, asyncio.CancelledError):
            if not run.is_terminal:
                await run.transition(MigrationState.FAILED)
            raise

        await run.transition(MigrationState.DONE)
        return result

    async def _run(
        self,
        run: RunStateMachine,
        graph: GraphName,
        version: Version,
        init_version: Version | None,
        source: MigrationSource,
        dry_run: bool,
        deadline: Deadline,
    ) -> MigrationResult:
        initialised = await self._call(deadline, "initialisation check", self._gateway.is_initialised)

        fast_forwarded: list[Version] = []
        if not initialised and not dry_run:
            await run.transition(MigrationState.BOOTSTRAPPING)
            fast_forwarded = await self._bootstrap(graph, init_version, deadline)

        await run.transition(MigrationState.RESOLVE_CURRENT_VERSION)
        if not initialised and dry_run:
            # Nothing to query yet; plan as if the bootstrap had happened.
            _logger.warning(
                "%s graph does not exist; dry run will not create it", METADATA_GRAPH_NAME,
            )
            _initial_steps(init_version)
            current = init_version
        else:
            current = await self._call(
                deadline, "current version lookup", self._gateway.latest_version, graph,
            )

        await run.transition(MigrationState.RESOLVE_STEPS)
        steps, direction = steps_between(current, version)
        _logger.info(
            "Graph %s is at version %s, target %s: %d step(s) %s",
            graph, current or "none", version, len(steps), direction.value,
        )

        result = MigrationResult(
            graph=graph,
            from_version=current,
            to_version=version,
            direction=direction,
            steps=steps,
            fast_forwarded=fast_forwarded,
            bootstrapped=not initialised and not dry_run,
            dry_run=dry_run,
        )

        await run.transition(MigrationState.EXECUTING_STEPS)
        if dry_run:
            for step in steps:
                source.read(step, direction)
                _logger.warning("Dry run: would run %s (%s)", step, direction.value)
            return result

        for step in steps:
            await self._apply_step(graph, step, direction, source, deadline)
            result.applied.append(step)

        return result

    async def _bootstrap(
        self, graph: GraphName, init_version: Version | None, deadline: Deadline,
    ) -> list[Version]:
        steps = _initial_steps(init_version)
        await self._call(deadline, "bootstrap", self._gateway.bootstrap)
        if not steps:
            return []

        for step in steps:
            await self._call(
                deadline, f"recording initial migration {step}",
                self._gateway.commit, graph, step, Direction.UP,
            )
        _logger.info("Recorded %d initial migration(s) for graph %s without running them", len(steps), graph)
        return steps

    async def _apply_step(
        self,
        graph: GraphName,
        step: Version,
        direction: Direction,
        source: MigrationSource,
        deadline: Deadline,
    ) -> None:
        script = source.read(step, direction)
        _logger.info("Running migration %s (%s) on graph %s", step, direction.value, graph)
        try:
            await self._call(deadline, f"migration {step}", self._gateway.run_script, script)
        except GSQLError as e:
            raise SchemaSetupError(
                f"failed to set up TG schema: migration {step} ({direction.value}): {e}"
            ) from e

        # The script has taken effect; from here on a failure leaves the graph ahead of its record.
        try:
            await self._call(
                deadline, f"recording migration {step}",
                self._gateway.commit, graph, step, direction,
            )
        except (TransportError, CommitFailedError) as e:
            _logger.error("Migration %s (%s) ran but was not recorded: %s", step, direction.value, e)
            raise PartialFailureError(step, direction.value, e) from e
        except asyncio.CancelledError:
            _logger.error(
                "Cancelled while recording migration %s (%s); it ran but may not be recorded. "
                "Set TIGER_GRAPH_MIGRATION_INIT_VERSION=%s if it is missing.",
                step, direction.value, step,
            )
            raise

    @staticmethod
    async def _call(
        deadline: Deadline, stage: str, fn: Callable[..., Awaitable[Any]], *args: Any,
    ) -> Any:
        remaining = deadline.remaining()
        if remaining is not None and remaining <= 0:
            raise DeadlineExceededError(f"deadline exceeded before {stage}")
        try:
            return await asyncio.wait_for(fn(*args), remaining)
        except asyncio.TimeoutError as e:
            raise DeadlineExceededError(f"deadline exceeded during {stage}") from e

    async def _log_transition(self, old: MigrationState, new: MigrationState) -> None:
        if new == MigrationState.FAILED:
            _logger.warning("Migration run failed during %s", old.value)
        else:
            _logger.debug("Migration run: %s -> %s", old.value, new.value)
