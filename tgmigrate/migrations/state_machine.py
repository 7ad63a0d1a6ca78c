"""Migration run state machine: enforces the order a run moves through."""

from __future__ import annotations

from enum import Enum
from typing import Awaitable, Callable

from tgmigrate.exceptions import MigrationStateError


class MigrationState(str, Enum):
    CHECK_INIT = "check_init"
    BOOTSTRAPPING = "bootstrapping"
    RESOLVE_CURRENT_VERSION = "resolve_current_version"
    RESOLVE_STEPS = "resolve_steps"
    EXECUTING_STEPS = "executing_steps"
    DONE = "done"
    FAILED = "failed"


TransitionCallback = Callable[[MigrationState, MigrationState], Awaitable[None]]

# Valid state transitions for a single run
VALID_TRANSITIONS: dict[MigrationState, set[MigrationState]] = {
    MigrationState.CHECK_INIT: {
        MigrationState.BOOTSTRAPPING,
        MigrationState.RESOLVE_CURRENT_VERSION,
        MigrationState.FAILED,
    },
    MigrationState.BOOTSTRAPPING: {MigrationState.RESOLVE_CURRENT_VERSION, MigrationState.FAILED},
    MigrationState.RESOLVE_CURRENT_VERSION: {MigrationState.RESOLVE_STEPS, MigrationState.FAILED},
    MigrationState.RESOLVE_STEPS: {MigrationState.EXECUTING_STEPS, MigrationState.FAILED},
    MigrationState.EXECUTING_STEPS: {MigrationState.DONE, MigrationState.FAILED},
    MigrationState.DONE: set(),  # terminal
    MigrationState.FAILED: set(),  # terminal
}


class RunStateMachine:
    """Tracks where a single migration run is.

    Only valid transitions are allowed; listeners hear about every change.
    A run is single threaded so no locking is needed.
    """

    def __init__(self, graph: str):
        self.graph = graph
        self._state = MigrationState.CHECK_INIT
        self._history: list[MigrationState] = [MigrationState.CHECK_INIT]
        self._listeners: list[TransitionCallback] = []

    @property
    def state(self) -> MigrationState:
        return self._state

    @property
    def history(self) -> list[MigrationState]:
        return list(self._history)

    @property
    def is_terminal(self) -> bool:
        return not VALID_TRANSITIONS[self._state]

    async def transition(self, target: MigrationState) -> None:
        valid = VALID_TRANSITIONS.get(self._state, set())
        if target not in valid:
            raise MigrationStateError(
                f"Cannot move migration run for {self.graph} "
                f"from {self._state.value} to {target.value}"
            )
        old = self._state
        self._state = target
        self._history.append(target)
        for listener in self._listeners:
            await listener(old, target)

    def on_transition(self, callback: TransitionCallback) -> None:
        self._listeners.append(callback)
