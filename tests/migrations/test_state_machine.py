"""Tests for the migration run state machine."""

import pytest

from tgmigrate.exceptions import MigrationStateError
from tgmigrate.migrations.state_machine import MigrationState, RunStateMachine


@pytest.mark.asyncio
async def test_initial_state():
    sm = RunStateMachine("MyGraph")
    assert sm.state == MigrationState.CHECK_INIT
    assert not sm.is_terminal


@pytest.mark.asyncio
async def test_full_lifecycle_with_bootstrap():
    sm = RunStateMachine("MyGraph")
    await sm.transition(MigrationState.BOOTSTRAPPING)
    await sm.transition(MigrationState.RESOLVE_CURRENT_VERSION)
    await sm.transition(MigrationState.RESOLVE_STEPS)
    await sm.transition(MigrationState.EXECUTING_STEPS)
    await sm.transition(MigrationState.DONE)
    assert sm.state == MigrationState.DONE
    assert sm.is_terminal
    assert len(sm.history) == 6


@pytest.mark.asyncio
async def test_bootstrap_can_be_skipped():
    sm = RunStateMachine("MyGraph")
    await sm.transition(MigrationState.RESOLVE_CURRENT_VERSION)
    assert sm.state == MigrationState.RESOLVE_CURRENT_VERSION


@pytest.mark.asyncio
async def test_cannot_skip_resolution():
    sm = RunStateMachine("MyGraph")
    with pytest.raises(MigrationStateError):
        await sm.transition(MigrationState.EXECUTING_STEPS)


@pytest.mark.asyncio
@pytest.mark.parametrize("path", [
    [],
    [MigrationState.BOOTSTRAPPING],
    [MigrationState.RESOLVE_CURRENT_VERSION],
    [MigrationState.RESOLVE_CURRENT_VERSION, MigrationState.RESOLVE_STEPS],
    [MigrationState.RESOLVE_CURRENT_VERSION, MigrationState.RESOLVE_STEPS, MigrationState.EXECUTING_STEPS],
])
async def test_failed_reachable_from_every_state(path):
    sm = RunStateMachine("MyGraph")
    for state in path:
        await sm.transition(state)
    await sm.transition(MigrationState.FAILED)
    assert sm.state == MigrationState.FAILED


@pytest.mark.asyncio
async def test_terminal_states_have_no_exits():
    sm = RunStateMachine("MyGraph")
    await sm.transition(MigrationState.FAILED)
    with pytest.raises(MigrationStateError):
        await sm.transition(MigrationState.CHECK_INIT)


@pytest.mark.asyncio
async def test_listener_notified():
    sm = RunStateMachine("MyGraph")
    seen = []

    async def listener(old, new):
        seen.append((old, new))

    sm.on_transition(listener)
    await sm.transition(MigrationState.RESOLVE_CURRENT_VERSION)
    assert seen == [(MigrationState.CHECK_INIT, MigrationState.RESOLVE_CURRENT_VERSION)]
