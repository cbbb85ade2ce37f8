"""Provisioning state machine tests."""
from __future__ import annotations

import pytest

from domnet.state import ProvisionState, ProvisionStateMachine

_ORDER = ProvisionStateMachine.ORDER


@pytest.mark.parametrize("current,target", list(zip(_ORDER, _ORDER[1:])),
                         ids=[f"{c.value}->{t.value}" for c, t in zip(_ORDER, _ORDER[1:])])
def test_forward_transition_valid(current: ProvisionState, target: ProvisionState) -> None:
    assert ProvisionStateMachine.can_transition(current, target)


@pytest.mark.parametrize("state", _ORDER[:-1], ids=[s.value for s in _ORDER[:-1]])
def test_any_running_state_can_fail(state: ProvisionState) -> None:
    assert ProvisionStateMachine.can_transition(state, ProvisionState.FAILED)


_INVALID = [
    # No skipping ahead
    (ProvisionState.RESOLVING_DOMAIN, ProvisionState.ATTACHING_DEVICES),
    (ProvisionState.ALLOCATING_SLOTS, ProvisionState.CONFIGURING_GUEST),
    (ProvisionState.ATTACHING_DEVICES, ProvisionState.DONE),
    # No going back
    (ProvisionState.ATTACHING_DEVICES, ProvisionState.ALLOCATING_SLOTS),
    (ProvisionState.CONFIGURING_GUEST, ProvisionState.AWAITING_BOOT),
    # Terminal states stay terminal
    (ProvisionState.DONE, ProvisionState.FAILED),
    (ProvisionState.FAILED, ProvisionState.RESOLVING_DOMAIN),
    # No self-transitions
    (ProvisionState.AWAITING_BOOT, ProvisionState.AWAITING_BOOT),
]


@pytest.mark.parametrize("current,target", _INVALID,
                         ids=[f"{c.value}->{t.value}" for c, t in _INVALID])
def test_invalid_transition(current: ProvisionState, target: ProvisionState) -> None:
    assert not ProvisionStateMachine.can_transition(current, target)


def test_terminal_states() -> None:
    assert ProvisionStateMachine.is_terminal(ProvisionState.DONE)
    assert ProvisionStateMachine.is_terminal(ProvisionState.FAILED)
    assert not ProvisionStateMachine.is_terminal(ProvisionState.AWAITING_BOOT)
