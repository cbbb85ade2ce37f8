"""Provisioning run states and their valid transitions.

Run lifecycle:
    resolving_domain -> allocating_slots -> resolving_networks
    -> attaching_devices -> awaiting_boot -> configuring_guest -> done
    any non-terminal state -> failed

Transitions are forward-only. A failed run is never resumed; already
attached devices stay on the domain.
"""

from enum import Enum


class ProvisionState(str, Enum):
    """State of one interface provisioning run."""

    RESOLVING_DOMAIN = "resolving_domain"
    ALLOCATING_SLOTS = "allocating_slots"
    RESOLVING_NETWORKS = "resolving_networks"
    ATTACHING_DEVICES = "attaching_devices"
    AWAITING_BOOT = "awaiting_boot"  # Control handed to the boot pipeline
    CONFIGURING_GUEST = "configuring_guest"
    DONE = "done"
    FAILED = "failed"


class ProvisionStateMachine:
    """Centralized transition rules for provisioning runs."""

    ORDER: list[ProvisionState] = [
        ProvisionState.RESOLVING_DOMAIN,
        ProvisionState.ALLOCATING_SLOTS,
        ProvisionState.RESOLVING_NETWORKS,
        ProvisionState.ATTACHING_DEVICES,
        ProvisionState.AWAITING_BOOT,
        ProvisionState.CONFIGURING_GUEST,
        ProvisionState.DONE,
    ]

    TERMINAL_STATES: set[ProvisionState] = {
        ProvisionState.DONE,
        ProvisionState.FAILED,
    }

    VALID_TRANSITIONS: dict[ProvisionState, set[ProvisionState]] = {
        current: {following, ProvisionState.FAILED}
        for current, following in zip(ORDER, ORDER[1:])
    }

    @classmethod
    def can_transition(cls, current: ProvisionState, target: ProvisionState) -> bool:
        """Check if a state transition is valid."""
        return target in cls.VALID_TRANSITIONS.get(current, set())

    @classmethod
    def is_terminal(cls, state: ProvisionState) -> bool:
        return state in cls.TERMINAL_STATES
