"""Provisioning errors.

Every error raised by the provisioning core is fatal to the run. None are
retried internally and already-attached devices are left in place.
"""

from __future__ import annotations


class ProvisionError(Exception):
    """Base exception for interface provisioning failures."""
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NoDomainError(ProvisionError):
    """Domain lookup failed."""
    def __init__(self, message: str, domain_id: str | None = None):
        super().__init__(message)
        self.domain_id = domain_id


class InterfaceSlotError(ProvisionError):
    """An interface could not be placed in a slot."""
    def __init__(self, message: str, slot: int | None = None):
        super().__init__(message)
        self.slot = slot


class InterfaceSlotConflict(InterfaceSlotError):
    """An explicitly requested slot is already occupied."""


class InterfaceSlotExhausted(InterfaceSlotError):
    """No free slot is left for an auto-assigned interface."""


class InterfaceSlotOutOfRange(InterfaceSlotError):
    """An explicitly requested slot is outside the platform limit."""


class AttachDeviceError(ProvisionError):
    """Hypervisor rejected a device attachment."""
    def __init__(self, message: str, slot: int | None = None):
        super().__init__(message)
        self.slot = slot
