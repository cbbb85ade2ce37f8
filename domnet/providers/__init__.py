"""Hypervisor adapters for the provisioner."""

from domnet.providers.libvirt import LIBVIRT_AVAILABLE, LibvirtHypervisor

__all__ = [
    "LIBVIRT_AVAILABLE",
    "LibvirtHypervisor",
]
