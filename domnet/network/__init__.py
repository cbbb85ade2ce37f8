"""Slot allocation, network resolution, device attachment and guest configuration."""

from domnet.network.catalog import LibvirtNetworkCatalog, NetworkCatalog
from domnet.network.devices import DeviceAttacher, InterfaceDevice
from domnet.network.guest_config import PostBootConfigurator
from domnet.network.resolver import NetworkResolver, network_address
from domnet.network.slots import MAX_SLOTS, SlotAllocator, SlotTable

__all__ = [
    "DeviceAttacher",
    "InterfaceDevice",
    "LibvirtNetworkCatalog",
    "MAX_SLOTS",
    "NetworkCatalog",
    "NetworkResolver",
    "PostBootConfigurator",
    "SlotAllocator",
    "SlotTable",
    "network_address",
]
