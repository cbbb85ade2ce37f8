"""Hypervisor network catalog.

Lists every network (active and inactive) known to libvirt together with the
network address each one serves, for address-based interface resolution.
"""

from __future__ import annotations

import ipaddress
import logging
import xml.etree.ElementTree as ET
from typing import Any, Protocol

from domnet.schemas import NetworkDescriptor

logger = logging.getLogger(__name__)


class NetworkCatalog(Protocol):
    """Read-only view of the hypervisor's networks."""

    def list_networks(self) -> list[NetworkDescriptor]:
        ...


def _ipv4_element(root: ET.Element) -> ET.Element | None:
    for ip in root.findall("ip"):
        family = ip.get("family", "ipv4")
        if family == "ipv4" and ip.get("address"):
            return ip
    return None


def parse_network_xml(
    xml: str,
    *,
    active: bool = False,
    autostart: bool = False,
) -> NetworkDescriptor:
    """Build a NetworkDescriptor from a libvirt network XML description.

    Networks without an IPv4 ``<ip>`` element (isolated bridges, IPv6-only)
    get no network address and can only be joined by explicit name.
    """
    root = ET.fromstring(xml)
    name = (root.findtext("name") or "").strip()

    bridge = root.find("bridge")
    forward = root.find("forward")

    ip_address = None
    netmask = None
    address = None
    ip = _ipv4_element(root)
    if ip is not None:
        ip_address = ip.get("address")
        netmask = ip.get("netmask") or ip.get("prefix") or "24"
        try:
            iface = ipaddress.IPv4Interface(f"{ip_address}/{netmask}")
            address = str(iface.network.network_address)
            netmask = str(iface.netmask)
        except ValueError as e:
            logger.warning("Ignoring unparseable address on network %s: %s", name, e)

    return NetworkDescriptor(
        name=name,
        network_address=address,
        ip_address=ip_address,
        netmask=netmask,
        bridge_name=bridge.get("name") if bridge is not None else None,
        forward_mode=(forward.get("mode") or "nat") if forward is not None else None,
        active=active,
        autostart=autostart,
    )


class LibvirtNetworkCatalog:
    """NetworkCatalog backed by a libvirt connection."""

    def __init__(self, conn: Any):
        self._conn = conn

    def list_networks(self) -> list[NetworkDescriptor]:
        """List all networks, in the order libvirt reports them."""
        networks = []
        for network in self._conn.listAllNetworks(0):
            descriptor = parse_network_xml(
                network.XMLDesc(0),
                active=network.isActive() == 1,
                autostart=bool(network.autostart()),
            )
            networks.append(descriptor)
        logger.debug(
            "Found %d libvirt networks: %s",
            len(networks),
            ", ".join(n.name for n in networks),
        )
        return networks
