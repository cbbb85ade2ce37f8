"""Network resolution for interface intents."""

from __future__ import annotations

import ipaddress
import logging
from typing import TYPE_CHECKING

from domnet.schemas import DEFAULT_NETMASK, InterfaceIntent, NetworkDescriptor

if TYPE_CHECKING:
    from domnet.network.catalog import NetworkCatalog

logger = logging.getLogger(__name__)


def network_address(ip: str, netmask: str = DEFAULT_NETMASK) -> str:
    """Return the network address of ``ip`` under ``netmask``.

    >>> network_address("192.168.1.10", "255.255.255.0")
    '192.168.1.0'
    """
    network = ipaddress.IPv4Network(f"{ip}/{netmask}", strict=False)
    return str(network.network_address)


class NetworkResolver:
    """Decides which hypervisor network an interface joins.

    Resolution order, first match wins:
      1. An explicit ``network_name``, used verbatim.
      2. The first catalog network whose network address equals the
         intent's IP masked with its netmask. Later duplicates are ignored.
      3. The management network.

    The catalog is listed lazily and at most once per resolver, so a
    resolver should live for a single provisioning run.
    """

    def __init__(self, catalog: "NetworkCatalog", management_network_name: str):
        if not management_network_name:
            raise ValueError("management_network_name must be non-empty")
        self._catalog = catalog
        self.management_network_name = management_network_name
        self._networks: list[NetworkDescriptor] | None = None

    @property
    def networks(self) -> list[NetworkDescriptor]:
        if self._networks is None:
            self._networks = list(self._catalog.list_networks())
        return self._networks

    def find_by_address(self, ip: str, netmask: str = DEFAULT_NETMASK) -> NetworkDescriptor | None:
        """First catalog network serving the subnet of ``ip``/``netmask``."""
        address = network_address(ip, netmask)
        for network in self.networks:
            if network.network_address == address:
                return network
        return None

    def resolve(self, intent: InterfaceIntent) -> str:
        """Return the network name ``intent`` should join."""
        if intent.network_name:
            logger.debug("Found network by name: %s", intent.network_name)
            return intent.network_name

        if intent.ip:
            network = self.find_by_address(intent.ip, intent.netmask)
            if network is not None:
                logger.debug("Found network %s by ip %s", network.name, intent.ip)
                return network.name

        logger.debug(
            "Did not find network so using default of %s",
            self.management_network_name,
        )
        return self.management_network_name
