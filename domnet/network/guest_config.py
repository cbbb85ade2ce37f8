"""Post-boot guest network configuration."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from domnet.network.slots import MANAGEMENT_SLOT, SlotTable
from domnet.schemas import GuestNetworkConfig

logger = logging.getLogger(__name__)

CONFIGURE_NETWORKS = "configure_networks"


class GuestCapabilities(Protocol):
    """Guest-side operations of a running machine."""

    def capability(self, name: str, *args: Any) -> Any:
        ...


class PostBootConfigurator:
    """Turns the final slot table into the guest configure_networks batch.

    The management slot is never included: it carries the provisioning
    connection and must not be taken down while the guest reconfigures.
    """

    def build_requests(self, table: SlotTable) -> list[GuestNetworkConfig]:
        """One request per non-management slot, ascending by slot."""
        requests = []
        for assignment in table:
            if assignment.slot == MANAGEMENT_SLOT:
                continue
            logger.debug(
                "Configuring interface slot %d options %s",
                assignment.slot,
                assignment.model_dump(exclude_none=True),
            )
            if assignment.ip:
                request = GuestNetworkConfig(
                    interface=assignment.slot,
                    type="static",
                    ip=assignment.ip,
                    netmask=assignment.netmask,
                )
            else:
                request = GuestNetworkConfig(interface=assignment.slot, type="dhcp")
            requests.append(request)
        return requests

    def configure(self, table: SlotTable, guest: GuestCapabilities) -> list[GuestNetworkConfig]:
        """Send the whole batch to the guest in a single capability call."""
        requests = self.build_requests(table)
        logger.debug("Sending %d interface configurations to guest", len(requests))
        guest.capability(CONFIGURE_NETWORKS, [r.to_payload() for r in requests])
        return requests
