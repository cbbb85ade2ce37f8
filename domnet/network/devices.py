"""Live device attachment for domain network interfaces.

Each slot becomes one ``<interface>`` device:

* ``public_network`` slots use a direct (macvtap) device bound to a host NIC.
* Every other slot joins a libvirt virtual network by name.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal
from xml.sax.saxutils import escape as xml_escape

from domnet.config import settings
from domnet.errors import AttachDeviceError
from domnet.metrics import interface_attach_total
from domnet.schemas import SlotAssignment

logger = logging.getLogger(__name__)

DeviceKind = Literal["network", "direct"]

VALID_NIC_MODELS = {
    "virtio", "e1000", "e1000e", "rtl8139", "i82551", "i82557b",
    "i82559er", "ne2k_pci", "pcnet",
}
VALID_DIRECT_MODES = {"vepa", "bridge", "private", "passthrough"}

# VMware NIC names carried over from imported machine definitions.
NIC_MODEL_SUBSTITUTIONS = {
    "vmxnet3": "virtio",
    "vmxnet2": "e1000",
    "vmxnet": "e1000",
}


def _xml(value: object) -> str:
    """Escape for XML attribute contexts."""
    return xml_escape(str(value), entities={"'": "&apos;", '"': "&quot;"})


def interface_name(slot: int) -> str:
    """Guest-facing name used in progress messages (eth0, eth1, ...)."""
    return f"eth{slot}"


@dataclass(frozen=True)
class InterfaceDevice:
    """Everything needed to attach one slot, built fresh per slot."""

    slot: int
    kind: DeviceKind
    model_type: str
    network_name: str | None = None  # kind == "network"
    dev: str | None = None  # kind == "direct"
    mode: str | None = None  # kind == "direct"
    mac: str | None = None

    def to_xml(self) -> str:
        """Render the libvirt ``<interface>`` device descriptor."""
        lines = [f"<interface type='{self.kind}'>"]
        if self.mac:
            lines.append(f"  <mac address='{_xml(self.mac)}'/>")
        if self.kind == "direct":
            lines.append(f"  <source dev='{_xml(self.dev)}' mode='{_xml(self.mode)}'/>")
        else:
            lines.append(f"  <source network='{_xml(self.network_name)}'/>")
        lines.append(f"  <model type='{_xml(self.model_type)}'/>")
        lines.append("</interface>")
        return "\n".join(lines)


class DeviceAttacher:
    """Builds interface devices from slot assignments and attaches them."""

    def __init__(
        self,
        nic_model_type: str | None = None,
        public_dev: str | None = None,
        public_mode: str | None = None,
    ):
        self.nic_model_type = nic_model_type or settings.nic_model_type
        self.public_dev = public_dev or settings.public_interface_dev
        self.public_mode = public_mode or settings.public_interface_mode

    def _model_type(self, assignment: SlotAssignment) -> str:
        model = assignment.model_type or self.nic_model_type
        if model in NIC_MODEL_SUBSTITUTIONS:
            substitute = NIC_MODEL_SUBSTITUTIONS[model]
            logger.warning(
                "NIC model '%s' not supported by KVM for %s, using '%s' instead",
                model,
                interface_name(assignment.slot),
                substitute,
            )
            model = substitute
        if model not in VALID_NIC_MODELS:
            raise AttachDeviceError(
                f"Invalid NIC model '{model}' for {interface_name(assignment.slot)}",
                slot=assignment.slot,
            )
        return model

    def build_device(self, assignment: SlotAssignment) -> InterfaceDevice:
        """Describe the device for one slot."""
        if assignment.is_public:
            mode = assignment.mode or self.public_mode
            if mode not in VALID_DIRECT_MODES:
                raise AttachDeviceError(
                    f"Unsupported mode '{mode}' for public interface "
                    f"{interface_name(assignment.slot)}",
                    slot=assignment.slot,
                )
            device = InterfaceDevice(
                slot=assignment.slot,
                kind="direct",
                model_type=self._model_type(assignment),
                dev=assignment.dev or self.public_dev,
                mode=mode,
                mac=assignment.mac,
            )
            logger.info(
                "Setting up public interface using device %s in mode %s",
                device.dev,
                device.mode,
            )
            return device

        if not assignment.is_resolved:
            raise AttachDeviceError(
                f"Interface {interface_name(assignment.slot)} has no resolved network",
                slot=assignment.slot,
            )
        return InterfaceDevice(
            slot=assignment.slot,
            kind="network",
            model_type=self._model_type(assignment),
            network_name=assignment.network_name,
            mac=assignment.mac,
        )

    def attach(self, domain: Any, assignment: SlotAssignment) -> InterfaceDevice:
        """Attach the device for ``assignment`` to ``domain``.

        Raises:
            AttachDeviceError: the hypervisor rejected the device
        """
        device = self.build_device(assignment)

        message = f"Creating network interface {interface_name(device.slot)}"
        if device.kind == "direct":
            message += f" on host device {device.dev}."
        else:
            message += f" connected to network {device.network_name}."
        if device.mac:
            message += f" Using MAC address: {device.mac}"
        logger.info(message)

        try:
            domain.attachDevice(device.to_xml())
        except Exception as e:
            interface_attach_total.labels(kind=device.kind, status="error").inc()
            logger.error(
                "Failed to attach %s: %s", interface_name(device.slot), e
            )
            raise AttachDeviceError(str(e), slot=device.slot) from e

        interface_attach_total.labels(kind=device.kind, status="success").inc()
        return device
