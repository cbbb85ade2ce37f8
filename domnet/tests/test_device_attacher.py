"""Unit tests for interface device descriptors and attachment."""

from __future__ import annotations

import xml.etree.ElementTree as ET

import pytest

from domnet.errors import AttachDeviceError
from domnet.network.devices import DeviceAttacher, InterfaceDevice
from domnet.schemas import SlotAssignment

from domnet.tests.conftest import FakeDomain


def _assignment(**kwargs) -> SlotAssignment:
    kwargs.setdefault("slot", 1)
    kwargs.setdefault("iface_type", "private_network")
    kwargs.setdefault("network_name", "lab-a")
    return SlotAssignment(**kwargs)


# ---------------------------------------------------------------------------
# Descriptor building
# ---------------------------------------------------------------------------

def test_private_interface_joins_resolved_network() -> None:
    device = DeviceAttacher().build_device(_assignment())
    assert device.kind == "network"
    root = ET.fromstring(device.to_xml())
    assert root.tag == "interface"
    assert root.get("type") == "network"
    assert root.find("source").get("network") == "lab-a"
    assert root.find("model").get("type") == "virtio"
    assert root.find("mac") is None


def test_mac_included_when_supplied() -> None:
    device = DeviceAttacher().build_device(_assignment(mac="52:54:00:aa:bb:cc"))
    root = ET.fromstring(device.to_xml())
    assert root.find("mac").get("address") == "52:54:00:aa:bb:cc"


def test_public_interface_uses_direct_device_defaults() -> None:
    device = DeviceAttacher().build_device(_assignment(iface_type="public"))
    assert device.kind == "direct"
    root = ET.fromstring(device.to_xml())
    assert root.get("type") == "direct"
    source = root.find("source")
    assert source.get("dev") == "eth0"
    assert source.get("mode") == "bridge"
    assert source.get("network") is None


def test_public_interface_honours_dev_and_mode() -> None:
    device = DeviceAttacher().build_device(
        _assignment(iface_type="public_network", dev="eth1", mode="vepa")
    )
    assert (device.dev, device.mode) == ("eth1", "vepa")


def test_public_interface_rejects_unknown_mode() -> None:
    with pytest.raises(AttachDeviceError):
        DeviceAttacher().build_device(_assignment(iface_type="public", mode="sideways"))


def test_attacher_defaults_come_from_settings(monkeypatch) -> None:
    from domnet.config import settings

    monkeypatch.setattr(settings, "public_interface_dev", "bond0")
    monkeypatch.setattr(settings, "nic_model_type", "e1000")
    device = DeviceAttacher().build_device(_assignment(iface_type="public"))
    assert device.dev == "bond0"
    assert device.model_type == "e1000"


def test_model_type_per_interface() -> None:
    attacher = DeviceAttacher()
    assert attacher.build_device(_assignment(model_type="rtl8139")).model_type == "rtl8139"


@pytest.mark.parametrize("vmware_model,expected", [
    ("vmxnet3", "virtio"),
    ("vmxnet2", "e1000"),
    ("vmxnet", "e1000"),
])
def test_vmware_model_substituted(vmware_model: str, expected: str) -> None:
    device = DeviceAttacher().build_device(_assignment(model_type=vmware_model))
    assert device.model_type == expected


@pytest.mark.parametrize("model", ["e1000x", "virtio-net", "Virtio"])
def test_invalid_model_rejected_before_attach(model: str) -> None:
    domain = FakeDomain()
    with pytest.raises(AttachDeviceError) as exc_info:
        DeviceAttacher().attach(domain, _assignment(slot=3, model_type=model))
    assert exc_info.value.slot == 3
    assert model in exc_info.value.message
    assert domain.attached == []


def test_invalid_default_model_rejected() -> None:
    with pytest.raises(AttachDeviceError):
        DeviceAttacher(nic_model_type="e1000x").build_device(_assignment())


def test_unresolved_private_interface_rejected() -> None:
    with pytest.raises(AttachDeviceError):
        DeviceAttacher().build_device(_assignment(network_name=None))


def test_descriptor_attributes_are_escaped() -> None:
    device = InterfaceDevice(slot=1, kind="network", model_type="virtio",
                             network_name="a'b<c>")
    root = ET.fromstring(device.to_xml())
    assert root.find("source").get("network") == "a'b<c>"


# ---------------------------------------------------------------------------
# Attachment
# ---------------------------------------------------------------------------

def test_attach_sends_descriptor_to_domain() -> None:
    domain = FakeDomain()
    device = DeviceAttacher().attach(domain, _assignment(slot=2))
    assert device.slot == 2
    assert domain.attached == [device.to_xml()]


def test_attach_failure_wraps_hypervisor_error() -> None:
    domain = FakeDomain(fail_on=0, error="internal error: unable to add device")
    with pytest.raises(AttachDeviceError) as exc_info:
        DeviceAttacher().attach(domain, _assignment(slot=3))
    assert exc_info.value.message == "internal error: unable to add device"
    assert exc_info.value.slot == 3
    assert isinstance(exc_info.value.__cause__, RuntimeError)
