from __future__ import annotations

import pytest

from domnet.config import settings
from domnet.errors import NoDomainError
from domnet.schemas import NetworkDescriptor


@pytest.fixture(autouse=True)
def _pin_settings(monkeypatch):
    """Keep tests independent of DOMNET_* variables in the environment."""
    monkeypatch.setattr(settings, "libvirt_uri", "qemu:///system")
    monkeypatch.setattr(settings, "management_network_name", "mgmt")
    monkeypatch.setattr(settings, "nic_model_type", "virtio")
    monkeypatch.setattr(settings, "public_interface_dev", "eth0")
    monkeypatch.setattr(settings, "public_interface_mode", "bridge")
    yield


class FakeDomain:
    """Records attachDevice calls; optionally rejects the Nth one."""

    def __init__(self, fail_on: int | None = None, error: str = "device busy"):
        self.attached: list[str] = []
        self._fail_on = fail_on
        self._error = error

    def attachDevice(self, xml: str):  # noqa: N802
        if self._fail_on is not None and len(self.attached) == self._fail_on:
            raise RuntimeError(self._error)
        self.attached.append(xml)
        return 0


class FakeHypervisor:
    def __init__(self, networks=None, domain=None, missing: bool = False):
        self.networks = list(networks or [])
        self.domain = domain if domain is not None else FakeDomain()
        self.missing = missing
        self.lookups: list[str] = []
        self.list_calls = 0

    def lookup_domain(self, domain_id: str):
        self.lookups.append(domain_id)
        if self.missing:
            raise NoDomainError(f"Domain not found: no domain with matching uuid '{domain_id}'")
        return self.domain

    def list_networks(self):
        self.list_calls += 1
        return list(self.networks)


class FakeGuest:
    def __init__(self):
        self.calls: list[tuple[str, tuple]] = []

    def capability(self, name: str, *args):
        self.calls.append((name, args))


@pytest.fixture
def networks() -> list[NetworkDescriptor]:
    return [
        NetworkDescriptor(name="mgmt", network_address="192.168.121.0",
                          ip_address="192.168.121.1", netmask="255.255.255.0",
                          active=True),
        NetworkDescriptor(name="lab-a", network_address="10.0.0.0",
                          ip_address="10.0.0.1", netmask="255.255.255.0"),
        NetworkDescriptor(name="lab-a-dup", network_address="10.0.0.0",
                          ip_address="10.0.0.254", netmask="255.255.255.0"),
        NetworkDescriptor(name="isolated"),
    ]


@pytest.fixture
def hypervisor(networks) -> FakeHypervisor:
    return FakeHypervisor(networks=networks)


@pytest.fixture
def guest() -> FakeGuest:
    return FakeGuest()
