"""Interface provisioning schemas.

These Pydantic models carry a machine's declared network interfaces from raw
configuration through slot allocation, network resolution and guest-side
configuration.
"""

from __future__ import annotations

import ipaddress
from typing import Any, Iterable, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_NETMASK = "255.255.255.0"

# Raw option keys prefixed with "<scope>__" override their unscoped twins.
PROVIDER_SCOPE = "libvirt"

PRIVATE_NETWORK = "private_network"
PUBLIC_NETWORK = "public_network"
MANAGEMENT = "management"  # Synthesized for an otherwise empty slot 0

_IFACE_TYPE_ALIASES = {
    "private": PRIVATE_NETWORK,
    "public": PUBLIC_NETWORK,
}


def normalize_iface_type(value: Any) -> str:
    """Normalize an interface type tag ('public' -> 'public_network')."""
    tag = str(value).strip().lstrip(":").lower()
    if not tag:
        raise ValueError("interface type must be non-empty")
    return _IFACE_TYPE_ALIASES.get(tag, tag)


def _check_ipv4(value: str | None) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    ipaddress.IPv4Address(value)
    return value


def _check_netmask(value: str | None) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    # Dotted-quad masks and prefix lengths are both accepted.
    network = ipaddress.IPv4Network(f"0.0.0.0/{value}")
    if "." in value and str(network.netmask) != value:
        # ipaddress also takes hostmasks such as 0.0.0.255
        raise ValueError(f"{value!r} is not a valid netmask")
    return value


class _InterfaceOptions(BaseModel):
    """Option fields shared by every option source. All optional."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    adapter: int | None = None
    ip: str | None = None
    netmask: str | None = None
    network_name: str | None = None
    mac: str | None = None
    dev: str | None = None
    mode: str | None = None
    model_type: str | None = None

    @field_validator("ip")
    @classmethod
    def _validate_ip(cls, v: str | None) -> str | None:
        return _check_ipv4(v)

    @field_validator("netmask")
    @classmethod
    def _validate_netmask(cls, v: str | None) -> str | None:
        return _check_netmask(v)


class BaseInterfaceOptions(_InterfaceOptions):
    """Unscoped options as written in the machine configuration."""


class ProviderInterfaceOptions(_InterfaceOptions):
    """Provider-scoped options (``libvirt__network_name`` and friends)."""


class InterfaceIntent(BaseModel):
    """User-declared desire for one network interface."""

    model_config = ConfigDict(frozen=True)

    iface_type: str
    adapter: int | None = None  # Explicit slot index
    ip: str | None = None
    netmask: str = DEFAULT_NETMASK
    network_name: str | None = None
    mac: str | None = None
    dev: str | None = None  # Host device, public interfaces only
    mode: str | None = None  # macvtap mode, public interfaces only
    model_type: str | None = None

    @field_validator("iface_type", mode="before")
    @classmethod
    def _normalize_type(cls, v: Any) -> str:
        return normalize_iface_type(v)

    @field_validator("ip")
    @classmethod
    def _validate_ip(cls, v: str | None) -> str | None:
        return _check_ipv4(v)

    @field_validator("netmask")
    @classmethod
    def _validate_netmask(cls, v: str) -> str:
        return _check_netmask(v)

    @property
    def is_public(self) -> bool:
        return self.iface_type == PUBLIC_NETWORK


class SlotAssignment(InterfaceIntent):
    """An intent placed in a slot.

    ``network_name`` holds the resolved network once resolution has run.
    """

    slot: int = Field(ge=0)

    @classmethod
    def from_intent(cls, slot: int, intent: InterfaceIntent) -> "SlotAssignment":
        return cls.model_validate({**intent.model_dump(), "slot": slot})

    @property
    def is_resolved(self) -> bool:
        return bool(self.network_name)


class NetworkDescriptor(BaseModel):
    """A hypervisor network as seen by the resolver. Read-only."""

    model_config = ConfigDict(frozen=True)

    name: str
    network_address: str | None = None  # e.g. "192.168.121.0"
    ip_address: str | None = None  # Host-side address of the network
    netmask: str | None = None
    bridge_name: str | None = None
    forward_mode: str | None = None  # nat, route, bridge... None when isolated
    active: bool = False
    autostart: bool = False


class GuestNetworkConfig(BaseModel):
    """One entry of the guest ``configure_networks`` batch."""

    interface: int
    type: Literal["static", "dhcp"]
    ip: str | None = None
    netmask: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


# --- Raw configuration merge ---


def split_scoped_options(
    raw: dict[str, Any],
    scope: str = PROVIDER_SCOPE,
) -> tuple[BaseInterfaceOptions, ProviderInterfaceOptions]:
    """Split raw options into unscoped and provider-scoped option sets.

    ``{"ip": "10.0.0.5", "libvirt__network_name": "lab"}`` yields
    base ``ip=10.0.0.5`` and provider ``network_name=lab``. Keys scoped to
    other providers are dropped.
    """
    prefix = f"{scope}__"
    base: dict[str, Any] = {}
    scoped: dict[str, Any] = {}
    for key, value in (raw or {}).items():
        key = str(key).lstrip(":")
        if key.startswith(prefix):
            scoped[key[len(prefix):]] = value
        elif "__" in key:
            continue
        else:
            base[key] = value
    return (
        BaseInterfaceOptions.model_validate(base),
        ProviderInterfaceOptions.model_validate(scoped),
    )


def merge_interface_options(
    iface_type: str,
    base: BaseInterfaceOptions,
    override: ProviderInterfaceOptions,
) -> InterfaceIntent:
    """Merge base options with provider overrides into an InterfaceIntent.

    Provider-scoped values win over unscoped ones; unset fields fall back to
    the intent defaults (netmask 255.255.255.0).
    """
    merged = base.model_dump(exclude_none=True)
    merged.update(override.model_dump(exclude_none=True))
    return InterfaceIntent(iface_type=iface_type, **merged)


def intent_from_config(iface_type: str, raw: dict[str, Any]) -> InterfaceIntent:
    """Build an InterfaceIntent from one ``(type, options)`` config pair."""
    base, override = split_scoped_options(raw)
    return merge_interface_options(iface_type, base, override)


def intents_from_config(
    networks: Iterable[tuple[str, dict[str, Any]]],
) -> list[InterfaceIntent]:
    """Build intents for every declared network, preserving declaration order."""
    return [intent_from_config(iface_type, raw) for iface_type, raw in networks]
