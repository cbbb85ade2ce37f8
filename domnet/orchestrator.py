"""Two-phase network interface provisioning for a domain.

Phase one (``prepare_and_attach``) runs before the domain boots: look up the
domain, allocate interface slots, resolve each slot's network and attach one
device per slot. Phase two (``configure_after_boot``) runs once the boot
pipeline has brought the guest up and hands the guest a single
``configure_networks`` batch covering every slot except the management slot.

``provision`` drives both phases around a caller-supplied boot step;
``provision_libvirt_domain`` does the same over a connection it owns.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator, Protocol, Union

from domnet.config import settings
from domnet.network.devices import DeviceAttacher, InterfaceDevice, interface_name
from domnet.network.guest_config import GuestCapabilities, PostBootConfigurator
from domnet.network.resolver import NetworkResolver
from domnet.network.slots import SlotAllocator, SlotTable
from domnet.providers.libvirt import LibvirtHypervisor
from domnet.schemas import (
    GuestNetworkConfig,
    InterfaceIntent,
    NetworkDescriptor,
    intent_from_config,
)
from domnet.state import ProvisionState, ProvisionStateMachine
from domnet.timing import PhaseTimer

logger = logging.getLogger(__name__)

NetworkSpec = Union[InterfaceIntent, tuple[str, dict[str, Any]]]


class Hypervisor(Protocol):
    """Hypervisor operations the provisioner depends on."""

    def lookup_domain(self, domain_id: str) -> Any:
        ...

    def list_networks(self) -> list[NetworkDescriptor]:
        ...


@dataclass
class ProvisionRun:
    """Progress and results of one provisioning run."""

    domain_id: str | None = None
    state: ProvisionState = ProvisionState.RESOLVING_DOMAIN
    failed_state: ProvisionState | None = None
    error: str | None = None
    domain: Any = None
    table: SlotTable | None = None
    attached: list[InterfaceDevice] = field(default_factory=list)
    guest_requests: list[GuestNetworkConfig] = field(default_factory=list)

    def advance(self, target: ProvisionState) -> None:
        if not ProvisionStateMachine.can_transition(self.state, target):
            raise RuntimeError(
                f"Invalid provisioning transition {self.state.value} -> {target.value}"
            )
        logger.debug("Provisioning %s: %s -> %s", self.domain_id, self.state.value, target.value)
        self.state = target

    def fail(self, exc: BaseException) -> None:
        if ProvisionStateMachine.is_terminal(self.state):
            return
        self.failed_state = self.state
        self.error = getattr(exc, "message", None) or str(exc)
        self.state = ProvisionState.FAILED
        logger.error(
            "Provisioning %s failed while %s: %s",
            self.domain_id,
            self.failed_state.value,
            self.error,
        )

    @property
    def succeeded(self) -> bool:
        return self.state == ProvisionState.DONE


def _to_intent(spec: NetworkSpec) -> InterfaceIntent:
    if isinstance(spec, InterfaceIntent):
        return spec
    iface_type, raw = spec
    return intent_from_config(iface_type, raw)


class InterfaceProvisioner:
    """Creates a domain's network interfaces and activates them in the guest.

    Execution is synchronous and fail-fast: the first error aborts the run,
    and devices attached before it stay on the domain.
    """

    def __init__(
        self,
        hypervisor: Hypervisor,
        management_network_name: str | None = None,
        *,
        catalog: Any = None,
        allocator: SlotAllocator | None = None,
        attacher: DeviceAttacher | None = None,
        configurator: PostBootConfigurator | None = None,
        ui: Callable[[str], None] | None = None,
    ):
        self.hypervisor = hypervisor
        self.management_network_name = (
            management_network_name or settings.management_network_name
        )
        self.catalog = catalog if catalog is not None else hypervisor
        self.allocator = allocator or SlotAllocator()
        self.attacher = attacher or DeviceAttacher()
        self.configurator = configurator or PostBootConfigurator()
        self._ui = ui

    def _info(self, message: str) -> None:
        logger.info(message)
        if self._ui is not None:
            self._ui(message)

    @contextmanager
    def _phase(self, run: ProvisionRun, state: ProvisionState) -> Iterator[None]:
        if run.state != state:
            run.advance(state)
        try:
            with PhaseTimer(state, run.domain_id):
                yield
        except Exception as e:
            run.fail(e)
            raise

    # --- Phase one: before boot ---

    def prepare_and_attach(
        self,
        domain_id: str,
        networks: Iterable[NetworkSpec],
        run: ProvisionRun | None = None,
    ) -> SlotTable:
        """Allocate, resolve and attach every declared interface.

        Args:
            domain_id: UUID of the target domain
            networks: Declared networks in declaration order, either
                InterfaceIntents or raw ``(type, options)`` pairs
            run: Run record to update; a fresh one is used when omitted

        Returns:
            The resolved slot table, needed for ``configure_after_boot``

        Raises:
            NoDomainError, InterfaceSlotError, AttachDeviceError
        """
        if run is None:
            run = ProvisionRun(domain_id=domain_id)
        run.domain_id = domain_id

        with self._phase(run, ProvisionState.RESOLVING_DOMAIN):
            run.domain = self.hypervisor.lookup_domain(domain_id)

        with self._phase(run, ProvisionState.ALLOCATING_SLOTS):
            intents = [_to_intent(spec) for spec in networks]
            for intent in intents:
                logger.debug("In config found network type %s options %s",
                             intent.iface_type, intent.model_dump(exclude_none=True))
            run.table = self.allocator.allocate(intents)

        table = run.table
        with self._phase(run, ProvisionState.RESOLVING_NETWORKS):
            resolver = NetworkResolver(self.catalog, self.management_network_name)
            for assignment in list(table):
                network_name = resolver.resolve(assignment)
                table.replace(assignment.model_copy(update={"network_name": network_name}))

        with self._phase(run, ProvisionState.ATTACHING_DEVICES):
            for assignment in table:
                run.attached.append(self.attacher.attach(run.domain, assignment))

        run.advance(ProvisionState.AWAITING_BOOT)
        logger.info(
            "Attached %d interfaces to %s: %s",
            len(run.attached),
            domain_id,
            ", ".join(interface_name(d.slot) for d in run.attached),
        )
        return table

    # --- Phase two: after boot ---

    def configure_after_boot(
        self,
        table: SlotTable,
        guest: GuestCapabilities,
        run: ProvisionRun | None = None,
    ) -> list[GuestNetworkConfig]:
        """Ask the running guest to configure every non-management slot."""
        if run is None:
            run = ProvisionRun(state=ProvisionState.AWAITING_BOOT, table=table)

        with self._phase(run, ProvisionState.CONFIGURING_GUEST):
            self._info("Configuring and enabling network interfaces...")
            run.guest_requests = self.configurator.configure(table, guest)

        run.advance(ProvisionState.DONE)
        return run.guest_requests

    def provision(
        self,
        domain_id: str,
        networks: Iterable[NetworkSpec],
        boot: Callable[[], Any],
        guest: GuestCapabilities,
    ) -> ProvisionRun:
        """Run both phases around ``boot``, the rest of the boot pipeline.

        ``boot`` must return only once the guest is up. Errors from any step,
        including ``boot``, propagate after the run is marked failed.
        """
        run = ProvisionRun(domain_id=domain_id)
        table = self.prepare_and_attach(domain_id, networks, run=run)

        try:
            boot()
        except Exception as e:
            run.fail(e)
            raise

        self.configure_after_boot(table, guest, run=run)
        return run


def provision_libvirt_domain(
    domain_id: str,
    networks: Iterable[NetworkSpec],
    boot: Callable[[], Any],
    guest: GuestCapabilities,
    *,
    uri: str | None = None,
    **kwargs: Any,
) -> ProvisionRun:
    """Provision ``domain_id`` over its own libvirt connection.

    The connection is closed once the run finishes, whether it succeeded or
    not. Extra keyword arguments go to ``InterfaceProvisioner``.
    """
    with LibvirtHypervisor(uri) as hypervisor:
        return InterfaceProvisioner(hypervisor, **kwargs).provision(
            domain_id, networks, boot, guest
        )
