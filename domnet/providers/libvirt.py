"""Libvirt hypervisor adapter.

Provides the two hypervisor lookups the provisioner needs: the target domain
by UUID and the catalog of defined networks. The connection opens on first
use; use the hypervisor as a context manager to close it afterwards:

    with LibvirtHypervisor() as hypervisor:
        InterfaceProvisioner(hypervisor).provision(...)
"""

from __future__ import annotations

import logging
from typing import Any

from domnet.config import settings
from domnet.errors import NoDomainError
from domnet.network.catalog import LibvirtNetworkCatalog
from domnet.schemas import NetworkDescriptor

logger = logging.getLogger(__name__)


# Try to import libvirt - it's optional
try:
    import libvirt
    LIBVIRT_AVAILABLE = True
except ImportError:
    libvirt = None
    LIBVIRT_AVAILABLE = False


class LibvirtHypervisor:
    """Domain lookup and network catalog over a libvirt connection."""

    def __init__(self, uri: str | None = None):
        if not LIBVIRT_AVAILABLE:
            raise ImportError("libvirt-python package is not installed")
        self._conn: Any = None
        self._uri = uri or settings.libvirt_uri

    @property
    def conn(self) -> Any:
        """Lazy-initialize libvirt connection."""
        if self._conn is None or not self._conn.isAlive():
            self._conn = libvirt.open(self._uri)
            if self._conn is None:
                raise RuntimeError(f"Failed to connect to libvirt at {self._uri}")
        return self._conn

    def lookup_domain(self, domain_id: str) -> Any:
        """Return the ``virDomain`` with UUID ``domain_id``.

        Raises:
            NoDomainError: the lookup failed for any reason
        """
        try:
            domain = self.conn.lookupByUUIDString(str(domain_id))
        except Exception as e:
            raise NoDomainError(str(e), domain_id=str(domain_id)) from e
        if domain is None:
            raise NoDomainError(f"Domain {domain_id} not found", domain_id=str(domain_id))
        return domain

    def list_networks(self) -> list[NetworkDescriptor]:
        """All active and inactive networks, in libvirt's order."""
        return LibvirtNetworkCatalog(self.conn).list_networks()

    def __enter__(self) -> "LibvirtHypervisor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def close(self) -> None:
        if self._conn is not None:
            try:
                self._conn.close()
            except Exception as e:
                logger.debug("Ignoring error closing libvirt connection: %s", e)
            self._conn = None
