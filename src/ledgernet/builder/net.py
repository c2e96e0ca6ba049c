import ipaddress
import logging
import threading
from typing import Dict, List, Optional, Set

from .. import constants
from ..protocols import ContainerEngine
from ..exceptions import (
    AddressPoolExhausted,
    EngineError,
    NetworkCreateError,
    ResourceNotFoundError,
)

logger = logging.getLogger(__name__)


class Network:
    """
    One isolated engine network and the address pool carved from its subnet.
    """

    def __init__(
        self,
        engine: ContainerEngine,
        network_id: str,
        name: str,
        labels: Dict[str, str],
        subnet: str,
        gateway: Optional[str] = None,
    ):
        self.engine = engine
        self.id = network_id
        self.name = name
        self.labels = dict(labels)
        self.subnet = ipaddress.ip_network(subnet)
        if gateway:
            self.gateway = ipaddress.ip_address(gateway)
        else:
            # docker hands the first host address to the bridge
            self.gateway = next(self.subnet.hosts(), None)
        self._leased: Set[ipaddress.IPv4Address] = set()
        self._lock = threading.Lock()

    @property
    def leased(self) -> List[str]:
        with self._lock:
            return [str(ip) for ip in sorted(self._leased)]

    @property
    def capacity(self) -> int:
        """Number of addresses still available for leasing."""
        with self._lock:
            return len(self._free())

    def lease_addresses(self, count: int) -> List[str]:
        """
        Leases `count` addresses in increasing order.

        The i-th address returned belongs to the i-th node; nothing is leased
        when the pool cannot satisfy the whole request.
        """
        if count < 0:
            raise ValueError("count must be >= 0")
        with self._lock:
            free = self._free()
            if len(free) < count:
                raise AddressPoolExhausted(
                    f"Subnet {self.subnet} has {len(free)} free address(es), {count} requested."
                )
            chosen = free[:count]
            self._leased.update(chosen)
        addresses = [str(ip) for ip in chosen]
        logger.debug(f"[Network] Leased {count} address(es) on '{self.name}': {addresses}")
        return addresses

    def _free(self) -> List[ipaddress.IPv4Address]:
        return [
            ip for ip in self.subnet.hosts()
            if ip != self.gateway and ip not in self._leased
        ]

    def destroy(self):
        """Removes the network; a network that is already gone is not an error."""
        logger.debug(f"[Network] Removing network '{self.name}' ({self.id[:12]})")
        try:
            self.engine.remove_network(self.id)
        except ResourceNotFoundError:
            logger.debug(f"[Network] Network '{self.name}' already removed.")

    def __repr__(self) -> str:
        return f"Network(name={self.name!r}, id={self.id[:12]!r}, subnet={str(self.subnet)!r})"


class NetworkManager:
    """
    Creates the single network of a build.

    The engine is always handed an explicit subnet: containers are started
    with static addresses, which Docker only accepts on networks with a
    user-configured subnet.
    """
    def __init__(
        self,
        engine: ContainerEngine,
        pool: str = constants.SUBNET_POOL,
        prefix: int = constants.SUBNET_PREFIX,
    ):
        self.engine = engine
        self.pool = ipaddress.ip_network(pool)
        self.prefix = prefix

    def create(self, name: str, labels: Dict[str, str], subnet: Optional[str] = None) -> Network:
        logger.info(f"[Network] Creating network '{name}'...")
        subnet = subnet or self.free_subnet()
        try:
            record = self.engine.create_network(name, labels, subnet=subnet)
        except EngineError as e:
            raise NetworkCreateError(f"Failed to create network '{name}': {e}") from e

        network = Network(
            self.engine,
            record.id,
            record.name,
            labels,
            subnet,
            gateway=record.gateway,
        )
        logger.info(f"[Network] Network '{name}' ready on {network.subnet} (gateway {network.gateway}).")
        return network

    def free_subnet(self) -> str:
        """First subnet of the pool that overlaps no existing engine network."""
        try:
            existing = self.engine.list_networks({})
        except EngineError as e:
            raise NetworkCreateError(f"Failed to list networks while choosing a subnet: {e}") from e

        taken = []
        for record in existing:
            if not record.subnet:
                continue
            try:
                taken.append(ipaddress.ip_network(record.subnet, strict=False))
            except ValueError:
                logger.debug(f"[Network] Ignoring unparsable subnet '{record.subnet}' of '{record.name}'")

        for candidate in self.pool.subnets(new_prefix=self.prefix):
            if not any(candidate.overlaps(other) for other in taken if other.version == candidate.version):
                logger.debug(f"[Network] Chose free subnet {candidate}")
                return str(candidate)
        raise NetworkCreateError(f"No free /{self.prefix} subnet left in {self.pool}.")
