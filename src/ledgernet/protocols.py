"""
LedgerNet Protocol Definitions

Protocols are the seams of the builder: orchestration code only talks to a
container engine and to the identity/genesis collaborator through them, so it
can run against the real Docker engine or an in-memory fake.
"""

from typing import Protocol, Dict, Any, List, Optional, runtime_checkable


# ============================================================================
# Engine Protocol
# ============================================================================

@runtime_checkable
class ContainerEngine(Protocol):
    """
    Narrow container engine interface.

    Implementations raise `ResourceNotFoundError` for missing containers or
    networks and `EngineError` for every other failure.
    """

    def create_network(self, name: str, labels: Dict[str, str], subnet: Optional[str] = None) -> Any:
        """
        Create an isolated, labelled network.

        Returns:
            NetworkRecord with id, name, subnet and gateway
        """
        ...

    def list_networks(self, labels: Dict[str, str]) -> List[Any]:
        """List networks carrying every given label."""
        ...

    def remove_network(self, network_id: str) -> None:
        ...

    def create_container(self, spec: Any) -> str:
        """
        Create (but do not start) a container.

        Args:
            spec: ContainerSpec describing image, entrypoint, mounts and network

        Returns:
            Engine-assigned container id
        """
        ...

    def start_container(self, container_id: str) -> None:
        ...

    def stop_container(self, container_id: str) -> None:
        ...

    def remove_container(self, container_id: str, force: bool = True) -> None:
        ...

    def wait_container(self, container_id: str) -> int:
        """Block until the container exits and return its exit code."""
        ...

    def list_containers(self, labels: Dict[str, str]) -> List[Any]:
        """List containers (running or not) carrying every given label."""
        ...

    def list_images(self, reference: str) -> List[str]:
        """Return ids of local images matching the reference."""
        ...

    def pull_image(self, reference: str) -> None:
        ...


# ============================================================================
# Bootstrap Protocol
# ============================================================================

@runtime_checkable
class BootstrapProtocol(Protocol):
    """
    Identity and genesis collaborator.

    Called by the Builder after addresses are leased and before any container
    starts.
    """

    def generate_node_identities(self, count: int, addresses: List[str]) -> List[Any]:
        """
        Create one identity (keys, enode, data dir) per node.

        Args:
            count: Number of nodes
            addresses: Ledger node address per index

        Returns:
            List of NodeIdentity in index order
        """
        ...

    def write_permissioned_peers(self, identities: List[Any]) -> None:
        """Write the permissioned peers file into every node data dir."""
        ...

    def generate_genesis(self, identities: List[Any], consensus_name: str, consensus_config: Dict[str, Any]) -> Any:
        """
        Create the genesis description shared by the whole network.

        Returns:
            GenesisDoc
        """
        ...
