import logging
from typing import Dict, List, Optional

from python_on_whales import DockerClient
from python_on_whales.exceptions import (
    DockerException,
    NoSuchContainer,
    NoSuchImage,
    NoSuchNetwork,
)

from .. import constants
from ..datacls import ContainerRecord, ContainerSpec, NetworkRecord
from ..exceptions import EngineError, ResourceNotFoundError

logger = logging.getLogger(__name__)


def label_filters(labels: Dict[str, str]) -> List[tuple]:
    """Turns a label set into docker `--filter label=k=v` pairs."""
    return [("label", f"{key}={value}") for key, value in sorted(labels.items())]


class WhalesEngine:
    """
    ContainerEngine backed by the docker CLI through python-on-whales.
    """

    def __init__(self, client: Optional[DockerClient] = None):
        self.client = client if client is not None else DockerClient()

    # Network Operations

    def create_network(self, name: str, labels: Dict[str, str], subnet: Optional[str] = None) -> NetworkRecord:
        logger.debug(f"[Engine] Creating network '{name}' (subnet={subnet or 'auto'})")
        try:
            network = self.client.network.create(
                name,
                driver=constants.NETWORK_DRIVER,
                labels=labels,
                subnet=subnet,
            )
        except DockerException as e:
            raise EngineError(f"create network '{name}': {_stderr(e)}") from e
        return self._network_to_record(network)

    def list_networks(self, labels: Dict[str, str]) -> List[NetworkRecord]:
        try:
            networks = self.client.network.list(filters=label_filters(labels))
        except DockerException as e:
            raise EngineError(f"list networks: {_stderr(e)}") from e
        return [self._network_to_record(n) for n in networks]

    def remove_network(self, network_id: str) -> None:
        try:
            self.client.network.remove(network_id)
        except NoSuchNetwork as e:
            raise ResourceNotFoundError(f"network {network_id} not found") from e
        except DockerException as e:
            raise EngineError(f"remove network {network_id}: {_stderr(e)}") from e

    def _network_to_record(self, network) -> NetworkRecord:
        subnet = None
        gateway = None
        ipam = getattr(network, "ipam", None)
        for config in (getattr(ipam, "config", None) or []):
            config_subnet = config.get("Subnet", "")
            # IPv6 pools are ignored
            if config_subnet and ":" not in config_subnet:
                subnet = config_subnet
                gateway = config.get("Gateway")
                break
        return NetworkRecord(
            id=network.id,
            name=network.name,
            subnet=subnet,
            gateway=gateway,
            labels=dict(getattr(network, "labels", None) or {}),
        )

    # Container Operations

    def create_container(self, spec: ContainerSpec) -> str:
        logger.debug(f"[Engine] Creating container '{spec.name}' from '{spec.image}'")
        try:
            container = self.client.container.create(
                spec.image,
                spec.command,
                entrypoint=spec.entrypoint,
                envs=spec.envs,
                hostname=spec.hostname,
                ip=spec.ip,
                labels=spec.labels,
                name=spec.name,
                networks=[spec.network] if spec.network else [],
                volumes=list(spec.volumes),
                workdir=spec.workdir,
            )
        except NoSuchImage as e:
            raise EngineError(f"create container '{spec.name}': image '{spec.image}' not found") from e
        except DockerException as e:
            raise EngineError(f"create container '{spec.name}': {_stderr(e)}") from e
        return container.id

    def start_container(self, container_id: str) -> None:
        try:
            self.client.container.start(container_id)
        except NoSuchContainer as e:
            raise ResourceNotFoundError(f"container {container_id} not found") from e
        except DockerException as e:
            raise EngineError(f"start container {container_id}: {_stderr(e)}") from e

    def stop_container(self, container_id: str) -> None:
        try:
            self.client.container.stop(container_id)
        except NoSuchContainer as e:
            raise ResourceNotFoundError(f"container {container_id} not found") from e
        except DockerException as e:
            raise EngineError(f"stop container {container_id}: {_stderr(e)}") from e

    def remove_container(self, container_id: str, force: bool = True) -> None:
        try:
            self.client.container.remove(container_id, force=force)
        except NoSuchContainer as e:
            raise ResourceNotFoundError(f"container {container_id} not found") from e
        except DockerException as e:
            raise EngineError(f"remove container {container_id}: {_stderr(e)}") from e

    def wait_container(self, container_id: str) -> int:
        try:
            return int(self.client.container.wait(container_id))
        except NoSuchContainer as e:
            raise ResourceNotFoundError(f"container {container_id} not found") from e
        except DockerException as e:
            raise EngineError(f"wait container {container_id}: {_stderr(e)}") from e

    def list_containers(self, labels: Dict[str, str]) -> List[ContainerRecord]:
        try:
            containers = self.client.container.list(all=True, filters=label_filters(labels))
        except DockerException as e:
            raise EngineError(f"list containers: {_stderr(e)}") from e
        return [
            ContainerRecord(
                id=c.id,
                name=c.name,
                status=getattr(c.state, "status", "") or "",
                labels=dict(getattr(c.config, "labels", None) or {}),
            )
            for c in containers
        ]

    # Image Operations

    def list_images(self, reference: str) -> List[str]:
        try:
            images = self.client.image.list(reference)
        except DockerException as e:
            raise EngineError(f"list images '{reference}': {_stderr(e)}") from e
        return [img.id for img in images]

    def pull_image(self, reference: str) -> None:
        try:
            self.client.image.pull(reference, quiet=True)
        except DockerException as e:
            raise EngineError(f"pull image '{reference}': {_stderr(e)}") from e


def _stderr(e: DockerException) -> str:
    stderr = getattr(e, "stderr", None)
    if stderr:
        return stderr.strip() if isinstance(stderr, str) else str(stderr).strip()
    return str(e)
