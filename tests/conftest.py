import json
import threading
from collections import Counter
from pathlib import Path
from typing import Dict, List, Optional

import pytest
import yaml

from ledgernet import constants
from ledgernet.config import Config
from ledgernet.datacls import ContainerRecord, ContainerSpec, NetworkRecord
from ledgernet.exceptions import EngineError, ResourceNotFoundError

PRIVATE_KEY_JSON = json.dumps({"data": {"bytes": "c2VjcmV0"}, "type": "unlocked"})


class FakeEngine:
    """
    In-memory ContainerEngine.

    Like Docker, it refuses static container addresses on networks whose
    subnet it picked itself. Keygen containers write `.pub` and `.key` into
    their bind-mounted working directory when started and exit with
    `keygen_exit_codes[index]` (default `keygen_exit_code`). Failures are
    injected per (operation, role, index).
    """

    def __init__(self, subnet: str = "172.30.0.0/24", gateway: Optional[str] = "172.30.0.1"):
        self.subnet = subnet
        self.gateway = gateway
        self.lock = threading.Lock()
        self.calls = Counter()
        self.networks: Dict[str, NetworkRecord] = {}
        self.requested_subnets: List[Optional[str]] = []
        self.auto_networks: set = set()
        self.containers: Dict[str, ContainerRecord] = {}
        self.specs: Dict[str, ContainerSpec] = {}
        self.images: set = set()
        self.started: List[ContainerSpec] = []
        self.failures: Dict[tuple, Exception] = {}
        self.keygen_exit_code = 0
        self.keygen_exit_codes: Dict[int, int] = {}
        self.keygen_writes_keys = True
        self._next_id = 0

    def fail(self, operation: str, role: Optional[str] = None, index: Optional[int] = None, error=None):
        self.failures[(operation, role, index)] = error or EngineError(f"injected {operation} failure")

    def _maybe_fail(self, operation: str, labels: Optional[Dict[str, str]] = None):
        labels = labels or {}
        role = labels.get(constants.LABEL_ROLE)
        index = labels.get(constants.LABEL_INDEX)
        index = int(index) if index is not None else None
        for key in ((operation, role, index), (operation, role, None), (operation, None, None)):
            if key in self.failures:
                raise self.failures[key]

    def _new_id(self, prefix: str) -> str:
        with self.lock:
            self._next_id += 1
            return f"{prefix}{self._next_id:012d}"

    def _container(self, container_id: str) -> ContainerRecord:
        with self.lock:
            record = self.containers.get(container_id)
        if record is None:
            raise ResourceNotFoundError(f"container {container_id} not found")
        return record

    @staticmethod
    def _matches(record_labels: Dict[str, str], labels: Dict[str, str]) -> bool:
        return all(record_labels.get(k) == v for k, v in labels.items())

    # Networks

    def create_network(self, name, labels, subnet=None):
        with self.lock:
            self.calls["create_network"] += 1
            self.requested_subnets.append(subnet)
        self._maybe_fail("create_network")
        record = NetworkRecord(
            id=self._new_id("net"),
            name=name,
            subnet=subnet or self.subnet,
            gateway=None if subnet else self.gateway,
            labels=dict(labels),
        )
        with self.lock:
            self.networks[record.id] = record
            if not subnet:
                self.auto_networks.add(record.id)
        return record

    def list_networks(self, labels):
        self._maybe_fail("list_networks")
        with self.lock:
            return [n for n in self.networks.values() if self._matches(n.labels, labels)]

    def remove_network(self, network_id):
        with self.lock:
            self.calls["remove_network"] += 1
        self._maybe_fail("remove_network")
        with self.lock:
            if self.networks.pop(network_id, None) is None:
                raise ResourceNotFoundError(f"network {network_id} not found")

    # Containers

    def create_container(self, spec):
        with self.lock:
            self.calls["create_container"] += 1
        self._maybe_fail("create_container", spec.labels)
        if spec.ip and spec.network in self.auto_networks:
            raise EngineError(
                "user specified IP address is supported only when connecting to networks with user configured subnets"
            )
        container_id = self._new_id("ctr")
        with self.lock:
            self.containers[container_id] = ContainerRecord(
                id=container_id, name=spec.name or container_id, status="created", labels=dict(spec.labels),
            )
            self.specs[container_id] = spec
        return container_id

    def start_container(self, container_id):
        record = self._container(container_id)
        self._maybe_fail("start_container", record.labels)
        spec = self.specs[container_id]
        if self.keygen_writes_keys and record.labels.get(constants.LABEL_ROLE) == constants.Role.KEYGEN.value:
            host_dir = Path(spec.volumes[0][0])
            (host_dir / constants.TM_PUBLIC_KEY_FILENAME).write_text(f"pub-{record.labels[constants.LABEL_INDEX]}\n")
            (host_dir / constants.TM_PRIVATE_KEY_FILENAME).write_text(PRIVATE_KEY_JSON)
        with self.lock:
            record.status = "running"
            self.started.append(spec)

    def stop_container(self, container_id):
        record = self._container(container_id)
        record.status = "exited"

    def remove_container(self, container_id, force=True):
        with self.lock:
            self.calls["remove_container"] += 1
            record = self.containers.get(container_id)
        if record is None:
            raise ResourceNotFoundError(f"container {container_id} not found")
        self._maybe_fail("remove_container", record.labels)
        with self.lock:
            self.containers.pop(container_id, None)

    def wait_container(self, container_id):
        record = self._container(container_id)
        self._maybe_fail("wait_container", record.labels)
        record.status = "exited"
        index = int(record.labels.get(constants.LABEL_INDEX, -1))
        return self.keygen_exit_codes.get(index, self.keygen_exit_code)

    def list_containers(self, labels):
        self._maybe_fail("list_containers")
        with self.lock:
            return [c for c in self.containers.values() if self._matches(c.labels, labels)]

    # Images

    def list_images(self, reference):
        with self.lock:
            self.calls["list_images"] += 1
        self._maybe_fail("list_images")
        with self.lock:
            return [f"sha256:{reference}"] if reference in self.images else []

    def pull_image(self, reference):
        with self.lock:
            self.calls["pull_image"] += 1
            self.calls[f"pull:{reference}"] += 1
        self._maybe_fail("pull_image")
        with self.lock:
            self.images.add(reference)

    # Helpers

    def started_roles(self) -> List[str]:
        """Roles of started long-running containers, in start order."""
        with self.lock:
            return [
                s.labels[constants.LABEL_ROLE] for s in self.started
                if s.labels.get(constants.LABEL_ROLE) != constants.Role.KEYGEN.value
            ]

    def running(self, role: str) -> List[ContainerRecord]:
        with self.lock:
            return [c for c in self.containers.values() if c.labels.get(constants.LABEL_ROLE) == role]


def make_config_data(count: int = 3, name: str = "testnet", **extra) -> dict:
    data = {
        "name": name,
        "consensus": {"name": "raft", "config": {"raftBlockTime": 50}},
        "nodes": [
            {
                "ledger": {"image": "quorumengineering/quorum:2.4.0"},
                "tx_manager": {"image": "quorumengineering/tessera:0.10.0"},
            }
            for _ in range(count)
        ],
    }
    data.update(extra)
    return data


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def make_config():
    """Builds a validated Config for `count` nodes."""
    def _make(count: int = 3, **extra) -> Config:
        return Config.from_dict(make_config_data(count, **extra))
    return _make


@pytest.fixture
def config_file(tmp_path):
    """Two-node build file on disk."""
    path = tmp_path / "network.yml"
    path.write_text(yaml.dump(make_config_data(2)))
    return path
