import json
import logging
import shlex
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from .. import constants
from ..constants import Role
from ..datacls import ContainerSpec, TxManagerKeys
from ..exceptions import BuildStateError, ConfigError, EngineError, KeyGenerationError
from ..utils.merge import deep_merge, render_flags
from .configurable import Configurable, ContainerOptions

logger = logging.getLogger(__name__)


class ManagedContainer(Configurable, ABC):
    """
    One node's container for one role.

    `start()` creates and starts the container exactly once; it returns as soon
    as the engine accepted the start call.
    """
    role: Role
    short_role: str

    def __init__(self, options: ContainerOptions):
        super().__init__(options)
        self.container_id: Optional[str] = None

    @property
    def name(self) -> str:
        return f"{self.options.provision_id}-{self.short_role}{self.index}"

    @abstractmethod
    def container_spec(self) -> ContainerSpec:
        """Describes the long-running container."""
        ...

    def labels(self, role: Optional[Role] = None) -> Dict[str, str]:
        labels = dict(self.options.labels)
        labels[constants.LABEL_ROLE] = (role or self.role).value
        labels[constants.LABEL_INDEX] = str(self.index)
        return labels

    def start(self):
        if self.container_id is not None:
            raise BuildStateError(f"{self.name} was already started as {self.container_id[:12]}.")
        spec = self.container_spec()
        logger.debug(f"[{self.role.value}] Creating container '{spec.name}' at {spec.ip}")
        self.container_id = self.engine.create_container(spec)
        self.engine.start_container(self.container_id)
        logger.info(f"[{self.role.value}] Node {self.index} started ({self.container_id[:12]}).")

    def stop(self):
        if self.container_id is None:
            logger.debug(f"[{self.role.value}] Node {self.index} was never started.")
            return
        self.engine.stop_container(self.container_id)
        logger.info(f"[{self.role.value}] Node {self.index} stopped.")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(index={self.index}, ip={self.ip!r}, container_id={self.container_id!r})"


class TxManager(ManagedContainer):
    """
    Tessera transaction manager paired with one ledger node.
    """
    role = Role.TX_MANAGER
    short_role = "tm"

    PUBLIC_KEYS = "tx_manager.public_keys"
    PRIVATE_KEYS = "tx_manager.private_keys"

    @classmethod
    def create(cls, options: ContainerOptions) -> "TxManager":
        """Builds the unit and generates its key pair."""
        tm = cls(options)
        keys = tm.generate_keys()
        tm.set(cls.PUBLIC_KEYS, [keys.public])
        tm.set(cls.PRIVATE_KEYS, [keys.private])
        return tm

    @property
    def public_keys(self) -> List[str]:
        return self.get(self.PUBLIC_KEYS, [])

    def generate_keys(self) -> TxManagerKeys:
        """
        Runs the key generator of the image in a throw-away container.

        The container writes `.pub` and `.key` into a scratch dir bind-mounted
        as its working directory; the container is removed whatever happens.
        """
        scratch = self.options.keygen_dir
        scratch.mkdir(parents=True, exist_ok=True)
        spec = ContainerSpec(
            image=self.image,
            name=f"{self.options.provision_id}-keygen{self.index}",
            entrypoint="/bin/sh",
            command=["-c", constants.TM_KEYGEN_SCRIPT],
            workdir=constants.TM_KEYGEN_WORKDIR,
            labels=self.labels(Role.KEYGEN),
            volumes=[(str(scratch), constants.TM_KEYGEN_WORKDIR)],
        )
        logger.debug(f"[TxManager] Generating keys for node {self.index} in '{scratch}'")

        try:
            container_id = self.engine.create_container(spec)
        except EngineError as e:
            raise KeyGenerationError(f"node {self.index}: can't create key generation container - {e}") from e

        try:
            self.engine.start_container(container_id)
            exit_code = self.engine.wait_container(container_id)
        except EngineError as e:
            raise KeyGenerationError(f"node {self.index}: key generation container {container_id[:12]} failed - {e}") from e
        finally:
            self._remove_keygen(container_id)

        if exit_code != 0:
            raise KeyGenerationError(f"node {self.index}: key generation exited with code {exit_code}")

        try:
            public = (scratch / constants.TM_PUBLIC_KEY_FILENAME).read_text().strip()
            private = (scratch / constants.TM_PRIVATE_KEY_FILENAME).read_text().strip()
        except OSError as e:
            raise KeyGenerationError(f"node {self.index}: can't read generated keys - {e}") from e
        if not public or not private:
            raise KeyGenerationError(f"node {self.index}: key generation produced empty key files")
        return TxManagerKeys(public=public, private=private)

    def _remove_keygen(self, container_id: str):
        try:
            self.engine.remove_container(container_id, force=True)
        except EngineError as e:
            # leftovers carry the build labels and are removed by destroy
            logger.warning(f"[TxManager] Could not remove key generation container {container_id[:12]}: {e}")

    def tessera_config(self) -> Dict:
        private_keys = self.get(self.PRIVATE_KEYS)
        if not private_keys:
            raise ConfigError(f"Tx manager {self.index} has no key material; run generate_keys first.")

        key_data = []
        for public, private in zip(self.public_keys, private_keys):
            try:
                private_config = json.loads(private)
            except json.JSONDecodeError as e:
                raise KeyGenerationError(f"node {self.index}: private key is not valid JSON - {e}") from e
            key_data.append({"config": private_config, "publicKey": public})

        mount = constants.LEDGER_TM_MOUNT
        generated = {
            "useWhiteList": False,
            "jdbc": {
                "username": "sa",
                "password": "",
                "url": f"jdbc:h2:{mount}/db;MODE=Oracle;TRACE_LEVEL_SYSTEM_OUT=0",
                "autoCreateTables": True,
            },
            "serverConfigs": [
                {
                    "app": "ThirdParty",
                    "enabled": True,
                    "serverAddress": f"http://{self.ip}:{constants.TM_THIRD_PARTY_PORT}",
                    "communicationType": "REST",
                },
                {
                    "app": "Q2T",
                    "enabled": True,
                    "serverAddress": f"unix:{mount}/{constants.TM_IPC_FILENAME}",
                    "communicationType": "REST",
                },
                {
                    "app": "P2P",
                    "enabled": True,
                    "serverAddress": f"http://{self.ip}:{constants.TM_P2P_PORT}",
                    "sslConfig": {"tls": "OFF"},
                    "communicationType": "REST",
                },
            ],
            "peer": [{"url": f"http://{peer}:{constants.TM_P2P_PORT}"} for peer in self.options.peers],
            "keys": {"passwords": [], "keyData": key_data},
            "alwaysSendTo": [],
        }
        return deep_merge(generated, self.options.config)

    def container_spec(self) -> ContainerSpec:
        tm_dir = self.options.tm_dir
        tm_dir.mkdir(parents=True, exist_ok=True)
        config_path = tm_dir / constants.TM_CONFIG_FILENAME
        config_path.write_text(json.dumps(self.tessera_config(), indent=2))
        logger.debug(f"[TxManager] Wrote config for node {self.index} to '{config_path}'")

        return ContainerSpec(
            image=self.image,
            name=self.name,
            hostname=self.name,
            entrypoint="java",
            command=[
                "-Xms128M",
                "-Xmx128M",
                "-jar",
                constants.TM_JAR,
                "-configfile",
                f"{constants.LEDGER_TM_MOUNT}/{constants.TM_CONFIG_FILENAME}",
            ],
            labels=self.labels(),
            volumes=[(str(tm_dir), constants.LEDGER_TM_MOUNT)],
            network=self.options.network,
            ip=self.ip,
        )


class LedgerNode(ManagedContainer):
    """
    Permissioned ledger node. Its identity, genesis and permissioned peers file
    are prepared by the Builder before it starts.
    """
    role = Role.LEDGER_NODE
    short_role = "node"

    def __init__(self, options: ContainerOptions):
        super().__init__(options)
        if options.identity is None:
            raise ConfigError(f"Ledger node {options.node_index} has no identity.")
        if options.genesis is None:
            raise ConfigError(f"Ledger node {options.node_index} has no genesis.")

    @property
    def identity(self):
        return self.options.identity

    def flags(self) -> List[str]:
        defaults = {
            "datadir": constants.LEDGER_DATA_MOUNT,
            "nodiscover": True,
            "permissioned": True,
            "networkid": constants.LEDGER_NETWORK_ID,
            "port": constants.LEDGER_P2P_PORT,
            "rpc": True,
            "rpcaddr": "0.0.0.0",
            "rpcport": constants.LEDGER_RPC_PORT,
            "rpcapi": constants.LEDGER_RPC_API,
            "verbosity": 3,
        }
        if self.options.consensus == constants.RAFT:
            defaults.update({"raft": True, "raftport": constants.LEDGER_RAFT_PORT})
        account = self.identity.account
        if account is not None:
            defaults.update({
                "unlock": account.address,
                "password": f"{constants.LEDGER_DATA_MOUNT}/{constants.PASSWORD_FILENAME}",
                "etherbase": account.address,
            })
        defaults.update(self.options.config)
        return render_flags(defaults)

    def container_spec(self) -> ContainerSpec:
        data_dir = self.identity.data_dir
        genesis_path = data_dir / constants.GENESIS_FILENAME
        genesis_path.write_text(self.options.genesis.to_json())

        mount = constants.LEDGER_DATA_MOUNT
        script = (
            f"geth --datadir {mount} init {mount}/{constants.GENESIS_FILENAME} && "
            f"exec geth {' '.join(shlex.quote(arg) for arg in self.flags())}"
        )
        return ContainerSpec(
            image=self.image,
            name=self.name,
            hostname=self.name,
            entrypoint="/bin/sh",
            command=["-c", script],
            envs={"PRIVATE_CONFIG": f"{constants.LEDGER_TM_MOUNT}/{constants.TM_IPC_FILENAME}"},
            labels=self.labels(),
            volumes=[
                (str(data_dir), constants.LEDGER_DATA_MOUNT),
                (str(self.options.tm_dir), constants.LEDGER_TM_MOUNT),
            ],
            network=self.options.network,
            ip=self.ip,
        )
