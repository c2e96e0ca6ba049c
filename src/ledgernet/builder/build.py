import logging
import shutil
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .. import constants
from ..bootstrap import Bootstrapper
from ..config import Config, ImageSpecModel, NodeModel
from ..datacls import BuildContext, ContainerRecord, GenesisDoc, NetworkRecord, NodeIdentity, WorkResult
from ..exceptions import (
    BuildStateError,
    DestroyError,
    EngineError,
    GenesisGenerationError,
    IdentityGenerationError,
    ImagePullError,
    LedgerNetError,
    ResourceNotFoundError,
)
from ..protocols import BootstrapProtocol, ContainerEngine
from .configurable import ContainerOptions
from .containers import LedgerNode, TxManager
from .net import NetworkManager
from .parallel import run_in_parallel

logger = logging.getLogger(__name__)


class BuildState(str, Enum):
    INIT = "init"
    NETWORK_BUILT = "network-built"
    TX_MANAGERS_STARTED = "tx-managers-started"
    LEDGER_NODES_STARTED = "ledger-nodes-started"
    RUNNING = "running"
    DESTROYED = "destroyed"


_STATE_ORDER = list(BuildState)


@dataclass
class NodeUnits:
    """Both containers of one node, as far as they got."""
    index: int
    spec: NodeModel
    tx_manager: Optional[TxManager] = None
    ledger: Optional[LedgerNode] = None
    identity: Optional[NodeIdentity] = None


class Builder:
    """
    Provisions one labelled network with a tx manager and a ledger node per
    configured node, and tears everything carrying the build label down again.
    """

    def __init__(
        self,
        config: Config,
        engine: ContainerEngine,
        bootstrapper: Optional[BootstrapProtocol] = None,
    ):
        self.config = config
        self.engine = engine
        self.bootstrapper = bootstrapper
        self.labels: Dict[str, str] = {constants.LABEL_ID: config.name}
        self.state = BuildState.INIT
        self.context: Optional[BuildContext] = None
        self.nodes: List[NodeUnits] = [NodeUnits(index=i, spec=n) for i, n in enumerate(config.nodes)]
        self.genesis: Optional[GenesisDoc] = None
        self._tm_ips: List[str] = []
        self._node_ips: List[str] = []
        logger.debug(f"[Builder] Builder initialized for '{config.name}' with {len(self.nodes)} node(s).")

    @property
    def name(self) -> str:
        return self.config.name

    def node(self, index: int) -> Optional[NodeUnits]:
        if 0 <= index < len(self.nodes):
            return self.nodes[index]
        return None

    # 1. Build network
    # 2. Start tx managers
    # 3. Start ledger nodes
    async def build(self) -> BuildContext:
        """
        Drives the pipeline up to RUNNING, raising at the first failing step.

        Units started before a failure are left in place; call `destroy()`.
        """
        if self.state != BuildState.INIT:
            raise BuildStateError(f"Build '{self.name}' is {self.state.value}; a Builder builds only once.")
        logger.info(f"[Builder] Starting build '{self.name}' with {len(self.nodes)} node(s)...")

        self.context = self._init_ctx()
        self._build_network()
        self._plan_net()
        self._bootstrap()
        await self._start_tx_managers()
        await self._start_ledger_nodes()
        self._advance(BuildState.RUNNING)

        logger.info(f"[Builder] Build '{self.name}' is running on {self.context.network.subnet}.")
        return self.context

    def _init_ctx(self) -> BuildContext:
        tmp_dir = Path(tempfile.mkdtemp(prefix=f"{constants.TMP_DIR_PREFIX}{self.name}-"))
        logger.debug(f"[Builder] Working directory is '{tmp_dir}'.")
        if self.bootstrapper is None:
            self.bootstrapper = Bootstrapper(
                tmp_dir,
                consensus=self.config.consensus.name,
                base_genesis=self.config.genesis_path,
            )
        return BuildContext(
            name=self.name,
            labels=self.labels,
            engine=self.engine,
            tmp_dir=tmp_dir,
        )

    def _build_network(self):
        logger.debug(f"[Builder] Create network '{self.name}'")
        network = NetworkManager(self.engine).create(self.name, self.labels, subnet=self.config.inet)
        self.context = self.context.model_copy(update={"network": network})
        self._advance(BuildState.NETWORK_BUILT)

    def _plan_net(self):
        """Leases every address up front so identities match the final containers."""
        count = len(self.nodes)
        network = self.context.network
        self._tm_ips = network.lease_addresses(count)
        self._node_ips = network.lease_addresses(count)
        logger.debug(f"[Builder] Tx manager addresses: {self._tm_ips}")
        logger.debug(f"[Builder] Ledger node addresses: {self._node_ips}")

    def _bootstrap(self):
        count = len(self.nodes)
        consensus = self.config.consensus
        identities = _call(
            IdentityGenerationError, "generate node identities",
            self.bootstrapper.generate_node_identities, count, list(self._node_ips),
        )
        if len(identities) != count:
            raise IdentityGenerationError(f"Expected {count} node identities, got {len(identities)}.")
        for node, identity in zip(self.nodes, identities):
            node.identity = identity

        _call(
            IdentityGenerationError, "write permissioned peers",
            self.bootstrapper.write_permissioned_peers, identities,
        )
        self.genesis = _call(
            GenesisGenerationError, "generate genesis",
            self.bootstrapper.generate_genesis, identities, consensus.name, dict(consensus.config),
        )
        logger.debug(f"[Builder] Bootstrap material ready for {count} node(s).")

    async def _start_tx_managers(self):
        logger.debug("[Builder] Start tx managers")
        await self._start_containers("starting tx managers", self._start_tx_manager)
        self._advance(BuildState.TX_MANAGERS_STARTED)

    async def _start_ledger_nodes(self):
        logger.debug("[Builder] Start ledger nodes")
        await self._start_containers("starting ledger nodes", self._start_ledger_node)
        self._advance(BuildState.LEDGER_NODES_STARTED)

    async def _start_containers(self, title: str, start_fn: Callable[[int, NodeUnits], None]) -> List[WorkResult]:
        return await run_in_parallel(title, self.nodes, start_fn)

    def _start_tx_manager(self, index: int, node: NodeUnits):
        spec = node.spec.tx_manager
        self._pull_image(spec.image)
        options = self._options(index, spec).configure(
            my_ip=self._tm_ips[index],
            peers=list(self._tm_ips),
        )
        node.tx_manager = TxManager.create(options)
        logger.debug(f"[Builder] Start tx manager idx={index}")
        node.tx_manager.start()

    def _start_ledger_node(self, index: int, node: NodeUnits):
        spec = node.spec.ledger
        self._pull_image(spec.image)
        options = self._options(index, spec).configure(
            my_ip=self._node_ips[index],
            identity=node.identity,
            genesis=self.genesis,
            consensus=self.config.consensus.name,
            consensus_config=dict(self.config.consensus.config),
        )
        node.ledger = LedgerNode(options)
        logger.debug(f"[Builder] Start ledger node idx={index}")
        node.ledger.start()

    def _options(self, index: int, spec: ImageSpecModel) -> ContainerOptions:
        return ContainerOptions(
            engine=self.engine,
            provision_id=self.name,
            image=spec.image,
            config=dict(spec.config),
            labels=self.labels,
            network=self.context.network.id,
            tmp_dir=self.context.tmp_dir,
            node_index=index,
            node_count=len(self.nodes),
        )

    def _pull_image(self, image: str):
        """List-then-pull under the build's lock so one image is never pulled twice at once."""
        with self.context.pull_lock:
            logger.debug(f"[Builder] Pull image '{image}'")
            try:
                present = self.engine.list_images(image)
            except EngineError as e:
                logger.warning(f"[Builder] Could not list images for '{image}', pulling anyway: {e}")
                present = []
            if present:
                logger.debug(f"[Builder] Image '{image}' already present.")
                return
            try:
                self.engine.pull_image(image)
            except EngineError as e:
                raise ImagePullError(f"pull image '{image}': {e}") from e
            logger.info(f"[Builder] Pulled image '{image}'.")

    def _advance(self, state: BuildState):
        if _STATE_ORDER.index(state) <= _STATE_ORDER.index(self.state):
            raise BuildStateError(f"Illegal transition {self.state.value} -> {state.value}.")
        logger.debug(f"[Builder] {self.state.value} -> {state.value}")
        self.state = state

    # Teardown

    async def destroy(self):
        """
        Removes everything labelled with this build's id.

        Targets are found through the engine, not through in-process state, so
        a fresh Builder for the same build file tears down an earlier run.
        Missing resources are not errors; every other failure is collected and
        raised once both passes ran.
        """
        logger.info(f"[Builder] Destroying build '{self.name}'...")
        self._remove_tmp_dir()

        errors: List[Exception] = []
        for remove_pass in (self._remove_containers, self._remove_networks):
            try:
                await remove_pass()
            except LedgerNetError as e:
                errors.append(e)

        self.state = BuildState.DESTROYED
        self.context = None
        if errors:
            raise DestroyError(errors)
        logger.info(f"[Builder] Build '{self.name}' destroyed.")

    def _remove_tmp_dir(self):
        for tmp_dir in self._tmp_dirs():
            logger.debug(f"[Builder] Removing working directory '{tmp_dir}'")
            try:
                shutil.rmtree(tmp_dir)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"[Builder] Could not remove working directory '{tmp_dir}': {e}")

    def _tmp_dirs(self) -> List[Path]:
        """Working directories of every run of this build, including runs of other processes."""
        prefix = f"{constants.TMP_DIR_PREFIX}{self.name}-"
        found = {
            path for path in Path(tempfile.gettempdir()).glob(f"{prefix}*")
            # mkdtemp suffixes carry no '-', so 'lnet-testnet-2-*' is another build
            if path.is_dir() and "-" not in path.name[len(prefix):]
        }
        if self.context is not None:
            found.add(self.context.tmp_dir)
        return sorted(found)

    def list_containers(self) -> List[ContainerRecord]:
        return self.engine.list_containers(self.labels)

    async def _remove_containers(self):
        containers = self.list_containers()
        logger.debug(f"[Builder] Removing {len(containers)} container(s)")
        await run_in_parallel("removing containers", containers, self._remove_container)

    def _remove_container(self, _: int, container: ContainerRecord):
        logger.debug(f"[Builder] Removing container {container.id[:12]} ({container.name})")
        try:
            self.engine.remove_container(container.id, force=True)
        except ResourceNotFoundError:
            logger.debug(f"[Builder] Container {container.id[:12]} already removed.")

    async def _remove_networks(self):
        networks = self.engine.list_networks(self.labels)
        logger.debug(f"[Builder] Removing {len(networks)} network(s)")
        await run_in_parallel("removing networks", networks, self._remove_network)

    def _remove_network(self, _: int, network: NetworkRecord):
        logger.debug(f"[Builder] Removing network {network.id[:12]} ({network.name})")
        try:
            self.engine.remove_network(network.id)
        except ResourceNotFoundError:
            logger.debug(f"[Builder] Network {network.id[:12]} already removed.")


def _call(error_cls, what: str, fn: Callable, *args):
    """Calls a bootstrap collaborator, reporting foreign failures as `error_cls`."""
    try:
        return fn(*args)
    except LedgerNetError:
        raise
    except Exception as e:
        raise error_cls(f"{what}: {e}") from e
