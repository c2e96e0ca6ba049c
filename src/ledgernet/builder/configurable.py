from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .. import constants
from ..datacls import GenesisDoc, NodeIdentity
from ..exceptions import ConfigError
from ..protocols import ContainerEngine


class ContainerOptions(BaseModel):
    """
    Named options a container is parameterised with before creation.

    Options never depend on each other, so the order in which they are applied
    does not matter. Unset options keep the defaults below.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    engine: Optional[ContainerEngine] = None
    provision_id: str = ""
    image: str = ""
    config: Dict[str, Any] = Field(default_factory=dict)
    labels: Dict[str, str] = Field(default_factory=dict)
    network: Optional[str] = None
    tmp_dir: Optional[Path] = None
    node_index: int = 0
    node_count: int = 1
    my_ip: str = ""

    # tx manager
    peers: List[str] = Field(default_factory=list)

    # ledger node
    identity: Optional[NodeIdentity] = None
    genesis: Optional[GenesisDoc] = None
    consensus: str = constants.RAFT
    consensus_config: Dict[str, Any] = Field(default_factory=dict)

    def configure(self, **options: Any) -> "ContainerOptions":
        """Returns a copy with the given options applied."""
        unknown = sorted(set(options) - set(type(self).model_fields))
        if unknown:
            raise ConfigError(f"Unknown container option(s): {', '.join(unknown)}")
        return self.model_copy(update=options)

    @property
    def tm_dir(self) -> Path:
        return self.tmp_dir / constants.TM_DIR_TEMPLATE.format(index=self.node_index)

    @property
    def keygen_dir(self) -> Path:
        return self.tmp_dir / constants.KEYGEN_DIR_TEMPLATE.format(index=self.node_index)


class Configurable:
    """
    Carries a container's options plus a free key/value bag for values that
    only exist after the component ran part of its work (e.g. key material).
    """

    def __init__(self, options: ContainerOptions):
        if options.engine is None:
            raise ConfigError("A container engine must be configured.")
        if options.tmp_dir is None:
            raise ConfigError("A working directory must be configured.")
        if not options.image:
            raise ConfigError("An image must be configured.")
        self.options = options
        self._values: Dict[str, Any] = {}

    def set(self, key: str, value: Any):
        self._values[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    @property
    def engine(self) -> ContainerEngine:
        return self.options.engine

    @property
    def index(self) -> int:
        return self.options.node_index

    @property
    def image(self) -> str:
        return self.options.image

    @property
    def ip(self) -> str:
        return self.options.my_ip
