"""
LedgerNet Bootstrap Module

Default identity and genesis collaborator used by the Builder.

- Bootstrapper: node identities, permissioned peers files, genesis
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .. import constants
from ..datacls import GenesisDoc, NodeIdentity
from ..exceptions import GenesisGenerationError, IdentityGenerationError
from .genesis import build_genesis
from .identity import new_identity, write_peer_files

logger = logging.getLogger(__name__)


class Bootstrapper:
    """
    Writes node material below `work_dir`, one `node<i>` directory per node.
    """

    def __init__(self, work_dir: Path, consensus: str = constants.RAFT, base_genesis: Optional[Path] = None):
        self.work_dir = Path(work_dir)
        self.consensus = consensus
        self.base_genesis = base_genesis

    def generate_node_identities(self, count: int, addresses: List[str]) -> List[NodeIdentity]:
        if len(addresses) != count:
            raise IdentityGenerationError(f"{count} node(s) but {len(addresses)} address(es) given.")
        logger.debug(f"[Bootstrap] Generating {count} node identities in '{self.work_dir}'")
        try:
            return [new_identity(i, ip, self.work_dir, self.consensus) for i, ip in enumerate(addresses)]
        except OSError as e:
            raise IdentityGenerationError(f"Failed to write node identity: {e}") from e

    def write_permissioned_peers(self, identities: List[NodeIdentity]):
        try:
            write_peer_files(identities)
        except OSError as e:
            raise IdentityGenerationError(f"Failed to write permissioned peers: {e}") from e
        logger.debug(f"[Bootstrap] Wrote permissioned peers for {len(identities)} node(s)")

    def generate_genesis(
        self,
        identities: List[NodeIdentity],
        consensus_name: str,
        consensus_config: Dict[str, Any],
    ) -> GenesisDoc:
        return build_genesis(identities, consensus_name, consensus_config, base=self._load_base())

    def _load_base(self) -> Optional[Dict[str, Any]]:
        if self.base_genesis is None:
            return None
        try:
            base = json.loads(Path(self.base_genesis).read_text())
        except FileNotFoundError:
            raise GenesisGenerationError(f"Genesis file not found at: {self.base_genesis}")
        except (OSError, json.JSONDecodeError) as e:
            raise GenesisGenerationError(f"Failed to read genesis file '{self.base_genesis}': {e}")
        if not isinstance(base, dict):
            raise GenesisGenerationError(f"Genesis file '{self.base_genesis}' must contain a JSON object.")
        return base


__all__ = [
    'Bootstrapper',
    'build_genesis',
    'new_identity',
    'write_peer_files',
]
