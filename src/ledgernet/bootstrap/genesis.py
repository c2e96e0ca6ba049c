from typing import Any, Dict, List, Optional

from .. import constants
from ..datacls import GenesisDoc, NodeIdentity
from ..exceptions import GenesisGenerationError
from ..utils.merge import deep_merge

ZERO_HASH = "0x" + "0" * 64
ZERO_ADDRESS = "0x" + "0" * 40


def raft_genesis() -> Dict[str, Any]:
    return {
        "alloc": {},
        "coinbase": ZERO_ADDRESS,
        "config": {
            "homesteadBlock": 0,
            "byzantiumBlock": 0,
            "constantinopleBlock": 0,
            "chainId": constants.LEDGER_NETWORK_ID,
            "eip150Block": 0,
            "eip150Hash": ZERO_HASH,
            "eip155Block": 0,
            "eip158Block": 0,
            "isQuorum": True,
        },
        "difficulty": "0x0",
        "extraData": ZERO_HASH,
        "gasLimit": "0xE0000000",
        "mixhash": "0x00000000000000000000000000000000000000647572616c65787365646c6578",
        "nonce": "0x0",
        "parentHash": ZERO_HASH,
        "timestamp": "0x00",
    }


TEMPLATES = {
    constants.RAFT: raft_genesis,
}


def build_genesis(
    identities: List[NodeIdentity],
    consensus_name: str,
    consensus_config: Dict[str, Any],
    base: Optional[Dict[str, Any]] = None,
) -> GenesisDoc:
    """
    Builds the genesis for `consensus_name`.

    Every node's default account is funded in `alloc`. `base` overrides the
    template; `consensus_config` lands in the chain `config` section.
    """
    if not identities:
        raise GenesisGenerationError("Cannot build a genesis for zero nodes.")
    template = TEMPLATES.get(consensus_name)
    if template is None:
        raise GenesisGenerationError(
            f"Unsupported consensus '{consensus_name}', must be one of {sorted(TEMPLATES)}."
        )
    content = template()
    for identity in identities:
        if identity.account is not None:
            content["alloc"][identity.account.address] = {"balance": constants.DEFAULT_ACCOUNT_BALANCE}
    if base:
        content = deep_merge(content, base)
    if consensus_config:
        content = deep_merge(content, {"config": consensus_config})
    return GenesisDoc(consensus=consensus_name, content=content)
