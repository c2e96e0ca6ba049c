import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Tuple

from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from eth_account import Account

from .. import constants
from ..datacls import DefaultAccount, NodeIdentity

logger = logging.getLogger(__name__)


def new_node_key() -> Tuple[str, str]:
    """
    Generates a secp256k1 node key.

    Returns:
        (hex private key, hex node id); the node id is the uncompressed public
        key without its 0x04 prefix
    """
    private_key = ec.generate_private_key(ec.SECP256K1())
    private_value = private_key.private_numbers().private_value
    public = private_key.public_key().public_bytes(Encoding.X962, PublicFormat.UncompressedPoint)
    return private_value.to_bytes(32, "big").hex(), public[1:].hex()


def enode_url(node_id: str, ip: str, consensus: str) -> str:
    url = f"enode://{node_id}@{ip}:{constants.LEDGER_P2P_PORT}?discport=0"
    if consensus == constants.RAFT:
        url += f"&raftport={constants.LEDGER_RAFT_PORT}"
    return url


def new_account(data_dir: Path) -> DefaultAccount:
    """
    Creates the node's default account.

    Its v3 keystore lands in `<data_dir>/keystore` under geth's file naming,
    its password in `<data_dir>/passwords.txt`.
    """
    account = Account.create()
    keystore = Account.encrypt(
        account.key,
        constants.ACCOUNT_PASSWORD,
        kdf="scrypt",
        iterations=constants.KEYSTORE_SCRYPT_N,
    )
    keystore_dir = data_dir / constants.KEYSTORE_DIRNAME
    keystore_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S.%fZ")
    keystore_file = keystore_dir / f"UTC--{timestamp}--{keystore['address']}"
    keystore_file.write_text(json.dumps(keystore))
    password_file = data_dir / constants.PASSWORD_FILENAME
    password_file.write_text(f"{constants.ACCOUNT_PASSWORD}\n")
    return DefaultAccount(address=account.address, keystore_file=keystore_file, password_file=password_file)


def new_identity(index: int, ip: str, work_dir: Path, consensus: str) -> NodeIdentity:
    """
    Creates the node's data dir, writes its node key into
    `<data_dir>/geth/nodekey` and creates its default account.
    """
    node_key, node_id = new_node_key()
    data_dir = work_dir / constants.NODE_DIR_TEMPLATE.format(index=index)
    geth_dir = data_dir / "geth"
    geth_dir.mkdir(parents=True, exist_ok=True)
    (geth_dir / constants.NODEKEY_FILENAME).write_text(node_key)
    account = new_account(data_dir)
    logger.debug(f"[Bootstrap] Node {index} identity {node_id[:16]}... at {ip}, account {account.address}")
    return NodeIdentity(
        index=index,
        ip=ip,
        node_key=node_key,
        node_id=node_id,
        enode=enode_url(node_id, ip, consensus),
        data_dir=data_dir,
        account=account,
    )


def write_peer_files(identities: List[NodeIdentity]):
    """Every node gets the full list of enodes as permissioned and static peers."""
    enodes = [identity.enode for identity in identities]
    content = json.dumps(enodes, indent=2)
    for identity in identities:
        identity.data_dir.mkdir(parents=True, exist_ok=True)
        (identity.data_dir / constants.PERMISSIONED_NODES_FILENAME).write_text(content)
        (identity.data_dir / constants.STATIC_NODES_FILENAME).write_text(content)
