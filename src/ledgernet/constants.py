from enum import Enum

# --- Log and Debug ---
# Short aliases for module names to keep CLI/env concise
LOG_ALIAS_MAP = {
    "build": "ledgernet.builder.build",
    "bld": "ledgernet.builder.build",
    "net": "ledgernet.builder.net",
    "par": "ledgernet.builder.parallel",
    "ctr": "ledgernet.builder.containers",
    "tm": "ledgernet.builder.containers",
    "engine": "ledgernet.engine",
    "eng": "ledgernet.engine",
    "boot": "ledgernet.bootstrap",
    "conf": "ledgernet.config",
    "api": "ledgernet.api",
}

# Top-level modules within ledgernet for auto-prefixing
KNOWN_TOP_MODULES = {
    "builder",
    "engine",
    "bootstrap",
    "api",
    "datacls",
    "utils",
    "exceptions",
    "config",
}

LOG_LEVELS_ENV = "LNET_LOG_LEVELS"

# --- Labels ---
LABEL_PREFIX = "ledgernet"
LABEL_ID = f"{LABEL_PREFIX}.id"
LABEL_ROLE = f"{LABEL_PREFIX}.role"
LABEL_INDEX = f"{LABEL_PREFIX}.index"


class Role(str, Enum):
    TX_MANAGER = "tx-manager"
    LEDGER_NODE = "ledger-node"
    KEYGEN = "keygen"


# --- Network ---
NETWORK_DRIVER = "bridge"
# Pool the build subnet is carved from when the build file names none
SUBNET_POOL = "172.30.0.0/16"
SUBNET_PREFIX = 24

# --- Ledger node ---
LEDGER_P2P_PORT = 21000
LEDGER_RAFT_PORT = 50400
LEDGER_RPC_PORT = 8545
LEDGER_NETWORK_ID = 10
LEDGER_DATA_MOUNT = "/qdata/dd"
LEDGER_TM_MOUNT = "/qdata/tm"
LEDGER_RPC_API = "admin,db,eth,debug,miner,net,shh,txpool,personal,web3,quorum,raft"
GENESIS_FILENAME = "genesis.json"
NODEKEY_FILENAME = "nodekey"
PERMISSIONED_NODES_FILENAME = "permissioned-nodes.json"
STATIC_NODES_FILENAME = "static-nodes.json"
KEYSTORE_DIRNAME = "keystore"
PASSWORD_FILENAME = "passwords.txt"
ACCOUNT_PASSWORD = ""
# geth "light" scrypt work factor
KEYSTORE_SCRYPT_N = 4096
DEFAULT_ACCOUNT_BALANCE = "1000000000000000000000000000"

# --- Tx manager ---
TM_P2P_PORT = 9000
TM_THIRD_PARTY_PORT = 9080
TM_JAR = "/tessera/tessera-app.jar"
TM_CONFIG_FILENAME = "tessera-config.json"
TM_IPC_FILENAME = "tm.ipc"
TM_KEYGEN_WORKDIR = "/tm"
TM_KEYGEN_SCRIPT = f'echo "\\n" | java -jar {TM_JAR} -keygen'
TM_PUBLIC_KEY_FILENAME = ".pub"
TM_PRIVATE_KEY_FILENAME = ".key"

# --- Working directory layout (relative to the build temp dir) ---
NODE_DIR_TEMPLATE = "node{index}"
TM_DIR_TEMPLATE = "tm{index}"
KEYGEN_DIR_TEMPLATE = "keygen{index}"
TMP_DIR_PREFIX = "lnet-"

# --- Consensus ---
RAFT = "raft"
SUPPORTED_CONSENSUS = {RAFT}

# --- API server ---
API_HOST = "127.0.0.1"
API_PORT = 8080
API_GRACEFUL_SHUTDOWN = 20
