import json

import pytest
from eth_account import Account

from ledgernet import constants
from ledgernet.bootstrap import Bootstrapper, build_genesis
from ledgernet.bootstrap.identity import enode_url, new_node_key
from ledgernet.exceptions import GenesisGenerationError, IdentityGenerationError

ADDRESSES = ["172.30.0.5", "172.30.0.6", "172.30.0.7"]


@pytest.fixture
def bootstrapper(tmp_path):
    return Bootstrapper(tmp_path)


class TestNodeKeys:

    def test_key_sizes(self):
        private, node_id = new_node_key()
        assert len(bytes.fromhex(private)) == 32
        assert len(bytes.fromhex(node_id)) == 64

    def test_keys_are_unique(self):
        assert new_node_key() != new_node_key()

    def test_raft_enode(self):
        assert enode_url("ab" * 64, "10.0.0.2", "raft") == (
            f"enode://{'ab' * 64}@10.0.0.2:21000?discport=0&raftport=50400"
        )

    def test_enode_without_raft(self):
        assert enode_url("cd", "10.0.0.2", "istanbul") == "enode://cd@10.0.0.2:21000?discport=0"


class TestIdentities:

    def test_one_identity_per_address(self, bootstrapper, tmp_path):
        identities = bootstrapper.generate_node_identities(3, ADDRESSES)

        assert [i.index for i in identities] == [0, 1, 2]
        assert [i.ip for i in identities] == ADDRESSES
        assert [i.data_dir for i in identities] == [tmp_path / f"node{i}" for i in range(3)]
        for identity in identities:
            nodekey = identity.data_dir / "geth" / constants.NODEKEY_FILENAME
            assert nodekey.read_text() == identity.node_key

    def test_every_node_gets_a_default_account(self, bootstrapper):
        identities = bootstrapper.generate_node_identities(3, ADDRESSES)

        addresses = [i.account.address for i in identities]
        assert len(set(addresses)) == 3
        for identity in identities:
            account = identity.account
            assert account.keystore_file.parent == identity.data_dir / "keystore"
            assert account.keystore_file.name.startswith("UTC--")
            assert account.keystore_file.name.endswith(account.address[2:].lower())
            assert account.password_file == identity.data_dir / "passwords.txt"
            assert account.password_file.read_text() == f"{constants.ACCOUNT_PASSWORD}\n"

    def test_keystore_unlocks_with_password(self, bootstrapper):
        account = bootstrapper.generate_node_identities(1, ADDRESSES[:1])[0].account
        keystore = json.loads(account.keystore_file.read_text())

        assert keystore["version"] == 3
        assert keystore["crypto"]["kdf"] == "scrypt"
        assert keystore["address"] == account.address[2:].lower()
        private_key = Account.decrypt(keystore, constants.ACCOUNT_PASSWORD)
        assert Account.from_key(private_key).address == account.address

    def test_count_mismatch(self, bootstrapper):
        with pytest.raises(IdentityGenerationError, match="3 node\\(s\\) but 2 address"):
            bootstrapper.generate_node_identities(3, ADDRESSES[:2])

    def test_peer_files_list_every_node(self, bootstrapper):
        identities = bootstrapper.generate_node_identities(3, ADDRESSES)
        bootstrapper.write_permissioned_peers(identities)

        expected = [i.enode for i in identities]
        for identity in identities:
            for filename in (constants.PERMISSIONED_NODES_FILENAME, constants.STATIC_NODES_FILENAME):
                assert json.loads((identity.data_dir / filename).read_text()) == expected


class TestGenesis:

    def test_raft_genesis(self, bootstrapper):
        identities = bootstrapper.generate_node_identities(1, ADDRESSES[:1])
        genesis = bootstrapper.generate_genesis(identities, "raft", {"maxCodeSize": 35})

        assert genesis.consensus == "raft"
        assert genesis.content["config"]["isQuorum"] is True
        assert genesis.content["config"]["maxCodeSize"] == 35
        assert json.loads(genesis.to_json()) == genesis.content

    def test_default_accounts_are_funded(self, bootstrapper):
        identities = bootstrapper.generate_node_identities(3, ADDRESSES)
        genesis = bootstrapper.generate_genesis(identities, "raft", {})

        assert genesis.content["alloc"] == {
            i.account.address: {"balance": constants.DEFAULT_ACCOUNT_BALANCE} for i in identities
        }

    def test_unsupported_consensus(self, bootstrapper):
        identities = bootstrapper.generate_node_identities(1, ADDRESSES[:1])
        with pytest.raises(GenesisGenerationError, match="Unsupported consensus 'clique'"):
            bootstrapper.generate_genesis(identities, "clique", {})

    def test_zero_nodes(self):
        with pytest.raises(GenesisGenerationError, match="zero nodes"):
            build_genesis([], "raft", {})

    def test_base_file_overrides_template(self, tmp_path):
        base = tmp_path / "genesis.json"
        base.write_text(json.dumps({"gasLimit": "0x1", "alloc": {"0xabc": {"balance": "1"}}}))
        bootstrapper = Bootstrapper(tmp_path, base_genesis=base)
        identities = bootstrapper.generate_node_identities(1, ADDRESSES[:1])

        genesis = bootstrapper.generate_genesis(identities, "raft", {})

        assert genesis.content["gasLimit"] == "0x1"
        assert genesis.content["alloc"] == {
            "0xabc": {"balance": "1"},
            identities[0].account.address: {"balance": constants.DEFAULT_ACCOUNT_BALANCE},
        }
        assert genesis.content["config"]["isQuorum"] is True

    def test_missing_base_file(self, tmp_path):
        bootstrapper = Bootstrapper(tmp_path, base_genesis=tmp_path / "nope.json")
        identities = bootstrapper.generate_node_identities(1, ADDRESSES[:1])
        with pytest.raises(GenesisGenerationError, match="not found"):
            bootstrapper.generate_genesis(identities, "raft", {})

    @pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
    def test_invalid_base_file(self, tmp_path, content):
        base = tmp_path / "genesis.json"
        base.write_text(content)
        bootstrapper = Bootstrapper(tmp_path, base_genesis=base)
        identities = bootstrapper.generate_node_identities(1, ADDRESSES[:1])
        with pytest.raises(GenesisGenerationError):
            bootstrapper.generate_genesis(identities, "raft", {})
