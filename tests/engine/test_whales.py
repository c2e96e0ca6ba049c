from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from python_on_whales.exceptions import DockerException, NoSuchContainer, NoSuchNetwork

from ledgernet.datacls import ContainerSpec
from ledgernet.engine import WhalesEngine, label_filters
from ledgernet.exceptions import EngineError, ResourceNotFoundError


def docker_error(cls=DockerException, stderr="daemon said no"):
    return cls(["docker", "test"], 1, stdout=None, stderr=stderr.encode())


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def whales(client):
    return WhalesEngine(client=client)


def fake_network(subnets):
    return SimpleNamespace(
        id="f00dbabe" * 8,
        name="testnet",
        labels={"ledgernet.id": "testnet"},
        ipam=SimpleNamespace(config=subnets),
    )


class TestLabelFilters:

    def test_sorted_label_pairs(self):
        assert label_filters({"b": "2", "a": "1"}) == [("label", "a=1"), ("label", "b=2")]


class TestNetworks:

    def test_create_network(self, whales, client):
        client.network.create.return_value = fake_network([{"Subnet": "172.18.0.0/16", "Gateway": "172.18.0.1"}])

        record = whales.create_network("testnet", {"ledgernet.id": "testnet"})

        client.network.create.assert_called_once_with(
            "testnet", driver="bridge", labels={"ledgernet.id": "testnet"}, subnet=None,
        )
        assert record.subnet == "172.18.0.0/16"
        assert record.gateway == "172.18.0.1"
        assert record.labels == {"ledgernet.id": "testnet"}

    def test_ipv6_pool_is_skipped(self, whales, client):
        client.network.create.return_value = fake_network([
            {"Subnet": "fd00::/64", "Gateway": "fd00::1"},
            {"Subnet": "10.5.0.0/24"},
        ])

        record = whales.create_network("testnet", {}, subnet="10.5.0.0/24")

        assert record.subnet == "10.5.0.0/24"
        assert record.gateway is None

    def test_create_failure(self, whales, client):
        client.network.create.side_effect = docker_error(stderr="pool overlaps")
        with pytest.raises(EngineError, match="pool overlaps"):
            whales.create_network("testnet", {})

    def test_remove_missing_network(self, whales, client):
        client.network.remove.side_effect = docker_error(NoSuchNetwork)
        with pytest.raises(ResourceNotFoundError):
            whales.remove_network("abc")

    def test_remove_failure_is_not_a_not_found(self, whales, client):
        client.network.remove.side_effect = docker_error()
        with pytest.raises(EngineError) as exc_info:
            whales.remove_network("abc")
        assert not isinstance(exc_info.value, ResourceNotFoundError)

    def test_list_networks_filters_by_label(self, whales, client):
        client.network.list.return_value = [fake_network([])]

        records = whales.list_networks({"ledgernet.id": "testnet"})

        client.network.list.assert_called_once_with(filters=[("label", "ledgernet.id=testnet")])
        assert records[0].subnet is None


class TestContainers:

    def test_create_container(self, whales, client):
        client.container.create.return_value = SimpleNamespace(id="c0ffee")
        spec = ContainerSpec(
            image="img:1",
            name="testnet-tm0",
            entrypoint="java",
            command=["-jar", "app.jar"],
            labels={"ledgernet.id": "testnet"},
            volumes=[("/tmp/tm0", "/qdata/tm")],
            network="net1",
            ip="10.0.0.2",
        )

        assert whales.create_container(spec) == "c0ffee"

        args, kwargs = client.container.create.call_args
        assert args == ("img:1", ["-jar", "app.jar"])
        assert kwargs["networks"] == ["net1"]
        assert kwargs["ip"] == "10.0.0.2"
        assert kwargs["volumes"] == [("/tmp/tm0", "/qdata/tm")]
        assert kwargs["entrypoint"] == "java"

    def test_create_without_network(self, whales, client):
        client.container.create.return_value = SimpleNamespace(id="c0ffee")
        whales.create_container(ContainerSpec(image="img:1"))
        assert client.container.create.call_args.kwargs["networks"] == []

    @pytest.mark.parametrize("method, call", [
        ("start_container", "start"),
        ("stop_container", "stop"),
        ("remove_container", "remove"),
        ("wait_container", "wait"),
    ])
    def test_missing_container(self, whales, client, method, call):
        getattr(client.container, call).side_effect = docker_error(NoSuchContainer)
        with pytest.raises(ResourceNotFoundError):
            getattr(whales, method)("abc")

    def test_wait_returns_exit_code(self, whales, client):
        client.container.wait.return_value = 3
        assert whales.wait_container("abc") == 3

    def test_remove_is_forced(self, whales, client):
        whales.remove_container("abc")
        client.container.remove.assert_called_once_with("abc", force=True)

    def test_list_containers(self, whales, client):
        client.container.list.return_value = [
            SimpleNamespace(
                id="c1",
                name="testnet-node0",
                state=SimpleNamespace(status="running"),
                config=SimpleNamespace(labels={"ledgernet.role": "ledger-node"}),
            )
        ]

        records = whales.list_containers({"ledgernet.id": "testnet"})

        client.container.list.assert_called_once_with(all=True, filters=[("label", "ledgernet.id=testnet")])
        assert records[0].status == "running"
        assert records[0].labels == {"ledgernet.role": "ledger-node"}


class TestImages:

    def test_list_images(self, whales, client):
        client.image.list.return_value = [SimpleNamespace(id="sha256:1")]
        assert whales.list_images("img:1") == ["sha256:1"]

    def test_pull_failure(self, whales, client):
        client.image.pull.side_effect = docker_error(stderr="manifest unknown")
        with pytest.raises(EngineError, match="manifest unknown"):
            whales.pull_image("img:404")
