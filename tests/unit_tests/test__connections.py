import pytest

from devile_deploy.connections import connected, open_connections, run_remote
from devile_deploy.exceptions import RemoteCommandError
from devile_deploy.overlay import DeploymentTarget
from tests.fixtures.connection_fixtures import FakeConnection, FakeResult

PROXY = 'ssh -o StrictHostKeyChecking=no deploy@10.0.0.5 -W %h:%p'


def test_open_connections_tunnel_through_bastion():
    target = DeploymentTarget(
        env_name="staging",
        hosts=("ip-10-3-46-182.ap-southeast-2.compute.internal", "ip-10-3-68-167.ap-southeast-2.compute.internal"),
        user="deploy",
        proxy_command=PROXY,
    )

    connections = open_connections(target)

    assert [c.host for c in connections] == list(target.hosts)
    for connection in connections:
        assert connection.user == "deploy"
        assert connection.gateway == PROXY
        assert connection.forward_agent is True
        assert connection.connect_kwargs["look_for_keys"] is True


def test_local_target_has_no_gateway():
    target = DeploymentTarget(env_name="staging", hosts=("localhost",), user="deploy")

    [connection] = open_connections(target)

    assert connection.host == "localhost"
    assert connection.gateway is None


def test_connected_closes_connections(monkeypatch):
    fakes = [FakeConnection("ip-a"), FakeConnection("ip-b")]
    monkeypatch.setattr("devile_deploy.connections.open_connections", lambda target: fakes)
    target = DeploymentTarget(env_name="staging", hosts=("ip-a", "ip-b"), user="deploy")

    with pytest.raises(RuntimeError):
        with connected(target):
            raise RuntimeError("deploy interrupted")

    assert all(fake.closed for fake in fakes)


def test_run_remote_returns_result():
    connection = FakeConnection("ip-a", responses={"cat": FakeResult(stdout="REVISION")})

    assert run_remote(connection, "cat REVISION").stdout == "REVISION"


def test_run_remote_raises_on_failure_unless_unchecked():
    connection = FakeConnection("ip-a", responses={"test": FakeResult(exited=1)})

    assert run_remote(connection, "test -f /missing", check=False).failed

    with pytest.raises(RemoteCommandError) as excinfo:
        run_remote(connection, "test -f /missing")
    assert excinfo.value.command == "test -f /missing"
