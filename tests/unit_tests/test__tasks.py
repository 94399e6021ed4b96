import pytest

from devile_deploy import tasks
from devile_deploy.config.settings import Settings
from devile_deploy.exceptions import RemoteCommandError
from tests.fixtures.connection_fixtures import FakeConnection, FakeResult


@pytest.fixture
def settings():
    return Settings(_env_file=None)


def test_start_and_stop_run_on_every_host(app_connections):
    tasks.start(app_connections)
    tasks.stop(app_connections)

    for connection in app_connections:
        assert connection.commands == ["sudo systemctl start puma", "sudo systemctl stop puma"]


def test_restart_runs_in_sequence_with_wait_between_hosts(app_connections, command_log):
    sleeps = []
    tasks.restart(app_connections, wait=5, sleep=lambda seconds: (sleeps.append(seconds), command_log.append("sleep")))

    assert command_log == [
        (app_connections[0].host, "sudo systemctl restart puma"),
        "sleep",
        (app_connections[1].host, "sudo systemctl restart puma"),
    ]
    assert sleeps == [5]


def test_restart_single_host_does_not_wait(app_connections):
    sleeps = []
    tasks.restart(app_connections[:1], sleep=sleeps.append)

    assert sleeps == []


def test_restart_stops_at_first_failing_host():
    failing = FakeConnection("ip-a", responses={"sudo systemctl": FakeResult(exited=1, stderr="Unit puma.service not found.")})
    healthy = FakeConnection("ip-b")

    with pytest.raises(RemoteCommandError) as excinfo:
        tasks.restart([failing, healthy], wait=0)

    assert excinfo.value.host == "ip-a"
    assert excinfo.value.exit_code == 1
    assert "Unit puma.service not found." in excinfo.value.stderr
    assert healthy.commands == []


def test_after_publishing_restarts_configured_unit(settings, app_connections):
    settings.restart_wait = 0
    settings.supervisor_unit = "puma-staging"

    tasks.after_publishing(app_connections, settings)

    assert [c.commands for c in app_connections] == [["sudo systemctl restart puma-staging"]] * 2


def test_update_dotenv_runs_script_with_remote_path(settings, app_connections):
    tasks.update_dotenv(app_connections, settings)

    expected = 'export PATH="$HOME/.rbenv/shims:$HOME/bin:/snap/bin:$PATH" && update-dotenv-file-from-secretsmanager'
    for connection in app_connections:
        assert connection.commands == [expected]
