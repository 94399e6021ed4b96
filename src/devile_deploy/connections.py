"""SSH connections to deployment targets and remote command execution."""
import logging
from contextlib import contextmanager
from typing import Iterator, List

from fabric import Connection

from devile_deploy.exceptions import RemoteCommandError
from devile_deploy.overlay import DeploymentTarget

logger = logging.getLogger(__name__)


def open_connections(target: DeploymentTarget) -> List[Connection]:
    """Create one (lazily opened) connection per target host."""
    connections = []
    for host in target.hosts:
        connection = Connection(
            host,
            user=target.user,
            gateway=target.proxy_command,
            forward_agent=True,
            connect_kwargs={"look_for_keys": True},
        )
        connections.append(connection)

    via = f" via '{target.proxy_command}'" if target.proxy_command else ""
    logger.info(f"Prepared {len(connections)} connection(s) for {target.env_name}{via}")
    return connections


@contextmanager
def connected(target: DeploymentTarget) -> Iterator[List[Connection]]:
    """Yield connections for ``target`` and close them afterwards."""
    connections = open_connections(target)
    try:
        yield connections
    finally:
        for connection in connections:
            connection.close()


def run_remote(connection, command: str, check: bool = True):
    """Run ``command`` on ``connection``.

    Args:
        connection: Fabric connection (anything with ``run`` and ``host``)
        command: Shell command line
        check: Raise when the command exits non-zero

    Returns:
        The invoke Result of the command

    Raises:
        RemoteCommandError: if ``check`` is set and the command failed
    """
    logger.debug(f"[{connection.host}] {command}")
    result = connection.run(command, hide=True, warn=True)
    if check and result.failed:
        logger.error(f"[{connection.host}] command failed: {command}\n{result.stderr}")
        raise RemoteCommandError(connection.host, command, result.exited, result.stderr)
    return result
