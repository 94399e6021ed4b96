"""
Remote tasks run against the application servers.

Each task takes the list of connections for the app role. Supervisor
commands run with sudo; the deploy user is expected to hold the matching
sudoers entries.
"""
import logging
import time
from typing import Callable, Sequence

from devile_deploy.config.settings import Settings
from devile_deploy.connections import run_remote
from devile_deploy.utils.decorators import log_deploy_step

logger = logging.getLogger(__name__)


def systemctl(action: str, unit: str) -> str:
    return f"sudo systemctl {action} {unit}"


@log_deploy_step
def start(connections: Sequence, unit: str = "puma") -> None:
    """Start the application unit on every app server."""
    for connection in connections:
        logger.info(f"[{connection.host}] starting {unit}")
        run_remote(connection, systemctl("start", unit))


@log_deploy_step
def stop(connections: Sequence, unit: str = "puma") -> None:
    """Stop the application unit on every app server."""
    for connection in connections:
        logger.info(f"[{connection.host}] stopping {unit}")
        run_remote(connection, systemctl("stop", unit))


@log_deploy_step
def restart(connections: Sequence,
            unit: str = "puma",
            wait: float = 5,
            sleep: Callable[[float], None] = time.sleep) -> None:
    """Restart the application unit one host at a time.

    Waits ``wait`` seconds between hosts so the load balancer always has
    healthy servers to route to.
    """
    for index, connection in enumerate(connections):
        if index and wait:
            logger.debug(f"Waiting {wait}s before restarting {connection.host}")
            sleep(wait)
        logger.info(f"[{connection.host}] restarting {unit}")
        run_remote(connection, systemctl("restart", unit))


def after_publishing(connections: Sequence, settings: Settings) -> None:
    """Hook run once a new release is live."""
    restart(connections, unit=settings.supervisor_unit, wait=settings.restart_wait)


@log_deploy_step
def update_dotenv(connections: Sequence, settings: Settings) -> None:
    """Rewrite the shared .env file from AWS Secrets Manager on every app server.

    The update script lives in ~deploy/bin on each host, which is on the
    configured remote PATH.
    """
    command = f'export PATH="{settings.default_path}" && {settings.dotenv_update_command}'
    for connection in connections:
        logger.info(f"[{connection.host}] updating .env from Secrets Manager")
        run_remote(connection, command)
