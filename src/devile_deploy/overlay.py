"""
Environment overlay selection.

Decides, once per run, whether the deployment targets the machine it runs on
or the application servers discovered in EC2 behind the bastion host.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Tuple

from devile_deploy.aws.aws_clients import credentials_from_environment
from devile_deploy.aws.instance_resolver import SYDNEY_AWS_REGION_NAME, InstanceResolver
from devile_deploy.config.environments import EnvironmentOverlay

logger = logging.getLogger(__name__)

# Set (to any value) when the deploy runs on the host it provisions, e.g. right
# after the configuration management run that built the server.
LOCAL_DIR_FLAG = "DEPLOY_TO_LOCAL_DIR"
LOCAL_HOST = "localhost"


@dataclass(frozen=True)
class DeploymentTarget:
    """Hosts a run deploys to and how to reach them."""
    env_name: str
    hosts: Tuple[str, ...]
    user: str
    proxy_command: Optional[str] = None


def deploys_to_local_dir(environ: Mapping[str, str]) -> bool:
    return LOCAL_DIR_FLAG in environ


def resolve_target(overlay: EnvironmentOverlay,
                   environ: Mapping[str, str],
                   resolver_factory: Callable[..., InstanceResolver] = InstanceResolver,
                   region: str = SYDNEY_AWS_REGION_NAME,
                   local_user: str = "deploy") -> DeploymentTarget:
    """Build the deployment target for ``overlay``.

    Args:
        overlay: Environment being deployed
        environ: Process environment; holds the local flag and credentials
        resolver_factory: Builds the instance resolver for the remote branch
        region: AWS region of the environment
        local_user: Linux user for the localhost branch

    Returns:
        DeploymentTarget for either localhost or the discovered app servers

    Raises:
        MissingCredentialsError: if the remote branch has no credentials
        ResolutionError: if EC2 discovery failed
    """
    if deploys_to_local_dir(environ):
        logger.info(f"{LOCAL_DIR_FLAG} is set, deploying {overlay.name} to {LOCAL_HOST}")
        return DeploymentTarget(
            env_name=overlay.name,
            hosts=(LOCAL_HOST,),
            user=local_user,
        )

    credentials = credentials_from_environment(overlay.name, environ)
    resolver = resolver_factory(env_name=overlay.name, credentials=credentials, region=region)

    proxy_command = resolver.build_ssh_proxy_command()
    hosts = resolver.resolve_app_server_hostnames()
    if not hosts:
        logger.warning(f"No running app servers found for {overlay.name}, nothing will be deployed")

    return DeploymentTarget(
        env_name=overlay.name,
        hosts=tuple(hosts),
        user=resolver.app_server_linux_user(),
        proxy_command=proxy_command,
    )
