# cli.py
import functools
import logging
import os
import sys

import click
from dotenv import load_dotenv

from devile_deploy import tasks
from devile_deploy.config.environments import get_overlay
from devile_deploy.config.settings import get_settings
from devile_deploy.connections import connected
from devile_deploy.exceptions import DeployError
from devile_deploy.overlay import resolve_target
from devile_deploy.publish import ReleasePublisher

# Configure logging
logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def fails_on_deploy_error(func):
    """Turn a DeployError into a logged failure and exit status 1."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DeployError as e:
            logger.error(f"❌ {e}")
            sys.exit(1)
    return wrapper


def prepare_target(env_name: str):
    """Pick the overlay for ``env_name`` and resolve where it deploys to."""
    settings = get_settings()
    overlay = get_overlay(env_name)
    target = resolve_target(
        overlay,
        os.environ,
        region=settings.aws_region,
        local_user=settings.deploy_user,
    )
    return settings, overlay, target


@click.group()
@click.option("--env-file", default=".env", show_default=True,
              help="Dotenv file loaded before anything else")
@click.option("--log-level", default=None, type=click.Choice(LOG_LEVELS, case_sensitive=False),
              help="Override the configured log level")
def cli(env_file, log_level):
    """Deploy devile-project through the EC2 bastion host"""
    load_dotenv(env_file)

    # Settings may have been read before the dotenv file was loaded
    get_settings.cache_clear()
    settings = get_settings()
    configure_logging(log_level or settings.log_level)


@cli.command("show-config")
def show_config():
    """Show current configuration"""
    settings = get_settings()

    print("Current Configuration:")
    print(f"  Application: {settings.application}")
    print(f"  Repository: {settings.repo_url}")
    print(f"  Deploy User: {settings.deploy_user}")
    print(f"  Deploy To: {settings.deploy_root}")
    print(f"  Linked Files: {', '.join(settings.linked_files)}")
    print(f"  Linked Dirs: {', '.join(settings.linked_dirs)}")
    print(f"  Keep Releases: {settings.keep_releases}")
    print(f"  Supervisor Unit: {settings.supervisor_unit}")
    print(f"  AWS Region: {settings.aws_region}")


@cli.command()
@click.argument("env_name")
@fails_on_deploy_error
def hosts(env_name):
    """List the hosts ENV_NAME deploys to"""
    _, overlay, target = prepare_target(env_name)

    print(f"Environment: {overlay.name} (rails env: {overlay.rails_env}, branch: {overlay.branch})")
    print(f"User: {target.user}")
    if target.proxy_command:
        print(f"Proxy: {target.proxy_command}")
    for host in target.hosts:
        print(f"  {host}")


@cli.command("proxy-command")
@click.argument("env_name")
@fails_on_deploy_error
def proxy_command(env_name):
    """Print the SSH ProxyCommand for reaching ENV_NAME's app servers"""
    _, _, target = prepare_target(env_name)
    if target.proxy_command:
        print(target.proxy_command)
    else:
        print("No proxy needed: deploying to localhost")


@cli.command()
@click.argument("env_name")
@click.option("--branch", default=None, help="Branch to deploy (defaults to the environment's branch)")
@fails_on_deploy_error
def deploy(env_name, branch):
    """Publish a new release to ENV_NAME and restart the application"""
    settings, overlay, target = prepare_target(env_name)
    publisher = ReleasePublisher(settings, branch=branch or overlay.branch, rails_env=overlay.rails_env)

    with connected(target) as connections:
        release_path = publisher.deploy(connections)
    print(f"✅ Released {release_path} to {len(target.hosts)} host(s)")


@cli.command()
@click.argument("env_name")
@fails_on_deploy_error
def start(env_name):
    """Start the application on ENV_NAME"""
    settings, _, target = prepare_target(env_name)
    with connected(target) as connections:
        tasks.start(connections, unit=settings.supervisor_unit)


@cli.command()
@click.argument("env_name")
@fails_on_deploy_error
def stop(env_name):
    """Stop the application on ENV_NAME"""
    settings, _, target = prepare_target(env_name)
    with connected(target) as connections:
        tasks.stop(connections, unit=settings.supervisor_unit)


@cli.command()
@click.argument("env_name")
@fails_on_deploy_error
def restart(env_name):
    """Restart the application on ENV_NAME, one host at a time"""
    settings, _, target = prepare_target(env_name)
    with connected(target) as connections:
        tasks.restart(connections, unit=settings.supervisor_unit, wait=settings.restart_wait)


@cli.command("dotenv-update")
@click.argument("env_name")
@fails_on_deploy_error
def dotenv_update(env_name):
    """Update the .env file on ENV_NAME from AWS Secrets Manager"""
    settings, _, target = prepare_target(env_name)
    with connected(target) as connections:
        tasks.update_dotenv(connections, settings)


if __name__ == "__main__":
    cli()
