"""Exceptions raised while preparing or running a deployment."""
from typing import Optional


class DeployError(Exception):
    """Base class for every deployment failure."""
    pass


class ConfigurationError(DeployError):
    """The deployment is misconfigured and cannot start."""
    pass


class UnknownEnvironmentError(ConfigurationError):
    """No configuration exists for the requested environment name."""

    def __init__(self, env_name: str, known: Optional[list] = None):
        self.env_name = env_name
        self.known = sorted(known or [])
        message = f"Unknown deployment environment: '{env_name}'"
        if self.known:
            message += f" (known: {', '.join(self.known)})"
        super().__init__(message)


class MissingCredentialsError(ConfigurationError):
    """Cloud credentials were not found in the environment."""

    def __init__(self, missing_vars: list):
        self.missing_vars = list(missing_vars)
        super().__init__(
            f"Missing required environment variables: {', '.join(self.missing_vars)}"
        )


class ResolutionError(DeployError):
    """Target hosts could not be discovered.

    ``provider_error`` holds the structured failure detail when the cloud
    provider call itself failed, and is ``None`` when the lookup succeeded
    but found nothing usable.
    """

    def __init__(self, message: str, role: Optional[str] = None, provider_error=None):
        super().__init__(message)
        self.role = role
        self.provider_error = provider_error


class RemoteCommandError(DeployError):
    """A command executed on a target host exited unsuccessfully."""

    def __init__(self, host: str, command: str, exit_code: Optional[int] = None, stderr: str = ""):
        self.host = host
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(f"Command failed on {host} (exit {exit_code}): {command}")
