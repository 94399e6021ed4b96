"""AWS credentials and client creation."""
import logging
from dataclasses import dataclass
from typing import Mapping, Optional

import boto3
from mypy_boto3_ec2 import EC2Client

from devile_deploy.exceptions import MissingCredentialsError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AwsCredentials:
    """Explicit credential pair used for every EC2 call in a run."""
    access_key_id: str
    secret_access_key: str
    session_token: Optional[str] = None

    def __repr__(self) -> str:
        return f"AwsCredentials(access_key_id='{self.access_key_id}', secret_access_key='***')"


def credential_variable_names(env_name: str) -> tuple:
    """Environment variables holding the credentials for ``env_name``."""
    prefix = f"{env_name.upper()}_DEPLOYMENT_AWS"
    return (f"{prefix}_ACCESS_KEY_ID", f"{prefix}_SECRET_ACCESS_KEY")


def credentials_from_environment(env_name: str, environ: Mapping[str, str]) -> AwsCredentials:
    """Read the deployment credentials for ``env_name`` from ``environ``.

    Args:
        env_name: Deployment environment, e.g. ``staging``
        environ: Process environment (or any mapping standing in for it)

    Returns:
        AwsCredentials built from ``<ENV>_DEPLOYMENT_AWS_ACCESS_KEY_ID`` and
        ``<ENV>_DEPLOYMENT_AWS_SECRET_ACCESS_KEY``

    Raises:
        MissingCredentialsError: if either variable is unset or empty
    """
    key_var, secret_var = credential_variable_names(env_name)
    missing = [var for var in (key_var, secret_var) if not environ.get(var)]
    if missing:
        raise MissingCredentialsError(missing)

    logger.debug(f"Loaded AWS credentials for {env_name} from {key_var}")
    return AwsCredentials(access_key_id=environ[key_var], secret_access_key=environ[secret_var])


def create_ec2_client(credentials: AwsCredentials, region: str) -> EC2Client:
    """Create an EC2 client bound to explicit credentials."""
    client_kwargs = {
        'region_name': region,
        'aws_access_key_id': credentials.access_key_id,
        'aws_secret_access_key': credentials.secret_access_key,
    }
    if credentials.session_token:
        client_kwargs['aws_session_token'] = credentials.session_token

    try:
        client = boto3.client('ec2', **client_kwargs)
        logger.debug(f"Created ec2 client for region {region}")
        return client
    except Exception as e:
        logger.error(f"Error creating ec2 client: {str(e)}")
        raise
