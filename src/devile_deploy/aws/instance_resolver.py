"""
Instance Resolver for Bastion-Tunnelled Deployments

Finds the EC2 instances of a deployment environment by their Name tag: the
public IP of the bastion host and the VPC internal DNS names of the
application servers. Only instances in the ``running`` state are considered.
"""

import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from devile_deploy.aws.aws_clients import AwsCredentials, create_ec2_client, credential_variable_names
from devile_deploy.aws.lookup_result import Found, LookupResult, NotFound, ProviderError
from devile_deploy.config.environments import (
    APP_SERVER_ROLE,
    BASTION_ROLE,
    DEFAULT_NAME_TAGS,
    NameTagTable,
    lookup_name_tags,
)
from devile_deploy.exceptions import ResolutionError


SYDNEY_AWS_REGION_NAME = "ap-southeast-2"
LINUX_USER = "deploy"

EC2ClientFactory = Callable[[AwsCredentials, str], Any]


class InstanceResolver:
    """Resolve bastion and application server addresses for one environment."""

    def __init__(self,
                 env_name: str,
                 credentials: AwsCredentials,
                 region: str = SYDNEY_AWS_REGION_NAME,
                 logger: Optional[logging.Logger] = None,
                 name_tags: NameTagTable = DEFAULT_NAME_TAGS,
                 client_factory: EC2ClientFactory = create_ec2_client):
        """Initialize the resolver.

        Raises:
            UnknownEnvironmentError: if ``env_name`` is missing from ``name_tags``.
                Checked before any client is created.
        """
        role_tags = lookup_name_tags(name_tags, env_name)

        self.env_name = env_name
        self.credentials = credentials
        self.region = region
        self.logger = logger or logging.getLogger(__name__)
        self.bastion_name_tags = role_tags.bastion
        self.app_server_name_tags = role_tags.app_server
        self._client_factory = client_factory
        self._ec2 = None

    def _client(self) -> Any:
        if self._ec2 is None:
            self._ec2 = self._client_factory(self.credentials, self.region)
        return self._ec2

    def _running_instances(self, name_tags: Tuple[str, ...]) -> Iterator[Dict[str, Any]]:
        """Yield running instances tagged with any of ``name_tags``, in provider order."""
        paginator = self._client().get_paginator('describe_instances')
        pages = paginator.paginate(
            Filters=[
                {'Name': 'tag:Name', 'Values': list(name_tags)},
                {'Name': 'instance-state-name', 'Values': ['running']},
            ]
        )

        for page in pages:
            for reservation in page['Reservations']:
                for instance in reservation['Instances']:
                    yield instance

    def _lookup(self, role: str, name_tags: Tuple[str, ...], attribute: str) -> LookupResult:
        try:
            values = tuple(
                instance[attribute]
                for instance in self._running_instances(name_tags)
                if instance.get(attribute)
            )
        except Exception as e:
            return ProviderError.from_exception(role, e)

        if not values:
            return NotFound(role=role, name_tags=name_tags)
        return Found(role=role, values=values)

    def lookup_bastion_ip(self) -> LookupResult:
        """Look up bastion public IPs without raising on provider failure."""
        return self._lookup(BASTION_ROLE, self.bastion_name_tags, 'PublicIpAddress')

    def lookup_app_server_hostnames(self) -> LookupResult:
        """Look up app server internal DNS names without raising on provider failure."""
        return self._lookup(APP_SERVER_ROLE, self.app_server_name_tags, 'PrivateDnsName')

    def resolve_bastion_ip(self) -> Optional[str]:
        """Find the IP address of a bastion host for this environment.

        If there are multiple bastion hosts, the IP address of the first one
        returned by EC2 is used.

        Returns:
            Public IP address of a bastion host, or None if none is running

        Raises:
            ResolutionError: if the EC2 lookup failed
        """
        result = self.lookup_bastion_ip()
        if isinstance(result, ProviderError):
            self._log_discovery_failure("the IP address of the bastion host", result)
            raise ResolutionError(
                f"Bastion lookup failed for environment '{self.env_name}'",
                role=BASTION_ROLE,
                provider_error=result,
            )

        ip_address = result.values[0] if isinstance(result, Found) else None
        self.logger.info(
            f"In AWS region '{self.region}' for environment '{self.env_name}', found bastion: {ip_address}"
        )
        return ip_address

    def resolve_app_server_hostnames(self) -> List[str]:
        """Find every running application server for this environment.

        Returns:
            Internal DNS names in EC2 response order, e.g.
            ["ip-10-3-46-182.ap-southeast-2.compute.internal",
             "ip-10-3-68-167.ap-southeast-2.compute.internal"]

        Raises:
            ResolutionError: if the EC2 lookup failed
        """
        result = self.lookup_app_server_hostnames()
        if isinstance(result, ProviderError):
            self._log_discovery_failure("the internal DNS names of the app servers", result)
            raise ResolutionError(
                f"App server lookup failed for environment '{self.env_name}'",
                role=APP_SERVER_ROLE,
                provider_error=result,
            )

        names = list(result.values) if isinstance(result, Found) else []
        self.logger.info(
            f"In AWS region '{self.region}' for environment '{self.env_name}', "
            f"found app server(s): {', '.join(names) or 'none'}"
        )
        return names

    def bastion_linux_user(self) -> str:
        return LINUX_USER

    def app_server_linux_user(self) -> str:
        return LINUX_USER

    def build_ssh_proxy_command(self) -> str:
        """Build the ProxyCommand that reaches app servers through the bastion."""
        try:
            ip_address = self.resolve_bastion_ip()
        except ResolutionError as e:
            self._log_proxy_failure(e)
            raise

        if ip_address is None:
            error = ResolutionError(
                f"No running bastion host found for environment '{self.env_name}' "
                f"(Name tags: {', '.join(self.bastion_name_tags)})",
                role=BASTION_ROLE,
            )
            self._log_proxy_failure(error)
            raise error

        return f"ssh -o StrictHostKeyChecking=no {self.bastion_linux_user()}@{ip_address} -W %h:%p"

    def _log_discovery_failure(self, target: str, error: ProviderError) -> None:
        key_var, secret_var = credential_variable_names(self.env_name)
        self.logger.error(
            f"\nFailed to discover {target} in AWS region '{self.region}' for "
            f"environment '{self.env_name}', so the deployment cannot continue.\n\n"
            f"The error was: {error.describe()}\n\n"
            f"Check that the values of the following environment variables are correct:\n\n"
            f"  {key_var}\n"
            f"  {secret_var}\n\n"
            f"If they are, the failure may have been caused by:\n\n"
            f"  * a network error\n"
            f"  * the server not running\n"
        )

    def _log_proxy_failure(self, error: ResolutionError) -> None:
        self.logger.error(
            f"\nFailed to set up deployment through a bastion host, so the deployment cannot continue.\n\n"
            f"The error was: {error}\n"
        )
