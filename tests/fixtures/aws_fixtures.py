"""EC2 fixtures: moto-backed AWS and a scripted fake client."""
from typing import Any, Dict, List, Optional

import boto3
import pytest
from moto import mock_aws

from devile_deploy.aws.aws_clients import AwsCredentials
from tests.consts import TEST_AMI_ID, TEST_REGION


class FakePaginator:
    """Serves scripted pages the way a boto3 paginator iterates them."""

    def __init__(self, client: "FakeEC2Client"):
        self.client = client

    def paginate(self, **kwargs):
        self.client.calls.append(kwargs)
        return self._pages()

    def _pages(self):
        if self.client.error is not None:
            raise self.client.error
        while self.client.pages:
            page = self.client.pages.pop(0)
            yield page
            if not page.get('NextToken'):
                return


class FakeEC2Client:
    """Returns canned describe_instances pages, or raises ``error``.

    Each ``paginate`` call consumes pages up to the first one without a
    ``NextToken``.
    """

    def __init__(self, pages: Optional[List[Dict[str, Any]]] = None, error: Optional[Exception] = None):
        self.pages = list(pages or [])
        self.error = error
        self.calls = []
        self.paginated_operations = []

    def get_paginator(self, operation_name: str) -> FakePaginator:
        self.paginated_operations.append(operation_name)
        return FakePaginator(self)


def reservations_page(*reservations: List[Dict[str, Any]], next_token: Optional[str] = None) -> Dict[str, Any]:
    page = {'Reservations': [{'Instances': list(instances)} for instances in reservations]}
    if next_token:
        page['NextToken'] = next_token
    return page


def fake_client_factory(client: FakeEC2Client):
    return lambda credentials, region: client


@pytest.fixture
def credentials() -> AwsCredentials:
    return AwsCredentials(access_key_id="testing", secret_access_key="testing")


@pytest.fixture
def mocked_aws(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", TEST_REGION)
    with mock_aws():
        yield


@pytest.fixture
def ec2_client(mocked_aws):
    return boto3.client('ec2', region_name=TEST_REGION)


def launch_instances(ec2_client, name_tag: str, count: int = 1, stopped: bool = False) -> List[str]:
    """Launch ``count`` tagged instances in moto and return their ids."""
    response = ec2_client.run_instances(
        ImageId=TEST_AMI_ID,
        InstanceType='t3.small',
        MinCount=count,
        MaxCount=count,
        TagSpecifications=[{
            'ResourceType': 'instance',
            'Tags': [{'Key': 'Name', 'Value': name_tag}],
        }],
    )
    instance_ids = [instance['InstanceId'] for instance in response['Instances']]
    if stopped:
        ec2_client.stop_instances(InstanceIds=instance_ids)
    return instance_ids


def private_dns_names(ec2_client, instance_ids: List[str]) -> List[str]:
    response = ec2_client.describe_instances(InstanceIds=instance_ids)
    return [
        instance['PrivateDnsName']
        for reservation in response['Reservations']
        for instance in reservation['Instances']
    ]
