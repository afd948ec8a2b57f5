"""Shared test fixtures."""

import os

import boto3
import pytest
from moto import mock_aws

from cwimages.accounts import AccountRecord

PROJECT_ENV_PREFIXES = ("CWIMAGES_", "AWS_ENDPOINT_URL", "AWS_PROFILE")


@pytest.fixture(autouse=True)
def default_project_env(monkeypatch):
    """Provide deterministic default env vars for tests."""
    for key in list(os.environ):
        if key.startswith(PROJECT_ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)
    defaults = {
        "AWS_ACCESS_KEY_ID": "testing",
        "AWS_SECRET_ACCESS_KEY": "testing",
        "AWS_SECURITY_TOKEN": "testing",
        "AWS_SESSION_TOKEN": "testing",
        "AWS_DEFAULT_REGION": "us-east-1",
    }
    for key, value in defaults.items():
        monkeypatch.setenv(key, value)


@pytest.fixture
def cloudwatch_client():
    """Create a mocked CloudWatch client."""
    with mock_aws():
        yield boto3.client("cloudwatch", region_name="us-east-1")


@pytest.fixture
def mock_aws_all():
    """Mock all AWS services together."""
    with mock_aws():
        yield


@pytest.fixture
def sample_accounts():
    return [
        AccountRecord(namespace="Foo", account_id="111111111111", region="us-east-1"),
        AccountRecord(namespace="BarService", account_id="222222222222", region="eu-west-1"),
        AccountRecord(namespace="FooBar", account_id="333333333333", region="us-west-2"),
    ]


@pytest.fixture
def sample_accounts_toml():
    return (
        "[[account]]\n"
        'namespace = "Foo"\n'
        'account_id = "111111111111"\n'
        'region = "us-east-1"\n'
        "\n"
        "[[account]]\n"
        'namespace = "BarService"\n'
        'account_id = "222222222222"\n'
        'region = "eu-west-1"\n'
        "\n"
        "[[account]]\n"
        'namespace = "FooBar"\n'
        'account_id = "333333333333"\n'
        'region = "us-west-2"\n'
    )


@pytest.fixture
def sample_widget_template():
    return (
        '{"region":"{{REGION}}","metrics":[["{{NAMESPACE}}","RequestCount"]],'
        '"start":"-PT{{PERIOD_START}}","end":"-PT{{PERIOD_END}}","period":{{PERIOD}}}'
    )
