"""Shared fixtures."""
import os
from unittest.mock import Mock, patch

import pytest
from moto import mock_aws

from storage.datastore import Datastore


@pytest.fixture
def aws_credentials():
    """Fake AWS credentials so boto3 never reaches a real account."""
    env_vars = {
        'AWS_ACCESS_KEY_ID': 'testing',
        'AWS_SECRET_ACCESS_KEY': 'testing',
        'AWS_SECURITY_TOKEN': 'testing',
        'AWS_SESSION_TOKEN': 'testing',
        'AWS_DEFAULT_REGION': 'us-east-1',
    }
    with patch.dict(os.environ, env_vars):
        yield env_vars


@pytest.fixture
def datastore(aws_credentials):
    """Datastore backed by mock DynamoDB tables."""
    with mock_aws():
        store = Datastore(table_prefix='test-planner', region_name='us-east-1')
        store.create_tables()
        yield store


@pytest.fixture
def completion_provider():
    """Completion provider stub that reports itself available."""
    provider = Mock()
    provider.is_available.return_value = True
    return provider
