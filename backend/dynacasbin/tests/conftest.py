import os

# Set environment before importing ANYTHING else
os.environ["ENVIRONMENT"] = "testing"
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

from collections.abc import Generator

import boto3
import pytest
from casbin.model import Model
from moto import mock_aws

from dynacasbin.core.config import settings
from dynacasbin.core.rbac import DynamoDBAdapter, config_path
from dynacasbin.tests.utils.casbin_rule import RuleStore, create_rule_table


@pytest.fixture(scope="function")
def aws_credentials() -> None:
    """Set up AWS credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = settings.AWS_DEFAULT_REGION


@pytest.fixture(scope="function")
def dynamodb(aws_credentials) -> Generator:
    with mock_aws():
        client = boto3.client("dynamodb", region_name=settings.AWS_DEFAULT_REGION)
        create_rule_table(client, settings.CASBIN_TABLE_NAME)
        yield client


@pytest.fixture(scope="function")
def store(dynamodb) -> RuleStore:
    return RuleStore(dynamodb, settings.CASBIN_TABLE_NAME)


@pytest.fixture(scope="function")
def adapter(dynamodb) -> DynamoDBAdapter:
    return DynamoDBAdapter(table_name=settings.CASBIN_TABLE_NAME, client=dynamodb)


@pytest.fixture(scope="function")
def model() -> Model:
    m = Model()
    m.load_model(config_path)
    return m
