import os
import pytest
from moto import mock_aws
from fastapi.testclient import TestClient

# Dummy AWS credentials for moto, set BEFORE importing app modules
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["AWS_SECURITY_TOKEN"] = "testing"
os.environ["AWS_SESSION_TOKEN"] = "testing"
os.environ["AWS_REGION"] = "us-east-1"
os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
# Clear endpoint overrides so moto mocks are used instead of localstack
os.environ.pop("AWS_ENDPOINT_URL", None)
os.environ.pop("PUBLIC_BASE_URL", None)

from app.main import app
from app.settings import Settings
from app.storage.s3 import S3Service
from app.storage.dynamodb import DynamoDBService
from app.dependencies.dependencies import get_upload_dir


@pytest.fixture(scope="function")
def test_settings():
    return Settings(aws_endpoint_url=None, public_base_url=None)


@pytest.fixture(scope="function")
def aws(test_settings):
    """Moto-backed buckets and tables, created the same way the app creates them."""
    with mock_aws():
        yield S3Service(test_settings), DynamoDBService(test_settings)


@pytest.fixture(scope="function")
def s3_service(aws):
    return aws[0]


@pytest.fixture(scope="function")
def db_service(aws):
    return aws[1]


@pytest.fixture(scope="function")
def upload_dir(tmp_path):
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture(scope="function")
def test_client(aws, upload_dir):
    app.dependency_overrides[get_upload_dir] = lambda: str(upload_dir)
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
