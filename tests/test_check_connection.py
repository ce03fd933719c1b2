import boto3
import logging
from botocore.exceptions import EndpointConnectionError
from moto import mock_aws

from app import check_connection


def test_check_connection_lists_users(db_service, test_settings, caplog):
    db_service.insert("users", {"firebase_id": "f1", "id": "1", "created_at": "now"})
    with caplog.at_level(logging.INFO, logger="check-connection"):
        assert check_connection.check_connection(test_settings) == 0
    assert "f1" in caplog.text


def test_check_connection_failure(mocker, test_settings, caplog):
    mocker.patch.object(
        check_connection,
        "DynamoDBService",
        side_effect=EndpointConnectionError(endpoint_url="http://localhost:4566"),
    )
    with caplog.at_level(logging.ERROR, logger="check-connection"):
        assert check_connection.check_connection(test_settings) == 1
    assert "Failed to connect" in caplog.text


def test_check_connection_missing_table_fails_without_creating_it(test_settings, caplog):
    with mock_aws():
        with caplog.at_level(logging.ERROR, logger="check-connection"):
            assert check_connection.check_connection(test_settings) == 1
        dynamodb = boto3.client("dynamodb", region_name="us-east-1")
        assert dynamodb.list_tables()["TableNames"] == []
    assert "Failed to connect" in caplog.text
