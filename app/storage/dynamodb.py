import boto3
from typing import Optional, Dict, Any, List
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError
from app.settings import Settings, settings
import logging

log = logging.getLogger(__name__)

# -------------------------
# DynamoDB Service
# -------------------------
class DynamoDBService:
    def __init__(self, config: Optional[Settings] = None, ensure: bool = True):
        self.config = config or settings
        session = boto3.session.Session(region_name=self.config.aws_region)
        kwargs = {
            "aws_access_key_id": self.config.aws_access_key_id,
            "aws_secret_access_key": self.config.aws_secret_access_key,
        }
        if self.config.aws_endpoint_url:
            kwargs["endpoint_url"] = self.config.aws_endpoint_url

        self.resource = session.resource("dynamodb", **kwargs)
        log.info("Initialized DynamoDB resource")

        if ensure:
            self.ensure_tables()

    def ensure_tables(self):
        self.ensure_table(self.config.images_table, "id")
        self.ensure_table(self.config.users_table, "firebase_id")
        self.ensure_table(self.config.images_metadata_table, "file_path")

    # Refer here: https://boto3.amazonaws.com/v1/documentation/api/latest/reference/services/dynamodb/client/create_table.html
    def ensure_table(self, table_name: str, hash_key: str):
        try:
            table = self.resource.Table(table_name)
            table.load()
        except ClientError:
            table = self.resource.create_table(
                TableName=table_name,
                KeySchema=[{"AttributeName": hash_key, "KeyType": "HASH"}],
                AttributeDefinitions=[
                    {"AttributeName": hash_key, "AttributeType": "S"},
                ],
                BillingMode="PAY_PER_REQUEST",
            )
            table.wait_until_exists()
            log.info("Created table %s", table_name)

    def insert(self, table_name: str, item: Dict[str, Any]):
        table = self.resource.Table(table_name)
        table.put_item(Item=item)
        log.debug("Inserted row into %s", table_name)

    def get(self, table_name: str, key: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        table = self.resource.Table(table_name)
        resp = table.get_item(Key=key)
        return resp.get("Item")

    def select(
        self,
        table_name: str,
        filters: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Returns every row matching the equality filters, following scan pagination."""
        table = self.resource.Table(table_name)
        scan_kwargs = {}
        if filters:
            condition = None
            for k, v in filters.items():
                cond = Attr(k).eq(v)
                condition = cond if condition is None else condition & cond
            scan_kwargs["FilterExpression"] = condition

        items = []
        while True:
            resp = table.scan(**scan_kwargs)
            items.extend(resp.get("Items", []))
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                return items
            scan_kwargs["ExclusiveStartKey"] = last_key

    def update(self, table_name: str, key: Dict[str, Any], values: Dict[str, Any]) -> Dict[str, Any]:
        table = self.resource.Table(table_name)
        names = {f"#f{i}": name for i, name in enumerate(values)}
        attr_values = {f":v{i}": value for i, value in enumerate(values.values())}
        expression = ", ".join(f"#f{i} = :v{i}" for i in range(len(values)))
        resp = table.update_item(
            Key=key,
            UpdateExpression=f"SET {expression}",
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=attr_values,
            ReturnValues="ALL_NEW",
        )
        log.debug("Updated row %s in %s", key, table_name)
        return resp.get("Attributes", {})

    def delete(self, table_name: str, key: Dict[str, Any]):
        table = self.resource.Table(table_name)
        table.delete_item(Key=key)
        log.debug("Deleted row %s from %s", key, table_name)

    def delete_where(self, table_name: str, field: str, value: Any) -> int:
        """Deletes every row whose ``field`` equals ``value``. Returns the number removed."""
        table = self.resource.Table(table_name)
        key_names = [k["AttributeName"] for k in table.key_schema]
        rows = self.select(table_name, {field: value})
        with table.batch_writer() as batch:
            for row in rows:
                batch.delete_item(Key={name: row[name] for name in key_names})
        log.debug("Deleted %d rows from %s where %s=%s", len(rows), table_name, field, value)
        return len(rows)

    def close(self):
        log.info("Closed DynamoDB resource")
