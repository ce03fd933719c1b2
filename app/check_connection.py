"""
    One-off connectivity check against the metadata store.

    Usage: python -m app.check_connection
"""
import logging
import sys
from botocore.exceptions import BotoCoreError, ClientError

from app.settings import Settings, settings
from app.storage.dynamodb import DynamoDBService

log = logging.getLogger("check-connection")

def check_connection(config: Settings = settings) -> int:
    try:
        # read-only: a missing table is a failed check, not something to create
        db = DynamoDBService(config, ensure=False)
        rows = db.select(config.users_table)
    except (BotoCoreError, ClientError) as e:
        log.error("Failed to connect: %s", e)
        return 1
    log.info("Data: %s", rows)
    return 0

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    sys.exit(check_connection())
