from botocore.exceptions import ClientError
import logging
from datetime import datetime

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types_boto3_dynamodb.service_resource import Table
else:
    Table = object


logger = logging.getLogger(__name__)


class LockRepository:
    """Lease-style named locks stored as single items."""

    def __init__(self, table: Table):
        self.table = table

    def acquire(self, name: str, owner: str, now: datetime, ttl_seconds: int) -> bool:
        now_epoch = int(now.timestamp())
        expires_at = now_epoch + ttl_seconds
        try:
            self.table.put_item(
                Item={
                    "pk": f"LOCK#{name}",
                    "sk": "DETAILS",
                    "owner": owner,
                    "expires_at": expires_at,
                    "ttl_attribute": expires_at,
                },
                ConditionExpression="attribute_not_exists(pk) OR expires_at < :now",
                ExpressionAttributeValues={":now": now_epoch},
            )
        except ClientError as err:
            if (
                err.response.get("Error", {}).get("Code")
                == "ConditionalCheckFailedException"
            ):
                return False
            logger.error(f"Error acquiring lock {name}: {err}")
            raise
        return True

    def release(self, name: str, owner: str):
        try:
            self.table.delete_item(
                Key={"pk": f"LOCK#{name}", "sk": "DETAILS"},
                ConditionExpression="#owner = :owner",
                ExpressionAttributeNames={"#owner": "owner"},
                ExpressionAttributeValues={":owner": owner},
            )
        except ClientError as err:
            if (
                err.response.get("Error", {}).get("Code")
                == "ConditionalCheckFailedException"
            ):
                logger.warning(f"Lock {name} was no longer held by {owner}")
                return
            logger.error(f"Error releasing lock {name}: {err}")
            raise
