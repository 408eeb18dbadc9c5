from botocore.exceptions import ClientError
import logging
from datetime import date

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types_boto3_dynamodb.service_resource import Table
else:
    Table = object


logger = logging.getLogger(__name__)


class ReportRepository:
    def __init__(self, table: Table):
        self.table = table

    def put_daily_snapshot(self, day: date, snapshot: dict):
        try:
            self.table.put_item(
                Item={
                    "pk": f"REPORT#{day.isoformat()}",
                    "sk": "DAILY",
                    **snapshot,
                }
            )
        except ClientError as err:
            logger.error(f"Error storing daily report for {day}: {err}")
            raise
