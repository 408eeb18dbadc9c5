from botocore.exceptions import ClientError
import logging
from decimal import Decimal
from datetime import datetime, timezone
from typing import List
from boto3.dynamodb.conditions import Key
from common.models.billing import (
    BillingRecord,
    BillingRecordType,
    BillingStatus,
    OptionalCharge,
    PaymentMethod,
)
from common.utils.datetime_normaliser import from_iso_string

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types_boto3_dynamodb.service_resource import Table
else:
    Table = object


logger = logging.getLogger(__name__)


def _iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        raise ValueError("Datetime must be timezone-aware")
    return dt.astimezone(timezone.utc).isoformat()


def billing_record_item(record: BillingRecord) -> dict:
    item = {
        "pk": f"RESERVATION#{record.reservation_id}",
        "sk": f"BILLING#{_iso(record.created_at)}#{record.record_id}",
        "record_id": record.record_id,
        "amount": Decimal(str(record.amount)),
        "billing_status": record.status.value,
        "payment_method": record.payment_method.value,
        "record_type": record.record_type.value,
        "created_at": _iso(record.created_at),
    }
    if record.reference:
        item["reference"] = record.reference
    if record.notes:
        item["notes"] = record.notes
    return item


def optional_charge_item(charge: OptionalCharge) -> dict:
    return {
        "pk": f"RESERVATION#{charge.reservation_id}",
        "sk": f"CHARGE#{_iso(charge.created_at)}#{charge.charge_id}",
        "charge_id": charge.charge_id,
        "description": charge.description,
        "amount": Decimal(str(charge.amount)),
        "created_at": _iso(charge.created_at),
    }


class BillingRepository:
    def __init__(self, table: Table):
        self.table = table

    def add_billing_record(self, record: BillingRecord):
        try:
            self.table.put_item(
                Item=billing_record_item(record),
                ConditionExpression="attribute_not_exists(sk)",
            )
        except ClientError as err:
            logger.error(
                f"Error adding billing record for reservation {record.reservation_id}: {err}"
            )
            raise

    def get_billing_records(self, reservation_id: str) -> List[BillingRecord]:
        items = self._query_prefix(reservation_id, "BILLING#")
        return [self._record_to_domain(reservation_id, item) for item in items]

    def add_optional_charge(self, charge: OptionalCharge):
        try:
            self.table.put_item(Item=optional_charge_item(charge))
        except ClientError as err:
            logger.error(
                f"Error adding optional charge for reservation {charge.reservation_id}: {err}"
            )
            raise

    def get_optional_charges(self, reservation_id: str) -> List[OptionalCharge]:
        items = self._query_prefix(reservation_id, "CHARGE#")
        return [
            OptionalCharge(
                charge_id=item["charge_id"],
                reservation_id=reservation_id,
                description=item["description"],
                amount=float(item["amount"]),
                created_at=from_iso_string(item["created_at"]),
            )
            for item in items
        ]

    def _query_prefix(self, reservation_id: str, prefix: str) -> List[dict]:
        items = []
        kwargs = {
            "KeyConditionExpression": (
                Key("pk").eq(f"RESERVATION#{reservation_id}")
                & Key("sk").begins_with(prefix)
            ),
            "ConsistentRead": True,
        }
        try:
            while True:
                response = self.table.query(**kwargs)
                items.extend(response.get("Items", []))
                if "LastEvaluatedKey" not in response:
                    break
                kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]
        except ClientError as err:
            logger.error(
                f"Error retrieving {prefix.rstrip('#').lower()} items for reservation {reservation_id}: {err}"
            )
            raise
        return items

    @staticmethod
    def _record_to_domain(reservation_id: str, item: dict) -> BillingRecord:
        return BillingRecord(
            record_id=item["record_id"],
            reservation_id=reservation_id,
            amount=float(item["amount"]),
            status=BillingStatus(item["billing_status"]),
            payment_method=PaymentMethod(item["payment_method"]),
            record_type=BillingRecordType(item.get("record_type", "PAYMENT")),
            reference=item.get("reference"),
            notes=item.get("notes"),
            created_at=from_iso_string(item["created_at"]),
        )
