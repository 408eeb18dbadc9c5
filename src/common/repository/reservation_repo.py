from botocore.exceptions import ClientError
import dataclasses
import logging
import re
from typing import Optional, List, Tuple
from boto3.dynamodb.conditions import Key
from common.models.credit_cards import CreditCard
from common.models.billing import BillingRecord
from common.models.reservations import Reservation, ReservationStatus
from common.models.rooms import RoomStatus
from common.repository.billing_repo import billing_record_item
from common.utils.custom_exceptions import (
    InvalidStateTransition,
    RoomNotFound,
    RoomUnavailable,
)
from common.utils.datetime_normaliser import from_iso_string, occupied_nights
from decimal import Decimal
from datetime import date, datetime, time, timedelta, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types_boto3_dynamodb.service_resource import Table
    from types_boto3_dynamodb import DynamoDBClient
else:
    Table = object
    DynamoDBClient = object


logger = logging.getLogger(__name__)

USER_INDEX = "UserIndex"
STATUS_INDEX = "StatusIndex"
ROOM_INDEX = "RoomIndex"

_REASONS_IN_MESSAGE = re.compile(r"\[(.*)\]")
_LOCK_FAILURES = {"ConditionalCheckFailed", "TransactionConflict"}

# transaction action kinds, used to translate cancellation reasons
_RESERVATION = "reservation"
_NIGHT = "night"
_ROOM = "room"
_OTHER = "other"


class ReservationRepository:
    def __init__(self, table: Table, client: DynamoDBClient = None):
        self.table = table
        self.client = client if client else table.meta.client

    @staticmethod
    def _iso(dt: datetime | str) -> str:
        if isinstance(dt, str):
            parsed = datetime.fromisoformat(dt)
        else:
            parsed = dt

        if parsed.tzinfo is None:
            raise ValueError("Datetime must be timezone-aware")

        return parsed.astimezone(timezone.utc).isoformat()

    def add_reservation(
        self,
        reservation: Reservation,
        credit_card: Optional[CreditCard] = None,
        room_status: Optional[RoomStatus] = None,
    ):
        actions = [
            (
                _OTHER,
                {
                    "Put": {
                        "TableName": self.table.name,
                        "Item": self._details_item(reservation),
                        "ConditionExpression": "attribute_not_exists(pk)",
                    }
                },
            )
        ]
        if credit_card is not None:
            actions.append((_OTHER, self._card_put(reservation.reservation_id, credit_card)))
        if room_status is not None:
            actions.append((_ROOM, self._room_status_update(reservation.room_id, room_status)))
        if reservation.status.blocks_inventory:
            actions.extend(
                self._night_lock_puts(
                    reservation.reservation_id,
                    reservation.room_id,
                    occupied_nights(reservation.check_in, reservation.check_out),
                )
            )

        self._transact(actions, reservation, target=reservation.status)
        logger.info(
            f"Reservation {reservation.reservation_id} stored as {reservation.status.value}"
        )

    def get_reservation_by_id(self, reservation_id: str) -> Optional[Reservation]:
        try:
            response = self.table.get_item(
                Key={"pk": f"RESERVATION#{reservation_id}", "sk": "DETAILS"},
                ConsistentRead=True,
            )
        except ClientError as err:
            logger.error(f"Error retrieving reservation {reservation_id}: {err}")
            raise

        item = response.get("Item")
        if not item:
            return None
        return self._to_domain(item)

    def get_credit_card(self, reservation_id: str) -> Optional[CreditCard]:
        try:
            response = self.table.get_item(
                Key={"pk": f"RESERVATION#{reservation_id}", "sk": "CREDIT_CARD"}
            )
        except ClientError as err:
            logger.error(f"Error retrieving card for reservation {reservation_id}: {err}")
            raise

        item = response.get("Item")
        if not item:
            return None
        return CreditCard(
            card_number=item["card_number"],
            expiry_month=int(item["expiry_month"]),
            expiry_year=int(item["expiry_year"]),
            holder_name=item["holder_name"],
        )

    def get_user_reservations(self, user_id: str) -> List[Reservation]:
        return self._query_index(USER_INDEX, Key("user_id").eq(user_id))

    def get_reservations_by_status(self, status: ReservationStatus) -> List[Reservation]:
        return self._query_index(STATUS_INDEX, Key("reservation_status").eq(status.value))

    def get_room_reservations(self, room_id: str) -> List[Reservation]:
        return self._query_index(ROOM_INDEX, Key("room_id").eq(room_id))

    def transition_status(
        self,
        reservation: Reservation,
        new_status: ReservationStatus,
        *,
        acquire_nights: bool = False,
        release_nights: bool = False,
        room_status: Optional[RoomStatus] = None,
        credit_card: Optional[CreditCard] = None,
        billing_record: Optional[BillingRecord] = None,
        checked_out_at: Optional[datetime] = None,
    ) -> Reservation:
        """Move a reservation to ``new_status`` in a single transaction.

        The write only succeeds if the stored status still equals
        ``reservation.status``; the optional side effects (night locks, room
        status, card, billing record) commit or fail together with it.
        """
        set_clauses = ["#status = :new_status"]
        values = {
            ":new_status": new_status.value,
            ":expected": reservation.status.value,
        }
        if credit_card is not None:
            set_clauses.append("has_credit_card = :true")
            values[":true"] = True
        if checked_out_at is not None:
            set_clauses.append("checked_out_at = :checked_out_at")
            values[":checked_out_at"] = self._iso(checked_out_at)

        actions = [
            (
                _RESERVATION,
                {
                    "Update": {
                        "TableName": self.table.name,
                        "Key": self._details_key(reservation.reservation_id),
                        "UpdateExpression": "SET " + ", ".join(set_clauses),
                        "ConditionExpression": "#status = :expected",
                        "ExpressionAttributeNames": {"#status": "reservation_status"},
                        "ExpressionAttributeValues": values,
                    }
                },
            )
        ]
        nights = occupied_nights(reservation.check_in, reservation.check_out)
        if acquire_nights:
            actions.extend(
                self._night_lock_puts(reservation.reservation_id, reservation.room_id, nights)
            )
        if release_nights:
            actions.extend(
                self._night_lock_deletes(reservation.reservation_id, reservation.room_id, nights)
            )
        if room_status is not None:
            actions.append((_ROOM, self._room_status_update(reservation.room_id, room_status)))
        if credit_card is not None:
            actions.append((_OTHER, self._card_put(reservation.reservation_id, credit_card)))
        if billing_record is not None:
            actions.append(
                (
                    _OTHER,
                    {
                        "Put": {
                            "TableName": self.table.name,
                            "Item": billing_record_item(billing_record),
                            "ConditionExpression": "attribute_not_exists(sk)",
                        }
                    },
                )
            )

        self._transact(actions, reservation, target=new_status)
        logger.info(
            f"Reservation {reservation.reservation_id} moved "
            f"{reservation.status.value} -> {new_status.value}"
        )
        return dataclasses.replace(
            reservation,
            status=new_status,
            has_credit_card=reservation.has_credit_card or credit_card is not None,
            checked_out_at=checked_out_at or reservation.checked_out_at,
        )

    def update_stay(
        self,
        reservation: Reservation,
        room_id: str,
        check_in: date,
        check_out: date,
        total_amount: float,
        guests: int,
    ) -> Reservation:
        actions = [
            (
                _RESERVATION,
                {
                    "Update": {
                        "TableName": self.table.name,
                        "Key": self._details_key(reservation.reservation_id),
                        "UpdateExpression": (
                            "SET room_id = :room_id, check_in = :check_in, "
                            "check_out = :check_out, total_amount = :total, guests = :guests"
                        ),
                        "ConditionExpression": "#status = :expected",
                        "ExpressionAttributeNames": {"#status": "reservation_status"},
                        "ExpressionAttributeValues": {
                            ":room_id": room_id,
                            ":check_in": check_in.isoformat(),
                            ":check_out": check_out.isoformat(),
                            ":total": Decimal(str(total_amount)),
                            ":guests": guests,
                            ":expected": reservation.status.value,
                        },
                    }
                },
            )
        ]
        if reservation.status.blocks_inventory:
            old_keys = {
                (reservation.room_id, night)
                for night in occupied_nights(reservation.check_in, reservation.check_out)
            }
            new_keys = {(room_id, night) for night in occupied_nights(check_in, check_out)}
            for stale_room, night in sorted(old_keys - new_keys):
                actions.extend(
                    self._night_lock_deletes(reservation.reservation_id, stale_room, [night])
                )
            actions.extend(
                self._night_lock_puts(
                    reservation.reservation_id, room_id, [night for _, night in sorted(new_keys)]
                )
            )

        self._transact(actions, reservation, target=reservation.status)
        return dataclasses.replace(
            reservation,
            room_id=room_id,
            check_in=check_in,
            check_out=check_out,
            total_amount=total_amount,
            guests=guests,
        )

    def _transact(
        self,
        actions: List[Tuple[str, dict]],
        reservation: Reservation,
        target: Optional[ReservationStatus],
    ):
        try:
            self.client.transact_write_items(
                TransactItems=[action for _, action in actions]
            )
        except ClientError as err:
            if err.response.get("Error", {}).get("Code") == "TransactionCanceledException":
                self._raise_for_cancellation(err, actions, reservation, target)
            logger.error(
                f"Error writing reservation {reservation.reservation_id}: {err}"
            )
            raise

    def _raise_for_cancellation(self, err, actions, reservation, target):
        codes = self._cancellation_codes(err)
        for (kind, action), code in zip(actions, codes):
            if kind == _NIGHT and code in _LOCK_FAILURES:
                night = action["Put"]["Item"]["sk"].split("NIGHT#", 1)[1]
                room_id = action["Put"]["Item"]["pk"].split("ROOM#", 1)[1]
                raise RoomUnavailable(
                    f"room {room_id} is already booked for the night of {night}"
                ) from err
            if kind == _RESERVATION and code in _LOCK_FAILURES:
                raise InvalidStateTransition(
                    reservation.reservation_id,
                    reservation.status,
                    target,
                    detail=f"reservation is no longer {reservation.status.value}",
                ) from err
            if kind == _ROOM and code == "ConditionalCheckFailed":
                raise RoomNotFound(reservation.room_id) from err

    @staticmethod
    def _cancellation_codes(err: ClientError) -> List[Optional[str]]:
        reasons = err.response.get("CancellationReasons")
        if reasons:
            return [reason.get("Code") for reason in reasons]
        # older clients only report the reasons inside the message
        match = _REASONS_IN_MESSAGE.search(err.response.get("Error", {}).get("Message", ""))
        if not match:
            return []
        return [
            None if code.strip() == "None" else code.strip()
            for code in match.group(1).split(",")
        ]

    def _query_index(self, index_name: str, key_condition) -> List[Reservation]:
        reservations = []
        kwargs = {"IndexName": index_name, "KeyConditionExpression": key_condition}
        try:
            while True:
                response = self.table.query(**kwargs)
                for item in response.get("Items", []):
                    reservations.append(self._to_domain(item))
                if "LastEvaluatedKey" not in response:
                    break
                kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]
        except ClientError as err:
            logger.error(f"Error querying {index_name}: {err}")
            raise
        return reservations

    @staticmethod
    def _details_key(reservation_id: str) -> dict:
        return {"pk": f"RESERVATION#{reservation_id}", "sk": "DETAILS"}

    def _details_item(self, reservation: Reservation) -> dict:
        item = {
            **self._details_key(reservation.reservation_id),
            "reservation_id": reservation.reservation_id,
            "room_id": reservation.room_id,
            "user_id": reservation.user_id,
            "check_in": reservation.check_in.isoformat(),
            "check_out": reservation.check_out.isoformat(),
            "guests": reservation.guests,
            "reservation_status": reservation.status.value,
            "total_amount": Decimal(str(reservation.total_amount)),
            "has_credit_card": reservation.has_credit_card,
            "discount_rate": Decimal(str(reservation.discount_rate)),
            "created_at": self._iso(reservation.created_at),
        }
        if reservation.bulk_group_id:
            item["bulk_group_id"] = reservation.bulk_group_id
        if reservation.checked_out_at:
            item["checked_out_at"] = self._iso(reservation.checked_out_at)
        return item

    def _card_put(self, reservation_id: str, card: CreditCard) -> dict:
        return {
            "Put": {
                "TableName": self.table.name,
                "Item": {
                    "pk": f"RESERVATION#{reservation_id}",
                    "sk": "CREDIT_CARD",
                    "card_number": card.card_number,
                    "expiry_month": card.expiry_month,
                    "expiry_year": card.expiry_year,
                    "holder_name": card.holder_name,
                },
            }
        }

    def _room_status_update(self, room_id: str, status: RoomStatus) -> dict:
        return {
            "Update": {
                "TableName": self.table.name,
                "Key": {"pk": f"ROOM#{room_id}", "sk": "DETAILS"},
                "UpdateExpression": "SET #room_status = :room_status",
                "ExpressionAttributeNames": {"#room_status": "room_status"},
                "ExpressionAttributeValues": {":room_status": status.value},
                "ConditionExpression": "attribute_exists(pk)",
            }
        }

    def _night_lock_puts(self, reservation_id: str, room_id: str, nights: List[date]):
        return [
            (
                _NIGHT,
                {
                    "Put": {
                        "TableName": self.table.name,
                        "Item": {
                            "pk": f"ROOM#{room_id}",
                            "sk": f"NIGHT#{night.isoformat()}",
                            "reservation_id": reservation_id,
                            "ttl_attribute": self._lock_expiry(night),
                        },
                        "ConditionExpression": "attribute_not_exists(pk) OR reservation_id = :rid",
                        "ExpressionAttributeValues": {":rid": reservation_id},
                    }
                },
            )
            for night in nights
        ]

    def _night_lock_deletes(self, reservation_id: str, room_id: str, nights: List[date]):
        return [
            (
                _OTHER,
                {
                    "Delete": {
                        "TableName": self.table.name,
                        "Key": {"pk": f"ROOM#{room_id}", "sk": f"NIGHT#{night.isoformat()}"},
                        "ConditionExpression": "attribute_not_exists(pk) OR reservation_id = :rid",
                        "ExpressionAttributeValues": {":rid": reservation_id},
                    }
                },
            )
            for night in nights
        ]

    @staticmethod
    def _lock_expiry(night: date) -> int:
        # locks outlive their night by a week, then DynamoDB TTL reaps them
        expires = datetime.combine(night + timedelta(days=7), time.min, tzinfo=timezone.utc)
        return int(expires.timestamp())

    @staticmethod
    def _to_domain(item: dict) -> Reservation:
        checked_out_at = item.get("checked_out_at")
        return Reservation(
            reservation_id=item["reservation_id"],
            room_id=item["room_id"],
            user_id=item["user_id"],
            check_in=date.fromisoformat(item["check_in"]),
            check_out=date.fromisoformat(item["check_out"]),
            guests=int(item["guests"]),
            status=ReservationStatus(item["reservation_status"]),
            total_amount=float(item["total_amount"]),
            has_credit_card=bool(item.get("has_credit_card", False)),
            discount_rate=float(item.get("discount_rate", 0)),
            bulk_group_id=item.get("bulk_group_id"),
            checked_out_at=from_iso_string(checked_out_at) if checked_out_at else None,
            created_at=from_iso_string(item["created_at"]),
        )
