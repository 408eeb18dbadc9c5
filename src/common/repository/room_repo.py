from botocore.exceptions import ClientError
import logging
from typing import Optional, List
from boto3.dynamodb.conditions import Key
from common.models.rooms import Room, RoomType, RoomStatus

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types_boto3_dynamodb.service_resource import Table
else:
    Table = object


logger = logging.getLogger(__name__)


def _optional_float(value) -> Optional[float]:
    if value is None:
        return None
    return float(value)


class RoomRepository:
    def __init__(self, table: Table):
        self.table = table

    def get_room_by_id(self, room_id: str) -> Optional[Room]:
        try:
            response = self.table.get_item(
                Key={"pk": f"ROOM#{room_id}", "sk": "DETAILS"}
            )
        except ClientError as err:
            logger.error(f"Error retrieving room by id {room_id}: {err}")
            raise

        item = response.get("Item")
        if not item:
            return None
        return self._to_domain(item)

    def get_rooms_by_type(self, room_type: RoomType) -> List[Room]:
        room_ids = []
        kwargs = {
            "KeyConditionExpression": (
                Key("pk").eq(f"TYPE#{room_type.value}")
                & Key("sk").begins_with("ROOM#")
            )
        }
        try:
            while True:
                response = self.table.query(**kwargs)
                for item in response.get("Items", []):
                    room_ids.append(item["sk"].split("ROOM#", 1)[1])
                if "LastEvaluatedKey" not in response:
                    break
                kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]
        except ClientError as err:
            logger.error(f"Error retrieving {room_type.value} rooms: {err}")
            raise

        rooms = []
        for room_id in room_ids:
            room = self.get_room_by_id(room_id)
            if room is not None:
                rooms.append(room)
        return rooms

    @staticmethod
    def _to_domain(item: dict) -> Room:
        return Room(
            room_id=item["pk"].split("#", 1)[1],
            number=str(item.get("number", "")),
            room_type=RoomType(item["room_type"]),
            price=float(item["price"]),
            capacity=int(item.get("capacity", 1)),
            weekly_rate=_optional_float(item.get("weekly_rate")),
            monthly_rate=_optional_float(item.get("monthly_rate")),
            status=RoomStatus(item["room_status"]),
        )
