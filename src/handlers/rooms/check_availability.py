import logging
import os
from boto3 import resource

from common.models.rooms import RoomType
from common.models.users import FRONT_DESK_ROLES
from common.repository.reservation_repo import ReservationRepository
from common.repository.room_repo import RoomRepository
from common.services.availability_service import AvailabilityService
from common.services.pricing_service import PricingService
from common.utils.custom_response import send_custom_response
from common.utils.custom_exceptions import NotFoundException, ValidationError
from common.utils.datetime_normaliser import to_stay_date
from common.utils.request_context import get_caller

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

TABLE_NAME = os.environ.get("TABLE_NAME")
REGION = os.environ.get("AWS_REGION", "ap-south-1")

dynamodb = resource("dynamodb", region_name=REGION)
table = dynamodb.Table(TABLE_NAME)

room_repo = RoomRepository(table)
reservation_repo = ReservationRepository(table)
availability_service = AvailabilityService(room_repo, reservation_repo)
pricing_service = PricingService()


def check_availability(event, context):
    try:
        _, role = get_caller(event)
    except KeyError:
        return send_custom_response(401, "Unauthorized")

    params = event.get("queryStringParameters") or {}
    check_in_raw = params.get("check_in")
    check_out_raw = params.get("check_out")
    room_id = params.get("room_id")
    room_type_raw = params.get("room_type")

    if not check_in_raw or not check_out_raw:
        return send_custom_response(400, "check_in and check_out are required")
    if not room_id and not room_type_raw:
        return send_custom_response(400, "room_id or room_type is required")

    try:
        check_in = to_stay_date(check_in_raw)
        check_out = to_stay_date(check_out_raw)
    except ValueError as e:
        return send_custom_response(400, str(e))

    if check_out <= check_in:
        return send_custom_response(400, "check_out must be after check_in")

    try:
        if room_id:
            available = availability_service.is_available(room_id, check_in, check_out)
            return send_custom_response(
                200,
                "Availability checked",
                {
                    "room_id": room_id,
                    "check_in": check_in.isoformat(),
                    "check_out": check_out.isoformat(),
                    "available": available,
                },
            )

        try:
            room_type = RoomType(room_type_raw.upper())
        except ValueError:
            allowed = ", ".join(t.value for t in RoomType)
            return send_custom_response(400, f"Invalid room_type. Allowed: {allowed}")

        rooms = availability_service.find_available_rooms(room_type, check_in, check_out)
        response_data = {
            "room_type": room_type.value,
            "check_in": check_in.isoformat(),
            "check_out": check_out.isoformat(),
            "count": len(rooms),
        }
        if rooms:
            response_data["stay_price"] = pricing_service.compute_stay_price(
                rooms[0], check_in, check_out
            )
        if role in FRONT_DESK_ROLES:
            response_data["available_rooms"] = rooms

        return send_custom_response(200, "successfully retrieved", response_data)

    except NotFoundException as err:
        return send_custom_response(err.status_code, str(err))

    except ValidationError as err:
        return send_custom_response(400, str(err))

    except Exception:
        logger.exception("Unhandled error checking availability")
        return send_custom_response(500, "Internal server error")
