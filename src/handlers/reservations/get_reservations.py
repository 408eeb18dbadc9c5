import logging
import os
from boto3 import resource

from common.models.users import FRONT_DESK_ROLES
from common.repository.reservation_repo import ReservationRepository
from common.repository.room_repo import RoomRepository
from common.repository.user_repo import UserRepository
from common.services.availability_service import AvailabilityService
from common.services.pricing_service import PricingService
from common.services.reservation_service import ReservationService
from common.utils.clock import SystemClock
from common.utils.custom_response import send_custom_response
from common.utils.custom_exceptions import NotFoundException
from common.utils.request_context import get_caller, path_parameter

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

TABLE_NAME = os.environ.get("TABLE_NAME")
REGION = os.environ.get("AWS_REGION", "ap-south-1")

dynamodb = resource("dynamodb", region_name=REGION)
table = dynamodb.Table(TABLE_NAME)

reservation_repo = ReservationRepository(table)
room_repo = RoomRepository(table)

reservation_service = ReservationService(
    reservation_repo=reservation_repo,
    room_repo=room_repo,
    user_repo=UserRepository(table),
    availability_service=AvailabilityService(room_repo, reservation_repo),
    pricing_service=PricingService(),
    clock=SystemClock(),
)


def get_reservations(event, context):
    try:
        user_id, role = get_caller(event)
    except KeyError:
        return send_custom_response(401, "Unauthorized")

    try:
        reservation_id = path_parameter(event, "reservation_id")
        if reservation_id:
            reservation = reservation_service.get_reservation(reservation_id)
            if role not in FRONT_DESK_ROLES and reservation.user_id != user_id:
                return send_custom_response(403, "Forbidden")
            return send_custom_response(200, "Reservation retrieved", reservation)

        params = event.get("queryStringParameters") or {}
        requested_user_id = params.get("user_id", user_id)
        if requested_user_id != user_id and role not in FRONT_DESK_ROLES:
            return send_custom_response(403, "Forbidden")

        reservations = reservation_service.get_user_reservations(requested_user_id)
        return send_custom_response(
            200,
            "Reservations retrieved successfully",
            {"count": len(reservations), "reservations": reservations},
        )

    except NotFoundException as err:
        return send_custom_response(err.status_code, str(err))

    except Exception:
        logger.exception("Unhandled error retrieving reservations")
        return send_custom_response(500, "Internal server error")
