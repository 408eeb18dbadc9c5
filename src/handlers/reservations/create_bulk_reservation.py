import logging
import os
from boto3 import resource

from common.repository.reservation_repo import ReservationRepository
from common.repository.room_repo import RoomRepository
from common.repository.user_repo import UserRepository
from common.services.availability_service import AvailabilityService
from common.services.pricing_service import PricingService
from common.services.reservation_service import ReservationService
from common.schemas.reservations import BulkReservationRequest
from common.utils.clock import SystemClock
from common.utils.custom_response import send_custom_response
from common.utils.custom_exceptions import (
    PermissionDenied,
    RoomUnavailable,
    ValidationError,
)
from common.utils.request_context import format_validation_error, get_caller
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

TABLE_NAME = os.environ.get("TABLE_NAME")
REGION = os.environ.get("AWS_REGION", "ap-south-1")

dynamodb = resource("dynamodb", region_name=REGION)
table = dynamodb.Table(TABLE_NAME)

clock = SystemClock()
reservation_repo = ReservationRepository(table)
room_repo = RoomRepository(table)

reservation_service = ReservationService(
    reservation_repo=reservation_repo,
    room_repo=room_repo,
    user_repo=UserRepository(table),
    availability_service=AvailabilityService(room_repo, reservation_repo),
    pricing_service=PricingService(),
    clock=clock,
)


def create_bulk_reservation(event, context):
    try:
        user_id, role = get_caller(event)
    except KeyError:
        return send_custom_response(401, "Unauthorized")

    if not event.get("body"):
        return send_custom_response(400, "Request body is required")

    try:
        request_body = BulkReservationRequest.model_validate_json(
            event["body"], context={"today": clock.today()}
        )
    except PydanticValidationError as e:
        return send_custom_response(400, format_validation_error(e))
    except ValueError as e:
        return send_custom_response(400, str(e))

    try:
        reservations = reservation_service.create_bulk_reservation(
            request_body, user_id, role
        )
        return send_custom_response(
            201,
            "Bulk reservation created successfully",
            {
                "count": len(reservations),
                "discount_rate": reservations[0].discount_rate,
                "bulk_group_id": reservations[0].bulk_group_id,
                "total_amount": round(sum(r.total_amount for r in reservations), 2),
                "reservations": reservations,
            },
        )

    except PermissionDenied as err:
        return send_custom_response(403, str(err))

    except ValidationError as err:
        return send_custom_response(400, str(err))

    except RoomUnavailable as err:
        return send_custom_response(409, str(err))

    except Exception:
        logger.exception("Unhandled error creating bulk reservation")
        return send_custom_response(500, "Internal server error")
