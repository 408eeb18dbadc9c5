import logging
import os
from boto3 import resource

from common.repository.billing_repo import BillingRepository
from common.repository.reservation_repo import ReservationRepository
from common.repository.room_repo import RoomRepository
from common.services.billing_service import BillingService
from common.services.pricing_service import PricingService
from common.utils.clock import SystemClock
from common.utils.custom_response import send_custom_response
from common.models.users import FRONT_DESK_ROLES
from common.utils.custom_exceptions import (
    InvalidStateTransition,
    NotFoundException,
    PaymentError,
)
from common.utils.request_context import get_caller, path_parameter

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

TABLE_NAME = os.environ.get("TABLE_NAME")
REGION = os.environ.get("AWS_REGION", "ap-south-1")

dynamodb = resource("dynamodb", region_name=REGION)
table = dynamodb.Table(TABLE_NAME)

billing_service = BillingService(
    reservation_repo=ReservationRepository(table),
    room_repo=RoomRepository(table),
    billing_repo=BillingRepository(table),
    pricing_service=PricingService(),
    clock=SystemClock(),
)


def checkout(event, context):
    try:
        _, role = get_caller(event)
    except KeyError:
        return send_custom_response(401, "Unauthorized")

    if role not in FRONT_DESK_ROLES:
        return send_custom_response(403, "Only front desk staff can check guests out")

    reservation_id = path_parameter(event, "reservation_id")
    if not reservation_id:
        return send_custom_response(400, "reservation_id is required in the path")

    try:
        reservation = billing_service.complete_checkout(reservation_id)
        return send_custom_response(200, "Checkout complete", reservation)

    except PaymentError as err:
        return send_custom_response(400, str(err))

    except NotFoundException as err:
        return send_custom_response(err.status_code, str(err))

    except InvalidStateTransition as err:
        return send_custom_response(409, str(err))

    except Exception:
        logger.exception("Unhandled error during checkout")
        return send_custom_response(500, "Internal server error")
