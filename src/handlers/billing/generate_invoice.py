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
from common.utils.custom_exceptions import NotFoundException
from common.utils.request_context import get_caller, path_parameter
from common.models.users import FRONT_DESK_ROLES

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


def generate_invoice(event, context):
    try:
        user_id, role = get_caller(event)
    except KeyError:
        return send_custom_response(401, "Unauthorized")

    reservation_id = path_parameter(event, "reservation_id")
    if not reservation_id:
        return send_custom_response(400, "reservation_id is required in the path")

    try:
        invoice = billing_service.generate_invoice(reservation_id)
        if role not in FRONT_DESK_ROLES and invoice.user_id != user_id:
            return send_custom_response(403, "Forbidden")
        return send_custom_response(200, "Invoice generated", invoice)

    except NotFoundException as err:
        return send_custom_response(err.status_code, str(err))

    except Exception:
        logger.exception("Unhandled error generating invoice")
        return send_custom_response(500, "Internal server error")
