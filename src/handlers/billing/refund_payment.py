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
from common.schemas.billing import RefundRequest
from common.utils.custom_exceptions import NotFoundException, PaymentError
from common.utils.request_context import (
    format_validation_error,
    get_caller,
    path_parameter,
)
from pydantic import ValidationError as PydanticValidationError

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


def refund_payment(event, context):
    try:
        _, role = get_caller(event)
    except KeyError:
        return send_custom_response(401, "Unauthorized")

    if role not in FRONT_DESK_ROLES:
        return send_custom_response(403, "Only front desk staff can refund payments")

    record_id = path_parameter(event, "record_id")
    if not record_id:
        return send_custom_response(400, "record_id is required in the path")

    if not event.get("body"):
        return send_custom_response(400, "Request body is required")

    try:
        request_body = RefundRequest.model_validate_json(event["body"])
    except PydanticValidationError as e:
        return send_custom_response(400, format_validation_error(e))

    try:
        refund = billing_service.refund_payment(
            request_body.reservation_id, record_id, request_body.reason
        )
        return send_custom_response(201, "Payment refunded", refund)

    except PaymentError as err:
        return send_custom_response(400, str(err))

    except NotFoundException as err:
        return send_custom_response(err.status_code, str(err))

    except Exception:
        logger.exception("Unhandled error refunding payment")
        return send_custom_response(500, "Internal server error")
