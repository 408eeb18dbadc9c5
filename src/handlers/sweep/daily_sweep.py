import logging
import os
from boto3 import resource

from common.repository.billing_repo import BillingRepository
from common.repository.lock_repo import LockRepository
from common.repository.report_repo import ReportRepository
from common.repository.reservation_repo import ReservationRepository
from common.repository.room_repo import RoomRepository
from common.repository.user_repo import UserRepository
from common.services.availability_service import AvailabilityService
from common.services.billing_service import BillingService
from common.services.pricing_service import PricingService
from common.services.report_service import ReportService
from common.services.reservation_service import ReservationService
from common.services.sweep_service import DailySweepService
from common.utils.clock import SystemClock
from common.utils.custom_exceptions import SweepAlreadyRunning

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

TABLE_NAME = os.environ.get("TABLE_NAME")
REGION = os.environ.get("AWS_REGION", "ap-south-1")

dynamodb = resource("dynamodb", region_name=REGION)
table = dynamodb.Table(TABLE_NAME)

clock = SystemClock()
reservation_repo = ReservationRepository(table)
room_repo = RoomRepository(table)
pricing_service = PricingService()

reservation_service = ReservationService(
    reservation_repo=reservation_repo,
    room_repo=room_repo,
    user_repo=UserRepository(table),
    availability_service=AvailabilityService(room_repo, reservation_repo),
    pricing_service=pricing_service,
    clock=clock,
)
billing_service = BillingService(
    reservation_repo=reservation_repo,
    room_repo=room_repo,
    billing_repo=BillingRepository(table),
    pricing_service=pricing_service,
    clock=clock,
)
sweep_service = DailySweepService(
    reservation_service=reservation_service,
    billing_service=billing_service,
    reservation_repo=reservation_repo,
    clock=clock,
    lock_repo=LockRepository(table),
    report_service=ReportService(ReportRepository(table), reservation_repo, clock),
)


def daily_sweep(event, context):
    """EventBridge Scheduler target, invoked once a day at the cutoff."""
    try:
        result = sweep_service.run()
    except SweepAlreadyRunning as err:
        logger.warning(f"Daily sweep skipped: {err}")
        return {"status": "skipped", "reason": str(err)}

    return {
        "status": "completed",
        "run_date": result.run_date.isoformat(),
        "cancelled": result.cancelled,
        "no_shows": result.no_shows,
        "skipped": result.skipped,
        "failed": result.failed,
    }
