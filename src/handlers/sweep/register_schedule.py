import logging
import os

from common.services.schedule_service import SchedulerService
from common.utils.constants import DAILY_SWEEP_TIME

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

REGION = os.environ.get("AWS_REGION", "ap-south-1")
SWEEP_LAMBDA_ARN = os.environ.get("SWEEP_LAMBDA_ARN")
SCHEDULER_ROLE_ARN = os.environ.get("SCHEDULER_ROLE_ARN")


def register_schedule(event, context):
    if not SWEEP_LAMBDA_ARN or not SCHEDULER_ROLE_ARN:
        raise KeyError("SWEEP_LAMBDA_ARN and SCHEDULER_ROLE_ARN must be set")

    at = (event or {}).get("at") or DAILY_SWEEP_TIME
    scheduler = SchedulerService(
        lambda_arn=SWEEP_LAMBDA_ARN,
        role_arn=SCHEDULER_ROLE_ARN,
        region=REGION,
    )
    scheduler.schedule_daily_sweep(at=at)
    return {"status": "scheduled", "at": str(at)}
