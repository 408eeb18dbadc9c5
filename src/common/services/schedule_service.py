import boto3
from datetime import time
import json
import logging

from common.utils.constants import DAILY_SWEEP_TIME, HOTEL_TIMEZONE

logger = logging.getLogger(__name__)

DAILY_SWEEP_SCHEDULE = "daily-reservation-sweep"


class SchedulerService:
    """Registers the daily sweep with EventBridge Scheduler."""

    def __init__(
        self,
        lambda_arn: str,
        role_arn: str,
        region="ap-south-1",
        timezone_name: str = HOTEL_TIMEZONE,
    ):
        self.client = boto3.client("scheduler", region_name=region)
        self.lambda_arn = lambda_arn
        self.role_arn = role_arn
        self.timezone_name = timezone_name

    def schedule_daily_sweep(self, at=DAILY_SWEEP_TIME, schedule_name: str = DAILY_SWEEP_SCHEDULE):
        try:
            schedule_expression = self._to_cron_expression(at)
        except ValueError as e:
            logger.error(f"Invalid time format: {e}")
            raise e

        schedule_params = {
            "Name": schedule_name,
            "ScheduleExpression": schedule_expression,
            "ScheduleExpressionTimezone": self.timezone_name,
            "FlexibleTimeWindow": {"Mode": "OFF"},
            "State": "ENABLED",
            "Target": {
                "Arn": self.lambda_arn,
                "RoleArn": self.role_arn,
                "Input": json.dumps({"task": "daily_sweep"}),
                # a failed run waits for the next day rather than retrying
                "RetryPolicy": {"MaximumRetryAttempts": 0},
            },
        }

        try:
            self.client.create_schedule(
                **schedule_params,
                ClientToken=schedule_name,
            )
            logger.info(f"Scheduled daily sweep {schedule_name} at {schedule_expression}")
            return True

        except self.client.exceptions.ConflictException:
            logger.info(f"Schedule {schedule_name} exists. Updating trigger time.")

            self.client.update_schedule(
                **schedule_params
            )
            return True

        except Exception as e:
            logger.exception(f"Failed to schedule daily sweep {schedule_name}")
            raise e

    def _to_cron_expression(self, at) -> str:
        if isinstance(at, str):
            at = time.fromisoformat(at)

        if not isinstance(at, time):
            raise ValueError("sweep time must be a time or HH:MM string")

        return f"cron({at.minute} {at.hour} * * ? *)"
