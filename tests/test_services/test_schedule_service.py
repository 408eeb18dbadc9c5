import unittest
from unittest.mock import MagicMock, patch
from datetime import time
import json

from common.services.schedule_service import SchedulerService


class TestSchedulerService(unittest.TestCase):

    @patch("common.services.schedule_service.boto3.client")
    def setUp(self, mock_boto_client):
        self.mock_client = MagicMock()

        class ConflictException(Exception):
            pass

        self.mock_client.exceptions = MagicMock()
        self.mock_client.exceptions.ConflictException = ConflictException

        mock_boto_client.return_value = self.mock_client

        self.lambda_arn = "arn:aws:lambda:ap-south-1:123:function:daily-sweep"
        self.role_arn = "arn:aws:iam::123:role/scheduler-role"

        self.service = SchedulerService(
            lambda_arn=self.lambda_arn,
            role_arn=self.role_arn,
            timezone_name="Asia/Kolkata",
        )

    def test_to_cron_expression_from_time(self):
        expr = self.service._to_cron_expression(time(19, 0))

        self.assertEqual("cron(0 19 * * ? *)", expr)

    def test_to_cron_expression_string_input(self):
        expr = self.service._to_cron_expression("07:45")

        self.assertEqual("cron(45 7 * * ? *)", expr)

    def test_to_cron_expression_invalid(self):
        with self.assertRaises(ValueError):
            self.service._to_cron_expression(1900)

    def test_schedule_daily_sweep_create(self):
        self.mock_client.create_schedule.return_value = {}

        result = self.service.schedule_daily_sweep()

        self.assertTrue(result)
        self.mock_client.create_schedule.assert_called_once()

        _, kwargs = self.mock_client.create_schedule.call_args

        self.assertEqual("daily-reservation-sweep", kwargs["Name"])
        self.assertEqual("cron(0 19 * * ? *)", kwargs["ScheduleExpression"])
        self.assertEqual("Asia/Kolkata", kwargs["ScheduleExpressionTimezone"])
        self.assertEqual(self.lambda_arn, kwargs["Target"]["Arn"])
        self.assertEqual(self.role_arn, kwargs["Target"]["RoleArn"])
        self.assertEqual(0, kwargs["Target"]["RetryPolicy"]["MaximumRetryAttempts"])

        payload = json.loads(kwargs["Target"]["Input"])
        self.assertEqual({"task": "daily_sweep"}, payload)

    def test_schedule_daily_sweep_conflict_updates(self):
        self.mock_client.create_schedule.side_effect = (
            self.mock_client.exceptions.ConflictException()
        )

        result = self.service.schedule_daily_sweep(at="20:30")

        self.assertTrue(result)
        self.mock_client.update_schedule.assert_called_once()
        _, kwargs = self.mock_client.update_schedule.call_args
        self.assertEqual("cron(30 20 * * ? *)", kwargs["ScheduleExpression"])
        self.assertNotIn("ClientToken", kwargs)

    def test_schedule_daily_sweep_invalid_time(self):
        with self.assertRaises(ValueError):
            self.service.schedule_daily_sweep(at="not-a-time")

        self.mock_client.create_schedule.assert_not_called()

    def test_schedule_daily_sweep_generic_exception(self):
        self.mock_client.create_schedule.side_effect = Exception("AWS failure")

        with self.assertRaises(Exception):
            self.service.schedule_daily_sweep()


if __name__ == "__main__":
    unittest.main()
