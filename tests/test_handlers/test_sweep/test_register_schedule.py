import importlib
import os
import unittest
from unittest.mock import patch


class RegisterScheduleTests(unittest.TestCase):

    def _load(self, env):
        with patch.dict(os.environ, env, clear=False):
            import handlers.sweep.register_schedule as mod
            return importlib.reload(mod)

    def test_registers_daily_schedule(self):
        mod = self._load(
            {"SWEEP_LAMBDA_ARN": "arn:lambda", "SCHEDULER_ROLE_ARN": "arn:role"}
        )

        with patch.object(mod, "SchedulerService") as scheduler_cls:
            result = mod.register_schedule({"at": "18:30"}, None)

        scheduler_cls.assert_called_once_with(
            lambda_arn="arn:lambda", role_arn="arn:role", region=mod.REGION
        )
        scheduler_cls.return_value.schedule_daily_sweep.assert_called_once_with(at="18:30")
        self.assertEqual("scheduled", result["status"])

    def test_missing_configuration(self):
        mod = self._load({"SWEEP_LAMBDA_ARN": "", "SCHEDULER_ROLE_ARN": ""})

        with self.assertRaises(KeyError):
            mod.register_schedule({}, None)


if __name__ == "__main__":
    unittest.main()
