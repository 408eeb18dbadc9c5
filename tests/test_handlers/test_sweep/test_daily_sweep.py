import importlib
import os
import unittest
from datetime import date
from unittest.mock import MagicMock, patch

from common.services.sweep_service import SweepResult
from common.utils.custom_exceptions import SweepAlreadyRunning


class DailySweepHandlerTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.env = patch.dict(os.environ, {"TABLE_NAME": "test-table"}, clear=False)
        cls.env.start()
        cls.resource = patch("handlers.sweep.daily_sweep.resource")
        mock_res = cls.resource.start()
        mock_res.return_value.Table.return_value = MagicMock()
        import handlers.sweep.daily_sweep as mod
        cls.mod = importlib.reload(mod)

    @classmethod
    def tearDownClass(cls):
        cls.resource.stop()
        cls.env.stop()

    def test_returns_summary(self):
        result = SweepResult(
            run_date=date(2026, 3, 10),
            cancelled=["p1"],
            no_shows=["c1"],
            failed=["x1"],
        )
        with patch.object(self.mod.sweep_service, "run", return_value=result):
            summary = self.mod.daily_sweep({"task": "daily_sweep"}, None)

        self.assertEqual("completed", summary["status"])
        self.assertEqual("2026-03-10", summary["run_date"])
        self.assertEqual(["p1"], summary["cancelled"])
        self.assertEqual(["c1"], summary["no_shows"])
        self.assertEqual(["x1"], summary["failed"])

    def test_overlapping_run_is_skipped(self):
        with patch.object(
            self.mod.sweep_service, "run", side_effect=SweepAlreadyRunning("held")
        ):
            summary = self.mod.daily_sweep({}, None)

        self.assertEqual("skipped", summary["status"])

    def test_services_share_one_table(self):
        self.assertIs(self.mod.sweep_service.reservation_repo, self.mod.reservation_repo)
        self.assertIsNotNone(self.mod.sweep_service.lock_repo)
        self.assertIsNotNone(self.mod.sweep_service.report_service)


if __name__ == "__main__":
    unittest.main()
