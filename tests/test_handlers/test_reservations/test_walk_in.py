import importlib
import json
import os
import unittest
from datetime import date
from unittest.mock import MagicMock, patch

from common.models.reservations import Reservation, ReservationStatus
from common.models.rooms import RoomType
from common.utils.custom_exceptions import NoAvailableRooms, ValidationError


class WalkInTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.env = patch.dict(os.environ, {"TABLE_NAME": "test-table"}, clear=False)
        cls.env.start()
        cls.resource = patch("handlers.reservations.walk_in.resource")
        mock_res = cls.resource.start()
        mock_res.return_value.Table.return_value = MagicMock()
        import handlers.reservations.walk_in as mod
        cls.mod = importlib.reload(mod)

    @classmethod
    def tearDownClass(cls):
        cls.resource.stop()
        cls.env.stop()

    def setUp(self):
        self.p_walk_in = patch.object(self.mod.reservation_service, "walk_in")
        self.mock_walk_in = self.p_walk_in.start()

    def tearDown(self):
        self.p_walk_in.stop()

    def _event(self, body=None, role="STAFF"):
        if body is None:
            body = {"guest_id": "g1", "room_type": "single", "check_out": "2099-03-14"}
        return {
            "body": json.dumps(body),
            "requestContext": {"authorizer": {"user_id": "desk-1", "role": role}},
        }

    def test_guest_cannot_register_walk_in(self):
        resp = self.mod.walk_in(self._event(role="CUSTOMER"), None)
        self.assertEqual(403, resp["statusCode"])
        self.mock_walk_in.assert_not_called()

    def test_missing_guest_id_returns_400(self):
        resp = self.mod.walk_in(
            self._event({"room_type": "SINGLE", "check_out": "2099-03-14"}), None
        )
        self.assertEqual(400, resp["statusCode"])
        self.mock_walk_in.assert_not_called()

    def test_walk_in_created_for_guest(self):
        self.mock_walk_in.return_value = Reservation(
            reservation_id="res-9",
            room_id="s1",
            user_id="g1",
            check_in=date(2099, 3, 12),
            check_out=date(2099, 3, 14),
            guests=1,
            status=ReservationStatus.CHECKED_IN,
            total_amount=120.0,
        )

        resp = self.mod.walk_in(self._event(), None)

        self.assertEqual(201, resp["statusCode"])
        args, _ = self.mock_walk_in.call_args
        self.assertEqual(RoomType.SINGLE, args[0].room_type)
        self.assertEqual("g1", args[1])
        self.assertEqual("CHECKED_IN", json.loads(resp["body"])["data"]["status"])

    def test_future_start_returns_400(self):
        self.mock_walk_in.side_effect = ValidationError("walk-in stays must start today")
        resp = self.mod.walk_in(self._event(), None)
        self.assertEqual(400, resp["statusCode"])

    def test_no_room_free_returns_409(self):
        self.mock_walk_in.side_effect = NoAvailableRooms("no SINGLE room is free")
        resp = self.mod.walk_in(self._event(), None)
        self.assertEqual(409, resp["statusCode"])


if __name__ == "__main__":
    unittest.main()
