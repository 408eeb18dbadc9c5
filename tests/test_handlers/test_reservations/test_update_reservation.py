import importlib
import json
import os
import unittest
from datetime import date
from unittest.mock import MagicMock, patch

from common.models.reservations import Reservation, ReservationStatus
from common.utils.custom_exceptions import (
    InvalidStateTransition,
    ReservationNotFound,
    RoomUnavailable,
)


def _reservation(status=ReservationStatus.CONFIRMED, user_id="u1"):
    return Reservation(
        reservation_id="res-1",
        room_id="r1",
        user_id=user_id,
        check_in=date(2099, 3, 12),
        check_out=date(2099, 3, 14),
        guests=1,
        status=status,
        total_amount=200.0,
        has_credit_card=True,
    )


class UpdateReservationTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.env = patch.dict(os.environ, {"TABLE_NAME": "test-table"}, clear=False)
        cls.env.start()
        cls.resource = patch("handlers.reservations.update_reservation.resource")
        mock_res = cls.resource.start()
        mock_res.return_value.Table.return_value = MagicMock()
        import handlers.reservations.update_reservation as mod
        cls.mod = importlib.reload(mod)

    @classmethod
    def tearDownClass(cls):
        cls.resource.stop()
        cls.env.stop()

    def setUp(self):
        service = self.mod.reservation_service
        self.p_get = patch.object(service, "get_reservation", return_value=_reservation())
        self.p_transition = patch.object(service, "transition")
        self.p_change = patch.object(service, "_change_stay")
        self.mock_get = self.p_get.start()
        self.mock_transition = self.p_transition.start()
        self.mock_change = self.p_change.start()

    def tearDown(self):
        self.p_get.stop()
        self.p_transition.stop()
        self.p_change.stop()

    def _event(self, body, user_id="u1", role="CUSTOMER", reservation_id="res-1"):
        return {
            "body": json.dumps(body),
            "pathParameters": {"reservation_id": reservation_id} if reservation_id else None,
            "requestContext": {"authorizer": {"user_id": user_id, "role": role}},
        }

    def test_guest_cannot_check_in_through_update(self):
        resp = self.mod.update_reservation(self._event({"status": "CHECKED_IN"}), None)

        self.assertEqual(403, resp["statusCode"])
        self.mock_transition.assert_not_called()

    def test_guest_cannot_move_rooms(self):
        resp = self.mod.update_reservation(self._event({"room_id": "r2"}), None)

        self.assertEqual(403, resp["statusCode"])
        self.mock_change.assert_not_called()

    def test_other_guest_forbidden(self):
        resp = self.mod.update_reservation(
            self._event({"guests": 2}, user_id="u2"), None
        )

        self.assertEqual(403, resp["statusCode"])
        self.mock_change.assert_not_called()

    def test_guest_can_cancel_own_reservation(self):
        self.mock_transition.return_value = _reservation(ReservationStatus.CANCELLED)

        resp = self.mod.update_reservation(self._event({"status": "cancelled"}), None)

        self.assertEqual(200, resp["statusCode"])
        self.assertEqual("CANCELLED", json.loads(resp["body"])["data"]["status"])
        args, _ = self.mock_transition.call_args
        self.assertEqual(ReservationStatus.CANCELLED, args[1])

    def test_guest_can_extend_own_stay(self):
        extended = _reservation()
        extended.check_out = date(2099, 3, 15)
        self.mock_change.return_value = extended

        resp = self.mod.update_reservation(
            self._event({"check_out": "2099-03-15"}), None
        )

        self.assertEqual(200, resp["statusCode"])
        self.assertEqual("2099-03-15", json.loads(resp["body"])["data"]["check_out"])

    def test_staff_can_check_guest_in(self):
        self.mock_transition.return_value = _reservation(ReservationStatus.CHECKED_IN)

        resp = self.mod.update_reservation(
            self._event({"status": "CHECKED_IN"}, user_id="desk-1", role="STAFF"), None
        )

        self.assertEqual(200, resp["statusCode"])
        self.mock_transition.assert_called_once()

    def test_empty_update_returns_400(self):
        resp = self.mod.update_reservation(self._event({}), None)
        self.assertEqual(400, resp["statusCode"])

    def test_missing_path_parameter(self):
        resp = self.mod.update_reservation(
            self._event({"guests": 2}, reservation_id=None), None
        )
        self.assertEqual(400, resp["statusCode"])

    def test_room_taken_returns_409(self):
        self.mock_change.side_effect = RoomUnavailable("room r1 is booked")
        resp = self.mod.update_reservation(
            self._event({"check_out": "2099-03-15"}), None
        )
        self.assertEqual(409, resp["statusCode"])

    def test_terminal_reservation_returns_409(self):
        self.mock_get.return_value = _reservation(ReservationStatus.CHECKED_OUT)
        resp = self.mod.update_reservation(self._event({"guests": 2}), None)
        self.assertEqual(409, resp["statusCode"])

    def test_illegal_transition_returns_409(self):
        self.mock_transition.side_effect = InvalidStateTransition(
            "res-1", ReservationStatus.CONFIRMED, ReservationStatus.NO_SHOW
        )
        resp = self.mod.update_reservation(
            self._event({"status": "NO_SHOW"}, user_id="desk-1", role="MANAGER"), None
        )
        self.assertEqual(409, resp["statusCode"])

    def test_unknown_reservation_returns_404(self):
        self.mock_get.side_effect = ReservationNotFound("res-1")
        resp = self.mod.update_reservation(self._event({"guests": 2}), None)
        self.assertEqual(404, resp["statusCode"])


if __name__ == "__main__":
    unittest.main()
