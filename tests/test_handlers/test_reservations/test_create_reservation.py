import importlib
import json
import os
import unittest
from unittest.mock import MagicMock, patch

from common.utils.custom_exceptions import RoomNotFound, RoomUnavailable, ValidationError


class CreateReservationTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.env = patch.dict(
            os.environ,
            {"TABLE_NAME": "test-table", "AWS_REGION": "ap-south-1"},
            clear=False,
        )
        cls.env.start()
        cls.resource = patch("handlers.reservations.create_reservation.resource")
        mock_res = cls.resource.start()
        mock_res.return_value.Table.return_value = MagicMock()
        import handlers.reservations.create_reservation as mod
        cls.mod = importlib.reload(mod)

    @classmethod
    def tearDownClass(cls):
        cls.resource.stop()
        cls.env.stop()

    def setUp(self):
        self.p_send = patch(
            "handlers.reservations.create_reservation.send_custom_response",
            side_effect=lambda status_code, message=None, data=None: {
                "statusCode": status_code,
                "body": json.dumps({"message": message}),
            },
        )
        self.p_create = patch.object(self.mod.reservation_service, "create_reservation")
        self.mock_send = self.p_send.start()
        self.mock_create = self.p_create.start()

    def tearDown(self):
        self.p_send.stop()
        self.p_create.stop()

    def _event(self, body=None, user_id="u1"):
        return {
            "body": json.dumps(body) if body is not None else None,
            "requestContext": {"authorizer": {"user_id": user_id} if user_id else {}},
        }

    def _body(self, **overrides):
        body = {
            "room_id": "r1",
            "check_in": "2099-03-12",
            "check_out": "2099-03-14",
            "guests": 2,
        }
        body.update(overrides)
        return body

    def test_missing_body_returns_400(self):
        resp = self.mod.create_reservation({}, None)
        self.assertEqual(400, resp["statusCode"])

    def test_invalid_dates_return_400(self):
        resp = self.mod.create_reservation(
            self._event(self._body(check_out="2099-03-10")), None
        )
        self.assertEqual(400, resp["statusCode"])
        self.mock_create.assert_not_called()

    def test_invalid_card_returns_400(self):
        card = {
            "card_number": "1234",
            "expiry_month": 1,
            "expiry_year": 2099,
            "cvv": "123",
            "holder_name": "Jane",
        }
        resp = self.mod.create_reservation(self._event(self._body(credit_card=card)), None)
        self.assertEqual(400, resp["statusCode"])

    def test_missing_user_in_authorizer_returns_401(self):
        resp = self.mod.create_reservation(self._event(self._body(), user_id=None), None)
        self.assertEqual(401, resp["statusCode"])

    def test_success_returns_201(self):
        self.mock_create.return_value = MagicMock()
        resp = self.mod.create_reservation(self._event(self._body()), None)
        self.assertEqual(201, resp["statusCode"])
        request, user_id = self.mock_create.call_args[0]
        self.assertEqual("r1", request.room_id)
        self.assertEqual("u1", user_id)

    def test_cutoff_validation_error_returns_400(self):
        self.mock_create.side_effect = ValidationError("too late for a pending hold")
        resp = self.mod.create_reservation(self._event(self._body()), None)
        self.assertEqual(400, resp["statusCode"])

    def test_room_not_found_returns_404(self):
        self.mock_create.side_effect = RoomNotFound("r1")
        resp = self.mod.create_reservation(self._event(self._body()), None)
        self.assertEqual(404, resp["statusCode"])

    def test_room_unavailable_returns_409(self):
        self.mock_create.side_effect = RoomUnavailable("taken")
        resp = self.mod.create_reservation(self._event(self._body()), None)
        self.assertEqual(409, resp["statusCode"])

    def test_unexpected_error_returns_500(self):
        self.mock_create.side_effect = Exception("boom")
        resp = self.mod.create_reservation(self._event(self._body()), None)
        self.assertEqual(500, resp["statusCode"])


if __name__ == "__main__":
    unittest.main()
