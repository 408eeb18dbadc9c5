import unittest
from unittest.mock import MagicMock
from botocore.exceptions import ClientError

from common.repository.user_repo import UserRepository
from common.models.users import UserRole


class TestUserRepository(unittest.TestCase):

    def setUp(self):
        self.table = MagicMock()
        self.repo = UserRepository(self.table)

    def test_get_by_id(self):
        self.table.get_item.return_value = {
            "Item": {
                "pk": "USER#u1",
                "sk": "DETAILS",
                "email": "acme@example.com",
                "username": "Acme Travel",
                "role": "COMPANY",
            }
        }

        user = self.repo.get_by_id("u1")

        self.assertEqual("u1", user.user_id)
        self.assertEqual("Acme Travel", user.name)
        self.assertEqual(UserRole.COMPANY, user.role)

    def test_get_by_id_not_found(self):
        self.table.get_item.return_value = {}

        self.assertIsNone(self.repo.get_by_id("ghost"))

    def test_get_by_id_error(self):
        self.table.get_item.side_effect = ClientError(
            {"Error": {"Code": "500", "Message": "boom"}}, "GetItem"
        )

        with self.assertRaises(ClientError):
            self.repo.get_by_id("u1")


if __name__ == "__main__":
    unittest.main()
