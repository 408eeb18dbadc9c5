from botocore.exceptions import ClientError
import logging
from typing import Optional
from common.models.users import User, UserRole

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types_boto3_dynamodb.service_resource import Table
else:
    Table = object

logger = logging.getLogger(__name__)


class UserRepository:
    """Read-only view of the identity store; users are managed elsewhere."""

    def __init__(self, table: Table):
        self.table = table

    def get_by_id(self, user_id: str) -> Optional[User]:
        try:
            response = self.table.get_item(
                Key={"pk": f"USER#{user_id}", "sk": "DETAILS"}
            )
        except ClientError as err:
            logger.error(f"Error retrieving user by id {user_id}: {err}")
            raise

        item = response.get("Item")
        if not item:
            return None

        return self._to_domain(item=item)

    @staticmethod
    def _to_domain(item: dict) -> User:
        return User(
            user_id=item["pk"].split("#", 1)[1],
            name=item.get("name") or item.get("username", ""),
            email=item["email"],
            role=UserRole(item["role"]),
        )
