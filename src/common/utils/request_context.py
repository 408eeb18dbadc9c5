from typing import Optional, Tuple
from pydantic import ValidationError as PydanticValidationError

from common.models.users import UserRole


def get_caller(event: dict) -> Tuple[str, Optional[UserRole]]:
    """user_id and role placed in the request by the external authorizer.

    Raises KeyError when the authorizer context is missing.
    """
    authorizer = event["requestContext"]["authorizer"]
    user_id = authorizer["user_id"]
    if not user_id:
        raise KeyError("user_id")

    role = None
    role_raw = authorizer.get("role")
    if role_raw:
        try:
            role = UserRole(role_raw.upper())
        except ValueError:
            role = None
    return user_id, role


def path_parameter(event: dict, name: str) -> Optional[str]:
    return (event.get("pathParameters") or {}).get(name)


def format_validation_error(err: PydanticValidationError) -> str:
    return "; ".join(f"{e['msg']}" for e in err.errors())
