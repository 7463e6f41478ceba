import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pymongo.errors import PyMongoError

from database import RecordStore, serialize
from errors import ClientError, DependencyError, NotFoundError
from schemas import User

logger = logging.getLogger(__name__)


@dataclass
class CreateUserResult:
    created: bool
    user_id: Optional[str] = None


def create_user_if_absent(store: RecordStore, user: User) -> CreateUserResult:
    """Insert the user unless one with the same email exists already."""
    try:
        if store.users.find_one({"email": user.email}):
            return CreateUserResult(created=False)
        return CreateUserResult(created=True, user_id=store.create_document("users", user))
    except PyMongoError:
        logger.exception("Error creating user %s", user.email)
        raise DependencyError("Failed to create user.")


def find_user_by_email(store: RecordStore, email: Optional[str]) -> Dict[str, Any]:
    if not email:
        raise ClientError("Email query parameter is required")
    try:
        user = store.users.find_one({"email": email.lower()})
    except PyMongoError:
        logger.exception("Error fetching user by email")
        raise DependencyError("Internal server error")
    if not user:
        raise NotFoundError("User not found")
    return serialize(user)


def list_users(store: RecordStore, role: Optional[str] = None) -> List[Dict[str, Any]]:
    try:
        return store.get_documents("users", {"role": role} if role else None)
    except PyMongoError:
        logger.exception("Error fetching users data")
        raise DependencyError("Failed to fetch users data.")
