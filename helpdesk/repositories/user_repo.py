"""User Repository - Data access for user records"""
import re
from typing import Optional
from pymongo.collection import Collection
from pymongo.database import Database

from .mongo_client import get_database, to_storage
from ..domain.models import User
from ..domain.errors import UserNotFoundError
from ..utils.logger import get_logger

logger = get_logger(__name__)


def _email_query(email: str) -> dict:
    return {"email": {"$regex": f"^{re.escape(email)}$", "$options": "i"}}


class UserRepository:
    """Repository for users"""

    def __init__(self, db: Optional[Database] = None):
        db = db if db is not None else get_database()
        self._users: Collection = db["users"]

    def create_user(self, user: User) -> User:
        """Create a new user"""
        doc = to_storage(user.model_dump())
        doc["_id"] = user.user_id
        self._users.insert_one(doc)
        logger.info(f"Created user: {user.user_id}", extra={"actor_id": user.user_id})
        return user

    def upsert_user(self, user: User) -> User:
        """Create or replace a user by email"""
        doc = to_storage(user.model_dump())
        existing = self._users.find_one(_email_query(user.email))
        if existing:
            doc["user_id"] = existing["user_id"]
            doc["_id"] = existing["_id"]
            self._users.replace_one({"_id": existing["_id"]}, doc)
        else:
            doc["_id"] = doc["user_id"]
            self._users.insert_one(doc)
        doc.pop("_id", None)
        return User.model_validate(doc)

    def get_user(self, user_id: str) -> Optional[User]:
        """Get user by ID"""
        doc = self._users.find_one({"user_id": user_id})
        if doc:
            doc.pop("_id", None)
            return User.model_validate(doc)
        return None

    def get_user_or_raise(self, user_id: str) -> User:
        """Get user by ID or raise error"""
        user = self.get_user(user_id)
        if not user:
            raise UserNotFoundError(f"User {user_id} not found", details={"user_id": user_id})
        return user

    def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email (case-insensitive)"""
        doc = self._users.find_one(_email_query(email))
        if doc:
            doc.pop("_id", None)
            return User.model_validate(doc)
        return None
