"""
app/services/user_service.py

Purpose: User data management

- Creates a user record on the first inbound message
- Refreshes last activity on every later message
- Users are never deleted
"""

from abc import ABC, abstractmethod
from datetime import datetime
from functools import lru_cache
from typing import Dict, Optional

from pymongo import ReturnDocument

from app.core.config import settings
from app.core.logging import get_logger, LogContext
from app.db.mongo import get_collection, store_errors, USERS_COLLECTION
from app.models.user import User

logger = get_logger(__name__)


class UserRepository(ABC):

    @abstractmethod
    async def get_by_phone(self, phone: str) -> Optional[User]:
        """Returns the user, or None if the sender never wrote before."""

    @abstractmethod
    async def get_or_create(self, phone: str, name: Optional[str] = None) -> User:
        """Returns the user, creating it on first contact."""


class MongoUserRepository(UserRepository):

    async def get_by_phone(self, phone: str) -> Optional[User]:
        with store_errors("load user", sender=phone):
            users = await get_collection(USERS_COLLECTION)
            document = await users.find_one({"phone": phone})
        return User.from_document(document) if document else None

    async def get_or_create(self, phone: str, name: Optional[str] = None) -> User:
        """
        Upserts the user in a single round trip.

        Concurrent first messages from one sender both land on the same
        document thanks to the unique phone index.
        """
        with LogContext(sender=phone):
            now = datetime.utcnow()

            with store_errors("create user", sender=phone):
                users = await get_collection(USERS_COLLECTION)
                previous = await users.find_one_and_update(
                    {"phone": phone},
                    {
                        "$setOnInsert": {
                            "phone": phone,
                            "name": name or phone,
                            "created_at": now,
                        },
                        "$set": {"last_active": now},
                    },
                    upsert=True,
                    return_document=ReturnDocument.BEFORE,
                )

            if previous is None:
                logger.info("✅ Created new user")
                return User(phone=phone, name=name or phone, created_at=now, last_active=now)

            return User.from_document({**previous, "last_active": now})


class InMemoryUserRepository(UserRepository):

    def __init__(self):
        self.users: Dict[str, User] = {}

    async def get_by_phone(self, phone: str) -> Optional[User]:
        return self.users.get(phone)

    async def get_or_create(self, phone: str, name: Optional[str] = None) -> User:
        user = self.users.get(phone)
        if user is None:
            user = User(phone=phone, name=name or phone)
            self.users[phone] = user
            logger.info("✅ Created new user", extra={"sender": phone})
        else:
            user = user.model_copy(update={"last_active": datetime.utcnow()})
            self.users[phone] = user
        return user


@lru_cache(maxsize=None)
def get_user_repository() -> UserRepository:
    if settings.STORE_BACKEND == "memory":
        return InMemoryUserRepository()
    return MongoUserRepository()
