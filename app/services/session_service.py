"""
app/services/session_service.py

Purpose: Session persistence

- Loads and lazily creates the session of a sender
- Saves step and draft after every turn (last write wins)
- Resets a session to idle with an empty draft
- MongoDB backend for deployments, in-memory backend for local runs and tests
"""

from abc import ABC, abstractmethod
from datetime import datetime
from functools import lru_cache
from typing import Dict, Optional

from pymongo import ReturnDocument

from app.core.config import settings
from app.core.logging import get_logger, LogContext
from app.db.mongo import get_collection, store_errors, SESSIONS_COLLECTION
from app.models.session import Session

logger = get_logger(__name__)


class SessionStore(ABC):
    """
    Keyed mapping from sender address to that sender's Session.
    """

    @abstractmethod
    async def get(self, sender: str) -> Optional[Session]:
        """Returns the stored session, or None if the sender has none."""

    @abstractmethod
    async def create_if_absent(self, sender: str) -> Session:
        """Returns the stored session, creating an idle one first if needed."""

    @abstractmethod
    async def save(self, session: Session) -> None:
        """Persists step and draft of the session."""

    async def reset(self, sender: str) -> Session:
        session = Session(sender=sender)
        await self.save(session)
        return session


class MongoSessionStore(SessionStore):
    """
    Sessions collection, one document per sender:

    {
        "sender": "+919876543210",
        "step": "awaiting_drop",
        "draft": {"pickup": "MG Road", "drop": null, "time": null},
        "updated_at": datetime
    }
    """

    async def get(self, sender: str) -> Optional[Session]:
        with store_errors("load session", sender=sender):
            sessions = await get_collection(SESSIONS_COLLECTION)
            document = await sessions.find_one({"sender": sender})

        return Session.from_document(document) if document else None

    async def create_if_absent(self, sender: str) -> Session:
        with LogContext(sender=sender):
            with store_errors("create session", sender=sender):
                sessions = await get_collection(SESSIONS_COLLECTION)
                document = await sessions.find_one_and_update(
                    {"sender": sender},
                    {"$setOnInsert": Session(sender=sender).to_document()},
                    upsert=True,
                    return_document=ReturnDocument.AFTER,
                )

            return Session.from_document(document)

    async def save(self, session: Session) -> None:
        with LogContext(sender=session.sender, step=session.step.value):
            document = session.to_document()
            document["updated_at"] = datetime.utcnow()

            with store_errors("save session", sender=session.sender):
                sessions = await get_collection(SESSIONS_COLLECTION)
                await sessions.update_one(
                    {"sender": session.sender},
                    {"$set": document},
                    upsert=True,
                )

            logger.debug("Session saved")


class InMemorySessionStore(SessionStore):
    """
    Process-local store. Sessions are lost on restart and not shared
    between workers.
    """

    def __init__(self):
        self._sessions: Dict[str, dict] = {}

    async def get(self, sender: str) -> Optional[Session]:
        document = self._sessions.get(sender)
        return Session.from_document(document) if document else None

    async def create_if_absent(self, sender: str) -> Session:
        if sender not in self._sessions:
            self._sessions[sender] = Session(sender=sender).to_document()
        return Session.from_document(self._sessions[sender])

    async def save(self, session: Session) -> None:
        document = session.to_document()
        document["updated_at"] = datetime.utcnow()
        self._sessions[session.sender] = document

    def __len__(self) -> int:
        return len(self._sessions)


@lru_cache(maxsize=None)
def get_session_store() -> SessionStore:
    """
    Returns the process-wide session store for the configured backend.
    """
    if settings.STORE_BACKEND == "memory":
        logger.warning("Using in-memory session store")
        return InMemorySessionStore()
    return MongoSessionStore()
