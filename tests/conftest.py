"""
Pytest fixtures shared by the test modules.

Every test runs against the in-memory stores and a recording reply
dispatcher, so no MongoDB or Twilio account is needed.
"""

import itertools
from typing import List, Sequence, Tuple

import pytest
from fastapi.testclient import TestClient

from app.core.exceptions import PersistenceError
from app.flow.dispatcher import ConversationService, get_conversation_service
from app.main import app
from app.models.session import Session
from app.schemas.webhook import InboundMessage
from app.services.booking_service import InMemoryBookingRepository
from app.services.session_service import InMemorySessionStore
from app.services.twilio_service import DispatchResult, ReplyDispatcher
from app.services.user_service import InMemoryUserRepository

PHONE = "+919876543210"


class RecordingDispatcher(ReplyDispatcher):
    """Keeps every reply instead of sending it; can be told to fail."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[dict] = []

    def _result(self) -> DispatchResult:
        if self.fail:
            return DispatchResult(success=False, error="Twilio API error: 400")
        return DispatchResult(success=True, message_sid=f"SM{len(self.sent):04d}", status="queued")

    async def send_text(self, to: str, body: str) -> DispatchResult:
        self.sent.append({"to": to, "text": body, "choices": ()})
        return self._result()

    async def send_interactive(self, to: str, prompt: str, choices: Sequence[Tuple[str, str]]) -> DispatchResult:
        self.sent.append({"to": to, "text": prompt, "choices": tuple(choices)})
        return self._result()


class UnavailableSessionStore(InMemorySessionStore):
    """Reads work, writes fail like a MongoDB outage mid-turn."""

    async def save(self, session: Session) -> None:
        raise PersistenceError("Failed to save session", details="connection refused")


class UnavailableBookingRepository(InMemoryBookingRepository):

    async def create(self, sender, draft):
        raise PersistenceError("Failed to create booking", details="connection refused")

    async def list_recent_by_sender(self, sender, limit):
        raise PersistenceError("Failed to list bookings", details="connection refused")


def sequential_ids(prefix: str = "CAB"):
    counter = itertools.count(1000)
    return lambda: f"{prefix}{next(counter)}"


@pytest.fixture
def sessions():
    return InMemorySessionStore()


@pytest.fixture
def bookings():
    return InMemoryBookingRepository(id_generator=sequential_ids(), fare=20)


@pytest.fixture
def users():
    return InMemoryUserRepository()


@pytest.fixture
def replies():
    return RecordingDispatcher()


@pytest.fixture
def conversation_service(sessions, bookings, users, replies):
    return ConversationService(
        sessions=sessions,
        bookings=bookings,
        users=users,
        replies=replies,
        recent_bookings_limit=5,
    )


@pytest.fixture
def client(conversation_service):
    app.dependency_overrides[get_conversation_service] = lambda: conversation_service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_message():
    def _make(text: str = "", selection_id: str = None, phone: str = PHONE) -> InboundMessage:
        return InboundMessage(
            phone=phone,
            name="Asha",
            text=text,
            message_id="SM1234567890",
            platform="twilio",
            selection_id=selection_id,
        )
    return _make
