"""
app/services/booking_service.py

Purpose: Booking persistence

- Turns a completed draft into a Booking (id, fixed fare, pending status)
- Append-only: bookings are never updated or deleted by the bot
- Recent bookings of a sender, newest first
- MongoDB backend for deployments, in-memory backend for local runs and tests
"""

import random
from abc import ABC, abstractmethod
from datetime import datetime
from functools import lru_cache
from typing import Callable, List, Optional

from pymongo import DESCENDING

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.core.logging import get_logger, LogContext
from app.db.mongo import get_collection, store_errors, BOOKINGS_COLLECTION
from app.models.booking import Booking, BookingDraft, BookingStatus

logger = get_logger(__name__)


def generate_booking_id(prefix: Optional[str] = None) -> str:
    """
    Prefix plus a random 4-digit suffix, e.g. "CAB4821".

    Collisions are possible and not checked.
    """
    prefix = settings.BOOKING_ID_PREFIX if prefix is None else prefix
    return f"{prefix}{random.randint(1000, 9999)}"


class BookingRepository(ABC):
    """
    Append-only store of completed bookings.
    """

    def __init__(self, id_generator: Callable[[], str] = generate_booking_id, fare: Optional[int] = None):
        self.id_generator = id_generator
        self.fare = settings.BOOKING_FARE if fare is None else fare

    def build(self, sender: str, draft: BookingDraft) -> Booking:
        if not draft.is_complete():
            raise ValidationError(
                "Booking draft is incomplete",
                details={"missing": sorted({"pickup", "drop", "time"} - draft.filled_fields())}
            )

        return Booking(
            booking_id=self.id_generator(),
            sender=sender,
            pickup=draft.pickup,
            drop=draft.drop,
            time=draft.time,
            status=BookingStatus.PENDING,
            fare=self.fare,
            created_at=datetime.utcnow(),
        )

    @abstractmethod
    async def create(self, sender: str, draft: BookingDraft) -> Booking:
        """Stores a new booking built from the draft and returns it."""

    @abstractmethod
    async def list_recent_by_sender(self, sender: str, limit: int) -> List[Booking]:
        """Returns at most `limit` bookings of the sender, newest first."""


class MongoBookingRepository(BookingRepository):

    async def create(self, sender: str, draft: BookingDraft) -> Booking:
        booking = self.build(sender, draft)

        with LogContext(sender=sender, booking_id=booking.booking_id):
            with store_errors("create booking", sender=sender):
                bookings = await get_collection(BOOKINGS_COLLECTION)
                await bookings.insert_one(booking.to_document())

            logger.info("Booking created")

        return booking

    async def list_recent_by_sender(self, sender: str, limit: int) -> List[Booking]:
        if limit <= 0:
            return []

        with store_errors("list bookings", sender=sender):
            bookings = await get_collection(BOOKINGS_COLLECTION)
            cursor = bookings.find({"sender": sender}).sort("created_at", DESCENDING).limit(limit)
            documents = await cursor.to_list(length=limit)

        return [Booking.from_document(document) for document in documents]


class InMemoryBookingRepository(BookingRepository):

    def __init__(self, id_generator: Callable[[], str] = generate_booking_id, fare: Optional[int] = None):
        super().__init__(id_generator=id_generator, fare=fare)
        self.bookings: List[Booking] = []

    async def create(self, sender: str, draft: BookingDraft) -> Booking:
        booking = self.build(sender, draft)
        self.bookings.append(booking)
        logger.info("Booking created", extra={"sender": sender, "booking_id": booking.booking_id})
        return booking

    async def list_recent_by_sender(self, sender: str, limit: int) -> List[Booking]:
        if limit <= 0:
            return []

        # Stable sort keeps insertion order for equal timestamps; reversed so the later insert wins
        owned = [booking for booking in reversed(self.bookings) if booking.sender == sender]
        owned.sort(key=lambda booking: booking.created_at, reverse=True)
        return owned[:limit]


@lru_cache(maxsize=None)
def get_booking_repository() -> BookingRepository:
    """
    Returns the process-wide booking repository for the configured backend.
    """
    if settings.STORE_BACKEND == "memory":
        logger.warning("Using in-memory booking repository")
        return InMemoryBookingRepository()
    return MongoBookingRepository()
