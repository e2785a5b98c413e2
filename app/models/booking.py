"""
app/models/booking.py

Purpose: Booking document model

- Draft fields collected across a conversation
- Completed booking record (id, route, time, fare, status)
- Stored in the bookings collection, never mutated by the bot
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class BookingDraft(BaseModel):
    """
    Partially-filled booking carried by a session until the time step completes.
    """
    pickup: Optional[str] = None
    drop: Optional[str] = None
    time: Optional[str] = None

    def filled_fields(self) -> set:
        return {name for name, value in self.model_dump().items() if value}

    def is_complete(self) -> bool:
        return bool(self.pickup and self.drop and self.time)


class Booking(BaseModel):
    """
    A finalized cab booking.
    """
    booking_id: str = Field(..., description="Prefix plus 4-digit random suffix, e.g. CAB4821")
    sender: str = Field(..., description="Sender address that owns the booking")
    pickup: str
    drop: str
    time: str
    status: BookingStatus = BookingStatus.PENDING
    fare: int
    created_at: datetime = Field(default_factory=datetime.utcnow)

    def to_document(self) -> dict:
        document = self.model_dump()
        document["status"] = self.status.value
        return document

    @classmethod
    def from_document(cls, document: dict) -> "Booking":
        document = {key: value for key, value in document.items() if key != "_id"}
        return cls(**document)
