"""
app/models/user.py

Purpose: User document model

- WhatsApp sender address (unique)
- Display name from the provider profile
- Creation and last activity timestamps
"""

from datetime import datetime

from pydantic import BaseModel, Field


class User(BaseModel):
    phone: str = Field(..., description="Sender address in E.164 format")
    name: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    last_active: datetime = Field(default_factory=datetime.utcnow)

    @classmethod
    def from_document(cls, document: dict) -> "User":
        return cls(**{key: value for key, value in document.items() if key != "_id"})
