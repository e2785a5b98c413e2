"""
app/models/session.py

Purpose: Conversation session document model

- One session per sender address
- Current step and booking draft
- Consistency between step and filled draft fields
"""

from datetime import datetime

from pydantic import BaseModel, Field

from app.core.exceptions import SessionStateError
from app.flow.states import ConversationStep, get_step_metadata
from app.models.booking import BookingDraft


class Session(BaseModel):
    sender: str = Field(..., description="Sender address, unique per session")
    step: ConversationStep = ConversationStep.IDLE
    draft: BookingDraft = Field(default_factory=BookingDraft)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def is_consistent(self) -> bool:
        """
        A session is consistent when its draft holds exactly the fields the
        current step requires. Idle sessions must have an empty draft.
        """
        metadata = get_step_metadata(self.step)
        return self.draft.filled_fields() == set(metadata.requires)

    def to_document(self) -> dict:
        return {
            "sender": self.sender,
            "step": self.step.value,
            "draft": self.draft.model_dump(),
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_document(cls, document: dict) -> "Session":
        """
        Raises:
            SessionStateError: If the step or draft is not one this version knows
        """
        try:
            return cls(
                sender=document["sender"],
                step=ConversationStep(document.get("step", ConversationStep.IDLE.value)),
                draft=BookingDraft(**(document.get("draft") or {})),
                updated_at=document.get("updated_at") or datetime.utcnow(),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise SessionStateError(
                "Stored session is unreadable",
                details={"step": document.get("step"), "reason": str(e)},
            ) from e
