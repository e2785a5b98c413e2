"""
app/flow/states.py

Purpose: Defines all conversation steps

- Closed enum for each step of the booking dialog
- Single source of truth for flow stages
- State transition validation
- Metadata for each step (draft fields it requires)
"""

from enum import Enum
from typing import Dict, List, Tuple
from dataclasses import dataclass


class ConversationStep(str, Enum):
    """
    Every step a sender's session can be in.
    Stored by value in the sessions collection.
    """

    IDLE = "idle"
    AWAITING_PICKUP = "awaiting_pickup"
    AWAITING_DROP = "awaiting_drop"
    AWAITING_TIME = "awaiting_time"


@dataclass(frozen=True)
class StepMetadata:
    """
    Metadata associated with each conversation step.
    """
    name: ConversationStep
    requires: Tuple[str, ...] = ()  # Draft fields that must already be set
    description: str = ""


STEP_METADATA: Dict[ConversationStep, StepMetadata] = {
    ConversationStep.IDLE: StepMetadata(
        name=ConversationStep.IDLE,
        description="Main menu - book a cab, list bookings or get help"
    ),
    ConversationStep.AWAITING_PICKUP: StepMetadata(
        name=ConversationStep.AWAITING_PICKUP,
        description="Collect the pickup location"
    ),
    ConversationStep.AWAITING_DROP: StepMetadata(
        name=ConversationStep.AWAITING_DROP,
        requires=("pickup",),
        description="Collect the drop-off location"
    ),
    ConversationStep.AWAITING_TIME: StepMetadata(
        name=ConversationStep.AWAITING_TIME,
        requires=("pickup", "drop"),
        description="Collect the pickup time, then finalize the booking"
    ),
}


# Valid step transitions - prevents sessions from skipping steps
STEP_TRANSITIONS: Dict[ConversationStep, List[ConversationStep]] = {
    ConversationStep.IDLE: [
        ConversationStep.IDLE,
        ConversationStep.AWAITING_PICKUP,
    ],
    ConversationStep.AWAITING_PICKUP: [
        ConversationStep.AWAITING_PICKUP,  # Re-prompt on empty input
        ConversationStep.AWAITING_DROP,
        ConversationStep.IDLE,  # Reset
    ],
    ConversationStep.AWAITING_DROP: [
        ConversationStep.AWAITING_DROP,
        ConversationStep.AWAITING_TIME,
        ConversationStep.IDLE,
    ],
    ConversationStep.AWAITING_TIME: [
        ConversationStep.AWAITING_TIME,
        ConversationStep.IDLE,  # Booking finalized
    ],
}


def is_valid_transition(from_step: ConversationStep, to_step: ConversationStep) -> bool:
    """
    Checks if a step transition is valid.

    Args:
        from_step: Current step
        to_step: Target step

    Returns:
        True if transition is allowed, False otherwise
    """
    return to_step in STEP_TRANSITIONS.get(from_step, [])


def get_step_metadata(step: ConversationStep) -> StepMetadata:
    """
    Retrieves metadata for a given step.

    Raises:
        KeyError: If the step has no metadata (a gap in the table above)
    """
    return STEP_METADATA[step]

