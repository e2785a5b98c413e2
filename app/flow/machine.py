"""
app/flow/machine.py

Purpose: Booking conversation state machine

- Pure function of (session, input) -> TurnResult
- One handler per ConversationStep, checked for completeness at import
- No I/O: persistence and sending are requested through TurnResult.effect
  and carried out by the dispatcher
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from app.core.config import settings
from app.core.logging import get_logger
from app.flow.states import ConversationStep, is_valid_transition
from app.models.booking import Booking, BookingDraft
from app.models.session import Session
from utils.constants import (
    ASK_DROP_MESSAGE,
    ASK_PICKUP_MESSAGE,
    ASK_TIME_MESSAGE,
    BOOKING_CONFIRMED_MESSAGE,
    BOOKING_LINE,
    BOOKINGS_HEADER,
    BUTTON_BOOK_CAB,
    BUTTON_MY_BOOKINGS,
    MAIN_MENU_CHOICES,
    MAIN_MENU_MESSAGE,
    MENU_COMMANDS,
    NO_BOOKINGS_MESSAGE,
    SOMETHING_WENT_WRONG_MESSAGE,
    TIME_CHOICES,
)
from utils.time_utils import fold, format_timestamp, normalize_time

logger = get_logger(__name__)


class TurnEffect(str, Enum):
    """Side effect the dispatcher must perform after a turn."""
    NONE = "none"
    CREATE_BOOKING = "create_booking"
    LIST_BOOKINGS = "list_bookings"


@dataclass(frozen=True)
class OutboundMessage:
    """A reply to send back: plain text, or a prompt with (id, label) choices."""
    text: str
    choices: Tuple[Tuple[str, str], ...] = ()

    @property
    def is_interactive(self) -> bool:
        return bool(self.choices)


@dataclass
class TurnResult:
    step: ConversationStep
    draft: BookingDraft
    replies: List[OutboundMessage] = field(default_factory=list)
    effect: TurnEffect = TurnEffect.NONE
    completed_draft: Optional[BookingDraft] = None

    def apply_to(self, session: Session) -> Session:
        return Session(sender=session.sender, step=self.step, draft=self.draft)


# ============================================================
# REPLIES
# ============================================================

def main_menu() -> OutboundMessage:
    return OutboundMessage(MAIN_MENU_MESSAGE, tuple(MAIN_MENU_CHOICES))


def pickup_prompt() -> OutboundMessage:
    return OutboundMessage(ASK_PICKUP_MESSAGE)


def drop_prompt() -> OutboundMessage:
    return OutboundMessage(ASK_DROP_MESSAGE)


def time_prompt() -> OutboundMessage:
    return OutboundMessage(ASK_TIME_MESSAGE, tuple(TIME_CHOICES))


def booking_confirmation(booking: Booking) -> OutboundMessage:
    return OutboundMessage(BOOKING_CONFIRMED_MESSAGE.format(
        booking_id=booking.booking_id,
        pickup=booking.pickup,
        drop=booking.drop,
        time=booking.time,
        currency=settings.CURRENCY_SYMBOL,
        fare=booking.fare,
        status=booking.status.value.title(),
    ))


def booking_history(bookings: Sequence[Booking]) -> OutboundMessage:
    if not bookings:
        return OutboundMessage(NO_BOOKINGS_MESSAGE)

    lines = [
        BOOKING_LINE.format(
            booking_id=booking.booking_id,
            pickup=booking.pickup,
            drop=booking.drop,
            time=booking.time,
            currency=settings.CURRENCY_SYMBOL,
            fare=booking.fare,
            status=booking.status.value.title(),
            created=format_timestamp(booking.created_at),
        )
        for booking in bookings
    ]
    return OutboundMessage("\n\n".join([BOOKINGS_HEADER] + lines))


# ============================================================
# INPUT
# ============================================================

def effective_input(text: Optional[str], selection_id: Optional[str]) -> str:
    """
    A button/list selection wins over the typed body of the same message.
    """
    if selection_id and selection_id.strip():
        return selection_id.strip()
    return (text or "").strip()


def resolve_numbered_choice(user_input: str, choices: Sequence[Tuple[str, str]]) -> str:
    """
    Maps a reply like "2" to the id of the second choice, since prompts with
    choices are delivered as a numbered list. Other input is returned as is.
    """
    folded = fold(user_input).rstrip(".")
    if folded.isdecimal() and 1 <= int(folded) <= len(choices):
        return choices[int(folded) - 1][0]
    return user_input


def match_menu_command(user_input: str) -> Optional[str]:
    """
    Maps main-menu input to a button id, or None when it is not a known command.
    """
    folded = fold(user_input)
    for button_id, keywords in MENU_COMMANDS.items():
        if folded == button_id or folded in keywords:
            return button_id
    return None


# ============================================================
# STEP HANDLERS
# ============================================================

def handle_idle(session: Session, user_input: str) -> TurnResult:
    command = match_menu_command(resolve_numbered_choice(user_input, MAIN_MENU_CHOICES))

    if command == BUTTON_BOOK_CAB:
        return TurnResult(
            step=ConversationStep.AWAITING_PICKUP,
            draft=BookingDraft(),
            replies=[pickup_prompt()],
        )

    if command == BUTTON_MY_BOOKINGS:
        return TurnResult(
            step=ConversationStep.IDLE,
            draft=BookingDraft(),
            effect=TurnEffect.LIST_BOOKINGS,
        )

    # help, greetings and anything unrecognized
    return TurnResult(step=ConversationStep.IDLE, draft=BookingDraft(), replies=[main_menu()])


def handle_pickup(session: Session, user_input: str) -> TurnResult:
    if not user_input:
        return TurnResult(step=session.step, draft=session.draft, replies=[pickup_prompt()])

    return TurnResult(
        step=ConversationStep.AWAITING_DROP,
        draft=session.draft.model_copy(update={"pickup": user_input}),
        replies=[drop_prompt()],
    )


def handle_drop(session: Session, user_input: str) -> TurnResult:
    if not user_input:
        return TurnResult(step=session.step, draft=session.draft, replies=[drop_prompt()])

    return TurnResult(
        step=ConversationStep.AWAITING_TIME,
        draft=session.draft.model_copy(update={"drop": user_input}),
        replies=[time_prompt()],
    )


def handle_time(session: Session, user_input: str) -> TurnResult:
    if not user_input:
        return TurnResult(step=session.step, draft=session.draft, replies=[time_prompt()])

    time_input = resolve_numbered_choice(user_input, TIME_CHOICES)
    completed = session.draft.model_copy(update={"time": normalize_time(time_input)})

    # The confirmation is prepended by the dispatcher once the booking id exists
    return TurnResult(
        step=ConversationStep.IDLE,
        draft=BookingDraft(),
        replies=[main_menu()],
        effect=TurnEffect.CREATE_BOOKING,
        completed_draft=completed,
    )


StepHandler = Callable[[Session, str], TurnResult]

STEP_HANDLERS: Dict[ConversationStep, StepHandler] = {
    ConversationStep.IDLE: handle_idle,
    ConversationStep.AWAITING_PICKUP: handle_pickup,
    ConversationStep.AWAITING_DROP: handle_drop,
    ConversationStep.AWAITING_TIME: handle_time,
}

_missing_handlers = set(ConversationStep) - set(STEP_HANDLERS)
if _missing_handlers:
    raise RuntimeError(f"No handler for steps: {sorted(step.value for step in _missing_handlers)}")


def reset_turn() -> TurnResult:
    return TurnResult(
        step=ConversationStep.IDLE,
        draft=BookingDraft(),
        replies=[OutboundMessage(SOMETHING_WENT_WRONG_MESSAGE), main_menu()],
    )


def advance(
    session: Session,
    text: Optional[str] = None,
    selection_id: Optional[str] = None
) -> TurnResult:
    """
    Runs one conversation turn.

    Args:
        session: Current session of the sender
        text: Free-text body of the inbound message
        selection_id: Button/list id, if the message was an interactive reply

    Returns:
        TurnResult with the next step and draft, the replies to send and the
        effect the dispatcher has to carry out
    """
    if not session.is_consistent():
        logger.error(
            f"Inconsistent session, resetting: step={session.step.value}, "
            f"filled={sorted(session.draft.filled_fields())}",
            extra={"sender": session.sender}
        )
        return reset_turn()

    user_input = effective_input(text, selection_id)
    result = STEP_HANDLERS[session.step](session, user_input)

    if not is_valid_transition(session.step, result.step):
        logger.error(
            f"Invalid step transition: {session.step.value} -> {result.step.value}",
            extra={"sender": session.sender}
        )
        return reset_turn()

    logger.debug(
        f"Turn: {session.step.value} -> {result.step.value} (effect={result.effect.value})",
        extra={"sender": session.sender}
    )
    return result
