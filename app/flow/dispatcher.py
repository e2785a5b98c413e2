"""
app/flow/dispatcher.py

Purpose: Central message dispatcher

- Receives normalized messages from the webhook
- Loads (or creates) the user and the session
- Runs one state machine turn and carries out its effect
  (create a booking, list recent bookings)
- Sends the replies, then persists the updated session
- Persistence and send failures are logged and reported in the outcome,
  never raised to the webhook
"""

from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional

from app.core.config import settings
from app.core.exceptions import PersistenceError, SessionStateError
from app.core.logging import get_logger, LogContext
from app.flow.machine import (
    OutboundMessage,
    TurnEffect,
    advance,
    booking_confirmation,
    booking_history,
    reset_turn,
)
from app.flow.states import ConversationStep
from app.models.booking import Booking
from app.models.session import Session
from app.schemas.webhook import InboundMessage
from app.services.booking_service import BookingRepository, get_booking_repository
from app.services.session_service import SessionStore, get_session_store
from app.services.twilio_service import DispatchResult, ReplyDispatcher, twilio_service
from app.services.user_service import UserRepository, get_user_repository

logger = get_logger(__name__)


@dataclass
class TurnOutcome:
    """
    What happened during one inbound message.

    status is "success", "persistence_error" (turn aborted or session not
    saved) or "dispatch_error" (at least one reply was not delivered).
    """
    status: str
    step: Optional[ConversationStep] = None
    booking: Optional[Booking] = None
    dispatch_results: List[DispatchResult] = field(default_factory=list)
    error: Optional[str] = None


class ConversationService:
    """
    Runs conversation turns against the configured stores and provider.
    """

    def __init__(
        self,
        sessions: SessionStore,
        bookings: BookingRepository,
        users: UserRepository,
        replies: ReplyDispatcher,
        recent_bookings_limit: Optional[int] = None,
    ):
        self.sessions = sessions
        self.bookings = bookings
        self.users = users
        self.replies = replies
        self.recent_bookings_limit = recent_bookings_limit or settings.RECENT_BOOKINGS_LIMIT

    async def handle_message(self, message: InboundMessage) -> TurnOutcome:
        """
        Main entry point for an incoming WhatsApp message.
        """
        with LogContext(sender=message.phone):
            logger.info(f"📨 Dispatching message via {message.platform}")

            try:
                await self.users.get_or_create(message.phone, message.name)
                try:
                    session = await self.sessions.create_if_absent(message.phone)
                except SessionStateError as e:
                    logger.error(f"❌ Unreadable session, resetting: {e.details}")
                    session = Session(sender=message.phone)
                    result = reset_turn()
                else:
                    with LogContext(step=session.step.value):
                        result = advance(session, message.text, message.selection_id)

                replies: List[OutboundMessage] = list(result.replies)
                booking = None

                if result.effect == TurnEffect.CREATE_BOOKING:
                    booking = await self.bookings.create(message.phone, result.completed_draft)
                    replies.insert(0, booking_confirmation(booking))
                elif result.effect == TurnEffect.LIST_BOOKINGS:
                    recent = await self.bookings.list_recent_by_sender(
                        message.phone, self.recent_bookings_limit
                    )
                    replies.insert(0, booking_history(recent))

            except PersistenceError as e:
                logger.error(f"❌ Turn aborted, store unavailable: {e.message}")
                return TurnOutcome(status="persistence_error", error=e.message)

            dispatch_results = await self.send_replies(message.phone, replies)

            outcome = TurnOutcome(
                status="success",
                step=result.step,
                booking=booking,
                dispatch_results=dispatch_results,
            )

            try:
                await self.sessions.save(result.apply_to(session))
            except PersistenceError as e:
                logger.error(f"❌ Session not saved, state is stale: {e.message}")
                outcome.status = "persistence_error"
                outcome.error = e.message
                return outcome

            failed = [r for r in dispatch_results if not r.success]
            if failed:
                outcome.status = "dispatch_error"
                outcome.error = failed[0].error

            logger.info(f"🔄 Turn complete: {session.step.value} -> {result.step.value}")
            return outcome

    async def send_replies(self, to: str, replies: List[OutboundMessage]) -> List[DispatchResult]:
        """
        Sends each reply once, in order. A failed send does not stop the rest.
        """
        results = []
        for reply in replies:
            try:
                if reply.is_interactive:
                    result = await self.replies.send_interactive(to, reply.text, reply.choices)
                else:
                    result = await self.replies.send_text(to, reply.text)
            except Exception as e:
                logger.error(f"❌ Reply dispatch raised: {e}", exc_info=True)
                result = DispatchResult(success=False, error=str(e))

            if not result.success:
                logger.error(f"❌ Failed to send reply: {result.error}")
            results.append(result)

        return results


@lru_cache(maxsize=None)
def get_conversation_service() -> ConversationService:
    return ConversationService(
        sessions=get_session_store(),
        bookings=get_booking_repository(),
        users=get_user_repository(),
        replies=twilio_service,
    )
