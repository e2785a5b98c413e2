import pytest

from app.flow.dispatcher import ConversationService
from app.flow.states import ConversationStep
from app.models.booking import BookingDraft, BookingStatus
from app.models.session import Session
from app.services.booking_service import InMemoryBookingRepository
from utils.constants import (
    ASK_PICKUP_MESSAGE,
    MAIN_MENU_CHOICES,
    NO_BOOKINGS_MESSAGE,
    SOMETHING_WENT_WRONG_MESSAGE,
)

from conftest import (
    PHONE,
    RecordingDispatcher,
    UnavailableBookingRepository,
    UnavailableSessionStore,
    sequential_ids,
)


async def play(service, make_message, *texts):
    outcomes = []
    for text in texts:
        outcomes.append(await service.handle_message(make_message(text)))
    return outcomes


@pytest.mark.asyncio
async def test_happy_path_creates_exactly_one_booking(conversation_service, make_message, sessions, bookings, replies):
    outcomes = await play(conversation_service, make_message, "book cab", "X", "Y", "now")

    assert [o.status for o in outcomes] == ["success"] * 4
    assert len(bookings.bookings) == 1

    booking = bookings.bookings[0]
    assert (booking.pickup, booking.drop, booking.time) == ("X", "Y", "Now")
    assert booking.fare == 20
    assert booking.status == BookingStatus.PENDING
    assert outcomes[-1].booking == booking

    session = await sessions.get(PHONE)
    assert session.step == ConversationStep.IDLE
    assert session.draft == BookingDraft()

    confirmation, menu = replies.sent[-2:]
    assert booking.booking_id in confirmation["text"]
    assert "X" in confirmation["text"] and "Y" in confirmation["text"]
    assert menu["choices"] == tuple(MAIN_MENU_CHOICES)


@pytest.mark.asyncio
async def test_each_step_is_persisted(conversation_service, make_message, sessions):
    await play(conversation_service, make_message, "book cab")
    assert (await sessions.get(PHONE)).step == ConversationStep.AWAITING_PICKUP

    await play(conversation_service, make_message, "X")
    stored = await sessions.get(PHONE)
    assert stored.step == ConversationStep.AWAITING_DROP
    assert stored.draft.pickup == "X"

    await play(conversation_service, make_message, "Y")
    stored = await sessions.get(PHONE)
    assert stored.step == ConversationStep.AWAITING_TIME
    assert stored.draft == BookingDraft(pickup="X", drop="Y")


@pytest.mark.asyncio
async def test_first_message_creates_user_and_session(conversation_service, make_message, users, sessions, replies):
    outcome = await conversation_service.handle_message(make_message("hello"))

    assert outcome.status == "success"
    assert (await users.get_by_phone(PHONE)).name == "Asha"
    assert (await sessions.get(PHONE)).step == ConversationStep.IDLE
    assert replies.sent[0]["choices"] == tuple(MAIN_MENU_CHOICES)
    assert replies.sent[0]["to"] == PHONE


@pytest.mark.asyncio
async def test_my_bookings_without_history(conversation_service, make_message, replies):
    await conversation_service.handle_message(make_message("", selection_id="my_bookings"))

    assert [r["text"] for r in replies.sent] == [NO_BOOKINGS_MESSAGE]


@pytest.mark.asyncio
async def test_my_bookings_lists_recent_first(conversation_service, make_message, replies):
    for pickup in ["A", "B", "C", "D", "E", "F"]:
        await play(conversation_service, make_message, "book cab", pickup, "Airport", "later")

    replies.sent.clear()
    await conversation_service.handle_message(make_message("my bookings"))

    history = replies.sent[0]["text"]
    assert "CAB1005" in history and "CAB1001" in history
    assert "CAB1000" not in history
    assert history.index("CAB1005") < history.index("CAB1001")


@pytest.mark.asyncio
async def test_replayed_finalize_creates_duplicate_booking(conversation_service, make_message, sessions, bookings):
    await play(conversation_service, make_message, "book cab", "X", "Y")
    before_finalize = await sessions.get(PHONE)

    await conversation_service.handle_message(make_message("now"))
    # provider redelivers the same message before our session write is visible
    await sessions.save(before_finalize)
    await conversation_service.handle_message(make_message("now"))

    assert len(bookings.bookings) == 2
    first, second = bookings.bookings
    assert first.booking_id != second.booking_id
    assert (first.pickup, first.drop, first.time) == (second.pickup, second.drop, second.time)


@pytest.mark.asyncio
async def test_dispatch_failure_still_advances_session(sessions, bookings, users, make_message):
    service = ConversationService(sessions, bookings, users, RecordingDispatcher(fail=True))

    outcome = await service.handle_message(make_message("book cab"))

    assert outcome.status == "dispatch_error"
    assert outcome.error == "Twilio API error: 400"
    assert (await sessions.get(PHONE)).step == ConversationStep.AWAITING_PICKUP


@pytest.mark.asyncio
async def test_dispatcher_exception_is_contained(sessions, bookings, users, make_message):
    class ExplodingDispatcher(RecordingDispatcher):
        async def send_interactive(self, to, prompt, choices):
            raise RuntimeError("socket closed")

    service = ConversationService(sessions, bookings, users, ExplodingDispatcher())

    outcome = await service.handle_message(make_message("help"))

    assert outcome.status == "dispatch_error"
    assert "socket closed" in outcome.error


@pytest.mark.asyncio
async def test_session_write_failure_is_reported(bookings, users, replies, make_message):
    service = ConversationService(UnavailableSessionStore(), bookings, users, replies)

    outcome = await service.handle_message(make_message("book cab"))

    assert outcome.status == "persistence_error"
    assert len(replies.sent) == 1


@pytest.mark.asyncio
async def test_booking_write_failure_aborts_turn(sessions, users, replies, make_message):
    service = ConversationService(sessions, UnavailableBookingRepository(), users, replies)
    for text in ["book cab", "X", "Y"]:
        await service.handle_message(make_message(text))
    replies.sent.clear()

    outcome = await service.handle_message(make_message("now"))

    assert outcome.status == "persistence_error"
    assert replies.sent == []
    stored = await sessions.get(PHONE)
    assert stored.step == ConversationStep.AWAITING_TIME
    assert stored.draft == BookingDraft(pickup="X", drop="Y")


@pytest.mark.asyncio
async def test_senders_do_not_share_sessions(conversation_service, make_message, sessions):
    await conversation_service.handle_message(make_message("book cab", phone="+111"))
    await conversation_service.handle_message(make_message("help", phone="+222"))

    assert (await sessions.get("+111")).step == ConversationStep.AWAITING_PICKUP
    assert (await sessions.get("+222")).step == ConversationStep.IDLE


@pytest.mark.asyncio
async def test_recent_limit_is_respected(sessions, users, replies, make_message):
    bookings = InMemoryBookingRepository(id_generator=sequential_ids("TST"), fare=20)
    service = ConversationService(sessions, bookings, users, replies, recent_bookings_limit=2)
    for _ in range(3):
        await play(service, make_message, "book cab", "X", "Y", "now")

    replies.sent.clear()
    await service.handle_message(make_message("my bookings"))

    history = replies.sent[0]["text"]
    assert history.count("🆔") == 2
    assert "TST1002" in history and "TST1001" in history
    assert "TST1000" not in history


@pytest.mark.asyncio
async def test_inconsistent_session_is_reset_with_apology(conversation_service, make_message, sessions, bookings, replies):
    await sessions.save(Session(sender=PHONE, step=ConversationStep.AWAITING_TIME, draft=BookingDraft(pickup="X")))

    outcome = await conversation_service.handle_message(make_message("now"))

    assert outcome.status == "success"
    assert outcome.step == ConversationStep.IDLE
    assert bookings.bookings == []
    apology, menu = replies.sent
    assert apology["text"] == SOMETHING_WENT_WRONG_MESSAGE
    assert menu["choices"] == tuple(MAIN_MENU_CHOICES)

    stored = await sessions.get(PHONE)
    assert stored.step == ConversationStep.IDLE
    assert stored.draft == BookingDraft()


@pytest.mark.asyncio
async def test_unknown_stored_step_is_reset(conversation_service, make_message, sessions, replies):
    sessions._sessions[PHONE] = {"sender": PHONE, "step": "awaiting_payment", "draft": {}, "updated_at": None}

    outcome = await conversation_service.handle_message(make_message("help"))

    assert outcome.status == "success"
    assert replies.sent[0]["text"] == SOMETHING_WENT_WRONG_MESSAGE
    assert (await sessions.get(PHONE)).step == ConversationStep.IDLE

    replies.sent.clear()
    await conversation_service.handle_message(make_message("book cab"))

    assert [r["text"] for r in replies.sent] == [ASK_PICKUP_MESSAGE]


@pytest.mark.asyncio
async def test_numbered_replies_book_a_cab(conversation_service, make_message, bookings):
    await play(conversation_service, make_message, "1", "X", "Y", "1")

    assert len(bookings.bookings) == 1
    assert bookings.bookings[0].time == "Now"
