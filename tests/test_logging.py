import asyncio
import json
import logging

import pytest

from app.core.logging import ContextFilter, LogContext, StructuredFormatter, get_logger

PHONE = "+919876543210"


class RecordingHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []
        self.addFilter(ContextFilter())

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def captured():
    handler = RecordingHandler()
    logger = get_logger("tests.context")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    yield logger, handler.records
    logger.removeHandler(handler)


def test_context_is_attached_to_records(captured):
    logger, records = captured

    with LogContext(sender=PHONE, step="awaiting_drop"):
        logger.info("Processing drop")

    assert records[0].sender == PHONE
    assert records[0].step == "awaiting_drop"


def test_explicit_extra_inside_context_does_not_raise(captured):
    logger, records = captured

    with LogContext(sender=PHONE):
        logger.info("Booking created", extra={"sender": "+10000000000", "booking_id": "CAB1234"})

    assert records[0].sender == "+10000000000"
    assert records[0].booking_id == "CAB1234"


def test_nested_context_is_restored_on_exit(captured):
    logger, records = captured

    with LogContext(sender=PHONE):
        with LogContext(step="awaiting_time"):
            logger.info("inner")
        logger.info("outer")
    logger.info("outside")

    inner, outer, outside = records
    assert (inner.sender, inner.step) == (PHONE, "awaiting_time")
    assert outer.sender == PHONE and not hasattr(outer, "step")
    assert not hasattr(outside, "sender")


def test_context_is_restored_when_block_raises(captured):
    logger, records = captured

    with pytest.raises(RuntimeError):
        with LogContext(sender=PHONE):
            raise RuntimeError("boom")
    logger.info("after")

    assert not hasattr(records[0], "sender")


@pytest.mark.asyncio
async def test_concurrent_tasks_keep_their_own_sender(captured):
    logger, records = captured

    async def turn(sender):
        with LogContext(sender=sender):
            await asyncio.sleep(0)
            logger.info(sender)

    await asyncio.gather(turn("+111"), turn("+222"), turn("+333"))

    assert all(record.sender == record.msg for record in records)
    assert len(records) == 3


def test_structured_formatter_includes_context(captured):
    logger, records = captured

    with LogContext(sender=PHONE, booking_id="CAB1001"):
        logger.warning("Slow reply")

    data = json.loads(StructuredFormatter().format(records[0]))

    assert data["sender"] == PHONE
    assert data["booking_id"] == "CAB1001"
    assert data["message"] == "Slow reply"
    assert data["level"] == "WARNING"
