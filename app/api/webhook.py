"""
app/api/webhook.py

Purpose: WhatsApp webhook endpoint

- Receives incoming messages from Twilio (form data) or JSON providers
- Decodes and normalizes the payload
- Passes control to the conversation service
- Always acknowledges with 200 so the provider does not redeliver
"""

import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from app.core.exceptions import DecodeError
from app.core.logging import get_logger
from app.flow.dispatcher import ConversationService, get_conversation_service
from app.schemas.webhook import decode_webhook

logger = get_logger(__name__)
router = APIRouter()

EMPTY_TWIML = '<?xml version="1.0" encoding="UTF-8"?><Response></Response>'

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def acknowledge(is_form: bool) -> Response:
    if is_form:
        # Twilio expects TwiML; replies go out through the REST API instead
        return Response(content=EMPTY_TWIML, media_type="application/xml")
    return Response(status_code=200)


@router.post("/webhook")
async def webhook_handler(
    request: Request,
    service: ConversationService = Depends(get_conversation_service),
):
    """
    Unified webhook endpoint for WhatsApp messages

    Supports:
    - Twilio WhatsApp (form data)
    - WhatsApp Cloud API and flat JSON payloads
    """
    content_type = request.headers.get("content-type", "")
    is_form = content_type.startswith(FORM_CONTENT_TYPES)

    try:
        if is_form:
            payload = dict(await request.form())
        else:
            payload = await request.json()

        message = decode_webhook(payload, is_form)
        if message is None:
            logger.info("Webhook without a user message, ignoring")
            return acknowledge(is_form)

        logger.info(
            f"📱 {message.platform} message from {message.phone}: "
            f"{message.text[:50]!r} selection={message.selection_id}"
        )

        outcome = await service.handle_message(message)
        if outcome.status != "success":
            logger.warning(f"Turn finished with {outcome.status}: {outcome.error}")

    except (DecodeError, json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning(f"Undecodable webhook payload: {e}")
    except Exception as e:
        logger.error(f"Webhook error: {e}", exc_info=True)

    return acknowledge(is_form)
