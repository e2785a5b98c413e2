"""
app/schemas/webhook.py

Purpose: WhatsApp webhook payload schemas and parsers

- Validates incoming messages from Twilio (form data) and JSON providers
- Normalizes different formats into InboundMessage
- Ensures predictable request handling
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, Literal, Mapping, Optional
from datetime import datetime

from app.core.exceptions import DecodeError
from utils.whatsapp_utils import get_message_text, parse_button_response, parse_list_response

Platform = Literal["twilio", "meta", "json"]


class InboundMessage(BaseModel):
    """
    Normalized message format for internal processing.
    """
    phone: str = Field(..., description="Sender address in E.164 format")
    name: str = Field(..., description="Sender's display name")
    text: str = Field(default="", description="Free-text body, may be empty")
    message_id: str = Field(..., description="Provider message identifier")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    platform: Platform

    # Set when the sender tapped a button or picked a list row
    selection_id: Optional[str] = None
    selection_title: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "phone": "+919876543210",
                "name": "John Doe",
                "text": "book cab",
                "message_id": "SM1234567890",
                "platform": "twilio"
            }
        }
    }


def normalize_phone(raw: Optional[str]) -> str:
    """
    Strips the whatsapp: prefix and ensures a leading '+'.

    Raises:
        DecodeError: If no sender address is present
    """
    phone = (raw or "").strip().replace("whatsapp:", "")
    if not phone:
        raise DecodeError("Missing sender address")
    if not phone.startswith("+"):
        phone = f"+{phone}"
    return phone


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def parse_twilio_message(form: Mapping[str, Any]) -> InboundMessage:
    """
    Parses Twilio WhatsApp webhook payload

    Twilio format (form data):
    - From: whatsapp:+919876543210
    - Body: message text
    - ProfileName: User's name
    - MessageSid: SM...
    - ButtonPayload / ButtonText: quick reply tapped
    - ListId / ListTitle: list row picked
    """
    phone = normalize_phone(form.get("From"))

    return InboundMessage(
        phone=phone,
        name=_clean(form.get("ProfileName")) or phone,
        text=form.get("Body") or "",
        message_id=_clean(form.get("MessageSid")) or f"twilio_{datetime.utcnow().timestamp()}",
        platform="twilio",
        selection_id=_clean(form.get("ButtonPayload")) or _clean(form.get("ListId")),
        selection_title=_clean(form.get("ButtonText")) or _clean(form.get("ListTitle")),
    )


def parse_meta_message(payload: Dict[str, Any]) -> Optional[InboundMessage]:
    """
    Parses a WhatsApp Cloud API webhook payload

    {
        "object": "whatsapp_business_account",
        "entry": [{"changes": [{"value": {
            "contacts": [{"profile": {"name": "John Doe"}, "wa_id": "919876543210"}],
            "messages": [{"from": "919876543210", "id": "wamid...", "type": "text",
                          "text": {"body": "book cab"}}]
        }}]}]
    }

    Returns:
        InboundMessage, or None for status-only callbacks (delivered/read receipts)
    """
    try:
        value = payload["entry"][0]["changes"][0]["value"]
    except (KeyError, IndexError, TypeError) as e:
        raise DecodeError("Malformed Cloud API payload") from e

    messages = value.get("messages") or []
    if not messages:
        return None

    message = messages[0]
    phone = normalize_phone(message.get("from"))

    contacts = value.get("contacts") or [{}]
    name = _clean(contacts[0].get("profile", {}).get("name")) or phone

    selection_id = parse_button_response(message) or parse_list_response(message)
    text = get_message_text(message) or ""

    return InboundMessage(
        phone=phone,
        name=name,
        text=text if not selection_id else "",
        message_id=message.get("id") or f"meta_{datetime.utcnow().timestamp()}",
        platform="meta",
        selection_id=_clean(selection_id),
        selection_title=text if selection_id else None,
    )


def parse_json_message(payload: Dict[str, Any]) -> InboundMessage:
    """
    Parses a flat JSON payload

    {"from": "+919876543210", "body": "book cab", "button_id": "book_cab", "name": "John"}
    """
    phone = normalize_phone(payload.get("from") or payload.get("From"))
    text = payload.get("body") or payload.get("Body") or payload.get("text") or ""

    return InboundMessage(
        phone=phone,
        name=_clean(payload.get("name") or payload.get("ProfileName")) or phone,
        text=str(text),
        message_id=_clean(payload.get("message_id") or payload.get("MessageSid")) or f"json_{datetime.utcnow().timestamp()}",
        platform="json",
        selection_id=_clean(payload.get("button_id") or payload.get("selection_id") or payload.get("ButtonPayload")),
    )


def detect_platform(payload: Mapping[str, Any], is_form: bool) -> Platform:
    """
    Detects webhook platform based on payload structure

    Twilio: form data with 'From'
    Cloud API: JSON with 'entry'
    Anything else with a sender field: flat JSON
    """
    if is_form:
        return "twilio"
    if "entry" in payload:
        return "meta"
    if any(key in payload for key in ("from", "From")):
        return "json"
    raise DecodeError("Unknown webhook format")


def decode_webhook(payload: Mapping[str, Any], is_form: bool) -> Optional[InboundMessage]:
    """
    Decodes any supported payload into an InboundMessage.

    Returns:
        InboundMessage, or None when the payload carries no user message

    Raises:
        DecodeError: If the payload is malformed or has no sender
    """
    if not isinstance(payload, Mapping):
        raise DecodeError("Webhook payload must be an object")

    platform = detect_platform(payload, is_form)
    if platform == "twilio":
        return parse_twilio_message(payload)
    if platform == "meta":
        return parse_meta_message(payload)
    return parse_json_message(payload)
