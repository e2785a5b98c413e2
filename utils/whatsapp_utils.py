"""
utils/whatsapp_utils.py

Purpose: WhatsApp message builders and parsers

- Constructs button and list payloads
- Renders interactive payloads as plain text for channels without buttons
- Extracts replies from Cloud API style webhook messages
"""

from typing import List, Dict, Optional, Any, Sequence, Tuple

# Provider limits
MAX_BUTTONS = 3
MAX_BUTTON_TITLE = 20
MAX_LIST_SECTIONS = 10
MAX_LIST_ROWS = 10
MAX_ROW_TITLE = 24

NUMBER_EMOJIS = ["1️⃣", "2️⃣", "3️⃣", "4️⃣", "5️⃣", "6️⃣", "7️⃣", "8️⃣", "9️⃣", "🔟"]


def create_button_message(
    text: str,
    buttons: List[Dict[str, str]],
    header: Optional[str] = None,
    footer: Optional[str] = None
) -> Dict[str, Any]:
    """
    Creates a message with interactive quick reply buttons.

    Args:
        text: Body text
        buttons: List of button dicts with 'id' and 'title' keys
                 Max 3 buttons, each title max 20 chars
        header: Optional header text
        footer: Optional footer text

    Example:
        buttons = [
            {"id": "now", "title": "Now"},
            {"id": "later", "title": "Later"}
        ]
    """
    buttons = [
        {"id": btn["id"], "title": btn["title"][:MAX_BUTTON_TITLE]}
        for btn in buttons[:MAX_BUTTONS]
    ]

    payload = {
        "type": "button",
        "body": {
            "text": text
        },
        "action": {
            "buttons": [
                {
                    "type": "reply",
                    "reply": {
                        "id": btn["id"],
                        "title": btn["title"]
                    }
                }
                for btn in buttons
            ]
        }
    }

    if header:
        payload["header"] = {"type": "text", "text": header}

    if footer:
        payload["footer"] = {"text": footer}

    return payload


def create_list_message(
    text: str,
    button_text: str,
    sections: List[Dict[str, Any]],
    header: Optional[str] = None,
    footer: Optional[str] = None
) -> Dict[str, Any]:
    """
    Creates a message with a list picker (interactive list).

    Args:
        text: Body text
        button_text: Button text to open the list (max 20 chars)
        sections: List sections with title and rows
        header: Optional header text
        footer: Optional footer text
    """
    sections = [
        {
            "title": section.get("title", ""),
            "rows": [
                {**row, "title": row.get("title", "")[:MAX_ROW_TITLE]}
                for row in section.get("rows", [])[:MAX_LIST_ROWS]
            ]
        }
        for section in sections[:MAX_LIST_SECTIONS]
    ]

    payload = {
        "type": "list",
        "body": {
            "text": text
        },
        "action": {
            "button": button_text[:MAX_BUTTON_TITLE],
            "sections": sections
        }
    }

    if header:
        payload["header"] = {"type": "text", "text": header}

    if footer:
        payload["footer"] = {"text": footer}

    return payload


def create_choice_message(
    text: str,
    choices: Sequence[Tuple[str, str]],
    list_button_text: str = "Choose"
) -> Dict[str, Any]:
    """
    Builds buttons for up to 3 (id, label) choices, a single-section list otherwise.
    """
    if len(choices) <= MAX_BUTTONS:
        return create_button_message(
            text=text,
            buttons=[{"id": choice_id, "title": label} for choice_id, label in choices]
        )

    return create_list_message(
        text=text,
        button_text=list_button_text,
        sections=[{
            "title": list_button_text,
            "rows": [{"id": choice_id, "title": label} for choice_id, label in choices]
        }]
    )


def get_payload_choices(payload: Dict[str, Any]) -> List[Dict[str, str]]:
    """
    Returns the (id, title) rows of a button or list payload, in display order.
    """
    if payload.get("type") == "button":
        return [btn["reply"] for btn in payload["action"]["buttons"]]
    if payload.get("type") == "list":
        return [
            {"id": row["id"], "title": row["title"]}
            for section in payload["action"]["sections"]
            for row in section["rows"]
        ]
    return []


def render_as_text(payload: Dict[str, Any]) -> str:
    """
    Flattens a message payload into a WhatsApp text body.

    Interactive choices become a numbered list so they can be answered on
    channels that cannot show native buttons (e.g. the Twilio sandbox).
    """
    parts = []
    if payload.get("header"):
        parts.append(f"*{payload['header']['text']}*")
    parts.append(payload.get("body", {}).get("text", ""))

    choices = get_payload_choices(payload)
    if choices:
        lines = [
            f"{NUMBER_EMOJIS[index] if index < len(NUMBER_EMOJIS) else f'{index + 1}.'} {choice['title']}"
            for index, choice in enumerate(choices)
        ]
        parts.append("\n".join(lines))

    if payload.get("footer"):
        parts.append(f"_{payload['footer']['text']}_")

    return "\n\n".join(part for part in parts if part)


def parse_button_response(message: Dict[str, Any]) -> Optional[str]:
    """
    Parses button click response from webhook.

    Returns:
        Button ID that was clicked, or None
    """
    if message.get("type") == "interactive":
        interactive = message.get("interactive", {})
        if interactive.get("type") == "button_reply":
            return interactive.get("button_reply", {}).get("id")

    # Template quick replies arrive as a plain "button" message
    if message.get("type") == "button":
        return message.get("button", {}).get("payload")

    return None


def parse_list_response(message: Dict[str, Any]) -> Optional[str]:
    """
    Parses list selection response from webhook.

    Returns:
        Selected list item ID, or None
    """
    if message.get("type") == "interactive":
        interactive = message.get("interactive", {})
        if interactive.get("type") == "list_reply":
            return interactive.get("list_reply", {}).get("id")

    return None


def get_message_text(message: Dict[str, Any]) -> Optional[str]:
    """
    Extracts text content from any message type.
    """
    msg_type = message.get("type")

    if msg_type == "text":
        return message.get("text", {}).get("body")
    elif msg_type == "interactive":
        interactive = message.get("interactive", {})
        reply_type = interactive.get("type")

        if reply_type == "button_reply":
            return interactive.get("button_reply", {}).get("title")
        elif reply_type == "list_reply":
            return interactive.get("list_reply", {}).get("title")
    elif msg_type == "button":
        return message.get("button", {}).get("text")

    return None
