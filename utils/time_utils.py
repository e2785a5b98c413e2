"""
utils/time_utils.py

Purpose: Time helpers

- Normalizes free-text pickup times ("3pm", "15:30", "now")
- Timestamp formatting for booking summaries
"""

from datetime import datetime
from typing import Optional

# Tried in order; the first one that parses wins
TIME_FORMATS = (
    "%I:%M%p",   # 3:15pm
    "%I:%M %p",  # 3:15 pm
    "%I%p",      # 3pm
    "%I %p",     # 3 pm
    "%H:%M",     # 15:15
    "%I.%M%p",   # 3.15pm
    "%I.%M %p",  # 3.15 pm
    "%H.%M",     # 15.15
)

CANONICAL_TIME_FORMAT = "%I:%M %p"

KEYWORD_TIMES = {
    "now": "Now",
    "later": "Later",
}


def fold(text: str) -> str:
    """
    Lower-cases and collapses whitespace.
    """
    return " ".join(text.split()).lower()


def normalize_time(text: str) -> str:
    """
    Maps a free-text time expression to a display string.

    "now"/"later" become "Now"/"Later"; clock times become "hh:mm AM/PM".
    Anything unrecognized is returned exactly as given.

    Examples:
        normalize_time("NOW ")   -> "Now"
        normalize_time("3:15pm") -> "03:15 PM"
        normalize_time("banana") -> "banana"
    """
    if not isinstance(text, str):
        return text

    folded = fold(text)
    if folded in KEYWORD_TIMES:
        return KEYWORD_TIMES[folded]

    for time_format in TIME_FORMATS:
        try:
            parsed = datetime.strptime(folded, time_format)
        except ValueError:
            continue
        return parsed.strftime(CANONICAL_TIME_FORMAT)

    return text


def format_timestamp(dt: Optional[datetime], format_str: str = "%d %b %Y, %I:%M %p") -> str:
    """
    Formats a datetime object to string.
    """
    if not dt:
        return "N/A"
    return dt.strftime(format_str)
