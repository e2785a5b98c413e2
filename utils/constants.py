"""
utils/constants.py

Purpose: Centralized static content

- All user-facing messages
- Button ids and labels
- Command keywords recognized at the main menu

(Prevents hardcoding across the codebase)
"""

# ============================================================
# MAIN MENU
# ============================================================

BUTTON_BOOK_CAB = "book_cab"
BUTTON_MY_BOOKINGS = "my_bookings"
BUTTON_HELP = "help"

MAIN_MENU_CHOICES = [
    (BUTTON_BOOK_CAB, "🚕 Book a Cab"),
    (BUTTON_MY_BOOKINGS, "📋 My Bookings"),
    (BUTTON_HELP, "ℹ️ Help"),
]

MAIN_MENU_MESSAGE = """👋 *Welcome to CabBot!*

Book a ride in three quick steps:
1️⃣ Tell us your pickup point
2️⃣ Tell us where you're going
3️⃣ Pick a time

What would you like to do?"""

# Free-text commands accepted at the main menu, keyed by the button they stand for.
# Numbered replies ("1", "2") are resolved against MAIN_MENU_CHOICES first.
MENU_COMMANDS = {
    BUTTON_BOOK_CAB: {"book cab", "book a cab", "book", "book taxi"},
    BUTTON_MY_BOOKINGS: {"my bookings", "bookings", "my booking", "history"},
    BUTTON_HELP: {"help", "menu", "hi", "hello", "hey", "start"},
}

# ============================================================
# BOOKING STEPS
# ============================================================

ASK_PICKUP_MESSAGE = """*Step 1 of 3* 📍

Where should we pick you up?

Send the pickup address or a landmark."""

ASK_DROP_MESSAGE = """*Step 2 of 3* 🏁

Got it! Where are you headed?

Send the drop-off address or a landmark."""

ASK_TIME_MESSAGE = """*Step 3 of 3* ⏰

When do you need the cab?

Tap *Now* or *Later*, or type a time like _3:15pm_ or _18:30_."""

TIME_NOW = "now"
TIME_LATER = "later"

TIME_CHOICES = [
    (TIME_NOW, "Now"),
    (TIME_LATER, "Later"),
]

# ============================================================
# CONFIRMATION & HISTORY
# ============================================================

BOOKING_CONFIRMED_MESSAGE = """✅ *Booking Confirmed!*

━━━━━━━━━━━━━━━━━━━━━
🆔 *Booking ID:* {booking_id}
📍 *Pickup:* {pickup}
🏁 *Drop:* {drop}
⏰ *Time:* {time}
💰 *Fare:* {currency}{fare}
📌 *Status:* {status}
━━━━━━━━━━━━━━━━━━━━━

We'll notify you when your driver is on the way. 🚕"""

BOOKINGS_HEADER = "📋 *Your recent bookings*"

BOOKING_LINE = "🆔 *{booking_id}* · 📅 {created}\n{pickup} ➡️ {drop}\n⏰ {time} · {currency}{fare} · {status}"

NO_BOOKINGS_MESSAGE = """📭 You don't have any bookings yet.

Tap *Book a Cab* to make your first one!"""

# ============================================================
# ERRORS
# ============================================================

SOMETHING_WENT_WRONG_MESSAGE = "❌ Something went wrong. Please start again."
