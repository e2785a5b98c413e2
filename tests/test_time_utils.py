from datetime import datetime

import pytest

from utils.time_utils import format_timestamp, normalize_time


@pytest.mark.parametrize("raw, expected", [
    ("now", "Now"),
    ("NOW ", "Now"),
    ("  Later", "Later"),
    ("3:15pm", "03:15 PM"),
    ("3:15 PM", "03:15 PM"),
    ("11am", "11:00 AM"),
    ("7 pm", "07:00 PM"),
    ("18:30", "06:30 PM"),
    ("00:05", "12:05 AM"),
    ("9.45am", "09:45 AM"),
    ("9.45 pm", "09:45 PM"),
    ("21.10", "09:10 PM"),
])
def test_normalize_time_recognized(raw, expected):
    assert normalize_time(raw) == expected


@pytest.mark.parametrize("raw", ["banana", "tomorrow morning", "25:00", "13pm", ""])
def test_normalize_time_returns_input_verbatim(raw):
    assert normalize_time(raw) == raw


def test_normalize_time_keeps_original_spacing_when_unmatched():
    assert normalize_time("  after lunch ") == "  after lunch "


def test_format_timestamp():
    assert format_timestamp(datetime(2026, 10, 19, 15, 5)) == "19 Oct 2026, 03:05 PM"
    assert format_timestamp(None) == "N/A"
