"""Clock-time parsing, formatting and multi-day minute arithmetic."""

from __future__ import annotations

import math
import re
from typing import Optional, Tuple

MINUTES_PER_DAY = 24 * 60
MINUTES_PER_HOUR = 60

_24H_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")
_12H_PATTERN = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*(am|pm)$")


def parse_time_to_minutes(value: Optional[str]) -> Optional[int]:
    """Return minutes from midnight for ``value`` or ``None`` when unparsable.

    Accepts 24-hour ``"14:00"``/``"9:30"`` and 12-hour ``"2pm"``/``"9:30 AM"``
    strings. Out-of-range hours or minutes are treated as unparsable.
    """

    if not value or not isinstance(value, str):
        return None
    text = value.strip().lower()

    match = _24H_PATTERN.match(text)
    if match:
        hours = int(match.group(1))
        mins = int(match.group(2))
        if hours > 23 or mins > 59:
            return None
        return hours * 60 + mins

    match = _12H_PATTERN.match(text)
    if match:
        hours = int(match.group(1))
        mins = int(match.group(2) or 0)
        if not 1 <= hours <= 12 or mins > 59:
            return None
        if match.group(3) == "pm" and hours != 12:
            hours += 12
        if match.group(3) == "am" and hours == 12:
            hours = 0
        return hours * 60 + mins

    return None


def _clock_parts(minutes: int) -> Tuple[int, int]:
    minutes = int(minutes)
    return (minutes // 60) % 24, minutes % 60


def _hour_12(hour_24: int) -> Tuple[int, str]:
    period = "PM" if hour_24 >= 12 else "AM"
    if hour_24 == 0:
        return 12, period
    if hour_24 > 12:
        return hour_24 - 12, period
    return hour_24, period


def minutes_to_time(minutes: int) -> str:
    """Format minutes from midnight as 24-hour ``H:MM`` (wraps past midnight)."""

    hours, mins = _clock_parts(minutes)
    return f"{hours}:{mins:02d}"


def minutes_to_time_12h(minutes: int) -> str:
    hours, mins = _clock_parts(minutes)
    hour_12, period = _hour_12(hours)
    return f"{hour_12}:{mins:02d} {period}"


def format_time_to_12h(value: str) -> str:
    minutes = parse_time_to_minutes(value)
    if minutes is None:
        return value
    return minutes_to_time_12h(minutes)


def _speech_clock(minutes: int) -> str:
    hours, mins = _clock_parts(minutes)
    hour_12, period = _hour_12(hours)
    if mins == 0:
        return f"{hour_12} {period}"
    return f"{hour_12}:{mins:02d} {period}"


def format_time_for_speech(value: str) -> str:
    """Return ``"2 PM"``/``"2:30 PM"`` for ``value``; unparsable text passes through."""

    minutes = parse_time_to_minutes(value)
    if minutes is None:
        return value
    return _speech_clock(minutes)


def time_difference_minutes(from_time: str, to_time: str) -> Optional[int]:
    start = parse_time_to_minutes(from_time)
    end = parse_time_to_minutes(to_time)
    if start is None or end is None:
        return None
    return end - start


def add_minutes_to_time(value: str, minutes: int) -> str:
    parsed = parse_time_to_minutes(value)
    if parsed is None:
        return value
    return minutes_to_time(parsed + minutes)


def to_absolute_minutes(value: str, day_offset: int = 0) -> Optional[int]:
    """Minutes since midnight of day 0, e.g. ``("06:00", 1) -> 1800``."""

    minutes = parse_time_to_minutes(value)
    if minutes is None:
        return None
    return max(int(day_offset), 0) * MINUTES_PER_DAY + minutes


def split_absolute_minutes(absolute_minutes: int) -> Tuple[int, int]:
    """Return ``(day_offset, minutes_from_midnight)`` for an absolute minute count."""

    day_offset, minutes = divmod(int(absolute_minutes), MINUTES_PER_DAY)
    return day_offset, minutes


def multi_day_time_difference(
    original_time: str,
    offered_time: str,
    offered_day_offset: int = 0,
) -> Optional[int]:
    """Minutes from the original appointment (day 0) to the offered slot."""

    original = to_absolute_minutes(original_time, 0)
    offered = to_absolute_minutes(offered_time, offered_day_offset)
    if original is None or offered is None:
        return None
    return offered - original


def round_up_to_five_minutes(minutes: int) -> int:
    """Round up to the next 5-minute boundary so a displayed time is never early."""

    return int(math.ceil(minutes / 5.0)) * 5


def round_time_to_five_minutes(value: str) -> str:
    minutes = parse_time_to_minutes(value)
    if minutes is None:
        return value
    return minutes_to_time(round_up_to_five_minutes(minutes))


def _day_prefix(day_offset: int) -> str:
    if day_offset == 1:
        return "Tomorrow at "
    return f"Day {day_offset + 1} at "


def format_time_with_day_offset(value: str, day_offset: int = 0) -> str:
    """``("06:00", 1) -> "Tomorrow at 6 AM"``, ``("08:00", 2) -> "Day 3 at 8 AM"``."""

    minutes = parse_time_to_minutes(value)
    if minutes is None:
        return value
    spoken = _speech_clock(minutes)
    if day_offset <= 0:
        return spoken
    return _day_prefix(day_offset) + spoken


def format_absolute_minutes(absolute_minutes: int) -> str:
    day_offset, minutes = split_absolute_minutes(absolute_minutes)
    spoken = _speech_clock(minutes)
    if day_offset <= 0:
        return spoken
    return _day_prefix(day_offset) + spoken


def format_minutes_to_human(minutes: int) -> str:
    """390 -> ``"6h 30m"``, 45 -> ``"45m"``."""

    if minutes < 0:
        return "0m"
    hours, mins = divmod(int(minutes), 60)
    if hours == 0:
        return f"{mins}m"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}m"


def format_minutes_for_speech(minutes: int) -> str:
    """390 -> ``"6 hours and 30 minutes"``."""

    if minutes < 0:
        return "0 minutes"
    hours, mins = divmod(int(minutes), 60)
    hour_text = "1 hour" if hours == 1 else f"{hours} hours"
    minute_text = "1 minute" if mins == 1 else f"{mins} minutes"
    if hours == 0:
        return minute_text
    if mins == 0:
        return hour_text
    return f"{hour_text} and {minute_text}"


def format_delay(minutes: int) -> str:
    """90 -> ``"1 hour 30 minutes"``."""

    hours, mins = divmod(max(int(minutes), 0), 60)
    if hours == 0:
        return f"{mins} minutes"
    plural = "s" if hours > 1 else ""
    if mins == 0:
        return f"{hours} hour{plural}"
    return f"{hours} hour{plural} {mins} minutes"


def describe_delay(minutes: int) -> str:
    """Map a delay to a conversational bucket; for display only."""

    if minutes <= 0:
        return "on time"
    if minutes < 10:
        return "a few minutes"
    if minutes < 50:
        return f"about {round_up_to_five_minutes(minutes)} minutes"
    if minutes < 75:
        return "about an hour"
    if minutes < 105:
        return "about an hour and a half"
    if minutes < MINUTES_PER_DAY:
        return f"about {int(round(minutes / 60.0))} hours"
    days, remainder = divmod(int(minutes), MINUTES_PER_DAY)
    day_text = "1 day" if days == 1 else f"{days} days"
    remainder_hours = int(round(remainder / 60.0))
    if remainder_hours == 0:
        return f"about {day_text}"
    hour_text = "1 hour" if remainder_hours == 1 else f"{remainder_hours} hours"
    return f"about {day_text} and {hour_text}"


__all__ = [
    "MINUTES_PER_DAY",
    "MINUTES_PER_HOUR",
    "add_minutes_to_time",
    "describe_delay",
    "format_absolute_minutes",
    "format_delay",
    "format_minutes_for_speech",
    "format_minutes_to_human",
    "format_time_for_speech",
    "format_time_to_12h",
    "format_time_with_day_offset",
    "minutes_to_time",
    "minutes_to_time_12h",
    "multi_day_time_difference",
    "parse_time_to_minutes",
    "round_time_to_five_minutes",
    "round_up_to_five_minutes",
    "split_absolute_minutes",
    "time_difference_minutes",
    "to_absolute_minutes",
]
