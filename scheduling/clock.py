"""Circular time-of-day arithmetic on a 1440-minute wheel.

All values are minutes since midnight. Inputs are normalized with modulo 1440,
so negative values and values past midnight wrap around the wheel instead of
being rejected.
"""

import math
import re

MINUTES_PER_DAY = 1440
HALF_DAY_MINUTES = MINUTES_PER_DAY // 2

_CLOCK_RE = re.compile(r"(\d{1,2}):(\d{1,2})(?::(\d{1,2}(?:\.\d+)?))?")


class ClockParseError(ValueError):
    """Raised when a time-of-day string cannot be parsed."""


def parse_clock(text):
    """
    Parse "HH:MM" or "HH:MM:SS" (fractional seconds allowed) into minute-of-day.

    Returns a float so seconds survive as a fraction of a minute.
    """
    match = _CLOCK_RE.fullmatch(str(text if text is not None else "").strip())
    if not match:
        raise ClockParseError(f"Invalid time '{text}'. Expected HH:MM or HH:MM:SS.")

    hour = int(match.group(1))
    minute = int(match.group(2))
    second = float(match.group(3)) if match.group(3) is not None else 0.0
    if hour > 23 or minute > 59 or second >= 60:
        raise ClockParseError(f"Invalid time '{text}'. Field out of range.")
    return (hour * 60) + minute + (second / 60.0)


def try_parse_clock(text):
    """Parsing boundary: return minute-of-day or None instead of raising."""
    try:
        return parse_clock(text)
    except ClockParseError:
        return None


def normalize_minutes(value):
    return value % MINUTES_PER_DAY


def format_clock(minutes):
    """Format minute-of-day as zero-padded "HH:MM", wrapping around midnight."""
    total = int(math.floor(minutes)) % MINUTES_PER_DAY
    return f"{total // 60:02d}:{total % 60:02d}"


def nearest_signed_delta(target, now):
    """
    Return the signed minutes from `now` to `target` along the shorter arc.

    Positive means `target` is ahead, negative means it already passed. A
    target exactly half a day away resolves forward.
    """
    forward = (normalize_minutes(target) - normalize_minutes(now) + MINUTES_PER_DAY) % MINUTES_PER_DAY
    backward = 0 if forward == 0 else forward - MINUTES_PER_DAY
    if abs(backward) < abs(forward):
        return backward
    return forward


def _round_half_up(value, digits=0):
    factor = 10 ** digits
    return math.floor((value * factor) + 0.5) / factor


def _format_hours(hours):
    if hours > 10:
        rounded = _round_half_up(hours)
    else:
        rounded = _round_half_up(hours, 1)
    rounded = max(0.1, rounded)
    return f"{rounded:g}"


def format_delta(delta_minutes, label):
    """Render a signed delta as "<label> in Xh", "<label> Xh ago" or "<label> now"."""
    if abs(delta_minutes) < 0.5:
        return f"{label} now"
    hours_text = _format_hours(abs(delta_minutes) / 60.0)
    if delta_minutes > 0:
        return f"{label} in {hours_text}h"
    return f"{label} {hours_text}h ago"


def schedule_is_on(on_minutes, off_minutes, now_minutes):
    """Return True when `now_minutes` falls inside the on/off window."""
    on_value = normalize_minutes(on_minutes)
    off_value = normalize_minutes(off_minutes)
    now_value = normalize_minutes(now_minutes)

    # Equal on/off is a degenerate window that never switches on.
    if on_value == off_value:
        return False
    if on_value < off_value:
        return on_value <= now_value < off_value
    return now_value >= on_value or now_value < off_value
