"""Timezone helpers for consistent timestamp handling across the monitor."""

from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pandas as pd

from runtime.defaults import DEFAULT_TIMEZONE_NAME


def resolve_timezone(timezone_name) -> ZoneInfo | None:
    """Return a ZoneInfo for `timezone_name`, or None when it is empty or unknown."""
    if not timezone_name:
        return None
    try:
        return ZoneInfo(str(timezone_name))
    except (ZoneInfoNotFoundError, TypeError, ValueError):
        return None


def get_timezone(timezone_name: str) -> ZoneInfo:
    """Return a valid ZoneInfo object, falling back to default timezone."""
    return resolve_timezone(timezone_name) or ZoneInfo(DEFAULT_TIMEZONE_NAME)


def get_config_tz(config: dict) -> ZoneInfo:
    """Return timezone configured in config, defaulting safely."""
    timezone_name = config.get("TIMEZONE_NAME", DEFAULT_TIMEZONE_NAME)
    return get_timezone(timezone_name)


def now_tz(config: dict) -> datetime:
    """Return timezone-aware current datetime in configured timezone."""
    return datetime.now(get_config_tz(config))


def normalize_timestamp_value(value: Any, tz: ZoneInfo, naive_policy: str = "config_tz") -> pd.Timestamp:
    """
    Normalize a single timestamp-like value to the configured timezone.

    Policy for naive timestamps:
    - "config_tz" (default): interpret naive values as configured timezone.
    - "utc": interpret naive values as UTC then convert to configured timezone.
    """
    if value is None:
        return pd.NaT

    ts = pd.Timestamp(value)
    if pd.isna(ts):
        return pd.NaT

    if ts.tzinfo is None:
        if naive_policy == "utc":
            ts = ts.tz_localize(timezone.utc)
        else:
            ts = ts.tz_localize(tz)
    return ts.tz_convert(tz)


def epoch_seconds_to_timestamp(value: Any, tz: ZoneInfo) -> pd.Timestamp:
    """Convert device epoch seconds to a tz-aware timestamp; NaT when not positive."""
    try:
        seconds = int(value)
    except (TypeError, ValueError):
        return pd.NaT
    if seconds <= 0:
        return pd.NaT
    return normalize_timestamp_value(pd.to_datetime(seconds, unit="s", utc=True), tz)


def format_time_label(dt_value: datetime, timezone_name=None) -> str:
    """
    Format `dt_value` as HH:MM in `timezone_name`.

    Unknown or empty zones fall back to the machine's local time.
    """
    tz = resolve_timezone(timezone_name)
    if dt_value.tzinfo is None:
        dt_value = dt_value.replace(tzinfo=timezone.utc)
    if tz is not None:
        return dt_value.astimezone(tz).strftime("%H:%M")
    return dt_value.astimezone().strftime("%H:%M")
