"""Helpers for the device history window shown in the dashboard charts."""

import math
import time
from typing import Any

import pandas as pd

from runtime.defaults import (
    DEFAULT_HISTORY_DAYS,
    DEFAULT_HISTORY_REFRESH_PERIOD_S,
    DEFAULT_HISTORY_SAMPLE_INTERVAL_MIN,
    MAX_HISTORY_DAYS,
    MIN_HISTORY_DAYS,
)
from scheduling.clock import MINUTES_PER_DAY
from time_utils import epoch_seconds_to_timestamp, format_time_label


SECONDS_PER_DAY = 86400
HISTORY_COLUMNS = ["timestamp", "temp", "hum", "light1", "light2", "soil1", "soil2"]


def clamp_history_days(value: Any, default=DEFAULT_HISTORY_DAYS) -> int:
    """Clamp a requested day range to [1, 7]; unusable input becomes `default`."""
    if isinstance(value, bool):
        return int(default)
    try:
        days = float(value)
    except (TypeError, ValueError):
        return int(default)
    if not math.isfinite(days):
        return int(default)
    return int(max(MIN_HISTORY_DAYS, min(MAX_HISTORY_DAYS, int(days))))


def samples_per_day(sampling_interval_minutes=DEFAULT_HISTORY_SAMPLE_INTERVAL_MIN) -> int:
    try:
        interval = float(sampling_interval_minutes)
    except (TypeError, ValueError):
        interval = float(DEFAULT_HISTORY_SAMPLE_INTERVAL_MIN)
    if not math.isfinite(interval) or interval <= 0:
        interval = float(DEFAULT_HISTORY_SAMPLE_INTERVAL_MIN)
    return max(1, int(round(MINUTES_PER_DAY / interval)))


def filter_history_points(samples, days=DEFAULT_HISTORY_DAYS, *, sampling_interval_minutes=DEFAULT_HISTORY_SAMPLE_INTERVAL_MIN):
    """
    Return the slice of `samples` covering the last `days` days.

    When at least one sample carries a positive timestamp the window is anchored
    on the newest timestamp. Samples without a usable timestamp are kept only if
    they sit within the last `max_retained` positions. Without any timestamp the
    window falls back to the last `max_retained` entries by position.
    Original order is always preserved.
    """
    samples = list(samples or [])
    if not samples:
        return []

    days = clamp_history_days(days)
    max_retained = samples_per_day(sampling_interval_minutes) * days

    timestamps = [sample.timestamp for sample in samples if sample.has_timestamp]
    if not timestamps:
        return samples[-max_retained:]

    cutoff = max(timestamps) - (days * SECONDS_PER_DAY)
    tail_start = len(samples) - max_retained
    kept = []
    for idx, sample in enumerate(samples):
        if sample.has_timestamp:
            if sample.timestamp >= cutoff:
                kept.append(sample)
        elif idx >= tail_start:
            kept.append(sample)

    if len(kept) > max_retained:
        kept = kept[-max_retained:]
    return kept


def prepare_history_datasets(samples, timezone_name=None, chamber_labels=None):
    """
    Build chart series from history samples.

    Labels are HH:MM in the device timezone; a sample without a usable
    timestamp is labelled with its index.
    """
    labels = []
    for idx, sample in enumerate(samples or []):
        if sample.has_timestamp:
            labels.append(format_time_label(pd.Timestamp(sample.timestamp, unit="s", tz="UTC").to_pydatetime(), timezone_name))
        else:
            labels.append(str(idx))

    chamber_labels = list(chamber_labels or [])
    return {
        "labels": labels,
        "temps": [sample.temp for sample in samples or []],
        "hums": [sample.hum for sample in samples or []],
        "light1": [sample.light1 for sample in samples or []],
        "light2": [sample.light2 for sample in samples or []],
        "soil1": [sample.soil1 for sample in samples or []],
        "soil2": [sample.soil2 for sample in samples or []],
        "chamber_labels": chamber_labels,
    }


def history_frame(samples, tz):
    """Return the samples as a dataframe with tz-aware timestamps (NaT when unknown)."""
    if not samples:
        return pd.DataFrame(columns=HISTORY_COLUMNS)

    rows = []
    for sample in samples:
        rows.append(
            {
                "timestamp": epoch_seconds_to_timestamp(sample.timestamp, tz),
                "temp": sample.temp,
                "hum": sample.hum,
                "light1": sample.light1,
                "light2": sample.light2,
                "soil1": sample.soil1,
                "soil2": sample.soil2,
            }
        )
    df = pd.DataFrame(rows, columns=HISTORY_COLUMNS)
    for col in HISTORY_COLUMNS[1:]:
        df[col] = pd.to_numeric(df[col], errors="coerce")
    return df


class HistoryRefreshThrottle:
    """Allow at most one history fetch per period unless explicitly invalidated."""

    def __init__(self, period_s=DEFAULT_HISTORY_REFRESH_PERIOD_S, monotonic_fn=time.monotonic):
        self.period_s = float(period_s)
        self._monotonic_fn = monotonic_fn
        self._last_fetch = None
        self._forced = True

    def invalidate(self):
        self._forced = True

    def should_fetch(self):
        if self._forced or self._last_fetch is None:
            return True
        return (self._monotonic_fn() - self._last_fetch) >= self.period_s

    def mark_fetched(self):
        self._last_fetch = self._monotonic_fn()
        self._forced = False
