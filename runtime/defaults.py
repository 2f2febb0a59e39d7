"""Shared runtime defaults used across modules.

Keep this module lightweight (no pandas/heavy imports) so low-level modules can
import shared constants without creating avoidable import dependencies.
"""

DEFAULT_TIMEZONE_NAME = "UTC"

RELAY_IDS = ("light1", "light2", "fan", "pump")
LIGHT_RELAY_IDS = ("light1", "light2")
SPARKLINE_CHANNELS = ("temp", "hum", "s1", "s2")
DEFAULT_CHAMBER_LABELS = ("Chamber 1", "Chamber 2")

DEFAULT_POLL_INTERVAL_S = 2.0
DEFAULT_STALE_AFTER_S = 10.0
DEFAULT_ERROR_NOTIFY_EVERY = 3
DEFAULT_HISTORY_REFRESH_PERIOD_S = 60.0
DEFAULT_HISTORY_SAMPLE_INTERVAL_MIN = 10
DEFAULT_HISTORY_DAYS = 1
MIN_HISTORY_DAYS = 1
MAX_HISTORY_DAYS = 7
DEFAULT_NOTIFICATION_MAXLEN = 100

HISTORY_RANGE_PREFERENCE_KEY = "historyRangeDays"


def default_poll_health():
    """Return a fresh default poll health entry."""
    return {
        "state": "stale",
        "consecutive_errors": 0,
        "last_success": None,
        "last_success_at": None,
        "last_attempt_at": None,
        "last_error": None,
        "skipped_ticks": 0,
    }
