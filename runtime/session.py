"""MonitorSession: the single owner of derived dashboard state for one monitor run."""

import asyncio
import logging
import time
from collections import deque
from datetime import datetime, timezone

from dashboard.chart_scales import DEFAULT_CHART_SCALES, resolve_chart_scales
from dashboard.history import (
    HistoryRefreshThrottle,
    clamp_history_days,
    filter_history_points,
    prepare_history_datasets,
)
from dashboard.notifications import Notifier
from dashboard.relay_guard import RelayActionGuard, build_default_registry
from dashboard.sparkline import SparklineAccumulator
from dashboard.ui_state import apply_relay_badge
from runtime.defaults import (
    DEFAULT_CHAMBER_LABELS,
    DEFAULT_HISTORY_DAYS,
    DEFAULT_HISTORY_REFRESH_PERIOD_S,
    DEFAULT_HISTORY_SAMPLE_INTERVAL_MIN,
    DEFAULT_NOTIFICATION_MAXLEN,
    RELAY_IDS,
    default_poll_health,
)
from runtime.snapshot import DeviceClock, derive_chamber_labels, derive_device_clock
from scheduling.labels import build_relay_schedule_labels

SESSION_LOG_MAXLEN = 1000


def default_history_state(days=DEFAULT_HISTORY_DAYS):
    return {
        "days": int(days),
        "points": 0,
        "last_fetch_at": None,
        "last_error": None,
    }


class MonitorSession:
    """
    Derived state shared by every dashboard component.

    Only the poll agent mutates it (on the event loop thread); everything else
    reads. Created at session start and closed on teardown.
    """

    def __init__(
        self,
        config,
        *,
        notifier=None,
        preferences=None,
        registry=None,
        monotonic_fn=time.monotonic,
        now_fn=None,
    ):
        self.config = dict(config or {})
        self._monotonic_fn = monotonic_fn
        self._now_fn = now_fn or (lambda: datetime.now(timezone.utc))

        self.notifier = notifier or Notifier(maxlen=self.config.get("NOTIFICATION_MAXLEN", DEFAULT_NOTIFICATION_MAXLEN))
        self.preferences = preferences
        self.controls = registry or build_default_registry(RELAY_IDS)
        self.guard = RelayActionGuard(self.controls, self.notifier)

        self.snapshot = None
        self.device_clock = DeviceClock()
        self.relay_states = {}
        self.relay_badges = {}
        self.chamber_labels = list(DEFAULT_CHAMBER_LABELS)
        self.sparklines = SparklineAccumulator()
        self.chart_scales = DEFAULT_CHART_SCALES
        self.schedule_labels = {}
        self.poll_health = default_poll_health()

        history_days = self.config.get("HISTORY_DEFAULT_DAYS", DEFAULT_HISTORY_DAYS)
        if preferences is not None:
            history_days = preferences.load_history_days(default=history_days)
        self.history_days = clamp_history_days(history_days)
        self.history_samples = []
        self.history_datasets = prepare_history_datasets([], None, self.chamber_labels)
        self.history_state = default_history_state(self.history_days)
        self.history_throttle = HistoryRefreshThrottle(
            self.config.get("HISTORY_REFRESH_PERIOD_S", DEFAULT_HISTORY_REFRESH_PERIOD_S),
            monotonic_fn=monotonic_fn,
        )

        self.session_logs = deque(maxlen=SESSION_LOG_MAXLEN)
        self.log_file_path = None
        self.shutdown_event = asyncio.Event()
        self.closed = False

    def now(self):
        return self._now_fn()

    def monotonic(self):
        return self._monotonic_fn()

    def apply_snapshot(self, snapshot):
        """Replace the snapshot and recompute everything derived from it."""
        self.snapshot = snapshot
        self.device_clock = derive_device_clock(snapshot)
        self.chamber_labels = derive_chamber_labels(snapshot.chambers)

        for relay_id, relay in snapshot.relays.items():
            self.relay_states[relay_id] = {"on": relay.on, "auto": relay.auto}
            self.relay_badges[relay_id] = apply_relay_badge(self.controls, relay_id, relay)

        self.sparklines.push_sensors(snapshot.sensors)
        self.chart_scales = resolve_chart_scales(snapshot.chart_scales)
        self.schedule_labels = build_relay_schedule_labels(snapshot.relays, self.device_clock)

    def apply_history(self, samples):
        self.history_samples = filter_history_points(
            samples,
            self.history_days,
            sampling_interval_minutes=self.config.get("HISTORY_SAMPLE_INTERVAL_MIN", DEFAULT_HISTORY_SAMPLE_INTERVAL_MIN),
        )
        timezone_name = self.device_clock.timezone_iana or self.config.get("TIMEZONE_NAME")
        self.history_datasets = prepare_history_datasets(self.history_samples, timezone_name, self.chamber_labels)
        self.history_state.update(
            {
                "days": self.history_days,
                "points": len(self.history_samples),
                "last_fetch_at": self.now(),
                "last_error": None,
            }
        )

    def set_history_days(self, days):
        if self.preferences is not None:
            days = self.preferences.save_history_days(days)
        self.history_days = clamp_history_days(days)
        self.history_state["days"] = self.history_days
        self.history_throttle.invalidate()
        return self.history_days

    def relay_is_on(self, relay_id):
        state = self.relay_states.get(relay_id)
        if state is None:
            return None
        return bool(state["on"])

    def close(self):
        if self.closed:
            return
        self.closed = True
        self.shutdown_event.set()
        logging.info("Monitor session closed.")


def build_initial_session(config, *, preferences=None, notifier=None, **kwargs):
    """Create the authoritative runtime session for one monitor run."""
    return MonitorSession(config, preferences=preferences, notifier=notifier, **kwargs)
