import unittest
from datetime import datetime, timezone

from dashboard.chart_scales import ChartScales
from runtime.session import build_initial_session
from runtime.snapshot import HistorySample, parse_status_payload


T = 1_700_000_000


class _FakePreferences:
    def __init__(self, days=1):
        self.days = days
        self.saved = []

    def load_history_days(self, default=1):
        return self.days

    def save_history_days(self, days):
        days = max(1, min(7, int(days)))
        self.saved.append(days)
        return days


def _status():
    return parse_status_payload(
        {
            "time": "07:00:00",
            "time_synced": True,
            "timezone": "UTC",
            "timezone_iana": "UTC",
            "sensors": {"temp_c": 22.0, "hum_rh": 50, "soil1": 40, "soil2": 45},
            "relays": {
                "light1": {"state": False, "auto": True, "schedule": "08:00–20:00"},
                "pump": {"state": True, "auto": False},
            },
            "chambers": [{"id": 1, "name": "Basil"}, {"id": 2, "name": "Tomatoes"}],
            "chart_scales": {"tempMin": 15, "tempMax": 30},
        }
    )


class MonitorSessionTests(unittest.TestCase):
    def _session(self, **kwargs):
        return build_initial_session(
            {"HISTORY_DEFAULT_DAYS": 2, "TIMEZONE_NAME": "UTC"},
            now_fn=lambda: datetime(2026, 2, 25, 12, 0, tzinfo=timezone.utc),
            **kwargs,
        )

    def test_initial_state(self):
        session = self._session()
        self.assertEqual(session.history_days, 2)
        self.assertEqual(session.poll_health["state"], "stale")
        self.assertEqual(session.chamber_labels, ["Chamber 1", "Chamber 2"])
        self.assertIsNone(session.relay_is_on("pump"))

    def test_history_days_loaded_from_preferences(self):
        session = self._session(preferences=_FakePreferences(days=5))
        self.assertEqual(session.history_days, 5)
        self.assertEqual(session.history_state["days"], 5)

    def test_apply_snapshot_recomputes_derived_state(self):
        session = self._session()
        session.apply_snapshot(_status())

        self.assertEqual(session.device_clock.minutes, 420)
        self.assertEqual(session.chamber_labels, ["Basil", "Tomatoes"])
        self.assertTrue(session.relay_is_on("pump"))
        self.assertFalse(session.relay_is_on("light1"))
        self.assertEqual(session.relay_badges["light1"]["mode_text"], "AUTO")
        self.assertTrue(session.controls.get("tog-light1").disabled)
        self.assertFalse(session.controls.get("tog-pump").disabled)
        self.assertEqual(session.sparklines.snapshot()["temp"], (22.0,))
        self.assertEqual(session.chart_scales, ChartScales(15.0, 30.0, 0.0, 100.0))
        self.assertEqual(session.schedule_labels["light1"], "08:00–20:00 (UTC) · on in 1h · off 11h ago")

    def test_apply_history_filters_and_labels(self):
        session = self._session()
        session.apply_snapshot(_status())
        samples = [HistorySample(timestamp=T - 3 * 86400, temp=1.0), HistorySample(timestamp=T, temp=2.0)]
        session.apply_history(samples)

        self.assertEqual([s.temp for s in session.history_samples], [2.0])
        self.assertEqual(session.history_datasets["labels"], ["22:13"])
        self.assertEqual(session.history_datasets["chamber_labels"], ["Basil", "Tomatoes"])
        self.assertEqual(session.history_state["points"], 1)
        self.assertEqual(session.history_state["last_fetch_at"], datetime(2026, 2, 25, 12, 0, tzinfo=timezone.utc))

    def test_set_history_days_persists_and_invalidates(self):
        preferences = _FakePreferences()
        session = self._session(preferences=preferences)
        session.history_throttle.mark_fetched()
        self.assertFalse(session.history_throttle.should_fetch())

        self.assertEqual(session.set_history_days(9), 7)
        self.assertEqual(preferences.saved, [7])
        self.assertEqual(session.history_state["days"], 7)
        self.assertTrue(session.history_throttle.should_fetch())

    def test_close_is_idempotent(self):
        session = self._session()
        session.close()
        session.close()
        self.assertTrue(session.closed)
        self.assertTrue(session.shutdown_event.is_set())


if __name__ == "__main__":
    unittest.main()
