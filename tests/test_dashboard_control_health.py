import unittest
from datetime import datetime, timezone

from dashboard.control_health import (
    format_age_seconds,
    summarize_history_status,
    summarize_poll_health,
    summarize_relay_line,
    summarize_session_logs,
)


class DashboardControlHealthTests(unittest.TestCase):
    def test_format_age_seconds(self):
        now_ts = datetime(2026, 2, 25, 12, 0, 2, tzinfo=timezone.utc)
        self.assertEqual(
            format_age_seconds(datetime(2026, 2, 25, 12, 0, 1, tzinfo=timezone.utc), now_ts),
            "1.0s",
        )
        self.assertEqual(format_age_seconds(None, now_ts), "n/a")
        self.assertEqual(format_age_seconds(now_ts, datetime(2026, 2, 25, 12, 0, 1, tzinfo=timezone.utc)), "0.0s")

    def test_summarize_poll_health_live(self):
        now_ts = datetime(2026, 2, 25, 12, 0, 5, tzinfo=timezone.utc)
        lines = summarize_poll_health(
            {
                "state": "live",
                "consecutive_errors": 0,
                "last_success_at": datetime(2026, 2, 25, 12, 0, 4, tzinfo=timezone.utc),
            },
            now_ts,
        )
        self.assertEqual(lines, ["Device link: LIVE | Last OK: 1.0s"])

    def test_summarize_poll_health_stale_with_errors(self):
        now_ts = datetime(2026, 2, 25, 12, 0, 30, tzinfo=timezone.utc)
        lines = summarize_poll_health(
            {
                "state": "stale",
                "consecutive_errors": 4,
                "last_success_at": datetime(2026, 2, 25, 12, 0, 0, tzinfo=timezone.utc),
                "last_error": "Connection refused",
                "skipped_ticks": 2,
            },
            now_ts,
        )
        self.assertEqual(
            lines,
            [
                "Device link: STALE | Last OK: stale (30.0s) | Errors: 4 | Skipped ticks: 2",
                "Error: Connection refused",
            ],
        )

    def test_summarize_poll_health_never_polled(self):
        lines = summarize_poll_health(None, datetime(2026, 2, 25, tzinfo=timezone.utc))
        self.assertEqual(lines, ["Device link: STALE | Last OK: stale (n/a)"])

    def test_summarize_history_status(self):
        text = summarize_history_status(
            {
                "days": 3,
                "points": 432,
                "last_fetch_at": datetime(2026, 2, 25, 12, 1, 2, tzinfo=timezone.utc),
            }
        )
        self.assertEqual(text, "History: 3d | Points: 432 | Last fetch @ 12:01:02")

        text = summarize_history_status({"days": 1, "points": 0, "last_error": "x" * 100})
        self.assertIn("Last fetch @ n/a", text)
        self.assertTrue(text.endswith("..."))

    def test_summarize_relay_line(self):
        badge = {"state_text": "ON", "mode_text": "AUTO"}
        self.assertEqual(summarize_relay_line("fan", badge), "fan: ON AUTO")
        self.assertEqual(
            summarize_relay_line("light1", badge, "08:00–20:00 (CET)", display_name="Basil light"),
            "Basil light: ON AUTO | 08:00–20:00 (CET)",
        )

    def test_summarize_session_logs(self):
        logs = [
            {"timestamp": "12:00:01", "level": "DEBUG", "message": "Status poll: tick skipped"},
            {"timestamp": "12:00:02", "level": "INFO", "message": "Status poll: device link LIVE."},
            {"timestamp": "12:00:03", "level": "WARNING", "message": "Status poll: status fetch failed"},
            {"timestamp": "12:00:04", "level": "ERROR", "message": "Control flow: reboot request failed"},
        ]
        self.assertEqual(
            summarize_session_logs(logs, limit=2),
            [
                "12:00:03 [WARNING] Status poll: status fetch failed",
                "12:00:04 [ERROR] Control flow: reboot request failed",
            ],
        )
        self.assertEqual(len(summarize_session_logs(logs, limit=10)), 3)
        self.assertEqual(len(summarize_session_logs(logs, limit=10, min_level="DEBUG")), 4)
        self.assertEqual(summarize_session_logs(logs, limit=0), [])
        self.assertEqual(summarize_session_logs(None), [])


if __name__ == "__main__":
    unittest.main()
