import unittest

from runtime.snapshot import DeviceClock, RelaySnapshot
from scheduling.labels import (
    annotate_preset_schedules,
    build_relay_schedule_labels,
    build_schedule_label,
    format_schedule_window,
    parse_schedule_text,
)


class BuildScheduleLabelTests(unittest.TestCase):
    def test_synced_label_with_deltas(self):
        label = build_schedule_label(480, 1200, timezone_label="CET", now_minutes=120, time_synced=True)
        self.assertEqual(label, "08:00–20:00 (CET) · on in 6h · off 6h ago")

    def test_unsynced_clock_never_shows_deltas(self):
        label = build_schedule_label(480, 1200, timezone_label="CET", now_minutes=120, time_synced=False)
        self.assertEqual(label, "08:00–20:00 (CET)")

    def test_missing_now_minutes_skips_deltas(self):
        self.assertEqual(build_schedule_label(480, 1200, now_minutes=None, time_synced=True), "08:00–20:00")
        self.assertEqual(build_schedule_label(480, 1200, now_minutes=float("nan"), time_synced=True), "08:00–20:00")

    def test_base_label_and_missing_side(self):
        label = build_schedule_label(
            480,
            None,
            base_label="Morning",
            now_minutes=480,
            time_synced=True,
        )
        self.assertEqual(label, "Morning · on now")

    def test_format_schedule_window_placeholders(self):
        self.assertEqual(format_schedule_window(None, 1200), "--:--–20:00")


class ParseScheduleTextTests(unittest.TestCase):
    def test_accepts_dash_variants(self):
        self.assertEqual(parse_schedule_text("08:00–20:00"), (480, 1200))
        self.assertEqual(parse_schedule_text("08:00 - 20:00"), (480, 1200))
        self.assertEqual(parse_schedule_text("06:00—23:59"), (360, 1439))

    def test_unusable_text(self):
        self.assertEqual(parse_schedule_text(""), (None, None))
        self.assertEqual(parse_schedule_text("always"), (None, None))
        self.assertEqual(parse_schedule_text("25:00–20:00"), (None, None))


class RelayScheduleLabelsTests(unittest.TestCase):
    def test_labels_only_for_scheduled_relays(self):
        relays = {
            "light1": RelaySnapshot(on=True, auto=True, schedule_text="08:00–20:00"),
            "fan": RelaySnapshot(on=False, auto=True),
        }
        clock = DeviceClock(minutes=1260, timezone_label="CET", synced=True)
        labels = build_relay_schedule_labels(relays, clock)
        self.assertEqual(labels, {"light1": "08:00–20:00 (CET) · on in 11h · off 1h ago"})

    def test_explicit_minutes_win_over_text(self):
        relays = {"light2": RelaySnapshot(schedule_text="Custom", on_minutes=600, off_minutes=660)}
        clock = DeviceClock(minutes=570, synced=True)
        labels = build_relay_schedule_labels(relays, clock)
        self.assertEqual(labels["light2"], "Custom · on in 0.5h · off in 1.5h")


class AnnotatePresetSchedulesTests(unittest.TestCase):
    def test_annotates_each_light(self):
        presets = [
            {"label": "Flowering", "l1_on": "08:00", "l1_off": "20:00", "l2_on": "08:00", "l2_off": "20:00"},
            {"label": "Broken", "l1_on": "xx", "l1_off": "20:00", "l2_on": "06:00", "l2_off": "23:59"},
        ]
        clock = DeviceClock(minutes=420, timezone_label="UTC", synced=True)
        rows = annotate_preset_schedules(presets, clock)

        self.assertEqual(rows[0]["label"], "Flowering")
        self.assertEqual(rows[0]["light1"], "08:00–20:00 (UTC) · on in 1h · off 11h ago")
        self.assertNotIn("light1", rows[1])
        self.assertTrue(rows[1]["light2"].startswith("06:00–23:59 (UTC)"))

    def test_unsynced_clock_has_no_deltas(self):
        rows = annotate_preset_schedules(
            [{"label": "Seedling", "l1_on": "06:00", "l1_off": "23:59"}],
            DeviceClock(minutes=None, timezone_label="", synced=False),
        )
        self.assertEqual(rows[0]["light1"], "06:00–23:59")


if __name__ == "__main__":
    unittest.main()
