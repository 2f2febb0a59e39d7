import json
import logging
import os
import shutil
import tempfile
import unittest
from unittest.mock import patch

from click.testing import CliRunner

import greenhouse_monitor
from device_api import DeviceAPIError
from logger_config import SessionLogHandler
from runtime.snapshot import CommandResult, HistorySample, ProfileApplyResult, parse_status_payload


REPO_CONFIG = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "config.yaml")

STATUS_PAYLOAD = {
    "time": "07:00:00",
    "time_synced": True,
    "timezone": "UTC",
    "timezone_iana": "UTC",
    "wifi": {"connected": True, "mode": "STA", "ssid": "barn", "rssi": -60, "ip": "10.0.0.7"},
    "sensors": {"temp_c": 22.04, "hum_rh": 51.4, "soil1": 40, "soil2": 44},
    "chambers": [{"id": 1, "name": "Basil"}, {"id": 2, "name": "Tomatoes"}],
    "relays": {
        "light1": {"state": False, "auto": True, "schedule": "08:00–20:00"},
        "light2": {"state": False, "auto": True, "schedule": "06:00–23:59"},
        "fan": {"state": True, "auto": False},
        "pump": {"state": False, "auto": False},
    },
}


class _FakeDeviceAPI:
    instances = []
    fail_status = False

    def __init__(self, base_url, timeout_s):
        self.base_url = base_url
        self.timeout_s = timeout_s
        self.calls = []
        self.closed = False
        type(self).instances.append(self)

    def fetch_status(self):
        if type(self).fail_status:
            raise DeviceAPIError("Connection refused")
        return parse_status_payload(STATUS_PAYLOAD)

    def fetch_history(self, days):
        self.calls.append(("history", days))
        return [
            HistorySample(timestamp=1_700_000_000, temp=21.0, hum=50.0, light1=1, light2=0, soil1=40.0, soil2=44.0),
            HistorySample(timestamp=1_700_000_600, temp=21.5, hum=51.0, light1=1, light2=0, soil1=39.0, soil2=44.0),
        ]

    def set_mode(self, relay_id, auto):
        self.calls.append(("mode", relay_id, auto))
        return CommandResult(ok=True, changed=True)

    def toggle(self, relay_id):
        self.calls.append(("toggle", relay_id))
        return CommandResult(ok=True, changed=True)

    def apply_profile(self, chamber_id, profile):
        self.calls.append(("apply", chamber_id, profile))
        return ProfileApplyResult(ok=True, applied_profile="Seedling", label="Seedling -> Basil")

    def apply_profile_all(self, profile):
        self.calls.append(("apply_all", profile))
        return ProfileApplyResult(ok=True, applied_profile="Seedling")

    def reboot(self):
        self.calls.append(("reboot",))
        return "Rebooting…"

    def close(self):
        self.closed = True


class GreenhouseMonitorCliTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.config_path = os.path.join(self.tmpdir, "config.yaml")
        shutil.copyfile(REPO_CONFIG, self.config_path)
        _FakeDeviceAPI.instances = []
        _FakeDeviceAPI.fail_status = False
        patchers = [
            patch.object(greenhouse_monitor, "DeviceAPI", _FakeDeviceAPI),
            patch.object(greenhouse_monitor, "setup_logging", lambda config, session=None: None),
        ]
        for patcher in patchers:
            patcher.start()
            self.addCleanup(patcher.stop)
        self.runner = CliRunner()

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def _invoke(self, *args, input=None):
        return self.runner.invoke(greenhouse_monitor.cli, ["--config", self.config_path, *args], input=input)

    def _api(self):
        return _FakeDeviceAPI.instances[-1]

    def test_status_prints_summary(self):
        result = self._invoke("status")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Device time: 07:00:00 (UTC)", result.output)
        self.assertIn("Connectivity: barn (-60 dBm) · 10.0.0.7", result.output)
        self.assertIn("Temperature: 22.0 °C | Humidity: 51 %", result.output)
        self.assertIn("light1 (Basil): OFF AUTO | 08:00–20:00 (UTC) · on in 1h · off 11h ago | scheduled OFF", result.output)
        self.assertRegex(result.output, r"light2 \(Tomatoes\): OFF AUTO \| .* \| scheduled ON")
        self.assertIn("fan: ON MAN", result.output)
        self.assertIn("Device link: LIVE", result.output)
        self.assertTrue(self._api().closed)

    def test_status_when_device_unreachable(self):
        _FakeDeviceAPI.fail_status = True
        result = self._invoke("status")
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Device link: STALE", result.output)
        self.assertIn("Error: Connection refused", result.output)

    def test_status_prints_recent_warnings_and_log_file(self):
        log_path = os.path.join(self.tmpdir, "logs", "today_greenhouse_monitor.log")

        def capture_session_logs(config, session=None):
            session.log_file_path = log_path
            handler = SessionLogHandler(session, "UTC")
            logging.getLogger().addHandler(handler)
            self.addCleanup(logging.getLogger().removeHandler, handler)

        _FakeDeviceAPI.fail_status = True
        with patch.object(greenhouse_monitor, "setup_logging", capture_session_logs):
            result = self._invoke("status")
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Recent log:", result.output)
        self.assertIn("[WARNING] Status poll: status fetch failed (1 consecutive): Connection refused", result.output)
        self.assertIn(f"Log file: {log_path}", result.output)

        with patch.object(greenhouse_monitor, "setup_logging", capture_session_logs):
            result = self._invoke("status", "--log-lines", "0")
        self.assertNotIn("Recent log:", result.output)
        self.assertNotIn("Log file:", result.output)

    def test_history_days_are_remembered(self):
        result = self._invoke("history", "--days", "3")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("History: 3d | Points: 2", result.output)
        self.assertEqual(self._api().calls, [("history", 3)])

        with open(os.path.join(self.tmpdir, "data", "preferences.json"), "r", encoding="utf-8") as handle:
            self.assertEqual(json.load(handle), {"historyRangeDays": "3"})

        result = self._invoke("history")
        self.assertIn("History: 3d", result.output)

    def test_history_csv_export(self):
        csv_path = os.path.join(self.tmpdir, "history.csv")
        result = self._invoke("history", "--csv", csv_path)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn(f"Wrote 2 rows to {csv_path}", result.output)
        with open(csv_path, "r", encoding="utf-8") as handle:
            self.assertTrue(handle.readline().startswith("timestamp,temp,hum"))

    def test_history_html_export(self):
        html_path = os.path.join(self.tmpdir, "history.html")
        result = self._invoke("history", "--html", html_path)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn(f"Wrote history charts to {html_path}", result.output)
        with open(html_path, "r", encoding="utf-8") as handle:
            self.assertTrue(handle.read().startswith("<!DOCTYPE html>"))

    def test_history_days_out_of_range_is_rejected(self):
        result = self._invoke("history", "--days", "9")
        self.assertEqual(result.exit_code, 2)

    def test_mode_command(self):
        result = self._invoke("mode", "fan", "auto")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn(("mode", "fan", True), self._api().calls)

    def test_press_control_by_id(self):
        result = self._invoke("press", "seg-fan-auto")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn(("mode", "fan", True), self._api().calls)
        self.assertIn("[info] Mode updated", result.output)

        result = self._invoke("press", "bogus")
        self.assertEqual(result.exit_code, 1)
        self.assertEqual(self._api().calls, [])

    def test_pump_toggle_prompts(self):
        result = self._invoke("toggle", "pump", input="n\n")
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Turn pump ON?", result.output)
        self.assertNotIn(("toggle", "pump"), self._api().calls)

        result = self._invoke("toggle", "pump", "--yes")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn(("toggle", "pump"), self._api().calls)
        self.assertIn("[info] Toggle sent", result.output)

    def test_toggle_in_auto_fails(self):
        result = self._invoke("toggle", "light1")
        self.assertEqual(result.exit_code, 1)
        self.assertNotIn(("toggle", "light1"), self._api().calls)
        self.assertIn("[info] Switch to MAN to toggle", result.output)

    def test_profiles_listing(self):
        result = self._invoke("profiles")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("[1] Seedling", result.output)
        self.assertIn("Basil: 40% dry / 55% wet | 06:00–23:59 (UTC) · on 1h ago · off 7h ago AUTO | Fan AUTO, Pump AUTO", result.output)

    def test_apply_profile_requires_one_target(self):
        result = self._invoke("apply-profile", "Seedling", "--yes")
        self.assertEqual(result.exit_code, 2)
        result = self._invoke("apply-profile", "Seedling", "--chamber", "1", "--all", "--yes")
        self.assertEqual(result.exit_code, 2)

    def test_apply_profile_to_chamber_and_all(self):
        result = self._invoke("apply-profile", "Seedling", "--chamber", "1", "--yes")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn(("apply", 1, 1), self._api().calls)

        result = self._invoke("apply-profile", "2", "--all", "--yes")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn(("apply_all", 2), self._api().calls)

    def test_reboot(self):
        result = self._invoke("reboot", input="y\n")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Confirm reboot?", result.output)
        self.assertEqual(self._api().calls, [("reboot",)])


if __name__ == "__main__":
    unittest.main()
