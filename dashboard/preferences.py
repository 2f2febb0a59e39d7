"""Persisted dashboard preferences (currently only the history range)."""

import json
import logging
import os

from dashboard.history import clamp_history_days
from runtime.defaults import DEFAULT_HISTORY_DAYS, HISTORY_RANGE_PREFERENCE_KEY
from runtime.paths import get_data_dir


PREFERENCES_FILENAME = "preferences.json"


def default_preferences_path():
    return os.path.join(get_data_dir(), PREFERENCES_FILENAME)


class PreferenceStore:
    """Small JSON key/value store; values are kept as strings."""

    def __init__(self, path=None):
        self.path = path or default_preferences_path()

    def _read_all(self):
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as exc:
            logging.warning(f"Preferences: could not read {self.path}: {exc}")
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key, default=None):
        value = self._read_all().get(key)
        return default if value is None else value

    def set(self, key, value):
        data = self._read_all()
        data[key] = str(value)
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(data, handle, indent=2, sort_keys=True)
        os.replace(tmp_path, self.path)

    def load_history_days(self, default=DEFAULT_HISTORY_DAYS):
        return clamp_history_days(self.get(HISTORY_RANGE_PREFERENCE_KEY), default=default)

    def save_history_days(self, days):
        days = clamp_history_days(days)
        self.set(HISTORY_RANGE_PREFERENCE_KEY, days)
        return days
