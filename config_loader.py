"""Configuration loader for the Greenhouse Monitor."""

import copy
import logging
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from control.profiles import DEFAULT_GROW_PROFILES
from runtime.defaults import (
    DEFAULT_ERROR_NOTIFY_EVERY,
    DEFAULT_HISTORY_DAYS,
    DEFAULT_HISTORY_REFRESH_PERIOD_S,
    DEFAULT_HISTORY_SAMPLE_INTERVAL_MIN,
    DEFAULT_NOTIFICATION_MAXLEN,
    DEFAULT_POLL_INTERVAL_S,
    DEFAULT_STALE_AFTER_S,
    DEFAULT_TIMEZONE_NAME,
    MAX_HISTORY_DAYS,
    MIN_HISTORY_DAYS,
)
from runtime.parsing import parse_bool

DEFAULT_DEVICE_BASE_URL = "http://greenhouse.local"
DEFAULT_DEVICE_REQUEST_TIMEOUT_S = 5.0
DEFAULT_PREFERENCES_FILE = "data/preferences.json"


def _parse_bool(value, default):
    return parse_bool(value, default)


def _parse_float(value, default, key_name, min_value=None):
    try:
        result = float(value)
        if min_value is not None and result < min_value:
            raise ValueError("below minimum")
        return result
    except (TypeError, ValueError):
        logging.warning("Invalid %s='%s'. Using default %s.", key_name, value, default)
        return default


def _parse_int(value, default, key_name, min_value=None, max_value=None):
    try:
        result = int(value)
        if min_value is not None and result < min_value:
            raise ValueError("below minimum")
        if max_value is not None and result > max_value:
            raise ValueError("above maximum")
        return result
    except (TypeError, ValueError):
        logging.warning("Invalid %s='%s'. Using default %s.", key_name, value, default)
        return default


def _parse_timezone(timezone_name):
    try:
        ZoneInfo(timezone_name)
        return timezone_name
    except (ZoneInfoNotFoundError, TypeError, ValueError):
        logging.warning(
            "Invalid time.timezone='%s'. Using default '%s'.",
            timezone_name,
            DEFAULT_TIMEZONE_NAME,
        )
        return DEFAULT_TIMEZONE_NAME


def _parse_base_url_required(value, key_name):
    text = str(value or "").strip().rstrip("/")
    if not text:
        raise ValueError(f"Missing required config key '{key_name}'.")
    if not (text.startswith("http://") or text.startswith("https://")):
        raise ValueError(f"Invalid {key_name}='{value}'. Expected an http:// or https:// URL.")
    return text


def _normalize_grow_profiles(raw_profiles):
    if raw_profiles is None:
        return copy.deepcopy(DEFAULT_GROW_PROFILES)
    if not isinstance(raw_profiles, list):
        raise ValueError("Invalid grow_profiles: expected a list of profile mappings.")

    profiles = []
    seen_ids = set()
    for idx, raw in enumerate(raw_profiles):
        prefix = f"grow_profiles[{idx}]"
        if not isinstance(raw, dict):
            raise ValueError(f"Invalid {prefix}: expected a mapping.")
        profile_id = _parse_int(raw.get("id", idx), idx, f"{prefix}.id", min_value=0)
        if profile_id in seen_ids:
            raise ValueError(f"Duplicate {prefix}.id={profile_id}.")
        seen_ids.add(profile_id)

        label = str(raw.get("label") or "").strip()
        if not label:
            raise ValueError(f"Missing required config key '{prefix}.label'.")

        chambers_raw = raw.get("chambers") or []
        if not isinstance(chambers_raw, list) or len(chambers_raw) != 2:
            raise ValueError(f"Invalid {prefix}.chambers: expected exactly two chamber entries.")
        chambers = []
        for chamber_idx, chamber in enumerate(chambers_raw):
            chamber = dict(chamber or {})
            chamber_prefix = f"{prefix}.chambers[{chamber_idx}]"
            chambers.append(
                {
                    "soil_dry": _parse_int(chamber.get("soil_dry"), 35, f"{chamber_prefix}.soil_dry", 0, 100),
                    "soil_wet": _parse_int(chamber.get("soil_wet"), 45, f"{chamber_prefix}.soil_wet", 0, 100),
                    "light_on": str(chamber.get("light_on") or "08:00"),
                    "light_off": str(chamber.get("light_off") or "20:00"),
                    "light_auto": _parse_bool(chamber.get("light_auto"), True),
                }
            )

        profiles.append(
            {
                "id": profile_id,
                "label": label,
                "chambers": chambers,
                "sets_auto_fan": _parse_bool(raw.get("sets_auto_fan"), False),
                "sets_auto_pump": _parse_bool(raw.get("sets_auto_pump"), False),
                "auto_fan": _parse_bool(raw.get("auto_fan"), False),
                "auto_pump": _parse_bool(raw.get("auto_pump"), False),
            }
        )
    return profiles


def load_config(config_path="config.yaml"):
    """Load configuration from YAML and return validated runtime dict."""
    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_file, "r", encoding="utf-8") as handle:
        yaml_config = yaml.safe_load(handle) or {}

    config = {}

    general = yaml_config.get("general", {}) or {}
    log_level_str = str(general.get("log_level", "INFO")).upper()
    config["LOG_LEVEL"] = getattr(logging, log_level_str, logging.INFO)

    time_cfg = yaml_config.get("time", {}) or {}
    config["TIMEZONE_NAME"] = _parse_timezone(time_cfg.get("timezone", DEFAULT_TIMEZONE_NAME))

    device_cfg = yaml_config.get("device", {}) or {}
    config["DEVICE_BASE_URL"] = _parse_base_url_required(
        device_cfg.get("base_url", DEFAULT_DEVICE_BASE_URL),
        "device.base_url",
    )
    config["DEVICE_REQUEST_TIMEOUT_S"] = _parse_float(
        device_cfg.get("request_timeout_s", DEFAULT_DEVICE_REQUEST_TIMEOUT_S),
        DEFAULT_DEVICE_REQUEST_TIMEOUT_S,
        "device.request_timeout_s",
        min_value=0.1,
    )

    polling_cfg = yaml_config.get("polling", {}) or {}
    config["POLL_INTERVAL_S"] = _parse_float(
        polling_cfg.get("interval_s", DEFAULT_POLL_INTERVAL_S),
        DEFAULT_POLL_INTERVAL_S,
        "polling.interval_s",
        min_value=0.1,
    )
    config["STALE_AFTER_S"] = _parse_float(
        polling_cfg.get("stale_after_s", DEFAULT_STALE_AFTER_S),
        DEFAULT_STALE_AFTER_S,
        "polling.stale_after_s",
        min_value=0.1,
    )
    config["ERROR_NOTIFY_EVERY"] = _parse_int(
        polling_cfg.get("error_notify_every", DEFAULT_ERROR_NOTIFY_EVERY),
        DEFAULT_ERROR_NOTIFY_EVERY,
        "polling.error_notify_every",
        min_value=1,
    )
    if config["STALE_AFTER_S"] < config["POLL_INTERVAL_S"]:
        logging.warning(
            "polling.stale_after_s=%s is shorter than polling.interval_s=%s; the link will flap to stale.",
            config["STALE_AFTER_S"],
            config["POLL_INTERVAL_S"],
        )

    history_cfg = yaml_config.get("history", {}) or {}
    config["HISTORY_REFRESH_PERIOD_S"] = _parse_float(
        history_cfg.get("refresh_period_s", DEFAULT_HISTORY_REFRESH_PERIOD_S),
        DEFAULT_HISTORY_REFRESH_PERIOD_S,
        "history.refresh_period_s",
        min_value=1,
    )
    config["HISTORY_SAMPLE_INTERVAL_MIN"] = _parse_int(
        history_cfg.get("sample_interval_min", DEFAULT_HISTORY_SAMPLE_INTERVAL_MIN),
        DEFAULT_HISTORY_SAMPLE_INTERVAL_MIN,
        "history.sample_interval_min",
        min_value=1,
    )
    config["HISTORY_DEFAULT_DAYS"] = _parse_int(
        history_cfg.get("default_days", DEFAULT_HISTORY_DAYS),
        DEFAULT_HISTORY_DAYS,
        "history.default_days",
        min_value=MIN_HISTORY_DAYS,
        max_value=MAX_HISTORY_DAYS,
    )

    dashboard_cfg = yaml_config.get("dashboard", {}) or {}
    config["PREFERENCES_FILE"] = str(dashboard_cfg.get("preferences_file") or DEFAULT_PREFERENCES_FILE)
    config["NOTIFICATION_MAXLEN"] = _parse_int(
        dashboard_cfg.get("notification_maxlen", DEFAULT_NOTIFICATION_MAXLEN),
        DEFAULT_NOTIFICATION_MAXLEN,
        "dashboard.notification_maxlen",
        min_value=1,
    )

    config["GROW_PROFILES"] = _normalize_grow_profiles(yaml_config.get("grow_profiles"))

    return config
