"""Pure UI state helpers for the dashboard top bar, sensor tiles and relay controls."""

from dashboard.relay_guard import relay_control_ids
from scheduling.clock import schedule_is_on
from scheduling.labels import parse_schedule_text


SYNCING_TEXT = "syncing…"
RECONNECTING_TEXT = "reconnecting…"


def is_poll_effectively_stale(poll_health, *, now_monotonic, stale_after_s=10.0):
    """Stale when flagged so, when nothing ever succeeded, or when the last success is too old."""
    health = dict(poll_health or {})
    if health.get("state") != "live":
        return True
    last_success = health.get("last_success")
    if last_success is None or now_monotonic is None:
        return True
    age_s = float(now_monotonic) - float(last_success)
    if age_s < 0:
        age_s = 0.0
    return age_s > float(stale_after_s)


def top_time_text(snapshot):
    if snapshot is None or not snapshot.time_synced:
        return SYNCING_TEXT
    tz_label = f" ({snapshot.timezone_label})" if snapshot.timezone_label else ""
    return f"{snapshot.time_text}{tz_label}"


def describe_connectivity(snapshot, *, stale=False):
    if stale:
        return RECONNECTING_TEXT
    if snapshot is None:
        return "not connected"
    wifi = snapshot.wifi
    if wifi.connected:
        rssi = wifi.rssi if wifi.rssi is not None else "?"
        return f"{wifi.ssid} ({rssi} dBm) · {wifi.ip}"
    if wifi.mode == "AP":
        return "AP mode"
    return "not connected"


def sensor_value_texts(sensors):
    """Tile texts: temperature to one decimal, humidity rounded, soil as reported (0 when missing)."""
    temp = "N/A" if sensors.temp_c is None else f"{sensors.temp_c:.1f}"
    hum = "N/A" if sensors.hum_rh is None else str(int(round(sensors.hum_rh)))

    def _soil(value):
        if value is None:
            return "0"
        return str(int(value)) if float(value).is_integer() else str(value)

    return {"temp": temp, "hum": hum, "s1": _soil(sensors.soil1), "s2": _soil(sensors.soil2)}


def relay_badge_state(relay):
    on = bool(relay.on)
    auto = bool(relay.auto)
    return {
        "state_text": "ON" if on else "OFF",
        "mode_text": "AUTO" if auto else "MAN",
        "auto_active": auto,
        "man_active": not auto,
        "toggle_disabled": auto,
        "toggle_text": "Turn OFF" if on else "Turn ON",
    }


def apply_relay_badge(registry, relay_id, relay):
    """
    Reflect relay state onto its registered controls and return the badge state.

    A control that is busy keeps its disabled flag; the guard restores it when
    the command finishes and the next poll brings it up to date.
    """
    badge = relay_badge_state(relay)
    auto_id, man_id, toggle_id = relay_control_ids(relay_id)

    seg_auto = registry.get(auto_id)
    seg_man = registry.get(man_id)
    if seg_auto is not None and seg_man is not None:
        seg_auto.active = badge["auto_active"]
        seg_man.active = badge["man_active"]

    toggle = registry.get(toggle_id)
    if toggle is not None:
        toggle.text = badge["toggle_text"]
        if not toggle.busy:
            toggle.disabled = badge["toggle_disabled"]
    return badge


def scheduled_state_text(relay, device_clock):
    """Return "scheduled ON" or "scheduled OFF" for an AUTO relay with a window and a synced clock, else None."""
    if not relay.auto or not device_clock.synced or device_clock.minutes is None:
        return None
    on_minutes, off_minutes = relay.on_minutes, relay.off_minutes
    if on_minutes is None or off_minutes is None:
        on_minutes, off_minutes = parse_schedule_text(relay.schedule_text)
    if on_minutes is None or off_minutes is None:
        return None
    return "scheduled ON" if schedule_is_on(on_minutes, off_minutes, device_clock.minutes) else "scheduled OFF"
