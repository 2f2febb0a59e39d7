"""Human-readable schedule labels with time-until-next-event deltas."""

import math
import re

from scheduling.clock import format_clock, format_delta, nearest_signed_delta, try_parse_clock

SCHEDULE_SEPARATOR = "–"
DELTA_SEPARATOR = " · "

_SCHEDULE_TEXT_RE = re.compile(r"\s*([0-9:.]+)\s*[–—-]\s*([0-9:.]+)\s*")


def _is_finite_number(value):
    if value is None or isinstance(value, bool):
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def format_schedule_window(on_minutes, off_minutes):
    on_text = format_clock(on_minutes) if _is_finite_number(on_minutes) else "--:--"
    off_text = format_clock(off_minutes) if _is_finite_number(off_minutes) else "--:--"
    return f"{on_text}{SCHEDULE_SEPARATOR}{off_text}"


def parse_schedule_text(text):
    """Split an "08:00–20:00" schedule string into (on, off) minutes; (None, None) when unusable."""
    match = _SCHEDULE_TEXT_RE.fullmatch(str(text or ""))
    if not match:
        return None, None
    on_minutes = try_parse_clock(match.group(1))
    off_minutes = try_parse_clock(match.group(2))
    if on_minutes is None or off_minutes is None:
        return None, None
    return on_minutes, off_minutes


def build_schedule_label(
    on_minutes,
    off_minutes,
    *,
    base_label=None,
    timezone_label="",
    now_minutes=None,
    time_synced=False,
):
    """
    Compose "<base> (<tz>) · on <delta> · off <delta>".

    The delta section is only added when the device clock is synced and
    `now_minutes` is a finite number.
    """
    label = base_label if base_label else format_schedule_window(on_minutes, off_minutes)
    if timezone_label:
        label += f" ({timezone_label})"

    if not time_synced or not _is_finite_number(now_minutes):
        return label

    now_value = float(now_minutes)
    parts = []
    if _is_finite_number(on_minutes):
        parts.append(format_delta(nearest_signed_delta(float(on_minutes), now_value), "on"))
    if _is_finite_number(off_minutes):
        parts.append(format_delta(nearest_signed_delta(float(off_minutes), now_value), "off"))
    if parts:
        label += DELTA_SEPARATOR + DELTA_SEPARATOR.join(parts)
    return label


def build_relay_schedule_labels(relays, device_clock):
    """Return {relay_id: label} for every relay that carries a schedule."""
    labels = {}
    for relay_id, relay in (relays or {}).items():
        on_minutes = relay.on_minutes
        off_minutes = relay.off_minutes
        if on_minutes is None or off_minutes is None:
            parsed_on, parsed_off = parse_schedule_text(relay.schedule_text)
            on_minutes = parsed_on if on_minutes is None else on_minutes
            off_minutes = parsed_off if off_minutes is None else off_minutes
        if not relay.schedule_text and on_minutes is None and off_minutes is None:
            continue
        labels[relay_id] = build_schedule_label(
            on_minutes,
            off_minutes,
            base_label=relay.schedule_text or None,
            timezone_label=device_clock.timezone_label,
            now_minutes=device_clock.minutes,
            time_synced=device_clock.synced,
        )
    return labels


def annotate_preset_schedules(presets, device_clock):
    """
    Annotate grow-preset light windows with deltas from the current device clock.

    `presets` is an iterable of dicts carrying "l1_on"/"l1_off"/"l2_on"/"l2_off"
    text. Returns one dict per preset with "light1"/"light2" labels; a light
    whose times do not parse is omitted.
    """
    rows = []
    for preset in presets or []:
        row = {"label": str((preset or {}).get("label") or "")}
        for light_key, prefix in (("light1", "l1"), ("light2", "l2")):
            on_minutes = try_parse_clock((preset or {}).get(f"{prefix}_on"))
            off_minutes = try_parse_clock((preset or {}).get(f"{prefix}_off"))
            if on_minutes is None or off_minutes is None:
                continue
            row[light_key] = build_schedule_label(
                on_minutes,
                off_minutes,
                timezone_label=device_clock.timezone_label,
                now_minutes=device_clock.minutes,
                time_synced=device_clock.synced,
            )
        rows.append(row)
    return rows
