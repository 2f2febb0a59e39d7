"""Typed device payloads and the boundary functions that build them.

Every external response shape gets exactly one parse function here. The
functions never raise on malformed input: missing or unusable fields fall back
to explicit defaults, and a payload that is not a JSON object yields None.
Components downstream of this module therefore never re-check for missing keys.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from runtime.defaults import DEFAULT_CHAMBER_LABELS, LIGHT_RELAY_IDS
from runtime.parsing import parse_bool, parse_finite_float, parse_optional_int, parse_text
from scheduling.clock import try_parse_clock


@dataclass(frozen=True)
class SensorReadings:
    temp_c: Optional[float] = None
    hum_rh: Optional[float] = None
    soil1: Optional[float] = None
    soil2: Optional[float] = None


@dataclass(frozen=True)
class RelaySnapshot:
    on: bool = False
    auto: bool = False
    schedule_text: str = ""
    on_minutes: Optional[float] = None
    off_minutes: Optional[float] = None


@dataclass(frozen=True)
class WifiInfo:
    connected: bool = False
    mode: str = ""
    ssid: str = ""
    rssi: Optional[int] = None
    ip: str = ""


@dataclass(frozen=True)
class ChamberInfo:
    id: int
    name: str = ""
    soil: Optional[float] = None
    soil_dry_threshold: Optional[int] = None
    soil_wet_threshold: Optional[int] = None
    light_relay_id: str = ""


@dataclass(frozen=True)
class DeviceSnapshot:
    sensors: SensorReadings = field(default_factory=SensorReadings)
    relays: Mapping[str, RelaySnapshot] = field(default_factory=dict)
    wifi: WifiInfo = field(default_factory=WifiInfo)
    time_text: str = ""
    time_synced: bool = False
    timezone_label: str = ""
    timezone_iana: str = ""
    chambers: tuple = ()
    chart_scales: Optional[Mapping[str, Any]] = None


@dataclass(frozen=True)
class DeviceClock:
    minutes: Optional[float] = None
    timezone_label: str = ""
    timezone_iana: str = ""
    synced: bool = False


@dataclass(frozen=True)
class HistorySample:
    timestamp: Optional[int] = None
    temp: Optional[float] = None
    hum: Optional[float] = None
    light1: Optional[int] = None
    light2: Optional[int] = None
    soil1: Optional[float] = None
    soil2: Optional[float] = None

    @property
    def has_timestamp(self):
        return self.timestamp is not None and self.timestamp > 0


@dataclass(frozen=True)
class CommandResult:
    ok: bool = True
    changed: bool = False
    reason: Optional[str] = None


@dataclass(frozen=True)
class ProfileApplyResult:
    ok: bool = False
    applied_profile: str = ""
    chamber_id: Optional[int] = None
    chamber_name: str = ""
    label: str = ""
    error: Optional[str] = None


def _as_dict(value):
    return value if isinstance(value, dict) else {}


def _first_present(raw, *keys):
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def _parse_sensors(raw):
    raw = _as_dict(raw)
    return SensorReadings(
        temp_c=parse_finite_float(raw.get("temp_c")),
        hum_rh=parse_finite_float(raw.get("hum_rh")),
        soil1=parse_finite_float(raw.get("soil1")),
        soil2=parse_finite_float(raw.get("soil2")),
    )


def _parse_relay(raw):
    raw = _as_dict(raw)
    return RelaySnapshot(
        on=parse_bool(_first_present(raw, "state", "on"), False),
        auto=parse_bool(raw.get("auto"), False),
        schedule_text=parse_text(raw.get("schedule")),
        on_minutes=parse_finite_float(_first_present(raw, "on_minutes", "on_min")),
        off_minutes=parse_finite_float(_first_present(raw, "off_minutes", "off_min")),
    )


def _parse_wifi(raw):
    raw = _as_dict(raw)
    return WifiInfo(
        connected=parse_bool(raw.get("connected"), False),
        mode=parse_text(raw.get("mode")),
        ssid=parse_text(raw.get("ssid")),
        rssi=parse_optional_int(raw.get("rssi")),
        ip=parse_text(raw.get("ip")),
    )


def _parse_chambers(raw):
    chambers = []
    for entry in raw if isinstance(raw, list) else []:
        entry = _as_dict(entry)
        chamber_id = parse_optional_int(entry.get("id"))
        if chamber_id is None:
            continue
        chambers.append(
            ChamberInfo(
                id=chamber_id,
                name=entry["name"].strip() if isinstance(entry.get("name"), str) else "",
                soil=parse_finite_float(entry.get("soil")),
                soil_dry_threshold=parse_optional_int(entry.get("soil_dry_threshold")),
                soil_wet_threshold=parse_optional_int(entry.get("soil_wet_threshold")),
                light_relay_id=parse_text(entry.get("light_relay_id")),
            )
        )
    return tuple(chambers)


def parse_status_payload(payload):
    """Build a DeviceSnapshot from a /api/status payload, or None for a non-object payload."""
    if not isinstance(payload, dict):
        return None
    relays_raw = _as_dict(payload.get("relays"))
    chart_scales = payload.get("chart_scales")
    return DeviceSnapshot(
        sensors=_parse_sensors(payload.get("sensors")),
        relays={str(relay_id): _parse_relay(raw) for relay_id, raw in relays_raw.items() if isinstance(raw, dict)},
        wifi=_parse_wifi(payload.get("wifi")),
        time_text=parse_text(payload.get("time")),
        time_synced=parse_bool(payload.get("time_synced"), False),
        timezone_label=parse_text(payload.get("timezone")),
        timezone_iana=parse_text(payload.get("timezone_iana")),
        chambers=_parse_chambers(payload.get("chambers")),
        chart_scales=dict(chart_scales) if isinstance(chart_scales, dict) else None,
    )


def parse_history_payload(payload):
    """Return the ordered HistorySample list of a /api/history payload (empty when unusable)."""
    points = _as_dict(payload).get("points")
    samples = []
    for point in points if isinstance(points, list) else []:
        point = _as_dict(point)
        samples.append(
            HistorySample(
                timestamp=parse_optional_int(point.get("t")),
                temp=parse_finite_float(point.get("temp")),
                hum=parse_finite_float(point.get("hum")),
                light1=parse_optional_int(point.get("l1")),
                light2=parse_optional_int(point.get("l2")),
                soil1=parse_finite_float(_first_present(point, "soil1", "s1")),
                soil2=parse_finite_float(_first_present(point, "soil2", "s2")),
            )
        )
    return samples


def parse_command_payload(payload):
    """Return a CommandResult for /api/mode and /api/toggle responses."""
    raw = _as_dict(payload)
    reason = raw.get("reason")
    return CommandResult(
        ok=parse_bool(raw.get("ok"), True),
        changed=parse_bool(raw.get("changed"), False),
        reason=str(reason) if reason else None,
    )


def parse_profile_payload(payload):
    raw = _as_dict(payload)
    error = raw.get("error")
    return ProfileApplyResult(
        ok=parse_bool(raw.get("ok"), False),
        applied_profile=parse_text(raw.get("applied_profile")),
        chamber_id=parse_optional_int(raw.get("chamber_id")),
        chamber_name=parse_text(raw.get("chamber_name")),
        label=parse_text(raw.get("label")),
        error=str(error) if error else None,
    )


def parse_reboot_payload(payload):
    return parse_text(_as_dict(payload).get("message"), "Rebooting…") or "Rebooting…"


def derive_device_clock(snapshot):
    """Derive the DeviceClock from a snapshot; minutes is None unless synced and parseable."""
    minutes = try_parse_clock(snapshot.time_text) if snapshot.time_synced else None
    return DeviceClock(
        minutes=minutes,
        timezone_label=snapshot.timezone_label,
        timezone_iana=snapshot.timezone_iana,
        synced=bool(snapshot.time_synced and minutes is not None),
    )


def derive_chamber_labels(chambers):
    """Return the display names of chambers 1 and 2, falling back to "Chamber N"."""
    labels = []
    for idx, fallback in enumerate(DEFAULT_CHAMBER_LABELS, start=1):
        entry = next((chamber for chamber in chambers or () if chamber.id == idx), None)
        name = entry.name.strip() if entry is not None else ""
        labels.append(name or fallback)
    return labels


def chamber_light_relay_ids(chambers):
    """Map chamber id -> light relay id, defaulting to light1/light2."""
    mapping = {idx: relay_id for idx, relay_id in enumerate(LIGHT_RELAY_IDS, start=1)}
    for chamber in chambers or ():
        if chamber.light_relay_id:
            mapping[chamber.id] = chamber.light_relay_id
    return mapping
