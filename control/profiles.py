"""Grow-profile presets: per-chamber option reading, previews and confirmation text."""

from dataclasses import dataclass

from runtime.parsing import parse_bool, parse_optional_int, parse_text
from scheduling.clock import format_clock, try_parse_clock
from scheduling.labels import SCHEDULE_SEPARATOR


DEFAULT_SOIL_DRY = 35
DEFAULT_SOIL_WET = 45

DEFAULT_GROW_PROFILES = [
    {
        "id": 0,
        "label": "Custom",
        "chambers": [
            {"soil_dry": DEFAULT_SOIL_DRY, "soil_wet": DEFAULT_SOIL_WET, "light_on": "08:00", "light_off": "20:00", "light_auto": True},
            {"soil_dry": DEFAULT_SOIL_DRY, "soil_wet": DEFAULT_SOIL_WET, "light_on": "08:00", "light_off": "20:00", "light_auto": True},
        ],
        "sets_auto_fan": False,
        "sets_auto_pump": False,
        "auto_fan": False,
        "auto_pump": False,
    },
    {
        "id": 1,
        "label": "Seedling",
        "chambers": [
            {"soil_dry": 40, "soil_wet": 55, "light_on": "06:00", "light_off": "23:59", "light_auto": True},
            {"soil_dry": 40, "soil_wet": 55, "light_on": "06:00", "light_off": "23:59", "light_auto": True},
        ],
        "sets_auto_fan": True,
        "sets_auto_pump": True,
        "auto_fan": True,
        "auto_pump": True,
    },
    {
        "id": 2,
        "label": "Vegetative",
        "chambers": [
            {"soil_dry": 38, "soil_wet": 52, "light_on": "06:00", "light_off": "23:59", "light_auto": True},
            {"soil_dry": 38, "soil_wet": 52, "light_on": "06:00", "light_off": "23:59", "light_auto": True},
        ],
        "sets_auto_fan": True,
        "sets_auto_pump": True,
        "auto_fan": True,
        "auto_pump": True,
    },
    {
        "id": 3,
        "label": "Flowering",
        "chambers": [
            {"soil_dry": 35, "soil_wet": 50, "light_on": "08:00", "light_off": "20:00", "light_auto": True},
            {"soil_dry": 35, "soil_wet": 50, "light_on": "08:00", "light_off": "20:00", "light_auto": True},
        ],
        "sets_auto_fan": True,
        "sets_auto_pump": True,
        "auto_fan": True,
        "auto_pump": True,
    },
]


@dataclass(frozen=True)
class ChamberProfileOption:
    profile_id: int
    label: str
    soil_dry: int
    soil_wet: int
    light_on: str
    light_off: str
    light_auto: bool
    sets_auto_fan: bool
    sets_auto_pump: bool
    auto_fan: bool
    auto_pump: bool


def _normalize_clock_text(value, default):
    minutes = try_parse_clock(value)
    if minutes is None:
        return default
    return format_clock(minutes)


def find_profile(profiles, profile_ref):
    """Look a profile up by numeric id or (case-insensitive) label."""
    ref_id = parse_optional_int(profile_ref)
    ref_label = parse_text(profile_ref).lower()
    for profile in profiles or []:
        if ref_id is not None and parse_optional_int(profile.get("id")) == ref_id:
            return profile
        if ref_label and parse_text(profile.get("label")).lower() == ref_label:
            return profile
    return None


def read_profile_option(profile, chamber_idx) -> ChamberProfileOption:
    """Return the chamber-specific values (chamber_idx 0 or 1) of a profile preset."""
    chambers = list(profile.get("chambers") or [])
    chamber = dict(chambers[chamber_idx]) if 0 <= chamber_idx < len(chambers) else {}
    return ChamberProfileOption(
        profile_id=parse_optional_int(profile.get("id"), 0),
        label=parse_text(profile.get("label")),
        soil_dry=parse_optional_int(chamber.get("soil_dry"), DEFAULT_SOIL_DRY),
        soil_wet=parse_optional_int(chamber.get("soil_wet"), DEFAULT_SOIL_WET),
        light_on=_normalize_clock_text(chamber.get("light_on"), "--:--"),
        light_off=_normalize_clock_text(chamber.get("light_off"), "--:--"),
        light_auto=parse_bool(chamber.get("light_auto"), False),
        sets_auto_fan=parse_bool(profile.get("sets_auto_fan"), False),
        sets_auto_pump=parse_bool(profile.get("sets_auto_pump"), False),
        auto_fan=parse_bool(profile.get("auto_fan"), False),
        auto_pump=parse_bool(profile.get("auto_pump"), False),
    )


def format_soil_thresholds(option):
    return f"{option.soil_dry}% dry / {option.soil_wet}% wet"


def format_light_window(option):
    return f"{option.light_on}{SCHEDULE_SEPARATOR}{option.light_off}"


def format_light_mode(option):
    return "AUTO" if option.light_auto else "MAN"


def format_automation(option):
    parts = []
    if option.sets_auto_fan:
        parts.append(f"Fan {'AUTO' if option.auto_fan else 'MAN'}")
    if option.sets_auto_pump:
        parts.append(f"Pump {'AUTO' if option.auto_pump else 'MAN'}")
    if not parts:
        return "No Fan/Pump mode change"
    return ", ".join(parts)


def render_chamber_preview(option):
    return {
        "soil": format_soil_thresholds(option),
        "light": format_light_window(option),
        "mode": format_light_mode(option),
        "automation": format_automation(option),
    }


def build_chamber_confirm_message(option, chamber_name, light_label):
    lines = [
        f"Apply '{option.label}' to {chamber_name}?",
        f"Soil: {format_soil_thresholds(option)}",
        f"{light_label}: {format_light_window(option)} ({format_light_mode(option)})",
    ]
    if option.sets_auto_fan or option.sets_auto_pump:
        lines.append(f"Automation: {format_automation(option)}")
    return "\n".join(lines)


def preset_schedule_rows(profiles):
    """Flatten presets into rows of light-window text for schedule annotation."""
    rows = []
    for profile in profiles or []:
        row = {"label": parse_text(profile.get("label"))}
        for chamber_idx, prefix in ((0, "l1"), (1, "l2")):
            option = read_profile_option(profile, chamber_idx)
            row[f"{prefix}_on"] = option.light_on
            row[f"{prefix}_off"] = option.light_off
        rows.append(row)
    return rows
