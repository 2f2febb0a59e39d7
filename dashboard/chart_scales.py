"""Y-axis bounds for the temperature/humidity history chart."""

from dataclasses import dataclass

from runtime.parsing import parse_finite_float


TEMP_SANE_RANGE = (-40.0, 120.0)
HUM_SANE_RANGE = (0.0, 100.0)


@dataclass(frozen=True)
class ChartScales:
    temp_min: float
    temp_max: float
    hum_min: float
    hum_max: float

    def as_dict(self):
        return {
            "temp_min": self.temp_min,
            "temp_max": self.temp_max,
            "hum_min": self.hum_min,
            "hum_max": self.hum_max,
        }


DEFAULT_CHART_SCALES = ChartScales(temp_min=10.0, temp_max=40.0, hum_min=0.0, hum_max=100.0)


def _pick(raw, snake_key, camel_key):
    if snake_key in raw and raw[snake_key] is not None:
        return raw[snake_key]
    return raw.get(camel_key)


def _bound(value, sane_range, default):
    number = parse_finite_float(value)
    if number is None:
        return float(default)
    lo, hi = sane_range
    return max(lo, min(hi, number))


def resolve_chart_scales(raw) -> ChartScales:
    """
    Resolve device chart-scale hints into a valid ChartScales.

    Accepts snake_case or camelCase keys. Each bound is clamped to its sane
    range and falls back individually to the default; a pair whose max does
    not exceed its min is then replaced by the default pair.
    """
    raw = raw if isinstance(raw, dict) else {}
    defaults = DEFAULT_CHART_SCALES

    temp_min = _bound(_pick(raw, "temp_min", "tempMin"), TEMP_SANE_RANGE, defaults.temp_min)
    temp_max = _bound(_pick(raw, "temp_max", "tempMax"), TEMP_SANE_RANGE, defaults.temp_max)
    hum_min = _bound(_pick(raw, "hum_min", "humMin"), HUM_SANE_RANGE, defaults.hum_min)
    hum_max = _bound(_pick(raw, "hum_max", "humMax"), HUM_SANE_RANGE, defaults.hum_max)

    if temp_max <= temp_min:
        temp_min, temp_max = defaults.temp_min, defaults.temp_max
    if hum_max <= hum_min:
        hum_min, hum_max = defaults.hum_min, defaults.hum_max

    return ChartScales(temp_min=temp_min, temp_max=temp_max, hum_min=hum_min, hum_max=hum_max)
