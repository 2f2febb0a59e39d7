"""Shared parsing helpers for simple runtime/config/payload coercions."""

import math


def parse_bool(value, default):
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ["1", "true", "yes", "on"]
    if value is None:
        return default
    return bool(value)


def parse_finite_float(value, default=None):
    """Return `value` as a finite float, or `default` for anything else."""
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(result):
        return default
    return result


def parse_optional_int(value, default=None):
    result = parse_finite_float(value)
    if result is None:
        return default
    return int(result)


def parse_text(value, default=""):
    if value is None:
        return default
    return str(value).strip()
