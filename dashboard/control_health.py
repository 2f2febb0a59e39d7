"""Pure formatting helpers for device-link, history and relay health lines."""

from datetime import datetime


def _safe_timestamp(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except (TypeError, ValueError):
        return None


def _truncate(text, max_chars=120):
    value = str(text or "")
    if len(value) <= max_chars:
        return value
    return value[: max(0, int(max_chars) - 3)].rstrip() + "..."


def format_age_seconds(ts, now_ts):
    ts_value = _safe_timestamp(ts)
    now_value = _safe_timestamp(now_ts)
    if ts_value is None or now_value is None:
        return "n/a"
    try:
        age_s = (now_value - ts_value).total_seconds()
    except TypeError:
        return "n/a"
    if age_s < 0:
        age_s = 0.0
    return f"{age_s:.1f}s"


def _format_time(ts):
    ts_value = _safe_timestamp(ts)
    if ts_value is None:
        return "n/a"
    return ts_value.strftime("%H:%M:%S")


def summarize_poll_health(poll_health, now_ts):
    health = dict(poll_health or {})
    state = str(health.get("state") or "stale").upper()
    age_text = format_age_seconds(health.get("last_success_at"), now_ts)
    if state != "LIVE":
        age_display = f"stale ({age_text})"
    else:
        age_display = age_text

    line = f"Device link: {state} | Last OK: {age_display}"
    errors = int(health.get("consecutive_errors", 0) or 0)
    if errors > 0:
        line += f" | Errors: {errors}"
    skipped = int(health.get("skipped_ticks", 0) or 0)
    if skipped > 0:
        line += f" | Skipped ticks: {skipped}"

    lines = [line]
    if health.get("last_error") and errors > 0:
        lines.append(f"Error: {_truncate(health.get('last_error'), max_chars=120)}")
    return lines


def summarize_history_status(history_state):
    state = dict(history_state or {})
    days = int(state.get("days", 1) or 1)
    points = int(state.get("points", 0) or 0)
    text = f"History: {days}d | Points: {points} | Last fetch @ {_format_time(state.get('last_fetch_at'))}"
    if state.get("last_error"):
        text += f" | Fetch error: {_truncate(state.get('last_error'), max_chars=80)}"
    return text


def summarize_relay_line(relay_id, badge, schedule_label=None, display_name=None):
    name = display_name or relay_id
    line = f"{name}: {badge['state_text']} {badge['mode_text']}"
    if schedule_label:
        line += f" | {schedule_label}"
    return line


LOG_LEVEL_ORDER = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def summarize_session_logs(session_logs, limit=5, min_level="INFO"):
    """Last `limit` session log entries at or above `min_level`, oldest first."""
    limit = int(limit or 0)
    if limit <= 0:
        return []
    floor = LOG_LEVEL_ORDER.index(min_level) if min_level in LOG_LEVEL_ORDER else 0
    lines = []
    for entry in session_logs or ():
        level = str(entry.get("level") or "INFO").upper()
        rank = LOG_LEVEL_ORDER.index(level) if level in LOG_LEVEL_ORDER else len(LOG_LEVEL_ORDER)
        if rank < floor:
            continue
        lines.append(f"{entry.get('timestamp', '--:--:--')} [{level}] {_truncate(entry.get('message'), max_chars=160)}")
    return lines[-limit:]
