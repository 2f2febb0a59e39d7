"""Transient user notifications (toasts) raised by the poll loop and command flows."""

import logging
from collections import deque
from datetime import datetime, timezone

from runtime.defaults import DEFAULT_NOTIFICATION_MAXLEN

_LOG_BY_LEVEL = {
    "info": logging.info,
    "warning": logging.warning,
    "error": logging.error,
}


class Notifier:
    """
    Bounded notification feed.

    Every notification is also logged with the "Notify:" prefix. `sink`, when
    given, is called with each message (the CLI echoes them to the terminal).
    """

    def __init__(self, maxlen=DEFAULT_NOTIFICATION_MAXLEN, sink=None, now_fn=None):
        self.entries = deque(maxlen=int(maxlen))
        self.sink = sink
        self._now_fn = now_fn or (lambda: datetime.now(timezone.utc))

    def notify(self, message, level="info"):
        level = level if level in _LOG_BY_LEVEL else "info"
        entry = {"timestamp": self._now_fn(), "level": level, "message": str(message)}
        self.entries.append(entry)
        _LOG_BY_LEVEL[level](f"Notify: {message}")
        if self.sink is not None:
            self.sink(entry)
        return entry

    def messages(self):
        return [entry["message"] for entry in self.entries]

    def latest(self):
        return self.entries[-1] if self.entries else None
