"""
Logger configuration module for the Greenhouse Monitor.

Configures logging to:
1. Output to console
2. Write to daily log files in logs/ folder, dated in the configured timezone
3. Keep the recent records on the MonitorSession, where `status` prints them
"""

import logging
import os
from datetime import datetime

from runtime.paths import get_logs_dir
from time_utils import get_timezone

LOG_FILE_SUFFIX = "greenhouse_monitor"
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def log_file_path_for(logs_dir, record_dt):
    return os.path.join(logs_dir, f"{record_dt:%Y-%m-%d}_{LOG_FILE_SUFFIX}.log")


class SessionLogHandler(logging.Handler):
    """Mirror records into `session.session_logs` (a bounded deque) as display entries."""

    def __init__(self, session, timezone_name=None):
        super().__init__()
        self.session = session
        self.tz = get_timezone(timezone_name)

    def emit(self, record):
        try:
            self.session.session_logs.append(
                {
                    "timestamp": datetime.fromtimestamp(record.created, tz=self.tz).strftime("%H:%M:%S"),
                    "level": record.levelname,
                    "message": record.getMessage(),
                }
            )
        except Exception:
            self.handleError(record)


class DateRoutedFileHandler(logging.Handler):
    """
    Append records to logs/YYYY-MM-DD_greenhouse_monitor.log.

    The date comes from the record timestamp in the configured timezone, so a
    long `run` rolls over to a new file at device-local midnight. The path in
    use is published on `session.log_file_path`.
    """

    def __init__(self, logs_dir, timezone_name, session=None, *, encoding="utf-8"):
        super().__init__()
        self.logs_dir = logs_dir
        self.session = session
        self.encoding = encoding
        self.tz = get_timezone(timezone_name)
        self._path = None
        self._stream = None

    @property
    def current_path(self):
        return self._path

    def _stream_for(self, record):
        path = log_file_path_for(self.logs_dir, datetime.fromtimestamp(record.created, tz=self.tz))
        if path != self._path or self._stream is None:
            self._close_stream()
            self._stream = open(path, "a", encoding=self.encoding)
            self._path = path
            if self.session is not None:
                self.session.log_file_path = path
        return self._stream

    def _close_stream(self):
        if self._stream is not None:
            stream, self._stream = self._stream, None
            stream.close()

    def emit(self, record):
        try:
            stream = self._stream_for(record)
            stream.write(self.format(record) + "\n")
            stream.flush()
        except Exception:
            self.handleError(record)

    def close(self):
        try:
            self._close_stream()
        finally:
            super().close()


def setup_logging(config, session=None, logs_dir=None):
    """
    Set up logging with console, file, and (optionally) session handlers.

    Args:
        config: Configuration dictionary with LOG_LEVEL and TIMEZONE_NAME
        session: MonitorSession receiving session log entries
        logs_dir: Override for the log directory (defaults to <repo>/logs)

    Returns:
        logging.Logger: The configured root logger
    """
    log_level = config.get("LOG_LEVEL", logging.INFO)
    timezone_name = config.get("TIMEZONE_NAME")

    logs_dir = logs_dir or get_logs_dir(__file__)
    os.makedirs(logs_dir, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handlers = [
        logging.StreamHandler(),
        DateRoutedFileHandler(logs_dir, timezone_name, session),
    ]
    if session is not None:
        handlers.append(SessionLogHandler(session, timezone_name))

    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    # urllib3 logs every connection at DEBUG; keep it out of the session buffer.
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    return root_logger
