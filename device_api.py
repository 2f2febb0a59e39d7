"""
Device API wrapper for the Greenhouse Monitor.

Thin JSON-over-HTTP client for the greenhouse controller's embedded web server.
Every call is blocking; asyncio callers run them through `asyncio.to_thread`.
Responses are handed to the parsing boundary in `runtime.snapshot`, so callers
get typed results rather than raw dictionaries.
"""

import logging
import time

import requests

from runtime.snapshot import (
    parse_command_payload,
    parse_history_payload,
    parse_profile_payload,
    parse_reboot_payload,
    parse_status_payload,
)

DEFAULT_BASE_URL = "http://greenhouse.local"
DEFAULT_REQUEST_TIMEOUT_S = 5.0


class DeviceAPIError(Exception):
    """Base exception for device API errors (transport, HTTP status, invalid JSON)."""
    pass


class DeviceAPI:
    """
    Wrapper class for the greenhouse controller HTTP API.

    Each GET carries a cache-busting `ts` query parameter so intermediaries
    never serve a stale status.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
        session=None,
        time_fn=time.time,
    ):
        self.base_url = str(base_url or DEFAULT_BASE_URL).rstrip("/")
        self.timeout_s = float(timeout_s)
        self._session = session if session is not None else requests.Session()
        self._time_fn = time_fn

    def close(self):
        self._session.close()

    def _cache_bust(self):
        return int(self._time_fn() * 1000)

    def _request(self, method, path, *, params=None, data=None):
        url = f"{self.base_url}{path}"
        try:
            response = self._session.request(method, url, params=params, data=data, timeout=self.timeout_s)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status = getattr(e.response, "status_code", None)
            reason = getattr(e.response, "reason", "") or ""
            raise DeviceAPIError(f"{status} {reason}".strip()) from e
        except requests.exceptions.RequestException as e:
            raise DeviceAPIError(str(e) or e.__class__.__name__) from e

        try:
            return response.json()
        except ValueError as e:
            raise DeviceAPIError(f"Invalid JSON from {path}") from e

    def _get(self, path, params=None):
        query = dict(params or {})
        query["ts"] = self._cache_bust()
        return self._request("GET", path, params=query)

    def _post(self, path, data=None):
        return self._request("POST", path, data=data or {})

    def fetch_status(self):
        """
        Fetch /api/status as a DeviceSnapshot.

        Raises:
            DeviceAPIError: on transport/HTTP/JSON failure or when the payload
                is not a JSON object.
        """
        snapshot = parse_status_payload(self._get("/api/status"))
        if snapshot is None:
            raise DeviceAPIError("Unusable status payload")
        return snapshot

    def fetch_history(self, days):
        return parse_history_payload(self._get("/api/history", {"days": int(days)}))

    def set_mode(self, relay_id, auto):
        logging.info(f"Device API: set mode {relay_id} -> {'AUTO' if auto else 'MAN'}")
        return parse_command_payload(self._get("/api/mode", {"id": relay_id, "auto": 1 if auto else 0}))

    def toggle(self, relay_id):
        logging.info(f"Device API: toggle {relay_id}")
        return parse_command_payload(self._get("/api/toggle", {"id": relay_id}))

    def apply_profile(self, chamber_id, profile):
        logging.info(f"Device API: apply profile '{profile}' to chamber {chamber_id}")
        return parse_profile_payload(self._post("/api/grow/apply", {"chamber_id": int(chamber_id), "profile": profile}))

    def apply_profile_all(self, profile):
        logging.info(f"Device API: apply profile '{profile}' to all chambers")
        return parse_profile_payload(self._post("/api/grow/apply_all", {"profile": profile}))

    def reboot(self):
        logging.info("Device API: reboot requested")
        return parse_reboot_payload(self._post("/api/reboot"))
