import asyncio
import logging

from runtime.defaults import (
    DEFAULT_ERROR_NOTIFY_EVERY,
    DEFAULT_POLL_INTERVAL_S,
    DEFAULT_STALE_AFTER_S,
)


class StatusPollAgent:
    """
    Periodic device status poll with staleness detection.

    One tick fetches /api/status and, on success, refreshes every piece of
    derived session state; the history window is refreshed afterwards when the
    throttle allows. Ticks never overlap: a tick requested while another is in
    flight is skipped. Failures are recovered on the next tick, with no backoff.
    """

    def __init__(self, config, session, api):
        self.session = session
        self.api = api
        self.interval_s = float(config.get("POLL_INTERVAL_S", DEFAULT_POLL_INTERVAL_S))
        self.stale_after_s = float(config.get("STALE_AFTER_S", DEFAULT_STALE_AFTER_S))
        self.error_notify_every = max(1, int(config.get("ERROR_NOTIFY_EVERY", DEFAULT_ERROR_NOTIFY_EVERY)))
        self._busy = False
        self._refresh_waiters = []
        self._wake = asyncio.Event()

    @property
    def health(self):
        return self.session.poll_health

    @property
    def busy(self):
        return self._busy

    def _set_state(self, state):
        previous = self.health.get("state")
        self.health["state"] = state
        if previous != state:
            logging.info(f"Status poll: device link {state.upper()}.")

    def _record_success(self):
        self.health["last_success"] = self.session.monotonic()
        self.health["last_success_at"] = self.session.now()
        self.health["consecutive_errors"] = 0
        self.health["last_error"] = None
        self._set_state("live")

    def _record_failure(self, exc):
        self.health["consecutive_errors"] = int(self.health.get("consecutive_errors", 0)) + 1
        self.health["last_error"] = str(exc)
        errors = self.health["consecutive_errors"]
        logging.warning(f"Status poll: status fetch failed ({errors} consecutive): {exc}")
        if errors % self.error_notify_every == 0:
            self.session.notifier.notify(f"Status failed: {exc}", level="error")
        self._set_state("stale")

    def _check_staleness(self):
        last_success = self.health.get("last_success")
        if last_success is None or (self.session.monotonic() - last_success) > self.stale_after_s:
            self._set_state("stale")

    async def _poll_status(self):
        self.health["last_attempt_at"] = self.session.now()
        try:
            snapshot = await asyncio.to_thread(self.api.fetch_status)
            self._record_success()
            self.session.apply_snapshot(snapshot)
        except Exception as exc:
            self._record_failure(exc)
            return False
        return True

    async def _refresh_history(self):
        throttle = self.session.history_throttle
        if not throttle.should_fetch():
            return
        days = self.session.history_days
        try:
            samples = await asyncio.to_thread(self.api.fetch_history, days)
            self.session.apply_history(samples)
        except Exception as exc:
            logging.error(f"Status poll: history refresh failed (days={days}): {exc}")
            self.session.history_state["last_error"] = str(exc)
            self.session.notifier.notify(f"History failed: {exc}", level="error")
            return
        finally:
            throttle.mark_fetched()
        logging.debug(f"Status poll: history refreshed ({len(self.session.history_samples)} points, {days}d).")

    async def tick(self, *, include_history=True):
        """
        Run one poll tick. Returns False when skipped because a tick is already running.

        With include_history=False only the status snapshot is refreshed and the
        history throttle is not consumed.
        """
        if self._busy:
            self.health["skipped_ticks"] = int(self.health.get("skipped_ticks", 0)) + 1
            logging.debug("Status poll: tick skipped, previous tick still in flight.")
            return False

        self._busy = True
        waiters, self._refresh_waiters = self._refresh_waiters, []
        try:
            if await self._poll_status() and include_history:
                await self._refresh_history()
        finally:
            self._check_staleness()
            self._busy = False
            for waiter in waiters:
                if not waiter.done():
                    waiter.set_result(self.health["state"])
        return True

    def request_refresh(self):
        """
        Ask for an out-of-band poll.

        Returns a future resolved (with the link state) by the next tick that
        starts after this call.
        """
        future = asyncio.get_running_loop().create_future()
        self._refresh_waiters.append(future)
        self._wake.set()
        return future

    def request_history_reload(self, days):
        """Persist a new history range and force the next history fetch."""
        days = self.session.set_history_days(days)
        logging.info(f"Status poll: history range set to {days}d.")
        self._wake.set()
        return days

    def stop(self):
        self.session.close()
        self._wake.set()

    async def _wait_for_next_slot(self, elapsed_s):
        if elapsed_s > self.interval_s:
            missed = int(elapsed_s // self.interval_s)
            self.health["skipped_ticks"] = int(self.health.get("skipped_ticks", 0)) + missed
            logging.debug(f"Status poll: {missed} timer tick(s) skipped while a tick was in flight.")
        remaining = self.interval_s - (elapsed_s % self.interval_s)
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=remaining)
        except asyncio.TimeoutError:
            pass
        self._wake.clear()

    async def run(self):
        logging.info(f"Status poll agent started (interval={self.interval_s}s, stale_after={self.stale_after_s}s).")
        shutdown_event = self.session.shutdown_event
        try:
            while not shutdown_event.is_set():
                started = self.session.monotonic()
                try:
                    await self.tick()
                except Exception as exc:
                    logging.error(f"Status poll: unexpected error: {exc}")
                await self._wait_for_next_slot(self.session.monotonic() - started)
        finally:
            for waiter in self._refresh_waiters:
                if not waiter.done():
                    waiter.set_result(self.health["state"])
            self._refresh_waiters = []
            logging.info("Status poll agent stopped.")
