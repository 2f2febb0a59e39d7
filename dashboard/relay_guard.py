"""Per-relay action guard: locks a relay's controls while a command is in flight."""

import logging
from dataclasses import dataclass

from runtime.defaults import RELAY_IDS


def relay_control_ids(relay_id):
    """Return the (auto, man, toggle) control ids of a relay."""
    return (f"seg-{relay_id}-auto", f"seg-{relay_id}-man", f"tog-{relay_id}")


@dataclass
class Control:
    control_id: str
    disabled: bool = False
    busy: bool = False
    text: str = ""
    active: bool = False


class ControlRegistry:
    """Mutable interaction affordances keyed by control id."""

    def __init__(self):
        self._controls = {}

    def register(self, control_id, *, disabled=False, text=""):
        control = Control(control_id=control_id, disabled=disabled, text=text)
        self._controls[control_id] = control
        return control

    def register_relay(self, relay_id):
        for control_id in relay_control_ids(relay_id):
            if control_id not in self._controls:
                self.register(control_id)

    def get(self, control_id):
        return self._controls.get(control_id)

    def relay_controls(self, relay_id):
        """Return the registered controls of `relay_id`, skipping missing ones."""
        controls = []
        for control_id in relay_control_ids(relay_id):
            control = self._controls.get(control_id)
            if control is not None:
                controls.append(control)
        return controls

    def __contains__(self, control_id):
        return control_id in self._controls


def build_default_registry(relay_ids=RELAY_IDS):
    registry = ControlRegistry()
    for relay_id in relay_ids:
        registry.register_relay(relay_id)
    registry.register("reboot", text="Reboot")
    return registry


class RelayActionGuard:
    """
    Wrap a relay command so its controls cannot be re-triggered mid-flight.

    The controls' prior disabled flags are restored afterwards, whatever the
    outcome, so a toggle that was disabled because the relay is in AUTO stays
    disabled.
    """

    def __init__(self, registry, notifier):
        self.registry = registry
        self.notifier = notifier

    async def __call__(self, relay_id, action, *, success_message=None, error_message=None):
        controls = self.registry.relay_controls(relay_id)
        previous_disabled = [control.disabled for control in controls]
        for control in controls:
            control.disabled = True
            control.busy = True

        try:
            result = await action()
            if success_message:
                self.notifier.notify(success_message)
            return result
        except Exception as exc:
            prefix = error_message or "Request failed"
            logging.warning(f"Relay guard: {relay_id} action failed: {exc}")
            self.notifier.notify(f"{prefix}: {exc}", level="error")
            raise
        finally:
            for control, was_disabled in zip(controls, previous_disabled):
                control.disabled = was_disabled
                control.busy = False
