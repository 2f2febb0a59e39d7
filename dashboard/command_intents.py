"""Pure helpers that map dashboard triggers to relay command intents."""

from runtime.defaults import RELAY_IDS


PUMP_CONFIRM_MESSAGE = "Turn pump ON? This will start water flow."


def command_intent_from_control_trigger(trigger_id, relay_ids=RELAY_IDS):
    """Return normalized command intent dict for a relay control trigger id."""
    trigger = str(trigger_id or "")
    if trigger.startswith("seg-"):
        body = trigger[len("seg-"):]
        relay_id, _, side = body.rpartition("-")
        if relay_id in relay_ids and side in {"auto", "man"}:
            return {"kind": "relay.mode", "payload": {"relay_id": relay_id, "auto": side == "auto"}}
        return None

    if trigger.startswith("tog-"):
        relay_id = trigger[len("tog-"):]
        if relay_id in relay_ids:
            return {"kind": "relay.toggle", "payload": {"relay_id": relay_id}}
    return None


def toggle_confirmation_message(relay_id, relay_on):
    """Return the prompt required before toggling, or None when no prompt is needed."""
    if relay_id == "pump" and relay_on is False:
        return PUMP_CONFIRM_MESSAGE
    return None
