"""User-initiated command flows: relay mode/toggle, grow profiles and reboot."""

import asyncio
import logging

from control.profiles import build_chamber_confirm_message, find_profile, read_profile_option
from dashboard.command_intents import command_intent_from_control_trigger, toggle_confirmation_message
from dashboard.relay_guard import relay_control_ids
from device_api import DeviceAPIError


REBOOT_CONFIRM_MESSAGE = "Confirm reboot?"


def _confirmed(confirm, message):
    """A required confirmation without a prompt callback counts as declined."""
    if confirm is None:
        logging.info(f"Control flow: confirmation required but no prompt available ({message!r}).")
        return False
    return bool(confirm(message))


async def _refresh(refresh):
    if refresh is not None:
        await refresh()


async def set_relay_mode(session, api, relay_id, auto, *, refresh=None):
    """Switch a relay to AUTO or MAN. Returns the CommandResult, or None when the request failed."""
    logging.info(f"Control flow: mode {relay_id} -> {'AUTO' if auto else 'MAN'} requested.")
    try:
        result = await session.guard(
            relay_id,
            lambda: asyncio.to_thread(api.set_mode, relay_id, auto),
            error_message="Mode change failed",
        )
    except DeviceAPIError:
        return None

    if result.changed:
        session.notifier.notify("Mode updated")
        await _refresh(refresh)
    return result


async def toggle_relay(session, api, relay_id, *, confirm=None, refresh=None):
    """
    Toggle a relay in manual mode.

    Returns the CommandResult, or None when the toggle was not sent (control
    disabled, confirmation declined) or the request failed.
    """
    _, _, toggle_id = relay_control_ids(relay_id)
    toggle = session.controls.get(toggle_id)
    if toggle is not None and toggle.busy:
        logging.info(f"Control flow: toggle {relay_id} ignored, a command is already in flight.")
        return None
    if toggle is not None and toggle.disabled:
        logging.info(f"Control flow: toggle {relay_id} ignored, relay is in AUTO.")
        session.notifier.notify("Switch to MAN to toggle")
        return None

    prompt = toggle_confirmation_message(relay_id, session.relay_is_on(relay_id))
    if prompt and not _confirmed(confirm, prompt):
        logging.info(f"Control flow: toggle {relay_id} cancelled at confirmation.")
        return None

    try:
        result = await session.guard(
            relay_id,
            lambda: asyncio.to_thread(api.toggle, relay_id),
            error_message="Toggle failed",
        )
    except DeviceAPIError:
        return None

    if result.changed:
        session.notifier.notify("Toggle sent")
        await _refresh(refresh)
    elif result.reason == "AUTO":
        session.notifier.notify("Switch to MAN to toggle")
    return result


def _report_profile_result(session, result, target_text):
    if result.ok:
        label = result.label or f"{result.applied_profile} -> {target_text}"
        session.notifier.notify(f"Applied {label}")
    else:
        session.notifier.notify(f"Apply failed: {result.error or 'rejected'}", level="error")


async def apply_profile(session, api, chamber_id, profile_ref, *, profiles, confirm=None, refresh=None):
    """Apply a grow profile to one chamber (1 or 2)."""
    profile = find_profile(profiles, profile_ref)
    if profile is None:
        session.notifier.notify(f"Unknown profile: {profile_ref}", level="warning")
        return None
    chamber_id = int(chamber_id)
    if chamber_id not in (1, 2):
        session.notifier.notify(f"Unknown chamber: {chamber_id}", level="warning")
        return None

    chamber_name = session.chamber_labels[chamber_id - 1]
    option = read_profile_option(profile, chamber_id - 1)
    if not _confirmed(confirm, build_chamber_confirm_message(option, chamber_name, f"Light {chamber_id}")):
        return None

    try:
        result = await asyncio.to_thread(api.apply_profile, chamber_id, option.profile_id)
    except DeviceAPIError as exc:
        logging.error(f"Control flow: apply profile to chamber {chamber_id} failed: {exc}")
        session.notifier.notify(f"Apply failed: {exc}", level="error")
        return None

    _report_profile_result(session, result, chamber_name)
    await _refresh(refresh)
    return result


async def apply_profile_all(session, api, profile_ref, *, profiles, confirm=None, refresh=None):
    """
    Apply a grow profile to both chambers and the environment.

    The device applies it as one operation; whatever it reports is passed on
    as-is, partial application included.
    """
    profile = find_profile(profiles, profile_ref)
    if profile is None:
        session.notifier.notify(f"Unknown profile: {profile_ref}", level="warning")
        return None

    label = str(profile.get("label") or profile_ref)
    if not _confirmed(confirm, f"Apply '{label}' to both chambers and environment?"):
        return None

    try:
        result = await asyncio.to_thread(api.apply_profile_all, profile.get("id"))
    except DeviceAPIError as exc:
        logging.error(f"Control flow: apply profile to all chambers failed: {exc}")
        session.notifier.notify(f"Apply failed: {exc}", level="error")
        return None

    _report_profile_result(session, result, "all chambers")
    await _refresh(refresh)
    return result


async def reboot_device(session, api, *, confirm=None):
    """Ask the device to reboot. The reboot control stays disabled once the request succeeds."""
    control = session.controls.get("reboot")
    if control is not None and control.disabled:
        return None
    if not _confirmed(confirm, REBOOT_CONFIRM_MESSAGE):
        return None

    if control is not None:
        control.disabled = True
    try:
        message = await asyncio.to_thread(api.reboot)
    except DeviceAPIError as exc:
        if control is not None:
            control.disabled = False
        logging.error(f"Control flow: reboot request failed: {exc}")
        session.notifier.notify(f"Reboot failed: {exc}", level="error")
        return None

    session.notifier.notify(message)
    return message


async def dispatch_control_trigger(session, api, trigger_id, *, confirm=None, refresh=None):
    """Run the relay command behind a control id ("seg-fan-auto", "tog-pump", ...)."""
    intent = command_intent_from_control_trigger(trigger_id)
    if intent is None:
        logging.info(f"Control flow: ignoring unknown control trigger {trigger_id!r}.")
        return None

    payload = intent["payload"]
    if intent["kind"] == "relay.mode":
        return await set_relay_mode(session, api, payload["relay_id"], payload["auto"], refresh=refresh)
    return await toggle_relay(session, api, payload["relay_id"], confirm=confirm, refresh=refresh)
