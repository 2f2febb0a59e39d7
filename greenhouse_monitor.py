import asyncio
import logging
import os
import sys

import click

from config_loader import load_config
from control.flows import (
    apply_profile,
    apply_profile_all,
    dispatch_control_trigger,
    reboot_device,
    set_relay_mode,
    toggle_relay,
)
from control.profiles import preset_schedule_rows, read_profile_option, render_chamber_preview
from dashboard.control_health import (
    summarize_history_status,
    summarize_poll_health,
    summarize_relay_line,
    summarize_session_logs,
)
from dashboard.history import history_frame
from dashboard.notifications import Notifier
from dashboard.plotting import render_dashboard_html
from dashboard.preferences import PreferenceStore
from dashboard.ui_state import (
    describe_connectivity,
    is_poll_effectively_stale,
    scheduled_state_text,
    sensor_value_texts,
    top_time_text,
)
from device_api import DeviceAPI
from logger_config import setup_logging
from runtime.defaults import MAX_HISTORY_DAYS, MIN_HISTORY_DAYS, RELAY_IDS
from runtime.session import build_initial_session
from runtime.snapshot import chamber_light_relay_ids
from scheduling.labels import annotate_preset_schedules
from status_poll_agent import StatusPollAgent
from time_utils import get_timezone

HEALTH_LOG_PERIOD_S = 30.0


def _echo_notification(entry):
    click.echo(f"[{entry['level']}] {entry['message']}")


class MonitorRuntime:
    """Config, session, device client and poll agent wired together for one CLI invocation."""

    def __init__(self, config_path):
        self.config = load_config(config_path)
        preferences_path = self.config["PREFERENCES_FILE"]
        if not os.path.isabs(preferences_path):
            preferences_path = os.path.join(os.path.dirname(os.path.abspath(config_path)), preferences_path)
        notifier = Notifier(maxlen=self.config["NOTIFICATION_MAXLEN"], sink=_echo_notification)
        self.session = build_initial_session(
            self.config,
            preferences=PreferenceStore(preferences_path),
            notifier=notifier,
        )
        setup_logging(self.config, self.session)
        self.api = DeviceAPI(self.config["DEVICE_BASE_URL"], self.config["DEVICE_REQUEST_TIMEOUT_S"])
        self.agent = StatusPollAgent(self.config, self.session, self.api)

    async def refresh_status(self):
        """Status-only tick for one-shot commands; the history window is left alone."""
        return await self.agent.tick(include_history=False)

    def close(self):
        self.session.close()
        self.api.close()


def _confirm_fn(assume_yes):
    if assume_yes:
        return lambda message: True
    return lambda message: click.confirm(message, default=False)


def _echo_health(runtime):
    for line in summarize_poll_health(runtime.session.poll_health, runtime.session.now()):
        click.echo(line)


def _echo_session_logs(runtime, limit):
    lines = summarize_session_logs(runtime.session.session_logs, limit=limit, min_level="WARNING")
    if lines:
        click.echo("Recent log:")
        for line in lines:
            click.echo(f"  {line}")
    if limit and runtime.session.log_file_path:
        click.echo(f"Log file: {runtime.session.log_file_path}")


def _run_once(config_path, coro_fn):
    runtime = MonitorRuntime(config_path)
    try:
        exit_code = asyncio.run(coro_fn(runtime))
    finally:
        runtime.close()
    if exit_code:
        sys.exit(exit_code)


def _is_live(runtime):
    if runtime.session.poll_health["state"] != "live":
        _echo_health(runtime)
        return False
    return True


@click.group()
@click.option(
    "--config",
    "config_path",
    default="config.yaml",
    show_default=True,
    type=click.Path(dir_okay=False),
    help="path to the YAML configuration file",
)
@click.pass_context
def cli(ctx, config_path):
    """Greenhouse controller monitor."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


def _write_dashboard_html(session, html_path, *, with_sparklines=True):
    page = render_dashboard_html(
        session.history_datasets,
        session.chart_scales,
        session.sparklines.snapshot() if with_sparklines else None,
    )
    with open(html_path, "w", encoding="utf-8") as handle:
        handle.write(page)


async def _health_reporter(runtime, html_path=None):
    while not runtime.session.shutdown_event.is_set():
        try:
            await asyncio.wait_for(runtime.session.shutdown_event.wait(), timeout=HEALTH_LOG_PERIOD_S)
        except asyncio.TimeoutError:
            for line in summarize_poll_health(runtime.session.poll_health, runtime.session.now()):
                logging.info(line)
            logging.info(summarize_history_status(runtime.session.history_state))
            if html_path:
                try:
                    _write_dashboard_html(runtime.session, html_path)
                except OSError as exc:
                    logging.error(f"Dashboard export to {html_path} failed: {exc}")


async def _run_forever(runtime, html_path=None):
    reporter = asyncio.create_task(_health_reporter(runtime, html_path))
    try:
        await runtime.agent.run()
    finally:
        runtime.agent.stop()
        await reporter


@cli.command("run")
@click.option(
    "--html",
    "html_path",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="rewrite an HTML chart page with every health report",
)
@click.pass_context
def run(ctx, html_path):
    """Poll the device continuously, logging link health."""
    runtime = MonitorRuntime(ctx.obj["config_path"])
    logging.info("Greenhouse monitor starting (device %s).", runtime.config["DEVICE_BASE_URL"])
    try:
        asyncio.run(_run_forever(runtime, html_path))
    except KeyboardInterrupt:
        logging.info("Keyboard interrupt received. Shutting down...")
    finally:
        runtime.close()
        logging.info("Greenhouse monitor shutdown complete.")


@cli.command("status")
@click.option(
    "--log-lines",
    type=click.IntRange(0, 100),
    default=5,
    show_default=True,
    help="recent session log lines to print (warnings and errors)",
)
@click.pass_context
def status(ctx, log_lines):
    """Fetch one status snapshot and print a summary."""

    async def _status(runtime):
        await runtime.refresh_status()
        if not _is_live(runtime):
            _echo_session_logs(runtime, log_lines)
            return 1
        session = runtime.session
        snapshot = session.snapshot
        click.echo(f"Device time: {top_time_text(snapshot)}")
        stale = is_poll_effectively_stale(
            session.poll_health,
            now_monotonic=session.monotonic(),
            stale_after_s=runtime.agent.stale_after_s,
        )
        click.echo(f"Connectivity: {describe_connectivity(snapshot, stale=stale)}")
        values = sensor_value_texts(snapshot.sensors)
        click.echo(
            f"Temperature: {values['temp']} °C | Humidity: {values['hum']} % | "
            f"{session.chamber_labels[0]} soil: {values['s1']} % | {session.chamber_labels[1]} soil: {values['s2']} %"
        )
        names = {
            light_id: session.chamber_labels[chamber_id - 1]
            for chamber_id, light_id in chamber_light_relay_ids(snapshot.chambers).items()
            if chamber_id in (1, 2)
        }
        for relay_id in RELAY_IDS:
            relay = snapshot.relays.get(relay_id)
            badge = session.relay_badges.get(relay_id)
            if relay is None or badge is None:
                continue
            line = summarize_relay_line(
                relay_id,
                badge,
                session.schedule_labels.get(relay_id),
                display_name=f"{relay_id} ({names[relay_id]})" if relay_id in names else None,
            )
            expectation = scheduled_state_text(relay, session.device_clock)
            if expectation:
                line += f" | {expectation}"
            click.echo(line)
        _echo_health(runtime)
        _echo_session_logs(runtime, log_lines)

    _run_once(ctx.obj["config_path"], _status)


@cli.command("history")
@click.option(
    "--days",
    type=click.IntRange(MIN_HISTORY_DAYS, MAX_HISTORY_DAYS),
    default=None,
    help="history range in days (remembered for later runs)",
)
@click.option(
    "--csv",
    "csv_path",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="write the history window to a CSV file",
)
@click.option(
    "--html",
    "html_path",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="write the history charts to an HTML file",
)
@click.pass_context
def history(ctx, days, csv_path, html_path):
    """Fetch the history window and print (or export) it."""

    async def _history(runtime):
        if days is not None:
            runtime.agent.request_history_reload(days)
        await runtime.agent.tick()
        if not _is_live(runtime):
            return 1
        session = runtime.session
        click.echo(summarize_history_status(session.history_state))
        if session.history_state.get("last_error"):
            return 1

        timezone_name = session.device_clock.timezone_iana or runtime.config["TIMEZONE_NAME"]
        df = history_frame(session.history_samples, get_timezone(timezone_name))
        if csv_path:
            df.to_csv(csv_path, index=False)
            click.echo(f"Wrote {len(df)} rows to {csv_path}")
        if html_path:
            _write_dashboard_html(session, html_path, with_sparklines=False)
            click.echo(f"Wrote history charts to {html_path}")
        if not csv_path and not html_path and not df.empty:
            click.echo(df.tail(12).to_string(index=False))

    _run_once(ctx.obj["config_path"], _history)


@cli.command("press")
@click.argument("control_id")
@click.option("--yes", "assume_yes", is_flag=True, help="skip confirmation prompts")
@click.pass_context
def press(ctx, control_id, assume_yes):
    """Activate a relay control by id (seg-<relay>-auto, seg-<relay>-man, tog-<relay>)."""

    async def _press(runtime):
        await runtime.refresh_status()
        result = await dispatch_control_trigger(
            runtime.session,
            runtime.api,
            control_id,
            confirm=_confirm_fn(assume_yes),
            refresh=runtime.refresh_status,
        )
        if result is None:
            return 1

    _run_once(ctx.obj["config_path"], _press)


@cli.command("mode")
@click.argument("relay_id", type=click.Choice(RELAY_IDS))
@click.argument("mode", type=click.Choice(["auto", "man"]))
@click.pass_context
def mode(ctx, relay_id, mode):
    """Switch RELAY_ID to automatic or manual mode."""

    async def _mode(runtime):
        await runtime.refresh_status()
        result = await set_relay_mode(runtime.session, runtime.api, relay_id, mode == "auto", refresh=runtime.refresh_status)
        if result is None:
            return 1
        if not result.changed:
            click.echo(f"{relay_id} already {mode.upper()}")

    _run_once(ctx.obj["config_path"], _mode)


@cli.command("toggle")
@click.argument("relay_id", type=click.Choice(RELAY_IDS))
@click.option("--yes", "assume_yes", is_flag=True, help="skip confirmation prompts")
@click.pass_context
def toggle(ctx, relay_id, assume_yes):
    """Toggle RELAY_ID (manual mode only)."""

    async def _toggle(runtime):
        await runtime.refresh_status()
        result = await toggle_relay(
            runtime.session,
            runtime.api,
            relay_id,
            confirm=_confirm_fn(assume_yes),
            refresh=runtime.refresh_status,
        )
        if result is None or not result.changed:
            return 1

    _run_once(ctx.obj["config_path"], _toggle)


@cli.command("profiles")
@click.pass_context
def profiles(ctx):
    """List grow profiles with per-chamber previews."""

    async def _profiles(runtime):
        await runtime.refresh_status()
        session = runtime.session
        grow_profiles = runtime.config["GROW_PROFILES"]
        schedules = annotate_preset_schedules(preset_schedule_rows(grow_profiles), session.device_clock)
        for profile, schedule in zip(grow_profiles, schedules):
            click.echo(f"[{profile['id']}] {profile['label']}")
            for chamber_idx, light_key in ((0, "light1"), (1, "light2")):
                preview = render_chamber_preview(read_profile_option(profile, chamber_idx))
                click.echo(
                    f"  {session.chamber_labels[chamber_idx]}: {preview['soil']} | "
                    f"{schedule.get(light_key, preview['light'])} {preview['mode']} | {preview['automation']}"
                )

    _run_once(ctx.obj["config_path"], _profiles)


@cli.command("apply-profile")
@click.argument("profile")
@click.option("--chamber", "chamber_id", type=click.IntRange(1, 2), default=None, help="chamber to apply to")
@click.option("--all", "apply_all", is_flag=True, help="apply to both chambers and environment")
@click.option("--yes", "assume_yes", is_flag=True, help="skip confirmation prompts")
@click.pass_context
def apply_profile_cmd(ctx, profile, chamber_id, apply_all, assume_yes):
    """Apply grow PROFILE (id or label) to one chamber or to all."""
    if (chamber_id is None) == (not apply_all):
        raise click.UsageError("Pass exactly one of --chamber ID or --all.")

    async def _apply(runtime):
        await runtime.refresh_status()
        grow_profiles = runtime.config["GROW_PROFILES"]
        if apply_all:
            result = await apply_profile_all(
                runtime.session,
                runtime.api,
                profile,
                profiles=grow_profiles,
                confirm=_confirm_fn(assume_yes),
                refresh=runtime.refresh_status,
            )
        else:
            result = await apply_profile(
                runtime.session,
                runtime.api,
                chamber_id,
                profile,
                profiles=grow_profiles,
                confirm=_confirm_fn(assume_yes),
                refresh=runtime.refresh_status,
            )
        if result is None or not result.ok:
            return 1

    _run_once(ctx.obj["config_path"], _apply)


@cli.command("reboot")
@click.option("--yes", "assume_yes", is_flag=True, help="skip confirmation prompt")
@click.pass_context
def reboot(ctx, assume_yes):
    """Reboot the greenhouse controller."""

    async def _reboot(runtime):
        message = await reboot_device(runtime.session, runtime.api, confirm=_confirm_fn(assume_yes))
        if message is None:
            return 1

    _run_once(ctx.obj["config_path"], _reboot)


def main(argv=None):
    if argv is None:
        cli()
    else:
        cli.main(args=argv)


if __name__ == "__main__":
    main()
