"""Light state commands."""

import logging
import time
from typing import Optional

import click

from cuelight.cli.common import (
    connected_controller,
    create_transport,
    echo_snapshot,
    load_config,
    report_errors,
)
from cuelight.core import LightingController
from cuelight.exceptions import handle_errors
from cuelight.models import CommandOutcome, validate_brightness

logger = logging.getLogger(__name__)


@click.command(name="lights")
@click.pass_context
@report_errors
def lights(ctx):
    """Show every light the module reports."""
    config = load_config(ctx)
    controller = connected_controller(config)
    try:
        echo_snapshot(controller.refresh())
    finally:
        controller.stop()


@click.command(name="set")
@click.argument("light_id")
@click.option("--on/--off", "power", default=None, help="Switch the light on or off")
@click.option(
    "--brightness", "-b", type=int, default=None, help="Brightness percent (0-100)"
)
@click.pass_context
@report_errors
def set_light(ctx, light_id: str, power: Optional[bool], brightness: Optional[int]):
    """
    Change one light.

    \b
    Examples:
      cuelight set 3 --on
      cuelight set 3 --brightness 40
      cuelight set table-2 --off
    """
    if power is None and brightness is None:
        raise click.UsageError("Give --on, --off or --brightness")
    if brightness is not None:
        validate_brightness(brightness)

    config = load_config(ctx)
    controller = connected_controller(config)
    try:
        controller.refresh()
        command = controller.coalescer.submit_change(light_id, on=power, brightness=brightness)
        outcome = command.wait(config.request_timeout + 1)

        if outcome is CommandOutcome.ACKED:
            light = controller.lights().get(light_id)
            click.echo(f"Light {light_id}: {light.status} {light.brightness}%")
        else:
            command.raise_for_outcome()
            # Still pending after the timeout
            click.echo(f"Light {light_id}: no confirmation yet", err=True)
            raise SystemExit(1)
    finally:
        controller.stop()


@click.command(name="watch")
@click.option(
    "--interval", "-i", type=float, default=None, help="Seconds between screens (default: poll interval)"
)
@click.pass_context
@report_errors
def watch(ctx, interval: Optional[float]):
    """
    Keep the link up and print light state until Ctrl+C.

    Reconnects automatically when the module drops off the network.
    """
    config = load_config(ctx)
    interval = interval or config.poll_interval
    controller = LightingController(config, transport=create_transport(config))

    click.echo(f"Watching lighting module at {controller.link.address} (Ctrl+C to stop)\n")
    try:
        controller.start()
        while True:
            _print_screen(controller)
            time.sleep(interval)
    except KeyboardInterrupt:
        click.echo("\nStopping...")
    finally:
        controller.stop()


@handle_errors(
    operation_name="render light state",
    user_notification=lambda message: click.echo(message, err=True),
    re_raise=False,
)
def _print_screen(controller: LightingController) -> None:
    """Print one screen of the watch loop; a failed screen does not end the watch."""
    status = controller.status()
    click.echo(
        f"--- {time.strftime('%H:%M:%S')} link={status.link_state.value} "
        f"commands={status.successful_commands}/{status.total_commands} ok"
    )
    echo_snapshot(controller.lights())
