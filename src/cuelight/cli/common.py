"""Shared plumbing for CLI commands."""

import logging
import sys
from functools import wraps
from pathlib import Path
from typing import Callable, Optional

import click

from cuelight.core import LightingController
from cuelight.exceptions import CuelightError, DeviceUnreachableError, format_error_for_display
from cuelight.link import HttpTransport, Transport
from cuelight.models import AppConfig, Snapshot

logger = logging.getLogger(__name__)


def create_transport(config: AppConfig) -> Transport:
    return HttpTransport(config.module_host, config.module_port)


def load_config(ctx: click.Context) -> AppConfig:
    """Load the configuration selected with --config (or the default one)."""
    path: Optional[Path] = (ctx.obj or {}).get("config_path")
    return AppConfig.load_or_default(path)


def connected_controller(config: AppConfig) -> LightingController:
    """
    Build a controller and connect once, without background threads.

    Raises:
        DeviceUnreachableError: If the module does not answer
    """
    controller = LightingController(config, transport=create_transport(config))
    if not controller.connect():
        controller.stop()
        raise DeviceUnreachableError(controller.link.address, original_error="connect failed")
    return controller


def report_errors(func: Callable) -> Callable:
    """Show CuelightErrors as a message plus hint on stderr and exit 1."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except CuelightError as e:
            logger.error(f"{func.__name__} failed: {e.technical_message}")
            user_message, recovery_hint = format_error_for_display(e)
            click.echo(f"Error: {user_message}", err=True)
            if recovery_hint:
                click.echo(f"\n{recovery_hint}", err=True)
            sys.exit(1)
    return wrapper


def echo_snapshot(snapshot: Snapshot) -> None:
    """Print one line per light, then the dashboard summary."""
    if snapshot.stale:
        click.echo("(module unreachable - showing last known state)")

    if not snapshot.lights:
        click.echo("No lights reported by the module.")
        return

    for light in snapshot.lights:
        marker = " *" if light.pending else ""
        click.echo(
            f"  [{light.id:>3}] {light.name:<20} {light.status:<3} {light.brightness:>3}%{marker}"
        )

    click.echo(
        f"\n{snapshot.active_count}/{len(snapshot.lights)} on, "
        f"avg brightness {snapshot.average_brightness}%, "
        f"~{snapshot.estimated_power_watts} W"
    )
