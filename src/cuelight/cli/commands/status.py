"""Module status command."""

import click

from cuelight.cli.common import connected_controller, load_config, report_errors
from cuelight.utils import format_signal


@click.command(name="status")
@click.pass_context
@report_errors
def status(ctx):
    """Show lighting module details and command counters."""
    config = load_config(ctx)
    controller = connected_controller(config)
    try:
        controller.refresh()
        module = controller.status()
    finally:
        controller.stop()

    click.echo("Lighting module:\n")
    click.echo(f"  Module ID:  {module.module_id or 'unknown'}")
    click.echo(f"  Firmware:   {module.firmware_version or 'unknown'}")
    click.echo(f"  Address:    {module.ip_address}")
    click.echo(f"  Signal:     {format_signal(module.signal_strength)}")
    click.echo(f"  Link:       {module.link_state.value}")
    click.echo(f"  Uptime:     {module.uptime}")
    click.echo(
        f"\n  Commands:   {module.total_commands} total, "
        f"{module.successful_commands} ok, {module.failed_commands} failed "
        f"({module.success_rate}% success)"
    )
