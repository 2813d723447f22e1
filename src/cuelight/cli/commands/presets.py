"""Preset commands."""

import click

from cuelight.cli.common import connected_controller, load_config, report_errors


@click.command(name="presets")
@click.pass_context
@report_errors
def list_presets(ctx):
    """List the preset catalog."""
    config = load_config(ctx)
    if not config.presets:
        click.echo("No presets configured.")
        return

    width = max(len(preset.name) for preset in config.presets)
    for preset in config.presets:
        click.echo(f"  {preset.name:<{width}}  {preset.description}")


@click.command(name="preset")
@click.argument("name")
@click.option(
    "--timeout", "-t", type=float, default=None, help="Seconds to wait for every light (default: no limit)"
)
@click.pass_context
@report_errors
def apply_preset(ctx, name: str, timeout: float | None):
    """
    Apply a named preset to every light.

    Lights that fail are listed; lights that succeeded keep their new state.
    Exits with status 1 when any light failed.
    """
    config = load_config(ctx)
    controller = connected_controller(config)
    try:
        controller.presets.get(name)
        controller.refresh()
        result = controller.apply_preset(name, timeout=timeout)
    finally:
        controller.stop()

    click.echo(result.summary())
    for light_id, error in result.failed.items():
        click.echo(f"  [{light_id}] {error}", err=True)
    for light_id in result.unresolved:
        click.echo(f"  [{light_id}] no confirmation yet", err=True)

    if not result.fully_succeeded:
        raise SystemExit(1)
