"""Configuration commands."""

import click
from pydantic import ValidationError

from cuelight.cli.common import report_errors
from cuelight.exceptions import wrap_pydantic_error
from cuelight.model_manager import PydanticPersistence
from cuelight.models import AppConfig
from cuelight.models.config import DEFAULT_CONFIG_PATH


def _config_path(ctx: click.Context):
    return (ctx.obj or {}).get("config_path") or DEFAULT_CONFIG_PATH


@click.group(name="config")
def config():
    """Show or create the cuelight configuration."""
    pass


@config.command(name="path")
@click.pass_context
def config_path(ctx):
    """Print the configuration file location."""
    click.echo(str(_config_path(ctx)))


@config.command(name="show")
@click.pass_context
@report_errors
def show_config(ctx):
    """Print the effective configuration as JSON."""
    path = _config_path(ctx)
    app_config = AppConfig.load_or_default(path)
    if not path.exists():
        click.echo(f"# {path} does not exist, showing defaults", err=True)
    click.echo(app_config.model_dump_json(indent=2))


@config.command(name="init")
@click.option("--host", type=str, default=None, help="Lighting module IP or hostname")
@click.option("--port", type=int, default=None, help="Lighting module HTTP port")
@click.option("--timeout-ms", type=int, default=None, help="Request timeout in milliseconds")
@click.pass_context
@report_errors
def init_config(ctx, host, port, timeout_ms):
    """Create the configuration file (or update the module address in it)."""
    path = _config_path(ctx)
    app_config = PydanticPersistence.ensure_valid_or_create(path, AppConfig)

    updates = {
        key: value
        for key, value in (
            ("module_host", host),
            ("module_port", port),
            ("request_timeout_ms", timeout_ms),
        )
        if value is not None
    }
    if updates:
        try:
            app_config = AppConfig.model_validate({**app_config.model_dump(), **updates})
        except ValidationError as e:
            raise wrap_pydantic_error(e, str(path)) from e
        app_config.save(path)

    click.echo(f"Configuration written to {path}")
    click.echo(f"  Module: {app_config.base_url} (timeout {app_config.request_timeout_ms} ms)")


@config.command(name="validate")
@click.pass_context
def validate_config(ctx):
    """Check the configuration file."""
    path = _config_path(ctx)
    is_valid, error = PydanticPersistence.validate_json(path, AppConfig)
    if is_valid:
        click.echo(f"[OK] {path}")
    else:
        click.echo(f"[FAIL] {error}", err=True)
        raise SystemExit(1)
