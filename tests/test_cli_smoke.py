"""Smoke tests for CLI commands.

Runs commands through Click's CliRunner against the in-memory module, so
no network is involved.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
import requests
from click.testing import CliRunner

from conftest import FakeTransport
from cuelight.cli.main import cli


@pytest.fixture
def runner():
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def module():
    transport = FakeTransport(on=True, brightness=80)
    with patch("cuelight.cli.common.create_transport", return_value=transport):
        yield transport


@pytest.fixture
def invoke(runner, temp_dir: Path):
    """Run the CLI with a throwaway config and log file."""
    config_path = temp_dir / "config.json"
    config_path.write_text(json.dumps({"request_timeout_ms": 500}))

    def run(*args):
        return runner.invoke(
            cli,
            ["--log-file", str(temp_dir / "test.log"), "-c", str(config_path), *args],
        )

    run.config_path = config_path
    return run


@pytest.mark.integration
class TestCLIHelp:
    """Test that all commands have working help text."""

    def test_main_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "billiard hall lighting module" in result.output

    def test_version_flag(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    @pytest.mark.parametrize(
        "command", ["lights", "set", "watch", "presets", "preset", "status", "config"]
    )
    def test_command_help(self, runner, command):
        result = runner.invoke(cli, [command, "--help"])
        assert result.exit_code == 0


@pytest.mark.integration
class TestConfigCommands:
    """Test config subcommands against a temp file."""

    def test_init_creates_file(self, runner, temp_dir: Path):
        config_path = temp_dir / "new" / "config.json"

        result = runner.invoke(
            cli,
            ["--log-file", str(temp_dir / "test.log"), "-c", str(config_path),
             "config", "init", "--host", "10.0.0.42"],
        )

        assert result.exit_code == 0
        assert "http://10.0.0.42:80" in result.output
        assert json.loads(config_path.read_text())["module_host"] == "10.0.0.42"

    def test_init_rejects_bad_timeout(self, invoke):
        result = invoke("config", "init", "--timeout-ms", "5")

        assert result.exit_code == 1
        assert "request_timeout_ms" in result.output

    def test_show(self, invoke):
        result = invoke("config", "show")

        assert result.exit_code == 0
        assert '"request_timeout_ms": 500' in result.output

    def test_path(self, invoke):
        result = invoke("config", "path")

        assert result.output.strip() == str(invoke.config_path)

    def test_validate(self, invoke):
        assert invoke("config", "validate").exit_code == 0

        invoke.config_path.write_text("{broken")
        result = invoke("config", "validate")

        assert result.exit_code == 1
        assert "[FAIL]" in result.output

    def test_invalid_config_reported(self, invoke):
        invoke.config_path.write_text('{"module_port": 0}')

        result = invoke("presets")

        assert result.exit_code == 1
        assert "module_port" in result.output


@pytest.mark.integration
class TestLightCommands:
    """Test commands that talk to the module."""

    def test_presets_listed(self, invoke):
        result = invoke("presets")

        assert result.exit_code == 0
        assert "tables_only" in result.output
        assert "Soft ambient lighting" in result.output

    def test_lights(self, invoke, module):
        result = invoke("lights")

        assert result.exit_code == 0
        assert "Table 1" in result.output
        assert "8/8 on, avg brightness 80%, ~96 W" in result.output

    def test_set_brightness(self, invoke, module):
        result = invoke("set", "3", "--brightness", "40")

        assert result.exit_code == 0
        assert "Light 3: on 40%" in result.output
        assert module.lights["3"]["brightness"] == 40

    def test_set_off_keeps_brightness(self, invoke, module):
        result = invoke("set", "2", "--off")

        assert result.exit_code == 0
        assert "Light 2: off 80%" in result.output

    def test_set_requires_a_change(self, invoke, module):
        result = invoke("set", "3")

        assert result.exit_code == 2

    def test_set_out_of_range(self, invoke, module):
        result = invoke("set", "3", "--brightness", "150")

        assert result.exit_code == 1
        assert "between 0 and 100" in result.output
        assert module.calls == []

    def test_set_unknown_light(self, invoke, module):
        result = invoke("set", "42", "--on")

        assert result.exit_code == 1
        assert "Unknown light '42'" in result.output

    def test_preset(self, invoke, module):
        result = invoke("preset", "all_off")

        assert result.exit_code == 0
        assert "Preset 'all_off' applied to 8 light(s)" in result.output
        assert all(not light["on"] for light in module.lights.values())

    def test_preset_partial_failure(self, invoke, module):
        module.fail_lights["5"] = requests.exceptions.ReadTimeout("slow")

        result = invoke("preset", "all_off")

        assert result.exit_code == 1
        assert "1 failed (5)" in result.output
        assert module.lights["5"]["on"]

    def test_unknown_preset(self, invoke, module):
        result = invoke("preset", "disco")

        assert result.exit_code == 1
        assert "Unknown preset 'disco'" in result.output

    def test_status(self, invoke, module):
        result = invoke("status")

        assert result.exit_code == 0
        assert "ESP32-BILLIARD-001" in result.output
        assert "-45 dBm" in result.output

    def test_unreachable_module(self, invoke, module):
        module.reachable = False

        result = invoke("lights")

        assert result.exit_code == 1
        assert "Lighting module is unreachable." in result.output


@pytest.mark.unit
class TestWatchScreen:
    """Test that one bad screen does not end the watch loop."""

    def test_render_error_is_reported_not_raised(self, capsys):
        from unittest.mock import Mock

        from cuelight.cli.commands.lights import _print_screen
        from cuelight.exceptions import DeviceProtocolError

        controller = Mock()
        controller.status.side_effect = DeviceProtocolError("status reply is not JSON")

        assert _print_screen(controller) is None
        assert "unexpected reply" in capsys.readouterr().err
        controller.lights.assert_not_called()

    def test_screen_printed(self, capsys):
        from unittest.mock import Mock

        from cuelight.cli.commands.lights import _print_screen
        from cuelight.models import LinkState, Snapshot

        controller = Mock()
        controller.status.return_value.link_state = LinkState.CONNECTED
        controller.status.return_value.successful_commands = 3
        controller.status.return_value.total_commands = 4
        controller.lights.return_value = Snapshot(lights=(), stale=False, taken_at=0.0)

        _print_screen(controller)

        assert "link=connected commands=3/4 ok" in capsys.readouterr().out
