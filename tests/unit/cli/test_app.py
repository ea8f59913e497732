"""Tests for the CLI app entry point and dispatcher.

Help and version go through ``CleanCliRunner``; everything that depends on
error rendering and exit codes goes through ``run`` via the ``cli`` fixture.
"""

import json

import click
import pytest
import typer

from agentlab.cli.app import app
from agentlab.cli.main import split_json_flag
from agentlab.version import get_version


class TestHelp:
    def test_root_help_lists_commands(self, runner) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for name in ("status", "job", "sandbox", "workspace", "profile", "ssh", "logs"):
            assert name in result.output

    def test_short_help_option(self, runner) -> None:
        result = runner.invoke(app, ["sandbox", "-h"])
        assert result.exit_code == 0
        assert "lease" in result.output

    def test_version(self, runner) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.stdout.strip() == f"agentlab {get_version()}"

    def test_bare_invocation_prints_help(self, cli) -> None:
        result = cli()
        assert result.exit_code == 0
        assert "sandbox" in result.stdout
        assert result.stderr == ""

    def test_bare_group_prints_help(self, cli) -> None:
        result = cli("workspace")
        assert result.exit_code == 0
        assert "rebind" in result.stdout

    def test_help_token(self, cli, daemon) -> None:
        result = cli("sandbox", "help")
        assert result.exit_code == 0
        assert "destroy" in result.stdout
        assert daemon.requests == []

    def test_help_flag_exits_zero(self, cli) -> None:
        result = cli("job", "run", "--help")
        assert result.exit_code == 0
        assert "--workspace-size" in result.stdout


class TestUnknownCommands:
    def test_root_suggestion(self, cli) -> None:
        result = cli("sandbx")
        assert result.exit_code == 2
        assert 'error: unknown command "sandbx"' in result.stderr
        assert "next: agentlab --help" in result.stderr
        assert 'hint: did you mean "sandbox"?' in result.stderr

    def test_nested_suggestion(self, cli) -> None:
        result = cli("sandbox", "lst")
        assert result.exit_code == 2
        assert 'unknown sandbox command "lst"' in result.stderr
        assert "next: agentlab sandbox --help" in result.stderr
        assert 'did you mean "list"?' in result.stderr

    def test_unknown_flag_is_usage_error(self, cli) -> None:
        result = cli("status", "--bogus")
        assert result.exit_code == 2
        assert "--bogus" in result.stderr
        assert "next: agentlab status --help" in result.stderr

    def test_missing_argument(self, cli) -> None:
        result = cli("sandbox", "show")
        assert result.exit_code == 2
        assert "Usage:" in result.stderr

    def test_typer_raises_click_exceptions(self) -> None:
        assert issubclass(typer.BadParameter, click.UsageError)
        assert typer.Abort is click.Abort

    def test_unknown_nested_flag(self, cli, daemon) -> None:
        result = cli("sandbox", "list", "--bogus")
        assert result.exit_code == 2
        assert "--bogus" in result.stderr
        assert daemon.requests == []

    def test_missing_option_value(self, cli) -> None:
        result = cli("job", "run", "--profile")
        assert result.exit_code == 2
        assert "Usage:" in result.stderr

    def test_missing_argument_in_json_mode(self, cli) -> None:
        result = cli("--json", "sandbox", "show")
        assert result.exit_code == 2
        assert result.stderr == ""
        assert "error" in result.json()


class TestJsonMode:
    def test_json_errors_never_touch_stderr(self, cli) -> None:
        result = cli("--json", "sandbx")
        assert result.exit_code == 2
        assert result.stderr == ""
        assert json.loads(result.stdout) == {"error": 'unknown command "sandbx"'}

    def test_json_flag_after_subcommand(self, cli, daemon) -> None:
        daemon.route("GET", "/v1/status", {"sandboxes": {"RUNNING": 2}, "jobs": {}})
        result = cli("status", "--json")
        assert result.exit_code == 0
        assert result.stderr == ""
        assert result.json() == {"sandboxes": {"RUNNING": 2}, "jobs": {}}

    def test_transport_error_in_json_mode(self, cli, daemon) -> None:
        daemon.error("GET", "/v1/status", "daemon exploded", status=500)
        result = cli("--json", "status")
        assert result.exit_code == 1
        assert result.stderr == ""
        assert result.json() == {"error": "daemon exploded"}

    def test_split_json_flag_stops_at_separator(self) -> None:
        args, json_mode = split_json_flag(["ssh", "--json", "1", "--", "cmd", "--json"])
        assert json_mode is True
        assert args == ["ssh", "1", "--", "cmd", "--json"]


class TestGlobalFlags:
    def test_invalid_timeout(self, cli) -> None:
        result = cli("--timeout", "soon", "status")
        assert result.exit_code == 2
        assert 'invalid timeout "soon"' in result.stderr

    def test_non_positive_timeout(self, cli) -> None:
        result = cli("--timeout", "0s", "status")
        assert result.exit_code == 2

    @pytest.mark.parametrize("value", ["nan", "inf", "1e3"])
    def test_non_numeric_timeout_forms(self, cli, daemon, value) -> None:
        result = cli("--timeout", value, "status")
        assert result.exit_code == 2
        assert daemon.requests == []

    def test_endpoint_flag_routes_to_remote(self, cli, daemon) -> None:
        daemon.route("GET", "/v1/status", {})
        result = cli("--endpoint", "https://srv:8845", "--token", "tok", "status")
        assert result.exit_code == 0
        assert daemon.requests[0].headers["authorization"] == "Bearer tok"

    def test_bad_endpoint_flag_is_validation_error(self, cli, daemon) -> None:
        result = cli("--endpoint", "http://srv/api", "--token", "secret-token", "status")
        assert result.exit_code == 1
        assert "endpoint must not include a path" in result.stderr
        assert "secret-token" not in result.stderr
        assert daemon.requests == []

    @pytest.mark.parametrize("flag", ["-v", "--verbose"])
    def test_verbose_logs_to_stderr(self, cli, daemon, flag) -> None:
        daemon.route("GET", "/v1/status", {})
        result = cli(flag, "status")
        assert result.exit_code == 0
        assert "GET /v1/status" in result.stderr


class TestUnreachableDaemon:
    def test_missing_socket(self, cli, tmp_path) -> None:
        result = cli("--socket", str(tmp_path / "missing.sock"), "status", transport=None)
        assert result.exit_code == 1
        assert "error: failed to connect to agentlabd socket" in result.stderr
        assert "hint: is agentlabd running? check: systemctl status agentlabd" in result.stderr
