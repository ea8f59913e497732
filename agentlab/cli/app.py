"""CLI app entry point.

Provides the root Typer app with the global flags (socket, endpoint,
token, JSON output, timeout, verbosity). The callback turns them into an
immutable ``CLIState`` stored in the Typer context for commands to access.
"""

from typing import Optional

import typer

from agentlab.cli.commands.connect import connect, disconnect
from agentlab.cli.commands.job import job_app
from agentlab.cli.commands.logs import logs
from agentlab.cli.commands.profile import profile_app
from agentlab.cli.commands.sandbox import sandbox_app
from agentlab.cli.commands.ssh import ssh
from agentlab.cli.commands.status import status
from agentlab.cli.commands.workspace import workspace_app
from agentlab.cli.core import AgentlabCommand, AgentlabGroup, usage_error
from agentlab.cli.parsing import parse_duration
from agentlab.cli.state import CLIState, Invocation
from agentlab.logging import configure_logging, get_logger
from agentlab.version import get_version

logger = get_logger(__name__)

app = typer.Typer(
    name="agentlab",
    help="agentlab - control sandboxes and jobs on an agentlabd host.",
    cls=AgentlabGroup,
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"agentlab {get_version()}")
        raise typer.Exit()


def _parse_timeout(value: str) -> float:
    try:
        seconds = parse_duration(value)
    except ValueError:
        raise usage_error(f'invalid timeout "{value}"') from None
    if seconds <= 0:
        raise usage_error(f'invalid timeout "{value}"', hints=["timeout must be positive"])
    return seconds


@app.callback()
def main(
    ctx: typer.Context,
    socket_path: Optional[str] = typer.Option(
        None, "--socket", help="path to the agentlabd unix socket"
    ),
    endpoint: Optional[str] = typer.Option(
        None, "--endpoint", help="remote daemon URL (overrides the client profile)"
    ),
    token: Optional[str] = typer.Option(None, "--token", help="bearer token for --endpoint"),
    json_output: bool = typer.Option(False, "--json", help="output JSON"),
    timeout: str = typer.Option("30s", "--timeout", help="request timeout (e.g. 30s, 2m)"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="show debug output on stderr"
    ),
    version: bool = typer.Option(
        False,
        "--version",
        help="print the version and exit",
        is_eager=True,
        callback=_version_callback,
    ),
) -> None:
    """agentlab - control sandboxes and jobs on an agentlabd host."""
    invocation = ctx.obj if isinstance(ctx.obj, Invocation) else Invocation()
    if verbose:
        configure_logging(verbose=True)

    state = CLIState(
        json_mode=json_output or invocation.json_mode,
        verbose=verbose,
        socket_path=socket_path,
        endpoint=endpoint,
        token=token,
        timeout=_parse_timeout(timeout),
        run_context=invocation.run_context,
        deps=invocation.deps,
    )
    logger.debug("agentlab %s (json=%s, timeout=%ss)", get_version(), state.json_mode, state.timeout)
    ctx.obj = state


app.command("status", cls=AgentlabCommand)(status)
app.add_typer(job_app)
app.add_typer(sandbox_app)
app.add_typer(workspace_app)
app.add_typer(profile_app)
app.command("logs", cls=AgentlabCommand)(logs)
app.command(
    "ssh",
    cls=AgentlabCommand,
    context_settings={"allow_interspersed_args": False},
)(ssh)
app.command("connect", cls=AgentlabCommand)(connect)
app.command("disconnect", cls=AgentlabCommand)(disconnect)
