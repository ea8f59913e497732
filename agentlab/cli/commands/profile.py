"""Profile commands: ``agentlab profile list``."""

from typing import Any

import typer

from agentlab.cli.commands._base import client_from_state, emit, get_state
from agentlab.cli.core import AgentlabCommand, AgentlabGroup
from agentlab.cli.output import print_line, print_table

profile_app = typer.Typer(
    name="profile",
    help="Inspect sandbox profiles",
    cls=AgentlabGroup,
    no_args_is_help=True,
)


def _render_profiles(data: Any) -> None:
    profiles = data.get("profiles") if isinstance(data, dict) else None
    if not profiles:
        print_line("No profiles found")
        return
    print_table(
        ["NAME", "TEMPLATE", "UPDATED"],
        [
            (p.get("name"), p.get("template_vmid"), p.get("updated_at"))
            for p in profiles
        ],
    )


@profile_app.command("list", cls=AgentlabCommand)
def list_profiles(ctx: typer.Context) -> None:
    """List profiles known to the daemon.

    Examples:
        agentlab profile list
    """
    state = get_state(ctx)
    with client_from_state(state) as client:
        payload = client.do_json("GET", "/v1/profiles")
    emit(state, payload, _render_profiles)
