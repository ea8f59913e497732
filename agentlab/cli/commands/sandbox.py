"""Sandbox commands.

Implements ``agentlab sandbox new|list|show|start|stop|revert|destroy|prune``
and ``agentlab sandbox lease renew``. Every command maps onto one daemon
call except ``new`` with ``+modifier`` arguments, which first resolves the
composite profile against ``/v1/profiles``.
"""

from typing import Any, Optional

import typer

from agentlab.cli.client import AgentlabClient, APIError
from agentlab.cli.commands._base import (
    api_path,
    client_from_state,
    emit,
    fetch_profiles,
    get_state,
    wrap_sandbox_not_found,
    wrap_unknown_profile,
)
from agentlab.cli.core import AgentlabCommand, AgentlabGroup, usage_error
from agentlab.cli.modifiers import parse_modifiers, resolve_profile
from agentlab.cli.output import display, print_fields, print_line, print_table
from agentlab.cli.parsing import parse_ttl_minutes, parse_vmid

sandbox_app = typer.Typer(
    name="sandbox",
    help="Create, inspect and manage sandboxes",
    cls=AgentlabGroup,
    no_args_is_help=True,
)
lease_app = typer.Typer(
    name="lease",
    help="Manage sandbox leases",
    cls=AgentlabGroup,
    no_args_is_help=True,
)
sandbox_app.add_typer(lease_app)

TTL_HELP = "lease TTL in minutes or as a duration (e.g. 120, 2h)"


def sandbox_fields(sandbox: dict[str, Any]) -> list[tuple[str, Any]]:
    return [
        ("VMID", sandbox.get("vmid")),
        ("Name", sandbox.get("name")),
        ("Profile", sandbox.get("profile")),
        ("State", sandbox.get("state")),
        ("IP", sandbox.get("ip")),
        ("Workspace", sandbox.get("workspace_id")),
        ("Keepalive", bool(sandbox.get("keepalive"))),
        ("Lease Expires", sandbox.get("lease_expires_at")),
        ("Created At", sandbox.get("created_at")),
        ("Updated At", sandbox.get("updated_at")),
    ]


def _render_sandbox(data: Any) -> None:
    print_fields(sandbox_fields(data if isinstance(data, dict) else {}))


def _sandbox_request(
    client: AgentlabClient,
    method: str,
    vmid: int,
    action: Optional[str] = None,
    body: Any = None,
) -> bytes:
    segments: list[Any] = [vmid]
    if action:
        segments.extend(action.split("/"))
    try:
        return client.do_json(method, api_path("/v1/sandboxes", *segments), body)
    except APIError as e:
        raise wrap_sandbox_not_found(client, vmid, e)


def _confirm_state(verb: str):
    def render(data: Any) -> None:
        data = data if isinstance(data, dict) else {}
        print_line(f"sandbox {display(data.get('vmid'))} {verb} (state={display(data.get('state'))})")

    return render


@sandbox_app.command("new", cls=AgentlabCommand)
def new_sandbox(
    ctx: typer.Context,
    modifiers: Optional[list[str]] = typer.Argument(
        None, metavar="[+MODIFIER]...", help="profile modifiers such as +gpu"
    ),
    name: Optional[str] = typer.Option(None, "--name", help="sandbox name"),
    profile: Optional[str] = typer.Option(None, "--profile", help="profile name"),
    ttl: Optional[str] = typer.Option(None, "--ttl", help=TTL_HELP),
    keepalive: Optional[bool] = typer.Option(
        None, "--keepalive/--no-keepalive", help="keep a lease on the sandbox"
    ),
    workspace: Optional[str] = typer.Option(None, "--workspace", help="workspace id or name"),
    vmid: Optional[int] = typer.Option(None, "--vmid", help="VMID override"),
    job: Optional[str] = typer.Option(None, "--job", help="attach to an existing job id"),
) -> None:
    """Create a sandbox from a profile.

    Modifiers combine with --profile into a composite profile name: the
    tokens are lowercased, deduplicated, sorted and joined with "-".

    Examples:
        agentlab sandbox new --profile ubuntu-24-04

        agentlab sandbox new --profile ubuntu +gpu +large
    """
    state = get_state(ctx)
    mods = parse_modifiers(modifiers or [])
    base_profile = (profile or "").strip()
    if not base_profile and not mods:
        raise usage_error("profile is required", show_usage=True)
    ttl_minutes = parse_ttl_minutes(ttl)
    if vmid is not None and vmid <= 0:
        raise usage_error(f'invalid vmid "{vmid}"')

    with client_from_state(state) as client:
        resolved = base_profile
        if mods:
            resolved = resolve_profile(base_profile, mods, fetch_profiles(client))

        body: dict[str, Any] = {"profile": resolved}
        if name and name.strip():
            body["name"] = name.strip()
        if keepalive is not None:
            body["keepalive"] = keepalive
        if ttl_minutes is not None:
            body["ttl_minutes"] = ttl_minutes
        if workspace and workspace.strip():
            body["workspace_id"] = workspace.strip()
        if vmid is not None:
            body["vmid"] = vmid
        if job and job.strip():
            body["job_id"] = job.strip()

        try:
            payload = client.do_json("POST", "/v1/sandboxes", body)
        except APIError as e:
            raise wrap_unknown_profile(client, resolved, e)
    emit(state, payload, _render_sandbox)


@sandbox_app.command("list", cls=AgentlabCommand)
def list_sandboxes(ctx: typer.Context) -> None:
    """List sandboxes.

    Examples:
        agentlab sandbox list
    """
    state = get_state(ctx)
    with client_from_state(state) as client:
        payload = client.do_json("GET", "/v1/sandboxes")

    def render(data: Any) -> None:
        sandboxes = data.get("sandboxes") if isinstance(data, dict) else None
        if not sandboxes:
            print_line("No sandboxes found")
            return
        print_table(
            ["VMID", "NAME", "PROFILE", "STATE", "IP", "LEASE"],
            [
                (
                    sb.get("vmid"),
                    sb.get("name"),
                    sb.get("profile"),
                    sb.get("state"),
                    sb.get("ip"),
                    sb.get("lease_expires_at"),
                )
                for sb in sandboxes
            ],
        )

    emit(state, payload, render)


@sandbox_app.command("show", cls=AgentlabCommand)
def show_sandbox(
    ctx: typer.Context,
    vmid: str = typer.Argument(..., metavar="VMID"),
) -> None:
    """Show one sandbox."""
    state = get_state(ctx)
    target = parse_vmid(vmid)
    with client_from_state(state) as client:
        payload = _sandbox_request(client, "GET", target)
    emit(state, payload, _render_sandbox)


@sandbox_app.command("start", cls=AgentlabCommand)
def start_sandbox(
    ctx: typer.Context,
    vmid: str = typer.Argument(..., metavar="VMID"),
) -> None:
    """Start a stopped sandbox."""
    state = get_state(ctx)
    target = parse_vmid(vmid)
    with client_from_state(state) as client:
        payload = _sandbox_request(client, "POST", target, "start")
    emit(state, payload, _confirm_state("started"))


@sandbox_app.command("stop", cls=AgentlabCommand)
def stop_sandbox(
    ctx: typer.Context,
    vmid: str = typer.Argument(..., metavar="VMID"),
) -> None:
    """Stop a running sandbox."""
    state = get_state(ctx)
    target = parse_vmid(vmid)
    with client_from_state(state) as client:
        payload = _sandbox_request(client, "POST", target, "stop")
    emit(state, payload, _confirm_state("stopped"))


@sandbox_app.command("revert", cls=AgentlabCommand)
def revert_sandbox(
    ctx: typer.Context,
    vmid: str = typer.Argument(..., metavar="VMID"),
    force: bool = typer.Option(False, "--force", help="revert even if a job is running"),
    restart: bool = typer.Option(False, "--restart", help="restart the sandbox after revert"),
    no_restart: bool = typer.Option(
        False, "--no-restart", help="leave the sandbox stopped after revert"
    ),
) -> None:
    """Revert a sandbox to its clean snapshot.

    Examples:
        agentlab sandbox revert 1009

        agentlab sandbox revert --force --no-restart 1009
    """
    state = get_state(ctx)
    if restart and no_restart:
        raise usage_error("cannot use --restart and --no-restart together")
    target = parse_vmid(vmid)
    body: dict[str, Any] = {"force": force}
    if restart:
        body["restart"] = True
    elif no_restart:
        body["restart"] = False

    with client_from_state(state) as client:
        payload = _sandbox_request(client, "POST", target, "revert", body)

    def render(data: Any) -> None:
        data = data if isinstance(data, dict) else {}
        sandbox = data.get("sandbox") or {}
        snapshot = (data.get("snapshot") or "").strip() or "clean"
        suffix = ", restarted" if data.get("restarted") else ""
        print_line(
            f"sandbox {display(sandbox.get('vmid', target))} reverted to snapshot "
            f"{snapshot} (state={display(sandbox.get('state'))}{suffix})"
        )

    emit(state, payload, render)


@sandbox_app.command("destroy", cls=AgentlabCommand)
def destroy_sandbox(
    ctx: typer.Context,
    vmid: str = typer.Argument(..., metavar="VMID"),
    force: bool = typer.Option(False, "--force", help="destroy even from an invalid state"),
) -> None:
    """Destroy a sandbox."""
    state = get_state(ctx)
    target = parse_vmid(vmid)
    with client_from_state(state) as client:
        payload = _sandbox_request(client, "POST", target, "destroy", {"force": force})
    emit(state, payload, _confirm_state("destroyed"))


@sandbox_app.command("prune", cls=AgentlabCommand)
def prune_sandboxes(ctx: typer.Context) -> None:
    """Remove sandboxes the daemon considers orphaned or expired."""
    state = get_state(ctx)
    with client_from_state(state) as client:
        payload = client.do_json("POST", "/v1/sandboxes/prune")

    def render(data: Any) -> None:
        count = data.get("count", 0) if isinstance(data, dict) else 0
        print_line(f"pruned {count} sandbox(es)")

    emit(state, payload, render)


@lease_app.command(
    "renew",
    cls=AgentlabCommand,
    context_settings={"allow_interspersed_args": False},
)
def renew_lease(
    ctx: typer.Context,
    vmid: str = typer.Argument(..., metavar="VMID"),
    trailing: Optional[list[str]] = typer.Argument(None, hidden=True),
    ttl: Optional[str] = typer.Option(None, "--ttl", help=TTL_HELP),
) -> None:
    """Renew a sandbox lease. Flags must come before the VMID.

    Examples:
        agentlab sandbox lease renew --ttl 120 1009
    """
    state = get_state(ctx)
    if trailing or not (ttl or "").strip():
        raise usage_error(
            "ttl is required. Flags must come before vmid (e.g., --ttl 120 1009)",
            show_usage=True,
        )
    target = parse_vmid(vmid)
    minutes = parse_ttl_minutes(ttl)

    with client_from_state(state) as client:
        payload = _sandbox_request(
            client, "POST", target, "lease/renew", {"ttl_minutes": minutes}
        )

    def render(data: Any) -> None:
        data = data if isinstance(data, dict) else {}
        print_line(
            f"sandbox {display(data.get('vmid', target))} lease renewed until "
            f"{display(data.get('lease_expires_at'))}"
        )

    emit(state, payload, render)