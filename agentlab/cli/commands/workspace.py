"""Workspace commands: persistent volumes that outlive sandboxes."""

from typing import Any, Optional

import typer

from agentlab.cli.client import AgentlabClient, APIError
from agentlab.cli.commands._base import (
    api_path,
    client_from_state,
    emit,
    get_state,
    wrap_sandbox_not_found,
    wrap_unknown_profile,
    wrap_workspace_not_found,
)
from agentlab.cli.core import AgentlabCommand, AgentlabGroup, usage_error
from agentlab.cli.output import display, print_fields, print_line, print_table
from agentlab.cli.parsing import parse_size_gb, parse_ttl_minutes, parse_vmid

workspace_app = typer.Typer(
    name="workspace",
    help="Create and attach persistent workspaces",
    cls=AgentlabGroup,
    no_args_is_help=True,
)


def workspace_fields(workspace: dict[str, Any]) -> list[tuple[str, Any]]:
    return [
        ("ID", workspace.get("id")),
        ("Name", workspace.get("name")),
        ("Storage", workspace.get("storage")),
        ("Volume ID", workspace.get("volid")),
        ("Size GB", workspace.get("size_gb")),
        ("Attached VMID", workspace.get("attached_vmid")),
        ("Created At", workspace.get("created_at")),
        ("Updated At", workspace.get("updated_at")),
    ]


def _render_workspace(data: Any) -> None:
    print_fields(workspace_fields(data if isinstance(data, dict) else {}))


def _require_workspace(value: str) -> str:
    workspace = (value or "").strip()
    if not workspace:
        raise usage_error("workspace is required", show_usage=True)
    return workspace


def _workspace_request(
    client: AgentlabClient, workspace: str, action: str, body: Any = None
) -> bytes:
    try:
        return client.do_json("POST", api_path("/v1/workspaces", workspace, action), body)
    except APIError as e:
        raise wrap_workspace_not_found(workspace, e)


@workspace_app.command("create", cls=AgentlabCommand)
def create_workspace(
    ctx: typer.Context,
    name: Optional[str] = typer.Option(None, "--name", help="workspace name"),
    size: Optional[str] = typer.Option(None, "--size", help="workspace size (e.g. 80G)"),
    storage: Optional[str] = typer.Option(
        None, "--storage", help="storage pool (daemon default when omitted)"
    ),
) -> None:
    """Create a workspace volume.

    Examples:
        agentlab workspace create --name data --size 80G
    """
    state = get_state(ctx)
    name = (name or "").strip()
    if not name or not (size or "").strip():
        raise usage_error("name and size are required", show_usage=True)
    body: dict[str, Any] = {"name": name, "size_gb": parse_size_gb(size)}
    if storage and storage.strip():
        body["storage"] = storage.strip()

    with client_from_state(state) as client:
        payload = client.do_json("POST", "/v1/workspaces", body)
    emit(state, payload, _render_workspace)


@workspace_app.command("list", cls=AgentlabCommand)
def list_workspaces(ctx: typer.Context) -> None:
    """List workspaces."""
    state = get_state(ctx)
    with client_from_state(state) as client:
        payload = client.do_json("GET", "/v1/workspaces")

    def render(data: Any) -> None:
        workspaces = data.get("workspaces") if isinstance(data, dict) else None
        if not workspaces:
            print_line("No workspaces found")
            return
        print_table(
            ["ID", "NAME", "SIZE(GB)", "STORAGE", "ATTACHED"],
            [
                (
                    ws.get("id"),
                    ws.get("name"),
                    ws.get("size_gb"),
                    ws.get("storage"),
                    ws.get("attached_vmid"),
                )
                for ws in workspaces
            ],
        )

    emit(state, payload, render)


@workspace_app.command("attach", cls=AgentlabCommand)
def attach_workspace(
    ctx: typer.Context,
    workspace: str = typer.Argument(..., metavar="WORKSPACE"),
    vmid: str = typer.Argument(..., metavar="VMID"),
) -> None:
    """Attach a workspace to a sandbox.

    Examples:
        agentlab workspace attach data 1009
    """
    state = get_state(ctx)
    workspace = _require_workspace(workspace)
    target = parse_vmid(vmid)
    with client_from_state(state) as client:
        try:
            payload = client.do_json(
                "POST", api_path("/v1/workspaces", workspace, "attach"), {"vmid": target}
            )
        except APIError as e:
            if e.is_not_found("sandbox"):
                raise wrap_sandbox_not_found(client, target, e)
            raise wrap_workspace_not_found(workspace, e)
    emit(state, payload, _render_workspace)


@workspace_app.command("detach", cls=AgentlabCommand)
def detach_workspace(
    ctx: typer.Context,
    workspace: str = typer.Argument(..., metavar="WORKSPACE"),
) -> None:
    """Detach a workspace from its sandbox."""
    state = get_state(ctx)
    workspace = _require_workspace(workspace)
    with client_from_state(state) as client:
        payload = _workspace_request(client, workspace, "detach")
    emit(state, payload, _render_workspace)


@workspace_app.command("rebind", cls=AgentlabCommand)
def rebind_workspace(
    ctx: typer.Context,
    workspace: str = typer.Argument(..., metavar="WORKSPACE"),
    profile: Optional[str] = typer.Option(None, "--profile", help="profile for the new sandbox"),
    ttl: Optional[str] = typer.Option(None, "--ttl", help="lease TTL in minutes or as a duration"),
    keep_old: bool = typer.Option(False, "--keep-old", help="keep the old sandbox running"),
) -> None:
    """Move a workspace onto a fresh sandbox.

    Examples:
        agentlab workspace rebind data --profile ubuntu-24-04

        agentlab workspace rebind data --profile ubuntu-24-04 --keep-old
    """
    state = get_state(ctx)
    workspace = _require_workspace(workspace)
    profile = (profile or "").strip()
    if not profile:
        raise usage_error("profile is required", show_usage=True)
    body: dict[str, Any] = {"profile": profile}
    ttl_minutes = parse_ttl_minutes(ttl)
    if ttl_minutes is not None:
        body["ttl_minutes"] = ttl_minutes
    if keep_old:
        body["keep_old"] = True

    with client_from_state(state) as client:
        try:
            payload = client.do_json(
                "POST", api_path("/v1/workspaces", workspace, "rebind"), body
            )
        except APIError as e:
            if e.is_unknown_profile():
                raise wrap_unknown_profile(client, profile, e)
            raise wrap_workspace_not_found(workspace, e)

    def render(data: Any) -> None:
        data = data if isinstance(data, dict) else {}
        ws = data.get("workspace") or {}
        sandbox = data.get("sandbox") or {}
        print_line(f"Workspace: {display(ws.get('name'))}")
        print_line(f"New VMID: {display(sandbox.get('vmid'))}")
        print_line(f"New IP: {display(sandbox.get('ip'))}")
        old_vmid = data.get("old_vmid")
        if old_vmid is not None:
            print_line(f"Old VMID: {old_vmid} ({'kept' if keep_old else 'destroyed'})")

    emit(state, payload, render)
