"""Job commands: ``agentlab job run|show`` plus the artifacts group.

``job run`` validates the workspace flag combinations locally, before any
request is made:

- ``--workspace <id>`` attaches an existing workspace
- ``--workspace new:<name>`` or ``--workspace-create <name>`` creates one
  (``--workspace-size`` / ``--workspace-storage`` only apply to a create)
- ``--workspace-wait`` needs some workspace selector
- ``--stateful`` creates ``stateful-<repo slug>`` with fixed defaults and
  cannot be combined with an existing workspace
"""

from dataclasses import dataclass
from typing import Any, Optional

import typer

from agentlab.cli.client import APIError
from agentlab.cli.commands._base import (
    api_path,
    client_from_state,
    emit,
    get_state,
    wrap_job_not_found,
    wrap_unknown_profile,
)
from agentlab.cli.commands.artifacts import artifacts_app
from agentlab.cli.core import AgentlabCommand, AgentlabGroup, usage_error
from agentlab.cli.output import display, print_fields, print_line
from agentlab.cli.parsing import (
    parse_size_gb,
    parse_ttl_minutes,
    parse_wait_seconds,
    repo_slug,
)

STATEFUL_WORKSPACE_SIZE_GB = 80
STATEFUL_WORKSPACE_STORAGE = "local-zfs"
STATEFUL_WORKSPACE_PREFIX = "stateful-"
NEW_WORKSPACE_PREFIX = "new:"

job_app = typer.Typer(
    name="job",
    help="Run jobs and inspect their results",
    cls=AgentlabGroup,
    no_args_is_help=True,
)
job_app.add_typer(artifacts_app)


@dataclass
class WorkspaceSelection:
    """Resolved workspace flags for a job request."""

    workspace_id: Optional[str] = None
    create: Optional[dict[str, Any]] = None
    wait_seconds: Optional[int] = None

    def apply(self, body: dict[str, Any]) -> None:
        if self.workspace_id:
            body["workspace_id"] = self.workspace_id
        if self.create is not None:
            body["workspace_create"] = self.create
        if self.wait_seconds is not None:
            body["workspace_wait_seconds"] = self.wait_seconds


def stateful_workspace_name(repo_url: str) -> str:
    slug = repo_slug(repo_url)
    if not slug:
        raise usage_error(
            "cannot derive a stateful workspace name from --repo",
            hints=['pass a name explicitly with --workspace "new:<name>"'],
        )
    return f"{STATEFUL_WORKSPACE_PREFIX}{slug}"


def resolve_workspace_flags(
    repo_url: str,
    workspace: Optional[str],
    workspace_create: Optional[str],
    workspace_size: Optional[str],
    workspace_storage: Optional[str],
    workspace_wait: Optional[str],
    stateful: bool,
) -> WorkspaceSelection:
    """Validate the workspace flag combination and build the request parts."""
    workspace = (workspace or "").strip()
    create_name = (workspace_create or "").strip()
    size = (workspace_size or "").strip()
    storage = (workspace_storage or "").strip()
    wait = (workspace_wait or "").strip()

    if workspace and create_name:
        raise usage_error("use either --workspace or --workspace-create, not both")

    existing_id = ""
    if workspace.lower().startswith(NEW_WORKSPACE_PREFIX):
        create_name = workspace[len(NEW_WORKSPACE_PREFIX):].strip()
        if not create_name:
            raise usage_error('workspace name is required after "new:"')
    elif workspace:
        existing_id = workspace

    if stateful and existing_id:
        raise usage_error(
            "--stateful cannot be combined with an existing --workspace",
            hints=['use --workspace "new:<name>" to name the stateful workspace'],
        )

    creating = bool(create_name) or stateful
    if (size or storage) and not creating:
        flag = "--workspace-size" if size else "--workspace-storage"
        raise usage_error(
            f"{flag} requires --workspace new:<name> or --workspace-create",
        )
    if wait and not (existing_id or creating):
        raise usage_error(
            "--workspace-wait requires --workspace, --workspace-create or --stateful"
        )

    selection = WorkspaceSelection(wait_seconds=parse_wait_seconds(wait))
    if existing_id:
        selection.workspace_id = existing_id
        return selection
    if not creating:
        return selection

    if stateful:
        name = create_name or stateful_workspace_name(repo_url)
        size_gb = parse_size_gb(size) if size else STATEFUL_WORKSPACE_SIZE_GB
        storage = storage or STATEFUL_WORKSPACE_STORAGE
    else:
        name = create_name
        if not size:
            raise usage_error(
                "--workspace-size is required when creating a workspace (e.g. 80G)"
            )
        size_gb = parse_size_gb(size)

    create: dict[str, Any] = {"name": name, "size_gb": size_gb}
    if storage:
        create["storage"] = storage
    selection.create = create
    return selection


def job_fields(job: dict[str, Any]) -> list[tuple[str, Any]]:
    return [
        ("Job ID", job.get("id")),
        ("Repo", job.get("repo_url")),
        ("Ref", job.get("ref")),
        ("Profile", job.get("profile")),
        ("Task", job.get("task")),
        ("Mode", job.get("mode")),
        ("Status", job.get("status")),
        ("Keepalive", bool(job.get("keepalive"))),
        ("TTL Minutes", job.get("ttl_minutes")),
        ("Sandbox VMID", job.get("sandbox_vmid")),
        ("Created At", job.get("created_at")),
        ("Updated At", job.get("updated_at")),
    ]


def format_event(event: dict[str, Any]) -> str:
    """One event as ``ts kind [job] msg``."""
    parts = [display(event.get("ts")), display(event.get("kind"))]
    job_id = str(event.get("job_id") or "").strip()
    if job_id:
        parts.append(f"[{job_id}]")
    parts.append(display(event.get("msg")))
    return " ".join(parts)


def _render_job(data: Any) -> None:
    job = data if isinstance(data, dict) else {}
    print_fields(job_fields(job))
    events = job.get("events") or []
    if events:
        print_line("Events:")
        for event in events:
            print_line(f"  {format_event(event)}")


@job_app.command("run", cls=AgentlabCommand)
def run_job(
    ctx: typer.Context,
    repo: Optional[str] = typer.Option(None, "--repo", help="git repository URL"),
    ref: Optional[str] = typer.Option(None, "--ref", help="git ref (daemon default: main)"),
    profile: Optional[str] = typer.Option(None, "--profile", help="profile name"),
    task: Optional[str] = typer.Option(None, "--task", help="task description"),
    mode: Optional[str] = typer.Option(None, "--mode", help="run mode (daemon default)"),
    ttl: Optional[str] = typer.Option(None, "--ttl", help="lease TTL in minutes or as a duration"),
    keepalive: Optional[bool] = typer.Option(
        None, "--keepalive/--no-keepalive", help="keep the sandbox after the job completes"
    ),
    workspace: Optional[str] = typer.Option(
        None, "--workspace", help='existing workspace id, or "new:<name>" to create one'
    ),
    workspace_create: Optional[str] = typer.Option(
        None, "--workspace-create", help="create a workspace with this name"
    ),
    workspace_size: Optional[str] = typer.Option(
        None, "--workspace-size", help="size of a created workspace (e.g. 80G)"
    ),
    workspace_storage: Optional[str] = typer.Option(
        None, "--workspace-storage", help="storage pool of a created workspace"
    ),
    workspace_wait: Optional[str] = typer.Option(
        None, "--workspace-wait", help="how long to wait for a busy workspace (e.g. 2m)"
    ),
    stateful: bool = typer.Option(
        False, "--stateful", help="create a per-repo workspace with default size and storage"
    ),
) -> None:
    """Start a job in a fresh sandbox.

    Examples:
        agentlab job run --repo https://github.com/org/repo --profile yolo --task "fix tests"

        agentlab job run --repo https://github.com/org/repo --profile yolo --task run --stateful
    """
    state = get_state(ctx)
    repo_url = (repo or "").strip()
    if not repo_url:
        raise usage_error("repo is required", show_usage=True)
    selection = resolve_workspace_flags(
        repo_url,
        workspace,
        workspace_create,
        workspace_size,
        workspace_storage,
        workspace_wait,
        stateful,
    )
    ttl_minutes = parse_ttl_minutes(ttl)

    profile_name = (profile or "").strip()
    body: dict[str, Any] = {
        "repo_url": repo_url,
        "profile": profile_name,
        "task": (task or "").strip(),
    }
    if ref and ref.strip():
        body["ref"] = ref.strip()
    if mode and mode.strip():
        body["mode"] = mode.strip()
    if ttl_minutes is not None:
        body["ttl_minutes"] = ttl_minutes
    if keepalive is not None:
        body["keepalive"] = keepalive
    selection.apply(body)
    if stateful:
        body["stateful"] = True

    with client_from_state(state) as client:
        try:
            payload = client.do_json("POST", "/v1/jobs", body)
        except APIError as e:
            raise wrap_unknown_profile(client, profile_name, e)
    emit(state, payload, _render_job)


@job_app.command("show", cls=AgentlabCommand)
def show_job(
    ctx: typer.Context,
    job_id: str = typer.Argument(..., metavar="JOB_ID"),
    events_tail: Optional[int] = typer.Option(
        None, "--events-tail", help="number of recent events to include (0 to omit)"
    ),
) -> None:
    """Show a job and its recent events.

    Examples:
        agentlab job show job-123 --events-tail 20
    """
    state = get_state(ctx)
    job_id = job_id.strip()
    if not job_id:
        raise usage_error("job_id is required", show_usage=True)
    if events_tail is not None and events_tail < 0:
        raise usage_error("--events-tail must be zero or positive")

    path = api_path("/v1/jobs", job_id)
    if events_tail is not None:
        path = f"{path}?events_tail={events_tail}"
    with client_from_state(state) as client:
        try:
            payload = client.do_json("GET", path)
        except APIError as e:
            raise wrap_job_not_found(job_id, e)
    emit(state, payload, _render_job)
