"""Shared plumbing for command handlers.

Handlers never read the environment or the profile directly: they go
through ``config_from_state`` / ``client_from_state``. The ``wrap_*``
helpers turn daemon not-found and unknown-profile errors into errors with
context (nearest VMIDs, profile suggestions, follow-up commands).
"""

from typing import Any, Callable, Optional

import typer

from agentlab.cli.client import (
    AgentlabClient,
    APIError,
    build_transport,
    decode_json,
    endpoint_path,
)
from agentlab.cli.core import usage_error
from agentlab.cli.errors import CLIError, wrap_error
from agentlab.cli.output import print_payload
from agentlab.cli.runtime import RunContext
from agentlab.cli.state import CLIState
from agentlab.cli.suggestions import (
    format_quoted_list,
    format_vmid_list,
    nearest_vmids,
    rank_suggestions,
)
from agentlab.config import EffectiveConfig, effective_config
from agentlab.logging import get_logger

logger = get_logger(__name__)


def get_state(ctx: typer.Context) -> CLIState:
    state = ctx.find_object(CLIState)
    if state is None:
        state = CLIState()
    return state


def config_from_state(state: CLIState) -> EffectiveConfig:
    return effective_config(
        socket_path=state.socket_path,
        endpoint=state.endpoint,
        token=state.token,
    )


def client_from_state(
    state: CLIState,
    config: Optional[EffectiveConfig] = None,
    run_context: Optional[RunContext] = None,
) -> AgentlabClient:
    """Build a client for the effective endpoint or socket."""
    config = config or config_from_state(state)
    transport = build_transport(config.endpoint, config.token, config.socket_path)
    return AgentlabClient(
        transport,
        timeout=state.timeout,
        run_context=run_context or state.run_context,
        http_transport=state.deps.http_transport,
    )


def api_path(prefix: str, *segments: Any) -> str:
    """``endpoint_path`` with invalid segments reported as usage errors."""
    try:
        return endpoint_path(prefix, *segments)
    except ValueError as e:
        raise usage_error(str(e)) from e


def emit(state: CLIState, payload: bytes, render_text: Callable[[Any], None]) -> None:
    """JSON mode echoes the daemon payload; text mode renders it."""
    if state.json_mode:
        print_payload(payload)
        return
    render_text(decode_json(payload))


def fetch_sandboxes(client: AgentlabClient) -> list[dict[str, Any]]:
    data = decode_json(client.do_json("GET", "/v1/sandboxes"), "sandbox list")
    return list(data.get("sandboxes") or []) if isinstance(data, dict) else []


def fetch_profiles(client: AgentlabClient) -> list[dict[str, Any]]:
    data = decode_json(client.do_json("GET", "/v1/profiles"), "profile list")
    return list(data.get("profiles") or []) if isinstance(data, dict) else []


def wrap_sandbox_not_found(client: AgentlabClient, vmid: int, err: CLIError) -> CLIError:
    if not isinstance(err, APIError) or not err.is_not_found("sandbox"):
        return err
    hints = []
    try:
        nearest = nearest_vmids(vmid, fetch_sandboxes(client), 3)
    except CLIError as fetch_err:
        logger.debug("could not list sandboxes for suggestions: %s", fetch_err)
        nearest = []
    if nearest:
        hints.append(f"closest VMIDs: {format_vmid_list(nearest)}")
    return wrap_error(err, f"sandbox {vmid} not found", next="agentlab sandbox list", hints=hints)


def wrap_job_not_found(job_id: str, err: CLIError) -> CLIError:
    if not isinstance(err, APIError) or not err.is_not_found("job"):
        return err
    return wrap_error(
        err,
        f"job {job_id.strip()} not found",
        next="agentlab job --help",
        hints=["job ids are printed by agentlab job run"],
    )


def wrap_workspace_not_found(workspace: str, err: CLIError) -> CLIError:
    if not isinstance(err, APIError) or not err.is_not_found("workspace"):
        return err
    return wrap_error(
        err, f"workspace {workspace.strip()} not found", next="agentlab workspace list"
    )


def wrap_unknown_profile(client: AgentlabClient, profile: str, err: CLIError) -> CLIError:
    if not isinstance(err, APIError) or not err.is_unknown_profile():
        return err
    profile = (profile or "").strip()
    message = f'unknown profile "{profile}"'
    try:
        profiles = fetch_profiles(client)
    except CLIError as fetch_err:
        logger.debug("could not list profiles for suggestions: %s", fetch_err)
        profiles = []
    names = sorted(str(p.get("name", "")).strip() for p in profiles if p.get("name"))
    suggestions = rank_suggestions(profile, names, 3)
    if len(suggestions) == 1:
        message = f'unknown profile "{profile}" (did you mean "{suggestions[0]}"?)'
    elif len(suggestions) > 1:
        message = (
            f'unknown profile "{profile}". Did you mean one of: '
            f"{format_quoted_list(suggestions)}?"
        )
    elif names:
        message = f'unknown profile "{profile}". Available profiles: {", ".join(names)}'
    return wrap_error(err, message, next="agentlab profile list")
