"""Connect and disconnect commands.

``connect`` points the CLI at a remote daemon: it validates the endpoint,
probes ``/v1/status`` with the new credentials and only then rewrites the
client profile. ``disconnect`` removes the profile so the CLI falls back to
the local socket.
"""

from typing import Any, Optional

import typer

from agentlab.cli.client import AgentlabClient, CLIClientError, RemoteTransport, decode_json
from agentlab.cli.commands._base import get_state
from agentlab.cli.core import usage_error
from agentlab.cli.errors import CLIError, with_hints
from agentlab.cli.output import display, print_json, print_line
from agentlab.cli.state import CLIState
from agentlab.config import (
    ClientConfig,
    TailscaleAdminConfig,
    client_config_path,
    load_client_config,
    merge_tailscale_admin,
    normalize_endpoint,
    remove_client_config,
    validate_tailscale_admin,
    write_client_config,
)
from agentlab.logging import get_logger

logger = get_logger(__name__)


def tailscale_override(
    tailnet: Optional[str],
    api_key: Optional[str],
    oauth_client_id: Optional[str],
    oauth_client_secret: Optional[str],
    oauth_scopes: Optional[str],
) -> Optional[TailscaleAdminConfig]:
    """Admin block built from flags, or None when no flag was given."""
    override = TailscaleAdminConfig(
        tailnet=tailnet or "",
        api_key=api_key or "",
        oauth_client_id=oauth_client_id or "",
        oauth_client_secret=oauth_client_secret or "",
        oauth_scopes=oauth_scopes or "",
    )
    return None if override.is_empty() else override


def _probe_client(state: CLIState, endpoint: str, token: str) -> AgentlabClient:
    return AgentlabClient(
        RemoteTransport(endpoint, token),
        timeout=state.timeout,
        run_context=state.run_context,
        http_transport=state.deps.http_transport,
    )


def _fetch_host(client: AgentlabClient) -> Optional[dict[str, Any]]:
    try:
        host = decode_json(client.do_json("GET", "/v1/host"), "host info")
    except CLIError as e:
        logger.debug("host info unavailable: %s", e)
        return None
    return host if isinstance(host, dict) else None


def connect(
    ctx: typer.Context,
    endpoint: Optional[str] = typer.Option(None, "--endpoint", help="daemon URL, e.g. https://host:8845"),
    token: Optional[str] = typer.Option(None, "--token", help="bearer token for the daemon"),
    jump_host: Optional[str] = typer.Option(None, "--jump-host", help="SSH jump host for sandboxes"),
    jump_user: Optional[str] = typer.Option(None, "--jump-user", help="SSH user on the jump host"),
    tailscale_tailnet: Optional[str] = typer.Option(None, "--tailscale-tailnet", help="tailnet name"),
    tailscale_api_key: Optional[str] = typer.Option(
        None, "--tailscale-api-key", help="tailnet admin API key"
    ),
    tailscale_oauth_client_id: Optional[str] = typer.Option(
        None, "--tailscale-oauth-client-id", help="tailnet admin OAuth client id"
    ),
    tailscale_oauth_client_secret: Optional[str] = typer.Option(
        None, "--tailscale-oauth-client-secret", help="tailnet admin OAuth client secret"
    ),
    tailscale_oauth_scopes: Optional[str] = typer.Option(
        None, "--tailscale-oauth-scopes", help="comma separated OAuth scopes"
    ),
) -> None:
    """Save a remote daemon endpoint and token to the client profile.

    The endpoint is probed with the new token before anything is written.

    Examples:
        agentlab connect --endpoint https://agentlab.tailnet.ts.net:8845 --token <token>

        agentlab connect --endpoint https://host:8845 --token <token> --jump-host bastion --jump-user ops
    """
    state = get_state(ctx)
    endpoint = (endpoint or "").strip()
    token = (token or "").strip()
    if not endpoint or not token:
        raise usage_error("endpoint and token are required", show_usage=True)

    normalized = normalize_endpoint(endpoint)
    existing, _ = load_client_config()

    override = tailscale_override(
        tailscale_tailnet,
        tailscale_api_key,
        tailscale_oauth_client_id,
        tailscale_oauth_client_secret,
        tailscale_oauth_scopes,
    )
    tailscale_admin = merge_tailscale_admin(existing.tailscale_admin, override)
    if override is not None:
        validate_tailscale_admin(tailscale_admin)

    config = ClientConfig(
        endpoint=normalized,
        token=token,
        jump_host=jump_host if jump_host is not None else existing.jump_host,
        jump_user=jump_user if jump_user is not None else existing.jump_user,
        tailscale_admin=tailscale_admin,
    )
    if bool(config.jump_host) != bool(config.jump_user):
        raise usage_error("--jump-host and --jump-user must be set together")

    with _probe_client(state, normalized, token) as client:
        try:
            client.do_json("GET", "/v1/status")
        except CLIClientError as e:
            if e.status_code in (401, 403):
                raise with_hints(e, "check the token printed by agentlabd")
            raise
        host = _fetch_host(client)

    path = write_client_config(config)

    if state.json_mode:
        print_json(
            {
                "endpoint": normalized,
                "config_path": str(path),
                "jump_host": config.jump_host or None,
                "jump_user": config.jump_user or None,
                "host": host,
            }
        )
        return
    print_line(f"connected to {normalized}")
    print_line(f"config: {path}")
    if config.jump_host:
        print_line(f"jump: {config.jump_user}@{config.jump_host}")
    if host is None:
        print_line("daemon: host info unavailable")
    else:
        print_line(f"daemon version: {display(host.get('version'))}")
        if host.get("agent_subnet"):
            print_line(f"agent subnet: {host['agent_subnet']}")


def disconnect(ctx: typer.Context) -> None:
    """Remove the client profile; the CLI goes back to the local socket.

    Running it again is harmless.
    """
    state = get_state(ctx)
    path = client_config_path()
    removed = remove_client_config(path)
    if state.json_mode:
        print_json({"removed": removed, "config_path": str(path)})
        return
    if removed:
        print_line(f"disconnected (removed {path})")
    else:
        print_line(f"already disconnected (no config at {path})")
