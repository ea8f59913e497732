"""Effective configuration for one invocation.

Precedence, first non-empty wins: command-line flag, environment, on-disk
profile, built-in default.
"""

from dataclasses import dataclass
from typing import Optional

from agentlab.cli.errors import with_hints
from agentlab.config.client_config import (
    client_config_path,
    load_client_config,
    normalize_endpoint,
    read_environment,
)
from agentlab.config.errors import ConfigError

DEFAULT_SOCKET_PATH = "/run/agentlab/agentlabd.sock"


def first_non_empty(*values: Optional[str]) -> str:
    for value in values:
        if value is not None and value.strip():
            return value.strip()
    return ""


@dataclass(frozen=True)
class EffectiveConfig:
    """Merged view of flags, environment and profile. Never persisted."""

    socket_path: str
    endpoint: str = ""
    token: str = ""
    jump_host: str = ""
    jump_user: str = ""
    ssh_identity: str = ""


def effective_config(
    socket_path: Optional[str] = None,
    endpoint: Optional[str] = None,
    token: Optional[str] = None,
) -> EffectiveConfig:
    """Merge the configuration layers for the current invocation.

    Raises:
        ConfigError: The profile is unreadable or the winning endpoint is
            malformed.
    """
    env = read_environment()
    path = client_config_path()
    profile, _ = load_client_config(path)

    raw_endpoint = first_non_empty(endpoint, env.endpoint, profile.endpoint)
    try:
        resolved_endpoint = normalize_endpoint(raw_endpoint)
    except ConfigError as e:
        if first_non_empty(endpoint):
            source = "--endpoint"
        elif env.endpoint:
            source = "AGENTLAB_ENDPOINT"
        else:
            source = str(path)
        raise with_hints(e, f"endpoint comes from {source}")

    return EffectiveConfig(
        socket_path=first_non_empty(socket_path, env.socket, DEFAULT_SOCKET_PATH),
        endpoint=resolved_endpoint,
        token=first_non_empty(token, env.token, profile.token),
        jump_host=first_non_empty(env.jump_host, profile.jump_host),
        jump_user=first_non_empty(env.jump_user, profile.jump_user),
        ssh_identity=env.ssh_identity,
    )
