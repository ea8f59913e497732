"""Client configuration: on-disk profile, environment overrides, merging."""

from agentlab.config.client_config import (
    client_config_path,
    load_client_config,
    normalize_endpoint,
    remove_client_config,
    write_client_config,
)
from agentlab.config.effective import (
    DEFAULT_SOCKET_PATH,
    EffectiveConfig,
    effective_config,
)
from agentlab.config.errors import ConfigError
from agentlab.config.models import ClientConfig, TailscaleAdminConfig
from agentlab.config.tailscale import merge_tailscale_admin, validate_tailscale_admin

__all__ = [
    "DEFAULT_SOCKET_PATH",
    "ClientConfig",
    "ConfigError",
    "EffectiveConfig",
    "TailscaleAdminConfig",
    "client_config_path",
    "effective_config",
    "load_client_config",
    "merge_tailscale_admin",
    "normalize_endpoint",
    "remove_client_config",
    "validate_tailscale_admin",
    "write_client_config",
]
