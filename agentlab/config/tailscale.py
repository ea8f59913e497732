"""Merging and validation of tailnet admin credentials."""

from typing import Optional

from agentlab.config.errors import ConfigError
from agentlab.config.models import TailscaleAdminConfig, normalize_tailscale_admin


def merge_tailscale_admin(
    base: Optional[TailscaleAdminConfig],
    override: Optional[TailscaleAdminConfig],
) -> Optional[TailscaleAdminConfig]:
    """Overlay ``override`` on ``base``.

    Non-empty override fields win. An override API key replaces any OAuth
    credentials from the base; override OAuth fields drop the base API key.
    """
    if base is None and override is None:
        return None
    merged = base.model_dump() if base is not None else {}
    if override is not None:
        if override.tailnet:
            merged["tailnet"] = override.tailnet
        if override.api_key:
            merged["api_key"] = override.api_key
            merged["oauth_client_id"] = ""
            merged["oauth_client_secret"] = ""
            merged["oauth_scopes"] = []
        elif override.oauth_touched():
            merged["api_key"] = ""
            if override.oauth_client_id:
                merged["oauth_client_id"] = override.oauth_client_id
            if override.oauth_client_secret:
                merged["oauth_client_secret"] = override.oauth_client_secret
            if override.oauth_scopes:
                merged["oauth_scopes"] = list(override.oauth_scopes)
    return normalize_tailscale_admin(TailscaleAdminConfig.model_validate(merged))


def validate_tailscale_admin(config: Optional[TailscaleAdminConfig]) -> None:
    """Raise ConfigError when a configured block cannot authenticate."""
    if config is None:
        return
    if config.api_key:
        return
    if config.oauth_touched():
        if not config.oauth_client_id:
            raise ConfigError("tailscale admin oauth client id is required")
        if not config.oauth_client_secret:
            raise ConfigError("tailscale admin oauth client secret is required")
        return
    raise ConfigError(
        "tailscale admin credentials are required",
        hints=["pass --tailscale-api-key or an OAuth client id and secret"],
    )
