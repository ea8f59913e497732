"""Client profile models.

The on-disk profile is a small JSON document. Both models strip whitespace
from every string on construction, and serialize without empty fields so a
written file only carries what the operator configured.
"""

import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_SCOPE_SEPARATORS = re.compile(r"[,\s]+")


def parse_oauth_scopes(raw: Any) -> list[str]:
    """Split scopes given as a comma and/or whitespace separated string or list."""
    if raw is None:
        return []
    if isinstance(raw, str):
        parts = _SCOPE_SEPARATORS.split(raw)
    else:
        parts = [str(item) for item in raw]
    scopes: list[str] = []
    for part in parts:
        part = part.strip()
        if part and part not in scopes:
            scopes.append(part)
    return scopes


class TailscaleAdminConfig(BaseModel):
    """Credentials for the tailnet admin API.

    Either an API key or an OAuth client id/secret pair. An API key always
    wins: when present the OAuth fields are cleared.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    tailnet: str = ""
    api_key: str = ""
    oauth_client_id: str = ""
    oauth_client_secret: str = ""
    oauth_scopes: list[str] = Field(default_factory=list)

    @field_validator("oauth_scopes", mode="before")
    @classmethod
    def _split_scopes(cls, value: Any) -> list[str]:
        return parse_oauth_scopes(value)

    @model_validator(mode="after")
    def _api_key_clears_oauth(self) -> "TailscaleAdminConfig":
        if self.api_key:
            self.oauth_client_id = ""
            self.oauth_client_secret = ""
            self.oauth_scopes = []
        return self

    def is_empty(self) -> bool:
        return not (
            self.tailnet
            or self.api_key
            or self.oauth_client_id
            or self.oauth_client_secret
            or self.oauth_scopes
        )

    def has_credentials(self) -> bool:
        if self.api_key:
            return True
        return bool(self.oauth_client_id and self.oauth_client_secret)

    def oauth_touched(self) -> bool:
        return bool(
            self.oauth_client_id or self.oauth_client_secret or self.oauth_scopes
        )


def normalize_tailscale_admin(
    config: Optional[TailscaleAdminConfig],
) -> Optional[TailscaleAdminConfig]:
    """Return a normalized copy, or None when the block carries nothing."""
    if config is None:
        return None
    normalized = TailscaleAdminConfig.model_validate(config.model_dump())
    if normalized.is_empty():
        return None
    return normalized


class ClientConfig(BaseModel):
    """Persisted client profile (``client.json``)."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    endpoint: str = ""
    token: str = ""
    jump_host: str = ""
    jump_user: str = ""
    tailscale_admin: Optional[TailscaleAdminConfig] = None

    @field_validator("tailscale_admin", mode="after")
    @classmethod
    def _drop_empty_admin(
        cls, value: Optional[TailscaleAdminConfig]
    ) -> Optional[TailscaleAdminConfig]:
        return normalize_tailscale_admin(value)

    def to_document(self) -> dict[str, Any]:
        """JSON document with empty fields omitted."""
        return self.model_dump(exclude_defaults=True)
