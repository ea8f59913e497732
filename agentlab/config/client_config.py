"""
Client profile persistence.

The profile lives at ``$XDG_CONFIG_HOME/agentlab/client.json`` (or
``~/.config/agentlab/client.json``) and is always kept at mode 0600.
Writes go through a temp file and an atomic rename, so an interrupted
``connect`` never leaves a half-written profile behind.
"""

import json
import os
import stat
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from agentlab.config.errors import ConfigError
from agentlab.config.models import ClientConfig
from agentlab.logging import get_logger

logger = get_logger(__name__)

CONFIG_DIR_NAME = "agentlab"
CONFIG_FILE_NAME = "client.json"
CONFIG_FILE_MODE = 0o600
CONFIG_DIR_MODE = 0o700


class ClientEnvironment(BaseSettings):
    """Environment overrides read on every invocation.

    Environment variables:
        AGENTLAB_ENDPOINT, AGENTLAB_TOKEN, AGENTLAB_SOCKET,
        AGENTLAB_JUMP_HOST, AGENTLAB_JUMP_USER, AGENTLAB_SSH_IDENTITY
    """

    endpoint: str = ""
    token: str = ""
    socket: str = ""
    jump_host: str = ""
    jump_user: str = ""
    ssh_identity: str = ""

    model_config = SettingsConfigDict(
        env_prefix="AGENTLAB_", str_strip_whitespace=True, extra="ignore"
    )


def client_config_path() -> Path:
    """Resolve the profile path, honoring ``XDG_CONFIG_HOME``."""
    base = os.environ.get("XDG_CONFIG_HOME", "").strip()
    root = Path(base) if base else Path.home() / ".config"
    return root / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def _enforce_permissions(path: Path) -> None:
    try:
        mode = stat.S_IMODE(path.stat().st_mode)
        if mode != CONFIG_FILE_MODE:
            logger.debug("tightening %s from %o to 0600", path, mode)
            os.chmod(path, CONFIG_FILE_MODE)
    except OSError as e:
        raise ConfigError(
            f"client config must be 0600: {path}: {e.strerror or e}",
            hints=[f"run: chmod 600 {path}"],
        ) from e


def load_client_config(path: Optional[Path] = None) -> tuple[ClientConfig, bool]:
    """Load the profile.

    Returns:
        ``(config, found)``; a missing file yields an empty config and False.

    Raises:
        ConfigError: The file is unreadable, not valid JSON, or its
            permissions cannot be enforced.
    """
    path = path or client_config_path()
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        return ClientConfig(), False
    except OSError as e:
        raise ConfigError(
            f"failed to read client config {path}: {e.strerror or e}"
        ) from e

    try:
        document = json.loads(raw or b"{}")
        if not isinstance(document, dict):
            raise ValueError("expected a JSON object")
        config = ClientConfig.model_validate(document)
    except (ValueError, ValidationError) as e:
        # ValidationError text may quote field values; keep only the location.
        reason = _describe_invalid(e)
        raise ConfigError(
            f"invalid client config: {path}: {reason}",
            next="agentlab connect --help",
            hints=["run agentlab disconnect to discard the broken profile"],
        ) from e

    _enforce_permissions(path)
    return config, True


def _describe_invalid(err: Exception) -> str:
    if isinstance(err, ValidationError):
        fields = sorted({".".join(str(p) for p in e["loc"]) for e in err.errors()})
        return "invalid field(s): " + ", ".join(fields)
    return str(err)


def write_client_config(config: ClientConfig, path: Optional[Path] = None) -> Path:
    """Atomically persist the profile with mode 0600 and return its path."""
    path = path or client_config_path()
    normalized = ClientConfig.model_validate(config.model_dump())
    payload = json.dumps(normalized.to_document(), indent=2) + "\n"
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(mode=CONFIG_DIR_MODE, parents=True, exist_ok=True)
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, CONFIG_FILE_MODE)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(payload)
        os.chmod(tmp_path, CONFIG_FILE_MODE)
        os.replace(tmp_path, path)
    except OSError as e:
        try:
            tmp_path.unlink()
        except FileNotFoundError:
            pass
        raise ConfigError(
            f"failed to write client config {path}: {e.strerror or e}"
        ) from e
    _enforce_permissions(path)
    logger.debug("wrote client config %s", path)
    return path


def remove_client_config(path: Optional[Path] = None) -> bool:
    """Delete the profile. Returns False when there was nothing to remove."""
    path = path or client_config_path()
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        raise ConfigError(
            f"failed to remove client config {path}: {e.strerror or e}"
        ) from e
    logger.debug("removed client config %s", path)
    return True


def read_environment() -> ClientEnvironment:
    return ClientEnvironment()


def normalize_endpoint(raw: str) -> str:
    """Validate and canonicalize an endpoint URL.

    Empty input stays empty (meaning: use the local socket). A missing
    scheme defaults to ``http``. Error messages never echo the input.
    """
    trimmed = (raw or "").strip()
    if not trimmed:
        return ""
    if "://" not in trimmed:
        trimmed = "http://" + trimmed
    try:
        parsed = urlsplit(trimmed)
        _ = parsed.port  # malformed ports raise ValueError
    except ValueError as e:
        raise ConfigError("invalid endpoint") from e
    scheme = parsed.scheme.lower()
    if scheme not in ("http", "https"):
        raise ConfigError("endpoint scheme must be http or https")
    if not parsed.hostname:
        raise ConfigError("endpoint must include host")
    if parsed.path not in ("", "/"):
        raise ConfigError("endpoint must not include a path")
    if parsed.query or parsed.fragment:
        raise ConfigError("endpoint must not include a query or fragment")
    return f"{scheme}://{parsed.netloc}".rstrip("/")
