"""Argument parsers shared by the command handlers.

Durations use the ``1h30m`` / ``45s`` / ``500ms`` notation the daemon
documents; a bare number is read as seconds.
"""

import math
import re
from pathlib import Path
from typing import Optional

from agentlab.cli.errors import CLIError, UsageError

_BARE_SECONDS = re.compile(r"[+-]?(\d+(?:\.\d*)?|\.\d+)")
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_SLUG_INVALID = re.compile(r"[^a-z0-9]+")


def parse_duration(value: str) -> float:
    """Parse a duration into seconds.

    Raises:
        ValueError: the value is not a duration.
    """
    text = (value or "").strip()
    if not text:
        raise ValueError("empty duration")
    if _BARE_SECONDS.fullmatch(text):
        return float(text)
    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]
    position = 0
    total = 0.0
    while position < len(text):
        match = _DURATION_PART.match(text, position)
        if not match:
            raise ValueError(f"invalid duration {value!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position == 0:
        raise ValueError(f"invalid duration {value!r}")
    return sign * total


def parse_vmid(value: str) -> int:
    try:
        vmid = int(str(value).strip())
    except ValueError:
        vmid = 0
    if vmid <= 0:
        raise UsageError(f'invalid vmid "{value}"', hints=["VMIDs are positive integers"])
    return vmid


def parse_ttl_minutes(value: Optional[str]) -> Optional[int]:
    """Parse a TTL given as whole minutes or as a duration.

    Durations round up to the next minute. Empty input returns None.
    """
    text = (value or "").strip()
    if not text:
        return None
    if text.lstrip("+-").isdigit():
        minutes = int(text)
        if minutes <= 0:
            raise CLIError("ttl must be positive")
        return minutes
    try:
        seconds = parse_duration(text)
    except ValueError:
        raise CLIError(
            f'invalid ttl "{value}"', hints=["use minutes (120) or a duration (2h, 90m)"]
        ) from None
    if seconds <= 0:
        raise CLIError("ttl must be positive")
    return max(1, math.ceil(seconds / 60))


def parse_size_gb(value: Optional[str]) -> int:
    """Parse ``80``, ``80G`` or ``80GB`` into gigabytes."""
    text = (value or "").strip()
    if not text:
        raise CLIError("size is required")
    lower = text.lower()
    if lower.endswith("gb"):
        lower = lower[:-2]
    elif lower.endswith("g"):
        lower = lower[:-1]
    lower = lower.strip()
    try:
        size = int(lower)
    except ValueError:
        size = 0
    if size <= 0:
        raise CLIError(f'invalid size "{value}"', hints=["sizes are whole gigabytes, e.g. 80G"])
    return size


def parse_wait_seconds(value: Optional[str]) -> Optional[int]:
    """Parse ``--workspace-wait`` into whole seconds (rounded up)."""
    text = (value or "").strip()
    if not text:
        return None
    try:
        seconds = parse_duration(text)
    except ValueError:
        raise CLIError(f'invalid workspace wait "{value}"') from None
    if seconds < 0:
        raise CLIError("workspace wait must be non-negative")
    return math.ceil(seconds)


def slugify_workspace_name(value: str) -> str:
    """Lowercase, collapse anything outside ``[a-z0-9]`` into single dashes."""
    return _SLUG_INVALID.sub("-", (value or "").strip().lower()).strip("-")


def repo_slug(repo_url: str) -> str:
    """Slug of the repository's last path segment without ``.git``.

    ``https://github.com/org/mega-repo.git`` becomes ``mega-repo``;
    scp-style ``git@host:org/repo.git`` works too.
    """
    trimmed = (repo_url or "").strip().rstrip("/")
    segment = re.split(r"[/:]", trimmed)[-1] if trimmed else ""
    if segment.lower().endswith(".git"):
        segment = segment[:-4]
    return slugify_workspace_name(segment)


def resolve_output_path(out: Optional[str], name: str) -> Path:
    """Destination for a downloaded artifact.

    Without ``out`` the artifact name is used in the current directory; an
    existing directory or a value ending in a separator receives the file
    under its own name. Parent directories are created as needed.
    """
    name = (name or "").strip() or "artifact"
    target = (out or "").strip()
    if not target:
        return Path(name)
    path = Path(target).expanduser()
    if target.endswith(("/", "\\")):
        path.mkdir(mode=0o750, parents=True, exist_ok=True)
        return path / name
    if path.is_dir():
        return path / name
    if path.parent != Path("."):
        path.parent.mkdir(mode=0o750, parents=True, exist_ok=True)
    return path
