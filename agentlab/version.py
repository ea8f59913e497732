"""
Version management for agentlab.

Reads the version from pyproject.toml when running from a source checkout
and falls back to the installed distribution metadata otherwise.
"""

from importlib import metadata
from pathlib import Path

import tomli

DIST_NAME = "agentlab"
FALLBACK_VERSION = "0.0.0+unknown"

PROJECT_ROOT = Path(__file__).resolve().parent.parent
PYPROJECT_PATH = PROJECT_ROOT / "pyproject.toml"


def get_version_from_pyproject(path: Path = PYPROJECT_PATH) -> str:
    """
    Read the version string from pyproject.toml.

    Raises:
        FileNotFoundError: If pyproject.toml cannot be found
        KeyError: If the project table has no version
    """
    with open(path, "rb") as f:
        pyproject_data = tomli.load(f)
    if pyproject_data["project"]["name"] != DIST_NAME:
        raise KeyError("pyproject.toml does not describe agentlab")
    return pyproject_data["project"]["version"]


def _resolve_version() -> str:
    try:
        return get_version_from_pyproject()
    except (OSError, KeyError, tomli.TOMLDecodeError):
        pass
    try:
        return metadata.version(DIST_NAME)
    except metadata.PackageNotFoundError:
        return FALLBACK_VERSION


__version__ = _resolve_version()


def get_version() -> str:
    """Get the current version of the agentlab package."""
    return __version__


def user_agent() -> str:
    """User-Agent header value sent with every daemon request."""
    return f"agentlab/{__version__}"
