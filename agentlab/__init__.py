"""agentlab: command-line client for the agentlab sandbox daemon."""

from agentlab.logging import get_logger
from agentlab.version import __version__

__all__ = ["__version__", "get_logger"]
