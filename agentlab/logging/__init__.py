"""
Logging system for agentlab.

Thin wrapper over the standard library logging module that keeps the CLI's
stdout and stderr clean unless verbose output is requested.
"""

from agentlab.logging.config import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
]
