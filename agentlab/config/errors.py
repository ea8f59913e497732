"""Configuration errors."""

from agentlab.cli.errors import CLIError


class ConfigError(CLIError):
    """Client profile could not be read, written or validated.

    Messages name the path and operation; they never include secrets.
    """
