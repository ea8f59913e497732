"""Daemon client.

One client type over the local Unix socket or a remote HTTP(S) endpoint,
with structured errors for every failure mode.
"""

from agentlab.cli.client.core import decode_json, endpoint_path, query_escape
from agentlab.cli.client.errors import (
    APIError,
    CLIClientError,
    ConnectionError,
    TimeoutError,
)
from agentlab.cli.client.sync_client import (
    AgentlabClient,
    RemoteTransport,
    SocketTransport,
    build_transport,
)

__all__ = [
    "AgentlabClient",
    "APIError",
    "CLIClientError",
    "ConnectionError",
    "RemoteTransport",
    "SocketTransport",
    "TimeoutError",
    "build_transport",
    "decode_json",
    "endpoint_path",
    "query_escape",
]
