"""Synchronous HTTP client for agentlabd.

One client type speaks the daemon's JSON API over two substrates: the local
Unix socket and a remote HTTP(S) endpoint with bearer auth. The substrate is
chosen once, from the effective configuration, when the client is built;
handlers only ever see ``do_json`` and ``do_stream``.

Usage:
    with client_from_state(state) as client:
        payload = client.do_json("GET", "/v1/status")
"""

import json as jsonlib
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Protocol

import httpx

from agentlab.cli.client.core import (
    build_headers,
    decode_error,
    decode_json,
    parse_response,
)
from agentlab.cli.client.errors import CLIClientError, ConnectionError, TimeoutError
from agentlab.cli.runtime import RunContext
from agentlab.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0
SOCKET_BASE_URL = "http://localhost"


class DaemonTransport(Protocol):
    """Capability interface implemented by both substrates."""

    base_url: str

    def describe(self) -> str: ...

    def auth_token(self) -> str: ...

    def build(self) -> httpx.BaseTransport: ...

    def unreachable_hints(self) -> list[str]: ...


class SocketTransport:
    """HTTP/1.1 over the daemon's Unix-domain socket. No auth header."""

    base_url = SOCKET_BASE_URL

    def __init__(self, socket_path: str) -> None:
        self.socket_path = socket_path

    def describe(self) -> str:
        return f"agentlabd socket {self.socket_path}"

    def auth_token(self) -> str:
        return ""

    def build(self) -> httpx.BaseTransport:
        return httpx.HTTPTransport(uds=self.socket_path)

    def unreachable_hints(self) -> list[str]:
        return [
            "is agentlabd running? check: systemctl status agentlabd",
            "pass --socket or set AGENTLAB_SOCKET if the socket lives elsewhere",
            "use agentlab connect to target a remote daemon",
        ]


class RemoteTransport:
    """HTTP(S) to a remote daemon with optional bearer token."""

    def __init__(self, endpoint: str, token: str = "") -> None:
        self.base_url = endpoint.rstrip("/")
        self.token = token

    def describe(self) -> str:
        return f"agentlabd endpoint {self.base_url}"

    def auth_token(self) -> str:
        return self.token

    def build(self) -> httpx.BaseTransport:
        return httpx.HTTPTransport()

    def unreachable_hints(self) -> list[str]:
        return [
            "check that the endpoint is reachable from this machine (tailnet up?)",
            "update the endpoint with agentlab connect --endpoint <url> --token <token>",
        ]


class AgentlabClient:
    """Synchronous client for agentlabd.

    Requests are strictly sequential and never retried. Each request is
    bounded by ``timeout`` and by the run context's deadline; a canceled run
    context stops new requests.

    Attributes:
        transport: Substrate the client talks through
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        transport: DaemonTransport,
        timeout: float = DEFAULT_TIMEOUT,
        run_context: Optional[RunContext] = None,
        http_transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """Initialize the client.

        Args:
            transport: Socket or remote substrate
            timeout: Per-request timeout in seconds
            run_context: Cancellation and deadline source
            http_transport: Override for the httpx transport (tests)
        """
        self.transport = transport
        self.timeout = timeout
        self.run_context = run_context or RunContext()
        self._http_transport = http_transport
        self._client: Optional[httpx.Client] = None

    def __enter__(self) -> "AgentlabClient":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def open(self) -> None:
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.transport.base_url,
                transport=self._http_transport or self.transport.build(),
                timeout=self.timeout,
            )

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def with_timeout(self, seconds: float) -> "AgentlabClient":
        """Sibling client bounded by ``seconds`` and sharing cancellation."""
        return AgentlabClient(
            self.transport,
            timeout=min(seconds, self.timeout),
            run_context=self.run_context.with_timeout(seconds),
            http_transport=self._http_transport,
        )

    def _request_timeout(self, streaming: bool = False) -> httpx.Timeout:
        seconds = self.run_context.request_timeout(self.timeout)
        if streaming:
            return httpx.Timeout(seconds, read=None)
        return httpx.Timeout(seconds)

    def _build_request(
        self, method: str, path: str, body: Any, timeout: httpx.Timeout
    ) -> httpx.Request:
        if self._client is None:
            raise RuntimeError(
                "Client not initialized. Use 'with client_from_state(state) as client:'"
            )
        content = None
        if body is not None:
            content = jsonlib.dumps(body).encode("utf-8")
        headers = build_headers(self.transport.auth_token(), has_body=content is not None)
        return self._client.build_request(
            method, path, content=content, headers=headers, timeout=timeout
        )

    def _send(self, request: httpx.Request, stream: bool = False) -> httpx.Response:
        assert self._client is not None
        try:
            return self._client.send(request, stream=stream)
        except httpx.ConnectError as e:
            raise ConnectionError(
                message=f"failed to connect to {self.transport.describe()}: {e}",
                details={"url": str(request.url)},
                hints=self.transport.unreachable_hints(),
            ) from e
        except httpx.TimeoutException as e:
            raise TimeoutError(
                message=f"request timed out: {request.method} {request.url.path}",
                details={"url": str(request.url)},
                hints=["raise the limit with --timeout (e.g. --timeout 2m)"],
            ) from e
        except httpx.HTTPError as e:
            raise CLIClientError(
                message=f"request to {self.transport.describe()} failed: {e}",
                details={"url": str(request.url)},
            ) from e

    def do_json(self, method: str, path: str, body: Any = None) -> bytes:
        """Send one JSON request and return the raw 2xx body.

        Raises:
            APIError: The daemon answered with a non-2xx status
            ConnectionError: The daemon could not be reached
            TimeoutError: The request exceeded its timeout
        """
        self.open()
        request = self._build_request(method, path, body, self._request_timeout())
        logger.debug("%s %s via %s", method, path, self.transport.describe())
        response = self._send(request)
        logger.debug("%s %s -> %s", method, path, response.status_code)
        return parse_response(response)

    def get_json(self, path: str) -> Any:
        """GET ``path`` and decode the JSON body."""
        return decode_json(self.do_json("GET", path))

    @contextmanager
    def do_stream(self, method: str, path: str) -> Iterator[httpx.Response]:
        """Open a streaming request and yield the live response.

        The read timeout is disabled so long-lived streams (log follow) are
        bounded only by cancellation; connect and write still honor the
        request timeout.
        """
        self.open()
        request = self._build_request(method, path, None, self._request_timeout(streaming=True))
        logger.debug("%s %s (stream) via %s", method, path, self.transport.describe())
        response = self._send(request, stream=True)
        try:
            if not 200 <= response.status_code < 300:
                response.read()
                raise decode_error(response.status_code, response.content)
            try:
                yield response
            except httpx.HTTPError as e:
                raise CLIClientError(
                    message=f"stream from {self.transport.describe()} failed: {e}",
                    details={"url": str(request.url)},
                ) from e
        finally:
            response.close()


def build_transport(endpoint: str, token: str, socket_path: str) -> DaemonTransport:
    """Pick the substrate: a non-empty endpoint wins over the socket."""
    if endpoint:
        return RemoteTransport(endpoint, token)
    return SocketTransport(socket_path)
