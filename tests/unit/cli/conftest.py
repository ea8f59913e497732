"""Shared fixtures for CLI tests."""

import json
import re
import shutil
import socketserver
import tempfile
import threading
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

import httpx
import pytest
from typer.testing import CliRunner

from agentlab.cli.main import run
from agentlab.cli.ssh import SSHRuntime

if TYPE_CHECKING:
    from typer.testing import Result

# ANSI escape code pattern for stripping styling from output
ANSI_ESCAPE_PATTERN = re.compile(r"\x1b\[[0-9;]*m")


def strip_ansi(text: str) -> str:
    return ANSI_ESCAPE_PATTERN.sub("", text or "")


class CleanResult:
    """Result wrapper that strips ANSI codes from stdout/stderr/output.

    Rich applies bold/dim styling to help text even with NO_COLOR=1, which
    breaks plain string assertions.
    """

    def __init__(self, result: "Result") -> None:
        self._result = result

    @property
    def exit_code(self) -> int:
        return self._result.exit_code

    @property
    def stdout(self) -> str:
        return strip_ansi(self._result.stdout)

    @property
    def output(self) -> str:
        return strip_ansi(self._result.output)

    @property
    def exception(self):
        return self._result.exception


class CleanCliRunner(CliRunner):
    """CLI runner that returns results with ANSI codes stripped."""

    def invoke(self, *args, **kwargs) -> CleanResult:
        result = super().invoke(*args, **kwargs)
        return CleanResult(result)


@pytest.fixture
def runner():
    """CLI runner with colors disabled and ANSI codes stripped."""
    return CleanCliRunner(env={"NO_COLOR": "1"})


@dataclass
class RecordedRequest:
    method: str
    path: str
    query: str
    headers: dict[str, str]
    body: bytes

    def json(self) -> Any:
        return json.loads(self.body) if self.body else None


@dataclass
class Route:
    status: int = 200
    body: bytes = b"{}"
    content_type: str = "application/json"


class FakeDaemon:
    """Scripted agentlabd routes keyed by (method, path).

    A route may hold a list of responses; they are served in order and the
    last one repeats. Every request is recorded, unmatched ones get a 404
    with a daemon-style error body.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Route]] = {}
        self.requests: list[RecordedRequest] = []
        self._lock = threading.Lock()

    def route(
        self,
        method: str,
        path: str,
        payload: Any = None,
        status: int = 200,
        raw: Optional[bytes] = None,
        content_type: str = "application/json",
    ) -> "FakeDaemon":
        body = raw if raw is not None else json.dumps(payload if payload is not None else {}).encode()
        self.routes.setdefault((method, path), []).append(Route(status, body, content_type))
        return self

    def error(self, method: str, path: str, message: str, status: int = 404) -> "FakeDaemon":
        return self.route(method, path, {"error": message}, status=status)

    def handle(
        self, method: str, target: str, headers: dict[str, str], body: bytes
    ) -> Route:
        path, _, query = target.partition("?")
        with self._lock:
            self.requests.append(RecordedRequest(method, path, query, headers, body))
            responses = self.routes.get((method, path))
            if not responses:
                return Route(404, json.dumps({"error": f"{path} not found"}).encode())
            if len(responses) > 1:
                return responses.pop(0)
            return responses[0]

    def calls(self, method: Optional[str] = None, path: Optional[str] = None) -> list[RecordedRequest]:
        return [
            r
            for r in self.requests
            if (method is None or r.method == method) and (path is None or r.path == path)
        ]

    def paths(self) -> list[str]:
        return [f"{r.method} {r.path}" for r in self.requests]

    def transport(self) -> httpx.MockTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            route = self.handle(
                request.method,
                request.url.raw_path.decode("ascii"),
                dict(request.headers),
                request.read(),
            )
            return httpx.Response(
                route.status,
                content=route.body,
                headers={"Content-Type": route.content_type},
            )

        return httpx.MockTransport(handler)


@pytest.fixture
def daemon() -> FakeDaemon:
    return FakeDaemon()


def _handler_for(daemon: FakeDaemon):
    class Handler(BaseHTTPRequestHandler):
        def _serve(self) -> None:
            length = int(self.headers.get("Content-Length") or 0)
            body = self.rfile.read(length) if length else b""
            route = daemon.handle(self.command, self.path, dict(self.headers.items()), body)
            self.send_response(route.status)
            self.send_header("Content-Type", route.content_type)
            self.send_header("Content-Length", str(len(route.body)))
            self.end_headers()
            self.wfile.write(route.body)

        do_GET = _serve
        do_POST = _serve

        def log_message(self, format, *args):
            pass

    return Handler


class _UnixHTTPServer(socketserver.ThreadingUnixStreamServer):
    daemon_threads = True


@pytest.fixture
def socket_daemon(daemon):
    """Serve ``daemon`` over a real Unix socket; yields the socket path."""
    directory = tempfile.mkdtemp(prefix="agentlab-", dir="/tmp")
    path = str(Path(directory) / "agentlabd.sock")
    server = _UnixHTTPServer(path, _handler_for(daemon))
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield path
    finally:
        server.shutdown()
        server.server_close()
        shutil.rmtree(directory, ignore_errors=True)


@dataclass
class StubSSH:
    """Recording stand-in for the ssh runtime."""

    dial_ok: bool = True
    probe_result: tuple[int, str] = (255, "ssh: connect to host: No route to host")
    interactive: bool = False
    dials: list[tuple[str, int]] = field(default_factory=list)
    probes: list[list[str]] = field(default_factory=list)
    execs: list[list[str]] = field(default_factory=list)

    def dial(self, host: str, port: int, timeout: float) -> None:
        self.dials.append((host, port))
        if not self.dial_ok:
            raise ConnectionRefusedError("connection refused")

    def probe(self, argv: list[str], timeout: float) -> tuple[int, str]:
        self.probes.append(list(argv))
        return self.probe_result

    def exec_ssh(self, argv: list[str]) -> None:
        self.execs.append(list(argv))

    def runtime(self) -> SSHRuntime:
        return SSHRuntime(
            dial=self.dial,
            probe=self.probe,
            exec_ssh=self.exec_ssh,
            is_interactive=lambda: self.interactive,
        )


@pytest.fixture
def stub_ssh() -> StubSSH:
    return StubSSH()


@dataclass
class CLIResult:
    exit_code: int
    stdout: str
    stderr: str

    def json(self) -> Any:
        return json.loads(self.stdout)


@pytest.fixture
def cli(capsys, daemon, stub_ssh):
    """Run the dispatcher in-process against the fake daemon.

    Requests go through an ``httpx.MockTransport`` unless ``transport`` is
    given explicitly (``None`` disables the override).
    """
    _default = object()

    def invoke(*args: str, transport: Any = _default) -> CLIResult:
        capsys.readouterr()
        http_transport = daemon.transport() if transport is _default else transport
        code = run(list(args), ssh_runtime=stub_ssh.runtime(), http_transport=http_transport)
        captured = capsys.readouterr()
        return CLIResult(code, strip_ansi(captured.out), strip_ansi(captured.err))

    return invoke
