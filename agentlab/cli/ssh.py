"""SSH launcher: argv assembly, reachability probing and process handoff.

Everything that touches the network or the process table goes through
``SSHRuntime`` so handlers can be exercised without real sockets, ssh
binaries or terminals.
"""

import os
import shlex
import shutil
import socket
import subprocess
import sys
from dataclasses import dataclass
from typing import Callable, Optional

from agentlab.cli.errors import CLIError
from agentlab.cli.runtime import RunContext
from agentlab.logging import get_logger

logger = get_logger(__name__)

DEFAULT_SSH_USER = "agent"
DEFAULT_SSH_PORT = 22
DEFAULT_IDENTITY_PATH = "/etc/agentlab/keys/agentlab_id_ed25519"

WAIT_ATTEMPTS = 30
WAIT_INTERVAL_SECONDS = 1.0
PROBE_TIMEOUT_SECONDS = 2.0
PERMISSION_DENIED = "Permission denied"


def _dial(host: str, port: int, timeout: float) -> None:
    conn = socket.create_connection((host, port), timeout=timeout)
    conn.close()


def _probe(argv: list[str], timeout: float) -> tuple[int, str]:
    try:
        result = subprocess.run(
            argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        output = e.output or b""
        return -1, output.decode("utf-8", errors="replace")
    return result.returncode, result.stdout.decode("utf-8", errors="replace")


def _exec_ssh(argv: list[str]) -> None:
    path = shutil.which(argv[0])
    if path is None:
        raise CLIError(
            "ssh executable not found in PATH",
            hints=["install an OpenSSH client or run the printed command elsewhere"],
        )
    sys.stdout.flush()
    sys.stderr.flush()
    os.execv(path, argv)


def _is_interactive() -> bool:
    return sys.stdin.isatty() and sys.stdout.isatty()


@dataclass(frozen=True)
class SSHRuntime:
    """Side-effecting collaborators of the ssh command.

    Attributes:
        dial: Open and close a TCP connection to ``(host, port)``; raises on failure.
        probe: Run an ssh probe argv, returning ``(returncode, combined output)``.
        exec_ssh: Replace the current process with the given ssh argv.
        is_interactive: True when stdin and stdout are terminals.
    """

    dial: Callable[[str, int, float], None] = _dial
    probe: Callable[[list[str], float], tuple[int, str]] = _probe
    exec_ssh: Callable[[list[str]], None] = _exec_ssh
    is_interactive: Callable[[], bool] = _is_interactive


@dataclass(frozen=True)
class JumpConfig:
    host: str
    user: str

    @property
    def target(self) -> str:
        return f"{self.user}@{self.host}"


def resolve_jump(
    flag_host: Optional[str],
    flag_user: Optional[str],
    config_host: str = "",
    config_user: str = "",
) -> Optional[JumpConfig]:
    """Per-field precedence: flag first, then environment/profile."""
    host = (flag_host or "").strip() or (config_host or "").strip()
    user = (flag_user or "").strip() or (config_user or "").strip()
    if not host and not user:
        return None
    if not host or not user:
        missing = "jump host" if not host else "jump user"
        raise CLIError(
            f"{missing} is required when using a jump host",
            hints=[
                "pass both --jump-host and --jump-user",
                "or set AGENTLAB_JUMP_HOST and AGENTLAB_JUMP_USER",
            ],
        )
    return JumpConfig(host=host, user=user)


def resolve_identity(flag_identity: Optional[str], configured_identity: str = "") -> str:
    """Pick the private key: flag, then configured value, then the shared default key."""
    identity = (flag_identity or "").strip() or configured_identity.strip()
    if identity:
        return identity
    if os.path.isfile(DEFAULT_IDENTITY_PATH) and os.access(DEFAULT_IDENTITY_PATH, os.R_OK):
        return DEFAULT_IDENTITY_PATH
    return ""


def build_ssh_args(
    user: str,
    ip: str,
    port: int = DEFAULT_SSH_PORT,
    identity: str = "",
    jump: Optional[JumpConfig] = None,
    remote_args: Optional[list[str]] = None,
) -> list[str]:
    """Assemble ``ssh [-i id] [-p port] [-J jump] user@ip [-- args...]``."""
    argv = ["ssh"]
    if identity:
        argv += ["-i", identity]
    if port != DEFAULT_SSH_PORT:
        argv += ["-p", str(port)]
    if jump is not None:
        argv += ["-J", jump.target]
    argv.append(f"{user}@{ip}")
    if remote_args:
        argv += ["--", *remote_args]
    return argv


def format_command(argv: list[str]) -> str:
    return shlex.join(argv)


def _probe_args(user: str, ip: str, port: int, identity: str, jump: JumpConfig) -> list[str]:
    argv = [
        "ssh",
        "-o",
        "BatchMode=yes",
        "-o",
        f"ConnectTimeout={int(PROBE_TIMEOUT_SECONDS)}",
    ]
    argv += build_ssh_args(user, ip, port, identity, jump)[1:]
    argv.append("true")
    return argv


class SSHLauncher:
    """Decides between the direct and the jump path and hands off to ssh."""

    def __init__(self, runtime: SSHRuntime, run_context: RunContext) -> None:
        self.runtime = runtime
        self.run_context = run_context

    def dial_direct(self, ip: str, port: int) -> bool:
        self.run_context.check()
        try:
            self.runtime.dial(ip, port, PROBE_TIMEOUT_SECONDS)
        except OSError as e:
            logger.debug("direct dial %s:%d failed: %s", ip, port, e)
            return False
        logger.debug("direct dial %s:%d succeeded", ip, port)
        return True

    def probe_jump(
        self, user: str, ip: str, port: int, identity: str, jump: JumpConfig
    ) -> bool:
        self.run_context.check()
        argv = _probe_args(user, ip, port, identity, jump)
        try:
            code, output = self.runtime.probe(argv, PROBE_TIMEOUT_SECONDS + 1)
        except OSError as e:
            logger.debug("jump probe via %s failed to run: %s", jump.target, e)
            return False
        if code == 0 or PERMISSION_DENIED in output:
            logger.debug("jump probe via %s reached %s", jump.target, ip)
            return True
        logger.debug("jump probe via %s failed (%d): %s", jump.target, code, output.strip())
        return False

    def wait_for_ssh(
        self,
        user: str,
        ip: str,
        port: int,
        identity: str,
        jump: Optional[JumpConfig],
    ) -> bool:
        """Probe until ssh answers; returns True when the direct path works.

        Raises:
            CLIError: No path became reachable within the attempt budget.
        """
        for attempt in range(1, WAIT_ATTEMPTS + 1):
            logger.debug("ssh wait attempt %d/%d for %s:%d", attempt, WAIT_ATTEMPTS, ip, port)
            if self.dial_direct(ip, port):
                return True
            if jump is not None and self.probe_jump(user, ip, port, identity, jump):
                return False
            if attempt < WAIT_ATTEMPTS:
                self.run_context.sleep(WAIT_INTERVAL_SECONDS)
        hints = [f"check that port {port} is open on the sandbox"]
        if jump is None:
            hints.append("pass --jump-host and --jump-user if the sandbox is only reachable via a bastion")
        raise CLIError(f"timed out waiting for ssh on {ip}:{port}", hints=hints)

    def choose_jump(
        self,
        user: str,
        ip: str,
        port: int,
        identity: str,
        jump: Optional[JumpConfig],
        wait: bool,
    ) -> Optional[JumpConfig]:
        """Return the jump config to use, or None for the direct path."""
        if wait:
            direct = self.wait_for_ssh(user, ip, port, identity, jump)
            return None if direct else jump
        if jump is None:
            return None
        return None if self.dial_direct(ip, port) else jump
