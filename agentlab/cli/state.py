"""CLI state management.

Provides a typed, immutable state object that holds the per-invocation
flags. The root Typer callback builds it and stores it in ``ctx.obj`` for
commands to access.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

import httpx

from agentlab.cli.runtime import RunContext

if TYPE_CHECKING:
    from agentlab.cli.ssh import SSHRuntime


DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class Dependencies:
    """Collaborators injected by the caller of ``run`` (tests pass fakes)."""

    ssh_runtime: Optional["SSHRuntime"] = None
    http_transport: Optional[httpx.BaseTransport] = None


@dataclass(frozen=True)
class CLIState:
    """Immutable per-invocation flags.

    Attributes:
        json_mode: Emit JSON on stdout instead of human-readable output.
        verbose: Debug logging on stderr.
        socket_path: ``--socket`` value, if given.
        endpoint: ``--endpoint`` value, if given.
        token: ``--token`` value, if given.
        timeout: Per-request timeout in seconds.
        run_context: Cancellation and deadline root for this invocation.
        deps: Injected collaborators.
    """

    json_mode: bool = False
    verbose: bool = False
    socket_path: Optional[str] = None
    endpoint: Optional[str] = None
    token: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    run_context: RunContext = field(default_factory=RunContext)
    deps: Dependencies = field(default_factory=Dependencies)


@dataclass(frozen=True)
class Invocation:
    """What ``run`` hands to the root callback before flags are parsed.

    ``json_mode`` is set when ``--json`` appeared anywhere before ``--``;
    the dispatcher strips those tokens so JSON mode covers usage errors too.
    """

    json_mode: bool = False
    run_context: RunContext = field(default_factory=RunContext)
    deps: Dependencies = field(default_factory=Dependencies)
