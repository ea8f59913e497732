"""SSH command implementation.

``agentlab ssh <vmid> [remote args...]`` resolves a sandbox to an ssh
command line. Stopped sandboxes are started first (unless ``--no-start``),
sandboxes that are still booting are polled until they report an IP, and
when a jump host is configured a direct dial decides whether ``-J`` is
needed. The command is printed, or with ``--exec`` on a terminal the CLI
replaces itself with ssh.
"""

import ipaddress
from typing import Any, Optional

import typer

from agentlab.cli.client import APIError, AgentlabClient, CLIClientError, decode_json
from agentlab.cli.commands._base import (
    api_path,
    client_from_state,
    config_from_state,
    get_state,
    wrap_sandbox_not_found,
)
from agentlab.cli.core import usage_error
from agentlab.cli.errors import CLIError
from agentlab.cli.output import error_console, print_json, print_line
from agentlab.cli.parsing import parse_vmid
from agentlab.cli.runtime import DeadlineExceeded, RunContext
from agentlab.cli.ssh import (
    DEFAULT_SSH_PORT,
    DEFAULT_SSH_USER,
    SSHLauncher,
    SSHRuntime,
    build_ssh_args,
    format_command,
    resolve_identity,
    resolve_jump,
)
from agentlab.logging import get_logger

logger = get_logger(__name__)

IP_POLL_INTERVAL_SECONDS = 2.0
TOUCH_TIMEOUT_SECONDS = 2.0
TERMINAL_STATES = frozenset({"DESTROYED", "FAILED", "TIMEOUT", "ERROR"})


def _state_of(sandbox: dict[str, Any]) -> str:
    return str(sandbox.get("state") or "").strip().upper()


def _ip_of(sandbox: dict[str, Any]) -> str:
    return str(sandbox.get("ip") or "").strip()


def fetch_sandbox(client: AgentlabClient, vmid: int) -> dict[str, Any]:
    try:
        payload = client.do_json("GET", api_path("/v1/sandboxes", vmid))
    except APIError as e:
        raise wrap_sandbox_not_found(client, vmid, e)
    data = decode_json(payload, "sandbox")
    return data if isinstance(data, dict) else {}


def start_sandbox(client: AgentlabClient, vmid: int) -> None:
    logger.debug("sandbox %d is stopped, starting it", vmid)
    try:
        client.do_json("POST", api_path("/v1/sandboxes", vmid, "start"))
    except APIError as e:
        raise wrap_sandbox_not_found(client, vmid, e)


def wait_for_sandbox_ip(
    client: AgentlabClient, vmid: int, run_context: RunContext
) -> dict[str, Any]:
    """Poll until the sandbox reports an IP, fails, or the deadline passes."""
    try:
        while True:
            try:
                sandbox = fetch_sandbox(client, vmid)
            except APIError:
                raise
            except CLIClientError as e:
                logger.debug("polling sandbox %d failed: %s", vmid, e)
            else:
                if _ip_of(sandbox):
                    return sandbox
                state = _state_of(sandbox)
                if state in TERMINAL_STATES:
                    raise CLIError(
                        f"sandbox {vmid} is {state.lower()} and has no IP",
                        next=f"agentlab sandbox show {vmid}",
                    )
                logger.debug("sandbox %d is %s with no IP yet", vmid, state or "unknown")
            run_context.sleep(IP_POLL_INTERVAL_SECONDS)
            run_context.check()
    except DeadlineExceeded as e:
        raise CLIError(
            f"timed out waiting for sandbox {vmid} IP (no IP yet)",
            next=f"agentlab sandbox show {vmid}",
            hints=["raise the limit with --timeout (e.g. --timeout 2m)"],
        ) from e


def touch_sandbox(client: AgentlabClient, vmid: int) -> None:
    """Best-effort activity ping; failures never affect the command."""
    try:
        with client.with_timeout(TOUCH_TIMEOUT_SECONDS) as touch_client:
            touch_client.do_json("POST", api_path("/v1/sandboxes", vmid, "touch"))
    except CLIError as e:
        logger.debug("touch sandbox %d failed: %s", vmid, e)


def _strip_separator(remote_args: Optional[list[str]]) -> list[str]:
    args = list(remote_args or [])
    if args and args[0] == "--":
        args = args[1:]
    return args


def ssh(
    ctx: typer.Context,
    vmid: str = typer.Argument(..., metavar="VMID"),
    remote_args: Optional[list[str]] = typer.Argument(
        None, metavar="[-- COMMAND...]", help="remote command to run"
    ),
    user: str = typer.Option(DEFAULT_SSH_USER, "--user", "-u", help="ssh username"),
    port: int = typer.Option(DEFAULT_SSH_PORT, "--port", "-p", help="ssh port"),
    identity: Optional[str] = typer.Option(None, "--identity", "-i", help="ssh identity file"),
    exec_ssh: bool = typer.Option(
        False, "--exec", "-e", help="exec ssh instead of printing the command"
    ),
    no_start: bool = typer.Option(False, "--no-start", help="do not auto-start a stopped sandbox"),
    wait: bool = typer.Option(False, "--wait", help="wait until ssh is reachable"),
    jump_host: Optional[str] = typer.Option(None, "--jump-host", help="SSH jump host"),
    jump_user: Optional[str] = typer.Option(None, "--jump-user", help="SSH user on the jump host"),
) -> None:
    """Print (or exec) the ssh command for a sandbox.

    Flags go before the VMID; anything after it is passed to ssh as the
    remote command.

    Examples:
        agentlab ssh 1009

        agentlab ssh --exec 1009

        agentlab ssh --wait --jump-host bastion --jump-user ops 1009 -- uname -a
    """
    state = get_state(ctx)
    if state.json_mode and exec_ssh:
        raise usage_error("cannot use --json with --exec")
    target = parse_vmid(vmid)
    user = (user or "").strip()
    if not user:
        raise usage_error("user is required")
    if port <= 0 or port > 65535:
        raise usage_error(f"invalid port {port}")
    remote = _strip_separator(remote_args)

    config = config_from_state(state)
    jump = resolve_jump(jump_host, jump_user, config.jump_host, config.jump_user)
    runtime = state.deps.ssh_runtime or SSHRuntime()
    wait_context = state.run_context.with_timeout(state.timeout)

    with client_from_state(state, config, run_context=wait_context) as client:
        sandbox = fetch_sandbox(client, target)
        if _state_of(sandbox) == "STOPPED":
            if no_start:
                raise CLIError(
                    f"sandbox {target} is stopped; use agentlab sandbox start {target} or omit --no-start",
                    next=f"agentlab sandbox start {target}",
                )
            start_sandbox(client, target)
            sandbox = fetch_sandbox(client, target)
            if _state_of(sandbox) == "STOPPED":
                raise CLIError(
                    f"sandbox {target} is still stopped after start",
                    next=f"agentlab sandbox show {target}",
                )

        ip = _ip_of(sandbox)
        if not ip:
            sandbox = wait_for_sandbox_ip(client, target, wait_context)
            ip = _ip_of(sandbox)
        try:
            ipaddress.ip_address(ip)
        except ValueError:
            raise CLIError(f'sandbox {target} returned invalid IP "{ip}"') from None

        identity_path = resolve_identity(identity, config.ssh_identity)
        launcher = SSHLauncher(runtime, state.run_context)
        path_jump = launcher.choose_jump(user, ip, port, identity_path, jump, wait)
        argv = build_ssh_args(user, ip, port, identity_path, path_jump, remote)
        touch_sandbox(client, target)

    command = format_command(argv)
    if state.json_mode:
        result: dict[str, Any] = {
            "vmid": target,
            "ip": ip,
            "user": user,
            "port": port,
            "args": argv,
            "command": command,
        }
        if identity_path:
            result["identity"] = identity_path
        if path_jump is not None:
            result["jump"] = path_jump.target
        print_json(result)
        return

    if exec_ssh:
        if runtime.is_interactive():
            logger.debug("exec %s", command)
            runtime.exec_ssh(argv)
            return
        error_console.print("not a terminal; printing the ssh command instead", highlight=False)
    print_line(command)
