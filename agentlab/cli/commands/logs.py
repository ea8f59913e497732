"""Logs command implementation.

``agentlab logs <vmid>`` prints the most recent sandbox events;
``--follow`` keeps the connection open and prints events as the daemon
streams them, one JSON object per line, until interrupted.
"""

import json
from typing import Any, Optional

import typer

from agentlab.cli.client import APIError, AgentlabClient
from agentlab.cli.commands._base import (
    api_path,
    client_from_state,
    emit,
    get_state,
    wrap_sandbox_not_found,
)
from agentlab.cli.commands.job import format_event
from agentlab.cli.errors import Canceled
from agentlab.cli.output import print_json_line, print_line
from agentlab.cli.parsing import parse_vmid
from agentlab.cli.state import CLIState
from agentlab.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TAIL = 50
MAX_TAIL = 1000


def clamp_tail(tail: Optional[int]) -> int:
    if tail is None or tail <= 0:
        return DEFAULT_TAIL
    return min(tail, MAX_TAIL)


def _render_events(data: Any) -> None:
    events = data.get("events") if isinstance(data, dict) else data
    if not events:
        print_line("No events")
        return
    for event in events:
        if isinstance(event, dict):
            print_line(format_event(event))
        else:
            print_line(str(event))


def _emit_stream_line(raw: str, json_mode: bool) -> None:
    line = raw.strip()
    if not line:
        return
    try:
        event = json.loads(line)
    except ValueError:
        event = None
    if json_mode:
        print_json_line(event if isinstance(event, dict) else {"line": line})
    elif isinstance(event, dict):
        print_line(format_event(event))
    else:
        print_line(raw.rstrip("\r\n"))


def _follow(client: AgentlabClient, state: CLIState, vmid: int) -> None:
    path = api_path("/v1/sandboxes", vmid, "logs") + "?follow=true"
    try:
        with client.do_stream("GET", path) as response:
            for raw in response.iter_lines():
                _emit_stream_line(raw, state.json_mode)
    except Canceled:
        logger.debug("log follow for sandbox %d interrupted", vmid)


def logs(
    ctx: typer.Context,
    vmid: str = typer.Argument(..., metavar="VMID"),
    tail: Optional[int] = typer.Option(
        None, "--tail", help=f"show the last N events (default {DEFAULT_TAIL}, max {MAX_TAIL})"
    ),
    follow: bool = typer.Option(False, "--follow", "-f", help="stream new events"),
) -> None:
    """Show sandbox events.

    Examples:
        agentlab logs 1009 --tail 100

        agentlab logs 1009 --follow
    """
    state = get_state(ctx)
    target = parse_vmid(vmid)
    with client_from_state(state) as client:
        try:
            if follow:
                _follow(client, state, target)
                return
            payload = client.do_json(
                "GET", api_path("/v1/sandboxes", target, "logs") + f"?tail={clamp_tail(tail)}"
            )
        except APIError as e:
            raise wrap_sandbox_not_found(client, target, e)
    emit(state, payload, _render_events)
