"""Status command implementation.

Implements ``agentlab status``: a summary of sandbox counts by state and job
counts by status as reported by the daemon.
"""

from typing import Any

import typer

from agentlab.cli.commands._base import client_from_state, emit, get_state
from agentlab.cli.output import print_line


def _print_counts(title: str, counts: Any) -> None:
    print_line(f"{title}:")
    if not isinstance(counts, dict) or not counts:
        print_line("  (none)")
        return
    for key in sorted(counts):
        print_line(f"  {key}: {counts[key]}")


def _render_status(data: Any) -> None:
    data = data if isinstance(data, dict) else {}
    _print_counts("Sandboxes", data.get("sandboxes"))
    _print_counts("Jobs", data.get("jobs"))


def status(ctx: typer.Context) -> None:
    """Show daemon status: sandboxes by state and jobs by status.

    Examples:
        agentlab status

        agentlab --json status
    """
    state = get_state(ctx)
    with client_from_state(state) as client:
        payload = client.do_json("GET", "/v1/status")
    emit(state, payload, _render_status)
