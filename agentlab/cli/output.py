"""CLI output helpers.

Human mode uses Rich for tables and plain lines; JSON mode writes compact
or indented JSON to stdout with ``print`` so machine output is never styled
or wrapped. Errors go to stderr in human mode and to stdout as a single
``{"error": ...}`` line in JSON mode.
"""

import json
from typing import Any, Iterable, Optional, Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

from agentlab.cli.errors import UsageError, describe_error

# Console instances for stdout and stderr
console = Console(highlight=False)
error_console = Console(stderr=True, highlight=False)


def print_line(text: str = "") -> None:
    console.print(Text(text), soft_wrap=True)


def print_json(data: Any) -> None:
    """Pretty-print a JSON-serializable value."""
    print(json.dumps(data, indent=2, ensure_ascii=False))


def print_json_line(data: Any) -> None:
    """Print one compact JSON object per line (streams)."""
    print(json.dumps(data, ensure_ascii=False), flush=True)


def print_payload(payload: bytes) -> None:
    """Echo a daemon response verbatim, pretty-printed when it is JSON."""
    try:
        data = json.loads(payload) if payload else None
    except ValueError:
        print(payload.decode("utf-8", errors="replace"))
        return
    if data is None:
        print_json({})
        return
    print_json(data)


def display(value: Any) -> str:
    """Render a field value for text output; missing values become ``-``."""
    if value is None:
        return "-"
    if isinstance(value, bool):
        return "true" if value else "false"
    text = str(value).strip()
    return text or "-"


def print_fields(fields: Iterable[tuple[str, Any]]) -> None:
    """Print a key: value block."""
    for label, value in fields:
        console.print(Text(f"{label}: {display(value)}"), soft_wrap=True)


def print_table(columns: Sequence[str], rows: Iterable[Sequence[Any]]) -> None:
    """Print a borderless column-aligned table."""
    table = Table(box=None, show_edge=False, pad_edge=False, header_style="bold")
    for column in columns:
        table.add_column(column, overflow="fold")
    for row in rows:
        table.add_row(*(Text(display(cell)) for cell in row))
    console.print(table)


def render_error(err: BaseException, json_mode: bool) -> None:
    """Render an error exactly once.

    Text mode writes ``error:``, ``next:`` and ``hint:`` lines to stderr.
    JSON mode writes ``{"error": message}`` to stdout and drops the rest.
    """
    message, next_hint, hints = describe_error(err)
    if not message:
        message = "unknown error"
    if json_mode:
        print(json.dumps({"error": message}, ensure_ascii=False))
        return

    if isinstance(err, UsageError) and err.show_usage and err.usage:
        error_console.print(Text(err.usage.rstrip()), soft_wrap=True)
    error_console.print(Text(f"error: {message}"), soft_wrap=True)
    if next_hint:
        error_console.print(Text(f"next: {next_hint}"), soft_wrap=True)
    for hint in hints:
        error_console.print(Text(f"hint: {hint}"), soft_wrap=True)


def print_success(message: str, json_mode: bool, data: Optional[dict] = None) -> None:
    """Print a confirmation line, or ``data`` as JSON."""
    if json_mode:
        print_json(data if data is not None else {"message": message})
    else:
        print_line(message)
