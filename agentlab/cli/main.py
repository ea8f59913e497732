"""Dispatcher: runs one invocation and maps its outcome to an exit code.

``run`` is the programmatic entry point (tests call it with injected
collaborators); ``main`` is the console script. Every error is rendered
exactly once here, in text on stderr or as ``{"error": ...}`` on stdout
when JSON output was requested anywhere on the command line.
"""

import sys
from typing import Optional, Sequence

import click
import httpx
import typer

from agentlab.cli.app import app
from agentlab.cli.errors import (
    EXIT_FAILURE,
    EXIT_OK,
    Canceled,
    CLIError,
    HelpRequested,
    UsageError,
    exit_code_for,
)
from agentlab.cli.output import render_error
from agentlab.cli.runtime import RunContext, interrupt_scope
from agentlab.cli.ssh import SSHRuntime
from agentlab.cli.state import Dependencies, Invocation
from agentlab.logging import configure_logging, get_logger

logger = get_logger(__name__)

PROG_NAME = "agentlab"
JSON_FLAG = "--json"


def split_json_flag(args: Sequence[str]) -> tuple[list[str], bool]:
    """Remove ``--json`` tokens that appear before ``--``.

    Returns the remaining arguments and whether JSON output was requested.
    """
    remaining: list[str] = []
    json_mode = False
    for index, arg in enumerate(args):
        if arg == "--":
            remaining.extend(args[index:])
            break
        if arg == JSON_FLAG:
            json_mode = True
            continue
        remaining.append(arg)
    return remaining, json_mode


def _usage_from_click(err: click.UsageError) -> UsageError:
    ctx = err.ctx
    next_hint = f"{ctx.command_path} --help" if ctx is not None else f"{PROG_NAME} --help"
    usage = ctx.get_usage() if ctx is not None else ""
    return UsageError(err.format_message(), next=next_hint, show_usage=True, usage=usage)


def run(
    argv: Optional[Sequence[str]] = None,
    ssh_runtime: Optional[SSHRuntime] = None,
    http_transport: Optional[httpx.BaseTransport] = None,
) -> int:
    """Run the CLI with ``argv`` (default ``sys.argv[1:]``) and return the exit code."""
    raw_args = list(sys.argv[1:] if argv is None else argv)
    args, json_mode = split_json_flag(raw_args)
    configure_logging()

    run_context = RunContext()
    invocation = Invocation(
        json_mode=json_mode,
        run_context=run_context,
        deps=Dependencies(ssh_runtime=ssh_runtime, http_transport=http_transport),
    )
    command = typer.main.get_command(app)

    try:
        with interrupt_scope(run_context):
            result = command.main(
                args=args,
                prog_name=PROG_NAME,
                standalone_mode=False,
                obj=invocation,
            )
    except HelpRequested:
        return EXIT_OK
    except click.UsageError as e:
        err = _usage_from_click(e)
        render_error(err, json_mode)
        return exit_code_for(err)
    except CLIError as e:
        render_error(e, json_mode)
        return exit_code_for(e)
    except click.Abort:
        render_error(Canceled(), json_mode)
        return EXIT_FAILURE
    except click.ClickException as e:
        render_error(CLIError(e.format_message()), json_mode)
        return e.exit_code
    except Exception as e:
        logger.debug("unexpected error", exc_info=True)
        render_error(CLIError(str(e) or e.__class__.__name__), json_mode)
        return EXIT_FAILURE

    if isinstance(result, int):
        return result
    return EXIT_OK


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
