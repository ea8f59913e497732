"""Typer/click command classes shared by every command group.

``AgentlabGroup`` adds the dispatcher behaviour on top of ``TyperGroup``:

- a bare group or a ``help`` token prints that group's help and raises
  ``HelpRequested``
- an unknown subcommand raises a usage error with a ranked "did you mean"
  hint drawn from the commands registered at that level
- errors escaping a command get ``next: <command path> --help`` unless they
  already carry a next hint
"""

from typing import Any, Optional

import click
import typer
from typer.core import TyperCommand, TyperGroup

from agentlab.cli.errors import (
    CLIError,
    HelpRequested,
    UsageError,
    with_default_next,
)
from agentlab.cli.suggestions import best_suggestion

HELP_TOKEN = "help"
COMMAND_PATH_KEY = "agentlab.command_path"


def _print_help(ctx: click.Context) -> None:
    help_text = ctx.get_help()
    if help_text:
        typer.echo(help_text, color=ctx.color)


def usage_error(
    message: str,
    ctx: Optional[click.Context] = None,
    hints: Optional[list[str]] = None,
    show_usage: bool = False,
) -> UsageError:
    """Build a usage error for the command currently being run."""
    ctx = ctx or click.get_current_context(silent=True)
    next_hint = None
    usage = ""
    if ctx is not None:
        next_hint = f"{ctx.command_path} --help"
        usage = ctx.get_usage()
    return UsageError(
        message, next=next_hint, hints=hints, show_usage=show_usage, usage=usage
    )


class AgentlabGroup(TyperGroup):
    """Command group with suggestions, ``help`` token and default next hints."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        if not args and self.no_args_is_help and not ctx.resilient_parsing:
            _print_help(ctx)
            raise HelpRequested()
        return super().parse_args(ctx, args)

    def resolve_command(
        self, ctx: click.Context, args: list[str]
    ) -> tuple[Optional[str], Optional[click.Command], list[str]]:
        cmd_name = args[0] if args else None
        if cmd_name is not None and not ctx.resilient_parsing:
            if cmd_name == HELP_TOKEN and self.get_command(ctx, cmd_name) is None:
                _print_help(ctx)
                raise HelpRequested()
            if self.get_command(ctx, cmd_name) is None and not cmd_name.startswith("-"):
                raise self._unknown_command(ctx, cmd_name)
        name, cmd, rest = super().resolve_command(ctx, args)
        if name:
            ctx.meta[COMMAND_PATH_KEY] = f"{ctx.command_path} {name}"
        return name, cmd, rest

    def _unknown_command(self, ctx: click.Context, cmd_name: str) -> UsageError:
        candidates = [
            name
            for name in self.list_commands(ctx)
            if not getattr(self.get_command(ctx, name), "hidden", False)
        ]
        if ctx.parent is None:
            message = f'unknown command "{cmd_name}"'
        else:
            message = f'unknown {ctx.info_name} command "{cmd_name}"'
        hints = []
        suggestion = best_suggestion(cmd_name, candidates)
        if suggestion:
            hints.append(f'did you mean "{suggestion}"?')
        return UsageError(message, next=f"{ctx.command_path} --help", hints=hints)

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except CLIError as e:
            path = ctx.meta.get(COMMAND_PATH_KEY) or ctx.command_path
            with_default_next(e, f"{path} --help")
            raise


class AgentlabCommand(TyperCommand):
    """Leaf command that points failed invocations at its own help."""

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except CLIError as e:
            with_default_next(e, f"{ctx.command_path} --help")
            raise
