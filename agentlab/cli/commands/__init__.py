"""Subcommand handlers.

Each module exposes either a plain command function (registered on the root
app) or a Typer sub-app with its own commands.
"""
