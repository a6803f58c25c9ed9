"""CLI entry point for agentcore."""

from __future__ import annotations

import logging

import click


@click.group()
@click.option("--cwd", default=None, help="Workspace directory (defaults to the current one)")
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging")
@click.version_option(package_name="agentcore")
@click.pass_context
def cli(ctx: click.Context, cwd: str | None, verbose: bool) -> None:
    """agentcore -- inspect modes, tools, protocols and tool-call parsing.

    \b
    Usage:
      agentcore modes
      agentcore tools --mode ask
      agentcore protocol 3f2a9c1b7d4e
      agentcore parse '<read_file><path>a.py</path></read_file>'
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)
    ctx.ensure_object(dict)
    ctx.obj["cwd"] = cwd


def _register_subcommands() -> None:
    """Register CLI subcommands."""
    from agentcore.cli.commands import (
        config_cmd,
        modes_cmd,
        parse_cmd,
        protocol_cmd,
        sessions_cmd,
        tools_cmd,
    )

    cli.add_command(modes_cmd, "modes")
    cli.add_command(tools_cmd, "tools")
    cli.add_command(protocol_cmd, "protocol")
    cli.add_command(parse_cmd, "parse")
    cli.add_command(sessions_cmd, "sessions")
    cli.add_command(config_cmd, "config")


_register_subcommands()


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
