"""CLI subcommands for agentcore (modes, tools, protocol, parse, sessions, config)."""

from __future__ import annotations

import json
import sys

import click
from rich.console import Console
from rich.table import Table

from agentcore.cli.output import print_message
from agentcore.types.messages import Message, SystemEvent, ToolUse

console = Console()


def _cwd(ctx: click.Context) -> str:
    return (ctx.obj or {}).get("cwd") or "."


@click.command("modes")
@click.pass_context
def modes_cmd(ctx: click.Context) -> None:
    """List built-in and custom modes."""
    from agentcore.modes.registry import ModeRegistry

    registry = ModeRegistry.load(_cwd(ctx))
    table = Table(title="Modes")
    table.add_column("Slug", style="bold")
    table.add_column("Name")
    table.add_column("Groups")
    table.add_column("Source", style="dim")
    for mode in registry:
        groups = []
        for entry in mode.groups:
            label = entry.group.value
            if entry.file_regex:
                label += f" ({entry.file_regex})"
            groups.append(label)
        table.add_row(mode.slug, mode.name, ", ".join(groups), mode.source)
    console.print(table)


@click.command("tools")
@click.option("--mode", "-m", "mode_slug", default=None, help="Only tools this mode may call")
@click.option("--native/--xml", default=True, help="Whether the provider carries native tool calls")
@click.pass_context
def tools_cmd(ctx: click.Context, mode_slug: str | None, native: bool) -> None:
    """List tools, optionally resolved for a mode."""
    from agentcore.core.config import load_config
    from agentcore.modes.registry import ModeRegistry
    from agentcore.tools.catalog import ToolCatalog
    from agentcore.types.config import AvailabilityContext
    from agentcore.types.providers import ProviderSettings

    cwd = _cwd(ctx)
    catalog = ToolCatalog()
    registry = ModeRegistry.load(cwd)
    if mode_slug is not None and mode_slug not in registry:
        click.echo(f"Error: unknown mode '{mode_slug}'. Known: {', '.join(registry.slugs())}", err=True)
        raise SystemExit(1)

    config = load_config(cwd)
    availability = AvailabilityContext(
        settings=config.settings,
        provider=ProviderSettings(supports_native_tools=native),
    )
    allowed = registry.resolve_allowed_tools(mode_slug, catalog, availability) if mode_slug else None

    table = Table(title=f"Tools ({mode_slug} mode)" if mode_slug else "Tools")
    table.add_column("Tool", style="bold")
    table.add_column("Group")
    table.add_column("Approval")
    table.add_column("Required")
    for definition in catalog:
        if allowed is not None and definition.name not in allowed:
            continue
        if definition.always_safe:
            approval = "never"
        elif definition.destructive:
            approval = "always"
        else:
            approval = definition.approval.value
        table.add_row(
            definition.name.value,
            definition.group.value,
            approval,
            ", ".join(definition.required_params) or "-",
        )
    console.print(table)


@click.command("protocol")
@click.argument("session_id")
@click.option("--provider", "-p", default="anthropic", help="Provider name to resolve against")
@click.option("--native/--xml", default=True, help="Whether the provider carries native tool calls")
def protocol_cmd(session_id: str, provider: str, native: bool) -> None:
    """Show which tool protocol a stored task resumes with."""
    from agentcore.core.session import Session
    from agentcore.protocol.detector import ToolProtocol, detect_from_history, resolve_protocol
    from agentcore.types.providers import ProviderSettings

    if not Session.exists(session_id):
        click.echo(f"Error: no session '{session_id}'", err=True)
        raise SystemExit(1)

    session = Session(session_id=session_id)
    stored = session.tool_protocol
    detected = detect_from_history(session.messages)
    locked = ToolProtocol(stored) if stored in ("native", "xml") else detected
    resolved = resolve_protocol(
        ProviderSettings(provider=provider, supports_native_tools=native), locked,
    )

    click.echo(f"Session:   {session_id}")
    click.echo(f"Stored:    {stored or '(none)'}")
    click.echo(f"History:   {detected.value if detected else '(no tool calls)'}")
    click.echo(f"Resolved:  {resolved.value}{' (locked)' if locked else ''}")


def parse_messages(text: str, protocol: str, name: str | None, chunk: int) -> list[Message]:
    """Run *text* through the invocation parser the way a model stream would."""
    from agentcore.protocol.detector import ToolProtocol
    from agentcore.protocol.parser import NeedMoreInput, ParseError, ToolInvocation, ToolInvocationParser
    from agentcore.tools.catalog import ToolCatalog
    from agentcore.types.providers import NativeToolCall

    parser = ToolInvocationParser(ToolCatalog())
    parser.begin_turn()
    proto = ToolProtocol(protocol)
    messages: list[Message] = []

    if proto is ToolProtocol.NATIVE:
        outcomes = [parser.parse(NativeToolCall("cli", name or "", text), proto, partial=False)]
    else:
        size = chunk if chunk > 0 else max(len(text), 1)
        pieces = [text[i:i + size] for i in range(0, len(text), size)] or [""]
        # Mid-stream only partials are shown; the closing parse reports the call.
        outcomes = [
            o for o in (parser.parse(piece, proto, partial=True) for piece in pieces)
            if isinstance(o, NeedMoreInput)
        ]
        outcomes.append(parser.parse("", proto, partial=False))

    for outcome in outcomes:
        match outcome:
            case NeedMoreInput(invocation=ToolInvocation() as inv):
                messages.append(ToolUse(id="", name=inv.name, args=inv.params, partial=True))
            case ToolInvocation():
                messages.append(ToolUse(id=outcome.call_id or "", name=outcome.name, args=outcome.params))
            case ParseError(tool_name=tool, message=message):
                messages.append(SystemEvent(type="parse_error", data={"tool": tool, "message": message}))
    if proto is ToolProtocol.XML and (ignored := parser.ignored_blocks()):
        messages.append(SystemEvent(type="ignored_tool_blocks", data={"tools": ignored}))
    return messages


@click.command("parse")
@click.argument("text", required=False)
@click.option("--protocol", type=click.Choice(["xml", "native"]), default="xml", help="Tool-call protocol")
@click.option("--name", default=None, help="Tool name (native protocol; TEXT is the JSON arguments)")
@click.option("--chunk", default=0, help="Stream XML in chunks of this many characters")
@click.option("--json", "as_json", is_flag=True, help="Print the final invocation as JSON")
def parse_cmd(text: str | None, protocol: str, name: str | None, chunk: int, as_json: bool) -> None:
    """Parse a tool call from TEXT (or stdin) and show what the executor would get."""
    if text is None:
        text = sys.stdin.read()
    if protocol == "native" and not name:
        click.echo("Error: --name is required with --protocol native", err=True)
        raise SystemExit(1)

    messages = parse_messages(text, protocol, name, chunk)
    final = [m for m in messages if isinstance(m, ToolUse) and not m.partial]
    if as_json:
        click.echo(json.dumps([{"tool": m.name, "params": m.args} for m in final], indent=2))
    else:
        for msg in messages:
            print_message(msg)
            if isinstance(msg, ToolUse) and not msg.partial:
                click.echo(json.dumps(msg.args, indent=2))
    if not final:
        if not any(isinstance(m, SystemEvent) and m.type == "parse_error" for m in messages):
            click.echo("No tool call found.", err=True)
        raise SystemExit(1)


@click.group()
def sessions_cmd() -> None:
    """Inspect stored tasks."""


@sessions_cmd.command("list")
@click.option("--limit", "-n", default=20, help="Max sessions to show")
def sessions_list(limit: int) -> None:
    """List recent sessions."""
    from agentcore.core.session import list_sessions

    sessions = list_sessions()[:limit]
    if not sessions:
        click.echo("No sessions found.")
        return

    table = Table()
    table.add_column("Session ID", style="bold")
    table.add_column("Mode")
    table.add_column("Protocol")
    table.add_column("Turns", justify="right")
    table.add_column("Parent", style="dim")
    table.add_column("Updated")
    for s in sessions:
        table.add_row(
            s.session_id, s.mode, s.tool_protocol or "-", str(s.turns),
            s.parent_id or "", s.updated_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@click.group()
def config_cmd() -> None:
    """Inspect configuration."""


@config_cmd.command("list")
@click.pass_context
def config_list(ctx: click.Context) -> None:
    """Show the effective settings."""
    from agentcore.core.config import load_config, load_env_config

    cwd = _cwd(ctx)
    click.echo("Environment:")
    env = load_env_config()
    if env:
        for k, v in sorted(env.items()):
            click.echo(f"  {k}: {v}")
    else:
        click.echo("  (no environment variables set)")

    config = load_config(cwd)
    click.echo("\nSettings:")
    for field_name in sorted(config.settings.__dataclass_fields__):
        click.echo(f"  {field_name}: {getattr(config.settings, field_name)}")
    click.echo(f"\nHooks: {len(config.hooks)}")
