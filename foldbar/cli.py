"""Command line front end.

    foldbar status               one snapshot, then exit
    foldbar watch                live view, refreshed every refresh_interval
    foldbar pause --group gpu    pause / fold / finish, optionally per group
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import replace

from rich.console import Console
from rich.live import Live

from foldbar.client import FoldingClient
from foldbar.config import ClientConfig, resolve_config
from foldbar.display import render_state
from foldbar.events import StateUpdated, StatusChanged
from foldbar.exceptions import ConfigurationError
from foldbar.observability.logging import LogConfig, setup_logging, teardown_logging

_ACTIONS = ("pause", "fold", "finish")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="foldbar", description="Observe and control a local folding agent.")
    parser.add_argument("--host", help="agent host (default: localhost)")
    parser.add_argument("--port", type=int, help="agent port (default: 7396)")
    parser.add_argument("--mock", action="store_true", default=None, help="show mock data")
    parser.add_argument("--timeout", type=float, default=5.0, help="seconds to wait for the agent")
    parser.add_argument(
        "--log-level",
        choices=("TRACE", "DEBUG", "INFO", "WARNING", "ERROR"),
        help="log to stderr at this level",
    )

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("status", help="print the agent's current state")
    sub.add_parser("watch", help="live view of the agent's state")
    for action in _ACTIONS:
        cmd = sub.add_parser(action, help=f"send '{action}' to the agent")
        cmd.add_argument("--group", help="target one group ('' is the default group)")
    return parser


async def _status(client: FoldingClient, console: Console, timeout: float) -> int:
    client.connect()
    state = await client.wait_for_state(timeout)
    console.print(render_state(state, status=client.connection_status, error=client.last_error))
    return 0 if state is not None else 1


async def _watch(client: FoldingClient, console: Console) -> int:
    interval = client.config.refresh_interval

    def render():
        return render_state(
            client.client_state,
            status=client.connection_status,
            error=client.last_error,
        )

    with Live(render(), console=console, refresh_per_second=4) as live:
        client.subscribe(lambda _: live.update(render()), StateUpdated, StatusChanged)
        client.connect()
        while True:
            await asyncio.sleep(interval)
            client.refresh()


async def _command(client: FoldingClient, console: Console, action: str, group: str | None, timeout: float) -> int:
    client.connect()
    if await client.wait_for_state(timeout) is None:
        console.print(f"[red]Agent not reachable:[/red] {client.last_error or client.connection_status}")
        return 1

    getattr(client, action)(group)
    await client.flush()
    if client.last_error:
        console.print(f"[red]{client.last_error}[/red]")
        return 1
    target = "all groups" if group is None else f"group {group!r}"
    console.print(f"Sent [bold]{action}[/bold] to {target}")
    return 0


async def _run(args: argparse.Namespace, config: ClientConfig, console: Console) -> int:
    async with FoldingClient.create(config) as client:
        match args.command:
            case "status":
                return await _status(client, console, args.timeout)
            case "watch":
                return await _watch(client, console)
            case action:
                return await _command(client, console, action, args.group, args.timeout)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    console = Console()

    try:
        config = resolve_config(host=args.host, port=args.port, mock=args.mock)
    except (ConfigurationError, TypeError) as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        return 2

    if args.log_level:
        config = replace(config, log=replace(config.log, level=args.log_level, console=True))
    handler_ids = setup_logging(config.log) if _logging_wanted(config.log) else []

    try:
        return asyncio.run(_run(args, config, console))
    except KeyboardInterrupt:
        return 130
    finally:
        teardown_logging(handler_ids)


def _logging_wanted(log: LogConfig) -> bool:
    return log.console or bool(log.file)


if __name__ == "__main__":
    sys.exit(main())
