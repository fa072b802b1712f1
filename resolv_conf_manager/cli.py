#!/usr/bin/env python3
"""
resolv-conf-manager CLI

Command-line interface for one-shot syncs, previews and the daemon.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from .daemon import LOG_FORMAT, main as daemon_main
from .errors import ResolvConfError
from .manager import ResolvConfManager
from .settings import load_settings

console = Console()


def format_status(manager: ResolvConfManager) -> Table:
    """Format the merged collections as a Rich table."""
    current = manager.current_dns_server
    table = Table(title=f"Resolver configuration ({manager.source_path})",
                  show_header=True, header_style="bold cyan")

    table.add_column("Type", style="bold")
    table.add_column("Value", style="green")
    table.add_column("Source", style="blue")
    table.add_column("Current", justify="center", style="yellow")

    servers = manager.all_dns_servers()
    for server in servers:
        table.add_row("nameserver", server.server_string, server.source.value,
                      "*" if server is current else "")

    if not servers:
        for server in manager.fallback_dns_servers:
            table.add_row("nameserver", server.server_string, server.source.value, "")

    for domain in manager.all_search_domains():
        table.add_row("search", domain.name, domain.source.value, "")

    return table


def cmd_sync(manager: ResolvConfManager, args) -> int:
    """Read the source file and publish the managed copy."""
    manager.write_resolv_conf()
    if not args.quiet:
        console.print(f"[green]✓[/green] Wrote {manager.managed_path}")
    return 0


def cmd_show(manager: ResolvConfManager, args) -> int:
    """Print what would be published."""
    sys.stdout.write(manager.render())
    return 0


def cmd_status(manager: ResolvConfManager, args) -> int:
    """Show merged servers, domains and reconciliation state."""
    outcome = manager.read_resolv_conf()

    if args.json:
        data = manager.to_dict()
        data["read_outcome"] = outcome.value
        print(json.dumps(data, indent=2))
        return 0

    console.print(format_status(manager))
    console.print(f"Read outcome: [bold]{outcome.value}[/bold]")
    state = manager.state
    if state.last_error:
        console.print(f"[red]Last error:[/red] {state.last_error.message}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="resolv-conf-manager",
        description="Keep a managed resolv.conf in sync with the system one"
    )
    parser.add_argument("--config", type=Path, help="Settings file (TOML)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    sync = subparsers.add_parser("sync", help="Read resolv.conf and publish the managed copy")
    sync.add_argument("-q", "--quiet", action="store_true", help="No output on success")

    subparsers.add_parser("show", help="Print the managed resolv.conf without writing it")

    status = subparsers.add_parser("status", help="Show known DNS servers and search domains")
    status.add_argument("--json", action="store_true", help="Output as JSON")

    subparsers.add_parser("daemon", help="Run the daemon in the foreground")

    return parser


COMMANDS = {
    "sync": cmd_sync,
    "show": cmd_show,
    "status": cmd_status,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT
    )

    if args.command == "daemon":
        asyncio.run(daemon_main(args.config))
        return 0

    try:
        settings = load_settings(args.config)
        manager = ResolvConfManager(settings)
        return COMMANDS[args.command](manager, args)
    except ResolvConfError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        if e.suggestion:
            console.print(f"[dim]{e.suggestion}[/dim]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
