"""Rich output formatting helpers for the GameCollector CLI.

Records are printed as one table per platform; errors follow in red and
warnings in yellow.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.text import Text

from gamecollector.core.records import ErrorMessage, GameRecord

if TYPE_CHECKING:
    from gamecollector.cli.scan import PlatformScan

console = Console()


def configure_logging(verbose: bool) -> None:
    """Route library logging through Rich at DEBUG level when ``verbose`` is set."""
    if not verbose:
        logging.getLogger("gamecollector").setLevel(logging.WARNING)
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    logging.getLogger("gamecollector").setLevel(logging.DEBUG)


def _status(record: GameRecord) -> Text:
    if record.is_installed:
        return Text("installed", style="bold green")
    if record.is_owned:
        return Text("owned", style="cyan")
    return Text("available", style="dim")


def _version(record: GameRecord) -> str:
    for key in ("InstalledVersion", "DefaultVersion"):
        values = record.get_metadata(key)
        if values:
            return values[0]
    return "-"


def print_error(error: ErrorMessage) -> None:
    """Print one error or warning line."""
    style = "yellow" if error.warning else "red"
    label = "warning" if error.warning else "error"
    console.print(Text(f"  {label}: {error.message}", style=style))


def print_scan_results(scans: list[PlatformScan]) -> None:
    """Print a table of records and the list of errors for each platform.

    Args:
        scans: Per-platform results, in scan order.
    """
    for scan in scans:
        console.print(f"[bold]{scan.platform.name}[/bold]")
        if scan.records:
            table = Table(show_header=True, header_style="bold")
            table.add_column("Id", style="dim")
            table.add_column("Name", style="bold")
            table.add_column("Status", justify="center")
            table.add_column("Version", justify="right")
            table.add_column("Problems")
            table.add_column("Path", style="dim")
            for record in scan.records:
                problems = ", ".join(sorted(p.name for p in record.problems)) or "-"
                table.add_row(
                    str(record.game_id),
                    record.name,
                    _status(record),
                    _version(record),
                    Text(problems, style="yellow" if record.problems else "dim"),
                    str(record.path) if record.path else "-",
                )
            console.print(table)
        elif not scan.errors:
            console.print("[dim]  No games found.[/dim]")
        for error in scan.errors:
            print_error(error)

    total_records = sum(len(s.records) for s in scans)
    total_errors = sum(len(s.errors) for s in scans)
    console.print(
        f"\n[bold]{total_records}[/bold] game(s), "
        f"[bold]{total_errors}[/bold] error(s) across {len(scans)} platform(s)"
    )


def print_platforms(rows: list[tuple[str, str, str, str | None, str | None]]) -> None:
    """Print the platform table.

    Args:
        rows: ``(short_name, name, os, root, error)`` per platform.
    """
    table = Table(title="Supported Platforms", show_header=True, header_style="bold")
    table.add_column("Platform", style="bold")
    table.add_column("Name")
    table.add_column("OS", style="dim")
    table.add_column("Data Root")

    for short_name, name, os_names, root, error in rows:
        location = Text(root, style="green") if root else Text(error or "not found", style="red")
        table.add_row(short_name, name, os_names, location)

    console.print(table)
