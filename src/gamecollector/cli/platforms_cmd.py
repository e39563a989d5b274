"""``gamecollector platforms`` -- List supported platforms.

Shows every platform with the data root the resolver finds on this
machine, or the reason it found none.
"""

from __future__ import annotations

import json

import click

from gamecollector.discovery.engine import Collector
from gamecollector.stores.registry import PLATFORMS


@click.command("platforms")
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format: text (default) or json.",
)
def platforms_command(output_format: str) -> None:
    """List supported platforms and where their data was found."""
    rows: list[tuple[str, str, str, str | None, str | None]] = []
    for platform in PLATFORMS:
        root, error = Collector(platform).resolve()
        rows.append((
            platform.short_name,
            platform.name,
            ", ".join(platform.os),
            str(root.path) if root else None,
            error.message if error else None,
        ))

    if output_format == "json":
        payload = [
            {"platform": short, "name": name, "os": os_names.split(", "), "root": root, "error": error}
            for short, name, os_names, root, error in rows
        ]
        click.echo(json.dumps(payload, indent=2))
        return

    from gamecollector.cli.output import print_platforms
    print_platforms(rows)
