"""``gamecollector scan [PLATFORM...]`` -- Discover games.

Scans the given platforms, or every platform when none is named.

Exit Codes:
    0 -- At least one game was found.
    1 -- Every outcome was an error.
    2 -- Nothing was produced at all, or the configuration is invalid.
"""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from pathlib import Path

import click

from gamecollector.cli.output import configure_logging, print_scan_results
from gamecollector.config import Settings, default_config_path, load_settings
from gamecollector.core.records import ErrorMessage, GameRecord, Outcome
from gamecollector.discovery.engine import Collector
from gamecollector.discovery.models import Platform
from gamecollector.exceptions import GameCollectorError
from gamecollector.formats.blob import SchemaPolicy
from gamecollector.metadata.catalog import MetadataCatalog, enrich_outcomes
from gamecollector.stores.registry import PLATFORMS, get_platform, platform_names


@dataclass
class PlatformScan:
    """Outcomes of one platform, split by kind.

    Attributes:
        platform: The scanned platform.
        records: Games found.
        errors: Errors and warnings reported.
    """

    platform: Platform
    records: list[GameRecord] = field(default_factory=list)
    errors: list[ErrorMessage] = field(default_factory=list)

    def add(self, outcome: Outcome) -> None:
        if isinstance(outcome, ErrorMessage):
            self.errors.append(outcome)
        else:
            self.records.append(outcome)


def _load_settings(config_path: str | None) -> Settings:
    path = Path(config_path) if config_path else default_config_path()
    if path is None:
        return Settings()
    return load_settings(path)


def _scans_to_json(scans: list[PlatformScan]) -> dict:
    """Convert scan results to a JSON-serializable dict."""
    return {
        "platforms": [
            {
                "platform": scan.platform.short_name,
                "name": scan.platform.name,
                "records": [record.to_dict() for record in scan.records],
                "errors": [
                    {
                        "message": error.message,
                        "warning": error.warning,
                        "identity": error.identity,
                    }
                    for error in scan.errors
                ],
            }
            for scan in scans
        ],
        "summary": {
            "records": sum(len(s.records) for s in scans),
            "errors": sum(len(s.errors) for s in scans),
        },
    }


def run_scan(
    platforms: list[Platform],
    settings: Settings,
    override: str | None = None,
    catalog: MetadataCatalog | None = None,
) -> list[PlatformScan]:
    """Scan each platform and collect its outcomes.

    Args:
        platforms: Platforms to scan, in order.
        settings: Session settings.
        override: Explicit data root for a single platform.
        catalog: Metadata catalog used to enrich records.

    Returns:
        One ``PlatformScan`` per platform.
    """
    scans: list[PlatformScan] = []
    for platform in platforms:
        scan = PlatformScan(platform)
        outcomes = Collector(platform, settings=settings).find_all(override)
        if catalog is not None:
            outcomes = enrich_outcomes(outcomes, catalog)
        for outcome in outcomes:
            scan.add(outcome)
        scans.append(scan)
    return scans


@click.command("scan")
@click.argument(
    "platform_names_",
    metavar="[PLATFORM]...",
    nargs=-1,
    type=click.Choice(platform_names(), case_sensitive=False),
)
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format: text (default) or json.",
)
@click.option(
    "--override",
    type=click.Path(),
    default=None,
    help="Explicit data root. Requires exactly one PLATFORM.",
)
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML settings file (default: $GAMECOLLECTOR_CONFIG).",
)
@click.option(
    "--installed-only",
    is_flag=True,
    default=False,
    help="Only report installed games and skip catalog queries.",
)
@click.option(
    "--schema-policy",
    type=click.Choice([p.value for p in SchemaPolicy]),
    default=None,
    help="Reaction to unknown database schema versions (default: warn).",
)
@click.option(
    "--metadata", "snapshot",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Game database snapshot used to add genres and descriptions.",
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log debug output.")
def scan_command(
    platform_names_: tuple[str, ...],
    output_format: str,
    override: str | None,
    config_path: str | None,
    installed_only: bool,
    schema_policy: str | None,
    snapshot: str | None,
    verbose: bool,
) -> None:
    """Discover games on the named platforms (default: all).

    Exit code 0 if any game was found, 1 if only errors were reported.
    """
    if verbose:
        configure_logging(True)
    if override is not None and len(platform_names_) != 1:
        raise click.UsageError("--override requires exactly one PLATFORM")

    try:
        settings = _load_settings(config_path)
        catalog = MetadataCatalog.load(Path(snapshot)) if snapshot else None
    except GameCollectorError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    if installed_only:
        settings.installed_only = True
    if schema_policy is not None:
        settings.schema_policy = SchemaPolicy(schema_policy)

    selected = (
        [get_platform(name) for name in dict.fromkeys(n.lower() for n in platform_names_)]
        if platform_names_ else list(PLATFORMS)
    )
    scans = run_scan(selected, settings, override, catalog)

    if output_format == "json":
        click.echo(json.dumps(_scans_to_json(scans), indent=2))
    else:
        print_scan_results(scans)

    total_records = sum(len(s.records) for s in scans)
    total_errors = sum(len(s.errors) for s in scans)
    if total_records:
        sys.exit(0)
    sys.exit(1 if total_errors else 2)
