"""Windows Package Manager (winget): installed list and tag search.

``winget list`` prints a fixed-width table of everything installed,
including programs winget did not install itself. Those carry identities
such as ``ARP\\Machine\\X64\\{GUID}`` that point into the Windows uninstall
key, which is read for the install location and uninstall command.

``winget search --tag <tag>`` lists catalog entries; its ``Version`` column
is the version the catalog currently offers.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from gamecollector.core.records import GameRecord, Outcome
from gamecollector.discovery.adapters import CliTableAdapter, DiscoveryContext
from gamecollector.discovery.location import DefaultLocation, LocationStrategy
from gamecollector.discovery.models import Platform
from gamecollector.exceptions import ParseError
from gamecollector.formats.columnar import TableRow
from gamecollector.host.filesystem import KnownPath
from gamecollector.host.registry import Registry, RegistryHive, RegistryView

logger = logging.getLogger(__name__)

UNINSTALL_KEY = r"Software\Microsoft\Windows\CurrentVersion\Uninstall"
DEFAULT_TAGS = ("game",)
_COMMON_ARGS = ("--nowarn", "--disable-interactivity")

_ARP_HIVES = {"machine": RegistryHive.LOCAL_MACHINE, "user": RegistryHive.CURRENT_USER}
_ARP_VIEWS = {"x64": RegistryView.REGISTRY64, "x86": RegistryView.REGISTRY32}


def parse_install_date(value: str | None) -> datetime | None:
    """Parse the uninstall key's ``yyyyMMdd`` install date."""
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), "%Y%m%d")
    except ValueError:
        logger.debug("Ignoring install date %r", value)
        return None


def read_arp_entry(registry: Registry, package_id: str) -> dict[str, str]:
    """Read the uninstall key an ``ARP\\<scope>\\<arch>\\<key>`` identity points at.

    Returns:
        The string values found, keyed by value name.

    Raises:
        ParseError: If the identity is malformed or the key does not exist.
    """
    parts = package_id.split("\\", 3)
    if len(parts) != 4 or parts[1].lower() not in _ARP_HIVES or parts[2].lower() not in _ARP_VIEWS:
        raise ParseError(f"{package_id} is not a valid ARP identifier")
    hive = _ARP_HIVES[parts[1].lower()]
    view = _ARP_VIEWS[parts[2].lower()]
    key_path = f"{UNINSTALL_KEY}\\{parts[3]}"
    with registry.open_base_key(hive, view) as base:
        key = base.open_subkey(key_path)
        if key is None:
            raise ParseError(f"Unable to open registry key {hive.value}\\{key_path} for {package_id}")
        with key:
            values = {}
            for name in (
                "DisplayName",
                "DisplayIcon",
                "HelpLink",
                "InstallDate",
                "InstallLocation",
                "Publisher",
                "UninstallString",
                "URLInfoAbout",
            ):
                value = key.get_string(name)
                if value:
                    values[name] = value
            return values


class WingetInstalledAdapter(CliTableAdapter):
    """Reads ``winget list``."""

    executable = "winget.exe"
    header_marker = "Name"
    id_column = "Id"
    min_columns = 3
    requery_min_columns = 3

    def queries(self, context: DiscoveryContext) -> Sequence[Sequence[str]]:
        return [["list", *_COMMON_ARGS]]

    def requery_args(self, row: TableRow, prefix: str) -> Sequence[str]:
        source = row.get("Source") or "winget"
        return ["list", "--id", prefix, "--source", source, *_COMMON_ARGS]

    def to_record(self, row: TableRow, context: DiscoveryContext) -> Outcome:
        package_id = row.get("Id")
        metadata: dict[str, list[str]] = {}
        if row.get("Version"):
            metadata["InstalledVersion"] = [row.get("Version")]
        if row.get("Available"):
            metadata["AvailableVersion"] = [row.get("Available")]
        if row.get("Source"):
            metadata["Source"] = [row.get("Source")]

        record = GameRecord(
            platform="winget",
            game_id=package_id,
            name=row.get("Name"),
            uninstall="winget",
            uninstall_args=f"uninstall --id {package_id}",
            metadata=metadata,
        )
        if (
            context.registry is None
            or not context.settings.expand_registry
            or not package_id.upper().startswith("ARP\\")
        ):
            return record

        values = read_arp_entry(context.registry, package_id)
        if values.get("Publisher"):
            metadata["Publisher"] = [values["Publisher"]]
        if values.get("URLInfoAbout"):
            metadata["WebInfo"] = [values["URLInfoAbout"]]
        if values.get("HelpLink"):
            metadata["WebSupport"] = [values["HelpLink"]]
        location = values.get("InstallLocation", "").strip('"')
        return GameRecord(
            platform="winget",
            game_id=package_id,
            name=record.name or values.get("DisplayName", ""),
            path=Path(location) if location else None,
            icon=values.get("DisplayIcon", ""),
            uninstall=values.get("UninstallString", ""),
            install_date=parse_install_date(values.get("InstallDate")),
            metadata=metadata,
        )


class WingetCatalogAdapter(CliTableAdapter):
    """Reads ``winget search --tag`` for each configured tag."""

    executable = "winget.exe"
    header_marker = "Name"
    id_column = "Id"
    min_columns = 3
    requery_min_columns = 3

    def queries(self, context: DiscoveryContext) -> Sequence[Sequence[str]]:
        return [
            ["search", "--tag", tag, "--source", "winget", *_COMMON_ARGS]
            for tag in context.settings.queries_for("winget", DEFAULT_TAGS)
        ]

    def requery_args(self, row: TableRow, prefix: str) -> Sequence[str]:
        return ["search", "--id", prefix, "--source", "winget", *_COMMON_ARGS]

    def to_record(self, row: TableRow, context: DiscoveryContext) -> Outcome:
        package_id = row.get("Id")
        metadata: dict[str, list[str]] = {"Source": [row.get("Source") or "winget"]}
        if row.get("Version"):
            metadata["DefaultVersion"] = [row.get("Version")]
        return GameRecord(
            platform="winget",
            game_id=package_id,
            name=row.get("Name"),
            is_installed=False,
            is_owned=False,
            metadata=metadata,
        )


WINGET = Platform(
    name="winget",
    short_name="winget",
    locations=LocationStrategy(
        defaults=(
            DefaultLocation(
                ("Microsoft", "WindowsApps"), base=KnownPath.LOCAL_APP_DATA, os="windows"
            ),
        ),
        marker="winget.exe",
    ),
    adapter=WingetInstalledAdapter(),
    catalog=WingetCatalogAdapter(),
)
