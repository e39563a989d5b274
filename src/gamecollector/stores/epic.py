"""Epic Games Store: JSON ``.item`` manifests."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from gamecollector.core.records import GameRecord, Problem
from gamecollector.discovery.adapters import DiscoveryContext, ManifestDirectoryAdapter
from gamecollector.discovery.location import DefaultLocation, LocationStrategy, RegistryLocation
from gamecollector.discovery.models import Platform
from gamecollector.exceptions import FieldMissingError, ParseError
from gamecollector.host.filesystem import KnownPath
from gamecollector.host.registry import RegistryHive

logger = logging.getLogger(__name__)

_REQUIRED = ("CatalogItemId", "DisplayName", "InstallLocation")


def _require(item: dict[str, Any], key: str, manifest: Path) -> str:
    value = item.get(key)
    if not isinstance(value, str) or not value:
        raise FieldMissingError(f'Manifest {manifest} does not have a value "{key}"', key, manifest)
    return value


def _optional(item: dict[str, Any], key: str) -> str:
    value = item.get(key)
    return value if isinstance(value, str) else ""


class EpicManifestAdapter(ManifestDirectoryAdapter):
    """Reads ``*.item`` manifests written by the Epic Games Launcher."""

    pattern = "*.item"
    empty_message = "The manifest directory {directory} does not contain any .item files"

    def decode(self, manifest: Path, directory: Path, context: DiscoveryContext) -> GameRecord:
        fs = context.filesystem
        try:
            item = json.loads(fs.read_text(manifest))
        except ValueError as exc:
            raise ParseError(f"Manifest {manifest} is not valid JSON: {exc}") from exc
        if not isinstance(item, dict):
            raise ParseError(f"Manifest {manifest} is not a JSON object")

        catalog_id, name, location = (_require(item, key, manifest) for key in _REQUIRED)
        path = Path(location)

        problems: set[Problem] = set()
        if item.get("bIsIncompleteInstall") is True:
            problems.add(Problem.INCOMPLETE)
        if not fs.is_dir(path):
            problems.add(Problem.NOT_FOUND_ON_DISK)

        executable = _optional(item, "LaunchExecutable")
        app_name = _optional(item, "AppName")
        version = _optional(item, "AppVersionString")
        metadata: dict[str, list[str]] = {}
        if app_name:
            metadata["AppName"] = [app_name]
        if version:
            metadata["InstalledVersion"] = [version]
        main_id = _optional(item, "MainGameCatalogItemId")
        if main_id and main_id != catalog_id:
            metadata["BaseGame"] = [main_id]

        return GameRecord(
            platform="egs",
            game_id=catalog_id,
            name=name,
            path=path,
            launch=str(path / executable) if executable else "",
            launch_args=_optional(item, "LaunchCommand"),
            launch_url=(
                f"com.epicgames.launcher://apps/{app_name}?action=launch&silent=true"
                if app_name else ""
            ),
            problems=frozenset(problems),
            metadata=metadata,
        )


EPIC = Platform(
    name="Epic Games Store",
    short_name="egs",
    locations=LocationStrategy(
        registry=(
            RegistryLocation(
                RegistryHive.CURRENT_USER, r"Software\Epic Games\EOS", "ModSdkMetadataDir"
            ),
        ),
        defaults=(
            DefaultLocation(
                ("Epic", "EpicGamesLauncher", "Data", "Manifests"),
                base=KnownPath.COMMON_APP_DATA,
                os="windows",
            ),
        ),
    ),
    adapter=EpicManifestAdapter(),
)
