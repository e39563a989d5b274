"""Steam: library folders and ``appmanifest_*.acf`` manifests.

The Steam root holds ``steamapps/libraryfolders.vdf``, which lists every
library folder through numbered children::

    "libraryfolders"
    {
        "0" { "path" "C:\\\\Program Files (x86)\\\\Steam" ... }
        "1" { "path" "D:\\\\SteamLibrary" ... }
    }

Each library's ``steamapps`` directory contains one ``.acf`` manifest per
installed app with root ``AppState``. Games are installed to
``<library>/steamapps/common/<installdir>``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import datetime, timezone
from pathlib import Path

from gamecollector.core.identity import ORDINAL
from gamecollector.core.records import ErrorMessage, GameRecord, Problem
from gamecollector.discovery.adapters import DiscoveryContext, ManifestDirectoryAdapter
from gamecollector.discovery.location import (
    DefaultLocation,
    LocationStrategy,
    RegistryLocation,
    SourceRoot,
)
from gamecollector.discovery.models import Platform
from gamecollector.exceptions import ParseError
from gamecollector.formats import keyvalues
from gamecollector.host.filesystem import KnownPath
from gamecollector.host.registry import RegistryHive

logger = logging.getLogger(__name__)

LIBRARY_FOLDERS_FILE = "steamapps/libraryfolders.vdf"

# AppState.StateFlags bits
_FULLY_INSTALLED = 4
_FILES_MISSING = 32
_FILES_CORRUPT = 128


def _state_problems(flags: int | None) -> set[Problem]:
    problems: set[Problem] = set()
    if flags is None:
        return problems
    if not flags & _FULLY_INSTALLED:
        problems.add(Problem.INSTALL_PENDING)
    if flags & _FILES_MISSING:
        problems.add(Problem.NOT_FOUND_ON_DISK)
    if flags & _FILES_CORRUPT:
        problems.add(Problem.FAILED_TO_VERIFY)
    return problems


class SteamLibraryAdapter(ManifestDirectoryAdapter):
    """Reads app manifests from every library listed by the Steam root."""

    pattern = "*.acf"
    empty_message = "Library folder {directory} does not contain any manifests"

    def directories(
        self, root: SourceRoot, context: DiscoveryContext
    ) -> Iterator[Path | ErrorMessage]:
        fs = context.filesystem
        folders_file = root.path / LIBRARY_FOLDERS_FILE
        try:
            with fs.open_binary(folders_file) as fh:
                tree = keyvalues.load(fh, "libraryfolders", source=folders_file)
        except (ParseError, OSError) as exc:
            yield ErrorMessage(f"Unable to parse {folders_file}: {exc}", cause=exc)
            return

        libraries: list[Path] = []
        for index, node in tree.numeric_children():
            # Old clients store the path directly as the value.
            path = node.text if node.is_leaf else node.get_str("path")
            if not path:
                yield ErrorMessage(f"Library folder #{index} in {folders_file} does not have a path")
                continue
            libraries.append(Path(path) / "steamapps")

        if not libraries:
            yield ErrorMessage(f"Found no Steam Libraries in {folders_file}")
            return

        for library in libraries:
            if not fs.is_dir(library):
                yield ErrorMessage(f"Steam Library {library} does not exist!")
                continue
            logger.debug("Found Steam library %s", library)
            yield library

    def decode(self, manifest: Path, directory: Path, context: DiscoveryContext) -> GameRecord:
        return parse_app_manifest(manifest, directory, context)


def _timestamp(seconds: int | None, manifest: Path) -> datetime | None:
    if not seconds:
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        logger.debug("Ignoring out-of-range LastPlayed %d in %s", seconds, manifest)
        return None


def parse_app_manifest(
    manifest: Path, library: Path, context: DiscoveryContext
) -> GameRecord:
    """Read one ``appmanifest_*.acf`` file.

    Args:
        manifest: Path of the manifest.
        library: The library's ``steamapps`` directory.
        context: Capabilities; only the filesystem is used.

    Raises:
        ParseError: If the file is malformed or its root is not ``AppState``.
        FieldMissingError: If ``appid``, ``name`` or ``installdir`` is absent.
    """
    fs = context.filesystem
    with fs.open_binary(manifest) as fh:
        state = keyvalues.load(fh, "AppState", source=manifest)

    app_id = state.require_int("appid", manifest)
    name = state.require_str("name", manifest)
    install_dir = state.require_str("installdir", manifest)
    path = library / "common" / install_dir

    problems = _state_problems(state.get_int("StateFlags"))
    if not fs.is_dir(path):
        problems.add(Problem.NOT_FOUND_ON_DISK)

    last_played = state.get_int("LastPlayed")
    metadata: dict[str, list[str]] = {}
    for key, label in (("buildid", "BuildId"), ("SizeOnDisk", "SizeOnDisk")):
        value = state.get_str(key)
        if value:
            metadata[label] = [value]

    return GameRecord(
        platform="steam",
        game_id=app_id,
        name=name,
        path=path,
        launch_url=f"steam://rungameid/{app_id}",
        uninstall_url=f"steam://uninstall/{app_id}",
        last_run_date=_timestamp(last_played, manifest),
        problems=frozenset(problems),
        metadata=metadata,
    )


def _build_locations() -> LocationStrategy:
    return LocationStrategy(
        registry=(
            RegistryLocation(RegistryHive.CURRENT_USER, r"Software\Valve\Steam", "SteamPath"),
        ),
        defaults=(
            DefaultLocation(("Steam",), base=KnownPath.PROGRAM_FILES_X86, os="windows"),
            DefaultLocation(("Steam",), base=KnownPath.LOCAL_APP_DATA, os="linux"),
            DefaultLocation((".steam", "debian-installation"), os="linux"),
            DefaultLocation(
                (".var", "app", "com.valvesoftware.Steam", "data", "Steam"), os="linux"
            ),
            DefaultLocation((".steam", "steam"), os="linux"),
            DefaultLocation((".steam",), os="linux"),
            DefaultLocation((".local", ".steam"), os="linux"),
            DefaultLocation(("Steam",), base=KnownPath.APPLICATION_SUPPORT, os="macos"),
        ),
        marker=LIBRARY_FOLDERS_FILE,
    )


STEAM = Platform(
    name="Steam",
    short_name="steam",
    locations=_build_locations(),
    adapter=SteamLibraryAdapter(),
    comparer=ORDINAL,
    os=("windows", "linux", "macos"),
)
