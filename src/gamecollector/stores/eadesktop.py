"""EA Desktop (formerly Origin): the encrypted ``IS`` install database.

EA Desktop keeps one file for all users of the machine at
``%ProgramData%\\EA Desktop\\<all-users folder>\\IS``. It is AES encrypted
with a key derived from the machine's hardware identifiers (see
``gamecollector.formats.crypto``) and decrypts to::

    {"installInfos": [{"softwareId": ..., "baseSlug": ..., "baseInstallPath": ...}],
     "schema": {"version": 21}}
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from gamecollector.core.records import ErrorMessage, GameRecord, Outcome, Problem
from gamecollector.discovery.adapters import DiscoveryContext, FormatAdapter
from gamecollector.discovery.location import DefaultLocation, LocationStrategy, SourceRoot
from gamecollector.discovery.models import Platform
from gamecollector.exceptions import FieldMissingError
from gamecollector.formats.blob import Envelope, get_field, parse_blob
from gamecollector.formats.crypto import CimHardwareInfoProvider
from gamecollector.host.filesystem import KnownPath

logger = logging.getLogger(__name__)

ALL_USERS_FOLDER = "530c11479fe252fc5aabc24935b9776d4900eb3ba58fdc271e0d6229413ad40e"
INSTALL_INFO_FILE = f"{ALL_USERS_FOLDER}/IS"
SUPPORTED_SCHEMA_VERSION = 21

INSTALL_INFO_ENVELOPE = Envelope(
    records_key="installInfos",
    version_path=("schema", "version"),
    supported_version=SUPPORTED_SCHEMA_VERSION,
    label="InstallInfoFile",
    records_label="infos",
)


def _text(info: dict[str, Any], key: str) -> str:
    value = get_field(info, key)
    return value.strip() if isinstance(value, str) else ""


def install_info_to_record(index: int, info: dict[str, Any], context: DiscoveryContext) -> GameRecord:
    """Convert one ``installInfos`` entry.

    Raises:
        FieldMissingError: If ``softwareId``, ``baseSlug`` or
            ``baseInstallPath`` is missing or empty.
    """
    software_id = _text(info, "softwareId")
    if not software_id:
        raise FieldMissingError(
            f'InstallInfo #{index} does not have the value "softwareId"', "softwareId", f"#{index}"
        )
    slug = _text(info, "baseSlug")
    if not slug:
        raise FieldMissingError(
            f'InstallInfo #{index} for {software_id} does not have the value "baseSlug"',
            "baseSlug",
            software_id,
        )
    install_path = _text(info, "baseInstallPath")
    if not install_path:
        raise FieldMissingError(
            f'InstallInfo #{index} for {software_id} ({slug}) does not have the value '
            f'"baseInstallPath"',
            "baseInstallPath",
            software_id,
        )

    path = Path(install_path)
    problems: set[Problem] = set()
    if not context.filesystem.is_dir(path):
        problems.add(Problem.NOT_FOUND_ON_DISK)

    uninstall = get_field(info, "localUninstallProperties")
    uninstall = uninstall if isinstance(uninstall, dict) else {}
    metadata: dict[str, list[str]] = {}
    version = _text(info, "installedVersion")
    if version:
        metadata["InstalledVersion"] = [version]
    if _text(info, "dlcSubPath"):
        metadata["DlcSubPath"] = [_text(info, "dlcSubPath")]

    return GameRecord(
        platform="ea",
        game_id=software_id,
        name=slug,
        path=path,
        launch=_text(info, "executablePath"),
        uninstall=_text(uninstall, "uninstallCommand"),
        uninstall_args=_text(uninstall, "uninstallParameters"),
        problems=frozenset(problems),
        metadata=metadata,
    )


class EADesktopAdapter(FormatAdapter):
    """Decrypts the install database and yields one outcome per entry."""

    def enumerate(self, root: SourceRoot, context: DiscoveryContext) -> Iterator[Outcome]:
        fs = context.filesystem
        blob_file = root.path / INSTALL_INFO_FILE
        try:
            data = fs.read_bytes(blob_file)
        except OSError as exc:
            yield ErrorMessage(f"Unable to read {blob_file}: {exc}", cause=exc)
            return

        provider = context.hardware or CimHardwareInfoProvider(context.runner)
        infos, errors = parse_blob(
            data,
            INSTALL_INFO_ENVELOPE,
            source=blob_file,
            key_provider=provider,
            policy=context.settings.schema_policy,
        )
        yield from errors
        for index, info in enumerate(infos):
            try:
                yield install_info_to_record(index, info, context)
            except FieldMissingError as exc:
                identity = exc.source if exc.field != "softwareId" else None
                yield ErrorMessage(str(exc), cause=exc, identity=identity)
            except Exception as exc:
                logger.warning("Failed to convert install entry #%d", index, exc_info=True)
                yield ErrorMessage(
                    f"Unable to read install entry #{index} of {blob_file}: {exc}", cause=exc
                )


EA_DESKTOP = Platform(
    name="EA Desktop",
    short_name="ea",
    locations=LocationStrategy(
        defaults=(
            DefaultLocation(("EA Desktop",), base=KnownPath.COMMON_APP_DATA, os="windows"),
        ),
        marker=INSTALL_INFO_FILE,
    ),
    adapter=EADesktopAdapter(),
)
