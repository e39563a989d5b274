"""Chocolatey: installed packages and tag search.

``choco list --limit-output`` prints installed packages as ``id|version``.

``choco search <tag> --by-tag-only --verbose`` prints one block per
package::

    steam-client 2.10.91.91 [Approved] Downloads cached for licensed users
     Title: Steam | Published: 5/3/2023
     Number of Downloads: 1234567 | Downloads for this version: 4321
     Tags: steam games valve
     Software Site: https://store.steampowered.com/
     Summary: Steam client
     Description: Steam is the ultimate destination
       for playing games.
    12 packages found.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from gamecollector.core.records import ErrorMessage, GameRecord, Outcome
from gamecollector.discovery.adapters import DiscoveryContext, FormatAdapter
from gamecollector.discovery.location import DefaultLocation, LocationStrategy, SourceRoot
from gamecollector.discovery.models import Platform
from gamecollector.exceptions import ToolError
from gamecollector.host.filesystem import KnownPath

logger = logging.getLogger(__name__)

EXECUTABLE = "bin/choco.exe"
DEFAULT_TAGS = ("game", "games")
_REMOVE_ONLY = "(remove only)"
_END_MARKERS = ("packages found.", "packages installed.")

# Verbose detail label -> ChocoPackage attribute
_DETAILS = {
    "summary": "summary",
    "description": "description",
    "tags": "tags",
    "software site": "site",
    "software source": "source_code",
    "software license": "license",
    "documentation": "docs",
    "issues": "issues",
    "release notes": "release_notes",
}
_IGNORED_DETAILS = frozenset({
    "chocolatey package source",
    "mailing list",
    "remembered package arguments",
})


@dataclass
class ChocoPackage:
    """One package block of ``choco search --verbose`` output."""

    package_id: str
    version: str = ""
    notes: str = ""
    title: str = ""
    published: str = ""
    remove_only: bool = False
    num_downloads: str = ""
    ver_downloads: str = ""
    summary: str = ""
    description: str = ""
    tags: str = ""
    site: str = ""
    source_code: str = ""
    license: str = ""
    docs: str = ""
    issues: str = ""
    release_notes: str = ""
    _last_detail: str | None = field(default=None, repr=False, compare=False)

    @property
    def approved(self) -> bool:
        return "[Approved]" in self.notes

    @property
    def cached(self) -> bool:
        return "cached" in self.notes

    @property
    def broken(self) -> bool:
        return "broken" in self.notes

    def apply_detail(self, text: str) -> None:
        """Fold one indented detail line into the package."""
        label, sep, rest = text.partition(":")
        key = label.strip().lower()
        if sep and key == "title":
            self._last_detail = None
            title, _, published = rest.partition("|")
            self.title = title.strip()
            if self.title.lower().endswith(_REMOVE_ONLY):
                self.title = self.title[: -len(_REMOVE_ONLY)].strip()
                self.remove_only = True
            _, _, date = published.partition(":")
            self.published = _normalize_date(date.strip())
        elif sep and key == "number of downloads":
            self._last_detail = None
            total, _, per_version = rest.partition("|")
            self.num_downloads = total.strip()
            self.ver_downloads = per_version.partition(":")[2].strip()
        elif sep and key in _DETAILS:
            self._last_detail = _DETAILS[key]
            setattr(self, self._last_detail, rest.strip())
        elif sep and (key in _IGNORED_DETAILS or key.startswith("package")):
            self._last_detail = None
        elif self._last_detail is not None:
            # Continuation of a multi-line value.
            current = getattr(self, self._last_detail)
            setattr(self, self._last_detail, f"{current}\n{text}" if current else text)


def _normalize_date(value: str) -> str:
    for fmt in ("%m/%d/%Y", "%Y-%m-%d", "%d.%m.%Y"):
        try:
            return datetime.strptime(value, fmt).date().isoformat()
        except ValueError:
            continue
    return value


def parse_package_listing(output: str) -> Iterator[ChocoPackage | ErrorMessage]:
    """Parse ``choco search --verbose`` output into package blocks.

    Yields:
        A ``ChocoPackage`` per block, or an ``ErrorMessage`` for a header
        line without a version.
    """
    current: ChocoPackage | None = None
    for raw in output.splitlines():
        line = raw.rstrip()
        if not line.strip() or line.startswith("[NuGet]"):
            continue
        if line.lower().endswith(_END_MARKERS):
            break
        if line.startswith(" "):
            if current is not None:
                current.apply_detail(line.strip())
            continue
        if line.startswith("Chocolatey v"):
            continue
        if current is not None:
            yield current
            current = None
        parts = line.split(None, 2)
        if len(parts) < 2:
            yield ErrorMessage(f"Unable to parse package line {line!r}")
            continue
        current = ChocoPackage(parts[0], parts[1], parts[2] if len(parts) > 2 else "")
    if current is not None:
        yield current


def package_to_record(package: ChocoPackage) -> GameRecord:
    """Convert a catalog package into a record that is neither installed nor owned."""
    metadata: dict[str, list[str]] = {
        "DefaultVersion": [package.version],
        "Approved": [str(package.approved)],
        "Cached": [str(package.cached)],
        "Broken": [str(package.broken)],
        "RemoveOnly": [str(package.remove_only)],
        "Source": ["chocolatey"],
    }
    optional = {
        "Title": package.title,
        "PublishDate": package.published,
        "Notes": package.notes,
        "NumDownloads": package.num_downloads,
        "VerDownloads": package.ver_downloads,
        "Description": package.summary,
        "LongDescription": package.description,
        "ReleaseNotes": package.release_notes,
        "WebInfo": package.site,
        "WebSupport": package.issues or package.docs,
        "SourceCode": package.source_code,
        "License": package.license,
    }
    for key, value in optional.items():
        if value:
            metadata[key] = [value]
    if package.tags:
        metadata["Genres"] = package.tags.split()
    return GameRecord(
        platform="choco",
        game_id=package.package_id,
        name=package.title or package.package_id,
        is_installed=False,
        is_owned=False,
        metadata=metadata,
    )


def _run(root: SourceRoot, args: Sequence[str], context: DiscoveryContext) -> str:
    exe = root.path / EXECUTABLE
    result = context.runner.run(exe, args)
    if not result.stdout.strip():
        raise ToolError(f"No output from {exe} {' '.join(args)}")
    return result.stdout


class ChocoInstalledAdapter(FormatAdapter):
    """Reads ``choco list --limit-output``."""

    def enumerate(self, root: SourceRoot, context: DiscoveryContext) -> Iterator[Outcome]:
        try:
            output = _run(root, ["list", "--limit-output"], context)
        except ToolError as exc:
            yield ErrorMessage(str(exc), cause=exc)
            return
        for line in output.splitlines():
            line = line.strip()
            if not line:
                continue
            package_id, sep, version = line.partition("|")
            if not sep or not package_id:
                yield ErrorMessage(f"Unable to parse installed package line {line!r}")
                continue
            lib = root.path / "lib" / package_id
            yield GameRecord(
                platform="choco",
                game_id=package_id,
                name=package_id,
                path=lib if context.filesystem.is_dir(lib) else None,
                uninstall=str(root.path / EXECUTABLE),
                uninstall_args=f"uninstall {package_id} -y",
                metadata={"InstalledVersion": [version]},
            )


class ChocoCatalogAdapter(FormatAdapter):
    """Reads ``choco search --by-tag-only --verbose`` for each configured tag."""

    def enumerate(self, root: SourceRoot, context: DiscoveryContext) -> Iterator[Outcome]:
        for tag in context.settings.queries_for("choco", DEFAULT_TAGS):
            args = ["search", tag, "--by-tag-only", "--verbose", "--no-color"]
            try:
                output = _run(root, args, context)
            except ToolError as exc:
                yield ErrorMessage(str(exc), cause=exc)
                continue
            for package in parse_package_listing(output):
                if isinstance(package, ErrorMessage):
                    yield package
                else:
                    yield package_to_record(package)


CHOCO = Platform(
    name="Chocolatey",
    short_name="choco",
    locations=LocationStrategy(
        defaults=(
            DefaultLocation((), base=None, env="ChocolateyInstall", os="windows"),
            DefaultLocation(("chocolatey",), base=KnownPath.COMMON_APP_DATA, os="windows"),
        ),
        marker=EXECUTABLE,
    ),
    adapter=ChocoInstalledAdapter(),
    catalog=ChocoCatalogAdapter(),
)
