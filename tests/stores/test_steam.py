"""Tests for Steam library discovery and app manifest parsing."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from gamecollector.core.records import ErrorMessage, GameRecord, Problem
from gamecollector.discovery.engine import Collector
from gamecollector.host.filesystem import FileSystem
from gamecollector.stores.steam import STEAM

from tests.helpers import FakeRunner

DARKEST_DUNGEON = """\
"AppState"
{
\t"appid"\t\t"262060"
\t"Universe"\t\t"1"
\t"name"\t\t"Darkest Dungeon"
\t"StateFlags"\t\t"4"
\t"installdir"\t\t"DarkestDungeon"
\t"LastPlayed"\t\t"1700000000"
\t"SizeOnDisk"\t\t"2233440000"
\t"buildid"\t\t"9876543"
}
"""


def _library_folders(*paths: Path) -> str:
    body = "".join(
        f'\t"{i}"\n\t{{\n\t\t"path"\t\t"{path}"\n\t\t"label"\t\t""\n\t}}\n'
        for i, path in enumerate(paths)
    )
    return f'"libraryfolders"\n{{\n{body}}}\n'


@pytest.fixture
def steam_root(tmp_path: Path) -> Path:
    """Steam root with one library at ``<tmp>/lib`` holding Darkest Dungeon."""
    root = tmp_path / "Steam"
    (root / "steamapps").mkdir(parents=True)
    library = tmp_path / "lib"
    (library / "steamapps" / "common" / "DarkestDungeon").mkdir(parents=True)
    (library / "steamapps" / "appmanifest_262060.acf").write_text(DARKEST_DUNGEON)
    (root / "steamapps" / "libraryfolders.vdf").write_text(_library_folders(library))
    return root


def _scan(root: Path, filesystem: FileSystem) -> list:
    return list(Collector(STEAM, filesystem=filesystem, runner=FakeRunner()).find_all(root))


class TestAppManifest:
    """Reading ``appmanifest_*.acf``."""

    def test_darkest_dungeon(self, tmp_path: Path, steam_root: Path, filesystem: FileSystem) -> None:
        (record,) = _scan(steam_root, filesystem)
        assert isinstance(record, GameRecord)
        assert record.game_id == 262060
        assert record.name == "Darkest Dungeon"
        assert record.path == tmp_path / "lib" / "steamapps" / "common" / "DarkestDungeon"
        assert record.platform == "steam"
        assert record.problems == frozenset()
        assert record.launch_url == "steam://rungameid/262060"
        assert record.uninstall_url == "steam://uninstall/262060"
        assert record.last_run_date == datetime.fromtimestamp(1700000000, tz=timezone.utc)
        assert record.get_metadata("BuildId") == ["9876543"]
        assert record.get_metadata("SizeOnDisk") == ["2233440000"]

    def test_missing_installdir(self, tmp_path: Path, steam_root: Path, filesystem: FileSystem) -> None:
        manifest = tmp_path / "lib" / "steamapps" / "appmanifest_262060.acf"
        manifest.write_text(DARKEST_DUNGEON.replace('\t"installdir"\t\t"DarkestDungeon"\n', ""))
        (error,) = _scan(steam_root, filesystem)
        assert isinstance(error, ErrorMessage)
        assert "installdir" in error.message
        assert str(manifest) in error.message

    def test_wrong_root_is_error(self, tmp_path: Path, steam_root: Path, filesystem: FileSystem) -> None:
        manifest = tmp_path / "lib" / "steamapps" / "appmanifest_262060.acf"
        manifest.write_text(DARKEST_DUNGEON.replace('"AppState"', '"Other"'))
        (error,) = _scan(steam_root, filesystem)
        assert isinstance(error, ErrorMessage)
        assert 'but "AppState" was expected' in error.message

    def test_state_flags(self, tmp_path: Path, steam_root: Path, filesystem: FileSystem) -> None:
        manifest = tmp_path / "lib" / "steamapps" / "appmanifest_262060.acf"
        manifest.write_text(DARKEST_DUNGEON.replace('"StateFlags"\t\t"4"', '"StateFlags"\t\t"130"'))
        (record,) = _scan(steam_root, filesystem)
        assert record.problems == {Problem.INSTALL_PENDING, Problem.FAILED_TO_VERIFY}

    def test_missing_install_directory(
        self, tmp_path: Path, steam_root: Path, filesystem: FileSystem
    ) -> None:
        (tmp_path / "lib" / "steamapps" / "common" / "DarkestDungeon").rmdir()
        (record,) = _scan(steam_root, filesystem)
        assert Problem.NOT_FOUND_ON_DISK in record.problems

    def test_bad_manifest_does_not_hide_good_one(
        self, tmp_path: Path, steam_root: Path, filesystem: FileSystem
    ) -> None:
        (tmp_path / "lib" / "steamapps" / "appmanifest_1.acf").write_text('"AppState" {')
        outcomes = _scan(steam_root, filesystem)
        assert len(outcomes) == 2
        assert sum(isinstance(o, GameRecord) for o in outcomes) == 1


class TestLibraryFolders:
    """Reading ``libraryfolders.vdf``."""

    def test_multiple_libraries(self, tmp_path: Path, steam_root: Path, filesystem: FileSystem) -> None:
        second = tmp_path / "second"
        (second / "steamapps").mkdir(parents=True)
        (second / "steamapps" / "appmanifest_70.acf").write_text(
            DARKEST_DUNGEON.replace("262060", "70").replace("Darkest Dungeon", "Half-Life")
        )
        folders = steam_root / "steamapps" / "libraryfolders.vdf"
        folders.write_text(_library_folders(tmp_path / "lib", second))
        ids = sorted(o.game_id for o in _scan(steam_root, filesystem))
        assert ids == [70, 262060]

    def test_missing_library(self, tmp_path: Path, steam_root: Path, filesystem: FileSystem) -> None:
        folders = steam_root / "steamapps" / "libraryfolders.vdf"
        folders.write_text(_library_folders(tmp_path / "lib", tmp_path / "gone"))
        outcomes = _scan(steam_root, filesystem)
        errors = [o for o in outcomes if isinstance(o, ErrorMessage)]
        assert [e.message for e in errors] == [
            f"Steam Library {tmp_path / 'gone' / 'steamapps'} does not exist!"
        ]

    def test_empty_library(self, tmp_path: Path, steam_root: Path, filesystem: FileSystem) -> None:
        (tmp_path / "lib" / "steamapps" / "appmanifest_262060.acf").unlink()
        (error,) = _scan(steam_root, filesystem)
        assert error.message == (
            f"Library folder {tmp_path / 'lib' / 'steamapps'} does not contain any manifests"
        )

    def test_no_libraries(self, steam_root: Path, filesystem: FileSystem) -> None:
        folders = steam_root / "steamapps" / "libraryfolders.vdf"
        folders.write_text('"libraryfolders"\n{\n\t"contentstatsid"\t\t"1"\n}\n')
        (error,) = _scan(steam_root, filesystem)
        assert error.message == f"Found no Steam Libraries in {folders}"

    def test_library_without_path(self, steam_root: Path, filesystem: FileSystem) -> None:
        folders = steam_root / "steamapps" / "libraryfolders.vdf"
        folders.write_text('"libraryfolders"\n{\n\t"0"\n\t{\n\t\t"label"\t\t""\n\t}\n}\n')
        outcomes = _scan(steam_root, filesystem)
        assert outcomes[0].message == f"Library folder #0 in {folders} does not have a path"

    def test_unparsable_library_file(self, steam_root: Path, filesystem: FileSystem) -> None:
        folders = steam_root / "steamapps" / "libraryfolders.vdf"
        folders.write_text('"libraryfolders" {')
        (error,) = _scan(steam_root, filesystem)
        assert error.message.startswith(f"Unable to parse {folders}")

    def test_legacy_path_values(self, tmp_path: Path, steam_root: Path, filesystem: FileSystem) -> None:
        folders = steam_root / "steamapps" / "libraryfolders.vdf"
        folders.write_text(
            f'"LibraryFolders"\n{{\n\t"TimeNextStatsReport"\t\t"1"\n\t"1"\t\t"{tmp_path / "lib"}"\n}}\n'
        )
        (record,) = _scan(steam_root, filesystem)
        assert record.game_id == 262060


class TestSteamLocation:
    """Default Steam roots on Linux."""

    def test_found_under_dot_steam(self, tmp_path: Path, filesystem: FileSystem) -> None:
        root = tmp_path / ".steam" / "steam"
        (root / "steamapps").mkdir(parents=True)
        (root / "steamapps" / "libraryfolders.vdf").write_text('"libraryfolders" {}')
        found, error = Collector(STEAM, filesystem=filesystem, runner=FakeRunner()).resolve()
        assert error is None
        assert found.path == root


class TestManifestValues:
    """Values that parse but cannot be represented."""

    def test_out_of_range_last_played(
        self, tmp_path: Path, steam_root: Path, filesystem: FileSystem
    ) -> None:
        """A timestamp past the end of the calendar leaves the date unset."""
        steamapps = tmp_path / "lib" / "steamapps"
        for index, app_id in enumerate((262061, 262062, 262063)):
            text = DARKEST_DUNGEON.replace('"262060"', f'"{app_id}"')
            if index == 0:
                text = text.replace('"1700000000"', '"100000000000000000000"')
            (steamapps / f"appmanifest_{app_id}.acf").write_text(text)
        outcomes = _scan(steam_root, filesystem)
        assert all(isinstance(o, GameRecord) for o in outcomes)
        by_id = {o.game_id: o for o in outcomes}
        assert sorted(by_id) == [262060, 262061, 262062, 262063]
        assert by_id[262061].last_run_date is None
        assert by_id[262062].last_run_date == datetime.fromtimestamp(1700000000, tz=timezone.utc)
