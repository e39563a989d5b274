"""Tests for merging installed and catalog views of a platform."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from gamecollector.core.identity import CASE_INSENSITIVE, ORDINAL, IdentityMap
from gamecollector.core.records import ErrorMessage, GameRecord, Problem
from gamecollector.discovery.reconciler import (
    index_outcomes,
    merge,
    merge_metadata,
    merge_records,
)

INSTALLED = GameRecord(
    platform="choco",
    game_id="steam-client",
    name="steam-client",
    path=Path("C:/ProgramData/chocolatey/lib/steam-client"),
    uninstall="choco.exe",
    uninstall_args="uninstall steam-client -y",
    install_date=datetime(2023, 5, 1),
    problems=frozenset({Problem.VERSION_LOCKED}),
    metadata={"InstalledVersion": ["1.2"], "Source": ["chocolatey"]},
)

REMOTE = GameRecord(
    platform="choco",
    game_id="Steam-Client",
    name="Steam",
    is_installed=False,
    is_owned=False,
    icon="https://example.invalid/steam.png",
    problems=frozenset({Problem.INCOMPLETE}),
    metadata={
        "DefaultVersion": ["1.5"],
        "InstalledVersion": ["9.9"],
        "Title": ["Steam"],
        "Genres": ["games", "valve"],
        "Source": ["remote"],
        "Extra": ["from catalog"],
    },
)


def _map(*outcomes, comparer=CASE_INSENSITIVE) -> IdentityMap:
    by_id, _ = index_outcomes(outcomes, comparer)
    return by_id


class TestMergeRecords:
    """Field mapping for identities present on both sides."""

    def test_version_precedence(self) -> None:
        merged = merge_records(INSTALLED, REMOTE)
        assert merged.get_metadata("InstalledVersion") == ["1.2"]
        assert merged.get_metadata("DefaultVersion") == ["1.5"]

    def test_local_fields_from_installed(self) -> None:
        merged = merge_records(INSTALLED, REMOTE)
        assert merged.path == INSTALLED.path
        assert merged.is_installed is True
        assert merged.uninstall_args == "uninstall steam-client -y"
        assert merged.install_date == datetime(2023, 5, 1)
        assert merged.get_metadata("Source") == ["chocolatey"]

    def test_remote_fields_from_catalog(self) -> None:
        merged = merge_records(INSTALLED, REMOTE)
        assert merged.get_metadata("Title") == ["Steam"]
        assert merged.get_metadata("Genres") == ["games", "valve"]
        assert merged.get_metadata("Extra") == ["from catalog"]
        assert merged.icon == "https://example.invalid/steam.png"

    def test_identity_and_name(self) -> None:
        merged = merge_records(INSTALLED, REMOTE)
        assert merged.game_id == "steam-client"
        assert merged.name == "steam-client"
        nameless = merge_records(GameRecord(platform="choco", game_id="x", name=""), REMOTE)
        assert nameless.name == "Steam"

    def test_flags_and_problems(self) -> None:
        merged = merge_records(INSTALLED, REMOTE)
        assert merged.is_owned is True
        assert merged.problems == {Problem.VERSION_LOCKED, Problem.INCOMPLETE}

    def test_remote_key_replaces_differently_cased_installed_key(self) -> None:
        installed = GameRecord(platform="p", game_id="x", name="X", metadata={"genres": ["old"]})
        remote = GameRecord(platform="p", game_id="x", name="X", metadata={"Genres": ["new"]})
        assert merge_metadata(installed, remote) == {"Genres": ["new"]}


class TestMerge:
    """Map-level reconciliation."""

    def test_identity_in_both(self) -> None:
        result = merge(_map(INSTALLED), _map(REMOTE))
        assert list(result) == ["steam-client"]
        assert result["STEAM-CLIENT"].get_metadata("DefaultVersion") == ["1.5"]

    def test_one_sided_identities_pass_through(self) -> None:
        only_local = GameRecord(platform="choco", game_id="local", name="Local")
        only_remote = GameRecord(platform="choco", game_id="remote", name="Remote", is_installed=False)
        result = merge(_map(only_local, INSTALLED), _map(REMOTE, only_remote))
        assert list(result) == ["local", "steam-client", "remote"]
        assert result["local"] == only_local
        assert result["remote"] == only_remote

    def test_installed_error_wins(self) -> None:
        error = ErrorMessage("bad local row", identity="steam-client")
        remote_error = ErrorMessage("bad remote row", identity="steam-client")
        assert merge(_map(error), _map(REMOTE))["steam-client"] == error
        assert merge(_map(error), _map(remote_error))["steam-client"] == error

    def test_remote_error_beats_installed_record(self) -> None:
        remote_error = ErrorMessage("bad remote row", identity="steam-client")
        assert merge(_map(INSTALLED), _map(remote_error))["steam-client"] == remote_error

    def test_inputs_unchanged(self) -> None:
        installed, remote = _map(INSTALLED), _map(REMOTE)
        merge(installed, remote)
        assert installed["steam-client"] == INSTALLED
        assert remote["steam-client"] == REMOTE


class TestIndexOutcomes:
    """Keying outcomes by identity."""

    def test_first_outcome_wins(self) -> None:
        first = GameRecord(platform="p", game_id="A", name="First")
        second = GameRecord(platform="p", game_id="a", name="Second")
        by_id, unkeyed = index_outcomes([first, second])
        assert list(by_id.values()) == [first]
        assert unkeyed == []

    def test_unkeyed_errors_returned_separately(self) -> None:
        loose = ErrorMessage("no header")
        keyed = ErrorMessage("bad row", identity="x")
        by_id, unkeyed = index_outcomes([loose, keyed])
        assert unkeyed == [loose]
        assert by_id["X"] == keyed

    def test_ordinal_comparer(self) -> None:
        by_id, _ = index_outcomes(
            [GameRecord(platform="steam", game_id=1, name="A"),
             GameRecord(platform="steam", game_id=2, name="B")],
            ORDINAL,
        )
        assert list(by_id) == [1, 2]
