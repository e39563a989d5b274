"""Tests for the snapshot title index and record enrichment."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from gamecollector.core.records import ErrorMessage, GameRecord
from gamecollector.exceptions import ParseError
from gamecollector.metadata.catalog import (
    CatalogEntry,
    MetadataCatalog,
    enrich,
    enrich_outcomes,
)

SNAPSHOT = {
    "last_edit_id": 4242,
    "genres": {"1": {"id": 1, "name": "Role-Playing"}, "2": {"id": 2, "name": "Strategy"}},
    "developers": {"7": "Red Hook Studios"},
    "publishers": {"7": "Red Hook Studios"},
    "data": {
        "games": [
            {
                "id": 1,
                "game_title": "Darkest Dungeon",
                "release_date": "2016-01-19",
                "overview": "A challenging gothic roguelike.",
                "genres": [1, 2],
                "developers": [7],
                "publishers": [7],
            },
            {"id": 2, "game_title": "Darkest Dungeon", "overview": "Duplicate title."},
            {"id": "x", "game_title": "Broken"},
            "not an object",
        ]
    },
}


@pytest.fixture
def catalog() -> MetadataCatalog:
    return MetadataCatalog.from_mapping(SNAPSHOT)


class TestCatalogEntry:
    """Parsing single snapshot games."""

    def test_requires_id_and_title(self) -> None:
        assert CatalogEntry.from_mapping({"id": 1}) is None
        assert CatalogEntry.from_mapping({"game_title": "Doom"}) is None

    def test_ignores_non_integer_ids(self) -> None:
        entry = CatalogEntry.from_mapping({"id": 3, "game_title": "Doom", "genres": [1, "2", True]})
        assert entry is not None
        assert entry.genres == (1,)


class TestMetadataCatalog:
    """Building and querying the index."""

    def test_from_mapping_nested_data(self, catalog: MetadataCatalog) -> None:
        assert len(catalog) == 1
        assert catalog.last_edit_id == 4242

    def test_from_mapping_top_level_games(self) -> None:
        catalog = MetadataCatalog.from_mapping({"games": [{"id": 9, "game_title": "Celeste"}]})
        assert catalog.find_by_title("Celeste") is not None
        assert catalog.last_edit_id is None

    def test_first_duplicate_wins(self, catalog: MetadataCatalog) -> None:
        entry = catalog.find_by_title("Darkest Dungeon")
        assert entry is not None
        assert entry.game_id == 1

    def test_find_ignores_case(self, catalog: MetadataCatalog) -> None:
        assert catalog.find_by_title("DARKEST  dungeon") is not None

    def test_find_strips_parenthetical(self, catalog: MetadataCatalog) -> None:
        entry = catalog.find_by_title("Darkest Dungeon (2016)")
        assert entry is not None
        assert entry.title == "Darkest Dungeon"

    def test_find_unknown(self, catalog: MetadataCatalog) -> None:
        assert catalog.find_by_title("Hades") is None

    def test_games_must_be_array(self) -> None:
        with pytest.raises(ParseError, match="array"):
            MetadataCatalog.from_mapping({"games": {"id": 1}})

    def test_load_file(self, tmp_path: Path) -> None:
        path = tmp_path / "metadata.json"
        path.write_text(json.dumps(SNAPSHOT), encoding="utf-8")
        catalog = MetadataCatalog.load(path)
        assert catalog.last_edit_id == 4242

    def test_load_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "metadata.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ParseError, match="Unable to load"):
            MetadataCatalog.load(path)

    def test_load_non_object(self, tmp_path: Path) -> None:
        path = tmp_path / "metadata.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ParseError, match="not a JSON object"):
            MetadataCatalog.load(path)

    def test_load_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ParseError):
            MetadataCatalog.load(tmp_path / "absent.json")


class TestEnrich:
    """Filling record metadata from the catalog."""

    def test_fills_absent_keys(self, catalog: MetadataCatalog) -> None:
        record = GameRecord(platform="steam", game_id=262060, name="Darkest Dungeon")
        enriched = enrich(record, catalog)
        assert enriched.get_metadata("Genres") == ["Role-Playing", "Strategy"]
        assert enriched.get_metadata("Developers") == ["Red Hook Studios"]
        assert enriched.get_metadata("ReleaseDate") == ["2016-01-19"]
        assert enriched.get_metadata("Description") == ["A challenging gothic roguelike."]

    def test_never_overwrites(self, catalog: MetadataCatalog) -> None:
        record = GameRecord(
            platform="choco",
            game_id="darkest-dungeon",
            name="Darkest Dungeon",
            metadata={"Genres": ["games"]},
        )
        enriched = enrich(record, catalog)
        assert enriched.get_metadata("Genres") == ["games"]
        assert enriched.has_metadata("Publishers")

    def test_no_match_returns_same_record(self, catalog: MetadataCatalog) -> None:
        record = GameRecord(platform="steam", game_id=1, name="Hades")
        assert enrich(record, catalog) is record

    def test_outcomes_pass_errors_through(self, catalog: MetadataCatalog) -> None:
        error = ErrorMessage("Unable to read manifest")
        record = GameRecord(platform="steam", game_id=262060, name="Darkest Dungeon")
        results = list(enrich_outcomes([error, record], catalog))
        assert results[0] is error
        assert isinstance(results[1], GameRecord)
        assert results[1].has_metadata("Genres")
