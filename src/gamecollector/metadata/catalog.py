"""Title index over a game database snapshot, and record enrichment.

Snapshot format (JSON)::

    {
      "last_edit_id": 123456,
      "genres": {"1": {"id": 1, "name": "Action"}},
      "developers": {"7": {"id": 7, "name": "Red Hook Studios"}},
      "publishers": {"7": {"id": 7, "name": "Red Hook Studios"}},
      "data": {"games": [
        {"id": 1, "game_title": "Darkest Dungeon", "release_date": "2016-01-19",
         "overview": "...", "genres": [1], "developers": [7], "publishers": [7]}
      ]}
    }

``games`` may also sit at the top level. Titles are matched ignoring case,
and again with a trailing parenthetical such as ``(2016)`` removed.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from gamecollector.core.records import GameRecord, Outcome
from gamecollector.exceptions import ParseError
from gamecollector.metadata.lookup import LookupTables

logger = logging.getLogger(__name__)

_PAREN_SUFFIX = re.compile(r"\s*\([^()]*\)\s*$")


def _title_key(title: str) -> str:
    return " ".join(title.casefold().split())


def _ids(raw: Any) -> tuple[int, ...]:
    if not isinstance(raw, list):
        return ()
    return tuple(i for i in raw if isinstance(i, int) and not isinstance(i, bool))


@dataclass(frozen=True)
class CatalogEntry:
    """One game of the snapshot."""

    game_id: int
    title: str
    release_date: str = ""
    overview: str = ""
    genres: tuple[int, ...] = ()
    developers: tuple[int, ...] = ()
    publishers: tuple[int, ...] = ()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> CatalogEntry | None:
        game_id = data.get("id")
        title = data.get("game_title")
        if not isinstance(game_id, int) or not isinstance(title, str) or not title:
            return None
        return cls(
            game_id=game_id,
            title=title,
            release_date=str(data.get("release_date") or ""),
            overview=str(data.get("overview") or ""),
            genres=_ids(data.get("genres")),
            developers=_ids(data.get("developers")),
            publishers=_ids(data.get("publishers")),
        )


class MetadataCatalog:
    """Read-only title index built once per session.

    Args:
        tables: Id-to-name tables.
        entries: Games of the snapshot. On duplicate titles the first wins.
        last_edit_id: Version marker of the snapshot, if known.
    """

    def __init__(
        self,
        tables: LookupTables,
        entries: Iterable[CatalogEntry],
        last_edit_id: int | None = None,
    ) -> None:
        self.tables = tables
        self.last_edit_id = last_edit_id
        self._by_title: dict[str, CatalogEntry] = {}
        for entry in entries:
            self._by_title.setdefault(_title_key(entry.title), entry)

    def __len__(self) -> int:
        return len(self._by_title)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> MetadataCatalog:
        """Build a catalog from a parsed snapshot.

        Raises:
            ParseError: If the snapshot's structure is wrong.
        """
        container = data.get("data") if isinstance(data.get("data"), Mapping) else data
        games = container.get("games", [])
        if not isinstance(games, list):
            raise ParseError("Snapshot 'games' must be an array")
        entries = []
        for raw in games:
            entry = CatalogEntry.from_mapping(raw) if isinstance(raw, Mapping) else None
            if entry is None:
                logger.debug("Skipping malformed snapshot entry %r", raw)
                continue
            entries.append(entry)
        last_edit = data.get("last_edit_id")
        return cls(
            LookupTables.from_mapping(data),
            entries,
            last_edit if isinstance(last_edit, int) else None,
        )

    @classmethod
    def load(cls, path: Path) -> MetadataCatalog:
        """Load a snapshot file.

        Raises:
            ParseError: If the file cannot be read or parsed.
        """
        try:
            data = json.loads(path.read_text(encoding="utf-8-sig"))
        except (OSError, ValueError) as exc:
            raise ParseError(f"Unable to load metadata snapshot {path}: {exc}") from exc
        if not isinstance(data, Mapping):
            raise ParseError(f"Metadata snapshot {path} is not a JSON object")
        catalog = cls.from_mapping(data)
        logger.debug("Loaded %d titles from %s", len(catalog), path)
        return catalog

    def find_by_title(self, title: str) -> CatalogEntry | None:
        """Look up a title, retrying without a trailing parenthetical."""
        key = _title_key(title)
        entry = self._by_title.get(key)
        if entry is None:
            stripped = _PAREN_SUFFIX.sub("", key)
            if stripped != key:
                entry = self._by_title.get(stripped)
        return entry


def enrich(record: GameRecord, catalog: MetadataCatalog) -> GameRecord:
    """Return ``record`` with catalog metadata filled in where it is absent.

    Existing metadata is never overwritten. A record without a catalog
    match is returned unchanged.
    """
    entry = catalog.find_by_title(record.name)
    if entry is None:
        return record
    tables = catalog.tables
    candidates = {
        "Genres": tables.names(tables.genres, entry.genres),
        "Developers": tables.names(tables.developers, entry.developers),
        "Publishers": tables.names(tables.publishers, entry.publishers),
        "ReleaseDate": [entry.release_date] if entry.release_date else [],
        "Description": [entry.overview] if entry.overview else [],
    }
    metadata = {k: list(v) for k, v in record.metadata.items()}
    changed = False
    for key, values in candidates.items():
        if values and not record.has_metadata(key):
            metadata[key] = values
            changed = True
    if not changed:
        return record
    return replace(record, metadata=metadata)


def enrich_outcomes(outcomes: Iterable[Outcome], catalog: MetadataCatalog) -> Iterator[Outcome]:
    """Lazily enrich every record of a stream; errors pass through."""
    for outcome in outcomes:
        if isinstance(outcome, GameRecord):
            yield enrich(outcome, catalog)
        else:
            yield outcome
