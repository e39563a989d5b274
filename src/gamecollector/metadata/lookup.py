"""Reference tables mapping database ids to names.

A snapshot refers to genres, developers, publishers and platforms by
numeric id. ``LookupTables`` holds the id-to-name tables, is built once per
session from the snapshot and is read-only afterwards; callers pass it
explicitly to whatever needs it.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from gamecollector.exceptions import ParseError

_EMPTY: Mapping[int, str] = MappingProxyType({})


def _table(raw: Any, name: str) -> Mapping[int, str]:
    """Accept ``{"1": "Action"}`` or ``{"1": {"id": 1, "name": "Action"}}``."""
    if raw is None:
        return _EMPTY
    if not isinstance(raw, Mapping):
        raise ParseError(f"Lookup table '{name}' must be an object")
    table: dict[int, str] = {}
    for key, value in raw.items():
        if isinstance(value, Mapping):
            value = value.get("name")
        if not isinstance(value, str):
            continue
        try:
            table[int(key)] = value
        except ValueError:
            raise ParseError(f"Lookup table '{name}' has a non-numeric id {key!r}") from None
    return MappingProxyType(table)


@dataclass(frozen=True)
class LookupTables:
    """Immutable id-to-name tables.

    Attributes:
        genres: Genre names by id.
        developers: Developer names by id.
        publishers: Publisher names by id.
        platforms: Platform names by id.
    """

    genres: Mapping[int, str] = field(default_factory=lambda: _EMPTY)
    developers: Mapping[int, str] = field(default_factory=lambda: _EMPTY)
    publishers: Mapping[int, str] = field(default_factory=lambda: _EMPTY)
    platforms: Mapping[int, str] = field(default_factory=lambda: _EMPTY)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> LookupTables:
        """Build the tables from the snapshot's top-level objects.

        Raises:
            ParseError: If a table is not an object or has non-numeric ids.
        """
        return cls(
            genres=_table(data.get("genres"), "genres"),
            developers=_table(data.get("developers"), "developers"),
            publishers=_table(data.get("publishers"), "publishers"),
            platforms=_table(data.get("platforms"), "platforms"),
        )

    @staticmethod
    def names(table: Mapping[int, str], ids: Iterable[int]) -> list[str]:
        """Translate ids to names, skipping unknown ids."""
        return [table[i] for i in ids if i in table]
