"""Identity comparison and identity-keyed maps.

Each platform decides how its identities compare. Most use case-insensitive
strings, Steam uses integers. ``IdentityMap`` stores values under the
comparer's normalized key but remembers the first spelling it saw, so
``"Foo.Bar"`` and ``"foo.bar"`` land in one slot that still iterates as
``"Foo.Bar"``.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Iterator
from dataclasses import dataclass
from typing import Callable, MutableMapping, TypeVar

from gamecollector.core.records import Identity

V = TypeVar("V")


@dataclass(frozen=True)
class IdentityComparer:
    """Named normalization function for identities.

    Attributes:
        name: Short label used in logs and reprs.
        normalize: Maps an identity to the hashable key used for equality.
    """

    name: str
    normalize: Callable[[Identity], Hashable]

    def equals(self, left: Identity, right: Identity) -> bool:
        """Compare two identities under this comparer."""
        return self.normalize(left) == self.normalize(right)


def _fold(identity: Identity) -> Hashable:
    if isinstance(identity, str):
        return identity.casefold()
    return identity


def _exact(identity: Identity) -> Hashable:
    return identity


CASE_INSENSITIVE = IdentityComparer("case-insensitive", _fold)
ORDINAL = IdentityComparer("ordinal", _exact)


class IdentityMap(MutableMapping[Identity, V]):
    """Insertion-ordered mapping whose key equality follows a comparer.

    Args:
        comparer: How keys compare. Defaults to case-insensitive strings.
        items: Optional initial ``(identity, value)`` pairs. Later pairs
            overwrite earlier ones with an equal identity.
    """

    def __init__(
        self,
        comparer: IdentityComparer = CASE_INSENSITIVE,
        items: Iterable[tuple[Identity, V]] = (),
    ) -> None:
        self.comparer = comparer
        self._data: dict[Hashable, tuple[Identity, V]] = {}
        for key, value in items:
            self[key] = value

    def __getitem__(self, key: Identity) -> V:
        return self._data[self.comparer.normalize(key)][1]

    def __setitem__(self, key: Identity, value: V) -> None:
        norm = self.comparer.normalize(key)
        existing = self._data.get(norm)
        original = existing[0] if existing is not None else key
        self._data[norm] = (original, value)

    def __delitem__(self, key: Identity) -> None:
        del self._data[self.comparer.normalize(key)]

    def __iter__(self) -> Iterator[Identity]:
        return (original for original, _ in self._data.values())

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, (str, int)):
            return False
        return self.comparer.normalize(key) in self._data

    def __repr__(self) -> str:
        body = ", ".join(f"{k!r}: {v!r}" for k, v in self._data.values())
        return f"IdentityMap({self.comparer.name}, {{{body}}})"

    def add_if_absent(self, key: Identity, value: V) -> bool:
        """Store ``value`` unless an equal identity is already present.

        Returns:
            True if the value was stored.
        """
        norm = self.comparer.normalize(key)
        if norm in self._data:
            return False
        self._data[norm] = (key, value)
        return True

    def canonical_key(self, key: Identity) -> Identity:
        """Return the spelling under which ``key`` was first stored."""
        return self._data[self.comparer.normalize(key)][0]
