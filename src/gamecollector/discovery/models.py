"""The platform strategy table value.

A ``Platform`` is everything the generic engine needs to know about one
launcher or package manager: where its data lives and which adapters read
it. Concrete platforms are declared in ``gamecollector.stores.registry``.
"""

from __future__ import annotations

from dataclasses import dataclass

from gamecollector.core.identity import CASE_INSENSITIVE, IdentityComparer
from gamecollector.discovery.adapters import FormatAdapter
from gamecollector.discovery.location import LocationStrategy


@dataclass(frozen=True)
class Platform:
    """Describes one platform the engine can scan.

    Attributes:
        name: Human-readable display name (e.g., "Steam").
        short_name: Machine identifier for CLI and config (e.g., "steam").
        locations: Where to find the platform's data root.
        adapter: Reads installed items below the root.
        catalog: Reads the remote catalog, for platforms that have one.
        comparer: How identities of this platform compare.
        os: Operating systems the platform exists on.
    """

    name: str
    short_name: str
    locations: LocationStrategy
    adapter: FormatAdapter
    catalog: FormatAdapter | None = None
    comparer: IdentityComparer = CASE_INSENSITIVE
    os: tuple[str, ...] = ("windows",)
