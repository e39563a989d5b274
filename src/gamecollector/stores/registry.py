"""Table of the platforms the engine knows how to scan.

``PLATFORMS`` is ordered the way the CLI lists and scans them. Look a
platform up by its short name with ``get_platform()``.
"""

from __future__ import annotations

from gamecollector.discovery.models import Platform
from gamecollector.stores.choco import CHOCO
from gamecollector.stores.eadesktop import EA_DESKTOP
from gamecollector.stores.epic import EPIC
from gamecollector.stores.gog import GOG
from gamecollector.stores.steam import STEAM
from gamecollector.stores.winget import WINGET

PLATFORMS: tuple[Platform, ...] = (STEAM, EPIC, GOG, EA_DESKTOP, WINGET, CHOCO)


def get_platform(short_name: str) -> Platform:
    """Return the platform registered under ``short_name`` (case-insensitive).

    Raises:
        KeyError: If no platform has that short name.
    """
    folded = short_name.casefold()
    for platform in PLATFORMS:
        if platform.short_name == folded:
            return platform
    raise KeyError(short_name)


def platform_names() -> list[str]:
    """Short names of every registered platform, in table order."""
    return [platform.short_name for platform in PLATFORMS]
