"""GOG Galaxy: one registry key per installed game.

Galaxy and the offline GOG installers both register games below
``HKLM\\Software\\GOG.com\\Games`` in the 32-bit registry view, one subkey
per game holding string values such as ``gameID``, ``gameName`` and
``path``. The data root resolved for the platform is the Galaxy client
directory; the games themselves are read from the registry.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

from gamecollector.core.identity import ORDINAL
from gamecollector.core.records import ErrorMessage, GameRecord, Outcome, Problem
from gamecollector.discovery.adapters import DiscoveryContext, FormatAdapter
from gamecollector.discovery.location import (
    DefaultLocation,
    LocationStrategy,
    RegistryLocation,
    SourceRoot,
)
from gamecollector.discovery.models import Platform
from gamecollector.exceptions import FieldMissingError, GameCollectorError, ParseError
from gamecollector.host.filesystem import KnownPath
from gamecollector.host.registry import RegistryHive, RegistryKey, RegistryView

logger = logging.getLogger(__name__)

GAMES_KEY = r"Software\GOG.com\Games"
CLIENT_PATHS_KEY = r"Software\GOG.com\GalaxyClient\paths"
SUPPORT_URL = "http://www.gog.com/support/"

_HIVE = RegistryHive.LOCAL_MACHINE
_VIEW = RegistryView.REGISTRY32


def _require(key: RegistryKey, name: str, key_name: str) -> str:
    value = key.get_string(name)
    if not value:
        raise FieldMissingError(
            f'{key_name} does not have a string value "{name}"', name, key_name
        )
    return value


def _support_url(link: str) -> str:
    if not link or link.casefold().startswith("http"):
        return link
    return SUPPORT_URL + link


class GogRegistryAdapter(FormatAdapter):
    """Reads the per-game subkeys of ``HKLM\\Software\\GOG.com\\Games``."""

    def enumerate(self, root: SourceRoot, context: DiscoveryContext) -> Iterator[Outcome]:
        games_name = f"{_HIVE.value}\\{GAMES_KEY}"
        if context.registry is None:
            yield ErrorMessage(f"Unable to open {games_name}: this host has no registry")
            return
        with context.registry.open_base_key(_HIVE, _VIEW) as base:
            games = base.open_subkey(GAMES_KEY)
            if games is None:
                yield ErrorMessage(f"Unable to open {games_name}")
                return
            with games:
                names = games.subkey_names()
                if not names:
                    yield ErrorMessage(f"Registry key {games_name} has no sub-keys")
                    return
                for name in names:
                    yield self._decode_unit(games, name, f"{games_name}\\{name}", context)

    def _decode_unit(
        self, games: RegistryKey, name: str, key_name: str, context: DiscoveryContext
    ) -> Outcome:
        try:
            return self.decode(games, name, key_name, context)
        except GameCollectorError as exc:
            logger.debug("%s", exc)
            return ErrorMessage(str(exc), cause=exc, identity=name)
        except Exception as exc:
            logger.warning("Failed to read registry key %s", key_name, exc_info=True)
            return ErrorMessage(
                f"Unable to read registry key {key_name}: {exc}", cause=exc, identity=name
            )

    def decode(
        self, games: RegistryKey, name: str, key_name: str, context: DiscoveryContext
    ) -> GameRecord:
        """Read one game subkey.

        Raises:
            FieldMissingError: If ``gameID``, ``gameName`` or ``path`` is
                absent.
            ParseError: If the subkey cannot be opened or ``gameID`` is not
                a number.
        """
        key = games.open_subkey(name)
        if key is None:
            raise ParseError(f"Unable to open {key_name}")
        with key:
            text_id = _require(key, "gameID", key_name)
            try:
                game_id = int(text_id)
            except ValueError:
                raise ParseError(
                    f'The value "gameID" of {key_name} is not a number: "{text_id}"'
                ) from None
            title = _require(key, "gameName", key_name)
            path = Path(_require(key, "path", key_name))
            exe = key.get_string("exe") or ""
            launch_param = key.get_string("launchParam") or ""
            uninstall = key.get_string("uninstallCommand") or ""
            build_id = key.get_string("buildId") or ""
            parent = key.get_string("dependsOn") or ""
            support = _support_url(key.get_string("supportLink") or "")

        problems: set[Problem] = set()
        if not context.filesystem.is_dir(path):
            problems.add(Problem.NOT_FOUND_ON_DISK)

        metadata: dict[str, list[str]] = {}
        if build_id:
            metadata["BuildId"] = [build_id]
        if parent:
            metadata["BaseGame"] = [parent]
        if support:
            metadata["SupportUrl"] = [support]

        return GameRecord(
            platform="gog",
            game_id=game_id,
            name=title,
            path=path,
            launch=exe,
            launch_args=launch_param,
            launch_url=f"goggalaxy://openGameView/{game_id}",
            uninstall=uninstall,
            problems=frozenset(problems),
            metadata=metadata,
        )


GOG = Platform(
    name="GOG Galaxy",
    short_name="gog",
    locations=LocationStrategy(
        registry=(RegistryLocation(_HIVE, CLIENT_PATHS_KEY, "client", view=_VIEW),),
        defaults=(
            DefaultLocation(("GOG Galaxy",), base=KnownPath.PROGRAM_FILES_X86, os="windows"),
        ),
    ),
    adapter=GogRegistryAdapter(),
    comparer=ORDINAL,
)
