"""Location Resolver: find the one data root of a platform.

Strategies are tried in a fixed order and the first success wins:

1. An explicit override supplied by the caller. It must be an absolute,
   existing path; an invalid override fails at once and no other strategy
   is tried.
2. Registry values, when a registry capability is available.
3. OS-specific default directories, in the order listed. A directory only
   counts if the platform's marker file exists beneath it.

When everything fails, the error names every default path tried and any
registry path that pointed somewhere unusable.

All checks are point-in-time and read-only. Nothing is cached: each call
looks at the filesystem and registry again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from gamecollector.core.records import ErrorMessage
from gamecollector.exceptions import ResolutionError
from gamecollector.host.filesystem import FileSystem, KnownPath
from gamecollector.host.registry import Registry, RegistryHive, RegistryView

logger = logging.getLogger(__name__)


class ResolutionStrategy(Enum):
    """How a source root was found."""

    OVERRIDE = "override"
    REGISTRY = "registry"
    DEFAULT = "default"


@dataclass(frozen=True)
class SourceRoot:
    """A resolved data root.

    Attributes:
        path: Absolute directory the adapters scan.
        strategy: The strategy that produced ``path``.
    """

    path: Path
    strategy: ResolutionStrategy


@dataclass(frozen=True)
class RegistryLocation:
    """A registry string value holding a directory.

    Attributes:
        hive: Registry hive.
        key: Backslash-separated key path.
        value: Value name.
        view: Registry view to open.
    """

    hive: RegistryHive
    key: str
    value: str
    view: RegistryView = RegistryView.DEFAULT


@dataclass(frozen=True)
class DefaultLocation:
    """A candidate directory below a known path or environment variable.

    Attributes:
        parts: Path components appended to the base.
        base: Known path the candidate hangs off.
        env: Environment variable used as the base instead of ``base``.
        os: Operating system the candidate applies to; ``"all"`` for every OS.
    """

    parts: tuple[str, ...]
    base: KnownPath | None = KnownPath.HOME
    env: str | None = None
    os: str = "all"

    def candidate(self, filesystem: FileSystem) -> Path | None:
        """Return the concrete path on this host, or None if the base is undefined."""
        if self.env is not None:
            value = filesystem.env.get(self.env)
            base = Path(value) if value else None
        elif self.base is not None:
            base = filesystem.known_path(self.base)
        else:
            base = None
        if base is None:
            return None
        return base.joinpath(*self.parts)


@dataclass(frozen=True)
class LocationStrategy:
    """Where to look for one platform's data root.

    Attributes:
        registry: Registry values to try, in order.
        defaults: Default directories to try, in order.
        marker: Relative path that must exist below a registry or default
            candidate. Empty means the directory itself must exist.
    """

    registry: tuple[RegistryLocation, ...] = ()
    defaults: tuple[DefaultLocation, ...] = ()
    marker: str = ""


class LocationResolver:
    """Resolves platform data roots against host capabilities.

    Args:
        filesystem: Filesystem capability.
        registry: Registry capability, or None on hosts without one.
    """

    def __init__(self, filesystem: FileSystem, registry: Registry | None = None) -> None:
        self.filesystem = filesystem
        self.registry = registry

    def resolve(
        self,
        name: str,
        strategy: LocationStrategy,
        override: Path | str | None = None,
    ) -> tuple[SourceRoot | None, ErrorMessage | None]:
        """Resolve a data root without raising.

        Args:
            name: Platform display name for messages.
            strategy: Where to look.
            override: Explicit root supplied by the caller.

        Returns:
            ``(root, None)`` on success, ``(None, error)`` on failure.
        """
        try:
            return self.resolve_or_raise(name, strategy, override), None
        except ResolutionError as exc:
            logger.info("%s", exc)
            return None, ErrorMessage(str(exc), cause=exc)

    def resolve_or_raise(
        self,
        name: str,
        strategy: LocationStrategy,
        override: Path | str | None = None,
    ) -> SourceRoot:
        """Resolve a data root.

        Raises:
            ResolutionError: If no strategy produced a usable root.
        """
        if override is not None:
            return self._from_override(name, Path(override))

        stale: list[str] = []
        found = self._from_registry(name, strategy, stale)
        if found is not None:
            return found

        tried: list[Path] = []
        for location in strategy.defaults:
            if location.os not in ("all", self.filesystem.os_name):
                continue
            candidate = location.candidate(self.filesystem)
            if candidate is None:
                continue
            tried.append(candidate)
            if self._is_valid_root(candidate, strategy.marker):
                logger.debug("Found %s in default path %s", name, candidate)
                return SourceRoot(candidate, ResolutionStrategy.DEFAULT)

        if tried:
            message = (
                f"Unable to find {name} in any of the default paths: "
                f"{', '.join(str(p) for p in tried)}"
            )
        else:
            message = f"Unable to find {name}: no default paths on {self.filesystem.os_name}"
        if stale:
            message += " and " + " and ".join(stale)
        raise ResolutionError(message)

    def _from_override(self, name: str, path: Path) -> SourceRoot:
        if not path.is_absolute():
            raise ResolutionError(f"The override path {path} for {name} is not fully qualified")
        if not self.filesystem.is_dir(path):
            raise ResolutionError(f"The override path {path} for {name} does not exist")
        logger.debug("Using override path %s for %s", path, name)
        return SourceRoot(path, ResolutionStrategy.OVERRIDE)

    def _from_registry(
        self, name: str, strategy: LocationStrategy, stale: list[str]
    ) -> SourceRoot | None:
        if self.registry is None:
            return None
        for location in strategy.registry:
            try:
                value = self.registry.read_string(
                    location.hive, location.key, location.value, location.view
                )
            except OSError as exc:
                logger.debug("Cannot read %s\\%s: %s", location.key, location.value, exc)
                continue
            if not value:
                continue
            candidate = Path(value.strip().strip('"'))
            if not self.filesystem.is_dir(candidate):
                stale.append(f"the path from the registry does not exist: {candidate}")
                continue
            if not self._is_valid_root(candidate, strategy.marker):
                stale.append(
                    f"the path from the registry is not a valid {name} installation "
                    f"because {candidate / strategy.marker} does not exist"
                )
                continue
            logger.debug("Found %s via registry at %s", name, candidate)
            return SourceRoot(candidate, ResolutionStrategy.REGISTRY)
        return None

    def _is_valid_root(self, candidate: Path, marker: str) -> bool:
        if marker:
            return self.filesystem.exists(candidate / marker)
        return self.filesystem.is_dir(candidate)
