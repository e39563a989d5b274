"""The generic discovery engine.

``Collector`` runs the same pipeline for every platform::

    resolve root -> enumerate installed -> (enumerate catalog -> merge) -> filter

Nothing is cached between calls: each ``find_all()`` resolves the root and
reads the data again.

Usage::

    collector = Collector(get_platform("steam"))
    for outcome in collector.find_all():
        if isinstance(outcome, ErrorMessage):
            print("error:", outcome.message)
        else:
            print(outcome.game_id, outcome.name, outcome.path)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from pathlib import Path

from gamecollector.config import Settings
from gamecollector.core.identity import IdentityMap
from gamecollector.core.records import ErrorMessage, GameRecord, Outcome
from gamecollector.discovery.adapters import DiscoveryContext
from gamecollector.discovery.enumerator import enumerate_outcomes
from gamecollector.discovery.location import LocationResolver, SourceRoot
from gamecollector.discovery.models import Platform
from gamecollector.discovery.reconciler import index_outcomes, merge
from gamecollector.formats.crypto import HardwareInfoProvider
from gamecollector.host.filesystem import FileSystem
from gamecollector.host.process import ProcessRunner, SubprocessRunner
from gamecollector.host.registry import Registry, default_registry

logger = logging.getLogger(__name__)


class Collector:
    """Discovers the games of one platform.

    Args:
        platform: Strategy table of the platform to scan.
        filesystem: Filesystem capability. Defaults to the real host.
        registry: Registry capability. Defaults to the host registry, which
            is None outside Windows.
        runner: Process capability. Defaults to ``SubprocessRunner``.
        settings: Filters, overrides and policies.
        hardware: Hardware identifiers for encrypted payloads.
    """

    def __init__(
        self,
        platform: Platform,
        *,
        filesystem: FileSystem | None = None,
        registry: Registry | None = None,
        runner: ProcessRunner | None = None,
        settings: Settings | None = None,
        hardware: HardwareInfoProvider | None = None,
    ) -> None:
        self.platform = platform
        self.filesystem = filesystem if filesystem is not None else FileSystem()
        self.registry = registry if registry is not None else default_registry()
        self.runner = runner if runner is not None else SubprocessRunner()
        self.settings = settings if settings is not None else Settings()
        self.hardware = hardware

    def _context(self) -> DiscoveryContext:
        return DiscoveryContext(
            platform=self.platform.short_name,
            filesystem=self.filesystem,
            runner=self.runner,
            registry=self.registry,
            settings=self.settings,
            hardware=self.hardware,
        )

    def resolve(
        self, override: Path | str | None = None
    ) -> tuple[SourceRoot | None, ErrorMessage | None]:
        """Resolve the platform's data root.

        Args:
            override: Explicit root. Falls back to the override configured
                in ``settings`` for this platform.
        """
        if override is None:
            override = self.settings.overrides.get(self.platform.short_name)
        resolver = LocationResolver(self.filesystem, self.registry)
        return resolver.resolve(self.platform.name, self.platform.locations, override)

    def find_all(
        self,
        override: Path | str | None = None,
        cancel: threading.Event | None = None,
    ) -> Iterator[Outcome]:
        """Lazily yield every record and error of the platform.

        A resolution failure yields a single error. Records are
        deduplicated by identity and filtered by the settings; errors are
        never filtered.

        Args:
            override: Explicit data root.
            cancel: Stops the scan between units once set.
        """
        root, error = self.resolve(override)
        if error is not None:
            yield error
            return
        assert root is not None
        logger.debug("Scanning %s in %s (%s)", self.platform.name, root.path, root.strategy.value)
        context = self._context()
        installed = enumerate_outcomes(root, self.platform.adapter, context, cancel)

        if self.platform.catalog is None or self.settings.installed_only:
            yield from self._filtered(self._deduplicated(installed))
            return

        installed_map, installed_errors = index_outcomes(installed, self.platform.comparer)
        catalog = enumerate_outcomes(root, self.platform.catalog, context, cancel)
        remote_map, remote_errors = index_outcomes(catalog, self.platform.comparer)
        yield from installed_errors
        yield from remote_errors
        yield from self._filtered(merge(installed_map, remote_map).values())

    def find_all_by_id(
        self, override: Path | str | None = None
    ) -> tuple[IdentityMap[GameRecord], list[ErrorMessage]]:
        """Run ``find_all()`` once and key the records by identity.

        Returns:
            ``(records_by_id, errors)``.
        """
        records: IdentityMap[GameRecord] = IdentityMap(self.platform.comparer)
        errors: list[ErrorMessage] = []
        for outcome in self.find_all(override):
            if isinstance(outcome, ErrorMessage):
                errors.append(outcome)
            else:
                records.add_if_absent(outcome.game_id, outcome)
        return records, errors

    def _deduplicated(self, outcomes: Iterator[Outcome]) -> Iterator[Outcome]:
        seen: set[object] = set()
        normalize = self.platform.comparer.normalize
        for outcome in outcomes:
            if isinstance(outcome, GameRecord):
                key = normalize(outcome.game_id)
                if key in seen:
                    logger.debug("Skipping duplicate %s entry %r", self.platform.name, outcome.game_id)
                    continue
                seen.add(key)
            yield outcome

    def _filtered(self, outcomes: Iterator[Outcome]) -> Iterator[Outcome]:
        for outcome in outcomes:
            if isinstance(outcome, ErrorMessage) or self.settings.accepts(outcome):
                yield outcome
