"""Shared fixtures for gamecollector tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from gamecollector.config import Settings
from gamecollector.discovery.adapters import DiscoveryContext
from gamecollector.formats.crypto import StaticHardwareInfoProvider
from gamecollector.host.filesystem import FileSystem
from gamecollector.host.registry import InMemoryRegistry

from tests.helpers import SAMPLE_HARDWARE, FakeRunner


@pytest.fixture
def filesystem(tmp_path: Path) -> FileSystem:
    """Linux filesystem whose home is the test's temporary directory."""
    return FileSystem(home=tmp_path, env={}, os_name="linux")


@pytest.fixture
def runner() -> FakeRunner:
    """Runner with no scripted responses."""
    return FakeRunner()


@pytest.fixture
def registry() -> InMemoryRegistry:
    """Empty in-memory registry."""
    return InMemoryRegistry()


@pytest.fixture
def hardware() -> StaticHardwareInfoProvider:
    """Fixed hardware identifiers."""
    return StaticHardwareInfoProvider(SAMPLE_HARDWARE)


@pytest.fixture
def make_context(
    filesystem: FileSystem,
    runner: FakeRunner,
    registry: InMemoryRegistry,
    hardware: StaticHardwareInfoProvider,
) -> Callable[..., DiscoveryContext]:
    """Build a ``DiscoveryContext`` from the shared fakes."""

    def _make(platform: str = "test", settings: Settings | None = None) -> DiscoveryContext:
        return DiscoveryContext(
            platform=platform,
            filesystem=filesystem,
            runner=runner,
            registry=registry,
            settings=settings if settings is not None else Settings(),
            hardware=hardware,
        )

    return _make
