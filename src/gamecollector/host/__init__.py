"""Host capabilities consumed by the discovery engine.

The engine never touches ``winreg``, ``os.environ`` or ``subprocess``
directly. It calls into the small interfaces defined here, which tests
replace with in-memory or scripted doubles.
"""

from gamecollector.host.filesystem import FileSystem, KnownPath
from gamecollector.host.process import ProcessResult, ProcessRunner, SubprocessRunner
from gamecollector.host.registry import (
    InMemoryRegistry,
    Registry,
    RegistryHive,
    RegistryKey,
    RegistryView,
    default_registry,
)

__all__ = [
    "FileSystem",
    "InMemoryRegistry",
    "KnownPath",
    "ProcessResult",
    "ProcessRunner",
    "Registry",
    "RegistryHive",
    "RegistryKey",
    "RegistryView",
    "SubprocessRunner",
    "default_registry",
]
