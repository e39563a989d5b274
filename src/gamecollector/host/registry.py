"""Registry capability.

``Registry.open_base_key()`` returns a ``RegistryKey`` whose subkeys and
string values can be read. Keys are context managers and are closed as soon
as a lookup finishes; nothing holds a handle between discovery calls.

``WindowsRegistry`` wraps the standard library ``winreg`` module and only
exists on Windows. ``default_registry()`` returns None everywhere else, which
the location resolver treats as "no registry strategy".
"""

from __future__ import annotations

import logging
import sys
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class RegistryHive(Enum):
    """Top-level registry hives the engine reads from."""

    LOCAL_MACHINE = "HKEY_LOCAL_MACHINE"
    CURRENT_USER = "HKEY_CURRENT_USER"


class RegistryView(Enum):
    """Which registry view to open on 64-bit Windows."""

    DEFAULT = "default"
    REGISTRY64 = "64"
    REGISTRY32 = "32"


class RegistryKey(ABC):
    """An open registry key."""

    @abstractmethod
    def open_subkey(self, path: str) -> RegistryKey | None:
        """Open a subkey by backslash-separated path.

        Returns:
            The subkey, or None if it does not exist.
        """

    @abstractmethod
    def get_string(self, name: str) -> str | None:
        """Read a string value.

        Returns:
            The value, or None if it is absent or not a string.
        """

    def subkey_names(self) -> list[str]:
        """List the names of direct subkeys."""
        return []

    def close(self) -> None:
        """Release the underlying handle."""

    def __enter__(self) -> RegistryKey:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class Registry(ABC):
    """Entry point of the registry capability."""

    @abstractmethod
    def open_base_key(
        self, hive: RegistryHive, view: RegistryView = RegistryView.DEFAULT
    ) -> RegistryKey:
        """Open the root key of ``hive`` in the requested view."""

    def read_string(
        self,
        hive: RegistryHive,
        path: str,
        name: str,
        view: RegistryView = RegistryView.DEFAULT,
    ) -> str | None:
        """Open ``hive\\path`` and read the string value ``name``.

        Every key opened along the way is closed before returning.
        """
        with self.open_base_key(hive, view) as base:
            sub = base.open_subkey(path)
            if sub is None:
                return None
            with sub:
                return sub.get_string(name)


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------


class _MemoryKey(RegistryKey):
    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.children: dict[str, _MemoryKey] = {}

    def open_subkey(self, path: str) -> RegistryKey | None:
        node: _MemoryKey | None = self
        for part in _split_path(path):
            if node is None:
                return None
            node = node.children.get(part.casefold())
        return node

    def get_string(self, name: str) -> str | None:
        return self.values.get(name.casefold())

    def subkey_names(self) -> list[str]:
        return list(self.children)


class InMemoryRegistry(Registry):
    """Registry backed by plain dictionaries.

    Useful on hosts without a registry and in tests. Key paths and value
    names compare case-insensitively, as they do on Windows.

    Usage::

        registry = InMemoryRegistry()
        registry.set_value(
            RegistryHive.CURRENT_USER, r"Software\\Valve\\Steam", "SteamPath", "C:/Steam"
        )
    """

    def __init__(self) -> None:
        self._hives: dict[tuple[RegistryHive, RegistryView], _MemoryKey] = {}

    def _root(self, hive: RegistryHive, view: RegistryView) -> _MemoryKey:
        if view is not RegistryView.DEFAULT:
            # Views share one tree unless a caller populated the view explicitly.
            key = (hive, view)
            if key not in self._hives:
                return self._root(hive, RegistryView.DEFAULT)
            return self._hives[key]
        return self._hives.setdefault((hive, view), _MemoryKey())

    def open_base_key(
        self, hive: RegistryHive, view: RegistryView = RegistryView.DEFAULT
    ) -> RegistryKey:
        return self._root(hive, view)

    def set_value(
        self,
        hive: RegistryHive,
        path: str,
        name: str,
        value: str,
        view: RegistryView = RegistryView.DEFAULT,
    ) -> None:
        """Create the key at ``path`` if needed and store a string value."""
        node = self._hives.setdefault((hive, view), _MemoryKey())
        for part in _split_path(path):
            node = node.children.setdefault(part.casefold(), _MemoryKey())
        node.values[name.casefold()] = value


def _split_path(path: str) -> list[str]:
    return [p for p in path.replace("/", "\\").split("\\") if p]


# ---------------------------------------------------------------------------
# Windows implementation
# ---------------------------------------------------------------------------


class _WinKey(RegistryKey):
    def __init__(self, winreg: Any, handle: Any, access: int) -> None:
        self._winreg = winreg
        self._handle = handle
        self._access = access

    def open_subkey(self, path: str) -> RegistryKey | None:
        try:
            handle = self._winreg.OpenKey(self._handle, path, 0, self._access)
        except OSError:
            return None
        return _WinKey(self._winreg, handle, self._access)

    def get_string(self, name: str) -> str | None:
        try:
            value, kind = self._winreg.QueryValueEx(self._handle, name)
        except OSError:
            return None
        if kind not in (self._winreg.REG_SZ, self._winreg.REG_EXPAND_SZ):
            logger.debug("Registry value %s is not a string (type %d)", name, kind)
            return None
        return value

    def subkey_names(self) -> list[str]:
        names: list[str] = []
        index = 0
        while True:
            try:
                names.append(self._winreg.EnumKey(self._handle, index))
            except OSError:
                return names
            index += 1

    def close(self) -> None:
        self._winreg.CloseKey(self._handle)


class WindowsRegistry(Registry):
    """Registry capability backed by ``winreg``.

    Raises:
        RuntimeError: When constructed on a non-Windows host.
    """

    def __init__(self) -> None:
        if sys.platform != "win32":
            raise RuntimeError("WindowsRegistry is only available on Windows")
        import winreg

        self._winreg = winreg

    def open_base_key(
        self, hive: RegistryHive, view: RegistryView = RegistryView.DEFAULT
    ) -> RegistryKey:
        winreg = self._winreg
        root = {
            RegistryHive.LOCAL_MACHINE: winreg.HKEY_LOCAL_MACHINE,
            RegistryHive.CURRENT_USER: winreg.HKEY_CURRENT_USER,
        }[hive]
        access = winreg.KEY_READ
        if view is RegistryView.REGISTRY64:
            access |= winreg.KEY_WOW64_64KEY
        elif view is RegistryView.REGISTRY32:
            access |= winreg.KEY_WOW64_32KEY
        handle = winreg.OpenKey(root, "", 0, access)
        return _WinKey(winreg, handle, access)


def default_registry() -> Registry | None:
    """Return the host registry, or None on hosts that have none."""
    if sys.platform != "win32":
        return None
    return WindowsRegistry()
