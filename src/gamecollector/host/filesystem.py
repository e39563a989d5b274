"""Filesystem capability.

Wraps the handful of filesystem operations the engine performs and resolves
"known paths" (home, app data, Program Files and so on) for the current
operating system. The home directory, environment and OS name can all be
overridden so that tests can point every known path into a temporary
directory.

Known Paths:
    ============================  ==============================  ==========================
    Constant                      Windows                         Linux / macOS
    ============================  ==============================  ==========================
    ``HOME``                      ``%USERPROFILE%``               ``$HOME``
    ``APP_DATA``                  ``%APPDATA%``                   ``$XDG_CONFIG_HOME``
    ``LOCAL_APP_DATA``            ``%LOCALAPPDATA%``              ``$XDG_DATA_HOME``
    ``COMMON_APP_DATA``           ``%ProgramData%``               ``/usr/share``
    ``PROGRAM_FILES``             ``%ProgramFiles%``              (none)
    ``PROGRAM_FILES_X86``         ``%ProgramFiles(x86)%``         (none)
    ``TEMP``                      ``%TEMP%``                      ``$TMPDIR`` or ``/tmp``
    ``APPLICATION_SUPPORT``       (none)                          ``~/Library/Application Support`` (macOS)
    ============================  ==============================  ==========================
"""

from __future__ import annotations

import logging
import os
import platform
from collections.abc import Iterator, Mapping
from enum import Enum
from pathlib import Path
from typing import BinaryIO

logger = logging.getLogger(__name__)


class KnownPath(Enum):
    """Well-known directories resolved per operating system."""

    HOME = "home"
    APP_DATA = "app_data"
    LOCAL_APP_DATA = "local_app_data"
    COMMON_APP_DATA = "common_app_data"
    PROGRAM_FILES = "program_files"
    PROGRAM_FILES_X86 = "program_files_x86"
    TEMP = "temp"
    APPLICATION_SUPPORT = "application_support"


def current_os() -> str:
    """Return ``"windows"``, ``"macos"`` or ``"linux"``."""
    system = platform.system().lower()
    if system == "darwin":
        return "macos"
    return "windows" if system == "windows" else "linux"


class FileSystem:
    """Read-only filesystem access with per-OS known paths.

    Args:
        home: Override the home directory (for testing).
        env: Override the environment used to resolve known paths.
        os_name: Override the detected operating system.
    """

    def __init__(
        self,
        home: Path | None = None,
        env: Mapping[str, str] | None = None,
        os_name: str | None = None,
    ) -> None:
        self.home = home if home is not None else Path.home()
        self.env: Mapping[str, str] = os.environ if env is None else env
        self.os_name = os_name or current_os()

    # -- known paths --------------------------------------------------------

    def known_path(self, which: KnownPath) -> Path | None:
        """Resolve a known path for the current OS.

        Returns:
            The directory, or None when the concept does not exist on this
            OS (Program Files on Linux, for example).
        """
        if which is KnownPath.HOME:
            return self.home
        if self.os_name == "windows":
            return self._windows_path(which)
        return self._unix_path(which)

    def _env_path(self, name: str, fallback: Path | None) -> Path | None:
        value = self.env.get(name)
        if value:
            return Path(value)
        return fallback

    def _windows_path(self, which: KnownPath) -> Path | None:
        if which is KnownPath.APP_DATA:
            return self._env_path("APPDATA", self.home / "AppData" / "Roaming")
        if which is KnownPath.LOCAL_APP_DATA:
            return self._env_path("LOCALAPPDATA", self.home / "AppData" / "Local")
        if which is KnownPath.COMMON_APP_DATA:
            return self._env_path("PROGRAMDATA", Path("C:/ProgramData"))
        if which is KnownPath.PROGRAM_FILES:
            return self._env_path("PROGRAMFILES", Path("C:/Program Files"))
        if which is KnownPath.PROGRAM_FILES_X86:
            return self._env_path("PROGRAMFILES(X86)", Path("C:/Program Files (x86)"))
        if which is KnownPath.TEMP:
            return self._env_path("TEMP", self.home / "AppData" / "Local" / "Temp")
        return None

    def _unix_path(self, which: KnownPath) -> Path | None:
        if which is KnownPath.APP_DATA:
            return self._env_path("XDG_CONFIG_HOME", self.home / ".config")
        if which is KnownPath.LOCAL_APP_DATA:
            return self._env_path("XDG_DATA_HOME", self.home / ".local" / "share")
        if which is KnownPath.COMMON_APP_DATA:
            return Path("/usr/share")
        if which is KnownPath.TEMP:
            return self._env_path("TMPDIR", Path("/tmp"))
        if which is KnownPath.APPLICATION_SUPPORT and self.os_name == "macos":
            return self.home / "Library" / "Application Support"
        return None

    # -- queries ------------------------------------------------------------

    def is_file(self, path: Path) -> bool:
        """Check for a regular file, treating permission errors as absence."""
        try:
            return path.is_file()
        except (PermissionError, OSError):
            return False

    def is_dir(self, path: Path) -> bool:
        """Check for a directory, treating permission errors as absence."""
        try:
            return path.is_dir()
        except (PermissionError, OSError):
            return False

    def exists(self, path: Path) -> bool:
        """Check whether anything exists at ``path``."""
        try:
            return path.exists()
        except (PermissionError, OSError):
            return False

    def iter_files(
        self, directory: Path, pattern: str, recursive: bool = False
    ) -> Iterator[Path]:
        """Lazily yield files in ``directory`` matching a glob pattern.

        Files are produced as the directory is walked, so a consumer that
        stops early never causes the rest of the tree to be read. Results
        are not sorted.

        Args:
            directory: Directory to search.
            pattern: Glob such as ``"*.acf"``.
            recursive: Also search subdirectories.
        """
        matches = directory.rglob(pattern) if recursive else directory.glob(pattern)
        try:
            for match in matches:
                if self.is_file(match):
                    yield match
        except (PermissionError, OSError) as exc:
            logger.debug("Stopped listing %s: %s", directory, exc)

    def open_binary(self, path: Path) -> BinaryIO:
        """Open a file for binary reading."""
        return path.open("rb")

    def read_bytes(self, path: Path) -> bytes:
        """Read a whole file as bytes."""
        with self.open_binary(path) as fh:
            return fh.read()

    def read_text(self, path: Path) -> str:
        """Read a whole file as UTF-8 text, dropping a byte-order mark."""
        return self.read_bytes(path).decode("utf-8-sig", errors="replace")
