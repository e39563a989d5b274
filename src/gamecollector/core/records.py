"""Canonical records and the outcome type produced by every enumeration step.

A ``GameRecord`` is the platform-agnostic projection of one game or package.
Fields that every platform can fill are first-class attributes; anything
platform-specific goes into the multi-value ``metadata`` map, whose keys are
looked up case-insensitively.

An ``Outcome`` is either a ``GameRecord`` or an ``ErrorMessage``. It is a
plain union rather than a wrapper: callers discriminate with ``is_error()``
or ``isinstance``. A unit that failed to parse always yields an
``ErrorMessage``, never a partially filled record.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Union

Identity = Union[str, int]


class Problem(Enum):
    """Non-fatal anomalies attached to a record.

    The value of each member is the human-readable description shown to
    users.
    """

    INSTALL_PENDING = "This item is waiting to install"
    INSTALL_FAILED = "This item was not installed successfully"
    VERSION_LOCKED = "This item will not be updated"
    NOT_FOUND_IN_DATA = "This item was not found in the launcher's manifests or database"
    NOT_FOUND_ON_DISK = "This item's installation was not found"
    EXPIRED_TRIAL = "This item is an expired trial or part of a lapsed membership"
    INCOMPLETE = "This item is not fully working"
    UNPLAYABLE = "This item is unplayable"
    UNOFFICIAL = "This item is a bootleg or hack"
    FAILED_TO_VERIFY = "This item failed verification"

    @property
    def description(self) -> str:
        return self.value


@dataclass(frozen=True)
class ErrorMessage:
    """An error outcome: a message plus the exception that caused it.

    Attributes:
        message: Human-readable description of what failed.
        cause: The exception that was caught, if any.
        identity: Identity of the failed unit when it is known, so the
            reconciler can key the error like a record.
        warning: True when the error does not stop processing (for example
            a schema version mismatch under the warn policy).
    """

    message: str
    cause: BaseException | None = field(default=None, compare=False)
    identity: Identity | None = None
    warning: bool = False

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class GameRecord:
    """Platform-agnostic description of one discovered game or package.

    Attributes:
        platform: Short name of the platform that produced the record.
        game_id: Identity, unique within the platform's namespace.
        name: Display name.
        path: Install directory, or None when the item is not on disk.
        launch: Executable or command used to start the game.
        launch_args: Arguments passed to ``launch``.
        launch_url: Launcher URL (``steam://rungameid/...``) when one exists.
        uninstall: Uninstall command.
        uninstall_args: Arguments passed to ``uninstall``.
        uninstall_url: Launcher uninstall URL.
        icon: Icon file or URL.
        is_installed: Whether the item is installed locally.
        is_owned: Whether the user owns the item.
        install_date: When the item was installed.
        last_run_date: When the item was last started.
        num_runs: Number of recorded launches.
        problems: Non-fatal anomalies found while reading the item.
        metadata: Platform-specific extras, each key mapping to a list of
            values.
    """

    platform: str
    game_id: Identity
    name: str
    path: Path | None = None
    launch: str = ""
    launch_args: str = ""
    launch_url: str = ""
    uninstall: str = ""
    uninstall_args: str = ""
    uninstall_url: str = ""
    icon: str = ""
    is_installed: bool = True
    is_owned: bool = True
    install_date: datetime | None = None
    last_run_date: datetime | None = None
    num_runs: int = 0
    problems: frozenset[Problem] = frozenset()
    metadata: Mapping[str, list[str]] = field(default_factory=dict)

    def get_metadata(self, key: str) -> list[str]:
        """Return the values stored under ``key``, ignoring case.

        Args:
            key: Metadata key such as ``"Genres"``.

        Returns:
            A copy of the stored values, or an empty list.
        """
        folded = key.casefold()
        for name, values in self.metadata.items():
            if name.casefold() == folded:
                return list(values)
        return []

    def has_metadata(self, key: str) -> bool:
        """Check whether ``key`` holds at least one value."""
        return bool(self.get_metadata(key))

    def to_dict(self) -> dict[str, object]:
        """Convert the record to a JSON-serializable dict."""
        return {
            "platform": self.platform,
            "id": self.game_id,
            "name": self.name,
            "path": str(self.path) if self.path is not None else None,
            "launch": self.launch,
            "launch_args": self.launch_args,
            "launch_url": self.launch_url,
            "uninstall": self.uninstall,
            "uninstall_args": self.uninstall_args,
            "uninstall_url": self.uninstall_url,
            "icon": self.icon,
            "is_installed": self.is_installed,
            "is_owned": self.is_owned,
            "install_date": _isoformat(self.install_date),
            "last_run_date": _isoformat(self.last_run_date),
            "num_runs": self.num_runs,
            "problems": sorted(p.name for p in self.problems),
            "metadata": {k: list(v) for k, v in sorted(self.metadata.items())},
        }


Outcome = Union[GameRecord, ErrorMessage]


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def is_error(outcome: Outcome) -> bool:
    """Return True if ``outcome`` is an ``ErrorMessage``."""
    return isinstance(outcome, ErrorMessage)


def split_outcomes(
    outcomes: Iterable[Outcome],
) -> tuple[list[GameRecord], list[ErrorMessage]]:
    """Partition outcomes into records and errors, preserving order.

    Args:
        outcomes: Any iterable of outcomes. It is consumed.

    Returns:
        A ``(records, errors)`` tuple.
    """
    records: list[GameRecord] = []
    errors: list[ErrorMessage] = []
    for outcome in outcomes:
        if isinstance(outcome, ErrorMessage):
            errors.append(outcome)
        else:
            records.append(outcome)
    return records, errors
