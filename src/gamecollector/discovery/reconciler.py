"""Reconciler: merge what one platform reports from two sources.

Package managers know about an item twice: once as installed on this
machine, once in their remote catalog. ``merge()`` folds the two views into
one outcome per identity with a fixed field mapping:

- Local fields come from the installed record: install path, installed
  flag, launch and uninstall commands, install and last-run dates, run
  count and the ``LOCAL_METADATA_KEYS``.
- Remote fields come from the catalog record: the ``REMOTE_METADATA_KEYS``.
- Display name: the installed name unless it is empty.
- Owned flag: either side. Problems: the union of both sides.
- Any other metadata: installed values, gaps filled from the catalog.

If either side of an identity is an error, the merged entry is that error,
and an installed-side error wins over a catalog-side one. Identities seen on
one side only pass through unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from gamecollector.core.identity import CASE_INSENSITIVE, IdentityComparer, IdentityMap
from gamecollector.core.records import ErrorMessage, GameRecord, Outcome

logger = logging.getLogger(__name__)

LOCAL_METADATA_KEYS: tuple[str, ...] = (
    "InstalledVersion",
    "Source",
    "InstallLocation",
    "Publisher",
)

REMOTE_METADATA_KEYS: tuple[str, ...] = (
    "DefaultVersion",
    "PublishDate",
    "Title",
    "Description",
    "LongDescription",
    "ReleaseNotes",
    "Notes",
    "Approved",
    "Cached",
    "Broken",
    "RemoveOnly",
    "NumDownloads",
    "VerDownloads",
    "Genres",
    "WebInfo",
    "WebSupport",
    "SourceCode",
    "License",
)

_LOCAL_FOLDED = frozenset(k.casefold() for k in LOCAL_METADATA_KEYS)


def _find_key(metadata: dict[str, list[str]], key: str) -> str | None:
    folded = key.casefold()
    for name in metadata:
        if name.casefold() == folded:
            return name
    return None


def _lookup(record: GameRecord, key: str) -> list[str] | None:
    folded = key.casefold()
    for name, values in record.metadata.items():
        if name.casefold() == folded:
            return list(values)
    return None


def merge_metadata(installed: GameRecord, remote: GameRecord) -> dict[str, list[str]]:
    """Combine metadata maps under the local/remote key split."""
    merged: dict[str, list[str]] = {k: list(v) for k, v in installed.metadata.items()}
    for key in REMOTE_METADATA_KEYS:
        values = _lookup(remote, key)
        if values is None:
            continue
        existing = _find_key(merged, key)
        if existing is not None:
            del merged[existing]
        merged[key] = values
    for key, values in remote.metadata.items():
        if key.casefold() in _LOCAL_FOLDED or _find_key(merged, key) is not None:
            continue
        merged[key] = list(values)
    return merged


def merge_records(installed: GameRecord, remote: GameRecord) -> GameRecord:
    """Build the record for an identity found in both sources."""
    return GameRecord(
        platform=installed.platform,
        game_id=installed.game_id,
        name=installed.name or remote.name,
        path=installed.path,
        launch=installed.launch,
        launch_args=installed.launch_args,
        launch_url=installed.launch_url or remote.launch_url,
        uninstall=installed.uninstall,
        uninstall_args=installed.uninstall_args,
        uninstall_url=installed.uninstall_url or remote.uninstall_url,
        icon=installed.icon or remote.icon,
        is_installed=installed.is_installed,
        is_owned=installed.is_owned or remote.is_owned,
        install_date=installed.install_date,
        last_run_date=installed.last_run_date,
        num_runs=installed.num_runs,
        problems=installed.problems | remote.problems,
        metadata=merge_metadata(installed, remote),
    )


def merge(
    installed: IdentityMap[Outcome],
    remote: IdentityMap[Outcome],
) -> IdentityMap[Outcome]:
    """Merge installed and catalog outcomes into one outcome per identity.

    The result uses the installed map's comparer. Installed identities come
    first in their original order, followed by catalog-only identities.
    Neither input is modified.
    """
    result: IdentityMap[Outcome] = IdentityMap(installed.comparer)
    for key, local in installed.items():
        if key not in remote:
            result[key] = local
            continue
        other = remote[key]
        if isinstance(local, ErrorMessage):
            result[key] = local
        elif isinstance(other, ErrorMessage):
            result[key] = other
        else:
            result[key] = merge_records(local, other)
    for key, other in remote.items():
        if key not in installed:
            result[key] = other
    return result


def index_outcomes(
    outcomes: Iterable[Outcome],
    comparer: IdentityComparer = CASE_INSENSITIVE,
) -> tuple[IdentityMap[Outcome], list[ErrorMessage]]:
    """Key outcomes by identity for reconciliation.

    Records are keyed by ``game_id`` and errors by their ``identity``. The
    first outcome seen for an identity is kept. Errors without an identity
    cannot be keyed and are returned separately.

    Returns:
        ``(by_identity, unkeyed_errors)``.
    """
    by_identity: IdentityMap[Outcome] = IdentityMap(comparer)
    unkeyed: list[ErrorMessage] = []
    for outcome in outcomes:
        if isinstance(outcome, ErrorMessage):
            if outcome.identity is None:
                unkeyed.append(outcome)
                continue
            key = outcome.identity
        else:
            key = outcome.game_id
        if not by_identity.add_if_absent(key, outcome):
            logger.debug("Ignoring duplicate entry for %r", key)
    return by_identity, unkeyed
