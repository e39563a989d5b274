"""The snapshot's "last known version" marker and its remote counterpart.

The snapshot file starts with a ``"last_edit_id": <n>`` field. A newer
snapshot is available when the published marker is greater than the local
one. Checking the published marker needs httpx, installed with the
``metadata`` extra; network failures are logged and never raised.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

EDIT_URL = (
    "https://github.com/Nutzzz/GameCollector/releases/download/"
    "TheGamesDB_database/last_edit_id.txt"
)

# Timeout for marker requests (seconds).
DEFAULT_TIMEOUT: float = 15.0

USER_AGENT: str = "gamecollector/0.1"

# The marker sits near the start of the file; no need to read the rest.
_HEAD_SIZE = 256
_MARKER_RE = re.compile(r'"last_edit_id"\s*:\s*(\d+)')


def _ensure_httpx() -> Any:  # noqa: ANN401
    """Lazily import httpx and raise a friendly error if missing.

    Returns:
        The ``httpx`` module.

    Raises:
        SystemExit: If httpx is not installed.
    """
    try:
        import httpx

        return httpx
    except ImportError:
        raise SystemExit(
            "httpx is required to check for metadata updates.\n"
            "Install it with: pip install gamecollector[metadata]"
        )


def read_last_edit_id(path: Path) -> int | None:
    """Read the marker from the head of a snapshot file.

    Returns:
        The marker, or None if the file is missing or has no marker.
    """
    try:
        with path.open("r", encoding="utf-8-sig", errors="replace") as fh:
            head = fh.read(_HEAD_SIZE)
    except OSError as exc:
        logger.debug("Cannot read snapshot %s: %s", path, exc)
        return None
    found = _MARKER_RE.search(head)
    return int(found.group(1)) if found else None


def fetch_last_edit_id(
    url: str = EDIT_URL,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    client: Any = None,
) -> int | None:
    """Fetch the published marker.

    Args:
        url: Plain-text URL holding the marker.
        timeout: Request timeout in seconds.
        client: An ``httpx.Client`` to reuse (for testing).

    Returns:
        The marker, or None on any network or format error.
    """
    httpx = _ensure_httpx()
    owned = client is None
    if owned:
        client = httpx.Client(
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        )
    try:
        resp = client.get(url)
        resp.raise_for_status()
        return int(resp.text.strip())
    except httpx.TimeoutException:
        logger.warning("Timeout fetching %s", url)
        return None
    except httpx.HTTPStatusError as exc:
        logger.warning("HTTP %d from %s", exc.response.status_code, url)
        return None
    except (httpx.RequestError, ValueError) as exc:
        logger.warning("Request error for %s: %s", url, exc)
        return None
    finally:
        if owned:
            client.close()


def snapshot_is_stale(path: Path, url: str = EDIT_URL, *, client: Any = None) -> bool:
    """Check whether a newer snapshot has been published.

    A missing or unmarked local snapshot is stale. When the published
    marker cannot be fetched the local snapshot is assumed current.
    """
    local = read_last_edit_id(path)
    if local is None or local < 1:
        return True
    remote = fetch_last_edit_id(url, client=client)
    if remote is None:
        return False
    return remote > local
