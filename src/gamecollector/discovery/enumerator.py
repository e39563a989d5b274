"""Resilient Enumerator: drive an adapter and never let it break the stream.

The enumerator pulls outcomes from an adapter one at a time. If the adapter
itself fails (a bug or an unexpected OS error rather than a per-unit
problem it already reported), the failure becomes one final error outcome.
Cancellation is checked between units.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator

from gamecollector.core.records import ErrorMessage, Outcome
from gamecollector.discovery.adapters import DiscoveryContext, FormatAdapter
from gamecollector.discovery.location import SourceRoot

logger = logging.getLogger(__name__)


def enumerate_outcomes(
    root: SourceRoot,
    adapter: FormatAdapter,
    context: DiscoveryContext,
    cancel: threading.Event | None = None,
) -> Iterator[Outcome]:
    """Lazily yield the adapter's outcomes for ``root``.

    Args:
        root: Resolved source root.
        adapter: Adapter reading the platform's format.
        context: Capabilities and settings.
        cancel: Stops the enumeration before the next unit once set.

    Yields:
        Records and errors in the order the adapter produces them.
    """
    units = adapter.enumerate(root, context)
    try:
        while True:
            if cancel is not None and cancel.is_set():
                logger.info("Enumeration of %s cancelled", context.platform)
                return
            try:
                outcome = next(units)
            except StopIteration:
                return
            except Exception as exc:
                logger.warning("Enumeration of %s failed", context.platform, exc_info=True)
                yield ErrorMessage(
                    f"Enumeration of {context.platform} in {root.path} stopped: {exc}",
                    cause=exc,
                )
                return
            yield outcome
    finally:
        units.close()
