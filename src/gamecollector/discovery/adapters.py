"""Format adapters: turn a source root into a stream of outcomes.

Every platform is served by one or two ``FormatAdapter`` instances (an
installed source and optionally a catalog source). Two generic adapters
cover the recurring shapes:

- ``ManifestDirectoryAdapter`` -- one manifest file per item, in one or
  more directories below the root.
- ``CliTableAdapter`` -- a package-manager CLI printing a fixed-width table,
  with one-shot truncation recovery per row.

Adapters isolate failures per unit: a bad manifest or row becomes an
``ErrorMessage`` and the next unit is read. Files are listed lazily, so a
consumer that stops early leaves the rest unread.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from gamecollector.config import Settings
from gamecollector.core.records import ErrorMessage, GameRecord, Outcome
from gamecollector.discovery.location import SourceRoot
from gamecollector.exceptions import FieldMissingError, GameCollectorError, ParseError, ToolError
from gamecollector.formats.columnar import RowOutcome, TableRow, parse_table, recover_row
from gamecollector.formats.crypto import HardwareInfoProvider
from gamecollector.host.filesystem import FileSystem
from gamecollector.host.process import ProcessRunner
from gamecollector.host.registry import Registry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiscoveryContext:
    """Capabilities and settings available to adapters during one call.

    Attributes:
        platform: Short name of the platform being scanned.
        filesystem: Filesystem capability.
        runner: Process capability.
        registry: Registry capability, or None.
        settings: Session settings.
        hardware: Hardware identifiers for encrypted payloads.
    """

    platform: str
    filesystem: FileSystem
    runner: ProcessRunner
    registry: Registry | None = None
    settings: Settings = field(default_factory=Settings)
    hardware: HardwareInfoProvider | None = None


class FormatAdapter(ABC):
    """Reads one platform-native source below a source root."""

    @abstractmethod
    def enumerate(self, root: SourceRoot, context: DiscoveryContext) -> Iterator[Outcome]:
        """Yield one outcome per discovered unit.

        Implementations convert per-unit failures into ``ErrorMessage``
        outcomes and keep going.
        """


# ---------------------------------------------------------------------------
# Manifest directories
# ---------------------------------------------------------------------------


class ManifestDirectoryAdapter(FormatAdapter):
    """Reads one manifest file per item.

    Subclasses set ``pattern`` and implement ``decode()``. By default the
    source root itself is the only manifest directory; override
    ``directories()`` to scan several (for example Steam libraries).

    Attributes:
        pattern: Glob selecting manifest files.
        recursive: Search subdirectories too.
        empty_message: Error for a directory without manifests; formatted
            with ``directory`` and ``pattern``.
    """

    pattern: str = "*"
    recursive: bool = False
    empty_message: str = "The manifest directory {directory} does not contain any {pattern} files"

    def directories(
        self, root: SourceRoot, context: DiscoveryContext
    ) -> Iterator[Path | ErrorMessage]:
        """Yield the directories to scan, or errors for unusable ones."""
        yield root.path

    @abstractmethod
    def decode(self, manifest: Path, directory: Path, context: DiscoveryContext) -> GameRecord:
        """Read one manifest.

        Raises:
            GameCollectorError: If the manifest is malformed or incomplete.
            OSError: If the manifest cannot be read.
        """

    def enumerate(self, root: SourceRoot, context: DiscoveryContext) -> Iterator[Outcome]:
        fs = context.filesystem
        for directory in self.directories(root, context):
            if isinstance(directory, ErrorMessage):
                yield directory
                continue
            found = False
            for manifest in fs.iter_files(directory, self.pattern, self.recursive):
                found = True
                yield self._decode_unit(manifest, directory, context)
            if not found:
                yield ErrorMessage(
                    self.empty_message.format(directory=directory, pattern=self.pattern)
                )

    def _decode_unit(
        self, manifest: Path, directory: Path, context: DiscoveryContext
    ) -> Outcome:
        try:
            return self.decode(manifest, directory, context)
        except FieldMissingError as exc:
            logger.debug("%s", exc)
            return ErrorMessage(str(exc), cause=exc)
        except (GameCollectorError, OSError, ValueError) as exc:
            logger.debug("Unable to read %s: %s", manifest, exc)
            return ErrorMessage(f"Unable to read manifest {manifest}: {exc}", cause=exc)
        except Exception as exc:
            logger.warning("Failed to decode manifest %s", manifest, exc_info=True)
            return ErrorMessage(f"Unable to read manifest {manifest}: {exc}", cause=exc)


# ---------------------------------------------------------------------------
# CLI tables
# ---------------------------------------------------------------------------


class CliTableAdapter(FormatAdapter):
    """Runs a CLI tool and reads the fixed-width table it prints.

    Each query in ``queries()`` is run once. Rows whose fields end with the
    ellipsis marker get exactly one narrower re-query built by
    ``requery_args()``.

    Attributes:
        executable: Tool path relative to the source root.
        header_marker: Column name identifying the header line.
        id_column: Name of the identifier column.
        min_columns: Fewest columns the main table may have.
        requery_min_columns: Fewest columns the narrower table may have.
    """

    executable: str = ""
    header_marker: str = "Name"
    id_column: str = "Id"
    min_columns: int = 1
    requery_min_columns: int = 1

    @abstractmethod
    def queries(self, context: DiscoveryContext) -> Sequence[Sequence[str]]:
        """Argument lists of the queries to run."""

    @abstractmethod
    def requery_args(self, row: TableRow, prefix: str) -> Sequence[str]:
        """Arguments of a query listing only ``prefix``."""

    @abstractmethod
    def to_record(self, row: TableRow, context: DiscoveryContext) -> Outcome:
        """Convert a complete row.

        Raises:
            GameCollectorError: If the row cannot become a record.
        """

    def _run(self, exe: Path, args: Sequence[str], context: DiscoveryContext) -> str:
        result = context.runner.run(exe, args)
        if not result.stdout.strip():
            raise ToolError(f"No output from {exe} {' '.join(args)}")
        return result.stdout

    def _rows(self, output: str) -> Iterator[RowOutcome]:
        try:
            yield from parse_table(
                output, self.header_marker, self.min_columns, required=(self.id_column,)
            )
        except ParseError as exc:
            yield ErrorMessage(str(exc), cause=exc)

    def enumerate(self, root: SourceRoot, context: DiscoveryContext) -> Iterator[Outcome]:
        exe = root.path / self.executable
        for args in self.queries(context):
            try:
                output = self._run(exe, args, context)
            except ToolError as exc:
                yield ErrorMessage(str(exc), cause=exc)
                continue
            for row in self._rows(output):
                if isinstance(row, ErrorMessage):
                    yield row
                    continue
                if row.is_truncated:
                    row = recover_row(
                        row,
                        lambda prefix, r=row: self._run(exe, self.requery_args(r, prefix), context),
                        self.header_marker,
                        self.id_column,
                        self.requery_min_columns,
                    )
                    if isinstance(row, ErrorMessage):
                        yield row
                        continue
                try:
                    yield self.to_record(row, context)
                except GameCollectorError as exc:
                    yield ErrorMessage(str(exc), cause=exc, identity=row.get(self.id_column))
                except Exception as exc:
                    logger.warning("Failed to convert row %d", row.line_number, exc_info=True)
                    yield ErrorMessage(
                        f"Unable to convert line {row.line_number}: {exc}",
                        cause=exc,
                        identity=row.get(self.id_column),
                    )
