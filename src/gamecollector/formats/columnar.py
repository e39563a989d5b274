"""Parser for fixed-width tables printed by package-manager CLIs.

A table looks like this::

    Name               Id                    Version   Source
    ---------------------------------------------------------
    Celeste            MattMakesGames.Cel…   1.4.0.0   winget
    Some Very Long Na… Example.Tool          2.1

Column boundaries are not delimited, so the header line is the only source
of truth. Each header token's character offset becomes a cut point and
every data line is sliced at those offsets. A line shorter than a cut point
simply yields empty fields to its right.

Terminals overwrite a line on carriage return, and CLIs print progress
spinners that way, so only the text after the last ``\\r`` of a line is
considered.

Truncation:
    Tools elide long values with a trailing ``…``. ``TableRow.is_truncated``
    reports such rows and :func:`recover_row` performs one narrower re-query
    to fetch the full values. Every column is checked for the marker and the
    re-query is keyed by the identifier column.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Callable, Union

from gamecollector.core.records import ErrorMessage
from gamecollector.exceptions import GameCollectorError, ParseError

logger = logging.getLogger(__name__)

ELLIPSIS = "\u2026"

_TOKEN_RE = re.compile(r"\S+")


@dataclass(frozen=True)
class TableLayout:
    """Column names and their start offsets, taken from a header line.

    Attributes:
        columns: Header tokens in order.
        cuts: Character offset at which each column starts.
        header_line: Zero-based line index of the header.
    """

    columns: tuple[str, ...]
    cuts: tuple[int, ...]
    header_line: int

    def index_of(self, column: str) -> int:
        """Return the position of ``column``, ignoring case, or -1."""
        folded = column.casefold()
        for i, name in enumerate(self.columns):
            if name.casefold() == folded:
                return i
        return -1


@dataclass(frozen=True)
class TableRow:
    """One sliced data line.

    Attributes:
        line_number: One-based line number in the raw output.
        columns: Header tokens of the table the row came from.
        values: Trimmed field text, one per column.
    """

    line_number: int
    columns: tuple[str, ...]
    values: tuple[str, ...]

    def get(self, column: str) -> str:
        """Return the field under ``column`` (case-insensitive), or ``""``."""
        folded = column.casefold()
        for name, value in zip(self.columns, self.values):
            if name.casefold() == folded:
                return value
        return ""

    def as_dict(self) -> dict[str, str]:
        return dict(zip(self.columns, self.values))

    @property
    def truncated_columns(self) -> tuple[str, ...]:
        """Names of the columns whose value ends with the ellipsis marker."""
        return tuple(
            name for name, value in zip(self.columns, self.values)
            if value.endswith(ELLIPSIS)
        )

    @property
    def is_truncated(self) -> bool:
        return bool(self.truncated_columns)

    def splice(self, other: TableRow) -> TableRow:
        """Replace this row's truncated fields with ``other``'s values.

        Columns are matched by header name. Columns missing from ``other``
        keep their truncated value.
        """
        replaced = []
        for name, value in zip(self.columns, self.values):
            if value.endswith(ELLIPSIS):
                recovered = other.get(name)
                replaced.append(recovered if recovered else value)
            else:
                replaced.append(value)
        return TableRow(self.line_number, self.columns, tuple(replaced))


RowOutcome = Union[TableRow, ErrorMessage]


def _visible(line: str) -> str:
    """Return the part of a line left on screen after carriage returns."""
    return line.rsplit("\r", 1)[-1]


def find_header(lines: Sequence[str], marker: str, min_columns: int = 1) -> TableLayout:
    """Locate the header line and compute its cut points.

    Args:
        lines: Output split into lines.
        marker: A column name that only appears in the header.
        min_columns: Fewest columns the table kind may have.

    Raises:
        ParseError: If no line contains ``marker`` as a whole token, or the
            header has fewer than ``min_columns`` columns.
    """
    pattern = re.compile(rf"(?<!\S){re.escape(marker)}(?!\S)")
    for index, raw in enumerate(lines):
        line = _visible(raw)
        found = pattern.search(line)
        if found is None:
            continue
        tokens = [m for m in _TOKEN_RE.finditer(line) if m.start() >= found.start()]
        layout = TableLayout(
            columns=tuple(m.group() for m in tokens),
            cuts=tuple(m.start() for m in tokens),
            header_line=index,
        )
        if len(layout.cuts) < min_columns:
            raise ParseError(
                f"Header has {len(layout.cuts)} columns but at least "
                f"{min_columns} were expected: {line.strip()!r}"
            )
        return layout
    raise ParseError(f'No recognizable header: no line contains "{marker}"')


def slice_line(line: str, cuts: Sequence[int]) -> tuple[str, ...]:
    """Cut ``line`` at the given offsets and trim each field.

    Fields that start beyond the end of the line are empty.
    """
    fields: list[str] = []
    for i, start in enumerate(cuts):
        end = cuts[i + 1] if i + 1 < len(cuts) else len(line)
        fields.append(line[start:end].strip() if start < len(line) else "")
    return tuple(fields)


def parse_table(
    raw: str,
    header_marker: str,
    min_columns: int = 1,
    required: Sequence[str] = (),
) -> Iterator[RowOutcome]:
    """Parse CLI table output into rows.

    The line directly after the header is skipped as a separator. The table
    ends at the first blank line after at least one data row.

    Args:
        raw: Complete standard output of the tool.
        header_marker: Column name identifying the header line.
        min_columns: Fewest columns the header may have.
        required: Columns that must be non-empty; rows missing one become
            error outcomes.

    Yields:
        A ``TableRow`` per data line, or an ``ErrorMessage`` for a line that
        cannot be read as a row.

    Raises:
        ParseError: If the header cannot be found. Raised on the first
            ``next()`` call, before any row is produced.
    """
    lines = raw.replace("\r\n", "\n").split("\n")
    layout = find_header(lines, header_marker, min_columns)
    seen_rows = False
    for index in range(layout.header_line + 2, len(lines)):
        line = _visible(lines[index])
        if not line.strip():
            if seen_rows:
                return
            continue
        seen_rows = True
        values = slice_line(line, layout.cuts)
        missing = [
            name for name in required
            if layout.index_of(name) >= 0 and not values[layout.index_of(name)]
        ]
        if missing:
            yield ErrorMessage(
                f"Unable to parse line {index + 1} (no {', '.join(missing)}): "
                f"{line.strip()!r}"
            )
            continue
        yield TableRow(index + 1, layout.columns, values)


def recover_row(
    row: TableRow,
    requery: Callable[[str], str],
    header_marker: str,
    id_column: str,
    min_columns: int = 1,
) -> RowOutcome:
    """Recover the full values of a truncated row with one narrower query.

    ``requery`` receives the identifier with the ellipsis stripped and must
    return the raw output of a query that lists that identifier alone. The
    first row whose identifier starts with the prefix supplies the missing
    values. No second attempt is made: a row that is still truncated is
    reported as an error.

    Args:
        row: A row for which ``is_truncated`` is true.
        requery: Runs the narrower query and returns its stdout.
        header_marker: Header marker of the narrower table.
        id_column: Name of the identifier column.
        min_columns: Fewest columns the narrower table may have.

    Returns:
        The spliced row, or an error outcome.
    """
    raw_id = row.get(id_column)
    prefix = raw_id.rstrip(ELLIPSIS).strip()
    identity = None if raw_id.endswith(ELLIPSIS) else raw_id or None
    if not prefix:
        return ErrorMessage(
            f"Line {row.line_number} is truncated and has no identifier to re-query",
            identity=identity,
        )
    logger.debug("Re-querying truncated row %r (%s)", prefix, ", ".join(row.truncated_columns))
    try:
        output = requery(prefix)
        candidates = [
            r for r in parse_table(output, header_marker, min_columns)
            if isinstance(r, TableRow)
        ]
    except GameCollectorError as exc:
        return ErrorMessage(
            f'Re-query for truncated row "{prefix}" failed: {exc}',
            cause=exc,
            identity=identity,
        )
    folded = prefix.casefold()
    match = next(
        (c for c in candidates if c.get(id_column).casefold().startswith(folded)),
        None,
    )
    if match is None:
        return ErrorMessage(
            f'Re-query for truncated row "{prefix}" returned no matching row',
            identity=identity,
        )
    spliced = row.splice(match)
    if spliced.is_truncated:
        return ErrorMessage(
            f'Row "{prefix}" is still truncated after re-query '
            f"({', '.join(spliced.truncated_columns)})",
            identity=identity,
        )
    return spliced
