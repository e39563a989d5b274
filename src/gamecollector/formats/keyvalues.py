"""Valve-style hierarchical key-value text (VDF/ACF) as a ``KVNode`` tree.

Parsing is done by the ``vdf`` package with ``VDFDict`` as the mapping, so
duplicate sibling keys survive in file order. This module adds what the
Steam files need on top of it:

- The root key is checked against the expected name, ignoring case, before
  the document is handed to the parser.
- Steam writes some files with an embedded NUL byte inside a quoted string.
  The Steam client stops reading the string at the NUL; with
  ``nul_byte_bug=True`` (the default) the same happens here, otherwise the
  NUL is replaced with U+FFFD. Neither mode raises.
- Parser errors are raised as ``ParseError``.

``KVNode.child()`` returns the first match of a duplicated name.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO

import vdf

from gamecollector.exceptions import FieldMissingError, ParseError

logger = logging.getLogger(__name__)


@dataclass
class KVNode:
    """One named node of a key-value tree.

    A node is either a leaf carrying ``text`` or a branch carrying
    ``children``.

    Attributes:
        name: Key as written in the file.
        text: Raw scalar text for leaves, None for branches.
        children: Child nodes in file order (branches only).
    """

    name: str
    text: str | None = None
    children: list[KVNode] = field(default_factory=list)

    @property
    def is_leaf(self) -> bool:
        return self.text is not None

    @property
    def value(self) -> str | int | None:
        """Typed scalar: an int when the text is an integer, else the text."""
        if self.text is None:
            return None
        try:
            return int(self.text)
        except ValueError:
            return self.text

    def child(self, name: str) -> KVNode | None:
        """Return the first child whose name matches, ignoring case."""
        folded = name.casefold()
        for node in self.children:
            if node.name.casefold() == folded:
                return node
        return None

    def children_named(self, name: str) -> list[KVNode]:
        """Return every child with a matching name, in file order."""
        folded = name.casefold()
        return [node for node in self.children if node.name.casefold() == folded]

    def find(self, *path: str) -> KVNode | None:
        """Follow a path of child names; None if any step is missing."""
        node: KVNode | None = self
        for name in path:
            if node is None:
                return None
            node = node.child(name)
        return node

    def get_str(self, *path: str) -> str | None:
        """Return the text of the leaf at ``path``, or None."""
        node = self.find(*path)
        if node is None or node.text is None:
            return None
        return node.text

    def get_int(self, *path: str) -> int | None:
        """Return the leaf at ``path`` as an int, or None if absent or not numeric."""
        text = self.get_str(*path)
        if text is None:
            return None
        try:
            return int(text)
        except ValueError:
            return None

    def numeric_children(self) -> list[tuple[int, KVNode]]:
        """Return children whose names are non-negative integers.

        Such children act as an array. Indices may be sparse, so no
        contiguity is assumed; the list keeps file order.
        """
        indexed: list[tuple[int, KVNode]] = []
        for node in self.children:
            if node.name.isascii() and node.name.isdigit():
                indexed.append((int(node.name), node))
        return indexed

    def require_str(self, name: str, source: Path | str, label: str = "Manifest") -> str:
        """Return the text of a required leaf.

        Args:
            name: Child name.
            source: File the node came from, used in the error message.
            label: Noun describing the source in the error message.

        Raises:
            FieldMissingError: If the child is absent or not a leaf.
        """
        text = self.get_str(name)
        if text is None:
            raise FieldMissingError(
                f'{label} {source} does not have the value "{name}"', name, source
            )
        return text

    def require_int(self, name: str, source: Path | str, label: str = "Manifest") -> int:
        """Return a required leaf as an int.

        Raises:
            FieldMissingError: If the child is absent.
            ParseError: If the value is not an integer.
        """
        text = self.require_str(name, source, label)
        try:
            return int(text)
        except ValueError:
            raise ParseError(
                f'{label} {source} has a non-numeric value "{text}" for "{name}"'
            ) from None


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _strip_nul_bytes(text: str, nul_byte_bug: bool) -> str:
    """Remove or replace NUL bytes inside quoted strings.

    With ``nul_byte_bug`` the rest of the string up to its closing quote is
    dropped. A backslash always pairs with the next character, as it does
    in the parser's string pattern.
    """
    if "\x00" not in text:
        return text
    out: list[str] = []
    quoted = False
    dropping = False
    i = 0
    while i < len(text):
        ch = text[i]
        if quoted and ch == "\\" and i + 1 < len(text):
            if not dropping:
                out.append(text[i:i + 2])
            i += 2
            continue
        if ch == '"':
            quoted = not quoted
            dropping = False
            out.append(ch)
        elif ch == "\x00" and quoted:
            if nul_byte_bug:
                dropping = True
            else:
                out.append("\ufffd")
        elif not dropping:
            out.append(ch)
        i += 1
    logger.debug("Removed NUL bytes from quoted strings")
    return "".join(out)


def _first_key(text: str) -> str | None:
    """Return the first key of a document, skipping blank and comment lines."""
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("/"):
            continue
        if line.startswith('"'):
            end = line.find('"', 1)
            return line[1:end] if end != -1 else line[1:]
        return line.split(None, 1)[0].rstrip("{")
    return None


def _to_node(name: str, value: object) -> KVNode:
    if isinstance(value, Mapping):
        return KVNode(name=name, children=[_to_node(k, v) for k, v in value.items()])
    return KVNode(name=name, text=str(value))


def loads(
    text: str,
    expected_root: str | None = None,
    *,
    source: Path | str = "<string>",
    escapes: bool = True,
    nul_byte_bug: bool = True,
) -> KVNode:
    """Parse VDF text into a tree.

    Args:
        text: Document text, one key or key/value pair per line.
        expected_root: Required root key, compared case-insensitively.
            Checked before the document is parsed.
        source: File name used in error messages.
        escapes: Interpret backslash escape sequences in quoted strings.
        nul_byte_bug: Truncate quoted strings at an embedded NUL byte.

    Returns:
        The root node.

    Raises:
        ParseError: If the text is malformed or the root name is wrong.
    """
    text = text.lstrip("\ufeff")
    root_name = _first_key(text)
    if not root_name:
        raise ParseError(f"{source} is empty")
    if expected_root is not None and root_name.casefold() != expected_root.casefold():
        raise ParseError(
            f'{source} has root "{root_name}" but "{expected_root}" was expected'
        )
    try:
        document = vdf.loads(
            _strip_nul_bytes(text, nul_byte_bug),
            mapper=vdf.VDFDict,
            merge_duplicate_keys=False,
            escaped=escapes,
        )
    except SyntaxError as exc:
        raise ParseError(f"{source}: {exc}") from exc

    items = list(document.items())
    if not items:
        raise ParseError(f"{source} is empty")
    name, value = items[0]
    if not isinstance(value, Mapping):
        raise ParseError(f'{source} root "{name}" has no children')
    return _to_node(name, value)


def load(
    stream: IO[bytes] | IO[str],
    expected_root: str | None = None,
    *,
    source: Path | str = "<stream>",
    escapes: bool = True,
    nul_byte_bug: bool = True,
) -> KVNode:
    """Parse VDF from an open stream. Bytes are decoded as UTF-8.

    See :func:`loads` for the arguments.
    """
    data = stream.read()
    if isinstance(data, bytes):
        data = data.decode("utf-8-sig", errors="replace")
    return loads(
        data,
        expected_root,
        source=source,
        escapes=escapes,
        nul_byte_bug=nul_byte_bug,
    )
