"""Tests for the VDF/ACF key-value parser."""

from __future__ import annotations

import io

import pytest

from gamecollector.exceptions import FieldMissingError, ParseError
from gamecollector.formats.keyvalues import KVNode, load, loads

APP_MANIFEST = """\
"AppState"
{
\t"appid"\t\t"262060"
\t"name"\t\t"Darkest Dungeon"
\t"installdir"\t\t"DarkestDungeon"
\t"StateFlags"\t\t"4"
\t"UserConfig"
\t{
\t\t"language"\t\t"english"
\t}
}
"""

LIBRARY_FOLDERS = """\
"libraryfolders"
{
\t"0"
\t{
\t\t"path"\t\t"/a"
\t}
\t"contentstatsid"\t\t"9"
\t"3"
\t{
\t\t"path"\t\t"/b"
\t}
\t"\u00b2"\t\t"/c"
}
"""


def _doc(*lines: str) -> str:
    """Wrap key-value lines in a root block named ``r``."""
    body = "".join(f"\t{line}\n" for line in lines)
    return f'"r"\n{{\n{body}}}\n'


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestLoads:
    """Well-formed documents."""

    def test_app_manifest(self) -> None:
        root = loads(APP_MANIFEST, "AppState")
        assert root.name == "AppState"
        assert root.get_int("appid") == 262060
        assert root.get_str("name") == "Darkest Dungeon"
        assert root.get_str("UserConfig", "language") == "english"

    def test_root_compared_case_insensitively(self) -> None:
        root = loads(APP_MANIFEST, "appstate")
        assert root.name == "AppState"

    def test_duplicate_keys_kept_in_order(self) -> None:
        root = loads('"r"\n{\n"k" "1"\n"k" "2"\n"other" "x"\n}\n')
        assert [n.text for n in root.children_named("K")] == ["1", "2"]
        assert root.child("k").text == "1"

    def test_numeric_children_may_be_sparse(self) -> None:
        """Only ASCII digit names count; a superscript digit is skipped."""
        root = loads(LIBRARY_FOLDERS)
        indexed = root.numeric_children()
        assert [i for i, _ in indexed] == [0, 3]
        assert indexed[1][1].get_str("path") == "/b"

    def test_comments_and_conditionals(self) -> None:
        text = '// header\n"r"\n{\n  "a" "1" [$WIN32]\n  // note\n  "b" "2"\n}\n'
        root = loads(text)
        assert root.get_str("a") == "1"
        assert root.get_str("b") == "2"

    def test_bare_tokens(self) -> None:
        root = loads("r\n{\n  key value\n}\n")
        assert root.get_str("key") == "value"

    def test_byte_order_mark(self) -> None:
        root = loads("\ufeff" + APP_MANIFEST, "AppState")
        assert root.get_str("installdir") == "DarkestDungeon"

    def test_value_typing(self) -> None:
        root = loads('"r"\n{\n"n" "42"\n"s" "abc"\n}\n')
        assert root.child("n").value == 42
        assert root.child("s").value == "abc"
        assert root.value is None
        assert root.get_int("s") is None

    def test_find_missing_path(self) -> None:
        root = loads(APP_MANIFEST)
        assert root.find("UserConfig", "missing", "deeper") is None
        assert root.get_str("missing") is None


class TestEscapes:
    """Escape handling in quoted strings."""

    def test_known_escapes(self) -> None:
        root = loads(_doc(r'"v" "a\"b\\c\td\ne"'))
        assert root.get_str("v") == 'a"b\\c\td\ne'

    def test_unknown_escape_kept(self) -> None:
        """Windows paths with single backslashes survive."""
        root = loads(_doc(r'"path" "C:\Games\Steam"'))
        assert root.get_str("path") == r"C:\Games\Steam"

    def test_escapes_disabled(self) -> None:
        root = loads(_doc(r'"path" "C:\\Steam"'), escapes=False)
        assert root.get_str("path") == r"C:\\Steam"


class TestNulByte:
    """Embedded NUL bytes never raise."""

    def test_truncates_by_default(self) -> None:
        root = loads(_doc('"name" "Game\x00garbage"', '"next" "ok"'))
        assert root.get_str("name") == "Game"
        assert root.get_str("next") == "ok"

    def test_replaced_when_bug_disabled(self) -> None:
        root = loads(_doc('"name" "Game\x00X"'), nul_byte_bug=False)
        assert root.get_str("name") == "Game\ufffdX"

    def test_escaped_quote_before_nul(self) -> None:
        root = loads(_doc(r'"name" "A\"B' + '\x00' + r'C\"D"', '"next" "ok"'))
        assert root.get_str("name") == 'A"B'
        assert root.get_str("next") == "ok"


class TestLoadStream:
    """Parsing from streams."""

    def test_bytes_stream(self) -> None:
        stream = io.BytesIO(b"\xef\xbb\xbf" + APP_MANIFEST.encode("utf-8"))
        root = load(stream, "AppState", source="appmanifest_262060.acf")
        assert root.get_int("appid") == 262060

    def test_text_stream(self) -> None:
        root = load(io.StringIO(APP_MANIFEST), "AppState")
        assert root.get_str("name") == "Darkest Dungeon"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestMalformed:
    """Malformed documents raise ParseError."""

    def test_wrong_root(self) -> None:
        with pytest.raises(ParseError, match='has root "AppState" but "libraryfolders" was expected'):
            loads(APP_MANIFEST, "libraryfolders", source="x.vdf")

    def test_wrong_root_checked_before_parsing(self) -> None:
        with pytest.raises(ParseError, match='has root "Other"'):
            loads('"Other"\n{\n', "AppState", source="x.vdf")

    def test_empty(self) -> None:
        with pytest.raises(ParseError, match="is empty"):
            loads("   // nothing\n", source="x.vdf")

    def test_unterminated_block(self) -> None:
        with pytest.raises(ParseError, match=r"^x\.vdf: "):
            loads('"r"\n{\n\t"a" "1"\n', source="x.vdf")

    def test_unterminated_string(self) -> None:
        with pytest.raises(ParseError):
            loads('"r"\n{\n\t"a" "1\n}\n')

    def test_key_without_value(self) -> None:
        with pytest.raises(ParseError):
            loads(_doc('"a"'))

    def test_root_leaf(self) -> None:
        with pytest.raises(ParseError, match="has no children"):
            loads('"r" "value"\n')


class TestRequire:
    """Required field lookups."""

    def test_require_str_missing(self) -> None:
        node = KVNode("AppState", children=[KVNode("appid", "1")])
        with pytest.raises(FieldMissingError) as info:
            node.require_str("installdir", "appmanifest_1.acf")
        assert info.value.field == "installdir"
        assert str(info.value) == 'Manifest appmanifest_1.acf does not have the value "installdir"'

    def test_require_int_non_numeric(self) -> None:
        node = KVNode("AppState", children=[KVNode("appid", "abc")])
        with pytest.raises(ParseError, match="non-numeric"):
            node.require_int("appid", "m.acf")

    def test_require_int(self) -> None:
        node = KVNode("AppState", children=[KVNode("appid", "7")])
        assert node.require_int("appid", "m.acf") == 7
