"""Tests for versioned, optionally encrypted JSON payloads."""

from __future__ import annotations

import json

import pytest

from gamecollector.exceptions import GameCollectorError
from gamecollector.formats.blob import (
    Envelope,
    SchemaPolicy,
    decode_payload,
    get_field,
    parse_blob,
)
from gamecollector.formats.crypto import (
    HardwareInfo,
    StaticHardwareInfoProvider,
    derive_iv,
    derive_key,
    encrypt,
)

from tests.helpers import SAMPLE_HARDWARE

ENVELOPE = Envelope(
    records_key="installInfos",
    version_path=("schema", "version"),
    supported_version=21,
    label="InstallInfoFile",
    records_label="infos",
)


def _document(version: int | None = 21, infos: object = None) -> bytes:
    doc: dict = {"installInfos": infos if infos is not None else [{"softwareId": "a"}]}
    if version is not None:
        doc["schema"] = {"version": version}
    return json.dumps(doc).encode("utf-8")


def _encrypted(plaintext: bytes) -> bytes:
    return encrypt(plaintext, derive_key(SAMPLE_HARDWARE), derive_iv())


class TestGetField:
    """Case-insensitive field lookup."""

    def test_exact_match_wins(self) -> None:
        assert get_field({"Key": 1, "key": 2}, "key") == 2

    def test_folded_match(self) -> None:
        assert get_field({"SoftwareId": "x"}, "softwareid") == "x"

    def test_missing(self) -> None:
        assert get_field({}, "x") is None


class TestDecodePayload:
    """Decryption and deserialization failures."""

    def test_plaintext(self) -> None:
        assert decode_payload(b'{"a": 1}', "f.json") == {"a": 1}

    def test_encrypted(self) -> None:
        provider = StaticHardwareInfoProvider(SAMPLE_HARDWARE)
        assert decode_payload(_encrypted(b'{"a": 1}'), "IS", provider) == {"a": 1}

    def test_bad_json(self) -> None:
        with pytest.raises(GameCollectorError, match="Exception while deserializing file f.json"):
            decode_payload(b"{not json", "f.json")

    def test_wrong_key(self) -> None:
        """A foreign machine's identifiers fail in decryption or deserialization."""
        provider = StaticHardwareInfoProvider(HardwareInfo(processor_name="Other"))
        with pytest.raises(GameCollectorError, match="Exception while (decrypting|deserializing) file IS"):
            decode_payload(_encrypted(b'{"a": 1}'), "IS", provider)


class TestParseBlob:
    """Schema checks and record extraction."""

    def test_supported_version(self) -> None:
        records, errors = parse_blob(_document(), ENVELOPE, source="IS")
        assert records == [{"softwareId": "a"}]
        assert errors == []

    def test_encrypted_payload(self) -> None:
        provider = StaticHardwareInfoProvider(SAMPLE_HARDWARE)
        records, errors = parse_blob(
            _encrypted(_document()), ENVELOPE, source="IS", key_provider=provider
        )
        assert records == [{"softwareId": "a"}]
        assert errors == []

    def test_missing_version(self) -> None:
        records, errors = parse_blob(_document(version=None), ENVELOPE, source="IS")
        assert records == []
        assert [e.message for e in errors] == ["InstallInfoFile IS does not have a schema version!"]

    def test_mismatch_warns_and_parses(self) -> None:
        records, errors = parse_blob(_document(version=22), ENVELOPE, source="IS")
        assert records == [{"softwareId": "a"}]
        assert len(errors) == 1
        assert errors[0].warning is True
        assert "has a schema version 22 but this library only supports schema version 21" in errors[0].message
        assert "This message is a WARNING because the schema policy is set to warn" in errors[0].message

    def test_mismatch_error_policy(self) -> None:
        records, errors = parse_blob(
            _document(version=22), ENVELOPE, source="IS", policy=SchemaPolicy.ERROR
        )
        assert records == []
        assert len(errors) == 1
        assert errors[0].warning is False
        assert "This message is a ERROR because the schema policy is set to error" in errors[0].message

    def test_mismatch_ignore_policy(self) -> None:
        records, errors = parse_blob(
            _document(version=22), ENVELOPE, source="IS", policy=SchemaPolicy.IGNORE
        )
        assert records == [{"softwareId": "a"}]
        assert errors == []

    def test_no_records(self) -> None:
        records, errors = parse_blob(_document(infos=[]), ENVELOPE, source="IS")
        assert records == []
        assert [e.message for e in errors] == ["InstallInfoFile IS does not have any infos!"]

    def test_non_object_entry(self) -> None:
        records, errors = parse_blob(_document(infos=[{"softwareId": "a"}, 7]), ENVELOPE, source="IS")
        assert records == [{"softwareId": "a"}]
        assert errors[0].message == "InstallInfoFile IS entry #1 is not an object"

    def test_not_an_object(self) -> None:
        records, errors = parse_blob(b"[1, 2]", ENVELOPE, source="IS")
        assert records == []
        assert "is not a JSON object" in errors[0].message

    def test_decode_failure_is_single_error(self) -> None:
        records, errors = parse_blob(b"\xff\xfe garbage", ENVELOPE, source="IS")
        assert records == []
        assert len(errors) == 1
        assert errors[0].message == "Exception while deserializing file IS"
        assert errors[0].cause is not None
