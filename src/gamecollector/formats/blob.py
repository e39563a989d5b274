"""Parser for versioned JSON payloads that may be encrypted.

A payload is a JSON object carrying a schema version somewhere in it and an
array of records. ``Envelope`` says where both live. Parsing never raises:
decryption and deserialization failures become a single ``ErrorMessage``.

Schema Policy:
    - ``WARN`` (default): a mismatched version adds a warning outcome and
      the records are parsed anyway.
    - ``ERROR``: a mismatched version adds an error and stops.
    - ``IGNORE``: a mismatched version is not reported.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from gamecollector.core.records import ErrorMessage
from gamecollector.exceptions import GameCollectorError
from gamecollector.formats import crypto
from gamecollector.formats.crypto import HardwareInfoProvider

logger = logging.getLogger(__name__)


class SchemaPolicy(Enum):
    """How to react to a schema version this library does not know."""

    WARN = "warn"
    ERROR = "error"
    IGNORE = "ignore"


@dataclass(frozen=True)
class Envelope:
    """Location of the schema version and records inside a payload.

    Attributes:
        records_key: Top-level key of the record array.
        version_path: Keys leading to the integer schema version.
        supported_version: The version this library was written against.
        label: Noun for the payload in messages (e.g. ``"InstallInfoFile"``).
        records_label: Noun for the records in messages (e.g. ``"infos"``).
    """

    records_key: str = "records"
    version_path: tuple[str, ...] = ("schemaVersion",)
    supported_version: int = 1
    label: str = "Payload"
    records_label: str = "records"


def get_field(mapping: Mapping[str, Any], key: str) -> Any:
    """Look up ``key`` ignoring case; exact matches win. Returns None if absent."""
    if key in mapping:
        return mapping[key]
    folded = key.casefold()
    for name, value in mapping.items():
        if isinstance(name, str) and name.casefold() == folded:
            return value
    return None


def _schema_version(document: Mapping[str, Any], path: tuple[str, ...]) -> int | None:
    node: Any = document
    for key in path:
        if not isinstance(node, Mapping):
            return None
        node = get_field(node, key)
    if isinstance(node, bool) or not isinstance(node, (int, str)):
        return None
    try:
        return int(node)
    except ValueError:
        return None


def decode_payload(
    data: bytes,
    source: Path | str,
    key_provider: HardwareInfoProvider | None = None,
    header_size: int = crypto.HEADER_SIZE,
) -> Any:
    """Decrypt (when a key provider is given) and deserialize a payload.

    Raises:
        GameCollectorError: Wrapping whichever step failed, with the
            original exception as ``__cause__``.
    """
    if key_provider is not None:
        try:
            key = crypto.derive_key(key_provider.hardware_info())
            data = crypto.decrypt(data, key, crypto.derive_iv(), header_size)
        except (GameCollectorError, ValueError) as exc:
            raise GameCollectorError(f"Exception while decrypting file {source}") from exc
    try:
        return json.loads(data.decode("utf-8-sig"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise GameCollectorError(f"Exception while deserializing file {source}") from exc


def parse_blob(
    data: bytes,
    envelope: Envelope,
    *,
    source: Path | str,
    key_provider: HardwareInfoProvider | None = None,
    policy: SchemaPolicy = SchemaPolicy.WARN,
    header_size: int = crypto.HEADER_SIZE,
) -> tuple[list[dict[str, Any]], list[ErrorMessage]]:
    """Parse a versioned payload into raw record objects.

    Args:
        data: File contents, ciphertext or plaintext.
        envelope: Where the version and records live.
        source: File name for messages.
        key_provider: Hardware identifiers for decryption; None means the
            payload is plaintext JSON.
        policy: Reaction to an unknown schema version.
        header_size: Bytes to skip before the ciphertext.

    Returns:
        ``(records, errors)``. Records are the raw JSON objects in file
        order. Errors may include a warning (``ErrorMessage.warning``) next
        to a full set of records.
    """
    errors: list[ErrorMessage] = []
    try:
        document = decode_payload(data, source, key_provider, header_size)
    except GameCollectorError as exc:
        logger.debug("%s", exc, exc_info=True)
        return [], [ErrorMessage(str(exc), cause=exc.__cause__ or exc)]

    if not isinstance(document, Mapping):
        return [], [ErrorMessage(f"{envelope.label} {source} is not a JSON object")]

    version = _schema_version(document, envelope.version_path)
    if version is None:
        return [], [ErrorMessage(f"{envelope.label} {source} does not have a schema version!")]

    if version != envelope.supported_version and policy is not SchemaPolicy.IGNORE:
        level = "WARNING" if policy is SchemaPolicy.WARN else "ERROR"
        message = (
            f"{envelope.label} {source} has a schema version {version} but this "
            f"library only supports schema version {envelope.supported_version}. "
            f"This message is a {level} because the schema policy is set to "
            f"{policy.value}"
        )
        if policy is SchemaPolicy.ERROR:
            return [], [ErrorMessage(message)]
        logger.warning("%s", message)
        errors.append(ErrorMessage(message, warning=True))

    raw_records = get_field(document, envelope.records_key)
    if not isinstance(raw_records, list) or not raw_records:
        errors.append(
            ErrorMessage(f"{envelope.label} {source} does not have any {envelope.records_label}!")
        )
        return [], errors

    records: list[dict[str, Any]] = []
    for index, item in enumerate(raw_records):
        if isinstance(item, dict):
            records.append(item)
        else:
            errors.append(
                ErrorMessage(f"{envelope.label} {source} entry #{index} is not an object")
            )
    return records, errors
