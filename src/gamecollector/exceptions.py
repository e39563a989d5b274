"""GameCollector exception hierarchy.

All public exceptions inherit from GameCollectorError, giving callers a single
base class to catch when they want to handle any GameCollector-specific failure
without swallowing unrelated errors.

Inside the discovery engine these exceptions never reach the caller: they are
raised by parsers and host capabilities and converted into ``ErrorMessage``
outcomes at the boundary of the unit (one manifest, one row, one blob) or the
platform that failed.
"""

from __future__ import annotations

from pathlib import Path


class GameCollectorError(Exception):
    """Base exception for all GameCollector errors."""


class ResolutionError(GameCollectorError):
    """Raised when a platform's data root cannot be located.

    Covers invalid explicit overrides, stale registry values and the
    exhaustion of every default directory.
    """


class ParseError(GameCollectorError):
    """Raised when a platform-native file or tool output cannot be parsed.

    Covers malformed key-value files, tables without a recognizable header,
    and undecodable JSON payloads.
    """


class FieldMissingError(ParseError):
    """Raised when a required field is absent from a well-formed record.

    Attributes:
        field: Name of the missing field (e.g. ``"installdir"``).
        source: File or unit the record was read from.
    """

    def __init__(self, message: str, field: str, source: Path | str) -> None:
        super().__init__(message)
        self.field = field
        self.source = source


class SchemaVersionError(ParseError):
    """Raised when a versioned payload carries no usable schema version."""


class DecryptionError(ParseError):
    """Raised when an encrypted payload cannot be decrypted."""


class ToolError(GameCollectorError):
    """Raised when an external tool is missing, not executable, or silent."""


class ConfigError(GameCollectorError):
    """Raised when a configuration file is unreadable or malformed."""
