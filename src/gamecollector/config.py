"""User configuration: record filters, schema policy and path overrides.

Settings come from a YAML file::

    installed_only: false
    owned_only: false
    playable_only: false
    complete_only: false
    official_only: false
    schema_policy: warn          # warn | error | ignore
    expand_registry: true
    overrides:
      steam: /mnt/games/Steam
    catalog_queries:
      choco: [game, games]

Every key is optional. Unknown keys and wrongly typed values raise
``ConfigError`` instead of being ignored.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from gamecollector.core.records import GameRecord, Problem
from gamecollector.exceptions import ConfigError
from gamecollector.formats.blob import SchemaPolicy

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "GAMECOLLECTOR_CONFIG"

_UNPLAYABLE = frozenset({Problem.UNPLAYABLE, Problem.EXPIRED_TRIAL})
_INCOMPLETE = frozenset({Problem.INCOMPLETE, Problem.INSTALL_PENDING, Problem.INSTALL_FAILED})

_FLAGS = ("installed_only", "owned_only", "playable_only", "complete_only", "official_only")


@dataclass
class Settings:
    """Options shared by every platform in one discovery session.

    Attributes:
        installed_only: Drop records that are not installed and skip
            catalog queries entirely.
        owned_only: Drop records the user does not own.
        playable_only: Drop unplayable items and lapsed trials.
        complete_only: Drop items that are incomplete or not fully installed.
        official_only: Drop bootlegs and hacks.
        schema_policy: Reaction to unknown schema versions in payloads.
        overrides: Explicit data roots keyed by platform short name.
        catalog_queries: Search terms for catalog queries keyed by platform
            short name. Platforms fall back to their own defaults.
        expand_registry: Look up registry details for entries that point
            into the Windows uninstall key.
    """

    installed_only: bool = False
    owned_only: bool = False
    playable_only: bool = False
    complete_only: bool = False
    official_only: bool = False
    schema_policy: SchemaPolicy = SchemaPolicy.WARN
    overrides: dict[str, Path] = field(default_factory=dict)
    catalog_queries: dict[str, list[str]] = field(default_factory=dict)
    expand_registry: bool = True

    def accepts(self, record: GameRecord) -> bool:
        """Check a record against the enabled filters."""
        if self.installed_only and not record.is_installed:
            return False
        if self.owned_only and not record.is_owned:
            return False
        if self.playable_only and record.problems & _UNPLAYABLE:
            return False
        if self.complete_only and record.problems & _INCOMPLETE:
            return False
        if self.official_only and Problem.UNOFFICIAL in record.problems:
            return False
        return True

    def queries_for(self, short_name: str, default: Sequence[str]) -> list[str]:
        """Return the configured catalog queries for a platform."""
        return list(self.catalog_queries.get(short_name, default))


def _expect(value: Any, kind: type, key: str) -> Any:
    if not isinstance(value, kind):
        raise ConfigError(f"'{key}' must be a {kind.__name__}, got {type(value).__name__}")
    return value


def settings_from_mapping(data: Mapping[str, Any]) -> Settings:
    """Build ``Settings`` from parsed YAML.

    Raises:
        ConfigError: On unknown keys or wrongly typed values.
    """
    known = set(_FLAGS) | {"schema_policy", "overrides", "catalog_queries", "expand_registry"}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(map(str, unknown))}")

    settings = Settings()
    for flag in (*_FLAGS, "expand_registry"):
        if flag in data:
            setattr(settings, flag, _expect(data[flag], bool, flag))

    if "schema_policy" in data:
        raw = _expect(data["schema_policy"], str, "schema_policy")
        try:
            settings.schema_policy = SchemaPolicy(raw.lower())
        except ValueError:
            choices = ", ".join(p.value for p in SchemaPolicy)
            raise ConfigError(f"'schema_policy' must be one of {choices}, got {raw!r}") from None

    overrides = _expect(data.get("overrides") or {}, dict, "overrides")
    for name, path in overrides.items():
        settings.overrides[str(name)] = Path(_expect(path, str, f"overrides.{name}"))

    queries = _expect(data.get("catalog_queries") or {}, dict, "catalog_queries")
    for name, terms in queries.items():
        terms = _expect(terms, list, f"catalog_queries.{name}")
        settings.catalog_queries[str(name)] = [str(t) for t in terms]

    return settings


def load_settings(path: Path) -> Settings:
    """Load settings from a YAML file.

    An empty file yields default settings.

    Raises:
        ConfigError: If the file cannot be read or is malformed.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if data is None:
        return Settings()
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    logger.debug("Loaded settings from %s", path)
    return settings_from_mapping(data)


def default_config_path(env: Mapping[str, str] | None = None) -> Path | None:
    """Return the config file named by ``$GAMECOLLECTOR_CONFIG``, if any."""
    value = (os.environ if env is None else env).get(CONFIG_ENV_VAR)
    return Path(value) if value else None
