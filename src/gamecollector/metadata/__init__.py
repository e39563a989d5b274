"""Opportunistic metadata enrichment from a local game database snapshot."""

from gamecollector.metadata.catalog import CatalogEntry, MetadataCatalog, enrich, enrich_outcomes
from gamecollector.metadata.lookup import LookupTables
from gamecollector.metadata.snapshot import (
    fetch_last_edit_id,
    read_last_edit_id,
    snapshot_is_stale,
)

__all__ = [
    "CatalogEntry",
    "LookupTables",
    "MetadataCatalog",
    "enrich",
    "enrich_outcomes",
    "fetch_last_edit_id",
    "read_last_edit_id",
    "snapshot_is_stale",
]
