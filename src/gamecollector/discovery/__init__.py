"""Discovery engine: locate, enumerate and reconcile platform data."""

from gamecollector.discovery.adapters import (
    CliTableAdapter,
    DiscoveryContext,
    FormatAdapter,
    ManifestDirectoryAdapter,
)
from gamecollector.discovery.engine import Collector
from gamecollector.discovery.enumerator import enumerate_outcomes
from gamecollector.discovery.location import (
    DefaultLocation,
    LocationResolver,
    LocationStrategy,
    RegistryLocation,
    ResolutionStrategy,
    SourceRoot,
)
from gamecollector.discovery.models import Platform
from gamecollector.discovery.reconciler import index_outcomes, merge, merge_records

__all__ = [
    "CliTableAdapter",
    "Collector",
    "DefaultLocation",
    "DiscoveryContext",
    "FormatAdapter",
    "LocationResolver",
    "LocationStrategy",
    "ManifestDirectoryAdapter",
    "Platform",
    "RegistryLocation",
    "ResolutionStrategy",
    "SourceRoot",
    "enumerate_outcomes",
    "index_outcomes",
    "merge",
    "merge_records",
]
