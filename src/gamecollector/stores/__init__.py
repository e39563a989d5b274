"""Platform definitions: one strategy table and decoder set per store."""

from gamecollector.stores.registry import PLATFORMS, get_platform, platform_names

__all__ = ["PLATFORMS", "get_platform", "platform_names"]
