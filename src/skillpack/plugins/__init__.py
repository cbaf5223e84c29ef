"""Plugin group manifests."""

from skillpack.plugins.manifest import (
    Manifest,
    ManifestEntry,
    PluginManifestBuilder,
    discover_groups,
    load_groups,
)

__all__ = [
    "Manifest",
    "ManifestEntry",
    "PluginManifestBuilder",
    "discover_groups",
    "load_groups",
]
