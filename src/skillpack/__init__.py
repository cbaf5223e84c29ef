"""skillpack: skill resolution and progressive-disclosure composition."""

__version__ = "0.1.0"

# Public API
from skillpack.activation import ActivationMatcher, ActivationQuery, ScoredCandidate
from skillpack.compose import (
    BudgetUnit,
    BundleSection,
    ComposedBundle,
    CompositionBudget,
    ContentComposer,
    SectionKind,
)
from skillpack.config import Config, get_config, load_config
from skillpack.engine import ClarificationNeeded, SkillEngine, Snapshot
from skillpack.plugins import Manifest, ManifestEntry, PluginManifestBuilder
from skillpack.skills import (
    DuplicateName,
    MalformedDescriptor,
    PackageIndex,
    PluginGroup,
    ReferenceGraph,
    SkillPackage,
    SkillPackError,
    UnknownMember,
    UnknownPackage,
)

__all__ = [
    # Main entry points
    "SkillEngine",
    "Snapshot",
    "ClarificationNeeded",
    # Config
    "Config",
    "load_config",
    "get_config",
    # Index and graph
    "PackageIndex",
    "SkillPackage",
    "ReferenceGraph",
    "PluginGroup",
    # Activation
    "ActivationMatcher",
    "ActivationQuery",
    "ScoredCandidate",
    # Composition
    "BudgetUnit",
    "BundleSection",
    "ComposedBundle",
    "CompositionBudget",
    "ContentComposer",
    "SectionKind",
    # Manifest
    "Manifest",
    "ManifestEntry",
    "PluginManifestBuilder",
    # Errors
    "SkillPackError",
    "DuplicateName",
    "MalformedDescriptor",
    "UnknownPackage",
    "UnknownMember",
]
