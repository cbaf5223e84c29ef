"""Skill package model, scanning, and the reference graph.

Example usage:
    from skillpack.skills import PackageIndex, ReferenceGraph

    index = PackageIndex.scan(["./plugins"])
    graph = ReferenceGraph.build(index)
    print(graph.transitive_closure("pulumi-cdk-to-pulumi", max_depth=2))
"""

from skillpack.skills.cache import IndexCache
from skillpack.skills.errors import (
    DuplicateGroup,
    DuplicateName,
    MalformedDescriptor,
    ManifestError,
    PackageIndexError,
    SkillPackError,
    UnknownMember,
    UnknownPackage,
)
from skillpack.skills.index import PackageIndex, fingerprint_roots, normalize_roots, scan
from skillpack.skills.languages import normalize_language
from skillpack.skills.loader import load_package, parse_frontmatter
from skillpack.skills.references import DanglingReference, ReferenceGraph, extract_references
from skillpack.skills.schema import (
    LanguageVariant,
    PluginGroup,
    ReferenceFile,
    ScanWarning,
    SkillPackage,
)

__all__ = [
    # Model
    "SkillPackage",
    "LanguageVariant",
    "ReferenceFile",
    "ScanWarning",
    "PluginGroup",
    # Scanning
    "PackageIndex",
    "IndexCache",
    "scan",
    "fingerprint_roots",
    "normalize_roots",
    "load_package",
    "parse_frontmatter",
    "normalize_language",
    # References
    "ReferenceGraph",
    "DanglingReference",
    "extract_references",
    # Errors
    "SkillPackError",
    "PackageIndexError",
    "MalformedDescriptor",
    "DuplicateName",
    "UnknownPackage",
    "ManifestError",
    "UnknownMember",
    "DuplicateGroup",
]
