"""Skill package schema definitions.

A skill package is a directory holding a primary descriptor (``SKILL.md``)
with YAML frontmatter, optional language-specific example files
(``examples-<lang>.md``) and any number of supplementary reference files:

    pulumi-esc/
        SKILL.md              # frontmatter + language-neutral body
        examples-ts.md        # language variant "ts"
        examples-go.md        # language variant "go"
        references/oidc.md    # reference file "references/oidc.md"

The frontmatter follows this format:
    ---
    name: pulumi-esc            # Required: hyphen-case, equals directory name
    description: What it does   # Required: used for activation matching
    version: 1.0.0              # Optional, informational
    author: Pulumi              # Optional
    license: Apache-2.0         # Optional
    allowed-tools: [Bash, Read] # Optional
    metadata: {...}             # Optional custom fields
    ---
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, ClassVar


def is_hyphen_case(name: str) -> bool:
    """Check if name is lowercase hyphen-case (``pulumi-esc``, ``skill1``)."""
    if not name:
        return False
    if name.startswith("-") or name.endswith("-"):
        return False
    if "--" in name:
        return False
    return all(char.islower() or char.isdigit() or char == "-" for char in name)


@dataclass(frozen=True)
class LanguageVariant:
    """Example content for one implementation language."""

    language: str  # Normalized tag, e.g. "ts", "go", "python"
    content: str
    path: Path | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "language": self.language,
            "content": self.content,
            "path": str(self.path) if self.path else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LanguageVariant:
        path = data.get("path")
        return cls(
            language=data["language"],
            content=data.get("content", ""),
            path=Path(path) if path else None,
        )


@dataclass(frozen=True)
class ReferenceFile:
    """A supplementary file kept alongside a package.

    ``content`` is None when the file is not UTF-8 text; the file is
    still indexed so it can be addressed by its relative name.
    """

    name: str  # POSIX path relative to the package directory
    content: str | None = None
    path: Path | None = None

    @property
    def is_text(self) -> bool:
        return self.content is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "content": self.content,
            "path": str(self.path) if self.path else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReferenceFile:
        path = data.get("path")
        return cls(
            name=data["name"],
            content=data.get("content"),
            path=Path(path) if path else None,
        )


@dataclass(frozen=True, eq=False)
class SkillPackage:
    """A parsed, validated skill package.

    Attributes:
        name: Unique hyphen-case identifier; equals the directory name.
        description: Free text used for activation matching. May embed
            imperative trigger phrases such as "MUST be loaded when...".
        content: Language-neutral primary body (after the frontmatter).
        path: Package directory.
        version: Informational semantic version.
        author: Optional author.
        license: Optional license identifier.
        allowed_tools: Optional list of tools the skill may use.
        metadata: Remaining frontmatter fields.
        language_variants: Example content keyed by language tag.
        reference_files: Supplementary files keyed by relative name.
        references: Candidate package names referenced from the content,
            in first-mention order. Validated by the reference graph.
        group: Owning plugin-group directory name, if any.
    """

    name: str
    description: str
    content: str
    path: Path | None = None
    version: str | None = None
    author: str | None = None
    license: str | None = None
    allowed_tools: tuple[str, ...] | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    language_variants: Mapping[str, LanguageVariant] = field(default_factory=dict)
    reference_files: Mapping[str, ReferenceFile] = field(default_factory=dict)
    references: tuple[str, ...] = ()
    group: str | None = None

    MAX_NAME_LENGTH: ClassVar[int] = 64
    MAX_DESCRIPTION_LENGTH: ClassVar[int] = 1024

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Skill name is required")
        if len(self.name) > self.MAX_NAME_LENGTH:
            raise ValueError(
                f"Skill name exceeds {self.MAX_NAME_LENGTH} characters: {len(self.name)}"
            )
        if not is_hyphen_case(self.name):
            raise ValueError(
                f"Skill name must be hyphen-case (lowercase letters, numbers, hyphens): {self.name}"
            )
        if not self.description or not self.description.strip():
            raise ValueError("Skill description is required")
        if len(self.description) > self.MAX_DESCRIPTION_LENGTH:
            raise ValueError(
                f"Skill description exceeds {self.MAX_DESCRIPTION_LENGTH} "
                f"characters: {len(self.description)}"
            )
        if not self.content or not self.content.strip():
            raise ValueError("Skill primary content is empty")

        # Freeze the mappings so a published snapshot cannot be mutated
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))
        object.__setattr__(
            self, "language_variants", MappingProxyType(dict(self.language_variants))
        )
        object.__setattr__(self, "reference_files", MappingProxyType(dict(self.reference_files)))
        object.__setattr__(self, "references", tuple(self.references))
        if self.allowed_tools is not None:
            object.__setattr__(self, "allowed_tools", tuple(self.allowed_tools))

    @property
    def languages(self) -> list[str]:
        """Sorted language tags with a variant."""
        return sorted(self.language_variants)

    def variant(self, language: str | None) -> LanguageVariant | None:
        if not language:
            return None
        return self.language_variants.get(language)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "content": self.content,
            "path": str(self.path) if self.path else None,
            "version": self.version,
            "author": self.author,
            "license": self.license,
            "allowed_tools": list(self.allowed_tools) if self.allowed_tools is not None else None,
            "metadata": dict(self.metadata),
            "language_variants": [v.to_dict() for v in self.language_variants.values()],
            "reference_files": [r.to_dict() for r in self.reference_files.values()],
            "references": list(self.references),
            "group": self.group,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SkillPackage:
        path = data.get("path")
        variants = [LanguageVariant.from_dict(v) for v in data.get("language_variants", [])]
        ref_files = [ReferenceFile.from_dict(r) for r in data.get("reference_files", [])]
        return cls(
            name=data["name"],
            description=data["description"],
            content=data["content"],
            path=Path(path) if path else None,
            version=data.get("version"),
            author=data.get("author"),
            license=data.get("license"),
            allowed_tools=data.get("allowed_tools"),
            metadata=data.get("metadata") or {},
            language_variants={v.language: v for v in variants},
            reference_files={r.name: r for r in ref_files},
            references=tuple(data.get("references", [])),
            group=data.get("group"),
        )


@dataclass(frozen=True)
class ScanWarning:
    """A non-fatal problem collected during a scan or graph build."""

    message: str
    path: Path | None = None
    package: str | None = None
    kind: str = "malformed"  # "malformed", "root" or "dangling-reference"

    def __str__(self) -> str:
        parts = [self.message]
        if self.package:
            parts.append(f"package={self.package}")
        if self.path:
            parts.append(f"path={self.path}")
        return " ".join(parts)


@dataclass(frozen=True)
class PluginGroup:
    """A named bundle of skill packages installed together.

    ``members`` is an ordered set of package names; a package may belong
    to several groups.
    """

    name: str
    description: str = ""
    members: tuple[str, ...] = ()
    category: str | None = None
    version: str | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Plugin group name is required")
        object.__setattr__(self, "members", tuple(dict.fromkeys(self.members)))
