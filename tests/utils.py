"""Shared test utilities for skillpack tests."""

from __future__ import annotations

import json
from pathlib import Path

from skillpack.skills.schema import LanguageVariant, SkillPackage

ESC_DESCRIPTION = (
    "Pulumi ESC (Environments, Secrets, and Configuration) for centralized secrets "
    "and configuration management. Use when users ask about managing secrets, "
    "configuring OIDC credentials for AWS, Azure or Google Cloud, or sharing "
    "configuration across stacks."
)

CFN_DESCRIPTION = (
    "Convert AWS CloudFormation templates and stacks to Pulumi programs. MUST be "
    "loaded whenever a user requests migration or conversion of CloudFormation to Pulumi."
)

CDK_DESCRIPTION = (
    "Convert AWS CDK applications to Pulumi. Use when a user wants to migrate CDK "
    "constructs or CDK stacks to Pulumi."
)

COMPONENT_DESCRIPTION = (
    "Author reusable Pulumi component resources. Use when building ComponentResource "
    "classes or packaging components."
)


def write_skill(
    parent: Path,
    name: str,
    description: str,
    body: str = "",
    variants: dict[str, str] | None = None,
    files: dict[str, str | bytes] | None = None,
    frontmatter_name: str | None = None,
) -> Path:
    """Write a skill package directory under ``parent``.

    Args:
        parent: Directory that will contain the package directory.
        name: Package (and directory) name.
        description: Frontmatter description.
        body: Primary content. Defaults to a heading with the name.
        variants: Language tag -> example content (written as examples-<tag>.md).
        files: Relative path -> content for extra reference files.
        frontmatter_name: Name to declare, when it should differ from ``name``.

    Returns:
        The package directory.
    """
    package_dir = parent / name
    package_dir.mkdir(parents=True, exist_ok=True)
    declared = frontmatter_name if frontmatter_name is not None else name
    text = (
        "---\n"
        f"name: {declared}\n"
        f"description: {json.dumps(description)}\n"
        "---\n\n"
        f"{body or f'# {name}'}\n"
    )
    (package_dir / "SKILL.md").write_text(text, encoding="utf-8")

    for language, content in (variants or {}).items():
        (package_dir / f"examples-{language}.md").write_text(content, encoding="utf-8")

    for relative, content in (files or {}).items():
        target = package_dir / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            target.write_bytes(content)
        else:
            target.write_text(content, encoding="utf-8")

    return package_dir


def make_package(
    name: str,
    description: str = "A test skill",
    content: str | None = None,
    languages: dict[str, str] | None = None,
    references: tuple[str, ...] = (),
    group: str | None = None,
) -> SkillPackage:
    """Build an in-memory SkillPackage without touching the filesystem."""
    return SkillPackage(
        name=name,
        description=description,
        content=content if content is not None else f"# {name}\n\nPrimary content of {name}.",
        language_variants={
            lang: LanguageVariant(language=lang, content=text)
            for lang, text in (languages or {}).items()
        },
        references=references,
        group=group,
    )
