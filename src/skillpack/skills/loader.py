"""Skill package parsing.

Reads one package directory: the ``SKILL.md`` descriptor with YAML
frontmatter, its ``examples-<lang>.md`` language variants and every other
file as a reference file.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

import yaml

from skillpack.skills.errors import MalformedDescriptor
from skillpack.skills.languages import normalize_language
from skillpack.skills.references import extract_references
from skillpack.skills.schema import LanguageVariant, ReferenceFile, SkillPackage

_log = logging.getLogger(__name__)

DEFAULT_DESCRIPTOR = "SKILL.md"
DEFAULT_VARIANT_PREFIX = "examples-"

# YAML frontmatter pattern: starts with ---, ends with ---
_FRONTMATTER_PATTERN = re.compile(
    r"^\ufeff?---\s*\n(.*?)\n---\s*(?:\n(.*))?$",
    re.DOTALL,
)

_KNOWN_KEYS = {"name", "description", "version", "author", "license", "allowed-tools", "metadata"}


def parse_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    """Parse YAML frontmatter from markdown content.

    Args:
        content: The full file content starting with ---.

    Returns:
        Tuple of (frontmatter dict, remaining content).

    Raises:
        ValueError: If frontmatter is malformed or missing.
    """
    match = _FRONTMATTER_PATTERN.match(content.replace("\r\n", "\n"))
    if not match:
        raise ValueError("Missing or malformed YAML frontmatter (must start with ---)")

    frontmatter_yaml = match.group(1)
    body = match.group(2) or ""

    try:
        frontmatter = yaml.safe_load(frontmatter_yaml)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in frontmatter: {e}") from e
    if not isinstance(frontmatter, dict):
        raise ValueError("Frontmatter must be a YAML mapping")
    return frontmatter, body.strip()


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _read_text(path: Path) -> str | None:
    """Read a file as UTF-8, returning None for binary content."""
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return None


def _is_hidden(relative: Path) -> bool:
    return any(part.startswith(".") for part in relative.parts)


def discover_variants(
    package_dir: Path, variant_prefix: str = DEFAULT_VARIANT_PREFIX
) -> dict[str, LanguageVariant]:
    """Collect ``<prefix><lang>.md`` files directly under the package directory."""
    pattern = re.compile(rf"^{re.escape(variant_prefix)}(.+)\.md$", re.IGNORECASE)
    variants: dict[str, LanguageVariant] = {}

    for entry in sorted(package_dir.iterdir()):
        if not entry.is_file():
            continue
        match = pattern.match(entry.name)
        if not match:
            continue
        language = normalize_language(match.group(1))
        if language is None:
            continue
        if language in variants:
            _log.warning(
                "Ignoring %s: language %r already provided by %s",
                entry, language, variants[language].path,
            )
            continue
        text = _read_text(entry)
        if text is None:
            _log.warning("Language variant %s is not UTF-8 text, skipping", entry)
            continue
        variants[language] = LanguageVariant(language=language, content=text.strip(), path=entry)

    return variants


def discover_reference_files(package_dir: Path, exclude: set[Path]) -> dict[str, ReferenceFile]:
    """Collect every remaining file under the package directory, keyed by relative path."""
    files: dict[str, ReferenceFile] = {}
    for entry in sorted(package_dir.rglob("*")):
        if not entry.is_file() or entry in exclude:
            continue
        relative = entry.relative_to(package_dir)
        if _is_hidden(relative):
            continue
        name = relative.as_posix()
        files[name] = ReferenceFile(name=name, content=_read_text(entry), path=entry)
    return files


def load_package(
    package_dir: Path,
    descriptor: str = DEFAULT_DESCRIPTOR,
    variant_prefix: str = DEFAULT_VARIANT_PREFIX,
    group: str | None = None,
) -> SkillPackage:
    """Load and validate one skill package directory.

    Args:
        package_dir: Directory containing the descriptor.
        descriptor: Descriptor file name.
        variant_prefix: Prefix of language variant files.
        group: Owning plugin-group name, if any.

    Returns:
        The parsed SkillPackage.

    Raises:
        MalformedDescriptor: If the descriptor is unreadable, lacks a
            required field, has a name that differs from the directory
            name, or has no primary content.
    """
    descriptor_path = package_dir / descriptor

    try:
        text = descriptor_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise MalformedDescriptor(f"Cannot read descriptor: {e}", path=descriptor_path) from e

    try:
        frontmatter, body = parse_frontmatter(text)
    except ValueError as e:
        raise MalformedDescriptor(str(e), path=descriptor_path) from e

    name = frontmatter.get("name")
    description = frontmatter.get("description")

    if not name:
        raise MalformedDescriptor("Missing required 'name' field", path=descriptor_path)
    name = str(name)
    if not description:
        raise MalformedDescriptor(
            "Missing required 'description' field", path=descriptor_path, package=name
        )
    if name != package_dir.name:
        raise MalformedDescriptor(
            f"Skill name {name!r} does not match directory name {package_dir.name!r}",
            path=descriptor_path,
            package=name,
        )

    allowed_tools = frontmatter.get("allowed-tools")
    if allowed_tools is not None and not isinstance(allowed_tools, list):
        raise MalformedDescriptor(
            "'allowed-tools' must be a list", path=descriptor_path, package=name
        )

    metadata = frontmatter.get("metadata")
    metadata = dict(metadata) if isinstance(metadata, dict) else {}
    # Unknown top-level keys are kept rather than dropped
    for key, value in frontmatter.items():
        if key not in _KNOWN_KEYS:
            metadata.setdefault(key, value)

    variants = discover_variants(package_dir, variant_prefix)
    exclude = {descriptor_path} | {v.path for v in variants.values() if v.path}
    reference_files = discover_reference_files(package_dir, exclude)

    try:
        return SkillPackage(
            name=name,
            description=" ".join(str(description).split()),
            content=body,
            path=package_dir,
            version=_optional_str(frontmatter.get("version")),
            author=_optional_str(frontmatter.get("author")),
            license=_optional_str(frontmatter.get("license")),
            allowed_tools=[str(t) for t in allowed_tools] if allowed_tools is not None else None,
            metadata=metadata,
            language_variants=variants,
            reference_files=reference_files,
            references=extract_references(body, exclude=name),
            group=group,
        )
    except ValueError as e:
        raise MalformedDescriptor(str(e), path=descriptor_path, package=name) from e
