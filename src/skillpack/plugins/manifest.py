"""Plugin groups and the installable plugin manifest.

Plugin groups bundle skill packages that are installed together. Groups
are declared in a YAML file:

    plugins:
      - name: pulumi-migration
        description: Migrate existing infrastructure to Pulumi
        category: migration
        version: 1.2.0
        members:
          - cloudformation-to-pulumi
          - pulumi-cdk-to-pulumi

or discovered from the directory layout, one group per
``<group>/skills/`` directory, with metadata from the group's
``.claude-plugin/plugin.json`` when present.

Building the manifest is an offline, author-time step.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from skillpack.skills.errors import DuplicateGroup, ManifestError, UnknownMember
from skillpack.skills.index import PackageIndex
from skillpack.skills.schema import PluginGroup

_log = logging.getLogger(__name__)

PLUGIN_METADATA_PATH = Path(".claude-plugin") / "plugin.json"
DEFAULT_VERSION = "0.0.0"


@dataclass(frozen=True)
class ManifestEntry:
    """One installable plugin group."""

    name: str
    version: str
    description: str
    members: tuple[str, ...]
    category: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "members": list(self.members),
            "category": self.category,
        }


@dataclass(frozen=True)
class Manifest:
    entries: tuple[ManifestEntry, ...] = ()

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, name: str) -> ManifestEntry | None:
        return next((e for e in self.entries if e.name == name), None)

    def to_dict(self) -> dict[str, Any]:
        return {"plugins": [e.to_dict() for e in self.entries]}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2) + "\n"

    def write(self, path: str | Path) -> Path:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.to_json(), encoding="utf-8")
        return target


def _group_from_dict(data: dict[str, Any], source: Path) -> PluginGroup:
    if not isinstance(data, dict) or not data.get("name"):
        raise ManifestError(f"Plugin group without a name in {source}")
    members = data.get("members", data.get("skills", []))
    if not isinstance(members, list):
        raise ManifestError(f"'members' must be a list in {source}", group=str(data["name"]))
    version = data.get("version")
    return PluginGroup(
        name=str(data["name"]),
        description=str(data.get("description") or ""),
        members=tuple(str(m) for m in members),
        category=data.get("category"),
        version=str(version) if version is not None else None,
    )


def load_groups(path: str | Path) -> list[PluginGroup]:
    """Load plugin groups from a YAML file with a top-level ``plugins`` list.

    Raises:
        ManifestError: If the file cannot be read or is not valid.
    """
    source = Path(path)
    try:
        with open(source, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ManifestError(f"Cannot read plugin groups from {source}: {e}") from e

    entries = data.get("plugins") if isinstance(data, dict) else None
    if not isinstance(entries, list):
        raise ManifestError(f"Expected a 'plugins' list in {source}")
    return [_group_from_dict(entry, source) for entry in entries]


def _read_plugin_metadata(group_dir: Path) -> dict[str, Any]:
    metadata_path = group_dir / PLUGIN_METADATA_PATH
    if not metadata_path.is_file():
        return {}
    try:
        data = json.loads(metadata_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        _log.warning("Ignoring unreadable plugin metadata %s: %s", metadata_path, e)
        return {}
    return data if isinstance(data, dict) else {}


def discover_groups(index: PackageIndex) -> list[PluginGroup]:
    """Derive one plugin group per ``<group>/skills/`` directory in the index."""
    groups: list[PluginGroup] = []
    for group_name in index.groups():
        members = index.by_group(group_name)
        group_dir = members[0].path.parent.parent if members[0].path else None
        metadata = _read_plugin_metadata(group_dir) if group_dir else {}
        version = metadata.get("version")
        groups.append(
            PluginGroup(
                name=group_name,
                description=str(metadata.get("description") or ""),
                members=tuple(p.name for p in members),
                category=metadata.get("category"),
                version=str(version) if version is not None else None,
            )
        )
    return groups


class PluginManifestBuilder:
    """Resolves plugin groups against an index into a Manifest."""

    def build(self, groups: Sequence[PluginGroup], index: PackageIndex) -> Manifest:
        """Build the manifest.

        Args:
            groups: Plugin groups in output order.
            index: Index every member must exist in.

        Returns:
            A Manifest with one entry per group.

        Raises:
            UnknownMember: If a group lists a package absent from the index.
            DuplicateGroup: If two groups share a name.
        """
        seen: set[str] = set()
        entries: list[ManifestEntry] = []
        for group in groups:
            if group.name in seen:
                raise DuplicateGroup(group.name)
            seen.add(group.name)
            entries.append(self._entry(group, index))
        _log.info("Built plugin manifest with %d group(s)", len(entries))
        return Manifest(tuple(entries))

    @staticmethod
    def _entry(group: PluginGroup, index: PackageIndex) -> ManifestEntry:
        for member in group.members:
            if member not in index:
                raise UnknownMember(group.name, member)
        return ManifestEntry(
            name=group.name,
            version=group.version or DEFAULT_VERSION,
            description=group.description,
            members=group.members,
            category=group.category,
        )

    def unknown_members(
        self, groups: Iterable[PluginGroup], index: PackageIndex
    ) -> list[tuple[str, str]]:
        """All (group, member) pairs that do not resolve, for reporting."""
        return [(g.name, m) for g in groups for m in g.members if m not in index]
