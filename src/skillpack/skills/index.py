"""Skill package index.

Scans root directories for skill packages and merges them into an
immutable PackageIndex. Accepted layouts under each root:

    root/<group>/skills/<package>/SKILL.md   # directory of plugin groups
    root/skills/<package>/SKILL.md           # a single plugin group
    root/<package>/SKILL.md                  # bare package directory
    root/SKILL.md                            # root is itself a package

Each top-level directory is scanned on its own worker thread. Results are
merged in one validation pass that rejects duplicate names; a scan that
fails there produces no index at all.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from skillpack.skills.errors import DuplicateName, MalformedDescriptor, UnknownPackage
from skillpack.skills.loader import DEFAULT_DESCRIPTOR, DEFAULT_VARIANT_PREFIX, load_package
from skillpack.skills.schema import ScanWarning, SkillPackage

_log = logging.getLogger(__name__)

SKILLS_DIRNAME = "skills"


@dataclass
class _ScanUnit:
    """A batch of candidate package directories sharing one group."""

    group: str | None
    package_dirs: list[Path] = field(default_factory=list)


@dataclass
class _UnitResult:
    packages: list[SkillPackage] = field(default_factory=list)
    warnings: list[ScanWarning] = field(default_factory=list)


class PackageIndex:
    """Immutable name -> SkillPackage mapping for one scan generation.

    Iteration yields packages sorted by name.
    """

    def __init__(
        self,
        packages: Iterable[SkillPackage] = (),
        warnings: Iterable[ScanWarning] = (),
        roots: Sequence[Path] = (),
        fingerprint: str | None = None,
    ) -> None:
        by_name: dict[str, list[SkillPackage]] = {}
        for package in packages:
            by_name.setdefault(package.name, []).append(package)

        for name, found in sorted(by_name.items()):
            if len(found) > 1:
                raise DuplicateName(name, [p.path or Path(p.name) for p in found])

        self._packages = MappingProxyType({name: by_name[name][0] for name in sorted(by_name)})
        self._warnings = tuple(warnings)
        self._roots = tuple(roots)
        self._fingerprint = fingerprint

    @classmethod
    def scan(
        cls,
        root_paths: Sequence[str | Path],
        descriptor: str = DEFAULT_DESCRIPTOR,
        variant_prefix: str = DEFAULT_VARIANT_PREFIX,
        max_workers: int = 4,
    ) -> PackageIndex:
        """Scan root directories and build an index. See :func:`scan`."""
        return scan(
            root_paths,
            descriptor=descriptor,
            variant_prefix=variant_prefix,
            max_workers=max_workers,
        )

    @property
    def warnings(self) -> tuple[ScanWarning, ...]:
        """Malformed packages excluded from this index."""
        return self._warnings

    @property
    def roots(self) -> tuple[Path, ...]:
        return self._roots

    @property
    def fingerprint(self) -> str | None:
        return self._fingerprint

    def get(self, name: str) -> SkillPackage | None:
        return self._packages.get(name)

    def require(self, name: str) -> SkillPackage:
        """Get a package by name.

        Raises:
            UnknownPackage: If the package is not indexed.
        """
        package = self._packages.get(name)
        if package is None:
            raise UnknownPackage(name)
        return package

    def __getitem__(self, name: str) -> SkillPackage:
        return self.require(name)

    def __contains__(self, name: object) -> bool:
        return name in self._packages

    def __iter__(self) -> Iterator[SkillPackage]:
        return iter(self._packages.values())

    def __len__(self) -> int:
        return len(self._packages)

    def names(self) -> list[str]:
        return list(self._packages)

    def groups(self) -> list[str]:
        """Sorted names of plugin groups that own at least one package."""
        return sorted({p.group for p in self if p.group})

    def by_group(self, group: str) -> list[SkillPackage]:
        return [p for p in self if p.group == group]


def _has_descriptor(directory: Path, descriptor: str) -> bool:
    return (directory / descriptor).is_file()


def _child_dirs(directory: Path) -> list[Path]:
    try:
        return sorted(
            entry for entry in directory.iterdir()
            if entry.is_dir() and not entry.name.startswith(".")
        )
    except OSError as e:
        _log.warning("Error listing %s: %s", directory, e)
        return []


def _skills_unit(group: str, skills_dir: Path, descriptor: str) -> _ScanUnit:
    unit = _ScanUnit(group=group)
    for candidate in _child_dirs(skills_dir):
        if _has_descriptor(candidate, descriptor):
            unit.package_dirs.append(candidate)
        else:
            _log.debug("No %s in %s, skipping", descriptor, candidate)
    return unit


def plan_units(root: Path, descriptor: str = DEFAULT_DESCRIPTOR) -> list[_ScanUnit]:
    """Split a root into independently scannable units (one per top-level directory)."""
    if _has_descriptor(root, descriptor):
        return [_ScanUnit(group=None, package_dirs=[root])]

    units: list[_ScanUnit] = []
    if (root / SKILLS_DIRNAME).is_dir():
        units.append(_skills_unit(root.name, root / SKILLS_DIRNAME, descriptor))

    bare = _ScanUnit(group=None)
    for child in _child_dirs(root):
        if child.name == SKILLS_DIRNAME:
            continue
        if (child / SKILLS_DIRNAME).is_dir():
            units.append(_skills_unit(child.name, child / SKILLS_DIRNAME, descriptor))
        elif _has_descriptor(child, descriptor):
            bare.package_dirs.append(child)
    if bare.package_dirs:
        units.append(bare)

    return units


def _scan_unit(unit: _ScanUnit, descriptor: str, variant_prefix: str) -> _UnitResult:
    result = _UnitResult()
    for package_dir in unit.package_dirs:
        try:
            package = load_package(
                package_dir,
                descriptor=descriptor,
                variant_prefix=variant_prefix,
                group=unit.group,
            )
        except MalformedDescriptor as e:
            _log.warning("Excluding malformed skill: %s", e)
            result.warnings.append(
                ScanWarning(message=str(e), path=e.path, package=e.package, kind="malformed")
            )
            continue
        result.packages.append(package)
    return result


def normalize_roots(root_paths: Iterable[str | Path]) -> list[Path]:
    """Expand, resolve and de-duplicate root paths, keeping first-seen order."""
    return list(dict.fromkeys(Path(r).expanduser().resolve() for r in root_paths))


def fingerprint_roots(root_paths: Sequence[str | Path]) -> str:
    """Hash (relative path, size, mtime) of every file under the roots.

    Two scans of unchanged trees produce the same fingerprint.
    """
    digest = hashlib.sha256()
    for root in sorted(Path(r).resolve() for r in root_paths):
        digest.update(str(root).encode("utf-8"))
        if not root.exists():
            continue
        for entry in sorted(root.rglob("*")):
            try:
                if not entry.is_file():
                    continue
                stat = entry.stat()
            except OSError:
                continue
            relative = entry.relative_to(root).as_posix()
            digest.update(f"{relative}\0{stat.st_size}\0{stat.st_mtime_ns}\n".encode())
    return digest.hexdigest()


def scan(
    root_paths: Sequence[str | Path],
    descriptor: str = DEFAULT_DESCRIPTOR,
    variant_prefix: str = DEFAULT_VARIANT_PREFIX,
    max_workers: int = 4,
) -> PackageIndex:
    """Scan root directories for skill packages.

    The scan is read-only. Malformed packages are excluded and reported
    through ``PackageIndex.warnings``.

    Args:
        root_paths: Directories to scan. The same directory under different
            spellings is scanned once.
        descriptor: Primary descriptor file name.
        variant_prefix: Prefix of language variant files.
        max_workers: Thread pool size for per-directory scanning.

    Returns:
        A new PackageIndex.

    Raises:
        DuplicateName: If two packages declare the same name.
    """
    roots = normalize_roots(root_paths)
    warnings: list[ScanWarning] = []
    units: list[_ScanUnit] = []

    for root in roots:
        if not root.is_dir():
            _log.warning("Skill root is not a directory: %s", root)
            warnings.append(ScanWarning(message="Skill root is not a directory", path=root, kind="root"))
            continue
        units.extend(plan_units(root, descriptor))

    if units:
        with ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix="skillscan") as pool:
            results = list(pool.map(lambda u: _scan_unit(u, descriptor, variant_prefix), units))
    else:
        results = []

    packages: list[SkillPackage] = []
    for result in results:
        packages.extend(result.packages)
        warnings.extend(result.warnings)

    index = PackageIndex(
        packages,
        warnings=warnings,
        roots=roots,
        fingerprint=fingerprint_roots(roots),
    )
    _log.info(
        "Indexed %d skill(s) from %d root(s), %d warning(s)", len(index), len(roots), len(warnings)
    )
    return index
