"""Error taxonomy for package indexing, composition and manifest building."""

from __future__ import annotations

from pathlib import Path


class SkillPackError(Exception):
    """Base class for all skillpack errors."""


class PackageIndexError(SkillPackError):
    """A problem found while scanning skill packages."""

    def __init__(self, message: str, path: Path | None = None, package: str | None = None) -> None:
        self.path = path
        self.package = package
        location = f" ({path})" if path else ""
        super().__init__(f"{message}{location}")


class MalformedDescriptor(PackageIndexError):
    """A descriptor is missing required fields or its name does not match its directory.

    Fatal to the package, not to the scan: the scanner records it as a
    warning and excludes the package.
    """


class DuplicateName(PackageIndexError):
    """Two packages declare the same name within one scan. Fatal to the scan."""

    def __init__(self, package: str, paths: list[Path]) -> None:
        self.paths = paths
        listed = ", ".join(str(p) for p in paths)
        super().__init__(
            f"Duplicate skill name {package!r} declared by: {listed}", package=package
        )


class UnknownPackage(SkillPackError, KeyError):
    """A caller named a package that is not in the index."""

    def __init__(self, package: str) -> None:
        self.package = package
        super().__init__(f"Unknown skill package: {package!r}")

    def __str__(self) -> str:
        return str(self.args[0])


class ManifestError(SkillPackError):
    """Plugin manifest could not be built."""

    def __init__(self, message: str, group: str | None = None) -> None:
        self.group = group
        super().__init__(message)


class UnknownMember(ManifestError):
    """A plugin group lists a package absent from the index."""

    def __init__(self, group: str, member: str) -> None:
        self.member = member
        super().__init__(
            f"Plugin group {group!r} lists unknown skill {member!r}", group=group
        )


class DuplicateGroup(ManifestError):
    """Two plugin groups share a name."""

    def __init__(self, group: str) -> None:
        super().__init__(f"Duplicate plugin group name {group!r}", group=group)
