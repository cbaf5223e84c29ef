"""Skill-to-skill reference extraction and the reference graph.

Skill content points at other skills with a loose textual convention:

    Use skill `pulumi-component` to structure the generated code.
    For secrets, use the `pulumi-esc` skill.

Extraction is best-effort pattern matching. Missed references are
acceptable; extracted names that are not real packages are pruned when
the graph is built and reported as dangling references.
"""

from __future__ import annotations

import logging
import re
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from skillpack.skills.errors import UnknownPackage
from skillpack.skills.schema import ScanWarning

if TYPE_CHECKING:
    from skillpack.skills.index import PackageIndex

_log = logging.getLogger(__name__)

_NAME = r"`([A-Za-z0-9][A-Za-z0-9-]*)`"

REFERENCE_PATTERNS: tuple[re.Pattern[str], ...] = (
    # use skill `name`, use the skill `name`, load skill `name`
    re.compile(rf"\b(?:use|load|invoke|see)\s+(?:the\s+)?skill\s+{_NAME}", re.IGNORECASE),
    # use the `name` skill
    re.compile(rf"\b(?:use|load|invoke|see)\s+(?:the\s+)?{_NAME}\s+skill\b", re.IGNORECASE),
)


def extract_references(content: str, exclude: str | None = None) -> tuple[str, ...]:
    """Extract referenced skill names from content, in first-mention order.

    Args:
        content: Primary content of a package.
        exclude: Name to ignore (the package's own name).

    Returns:
        Unique candidate names. They are not validated against any index.
    """
    found: list[tuple[int, str]] = []
    for pattern in REFERENCE_PATTERNS:
        for match in pattern.finditer(content):
            found.append((match.start(), match.group(1)))

    names: list[str] = []
    for _, name in sorted(found):
        if name == exclude or name in names:
            continue
        names.append(name)
    return tuple(names)


@dataclass(frozen=True)
class DanglingReference:
    """A reference to a package that does not exist in the index."""

    source: str
    target: str

    def to_warning(self) -> ScanWarning:
        return ScanWarning(
            message=f"Reference to unknown skill {self.target!r} pruned",
            package=self.source,
            kind="dangling-reference",
        )


class ReferenceGraph:
    """Directed graph of validated skill-to-skill references.

    Cycles are allowed; traversals track a visited set and are always
    depth-bounded.
    """

    def __init__(
        self,
        edges: dict[str, tuple[str, ...]],
        dangling: Iterable[DanglingReference] = (),
    ) -> None:
        self._edges = dict(edges)
        self._dangling = tuple(dangling)
        reverse: dict[str, list[str]] = {name: [] for name in self._edges}
        for source in sorted(self._edges):
            for target in self._edges[source]:
                reverse.setdefault(target, []).append(source)
        self._reverse = {name: tuple(sources) for name, sources in reverse.items()}

    @classmethod
    def build(cls, index: PackageIndex) -> ReferenceGraph:
        """Build the graph from the references recorded on each package.

        References to names absent from the index are dropped and
        recorded as DanglingReference warnings.
        """
        edges: dict[str, tuple[str, ...]] = {}
        dangling: list[DanglingReference] = []

        for package in index:
            valid: list[str] = []
            for target in package.references:
                if target in index:
                    valid.append(target)
                else:
                    _log.warning(
                        "Skill %r references unknown skill %r; pruned", package.name, target
                    )
                    dangling.append(DanglingReference(source=package.name, target=target))
            edges[package.name] = tuple(valid)

        return cls(edges, dangling)

    @property
    def dangling(self) -> tuple[DanglingReference, ...]:
        return self._dangling

    @property
    def warnings(self) -> list[ScanWarning]:
        return [d.to_warning() for d in self._dangling]

    def __contains__(self, name: object) -> bool:
        return name in self._edges

    def __len__(self) -> int:
        return len(self._edges)

    def resolve(self, name: str) -> list[str]:
        """Direct references of a package, in first-mention order.

        Raises:
            UnknownPackage: If the package is not in the graph.
        """
        if name not in self._edges:
            raise UnknownPackage(name)
        return list(self._edges[name])

    def referenced_by(self, name: str) -> list[str]:
        """Packages that reference ``name``, sorted by name."""
        if name not in self._edges:
            raise UnknownPackage(name)
        return list(self._reverse.get(name, ()))

    def transitive_closure(self, name: str, max_depth: int) -> list[str]:
        """Breadth-first expansion of references up to ``max_depth`` hops.

        The start package is included first. Each package appears once,
        so cycles terminate.

        Args:
            name: Start package.
            max_depth: Maximum number of hops (0 returns only ``name``).

        Returns:
            Package names in breadth-first discovery order.
        """
        if max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {max_depth}")
        if name not in self._edges:
            raise UnknownPackage(name)

        visited: set[str] = {name}
        order: list[str] = [name]
        queue: deque[tuple[str, int]] = deque([(name, 0)])

        while queue:
            current, depth = queue.popleft()
            if depth >= max_depth:
                continue
            for target in self._edges.get(current, ()):
                if target in visited:
                    continue
                visited.add(target)
                order.append(target)
                queue.append((target, depth + 1))

        return order

    def to_dict(self) -> dict[str, list[str]]:
        return {name: list(targets) for name, targets in sorted(self._edges.items())}
