"""Progressive-disclosure content composition.

Assembles the bundle injected into an agent's context for a set of
selected packages:

1. primary content of every selected package not already loaded
2. the declared language's variant right after its owning primary content
3. (opt-in) reference files linked from primary content
4. primary content of packages directly referenced by the selection

When the bundle exceeds its budget, sections are dropped from the end in
a fixed order: linked files, then references, then language variants.
If a single selected package is still too large its primary content is
truncated and the bundle is marked ``truncated``. Explicitly selected
packages are never omitted.
"""

from __future__ import annotations

import logging
import posixpath
import re
from collections.abc import Sequence
from dataclasses import dataclass, replace
from enum import Enum

from skillpack.activation.matcher import ActivationQuery
from skillpack.config.schema import ComposeConfig
from skillpack.core.tokens import count_tokens, truncate_to_tokens
from skillpack.skills.index import PackageIndex
from skillpack.skills.references import ReferenceGraph
from skillpack.skills.schema import SkillPackage

_log = logging.getLogger(__name__)

SECTION_SEPARATOR = "\n\n"

_MARKDOWN_LINK = re.compile(r"\]\(\s*<?([^)\s>#]+)>?(?:#[^)]*)?\s*\)")


class BudgetUnit(Enum):
    CHARS = "chars"
    TOKENS = "tokens"


@dataclass(frozen=True)
class CompositionBudget:
    """Maximum bundle size, in characters or tiktoken tokens."""

    limit: int
    unit: BudgetUnit = BudgetUnit.CHARS

    def __post_init__(self) -> None:
        if self.limit < 0:
            raise ValueError(f"Budget limit must be >= 0, got {self.limit}")
        if not isinstance(self.unit, BudgetUnit):
            object.__setattr__(self, "unit", BudgetUnit(str(self.unit).lower()))

    def measure(self, text: str) -> int:
        if self.unit is BudgetUnit.TOKENS:
            return count_tokens(text)
        return len(text)

    def truncate(self, text: str, size: int) -> str:
        """Longest prefix of ``text`` measuring at most ``size`` units."""
        if size <= 0:
            return ""
        if self.unit is BudgetUnit.TOKENS:
            return truncate_to_tokens(text, size)
        return text[:size]


class SectionKind(Enum):
    PRIMARY = "primary"
    LANGUAGE = "language"
    LINKED = "linked"
    REFERENCE = "reference"


# Sections dropped first come first
DROP_ORDER: tuple[SectionKind, ...] = (
    SectionKind.LINKED,
    SectionKind.REFERENCE,
    SectionKind.LANGUAGE,
)


@dataclass(frozen=True)
class BundleSection:
    """One contiguous piece of a composed bundle."""

    package: str
    kind: SectionKind
    content: str
    label: str
    headed: bool = True

    def render(self) -> str:
        if not self.headed:
            return self.content
        return f"<!-- {self.kind.value}: {self.label} -->\n{self.content}"


@dataclass(frozen=True)
class ComposedBundle:
    """The content assembled for a query, with what was kept and dropped."""

    content: str
    sections: tuple[BundleSection, ...]
    selected: tuple[str, ...]
    budget: CompositionBudget
    size: int
    truncated: bool = False
    over_budget: bool = False
    dropped: tuple[str, ...] = ()

    @property
    def packages(self) -> tuple[str, ...]:
        """Package names with at least one section, in bundle order."""
        return tuple(dict.fromkeys(s.package for s in self.sections))

    @property
    def is_empty(self) -> bool:
        return not self.sections

    def has_section(self, package: str, kind: SectionKind) -> bool:
        return any(s.package == package and s.kind is kind for s in self.sections)

    def sections_of(self, kind: SectionKind) -> list[BundleSection]:
        return [s for s in self.sections if s.kind is kind]


def render_sections(sections: Sequence[BundleSection]) -> str:
    return SECTION_SEPARATOR.join(s.render() for s in sections)


def linked_files(package: SkillPackage) -> list[str]:
    """Reference file names linked from primary content with relative markdown links."""
    names: list[str] = []
    for match in _MARKDOWN_LINK.finditer(package.content):
        target = match.group(1)
        if "://" in target or target.startswith(("/", "mailto:")):
            continue
        name = posixpath.normpath(target)
        ref = package.reference_files.get(name)
        if ref is None or not ref.is_text or name in names:
            continue
        names.append(name)
    return names


class ContentComposer:
    """Builds ComposedBundles from an index snapshot and its reference graph."""

    def __init__(self, config: ComposeConfig | None = None) -> None:
        self._config = config or ComposeConfig()

    @property
    def config(self) -> ComposeConfig:
        return self._config

    def default_budget(self) -> CompositionBudget:
        return CompositionBudget(self._config.budget, BudgetUnit(self._config.unit))

    def compose(
        self,
        selected: Sequence[str],
        query: ActivationQuery,
        budget: CompositionBudget,
        graph: ReferenceGraph,
        index: PackageIndex,
    ) -> ComposedBundle:
        """Assemble the bundle for explicitly selected packages.

        Args:
            selected: Package names chosen by the caller, in priority order.
            query: The originating query (declared language, already loaded).
            budget: Maximum bundle size.
            graph: Reference graph built from ``index``.
            index: The snapshot's package index.

        Returns:
            The composed bundle. Identical inputs give identical output.

        Raises:
            UnknownPackage: If a selected name is not in the index.
        """
        chosen = list(dict.fromkeys(selected))
        packages = [index.require(name) for name in chosen]
        injected = [p for p in packages if p.name not in query.already_loaded]

        sections = self._collect(injected, chosen, query, graph, index)

        dropped: list[str] = []
        sections = self._drop_to_fit(sections, budget, dropped)

        truncated = False
        primaries = [s for s in sections if s.kind is SectionKind.PRIMARY]
        if budget.measure(render_sections(sections)) > budget.limit:
            if len(primaries) == 1:
                sections = self._truncate_primary(sections, budget)
                truncated = True
            else:
                _log.warning(
                    "Bundle for %s exceeds budget of %d %s; selected skills are kept whole",
                    ", ".join(chosen), budget.limit, budget.unit.value,
                )

        content = render_sections(sections)
        size = budget.measure(content)
        return ComposedBundle(
            content=content,
            sections=tuple(sections),
            selected=tuple(chosen),
            budget=budget,
            size=size,
            truncated=truncated,
            over_budget=size > budget.limit,
            dropped=tuple(dropped),
        )

    def _collect(
        self,
        injected: list[SkillPackage],
        chosen: list[str],
        query: ActivationQuery,
        graph: ReferenceGraph,
        index: PackageIndex,
    ) -> list[BundleSection]:
        sections: list[BundleSection] = []
        included: set[str] = set()

        for package in injected:
            included.add(package.name)
            sections.append(
                BundleSection(package.name, SectionKind.PRIMARY, package.content, package.name)
            )
            variant = package.variant(query.declared_language)
            if variant is not None:
                sections.append(
                    BundleSection(
                        package.name,
                        SectionKind.LANGUAGE,
                        variant.content,
                        f"{package.name}/examples-{variant.language}",
                    )
                )
            if self._config.include_linked_files:
                for name in linked_files(package):
                    ref = package.reference_files[name]
                    sections.append(
                        BundleSection(
                            package.name,
                            SectionKind.LINKED,
                            ref.content or "",
                            f"{package.name}/{name}",
                        )
                    )

        # One level of references only, primary content only
        for package in injected:
            for target in graph.resolve(package.name) if package.name in graph else ():
                if target in included or target in chosen or target in query.already_loaded:
                    continue
                included.add(target)
                ref_package = index.require(target)
                sections.append(
                    BundleSection(target, SectionKind.REFERENCE, ref_package.content, target)
                )

        return sections

    @staticmethod
    def _drop_to_fit(
        sections: list[BundleSection], budget: CompositionBudget, dropped: list[str]
    ) -> list[BundleSection]:
        for kind in DROP_ORDER:
            while budget.measure(render_sections(sections)) > budget.limit:
                positions = [i for i, s in enumerate(sections) if s.kind is kind]
                if not positions:
                    break
                removed = sections.pop(positions[-1])
                dropped.append(removed.label)
                _log.debug("Dropped %s section %s to fit budget", kind.value, removed.label)
        return sections

    def _truncate_primary(
        self, sections: list[BundleSection], budget: CompositionBudget
    ) -> list[BundleSection]:
        """Cut the single remaining primary section down to the budget.

        The kept prefix is followed by the truncation marker. When the
        budget cannot hold the section header and the marker with any
        content at all, the header and marker are left out and the
        bundle is a bare prefix of the primary content.
        """
        marker = self._config.truncation_marker
        position = next(i for i, s in enumerate(sections) if s.kind is SectionKind.PRIMARY)
        original = sections[position]

        def with_content(text: str) -> list[BundleSection]:
            updated = list(sections)
            updated[position] = replace(original, content=text)
            return updated

        overhead = budget.measure(render_sections(with_content(marker)))
        keep = budget.limit - overhead
        if keep <= 0:
            _log.info(
                "Budget of %d %s too small for a section header; keeping bare content of %s",
                budget.limit, budget.unit.value, original.package,
            )
            updated = list(sections)
            updated[position] = replace(
                original, content=budget.truncate(original.content, budget.limit), headed=False
            )
            return updated
        kept = ""
        # Token counts are not additive, so shrink until the render fits
        for _ in range(8):
            kept = budget.truncate(original.content, keep).rstrip()
            total = budget.measure(render_sections(with_content(kept + marker)))
            if total <= budget.limit or keep <= 0:
                break
            keep -= total - budget.limit

        _log.info(
            "Truncated %s to fit budget of %d %s", original.package, budget.limit, budget.unit.value
        )
        return with_content(kept + marker)
