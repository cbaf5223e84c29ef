"""Skill resolution engine.

Holds the current immutable snapshot (index + reference graph) and
serves activation requests against it:

    engine = SkillEngine(config, root_paths=["./plugins"])
    result = engine.activate("convert my CloudFormation stack to Pulumi", "ts")
    if isinstance(result, ClarificationNeeded):
        ask_user(result.reason)
    else:
        inject(result.content)

Reloading builds a complete new snapshot and swaps it in with a single
reference assignment. A failed reload leaves the previous snapshot
active. Requests read the snapshot reference once, so a request never
sees a mix of two generations.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

from skillpack.activation.matcher import ActivationMatcher, ActivationQuery, ScoredCandidate
from skillpack.compose.composer import ComposedBundle, CompositionBudget, ContentComposer
from skillpack.config.loader import get_config
from skillpack.config.schema import Config
from skillpack.skills.cache import IndexCache
from skillpack.skills.index import PackageIndex, fingerprint_roots, normalize_roots, scan
from skillpack.skills.references import ReferenceGraph
from skillpack.skills.schema import ScanWarning

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """One published scan generation."""

    index: PackageIndex
    graph: ReferenceGraph
    generation: int

    @property
    def warnings(self) -> list[ScanWarning]:
        return list(self.index.warnings) + self.graph.warnings


@dataclass(frozen=True)
class ClarificationNeeded:
    """No skill matched; the host should ask the user a clarifying question."""

    intent: str
    reason: str
    declared_language: str | None = None


class SkillEngine:
    """Snapshot owner and request-path facade over matcher and composer."""

    def __init__(
        self,
        config: Config | None = None,
        root_paths: Sequence[str | Path] | None = None,
    ) -> None:
        self._config = config or get_config()
        roots = root_paths if root_paths is not None else self._config.index.roots
        self._roots = normalize_roots(roots)
        self._matcher = ActivationMatcher(self._config.activation)
        self._composer = ContentComposer(self._config.compose)
        cache_path = self._config.index.cache_path
        self._cache = IndexCache(cache_path) if cache_path else None
        self._snapshot: Snapshot | None = None
        self._generation = 0
        self._reload_lock = threading.Lock()
        self._reload_callbacks: list[Callable[[Snapshot], None]] = []

    @property
    def config(self) -> Config:
        return self._config

    @property
    def roots(self) -> list[Path]:
        return list(self._roots)

    @property
    def matcher(self) -> ActivationMatcher:
        return self._matcher

    @property
    def composer(self) -> ContentComposer:
        return self._composer

    @property
    def snapshot(self) -> Snapshot:
        """The current snapshot, scanning on first access."""
        snapshot = self._snapshot
        if snapshot is None:
            snapshot = self.reload()
        return snapshot

    def _build_index(self) -> PackageIndex:
        index_config = self._config.index
        if self._cache is not None:
            cached = self._cache.load(fingerprint_roots(self._roots))
            if cached is not None:
                return cached

        index = scan(
            self._roots,
            descriptor=index_config.descriptor,
            variant_prefix=index_config.variant_prefix,
            max_workers=index_config.max_workers,
        )
        if self._cache is not None:
            try:
                self._cache.save(index)
            except OSError as e:
                _log.warning("Could not write index cache %s: %s", self._cache.path, e)
        return index

    def reload(self) -> Snapshot:
        """Scan the roots and publish a new snapshot.

        Raises:
            DuplicateName: If the scan is rejected. The previous snapshot
                stays active.
        """
        with self._reload_lock:
            index = self._build_index()
            graph = ReferenceGraph.build(index)
            snapshot = Snapshot(index=index, graph=graph, generation=self._generation + 1)
            self._generation = snapshot.generation
            self._snapshot = snapshot

        _log.info(
            "Published skill snapshot generation %d (%d skills, %d warnings)",
            snapshot.generation, len(index), len(snapshot.warnings),
        )
        for callback in self._reload_callbacks:
            try:
                callback(snapshot)
            except Exception as e:
                _log.warning("Snapshot reload callback error: %s", e)
        return snapshot

    def on_reload(self, callback: Callable[[Snapshot], None]) -> Callable[[], None]:
        """Register a callback for newly published snapshots.

        Returns:
            A function to unregister the callback.
        """
        self._reload_callbacks.append(callback)

        def unregister() -> None:
            if callback in self._reload_callbacks:
                self._reload_callbacks.remove(callback)

        return unregister

    def query(
        self,
        intent: str,
        declared_language: str | None = None,
        already_loaded: Iterable[str] = (),
    ) -> ActivationQuery:
        return ActivationQuery(
            intent=intent,
            declared_language=declared_language,
            already_loaded=frozenset(already_loaded),
        )

    def match(
        self,
        intent: str,
        declared_language: str | None = None,
        already_loaded: Iterable[str] = (),
    ) -> list[ScoredCandidate]:
        return self._matcher.match(
            self.query(intent, declared_language, already_loaded), self.snapshot.index
        )

    def compose(
        self,
        selected: Sequence[str],
        query: ActivationQuery | None = None,
        budget: CompositionBudget | None = None,
    ) -> ComposedBundle:
        snapshot = self.snapshot
        return self._composer.compose(
            selected,
            query or ActivationQuery(intent=""),
            budget or self._composer.default_budget(),
            snapshot.graph,
            snapshot.index,
        )

    def activate(
        self,
        intent: str,
        declared_language: str | None = None,
        already_loaded: Iterable[str] = (),
        budget: CompositionBudget | None = None,
    ) -> ComposedBundle | ClarificationNeeded:
        """Match an intent and compose the winning package(s).

        Returns:
            The composed bundle, or ClarificationNeeded when the intent is
            empty or matches no package.
        """
        snapshot = self.snapshot
        query = self.query(intent, declared_language, already_loaded)

        if not intent or not intent.strip():
            return ClarificationNeeded(
                intent=intent, reason="empty request", declared_language=query.declared_language
            )

        candidates = self._matcher.match(query, snapshot.index)
        if not candidates:
            _log.debug("No skill matched %r", intent)
            return ClarificationNeeded(
                intent=intent,
                reason="no skill matched the request",
                declared_language=query.declared_language,
            )

        selected = [c.name for c in candidates[: max(1, self._config.activation.max_selected)]]
        _log.debug("Activating %s for %r", selected, intent)
        return self._composer.compose(
            selected,
            query,
            budget or self._composer.default_budget(),
            snapshot.graph,
            snapshot.index,
        )
