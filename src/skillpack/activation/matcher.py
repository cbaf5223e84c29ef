"""Activation matching: rank skill packages for a free-text user intent.

A package's description is treated as a weighted bag of trigger phrases:

- clauses introduced by an imperative marker ("MUST be loaded whenever",
  "Use when", ...) are trigger clauses; query terms found in them score
  highest, and whole-clause containment adds a phrase bonus
- query terms found anywhere in the description add a keyword score
- naming the package verbatim in the intent adds a name bonus
- a declared language adds a small bonus when the package has a matching
  variant and a small penalty when it does not

Matching is pure: no I/O, no shared state, deterministic ordering
(score descending, then name ascending).
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from skillpack.config.schema import ActivationConfig
from skillpack.skills.index import PackageIndex
from skillpack.skills.languages import normalize_language
from skillpack.skills.schema import SkillPackage

_WORD = re.compile(r"[a-z0-9]+")
_SENTENCE_END = re.compile(r"[.;!?](?:\s|$)")


@dataclass(frozen=True)
class ActivationQuery:
    """A user turn to match against the index.

    Attributes:
        intent: Free-text user request.
        declared_language: Optional implementation language hint.
        already_loaded: Packages already in the agent's context.
    """

    intent: str
    declared_language: str | None = None
    already_loaded: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "declared_language", normalize_language(self.declared_language))
        object.__setattr__(self, "already_loaded", frozenset(self.already_loaded))


@dataclass(frozen=True)
class ScoredCandidate:
    """A ranked package with the evidence behind its score."""

    name: str
    score: float
    base_score: float = 0.0  # Score before the language adjustment
    trigger_hits: int = 0
    keyword_hits: int = 0
    phrase_match: bool = False
    name_match: bool = False
    language_match: bool | None = None  # None when no language was declared
    already_loaded: bool = False
    matched_terms: tuple[str, ...] = ()


class ActivationMatcher:
    """Scores packages against an ActivationQuery."""

    def __init__(self, config: ActivationConfig | None = None) -> None:
        self._config = config or ActivationConfig()
        self._weights = self._config.weights
        self._stopwords = frozenset(w.lower() for w in self._config.stopwords)
        markers = sorted(
            {m.lower().strip() for m in self._config.trigger_markers if m.strip()},
            key=lambda m: (-len(m), m),
        )
        self._marker_re = (
            re.compile(r"\b(?:" + "|".join(re.escape(m) for m in markers) + r")\b")
            if markers
            else None
        )

    @property
    def config(self) -> ActivationConfig:
        return self._config

    def _stem(self, word: str) -> str:
        if len(word) > 3 and word.endswith("s") and not word.endswith("ss"):
            word = word[:-1]
        return word[: self._weights.stem_length]

    def terms(self, text: str) -> list[str]:
        """Stemmed, stopword-free terms of ``text`` in first-occurrence order."""
        seen: dict[str, None] = {}
        for word in _WORD.findall(text.lower()):
            if len(word) < 2 or word in self._stopwords:
                continue
            seen.setdefault(self._stem(word), None)
        return list(seen)

    @staticmethod
    def _normalize(text: str) -> str:
        return " ".join(_WORD.findall(text.lower()))

    def trigger_clauses(self, description: str) -> list[str]:
        """Clauses following an imperative trigger marker, up to the sentence end."""
        if self._marker_re is None:
            return []
        lowered = description.lower()
        clauses: list[str] = []
        for match in self._marker_re.finditer(lowered):
            rest = lowered[match.end():]
            end = _SENTENCE_END.search(rest)
            clause = (rest[: end.start()] if end else rest).strip(" ,:-")
            if clause:
                clauses.append(clause)
        return clauses

    def score(self, query: ActivationQuery, package: SkillPackage) -> ScoredCandidate:
        """Score one package. A score of 0 means the package does not match."""
        weights = self._weights
        query_terms = self.terms(query.intent)
        if not query_terms:
            return ScoredCandidate(name=package.name, score=0.0)

        query_set = set(query_terms)
        clauses = self.trigger_clauses(package.description)
        trigger_terms: set[str] = set()
        for clause in clauses:
            trigger_terms.update(self.terms(clause))
        description_terms = set(self.terms(package.description))

        trigger_matched = query_set & trigger_terms
        keyword_matched = query_set & description_terms

        normalized_intent = self._normalize(query.intent)
        phrase_match = False
        for clause in clauses:
            normalized_clause = self._normalize(clause)
            if not normalized_clause:
                continue
            if normalized_clause in normalized_intent or (
                len(query_terms) >= 2 and normalized_intent in normalized_clause
            ):
                phrase_match = True
                break

        name_match = bool(
            re.search(rf"(?<![a-z0-9-]){re.escape(package.name)}(?![a-z0-9-])", query.intent.lower())
        )

        base = (
            weights.trigger * len(trigger_matched)
            + weights.keyword * len(keyword_matched)
            + (weights.phrase if phrase_match else 0.0)
            + (weights.name if name_match else 0.0)
        )
        if base <= 0:
            return ScoredCandidate(name=package.name, score=0.0)

        score = base
        language_match: bool | None = None
        if query.declared_language:
            language_match = query.declared_language in package.language_variants
            score += weights.language_bonus if language_match else -weights.language_penalty

        return ScoredCandidate(
            name=package.name,
            score=round(score, 6),
            base_score=round(base, 6),
            trigger_hits=len(trigger_matched),
            keyword_hits=len(keyword_matched),
            phrase_match=phrase_match,
            name_match=name_match,
            language_match=language_match,
            already_loaded=package.name in query.already_loaded,
            matched_terms=tuple(sorted(trigger_matched | keyword_matched)),
        )

    def match(
        self, query: ActivationQuery, index: PackageIndex | Iterable[SkillPackage]
    ) -> list[ScoredCandidate]:
        """Rank packages for a query.

        An empty intent, or an intent matching nothing, yields an empty
        list; the host is expected to ask a clarifying question.

        Returns:
            Candidates ordered by score descending, then name ascending.
        """
        if not query.intent or not query.intent.strip():
            return []

        candidates: list[ScoredCandidate] = []
        for package in index:
            candidate = self.score(query, package)
            if candidate.base_score <= max(0.0, self._config.min_score):
                continue
            candidates.append(candidate)

        candidates.sort(key=lambda c: (-c.score, c.name))
        if self._config.top_k is not None:
            candidates = candidates[: self._config.top_k]
        return candidates

