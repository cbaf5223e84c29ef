"""Configuration schema dataclasses for skillpack.

Defines the structure of configuration at all levels (system, user, project).
All fields have defaults so partial configs merge together cleanly.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

DEFAULT_TRIGGER_MARKERS: list[str] = [
    "must be loaded whenever",
    "must be loaded when",
    "must be used when",
    "use this skill when",
    "use this when",
    "use when",
    "load when",
    "trigger when",
]

DEFAULT_STOPWORDS: list[str] = [
    "a", "about", "all", "also", "an", "and", "any", "are", "as", "ask", "at",
    "be", "been", "being", "but", "by", "can", "could", "do", "does", "for",
    "from", "get", "had", "has", "have", "help", "how", "i", "if", "in", "into",
    "is", "it", "its", "just", "like", "load", "loaded", "make", "me", "must",
    "my", "need", "of", "on", "or", "our", "please", "should", "skill", "so",
    "some", "such", "than", "that", "the", "their", "them", "then", "these",
    "they", "this", "those", "to", "up", "us", "use", "user", "users", "want",
    "was", "we", "were", "what", "when", "whenever", "where", "which", "who",
    "why", "will", "with", "would", "you", "your",
]


@dataclass
class IndexConfig:
    """Package scanning configuration.

    Example config.yaml:
        index:
          roots:
            - ~/skills-repo
          descriptor: SKILL.md
          cache_path: ~/.cache/skillpack/index.yaml
    """

    roots: list[str] = field(default_factory=list)  # Directories to scan
    descriptor: str = "SKILL.md"  # Primary descriptor file name
    variant_prefix: str = "examples-"  # examples-<lang>.md
    cache_path: str | None = None  # On-disk index cache (disabled when None)
    max_workers: int = 4  # Parallel scanners (one per top-level directory)


@dataclass
class ReferenceConfig:
    """Reference graph configuration."""

    max_depth: int = 3  # Default bound for transitive_closure()


@dataclass
class MatchWeights:
    """Scoring weights for the activation matcher.

    Trigger hits dominate so a package whose imperative trigger clause
    matches the intent outranks one that only shares vocabulary.
    """

    trigger: float = 3.0  # Per query term found in a trigger clause
    phrase: float = 5.0  # Whole trigger clause / whole query containment
    keyword: float = 1.0  # Per query term found anywhere in the description
    name: float = 4.0  # Package name mentioned verbatim in the query
    language_bonus: float = 0.5
    language_penalty: float = 0.25
    stem_length: int = 6  # Terms are compared on this many leading chars


@dataclass
class ActivationConfig:
    """Activation matcher configuration."""

    weights: MatchWeights = field(default_factory=MatchWeights)
    trigger_markers: list[str] = field(default_factory=lambda: list(DEFAULT_TRIGGER_MARKERS))
    stopwords: list[str] = field(default_factory=lambda: list(DEFAULT_STOPWORDS))
    min_score: float = 0.0  # Candidates must score strictly above this
    top_k: int | None = None  # Truncate ranked list (None = all)
    max_selected: int = 1  # Packages composed by activate()


@dataclass
class ComposeConfig:
    """Content composer configuration."""

    budget: int = 24000  # Maximum bundle size
    unit: str = "chars"  # "chars" or "tokens"
    include_linked_files: bool = False  # Surface reference files linked from content
    truncation_marker: str = "\n\n[... truncated ...]"


@dataclass
class WatchConfig:
    """Skill tree watching configuration (development mode)."""

    enabled: bool = False
    poll_interval: float = 2.0  # Seconds between polling cycles
    ignore_patterns: list[str] = field(
        default_factory=lambda: ["**/.git/**", "**/__pycache__/**", "**/*.lock"]
    )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    verbose: int | None = None  # 0-4, overrides level
    file: str | None = None  # Log file path


@dataclass
class Config:
    """Root configuration object."""

    index: IndexConfig = field(default_factory=IndexConfig)
    references: ReferenceConfig = field(default_factory=ReferenceConfig)
    activation: ActivationConfig = field(default_factory=ActivationConfig)
    compose: ComposeConfig = field(default_factory=ComposeConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Extension point for future config sections
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Plain data in config.yaml shape, with extra sections at the top level."""
        data = asdict(self)
        data.update(data.pop("extra"))
        return data
