"""Language tag normalization for language variants and query hints."""

from __future__ import annotations

# Aliases to canonical tags. Canonical tags follow the short file suffixes
# authors already use (examples-ts.md, examples-go.md, examples-python.md).
LANGUAGE_ALIASES: dict[str, str] = {
    "typescript": "ts",
    "javascript": "js",
    "node": "js",
    "nodejs": "js",
    "golang": "go",
    "py": "python",
    "python3": "python",
    "c#": "csharp",
    "cs": "csharp",
    "dotnet": "csharp",
    ".net": "csharp",
    "yml": "yaml",
}


def normalize_language(tag: str | None) -> str | None:
    """Return the canonical language tag, or None for an empty tag.

    >>> normalize_language("TypeScript")
    'ts'
    >>> normalize_language("go")
    'go'
    """
    if tag is None:
        return None
    cleaned = tag.strip().lower()
    if not cleaned:
        return None
    return LANGUAGE_ALIASES.get(cleaned, cleaned)
