"""Token measurement for composition budgets.

Exact counts use tiktoken's ``o200k_base`` encoding and are only needed
when a budget is expressed in tokens. Size summaries use a per-media-type
characters-per-token ratio instead, so listing a skill tree never loads
the encoder.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from pathlib import Path

import tiktoken

ENCODING_NAME = "o200k_base"


class MediaType(Enum):
    TEXT = "text"
    CODE = "code"
    MARKUP = "markup"
    MARKDOWN = "markdown"


# Average characters per token, measured loosely on skill content
CHARS_PER_TOKEN: dict[MediaType, float] = {
    MediaType.TEXT: 4.0,
    MediaType.CODE: 3.5,
    MediaType.MARKUP: 3.0,
    MediaType.MARKDOWN: 4.0,
}

EXTENSION_MAP: dict[str, MediaType] = {
    ".md": MediaType.MARKDOWN,
    ".mdx": MediaType.MARKDOWN,
    ".markdown": MediaType.MARKDOWN,
    ".py": MediaType.CODE,
    ".ts": MediaType.CODE,
    ".js": MediaType.CODE,
    ".go": MediaType.CODE,
    ".cs": MediaType.CODE,
    ".java": MediaType.CODE,
    ".sh": MediaType.CODE,
    ".json": MediaType.MARKUP,
    ".yaml": MediaType.MARKUP,
    ".yml": MediaType.MARKUP,
    ".toml": MediaType.MARKUP,
}


def detect_media_type(path: str | Path) -> MediaType:
    """Media type of a file from its extension; unknown extensions are TEXT."""
    return EXTENSION_MAP.get(Path(path).suffix.lower(), MediaType.TEXT)


@lru_cache(maxsize=1)
def _encoder() -> tiktoken.Encoding:
    return tiktoken.get_encoding(ENCODING_NAME)


@lru_cache(maxsize=4096)
def count_tokens(text: str) -> int:
    """Exact token count of ``text``. Results are memoized per string."""
    return len(_encoder().encode(text))


def truncate_to_tokens(text: str, max_tokens: int) -> str:
    """Keep the longest token-aligned prefix of ``text`` with at most ``max_tokens`` tokens."""
    if max_tokens <= 0:
        return ""
    tokens = _encoder().encode(text)
    if len(tokens) <= max_tokens:
        return text
    return _encoder().decode(tokens[:max_tokens])


def count_tokens_heuristic(text: str, media_type: MediaType = MediaType.TEXT) -> int:
    """Estimate tokens from the character count and the media type's ratio."""
    return chars_to_tokens(len(text), media_type)


def chars_to_tokens(chars: int, media_type: MediaType = MediaType.TEXT) -> int:
    return int(chars / CHARS_PER_TOKEN.get(media_type, 4.0))


def tokens_to_chars(tokens: int, media_type: MediaType = MediaType.TEXT) -> int:
    return int(tokens * CHARS_PER_TOKEN.get(media_type, 4.0))


def estimate_file_tokens(name: str | Path, text: str) -> int:
    """Heuristic token estimate for a file's text, typed by its extension."""
    return count_tokens_heuristic(text, detect_media_type(name))
