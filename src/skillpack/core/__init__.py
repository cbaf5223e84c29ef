"""Token accounting shared by composition and reporting."""

from skillpack.core.tokens import (
    MediaType,
    count_tokens,
    count_tokens_heuristic,
    detect_media_type,
    estimate_file_tokens,
    truncate_to_tokens,
)

__all__ = [
    "MediaType",
    "count_tokens",
    "count_tokens_heuristic",
    "detect_media_type",
    "estimate_file_tokens",
    "truncate_to_tokens",
]
