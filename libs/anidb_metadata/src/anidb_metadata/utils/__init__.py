"""Utility helpers for AniDB metadata processing."""

from .text_utils import (
    clean_overview,
    replace_line_feed_with_newline,
    reverse_name_order,
    strip_anidb_links,
    upper_case_words,
)

__all__ = [
    "clean_overview",
    "replace_line_feed_with_newline",
    "reverse_name_order",
    "strip_anidb_links",
    "upper_case_words",
]
