"""Text cleanup helpers for AniDB descriptions, names and titles."""

import re

# AniDB descriptions embed cross references as "http://anidb.net/ch123 [Name]"
ANIDB_LINK_PATTERN = re.compile(r"https?://anidb\.net/\w+ \[(?P<name>[^\]]*)\]")
TRAILER_MARKER_PATTERN = re.compile(r"Source:|Note:")


def strip_anidb_links(text: str) -> str:
    """Replace AniDB cross-reference links with their bracketed display name.

    Example:
        >>> strip_anidb_links("Sequel of http://anidb.net/a1 [Cowboy Bebop].")
        'Sequel of Cowboy Bebop.'
    """
    return ANIDB_LINK_PATTERN.sub(r"\g<name>", text)


def replace_line_feed_with_newline(text: str) -> str:
    """Turn bare line feeds into ``<br>`` followed by a line feed."""
    return text.replace("\n", "<br>\n")


def clean_overview(text: str | None) -> str | None:
    """Normalize an AniDB description or episode summary.

    Links are replaced by their names, everything from the first "Source:" or
    "Note:" marker on is dropped, and line feeds become HTML line breaks.

    Returns:
        The cleaned text, or None when nothing remains.
    """
    if not text:
        return None
    cleaned = strip_anidb_links(text)
    cleaned = TRAILER_MARKER_PATTERN.split(cleaned, maxsplit=1)[0].strip()
    if not cleaned:
        return None
    return replace_line_feed_with_newline(cleaned)


def reverse_name_order(name: str) -> str:
    """Reverse the word order of a family-name-first name.

    Example:
        >>> reverse_name_order("Watanabe Shinichirou")
        'Shinichirou Watanabe'
    """
    return " ".join(reversed(name.split(" "))).strip()


def upper_case_words(value: str) -> str:
    """Uppercase the first character and every character after a space or hyphen.

    Other characters are left untouched.

    Example:
        >>> upper_case_words("slice of life")
        'Slice Of Life'
    """
    chars = list(value)
    for i, char in enumerate(chars):
        if i == 0 or chars[i - 1] in (" ", "-"):
            chars[i] = char.upper()
    return "".join(chars)
