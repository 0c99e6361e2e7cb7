"""Display title selection for series and episodes."""

from collections.abc import Iterable, Sequence

from common.models.metadata import Title

ROMAJI_LANGUAGE = "x-jat"
TITLE_TYPE_PREFERENCE = ("main", "official", "synonym")


def _primary_subtag(language: str) -> str:
    language = language.strip().lower()
    # Private-use tags such as x-jat only match exactly
    if language.startswith("x-"):
        return language
    return language.split("-")[0]


def language_matches(title_language: str, requested_language: str) -> bool:
    """Whether a title language satisfies a requested metadata language.

    ``en`` matches ``en-US`` and vice versa; private-use tags match exactly.
    """
    return _primary_subtag(title_language) == _primary_subtag(requested_language)


def _language_rank(language: str | None, requested: Sequence[str]) -> int:
    if not language:
        return len(requested)
    for rank, wanted in enumerate(requested):
        if language_matches(language, wanted):
            return rank
    return len(requested)


def _first_of_type(titles: Iterable[Title], types: Sequence[str]) -> Title | None:
    titles = list(titles)
    for wanted in types:
        for title in titles:
            if (title.type or "").lower() == wanted:
                return title
    return None


def localize_title(
    titles: Sequence[Title],
    metadata_languages: Sequence[str] = (),
    *,
    prefer_romaji: bool = False,
) -> Title | None:
    """Pick the one title to display.

    With ``prefer_romaji`` the romaji (``x-jat``) main title wins if present.
    Otherwise titles without a language or in one of ``metadata_languages``
    are searched for a main, then official, then synonym title, in the
    caller's language order. If none qualifies the full list is searched for
    a main, then official title, and finally the first title is used.

    Args:
        titles: Candidate titles in document order.
        metadata_languages: Requested languages, most preferred first.
        prefer_romaji: Whether the romaji preference is active.

    Returns:
        The selected title, or None for an empty list.
    """
    if not titles:
        return None

    if prefer_romaji:
        for title in titles:
            if (title.language or "").lower() == ROMAJI_LANGUAGE and (
                title.type or ""
            ).lower() == "main":
                return title

    filtered = [
        title
        for title in titles
        if not title.language
        or any(language_matches(title.language, lang) for lang in metadata_languages)
    ]
    filtered.sort(key=lambda title: _language_rank(title.language, metadata_languages))

    selected = _first_of_type(filtered, TITLE_TYPE_PREFERENCE)
    if selected is not None:
        return selected

    return _first_of_type(titles, ("main", "official")) or titles[0]
