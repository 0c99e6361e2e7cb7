"""Mapping of weighted AniDB tags onto genre names.

AniDB does not publish genres, only a large folksonomy of weighted tags.
Tags are either mapped onto a fixed genre vocabulary ("tidy" mode) or kept
verbatim when their weight is high enough.
"""

from collections.abc import Iterable
from typing import NamedTuple

from common.models.metadata import SeriesRecord

from .utils.text_utils import upper_case_words

# Tag ids (and parent ids) that never describe a genre: target audience,
# setting, cast makeup, original work and similar bookkeeping tags
IGNORED_TAG_IDS: frozenset[int] = frozenset(
    {6, 22, 23, 60, 128, 129, 185, 216, 242, 255, 268, 269, 289}
)

MIN_GENRE_WEIGHT = 400

TAGS_TO_GENRE: dict[str, str] = {
    "action": "Action",
    "adventure": "Adventure",
    "comedy": "Comedy",
    "dementia": "Dementia",
    "demon": "Demons",
    "melodrama": "Drama",
    "ecchi": "Ecchi",
    "fantasy": "Fantasy",
    "dark fantasy": "Fantasy",
    "game": "Game",
    "harem": "Harem",
    "18 restricted": "Hentai",
    "erotic game": "Hentai",
    "sex": "Hentai",
    "historical": "Historical",
    "horror": "Horror",
    "josei": "Josei",
    "magic": "Magic",
    "martial arts": "Martial Arts",
    "mecha": "Mecha",
    "military": "Military",
    "motorsport": "Motorsport",
    "music": "Music",
    "mystery": "Mystery",
    "parody": "Parody",
    "cops": "Police",
    "psychological": "Psychological",
    "romance": "Romance",
    "samurai": "Samurai",
    "school": "School",
    "science fiction": "Sci-Fi",
    "seinen": "Seinen",
    "shoujo": "Shoujo",
    "shoujo ai": "Shoujo Ai",
    "shounen": "Shounen",
    "shounen ai": "Shounen Ai",
    "daily life": "Slice of Life",
    "space": "Space",
    "alien": "Space",
    "space travel": "Space",
    "sports": "Sports",
    "super power": "Super Power",
    "contemporary fantasy": "Supernatural",
    "thriller": "Thriller",
    "vampire": "Vampire",
    "yaoi": "Yaoi",
    "yuri": "Yuri",
}

GENRE_VOCABULARY: dict[str, str] = {
    genre.lower(): genre for genre in TAGS_TO_GENRE.values()
}

# Spellings seen in other catalogs for the same genre
GENRE_SYNONYMS: dict[str, str] = {
    "sci fi": "Sci-Fi",
    "scifi": "Sci-Fi",
    "sf": "Sci-Fi",
    "slice of life": "Slice of Life",
    "demons": "Demons",
    "drama": "Drama",
    "martial art": "Martial Arts",
    "shonen": "Shounen",
    "shonen ai": "Shounen Ai",
    "shojo": "Shoujo",
    "shojo ai": "Shoujo Ai",
    "super powers": "Super Power",
    "superpower": "Super Power",
    "supernatural": "Supernatural",
    "police": "Police",
}


class WeightedGenre(NamedTuple):
    name: str
    weight: int


def _key(name: str) -> str:
    return " ".join(name.split()).lower()


def is_ignored_tag(tag_id: int | None, parent_id: int | None) -> bool:
    """Whether a tag or its parent is on the ignore list."""
    return tag_id in IGNORED_TAG_IDS or parent_id in IGNORED_TAG_IDS


def select_tag_genre(name: str, weight: int, *, tidy: bool) -> str | None:
    """Genre name contributed by one tag, or None if the tag is dropped.

    In tidy mode the tag must map onto the vocabulary and weight is ignored.
    Otherwise the tag needs a weight of at least 400 and is kept under its
    own name with each word capitalized.
    """
    if tidy:
        return TAGS_TO_GENRE.get(_key(name))
    if weight >= MIN_GENRE_WEIGHT:
        return upper_case_words(name.strip())
    return None


def order_genres(genres: Iterable[WeightedGenre]) -> list[str]:
    """Order genres by ascending weight and drop repeated names.

    The sort is stable, so equally weighted genres keep document order. The
    first occurrence of a name wins.
    """
    ordered = sorted(genres, key=lambda genre: genre.weight)
    seen: set[str] = set()
    result: list[str] = []
    for genre in ordered:
        if genre.name in seen:
            continue
        seen.add(genre.name)
        result.append(genre.name)
    return result


class GenreNormalizer:
    """Post-processing pass over already selected genre names.

    Synonyms are folded onto one spelling and duplicates are removed
    case-insensitively, keeping the first occurrence. In tidy mode names
    outside the genre vocabulary are dropped. Applying ``cleanup`` to its own
    output returns it unchanged.
    """

    def __init__(self, *, tidy: bool = True) -> None:
        self.tidy = tidy

    def canonical(self, name: str) -> str | None:
        """Canonical spelling of ``name`` or None if it is not a genre."""
        key = _key(name)
        if not key:
            return None
        if key in GENRE_SYNONYMS:
            return GENRE_SYNONYMS[key]
        if self.tidy:
            return GENRE_VOCABULARY.get(key) or TAGS_TO_GENRE.get(key)
        return upper_case_words(" ".join(name.split()))

    def cleanup(self, genres: Iterable[str]) -> list[str]:
        seen: set[str] = set()
        result: list[str] = []
        for name in genres:
            canonical = self.canonical(name)
            if canonical is None or canonical.lower() in seen:
                continue
            seen.add(canonical.lower())
            result.append(canonical)
        return result

    def apply(self, series: SeriesRecord) -> SeriesRecord:
        """Return a copy of ``series`` with cleaned genres."""
        return series.model_copy(update={"genres": self.cleanup(series.genres)})
