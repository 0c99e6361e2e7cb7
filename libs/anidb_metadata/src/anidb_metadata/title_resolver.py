"""Resolve a free-text series name to an AniDB id using the bulk title index.

``animetitles.xml`` lists every anime with all of its titles::

    <animetitles>
      <anime aid="1">
        <title type="main" xml:lang="x-jat">Seikai no Monshou</title>
        ...
      </anime>
      ...
    </animetitles>

The index holds tens of thousands of entries, so resolution runs in two
stages: a plain substring scan for a prefix of the name selects candidate
blocks, and only those candidates get the stricter title comparison.
"""

import logging
import re
import xml.etree.ElementTree as ET
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
from xml.sax.saxutils import escape

logger = logging.getLogger(__name__)

BLOCK_START = '<anime aid="'
BLOCK_END = "</anime>"
YEAR_PATTERN = re.compile(r"[0-9]{4}")

_PARENTHETICAL = re.compile(r" \(.*?\)", re.DOTALL)
_SEASON_MARKER = re.compile(r"\bS([0-9]+)\b")

# Transliteration variants that AniDB and file names disagree on
_NAME_VARIANTS = (
    ("gekijyouban", "movie"),
    ("gekijouban", "movie"),
    ("gekijoban", "movie"),
    ("2wei", "zwei"),
    ("3rei", "drei"),
    ("4ier", "vier"),
)


def half_string(value: str, min_length: int = 4, percent: int = 50) -> str:
    """Leading part of ``value`` used as the prefilter needle.

    Half the string when that is longer than ``min_length``, otherwise
    ``min_length`` characters, or the whole string when it is shorter.

    Example:
        >>> half_string("Test Anime")
        'Test '
    """
    length = len(value) - (len(value) * percent) // 100
    if length <= min_length:
        length = min(min_length, len(value))
    return value[:length]


def clear_name(name: str) -> str:
    """Strip punctuation, parenthesized suffixes and season markers from a name.

    Example:
        >>> clear_name("Fate/Zero (2011) S2")
        'Fate/Zero 2'
    """
    cleaned = _PARENTHETICAL.sub("", name.strip(), count=1)
    for old, new in (
        (".", ""),
        ("-", " "),
        ("`", ""),
        ("'", ""),
        ("&", "and"),
        ("(", ""),
        (")", ""),
    ):
        cleaned = cleaned.replace(old, new)
    cleaned = _SEASON_MARKER.sub(r"\1", cleaned, count=1)
    return " ".join(cleaned.split())


def _squash(value: str) -> str:
    return value.lower().replace(" ", "").replace(".", "")


def _clear_name_variants(value: str) -> str:
    cleaned = _squash(clear_name(value)).replace(":", "").replace("!", "")
    for old, new in _NAME_VARIANTS:
        cleaned = cleaned.replace(old, new)
    return cleaned


def _comparison_forms(value: str) -> tuple[str, ...]:
    lowered = value.strip().lower()
    squashed = _squash(lowered)
    return (
        lowered,
        squashed,
        squashed.replace("-", ""),
        _squash(clear_name(value)),
        _clear_name_variants(value),
    )


def names_match(title: str, name: str) -> bool:
    """Near-equality of a catalog title and a searched name.

    Names must share their first character (ignoring case); then any of the
    increasingly lenient normalizations must agree.
    """
    title = title.strip()
    name = name.strip()
    if not title or not name or title[0].lower() != name[0].lower():
        return False
    return any(
        left == right
        for left, right in zip(_comparison_forms(title), _comparison_forms(name))
    )


def titles_match(titles: Sequence[str], name: str) -> bool:
    """Whether ``name`` nearly equals one of ``titles``.

    When the name carries a four-digit year and the titles carry one too,
    the years have to agree before any text comparison counts.
    """
    name_year = YEAR_PATTERN.search(name)
    if name_year is not None:
        for title in titles:
            title_year = YEAR_PATTERN.search(title)
            if title_year is not None:
                if title_year.group() != name_year.group():
                    return False
                break
    return any(names_match(title, name) for title in titles)


@dataclass(frozen=True)
class TitleBlock:
    """One ``<anime aid="N">`` entry of the title index."""

    aid: str
    body: str

    @cached_property
    def titles(self) -> list[str]:
        try:
            root = ET.fromstring(f"<anime>{self.body}</anime>")
        except ET.ParseError:
            logger.debug(f"Unparsable title block for aid {self.aid}")
            return []
        return [
            title.text.strip()
            for title in root.iter("title")
            if title.text and title.text.strip()
        ]


class TitleIndex:
    """Scans the raw text of ``animetitles.xml`` for anime blocks."""

    def __init__(self, text: str) -> None:
        self.text = text
        self._blocks: list[TitleBlock] | None = None

    @classmethod
    def from_path(cls, path: Path) -> "TitleIndex":
        return cls(Path(path).read_text(encoding="utf-8", errors="replace"))

    def _scan(self) -> Iterator[TitleBlock]:
        text = self.text
        position = text.find(BLOCK_START)
        while position != -1:
            aid_start = position + len(BLOCK_START)
            aid_end = text.find('">', aid_start)
            if aid_end == -1:
                return
            body_end = text.find(BLOCK_END, aid_end)
            if body_end == -1:
                return
            aid = text[aid_start:aid_end]
            if aid.isdigit():
                yield TitleBlock(aid=aid, body=text[aid_end + 2 : body_end])
            position = text.find(BLOCK_START, body_end)

    @property
    def blocks(self) -> list[TitleBlock]:
        if self._blocks is None:
            self._blocks = list(self._scan())
        return self._blocks

    def __len__(self) -> int:
        return len(self.blocks)


class TitleResolver:
    """Two-stage name to AniDB id resolution over a ``TitleIndex``."""

    def __init__(self, index: TitleIndex) -> None:
        self.index = index

    def candidates(self, name_a: str, name_b: str) -> list[TitleBlock]:
        """Blocks containing the prefix of either name, in document order."""
        needles = {escape(half_string(name)) for name in (name_a, name_b) if name}
        if not needles:
            return []
        return [
            block
            for block in self.index.blocks
            if any(needle in block.body for needle in needles)
        ]

    def resolve(self, name_a: str, name_b: str) -> str | None:
        """Best AniDB id for a pair of names, or None.

        Args:
            name_a: Name as found in the catalog.
            name_b: Alternative spelling; usually the same name.

        Returns:
            The aid of the selected block.
        """
        candidates = self.candidates(name_a, name_b)
        logger.debug(f"Title search for {name_a!r}: {len(candidates)} candidates")
        if not candidates:
            return None
        if len(candidates) == 1:
            return candidates[0].aid

        if name_a.lower() == name_b.lower():
            best: TitleBlock | None = None
            best_count = 0
            for block in candidates:
                count = block.body.count(name_a)
                if best_count < count:
                    best, best_count = block, count
            if best is not None:
                return best.aid

        for block in candidates:
            if titles_match(block.titles, name_b) and titles_match(block.titles, name_a):
                return block.aid
        return None
