"""Per-episode documents: splitting, parsing and range merging.

Every ``<episode>`` element of a series document is stored verbatim as
``episode-<epno>.xml`` next to ``series.xml``. Regular episodes are keyed by
their bare number, other families by AniDB's letter prefix (``S1`` for the
first special, ``C1`` for the first credit, ...), so keys never collide.
"""

import logging
import re
import xml.etree.ElementTree as ET
from collections.abc import Iterable, Sequence
from datetime import timedelta
from pathlib import Path

from common.models.metadata import EpisodeRecord, EpisodeType, Title
from common.utils.datetime_utils import parse_anidb_date
from http_cache.document_store import atomic_write

from .titles import localize_title
from .utils.text_utils import clean_overview
from .xml_cursor import XmlCursor, XmlEvent, XmlEventKind, XmlSource

logger = logging.getLogger(__name__)

EPISODE_FILE_PREFIX = "episode-"
EPISODE_FILE_SUFFIX = ".xml"
RANGE_NAME_SEPARATOR = " / "

EPISODE_TYPE_PREFIXES: dict[EpisodeType, str] = {
    EpisodeType.REGULAR: "",
    EpisodeType.SPECIAL: "S",
    EpisodeType.CREDIT: "C",
    EpisodeType.TRAILER: "T",
    EpisodeType.PARODY: "P",
    EpisodeType.OTHER: "O",
}
_PREFIX_TYPES = {prefix: kind for kind, prefix in EPISODE_TYPE_PREFIXES.items() if prefix}

_EPNO_PATTERN = re.compile(r"^(?P<prefix>[A-Za-z]*)(?P<number>\d+)$")
_UNSAFE_KEY_CHARACTERS = re.compile(r"[^A-Za-z0-9_.-]")


def episode_file_key(index_number: int, episode_type: EpisodeType = EpisodeType.REGULAR) -> str:
    """File key of an episode, e.g. ``3`` or ``S1``."""
    return f"{EPISODE_TYPE_PREFIXES[episode_type]}{index_number}"


def episode_file_name(key: str) -> str:
    safe_key = _UNSAFE_KEY_CHARACTERS.sub("_", key.strip())
    return f"{EPISODE_FILE_PREFIX}{safe_key}{EPISODE_FILE_SUFFIX}"


def is_episode_file(path: Path) -> bool:
    return path.name.startswith(EPISODE_FILE_PREFIX) and path.suffix == EPISODE_FILE_SUFFIX


def parse_episode_number(
    epno: str | None, type_attr: str | None = None
) -> tuple[int | None, EpisodeType]:
    """Split an ``epno`` value into its number and episode family.

    The ``type`` attribute wins; without it the letter prefix decides.

    Example:
        >>> parse_episode_number("S2", "2")
        (2, <EpisodeType.SPECIAL: 2>)
    """
    match = _EPNO_PATTERN.match((epno or "").strip())
    if match is None:
        return None, EpisodeType.REGULAR

    number = int(match.group("number"))
    episode_type = _PREFIX_TYPES.get(match.group("prefix").upper(), EpisodeType.REGULAR)
    if type_attr and type_attr.strip().isdigit():
        try:
            episode_type = EpisodeType(int(type_attr))
        except ValueError:
            logger.debug(f"Unknown episode type {type_attr!r} for {epno!r}")
    return number, episode_type


class EpisodeFileWriter:
    """Stores split ``<episode>`` elements in one series directory."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self.written: dict[str, Path] = {}

    def __call__(self, element: ET.Element) -> Path | None:
        key = (element.findtext("epno") or "").strip()
        if not key:
            logger.debug("Skipping episode without epno")
            return None
        if key in self.written:
            logger.warning(f"Duplicate episode number {key} in {self.directory}")
            return None

        path = self.directory / episode_file_name(key)
        atomic_write(path, ET.tostring(element, encoding="utf-8"))
        self.written[key] = path
        return path


def remove_episode_files(directory: Path, keep: Iterable[Path] = ()) -> int:
    """Delete the split episode files of a series directory, except ``keep``."""
    removed = 0
    if not directory.is_dir():
        return removed
    kept = {path.name for path in keep}
    for path in directory.iterdir():
        if is_episode_file(path) and path.name not in kept:
            path.unlink(missing_ok=True)
            removed += 1
    return removed


def extract_episodes(source: XmlSource, directory: Path) -> list[Path]:
    """Split the episodes of a series document into individual files.

    Only the ``<episodes>`` section is materialized; everything else is
    skipped.
    """
    writer = EpisodeFileWriter(directory)
    with XmlCursor(source) as cursor:
        for event in cursor:
            if event.kind is not XmlEventKind.START or event.depth != 2:
                continue
            if event.name != "episodes":
                cursor.skip()
                continue
            for child in cursor.iter_subtree():
                if child.kind is XmlEventKind.START and child.name == "episode":
                    writer(cursor.read_subtree())
    logger.debug(f"Split {len(writer.written)} episodes into {directory}")
    return list(writer.written.values())


class EpisodeDocumentParser:
    """Builds an ``EpisodeRecord`` from one split episode document."""

    def __init__(self, *, prefer_romaji: bool = False) -> None:
        self.prefer_romaji = prefer_romaji

    def parse(
        self,
        source: XmlSource,
        metadata_languages: Sequence[str] = (),
        *,
        series_anidb_id: str | None = None,
        parent_index_number: int | None = None,
    ) -> EpisodeRecord | None:
        """Parse one episode document.

        Returns:
            The episode, or None when the document held nothing usable.
        """
        record = EpisodeRecord(series_anidb_id=series_anidb_id)
        titles: list[Title] = []
        found = False

        with XmlCursor(source) as cursor:
            for event in cursor:
                if event.kind is not XmlEventKind.START:
                    continue
                if event.depth == 1:
                    record.anidb_id = event.attrs.get("id")
                    continue
                if event.depth != 2:
                    continue
                found = self._parse_field(cursor, event, record, titles) or found

        title = localize_title(titles, metadata_languages, prefer_romaji=self.prefer_romaji)
        if title is not None:
            record.name = title.name
            found = True
        if not found:
            return None

        if record.episode_type is EpisodeType.SPECIAL:
            record.parent_index_number = 0
        else:
            record.parent_index_number = parent_index_number
        return record

    def _parse_field(
        self,
        cursor: XmlCursor,
        event: XmlEvent,
        record: EpisodeRecord,
        titles: list[Title],
    ) -> bool:
        if event.name == "epno":
            number, episode_type = parse_episode_number(
                cursor.read_text(), event.attrs.get("type")
            )
            record.index_number = number
            record.episode_type = episode_type
            return number is not None

        if event.name == "length":
            text = cursor.read_text().strip()
            if text.isdigit():
                record.runtime = timedelta(minutes=int(text))
                return True
            return False

        if event.name == "airdate":
            airdate = parse_anidb_date(cursor.read_text())
            if airdate is None:
                return False
            record.premiere_date = airdate
            record.production_year = airdate.year
            return True

        if event.name == "rating":
            if "votes" not in event.attrs:
                cursor.skip()
                return False
            try:
                rating = float(cursor.read_text().strip())
            except ValueError:
                return False
            if 0.0 <= rating <= 10.0:
                record.community_rating = round(rating, 1)
                return True
            return False

        if event.name == "title":
            text = cursor.read_text().strip()
            if text:
                # Episode titles carry no type; every one counts as a main title
                titles.append(
                    Title(language=event.attrs.get("xml:lang"), type="main", name=text)
                )
            return False

        if event.name == "summary":
            record.overview = clean_overview(cursor.read_text())
            return record.overview is not None

        cursor.skip()
        return False


def merge_episode_range(episodes: Iterable[EpisodeRecord]) -> EpisodeRecord | None:
    """Combine the consecutive episodes of a multi-episode file.

    The first episode provides the base record. Runtimes are summed, names
    joined with " / " and the last episode number becomes the range end.
    """
    episodes = list(episodes)
    if not episodes:
        return None
    first = episodes[0]
    if len(episodes) == 1:
        return first

    runtimes = [episode.runtime for episode in episodes if episode.runtime is not None]
    names = [episode.name for episode in episodes if episode.name]
    return first.model_copy(
        update={
            "index_number_end": episodes[-1].index_number,
            "runtime": sum(runtimes, timedelta()) if runtimes else None,
            "name": RANGE_NAME_SEPARATOR.join(names) if names else None,
        }
    )
