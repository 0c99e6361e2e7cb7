"""Single-pass parser for AniDB anime detail documents.

The document is consumed through ``XmlCursor``; each recognized direct child
of ``<anime>`` is handed to a section handler that reads exactly its own
subtree. Unknown sections are skipped, and a section with unexpected content
contributes nothing rather than failing the whole parse.
"""

import logging
import xml.etree.ElementTree as ET
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date

from common.config import Settings
from common.models.metadata import (
    ANIDB_PROVIDER,
    MYANIMELIST_PROVIDER,
    SeriesRecord,
    SeriesStatus,
    Title,
)
from common.utils.datetime_utils import determine_series_status, parse_anidb_date

from .genres import WeightedGenre, is_ignored_tag, order_genres, select_tag_genre
from .people import create_person, is_studio_type
from .titles import localize_title
from .utils.text_utils import clean_overview
from .xml_cursor import XmlCursor, XmlEvent, XmlEventKind, XmlSource

logger = logging.getLogger(__name__)

MYANIMELIST_RESOURCE_TYPE = "2"

EpisodeWriter = Callable[[ET.Element], object]


def _parse_int(value: str | None) -> int | None:
    try:
        return int(value.strip()) if value is not None else None
    except ValueError:
        return None


def _parse_float(value: str | None) -> float | None:
    try:
        return float(value.strip()) if value is not None else None
    except ValueError:
        return None


@dataclass
class _ParseState:
    record: SeriesRecord
    languages: Sequence[str]
    episode_writer: EpisodeWriter | None
    titles: list[Title] = field(default_factory=list)
    genres: list[WeightedGenre] = field(default_factory=list)


class SeriesDocumentParser:
    """Builds a ``SeriesRecord`` from one anime document.

    Args:
        tidy_genre_list: Map tags onto the genre vocabulary instead of
            keeping heavy tags verbatim.
        prefer_romaji: Prefer the romaji main title over library languages.
        image_base_url: Prefix joined with picture file names.
        current_date: Reference day for the status; defaults to today.
    """

    def __init__(
        self,
        *,
        tidy_genre_list: bool = True,
        prefer_romaji: bool = False,
        image_base_url: str = "http://img7.anidb.net/pics/anime/",
        current_date: date | None = None,
    ) -> None:
        self.tidy_genre_list = tidy_genre_list
        self.prefer_romaji = prefer_romaji
        self.image_base_url = image_base_url
        self.current_date = current_date
        self._handlers: dict[str, Callable[[XmlCursor, XmlEvent, _ParseState], None]] = {
            "type": self._parse_type,
            "episodecount": self._parse_episode_count,
            "startdate": self._parse_start_date,
            "enddate": self._parse_end_date,
            "titles": self._parse_titles,
            "creators": self._parse_creators,
            "description": self._parse_description,
            "ratings": self._parse_ratings,
            "resources": self._parse_resources,
            "characters": self._parse_characters,
            "tags": self._parse_tags,
            "picture": self._parse_picture,
            "episodes": self._parse_episodes,
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "SeriesDocumentParser":
        return cls(
            tidy_genre_list=settings.tidy_genre_list,
            prefer_romaji=settings.prefer_romaji,
            image_base_url=settings.anidb_image_base_url,
        )

    def parse(
        self,
        source: XmlSource,
        anidb_id: str | None = None,
        metadata_languages: Sequence[str] = (),
        *,
        episode_writer: EpisodeWriter | None = None,
    ) -> SeriesRecord:
        """Parse a series document in one forward pass.

        Args:
            source: Document bytes, path or binary stream.
            anidb_id: Anime id; read from the root ``id`` attribute if omitted.
            metadata_languages: Requested title languages, most preferred first.
            episode_writer: Called with every ``<episode>`` element; when
                omitted the episodes section is skipped.

        Returns:
            The populated record. A document with nothing usable yields a
            record whose ``has_metadata`` is False.
        """
        state = _ParseState(
            record=SeriesRecord(anidb_id=str(anidb_id or "")),
            languages=metadata_languages,
            episode_writer=episode_writer,
        )

        with XmlCursor(source) as cursor:
            for event in cursor:
                if event.kind is not XmlEventKind.START:
                    continue
                if event.depth == 1:
                    if not state.record.anidb_id and event.attrs.get("id"):
                        state.record.anidb_id = event.attrs["id"]
                    continue
                if event.depth != 2:
                    continue

                handler = self._handlers.get(event.name)
                if handler is None:
                    cursor.skip()
                    continue
                handler(cursor, event, state)

        return self._finish(state)

    def _finish(self, state: _ParseState) -> SeriesRecord:
        record = state.record

        title = localize_title(
            state.titles, state.languages, prefer_romaji=self.prefer_romaji
        )
        if title is not None:
            record.name = title.name

        record.genres = order_genres(state.genres)

        if record.status is None:
            record.status = SeriesStatus.CONTINUING
        if record.anidb_id:
            record.provider_ids[ANIDB_PROVIDER] = record.anidb_id
        return record

    # =========================================================================
    # SECTION HANDLERS
    # =========================================================================

    def _parse_type(self, cursor: XmlCursor, event: XmlEvent, state: _ParseState) -> None:
        state.record.series_type = cursor.read_text().strip() or None

    def _parse_episode_count(
        self, cursor: XmlCursor, event: XmlEvent, state: _ParseState
    ) -> None:
        state.record.episode_count = _parse_int(cursor.read_text())

    def _parse_start_date(
        self, cursor: XmlCursor, event: XmlEvent, state: _ParseState
    ) -> None:
        premiere = parse_anidb_date(cursor.read_text())
        if premiere is not None:
            state.record.premiere_date = premiere
            state.record.production_year = premiere.year

    def _parse_end_date(
        self, cursor: XmlCursor, event: XmlEvent, state: _ParseState
    ) -> None:
        end_date = parse_anidb_date(cursor.read_text())
        state.record.end_date = end_date
        state.record.status = determine_series_status(end_date, self.current_date)

    def _parse_titles(self, cursor: XmlCursor, event: XmlEvent, state: _ParseState) -> None:
        for child in cursor.iter_subtree():
            if child.kind is not XmlEventKind.START or child.name != "title":
                continue
            text = cursor.read_text().strip()
            if text:
                state.titles.append(
                    Title(
                        language=child.attrs.get("xml:lang"),
                        type=child.attrs.get("type"),
                        name=text,
                    )
                )

    def _parse_creators(
        self, cursor: XmlCursor, event: XmlEvent, state: _ParseState
    ) -> None:
        record = state.record
        for child in cursor.iter_subtree():
            if child.kind is not XmlEventKind.START or child.name != "name":
                continue
            creator_type = child.attrs.get("type")
            name = cursor.read_text().strip()
            if not name:
                continue

            if is_studio_type(creator_type):
                if name not in record.studios:
                    record.studios.append(name)
                continue

            picture = child.attrs.get("picture")
            record.people.append(
                create_person(
                    name,
                    creator_type,
                    image_url=self.image_base_url + picture if picture else None,
                    anidb_id=child.attrs.get("id"),
                )
            )

    def _parse_description(
        self, cursor: XmlCursor, event: XmlEvent, state: _ParseState
    ) -> None:
        state.record.overview = clean_overview(cursor.read_text())

    def _parse_ratings(self, cursor: XmlCursor, event: XmlEvent, state: _ParseState) -> None:
        for child in cursor.iter_subtree():
            if child.kind is XmlEventKind.START and child.name == "permanent":
                rating = _parse_float(cursor.read_text())
                if rating is not None and 0.0 <= rating <= 10.0:
                    state.record.community_rating = round(rating, 1)

    def _parse_resources(
        self, cursor: XmlCursor, event: XmlEvent, state: _ParseState
    ) -> None:
        for child in cursor.iter_subtree():
            if child.kind is not XmlEventKind.START or child.name != "resource":
                continue
            if child.attrs.get("type") != MYANIMELIST_RESOURCE_TYPE:
                cursor.skip()
                continue

            ids = []
            for item in cursor.iter_subtree():
                if item.kind is XmlEventKind.START and item.name == "identifier":
                    value = _parse_int(cursor.read_text())
                    if value is not None:
                        ids.append(value)
            if ids:
                state.record.provider_ids[MYANIMELIST_PROVIDER] = str(min(ids))

    def _parse_characters(
        self, cursor: XmlCursor, event: XmlEvent, state: _ParseState
    ) -> None:
        for child in cursor.iter_subtree():
            if child.kind is XmlEventKind.START and child.name == "character":
                self._parse_character(cursor, child, state)

    def _parse_character(
        self, cursor: XmlCursor, event: XmlEvent, state: _ParseState
    ) -> None:
        role = None
        seiyuu = None
        seiyuu_attrs: dict[str, str] = {}
        for child in cursor.iter_subtree():
            if child.kind is not XmlEventKind.START or child.depth != event.depth + 1:
                continue
            if child.name == "name":
                role = cursor.read_text().strip() or None
            elif child.name == "seiyuu":
                seiyuu = cursor.read_text().strip() or None
                seiyuu_attrs = child.attrs
            else:
                cursor.skip()

        if role and seiyuu:
            picture = seiyuu_attrs.get("picture")
            state.record.people.append(
                create_person(
                    seiyuu,
                    role=role,
                    image_url=self.image_base_url + picture if picture else None,
                    anidb_id=seiyuu_attrs.get("id"),
                )
            )

    def _parse_tags(self, cursor: XmlCursor, event: XmlEvent, state: _ParseState) -> None:
        for child in cursor.iter_subtree():
            if child.kind is XmlEventKind.START and child.name == "tag":
                self._parse_tag(cursor, child, state)

    def _parse_tag(self, cursor: XmlCursor, event: XmlEvent, state: _ParseState) -> None:
        weight = _parse_int(event.attrs.get("weight"))
        tag_id = _parse_int(event.attrs.get("id"))
        parent_id = _parse_int(event.attrs.get("parentid"))
        if weight is None or is_ignored_tag(tag_id, parent_id):
            cursor.skip()
            return

        name = None
        for child in cursor.iter_subtree():
            if (
                child.kind is XmlEventKind.START
                and child.name == "name"
                and child.depth == event.depth + 1
            ):
                name = cursor.read_text().strip()
        if not name:
            return

        genre = select_tag_genre(name, weight, tidy=self.tidy_genre_list)
        if genre is not None:
            state.genres.append(WeightedGenre(genre, weight))

    def _parse_picture(self, cursor: XmlCursor, event: XmlEvent, state: _ParseState) -> None:
        picture = cursor.read_text().strip()
        if picture:
            state.record.image_url = self.image_base_url + picture

    def _parse_episodes(
        self, cursor: XmlCursor, event: XmlEvent, state: _ParseState
    ) -> None:
        if state.episode_writer is None:
            cursor.skip()
            return
        for child in cursor.iter_subtree():
            if child.kind is XmlEventKind.START and child.name == "episode":
                state.episode_writer(cursor.read_subtree())


def find_image_url(source: XmlSource, image_base_url: str) -> str | None:
    """Poster URL of a series document without parsing anything else."""
    with XmlCursor(source) as cursor:
        for event in cursor:
            if event.kind is not XmlEventKind.START or event.depth != 2:
                continue
            if event.name == "picture":
                picture = cursor.read_text().strip()
                return image_base_url + picture if picture else None
            cursor.skip()
    return None
