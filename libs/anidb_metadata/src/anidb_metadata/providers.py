"""Catalog-facing metadata providers backed by AniDB.

Providers never raise for missing metadata: fetch failures are logged and
reported as ``None`` (or an empty list) so a library scan is not aborted by
one unreachable series. Cancellation still propagates.
"""

import asyncio
import logging

from common.config import Settings
from common.models.metadata import (
    ANIDB_PROVIDER,
    EpisodeLookup,
    EpisodeRecord,
    EpisodeType,
    RemoteSearchResult,
    SeriesLookup,
    SeriesRecord,
)
from http_cache.exceptions import CacheError

from .episode_parser import EpisodeDocumentParser, episode_file_key, merge_episode_range
from .exceptions import AniDBFetchError
from .genres import GenreNormalizer
from .series_cache import AniDBSeriesCache
from .series_parser import SeriesDocumentParser, find_image_url
from .title_resolver import TitleIndex, TitleResolver, clear_name

logger = logging.getLogger(__name__)


class AniDBSeriesProvider:
    """Series metadata by AniDB id, or by name through the title index."""

    name = ANIDB_PROVIDER

    def __init__(self, settings: Settings, series_cache: AniDBSeriesCache) -> None:
        self.settings = settings
        self.series_cache = series_cache
        self.parser = SeriesDocumentParser.from_settings(settings)
        self.genre_normalizer = GenreNormalizer(tidy=settings.tidy_genre_list)
        self._title_index: tuple[int, TitleIndex] | None = None

    async def load_title_index(self) -> TitleIndex:
        """Title index, re-read only when the cached file has changed."""
        index_path = await self.series_cache.get_title_index()
        mtime = index_path.stat().st_mtime_ns
        if self._title_index is None or self._title_index[0] != mtime:
            index = await asyncio.to_thread(TitleIndex.from_path, index_path)
            self._title_index = (mtime, index)
            logger.debug(f"Loaded title index from {index_path}")
        return self._title_index[1]

    async def resolve_anidb_id(self, name: str) -> str | None:
        """AniDB id for a series name, trying the cleaned name second."""
        resolver = TitleResolver(await self.load_title_index())

        aid = resolver.resolve(name, name)
        if aid is None:
            cleaned = clear_name(name)
            if cleaned and cleaned != name:
                aid = resolver.resolve(cleaned, cleaned)

        logger.info(f"Resolved {name!r} to AniDB id {aid}")
        return aid

    async def get_metadata(self, lookup: SeriesLookup) -> SeriesRecord | None:
        """Series record for a lookup, or None when AniDB has nothing usable."""
        try:
            aid = lookup.anidb_id
            if not aid and lookup.name:
                aid = await self.resolve_anidb_id(lookup.name)
            if not aid:
                return None

            path = await self.series_cache.get_series_data(aid)
            record = await asyncio.to_thread(
                self.parser.parse, path, aid, lookup.metadata_languages
            )
        except (AniDBFetchError, CacheError, OSError) as e:
            logger.warning(f"No AniDB metadata for {lookup.name or lookup.anidb_id}: {e}")
            return None
        except ValueError as e:
            logger.warning(f"Invalid AniDB lookup {lookup}: {e}")
            return None

        if not record.has_metadata:
            logger.info(f"AniDB document {aid} held no metadata")
            return None
        return self.genre_normalizer.apply(record)

    async def get_search_results(self, lookup: SeriesLookup) -> list[RemoteSearchResult]:
        record = await self.get_metadata(lookup)
        if record is None:
            return []
        return [
            RemoteSearchResult(
                name=record.name,
                premiere_date=record.premiere_date,
                production_year=record.production_year,
                provider_ids=dict(record.provider_ids),
                image_url=record.image_url,
            )
        ]


class AniDBSeriesImagesProvider:
    """Poster image of a series."""

    name = ANIDB_PROVIDER

    def __init__(self, settings: Settings, series_cache: AniDBSeriesCache) -> None:
        self.settings = settings
        self.series_cache = series_cache

    async def get_images(self, anidb_id: str | None) -> list[str]:
        if not anidb_id:
            return []
        try:
            path = await self.series_cache.get_series_data(anidb_id)
        except (AniDBFetchError, CacheError, ValueError) as e:
            logger.warning(f"No AniDB images for {anidb_id}: {e}")
            return []

        url = await asyncio.to_thread(
            find_image_url, path, self.settings.anidb_image_base_url
        )
        return [url] if url else []


class AniDBEpisodeProvider:
    """Episode metadata from the split episode files of a series."""

    name = ANIDB_PROVIDER

    def __init__(self, settings: Settings, series_cache: AniDBSeriesCache) -> None:
        self.settings = settings
        self.series_cache = series_cache
        self.parser = EpisodeDocumentParser(prefer_romaji=settings.prefer_romaji)

    async def get_metadata(self, lookup: EpisodeLookup) -> EpisodeRecord | None:
        """Episode record by AniDB episode id, or by number (range)."""
        series_id = lookup.series_anidb_id
        if not series_id:
            return None
        if not lookup.anidb_id and lookup.index_number is None:
            return None

        try:
            await self.series_cache.get_series_data(series_id)
        except (AniDBFetchError, CacheError, ValueError) as e:
            logger.warning(f"No AniDB episode data for series {series_id}: {e}")
            return None

        if lookup.anidb_id:
            return await asyncio.to_thread(self._find_by_id, lookup)
        return await asyncio.to_thread(self._find_by_number, lookup)

    def _find_by_id(self, lookup: EpisodeLookup) -> EpisodeRecord | None:
        for path in self.series_cache.episode_paths(lookup.series_anidb_id):
            record = self.parser.parse(
                path,
                lookup.metadata_languages,
                series_anidb_id=lookup.series_anidb_id,
                parent_index_number=lookup.parent_index_number,
            )
            if record is not None and record.anidb_id == lookup.anidb_id:
                return record
        return None

    def _find_by_number(self, lookup: EpisodeLookup) -> EpisodeRecord | None:
        episode_type = (
            EpisodeType.SPECIAL if lookup.parent_index_number == 0 else EpisodeType.REGULAR
        )
        first = lookup.index_number
        last = max(first, lookup.index_number_end or first)

        records = []
        for number in range(first, last + 1):
            path = self.series_cache.episode_path(
                lookup.series_anidb_id, episode_file_key(number, episode_type)
            )
            if not path.exists():
                continue
            record = self.parser.parse(
                path,
                lookup.metadata_languages,
                series_anidb_id=lookup.series_anidb_id,
                parent_index_number=lookup.parent_index_number,
            )
            if record is not None:
                records.append(record)
        return merge_episode_range(records)
