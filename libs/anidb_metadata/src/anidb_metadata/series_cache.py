"""On-disk cache of AniDB series documents and the bulk title index.

Layout below the cache root::

    anidb/animetitles.xml
    anidb/series/<aid>/series.xml
    anidb/series/<aid>/episode-<epno>.xml
    anidb-people/<first letter>/<name>.xml

Before a newly fetched ``series.xml`` replaces the old one, the episode files
of that series are rewritten in place from it, episodes it no longer lists
are removed, and its people are merged into the shared people cache. Readers
never see a fresh ``series.xml`` without its episode files.
"""

import asyncio
import logging
from pathlib import Path

from common.config import Settings
from http_cache.config import CacheConfig
from http_cache.document_store import DocumentCache

from .client import AniDBClient
from .episode_parser import (
    episode_file_name,
    extract_episodes,
    is_episode_file,
    remove_episode_files,
)
from .people import PeopleCache

logger = logging.getLogger(__name__)

ANIDB_DIRECTORY = "anidb"
SERIES_DIRECTORY = "series"
SERIES_DATA_FILE = "series.xml"
TITLE_INDEX_FILE = "animetitles.xml"


def validate_anidb_id(anidb_id: str | int) -> str:
    """Normalize an anime id, rejecting anything that is not a positive number."""
    value = str(anidb_id).strip()
    if not value.isdigit() or int(value) == 0:
        raise ValueError(f"Invalid AniDB id: {anidb_id!r}")
    return value


class AniDBSeriesCache:
    """Keeps fresh local copies of AniDB documents.

    Args:
        client: Client used for any fetch.
        documents: Document cache rooted at the configured cache root.
        people: People cache fed from every freshly fetched series.
    """

    def __init__(
        self,
        client: AniDBClient,
        documents: DocumentCache,
        people: PeopleCache,
    ) -> None:
        self.client = client
        self.documents = documents
        self.people = people

    @classmethod
    def create(
        cls,
        settings: Settings,
        cache_config: CacheConfig,
        client: AniDBClient | None = None,
    ) -> "AniDBSeriesCache":
        documents = DocumentCache(cache_config)
        return cls(
            client or AniDBClient(settings),
            documents,
            PeopleCache(documents.root, settings.anidb_image_base_url),
        )

    @property
    def config(self) -> CacheConfig:
        return self.documents.config

    def series_directory(self, anidb_id: str | int) -> Path:
        return (
            self.documents.root
            / ANIDB_DIRECTORY
            / SERIES_DIRECTORY
            / validate_anidb_id(anidb_id)
        )

    def series_data_path(self, anidb_id: str | int) -> Path:
        return self.series_directory(anidb_id) / SERIES_DATA_FILE

    def episode_path(self, anidb_id: str | int, key: str) -> Path:
        return self.series_directory(anidb_id) / episode_file_name(key)

    def episode_paths(self, anidb_id: str | int) -> list[Path]:
        """Split episode files of a series, sorted by file name."""
        directory = self.series_directory(anidb_id)
        if not directory.is_dir():
            return []
        return sorted(path for path in directory.iterdir() if is_episode_file(path))

    @property
    def title_index_path(self) -> Path:
        return self.documents.root / ANIDB_DIRECTORY / TITLE_INDEX_FILE

    async def get_series_data(self, anidb_id: str | int) -> Path:
        """Path of a fresh ``series.xml``, fetching it if missing or stale.

        Raises:
            ValueError: For a malformed id.
            AniDBFetchError: If a needed fetch fails; any previous copy stays.
            CacheStorageError: If the fetched document cannot be written.
        """
        aid = validate_anidb_id(anidb_id)
        return await self.documents.get_fresh_document(
            f"anidb:series:{aid}",
            self.series_data_path(aid),
            lambda: self.client.fetch_anime(aid),
            max_age=self.config.series_max_age,
            derive=self._derive_artifacts,
        )

    async def get_title_index(self) -> Path:
        """Path of a fresh ``animetitles.xml``."""
        return await self.documents.get_fresh_document(
            "anidb:titles",
            self.title_index_path,
            self.client.fetch_title_index,
            max_age=self.config.title_index_max_age,
        )

    async def _derive_artifacts(self, content: bytes, series_path: Path) -> None:
        await asyncio.to_thread(self._split_series, content, series_path.parent)

    def _split_series(self, content: bytes, directory: Path) -> None:
        episodes = extract_episodes(content, directory)
        removed = remove_episode_files(directory, keep=episodes)
        people = self.people.extract_cast(content)
        logger.info(
            f"Refreshed {directory.name}: {len(episodes)} episodes "
            f"({removed} stale removed), {people} people stored"
        )
