"""Shared fixtures for anidb_metadata unit tests."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from anidb_metadata.people import PeopleCache
from anidb_metadata.series_cache import AniDBSeriesCache
from common.config.settings import Settings
from http_cache.config import CacheConfig
from http_cache.document_store import DocumentCache

IMAGE_BASE_URL = "http://img7.anidb.net/pics/anime/"

SERIES_XML = """<?xml version="1.0" encoding="UTF-8"?>
<anime id="23" restricted="false">
  <type>TV Series</type>
  <episodecount>26</episodecount>
  <startdate>1998-04-03</startdate>
  <enddate>1999-04-24</enddate>
  <titles>
    <title xml:lang="x-jat" type="main">Kaubooi Bibappu</title>
    <title xml:lang="en" type="official">Cowboy Bebop</title>
    <title xml:lang="ja" type="official">カウボーイビバップ</title>
    <title xml:lang="de" type="synonym">Cowboy Bebop DE</title>
  </titles>
  <relatedanime>
    <anime id="5" type="Side Story">Cowboy Bebop: Tengoku no Tobira</anime>
  </relatedanime>
  <creators>
    <name id="4234" type="Direction">Watanabe Shinichirou</name>
    <name id="4262" type="Music">Kanno Youko</name>
    <name id="730" type="Animation Work">Sunrise</name>
    <name id="999" type="Original Work">Yatate Hajime</name>
    <name id="1000" type="Unknown Credit">Else Someone</name>
  </creators>
  <description>In the year 2071, http://anidb.net/ch1 [Spike Spiegel] hunts bounties.
Second line.
Source: Wikipedia</description>
  <ratings>
    <permanent count="1000">8.86</permanent>
    <temporary count="1000">8.91</temporary>
    <review count="10">8.70</review>
  </ratings>
  <picture>4399.jpg</picture>
  <resources>
    <resource type="1">
      <externalentity><identifier>1</identifier></externalentity>
    </resource>
    <resource type="2">
      <externalentity><identifier>23</identifier></externalentity>
      <externalentity><identifier>7</identifier></externalentity>
    </resource>
  </resources>
  <tags>
    <tag id="2604" parentid="2610" weight="600" verified="true">
      <name>science fiction</name>
      <description>Futuristic setting.</description>
    </tag>
    <tag id="2611" weight="200"><name>action</name></tag>
    <tag id="22" weight="600"><name>target audience</name></tag>
    <tag id="3000" parentid="60" weight="600"><name>comedy</name></tag>
    <tag id="3001"><name>romance</name></tag>
    <tag id="3002" weight="500"><name>space travel</name></tag>
    <tag id="3003" weight="400"><name>space</name></tag>
  </tags>
  <characters>
    <character id="118" type="main character in" update="2012-07-25">
      <rating votes="100">9.5</rating>
      <name>Spike Spiegel</name>
      <gender>male</gender>
      <picture>14.jpg</picture>
      <seiyuu id="10" picture="184301.jpg">Yamadera Kouichi</seiyuu>
    </character>
    <character id="119" type="secondary cast in">
      <name>Ein</name>
    </character>
  </characters>
  <episodes>
    <episode id="230" update="2011-07-01">
      <epno type="1">1</epno>
      <length>25</length>
      <airdate>1998-10-24</airdate>
      <rating votes="20">7.46</rating>
      <title xml:lang="en">Asteroid Blues</title>
      <title xml:lang="x-jat">Asteroid Blues JAT</title>
      <summary>Spike and http://anidb.net/ch2 [Jet] chase a bounty.
Source: AniDB</summary>
    </episode>
    <episode id="231">
      <epno type="1">2</epno>
      <length>24</length>
      <title xml:lang="en">Stray Dog Strut</title>
    </episode>
    <episode id="232">
      <epno type="2">S1</epno>
      <length>5</length>
      <title xml:lang="en">Session XX</title>
    </episode>
  </episodes>
</anime>
""".encode("utf-8")

TITLE_INDEX_XML = """<?xml version="1.0" encoding="UTF-8"?>
<animetitles>
<anime aid="1">
<title type="main" xml:lang="x-jat">Seikai no Monshou</title>
<title type="official" xml:lang="en">Crest of the Stars</title>
</anime>
<anime aid="23">
<title type="main" xml:lang="x-jat">Cowboy Bebop</title>
<title type="official" xml:lang="ja">カウボーイビバップ</title>
</anime>
<anime aid="5">
<title type="main" xml:lang="x-jat">Cowboy Bebop: Tengoku no Tobira</title>
<title type="official" xml:lang="en">Cowboy Bebop: The Movie</title>
</anime>
</animetitles>
""".encode("utf-8")


@pytest.fixture
def series_xml() -> bytes:
    return SERIES_XML


@pytest.fixture
def title_index_xml() -> bytes:
    return TITLE_INDEX_XML


@pytest.fixture
def mock_client() -> AsyncMock:
    """AniDB client double serving the sample documents."""
    client = AsyncMock()
    client.fetch_anime = AsyncMock(return_value=SERIES_XML)
    client.fetch_title_index = AsyncMock(return_value=TITLE_INDEX_XML)
    return client


@pytest.fixture
def people_cache(tmp_path: Path) -> PeopleCache:
    return PeopleCache(tmp_path, IMAGE_BASE_URL)


@pytest.fixture
def series_cache(
    mock_client: AsyncMock, cache_config: CacheConfig, people_cache: PeopleCache
) -> AniDBSeriesCache:
    return AniDBSeriesCache(mock_client, DocumentCache(cache_config), people_cache)


@pytest.fixture
def untidy_settings() -> Settings:
    return Settings(_env_file=None, tidy_genre_list=False)
