"""Pydantic models for series, episode and people metadata produced from AniDB."""

from datetime import datetime, timedelta
from enum import Enum, IntEnum

from pydantic import BaseModel, Field

ANIDB_PROVIDER = "AniDB"
MYANIMELIST_PROVIDER = "MyAnimeList"


class SeriesStatus(str, Enum):
    """Series airing status classification."""

    CONTINUING = "Continuing"
    ENDED = "Ended"


class PersonType(str, Enum):
    """Role category of a person credited on a series."""

    ACTOR = "Actor"
    DIRECTOR = "Director"
    COMPOSER = "Composer"
    WRITER = "Writer"
    GUEST_STAR = "GuestStar"
    PRODUCER = "Producer"
    CONDUCTOR = "Conductor"
    LYRICIST = "Lyricist"

    @classmethod
    def from_name(cls, name: str | None) -> "PersonType | None":
        """Look up a member by its value, ignoring case."""
        if not name:
            return None
        wanted = name.strip().lower()
        for member in cls:
            if member.value.lower() == wanted:
                return member
        return None


class EpisodeType(IntEnum):
    """AniDB episode numbering families (``epno@type``)."""

    REGULAR = 1
    SPECIAL = 2
    CREDIT = 3
    TRAILER = 4
    PARODY = 5
    OTHER = 6


# =============================================================================
# ENTITY MODELS
# =============================================================================


class Title(BaseModel):
    """One title variant of a series or episode."""

    language: str | None = Field(None, description="xml:lang tag (e.g. 'x-jat', 'en')")
    type: str | None = Field(None, description="main, official, synonym, short, ...")
    name: str = Field(..., description="Title text")


class PersonRecord(BaseModel):
    """A cast or crew member, shared across series by name."""

    name: str = Field(..., description="Person name, given name first")
    type: PersonType = Field(default=PersonType.ACTOR, description="Role category")
    role: str | None = Field(None, description="Character name for voice actors")
    image_url: str | None = Field(None, description="Portrait URL")
    anidb_id: str | None = Field(None, description="AniDB creator id")


class SeriesRecord(BaseModel):
    """Series metadata populated from one AniDB anime document."""

    # =====================================================================
    # SCALAR FIELDS
    # =====================================================================
    anidb_id: str = Field(..., description="AniDB anime id")
    name: str | None = Field(None, description="Localized display title")
    premiere_date: datetime | None = Field(None, description="Start date (UTC)")
    production_year: int | None = Field(None, description="Year of the start date")
    end_date: datetime | None = Field(None, description="End date (UTC)")
    status: SeriesStatus | None = Field(None, description="Continuing or Ended")
    community_rating: float | None = Field(
        None, ge=0.0, le=10.0, description="Permanent rating, one decimal"
    )
    overview: str | None = Field(None, description="Cleaned description text")
    series_type: str | None = Field(None, description="TV Series, Movie, OVA, ...")
    episode_count: int | None = Field(None, description="Announced episode count")
    image_url: str | None = Field(None, description="Poster URL")

    # =====================================================================
    # ARRAY / OBJECT FIELDS
    # =====================================================================
    genres: list[str] = Field(default_factory=list, description="Ordered genre names")
    studios: list[str] = Field(default_factory=list, description="Animation studios")
    people: list[PersonRecord] = Field(default_factory=list, description="Cast and crew")
    provider_ids: dict[str, str] = Field(
        default_factory=dict, description="External ids keyed by provider name"
    )

    @property
    def has_metadata(self) -> bool:
        """True when anything beyond the identifier was extracted."""
        return any(
            (
                self.name,
                self.premiere_date,
                self.end_date,
                self.community_rating is not None,
                self.overview,
                self.series_type,
                self.episode_count is not None,
                self.image_url,
                self.genres,
                self.studios,
                self.people,
            )
        )


class EpisodeRecord(BaseModel):
    """Episode metadata parsed from one split ``episode-<n>.xml`` document."""

    anidb_id: str | None = Field(None, description="AniDB episode id")
    series_anidb_id: str | None = Field(None, description="Parent AniDB anime id")
    index_number: int | None = Field(None, description="Episode number within its type")
    index_number_end: int | None = Field(
        None, description="Last episode number when several files were merged"
    )
    episode_type: EpisodeType = Field(default=EpisodeType.REGULAR)
    parent_index_number: int | None = Field(None, description="Season-equivalent index")
    runtime: timedelta | None = Field(None, description="Episode length")
    premiere_date: datetime | None = Field(None, description="Air date (UTC)")
    production_year: int | None = Field(None)
    community_rating: float | None = Field(None, ge=0.0, le=10.0)
    overview: str | None = Field(None)
    name: str | None = Field(None, description="Localized episode title")


# =============================================================================
# LOOKUP MODELS
# =============================================================================


class SeriesLookup(BaseModel):
    """What the catalog knows about a series before asking AniDB."""

    name: str | None = Field(None, description="Free-text series name")
    anidb_id: str | None = Field(None, description="Known AniDB anime id")
    metadata_languages: list[str] = Field(
        default_factory=list, description="Preferred languages, most preferred first"
    )


class EpisodeLookup(BaseModel):
    """What the catalog knows about an episode before asking AniDB."""

    series_anidb_id: str | None = Field(None, description="AniDB id of the series")
    anidb_id: str | None = Field(None, description="Known AniDB episode id")
    index_number: int | None = Field(None, description="Episode number")
    index_number_end: int | None = Field(None, description="Last number of a multi-episode file")
    parent_index_number: int | None = Field(None, description="Season number; 0 means specials")
    name: str | None = Field(None, description="Current episode name")
    metadata_languages: list[str] = Field(default_factory=list)


class RemoteSearchResult(BaseModel):
    """Search hit returned to the catalog's identify dialog."""

    name: str | None = None
    premiere_date: datetime | None = None
    production_year: int | None = None
    provider_ids: dict[str, str] = Field(default_factory=dict)
    image_url: str | None = None
    search_provider_name: str = ANIDB_PROVIDER
