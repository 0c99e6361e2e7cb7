"""Tests for the metadata models."""

import pytest
from common.models.metadata import (
    PersonRecord,
    PersonType,
    SeriesRecord,
)
from pydantic import ValidationError


class TestPersonType:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("Director", PersonType.DIRECTOR),
            ("director", PersonType.DIRECTOR),
            (" GUESTSTAR ", PersonType.GUEST_STAR),
            ("Lyricist", PersonType.LYRICIST),
        ],
    )
    def test_from_name_ignores_case(self, name, expected):
        assert PersonType.from_name(name) is expected

    def test_from_name_unknown(self):
        assert PersonType.from_name("Key Animation") is None
        assert PersonType.from_name(None) is None


class TestSeriesRecord:
    def test_empty_record_has_no_metadata(self):
        assert SeriesRecord(anidb_id="1").has_metadata is False

    def test_any_field_counts_as_metadata(self):
        assert SeriesRecord(anidb_id="1", name="Test").has_metadata is True
        assert SeriesRecord(anidb_id="1", genres=["Action"]).has_metadata is True
        assert SeriesRecord(anidb_id="1", community_rating=0.0).has_metadata is True

    def test_rating_bounds(self):
        with pytest.raises(ValidationError):
            SeriesRecord(anidb_id="1", community_rating=11.0)

    def test_json_dump(self):
        record = SeriesRecord(
            anidb_id="1",
            people=[PersonRecord(name="Kanno Youko", type=PersonType.COMPOSER)],
        )
        dumped = record.model_dump(mode="json")
        assert dumped["people"][0]["type"] == "Composer"
