"""Datetime utility functions for AniDB metadata processing."""

from datetime import UTC, date, datetime

from common.models.metadata import SeriesStatus


def parse_anidb_date(value: str | None) -> datetime | None:
    """Parse an AniDB date string into a UTC-aware datetime.

    AniDB emits full dates ("2005-04-03"), and occasionally only the month
    ("2005-04") or the year ("2005") for titles with vague air dates. Date-only
    values are taken as midnight UTC.

    Args:
        value: Raw element text, possibly padded with whitespace.

    Returns:
        A UTC-aware datetime, or None when the value is blank or unparsable.

    Examples:
        >>> parse_anidb_date("2005-04-03")
        datetime.datetime(2005, 4, 3, 0, 0, tzinfo=datetime.timezone.utc)
        >>> parse_anidb_date("2005") is not None
        True
    """
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None

    try:
        if len(text) == 4 and text.isdigit():
            return datetime(int(text), 1, 1, tzinfo=UTC)
        if len(text) == 7 and text[4] == "-":
            return datetime(int(text[:4]), int(text[5:7]), 1, tzinfo=UTC)

        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def determine_series_status(
    end_date: datetime | None, current_date: date | datetime | None = None
) -> SeriesStatus:
    """Classify a series as continuing or ended from its end date.

    A series without an end date, or whose end date lies after today, is
    still continuing. An end date of today or earlier means it has ended.

    Args:
        end_date: Parsed end date, or None when AniDB has none.
        current_date: Reference day. Defaults to today in UTC.

    Returns:
        The series status.
    """
    if end_date is None:
        return SeriesStatus.CONTINUING

    if current_date is None:
        current_date = datetime.now(UTC).date()
    elif isinstance(current_date, datetime):
        current_date = current_date.date()

    if current_date < end_date.date():
        return SeriesStatus.CONTINUING
    return SeriesStatus.ENDED
