"""Cast and crew extraction, and the shared per-person cache.

People are cached by name rather than per series, so a voice actor credited
on many series is stored once under
``<cache_root>/anidb-people/<first letter>/<lower-cased name>.xml``.
"""

import logging
import xml.etree.ElementTree as ET
from pathlib import Path

from common.models.metadata import PersonRecord, PersonType
from http_cache.document_store import atomic_write
from http_cache.exceptions import CacheStorageError

from .utils.text_utils import reverse_name_order
from .xml_cursor import XmlCursor, XmlEventKind, XmlSource

logger = logging.getLogger(__name__)

PEOPLE_DIRECTORY = "anidb-people"
ANIMATION_WORK = "Animation Work"
STUDIO_CREATOR_TYPES = frozenset({"animation work", "work"})

# AniDB creator types onto person categories, compared case-insensitively
PERSON_TYPE_MAPPINGS: dict[str, PersonType] = {
    "direction": PersonType.DIRECTOR,
    "music": PersonType.COMPOSER,
    "chief animation direction": PersonType.DIRECTOR,
    "series composition": PersonType.WRITER,
    "animation work": PersonType.PRODUCER,
    "original work": PersonType.WRITER,
    "character design": PersonType.WRITER,
    "work": PersonType.PRODUCER,
    "animation character design": PersonType.WRITER,
    "effects direction": PersonType.WRITER,
    "original plan": PersonType.WRITER,
    "chief direction": PersonType.DIRECTOR,
    "main character design": PersonType.WRITER,
    "story composition": PersonType.WRITER,
    "magical bushidou musashi design": PersonType.WRITER,
}


def person_type_for(creator_type: str | None) -> PersonType:
    """Map an AniDB creator type onto a person category, defaulting to Actor."""
    if not creator_type:
        return PersonType.ACTOR
    key = creator_type.strip().lower()
    if key in PERSON_TYPE_MAPPINGS:
        return PERSON_TYPE_MAPPINGS[key]
    return PersonType.from_name(key) or PersonType.ACTOR


def is_studio_type(creator_type: str | None) -> bool:
    return (creator_type or "").strip().lower() in STUDIO_CREATOR_TYPES


def create_person(
    name: str,
    creator_type: str | None = None,
    *,
    role: str | None = None,
    image_url: str | None = None,
    anidb_id: str | None = None,
) -> PersonRecord:
    """Build a person record from a family-name-first AniDB name."""
    return PersonRecord(
        name=reverse_name_order(name.strip()),
        type=person_type_for(creator_type),
        role=role,
        image_url=image_url or None,
        anidb_id=anidb_id or None,
    )


def person_cache_key(name: str) -> str:
    """File-name key of a person: lower-cased, path separators replaced."""
    key = name.strip().lower()
    for separator in ("/", "\\", "\0"):
        key = key.replace(separator, "_")
    if key in ("", ".", ".."):
        raise ValueError(f"Unusable person name: {name!r}")
    return key


def person_cache_path(cache_root: Path, name: str) -> Path:
    key = person_cache_key(name)
    return cache_root / PEOPLE_DIRECTORY / key[0] / f"{key}.xml"


def serialize_person(person: PersonRecord) -> bytes:
    root = ET.Element("person")
    if person.anidb_id:
        root.set("id", person.anidb_id)
    ET.SubElement(root, "name").text = person.name
    ET.SubElement(root, "type").text = person.type.value
    if person.image_url:
        ET.SubElement(root, "image").text = person.image_url
    return ET.tostring(root, encoding="utf-8")


def deserialize_person(content: bytes) -> PersonRecord | None:
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        logger.warning(f"Unreadable person record: {e}")
        return None

    name = (root.findtext("name") or "").strip()
    if not name:
        return None
    return PersonRecord(
        name=name,
        type=PersonType.from_name(root.findtext("type")) or PersonType.ACTOR,
        image_url=(root.findtext("image") or "").strip() or None,
        anidb_id=root.get("id"),
    )


class PeopleCache:
    """Extracts people from series documents into the shared people cache.

    Args:
        cache_root: Root directory of every cached artifact.
        image_base_url: Prefix joined with AniDB picture file names.
    """

    def __init__(self, cache_root: Path, image_base_url: str) -> None:
        self.cache_root = Path(cache_root)
        self.image_base_url = image_base_url

    def collect_people(self, source: XmlSource) -> list[PersonRecord]:
        """Voice actors and creators credited in one series document."""
        people: list[PersonRecord] = []
        with XmlCursor(source) as cursor:
            for event in cursor:
                if event.kind is not XmlEventKind.START or event.depth != 2:
                    continue
                if event.name == "characters":
                    people.extend(self._collect_seiyuu(cursor))
                elif event.name == "creators":
                    people.extend(self._collect_creators(cursor))
                else:
                    cursor.skip()
        return people

    def _collect_seiyuu(self, cursor: XmlCursor) -> list[PersonRecord]:
        people = []
        for event in cursor.iter_subtree():
            if event.kind is XmlEventKind.START and event.name == "seiyuu":
                name = cursor.read_text().strip()
                if not name:
                    continue
                picture = event.attrs.get("picture")
                people.append(
                    create_person(
                        name,
                        image_url=self.image_base_url + picture if picture else None,
                        anidb_id=event.attrs.get("id"),
                    )
                )
        return people

    def _collect_creators(self, cursor: XmlCursor) -> list[PersonRecord]:
        people = []
        for event in cursor.iter_subtree():
            if event.kind is not XmlEventKind.START or event.name != "name":
                continue
            creator_type = event.attrs.get("type")
            name = cursor.read_text().strip()
            if not name or creator_type == ANIMATION_WORK:
                continue
            people.append(
                create_person(name, creator_type, anidb_id=event.attrs.get("id"))
            )
        return people

    def extract_cast(self, source: XmlSource) -> int:
        """Persist every person of a series document.

        Returns:
            Number of person files written.
        """
        written = 0
        for person in self.collect_people(source):
            if self.save(person):
                written += 1
        logger.debug(f"Stored {written} person records")
        return written

    def save(self, person: PersonRecord) -> bool:
        """Write ``person`` unless an existing record is at least as complete.

        An existing file is only replaced when the new record has a portrait
        and the stored one does not. Write errors are logged and ignored.
        """
        try:
            path = person_cache_path(self.cache_root, person.name)
            if path.exists():
                existing = self.get_person(person.name)
                if not person.image_url or (existing and existing.image_url):
                    return False
            atomic_write(path, serialize_person(person))
            return True
        except (OSError, ValueError, CacheStorageError) as e:
            logger.warning(f"Could not store person {person.name!r}: {e}")
            return False

    def get_person(self, name: str) -> PersonRecord | None:
        """Previously stored record for ``name``, or None."""
        try:
            path = person_cache_path(self.cache_root, name)
            content = path.read_bytes()
        except (OSError, ValueError):
            return None
        return deserialize_person(content)
