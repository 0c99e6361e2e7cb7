import io
import logging
import xml.etree.ElementTree as ET

from anidb_metadata.xml_cursor import XmlCursor, XmlEventKind

DOCUMENT = (
    b'<anime id="1"><titles><title xml:lang="x-jat" type="main">A &amp; B</title>'
    b"</titles><unknown><deep><titles>nested</titles></deep></unknown>"
    b"<type>TV Series</type></anime>"
)


def _starts(cursor: XmlCursor) -> list[tuple[str, int]]:
    return [
        (event.name, event.depth)
        for event in cursor
        if event.kind is XmlEventKind.START
    ]


def test_events_carry_depth():
    assert _starts(XmlCursor(DOCUMENT)) == [
        ("anime", 1),
        ("titles", 2),
        ("title", 3),
        ("unknown", 2),
        ("deep", 3),
        ("titles", 4),
        ("type", 2),
    ]


def test_small_chunks_produce_same_events():
    assert _starts(XmlCursor(DOCUMENT, chunk_size=7)) == _starts(XmlCursor(DOCUMENT))


def test_read_text_consumes_element():
    with XmlCursor(DOCUMENT) as cursor:
        for event in cursor:
            if event.kind is XmlEventKind.START and event.name == "title":
                assert cursor.read_text() == "A & B"
                break
        following = next(cursor)

    assert following.kind is XmlEventKind.END
    assert following.name == "titles"


def test_skip_jumps_past_subtree():
    seen = []
    with XmlCursor(io.BytesIO(DOCUMENT)) as cursor:
        for event in cursor:
            if event.kind is not XmlEventKind.START:
                continue
            seen.append(event.name)
            if event.name == "unknown":
                cursor.skip()

    assert "deep" not in seen
    assert seen[-1] == "type"


def test_read_subtree_preserves_attributes():
    with XmlCursor(DOCUMENT) as cursor:
        for event in cursor:
            if event.kind is XmlEventKind.START and event.name == "titles":
                element = cursor.read_subtree()
                break

    title = element.find("title")
    assert title.get("xml:lang") == "x-jat"
    assert title.text == "A & B"

    reparsed = ET.fromstring(ET.tostring(element, encoding="utf-8"))
    assert reparsed.find("title").get("type") == "main"


def test_malformed_document_keeps_prefix(caplog):
    broken = b"<anime><type>Movie</type><description>Tom & Jerry</description></anime>"

    with caplog.at_level(logging.WARNING):
        names = [
            event.name
            for event in XmlCursor(broken)
            if event.kind is XmlEventKind.START
        ]

    assert names[:2] == ["anime", "type"]
    assert "Malformed XML" in caplog.text


def test_reads_from_path(tmp_path):
    path = tmp_path / "series.xml"
    path.write_bytes(DOCUMENT)

    assert _starts(XmlCursor(path))[0] == ("anime", 1)
