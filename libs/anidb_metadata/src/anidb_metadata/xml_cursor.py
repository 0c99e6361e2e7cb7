"""Forward-only streaming XML reader.

AniDB anime documents can be large (long-running series carry thousands of
episodes and characters) and AniDB occasionally serves slightly broken
markup. ``XmlCursor`` feeds the document to expat in chunks and yields a flat
stream of start/end/text events, so parsers only materialize the parts they
consume. A malformed document simply ends the stream early; whatever was
extracted before the fault is kept by the caller.
"""

from __future__ import annotations

import io
import logging
import os
import xml.etree.ElementTree as ET
from collections import deque
from collections.abc import Iterator
from enum import Enum
from types import TracebackType
from typing import BinaryIO, NamedTuple
from xml.parsers import expat

logger = logging.getLogger(__name__)

XmlSource = bytes | str | os.PathLike | BinaryIO

DEFAULT_CHUNK_SIZE = 64 * 1024


class XmlEventKind(Enum):
    START = "start"
    END = "end"
    TEXT = "text"


class XmlEvent(NamedTuple):
    """One parse event.

    ``depth`` is the element depth the event belongs to: the root element's
    start and end events have depth 1, text directly inside the root has
    depth 1 as well.
    """

    kind: XmlEventKind
    name: str
    attrs: dict[str, str]
    text: str
    depth: int


class XmlCursor:
    """Iterates over the events of one XML document.

    Args:
        source: Raw bytes, a path, or a binary stream. Paths are opened and
            closed by the cursor; streams are left open.
        chunk_size: Number of bytes handed to expat at a time.
    """

    def __init__(self, source: XmlSource, *, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self._owns_stream = False
        if isinstance(source, (bytes, bytearray)):
            self._stream: BinaryIO = io.BytesIO(source)
        elif isinstance(source, (str, os.PathLike)):
            self._stream = open(source, "rb")
            self._owns_stream = True
        else:
            self._stream = source

        self._chunk_size = chunk_size
        self._pending: deque[tuple[XmlEventKind, str, dict[str, str], str]] = deque()
        self._finished = False
        self._depth = 0
        self.current: XmlEvent | None = None

        parser = expat.ParserCreate()
        parser.buffer_text = True
        parser.ordered_attributes = False
        # Undefined entities are skipped instead of aborting the document
        parser.UseForeignDTD(True)
        parser.StartElementHandler = self._on_start
        parser.EndElementHandler = self._on_end
        parser.CharacterDataHandler = self._on_text
        parser.SkippedEntityHandler = self._on_skipped_entity
        self._parser = parser

    # -- expat callbacks ---------------------------------------------------

    def _on_start(self, name: str, attrs: dict[str, str]) -> None:
        self._pending.append((XmlEventKind.START, name, attrs, ""))

    def _on_end(self, name: str) -> None:
        self._pending.append((XmlEventKind.END, name, {}, ""))

    def _on_text(self, data: str) -> None:
        self._pending.append((XmlEventKind.TEXT, "", {}, data))

    def _on_skipped_entity(self, name: str, is_parameter_entity: bool) -> None:
        logger.debug(f"Skipping undefined XML entity &{name};")

    # -- feeding -------------------------------------------------------------

    def _feed(self) -> None:
        chunk = self._stream.read(self._chunk_size)
        try:
            if chunk:
                self._parser.Parse(chunk, False)
            else:
                self._parser.Parse(b"", True)
                self._finished = True
        except expat.ExpatError as e:
            logger.warning(f"Malformed XML, stopping at line {e.lineno}: {e}")
            self._finished = True

    # -- iteration -----------------------------------------------------------

    def __iter__(self) -> XmlCursor:
        return self

    def __next__(self) -> XmlEvent:
        while not self._pending:
            if self._finished:
                self.close()
                raise StopIteration
            self._feed()

        kind, name, attrs, text = self._pending.popleft()
        if kind is XmlEventKind.START:
            self._depth += 1
            event = XmlEvent(kind, name, attrs, text, self._depth)
        elif kind is XmlEventKind.END:
            event = XmlEvent(kind, name, attrs, text, self._depth)
            self._depth -= 1
        else:
            event = XmlEvent(kind, name, attrs, text, self._depth)

        self.current = event
        return event

    @property
    def depth(self) -> int:
        """Number of currently open elements."""
        return self._depth

    def iter_subtree(self) -> Iterator[XmlEvent]:
        """Yield the events inside the element whose start was just read.

        Stops after consuming the matching end event, which is not yielded.
        Must be called right after a START event.
        """
        if self.current is None or self.current.kind is not XmlEventKind.START:
            raise RuntimeError("iter_subtree() must follow a start event")
        depth = self.current.depth
        while True:
            try:
                event = next(self)
            except StopIteration:
                return
            if event.kind is XmlEventKind.END and event.depth == depth:
                return
            yield event

    def skip(self) -> None:
        """Discard the rest of the current element."""
        for _ in self.iter_subtree():
            pass

    def read_text(self) -> str:
        """Concatenated text of the current element and its descendants."""
        return "".join(
            event.text
            for event in self.iter_subtree()
            if event.kind is XmlEventKind.TEXT
        )

    def read_subtree(self) -> ET.Element:
        """Materialize the current element as an ElementTree element."""
        start = self.current
        if start is None or start.kind is not XmlEventKind.START:
            raise RuntimeError("read_subtree() must follow a start event")

        builder = ET.TreeBuilder()
        builder.start(start.name, dict(start.attrs))
        open_elements = [start.name]
        for event in self.iter_subtree():
            if event.kind is XmlEventKind.START:
                builder.start(event.name, dict(event.attrs))
                open_elements.append(event.name)
            elif event.kind is XmlEventKind.END:
                builder.end(event.name)
                open_elements.pop()
            else:
                builder.data(event.text)
        # A truncated document leaves elements open
        for name in reversed(open_elements):
            builder.end(name)
        return builder.close()

    def close(self) -> None:
        self._finished = True
        self._pending.clear()
        if self._owns_stream:
            self._stream.close()
            self._owns_stream = False

    def __enter__(self) -> XmlCursor:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
