"""Byte level search for record start and end tags.

Tags are matched on raw bytes, so the charset must encode markup characters
and element names with one byte per character. A delimiter (``<name`` or
``</name``) only counts as a tag when it is followed by whitespace, ``>`` or
``/``, so ``<record`` never matches ``<records>``.
"""

from dataclasses import dataclass
from typing import BinaryIO, Optional, Sequence, Tuple

import enum
import logging

from xmlsplit.exceptions import StreamError
from xmlsplit.exceptions import UnterminatedRecord

log = logging.getLogger(__name__)

NOT_FOUND = -1


class TagKind(enum.Enum):
    START = 'start'
    END = 'end'


@dataclass(frozen=True)
class Tag:
    name: str
    kind: TagKind
    delimiter: bytes
    terminators: bytes
    gt: int
    slash: int
    quotes: bytes

    @classmethod
    def create(cls, name: str, kind: TagKind, charset: str = 'utf-8') -> 'Tag':
        if kind is TagKind.START:
            delimiter = f'<{name}'
            terminators = ' \t\r\n>/'
        else:
            delimiter = f'</{name}'
            terminators = ' \t\r\n>'
        return cls(
            name=name,
            kind=kind,
            delimiter=delimiter.encode(charset),
            terminators=terminators.encode(charset),
            gt=ord('>'.encode(charset)),
            slash=ord('/'.encode(charset)),
            quotes='"\''.encode(charset),
        )


def find_tag(data: bytes, tag: Tag, start: int = 0) -> int:
    """Return offset of the first `tag` in `data` at or after `start`.

    A delimiter at the very end of `data` is not a match, because the byte
    deciding whether it is a tag is not there yet.
    """
    pos = start
    while True:
        idx = data.find(tag.delimiter, pos)
        if idx == NOT_FOUND:
            return NOT_FOUND
        after = idx + len(tag.delimiter)
        if after >= len(data):
            return NOT_FOUND
        if data[after] in tag.terminators:
            return idx
        pos = idx + 1


def find_tag_close(data: bytes, tag: Tag, start: int) -> int:
    """Return offset of ``>`` closing a tag, `start` being an offset inside it.

    Quoted attribute values may contain ``>``, those are skipped.
    """
    quote = None
    for i in range(start, len(data)):
        byte = data[i]
        if quote is not None:
            if byte == quote:
                quote = None
        elif byte in tag.quotes:
            quote = byte
        elif byte == tag.gt:
            return i
    return NOT_FOUND


class ByteCursor:
    """Forward only cursor over a byte stream.

    `offset` is the absolute position of the next unconsumed byte, counting
    from `start`, the position the stream was at when the cursor was created.
    """

    def __init__(self, stream: BinaryIO, start: int = 0, buffer_size: int = 64 * 1024):
        self.stream = stream
        self.buffer_size = buffer_size
        self.buffer = b''
        self.base = start
        self.pos = 0
        self.eof = False

    @property
    def offset(self) -> int:
        return self.base + self.pos

    def fill(self) -> bool:
        """Read next chunk, returns False at the end of the stream."""
        if self.eof:
            return False
        if self.pos:
            self.buffer = self.buffer[self.pos:]
            self.base += self.pos
            self.pos = 0
        try:
            chunk = self.stream.read(self.buffer_size)
        except OSError as e:
            raise StreamError(offset=self.offset, error=e) from e
        if not chunk:
            self.eof = True
            return False
        self.buffer += chunk
        return True

    def seek(self, tags: Sequence[Tag]) -> Optional[Tuple[Tag, int]]:
        """Consume bytes up to the first of `tags`.

        Returns the tag found and its absolute offset, or None if the stream
        ended first. The tag itself is left unconsumed.
        """
        keep = max(len(tag.delimiter) for tag in tags)
        while True:
            found = None
            for tag in tags:
                idx = find_tag(self.buffer, tag, self.pos)
                if idx != NOT_FOUND and (found is None or idx < found[1]):
                    found = (tag, idx)
            if found is not None:
                tag, idx = found
                self.pos = idx
                return tag, self.base + idx
            # Keep the tail, it might be the beginning of a delimiter.
            self.pos = max(self.pos, len(self.buffer) - keep)
            if not self.fill():
                self.pos = len(self.buffer)
                return None

    def _close_of(self, tag: Tag, start: int) -> int:
        # Returns index relative to self.pos, buffer may be refilled.
        while True:
            idx = find_tag_close(self.buffer, tag, self.pos + start)
            if idx != NOT_FOUND:
                return idx - self.pos
            if not self.fill():
                return NOT_FOUND

    def skip_tag(self, tag: Tag) -> bool:
        """Consume the tag under the cursor, returns False if unterminated."""
        close = self._close_of(tag, len(tag.delimiter))
        if close == NOT_FOUND:
            return False
        self.pos += close + 1
        return True

    def read_element(self, start: Tag, end: Tag) -> bytes:
        """Consume and return an element whose start tag is under the cursor.

        The element must not contain nested elements with the same name.
        """
        offset = self.offset
        close = self._close_of(start, len(start.delimiter))
        if close == NOT_FOUND:
            raise UnterminatedRecord(element=start.name, offset=offset)

        if self.buffer[self.pos + close - 1] == start.slash:
            # Self closing element, e.g. <record/>.
            size = close + 1
        else:
            keep = len(end.delimiter)
            scan = close + 1
            while True:
                idx = find_tag(self.buffer, end, self.pos + scan)
                if idx != NOT_FOUND:
                    idx -= self.pos
                    break
                scan = max(scan, len(self.buffer) - self.pos - keep)
                if not self.fill():
                    raise UnterminatedRecord(element=start.name, offset=offset)
            close = self._close_of(end, idx + len(end.delimiter))
            if close == NOT_FOUND:
                raise UnterminatedRecord(element=start.name, offset=offset)
            size = close + 1

        data = self.buffer[self.pos:self.pos + size]
        self.pos += size
        return data

    def close(self):
        self.stream.close()
