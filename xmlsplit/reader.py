"""Reading records from byte ranges of a single XML document.

The document must look like this::

    <root ...>
      <record ...>...</record>
      ...
      <record ...>...</record>
    </root>

Record content must not contain ``<record`` or ``</record`` text, that is what
makes it possible to start reading from an arbitrary byte offset.

A record belongs to the range containing the offset of its start tag. A range
reads every record it owns to the end, even past the end of the range, and
skips everything before its first start tag, which belongs to the previous
range. This way ranges can be read independently and together they give every
record exactly once.
"""

from typing import Any, BinaryIO, Iterable, Iterator, List, Optional, Union

import logging

import dask.bag

from xmlsplit.config import Configuration
from xmlsplit.exceptions import BaseError
from xmlsplit.exceptions import MalformedDocument
from xmlsplit.exceptions import MappingError
from xmlsplit.files import file_size
from xmlsplit.files import open_range_view
from xmlsplit.ranges import ByteRange
from xmlsplit.ranges import plan_ranges
from xmlsplit.scanner import ByteCursor
from xmlsplit.scanner import Tag
from xmlsplit.scanner import TagKind

log = logging.getLogger(__name__)

DEFAULT_BUNDLE_SIZE = 64 * 1024 * 1024


class RangeReader:
    """Iterator over records owned by a byte range.

    `stream` must be positioned at ``byte_range.start``. The reader is not
    restartable, create a new one over the same range to read it again.
    """

    def __init__(self, config: Configuration, byte_range: ByteRange, stream: BinaryIO):
        self.config = config
        self.range = byte_range
        self.cursor = ByteCursor(stream, byte_range.start, config.buffer_size)
        self.count = 0

        charset = config.charset
        self._root_start = Tag.create(config.root_element, TagKind.START, charset)
        self._root_end = Tag.create(config.root_element, TagKind.END, charset)
        self._record_start = Tag.create(config.record_element, TagKind.START, charset)
        self._record_end = Tag.create(config.record_element, TagKind.END, charset)

        self._started = False
        self._done = len(byte_range) == 0

    @property
    def offset(self) -> int:
        return self.cursor.offset

    def __iter__(self):
        return self

    def __next__(self) -> Any:
        if self._done:
            raise StopIteration
        try:
            if not self._started:
                self._start()
            data = self._next_fragment()
            if data is None:
                self._finish()
                raise StopIteration
            record = self._decode(data)
        except Exception:
            self._done = True
            raise
        self.count += 1
        return record

    def _start(self):
        self._started = True
        log.debug("Reading %s.", self.range)
        if self.range.start == 0:
            # Everything up to the end of the root start tag is not a record.
            found = self.cursor.seek([self._root_start])
            if found is None or not self.cursor.skip_tag(self._root_start):
                raise MalformedDocument(
                    source=self.range.source,
                    element=self.config.root_element,
                )

    def _next_fragment(self) -> Optional[bytes]:
        found = self.cursor.seek([self._record_start, self._root_end])
        if found is None:
            return None
        tag, offset = found
        if tag is self._root_end:
            return None
        if offset not in self.range:
            # Owned by the next range.
            return None
        return self.cursor.read_element(self._record_start, self._record_end)

    def _decode(self, data: bytes) -> Any:
        try:
            return self.config.mapper.decode(
                data,
                self.config.charset,
                self.config.validation_handler,
            )
        except BaseError:
            raise
        except Exception as e:
            raise MappingError(self.config.mapper, error=e) from e

    def _finish(self):
        self._done = True
        log.debug("Read %d records from %s, stopped at %d.", self.count, self.range, self.offset)

    def close(self):
        self._done = True
        self.cursor.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def read_range(config: Configuration, byte_range: ByteRange) -> Iterator[Any]:
    with RangeReader(
        config,
        byte_range,
        open_range_view(byte_range.source, byte_range.start, byte_range.end),
    ) as reader:
        yield from reader


def read_file(config: Configuration, source: str) -> Iterator[Any]:
    yield from read_range(config, ByteRange(source, 0, file_size(source)))


def read_files(config: Configuration, sources: Iterable[str]) -> Iterator[Any]:
    for source in sources:
        yield from read_file(config, source)


def plan_source(
    config: Configuration,
    source: str,
    bundle_size: Optional[int] = DEFAULT_BUNDLE_SIZE,
) -> List[ByteRange]:
    return plan_ranges(file_size(source), config.min_bundle_size, bundle_size, source)


def _read_range_list(byte_range: ByteRange, config: Configuration) -> List[Any]:
    return list(read_range(config, byte_range))


def read_bag(
    config: Configuration,
    sources: Union[str, Iterable[str]],
    bundle_size: Optional[int] = DEFAULT_BUNDLE_SIZE,
) -> dask.bag.Bag:
    """Return a dask bag of records, with one partition per planned range."""
    if isinstance(sources, str):
        sources = [sources]
    ranges = [
        byte_range
        for source in sources
        for byte_range in plan_source(config, source, bundle_size)
    ]
    return (
        dask.bag.from_sequence(ranges, partition_size=1)
        .map(_read_range_list, config=config)
        .flatten()
    )
