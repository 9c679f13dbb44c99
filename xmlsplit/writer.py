from typing import Any, BinaryIO, Iterable, List

import contextlib
import enum
import logging

import dask
import dask.bag

from xmlsplit.config import Configuration
from xmlsplit.exceptions import BaseError
from xmlsplit.exceptions import InvalidOption
from xmlsplit.exceptions import InvalidState
from xmlsplit.exceptions import MappingError
from xmlsplit.exceptions import StreamError
from xmlsplit.files import open_sink

log = logging.getLogger(__name__)


class WriterState(str, enum.Enum):
    UNOPENED = 'unopened'
    OPEN = 'open'
    CLOSED = 'closed'


class StreamingWriter:
    """Writes records wrapped in a root element to a single sink.

    Bytes are written to the sink in call order, the writer does no
    buffering of its own::

        writer = StreamingWriter(config)
        writer.open(sink)       # <root>\\n
        writer.write(record)    # <record>...</record>\\n
        writer.close()          # </root>

    A failed write leaves the writer closed, output written so far is not a
    complete document and should be discarded by the caller.
    """

    def __init__(self, config: Configuration):
        self.config = config
        self.state = WriterState.UNOPENED
        self.sink = None
        self.count = 0

    def _check(self, operation: str, state: WriterState):
        if self.state is not state:
            raise InvalidState(self, operation=operation, state=self.state.value)

    def _write(self, data: bytes):
        try:
            self.sink.write(data)
        except Exception as e:
            self.state = WriterState.CLOSED
            raise StreamError(self, error=e) from e

    def open(self, sink: BinaryIO):
        self._check('open', WriterState.UNOPENED)
        self.sink = sink
        self._write(self.config.encode(f'<{self.config.root_element}>\n'))
        self.state = WriterState.OPEN

    def write(self, record: Any):
        self._check('write', WriterState.OPEN)
        try:
            data = self.config.mapper.encode(record, self.config.charset)
        except BaseError:
            self.state = WriterState.CLOSED
            raise
        except Exception as e:
            self.state = WriterState.CLOSED
            raise MappingError(self.config.mapper, error=e) from e
        self._write(data)
        self.count += 1

    def close(self):
        self._check('close', WriterState.OPEN)
        self._write(self.config.encode(f'</{self.config.root_element}>'))
        self.state = WriterState.CLOSED

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, tb):
        if exc_type is None and self.state is WriterState.OPEN:
            self.close()


def shard_name(prefix: str, index: int, count: int, suffix: str = '.xml') -> str:
    return f'{prefix}-{index:05d}-of-{count:05d}{suffix}'


def write_file(config: Configuration, records: Iterable[Any], path: str) -> int:
    """Write all records to a single document, returns number of records."""
    with open_sink(path) as sink:
        with StreamingWriter(config) as writer:
            writer.open(sink)
            for record in records:
                writer.write(record)
    log.info("Wrote %d records to %s.", writer.count, path)
    return writer.count


def write_shards(
    config: Configuration,
    records: Iterable[Any],
    prefix: str,
    num_shards: int = 1,
) -> List[str]:
    """Distribute records round robin over `num_shards` documents."""
    if isinstance(num_shards, bool) or not isinstance(num_shards, int) or num_shards < 1:
        raise InvalidOption(option='num_shards', value=num_shards)
    paths = [shard_name(prefix, i, num_shards) for i in range(num_shards)]
    with contextlib.ExitStack() as stack:
        writers = []
        for path in paths:
            writer = StreamingWriter(config)
            writer.open(stack.enter_context(open_sink(path)))
            writers.append(writer)
        for i, record in enumerate(records):
            writers[i % num_shards].write(record)
        for writer in writers:
            writer.close()
    for path, writer in zip(paths, writers):
        log.info("Wrote %d records to %s.", writer.count, path)
    return paths


def _write_partition(records: Iterable[Any], config: Configuration, path: str) -> str:
    write_file(config, records, path)
    return path


def write_bag(config: Configuration, bag: dask.bag.Bag, prefix: str, **kwargs) -> List[str]:
    """Write each bag partition to its own shard, returns shard paths.

    Extra keyword arguments are passed to :func:`dask.compute`.
    """
    partitions = bag.to_delayed()
    count = len(partitions)
    tasks = [
        dask.delayed(_write_partition)(partition, config, shard_name(prefix, i, count))
        for i, partition in enumerate(partitions)
    ]
    return list(dask.compute(*tasks, **kwargs))
