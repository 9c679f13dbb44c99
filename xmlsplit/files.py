"""Access to source files and output sinks.

Any fsspec URL or local path can be used, e.g. ``data/books.xml`` or
``memory://books.xml``.
"""

from typing import BinaryIO

import fsspec

from xmlsplit.exceptions import StreamError


def file_size(source: str) -> int:
    fs, path = fsspec.core.url_to_fs(source)
    try:
        return fs.size(path)
    except OSError as e:
        raise StreamError(source=source, error=e) from e


def open_range_view(source: str, start: int, end: int) -> BinaryIO:
    """Open `source` positioned at `start` for sequential reads.

    Reads are not limited to `end`, a record started inside the range is read
    to its end even if it lies past `end`.
    """
    fs, path = fsspec.core.url_to_fs(source)
    try:
        stream = fs.open(path, 'rb')
    except OSError as e:
        raise StreamError(source=source, error=e) from e
    try:
        stream.seek(start)
    except OSError as e:
        stream.close()
        raise StreamError(source=source, offset=start, error=e) from e
    return stream


def open_sink(path: str) -> BinaryIO:
    fs, path_ = fsspec.core.url_to_fs(path)
    try:
        return fs.open(path_, 'wb')
    except OSError as e:
        raise StreamError(source=path, error=e) from e
