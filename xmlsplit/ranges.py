from dataclasses import dataclass
from typing import List, Optional

import logging

from xmlsplit.exceptions import InvalidByteRange

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ByteRange:
    """Half open byte interval ``[start, end)`` of a source file."""

    source: Optional[str]
    start: int
    end: int

    def __post_init__(self):
        if not (
            isinstance(self.start, int) and
            isinstance(self.end, int) and
            0 <= self.start <= self.end
        ):
            raise InvalidByteRange(source=self.source, start=self.start, end=self.end)

    def __len__(self):
        return self.end - self.start

    def __contains__(self, offset: int) -> bool:
        return self.start <= offset < self.end

    def __str__(self):
        return f'{self.source}[{self.start}:{self.end}]'


def plan_ranges(
    file_size: int,
    min_bundle_size: int = 1,
    bundle_size: Optional[int] = None,
    source: Optional[str] = None,
) -> List[ByteRange]:
    """Split ``[0, file_size)`` into contiguous ranges.

    Ranges are `bundle_size` long (`min_bundle_size` if not given). A tail
    shorter than `min_bundle_size` is merged into the last range, so only a
    file smaller than `min_bundle_size` gives a range shorter than that.
    """
    if file_size < 0:
        raise InvalidByteRange(source=source, start=0, end=file_size)
    min_bundle_size = max(min_bundle_size, 1)
    size = max(bundle_size or min_bundle_size, min_bundle_size)

    ranges = []
    start = 0
    while start < file_size:
        end = min(start + size, file_size)
        if file_size - end < min_bundle_size:
            end = file_size
        ranges.append(ByteRange(source, start, end))
        start = end

    log.debug("Planned %d ranges of %d bytes for %s.", len(ranges), size, source)
    return ranges
