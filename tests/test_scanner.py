import io

import pytest

from xmlsplit.exceptions import StreamError
from xmlsplit.exceptions import UnterminatedRecord
from xmlsplit.scanner import NOT_FOUND
from xmlsplit.scanner import ByteCursor
from xmlsplit.scanner import Tag
from xmlsplit.scanner import TagKind
from xmlsplit.scanner import find_tag
from xmlsplit.scanner import find_tag_close


START = Tag.create('r', TagKind.START)
END = Tag.create('r', TagKind.END)


@pytest.mark.parametrize('data, start, offset', [
    (b'<r>', 0, 0),
    (b'xx<r a="1">', 0, 2),
    (b'<r\n>', 0, 0),
    (b'<r/>', 0, 0),
    (b'<r>1</r><r>2</r>', 1, 8),
    (b'<rr><r>', 0, 4),
    (b'<root>', 0, NOT_FOUND),
    (b'</r>', 0, NOT_FOUND),
    (b'<r', 0, NOT_FOUND),
    (b'', 0, NOT_FOUND),
])
def test_find_start_tag(data, start, offset):
    assert find_tag(data, START, start) == offset


@pytest.mark.parametrize('data, offset', [
    (b'1</r>', 1),
    (b'1</r >', 1),
    (b'</rr></r>', 5),
    (b'</r/>', NOT_FOUND),
    (b'<r>', NOT_FOUND),
    (b'</r', NOT_FOUND),
])
def test_find_end_tag(data, offset):
    assert find_tag(data, END, 0) == offset


def test_find_tag_with_other_charset():
    tag = Tag.create('r', TagKind.START, 'cp500')
    data = '<root><r>1</r></root>'.encode('cp500')
    assert find_tag(data, tag) == 6
    assert find_tag(b'<r>', tag) == NOT_FOUND


@pytest.mark.parametrize('data, offset', [
    (b'<r>', 2),
    (b'<r a="x>y">', 10),
    (b"<r a='x\">y'>", 11),
    (b'<r a="x>y"', NOT_FOUND),
    (b'<r a', NOT_FOUND),
])
def test_find_tag_close(data, offset):
    assert find_tag_close(data, START, 2) == offset


def _cursor(data: bytes, buffer_size: int = 3, start: int = 0):
    stream = io.BytesIO(data)
    stream.seek(start)
    return ByteCursor(stream, start, buffer_size)


@pytest.mark.parametrize('buffer_size', [1, 2, 3, 7, 1024])
def test_cursor_reads_elements(buffer_size):
    data = b'<root>\n  <r id="a>b">1</r>\n  <r/>\n  <r>3</r >\n</root>'
    cursor = _cursor(data, buffer_size)
    tags = [START, Tag.create('root', TagKind.END)]
    result = []
    while True:
        tag, offset = cursor.seek(tags)
        if tag is not START:
            break
        assert data[offset:offset + 2] == b'<r'
        result.append(cursor.read_element(START, END))
    assert result == [
        b'<r id="a>b">1</r>',
        b'<r/>',
        b'<r>3</r >',
    ]
    assert cursor.offset == data.index(b'</root>')


def test_cursor_offset_is_absolute():
    data = b'<root><r>1</r><r>2</r></root>'
    cursor = _cursor(data, start=10)
    tag, offset = cursor.seek([START])
    assert offset == 14
    assert cursor.offset == 14
    assert cursor.read_element(START, END) == b'<r>2</r>'
    assert cursor.offset == 22


def test_cursor_seek_end_of_stream():
    cursor = _cursor(b'<root><rr></rr><r')
    assert cursor.seek([START]) is None
    assert cursor.offset == 17


def test_cursor_skip_tag():
    cursor = _cursor(b'<?xml version="1.0"?><root a="1>2"><r/>')
    root = Tag.create('root', TagKind.START)
    cursor.seek([root])
    assert cursor.skip_tag(root)
    assert cursor.offset == 35


@pytest.mark.parametrize('data', [
    b'<r>1',
    b'<r>1</r',
    b'<r a="1',
])
def test_cursor_unterminated_element(data):
    cursor = _cursor(data)
    cursor.seek([START])
    with pytest.raises(UnterminatedRecord) as e:
        cursor.read_element(START, END)
    assert e.value.context == {'element': 'r', 'offset': 0}


class BrokenStream(io.RawIOBase):

    def read(self, size=-1):
        raise OSError("disk is gone")


def test_cursor_stream_error():
    cursor = ByteCursor(BrokenStream(), 5)
    with pytest.raises(StreamError) as e:
        cursor.seek([START])
    assert e.value.context['offset'] == 5
