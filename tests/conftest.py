import pytest
from lxml import etree

from xmlsplit.config import XmlOptions
from xmlsplit.mappers import ElementMapper
from xmlsplit.mappers import RecordMapper


class TextMapper(RecordMapper):
    """Records are text of the record element."""

    def __init__(self, tag: str = 'r'):
        self.tag = tag

    def encode(self, record, encoding='utf-8'):
        element = etree.Element(self.tag)
        element.text = record
        return (etree.tostring(element, encoding='unicode') + '\n').encode(encoding, 'xmlcharrefreplace')

    def decode(self, data, encoding='utf-8', handler=None):
        return ElementMapper().decode(data, encoding, handler).text


@pytest.fixture
def options():
    return (
        XmlOptions()
        .with_root_element('root')
        .with_record_element('r')
        .with_mapper(TextMapper())
    )


@pytest.fixture
def config(options):
    return options.build()


@pytest.fixture
def xml_file(tmp_path):
    def create(data: bytes, name: str = 'data.xml') -> str:
        path = tmp_path / name
        path.write_bytes(data)
        return str(path)
    return create
