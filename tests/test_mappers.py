import pytest
from lxml import etree

from xmlsplit.exceptions import MappingError
from xmlsplit.exceptions import ValidationFailed
from xmlsplit.mappers import DictMapper
from xmlsplit.mappers import ElementMapper
from xmlsplit.mappers import RecordMapper
from xmlsplit.mappers import ValidationEvent
from xmlsplit.mappers import ignore_warnings


def test_base_mapper_is_not_implemented():
    mapper = RecordMapper()
    with pytest.raises(MappingError):
        mapper.encode('x')
    with pytest.raises(MappingError):
        mapper.decode(b'<x/>')


def test_element_mapper_encode():
    element = etree.fromstring('<r a="1"><b>x</b></r>')
    assert ElementMapper().encode(element) == b'<r a="1">\n  <b>x</b>\n</r>\n'
    assert ElementMapper(pretty_print=False).encode(element) == b'<r a="1"><b>x</b></r>\n'


def test_element_mapper_encode_without_tail():
    root = etree.fromstring('<root><r>1</r> tail </root>')
    assert ElementMapper().encode(root[0]) == b'<r>1</r>\n'


def test_element_mapper_encode_not_element():
    with pytest.raises(MappingError):
        ElementMapper().encode({'a': 1})


def test_element_mapper_decode():
    element = ElementMapper().decode(b'<r a="1"><b>x</b></r>')
    assert element.tag == 'r'
    assert element.get('a') == '1'
    assert element.findtext('b') == 'x'


def test_element_mapper_decode_charset():
    element = ElementMapper().decode('<r>café</r>'.encode('cp1252'), 'cp1252')
    assert element.text == 'café'


@pytest.mark.parametrize('data', [
    b'<r><b></r>',
    b'not xml',
    b'<r>\xff</r>',
    b'<?xml version="1.0" encoding="UTF-8"?><r/>',
])
def test_element_mapper_decode_error(data):
    with pytest.raises(MappingError):
        ElementMapper().decode(data)


def test_validation_handler_escalates():
    events = []

    def handler(event):
        events.append(event)
        return False

    with pytest.raises(ValidationFailed) as e:
        ElementMapper().decode(b'<r><b>x</c></r>', handler=handler)
    assert len(events) == 1
    assert events[0].severity in ('error', 'fatal')
    assert e.value.context['message'] == events[0].message


def test_validation_handler_suppresses():
    events = []

    def handler(event):
        events.append(event)
        return True

    element = ElementMapper().decode(b'<r><b>x</c></r>', handler=handler)
    assert element.tag == 'r'
    assert events


def test_validation_handler_not_called_for_valid_records():
    events = []
    ElementMapper().decode(b'<r>1</r>', handler=events.append)
    assert events == []


def test_ignore_warnings():
    assert ignore_warnings(ValidationEvent('warning', 'meh'))
    assert not ignore_warnings(ValidationEvent('error', 'bad'))
    assert not ignore_warnings(ValidationEvent('fatal', 'worse'))


def test_dict_mapper_encode():
    mapper = DictMapper('book')
    assert mapper.encode({'@id': 7, 'title': 'Dune', 'year': None}) == (
        b'<book id="7"><title>Dune</title><year/></book>\n'
    )


def test_dict_mapper_encode_none_attribute():
    mapper = DictMapper('book')
    assert mapper.encode({'@id': None, 'title': 'X'}) == b'<book><title>X</title></book>\n'


def test_dict_mapper_encode_charset():
    mapper = DictMapper('book')
    assert mapper.encode({'title': 'Ærø'}, 'ascii') == (
        b'<book><title>&#198;r&#248;</title></book>\n'
    )


@pytest.mark.parametrize('record', [
    None,
    {'bad key': '1'},
    {'@': '1'},
])
def test_dict_mapper_encode_error(record):
    with pytest.raises(MappingError):
        DictMapper('book').encode(record)


def test_dict_mapper_decode():
    mapper = DictMapper('book')
    data = b'<book id="7"><!-- c --><title>Dune</title><year/></book>'
    assert mapper.decode(data) == {'@id': '7', 'title': 'Dune', 'year': None}


def test_dict_mapper_decode_wrong_tag():
    with pytest.raises(MappingError) as e:
        DictMapper('book').decode(b'<film/>')
    assert e.value.context['error'] == 'expected <book> element, got <film>'


def test_dict_mapper_decode_nested():
    with pytest.raises(MappingError):
        DictMapper('book').decode(b'<book><author><name>X</name></author></book>')


def test_mapper_repr():
    assert repr(DictMapper('book')) == "DictMapper('book')"
    assert repr(ElementMapper()) == 'ElementMapper()'
