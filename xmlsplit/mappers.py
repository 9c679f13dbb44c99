"""Record mappers convert one record fragment to and from a Python value.

Range readers and streaming writers only deal with raw fragment bytes, the
mapper is the only place where the fragment is interpreted as XML.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Generic, Optional, TypeVar

import logging

from lxml import etree

from xmlsplit.exceptions import MappingError
from xmlsplit.exceptions import ValidationFailed


log = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass(frozen=True)
class ValidationEvent:
    severity: str   # 'warning', 'error' or 'fatal'
    message: str
    line: Optional[int] = None
    column: Optional[int] = None

    @classmethod
    def from_log_entry(cls, entry) -> 'ValidationEvent':
        if entry.level == etree.ErrorLevels.WARNING:
            severity = 'warning'
        elif entry.level == etree.ErrorLevels.FATAL:
            severity = 'fatal'
        else:
            severity = 'error'
        return cls(severity, entry.message, entry.line, entry.column)


# Returns True to continue mapping, False to fail the record.
ValidationHandler = Callable[[ValidationEvent], bool]


def ignore_warnings(event: ValidationEvent) -> bool:
    return event.severity == 'warning'


class RecordMapper(Generic[T]):
    """Protocol for caller-provided record mappers."""

    def encode(self, record: T, encoding: str = 'utf-8') -> bytes:
        """Return fragment bytes of a single record element.

        Fragments must not have an XML declaration.
        """
        raise MappingError(self, error="encoding must be implemented by the mapper")

    def decode(
        self,
        data: bytes,
        encoding: str = 'utf-8',
        handler: Optional[ValidationHandler] = None,
    ) -> T:
        """Return a record value from fragment bytes of a single element."""
        raise MappingError(self, error="decoding must be implemented by the mapper")

    def __repr__(self):
        return f'{type(self).__name__}()'


def _parse(data: bytes, encoding: str, handler: Optional[ValidationHandler]):
    try:
        text = data.decode(encoding)
    except UnicodeDecodeError as e:
        raise MappingError(error=e) from e

    parser = etree.XMLParser(
        recover=handler is not None,
        resolve_entities=False,
        no_network=True,
    )
    try:
        element = etree.fromstring(text, parser)
    except (etree.XMLSyntaxError, ValueError) as e:
        # ValueError is raised for fragments with an encoding declaration.
        raise MappingError(error=e) from e

    if handler is not None:
        for entry in parser.error_log:
            event = ValidationEvent.from_log_entry(entry)
            if not handler(event):
                raise ValidationFailed(event=event)
            log.warning("Ignored record validation %s: %s", event.severity, event.message)

    if element is None:
        raise MappingError(error="fragment does not contain an element")
    return element


def _serialize(element, encoding: str, pretty_print: bool = False) -> bytes:
    text = etree.tostring(
        element,
        encoding='unicode',
        pretty_print=pretty_print,
        with_tail=False,
    )
    if not text.endswith('\n'):
        text += '\n'
    # Characters the charset can't represent become character references.
    return text.encode(encoding, 'xmlcharrefreplace')


class ElementMapper(RecordMapper[etree._Element]):
    """Maps records to lxml elements as is."""

    def __init__(self, pretty_print: bool = True):
        self.pretty_print = pretty_print

    def encode(self, record: etree._Element, encoding: str = 'utf-8') -> bytes:
        if not etree.iselement(record):
            raise MappingError(self, error=f"expected an element, got {type(record).__name__}")
        return _serialize(record, encoding, self.pretty_print)

    def decode(self, data, encoding='utf-8', handler=None):
        return _parse(data, encoding, handler)


class DictMapper(RecordMapper[Dict[str, Optional[str]]]):
    """Maps flat records to dicts.

    Text of each child element is stored under the child tag name and record
    attributes are stored under ``@name`` keys::

        <book id="7"><title>Dune</title></book>

        {'@id': '7', 'title': 'Dune'}

    Nested elements deeper than one level are not supported.
    """

    def __init__(self, tag: str = 'record'):
        self.tag = tag

    def encode(self, record, encoding='utf-8'):
        element = etree.Element(self.tag)
        try:
            for key, value in record.items():
                if key.startswith('@'):
                    if value is not None:
                        element.set(key[1:], str(value))
                else:
                    child = etree.SubElement(element, key)
                    if value is not None:
                        child.text = str(value)
        except (AttributeError, TypeError, ValueError) as e:
            raise MappingError(self, error=e) from e
        return _serialize(element, encoding)

    def decode(self, data, encoding='utf-8', handler=None):
        element = _parse(data, encoding, handler)
        if element.tag != self.tag:
            raise MappingError(self, error=f"expected <{self.tag}> element, got <{element.tag}>")
        record = {f'@{k}': v for k, v in element.attrib.items()}
        for child in element:
            if not isinstance(child.tag, str):
                # Comments and processing instructions.
                continue
            if len(child):
                raise MappingError(self, error=f"nested element <{child.tag}> is not supported")
            record[child.tag] = child.text
        return record

    def __repr__(self):
        return f'{type(self).__name__}({self.tag!r})'
