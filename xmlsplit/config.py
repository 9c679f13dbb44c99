from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Iterable, List, Optional

import codecs
import logging
import os
import pathlib

from ruamel.yaml import YAML

from xmlsplit import exceptions
from xmlsplit.mappers import RecordMapper
from xmlsplit.mappers import ValidationHandler
from xmlsplit.utils.imports import full_class_name
from xmlsplit.utils.imports import importstr

log = logging.getLogger(__name__)

yaml = YAML(typ='safe')

DEFAULT_CHARSET = 'utf-8'
DEFAULT_BUFFER_SIZE = 64 * 1024

ENV_PREFIX = 'XMLSPLIT_'

# Characters the tag scanner has to find as single bytes.
_MARKUP = '<>/= \t\r\n"\''


def check_charset(charset: str) -> str:
    """Return canonical codec name of a charset usable for splitting."""
    try:
        info = codecs.lookup(charset)
    except (LookupError, TypeError):
        raise exceptions.UnsupportedCharset(charset=charset)
    try:
        encoded = [c.encode(info.name) for c in _MARKUP]
    except UnicodeEncodeError:
        raise exceptions.UnsupportedCharset(charset=charset)
    if any(len(b) != 1 for b in encoded):
        raise exceptions.UnsupportedCharset(charset=charset)
    return info.name


def _check_positive(option: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise exceptions.InvalidOption(option=option, value=value)
    return value


@dataclass(frozen=True)
class Configuration:
    """Immutable read/write configuration shared by readers and writers."""

    root_element: str
    record_element: str
    mapper: RecordMapper
    charset: str = DEFAULT_CHARSET
    min_bundle_size: int = 1
    validation_handler: Optional[ValidationHandler] = None
    buffer_size: int = DEFAULT_BUFFER_SIZE

    def __post_init__(self):
        for option in ('root_element', 'record_element', 'mapper', 'charset'):
            if getattr(self, option) is None:
                raise exceptions.RequiredOption(option=option)
        for option in ('root_element', 'record_element'):
            value = getattr(self, option)
            if not isinstance(value, str) or not value or any(c in value for c in _MARKUP):
                raise exceptions.InvalidOption(option=option, value=value)
        if self.root_element == self.record_element:
            raise exceptions.InvalidOption(option='record_element', value=self.record_element)
        if not isinstance(self.mapper, RecordMapper):
            raise exceptions.InvalidOption(option='mapper', value=self.mapper)
        if self.validation_handler is not None and not callable(self.validation_handler):
            raise exceptions.InvalidOption(
                option='validation_handler',
                value=self.validation_handler,
            )
        _check_positive('min_bundle_size', self.min_bundle_size)
        if not _check_positive('buffer_size', self.buffer_size):
            raise exceptions.InvalidOption(option='buffer_size', value=self.buffer_size)
        object.__setattr__(self, 'charset', check_charset(self.charset))

    def encode(self, text: str) -> bytes:
        return text.encode(self.charset)

    def describe(self) -> Dict[str, str]:
        return {
            'rootElement': self.root_element,
            'recordElement': self.record_element,
            'recordMapper': full_class_name(self.mapper),
            'charset': self.charset,
        }


@dataclass(frozen=True)
class XmlOptions:
    """Builder of :class:`Configuration`.

    Each ``with_*`` method returns a new builder, so partially configured
    builders can be shared and specialized::

        base = XmlOptions().with_root_element('books').with_mapper(mapper)
        config = base.with_record_element('book').build()

    Nothing is validated until :meth:`build` is called.
    """

    root_element: Optional[str] = None
    record_element: Optional[str] = None
    mapper: Optional[RecordMapper] = None
    charset: Optional[str] = DEFAULT_CHARSET
    min_bundle_size: int = 1
    validation_handler: Optional[ValidationHandler] = None
    buffer_size: int = DEFAULT_BUFFER_SIZE

    def with_root_element(self, root_element: str) -> XmlOptions:
        return replace(self, root_element=root_element)

    def with_record_element(self, record_element: str) -> XmlOptions:
        return replace(self, record_element=record_element)

    def with_mapper(self, mapper: RecordMapper) -> XmlOptions:
        return replace(self, mapper=mapper)

    def with_charset(self, charset: str) -> XmlOptions:
        return replace(self, charset=charset)

    def with_min_bundle_size(self, min_bundle_size: int) -> XmlOptions:
        return replace(self, min_bundle_size=min_bundle_size)

    def with_validation_handler(self, handler: ValidationHandler) -> XmlOptions:
        return replace(self, validation_handler=handler)

    def with_buffer_size(self, buffer_size: int) -> XmlOptions:
        return replace(self, buffer_size=buffer_size)

    def build(self) -> Configuration:
        return Configuration(**{f.name: getattr(self, f.name) for f in fields(self)})


OPTIONS = [f.name for f in fields(XmlOptions)]


class ConfigSource:
    name: str = None

    def __init__(self, name=None, config=None):
        self.name = name or self.name or type(self).__name__
        self.config = config

    def __str__(self):
        return self.name

    def __repr__(self):
        return type(self).__module__ + '.' + type(self).__name__ + '(' + repr(self.name) + ')'

    def read(self) -> Dict[str, Any]:
        raise NotImplementedError


class PyDict(ConfigSource):

    def read(self):
        return dict(self.config or {})


class YamlFile(ConfigSource):

    def read(self):
        path = pathlib.Path(self.config)
        data = yaml.load(path.read_text())
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise exceptions.InvalidOption(option=str(path), value=data)
        if 'xmlsplit' in data:
            data = data['xmlsplit'] or {}
        return data


class EnvVars(ConfigSource):

    def __init__(self, name=None, config=None, prefix=ENV_PREFIX):
        super().__init__(name, os.environ if config is None else config)
        self.prefix = prefix

    def read(self):
        config = {}
        for key, value in self.config.items():
            if key.startswith(self.prefix):
                config[key[len(self.prefix):].lower()] = value
        return config


def _coerce(option: str, value: Any, source: ConfigSource) -> Any:
    if option in ('min_bundle_size', 'buffer_size') and isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            raise exceptions.InvalidOption(option=option, value=value, source=source)
    if option in ('mapper', 'validation_handler') and isinstance(value, str):
        try:
            value = importstr(value)
        except ImportError as e:
            raise exceptions.InvalidOption(option=option, value=value, source=source) from e
        if option == 'mapper' and isinstance(value, type):
            value = value()
    return value


@dataclass
class RawConfig:
    """Options merged from several sources, later sources win."""

    sources: List[ConfigSource] = field(default_factory=list)
    values: Dict[str, Any] = field(default_factory=dict)
    origins: Dict[str, str] = field(default_factory=dict)

    def read(self, sources: Iterable[ConfigSource]) -> RawConfig:
        for source in sources:
            self.sources.append(source)
            log.debug("Reading configuration from %s.", source)
            for option, value in source.read().items():
                if option not in OPTIONS:
                    log.debug("Unknown option %r in %s, skipping.", option, source)
                    continue
                self.values[option] = _coerce(option, value, source)
                self.origins[option] = source.name
        return self

    def options(self) -> XmlOptions:
        return XmlOptions(**self.values)


def read_config(
    path: Optional[str] = None,
    *,
    defaults: Optional[Dict[str, Any]] = None,
    environ: Optional[Dict[str, str]] = None,
    **overrides,
) -> Configuration:
    """Build configuration from defaults, a YAML file, env vars and overrides."""
    sources = [PyDict('defaults', defaults)]
    if path:
        sources.append(YamlFile(str(path), path))
    sources.append(EnvVars('envvars', environ))
    if overrides:
        sources.append(PyDict('overrides', overrides))
    rc = RawConfig().read(sources)
    log.debug(
        "Configuration options from %s, sources: %s.",
        rc.origins,
        ", ".join(str(s) for s in rc.sources),
    )
    return rc.options().build()
