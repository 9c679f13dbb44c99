from typing import Any, Dict, Optional, Tuple

import logging
import re


log = logging.getLogger(__name__)


class UnknownValue:

    def __str__(self):
        return '[UNKNOWN]'

    __repr__ = __str__


UNKNOWN_VALUE = UnknownValue()


def resolve_context_vars(schema: Dict[str, str], this: Optional[Any], kwargs: dict):
    """Resolve value from given kwargs and schema."""
    if this is not None:
        kwargs = {**kwargs, 'this': this}

    added = set()
    context = {}
    if this is not None:
        context['component'] = type(this).__module__ + '.' + type(this).__name__
    for k, path in schema.items():
        path = path or k
        name, *names = path.split('.')
        if name not in kwargs:
            continue
        added.add(name)
        value = kwargs
        for name in [name] + names:
            if isinstance(value, dict):
                value = value.get(name, UNKNOWN_VALUE)
            elif hasattr(value, name):
                value = getattr(value, name)
            else:
                value = UNKNOWN_VALUE
            if value is UNKNOWN_VALUE:
                break
        if value is not UNKNOWN_VALUE:
            context[k] = value

    for k in set(kwargs) - added - {'this'}:
        v = kwargs[k]
        if not isinstance(v, (int, float, str)):
            v = str(v)
        context[k] = v

    # Return sorted context.
    names = [
        'component',
        'source',
        'range',
        'element',
        'offset',
        'option',
    ]
    names += [x for x in schema if x not in names]
    names += [x for x in kwargs if x not in names]

    def sort_key(item: Tuple[str, Any]) -> Tuple[int, str]:
        key = item[0]
        try:
            return names.index(key), key
        except ValueError:
            return len(names), key

    return {k: v for k, v in sorted(context.items(), key=sort_key)}


class BaseError(Exception):
    template: str = None
    context: Dict[str, Any] = {}

    def __init__(self, this=None, **kwargs):
        self.context = resolve_context_vars(self.context, this, kwargs)
        super().__init__(self.message)

    def __str__(self):
        return (
            self.message + '\n' +
            ('  Context:\n' if self.context else '') +
            ''.join(
                f'    {k}: {v}\n'
                for k, v in self.context.items()
            )
        )

    @property
    def message(self):
        try:
            return _render_template(self)
        except (KeyError, IndexError):
            log.exception("Can't render error message for %s.", self.__class__.__name__)
            return self.template


def _render_template(error: BaseError):
    try:
        return error.template.format(**error.context)
    except KeyError:
        context = error.context.copy()
        template_vars_re = re.compile(r'\{(\w+)')
        for match in template_vars_re.finditer(error.template):
            name = match.group(1)
            if name not in context:
                context[name] = UNKNOWN_VALUE
        return error.template.format(**context)


class ConfigurationError(BaseError):
    template = "Invalid configuration."


class RequiredOption(ConfigurationError):
    template = "Option {option!r} is required."


class InvalidOption(ConfigurationError):
    template = "Invalid value {value!r} for option {option!r}."


class UnsupportedCharset(ConfigurationError):
    template = (
        "Charset {charset!r} is not supported, only charsets encoding XML "
        "markup with one byte per character can be used."
    )


class MappingError(BaseError):
    template = "Can't map record: {error}"


class UnterminatedRecord(MappingError):
    template = (
        "Record element {element!r} starting at offset {offset} is not "
        "terminated."
    )


class MalformedDocument(MappingError):
    template = "Root element {element!r} start tag not found."


class ValidationFailed(MappingError):
    template = "Record validation failed: {message}"
    context = {
        'message': 'event.message',
        'severity': 'event.severity',
        'line': 'event.line',
        'column': 'event.column',
    }


class StreamError(BaseError):
    template = "I/O error: {error}"


class InvalidState(BaseError):
    template = "Can't {operation} a writer in {state} state."


class InvalidByteRange(BaseError):
    template = "Invalid byte range [{start}, {end}) of {source}."
