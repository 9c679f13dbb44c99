import importlib
import inspect
from typing import Any
from typing import Type


def importstr(path: str):
    if ':' not in path:
        raise ImportError(
            f"Can't import python path: {path!r}. Python path must be in "
            f"'dotted.path:Name' form."
        )
    module, obj = path.split(':', 1)
    module = importlib.import_module(module)
    try:
        return getattr(module, obj)
    except AttributeError:
        raise ImportError(f"Module {module.__name__!r} has no {obj!r}.")


def full_class_name(obj: Any) -> str:
    klass: Type
    if not inspect.isclass(obj):
        klass = type(obj)
    else:
        klass = obj
    return f'{klass.__module__}.{klass.__name__}'
