"""Preload option building and record serialization.

A preload spec is a list whose elements are either a relationship name or a
``(name, nested_spec)`` pair, e.g. ``['lines', ('customer', ['region'])]``.

Models can customise output with two optional hooks:

- ``serializer_skip_fields(cls, opts) -> Iterable[str]`` (classmethod)
- ``serialize_field(self, name, value, opts) -> Any``
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import selectinload

from .errors import InvalidSpecError

__all__ = ['Preload', 'normalize_preloads', 'preload_options', 'serialize', 'serialize_many']

Preload = Union[str, Tuple[str, Sequence[Any]]]


def normalize_preloads(preloads: Optional[Sequence[Preload]]) -> List[Tuple[str, List[Any]]]:
    out: List[Tuple[str, List[Any]]] = []
    for item in preloads or ():
        if isinstance(item, str):
            out.append((item, []))
        elif isinstance(item, (tuple, list)) and len(item) == 2 and isinstance(item[0], str):
            out.append((item[0], list(item[1] or ())))
        else:
            raise InvalidSpecError(f"Unsupported preload spec element: {item!r}")
    return out


def preload_options(model: Any, preloads: Optional[Sequence[Preload]]) -> List[Any]:
    """``selectinload`` loader options for a preload spec rooted at ``model``."""
    mapper = sa_inspect(model)
    options: List[Any] = []
    for name, nested in normalize_preloads(preloads):
        if name not in mapper.relationships:
            raise InvalidSpecError(f"Unknown preload `{name}` on {model.__name__}")
        opt = selectinload(getattr(model, name))
        nested_options = preload_options(mapper.relationships[name].mapper.class_, nested)
        if nested_options:
            opt = opt.options(*nested_options)
        options.append(opt)
    return options


def serialize(record: Any, preloads: Optional[Sequence[Preload]] = None, opts: Optional[Mapping[str, Any]] = None) -> Any:
    """Serialize a mapped instance into a plain dict, following the preload spec."""
    if record is None:
        return None
    opts = opts or {}
    model = type(record)
    mapper = sa_inspect(model, raiseerr=False)
    if mapper is None:
        return record
    skip = set(getattr(model, 'serializer_skip_fields', lambda _opts: ())(opts) or ())
    hook = getattr(record, 'serialize_field', None)
    out: Dict[str, Any] = {}
    for attr in mapper.column_attrs:
        if attr.key in skip:
            continue
        value = getattr(record, attr.key)
        out[attr.key] = hook(attr.key, value, opts) if callable(hook) else value
    out['schema'] = model.__name__
    for name, nested in normalize_preloads(preloads):
        value = getattr(record, name)
        if value is None:
            out[name] = None
        elif isinstance(value, (list, tuple, set)):
            out[name] = [serialize(v, nested, opts) for v in value]
        else:
            out[name] = serialize(value, nested, opts)
    return out


def serialize_many(records: Sequence[Any], preloads: Optional[Sequence[Preload]] = None, opts: Optional[Mapping[str, Any]] = None) -> List[Any]:
    return [serialize(r, preloads, opts) for r in records]
