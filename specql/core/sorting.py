from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..errors import InvalidSpecError, MalformedSortTokenError
from .filters import Operation
from .utils import dir_value

logger = logging.getLogger(__name__)

__all__ = [
    'SortSpec',
    'normalize_sort_spec',
    'normalize_sort_specs',
    'parse_sort_token',
    'compute_effective_sort',
]

_DIRECTIONS = ('asc', 'desc')


@dataclass(frozen=True)
class SortSpec:
    key: str
    field: str
    path: Tuple[str, ...] = ()
    direction: str = 'asc'
    is_default: bool = False
    operation: Optional[Operation] = None

    def __post_init__(self):
        if not self.key or not isinstance(self.key, str):
            raise InvalidSpecError(f"Sort spec key must be a non-empty string, got {self.key!r}")
        if not self.field or not isinstance(self.field, str):
            raise InvalidSpecError(f"Sort spec `{self.key}` needs a target field")
        path = tuple(str(p) for p in (self.path or ()))
        object.__setattr__(self, 'path', path)
        d = dir_value(self.direction)
        if d not in _DIRECTIONS:
            raise InvalidSpecError(f"Invalid order direction '{self.direction}'. Must be 'asc' or 'desc'.")
        object.__setattr__(self, 'direction', d)
        object.__setattr__(self, 'is_default', bool(self.is_default))
        op = Operation.coerce(self.operation) if self.operation is not None else (
            Operation.BY_ASSOCIATION_FIELD if path else Operation.BY_FIELD
        )
        if op is Operation.BY_FIELD and path:
            raise InvalidSpecError(f"Sort spec `{self.key}` uses by_field with an association path")
        object.__setattr__(self, 'operation', op)

    def with_direction(self, direction: str) -> 'SortSpec':
        return SortSpec(
            key=self.key,
            field=self.field,
            path=self.path,
            direction=direction,
            is_default=self.is_default,
            operation=self.operation,
        )


def normalize_sort_spec(key: Any, raw: Any) -> SortSpec:
    """Accept a SortSpec, a dict, or the tuple forms

    ``(operation, field, direction[, is_default])`` and
    ``(operation, path, field, direction[, is_default])``.
    """
    key = str(getattr(key, 'value', key))
    if isinstance(raw, SortSpec):
        return raw
    if isinstance(raw, Mapping):
        return SortSpec(
            key=key,
            field=raw.get('field') or raw.get('column'),
            path=tuple(raw.get('path') or ()),
            direction=raw.get('direction', 'asc'),
            is_default=raw.get('default', raw.get('is_default', False)),
            operation=raw.get('operation'),
        )
    if not isinstance(raw, tuple):
        raise InvalidSpecError(f"Unsupported sort spec form: {raw!r}")
    items = list(raw)
    try:
        operation = Operation.coerce(items[0])
        rest = items[1:]
        if isinstance(rest[0], (list, tuple)):
            path, fld, direction, *tail = rest
        else:
            path = ()
            fld, direction, *tail = rest
    except (IndexError, ValueError) as e:
        raise InvalidSpecError(f"Malformed sort spec for `{key}`: {raw!r}") from e
    if len(tail) > 1:
        raise InvalidSpecError(f"Malformed sort spec for `{key}`: {raw!r}")
    return SortSpec(
        key=key,
        field=fld,
        path=tuple(path),
        direction=direction,
        is_default=tail[0] if tail else False,
        operation=operation,
    )


def normalize_sort_specs(specs: Any) -> Tuple[SortSpec, ...]:
    if specs is None:
        return ()
    pairs: Iterable[Any] = specs.items() if isinstance(specs, Mapping) else specs
    out: List[SortSpec] = []
    seen = set()
    for item in pairs:
        if isinstance(item, SortSpec):
            spec = item
        elif isinstance(item, tuple) and len(item) == 2:
            spec = normalize_sort_spec(item[0], item[1])
        else:
            raise InvalidSpecError(f"Unsupported sort spec entry: {item!r}")
        if spec.key in seen:
            raise InvalidSpecError(f"Duplicate sort spec key: {spec.key}")
        seen.add(spec.key)
        out.append(spec)
    return tuple(out)


def parse_sort_token(token: Any) -> Tuple[str, str, bool]:
    """Split ``key[:direction]``.

    Returns ``(key, direction, well_formed)``; the caller decides whether a
    malformed token matters (it only does for known keys).
    """
    if not isinstance(token, str):
        raise MalformedSortTokenError(token)
    parts = token.split(':')
    key = parts[0].strip()
    if len(parts) == 1:
        return key, 'asc', True
    if len(parts) == 2:
        d = dir_value(parts[1])
        if d in _DIRECTIONS:
            return key, d, True
    return key, 'asc', False


def compute_effective_sort(
    tokens: Optional[Sequence[Any]],
    sort_specs: Sequence[SortSpec],
) -> List[SortSpec]:
    """Resolve request sort tokens against the spec list.

    Valid explicit tokens replace the defaults entirely; otherwise the
    ``is_default`` specs apply in spec order with their own directions.
    """
    by_key = {s.key: s for s in sort_specs}
    explicit: List[SortSpec] = []
    for token in tokens or ():
        key, direction, well_formed = parse_sort_token(token)
        spec = by_key.get(key)
        if spec is None:
            logger.debug("Dropping sort token %r: no sort spec for key %r", token, key)
            continue
        if not well_formed:
            raise MalformedSortTokenError(token)
        explicit.append(spec.with_direction(direction))
    if explicit:
        return explicit
    return [s for s in sort_specs if s.is_default]
