from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Optional, Tuple, Union

from ..errors import ComputedDefaultError, InvalidSpecError
from .expressions import Conditional, Operator, normalize_operator

__all__ = [
    'Operation',
    'Literal',
    'Computed',
    'FilterSpec',
    'normalize_operator_spec',
    'normalize_default',
    'normalize_filter_spec',
    'normalize_filter_specs',
]


class Operation(str, Enum):
    """Closed set of ways a spec addresses its target column."""

    BY_FIELD = 'by_field'
    BY_ASSOCIATION_FIELD = 'by_association_field'

    @classmethod
    def coerce(cls, value: Any) -> 'Operation':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(getattr(value, 'value', value)))
        except ValueError:
            raise InvalidSpecError(f"Unknown spec operation: {value!r}") from None


@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Computed:
    """Default obtained by calling ``capability`` (or ``capability.<operation>``) with ``args``."""

    capability: Any
    args: Tuple[Any, ...] = ()
    operation: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'args', tuple(self.args))

    def target(self) -> Callable[..., Any]:
        if self.operation:
            return getattr(self.capability, self.operation)
        return self.capability

    def evaluate(self, key: str) -> Any:
        try:
            return self.target()(*self.args)
        except Exception as e:
            raise ComputedDefaultError(key, e) from e


Default = Union[None, Literal, Computed]


@dataclass(frozen=True)
class FilterSpec:
    key: str
    field: str
    path: Tuple[str, ...] = ()
    operator: Operator = '=='
    allow_nil: bool = False
    default: Default = None
    operation: Optional[Operation] = None
    description: Optional[str] = None

    def __post_init__(self):
        if not self.key or not isinstance(self.key, str):
            raise InvalidSpecError(f"Filter spec key must be a non-empty string, got {self.key!r}")
        if not self.field or not isinstance(self.field, str):
            raise InvalidSpecError(f"Filter spec `{self.key}` needs a target field")
        path = tuple(str(p) for p in (self.path or ()))
        object.__setattr__(self, 'path', path)
        object.__setattr__(self, 'operator', normalize_operator_spec(self.operator))
        object.__setattr__(self, 'default', normalize_default(self.default))
        object.__setattr__(self, 'allow_nil', bool(self.allow_nil))
        op = Operation.coerce(self.operation) if self.operation is not None else (
            Operation.BY_ASSOCIATION_FIELD if path else Operation.BY_FIELD
        )
        if op is Operation.BY_FIELD and path:
            raise InvalidSpecError(f"Filter spec `{self.key}` uses by_field with an association path")
        object.__setattr__(self, 'operation', op)


def normalize_operator_spec(raw: Any) -> Operator:
    if isinstance(raw, Conditional):
        return raw
    if isinstance(raw, (tuple, list)):
        if len(raw) != 2:
            raise InvalidSpecError(f"Operator pair must be (truthy_op, falsy_op), got {raw!r}")
        return Conditional(raw[0], raw[1])
    return normalize_operator(raw)


def normalize_default(raw: Any) -> Default:
    if raw is None or isinstance(raw, (Literal, Computed)):
        return raw
    if (
        isinstance(raw, tuple)
        and len(raw) == 3
        and isinstance(raw[1], str)
        and isinstance(raw[2], (list, tuple))
        and callable(getattr(raw[0], raw[1], None))
    ):
        return Computed(raw[0], tuple(raw[2]), operation=raw[1])
    if callable(raw):
        return Computed(raw)
    return Literal(raw)


def _from_tuple(key: str, raw: Tuple[Any, ...]) -> FilterSpec:
    items = list(raw)
    try:
        operation = Operation.coerce(items[0])
        rest = items[1:]
        if isinstance(rest[0], (list, tuple)):
            path, fld, operator, allow_nil, *tail = rest
        else:
            path = ()
            fld, operator, allow_nil, *tail = rest
    except (IndexError, ValueError) as e:
        raise InvalidSpecError(f"Malformed filter spec for `{key}`: {raw!r}") from e
    if len(tail) > 1:
        raise InvalidSpecError(f"Malformed filter spec for `{key}`: {raw!r}")
    return FilterSpec(
        key=key,
        field=fld,
        path=tuple(path),
        operator=operator,
        allow_nil=allow_nil,
        default=tail[0] if tail else None,
        operation=operation,
    )


def normalize_filter_spec(key: Any, raw: Any) -> FilterSpec:
    """Accept a FilterSpec, a dict, or the tuple forms

    ``(operation, field, operator, allow_nil[, default])`` and
    ``(operation, path, field, operator, allow_nil[, default])``.
    """
    key = str(getattr(key, 'value', key))
    if isinstance(raw, FilterSpec):
        return raw
    if isinstance(raw, Mapping):
        return FilterSpec(
            key=key,
            field=raw.get('field') or raw.get('column'),
            path=tuple(raw.get('path') or ()),
            operator=raw.get('operator', raw.get('op', '==')),
            allow_nil=raw.get('allow_nil', False),
            default=raw.get('default'),
            operation=raw.get('operation'),
            description=raw.get('description'),
        )
    if isinstance(raw, tuple):
        return _from_tuple(key, raw)
    raise InvalidSpecError(f"Unsupported filter spec form: {raw!r}")


def normalize_filter_specs(specs: Any) -> Tuple[FilterSpec, ...]:
    """Normalize a spec list (or key -> spec mapping); duplicate keys are rejected."""
    if specs is None:
        return ()
    if isinstance(specs, Mapping):
        pairs: Iterable[Any] = specs.items()
    else:
        pairs = specs
    out = []
    seen = set()
    for item in pairs:
        if isinstance(item, FilterSpec):
            spec = item
        elif isinstance(item, tuple) and len(item) == 2:
            spec = normalize_filter_spec(item[0], item[1])
        else:
            raise InvalidSpecError(f"Unsupported filter spec entry: {item!r}")
        if spec.key in seen:
            raise InvalidSpecError(f"Duplicate filter spec key: {spec.key}")
        seen.add(spec.key)
        out.append(spec)
    return tuple(out)
