from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Union

from ..errors import (
    InvalidNullComparisonError,
    MalformedSortTokenError,
    UnknownOperatorError,
    UnsupportedDepthError,
)
from .joins import DEFAULT_MAX_DEPTH
from .utils import dir_value

__all__ = [
    'OPERATORS',
    'NULL_OPERATORS',
    'NULL_GUARDED_OPERATORS',
    'Conditional',
    'Predicate',
    'OrderTerm',
    'normalize_operator',
    'resolve_operator',
    'build_predicate',
    'build_order_term',
]

OPERATORS = frozenset({'==', '!=', '>', '<', '>=', '<=', 'in', 'not_in', 'is_nil', 'not_nil'})
NULL_OPERATORS = frozenset({'is_nil', 'not_nil'})
NULL_GUARDED_OPERATORS = frozenset({'>', '<', '>=', '<=', 'in', 'not_in'})

# word spellings accepted in specs
_OPERATOR_ALIASES: Dict[str, str] = {
    'eq': '==',
    'ne': '!=',
    'gt': '>',
    'lt': '<',
    'gte': '>=',
    'lte': '<=',
    'is_null': 'is_nil',
    'not_null': 'not_nil',
    'nin': 'not_in',
}


def normalize_operator(op: Any) -> str:
    name = getattr(op, 'value', op)
    if not isinstance(name, str):
        raise UnknownOperatorError(op)
    name = _OPERATOR_ALIASES.get(name, name)
    if name not in OPERATORS:
        raise UnknownOperatorError(op)
    return name


@dataclass(frozen=True)
class Conditional:
    """Operator pair chosen by the filter value: ``falsy`` for False, ``truthy`` otherwise."""

    truthy: str
    falsy: str

    def __post_init__(self):
        object.__setattr__(self, 'truthy', normalize_operator(self.truthy))
        object.__setattr__(self, 'falsy', normalize_operator(self.falsy))

    def resolve(self, value: Any) -> str:
        # only False selects the falsy branch; None, 0 and "" are truthy here
        return self.falsy if value is False else self.truthy


Operator = Union[str, Conditional]


def resolve_operator(operator: Operator, value: Any) -> str:
    if isinstance(operator, Conditional):
        return operator.resolve(value)
    return normalize_operator(operator)


@dataclass(frozen=True)
class Predicate:
    depth: int
    field: str
    operator: str
    value: Any = None


@dataclass(frozen=True)
class OrderTerm:
    depth: int
    field: str
    direction: str = 'asc'


def _check_depth(depth: int, max_depth: int) -> None:
    if not isinstance(depth, int) or depth < 0 or depth > max_depth:
        raise UnsupportedDepthError(depth, max_depth)


def build_predicate(
    depth: int,
    field: str,
    operator: Any,
    value: Any,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Predicate:
    """Build a comparison against ``field`` of the relation bound at ``depth``.

    ``==``/``!=`` against None become nullness tests; ordering and set
    operators refuse None outright.
    """
    _check_depth(depth, max_depth)
    if isinstance(operator, Conditional):
        raise UnknownOperatorError(operator)
    op = normalize_operator(operator)
    if op in NULL_OPERATORS:
        return Predicate(depth, field, op, None)
    if value is None:
        if op == '==':
            return Predicate(depth, field, 'is_nil', None)
        if op == '!=':
            return Predicate(depth, field, 'not_nil', None)
        raise InvalidNullComparisonError(op, field)
    if op in ('in', 'not_in'):
        value = tuple(value) if isinstance(value, (list, tuple, set, frozenset)) else (value,)
    return Predicate(depth, field, op, value)


def build_order_term(
    depth: int,
    field: str,
    direction: Any = 'asc',
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> OrderTerm:
    _check_depth(depth, max_depth)
    d = dir_value(direction)
    if d not in ('asc', 'desc'):
        raise MalformedSortTokenError(direction)
    return OrderTerm(depth, field, d)
