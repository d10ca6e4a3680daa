from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional, Sequence, Tuple

from ..errors import AliasCollisionError, UnsupportedDepthError
from .schema import JoinStep

__all__ = [
    'DEFAULT_MAX_DEPTH',
    'ALIAS_SEPARATOR',
    'Binding',
    'BindingTable',
    'ensure_joins',
    'alias_for',
]

DEFAULT_MAX_DEPTH = 21
ALIAS_SEPARATOR = '_'


@dataclass(frozen=True)
class Binding:
    alias: str
    depth: int
    parent_depth: int
    path: Tuple[str, ...]
    step: JoinStep

    @property
    def target(self) -> str:
        return self.step.target

    @property
    def owner_key(self) -> str:
        return self.step.owner_key

    @property
    def related_key(self) -> str:
        return self.step.related_key


def alias_for(steps: Sequence[JoinStep], separator: str = ALIAS_SEPARATOR) -> Optional[str]:
    """Alias of the binding the last step lands on, or None for the base relation."""
    alias: Optional[str] = None
    for step in steps:
        alias = step.association if alias is None else f"{alias}{separator}{step.association}"
    return alias


@dataclass(frozen=True)
class BindingTable:
    """Ordered, deduplicated joins of one query plan.

    Position ``n`` (1-based) is the binding depth; depth 0 is the base relation.
    """

    entries: Tuple[Binding, ...] = ()
    max_depth: int = DEFAULT_MAX_DEPTH
    separator: str = ALIAS_SEPARATOR

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[Binding]:
        return iter(self.entries)

    def __getitem__(self, depth: int) -> Binding:
        if depth < 1 or depth > len(self.entries):
            raise IndexError(depth)
        return self.entries[depth - 1]

    @property
    def aliases(self) -> Tuple[str, ...]:
        return tuple(b.alias for b in self.entries)

    def find(self, alias: str) -> Optional[Binding]:
        for b in self.entries:
            if b.alias == alias:
                return b
        return None

    def locate(self, steps: Sequence[JoinStep]) -> int:
        """Depth of the binding reached by ``steps`` (0 when ``steps`` is empty)."""
        alias = alias_for(steps, self.separator)
        if alias is None:
            return 0
        b = self.find(alias)
        if b is None:
            raise KeyError(alias)
        return b.depth


def ensure_joins(table: BindingTable, steps: Sequence[JoinStep]) -> BindingTable:
    """Return ``table`` extended with whatever joins ``steps`` still need.

    A path that is already bound is reused, so a query never joins the same
    association path twice. Raises UnsupportedDepthError instead of growing
    past ``table.max_depth``.
    """
    entries = list(table.entries)
    parent_alias: Optional[str] = None
    parent_depth = 0
    path: Tuple[str, ...] = ()
    for step in steps:
        path = path + (step.association,)
        alias = step.association if parent_alias is None else f"{parent_alias}{table.separator}{step.association}"
        existing = next((b for b in entries if b.alias == alias), None)
        if existing is not None:
            if existing.path != path or existing.step != step:
                raise AliasCollisionError(alias)
            parent_alias, parent_depth = alias, existing.depth
            continue
        depth = len(entries) + 1
        if depth > table.max_depth:
            raise UnsupportedDepthError(depth, table.max_depth)
        entries.append(Binding(alias=alias, depth=depth, parent_depth=parent_depth, path=path, step=step))
        parent_alias, parent_depth = alias, depth
    return BindingTable(entries=tuple(entries), max_depth=table.max_depth, separator=table.separator)
