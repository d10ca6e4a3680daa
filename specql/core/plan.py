from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Tuple

from ..errors import UnsupportedDepthError
from .expressions import OrderTerm, Predicate
from .joins import BindingTable

__all__ = ['QueryPlan', 'assemble_plan']


@dataclass(frozen=True)
class QueryPlan:
    """Everything an executor needs to run one request: joins, filters, ordering."""

    base_schema: str
    bindings: BindingTable
    predicates: Tuple[Predicate, ...] = ()
    order_terms: Tuple[OrderTerm, ...] = ()

    @property
    def aliases(self) -> Tuple[str, ...]:
        return self.bindings.aliases

    def describe(self) -> Dict[str, Any]:
        """Plain-data view of the plan, handy for logs and debug payloads."""
        joins: List[Dict[str, Any]] = [
            {
                'alias': b.alias,
                'depth': b.depth,
                'parent_depth': b.parent_depth,
                'target': b.target,
                'on': (b.owner_key, b.related_key),
            }
            for b in self.bindings
        ]
        return {
            'schema': self.base_schema,
            'joins': joins,
            'where': [(p.depth, p.field, p.operator, p.value) for p in self.predicates],
            'order_by': [(o.depth, o.field, o.direction) for o in self.order_terms],
        }


def assemble_plan(
    base_schema: str,
    bindings: BindingTable,
    predicates: Iterable[Predicate] = (),
    order_terms: Iterable[OrderTerm] = (),
) -> QueryPlan:
    preds = tuple(predicates)
    orders = tuple(order_terms)
    for term in (*preds, *orders):
        if term.depth < 0 or term.depth > len(bindings):
            raise UnsupportedDepthError(term.depth, len(bindings))
    return QueryPlan(base_schema=base_schema, bindings=bindings, predicates=preds, order_terms=orders)
