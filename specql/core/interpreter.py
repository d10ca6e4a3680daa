from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from ..errors import UnknownFieldError
from .expressions import OrderTerm, Predicate, build_order_term, build_predicate, resolve_operator
from .filters import Computed, FilterSpec, Literal, normalize_filter_specs
from .joins import ALIAS_SEPARATOR, DEFAULT_MAX_DEPTH, BindingTable, ensure_joins
from .plan import QueryPlan, assemble_plan
from .schema import SchemaDescriptor, SchemaRegistry
from .sorting import compute_effective_sort, normalize_sort_specs

logger = logging.getLogger(__name__)

__all__ = ['QueryInterpreter', 'interpret']


class _PlanState:
    """Per-call accumulator; never shared between interpretations."""

    def __init__(self, table: BindingTable):
        self.table = table
        self.predicates: List[Predicate] = []
        self.order_terms: List[OrderTerm] = []


class QueryInterpreter:
    """Turns filter/sort specs plus request data into a QueryPlan.

    Filters resolve in two phases. Keys present in the request are applied
    first (an explicit None only counts when the spec allows nil); then every
    spec whose key is absent applies its default. Presence in the request is
    the only thing that decides the phase.

    Sorting: valid explicit sort tokens win outright; without any, the
    default-flagged sort specs apply in spec order.
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        separator: str = ALIAS_SEPARATOR,
    ):
        self.registry = registry
        self.max_depth = max_depth
        self.separator = separator

    def interpret(
        self,
        schema: str,
        filter_specs: Any = (),
        request_filters: Optional[Mapping[str, Any]] = None,
        sort_specs: Any = (),
        sort_tokens: Optional[Sequence[Any]] = None,
    ) -> QueryPlan:
        base = self.registry.get(schema)
        fspecs = normalize_filter_specs(filter_specs)
        sspecs = normalize_sort_specs(sort_specs)
        request_filters = request_filters or {}
        state = _PlanState(BindingTable(max_depth=self.max_depth, separator=self.separator))

        by_key = {s.key: s for s in fspecs}
        present = {str(k) for k in request_filters}
        for key, value in request_filters.items():
            spec = by_key.get(str(key))
            if spec is None:
                logger.debug("Ignoring filter %r: no filter spec for %s", key, base.name)
                continue
            if value is None and not spec.allow_nil:
                continue
            self._apply_filter(state, base, spec, value)

        for spec in fspecs:
            if spec.key in present:
                continue
            default = spec.default
            if default is None:
                if spec.allow_nil:
                    self._apply_filter(state, base, spec, None)
            elif isinstance(default, Literal):
                self._apply_filter(state, base, spec, default.value)
            elif isinstance(default, Computed):
                self._apply_filter(state, base, spec, default.evaluate(spec.key))

        for sspec in compute_effective_sort(sort_tokens, sspecs):
            depth, target = self._bind(state, base, sspec.path)
            self._check_field(target, sspec.field)
            state.order_terms.append(
                build_order_term(depth, sspec.field, sspec.direction, max_depth=self.max_depth)
            )

        return assemble_plan(base.name, state.table, state.predicates, state.order_terms)

    def _apply_filter(self, state: _PlanState, base: SchemaDescriptor, spec: FilterSpec, value: Any) -> None:
        operator = resolve_operator(spec.operator, value)
        depth, target = self._bind(state, base, spec.path)
        self._check_field(target, spec.field)
        state.predicates.append(
            build_predicate(depth, spec.field, operator, value, max_depth=self.max_depth)
        )

    def _bind(self, state: _PlanState, base: SchemaDescriptor, path: Tuple[str, ...]) -> Tuple[int, SchemaDescriptor]:
        if not path:
            return 0, base
        steps = self.registry.resolve(base.name, path)
        state.table = ensure_joins(state.table, steps)
        return state.table.locate(steps), self.registry.target_of(base.name, steps)

    @staticmethod
    def _check_field(schema: SchemaDescriptor, field: str) -> None:
        if not schema.has_field(field):
            raise UnknownFieldError(field, schema.name)


def interpret(
    registry: SchemaRegistry,
    schema: str,
    filter_specs: Any = (),
    request_filters: Optional[Mapping[str, Any]] = None,
    sort_specs: Any = (),
    sort_tokens: Optional[Sequence[Any]] = None,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    separator: str = ALIAS_SEPARATOR,
) -> QueryPlan:
    return QueryInterpreter(registry, max_depth=max_depth, separator=separator).interpret(
        schema, filter_specs, request_filters, sort_specs, sort_tokens
    )
