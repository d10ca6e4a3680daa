"""specql public API and lightweight lazy exports.

The planning core (``specql.core``) has no SQLAlchemy dependency; SQL
compilation and execution live in ``specql.sql`` and ``specql.engine`` and are
only imported when one of their names is first accessed.

Exposes:
- Specs: FilterSpec, SortSpec, Conditional, Literal, Computed, Operation
- Schema graph: SchemaRegistry, SchemaDescriptor, AssociationEdge, FieldInfo
- Planning: QueryInterpreter, interpret, QueryPlan, decode_request
- Lazy: QueryEngine, ModelCatalog, PlanCompiler
- errors (module)
"""
from __future__ import annotations

from . import errors
from .core.expressions import Conditional, OrderTerm, Predicate, build_order_term, build_predicate
from .core.filters import Computed, FilterSpec, Literal, Operation
from .core.interpreter import QueryInterpreter, interpret
from .core.joins import ALIAS_SEPARATOR, DEFAULT_MAX_DEPTH, BindingTable, ensure_joins
from .core.plan import QueryPlan
from .core.request import QueryRequest, decode_request
from .core.schema import AssociationEdge, FieldInfo, SchemaDescriptor, SchemaRegistry
from .core.sorting import SortSpec

_LAZY = {
    'QueryEngine': '.engine',
    'ModelCatalog': '.sql.reflection',
    'PlanCompiler': '.sql.builders',
}


def __getattr__(name: str):  # PEP 562 lazy exports
    import importlib as _importlib
    mod = _LAZY.get(name)
    if mod is None:
        raise AttributeError(name)
    return getattr(_importlib.import_module(mod, __name__), name)


__all__ = [
    'ALIAS_SEPARATOR', 'DEFAULT_MAX_DEPTH',
    'AssociationEdge', 'BindingTable', 'Computed', 'Conditional', 'FieldInfo', 'FilterSpec',
    'Literal', 'Operation', 'OrderTerm', 'Predicate', 'QueryInterpreter', 'QueryPlan',
    'QueryRequest', 'SchemaDescriptor', 'SchemaRegistry', 'SortSpec',
    'build_order_term', 'build_predicate', 'decode_request', 'ensure_joins', 'interpret',
    'QueryEngine', 'ModelCatalog', 'PlanCompiler',
    'errors',
]
