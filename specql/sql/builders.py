from __future__ import annotations

from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import Select, func, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import aliased
from sqlalchemy.sql.sqltypes import Boolean, Date, DateTime, Float, Integer, Numeric

from ..core.expressions import Predicate
from ..core.plan import QueryPlan
from ..errors import UnknownFieldError
from .reflection import ModelCatalog

# Compiles QueryPlans onto SQLAlchemy. Keep the planning core free of SQL.

OPERATOR_REGISTRY: Dict[str, Callable[[Any, Any], Any]] = {
    '==': lambda col, v: col == v,
    '!=': lambda col, v: col != v,
    '>': lambda col, v: col > v,
    '<': lambda col, v: col < v,
    '>=': lambda col, v: col >= v,
    '<=': lambda col, v: col <= v,
    'in': lambda col, v: col.in_(list(v)),
    'not_in': lambda col, v: col.not_in(list(v)),
    'is_nil': lambda col, v: col.is_(None),
    'not_nil': lambda col, v: col.is_not(None),
}

_TRUE = ('true', 't', '1', 'yes', 'y')
_FALSE = ('false', 'f', '0', 'no', 'n')


def coerce_where_value(col: Any, val: Any) -> Any:
    """Coerce request values (usually JSON scalars) to the column's type.

    Only strings are converted; anything that does not parse is passed through
    unchanged for the database to judge.
    """
    if isinstance(val, (list, tuple)):
        return type(val)(coerce_where_value(col, v) for v in val)
    if not isinstance(val, str):
        return val
    ctype = getattr(getattr(col, 'expression', col), 'type', None)
    if ctype is None:
        return val
    s = val.strip()
    if isinstance(ctype, DateTime):
        try:
            dv = datetime.fromisoformat(s.replace('Z', '+00:00'))
        except ValueError:
            return val
        if not getattr(ctype, 'timezone', False) and dv.tzinfo is not None:
            dv = dv.replace(tzinfo=None)
        return dv
    if isinstance(ctype, Date):
        try:
            return date.fromisoformat(s)
        except ValueError:
            return val
    if isinstance(ctype, Boolean):
        lv = s.lower()
        if lv in _TRUE:
            return True
        if lv in _FALSE:
            return False
        return val
    if isinstance(ctype, Integer):
        try:
            return int(s)
        except ValueError:
            return val
    if isinstance(ctype, (Numeric, Float)):
        try:
            return float(s)
        except ValueError:
            return val
    return val


class PlanCompiler:
    """Turn a QueryPlan into a SQLAlchemy ``Select`` over the catalog's models.

    Every binding becomes a LEFT OUTER JOIN against an anonymous alias of the
    target model (``regions_1``), which the dialect keeps within its identifier
    length limit. The plan alias (``customer_region``) stays the binding's
    identity and never reaches the SQL.
    """

    def __init__(self, catalog: ModelCatalog):
        self.catalog = catalog

    def entities(self, plan: QueryPlan) -> List[Any]:
        """Base model followed by one alias per binding; index == binding depth."""
        out: List[Any] = [self.catalog.model(plan.base_schema)]
        for b in plan.bindings:
            out.append(aliased(self.catalog.model(b.target)))
        return out

    def compile(self, plan: QueryPlan, base: Optional[Select] = None) -> Select:
        entities = self.entities(plan)
        stmt = base if base is not None else select(entities[0])
        for b in plan.bindings:
            parent, target = entities[b.parent_depth], entities[b.depth]
            stmt = stmt.outerjoin(
                target,
                self._column(parent, b.owner_key) == self._column(target, b.related_key),
            )
        for p in plan.predicates:
            stmt = stmt.where(self.predicate_expression(entities[p.depth], p))
        for o in plan.order_terms:
            col = self._column(entities[o.depth], o.field)
            stmt = stmt.order_by(col.desc() if o.direction == 'desc' else col.asc())
        return stmt

    def predicate_expression(self, entity: Any, predicate: Predicate) -> Any:
        col = self._column(entity, predicate.field)
        op_fn = OPERATOR_REGISTRY[predicate.operator]
        return op_fn(col, coerce_where_value(col, predicate.value))

    @staticmethod
    def _column(entity: Any, name: str) -> Any:
        col = getattr(entity, name, None)
        if col is None:
            raise UnknownFieldError(name, sa_inspect(entity).mapper.class_.__name__)
        return col


def count_statement(stmt: Select) -> Select:
    """Row count of ``stmt`` ignoring its ordering and paging."""
    inner = stmt.order_by(None).limit(None).offset(None).subquery()
    return select(func.count()).select_from(inner)
