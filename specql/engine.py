"""Query engine facade.

``plan``/``build`` are pure: they decode the request, interpret the specs and
(for ``build``) compile to a SQLAlchemy ``Select``. ``all``/``get`` run that
statement through a caller-supplied ``AsyncSession`` and wrap the outcome in
the list / single-record response shapes, mapping failures to 404/500.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError

from .core.interpreter import QueryInterpreter
from .core.joins import ALIAS_SEPARATOR, DEFAULT_MAX_DEPTH
from .core.plan import QueryPlan
from .core.request import QueryRequest, decode_request
from .errors import QueryBuildError
from .pager import DEFAULT_LIMIT, apply_paging, compute_pagination
from .serializer import preload_options, serialize, serialize_many
from .sql.builders import PlanCompiler, count_statement
from .sql.reflection import ModelCatalog

logger = logging.getLogger(__name__)

__all__ = ['QueryEngine']


class QueryEngine:
    def __init__(
        self,
        catalog: ModelCatalog,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        separator: str = ALIAS_SEPARATOR,
        default_limit: int = DEFAULT_LIMIT,
    ):
        self.catalog = catalog
        self.interpreter = QueryInterpreter(catalog.registry, max_depth=max_depth, separator=separator)
        self.compiler = PlanCompiler(catalog)
        self.default_limit = default_limit

    @classmethod
    def from_models(cls, base_or_models: Any, **kwargs: Any) -> 'QueryEngine':
        return cls(ModelCatalog.from_models(base_or_models), **kwargs)

    # --- pure ---------------------------------------------------------------
    def plan(
        self,
        schema: Any,
        filter_specs: Any = (),
        params: Optional[Any] = None,
        *,
        sort_specs: Any = (),
    ) -> QueryPlan:
        request = params if isinstance(params, QueryRequest) else decode_request(params)
        return self.interpreter.interpret(
            self.catalog.schema_name(schema),
            filter_specs,
            request.filters,
            sort_specs,
            request.sort,
        )

    def build(
        self,
        schema: Any,
        filter_specs: Any = (),
        params: Optional[Any] = None,
        *,
        sort_specs: Any = (),
        base_queryable: Optional[Select] = None,
    ) -> Select:
        plan = self.plan(schema, filter_specs, params, sort_specs=sort_specs)
        return self.compiler.compile(plan, base=base_queryable)

    # --- executing ----------------------------------------------------------
    async def all(
        self,
        session: Any,
        schema: Any,
        preloads: Sequence[Any] = (),
        filter_specs: Any = (),
        sort_specs: Any = (),
        params: Optional[Any] = None,
        *,
        base_queryable: Optional[Select] = None,
        opts: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        schema_name = getattr(schema, '__name__', str(schema))
        try:
            request = decode_request(params)
            stmt = self.build(schema, filter_specs, request, sort_specs=sort_specs, base_queryable=base_queryable)
            total = (await session.execute(count_statement(stmt))).scalar_one()
            limit = request.limit if request.limit is not None else self.default_limit
            stmt = apply_paging(stmt, limit, request.offset)
            stmt = stmt.options(*preload_options(self.catalog.model(schema_name), preloads))
            records = (await session.execute(stmt)).scalars().unique().all()
            data = serialize_many(records, preloads, opts)
        except (QueryBuildError, SQLAlchemyError) as e:
            message = (
                f"Schema: {schema_name!r}\n"
                f"Preloads: {preloads!r}\n"
                f"Filter Specs: {filter_specs!r}\n"
                f"Sort Specs: {sort_specs!r}\n"
                f"Params: {params!r}"
            )
            logger.error("QueryEngine.all failed: %r\n%s", e, message)
            return {
                'status': 500,
                'results': {'data': None, 'page_info': None, 'schema': schema_name},
                'debug': {'error': getattr(e, 'kind', type(e).__name__), 'message': str(e)},
            }
        return {
            'status': 200,
            'results': {
                'data': data,
                'page_info': compute_pagination(total, limit, request.offset, default_limit=self.default_limit),
                'schema': schema_name,
            },
        }

    async def get(
        self,
        session: Any,
        schema: Any,
        id: Any,
        preloads: Sequence[Any] = (),
        *,
        opts: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        schema_name = getattr(schema, '__name__', str(schema))
        if isinstance(id, str) and id.strip().isdigit():
            id = int(id)
        try:
            model = self.catalog.model(self.catalog.schema_name(schema))
            pk = list(model.__table__.primary_key.columns)[0]
            stmt = select(model).where(pk == id).options(*preload_options(model, preloads))
            record = (await session.execute(stmt)).scalars().first()
            if record is None:
                return {'status': 404, 'results': {'data': None, 'schema': schema_name, 'id': id}}
            data = serialize(record, preloads, opts)
        except (QueryBuildError, SQLAlchemyError) as e:
            message = f"Schema: {schema_name!r}\nID: {id!r}\nPreloads: {preloads!r}"
            logger.error("QueryEngine.get failed: %r\n%s", e, message)
            return {
                'status': 500,
                'results': {'data': None, 'schema': schema_name, 'id': id},
                'debug': {'error': getattr(e, 'kind', type(e).__name__), 'message': str(e)},
            }
        return {'status': 200, 'results': {'data': data, 'schema': schema_name, 'id': id}}
