"""Build a SchemaRegistry from SQLAlchemy declarative models.

- Column attributes become fields (keyed by ORM attribute name).
- Many-to-one and one-to-many relationships become direct association edges.
- ``association_proxy(rel, value_rel)`` where ``value_rel`` is itself a
  relationship becomes a through edge ``(rel, value_rel)``.
- Models may declare longer chains explicitly::

      __specql_through__ = {'region': ['customer', 'region']}
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.associationproxy import AssociationProxy
from sqlalchemy.orm import configure_mappers
from sqlalchemy.orm.exc import UnmappedColumnError

from ..core.schema import MANY, ONE, AssociationEdge, FieldInfo, SchemaDescriptor, SchemaRegistry
from ..errors import UnknownSchemaError

logger = logging.getLogger(__name__)

__all__ = ['ModelCatalog', 'describe_model']


def _type_name(column_attr: Any) -> str:
    try:
        return str(column_attr.columns[0].type.__visit_name__)
    except (AttributeError, IndexError):
        return 'any'


def _attr_key(mapper: Any, column: Any) -> str:
    try:
        return mapper.get_property_by_column(column).key
    except UnmappedColumnError:
        return column.key


def describe_model(model: Any) -> SchemaDescriptor:
    mapper = sa_inspect(model)
    fields = [FieldInfo(attr.key, _type_name(attr)) for attr in mapper.column_attrs]
    edges: List[AssociationEdge] = []
    for rel in mapper.relationships:
        direction = rel.direction.name
        if rel.secondary is not None or direction == 'MANYTOMANY':
            logger.debug("Skipping %s.%s: many-to-many relationships are not joinable", model.__name__, rel.key)
            continue
        pairs = list(rel.local_remote_pairs or ())
        if len(pairs) != 1:
            logger.debug("Skipping %s.%s: composite join condition", model.__name__, rel.key)
            continue
        local_col, remote_col = pairs[0]
        edges.append(
            AssociationEdge(
                name=rel.key,
                target=rel.mapper.class_.__name__,
                owner_key=_attr_key(mapper, local_col),
                related_key=_attr_key(rel.mapper, remote_col),
                cardinality=ONE if direction == 'MANYTOONE' or not rel.uselist else MANY,
            )
        )
    for key, desc in mapper.all_orm_descriptors.items():
        if not isinstance(desc, AssociationProxy):
            continue
        collection, value_attr = desc.target_collection, desc.value_attr
        if collection not in mapper.relationships:
            continue
        if value_attr not in mapper.relationships[collection].mapper.relationships:
            # proxies to a plain column are not associations
            continue
        edges.append(AssociationEdge(name=key, through=(collection, value_attr)))
    for name, chain in (getattr(model, '__specql_through__', None) or {}).items():
        edges.append(AssociationEdge(name=name, through=tuple(chain)))
    return SchemaDescriptor.build(model.__name__, fields, edges)


class ModelCatalog:
    """Frozen schema registry plus the mapped classes behind each schema name."""

    def __init__(self, models: Iterable[Any]):
        self._models: Dict[str, Any] = {}
        configure_mappers()
        registry = SchemaRegistry()
        for model in models:
            self._models[model.__name__] = model
            registry.register(describe_model(model))
        self.registry = registry.freeze()

    @classmethod
    def from_models(cls, base_or_models: Any) -> 'ModelCatalog':
        """Accept a DeclarativeBase subclass (every mapped class) or an iterable of models."""
        mappers = getattr(getattr(base_or_models, 'registry', None), 'mappers', None)
        if mappers is not None:
            return cls(m.class_ for m in mappers)
        return cls(base_or_models)

    def __contains__(self, name: object) -> bool:
        return name in self._models

    def model(self, name: str) -> Any:
        try:
            return self._models[name]
        except KeyError:
            raise UnknownSchemaError(name) from None

    def schema_name(self, model_or_name: Any) -> str:
        name = model_or_name if isinstance(model_or_name, str) else getattr(model_or_name, '__name__', None)
        if name not in self._models:
            raise UnknownSchemaError(str(model_or_name))
        return name
