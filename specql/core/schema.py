from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..errors import (
    CyclicAssociationError,
    InvalidSpecError,
    UnknownAssociationError,
    UnknownSchemaError,
)

__all__ = [
    'ONE',
    'MANY',
    'FieldInfo',
    'AssociationEdge',
    'SchemaDescriptor',
    'JoinStep',
    'SchemaRegistry',
]

ONE = 'one'
MANY = 'many'


@dataclass(frozen=True)
class FieldInfo:
    name: str
    type: str = 'any'


@dataclass(frozen=True)
class AssociationEdge:
    """A named hop from one schema to another.

    Direct edges carry the join keys. Through edges carry only ``through``, the
    chain of association names (resolved from the owning schema) they stand for.
    """

    name: str
    target: Optional[str] = None
    owner_key: Optional[str] = None
    related_key: Optional[str] = None
    cardinality: str = ONE
    through: Optional[Tuple[str, ...]] = None

    def __post_init__(self):
        if self.through is not None:
            chain = tuple(self.through)
            if not chain:
                raise InvalidSpecError(f"Through association `{self.name}` has an empty chain")
            object.__setattr__(self, 'through', chain)
        elif not (self.target and self.owner_key and self.related_key):
            raise InvalidSpecError(
                f"Association `{self.name}` needs target, owner_key and related_key"
            )
        if self.cardinality not in (ONE, MANY):
            raise InvalidSpecError(f"Association `{self.name}` has unknown cardinality {self.cardinality!r}")

    @property
    def is_through(self) -> bool:
        return self.through is not None


@dataclass(frozen=True)
class SchemaDescriptor:
    name: str
    fields: Tuple[FieldInfo, ...] = ()
    associations: Mapping[str, AssociationEdge] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'fields', tuple(self.fields))
        object.__setattr__(self, 'associations', MappingProxyType(dict(self.associations)))

    @classmethod
    def build(
        cls,
        name: str,
        fields: Iterable[object] = (),
        associations: Iterable[AssociationEdge] = (),
    ) -> 'SchemaDescriptor':
        """Convenience constructor: fields may be plain names or ``FieldInfo``."""
        finfos = tuple(f if isinstance(f, FieldInfo) else FieldInfo(str(f)) for f in fields)
        return cls(name=name, fields=finfos, associations={a.name: a for a in associations})

    @property
    def field_names(self) -> FrozenSet[str]:
        return frozenset(f.name for f in self.fields)

    def has_field(self, name: str) -> bool:
        return any(f.name == name for f in self.fields)

    def association(self, name: str) -> AssociationEdge:
        edge = self.associations.get(name)
        if edge is None:
            raise UnknownAssociationError(name, self.name)
        return edge


@dataclass(frozen=True)
class JoinStep:
    association: str
    target: str
    owner_key: str
    related_key: str


class SchemaRegistry:
    """Process-wide registry of schema descriptors.

    Populate with ``register`` at start-up, then ``freeze``; after that the
    registry is read-only and safe to share between concurrent requests.
    """

    def __init__(self, schemas: Iterable[SchemaDescriptor] = ()):
        self._schemas: Dict[str, SchemaDescriptor] = {}
        self._frozen = False
        for s in schemas:
            self.register(s)

    def register(self, schema: SchemaDescriptor) -> SchemaDescriptor:
        if self._frozen:
            raise RuntimeError("SchemaRegistry is frozen; register schemas before the first request")
        self._schemas[schema.name] = schema
        return schema

    def freeze(self) -> 'SchemaRegistry':
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __contains__(self, name: object) -> bool:
        return name in self._schemas

    def __iter__(self):
        return iter(self._schemas.values())

    def get(self, name: str) -> SchemaDescriptor:
        try:
            return self._schemas[name]
        except KeyError:
            raise UnknownSchemaError(name) from None

    def resolve(self, schema: str, path: Sequence[str]) -> List[JoinStep]:
        """Resolve an association-name path to the physical join steps it needs.

        Through associations are expanded (transitively) in place, so one
        logical hop can yield several steps. An empty path yields no steps.
        """
        current = self.get(schema)
        steps: List[JoinStep] = []
        for name in path:
            hop = self._expand(current, name, frozenset())
            steps.extend(hop)
            current = self.get(hop[-1].target)
        return steps

    def target_of(self, schema: str, steps: Sequence[JoinStep]) -> SchemaDescriptor:
        if not steps:
            return self.get(schema)
        return self.get(steps[-1].target)

    def _expand(
        self,
        schema: SchemaDescriptor,
        name: str,
        visiting: FrozenSet[Tuple[str, str]],
    ) -> List[JoinStep]:
        edge = schema.association(name)
        if not edge.is_through:
            return [JoinStep(edge.name, edge.target, edge.owner_key, edge.related_key)]  # type: ignore[arg-type]
        marker = (schema.name, name)
        if marker in visiting:
            raise CyclicAssociationError(name, schema.name)
        visiting = visiting | {marker}
        steps: List[JoinStep] = []
        current = schema
        for hop_name in edge.through or ():
            hop = self._expand(current, hop_name, visiting)
            steps.extend(hop)
            current = self.get(hop[-1].target)
        return steps
