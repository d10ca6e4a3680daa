"""Error taxonomy for spec interpretation and plan building.

Every error is a ``ValueError`` subclass carrying a stable ``kind`` tag so the
orchestration layer can map failures without matching on messages.
"""
from __future__ import annotations

from typing import Any, Optional

__all__ = [
    'QueryBuildError',
    'UnknownSchemaError',
    'UnknownAssociationError',
    'CyclicAssociationError',
    'UnknownFieldError',
    'UnknownOperatorError',
    'UnsupportedDepthError',
    'AliasCollisionError',
    'InvalidNullComparisonError',
    'MalformedSortTokenError',
    'RequestDecodeError',
    'ComputedDefaultError',
    'InvalidSpecError',
]


class QueryBuildError(ValueError):
    kind = 'query_builder_failure'


class UnknownSchemaError(QueryBuildError):
    kind = 'unknown_schema'

    def __init__(self, schema: str):
        self.schema = schema
        super().__init__(f"Unknown schema: {schema}")


class UnknownAssociationError(QueryBuildError):
    kind = 'unknown_association'

    def __init__(self, association: str, schema: str):
        self.association = association
        self.schema = schema
        super().__init__(f"Unknown association `{association}` on schema `{schema}`")


class CyclicAssociationError(QueryBuildError):
    kind = 'cyclic_association'

    def __init__(self, association: str, schema: str):
        self.association = association
        self.schema = schema
        super().__init__(
            f"Through association `{association}` on schema `{schema}` expands into itself"
        )


class UnknownFieldError(QueryBuildError):
    kind = 'unknown_field'

    def __init__(self, field: str, schema: str):
        self.field = field
        self.schema = schema
        super().__init__(f"Field `{field}` does not exist on schema `{schema}`")


class UnknownOperatorError(QueryBuildError):
    kind = 'unknown_operator'

    def __init__(self, operator: Any):
        self.operator = operator
        super().__init__(f"Unsupported operator: {operator!r}")


class UnsupportedDepthError(QueryBuildError):
    kind = 'unsupported_depth'

    def __init__(self, depth: int, max_depth: int):
        self.depth = depth
        self.max_depth = max_depth
        super().__init__(f"Unsupported binding depth: {depth} (max {max_depth})")


class AliasCollisionError(QueryBuildError):
    kind = 'alias_collision'

    def __init__(self, alias: str):
        self.alias = alias
        super().__init__(f"Binding alias `{alias}` is produced by two different association paths")


class InvalidNullComparisonError(QueryBuildError):
    kind = 'invalid_null_comparison'

    def __init__(self, operator: str, field: Optional[str] = None):
        self.operator = operator
        self.field = field
        super().__init__(
            f"Cannot compare with nil using {operator}. Use is_nil or not_nil instead."
        )


class MalformedSortTokenError(QueryBuildError):
    kind = 'malformed_sort_token'

    def __init__(self, token: Any):
        self.token = token
        super().__init__(f"Malformed sort token: {token!r}")


class RequestDecodeError(QueryBuildError):
    kind = 'request_decode_failure'


class ComputedDefaultError(QueryBuildError):
    kind = 'computed_default_failure'

    def __init__(self, key: str, cause: BaseException):
        self.key = key
        self.cause = cause
        super().__init__(f"Computed default for `{key}` failed: {cause}")


class InvalidSpecError(QueryBuildError):
    kind = 'invalid_spec'
