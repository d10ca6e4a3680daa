from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from ..errors import RequestDecodeError
from .utils import ensure_list, parse_int

__all__ = ['QueryRequest', 'decode_request']


@dataclass
class QueryRequest:
    filters: Dict[str, Any] = field(default_factory=dict)
    sort: List[str] = field(default_factory=list)
    limit: Optional[int] = None
    offset: Optional[int] = None


def _decode_query_string(raw: Any) -> Any:
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode('utf-8')
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw or '{}')
    except ValueError as e:
        raise RequestDecodeError(f"Invalid query JSON: {e}") from e


def decode_request(params: Optional[Mapping[str, Any]]) -> QueryRequest:
    """Decode request params into filters, sort tokens and paging.

    Accepts the parsed form ``{"filters": {...}, "sort": [...], "limit", "offset"}``
    or the wire form ``{"query": "<json>"}`` carrying the same object.
    """
    if params is None:
        return QueryRequest()
    if not isinstance(params, Mapping):
        raise RequestDecodeError(f"Request params must be a mapping, got {type(params).__name__}")
    payload: Any = params
    if 'query' in params:
        payload = _decode_query_string(params.get('query'))
        if not isinstance(payload, Mapping):
            raise RequestDecodeError("query must be a JSON object")
    filters = payload.get('filters')
    if filters is None:
        filters = {}
    if not isinstance(filters, Mapping):
        raise RequestDecodeError(f"filters must be an object, got {type(filters).__name__}")
    sort = ensure_list(payload.get('sort')) or []
    if not all(isinstance(t, str) for t in sort):
        raise RequestDecodeError(f"sort must be a list of strings, got {payload.get('sort')!r}")
    try:
        limit = parse_int(payload.get('limit'))
        offset = parse_int(payload.get('offset'))
    except ValueError as e:
        raise RequestDecodeError(f"Invalid paging parameter: {e}") from e
    if (limit is not None and limit < 0) or (offset is not None and offset < 0):
        raise RequestDecodeError("limit and offset must not be negative")
    return QueryRequest(
        filters={str(k): v for k, v in filters.items()},
        sort=list(sort),
        limit=limit,
        offset=offset,
    )
