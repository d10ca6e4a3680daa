from __future__ import annotations

import math
from typing import Any, Dict, Optional

from sqlalchemy import Select

DEFAULT_LIMIT = 10

__all__ = ['DEFAULT_LIMIT', 'apply_paging', 'compute_pagination']


def apply_paging(stmt: Select, limit: Optional[int] = None, offset: Optional[int] = None) -> Select:
    """Apply limit/offset when given as integers; anything else leaves the statement alone."""
    if isinstance(limit, int) and not isinstance(limit, bool):
        stmt = stmt.limit(limit)
    if isinstance(offset, int) and not isinstance(offset, bool):
        stmt = stmt.offset(offset)
    return stmt


def compute_pagination(
    total_count: int,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    *,
    default_limit: int = DEFAULT_LIMIT,
) -> Dict[str, Any]:
    limit = default_limit if limit is None else limit
    offset = 0 if offset is None else offset
    if total_count > 0 and limit > 0:
        total_pages = math.ceil(total_count / limit)
    else:
        total_pages = 1
    return {
        'limit': limit,
        'offset': offset,
        'total_count': total_count,
        'total_pages': total_pages,
        'has_next_page': offset + limit < total_count,
        'has_previous_page': offset > 0,
    }
