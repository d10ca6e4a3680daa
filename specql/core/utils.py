from __future__ import annotations

from typing import Any, List, Optional

__all__ = [
    'dir_value',
    'ensure_list',
    'parse_int',
]


def dir_value(order_dir: Any) -> str:
    if order_dir is None:
        return 'asc'
    val = getattr(order_dir, 'value', order_dir)
    return str(val).strip().lower()


def ensure_list(value: Any) -> Optional[List[Any]]:
    """Wrap scalars into a list, preserving list inputs."""
    if value is None:
        return None
    if isinstance(value, list):
        return value
    if isinstance(value, tuple):
        return list(value)
    return [value]


def parse_int(value: Any) -> Optional[int]:
    """Accept ints and digit strings; None stays None. Raises ValueError otherwise."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Expected an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value.strip())
    raise ValueError(f"Expected an integer, got {value!r}")
