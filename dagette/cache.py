from __future__ import annotations
"""Node result caches.

A cache is any object with ``get(key) -> (hit, value)`` and
``set(key, value)``. :class:`MemoryCache` is a small in-process LRU.
"""
import hashlib
import json
from collections import OrderedDict
from typing import Any, Optional, Protocol, Tuple, runtime_checkable

from pydantic_core import to_jsonable_python

__all__ = ["NodeResultCache", "MemoryCache", "cache_key"]


@runtime_checkable
class NodeResultCache(Protocol):  # noqa: D101
    def get(self, key: str) -> Tuple[bool, Any]: ...

    def set(self, key: str, value: Any) -> None: ...


def cache_key(dag_name: str, node_name: str, input: Any, root_input: Any) -> str:
    """Return a stable sha256 key for one node invocation.

    Pydantic models, dataclasses, sets and datetimes are converted to JSON
    form first; anything else falls back to ``repr``.
    """
    payload = {
        "dag": dag_name,
        "node": node_name,
        "input": input,
        "root_input": root_input,
    }
    data = json.dumps(
        to_jsonable_python(payload, fallback=repr),
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


class MemoryCache:  # noqa: D101
    def __init__(self, max_size: Optional[int] = None):
        self.max_size = max_size
        self._lru: "OrderedDict[str, Any]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    # -------------------------------------------------- #
    def get(self, key: str) -> Tuple[bool, Any]:
        if key not in self._lru:
            self.misses += 1
            return False, None
        self._lru.move_to_end(key)
        self.hits += 1
        return True, self._lru[key]

    def set(self, key: str, value: Any) -> None:
        self._lru[key] = value
        self._lru.move_to_end(key)
        if self.max_size is not None and len(self._lru) > self.max_size:
            self._lru.popitem(last=False)

    # -------------------------------------------------- #
    def clear(self) -> None:
        self._lru.clear()
        self.hits = self.misses = 0

    def __len__(self) -> int:
        return len(self._lru)

    def __contains__(self, key: object) -> bool:
        return key in self._lru
