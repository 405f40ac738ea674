"""
Memoization layer for the underwriting scorer.

Extractors and mappers are pure functions of the input documents, so their
results are cached under a content hash of their arguments. The hash is taken
over a canonical JSON encoding (sorted keys), which means two documents that
differ only in key order share a cache entry.

The cache itself sits behind the ``ResultCache`` interface so the process-wide
strategy can be swapped (unbounded for the lifetime of the process, or a
bounded LRU) without touching the scoring code.
"""

import copy
import dataclasses
import functools
import hashlib
import json
import logging
import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional

from ..config.scoring_config import CACHE_CONFIG

logger = logging.getLogger(__name__)

_MISSING = object()


class ResultCache(ABC):
    """Interface for memoization stores."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return the cached value for ``key`` or ``default``."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``."""

    @abstractmethod
    def clear(self) -> None:
        """Drop every entry."""

    @abstractmethod
    def __len__(self) -> int:
        ...

    def __contains__(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING


class UnboundedCache(ResultCache):
    """Process-lifetime cache with no eviction."""

    def __init__(self):
        self._entries: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._entries.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = value

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class LRUCache(ResultCache):
    """Bounded cache evicting the least recently used entry."""

    def __init__(self, max_entries: int = 4096):
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, Any]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._entries:
                return default
            self._entries.move_to_end(key)
            return self._entries[key]

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("LRU cache evicted %s", evicted[:12])

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def build_cache(config: Optional[Dict] = None) -> ResultCache:
    """
    Create a cache from a configuration dictionary.

    Args:
        config: Dictionary with "strategy" ("unbounded" or "lru") and
            "max_entries". Defaults to CACHE_CONFIG.

    Returns:
        A ResultCache implementation
    """
    config = config or CACHE_CONFIG
    strategy = str(config.get("strategy", "unbounded")).lower()

    if strategy == "unbounded":
        return UnboundedCache()
    if strategy == "lru":
        return LRUCache(max_entries=int(config.get("max_entries", CACHE_CONFIG["max_entries"])))

    raise ValueError(f"Unknown cache strategy: {strategy}")


_active_cache: ResultCache = build_cache()


def get_cache() -> ResultCache:
    return _active_cache


def set_cache(cache: ResultCache) -> ResultCache:
    """Swap the process-wide cache and return the previous one."""
    global _active_cache
    previous = _active_cache
    _active_cache = cache
    return previous


def clear_cache() -> None:
    _active_cache.clear()


def _encode(value: Any) -> Any:
    """JSON fallback encoder for non-native argument types."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {"__dataclass__": type(value).__name__, **dataclasses.asdict(value)}
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=repr)
    return repr(value)


def canonical_key(name: str, args: tuple, kwargs: Dict) -> str:
    """
    Build a deterministic cache key for a call.

    Keys are independent of dictionary key order.
    """
    payload = json.dumps(
        {"fn": name, "args": list(args), "kwargs": kwargs},
        sort_keys=True,
        default=_encode,
        separators=(",", ":"),
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def memoized(fn: Callable) -> Callable:
    """
    Cache ``fn`` in the active ResultCache, keyed by its arguments.

    Values are deep-copied in and out of the cache so callers can never
    mutate a shared entry.
    """
    name = f"{fn.__module__}.{fn.__qualname__}"

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        key = canonical_key(name, args, kwargs)
        cache = _active_cache

        cached = cache.get(key, _MISSING)
        if cached is not _MISSING:
            return copy.deepcopy(cached)

        result = fn(*args, **kwargs)
        cache.set(key, copy.deepcopy(result))
        return result

    wrapper.cache_key = lambda *args, **kwargs: canonical_key(name, args, kwargs)
    return wrapper
