"""
Memoization Module for the Underwriting Scorer.

Caches per-input extractor results under a content hash of the arguments.
"""

from .memo import (
    ResultCache,
    UnboundedCache,
    LRUCache,
    build_cache,
    get_cache,
    set_cache,
    clear_cache,
    canonical_key,
    memoized,
)

__all__ = [
    "ResultCache",
    "UnboundedCache",
    "LRUCache",
    "build_cache",
    "get_cache",
    "set_cache",
    "clear_cache",
    "canonical_key",
    "memoized",
]
