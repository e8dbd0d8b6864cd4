"""Result caching for envprint.

This module provides:
- ResultCache: two-tier TTL/size bounded FIFO cache of composite results
- DurableTier: interface for persistent tiers, with FileCacheTier built in
"""

from envprint.cache.durable import CacheEntry, CacheTierFailure, DurableTier, FileCacheTier
from envprint.cache.result_cache import DURABLE_TIERS, ResultCache

__all__ = [
    "CacheEntry",
    "CacheTierFailure",
    "DURABLE_TIERS",
    "DurableTier",
    "FileCacheTier",
    "ResultCache",
]
