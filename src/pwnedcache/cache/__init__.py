"""Disk-based response caching for pwnedcache.

This package provides :class:`ResponseCache`, a best-effort read-through
store for API payloads, along with the pieces that drive its invalidation:

* :func:`make_cache_key` -- order-independent SHA-256 request keys.
* :func:`resolve_cache_dir` -- the platform cache directory for an app id.
* :class:`BreachFreshnessTracker` and :func:`sync_latest_breach_date` --
  latest-breach polling that invalidates entries written before a newer
  breach was added.

The cache is consumed by :class:`~pwnedcache.client.HaveIBeenPwned` and is
controlled by :class:`~pwnedcache.models.CacheConfig`.
"""

from pwnedcache.cache.cache import ResponseCache, make_cache_key
from pwnedcache.cache.directory import resolve_cache_dir
from pwnedcache.cache.freshness import BreachFreshnessTracker, sync_latest_breach_date

__all__ = [
    "BreachFreshnessTracker",
    "ResponseCache",
    "make_cache_key",
    "resolve_cache_dir",
    "sync_latest_breach_date",
]
