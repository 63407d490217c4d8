"""Disk-based response caching for Have I Been Pwned API calls.

Each successful, non-empty API payload is stored as one JSON document
addressed by a SHA-256 cache key::

    <cache_dir>/<first two hex chars of key>/<key>.json

Keys are derived from the endpoint path and the *defined* query parameters
in sorted name order (see :func:`make_cache_key`), so identical requests
resolve to the same entry regardless of parameter ordering and an unset
parameter is equivalent to an omitted one.

Freshness is decided by :meth:`ResponseCache.is_fresh`:

1. When ``ttl_seconds`` is configured, an entry is fresh while younger than
   the TTL.  Nothing else is consulted.
2. Otherwise, when both the cache's latest-breach signal and the entry's
   freshness tag are known, the entry is fresh if it was written at or after
   the newest known breach (``tag >= signal``).
3. Otherwise the entry is fresh indefinitely.  Rule 3 means that without a
   TTL and without a successful latest-breach probe nothing ever expires.

The cache is strictly best-effort: read faults become misses and write
faults are logged and dropped, so a broken cache only costs extra requests.

See Also:
    :class:`~pwnedcache.models.CacheConfig` -- ``enabled``, ``directory``
    and ``ttl_seconds``.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import re
import time
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

from pwnedcache.cache.directory import resolve_cache_dir
from pwnedcache.config import atomic_write
from pwnedcache.exceptions import CacheReadError, CacheWriteError
from pwnedcache.models import DEFAULT_CACHE_APP_ID, CacheConfig, CacheEntry

logger = logging.getLogger(__name__)

_SHARD_NAME = re.compile(r"[0-9a-f]{2}")
_KEY_NAME = re.compile(r"[0-9a-f]{64}")
_ENTRY_SUFFIX = ".json"


def _stringify(value: Any) -> str:
    # Booleans use the same spelling httpx puts on the query string.
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def make_cache_key(endpoint: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """Derive the cache key for a request.

    The endpoint path is hashed first, followed by ``name=value`` for every
    parameter whose value is not ``None``, in sorted name order.  Each
    parameter part is preceded by a NUL byte so that no endpoint can spell
    out the same bytes as a shorter endpoint plus its parameters.

    Args:
        endpoint: API path, e.g. ``"breachedaccount/test%40example.com"``.
        params: Query parameters.  ``None`` values are skipped.

    Returns:
        The 64-character hex SHA-256 digest.
    """
    digest = hashlib.sha256(endpoint.encode("utf-8"))
    if params:
        for name in sorted(params):
            value = params[name]
            if value is None:
                continue
            digest.update(b"\0")
            digest.update(f"{name}={_stringify(value)}".encode("utf-8"))
    return digest.hexdigest()


class ResponseCache:
    """Disk-backed read-through store for API payloads.

    Args:
        config: Cache configuration.  A disabled cache misses on every
            :meth:`get` and ignores every :meth:`set`.
        app_id: Application id used to resolve the platform cache directory
            when ``config.directory`` is not set.
        clock: Returns the current Unix time in seconds.  Injectable so
            TTL expiry can be tested without sleeping.

    Example::

        from pwnedcache.cache import ResponseCache
        from pwnedcache.models import CacheConfig

        cache = ResponseCache(CacheConfig(directory="/tmp/hibp-cache"))
        await cache.set("breach/Adobe", None, {"Name": "Adobe"})
        hit = await cache.get("breach/Adobe")
    """

    def __init__(
        self,
        config: CacheConfig,
        app_id: str = DEFAULT_CACHE_APP_ID,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._clock = clock
        self._cache_dir = (
            Path(config.directory).expanduser() if config.directory else resolve_cache_dir(app_id)
        )
        self._latest_breach_date: Optional[str] = None

    @property
    def config(self) -> CacheConfig:
        return self._config

    @property
    def directory(self) -> Path:
        """Root directory holding the shard subdirectories."""
        return self._cache_dir

    @property
    def latest_breach_date(self) -> Optional[str]:
        """The ``AddedDate`` of the newest breach known to this cache, if any."""
        return self._latest_breach_date

    def set_latest_breach_date(self, date: Optional[str]) -> None:
        """Update the latest-breach signal.

        Entries already on disk keep the tag they were written with; only
        their freshness verdict changes.
        """
        self._latest_breach_date = date

    def entry_path(self, key: str) -> Path:
        return self._cache_dir / key[:2] / f"{key}{_ENTRY_SUFFIX}"

    # ------------------------------------------------------------------ #
    # Public read / write
    # ------------------------------------------------------------------ #

    async def get(self, endpoint: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Return the cached payload, or ``None`` on a miss.

        Never raises: a missing, unreadable, corrupt or stale entry is a miss.
        """
        if not self._config.enabled:
            return None

        key = make_cache_key(endpoint, params)
        try:
            entry = await asyncio.to_thread(self._read_entry, self.entry_path(key))
        except CacheReadError as exc:
            logger.debug("Treating cache entry for %s as a miss: %s", endpoint, exc)
            return None

        if entry is None:
            return None
        if not self.is_fresh(entry):
            logger.debug("Cache entry for %s is stale", endpoint)
            return None
        return entry.data

    async def set(
        self,
        endpoint: str,
        params: Optional[Mapping[str, Any]],
        data: Any,
    ) -> None:
        """Store *data* under the key for ``(endpoint, params)``.

        ``None`` payloads (not-found results) are never stored.  The entry is
        tagged with the current latest-breach signal.  Write faults are logged
        and dropped.

        The write runs in a worker thread; if the awaiting task is cancelled
        the thread still finishes its atomic rename (or discards its temp
        file), so no partial entry is ever visible.
        """
        if not self._config.enabled or data is None:
            return

        key = make_cache_key(endpoint, params)
        entry = CacheEntry(
            data=data,
            created_at=self._clock(),
            freshness_tag=self._latest_breach_date,
        )
        try:
            await asyncio.to_thread(self._write_entry, self.entry_path(key), entry)
        except CacheWriteError as exc:
            logger.warning("Could not cache response for %s: %s", endpoint, exc)

    def is_fresh(self, entry: CacheEntry) -> bool:
        """Apply the freshness rules to *entry* (first applicable rule wins)."""
        ttl = self._config.ttl_seconds
        if ttl is not None:
            return self._clock() - entry.created_at < ttl

        if self._latest_breach_date is not None and entry.freshness_tag is not None:
            return entry.freshness_tag >= self._latest_breach_date

        return True

    # ------------------------------------------------------------------ #
    # Maintenance
    # ------------------------------------------------------------------ #

    async def invalidate(self, endpoint: str, params: Optional[Mapping[str, Any]] = None) -> bool:
        """Delete the entry for ``(endpoint, params)``.

        Returns:
            ``True`` if an entry was removed.
        """
        path = self.entry_path(make_cache_key(endpoint, params))
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.warning("Could not remove cache entry %s: %s", path, exc)
            return False
        return True

    async def clear_cache(self) -> int:
        """Delete every cache entry under :attr:`directory`.

        Only files that look like entries (``<2 hex>/<64 hex>.json``) are
        removed, so pointing the cache at a shared directory is safe.  Shard
        directories left empty are removed too.

        Returns:
            The number of entries deleted.
        """
        removed = await asyncio.to_thread(self._clear)
        logger.info("Removed %d cache entries from %s", removed, self._cache_dir)
        return removed

    def stats(self) -> dict[str, Any]:
        """Return cache statistics.

        Returns:
            A ``dict`` with ``enabled``, ``directory``, ``ttl_seconds``,
            ``latest_breach_date`` and ``size`` (number of entry files).
        """
        return {
            "enabled": self._config.enabled,
            "directory": str(self._cache_dir),
            "ttl_seconds": self._config.ttl_seconds,
            "latest_breach_date": self._latest_breach_date,
            "size": sum(1 for _ in self._iter_entry_files()),
        }

    # ------------------------------------------------------------------ #
    # Private helpers (run in worker threads)
    # ------------------------------------------------------------------ #

    def _read_entry(self, path: Path) -> Optional[CacheEntry]:
        """Load the entry at *path*; ``None`` if absent.

        Raises:
            CacheReadError: The file exists but cannot be read or parsed.
        """
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise CacheReadError(f"cannot read {path}: {exc}") from exc

        try:
            return CacheEntry.model_validate_json(text)
        except ValueError as exc:
            raise CacheReadError(f"corrupt entry {path}: {exc}") from exc

    def _write_entry(self, path: Path, entry: CacheEntry) -> None:
        """Persist *entry* atomically.

        Raises:
            CacheWriteError: Serialisation or any filesystem operation failed.
        """
        try:
            payload = entry.model_dump_json()
        except (TypeError, ValueError) as exc:
            raise CacheWriteError(f"payload is not JSON serialisable: {exc}") from exc
        try:
            atomic_write(path, payload)
        except OSError as exc:
            raise CacheWriteError(f"cannot write {path}: {exc}") from exc

    def _iter_entry_files(self):
        if not self._cache_dir.is_dir():
            return
        for shard in self._cache_dir.iterdir():
            if not shard.is_dir() or not _SHARD_NAME.fullmatch(shard.name):
                continue
            for path in shard.glob(f"*{_ENTRY_SUFFIX}"):
                if _KEY_NAME.fullmatch(path.stem) and path.stem.startswith(shard.name):
                    yield path

    def _clear(self) -> int:
        removed = 0
        shards: set[Path] = set()
        for path in list(self._iter_entry_files()):
            shards.add(path.parent)
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.warning("Could not remove cache entry %s: %s", path, exc)
                continue
            removed += 1
        for shard in shards:
            try:
                shard.rmdir()
            except OSError:
                # still holds temp or foreign files
                continue
        return removed
