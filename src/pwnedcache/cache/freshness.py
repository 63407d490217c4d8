"""Latest-breach tracking for cache invalidation and domain searches.

The Have I Been Pwned docs recommend polling the cheap, heavily cached
``latestbreach`` endpoint and only re-running an expensive domain search once
a new breach shows up.  This module provides the two pieces of that
protocol:

* :func:`sync_latest_breach_date` -- probes the latest breach and pushes its
  ``AddedDate`` into a :class:`~pwnedcache.cache.ResponseCache` as the
  freshness signal (or clears the signal when the probe fails).
* :class:`BreachFreshnessTracker` -- remembers the newest ``AddedDate`` a
  single consumer has seen and decides whether its next query must bypass
  the cache.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

from pwnedcache.exceptions import PwnedError

if TYPE_CHECKING:
    from pwnedcache.cache.cache import ResponseCache

logger = logging.getLogger(__name__)


def breach_added_date(payload: Any) -> Optional[str]:
    """Extract ``AddedDate`` from a raw breach payload, if present."""
    if isinstance(payload, dict):
        added = payload.get("AddedDate")
        if isinstance(added, str) and added:
            return added
    return None


async def sync_latest_breach_date(
    cache: ResponseCache,
    fetch_latest: Callable[[], Awaitable[Any]],
) -> Optional[str]:
    """Refresh the cache's latest-breach signal.

    Args:
        cache: The cache whose signal is updated.
        fetch_latest: Coroutine function returning the raw ``latestbreach``
            payload (or ``None``).

    Returns:
        The new signal value.  ``None`` when the probe failed or returned no
        dated breach; the signal is cleared in that case rather than left at
        a possibly outdated value.
    """
    try:
        payload = await fetch_latest()
    except PwnedError as exc:
        logger.warning("Error checking latest breach: %s", exc)
        payload = None

    added = breach_added_date(payload)
    cache.set_latest_breach_date(added)
    return added


class BreachFreshnessTracker:
    """Decides when a consumer must skip the cache because a breach was added.

    Args:
        probe: Coroutine function returning the ``AddedDate`` of the latest
            breach, or ``None``.  It may go through the read-through cache.
            :class:`~pwnedcache.exceptions.PwnedError` raised by it is
            treated like an empty result. The tracker only decides; it
            never touches the cache's freshness signal, which is owned by
            :func:`sync_latest_breach_date`.
    """

    def __init__(self, probe: Callable[[], Awaitable[Optional[str]]]) -> None:
        self._probe = probe
        self.last_observed_breach_date: Optional[str] = None

    async def requires_fresh_fetch(self, force_fresh: bool = False) -> bool:
        """Return ``True`` if the next query must bypass the cache.

        * ``force_fresh`` always bypasses without probing.
        * A failed or empty probe bypasses: without a probe result there is
          no evidence that cached data is still current.
        * A probe date not newer than the recorded one means no breach was
          added since the last fresh fetch, so the read-through cache may
          answer.
        * Otherwise the probe date is recorded and the cache is bypassed.
        """
        if force_fresh:
            return True

        try:
            added = await self._probe()
        except PwnedError as exc:
            logger.warning("Latest breach probe failed, fetching fresh data: %s", exc)
            added = None

        if not added:
            return True

        last = self.last_observed_breach_date
        if last is not None and last >= added:
            return False

        logger.debug("New breach added at %s (previously %s)", added, last)
        self.last_observed_breach_date = added
        return True
